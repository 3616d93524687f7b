# walletbox/block/registry/resolver.py
"""
WalletBox Block Registry: Key Resolver

Sender-side lookup of a recipient's derived public key. Wraps a
KeyRegistry with an optional TTL cache.

The cache is disabled by default (cache_ttl=0.0): a recipient who
regenerates their key must never receive messages encrypted to the
key they replaced.

Usage:
    resolver = KeyResolver(registry)
    public_key = resolver.resolve(recipient_address)

    # With caching
    resolver = KeyResolver(registry, cache_ttl=60.0)
    resolver.invalidate(recipient_address)  # after a regenerate
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from ...cryptography.common import normalize_address
from .key_store import KeyRegistry, RecipientKeyRecord, RegistryError


# =============================================================================
# Exceptions
# =============================================================================

class NoKeyFoundError(RegistryError):
    """Wallet has not published a derived public key."""
    def __init__(self, address: str):
        self.address = address
        super().__init__(f"No key found: address={address}")


# =============================================================================
# Cache Entry
# =============================================================================

@dataclass
class CacheEntry:
    """Cache entry for resolved keys."""
    record: RecipientKeyRecord
    cached_at: float
    ttl: float  # Cache TTL in seconds

    def is_expired(self) -> bool:
        """Check if cache entry is expired."""
        return time.monotonic() > self.cached_at + self.ttl


# =============================================================================
# KeyResolver
# =============================================================================

class KeyResolver:
    """
    Recipient key resolver with optional caching.
    """

    def __init__(self, registry: KeyRegistry, cache_ttl: float = 0.0):
        """
        Initialize resolver.

        Args:
            registry: KeyRegistry implementation
            cache_ttl: Cache TTL in seconds (default: 0.0, caching off)
        """
        if cache_ttl < 0:
            raise ValueError("cache_ttl must be >= 0")
        self._registry = registry
        self._cache_ttl = cache_ttl
        self._cache: Dict[str, CacheEntry] = {}

    @property
    def registry(self) -> KeyRegistry:
        return self._registry

    @property
    def cache_enabled(self) -> bool:
        return self._cache_ttl > 0

    # =========================================================================
    # Resolution
    # =========================================================================

    def resolve_record(self, address: str) -> RecipientKeyRecord:
        """
        Resolve the full key record for an address.

        Raises:
            NoKeyFoundError: If the wallet never published a key
        """
        normalized = normalize_address(address)

        if self.cache_enabled and normalized in self._cache:
            entry = self._cache[normalized]
            if not entry.is_expired():
                return entry.record
            del self._cache[normalized]

        record = self._registry.get(normalized)
        if record is None:
            raise NoKeyFoundError(normalized)

        if self.cache_enabled:
            self._cache[normalized] = CacheEntry(
                record=record,
                cached_at=time.monotonic(),
                ttl=self._cache_ttl,
            )
        return record

    def resolve(self, address: str) -> bytes:
        """Resolve the 32-byte derived public key for an address."""
        return self.resolve_record(address).derived_public_key

    def batch_resolve(self, addresses: List[str]) -> Dict[str, Optional[bytes]]:
        """Resolve several addresses; unpublished wallets map to None."""
        results: Dict[str, Optional[bytes]] = {}
        for address in addresses:
            try:
                results[address] = self.resolve(address)
            except NoKeyFoundError:
                results[address] = None
        return results

    # =========================================================================
    # Cache Management
    # =========================================================================

    def invalidate(self, address: Optional[str] = None) -> None:
        """Drop one address from the cache, or everything if address is None."""
        if address is None:
            self._cache.clear()
        else:
            self._cache.pop(normalize_address(address), None)

    def cache_stats(self) -> Dict[str, int]:
        expired = sum(1 for e in self._cache.values() if e.is_expired())
        return {"entries": len(self._cache), "expired": expired}
