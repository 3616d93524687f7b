# walletbox/block/registry/__init__.py
"""
WalletBox Block Registry: Recipient Key Registry

Where senders find a recipient's derived public key.

Components:
    RecipientKeyRecord - One published key per wallet
    KeyRegistry        - Abstract get/put (upsert) registry
    MemoryKeyRegistry  - Registry on a shared StoreClient
    KeyResolver        - Sender-side lookup with optional TTL cache

Usage:
    from walletbox.block.registry import MemoryKeyRegistry, KeyResolver

    registry = MemoryKeyRegistry(client)
    registry.put(address, keypair.public_key)

    resolver = KeyResolver(registry)
    public_key = resolver.resolve(address)
"""

from .key_store import (
    RECIPIENT_KEYS_TABLE,
    RecipientKeyRecord,
    KeyRegistry,
    MemoryKeyRegistry,
    RegistryError,
)

from .resolver import (
    KeyResolver,
    CacheEntry,
    NoKeyFoundError,
)

__all__ = [
    # Store
    "RECIPIENT_KEYS_TABLE",
    "RecipientKeyRecord",
    "KeyRegistry",
    "MemoryKeyRegistry",
    "RegistryError",
    # Resolver
    "KeyResolver",
    "CacheEntry",
    "NoKeyFoundError",
]
