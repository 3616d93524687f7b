# walletbox/block/storage.py
"""
WalletBox Block Storage: Shared Store Client

One client per process, opened once and closed on teardown, passed by
reference into KeyRegistry and MessageStore implementations instead of
living as a module-level singleton.

StoreClient is the in-memory backend: named tables of row dicts
guarded by a single re-entrant lock. Rows are copied on the way in and
on the way out so callers never share mutable state with the store.

Usage:
    with StoreClient() as client:
        registry = MemoryKeyRegistry(client)
        messages = MemoryMessageStore(client)
        ...
    # client closed: further access raises StoreClosedError
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


# =============================================================================
# Exceptions
# =============================================================================

class StoreError(Exception):
    """Base store error (retryable from the caller's point of view)."""
    pass


class StoreClosedError(StoreError):
    """Client used before open() or after close() (not retryable)."""
    pass


# =============================================================================
# StoreClient
# =============================================================================

class StoreClient:
    """
    Shared in-memory store client with an explicit lifecycle.

    Thread-safe: every table operation holds the client lock.
    """

    def __init__(self, name: str = "memory", auto_open: bool = True):
        """
        Args:
            name: Client name (for logs)
            auto_open: Open immediately (default: True)
        """
        self._name = name
        self._lock = threading.RLock()
        self._tables: Dict[str, List[Row]] = {}
        self._open = False
        if auto_open:
            self.open()

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_open(self) -> bool:
        return self._open

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def open(self) -> StoreClient:
        """Open the client (idempotent)."""
        with self._lock:
            if not self._open:
                self._open = True
                logger.debug(f"Store client '{self._name}' opened")
        return self

    def close(self) -> None:
        """Close the client and drop all tables (idempotent)."""
        with self._lock:
            if self._open:
                self._open = False
                self._tables.clear()
                logger.debug(f"Store client '{self._name}' closed")

    def __enter__(self) -> StoreClient:
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require_open(self) -> None:
        if not self._open:
            raise StoreClosedError(f"Store client '{self._name}' is not open")

    # =========================================================================
    # Table Operations
    # =========================================================================

    def insert(self, table: str, row: Row) -> Row:
        """Append a copy of row to table."""
        with self._lock:
            self._require_open()
            stored = dict(row)
            self._tables.setdefault(table, []).append(stored)
            return dict(stored)

    def insert_unique(self, table: str, row: Row, key: str) -> Optional[Row]:
        """
        Append a copy of row unless a row with the same row[key] exists.

        The check and the append happen under one lock hold.

        Returns:
            The stored row, or None if the key was already present
        """
        with self._lock:
            self._require_open()
            rows = self._tables.setdefault(table, [])
            if any(existing.get(key) == row.get(key) for existing in rows):
                return None
            stored = dict(row)
            rows.append(stored)
            return dict(stored)

    def upsert(self, table: str, row: Row, key: str) -> Row:
        """Insert row, or replace the existing row with the same row[key]."""
        with self._lock:
            self._require_open()
            rows = self._tables.setdefault(table, [])
            stored = dict(row)
            for i, existing in enumerate(rows):
                if existing.get(key) == stored.get(key):
                    rows[i] = stored
                    break
            else:
                rows.append(stored)
            return dict(stored)

    def select(
        self,
        table: str,
        where: Optional[Callable[[Row], bool]] = None,
        limit: Optional[int] = None,
    ) -> List[Row]:
        """
        Select row copies in insertion order.

        Args:
            table: Table name (missing table = no rows)
            where: Row predicate
            limit: Maximum rows returned
        """
        with self._lock:
            self._require_open()
            rows = [dict(r) for r in self._tables.get(table, []) if where is None or where(r)]
        if limit is not None:
            rows = rows[:limit]
        return rows

    def count(self, table: str) -> int:
        with self._lock:
            self._require_open()
            return len(self._tables.get(table, []))

    def __repr__(self) -> str:
        state = "open" if self._open else "closed"
        return f"StoreClient(name={self._name!r}, {state})"
