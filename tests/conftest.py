# tests/conftest.py
"""
Shared fixtures for the WalletBox test suite.
"""

from __future__ import annotations

import secrets

import pytest

from walletbox.block.adapters import MockWalletSigner
from walletbox.block.mailbox import MemoryMessageStore
from walletbox.block.registry import MemoryKeyRegistry
from walletbox.block.storage import StoreClient
from walletbox.block.transport import MessengerConfig, WalletMessenger
from walletbox.cryptography import DerivedKeyPair, EncryptionEngine, normalize_address

ALICE = normalize_address("0x" + "a1" * 20)
BOB = normalize_address("0x" + "b2" * 20)
CAROL = normalize_address("0x" + "c3" * 20)


@pytest.fixture
def engine() -> EncryptionEngine:
    return EncryptionEngine()


@pytest.fixture
def keypair() -> DerivedKeyPair:
    return DerivedKeyPair.from_secret_key(secrets.token_bytes(32))


@pytest.fixture
def other_keypair() -> DerivedKeyPair:
    return DerivedKeyPair.from_secret_key(secrets.token_bytes(32))


@pytest.fixture
def client():
    with StoreClient(name="test") as c:
        yield c


@pytest.fixture
def registry(client) -> MemoryKeyRegistry:
    return MemoryKeyRegistry(client)


@pytest.fixture
def store(client) -> MemoryMessageStore:
    return MemoryMessageStore(client)


@pytest.fixture
def config() -> MessengerConfig:
    return MessengerConfig(retry_delay=0.0)


@pytest.fixture
def messenger(registry, store, config) -> WalletMessenger:
    return WalletMessenger(registry, store, config=config)


@pytest.fixture
def alice() -> MockWalletSigner:
    return MockWalletSigner(address=ALICE)


@pytest.fixture
def bob() -> MockWalletSigner:
    return MockWalletSigner(address=BOB)
