# tests/test_messenger.py
"""
WalletBox Messenger Integration Tests

End-to-end scenarios:
    1. Publish key, send, read inbox
    2. Explicit failure states in the inbox
    3. Store retry with backoff
    4. Signer failures and real signers
"""

from __future__ import annotations

import asyncio
import logging

import pytest

from walletbox.block.adapters import EthAccountSigner, Ed25519Signer, MockWalletSigner
from walletbox.block.mailbox import MemoryMessageStore
from walletbox.block.storage import StoreClient, StoreClosedError, StoreError
from walletbox.block.transport import (
    DecryptStatus,
    MessengerConfig,
    RecipientKeyNotFoundError,
    WalletMessenger,
)
from walletbox.block.wire import MESSAGES_TABLE
from walletbox.cryptography import (
    DecryptionFailedError,
    KeyMismatchError,
    PayloadKind,
    SCHEME_LEGACY_RAW,
    SigningUnavailableError,
)
from walletbox.cryptography.common import b64decode, b64encode

from .conftest import ALICE, BOB, CAROL


class FlakyMessageStore(MemoryMessageStore):
    """Fails the first `failures` appends with StoreError."""

    def __init__(self, client, failures):
        super().__init__(client)
        self.failures = failures
        self.attempts = 0

    def append(self, message):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise StoreError("connection reset")
        return super().append(message)


# =============================================================================
# 1. Publish, Send, Read
# =============================================================================

def test_wallet_to_wallet_messaging(messenger, alice, bob):
    async def flow():
        await messenger.publish_key(bob)
        await messenger.send(alice.address, bob.address, "gm bob")
        await messenger.send(alice.address, bob.address, "second")
        return await messenger.read_inbox(bob)

    entries = asyncio.run(flow())

    assert [e.text for e in entries] == ["second", "gm bob"]
    assert all(e.ok and e.status is DecryptStatus.DECRYPTED for e in entries)
    assert all(e.sender == ALICE for e in entries)
    assert entries[0].label == "decrypted"


def test_one_signature_per_inbox_read(messenger, alice, bob):
    async def flow():
        await messenger.publish_key(bob)
        for i in range(3):
            await messenger.send(alice.address, bob.address, f"m{i}")
        before = bob.sign_count
        await messenger.read_inbox(bob)
        return bob.sign_count - before

    assert asyncio.run(flow()) == 1


def test_empty_inbox_does_not_prompt(messenger, bob):
    assert asyncio.run(messenger.read_inbox(bob)) == []
    assert bob.sign_count == 0


def test_send_to_unpublished_recipient(messenger, alice):
    with pytest.raises(RecipientKeyNotFoundError) as info:
        asyncio.run(messenger.send(alice.address, CAROL, "hello?"))
    assert info.value.address == CAROL


def test_publish_key_matches_derivation(messenger, registry, bob):
    record = asyncio.run(messenger.publish_key(bob))
    keypair = asyncio.run(messenger.unlock(bob))

    assert record.derived_public_key == keypair.public_key
    assert registry.get(BOB).derived_public_key == keypair.public_key


def test_binary_message(messenger, alice, bob):
    async def flow():
        await messenger.publish_key(bob)
        await messenger.send(alice.address, bob.address, b"\x00\x01\x02")
        return await messenger.read_inbox(bob)

    (entry,) = asyncio.run(flow())
    assert entry.ok
    assert entry.decoded.is_binary
    assert entry.decoded.record.payload == b"\x00\x01\x02"


def test_read_limit(messenger, alice, bob):
    async def flow():
        await messenger.publish_key(bob)
        for i in range(4):
            await messenger.send(alice.address, bob.address, f"m{i}")
        return await messenger.read_inbox(bob, limit=2)

    assert len(asyncio.run(flow())) == 2


def test_message_sizes_logged_without_secrets(messenger, alice, bob, caplog):
    async def flow():
        keypair = await messenger.unlock(bob)
        await messenger.publish_key(bob)
        await messenger.send(alice.address, bob.address, "hi")
        await messenger.read_inbox(bob)
        return keypair

    with caplog.at_level(logging.DEBUG, logger="walletbox"):
        keypair = asyncio.run(flow())

    text = "\n".join(r.getMessage() for r in caplog.records)
    assert "Published key" in text
    assert keypair.secret_key.hex()[:16] not in text


# =============================================================================
# 2. Explicit Failure States
# =============================================================================

def test_key_mismatch_state(messenger, registry, alice, bob, other_keypair):
    async def flow():
        await messenger.publish_key(bob)
        registry.put(bob.address, other_keypair.public_key)
        await messenger.send(alice.address, bob.address, "for the wrong key")
        return await messenger.read_inbox(bob)

    (entry,) = asyncio.run(flow())
    assert entry.status is DecryptStatus.KEY_MISMATCH
    assert entry.label == "could not decrypt: wrong key"
    assert entry.text is None
    assert isinstance(entry.error, KeyMismatchError)


def test_key_check_disabled_reports_decryption_failure(registry, store, alice, bob, other_keypair):
    messenger = WalletMessenger(registry, store, config=MessengerConfig(check_public_key=False))

    async def flow():
        registry.put(bob.address, other_keypair.public_key)
        await messenger.send(alice.address, bob.address, "for the wrong key")
        return await messenger.read_inbox(bob)

    (entry,) = asyncio.run(flow())
    assert entry.status is DecryptStatus.DECRYPTION_FAILED
    assert isinstance(entry.error, DecryptionFailedError)


def test_tampered_message_state(messenger, client, alice, bob):
    async def flow():
        await messenger.publish_key(bob)
        message = await messenger.send(alice.address, bob.address, "original")
        row = message.to_row()
        ciphertext = bytearray(b64decode(row["ciphertext"]))
        ciphertext[-1] ^= 0x01
        row["ciphertext"] = b64encode(bytes(ciphertext))
        row["id"] = "tampered"
        client.insert(MESSAGES_TABLE, row)
        return await messenger.read_inbox(bob)

    entries = {e.message_id: e for e in asyncio.run(flow())}
    assert entries["tampered"].status is DecryptStatus.DECRYPTION_FAILED
    assert entries["tampered"].text is None
    assert sum(1 for e in entries.values() if e.ok) == 1


def test_malformed_row_state(messenger, client, alice, bob):
    async def flow():
        await messenger.publish_key(bob)
        message = await messenger.send(alice.address, bob.address, "fine")
        row = message.to_row()
        row["id"] = "broken"
        row["nonce"] = "AAAA"
        client.insert(MESSAGES_TABLE, row)
        return await messenger.read_inbox(bob)

    entries = {e.message_id: e for e in asyncio.run(flow())}
    assert entries["broken"].status is DecryptStatus.INVALID_ENVELOPE
    assert entries["broken"].label == "could not decrypt: malformed message"
    assert entries["broken"].sender == ALICE
    assert entries["broken"].error is not None


def test_legacy_scheme_is_opt_in(registry, store, alice, bob):
    legacy = WalletMessenger(registry, store, config=MessengerConfig(scheme_id=SCHEME_LEGACY_RAW))
    canonical = WalletMessenger(registry, store)

    async def flow():
        await legacy.publish_key(bob)
        await legacy.send(alice.address, bob.address, "legacy derived")
        return await canonical.read_inbox(bob), await legacy.read_inbox(bob)

    canonical_entries, legacy_entries = asyncio.run(flow())
    assert canonical_entries[0].status is DecryptStatus.KEY_MISMATCH
    assert legacy_entries[0].text == "legacy derived"
    assert legacy_entries[0].decoded.kind is PayloadKind.RECORD


# =============================================================================
# 3. Store Retry
# =============================================================================

def test_retry_then_success(client, registry, alice, bob):
    store = FlakyMessageStore(client, failures=2)
    messenger = WalletMessenger(registry, store, config=MessengerConfig(retry_delay=0.0))

    async def flow():
        await messenger.publish_key(bob)
        await messenger.send(alice.address, bob.address, "eventually")
        return await messenger.read_inbox(bob)

    (entry,) = asyncio.run(flow())
    assert entry.text == "eventually"
    assert store.attempts == 3


def test_retry_gives_up(client, registry, alice, bob):
    store = FlakyMessageStore(client, failures=100)
    messenger = WalletMessenger(registry, store, config=MessengerConfig(retry_delay=0.0, max_retries=3))

    async def flow():
        await messenger.publish_key(bob)
        await messenger.send(alice.address, bob.address, "never")

    with pytest.raises(StoreError):
        asyncio.run(flow())
    assert store.attempts == 4


def test_closed_store_is_not_retried(registry, alice, bob, monkeypatch, caplog):
    closed = StoreClient(name="closed", auto_open=False)
    store = FlakyMessageStore(closed, failures=0)
    messenger = WalletMessenger(registry, store, config=MessengerConfig(retry_delay=1.0))
    delays = []

    async def fake_sleep(delay):
        delays.append(delay)

    async def flow():
        await messenger.publish_key(bob)
        monkeypatch.setattr(asyncio, "sleep", fake_sleep)
        await messenger.send(alice.address, bob.address, "too late")

    with caplog.at_level(logging.WARNING, logger="walletbox"):
        with pytest.raises(StoreClosedError):
            asyncio.run(flow())

    assert store.attempts == 1
    assert delays == []
    assert not any("retry" in r.getMessage() and r.levelno == logging.WARNING for r in caplog.records)


def test_retry_backoff_is_exponential(client, registry, alice, bob, monkeypatch):
    delays = []

    async def fake_sleep(delay):
        delays.append(delay)

    store = FlakyMessageStore(client, failures=3)
    messenger = WalletMessenger(registry, store, config=MessengerConfig(retry_delay=1.0))

    async def flow():
        await messenger.publish_key(bob)
        monkeypatch.setattr(asyncio, "sleep", fake_sleep)
        await messenger.send(alice.address, bob.address, "backoff")

    asyncio.run(flow())
    assert delays == [1.0, 2.0, 4.0]


def test_config_validation():
    with pytest.raises(ValueError):
        MessengerConfig(max_retries=-1)
    with pytest.raises(ValueError):
        MessengerConfig(retry_delay=-0.5)


# =============================================================================
# 4. Signer Failures and Real Signers
# =============================================================================

def test_rejected_signature_on_read(messenger, alice, bob):
    async def flow():
        await messenger.publish_key(bob)
        await messenger.send(alice.address, bob.address, "locked")
        bob.set_auto_approve(False)
        await messenger.read_inbox(bob)

    with pytest.raises(SigningUnavailableError):
        asyncio.run(flow())


def test_rejected_signature_on_publish(messenger, registry):
    signer = MockWalletSigner(address=CAROL, auto_approve=False)
    with pytest.raises(SigningUnavailableError):
        asyncio.run(messenger.publish_key(signer))
    assert registry.get(CAROL) is None


def test_eth_account_wallets(messenger):
    sender = EthAccountSigner.create()
    recipient = EthAccountSigner.create()

    async def flow():
        await messenger.publish_key(recipient)
        await messenger.send(sender.address, recipient.address, "from a real key")
        return await messenger.read_inbox(recipient)

    (entry,) = asyncio.run(flow())
    assert entry.text == "from a real key"
    assert entry.sender == sender.address


def test_ed25519_wallets(messenger, alice):
    recipient = Ed25519Signer.generate()

    async def flow():
        await messenger.publish_key(recipient)
        await messenger.send(alice.address, recipient.address, "to ed25519")
        return await messenger.read_inbox(recipient)

    (entry,) = asyncio.run(flow())
    assert entry.text == "to ed25519"


def test_regenerate_reaches_new_messages(messenger, alice, bob):
    async def flow():
        first = await messenger.publish_key(bob)
        second = await messenger.publish_key(bob)
        await messenger.send(alice.address, bob.address, "after regenerate")
        return first, second, await messenger.read_inbox(bob)

    first, second, (entry,) = asyncio.run(flow())
    assert first.derived_public_key == second.derived_public_key
    assert entry.ok
