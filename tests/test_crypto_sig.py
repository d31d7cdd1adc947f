# tests/test_crypto_sig.py
from __future__ import annotations

import base64

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from followgraph.crypto.sig import (
    account_from_pubkey,
    canonical_call_message,
    is_account_id,
    public_account,
    sign_call_envelope_dict,
    sign_ed25519,
    verify_ed25519_signature,
)
from followgraph.graph.types import CallEnvelope
from followgraph.runtime.executor import authenticate
from followgraph.testing.sigtools import deterministic_ed25519_keypair


def test_canonical_message_is_key_order_independent() -> None:
    m1 = canonical_call_message(call="follow", signer="s", nonce=1, args={"target": "t", "z": 1})
    m2 = canonical_call_message(call="follow", signer="s", nonce=1, args={"z": 1, "target": "t"})
    assert m1 == m2
    assert m1 == b'{"args":{"target":"t","z":1},"call":"follow","nonce":1,"signer":"s"}'


def test_account_ids_are_hex_pubkeys() -> None:
    account, sk = deterministic_ed25519_keypair(label="alice")
    assert is_account_id(account)
    assert not is_account_id(account.upper())
    assert not is_account_id("@alice")

    raw = bytes.fromhex(account)
    assert account_from_pubkey(raw) == account
    assert account_from_pubkey(base64.b64encode(raw).decode("ascii")) == account
    with pytest.raises(ValueError):
        account_from_pubkey(b"\x00" * 31)


def test_sign_and_verify_hex_and_b64() -> None:
    seed_hex = "11" * 32
    msg = b"hello"
    pub = public_account(Ed25519PrivateKey.from_private_bytes(bytes.fromhex(seed_hex)))

    sig_hex = sign_ed25519(message=msg, privkey=seed_hex)
    sig_b64 = sign_ed25519(message=msg, privkey=seed_hex, encoding="b64")
    assert verify_ed25519_signature(message=msg, sig=sig_hex, pubkey=pub)
    assert verify_ed25519_signature(message=msg, sig=sig_b64, pubkey=pub)
    assert not verify_ed25519_signature(message=b"other", sig=sig_hex, pubkey=pub)
    assert not verify_ed25519_signature(message=msg, sig="zz", pubkey=pub)


def test_signed_envelope_authenticates_as_signer() -> None:
    seed_hex = "22" * 32
    signer = public_account(Ed25519PrivateKey.from_private_bytes(bytes.fromhex(seed_hex)))
    env = sign_call_envelope_dict(
        call={"call": "follow", "signer": signer, "nonce": 7, "args": {"target": "b" * 64}},
        privkey=seed_hex,
    )
    assert authenticate(CallEnvelope.from_json(env)) == signer
