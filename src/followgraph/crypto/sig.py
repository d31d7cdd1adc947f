# src/followgraph/crypto/sig.py
from __future__ import annotations

import base64
import json
from typing import Any, Dict

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

Json = Dict[str, Any]


def _decode_bytes(s: str) -> bytes:
    s = s.strip()
    if not s:
        raise ValueError("empty string")
    try:
        return bytes.fromhex(s)
    except ValueError:
        pass
    try:
        padding = "=" * (-len(s) % 4)
        s2 = (s + padding).replace("-", "+").replace("_", "/")
        return base64.b64decode(s2, validate=True)
    except ValueError as e:
        raise ValueError("not hex or base64") from e


def canonical_call_message(*, call: str, signer: str, nonce: int, args: Json) -> bytes:
    obj: Json = {
        "call": str(call),
        "signer": str(signer),
        "nonce": int(nonce),
        "args": args if isinstance(args, dict) else {},
    }
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def account_from_pubkey(pubkey: str | bytes) -> str:
    """Account ids are the lowercase hex of the raw 32-byte Ed25519 public key."""
    raw = pubkey if isinstance(pubkey, bytes) else _decode_bytes(pubkey)
    if len(raw) != 32:
        raise ValueError("ed25519 pubkey must be 32 bytes")
    return raw.hex()


def is_account_id(s: Any) -> bool:
    if not isinstance(s, str) or len(s) != 64:
        return False
    try:
        bytes.fromhex(s)
    except ValueError:
        return False
    return s == s.lower()


def public_account(key: Ed25519PrivateKey) -> str:
    return key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw).hex()


def verify_ed25519_signature(*, message: bytes, sig: str, pubkey: str) -> bool:
    try:
        sig_b = _decode_bytes(sig)
        pk_b = _decode_bytes(pubkey)
        key = Ed25519PublicKey.from_public_bytes(pk_b)
        key.verify(sig_b, message)
        return True
    except (InvalidSignature, ValueError):
        return False


def sign_ed25519(*, message: bytes, privkey: str, encoding: str = "hex") -> str:
    """Sign a message with an Ed25519 private key.

    privkey: hex or base64/base64url string of the 32-byte seed
    (a 64-byte expanded key is truncated to its seed).
    encoding: "hex" (default) or "b64".
    """
    pk_b = _decode_bytes(privkey)
    if len(pk_b) == 64:
        pk_b = pk_b[:32]
    if len(pk_b) != 32:
        raise ValueError("ed25519 privkey must be 32-byte seed (or 64-byte expanded key)")

    sig_b = Ed25519PrivateKey.from_private_bytes(pk_b).sign(message)
    if encoding == "hex":
        return sig_b.hex()
    if encoding in {"b64", "base64"}:
        return base64.b64encode(sig_b).decode("ascii")
    raise ValueError("unsupported encoding")


def sign_call_envelope_dict(*, call: Json, privkey: str, encoding: str = "hex") -> Json:
    """Return a copy of `call` with its 'sig' field populated.

    Expected shape (extra keys allowed):
      {"call": str, "signer": str, "nonce": int, "args": dict}
    """
    name = str(call.get("call") or "")
    signer = str(call.get("signer") or "")
    nonce = int(call.get("nonce") or 0)
    args = call.get("args") if isinstance(call.get("args"), dict) else {}

    msg = canonical_call_message(call=name, signer=signer, nonce=nonce, args=args)

    out = dict(call)
    out.update({"call": name, "signer": signer, "nonce": nonce, "args": args})
    out["sig"] = sign_ed25519(message=msg, privkey=privkey, encoding=encoding)
    return out
