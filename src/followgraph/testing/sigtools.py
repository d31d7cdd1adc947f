from __future__ import annotations

import hashlib
from typing import Any, Dict, Optional, Tuple

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from followgraph.crypto.sig import canonical_call_message, public_account

Json = Dict[str, Any]


def deterministic_ed25519_keypair(*, label: str) -> Tuple[str, Ed25519PrivateKey]:
    """Deterministically derive an Ed25519 keypair from a stable label.

    TEST ONLY.

    Returns:
      (account_id, private_key)
    """
    seed = hashlib.sha256(("followgraph-test-ed25519:" + (label or "")).encode("utf-8")).digest()
    sk = Ed25519PrivateKey.from_private_bytes(seed)
    return public_account(sk), sk


def account_for(label: str) -> str:
    account, _ = deterministic_ed25519_keypair(label=label)
    return account


def signed_call(call: str, *, label: str, nonce: int, args: Optional[Json] = None) -> Json:
    """Build a call envelope for `label`'s test account, signed with its test key."""
    account, sk = deterministic_ed25519_keypair(label=label)
    a = dict(args or {})
    msg = canonical_call_message(call=call, signer=account, nonce=nonce, args=a)
    return {"call": call, "signer": account, "nonce": int(nonce), "args": a, "sig": sk.sign(msg).hex()}
