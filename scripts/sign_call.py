#!/usr/bin/env python3

"""Build and sign a followgraph call envelope.

Examples:
  python3 scripts/sign_call.py keygen
  python3 scripts/sign_call.py sign --privkey <hex seed> --call register --nonce 1
  python3 scripts/sign_call.py sign --privkey <hex seed> --call follow --nonce 2 --target <account>

The printed JSON can be POSTed to /v1/calls/submit.
"""

from __future__ import annotations

import argparse
import json
import secrets

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from followgraph.crypto.sig import public_account, sign_call_envelope_dict


def _keygen(_args: argparse.Namespace) -> int:
    seed = secrets.token_bytes(32)
    account = public_account(Ed25519PrivateKey.from_private_bytes(seed))
    print(json.dumps({"account": account, "privkey": seed.hex()}, indent=2))
    return 0


def _sign(args: argparse.Namespace) -> int:
    seed = bytes.fromhex(args.privkey.strip())
    signer = public_account(Ed25519PrivateKey.from_private_bytes(seed[:32]))
    call_args = {"target": args.target} if args.target else {}
    env = sign_call_envelope_dict(
        call={"call": args.call, "signer": signer, "nonce": args.nonce, "args": call_args},
        privkey=args.privkey,
        encoding=args.encoding,
    )
    print(json.dumps(env, indent=2, sort_keys=True))
    return 0


def main() -> int:
    ap = argparse.ArgumentParser(description="followgraph call signing helper")
    sub = ap.add_subparsers(dest="cmd", required=True)

    kg = sub.add_parser("keygen", help="generate a new Ed25519 account")
    kg.set_defaults(func=_keygen)

    sg = sub.add_parser("sign", help="sign a call envelope")
    sg.add_argument("--privkey", required=True, help="hex 32-byte Ed25519 seed")
    sg.add_argument("--call", required=True, choices=["register", "follow", "unfollow"])
    sg.add_argument("--nonce", required=True, type=int)
    sg.add_argument("--target", default="", help="followed account (follow/unfollow)")
    sg.add_argument("--encoding", default="hex", choices=["hex", "b64"])
    sg.set_defaults(func=_sign)

    args = ap.parse_args()
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
