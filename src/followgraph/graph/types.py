# src/followgraph/graph/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Union

Json = Dict[str, Any]

# Account ids are opaque strings supplied by the authentication boundary
# (lowercase hex Ed25519 public keys in practice). The core never builds one.
Account = str


@dataclass(frozen=True, slots=True)
class Registration:
    account: Account
    index: int

    def to_json(self) -> Json:
        return {"account": self.account, "index": int(self.index)}


@dataclass(frozen=True, slots=True)
class CreateUser:
    account: Account
    index: int

    kind: str = field(default="CreateUser", init=False)

    def to_json(self) -> Json:
        return {"kind": self.kind, "account": self.account, "index": int(self.index)}


@dataclass(frozen=True, slots=True)
class FollowUser:
    follower: Account
    followed: Account
    follower_count: int

    kind: str = field(default="FollowUser", init=False)

    def to_json(self) -> Json:
        return {
            "kind": self.kind,
            "follower": self.follower,
            "followed": self.followed,
            "follower_count": int(self.follower_count),
        }


@dataclass(frozen=True, slots=True)
class UnFollowUser:
    follower: Account
    followed: Account
    follower_count: int

    kind: str = field(default="UnFollowUser", init=False)

    def to_json(self) -> Json:
        return {
            "kind": self.kind,
            "follower": self.follower,
            "followed": self.followed,
            "follower_count": int(self.follower_count),
        }


GraphEvent = Union[CreateUser, FollowUser, UnFollowUser]


@dataclass(frozen=True)
class CallEnvelope:
    """A signed mutation request.

    `signer` is the caller identity; `sig` covers the canonical encoding of
    (call, signer, nonce, args).
    """

    call: str
    signer: Account
    nonce: int
    args: Dict[str, Any] = field(default_factory=dict)
    sig: str = ""

    @staticmethod
    def from_json(j: Any) -> "CallEnvelope":
        if isinstance(j, CallEnvelope):
            return j
        if not isinstance(j, dict):
            j = dict(j)  # type: ignore[arg-type]
        return CallEnvelope(
            call=str(j.get("call", "")),
            signer=str(j.get("signer", "")),
            nonce=int(j.get("nonce", 0)),
            args=dict(j.get("args", {}) or {}),
            sig=str(j.get("sig", "") or ""),
        )

    def to_json(self) -> Json:
        return {
            "call": self.call,
            "signer": self.signer,
            "nonce": self.nonce,
            "args": self.args,
            "sig": self.sig,
        }
