# src/followgraph/graph/errors.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class GraphError(Exception):
    """Canonical error type for graph transitions and call dispatch.

    Every failure aborts the call: no table is mutated and no event is emitted.
    """

    code: str
    reason: str
    details: Any | None = None

    def __str__(self) -> str:
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


class NotRegistered(GraphError):
    def __init__(self, account: str) -> None:
        super().__init__("not_registered", "account_not_registered", {"account": account})


class AlreadyRegistered(GraphError):
    def __init__(self, account: str, index: int) -> None:
        super().__init__("already_registered", "account_already_registered", {"account": account, "index": index})


class MissingFollowerList(GraphError):
    """The followed account has no follower list (it never registered)."""

    def __init__(self, account: str) -> None:
        super().__init__("missing_follower_list", "follower_list_not_initialized", {"account": account})


class MissingCount(GraphError):
    """The followed account has no follower count (it never registered)."""

    def __init__(self, account: str) -> None:
        super().__init__("missing_count", "follower_count_not_initialized", {"account": account})


class Underflow(GraphError):
    def __init__(self, account: str, count: int) -> None:
        super().__init__("underflow", "follower_count_would_underflow", {"account": account, "count": count})


class SelfFollow(GraphError):
    def __init__(self, account: str) -> None:
        super().__init__("self_follow", "cannot_follow_self", {"account": account})


class AlreadyFollowing(GraphError):
    def __init__(self, follower: str, followed: str) -> None:
        super().__init__("already_following", "edge_exists", {"follower": follower, "followed": followed})


class NotFollowing(GraphError):
    def __init__(self, follower: str, followed: str) -> None:
        super().__init__("not_following", "edge_missing", {"follower": follower, "followed": followed})


class InvariantViolation(GraphError):
    def __init__(self, reason: str, details: Any | None = None) -> None:
        super().__init__("invariant_violation", reason, details)


class StaleNonce(GraphError):
    def __init__(self, account: str, nonce: int, last: int) -> None:
        super().__init__("stale_nonce", "nonce_not_increasing", {"account": account, "nonce": nonce, "last": last})
