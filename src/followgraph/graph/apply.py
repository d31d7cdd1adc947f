# src/followgraph/graph/apply.py
from __future__ import annotations

"""
Graph transition semantics.

Pure functions over a JSON-compatible state dict:

  state["registry"]        account -> registration index
  state["follower_list"]   followed -> [follower, ...]   (insertion order)
  state["follower_count"]  followed -> int               (mirrors list length)
  state["user_count"]      next registration index
  state["nonces"]          signer -> last accepted call nonce

Each apply_* function either raises a GraphError before touching state, or
performs all of its mutations and returns (result, event). Callers that need
all-or-nothing visibility (GraphStore) run these against a staged copy.
"""

from typing import Any, Dict, List, Optional, Tuple

from followgraph.graph.errors import (
    AlreadyFollowing,
    AlreadyRegistered,
    InvariantViolation,
    MissingCount,
    MissingFollowerList,
    NotFollowing,
    NotRegistered,
    SelfFollow,
    StaleNonce,
    Underflow,
)
from followgraph.graph.types import Account, CreateUser, FollowUser, Registration, UnFollowUser

Json = Dict[str, Any]

REGISTRY = "registry"
FOLLOWER_LIST = "follower_list"
FOLLOWER_COUNT = "follower_count"
USER_COUNT = "user_count"
NONCES = "nonces"


def initial_state() -> Json:
    return {REGISTRY: {}, FOLLOWER_LIST: {}, FOLLOWER_COUNT: {}, USER_COUNT: 0, NONCES: {}}


def _ensure_table(state: Json, key: str) -> Json:
    cur = state.get(key)
    if not isinstance(cur, dict):
        cur = {}
        state[key] = cur
    return cur


def _lookup_index(state: Json, account: Account) -> Optional[int]:
    registry = state.get(REGISTRY)
    if not isinstance(registry, dict):
        return None
    idx = registry.get(account)
    if idx is None:
        return None
    return int(idx)


def _lookup_list(state: Json, account: Account) -> Optional[List[Account]]:
    lists = state.get(FOLLOWER_LIST)
    if not isinstance(lists, dict):
        return None
    cur = lists.get(account)
    return cur if isinstance(cur, list) else None


def _lookup_count(state: Json, account: Account) -> Optional[int]:
    counts = state.get(FOLLOWER_COUNT)
    if not isinstance(counts, dict):
        return None
    cur = counts.get(account)
    if cur is None:
        return None
    return int(cur)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def verify(state: Json, account: Account) -> None:
    """Raise NotRegistered unless `account` has a registry entry. Never mutates."""
    if _lookup_index(state, account) is None:
        raise NotRegistered(account)


def registration(state: Json, account: Account) -> Registration:
    idx = _lookup_index(state, account)
    if idx is None:
        raise NotRegistered(account)
    return Registration(account=account, index=idx)


def follower_count(state: Json, account: Account) -> int:
    count = _lookup_count(state, account)
    if count is None:
        raise NotRegistered(account)
    return count


def followers(state: Json, account: Account) -> List[Account]:
    cur = _lookup_list(state, account)
    if cur is None:
        raise NotRegistered(account)
    return list(cur)


def registered_count(state: Json) -> int:
    return int(state.get(USER_COUNT, 0) or 0)


def last_nonce(state: Json, account: Account) -> int:
    nonces = state.get(NONCES)
    if not isinstance(nonces, dict):
        return 0
    return int(nonces.get(account, 0) or 0)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def apply_nonce(state: Json, signer: Account, nonce: int) -> None:
    """Accept `nonce` only if it is strictly greater than the signer's last one."""
    last = last_nonce(state, signer)
    if int(nonce) <= last:
        raise StaleNonce(signer, int(nonce), last)
    _ensure_table(state, NONCES)[signer] = int(nonce)


def apply_register(state: Json, caller: Account) -> Tuple[Registration, CreateUser]:
    existing = _lookup_index(state, caller)
    if existing is not None:
        raise AlreadyRegistered(caller, existing)

    index = registered_count(state)
    _ensure_table(state, REGISTRY)[caller] = index
    _ensure_table(state, FOLLOWER_COUNT)[caller] = 0
    _ensure_table(state, FOLLOWER_LIST)[caller] = []
    state[USER_COUNT] = index + 1

    return Registration(account=caller, index=index), CreateUser(account=caller, index=index)


def apply_follow(state: Json, caller: Account, followed: Account) -> Tuple[int, FollowUser]:
    verify(state, caller)

    current = _lookup_list(state, followed)
    if current is None:
        raise MissingFollowerList(followed)
    count = _lookup_count(state, followed)
    if count is None:
        raise MissingCount(followed)

    if caller == followed:
        raise SelfFollow(caller)
    if caller in current:
        raise AlreadyFollowing(caller, followed)

    new_count = count + 1
    _ensure_table(state, FOLLOWER_LIST)[followed] = current + [caller]
    _ensure_table(state, FOLLOWER_COUNT)[followed] = new_count

    return new_count, FollowUser(follower=caller, followed=followed, follower_count=new_count)


def apply_unfollow(state: Json, caller: Account, followed: Account) -> Tuple[int, UnFollowUser]:
    # No caller registration check: an unregistered caller is never in a list,
    # so it is rejected below as not following.
    current = _lookup_list(state, followed)
    if current is None:
        raise MissingFollowerList(followed)
    count = _lookup_count(state, followed)
    if count is None:
        raise MissingCount(followed)

    remaining = [x for x in current if x != caller]
    removed = len(current) - len(remaining)
    if removed == 0:
        if count == 0:
            raise Underflow(followed, count)
        raise NotFollowing(caller, followed)
    if count < removed:
        raise Underflow(followed, count)

    new_count = count - removed
    _ensure_table(state, FOLLOWER_LIST)[followed] = remaining
    _ensure_table(state, FOLLOWER_COUNT)[followed] = new_count

    return new_count, UnFollowUser(follower=caller, followed=followed, follower_count=new_count)


# ---------------------------------------------------------------------------
# Invariants
# ---------------------------------------------------------------------------

def check_invariants(state: Json) -> None:
    registry = state.get(REGISTRY) if isinstance(state.get(REGISTRY), dict) else {}
    lists = state.get(FOLLOWER_LIST) if isinstance(state.get(FOLLOWER_LIST), dict) else {}
    counts = state.get(FOLLOWER_COUNT) if isinstance(state.get(FOLLOWER_COUNT), dict) else {}

    indexes = sorted(int(v) for v in registry.values())
    if indexes != list(range(len(indexes))):
        raise InvariantViolation("registry_index_not_dense", {"indexes": indexes})
    if registered_count(state) != len(indexes):
        raise InvariantViolation(
            "user_count_mismatch", {"user_count": registered_count(state), "registered": len(indexes)}
        )

    for account in registry:
        if account not in lists or account not in counts:
            raise InvariantViolation("derived_tables_missing", {"account": account})

    for account, lst in lists.items():
        if account not in registry:
            raise InvariantViolation("unregistered_follower_list", {"account": account})
        if len(set(lst)) != len(lst):
            raise InvariantViolation("duplicate_edge", {"account": account})
        if int(counts.get(account, -1)) != len(lst):
            raise InvariantViolation(
                "count_list_desync", {"account": account, "count": counts.get(account), "list_len": len(lst)}
            )
