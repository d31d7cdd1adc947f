# src/followgraph/graph/store.py
from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple, TypeVar

from followgraph.graph import apply as graph_apply
from followgraph.graph.errors import GraphError, NotRegistered
from followgraph.graph.events import EventSink
from followgraph.graph.types import Account, GraphEvent, Registration
from followgraph.metrics import inc_counter, set_gauge
from followgraph.runtime.sqlite_db import SqliteDB, SqliteStateStore
from followgraph.structured_logging import log_event

Json = Dict[str, Any]
T = TypeVar("T")

log = logging.getLogger("followgraph.store")


class StateBackend(Protocol):
    def read(self) -> Json: ...

    def update(self, mut: Callable[[Json], T]) -> T: ...


class MemoryStateBackend:
    """In-process state. Mutations run on a staged deep copy that replaces the
    live state only when the mutation returns normally."""

    def __init__(self, state: Optional[Json] = None) -> None:
        self._state: Json = copy.deepcopy(state) if state is not None else graph_apply.initial_state()

    def read(self) -> Json:
        return copy.deepcopy(self._state)

    def update(self, mut: Callable[[Json], T]) -> T:
        staged = copy.deepcopy(self._state)
        out = mut(staged)
        self._state = staged
        return out


class SqliteStateBackend:
    """State persisted as a canonical JSON snapshot in SQLite.

    Each update is a single BEGIN IMMEDIATE transaction; a raising mutation
    rolls back, so no partial table update is ever visible.
    """

    def __init__(self, *, path: str, mode: Optional[str] = None) -> None:
        self.path = str(path)
        self._store = SqliteStateStore(db=SqliteDB(path=self.path, mode=mode))
        self._store.init_if_missing(graph_apply.initial_state())

    @property
    def db(self) -> SqliteDB:
        return self._store.db

    def read(self) -> Json:
        return self._store.read()

    def update(self, mut: Callable[[Json], T]) -> T:
        return self._store.update(mut)


class GraphStore:
    """Owns the registry, follower-list and follower-count tables.

    Calls are serialized by a single-writer lock. Every mutation commits all of
    its table changes together or none of them, and the resulting event is
    delivered to the sink only after the commit. Sink errors are logged and
    counted, never raised to the caller.
    """

    def __init__(self, backend: Optional[StateBackend] = None, *, sink: Optional[EventSink] = None) -> None:
        self._backend: StateBackend = backend if backend is not None else MemoryStateBackend()
        self._sink = sink
        self._lock = threading.Lock()

    @property
    def backend(self) -> StateBackend:
        return self._backend

    def snapshot(self) -> Json:
        with self._lock:
            return self._backend.read()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _transact(
        self,
        op: str,
        caller: Account,
        fn: Callable[[Json], Tuple[T, GraphEvent]],
        *,
        nonce: Optional[int] = None,
    ) -> T:
        def _mut(st: Json) -> Tuple[T, GraphEvent, int]:
            if nonce is not None:
                graph_apply.apply_nonce(st, caller, nonce)
            result, event = fn(st)
            return result, event, graph_apply.registered_count(st)

        with self._lock:
            try:
                result, event, registered = self._backend.update(_mut)
            except GraphError as e:
                inc_counter("calls_failed")
                inc_counter(f"error_{e.code}")
                log_event(
                    log,
                    "graph_call_rejected",
                    level=logging.WARNING,
                    op=op,
                    caller=caller,
                    code=e.code,
                    reason=e.reason,
                )
                raise

            inc_counter("calls_ok")
            set_gauge("registered_accounts", registered)
            log_event(log, "graph_call_applied", op=op, caller=caller, payload=event.to_json())

            # The call is committed at this point; a failing sink cannot undo it.
            if self._sink is not None:
                try:
                    self._sink(event)
                except Exception as e:
                    inc_counter("sink_failed")
                    log_event(
                        log,
                        "graph_sink_failed",
                        level=logging.ERROR,
                        op=op,
                        caller=caller,
                        error=f"{type(e).__name__}: {e}",
                    )
        return result

    def register(self, caller: Account, *, nonce: Optional[int] = None) -> Registration:
        return self._transact("register", caller, lambda st: graph_apply.apply_register(st, caller), nonce=nonce)

    def follow(self, caller: Account, followed: Account, *, nonce: Optional[int] = None) -> int:
        return self._transact("follow", caller, lambda st: graph_apply.apply_follow(st, caller, followed), nonce=nonce)

    def unfollow(self, caller: Account, followed: Account, *, nonce: Optional[int] = None) -> int:
        return self._transact(
            "unfollow", caller, lambda st: graph_apply.apply_unfollow(st, caller, followed), nonce=nonce
        )

    # ------------------------------------------------------------------
    # Queries (read-only)
    # ------------------------------------------------------------------

    def verify(self, account: Account) -> None:
        graph_apply.verify(self.snapshot(), account)

    def is_registered(self, account: Account) -> bool:
        try:
            self.verify(account)
        except NotRegistered:
            return False
        return True

    def get_registration(self, account: Account) -> Registration:
        return graph_apply.registration(self.snapshot(), account)

    def get_follower_count(self, account: Account) -> int:
        return graph_apply.follower_count(self.snapshot(), account)

    def get_followers(self, account: Account) -> List[Account]:
        return graph_apply.followers(self.snapshot(), account)

    def last_nonce(self, account: Account) -> int:
        return graph_apply.last_nonce(self.snapshot(), account)

    def user_count(self) -> int:
        return graph_apply.registered_count(self.snapshot())

    def check_invariants(self) -> None:
        graph_apply.check_invariants(self.snapshot())
