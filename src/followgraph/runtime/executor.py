# src/followgraph/runtime/executor.py
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from followgraph.crypto.sig import canonical_call_message, is_account_id, verify_ed25519_signature
from followgraph.graph.errors import GraphError
from followgraph.graph.events import EventLog
from followgraph.graph.store import GraphStore
from followgraph.graph.types import CallEnvelope
from followgraph.metrics import inc_counter
from followgraph.runtime.single_writer import SingleWriterLock
from followgraph.structured_logging import log_event

Json = Dict[str, Any]

log = logging.getLogger("followgraph.executor")


class Unauthenticated(GraphError):
    def __init__(self, reason: str, details: Any | None = None) -> None:
        super().__init__("unauthenticated", reason, details)


class UnknownCall(GraphError):
    def __init__(self, call: str) -> None:
        super().__init__("unknown_call", "call_not_supported", {"call": call, "supported": sorted(SUPPORTED_CALLS)})


class InvalidArgs(GraphError):
    def __init__(self, call: str, reason: str) -> None:
        super().__init__("invalid_args", reason, {"call": call})


SUPPORTED_CALLS = {"register", "follow", "unfollow"}


def authenticate(env: CallEnvelope) -> str:
    """Return the caller identity proven by `env`.

    The signer id is the Ed25519 public key, so the signature is checked
    against the signer itself; no key registry is consulted.
    """
    if not is_account_id(env.signer):
        raise Unauthenticated("malformed_signer", {"signer": env.signer})
    if not env.sig.strip():
        raise Unauthenticated("missing_signature", {"signer": env.signer})
    if env.nonce <= 0:
        raise Unauthenticated("nonce_must_be_positive", {"signer": env.signer, "nonce": env.nonce})

    msg = canonical_call_message(call=env.call, signer=env.signer, nonce=env.nonce, args=env.args)
    if not verify_ed25519_signature(message=msg, sig=env.sig, pubkey=env.signer):
        raise Unauthenticated("bad_signature", {"signer": env.signer})
    return env.signer


def _decode(call: Any) -> CallEnvelope:
    try:
        return CallEnvelope.from_json(call)
    except (TypeError, ValueError) as e:
        name = call.get("call") if isinstance(call, dict) else None
        raise InvalidArgs(str(name or ""), "malformed_envelope") from e


def _target(env: CallEnvelope) -> str:
    target = env.args.get("target")
    if not isinstance(target, str) or not target.strip():
        raise InvalidArgs(env.call, "missing_target")
    return target.strip()


class GraphExecutor:
    """Authenticates signed calls and applies them to the graph store.

    The executor is the boundary between the outside world and the store:
    the caller identity passed to every store operation comes from
    authenticate(), never from the request body alone.
    """

    def __init__(
        self,
        *,
        store: GraphStore,
        event_log: EventLog,
        writer_lock: Optional[SingleWriterLock] = None,
    ) -> None:
        self.store = store
        self.event_log = event_log
        self._writer_lock = writer_lock
        self._lock = threading.Lock()

        self._dispatch: Dict[str, Callable[[str, CallEnvelope], Any]] = {
            "register": lambda caller, env: self.store.register(caller, nonce=env.nonce).to_json(),
            "follow": lambda caller, env: self.store.follow(caller, _target(env), nonce=env.nonce),
            "unfollow": lambda caller, env: self.store.unfollow(caller, _target(env), nonce=env.nonce),
        }

    def submit(self, call: Any) -> Json:
        env: Optional[CallEnvelope] = None
        with self._lock:
            try:
                env = _decode(call)
                name = env.call.strip().lower()
                handler = self._dispatch.get(name)
                if handler is None:
                    raise UnknownCall(env.call)
                caller = authenticate(env)
                if name != "register":
                    _target(env)
            except GraphError as e:
                inc_counter("calls_failed")
                inc_counter(f"error_{e.code}")
                log_event(
                    log,
                    "call_rejected",
                    level=logging.WARNING,
                    call=env.call if env is not None else None,
                    signer=env.signer if env is not None else None,
                    code=e.code,
                    reason=e.reason,
                )
                raise

            # Store failures are counted and logged by the store itself.
            before = self.event_log.last_seq
            result = handler(caller, env)
            events = self.event_log.since(before)

        log_event(log, "call_applied", call=name, signer=caller, nonce=env.nonce)
        return {"ok": True, "call": name, "result": result, "events": events}

    # Read-only surface, delegated.

    def verify(self, account: str) -> None:
        self.store.verify(account)

    def registration(self, account: str) -> Json:
        return self.store.get_registration(account).to_json()

    def follower_count(self, account: str) -> int:
        return self.store.get_follower_count(account)

    def followers(self, account: str) -> List[str]:
        return self.store.get_followers(account)

    def events_since(self, after: int = 0, limit: Optional[int] = None) -> List[Json]:
        return self.event_log.since(after, limit)

    def read_state(self) -> Json:
        return self.store.snapshot()

    def close(self) -> None:
        if self._writer_lock is not None:
            self._writer_lock.release()
