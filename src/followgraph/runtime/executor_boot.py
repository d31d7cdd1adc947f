# src/followgraph/runtime/executor_boot.py
from __future__ import annotations

from typing import Optional

from followgraph.config import GraphConfig, load_config
from followgraph.graph.events import EventLog, FanoutSink, LoggingEventSink
from followgraph.graph.store import GraphStore, MemoryStateBackend, SqliteStateBackend, StateBackend
from followgraph.runtime.executor import GraphExecutor
from followgraph.runtime.single_writer import SingleWriterLock


def build_backend(cfg: GraphConfig) -> StateBackend:
    if cfg.store == "memory":
        return MemoryStateBackend()
    return SqliteStateBackend(path=cfg.db_path, mode=cfg.mode)


def build_executor(cfg: Optional[GraphConfig] = None, *, backend: Optional[StateBackend] = None) -> GraphExecutor:
    """
    Build a GraphExecutor from an explicit config or, if omitted, from
    environment variables.

    When cfg.lock_path is set the single-writer lock is taken before the
    store is opened, so a second writer process fails at boot.
    """
    c = cfg or load_config()

    writer_lock: Optional[SingleWriterLock] = None
    if c.lock_path:
        writer_lock = SingleWriterLock(c.lock_path)
        writer_lock.acquire()

    try:
        state_backend = backend if backend is not None else build_backend(c)
    except Exception:
        if writer_lock is not None:
            writer_lock.release()
        raise

    event_log = EventLog(max_events=c.event_log_max)
    store = GraphStore(state_backend, sink=FanoutSink([event_log, LoggingEventSink()]))
    return GraphExecutor(store=store, event_log=event_log, writer_lock=writer_lock)
