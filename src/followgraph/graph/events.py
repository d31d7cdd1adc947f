# src/followgraph/graph/events.py
from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional, Tuple

from followgraph.graph.types import GraphEvent
from followgraph.metrics import inc_counter
from followgraph.structured_logging import log_event

Json = Dict[str, Any]

EventSink = Callable[[GraphEvent], None]


class EventLog:
    """Bounded in-memory event log.

    Each event gets a monotonically increasing sequence number starting at 1,
    so readers can poll with `since(after=<last seen seq>)`.
    """

    def __init__(self, *, max_events: int = 10_000) -> None:
        self._max = max(1, int(max_events))
        self._lock = threading.Lock()
        self._seq = 0
        self._events: Deque[Tuple[int, GraphEvent]] = deque(maxlen=self._max)

    def __call__(self, event: GraphEvent) -> None:
        with self._lock:
            self._seq += 1
            self._events.append((self._seq, event))

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    @property
    def last_seq(self) -> int:
        with self._lock:
            return self._seq

    def events(self) -> List[GraphEvent]:
        with self._lock:
            return [ev for _, ev in self._events]

    def since(self, after: int = 0, limit: Optional[int] = None) -> List[Json]:
        with self._lock:
            out = [{"seq": seq, **ev.to_json()} for seq, ev in self._events if seq > int(after)]
        if limit is not None:
            out = out[: max(0, int(limit))]
        return out


class LoggingEventSink:
    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger("followgraph.events")

    def __call__(self, event: GraphEvent) -> None:
        log_event(self._logger, "graph_event", **event.to_json())
        inc_counter("events_emitted")


class FanoutSink:
    """Deliver each event to every sink, in order."""

    def __init__(self, sinks: Iterable[EventSink]) -> None:
        self._sinks = list(sinks)

    def __call__(self, event: GraphEvent) -> None:
        for sink in self._sinks:
            sink(event)
