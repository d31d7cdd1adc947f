from __future__ import annotations

from fastapi import APIRouter, Request

from followgraph.api.routes_public_parts.common import _executor, _int_param

router = APIRouter()

_MAX_LIMIT = 1000


@router.get("/events")
def events(request: Request):
    """Events after sequence number `after` (default 0), oldest first."""
    after = max(0, _int_param(request.query_params.get("after"), 0))
    limit = min(_MAX_LIMIT, max(1, _int_param(request.query_params.get("limit"), 100)))
    ex = _executor(request)
    out = ex.events_since(after, limit)
    return {"ok": True, "events": out, "last_seq": ex.event_log.last_seq}
