from __future__ import annotations

from typing import Any

from fastapi import Request

from followgraph.api.errors import ApiError
from followgraph.runtime.executor import GraphExecutor


def _executor(request: Request) -> GraphExecutor:
    ex = getattr(request.app.state, "executor", None)
    if ex is None:
        raise ApiError.internal("not_ready", "executor not attached to app.state", {})
    return ex


def _int_param(v: Any, default: int) -> int:
    """Parse an int-ish query param safely."""
    if v is None:
        return int(default)
    try:
        return int(str(v).strip())
    except ValueError:
        raise ApiError.bad_request("bad_request", "query parameter must be an integer", {"value": str(v)})
