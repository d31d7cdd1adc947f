from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from followgraph.api.routes_public_parts.common import _executor
from followgraph.api.schemas import CallSubmitRequest

router = APIRouter()

Json = Dict[str, Any]


@router.post("/calls/submit")
def calls_submit(body: CallSubmitRequest, request: Request) -> Json:
    """Apply a signed register/follow/unfollow call.

    Returns:
      { ok, call, result, events }
    """
    ex = _executor(request)
    return ex.submit(body.model_dump())
