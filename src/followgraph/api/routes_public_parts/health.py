from __future__ import annotations

from fastapi import APIRouter, Request

from followgraph import __version__

router = APIRouter()


@router.get("/health")
def health(request: Request):
    ex = getattr(request.app.state, "executor", None)
    return {
        "ok": True,
        "version": __version__,
        "executor": ex is not None,
        "accounts": ex.store.user_count() if ex is not None else 0,
    }
