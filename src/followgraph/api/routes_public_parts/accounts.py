from __future__ import annotations

from fastapi import APIRouter, Request

from followgraph.api.routes_public_parts.common import _executor

router = APIRouter()


@router.get("/accounts/{account}")
def account_get(account: str, request: Request):
    reg = _executor(request).registration(account)
    return {"ok": True, **reg}


@router.get("/accounts/{account}/verify")
def account_verify(account: str, request: Request):
    _executor(request).verify(account)
    return {"ok": True, "account": account, "registered": True}


@router.get("/accounts/{account}/followers/count")
def follower_count(account: str, request: Request):
    count = _executor(request).follower_count(account)
    return {"ok": True, "account": account, "follower_count": count}


@router.get("/accounts/{account}/followers")
def followers(account: str, request: Request):
    out = _executor(request).followers(account)
    return {"ok": True, "account": account, "followers": out, "follower_count": len(out)}
