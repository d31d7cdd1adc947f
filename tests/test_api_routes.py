# tests/test_api_routes.py
from __future__ import annotations

import dataclasses

import pytest
from fastapi.testclient import TestClient

from followgraph.config import load_config
from followgraph.testing.sigtools import account_for, signed_call


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch) -> TestClient:
    from followgraph.api.app import create_app

    monkeypatch.setenv("FOLLOWGRAPH_MODE", "dev")
    monkeypatch.setenv("FOLLOWGRAPH_STORE", "memory")
    return TestClient(create_app(cfg=load_config()))


def test_follow_flow_over_http(client: TestClient) -> None:
    alice, bob = account_for("alice"), account_for("bob")

    assert client.post("/v1/calls/submit", json=signed_call("register", label="alice", nonce=1)).status_code == 200
    assert client.post("/v1/calls/submit", json=signed_call("register", label="bob", nonce=1)).status_code == 200

    r = client.get(f"/v1/accounts/{bob}")
    assert r.json() == {"ok": True, "account": bob, "index": 1}

    r = client.post("/v1/calls/submit", json=signed_call("follow", label="alice", nonce=2, args={"target": bob}))
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["result"] == 1
    assert body["events"][0]["kind"] == "FollowUser"

    r = client.get(f"/v1/accounts/{bob}/followers/count")
    assert r.json()["follower_count"] == 1
    r = client.get(f"/v1/accounts/{bob}/followers")
    assert r.json()["followers"] == [alice]

    r = client.get("/v1/events", params={"after": 2})
    kinds = [ev["kind"] for ev in r.json()["events"]]
    assert kinds == ["FollowUser"]
    assert r.json()["last_seq"] == 3


def test_verify_route(client: TestClient) -> None:
    alice = account_for("alice")

    r = client.get(f"/v1/accounts/{alice}/verify")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "not_registered"

    client.post("/v1/calls/submit", json=signed_call("register", label="alice", nonce=1))
    r = client.get(f"/v1/accounts/{alice}/verify")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "account": alice, "registered": True}


def test_error_mapping(client: TestClient) -> None:
    bob = account_for("bob")
    client.post("/v1/calls/submit", json=signed_call("register", label="alice", nonce=1))

    r = client.post("/v1/calls/submit", json=signed_call("register", label="alice", nonce=2))
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "already_registered"

    r = client.post("/v1/calls/submit", json=signed_call("follow", label="alice", nonce=3, args={"target": bob}))
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "missing_follower_list"

    tampered = signed_call("register", label="bob", nonce=1)
    tampered["nonce"] = 2
    r = client.post("/v1/calls/submit", json=tampered)
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "unauthenticated"

    r = client.post("/v1/calls/submit", json=signed_call("explode", label="alice", nonce=4))
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "unknown_call"

    r = client.get(f"/v1/accounts/{bob}/followers/count")
    assert r.status_code == 404


def test_schema_validation_is_bad_request(client: TestClient) -> None:
    call = signed_call("register", label="alice", nonce=1)
    call["nonce"] = 0
    r = client.post("/v1/calls/submit", json=call)
    assert r.status_code == 400
    assert r.json()["ok"] is False
    assert r.json()["error"]["code"] == "bad_request"


def test_request_size_limit_returns_413(monkeypatch: pytest.MonkeyPatch) -> None:
    from followgraph.api.app import create_app

    monkeypatch.setenv("FOLLOWGRAPH_STORE", "memory")
    monkeypatch.setenv("FOLLOWGRAPH_MAX_REQUEST_BYTES", "128")
    c = TestClient(create_app(cfg=load_config()))

    call = signed_call("register", label="alice", nonce=1, args={"pad": "x" * 500})
    r = c.post("/v1/calls/submit", json=call)
    assert r.status_code == 413
    assert r.json()["error"]["code"] == "request_too_large"


def test_boot_runtime_false_reports_not_ready(monkeypatch: pytest.MonkeyPatch) -> None:
    from followgraph.api.app import create_app

    app = create_app(boot_runtime=False, cfg=load_config())
    assert app.state.executor is None

    with TestClient(app) as c:
        r = c.get(f"/v1/accounts/{account_for('alice')}/verify")
        assert r.status_code == 500
        assert r.json()["error"]["code"] == "not_ready"
        assert c.get("/v1/health").json()["executor"] is False


def test_metrics_disabled_by_default_and_enabled_by_config(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    from followgraph.api.app import create_app

    assert client.get("/v1/metrics").status_code == 404

    cfg = dataclasses.replace(load_config(), metrics_enabled=True)
    c = TestClient(create_app(cfg=cfg))
    c.post("/v1/calls/submit", json=signed_call("register", label="alice", nonce=1))

    r = c.get("/v1/metrics")
    assert r.status_code == 200
    assert "followgraph_calls_ok 1" in r.text
    assert "followgraph_registered_accounts 1" in r.text


def test_build_executor_is_monkeypatchable(monkeypatch: pytest.MonkeyPatch) -> None:
    from followgraph.api import app as api_app

    sentinel = object()
    monkeypatch.setattr(api_app, "build_executor", lambda cfg: sentinel)

    app = api_app.create_app(cfg=load_config())
    assert app.state.executor is sentinel
