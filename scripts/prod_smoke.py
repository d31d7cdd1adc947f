#!/usr/bin/env python3

"""Production-ish smoke test for followgraph.

It verifies:
  - the executor boots on a fresh SQLite db
  - the FastAPI app serves /v1/health
  - register -> follow -> unfollow round trip over HTTP with signed calls

Usage:
  python3 scripts/prod_smoke.py
"""

from __future__ import annotations

import os
import sys
import tempfile

from fastapi.testclient import TestClient

from followgraph.api.app import create_app
from followgraph.config import load_config
from followgraph.testing.sigtools import account_for, signed_call


def main() -> int:
    with tempfile.TemporaryDirectory(prefix="followgraph-smoke-") as td:
        os.environ["FOLLOWGRAPH_DB_PATH"] = os.path.join(td, "followgraph.db")
        os.environ["FOLLOWGRAPH_LOCK_PATH"] = os.path.join(td, "writer.lock")
        os.environ.setdefault("FOLLOWGRAPH_MODE", "dev")
        os.environ["FOLLOWGRAPH_STORE"] = "sqlite"

        app = create_app(cfg=load_config())
        with TestClient(app) as c:
            r = c.get("/v1/health")
            if r.status_code != 200:
                print(f"[smoke] health failed: {r.status_code} {r.text}", file=sys.stderr)
                return 1

            steps = [
                signed_call("register", label="alice", nonce=1),
                signed_call("register", label="bob", nonce=1),
                signed_call("follow", label="alice", nonce=2, args={"target": account_for("bob")}),
                signed_call("unfollow", label="alice", nonce=3, args={"target": account_for("bob")}),
            ]
            for call in steps:
                r = c.post("/v1/calls/submit", json=call)
                if r.status_code != 200:
                    print(f"[smoke] {call['call']} failed: {r.status_code} {r.text}", file=sys.stderr)
                    return 1

            r = c.get(f"/v1/accounts/{account_for('bob')}/followers/count")
            if r.json().get("follower_count") != 0:
                print(f"[smoke] unexpected follower count: {r.text}", file=sys.stderr)
                return 1

    print("[smoke] ok")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
