# src/followgraph/config.py
from __future__ import annotations

import os
from dataclasses import dataclass

VALID_MODES = {"prod", "dev", "testnet"}
VALID_STORES = {"memory", "sqlite"}


def _is_truthy(v: str | None) -> bool:
    if v is None:
        return False
    return v.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return int(default)
    try:
        return int(raw.strip())
    except ValueError:
        return int(default)


@dataclass(frozen=True)
class GraphConfig:
    mode: str  # "prod" | "dev" | "testnet"
    store: str  # "memory" | "sqlite"
    db_path: str
    lock_path: str | None
    log_level: str
    event_log_max: int
    metrics_enabled: bool
    api_host: str
    api_port: int
    max_request_bytes: int
    log_requests: bool

    @property
    def is_prod(self) -> bool:
        return self.mode == "prod"


def load_config() -> GraphConfig:
    """Read FOLLOWGRAPH_* environment variables.

    Unknown modes/stores are rejected rather than defaulted, so a typo never
    silently runs an in-memory store in production.
    """
    mode = (os.getenv("FOLLOWGRAPH_MODE") or "prod").strip().lower()
    if mode not in VALID_MODES:
        raise ValueError(f"FOLLOWGRAPH_MODE must be one of {sorted(VALID_MODES)}, got {mode!r}")

    store = (os.getenv("FOLLOWGRAPH_STORE") or "sqlite").strip().lower()
    if store not in VALID_STORES:
        raise ValueError(f"FOLLOWGRAPH_STORE must be one of {sorted(VALID_STORES)}, got {store!r}")

    lock_path = (os.getenv("FOLLOWGRAPH_LOCK_PATH") or "").strip() or None

    return GraphConfig(
        mode=mode,
        store=store,
        db_path=os.getenv("FOLLOWGRAPH_DB_PATH", "./data/followgraph.db"),
        lock_path=lock_path,
        log_level=(os.getenv("FOLLOWGRAPH_LOG_LEVEL") or "INFO").strip().upper(),
        event_log_max=max(1, _env_int("FOLLOWGRAPH_EVENT_LOG_MAX", 10_000)),
        metrics_enabled=_is_truthy(os.getenv("FOLLOWGRAPH_METRICS_ENABLED")),
        api_host=os.getenv("FOLLOWGRAPH_API_HOST", "127.0.0.1"),
        api_port=_env_int("FOLLOWGRAPH_API_PORT", 8080),
        max_request_bytes=max(1, _env_int("FOLLOWGRAPH_MAX_REQUEST_BYTES", 64 * 1024)),
        log_requests=(os.getenv("FOLLOWGRAPH_LOG_REQUESTS") or "1").strip().lower() not in {"0", "false", "no", "n", "off"},
    )
