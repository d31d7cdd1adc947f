from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure local "src/" takes precedence over any globally-installed "followgraph" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host FOLLOWGRAPH_* settings out of tests and reset process metrics."""
    import os

    for k in list(os.environ):
        if k.startswith("FOLLOWGRAPH_"):
            monkeypatch.delenv(k, raising=False)

    from followgraph import metrics

    metrics.reset()
