from __future__ import annotations

from fastapi import APIRouter, Request, Response

from followgraph.metrics import format_prometheus

router = APIRouter()


@router.get("/metrics")
def metrics(request: Request) -> Response:
    """Prometheus-style metrics.

    Disabled by default. Enable with:
      FOLLOWGRAPH_METRICS_ENABLED=1
    """
    cfg = getattr(request.app.state, "cfg", None)
    if cfg is None or not cfg.metrics_enabled:
        return Response(status_code=404, content="not_found\n", media_type="text/plain")
    return Response(content=format_prometheus(), media_type="text/plain")
