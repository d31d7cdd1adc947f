from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from followgraph.graph.errors import GraphError


@dataclass
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    details: Dict[str, Any]

    def to_json(self) -> Dict[str, Any]:
        return {"ok": False, "error": {"code": self.code, "message": self.message, "details": self.details}}

    @staticmethod
    def bad_request(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(400, code, message, details or {})

    @staticmethod
    def unauthorized(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(401, code, message, details or {})

    @staticmethod
    def not_found(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(404, code, message, details or {})

    @staticmethod
    def conflict(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(409, code, message, details or {})

    @staticmethod
    def internal(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(500, code, message, details or {})


_BAD_REQUEST = {"invalid_args", "unknown_call"}


def api_error_from_graph(e: GraphError) -> ApiError:
    """Map a graph/executor failure onto an HTTP status.

    not_registered -> 404, unauthenticated -> 401, malformed call -> 400,
    invariant breakage -> 500, every other precondition failure -> 409.
    """
    details = e.details if isinstance(e.details, dict) else {}
    if e.code == "not_registered":
        return ApiError.not_found(e.code, e.reason, details)
    if e.code == "unauthenticated":
        return ApiError.unauthorized(e.code, e.reason, details)
    if e.code in _BAD_REQUEST:
        return ApiError.bad_request(e.code, e.reason, details)
    if e.code == "invariant_violation":
        return ApiError.internal(e.code, e.reason, details)
    return ApiError.conflict(e.code, e.reason, details)
