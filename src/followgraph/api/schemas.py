from __future__ import annotations

"""Pydantic request schemas for the public API.

These exist only for HTTP input validation; the canonical call shape is
followgraph.graph.types.CallEnvelope.
"""

from typing import Any, Dict

from pydantic import BaseModel, Field


class CallSubmitRequest(BaseModel):
    call: str = Field(..., min_length=1, description="register | follow | unfollow")
    signer: str = Field(..., min_length=1, description="Caller account id (hex Ed25519 pubkey)")
    nonce: int = Field(..., ge=1, description="Strictly increasing per signer")
    args: Dict[str, Any] = Field(default_factory=dict, description='e.g. {"target": "<account>"}')
    sig: str = Field(..., min_length=1, description="Ed25519 signature (hex or base64) over the canonical call")

    model_config = {"extra": "forbid"}
