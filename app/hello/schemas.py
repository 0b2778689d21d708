"""
Pydantic schemas for the hello endpoints.
"""
from typing import Any, Dict, Literal

from pydantic import BaseModel, Field


class HelloResponse(BaseModel):
    """Greeting with runtime environment details."""
    message: str = Field(..., description="Greeting")
    env: str = Field(..., description="Deployment environment (NODE_ENV)")
    app: str = Field(..., description="Application name")
    db: Literal["connected", "error", "not configured"] = Field(..., description="Database connectivity")
    timestamp: str = Field(..., description="Server time, ISO-8601 UTC")


class IdentityResponse(BaseModel):
    """Claims carried by the caller's bearer token."""
    user: Dict[str, Any]
