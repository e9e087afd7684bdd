"""
Blog API — Shared Response Schemas
====================================

What:  Models used by every router: the error envelope and small responses.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class FieldError(BaseModel):
    field: str = Field(description="Dotted path of the offending input field")
    message: str = Field(description="What is wrong with it")


class ErrorResponse(BaseModel):
    """
    What:  Uniform error envelope returned for every rejection.
    Why:   Clients branch on `error` and show `message`; `request_id`
           correlates a report with the server logs.

    Example:
        {
            "success": false,
            "error": "forbidden",
            "message": "Only the author can update this blog",
            "errors": null,
            "request_id": "3f2a9c1e"
        }
    """
    success: bool = Field(default=False)
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    errors: Optional[List[FieldError]] = Field(
        default=None, description="Per-field validation failures, if any"
    )
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class HealthResponse(BaseModel):
    """Returned by GET /health for probes and monitoring."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
