"""
Postboard Backend - Shared Response Schemas
===========================================

What:  Envelope and error shapes shared by every router.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Plain acknowledgement, e.g. after logout or delete."""
    message: str = Field(description="Human-readable result message")


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Fields:
        error: Machine-readable error code (e.g. "validation_error", "not_found")
        message: Human-readable description for display to users
        errors: Field-level messages (422 responses only)
        request_id: Correlation ID for tracing this error in server logs
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    errors: Optional[Dict[str, List[str]]] = Field(
        default=None, description="Field-level validation messages"
    )
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Returned by GET /health for container and load balancer probes."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    storage: str = Field(description="Image storage: writable, unavailable")
    uptime_seconds: float = Field(description="Seconds since service started")
