"""
TrialDoc Backend - Shared Response Schemas
============================================

Error envelope, liveness/health payloads and the simple message body used by
several routers.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for API models: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorResponse(BaseModel):
    """
    Standardized error response for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "Username already exists",
            "details": {"field": "username"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class StatusResponse(BaseModel):
    status: str = Field(description="Liveness message")


class MessageResponse(BaseModel):
    message: str


class HealthResponse(CamelModel):
    """
    Readiness report for monitoring and load balancer probes.

    status is "healthy" when the database answers and the completion-service
    credential is configured, "degraded" when only the credential is missing,
    and "unhealthy" when the database is unreachable.
    """
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    environment: str = Field(description="Deployment mode")
    database: str = Field(description="Database connectivity: connected, disconnected")
    llm: str = Field(description="Completion service: configured, not_configured")
    uptime_seconds: float = Field(description="Seconds since service started")
