"""
BaseSites Backend: Shared Response Envelopes
============================================

What:  The success envelope wrapping every payload, the error envelope
       produced by the global exception handlers, and the health payload.

Success:
    {"success": true, "message": "Location created successfully", "data": {...}}

Error:
    {
        "success": false,
        "error": "conflict",
        "message": "Submission already approved",
        "details": {"submission_id": "..."},
        "request_id": "a1b2c3d4"
    }
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    success: bool = Field(default=True)
    message: Optional[str] = Field(default=None, description="Human-readable outcome")
    data: Optional[T] = Field(default=None)


class ErrorResponse(BaseModel):
    success: bool = Field(default=False)
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Structured error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    identity: str = Field(description="Identity provider circuit: available, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
