"""Schemas for the security self-test and audit log routes."""

from typing import Any

from pydantic import BaseModel, Field

from crmshield.security.audit import AuditEntry


class SecurityTestRequest(BaseModel):
    """Arbitrary payload echoed back by the self-test route."""

    message: str | None = Field(default=None, max_length=1000)
    data: dict[str, Any] | None = None


class SecurityTestResponse(BaseModel):
    message: str
    timestamp: int
    user_id: str | None = None
    received: str | None = None


class AuditLogResponse(BaseModel):
    """Most recent audit entries, newest first."""

    entries: list[AuditEntry]
    count: int
