"""Error response schema for the API."""

from pydantic import BaseModel, Field


class SecurityErrorBody(BaseModel):
    """Body of every security rejection.

    Messages are generic; internal detail is only ever logged.
    """

    error: str = Field(..., description="Human-readable error message")

    model_config = {"json_schema_extra": {"example": {"error": "Invalid CSRF token"}}}
