"""CSRF token schemas."""

from pydantic import BaseModel, Field


class CsrfTokenResponse(BaseModel):
    """A freshly issued CSRF token."""

    token: str = Field(..., description="Send back in the x-csrf-token header")
