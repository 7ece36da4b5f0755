"""Framework-agnostic view of an inbound HTTP request.

The security gate, the suspicious-activity detector and the audit recorder
all read requests through ``RequestContext`` so that client IP and user-agent
extraction happens in exactly one place.

Usage:
    from crmshield.core.context import RequestContext

    ctx = RequestContext.build(
        method="POST",
        url="http://localhost:3000/api/contacts",
        headers={"x-forwarded-for": "203.0.113.7, 10.0.0.1"},
    )
    ctx.client_ip  # "203.0.113.7"
"""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Self
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from starlette.requests import Request

DEFAULT_CLIENT_IP = "127.0.0.1"


def get_client_ip(headers: Mapping[str, str]) -> str:
    """Resolve the client IP from proxy headers.

    Takes the first segment of X-Forwarded-For, then X-Real-IP, and falls
    back to the loopback address.

    Args:
        headers: Request headers with lowercase names

    Returns:
        Client IP address string
    """
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        # First IP in the chain is the original client
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return DEFAULT_CLIENT_IP


class RequestContext(BaseModel):
    """Immutable snapshot of the request attributes the security layer reads.

    Attributes:
        method: Upper-case HTTP method
        path: URL path without query string
        url: Full request URL (used for pattern detection)
        headers: Header mapping with lowercase names
        cookies: Cookie mapping
        client_ip: Resolved client IP address
    """

    model_config = ConfigDict(frozen=True)

    method: str
    path: str
    url: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    cookies: dict[str, str] = Field(default_factory=dict)
    client_ip: str = DEFAULT_CLIENT_IP

    @classmethod
    def build(
        cls,
        method: str,
        url: str,
        headers: Mapping[str, str] | None = None,
        cookies: Mapping[str, str] | None = None,
    ) -> Self:
        """Build a context from raw request parts.

        Header names are normalised to lowercase and the client IP is derived
        from the proxy headers.
        """
        normalized = {name.lower(): value for name, value in (headers or {}).items()}
        path = urlsplit(url).path or "/"
        return cls(
            method=method.upper(),
            path=path,
            url=url,
            headers=normalized,
            cookies=dict(cookies or {}),
            client_ip=get_client_ip(normalized),
        )

    @classmethod
    def from_request(cls, request: "Request") -> Self:
        """Build a context from a Starlette/FastAPI request."""
        return cls.build(
            method=request.method,
            url=str(request.url),
            headers=dict(request.headers.items()),
            cookies=dict(request.cookies),
        )

    def header(self, name: str) -> str | None:
        """Get a header value by case-insensitive name."""
        return self.headers.get(name.lower())

    @property
    def user_agent(self) -> str:
        """User-Agent header, or empty string when absent."""
        return self.headers.get("user-agent", "")

    @property
    def origin(self) -> str | None:
        """Origin header, if present."""
        return self.headers.get("origin")
