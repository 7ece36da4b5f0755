"""FastAPI dependencies for API endpoints.

Services live on ``app.state`` and are created once by ``create_app``.
"""

from typing import Annotated

from fastapi import Depends, Request

from crmshield.auth.service import AuthService
from crmshield.config.settings import Settings
from crmshield.core.context import RequestContext
from crmshield.security.audit import InMemoryAuditStore
from crmshield.security.csrf import TokenCodec


def get_settings_from_app(request: Request) -> Settings:
    return request.app.state.settings


def get_request_context(request: Request) -> RequestContext:
    """Get the request context built by the security gate.

    Falls back to building one for routes outside the gate.
    """
    ctx = getattr(request.state, "request_context", None)
    if ctx is None:
        ctx = RequestContext.from_request(request)
        request.state.request_context = ctx
    return ctx


def get_token_codec(request: Request) -> TokenCodec:
    return request.app.state.token_codec


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_audit_store(request: Request) -> InMemoryAuditStore:
    return request.app.state.audit_store


AppSettings = Annotated[Settings, Depends(get_settings_from_app)]
RequestCtx = Annotated[RequestContext, Depends(get_request_context)]
Codec = Annotated[TokenCodec, Depends(get_token_codec)]
Auth = Annotated[AuthService, Depends(get_auth_service)]
AuditStoreDep = Annotated[InMemoryAuditStore, Depends(get_audit_store)]
