"""CSRF token issuance."""

from fastapi import APIRouter

from crmshield.api.dependencies import AppSettings, Codec, RequestCtx
from crmshield.api.schemas.csrf import CsrfTokenResponse

router = APIRouter(prefix="/api", tags=["csrf"])


@router.get(
    "/csrf-token",
    response_model=CsrfTokenResponse,
    summary="Issue a CSRF token",
    description=(
        "Returns a fresh token bound to the session cookie, or to the anonymous "
        "session when there is none. Send it back in x-csrf-token."
    ),
)
async def issue_csrf_token(
    ctx: RequestCtx,
    codec: Codec,
    settings: AppSettings,
) -> CsrfTokenResponse:
    session_id = ctx.cookies.get(settings.SESSION_COOKIE_NAME)
    return CsrfTokenResponse(token=codec.issue(session_id))
