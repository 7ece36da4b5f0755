"""Administrative user endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from crmshield.api.dependencies import AuditStoreDep
from crmshield.api.schemas.security import AuditLogResponse
from crmshield.auth.dependencies import require_role
from crmshield.auth.users import Role

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get(
    "/audit-log",
    response_model=AuditLogResponse,
    dependencies=[Depends(require_role(Role.ADMIN))],
    summary="Recent audit entries",
)
async def audit_log(
    store: AuditStoreDep,
    limit: Annotated[int, Query(ge=1, le=1000)] = 100,
) -> AuditLogResponse:
    entries = store.recent(limit)
    return AuditLogResponse(entries=entries, count=len(entries))
