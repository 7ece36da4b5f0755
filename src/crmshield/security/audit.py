"""Audit entries for security-relevant events.

``AuditRecorder.record`` only builds the entry; appending it to an
``AuditStore`` is a separate step so callers decide what gets persisted.
Client IP and user-agent come from ``RequestContext``, the same extraction
the security gate uses.
"""

import time
from collections import deque
from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict

from crmshield.core.context import DEFAULT_CLIENT_IP, RequestContext
from crmshield.core.logging import get_logger

logger = get_logger(__name__)


class AuditSeverity(str, Enum):
    """Severity levels for audit entries."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AuditCategory(str, Enum):
    """Broad grouping for audit entries."""

    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    DATA_ACCESS = "data_access"
    DATA_MODIFICATION = "data_modification"
    SECURITY = "security"
    SYSTEM = "system"
    GENERAL = "general"


class AuditAction(str, Enum):
    """Actions recorded by the auth and security layers."""

    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"
    USER_CREATED = "user_created"
    PASSWORD_CHANGED = "password_changed"
    PERMISSION_DENIED = "permission_denied"
    SECURITY_VIOLATION = "security_violation"


_CRITICAL_ACTIONS = frozenset({"delete", "bulk_delete", "user_deleted"})
_HIGH_ACTIONS = frozenset(
    {"restore", "permission_changed", "security_violation", "settings_changed"}
)
_MEDIUM_ACTIONS = frozenset(
    {
        "login_failed",
        "permission_denied",
        "created",
        "updated",
        "user_created",
        "user_updated",
        "password_changed",
        "data_export",
        "data_import",
    }
)

_CATEGORY_BY_ACTION: dict[str, AuditCategory] = {
    "login_success": AuditCategory.AUTHENTICATION,
    "login_failed": AuditCategory.AUTHENTICATION,
    "logout": AuditCategory.AUTHENTICATION,
    "password_changed": AuditCategory.AUTHENTICATION,
    "session_expired": AuditCategory.AUTHENTICATION,
    "user_created": AuditCategory.DATA_MODIFICATION,
    "user_updated": AuditCategory.DATA_MODIFICATION,
    "user_deleted": AuditCategory.DATA_MODIFICATION,
    "created": AuditCategory.DATA_MODIFICATION,
    "updated": AuditCategory.DATA_MODIFICATION,
    "delete": AuditCategory.DATA_MODIFICATION,
    "bulk_delete": AuditCategory.DATA_MODIFICATION,
    "data_import": AuditCategory.DATA_MODIFICATION,
    "data_export": AuditCategory.DATA_ACCESS,
    "accessed": AuditCategory.DATA_ACCESS,
    "permission_denied": AuditCategory.AUTHORIZATION,
    "permission_changed": AuditCategory.AUTHORIZATION,
    "security_violation": AuditCategory.SECURITY,
    "settings_changed": AuditCategory.SYSTEM,
    "restore": AuditCategory.SYSTEM,
}


def default_severity(action: str) -> AuditSeverity:
    """Severity implied by an action name."""
    if action in _CRITICAL_ACTIONS:
        return AuditSeverity.CRITICAL
    if action in _HIGH_ACTIONS:
        return AuditSeverity.HIGH
    if action in _MEDIUM_ACTIONS:
        return AuditSeverity.MEDIUM
    return AuditSeverity.LOW


def default_category(action: str) -> AuditCategory:
    """Category implied by an action name."""
    return _CATEGORY_BY_ACTION.get(action, AuditCategory.GENERAL)


class AuditEntry(BaseModel):
    """Append-only record of a security-relevant event."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    action: str
    user_id: str | None = None
    entity_id: str | None = None
    entity_type: str | None = None
    timestamp_ms: int
    ip: str = DEFAULT_CLIENT_IP
    user_agent: str = ""
    metadata: dict[str, Any] | None = None
    severity: AuditSeverity = AuditSeverity.LOW
    category: AuditCategory = AuditCategory.GENERAL


class AuditStore(Protocol):
    """Persistence for audit entries."""

    async def append(self, entry: AuditEntry) -> None:
        """Persist an entry. Entries are never updated or removed."""
        ...


class InMemoryAuditStore(AuditStore):
    """Bounded in-memory audit store; the oldest entries fall off first."""

    def __init__(self, max_entries: int = 1000) -> None:
        self._entries: deque[AuditEntry] = deque(maxlen=max_entries)

    def __len__(self) -> int:
        return len(self._entries)

    async def append(self, entry: AuditEntry) -> None:
        self._entries.append(entry)

    def recent(self, limit: int = 100) -> list[AuditEntry]:
        """Most recent entries, newest first."""
        return list(reversed(self._entries))[:limit]


class AuditRecorder:
    """Builds audit entries and hands them to a store.

    Example:
        recorder = AuditRecorder(InMemoryAuditStore())
        entry = recorder.record("login_failed", ctx, {"email": "a@b.c"})
        await recorder.store.append(entry)
    """

    def __init__(
        self,
        store: AuditStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store if store is not None else InMemoryAuditStore()
        self._clock = clock

    def record(
        self,
        action: str,
        ctx: RequestContext | None,
        metadata: dict[str, Any] | None = None,
        *,
        user_id: str | None = None,
        entity_id: str | None = None,
        entity_type: str | None = None,
        severity: AuditSeverity | None = None,
        category: AuditCategory | None = None,
    ) -> AuditEntry:
        """Build an audit entry without persisting it.

        Args:
            action: Event name, e.g. ``login_failed``
            ctx: The request the event belongs to; None for system events
            metadata: Extra structured detail
            user_id: Acting user, if known
            entity_id: Affected entity
            entity_type: Kind of affected entity
            severity: Overrides the severity implied by ``action``
            category: Overrides the category implied by ``action``

        Returns:
            The entry
        """
        return AuditEntry(
            action=action,
            user_id=user_id,
            entity_id=entity_id,
            entity_type=entity_type,
            timestamp_ms=int(self._clock() * 1000),
            ip=ctx.client_ip if ctx else DEFAULT_CLIENT_IP,
            user_agent=ctx.user_agent if ctx else "",
            metadata=metadata,
            severity=severity or default_severity(action),
            category=category or default_category(action),
        )

    async def log(
        self,
        action: str,
        ctx: RequestContext | None,
        metadata: dict[str, Any] | None = None,
        **fields: Any,
    ) -> AuditEntry:
        """Build an entry and append it to the store."""
        entry = self.record(action, ctx, metadata, **fields)
        await self.store.append(entry)
        logger.debug("audit_entry_recorded", action=action, severity=entry.severity)
        return entry

    async def record_authentication(
        self,
        action: AuditAction | str,
        ctx: RequestContext | None,
        user_id: str | None = None,
        successful: bool = True,
        metadata: dict[str, Any] | None = None,
    ) -> AuditEntry:
        """Record a login, logout or other authentication event."""
        action = action.value if isinstance(action, AuditAction) else action
        details = {"successful": successful, **(metadata or {})}
        return await self.log(
            action,
            ctx,
            details,
            user_id=user_id,
            entity_type="authentication",
            category=AuditCategory.AUTHENTICATION,
        )

    async def record_security_violation(
        self,
        ctx: RequestContext,
        reason: str,
        user_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> AuditEntry:
        """Record a rejected or suspicious request."""
        details = {"reason": reason, "path": ctx.path, "method": ctx.method, **(metadata or {})}
        return await self.log(
            AuditAction.SECURITY_VIOLATION.value,
            ctx,
            details,
            user_id=user_id,
            severity=AuditSeverity.HIGH,
            category=AuditCategory.SECURITY,
        )
