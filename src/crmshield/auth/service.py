"""Login, registration and logout."""

import time
from collections.abc import Callable
from dataclasses import dataclass, replace

from crmshield.auth.sessions import Session, SessionStore
from crmshield.auth.tokens import BearerTokenCodec
from crmshield.auth.users import Role, User, UserStore, hash_password, verify_password
from crmshield.core.context import RequestContext
from crmshield.core.exceptions import (
    AccountInactiveError,
    InvalidCredentialsError,
    RegistrationError,
    TooManyLoginAttemptsError,
)
from crmshield.core.logging import get_logger
from crmshield.security.audit import AuditAction, AuditRecorder
from crmshield.security.login_throttle import LoginAttemptTracker
from crmshield.security.sanitization import sanitize_input, validate_email, validate_password

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class AuthResult:
    """A user with a freshly opened session."""

    user: User
    token: str
    session: Session


class AuthService:
    """Account operations backed by the user and session stores.

    Login attempts pass through ``LoginAttemptTracker`` before credentials
    are looked at, so a throttled client learns nothing about the password.
    """

    def __init__(
        self,
        users: UserStore,
        sessions: SessionStore,
        tokens: BearerTokenCodec,
        login_tracker: LoginAttemptTracker | None = None,
        audit: AuditRecorder | None = None,
        session_ttl_seconds: int = 7 * 24 * 60 * 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.users = users
        self.sessions = sessions
        self.tokens = tokens
        self.login_tracker = login_tracker or LoginAttemptTracker(clock=clock)
        self.audit = audit or AuditRecorder(clock=clock)
        self.session_ttl_seconds = session_ttl_seconds
        self._clock = clock

    async def _open_session(self, user: User) -> AuthResult:
        token = self.tokens.issue(user.id, user.email, user.role)
        session = await self.sessions.create(
            user_id=user.id,
            token=token,
            expires_at=self._clock() + self.session_ttl_seconds,
        )
        return AuthResult(user=user, token=token, session=session)

    async def login(
        self,
        email: str,
        password: str,
        ctx: RequestContext | None = None,
    ) -> AuthResult:
        """Authenticate with email and password and open a new session.

        Any previous sessions of the user are closed.

        Args:
            email: Account email
            password: Plain-text password
            ctx: The login request; its client IP is the throttle key

        Raises:
            TooManyLoginAttemptsError: The identifier is throttled
            InvalidCredentialsError: Unknown email or wrong password
            AccountInactiveError: The account is deactivated
        """
        identifier = ctx.client_ip if ctx else email
        if not self.login_tracker.check(identifier):
            raise TooManyLoginAttemptsError(
                retry_after=self.login_tracker.retry_after(identifier) or None
            )

        user = await self.users.find_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            if user is not None:
                await self.audit.record_authentication(
                    AuditAction.LOGIN_FAILED,
                    ctx,
                    user_id=user.id,
                    successful=False,
                    metadata={"email": user.email},
                )
            logger.info("login_failed", identifier=identifier)
            raise InvalidCredentialsError()

        if not user.is_active:
            logger.info("login_failed", identifier=identifier, reason="inactive")
            raise AccountInactiveError()

        user = await self.users.save(replace(user, last_login_at=self._clock()))
        await self.sessions.delete_for_user(user.id)
        result = await self._open_session(user)

        await self.audit.record_authentication(
            AuditAction.LOGIN_SUCCESS,
            ctx,
            user_id=user.id,
            metadata={"email": user.email},
        )
        logger.info("login_succeeded", user_id=user.id)
        return result

    async def register(
        self,
        email: str,
        password: str,
        name: str,
        ctx: RequestContext | None = None,
    ) -> AuthResult:
        """Create a ``user`` account and open its first session.

        Raises:
            RegistrationError: Invalid email, weak password or taken email
        """
        if not validate_email(email):
            raise RegistrationError("Invalid email address")

        strength = validate_password(password)
        if not strength.is_valid:
            raise RegistrationError("; ".join(strength.errors))

        clean_name = sanitize_input(name)
        if not clean_name:
            raise RegistrationError("Name is required")

        if await self.users.find_by_email(email) is not None:
            raise RegistrationError("Email already registered")

        user = await self.users.create(
            email=email,
            name=clean_name,
            password_hash=hash_password(password),
            role=Role.USER.value,
        )
        await self.audit.log(
            AuditAction.USER_CREATED.value,
            ctx,
            user_id=user.id,
            entity_id=user.id,
            entity_type="user",
        )
        logger.info("user_registered", user_id=user.id)
        return await self._open_session(user)

    async def logout(self, user_id: str, ctx: RequestContext | None = None) -> None:
        """Close every session of a user."""
        removed = await self.sessions.delete_for_user(user_id)
        await self.audit.record_authentication(AuditAction.LOGOUT, ctx, user_id=user_id)
        logger.info("logout", user_id=user_id, sessions_closed=removed)
