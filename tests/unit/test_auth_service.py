"""Tests for bearer credentials, users and the auth service."""

from dataclasses import replace

import jwt
import pytest

from conftest import STRONG_PASSWORD, TEST_JWT_SECRET, FakeClock, make_context
from crmshield.auth.service import AuthService
from crmshield.auth.sessions import InMemorySessionStore
from crmshield.auth.tokens import BearerTokenCodec
from crmshield.auth.users import (
    InMemoryUserStore,
    Role,
    hash_password,
    role_satisfies,
    verify_password,
)
from crmshield.core.exceptions import (
    AccountInactiveError,
    AuthInvalidError,
    InvalidCredentialsError,
    RegistrationError,
    TooManyLoginAttemptsError,
)
from crmshield.security.audit import AuditRecorder, InMemoryAuditStore

EMAIL = "jane@example.com"


@pytest.fixture
def tokens(clock: FakeClock) -> BearerTokenCodec:
    return BearerTokenCodec(TEST_JWT_SECRET, clock=clock)


@pytest.fixture
def users() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def sessions() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def audit_store() -> InMemoryAuditStore:
    return InMemoryAuditStore()


@pytest.fixture
def service(
    users: InMemoryUserStore,
    sessions: InMemorySessionStore,
    tokens: BearerTokenCodec,
    audit_store: InMemoryAuditStore,
    clock: FakeClock,
) -> AuthService:
    return AuthService(
        users,
        sessions,
        tokens,
        audit=AuditRecorder(audit_store, clock=clock),
        clock=clock,
    )


class TestBearerTokenCodec:
    """Tests for BearerTokenCodec."""

    def test_round_trip(self, tokens: BearerTokenCodec, clock: FakeClock) -> None:
        token = tokens.issue("u-1", EMAIL, "admin")
        claims = tokens.decode(token)

        assert claims.user_id == "u-1"
        assert claims.email == EMAIL
        assert claims.role == "admin"
        assert claims.expires_at == int(clock.now) + 7 * 24 * 60 * 60

    def test_wire_claims(self, tokens: BearerTokenCodec) -> None:
        payload = jwt.decode(
            tokens.issue("u-1", EMAIL, "user"),
            TEST_JWT_SECRET,
            algorithms=["HS256"],
            options={"verify_exp": False},
        )
        assert set(payload) == {"userId", "email", "role", "jti", "iat", "exp"}

    def test_expired(self, tokens: BearerTokenCodec, clock: FakeClock) -> None:
        token = tokens.issue("u-1", EMAIL, "user")
        clock.advance(7 * 24 * 60 * 60 + 1)

        with pytest.raises(AuthInvalidError) as exc_info:
            tokens.decode(token)
        assert exc_info.value.message == "Invalid token"

    def test_wrong_secret(self, tokens: BearerTokenCodec, clock: FakeClock) -> None:
        other = BearerTokenCodec("other-secret-0123456789abcdef0123456789", clock=clock)
        with pytest.raises(AuthInvalidError):
            tokens.decode(other.issue("u-1", EMAIL, "user"))

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
    def test_garbage(self, tokens: BearerTokenCodec, token: str) -> None:
        with pytest.raises(AuthInvalidError):
            tokens.decode(token)

    def test_missing_identity_claims(self, tokens: BearerTokenCodec, clock: FakeClock) -> None:
        token = jwt.encode({"exp": int(clock.now) + 60}, TEST_JWT_SECRET, algorithm="HS256")
        with pytest.raises(AuthInvalidError):
            tokens.decode(token)

    def test_non_numeric_expiry(self, tokens: BearerTokenCodec) -> None:
        claims = {"userId": "u-1", "email": EMAIL, "role": "user", "exp": "later"}
        token = jwt.encode(claims, TEST_JWT_SECRET, algorithm="HS256")
        with pytest.raises(AuthInvalidError):
            tokens.decode(token)


class TestUsers:
    """Tests for password hashing, roles and the user store."""

    def test_password_hash(self) -> None:
        hashed = hash_password(STRONG_PASSWORD)

        assert hashed.startswith("$2b$10$")
        assert verify_password(STRONG_PASSWORD, hashed) is True
        assert verify_password("wrong", hashed) is False

    def test_verify_against_malformed_hash(self) -> None:
        assert verify_password(STRONG_PASSWORD, "not-a-hash") is False

    @pytest.mark.parametrize(
        ("role", "required", "expected"),
        [
            ("admin", Role.ADMIN, True),
            ("admin", Role.USER, True),
            ("user", Role.USER, True),
            ("user", Role.ADMIN, False),
            ("guest", "user", False),
        ],
    )
    def test_role_satisfies(self, role: str, required: Role | str, expected: bool) -> None:
        assert role_satisfies(role, required) is expected

    @pytest.mark.asyncio
    async def test_email_normalised(self, users: InMemoryUserStore) -> None:
        user = await users.create(email="  Jane@Example.COM ", name="Jane", password_hash="h")

        assert user.email == EMAIL
        assert await users.find_by_email("JANE@example.com") == user
        assert await users.get(user.id) == user


class TestRegister:
    """Tests for AuthService.register."""

    @pytest.mark.asyncio
    async def test_creates_user_and_session(
        self,
        service: AuthService,
        sessions: InMemorySessionStore,
        audit_store: InMemoryAuditStore,
    ) -> None:
        result = await service.register(EMAIL, STRONG_PASSWORD, "  Jane <b>Doe</b> ")

        assert result.user.email == EMAIL
        assert result.user.name == "Jane Doe"
        assert result.user.role == "user"
        assert verify_password(STRONG_PASSWORD, result.user.password_hash)
        assert await sessions.find_by_token(result.token) == result.session
        assert [entry.action for entry in audit_store.recent()] == ["user_created"]

    @pytest.mark.asyncio
    async def test_invalid_email(self, service: AuthService) -> None:
        with pytest.raises(RegistrationError) as exc_info:
            await service.register("invalid-email", STRONG_PASSWORD, "Jane")

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Invalid email address"

    @pytest.mark.asyncio
    async def test_weak_password_lists_every_rule(self, service: AuthService) -> None:
        with pytest.raises(RegistrationError) as exc_info:
            await service.register(EMAIL, "password", "Jane")

        assert exc_info.value.message == (
            "Password must contain at least one uppercase letter; "
            "Password must contain at least one number; "
            "Password must contain at least one special character"
        )

    @pytest.mark.asyncio
    async def test_name_empty_after_sanitizing(self, service: AuthService) -> None:
        with pytest.raises(RegistrationError) as exc_info:
            await service.register(EMAIL, STRONG_PASSWORD, "<b></b>")
        assert exc_info.value.message == "Name is required"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, service: AuthService) -> None:
        await service.register(EMAIL, STRONG_PASSWORD, "Jane")

        with pytest.raises(RegistrationError) as exc_info:
            await service.register(EMAIL.upper(), STRONG_PASSWORD, "Other")
        assert exc_info.value.message == "Email already registered"


class TestLogin:
    """Tests for AuthService.login."""

    @pytest.mark.asyncio
    async def test_success(
        self,
        service: AuthService,
        sessions: InMemorySessionStore,
        audit_store: InMemoryAuditStore,
        clock: FakeClock,
    ) -> None:
        await service.register(EMAIL, STRONG_PASSWORD, "Jane")
        clock.advance(5)

        result = await service.login(EMAIL, STRONG_PASSWORD, make_context(method="POST"))

        assert result.user.last_login_at == clock.now
        assert result.session.expires_at == clock.now + 7 * 24 * 60 * 60
        assert audit_store.recent()[0].action == "login_success"

    @pytest.mark.asyncio
    async def test_previous_sessions_closed(
        self, service: AuthService, sessions: InMemorySessionStore
    ) -> None:
        registered = await service.register(EMAIL, STRONG_PASSWORD, "Jane")

        result = await service.login(EMAIL, STRONG_PASSWORD)

        assert len(sessions) == 1
        assert await sessions.find_by_token(registered.token) is None
        assert await sessions.find_by_token(result.token) is not None

    @pytest.mark.asyncio
    async def test_wrong_password(
        self, service: AuthService, audit_store: InMemoryAuditStore
    ) -> None:
        await service.register(EMAIL, STRONG_PASSWORD, "Jane")

        with pytest.raises(InvalidCredentialsError) as exc_info:
            await service.login(EMAIL, "Wrong-Passw0rd!")

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Invalid email or password"
        entry = audit_store.recent()[0]
        assert entry.action == "login_failed"
        assert entry.metadata == {"successful": False, "email": EMAIL}

    @pytest.mark.asyncio
    async def test_unknown_email_not_audited(
        self, service: AuthService, audit_store: InMemoryAuditStore
    ) -> None:
        with pytest.raises(InvalidCredentialsError):
            await service.login("nobody@example.com", STRONG_PASSWORD)
        assert len(audit_store) == 0

    @pytest.mark.asyncio
    async def test_inactive_account(
        self, service: AuthService, users: InMemoryUserStore
    ) -> None:
        user = await users.create(
            email=EMAIL, name="Jane", password_hash=hash_password(STRONG_PASSWORD)
        )
        await users.save(replace(user, is_active=False))

        with pytest.raises(AccountInactiveError) as exc_info:
            await service.login(EMAIL, STRONG_PASSWORD)
        assert exc_info.value.message == "Account is deactivated"

    @pytest.mark.asyncio
    async def test_sixth_attempt_throttled_even_with_correct_password(
        self, service: AuthService
    ) -> None:
        """Test five failures from one IP lock out the sixth attempt."""
        await service.register(EMAIL, STRONG_PASSWORD, "Jane")
        ctx = make_context(
            method="POST", path="/api/auth/login", headers={"x-forwarded-for": "203.0.113.7"}
        )

        for _ in range(5):
            with pytest.raises(InvalidCredentialsError):
                await service.login(EMAIL, "Wrong-Passw0rd!", ctx)

        with pytest.raises(TooManyLoginAttemptsError) as exc_info:
            await service.login(EMAIL, STRONG_PASSWORD, ctx)

        assert exc_info.value.status_code == 429
        assert exc_info.value.message == (
            "Too many login attempts. Please try again in 15 minutes."
        )
        assert exc_info.value.retry_after == 15 * 60

    @pytest.mark.asyncio
    async def test_throttle_keyed_by_client_ip(self, service: AuthService) -> None:
        await service.register(EMAIL, STRONG_PASSWORD, "Jane")
        first = make_context(headers={"x-forwarded-for": "203.0.113.7"})
        second = make_context(headers={"x-forwarded-for": "198.51.100.1"})

        for _ in range(6):
            with pytest.raises((InvalidCredentialsError, TooManyLoginAttemptsError)):
                await service.login(EMAIL, "Wrong-Passw0rd!", first)

        result = await service.login(EMAIL, STRONG_PASSWORD, second)
        assert result.user.email == EMAIL

    @pytest.mark.asyncio
    async def test_unlocks_after_idle_window(
        self, service: AuthService, clock: FakeClock
    ) -> None:
        await service.register(EMAIL, STRONG_PASSWORD, "Jane")
        for _ in range(5):
            with pytest.raises(InvalidCredentialsError):
                await service.login(EMAIL, "Wrong-Passw0rd!")

        clock.advance(15 * 60 + 1)

        result = await service.login(EMAIL, STRONG_PASSWORD)
        assert result.user.email == EMAIL


class TestLogout:
    @pytest.mark.asyncio
    async def test_closes_all_sessions(
        self,
        service: AuthService,
        sessions: InMemorySessionStore,
        audit_store: InMemoryAuditStore,
    ) -> None:
        result = await service.register(EMAIL, STRONG_PASSWORD, "Jane")

        await service.logout(result.user.id)

        assert len(sessions) == 0
        assert audit_store.recent()[0].action == "logout"
