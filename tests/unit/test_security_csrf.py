"""Tests for CSRF token issuance and verification."""

import jwt
import pytest

from conftest import TEST_CSRF_SECRET, FakeClock
from crmshield.security.config import CsrfConfig
from crmshield.security.csrf import (
    ReplayCache,
    TokenCodec,
    generate_double_submit_token,
    validate_double_submit_token,
)


def _claims(token: str) -> dict:
    return jwt.decode(
        token, TEST_CSRF_SECRET, algorithms=["HS256"], options={"verify_exp": False}
    )


@pytest.fixture
def codec(clock: FakeClock) -> TokenCodec:
    return TokenCodec(secret=TEST_CSRF_SECRET, clock=clock)


class TestIssue:
    """Tests for TokenCodec.issue."""

    def test_payload_claims(self, codec: TokenCodec, clock: FakeClock) -> None:
        """Test the token carries session, millisecond timestamp and nonce."""
        token = codec.issue("sess-123")
        claims = _claims(token)

        assert claims["sessionId"] == "sess-123"
        assert claims["timestamp"] == int(clock.now * 1000)
        assert len(claims["nonce"]) == 36
        assert claims["exp"] - claims["iat"] == 3600

    def test_anonymous_default(self, codec: TokenCodec) -> None:
        """Test tokens issued without a session are bound to 'anonymous'."""
        token = codec.issue()
        claims = _claims(token)
        assert claims["sessionId"] == "anonymous"

    def test_tokens_are_unique(self, codec: TokenCodec) -> None:
        """Test two tokens issued at the same instant differ."""
        assert codec.issue("s") != codec.issue("s")


class TestVerify:
    """Tests for TokenCodec.verify."""

    def test_round_trip(self, codec: TokenCodec) -> None:
        """Test a token verifies for the session it was issued to."""
        token = codec.issue("sess-123")
        assert codec.verify(token, "sess-123") is True

    def test_session_mismatch(self, codec: TokenCodec) -> None:
        """Test a token fails for a different session."""
        token = codec.issue("sess-123")
        assert codec.verify(token, "sess-456") is False

    def test_no_expected_session_skips_binding(self, codec: TokenCodec) -> None:
        """Test verification without a session id only checks signature and age."""
        token = codec.issue("sess-123")
        assert codec.verify(token) is True

    def test_valid_at_59_minutes(self, codec: TokenCodec, clock: FakeClock) -> None:
        """Test a token is still valid just inside the hour."""
        token = codec.issue("s")
        clock.advance(59 * 60)
        assert codec.verify(token, "s") is True

    def test_invalid_at_61_minutes(self, codec: TokenCodec, clock: FakeClock) -> None:
        """Test a token is rejected just past the hour."""
        token = codec.issue("s")
        clock.advance(61 * 60)
        assert codec.verify(token, "s") is False

    def test_custom_ttl(self, clock: FakeClock) -> None:
        """Test the lifetime follows the configured TTL."""
        codec = TokenCodec(TEST_CSRF_SECRET, CsrfConfig(token_ttl_seconds=60), clock=clock)
        token = codec.issue("s")
        clock.advance(61)
        assert codec.verify(token, "s") is False

    def test_wrong_secret(self, codec: TokenCodec, clock: FakeClock) -> None:
        """Test a token signed with another key is rejected."""
        other = TokenCodec(secret="another-secret-0123456789abcdef0123456789", clock=clock)
        assert codec.verify(other.issue("s"), "s") is False

    def test_tampered_token(self, codec: TokenCodec) -> None:
        """Test a modified signature is rejected."""
        token = codec.issue("s")
        replacement = "A" if token[-10] != "A" else "B"
        tampered = token[:-10] + replacement + token[-9:]
        assert codec.verify(tampered, "s") is False

    @pytest.mark.parametrize("token", [None, "", "not-a-token", "a.b.c"])
    def test_garbage_never_raises(self, codec: TokenCodec, token: str | None) -> None:
        """Test undecodable input maps to False."""
        assert codec.verify(token, "s") is False

    def test_missing_claims(self, codec: TokenCodec, clock: FakeClock) -> None:
        """Test a correctly signed token without the expected claims is rejected."""
        token = jwt.encode({"exp": int(clock.now) + 60}, TEST_CSRF_SECRET, algorithm="HS256")
        assert codec.verify(token) is False

    def test_non_numeric_expiry(self, codec: TokenCodec, clock: FakeClock) -> None:
        """Test a signed token with a non-numeric exp claim is rejected."""
        claims = {
            "sessionId": "s",
            "timestamp": int(clock.now * 1000),
            "nonce": "n",
            "exp": "later",
        }
        token = jwt.encode(claims, TEST_CSRF_SECRET, algorithm="HS256")
        assert codec.verify(token, "s") is False
        assert codec.verify_and_consume(token, "s") is False


class TestVerifyAndConsume:
    """Tests for single-use verification."""

    def test_accepts_once(self, codec: TokenCodec) -> None:
        """Test a fresh token verifies exactly once."""
        token = codec.issue("s")
        assert codec.verify_and_consume(token, "s") is True
        assert codec.verify_and_consume(token, "s") is False
        assert codec.verify_and_consume(token, "s") is False

    def test_invalid_token_not_recorded(self, codec: TokenCodec) -> None:
        """Test a token failing verification is not added to the replay set."""
        token = codec.issue("s")
        assert codec.verify_and_consume(token, "other") is False
        assert len(codec.replay_cache) == 0
        assert codec.verify_and_consume(token, "s") is True

    def test_plain_verify_after_consume(self, codec: TokenCodec) -> None:
        """Test the non-consuming path does not consult the replay set."""
        token = codec.issue("s")
        codec.verify_and_consume(token, "s")
        assert codec.verify(token, "s") is True


class TestReplayCache:
    """Tests for ReplayCache."""

    def test_membership(self) -> None:
        cache = ReplayCache(max_size=10)
        cache.add("a")
        assert "a" in cache
        assert "b" not in cache

    def test_cleared_when_bound_exceeded(self) -> None:
        """Test the set is cleared wholesale once it passes the bound."""
        cache = ReplayCache(max_size=2)
        cache.add("a")
        cache.add("b")
        assert len(cache) == 2

        cache.add("c")
        assert len(cache) == 0
        assert "a" not in cache


class TestVerifyForm:
    """Tests for form field verification."""

    def test_valid_form(self, codec: TokenCodec) -> None:
        token = codec.issue("s")
        assert codec.verify_form({"_csrf": token, "name": "x"}, "s") is True

    def test_missing_field(self, codec: TokenCodec) -> None:
        assert codec.verify_form({"name": "x"}, "s") is False

    def test_non_string_field(self, codec: TokenCodec) -> None:
        assert codec.verify_form({"_csrf": 123}, "s") is False


class TestDoubleSubmit:
    """Tests for the double-submit cookie helpers."""

    def test_generated_tokens_differ(self) -> None:
        assert generate_double_submit_token() != generate_double_submit_token()

    def test_matching_values(self) -> None:
        token = generate_double_submit_token()
        assert validate_double_submit_token(token, token) is True

    def test_mismatch(self) -> None:
        assert validate_double_submit_token("abc", "abd") is False

    @pytest.mark.parametrize(
        ("cookie", "header"),
        [(None, "abc"), ("abc", None), ("", ""), (None, None)],
    )
    def test_empty_values(self, cookie: str | None, header: str | None) -> None:
        assert validate_double_submit_token(cookie, header) is False
