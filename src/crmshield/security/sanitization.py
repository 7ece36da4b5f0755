"""Input validation and sanitization utilities.

Stateless helpers used by the request-security layer and by route handlers:
- Email and password validation
- Lossy input sanitization for storage, lossless HTML encoding for output
- Heuristic detection of bot, injection, XSS and path traversal patterns
- Constant-time string comparison
- Token generation and salted hashing
- Request size, IP format and file upload checks
"""

import hashlib
import re
import secrets
import string
from collections.abc import Mapping
from dataclasses import dataclass, field

from crmshield.core.context import RequestContext

# Regex patterns compiled once for performance
_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_TAG_PATTERN = re.compile(r"<[^>]*>")
_DANGEROUS_CHARS_PATTERN = re.compile(r"[<>'\"&]")

_PASSWORD_MIN_LENGTH = 8
_PASSWORD_SYMBOL_PATTERN = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")

_HTML_ENTITIES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2F;",
}
_HTML_ENTITY_PATTERN = re.compile(r"[&<>\"'/]")

_IPV4_PATTERN = re.compile(
    r"^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"
    r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
)
_IPV6_PATTERN = re.compile(r"^(?:[0-9a-fA-F]{1,4}:){7}[0-9a-fA-F]{1,4}$")

# Suspicious activity patterns (advisory only)
_BOT_PATTERNS = [
    re.compile(r"bot", re.IGNORECASE),
    re.compile(r"crawler", re.IGNORECASE),
    re.compile(r"spider", re.IGNORECASE),
    re.compile(r"scraper", re.IGNORECASE),
    re.compile(r"curl", re.IGNORECASE),
    re.compile(r"wget", re.IGNORECASE),
    re.compile(r"python-requests", re.IGNORECASE),
]

_SQL_INJECTION_PATTERNS = [
    re.compile(r"union.*select", re.IGNORECASE),
    re.compile(r"or.*1.*=.*1", re.IGNORECASE),
    re.compile(r"drop.*table", re.IGNORECASE),
    re.compile(r"select.*from.*information_schema", re.IGNORECASE),
]

_XSS_PATTERNS = [
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"eval\s*\(", re.IGNORECASE),
]

_PATH_TRAVERSAL_PATTERNS = [
    re.compile(r"\.\./"),
    re.compile(r"\.\.\\"),
    re.compile(r"%2e%2e", re.IGNORECASE),
    re.compile(r"etc/passwd", re.IGNORECASE),
    re.compile(r"windows/system32", re.IGNORECASE),
]

_SQL_STRIP_PATTERNS = [
    re.compile(
        r"\b(ALTER|CREATE|DELETE|DROP|EXEC(UTE)?|INSERT|MERGE|SELECT|UPDATE|UNION|USE)\b",
        re.IGNORECASE,
    ),
    re.compile(r"(--|\*|\||;|'|\"|`)"),
    re.compile(r"\b(or|and)\b", re.IGNORECASE),
]

SUSPICIOUS_USER_AGENT = "suspicious_user_agent"
SQL_INJECTION_ATTEMPT = "sql_injection_attempt"
XSS_ATTEMPT = "xss_attempt"
PATH_TRAVERSAL_ATTEMPT = "path_traversal_attempt"

DEFAULT_MAX_REQUEST_BYTES = 1024 * 1024
MAX_UPLOAD_BYTES = 10 * 1024 * 1024

ALLOWED_UPLOAD_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "application/pdf",
        "text/csv",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    }
)

BLOCKED_UPLOAD_EXTENSIONS = frozenset(
    {".exe", ".bat", ".cmd", ".scr", ".pif", ".com", ".vbs", ".js"}
)

_RANDOM_CHARSET = string.ascii_uppercase + string.ascii_lowercase + string.digits
_PBKDF2_ITERATIONS = 10_000


@dataclass
class ValidationResult:
    """Outcome of a validator that can report several problems at once.

    Attributes:
        is_valid: True when no rule failed
        errors: Human-readable messages, in rule order
    """

    is_valid: bool
    errors: list[str] = field(default_factory=list)


def validate_email(email: str) -> bool:
    """Validate an email address format.

    Intentionally permissive: something, an @, something, a dot, something.

    Example:
        >>> validate_email("user@example.com")
        True
        >>> validate_email("invalid-email")
        False
    """
    if not email:
        return False
    return bool(_EMAIL_PATTERN.match(email))


def validate_password(password: str) -> ValidationResult:
    """Check password strength.

    Every rule is evaluated so all failures are reported together, in the
    order: length, uppercase, lowercase, digit, symbol.

    Args:
        password: Candidate password

    Returns:
        ValidationResult with one message per failed rule

    Example:
        >>> validate_password("StrongP@ssw0rd").is_valid
        True
    """
    errors: list[str] = []

    if len(password) < _PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {_PASSWORD_MIN_LENGTH} characters long")

    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")

    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")

    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")

    if not _PASSWORD_SYMBOL_PATTERN.search(password):
        errors.append("Password must contain at least one special character")

    return ValidationResult(is_valid=not errors, errors=errors)


def sanitize_input(value: str) -> str:
    """Strip markup from a value before storing it.

    Removes tag-shaped substrings first, then the characters ``<>'"&``, then
    surrounding whitespace. This is lossy and is not a full HTML sanitizer:
    ``"<b>&amp;</b>"`` becomes ``"amp;"``.

    Example:
        >>> sanitize_input("  <script>alert('x')</script>Hello  ")
        'alert(x)Hello'
    """
    result = _TAG_PATTERN.sub("", value)
    result = _DANGEROUS_CHARS_PATTERN.sub("", result)
    return result.strip()


def sanitize_html(value: str) -> str:
    """Entity-encode ``& < > " ' /`` for safe re-rendering as HTML.

    Unlike ``sanitize_input`` this is lossless.

    Example:
        >>> sanitize_html("<a href='/x'>")
        '&lt;a href=&#x27;&#x2F;x&#x27;&gt;'
    """
    return _HTML_ENTITY_PATTERN.sub(lambda match: _HTML_ENTITIES[match.group(0)], value)


def sanitize_sql_input(value: str) -> str:
    """Remove SQL keywords, comment markers and quoting characters."""
    result = value
    for pattern in _SQL_STRIP_PATTERNS:
        result = pattern.sub("", result)
    return result.strip()


def detect_suspicious_activity(ctx: RequestContext) -> list[str]:
    """Flag request patterns worth logging.

    Matches the user-agent against bot signatures and the full URL against
    SQL injection, XSS and path traversal signatures. The result is advisory
    and never blocks a request on its own.

    Args:
        ctx: The request to inspect

    Returns:
        Zero or more of ``suspicious_user_agent``, ``sql_injection_attempt``,
        ``xss_attempt``, ``path_traversal_attempt``
    """
    findings: list[str] = []
    user_agent = ctx.user_agent
    url = ctx.url or ctx.path

    if any(pattern.search(user_agent) for pattern in _BOT_PATTERNS):
        findings.append(SUSPICIOUS_USER_AGENT)

    if any(pattern.search(url) for pattern in _SQL_INJECTION_PATTERNS):
        findings.append(SQL_INJECTION_ATTEMPT)

    if any(pattern.search(url) for pattern in _XSS_PATTERNS):
        findings.append(XSS_ATTEMPT)

    if any(pattern.search(url) for pattern in _PATH_TRAVERSAL_PATTERNS):
        findings.append(PATH_TRAVERSAL_ATTEMPT)

    return findings


def secure_compare(a: str, b: str) -> bool:
    """Compare two strings without short-circuiting on the first difference.

    Returns False immediately on a length mismatch; lengths are not secret
    for the values compared here.
    """
    if len(a) != len(b):
        return False

    result = 0
    for x, y in zip(a, b):
        result |= ord(x) ^ ord(y)
    return result == 0


def is_valid_ip(ip: str) -> bool:
    """Check whether a string is a dotted IPv4 or full-form IPv6 address."""
    return bool(_IPV4_PATTERN.match(ip) or _IPV6_PATTERN.match(ip))


def validate_request_size(
    headers: Mapping[str, str],
    max_size: int = DEFAULT_MAX_REQUEST_BYTES,
) -> bool:
    """Check the declared Content-Length against ``max_size``.

    Requests without a parseable Content-Length pass.
    """
    content_length = headers.get("content-length")
    if not content_length:
        return True
    try:
        return int(content_length) <= max_size
    except ValueError:
        return True


def validate_file_upload(filename: str, content_type: str, size: int) -> ValidationResult:
    """Validate an uploaded file's size, MIME type and extension."""
    errors: list[str] = []

    if size > MAX_UPLOAD_BYTES:
        errors.append("File size exceeds maximum allowed size (10MB)")

    if content_type not in ALLOWED_UPLOAD_TYPES:
        errors.append("File type not allowed")

    dot = filename.rfind(".")
    extension = filename[dot:].lower() if dot != -1 else ""
    if extension in BLOCKED_UPLOAD_EXTENSIONS:
        errors.append("File extension not allowed")

    return ValidationResult(is_valid=not errors, errors=errors)


def generate_secure_token(length: int = 32) -> str:
    """Generate ``length`` random bytes as a hex string."""
    return secrets.token_hex(length)


def generate_secure_random_string(length: int = 16) -> str:
    """Generate a random alphanumeric string."""
    return "".join(secrets.choice(_RANDOM_CHARSET) for _ in range(length))


def hash_with_salt(data: str, salt: str | None = None) -> tuple[str, str]:
    """Hash data with PBKDF2-SHA512.

    Args:
        data: Value to hash
        salt: Hex salt; a random 16-byte salt is generated if omitted

    Returns:
        (hex digest, salt)
    """
    actual_salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha512",
        data.encode(),
        actual_salt.encode(),
        _PBKDF2_ITERATIONS,
        dklen=64,
    )
    return digest.hex(), actual_salt


def verify_hash(data: str, hashed: str, salt: str) -> bool:
    """Check data against a digest produced by ``hash_with_salt``."""
    computed, _ = hash_with_salt(data, salt)
    return secure_compare(computed, hashed)
