"""Session identifier generation and signing.

Identifiers are 32 random bytes, hex encoded. The value sent to the client is
``<id>.<signature>`` where the signature is HMAC-SHA256 over the id, encoded
as URL-safe base64 without padding. The signature gives integrity, not
secrecy: the id itself is visible in the cookie.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import re
import secrets
from dataclasses import dataclass, field

from itsdangerous import Signer

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

SEPARATOR = "."
ID_BYTES = 32

_COOKIE_NAME_RE = re.compile(r"[A-Za-z0-9_-]+")
_SAME_SITE_VALUES = ("strict", "lax", "none")
_ONE_MINUTE_MS = 60 * 1000
_THIRTY_DAYS_MS = 30 * 24 * 60 * 60 * 1000


def create_session_secret(length: int = 32) -> str:
    """Return a random hex secret suitable for signing session ids."""
    return secrets.token_hex(length)


def resolve_secret(secret: str | None, environment: str = "development") -> str:
    """Return the configured secret, or fail fast in production.

    Outside production a missing secret is replaced by an ephemeral one, which
    means every restart invalidates all outstanding sessions.
    """
    if secret:
        return secret
    if environment.lower() == "production":
        raise ConfigurationError("Session secret is required in production")
    logger.warning(
        "No session secret configured; using an auto-generated secret. "
        "Sessions will not survive a restart."
    )
    return create_session_secret()


class SessionSigner:
    """Generates, signs and verifies session identifiers."""

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ConfigurationError("SessionSigner requires a non-empty secret")
        self._signer = Signer(
            secret,
            sep=SEPARATOR,
            key_derivation="none",
            digest_method=hashlib.sha256,
        )

    def generate_id(self) -> str:
        return secrets.token_hex(ID_BYTES)

    def sign(self, session_id: str) -> str:
        return self._signer.sign(session_id).decode("ascii")

    def unsign(self, signed: object) -> str | None:
        """Return the identifier if the signature matches, else ``None``.

        Never raises: anything malformed is simply invalid.
        """
        if not isinstance(signed, str):
            return None
        session_id, sep, signature = signed.partition(SEPARATOR)
        if not sep or not session_id or not signature:
            return None
        try:
            expected = self._signer.get_signature(session_id)
            # Compare the encoded form: base64 decoding ignores trailing pad bits.
            valid = hmac.compare_digest(expected, signature.encode("utf-8"))
        except Exception:
            logger.debug("Signature verification error", exc_info=True)
            return None
        return session_id if valid else None


@dataclass
class ConfigValidation:
    valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def validate_session_config(
    *,
    secret: str | None = None,
    max_age_ms: int | None = None,
    cookie_name: str | None = None,
    same_site: str | None = None,
    secure: bool | None = None,
    http_only: bool | None = None,
    environment: str = "development",
) -> ConfigValidation:
    """Check session options without raising. Useful in startup health checks."""
    errors: list[str] = []
    warnings: list[str] = []
    production = environment.lower() == "production"

    if not secret:
        if production:
            errors.append("Secret is required in production")
        else:
            warnings.append("No secret provided, using auto-generated secret")
    elif len(secret) < 16:
        warnings.append("Secret should be at least 16 characters for security")

    if max_age_ms is not None:
        if max_age_ms <= 0:
            errors.append("max_age_ms must be a positive number")
        elif max_age_ms < _ONE_MINUTE_MS:
            warnings.append("max_age_ms is very short (less than 1 minute)")
        elif max_age_ms > _THIRTY_DAYS_MS:
            warnings.append("max_age_ms is very long (more than 30 days)")

    if cookie_name is not None and not _COOKIE_NAME_RE.fullmatch(cookie_name):
        errors.append("cookie_name contains invalid characters")

    if same_site is not None and same_site.lower() not in _SAME_SITE_VALUES:
        errors.append("same_site must be one of: strict, lax, none")

    if secure is False and production:
        warnings.append("secure=False is not recommended in production")

    if http_only is False:
        warnings.append("http_only=False allows JavaScript access to session cookies")

    return ConfigValidation(valid=not errors, errors=errors, warnings=warnings)
