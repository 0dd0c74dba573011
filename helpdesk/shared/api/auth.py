"""
Principal Resolution
====================

Turns the request's bearer token into a Principal.

Tokens are issued by the external authentication service as HS256-signed
JWTs carrying `sub` (principal id), `role` and `exp`. This module only
verifies them; it never mints credentials.
"""

import base64
import hashlib
import hmac
import json
import time
from typing import Any, Optional

from fastapi import Header, HTTPException, status

from helpdesk.config import Role, Settings, get_settings
from helpdesk.core import ConfigurationException
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.tickets.domain import Principal

logger = get_logger(__name__)

DEFAULT_TOKEN_SECRET = "change-me"


class TokenError(ValueError):
    """Raised when a bearer token cannot be trusted."""


def ensure_token_secret(settings: Settings) -> None:
    """Refuse to start outside development with the placeholder secret."""
    if not settings.auth_token_secret:
        raise ConfigurationException("AUTH_TOKEN_SECRET is empty")
    if settings.environment != "development" and settings.auth_token_secret == DEFAULT_TOKEN_SECRET:
        raise ConfigurationException(
            "AUTH_TOKEN_SECRET must be set outside development",
            details={"environment": settings.environment}
        )


def _b64_decode(raw: str) -> bytes:
    padding = "=" * (-len(raw) % 4)
    return base64.urlsafe_b64decode((raw + padding).encode("ascii"))


def _b64_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _sign(signing_input: bytes, secret: str) -> str:
    signature = hmac.new(secret.encode("utf-8"), signing_input, hashlib.sha256).digest()
    return _b64_encode(signature)


def decode_token(token: str, secret: str, now: Optional[float] = None) -> dict[str, Any]:
    """Verify signature and expiry, returning the token claims."""
    try:
        encoded_header, encoded_payload, encoded_signature = token.split(".")
    except ValueError as exc:
        raise TokenError("Malformed token") from exc

    try:
        signing_input = f"{encoded_header}.{encoded_payload}".encode("ascii")
    except UnicodeEncodeError as exc:
        raise TokenError("Malformed token") from exc
    if not hmac.compare_digest(_sign(signing_input, secret), encoded_signature):
        raise TokenError("Invalid token signature")

    try:
        header = json.loads(_b64_decode(encoded_header).decode("utf-8"))
        payload = json.loads(_b64_decode(encoded_payload).decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as exc:
        raise TokenError("Malformed token") from exc
    if not isinstance(header, dict) or not isinstance(payload, dict):
        raise TokenError("Malformed token")

    if header.get("alg") != "HS256":
        raise TokenError("Unsupported token algorithm")
    try:
        expires_at = int(payload.get("exp", 0))
    except (TypeError, ValueError, OverflowError) as exc:
        raise TokenError("Token has an invalid expiry") from exc
    current = time.time() if now is None else now
    if expires_at < int(current):
        raise TokenError("Token expired")
    return payload


def principal_from_claims(claims: dict[str, Any]) -> Principal:
    subject = claims.get("sub")
    if not subject:
        raise TokenError("Token has no subject")
    try:
        role = Role(claims.get("role"))
    except ValueError as exc:
        raise TokenError("Token carries an unknown role") from exc
    return Principal(id=str(subject), role=role)


async def get_principal(authorization: Optional[str] = Header(None)) -> Principal:
    """FastAPI dependency resolving the calling principal."""
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, no token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, bearer token expected",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        claims = decode_token(token.strip(), get_settings().auth_token_secret)
        return principal_from_claims(claims)
    except TokenError as e:
        logger.warning("Rejected access token", extra={"reason": str(e)})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, token failed",
            headers={"WWW-Authenticate": "Bearer"},
        )
