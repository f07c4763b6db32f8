"""Security utilities: JWT staff tokens and webhook signature checks."""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
import logging

import jwt
from jwt.exceptions import PyJWTError

from app.core.config import settings

logger = logging.getLogger(__name__)


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token with a unique JTI."""
    to_encode = data.copy()
    now = datetime.now(timezone.utc)

    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update({
        "exp": expire,
        "iat": now,
        "jti": secrets.token_urlsafe(16),
    })
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Decode and validate a JWT token. Returns None when invalid or expired."""
    try:
        return jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={"require_exp": True}
        )
    except PyJWTError as e:
        logger.debug(f"JWT decode error: {e}")
        return None


# ---------------------------------------------------------------------------
# Marketplace webhook signatures
# ---------------------------------------------------------------------------

def compute_webhook_signature(payload: bytes, secret: str, encoding: str = "hex") -> str:
    """HMAC-SHA256 of the raw payload, as a hex or base64 string."""
    digest = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256)
    if encoding == "base64":
        return base64.b64encode(digest.digest()).decode("ascii")
    return digest.hexdigest()


def verify_webhook_signature(
    payload: bytes,
    signature: Optional[str],
    secret: str,
    encoding: str = "hex",
) -> bool:
    """Verify a webhook signature using a timing-safe comparison."""
    if not signature:
        return False
    expected = compute_webhook_signature(payload, secret, encoding)
    return hmac.compare_digest(expected, signature.strip())
