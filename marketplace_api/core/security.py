"""
Bearer token helpers.

The marketplace does not log callers in itself: tokens are minted by the
external auth service with the shared JWT secret. ``sub`` is the user id,
``tenant_id`` and ``roles`` are informational; tenant membership is always
read from the user row.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from jose import JWTError, jwt

from marketplace_api.core.settings import get_app_settings


# PUBLIC_INTERFACE
def create_access_token(
    subject: str,
    tenant_id: Optional[str] = None,
    roles: Optional[List[str]] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    """Mint an access token the way the auth service does (used by tests and local tooling)."""
    settings = get_app_settings()
    issued = datetime.now(tz=timezone.utc)
    claims: Dict[str, Any] = {
        "sub": subject,
        "roles": roles or [],
        "type": "access",
        "iat": issued,
        "exp": issued + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    if tenant_id:
        claims["tenant_id"] = tenant_id
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


# PUBLIC_INTERFACE
def decode_token(token: str) -> Dict[str, Any]:
    """Verify signature and expiry; raises jose.JWTError otherwise."""
    settings = get_app_settings()
    claims = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    if claims.get("type", "access") != "access":
        raise JWTError("Not an access token")
    return claims
