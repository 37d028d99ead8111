# callpanel/auth/tokens.py
"""
Scoped credentials for display sockets.

There is no process-wide signing key: a token is signed with the secret of the
channel it is scoped to, so only that channel's key can verify it.
"""
import logging
import time
from typing import Any, Dict, Optional

import jwt

from ..config import CLIENT_TOKEN_TTL_SECONDS

ALGORITHM = "HS256"
CLIENT_ROLE = "client"

log = logging.getLogger("callpanel.auth")


def issue_token(payload: Dict[str, Any], secret: str, ttl_seconds: int = CLIENT_TOKEN_TTL_SECONDS) -> str:
    if not secret:
        raise ValueError("signing secret is required")
    now = int(time.time())
    claims = dict(payload)
    claims["iat"] = now
    claims["exp"] = now + int(ttl_seconds)
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def verify_token(token: Optional[str], secret: Optional[str]) -> Optional[Dict[str, Any]]:
    """Return the token payload, or None for any failure (bad signature,
    wrong secret, malformed, expired)."""
    if not token or not secret:
        return None
    try:
        return jwt.decode(token, secret, algorithms=[ALGORITHM])
    except jwt.PyJWTError as e:
        log.debug("AUTH: token rejected: %s", type(e).__name__)
        return None


def issue_client_token(channel_slug: str, channel_secret: str, ttl_seconds: int = CLIENT_TOKEN_TTL_SECONDS) -> str:
    return issue_token({"role": CLIENT_ROLE, "channel": channel_slug}, channel_secret, ttl_seconds)


def strip_bearer(value: Any) -> Optional[str]:
    """Accept a bare string or the first element of a list, drop a `Bearer ` prefix"""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if not isinstance(value, str):
        return None
    tok = value.strip()
    if tok.lower().startswith("bearer "):
        tok = tok[7:].strip()
    return tok or None
