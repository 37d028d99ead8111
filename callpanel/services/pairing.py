"""
Pairing registry

Short-lived, single-use map from a 6-digit code to its expiry. A display
registers a code over its anonymous socket; an operator validates it for a
channel, which issues a scoped credential and delivers it once to the
display's temporary room. Unknown, used and expired codes are
indistinguishable to the caller.

The registry is confined to the event loop: none of its methods await, so
mutations never interleave.
"""
import logging
import re
import time
from typing import Any, Callable, Dict, Optional

from callpanel.auth.tokens import issue_client_token
from callpanel.config import CLIENT_TOKEN_TTL_SECONDS, PAIRING_CODE_TTL_SECONDS
from callpanel.errors import ExpiredOrInvalidCode

logger = logging.getLogger("callpanel.pairing")

CODE_PATTERN = re.compile(r"^\d{6}$")
PAIRED_EVENT = "paired"

Emitter = Callable[[str, str, Dict[str, Any]], Any]


def pairing_room(code: str) -> str:
    return f"pairing-{code}"


def is_valid_code(code: Any) -> bool:
    return isinstance(code, str) and bool(CODE_PATTERN.match(code))


class PairingRegistry:
    def __init__(
        self,
        emit: Emitter,
        clock: Callable[[], float] = time.monotonic,
        default_ttl: int = PAIRING_CODE_TTL_SECONDS,
        token_ttl: int = CLIENT_TOKEN_TTL_SECONDS,
    ):
        self._emit = emit
        self._clock = clock
        self._default_ttl = default_ttl
        self._token_ttl = token_ttl
        self._codes: Dict[str, float] = {}

    def register(self, code: str, ttl_seconds: Optional[int] = None) -> float:
        """Insert or refresh a code; returns its expiry on the registry clock"""
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        expires_at = self._clock() + ttl
        self._codes[code] = expires_at
        logger.info("Pairing code registered", extra={"component": "pairing", "code": code, "ttl": ttl})
        return expires_at

    def validate(self, code: str, channel_slug: str, channel_secret: str) -> str:
        """Consume a pending code and deliver a credential scoped to the channel.

        Returns the issued token. Raises ExpiredOrInvalidCode when the code is
        absent or expired (expired entries are evicted here).
        """
        expires_at = self._codes.get(code)
        if expires_at is None or self._clock() >= expires_at:
            self._codes.pop(code, None)
            logger.warning("Pairing code rejected", extra={"component": "pairing", "code": code})
            raise ExpiredOrInvalidCode()

        token = issue_client_token(channel_slug, channel_secret, self._token_ttl)
        self._emit(pairing_room(code), PAIRED_EVENT, {"slug": channel_slug, "token": token})
        del self._codes[code]

        logger.info("Pairing code validated", extra={"component": "pairing", "code": code, "channel": channel_slug})
        return token

    def is_pending(self, code: str) -> bool:
        expires_at = self._codes.get(code)
        return expires_at is not None and self._clock() < expires_at

    def pending_count(self) -> int:
        return len(self._codes)
