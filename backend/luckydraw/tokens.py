# luckydraw/tokens.py
"""Stateless signed tokens: ``issuedAtMillis.nonceHex.hmacSha256Hex``.

Validity depends only on the token text, the secret, the clock and the
TTL. There is no server-side store, so a token cannot be revoked; logging
out just drops the cookie.
"""
import hashlib
import hmac
import math
import secrets
import time
from dataclasses import dataclass
from typing import Optional

from .config import (
    ADMIN_SESSION_COOKIE,
    ADMIN_SESSION_TTL_MS,
    DRAW_LOCK_COOKIE,
    DRAW_LOCK_TTL_MS,
)

NONCE_BYTES = 8


def now_ms() -> int:
    return int(time.time() * 1000)


def _sign(payload: str, secret: str) -> str:
    return hmac.new(secret.encode(), payload.encode(), hashlib.sha256).hexdigest()


@dataclass(frozen=True)
class SignedToken:
    issued_at: str
    nonce: str
    signature: str

    @property
    def payload(self) -> str:
        return f"{self.issued_at}.{self.nonce}"

    def serialize(self) -> str:
        return f"{self.payload}.{self.signature}"

    @classmethod
    def parse(cls, token: str) -> Optional["SignedToken"]:
        parts = token.split(".")
        if len(parts) != 3:
            return None
        return cls(*parts)


def issue_token(secret: str, now: Optional[int] = None) -> str:
    issued_at = str(now_ms() if now is None else now)
    nonce = secrets.token_hex(NONCE_BYTES)
    payload = f"{issued_at}.{nonce}"
    return SignedToken(issued_at, nonce, _sign(payload, secret)).serialize()


def _parse_issued_at(raw: str) -> Optional[float]:
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def verify_token(
    token: Optional[str], secret: str, ttl_ms: int, now: Optional[int] = None
) -> bool:
    """True when ``token`` is well formed, unexpired and signed with ``secret``.

    Never raises: anything malformed is simply invalid.
    """
    if not token or not isinstance(token, str):
        return False
    parsed = SignedToken.parse(token)
    if parsed is None:
        return False
    issued_at = _parse_issued_at(parsed.issued_at)
    if issued_at is None:
        return False
    current = now_ms() if now is None else now
    if current - issued_at > ttl_ms:
        return False
    expected = _sign(parsed.payload, secret)
    try:
        return hmac.compare_digest(expected, parsed.signature)
    except TypeError:
        # non-ASCII signature text
        return False


@dataclass(frozen=True)
class TokenSigner:
    """A token kind bound to its cookie name and lifetime."""

    cookie_name: str
    ttl_ms: int

    @property
    def max_age_seconds(self) -> int:
        return self.ttl_ms // 1000

    def issue(self, secret: str, now: Optional[int] = None) -> str:
        return issue_token(secret, now)

    def verify(self, token: Optional[str], secret: str, now: Optional[int] = None) -> bool:
        return verify_token(token, secret, self.ttl_ms, now)


ADMIN_SESSION = TokenSigner(cookie_name=ADMIN_SESSION_COOKIE, ttl_ms=ADMIN_SESSION_TTL_MS)
DRAW_LOCK = TokenSigner(cookie_name=DRAW_LOCK_COOKIE, ttl_ms=DRAW_LOCK_TTL_MS)
