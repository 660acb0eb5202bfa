"""
Signed access, refresh and unsubscribe tokens (python-jose, HS256 by default).
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

from jose import JWTError, jwt

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"
UNSUBSCRIBE_TOKEN_TYPE = "unsubscribe"


@dataclass
class TokenPayload:
    """Decoded JWT claims."""

    sub: str  # User ID
    exp: datetime
    iat: datetime
    type: str  # "access", "refresh" or "unsubscribe"
    email: str | None = None
    role: str | None = None
    jti: str | None = None


class TokenService:
    """Issues and validates the access/refresh token pair and email-link tokens."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        access_token_expire_minutes: int = 30,
        refresh_token_expire_days: int = 7,
        unsubscribe_token_expire_days: int = 90,
    ):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._access_ttl = timedelta(minutes=access_token_expire_minutes)
        self._refresh_ttl = timedelta(days=refresh_token_expire_days)
        self._unsubscribe_ttl = timedelta(days=unsubscribe_token_expire_days)

    def _encode(self, user_id: str, token_type: str, ttl: timedelta, **claims: Any) -> str:
        now = datetime.now(UTC)
        payload = {"sub": user_id, "exp": now + ttl, "iat": now, "type": token_type}
        payload.update({key: value for key, value in claims.items() if value})
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def create_access_token(
        self,
        user_id: str,
        email: str | None = None,
        role: str | None = None,
    ) -> str:
        """Short-lived token carrying the user's email and role."""
        return self._encode(user_id, ACCESS_TOKEN_TYPE, self._access_ttl, email=email, role=role)

    def create_refresh_token(self, user_id: str) -> str:
        return self._encode(user_id, REFRESH_TOKEN_TYPE, self._refresh_ttl)

    def create_token_pair(
        self,
        user_id: str,
        email: str | None = None,
        role: str | None = None,
    ) -> tuple[str, str]:
        return (
            self.create_access_token(user_id, email, role),
            self.create_refresh_token(user_id),
        )

    def create_unsubscribe_token(self, user_id: str) -> str:
        """Long-lived email-link token; the ``jti`` lets it be revoked once used."""
        return self._encode(
            user_id, UNSUBSCRIBE_TOKEN_TYPE, self._unsubscribe_ttl, jti=uuid4().hex
        )

    def decode_token(self, token: str) -> TokenPayload | None:
        """None for a bad signature, an expired token, or missing claims."""
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except JWTError:
            return None

        if any(claim not in payload for claim in ("sub", "exp", "type")):
            return None

        return TokenPayload(
            sub=payload["sub"],
            exp=datetime.fromtimestamp(payload["exp"], tz=UTC),
            iat=datetime.fromtimestamp(payload.get("iat", 0), tz=UTC),
            type=payload["type"],
            email=payload.get("email"),
            role=payload.get("role"),
            jti=payload.get("jti"),
        )

    def verify_access_token(self, token: str) -> TokenPayload | None:
        payload = self.decode_token(token)
        if payload and payload.type == ACCESS_TOKEN_TYPE:
            return payload
        return None

    def verify_refresh_token(self, token: str) -> TokenPayload | None:
        payload = self.decode_token(token)
        if payload and payload.type == REFRESH_TOKEN_TYPE:
            return payload
        return None

    def verify_unsubscribe_token(self, token: str) -> TokenPayload | None:
        payload = self.decode_token(token)
        if payload and payload.type == UNSUBSCRIBE_TOKEN_TYPE and payload.jti:
            return payload
        return None
