"""Bearer token verification for identities issued by the external provider."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from .config import settings
from .roles import ROLE_SUPERVISOR, ROLE_TECHNICIAN

ALGORITHM = "HS256"


@dataclass(frozen=True)
class Identity:
    """The authenticated user the core acts on behalf of."""

    user_id: str
    role: str
    full_name: str = ""

    @property
    def is_supervisor(self) -> bool:
        return self.role == ROLE_SUPERVISOR

    @property
    def is_technician(self) -> bool:
        return self.role == ROLE_TECHNICIAN


class TokenPayload(BaseModel):
    sub: str
    exp: datetime
    iat: datetime
    aud: str
    iss: str


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def issue_access_token(subject: str, expires_delta: timedelta | None = None) -> str:
    """Mint a token the way the identity provider does. Used by tests and local tooling."""

    now = _now()
    delta = expires_delta or timedelta(minutes=settings.JWT_ACCESS_TTL_MIN)
    payload: dict[str, Any] = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int((now + delta).timestamp()),
        "aud": settings.JWT_AUDIENCE,
        "iss": settings.JWT_ISSUER,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=ALGORITHM)


def decode_token(token: str) -> TokenPayload:
    try:
        decoded = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
        )
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    try:
        return TokenPayload.model_validate(decoded)
    except ValidationError as exc:
        raise ValueError("Invalid token payload") from exc
