from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security.utils import get_authorization_scheme_param
from sqlalchemy.orm import Session

from ..core.errors import PermissionDenied
from ..core.security import Identity, decode_token
from ..crud.profiles import get_profile
from ..db.session import get_db
from ..middlewares import principal_ctx_var


def _unauthorized(detail: str = "Unauthorized") -> None:
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def identity_from_token(db: Session, token: str) -> Identity:
    """Verify a bearer token and resolve its subject to a profile."""

    payload = decode_token(token)
    profile = get_profile(db, payload.sub)
    if profile is None:
        raise ValueError("Unknown profile")
    return Identity(user_id=profile.id, role=profile.role, full_name=profile.full_name or "")


def _set_principal(request: Request, identity: Identity) -> None:
    principal = f"{identity.role}:{identity.user_id}"
    principal_ctx_var.set(principal)
    request.state.principal = principal


def get_current_identity(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db),
) -> Identity:
    if not authorization:
        _unauthorized("Authorization required")
    scheme, credentials = get_authorization_scheme_param(authorization)
    if scheme.lower() != "bearer" or not credentials:
        _unauthorized("Bearer token required")
    try:
        identity = identity_from_token(db, credentials)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
    _set_principal(request, identity)
    return identity


def require_supervisor(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.is_supervisor:
        raise PermissionDenied("This action is reserved to supervisors")
    return identity
