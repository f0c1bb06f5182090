from __future__ import annotations

from ..core.errors import PermissionDenied
from ..core.security import Identity


def require_supervisor(identity: Identity, action: str) -> None:
    """Fleet, customer and audit administration is reserved to supervisors."""

    if not identity.is_supervisor:
        raise PermissionDenied(f"Only supervisors can {action}")
