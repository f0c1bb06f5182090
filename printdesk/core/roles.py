"""Shared role and ticket status constants."""

ROLE_SUPERVISOR = "supervisor"
ROLE_TECHNICIAN = "technician"
ROLE_CLIENT = "client"

ROLE_CHOICES = (
    ROLE_SUPERVISOR,
    ROLE_TECHNICIAN,
    ROLE_CLIENT,
)

STATUS_OPEN = "Open"
STATUS_ASSIGNED = "Assigned"
STATUS_COMPLETED = "Completed"

STATUS_CHOICES = (
    STATUS_OPEN,
    STATUS_ASSIGNED,
    STATUS_COMPLETED,
)

# Tickets in these states can still be resolved by their technician.
RESOLVABLE_STATUSES = {STATUS_OPEN, STATUS_ASSIGNED}


def normalize_role(value: str | None) -> str:
    """Return a lowercase role tag; unknown values fall back to ``client``."""

    role = (value or "").strip().lower()
    return role if role in ROLE_CHOICES else ROLE_CLIENT


__all__ = [
    "RESOLVABLE_STATUSES",
    "ROLE_CHOICES",
    "ROLE_CLIENT",
    "ROLE_SUPERVISOR",
    "ROLE_TECHNICIAN",
    "STATUS_ASSIGNED",
    "STATUS_CHOICES",
    "STATUS_COMPLETED",
    "STATUS_OPEN",
    "normalize_role",
]
