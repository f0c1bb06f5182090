"""Profile lookups. Profiles are provisioned externally; ``create_profile`` exists for seeding."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.roles import ROLE_TECHNICIAN, normalize_role
from ..models.profile import Profile


def get_profile(db: Session, profile_id: str) -> Profile | None:
    return db.get(Profile, profile_id)


def list_technicians(db: Session) -> list[Profile]:
    stmt = select(Profile).where(Profile.role == ROLE_TECHNICIAN).order_by(Profile.full_name)
    return list(db.execute(stmt).scalars().all())


def create_profile(db: Session, *, full_name: str, role: str, profile_id: str | None = None) -> Profile:
    profile = Profile(full_name=(full_name or "").strip(), role=normalize_role(role))
    if profile_id:
        profile.id = profile_id
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile
