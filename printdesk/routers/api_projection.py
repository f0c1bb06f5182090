from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.security import Identity
from ..db.session import get_db
from ..deps.auth import get_current_identity
from ..schemas.projection import ProjectionSnapshot
from ..services.overview import calculate_overview
from ..services.projection import ProjectionCache

router = APIRouter(prefix="/api/v1/projection", tags=["projection"])


def load_projection(identity: Identity, db: Session) -> ProjectionCache:
    """Build a one-shot projection for ``identity``; a failed load surfaces as 503."""

    cache = ProjectionCache(identity)
    if not cache.load(db):
        raise cache.last_error
    return cache


@router.get("", response_model=ProjectionSnapshot)
def api_snapshot(
    q: str | None = Query(default=None, description="Filter by serial, model, customer or ticket id"),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    cache = load_projection(identity, db)
    return cache.search(q) if q else cache.snapshot()


@router.get("/overview")
def api_overview(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return calculate_overview(load_projection(identity, db).snapshot())
