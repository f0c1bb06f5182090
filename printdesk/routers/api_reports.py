from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from ..core.security import Identity
from ..db.session import get_db
from ..deps.auth import require_supervisor
from ..services.audit_export import VARIANT_SLA, build_audit_export, export_filename
from .api_projection import load_projection

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


@router.get("/audit.csv", response_class=Response)
def api_audit_export(
    start: date | None = Query(default=None),
    end: date | None = Query(default=None),
    variant: str = Query(default=VARIANT_SLA),
    quote: bool = Query(default=False),
    identity: Identity = Depends(require_supervisor),
    db: Session = Depends(get_db),
) -> Response:
    cache = load_projection(identity, db)
    try:
        content = build_audit_export(cache.tickets, start, end, variant=variant, quote=quote)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    headers = {"Content-Disposition": f'attachment; filename="{export_filename(start, end)}"'}
    return Response(content=content, media_type="text/csv", headers=headers)
