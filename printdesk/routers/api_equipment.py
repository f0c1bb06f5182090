from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ..core.security import Identity
from ..crud.equipment import create_equipment, link_equipment, list_equipment
from ..db.session import get_db
from ..deps.auth import get_current_identity, require_supervisor
from ..schemas.equipment import EquipmentCreate, EquipmentLink, EquipmentOut, ImportResultOut
from ..services.bulk_import import decode_payload, import_equipment

router = APIRouter(prefix="/api/v1/equipment", tags=["equipment"])


@router.get("", response_model=list[EquipmentOut], dependencies=[Depends(get_current_identity)])
def api_list(db: Session = Depends(get_db)):
    return [EquipmentOut.model_validate(item) for item in list_equipment(db)]


@router.post("", response_model=EquipmentOut, status_code=201, dependencies=[Depends(require_supervisor)])
def api_create(payload: EquipmentCreate, db: Session = Depends(get_db)):
    try:
        item = create_equipment(db, payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return EquipmentOut.model_validate(item)


@router.post("/import", response_model=ImportResultOut)
async def api_import(
    request: Request,
    identity: Identity = Depends(require_supervisor),
    db: Session = Depends(get_db),
):
    """Bulk import from a raw CSV body (``text/csv`` or ``text/plain``)."""

    raw = await request.body()
    try:
        text = decode_payload(raw)
    except UnicodeDecodeError as exc:
        raise HTTPException(status_code=422, detail="Import payload must be UTF-8 text") from exc
    result = await run_in_threadpool(import_equipment, db, text)
    return ImportResultOut(imported=result.imported, dropped=result.dropped)


@router.patch("/{equipment_id}/customer", response_model=EquipmentOut, dependencies=[Depends(require_supervisor)])
def api_link(equipment_id: str, payload: EquipmentLink, db: Session = Depends(get_db)):
    return EquipmentOut.model_validate(link_equipment(db, equipment_id, payload.customer_id))
