from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..crud.customers import assign_technician, create_customer, list_customers
from ..crud.profiles import list_technicians
from ..db.session import get_db
from ..deps.auth import get_current_identity, require_supervisor
from ..schemas.customer import CustomerCreate, CustomerOut, TechnicianAssignment
from ..schemas.profile import TechnicianOut

router = APIRouter(prefix="/api/v1", tags=["customers"])


@router.get("/customers", response_model=list[CustomerOut], dependencies=[Depends(get_current_identity)])
def api_list_customers(db: Session = Depends(get_db)):
    return [CustomerOut.model_validate(row) for row in list_customers(db)]


@router.post("/customers", response_model=CustomerOut, status_code=201, dependencies=[Depends(require_supervisor)])
def api_create_customer(payload: CustomerCreate, db: Session = Depends(get_db)):
    try:
        customer = create_customer(db, name=payload.name, assigned_tech_id=payload.assigned_tech_id)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return CustomerOut.model_validate(customer)


@router.patch(
    "/customers/{customer_id}/technician",
    response_model=CustomerOut,
    dependencies=[Depends(require_supervisor)],
)
def api_assign_technician(customer_id: str, payload: TechnicianAssignment, db: Session = Depends(get_db)):
    try:
        customer = assign_technician(db, customer_id, payload.technician_id)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return CustomerOut.model_validate(customer)


@router.get("/technicians", response_model=list[TechnicianOut], dependencies=[Depends(get_current_identity)])
def api_list_technicians(db: Session = Depends(get_db)):
    return [TechnicianOut.model_validate(row) for row in list_technicians(db)]
