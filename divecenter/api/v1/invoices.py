"""
Invoices API Routes
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from divecenter.core.database import get_db
from divecenter.core.security import get_current_active_user, RoleChecker
from divecenter.core.pagination import paginate
from divecenter.schemas import (
    InvoiceCreate, InvoiceUpdate, InvoiceResponse, InvoiceDetail,
    InvoiceItemCreate, InvoiceItemResponse, InvoiceFromBookingRequest,
    DamageChargeRequest, MessageResponse
)
from divecenter.services.invoice_service import InvoiceService

router = APIRouter(prefix="/invoices", tags=["Invoices"])


def _detail(service: InvoiceService, invoice) -> dict:
    """Invoice with items, payments, breakdown and consistency flag"""
    breakdown, consistent = service.get_breakdown(invoice)
    detail = InvoiceDetail.model_validate(invoice).model_dump()
    detail["breakdown"] = breakdown.to_dict()
    detail["is_consistent"] = consistent
    return detail


@router.get("")
async def list_invoices(
    status: str = None,
    customer_id: int = None,
    invoice_type: str = None,
    booking_id: int = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    query = InvoiceService(db).query_by_dive_center(
        current_user.dive_center_id, status, customer_id, invoice_type, booking_id
    )
    return paginate(query, page, per_page, InvoiceResponse.model_validate)


@router.get("/next-number")
async def get_next_invoice_number(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    return {"next_number": InvoiceService(db).get_next_number(current_user.dive_center_id)}


@router.post("", response_model=InvoiceDetail, status_code=201)
async def create_invoice(
    invoice_data: InvoiceCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    service = InvoiceService(db)
    try:
        invoice = service.create(invoice_data, current_user.dive_center_id)
        db.commit()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _detail(service, invoice)


@router.post("/from-booking", response_model=InvoiceDetail, status_code=201)
async def create_invoice_from_booking(
    request: InvoiceFromBookingRequest,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    """Bill every dive and center rental of a booking not invoiced yet"""
    service = InvoiceService(db)
    try:
        invoice = service.generate_from_booking(request, current_user.dive_center_id)
        db.commit()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _detail(service, invoice)


@router.get("/{invoice_id}", response_model=InvoiceDetail)
async def get_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    service = InvoiceService(db)
    invoice = service.get_detail(invoice_id, current_user.dive_center_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return _detail(service, invoice)


@router.put("/{invoice_id}", response_model=InvoiceDetail)
async def update_invoice(
    invoice_id: int,
    invoice_data: InvoiceUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    """
    Update dates, notes and discount. Explicit tax or service_charge values
    replace the configured percentages unless recalculate is set.
    """
    service = InvoiceService(db)
    try:
        invoice = service.update(invoice_id, invoice_data, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    db.commit()
    return _detail(service, invoice)


@router.delete("/{invoice_id}", response_model=MessageResponse, dependencies=[Depends(RoleChecker(["Admin"]))])
async def delete_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        deleted = InvoiceService(db).delete(invoice_id, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Invoice not found")
    db.commit()
    return {"message": "Invoice deleted"}


@router.post("/{invoice_id}/recalculate", response_model=InvoiceDetail)
async def recalculate_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    """Re-derive item totals, charges and total from the current settings"""
    service = InvoiceService(db)
    try:
        invoice = service.recalculate_by_id(invoice_id, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    db.commit()
    return _detail(service, invoice)


@router.post("/{invoice_id}/items", response_model=InvoiceItemResponse, status_code=201)
async def add_invoice_item(
    invoice_id: int,
    item_data: InvoiceItemCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        item = InvoiceService(db).add_item(invoice_id, item_data, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not item:
        raise HTTPException(status_code=404, detail="Invoice not found")
    db.commit()
    return item


@router.delete("/{invoice_id}/items/{item_id}", response_model=InvoiceDetail)
async def delete_invoice_item(
    invoice_id: int,
    item_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    service = InvoiceService(db)
    try:
        invoice = service.delete_item(invoice_id, item_id, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    db.commit()
    return _detail(service, invoice)


@router.post("/{invoice_id}/damage-charges", response_model=InvoiceItemResponse, status_code=201)
async def add_damage_charge(
    invoice_id: int,
    charge: DamageChargeRequest,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    """Bill reported damage on equipment from this invoice's booking"""
    try:
        item = InvoiceService(db).add_damage_charge(
            invoice_id, charge.booking_equipment_id, current_user.dive_center_id
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not item:
        raise HTTPException(status_code=404, detail="Invoice not found")
    db.commit()
    return item
