"""
Payments API Routes - invoice payments and payment methods
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List
from datetime import date

from divecenter.core.database import get_db
from divecenter.core.security import get_current_active_user, RoleChecker
from divecenter.core.pagination import paginate
from divecenter.schemas import (
    PaymentCreate, PaymentUpdate, PaymentResponse,
    PaymentMethodCreate, PaymentMethodUpdate, PaymentMethodResponse, MessageResponse
)
from divecenter.services.payment_service import PaymentService, PaymentMethodService

router = APIRouter(prefix="/payments", tags=["Payments"])
methods_router = APIRouter(prefix="/payment-methods", tags=["Payment Methods"])


@router.get("")
async def list_payments(
    invoice_id: int = None,
    payment_type: str = None,
    start_date: date = None,
    end_date: date = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    query = PaymentService(db).query_by_dive_center(
        current_user.dive_center_id, invoice_id, payment_type, start_date, end_date
    )
    return paginate(query, page, per_page, PaymentResponse.model_validate)


@router.post("", response_model=PaymentResponse, status_code=201)
async def create_payment(
    payment_data: PaymentCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    """Record a payment; the invoice status follows the amount paid"""
    try:
        payment = PaymentService(db).create(payment_data, current_user.dive_center_id)
        db.commit()
        return payment
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    payment = PaymentService(db).get_by_id(payment_id, current_user.dive_center_id)
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    return payment


@router.put("/{payment_id}", response_model=PaymentResponse)
async def update_payment(
    payment_id: int,
    payment_data: PaymentUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        payment = PaymentService(db).update(payment_id, payment_data, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    db.commit()
    return payment


@router.delete("/{payment_id}", response_model=MessageResponse, dependencies=[Depends(RoleChecker(["Admin"]))])
async def delete_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    if not PaymentService(db).delete(payment_id, current_user.dive_center_id):
        raise HTTPException(status_code=404, detail="Payment not found")
    db.commit()
    return {"message": "Payment deleted"}


# ==================== PAYMENT METHODS ====================

@methods_router.get("", response_model=List[PaymentMethodResponse])
async def list_payment_methods(
    active_only: bool = False,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    return PaymentMethodService(db).get_by_dive_center(current_user.dive_center_id, active_only)


@methods_router.post("", response_model=PaymentMethodResponse, status_code=201,
                     dependencies=[Depends(RoleChecker(["Admin"]))])
async def create_payment_method(
    data: PaymentMethodCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    method = PaymentMethodService(db).create(data, current_user.dive_center_id)
    db.commit()
    return method


@methods_router.put("/{method_id}", response_model=PaymentMethodResponse,
                    dependencies=[Depends(RoleChecker(["Admin"]))])
async def update_payment_method(
    method_id: int,
    data: PaymentMethodUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    method = PaymentMethodService(db).update(method_id, data, current_user.dive_center_id)
    if not method:
        raise HTTPException(status_code=404, detail="Payment method not found")
    db.commit()
    return method


@methods_router.delete("/{method_id}", response_model=MessageResponse,
                       dependencies=[Depends(RoleChecker(["Admin"]))])
async def delete_payment_method(
    method_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        deleted = PaymentMethodService(db).delete(method_id, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Payment method not found")
    db.commit()
    return {"message": "Payment method deleted"}
