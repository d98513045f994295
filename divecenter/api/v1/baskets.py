"""
Equipment Basket API Routes - baskets and booking equipment assignments
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from divecenter.core.database import get_db
from divecenter.core.security import get_current_active_user, RoleChecker
from divecenter.core.pagination import paginate
from divecenter.schemas import (
    BasketCreate, BasketUpdate, BasketResponse, BasketDetail,
    BulkEquipmentAdd, ReturnBasketRequest, ReturnSelectedRequest, BulkReturnRequest,
    BookingEquipmentCreate, BookingEquipmentUpdate, BookingEquipmentResponse,
    DamageReport, AvailabilityResponse, MessageResponse
)
from divecenter.services.basket_service import BasketService, BookingEquipmentService

router = APIRouter(prefix="/equipment-baskets", tags=["Equipment Baskets"])
equipment_router = APIRouter(prefix="/booking-equipment", tags=["Booking Equipment"])


# ==================== BASKETS ====================

@router.get("")
async def list_baskets(
    status: str = None,
    customer_id: int = None,
    booking_id: int = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    query = BasketService(db).query_by_dive_center(current_user.dive_center_id, status, customer_id, booking_id)
    return paginate(query, page, per_page, BasketResponse.model_validate)


@router.get("/next-number")
async def get_next_basket_number(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    return {"next_number": BasketService(db).get_next_number(current_user.dive_center_id)}


@router.post("", response_model=BasketResponse, status_code=201)
async def create_basket(
    basket_data: BasketCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        basket = BasketService(db).create(basket_data, current_user.dive_center_id)
        db.commit()
        return basket
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{basket_id}", response_model=BasketDetail)
async def get_basket(
    basket_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    basket = BasketService(db).get_detail(basket_id, current_user.dive_center_id)
    if not basket:
        raise HTTPException(status_code=404, detail="Basket not found")
    return basket


@router.put("/{basket_id}", response_model=BasketResponse)
async def update_basket(
    basket_id: int,
    basket_data: BasketUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        basket = BasketService(db).update(basket_id, basket_data, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not basket:
        raise HTTPException(status_code=404, detail="Basket not found")
    db.commit()
    return basket


@router.delete("/{basket_id}", response_model=MessageResponse, dependencies=[Depends(RoleChecker(["Admin"]))])
async def delete_basket(
    basket_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        deleted = BasketService(db).delete(basket_id, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Basket not found")
    db.commit()
    return {"message": "Basket deleted"}


@router.post("/{basket_id}/return", response_model=BasketDetail)
async def return_basket(
    basket_id: int,
    return_data: Optional[ReturnBasketRequest] = None,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    """Return every checked-out item of the basket and close it"""
    damage = return_data.damage if return_data else {}
    try:
        basket = BasketService(db).return_basket(basket_id, damage, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not basket:
        raise HTTPException(status_code=404, detail="Basket not found")
    db.commit()
    return BasketService(db).get_detail(basket_id, current_user.dive_center_id)


@router.post("/{basket_id}/return-selected", response_model=BasketDetail)
async def return_selected(
    basket_id: int,
    return_data: ReturnSelectedRequest,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    """Return only the listed items; the basket closes once nothing is left out"""
    try:
        basket = BasketService(db).return_selected(
            basket_id, return_data.equipment_ids, return_data.damage, current_user.dive_center_id
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not basket:
        raise HTTPException(status_code=404, detail="Basket not found")
    db.commit()
    return BasketService(db).get_detail(basket_id, current_user.dive_center_id)


@router.post("/{basket_id}/equipment/bulk", response_model=List[BookingEquipmentResponse], status_code=201)
async def bulk_add_equipment(
    basket_id: int,
    bulk_data: BulkEquipmentAdd,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    """Add several Center or Customer Own items at once; all or nothing"""
    try:
        rows = BasketService(db).bulk_add(basket_id, bulk_data.items, current_user.dive_center_id)
        db.commit()
        return rows
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ==================== BOOKING EQUIPMENT ====================

@equipment_router.get("")
async def list_booking_equipment(
    basket_id: int = None,
    booking_id: int = None,
    assignment_status: str = None,
    equipment_source: str = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    query = BookingEquipmentService(db).query_by_dive_center(
        current_user.dive_center_id, basket_id, booking_id, assignment_status, equipment_source
    )
    return paginate(query, page, per_page, BookingEquipmentResponse.model_validate)


@equipment_router.get("/availability", response_model=AvailabilityResponse)
async def check_availability(
    equipment_item_id: int,
    checkout_date: date,
    return_date: date = None,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    """Whether a center item is free for the given dates"""
    try:
        return BookingEquipmentService(db).check_availability(
            equipment_item_id, checkout_date, return_date, current_user.dive_center_id
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@equipment_router.post("/bulk-return", response_model=List[BookingEquipmentResponse])
async def bulk_return(
    return_data: BulkReturnRequest,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        rows = BookingEquipmentService(db).bulk_return(
            return_data.equipment_ids, return_data.damage, current_user.dive_center_id
        )
        db.commit()
        return rows
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@equipment_router.post("", response_model=BookingEquipmentResponse, status_code=201)
async def create_booking_equipment(
    data: BookingEquipmentCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        row = BookingEquipmentService(db).create(data, current_user.dive_center_id)
        db.commit()
        return row
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@equipment_router.get("/{equipment_id}", response_model=BookingEquipmentResponse)
async def get_booking_equipment(
    equipment_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    row = BookingEquipmentService(db).get_by_id(equipment_id, current_user.dive_center_id)
    if not row:
        raise HTTPException(status_code=404, detail="Booking equipment not found")
    return row


@equipment_router.put("/{equipment_id}", response_model=BookingEquipmentResponse)
async def update_booking_equipment(
    equipment_id: int,
    data: BookingEquipmentUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        row = BookingEquipmentService(db).update(equipment_id, data, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not row:
        raise HTTPException(status_code=404, detail="Booking equipment not found")
    db.commit()
    return row


@equipment_router.post("/{equipment_id}/return", response_model=BookingEquipmentResponse)
async def return_booking_equipment(
    equipment_id: int,
    report: Optional[DamageReport] = None,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        row = BookingEquipmentService(db).return_one(equipment_id, report, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not row:
        raise HTTPException(status_code=404, detail="Booking equipment not found")
    db.commit()
    return row


@equipment_router.post("/{equipment_id}/lost", response_model=BookingEquipmentResponse)
async def mark_booking_equipment_lost(
    equipment_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        row = BookingEquipmentService(db).mark_lost(equipment_id, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not row:
        raise HTTPException(status_code=404, detail="Booking equipment not found")
    db.commit()
    return row


@equipment_router.delete("/{equipment_id}", response_model=MessageResponse)
async def delete_booking_equipment(
    equipment_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        deleted = BookingEquipmentService(db).delete(equipment_id, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Booking equipment not found")
    db.commit()
    return {"message": "Booking equipment deleted"}
