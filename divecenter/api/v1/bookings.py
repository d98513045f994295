"""
Bookings API Routes - bookings, booking dives, dive sites and boats
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List
from datetime import date

from divecenter.core.database import get_db
from divecenter.core.security import get_current_active_user, RoleChecker
from divecenter.core.pagination import paginate
from divecenter.schemas import (
    BookingCreate, BookingUpdate, BookingResponse, BookingDetail,
    BookingDiveCreate, BookingDiveUpdate, BookingDiveResponse, CompleteDiveRequest,
    DiveSiteCreate, DiveSiteUpdate, DiveSiteResponse,
    BoatCreate, BoatUpdate, BoatResponse, MessageResponse
)
from divecenter.services.booking_service import BookingService, BookingDiveService, DiveSiteService, BoatService

router = APIRouter(prefix="/bookings", tags=["Bookings"])
dives_router = APIRouter(prefix="/booking-dives", tags=["Booking Dives"])
sites_router = APIRouter(prefix="/dive-sites", tags=["Dive Sites"])
boats_router = APIRouter(prefix="/boats", tags=["Boats"])


# ==================== BOOKINGS ====================

@router.get("")
async def list_bookings(
    status: str = None,
    customer_id: int = None,
    dive_group_id: int = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    query = BookingService(db).query_by_dive_center(
        current_user.dive_center_id, status, customer_id, dive_group_id
    )
    return paginate(query, page, per_page, BookingResponse.model_validate)


@router.post("", response_model=BookingResponse, status_code=201)
async def create_booking(
    booking_data: BookingCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        booking = BookingService(db).create(booking_data, current_user.dive_center_id)
        db.commit()
        return booking
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{booking_id}", response_model=BookingDetail)
async def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    booking = BookingService(db).get_detail(booking_id, current_user.dive_center_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


@router.put("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: int,
    booking_data: BookingUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        booking = BookingService(db).update(booking_id, booking_data, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    db.commit()
    return booking


@router.delete("/{booking_id}", response_model=MessageResponse, dependencies=[Depends(RoleChecker(["Admin"]))])
async def delete_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        deleted = BookingService(db).delete(booking_id, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Booking not found")
    db.commit()
    return {"message": "Booking deleted"}


# ==================== BOOKING DIVES ====================

@dives_router.get("")
async def list_booking_dives(
    booking_id: int = None,
    status: str = None,
    dive_date: date = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    query = BookingDiveService(db).query_by_dive_center(
        current_user.dive_center_id, booking_id, status, dive_date
    )
    return paginate(query, page, per_page, BookingDiveResponse.model_validate)


@dives_router.post("", response_model=BookingDiveResponse, status_code=201)
async def create_booking_dive(
    dive_data: BookingDiveCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        dive = BookingDiveService(db).create(dive_data, current_user.dive_center_id)
        db.commit()
        return dive
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@dives_router.get("/{dive_id}", response_model=BookingDiveResponse)
async def get_booking_dive(
    dive_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    dive = BookingDiveService(db).get_by_id(dive_id, current_user.dive_center_id)
    if not dive:
        raise HTTPException(status_code=404, detail="Dive not found")
    return dive


@dives_router.put("/{dive_id}", response_model=BookingDiveResponse)
async def update_booking_dive(
    dive_id: int,
    dive_data: BookingDiveUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        dive = BookingDiveService(db).update(dive_id, dive_data, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not dive:
        raise HTTPException(status_code=404, detail="Dive not found")
    db.commit()
    return dive


@dives_router.post("/{dive_id}/complete", response_model=BookingDiveResponse)
async def complete_booking_dive(
    dive_id: int,
    log_data: CompleteDiveRequest,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    """Mark the dive completed and record its dive log"""
    try:
        dive = BookingDiveService(db).complete(dive_id, log_data, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not dive:
        raise HTTPException(status_code=404, detail="Dive not found")
    db.commit()
    return dive


@dives_router.delete("/{dive_id}", response_model=MessageResponse)
async def delete_booking_dive(
    dive_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        deleted = BookingDiveService(db).delete(dive_id, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Dive not found")
    db.commit()
    return {"message": "Dive deleted"}


# ==================== DIVE SITES & BOATS ====================

def _catalog_routes(catalog_router: APIRouter, service_cls, create_schema, update_schema,
                    response_schema, label: str):
    """Plain CRUD for the small per-dive-center catalogs"""

    @catalog_router.get("", response_model=List[response_schema])
    async def list_records(
        db: Session = Depends(get_db),
        current_user=Depends(get_current_active_user)
    ):
        return service_cls(db).get_by_dive_center(current_user.dive_center_id)

    @catalog_router.post("", response_model=response_schema, status_code=status.HTTP_201_CREATED)
    async def create_record(
        data: create_schema,
        db: Session = Depends(get_db),
        current_user=Depends(get_current_active_user)
    ):
        record = service_cls(db).create(data, current_user.dive_center_id)
        db.commit()
        return record

    @catalog_router.get("/{record_id}", response_model=response_schema)
    async def get_record(
        record_id: int,
        db: Session = Depends(get_db),
        current_user=Depends(get_current_active_user)
    ):
        record = service_cls(db).get_by_id(record_id, current_user.dive_center_id)
        if not record:
            raise HTTPException(status_code=404, detail=f"{label} not found")
        return record

    @catalog_router.put("/{record_id}", response_model=response_schema)
    async def update_record(
        record_id: int,
        data: update_schema,
        db: Session = Depends(get_db),
        current_user=Depends(get_current_active_user)
    ):
        record = service_cls(db).update(record_id, data, current_user.dive_center_id)
        if not record:
            raise HTTPException(status_code=404, detail=f"{label} not found")
        db.commit()
        return record

    @catalog_router.delete("/{record_id}", response_model=MessageResponse)
    async def delete_record(
        record_id: int,
        db: Session = Depends(get_db),
        current_user=Depends(get_current_active_user)
    ):
        if not service_cls(db).delete(record_id, current_user.dive_center_id):
            raise HTTPException(status_code=404, detail=f"{label} not found")
        db.commit()
        return {"message": f"{label} deleted"}


_catalog_routes(sites_router, DiveSiteService, DiveSiteCreate, DiveSiteUpdate, DiveSiteResponse, "Dive site")
_catalog_routes(boats_router, BoatService, BoatCreate, BoatUpdate, BoatResponse, "Boat")
