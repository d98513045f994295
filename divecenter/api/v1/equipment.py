"""
Equipment API Routes - catalog, items and service history
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List

from divecenter.core.database import get_db
from divecenter.core.security import get_current_active_user, RoleChecker
from divecenter.core.pagination import paginate
from divecenter.schemas import (
    EquipmentCreate, EquipmentUpdate, EquipmentResponse,
    EquipmentItemCreate, EquipmentItemUpdate, EquipmentItemResponse,
    ServiceHistoryCreate, ServiceHistoryUpdate, ServiceHistoryResponse,
    BulkServiceCreate, BulkServiceResponse, MessageResponse
)
from divecenter.services.equipment_service import EquipmentService, EquipmentItemService, ServiceHistoryService

router = APIRouter(prefix="/equipment", tags=["Equipment"])
items_router = APIRouter(prefix="/equipment-items", tags=["Equipment Items"])
service_router = APIRouter(prefix="/equipment-service-history", tags=["Equipment Service"])


# ==================== EQUIPMENT CATALOG ====================

@router.get("")
async def list_equipment(
    category: str = None,
    active: bool = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    query = EquipmentService(db).query_by_dive_center(current_user.dive_center_id, category, active)
    return paginate(query, page, per_page, EquipmentResponse.model_validate)


@router.post("", response_model=EquipmentResponse, status_code=201)
async def create_equipment(
    data: EquipmentCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    equipment = EquipmentService(db).create(data, current_user.dive_center_id)
    db.commit()
    return equipment


@router.get("/{equipment_id}", response_model=EquipmentResponse)
async def get_equipment(
    equipment_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    equipment = EquipmentService(db).get_by_id(equipment_id, current_user.dive_center_id)
    if not equipment:
        raise HTTPException(status_code=404, detail="Equipment not found")
    return equipment


@router.put("/{equipment_id}", response_model=EquipmentResponse)
async def update_equipment(
    equipment_id: int,
    data: EquipmentUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    equipment = EquipmentService(db).update(equipment_id, data, current_user.dive_center_id)
    if not equipment:
        raise HTTPException(status_code=404, detail="Equipment not found")
    db.commit()
    return equipment


@router.delete("/{equipment_id}", response_model=MessageResponse, dependencies=[Depends(RoleChecker(["Admin"]))])
async def delete_equipment(
    equipment_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        deleted = EquipmentService(db).delete(equipment_id, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Equipment not found")
    db.commit()
    return {"message": "Equipment deleted"}


# ==================== EQUIPMENT ITEMS ====================

@items_router.get("")
async def list_equipment_items(
    equipment_id: int = None,
    status: str = None,
    search: str = None,
    overdue: bool = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    """List items; overdue=true keeps only items whose service is due"""
    query = EquipmentItemService(db).query_by_dive_center(
        current_user.dive_center_id, equipment_id, status, search, overdue
    )
    return paginate(query, page, per_page, EquipmentItemResponse.model_validate)


@items_router.post("", response_model=EquipmentItemResponse, status_code=201)
async def create_equipment_item(
    data: EquipmentItemCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        item = EquipmentItemService(db).create(data, current_user.dive_center_id)
        db.commit()
        return item
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@items_router.get("/{item_id}", response_model=EquipmentItemResponse)
async def get_equipment_item(
    item_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    item = EquipmentItemService(db).get_by_id(item_id, current_user.dive_center_id)
    if not item:
        raise HTTPException(status_code=404, detail="Equipment item not found")
    return item


@items_router.put("/{item_id}", response_model=EquipmentItemResponse)
async def update_equipment_item(
    item_id: int,
    data: EquipmentItemUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    item = EquipmentItemService(db).update(item_id, data, current_user.dive_center_id)
    if not item:
        raise HTTPException(status_code=404, detail="Equipment item not found")
    db.commit()
    return item


@items_router.delete("/{item_id}", response_model=MessageResponse, dependencies=[Depends(RoleChecker(["Admin"]))])
async def delete_equipment_item(
    item_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        deleted = EquipmentItemService(db).delete(item_id, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Equipment item not found")
    db.commit()
    return {"message": "Equipment item deleted"}


# ==================== SERVICE HISTORY ====================

@items_router.get("/{item_id}/service-history", response_model=List[ServiceHistoryResponse])
async def list_service_history(
    item_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        return ServiceHistoryService(db).get_by_item(item_id, current_user.dive_center_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@items_router.post("/{item_id}/service-history", response_model=ServiceHistoryResponse, status_code=201)
async def create_service_history(
    item_id: int,
    data: ServiceHistoryCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    """Record a service; the item's last/next service dates follow"""
    try:
        record = ServiceHistoryService(db).create(item_id, data, current_user.dive_center_id)
        db.commit()
        return record
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@items_router.put("/{item_id}/service-history/{record_id}", response_model=ServiceHistoryResponse)
async def update_service_history(
    item_id: int,
    record_id: int,
    data: ServiceHistoryUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        record = ServiceHistoryService(db).update(record_id, item_id, data, current_user.dive_center_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if not record:
        raise HTTPException(status_code=404, detail="Service record not found")
    db.commit()
    return record


@items_router.delete("/{item_id}/service-history/{record_id}", response_model=MessageResponse)
async def delete_service_history(
    item_id: int,
    record_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        deleted = ServiceHistoryService(db).delete(record_id, item_id, current_user.dive_center_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Service record not found")
    db.commit()
    return {"message": "Service record deleted"}


@service_router.post("/bulk", response_model=BulkServiceResponse, status_code=201)
async def bulk_service(
    data: BulkServiceCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    """Apply one service event to several items in a single transaction"""
    try:
        records = ServiceHistoryService(db).bulk_create(data, current_user.dive_center_id)
        db.commit()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "success": True,
        "message": f"Service recorded for {len(records)} items",
        "records": records
    }
