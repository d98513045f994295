"""
Pricing API Routes - price lists, price list items and taxes
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from divecenter.core.database import get_db
from divecenter.core.security import get_current_active_user, RoleChecker
from divecenter.core.pagination import paginate
from divecenter.schemas import (
    PriceListCreate, PriceListUpdate, PriceListResponse, PriceListDetail,
    PriceListItemCreate, PriceListItemUpdate, PriceListItemResponse, PriceListItemBulkUpdate,
    PriceQuote, CustomerTypeEnum, TaxCreate, TaxUpdate, TaxResponse, MessageResponse
)
from divecenter.services.pricing_service import (
    PriceListService, PriceListItemService, DivePricingService, TaxService, DIVE_TRIP
)
from divecenter.services.customer_service import CustomerService
from divecenter.services.dive_center_service import DiveCenterService

router = APIRouter(prefix="/price-lists", tags=["Price Lists"])
items_router = APIRouter(prefix="/price-list-items", tags=["Price List Items"])
taxes_router = APIRouter(prefix="/taxes", tags=["Taxes"])

admin_only = [Depends(RoleChecker(["Admin"]))]


# ==================== PRICE LISTS ====================

@router.get("")
async def list_price_lists(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    query = PriceListService(db).query_by_dive_center(current_user.dive_center_id)
    return paginate(query, page, per_page, PriceListResponse.model_validate)


def _detail(db: Session, price_list_id: int, dive_center_id: int) -> PriceListDetail:
    price_list = PriceListService(db).get_detail(price_list_id, dive_center_id)
    if not price_list:
        raise HTTPException(status_code=404, detail="Price list not found")
    detail = PriceListDetail.model_validate(price_list)
    dive_center = DiveCenterService(db).get_by_id(dive_center_id)
    detail.base_currency = dive_center.currency if dive_center and dive_center.currency else "USD"
    return detail


@router.post("", response_model=PriceListDetail, status_code=201, dependencies=admin_only)
async def create_price_list(
    data: PriceListCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    price_list = PriceListService(db).create(data, current_user.dive_center_id)
    db.commit()
    return _detail(db, price_list.id, current_user.dive_center_id)


@router.get("/{price_list_id}", response_model=PriceListDetail)
async def get_price_list(
    price_list_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    return _detail(db, price_list_id, current_user.dive_center_id)


@router.put("/{price_list_id}", response_model=PriceListDetail, dependencies=admin_only)
async def update_price_list(
    price_list_id: int,
    data: PriceListUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    if not PriceListService(db).update(price_list_id, data, current_user.dive_center_id):
        raise HTTPException(status_code=404, detail="Price list not found")
    db.commit()
    return _detail(db, price_list_id, current_user.dive_center_id)


@router.delete("/{price_list_id}", response_model=MessageResponse, dependencies=admin_only)
async def delete_price_list(
    price_list_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    """Delete a price list with its items; invoiced lines keep their copied prices"""
    if not PriceListService(db).delete(price_list_id, current_user.dive_center_id):
        raise HTTPException(status_code=404, detail="Price list not found")
    db.commit()
    return {"message": "Price list deleted"}


# ==================== PRICE LIST ITEMS ====================

@items_router.get("", response_model=List[PriceListItemResponse])
async def list_price_list_items(
    price_list_id: int = None,
    service_type: str = None,
    is_active: Optional[bool] = None,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    return PriceListItemService(db).query_by_dive_center(
        current_user.dive_center_id, price_list_id, service_type, is_active
    ).all()


@items_router.post("", response_model=PriceListItemResponse, status_code=201, dependencies=admin_only)
async def create_price_list_item(
    data: PriceListItemCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    """Add an item; without a price_list_id it goes to the default price list"""
    try:
        item = PriceListItemService(db).create(data, current_user.dive_center_id)
        db.commit()
        return item
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@items_router.post("/bulk", response_model=List[PriceListItemResponse], dependencies=admin_only)
async def bulk_update_price_list_items(
    data: PriceListItemBulkUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        items = PriceListItemService(db).bulk_update(data.items, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    return items


def _customer_type(db: Session, dive_center_id: int, customer_id: Optional[int],
                   customer_type: Optional[CustomerTypeEnum]) -> Optional[str]:
    if customer_id:
        if not CustomerService(db).get_by_id(customer_id, dive_center_id):
            raise HTTPException(status_code=404, detail="Customer not found")
        return DivePricingService(db).customer_type(customer_id)
    return customer_type.value if customer_type else None


@items_router.get("/best-price", response_model=PriceQuote)
async def get_best_price(
    dive_count: int = Query(..., ge=1),
    service_type: str = DIVE_TRIP,
    customer_id: int = None,
    customer_type: Optional[CustomerTypeEnum] = None,
    on: date = None,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    """Price of the dive_count-th dive for a customer or customer type"""
    pricing = DivePricingService(db)
    match = pricing.best_price(
        current_user.dive_center_id, dive_count, service_type,
        customer_type=_customer_type(db, current_user.dive_center_id, customer_id, customer_type),
        on=on,
    )
    if not match:
        raise HTTPException(status_code=404, detail=f"No {service_type} price for {dive_count} dives")
    return pricing.quote(*match)


@items_router.get("/suggestions", response_model=List[PriceQuote])
async def get_price_suggestions(
    dive_count: int = Query(..., ge=1),
    service_type: str = DIVE_TRIP,
    customer_id: int = None,
    customer_type: Optional[CustomerTypeEnum] = None,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    return DivePricingService(db).suggestions(
        current_user.dive_center_id, dive_count, service_type,
        customer_type=_customer_type(db, current_user.dive_center_id, customer_id, customer_type),
    )


@items_router.get("/{item_id}", response_model=PriceListItemResponse)
async def get_price_list_item(
    item_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    item = PriceListItemService(db).get_by_id(item_id, current_user.dive_center_id)
    if not item:
        raise HTTPException(status_code=404, detail="Price list item not found")
    return item


@items_router.put("/{item_id}", response_model=PriceListItemResponse, dependencies=admin_only)
async def update_price_list_item(
    item_id: int,
    data: PriceListItemUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        item = PriceListItemService(db).update(item_id, data, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not item:
        raise HTTPException(status_code=404, detail="Price list item not found")
    db.commit()
    return item


@items_router.delete("/{item_id}", response_model=MessageResponse, dependencies=admin_only)
async def delete_price_list_item(
    item_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    if not PriceListItemService(db).delete(item_id, current_user.dive_center_id):
        raise HTTPException(status_code=404, detail="Price list item not found")
    db.commit()
    return {"message": "Price list item deleted"}


# ==================== TAXES ====================

@taxes_router.get("", response_model=List[TaxResponse])
async def list_taxes(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    return TaxService(db).get_by_dive_center(current_user.dive_center_id)


@taxes_router.post("", response_model=TaxResponse, status_code=201, dependencies=admin_only)
async def create_tax(
    data: TaxCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        tax = TaxService(db).create(data, current_user.dive_center_id)
        db.commit()
        return tax
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@taxes_router.get("/{tax_id}", response_model=TaxResponse)
async def get_tax(
    tax_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    tax = TaxService(db).get_by_id(tax_id, current_user.dive_center_id)
    if not tax:
        raise HTTPException(status_code=404, detail="Tax not found")
    return tax


@taxes_router.put("/{tax_id}", response_model=TaxResponse, dependencies=admin_only)
async def update_tax(
    tax_id: int,
    data: TaxUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    try:
        tax = TaxService(db).update(tax_id, data, current_user.dive_center_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not tax:
        raise HTTPException(status_code=404, detail="Tax not found")
    db.commit()
    return tax


@taxes_router.delete("/{tax_id}", response_model=MessageResponse, dependencies=admin_only)
async def delete_tax(
    tax_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_active_user)
):
    if not TaxService(db).delete(tax_id, current_user.dive_center_id):
        raise HTTPException(status_code=404, detail="Tax not found")
    db.commit()
    return {"message": "Tax deleted"}
