"""
Pricing Service - Taxes, price lists and dive-count pricing
"""
from datetime import date
from decimal import Decimal
from typing import Optional, List, Tuple, Iterable
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import func
import logging

from divecenter.models import (
    Tax, PriceList, PriceListItem, PriceListItemTier, DiveGroupMember, Booking,
    CustomerType, PricingModel
)
from divecenter.services import invoice_calculator as calc
from divecenter.services.equipment_service import EquipmentItemService

logger = logging.getLogger(__name__)

DIVE_TRIP = "Dive Trip"
DEFAULT_PRICE_LIST = "Default Price List"

SERVICE_CHARGE_NAMES = ("service charge",)
TGST_NAMES = ("t-gst", "tgst")


class TaxService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, tax_id: int, dive_center_id: int) -> Optional[Tax]:
        return self.db.query(Tax).filter(
            Tax.id == tax_id,
            Tax.dive_center_id == dive_center_id
        ).first()

    def get_by_dive_center(self, dive_center_id: int) -> List[Tax]:
        return self.db.query(Tax)\
            .filter(Tax.dive_center_id == dive_center_id)\
            .order_by(Tax.name)\
            .all()

    def _check_name(self, name: str, dive_center_id: int, exclude_id: int = None):
        query = self.db.query(Tax).filter(
            func.lower(Tax.name) == name.lower(),
            Tax.dive_center_id == dive_center_id
        )
        if exclude_id:
            query = query.filter(Tax.id != exclude_id)
        if query.first():
            raise ValueError(f"Tax '{name}' already exists")

    def create(self, data, dive_center_id: int) -> Tax:
        self._check_name(data.name, dive_center_id)
        tax = Tax(**data.model_dump(), dive_center_id=dive_center_id)
        self.db.add(tax)
        self.db.flush()
        return tax

    def update(self, tax_id: int, data, dive_center_id: int) -> Optional[Tax]:
        tax = self.get_by_id(tax_id, dive_center_id)
        if not tax:
            return None

        changes = data.model_dump(exclude_unset=True)
        if changes.get("name"):
            self._check_name(changes["name"], dive_center_id, exclude_id=tax.id)

        for key, value in changes.items():
            setattr(tax, key, value)

        self.db.flush()
        return tax

    def delete(self, tax_id: int, dive_center_id: int) -> bool:
        tax = self.get_by_id(tax_id, dive_center_id)
        if not tax:
            return False
        self.db.delete(tax)
        self.db.flush()
        return True

    def find_percentage(self, dive_center_id: int, names: Iterable[str]) -> Optional[Decimal]:
        """Percentage of the first tax whose name matches, ignoring case"""
        tax = self.db.query(Tax).filter(
            Tax.dive_center_id == dive_center_id,
            func.lower(Tax.name).in_(list(names))
        ).order_by(Tax.id).first()
        return Decimal(str(tax.percentage)) if tax else None

    def service_charge_percentage(self, dive_center_id: int) -> Optional[Decimal]:
        return self.find_percentage(dive_center_id, SERVICE_CHARGE_NAMES)

    def tgst_percentage(self, dive_center_id: int) -> Optional[Decimal]:
        return self.find_percentage(dive_center_id, TGST_NAMES)


class PriceListService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, price_list_id: int, dive_center_id: int) -> Optional[PriceList]:
        return self.db.query(PriceList).filter(
            PriceList.id == price_list_id,
            PriceList.dive_center_id == dive_center_id
        ).first()

    def get_detail(self, price_list_id: int, dive_center_id: int) -> Optional[PriceList]:
        return self.db.query(PriceList)\
            .options(selectinload(PriceList.items).selectinload(PriceListItem.tiers))\
            .filter(PriceList.id == price_list_id, PriceList.dive_center_id == dive_center_id)\
            .first()

    def query_by_dive_center(self, dive_center_id: int):
        return self.db.query(PriceList)\
            .filter(PriceList.dive_center_id == dive_center_id)\
            .order_by(PriceList.created_at.desc(), PriceList.id.desc())

    def get_default(self, dive_center_id: int) -> PriceList:
        """The dive center's first price list, created on first use"""
        price_list = self.db.query(PriceList)\
            .filter(PriceList.dive_center_id == dive_center_id)\
            .order_by(PriceList.id)\
            .first()
        if price_list is None:
            price_list = PriceList(name=DEFAULT_PRICE_LIST, dive_center_id=dive_center_id)
            self.db.add(price_list)
            self.db.flush()
        return price_list

    def create(self, data, dive_center_id: int) -> PriceList:
        price_list = PriceList(**data.model_dump(), dive_center_id=dive_center_id)
        self.db.add(price_list)
        self.db.flush()
        return price_list

    def update(self, price_list_id: int, data, dive_center_id: int) -> Optional[PriceList]:
        price_list = self.get_by_id(price_list_id, dive_center_id)
        if not price_list:
            return None

        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(price_list, key, value)

        self.db.flush()
        return price_list

    def delete(self, price_list_id: int, dive_center_id: int) -> bool:
        price_list = self.get_by_id(price_list_id, dive_center_id)
        if not price_list:
            return False
        self.db.delete(price_list)
        self.db.flush()
        return True


class PriceListItemService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, item_id: int, dive_center_id: int) -> Optional[PriceListItem]:
        return self.db.query(PriceListItem).filter(
            PriceListItem.id == item_id,
            PriceListItem.dive_center_id == dive_center_id
        ).first()

    def query_by_dive_center(self, dive_center_id: int, price_list_id: int = None,
                             service_type: str = None, is_active: bool = None):
        query = self.db.query(PriceListItem)\
            .options(selectinload(PriceListItem.tiers))\
            .filter(PriceListItem.dive_center_id == dive_center_id)
        if price_list_id:
            query = query.filter(PriceListItem.price_list_id == price_list_id)
        if service_type:
            query = query.filter(PriceListItem.service_type == service_type)
        if is_active is not None:
            query = query.filter(PriceListItem.is_active == is_active)
        return query.order_by(PriceListItem.sort_order, PriceListItem.name)

    def _check_equipment_item(self, equipment_item_id: Optional[int], dive_center_id: int):
        if equipment_item_id and not EquipmentItemService(self.db).get_by_id(equipment_item_id, dive_center_id):
            raise ValueError("Equipment item not found")

    @staticmethod
    def _validate(item: PriceListItem):
        """Rules that span fields, checked on the merged state after an update"""
        if item.max_dives is not None and item.max_dives < (item.min_dives or 1):
            raise ValueError(f"{item.name}: max_dives cannot be less than min_dives")
        if item.valid_from and item.valid_until and item.valid_until < item.valid_from:
            raise ValueError(f"{item.name}: valid_until cannot be before valid_from")
        if item.is_tiered and not item.tiers:
            raise ValueError(f"{item.name}: a tiered item needs at least one tier")
        if not item.is_tiered and item.tiers:
            raise ValueError(f"{item.name}: only tiered items can have tiers")

    @staticmethod
    def _set_tiers(item: PriceListItem, tiers):
        item.tiers.clear()
        for tier in tiers:
            item.tiers.append(PriceListItemTier(**tier.model_dump()))

    def create(self, data, dive_center_id: int) -> PriceListItem:
        if data.price_list_id:
            price_list = PriceListService(self.db).get_by_id(data.price_list_id, dive_center_id)
            if not price_list:
                raise ValueError("Price list not found")
        else:
            price_list = PriceListService(self.db).get_default(dive_center_id)
        self._check_equipment_item(data.equipment_item_id, dive_center_id)

        item = PriceListItem(
            **data.model_dump(exclude={"price_list_id", "tiers"}),
            price_list_id=price_list.id,
            dive_center_id=dive_center_id,
        )
        self._set_tiers(item, data.tiers)
        self.db.add(item)
        self.db.flush()
        return item

    def _apply(self, item: PriceListItem, data, dive_center_id: int):
        changes = data.model_dump(exclude_unset=True, exclude={"id", "tiers"})
        if changes.get("equipment_item_id"):
            self._check_equipment_item(changes["equipment_item_id"], dive_center_id)

        for key, value in changes.items():
            setattr(item, key, value)
        if data.tiers is not None:
            self._set_tiers(item, data.tiers)
        self._validate(item)

    def update(self, item_id: int, data, dive_center_id: int) -> Optional[PriceListItem]:
        item = self.get_by_id(item_id, dive_center_id)
        if not item:
            return None

        self._apply(item, data, dive_center_id)
        self.db.flush()
        return item

    def bulk_update(self, lines, dive_center_id: int) -> List[PriceListItem]:
        """Apply several partial updates; an unknown id rejects the whole batch"""
        ids = [line.id for line in lines]
        items = {
            item.id: item for item in self.db.query(PriceListItem).filter(
                PriceListItem.id.in_(ids),
                PriceListItem.dive_center_id == dive_center_id
            )
        }
        unknown = [i for i in ids if i not in items]
        if unknown:
            raise ValueError(f"Price list items {unknown} not found")

        for line in lines:
            self._apply(items[line.id], line, dive_center_id)

        self.db.flush()
        logger.info(f"Bulk updated {len(lines)} price list items for dive center {dive_center_id}")
        return [items[i] for i in dict.fromkeys(ids)]

    def delete(self, item_id: int, dive_center_id: int) -> bool:
        item = self.get_by_id(item_id, dive_center_id)
        if not item:
            return False
        self.db.delete(item)
        self.db.flush()
        return True


class DivePricingService:
    """
    Picks the price of the n-th dive from the price list.

    Single and range items that cover the dive count win first, ordered by
    priority (highest first), then price (lowest first), then the narrowest
    range, then the newest item. Tiered items are only consulted when no
    such item matches, and the cheapest tiered total is taken.
    """

    def __init__(self, db: Session):
        self.db = db

    def customer_type(self, customer_id: Optional[int]) -> str:
        """GROUP for members of any dive group, NON_MEMBER otherwise"""
        if customer_id and self.db.query(DiveGroupMember).filter(
            DiveGroupMember.customer_id == customer_id
        ).first():
            return CustomerType.GROUP.value
        return CustomerType.NON_MEMBER.value

    def booking_customer_type(self, booking: Booking) -> str:
        if booking.customer_id is None and booking.dive_group_id:
            return CustomerType.GROUP.value
        return self.customer_type(booking.customer_id)

    @staticmethod
    def tiered_price(dive_count: int, item: PriceListItem) -> Optional[Decimal]:
        """
        Total for dive_count dives walking the active tiers in order.

        A tier charges its block total_price only when the whole tier is
        used; a partly used tier charges price_per_dive for each dive.
        """
        if not item.is_tiered:
            return None

        tiers = sorted(
            (t for t in item.tiers if t.is_active and t.from_dives <= dive_count),
            key=lambda t: t.from_dives
        )
        total = Decimal("0")
        next_dive = 1
        for tier in tiers:
            start = max(next_dive, tier.from_dives)
            end = min(dive_count, tier.to_dives)
            if start > end:
                continue

            dives = end - start + 1
            if tier.total_price is not None and dives == tier.size:
                total += tier.total_price
            else:
                total += tier.price_per_dive * dives

            next_dive = end + 1
            if next_dive > dive_count:
                break

        return calc.money(total) if total > 0 else None

    def _candidates(self, dive_center_id: int, service_type: str, customer_type: Optional[str],
                    on: date) -> List[PriceListItem]:
        items = self.db.query(PriceListItem)\
            .options(selectinload(PriceListItem.tiers))\
            .filter(
                PriceListItem.dive_center_id == dive_center_id,
                PriceListItem.service_type == service_type,
                PriceListItem.is_active == True  # noqa: E712
            ).all()
        return [i for i in items if i.is_valid_on(on) and i.applies_to(customer_type)]

    @staticmethod
    def _rank(item: PriceListItem):
        width = item.max_dives - (item.min_dives or 1) if item.max_dives is not None else float("inf")
        return (-(item.priority or 0), item.effective_price, width, -item.id)

    def best_price(self, dive_center_id: int, dive_count: int, service_type: str = DIVE_TRIP,
                   customer_type: Optional[str] = None,
                   on: Optional[date] = None) -> Optional[Tuple[PriceListItem, Decimal]]:
        """(item, price) for the dive count, or None when nothing matches"""
        candidates = self._candidates(dive_center_id, service_type, customer_type, on or date.today())

        flat = [i for i in candidates if not i.is_tiered and i.covers(dive_count)]
        if flat:
            best = min(flat, key=self._rank)
            return best, calc.money(best.effective_price)

        best_tiered = None
        for item in sorted((i for i in candidates if i.is_tiered), key=lambda i: i.id):
            price = self.tiered_price(dive_count, item)
            if price is not None and (best_tiered is None or price < best_tiered[1]):
                best_tiered = (item, price)
        return best_tiered

    @staticmethod
    def quote(item: PriceListItem, price: Decimal) -> dict:
        return {
            "price_list_item_id": item.id,
            "name": item.name,
            "description": item.description,
            "pricing_model": item.pricing_model,
            "min_dives": item.min_dives,
            "max_dives": item.max_dives,
            "priority": item.priority or 0,
            "applicable_to": item.applicable_to,
            "base_price": calc.money(item.effective_price),
            "price": price,
        }

    def suggestions(self, dive_center_id: int, dive_count: int, service_type: str = DIVE_TRIP,
                    customer_type: Optional[str] = None) -> List[dict]:
        """Every item that can price the dive count, best ranked first"""
        candidates = self._candidates(dive_center_id, service_type, customer_type, date.today())

        quotes = []
        for item in sorted(candidates, key=self._rank):
            if item.is_tiered:
                price = self.tiered_price(dive_count, item)
                if price is None:
                    continue
            elif item.covers(dive_count):
                price = calc.money(item.effective_price)
            else:
                continue

            quotes.append(self.quote(item, price))
        return quotes

    def price_of(self, item: PriceListItem, dive_count: int) -> Decimal:
        """Price the item charges for the dive count; tiered items fall back to their list price"""
        if item.pricing_model == PricingModel.TIERED.value:
            price = self.tiered_price(dive_count, item)
            if price is not None:
                return price
        return calc.money(item.effective_price)
