"""
Basket Service - Equipment baskets and the assignment lifecycle

Every assignment_status change goes through BookingEquipment.transition_to,
which enforces ASSIGNMENT_TRANSITIONS. Center items follow their assignment:
Rented while checked out, Available on a clean return, Maintenance after a
damaged return or a loss.
"""
from datetime import date, timedelta
from typing import Optional, List, Dict, Iterable
from sqlalchemy.orm import Session, selectinload
import logging

from divecenter.models import (
    EquipmentBasket, BookingEquipment, EquipmentItem,
    AssignmentStatus, BasketStatus, EquipmentItemStatus, EquipmentSource
)
from divecenter.schemas import CenterEquipmentSpec
from divecenter.services.customer_service import CustomerService
from divecenter.services.booking_service import BookingService
from divecenter.services.equipment_service import EquipmentItemService
from divecenter.services.numbering import next_document_number

logger = logging.getLogger(__name__)

DAMAGE_FIELDS = ("damage_reported", "damage_description", "damage_cost",
                 "charge_customer", "damage_charge_amount")


def _default_return(checkout: date, return_date: Optional[date]) -> date:
    return return_date or checkout + timedelta(days=1)


class BookingEquipmentService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, equipment_id: int, dive_center_id: int) -> Optional[BookingEquipment]:
        return self.db.query(BookingEquipment).filter(
            BookingEquipment.id == equipment_id,
            BookingEquipment.dive_center_id == dive_center_id
        ).first()

    def query_by_dive_center(self, dive_center_id: int, basket_id: int = None, booking_id: int = None,
                             assignment_status: str = None, equipment_source: str = None):
        query = self.db.query(BookingEquipment).filter(BookingEquipment.dive_center_id == dive_center_id)
        if basket_id:
            query = query.filter(BookingEquipment.basket_id == basket_id)
        if booking_id:
            query = query.filter(BookingEquipment.booking_id == booking_id)
        if assignment_status:
            query = query.filter(BookingEquipment.assignment_status == assignment_status)
        if equipment_source:
            query = query.filter(BookingEquipment.equipment_source == equipment_source)
        return query.order_by(BookingEquipment.id.desc())

    # ---------- availability ----------

    def find_conflicts(self, item_id: int, checkout: date, return_date: Optional[date],
                       exclude_id: int = None) -> List[BookingEquipment]:
        """Non-terminal assignments of the item whose dates overlap [checkout, return]"""
        end = _default_return(checkout, return_date)
        query = self.db.query(BookingEquipment).filter(
            BookingEquipment.equipment_item_id == item_id,
            BookingEquipment.assignment_status == AssignmentStatus.CHECKED_OUT.value
        )
        if exclude_id:
            query = query.filter(BookingEquipment.id != exclude_id)

        conflicts = []
        for row in query.all():
            if row.checkout_date is None:
                conflicts.append(row)
                continue
            row_end = _default_return(row.checkout_date, row.return_date)
            if row.checkout_date <= end and row_end >= checkout:
                conflicts.append(row)
        return conflicts

    def check_availability(self, item_id: int, checkout: date, return_date: Optional[date],
                           dive_center_id: int) -> dict:
        item = EquipmentItemService(self.db).get_by_id(item_id, dive_center_id)
        if not item:
            raise LookupError("Equipment item not found")

        conflicts = self.find_conflicts(item_id, checkout, return_date)
        return {
            "equipment_item_id": item_id,
            "checkout_date": checkout,
            "return_date": _default_return(checkout, return_date),
            "available": not conflicts and item.status != EquipmentItemStatus.MAINTENANCE.value,
            "conflicts": [row.id for row in conflicts],
        }

    def _validate_center_item(self, spec: CenterEquipmentSpec, checkout: date, return_date: date,
                              dive_center_id: int) -> EquipmentItem:
        item = EquipmentItemService(self.db).get_by_id(spec.equipment_item_id, dive_center_id)
        if not item:
            raise ValueError(f"Equipment item {spec.equipment_item_id} not found")
        if item.status == EquipmentItemStatus.MAINTENANCE.value:
            raise ValueError(f"{item.display_name} is under maintenance")
        if self.find_conflicts(item.id, checkout, return_date):
            raise ValueError(
                f"{item.display_name} is already assigned between {checkout} and {return_date}"
            )
        return item

    # ---------- creation ----------

    def _build_row(self, spec, dive_center_id: int, booking_id: int = None,
                   basket: EquipmentBasket = None) -> BookingEquipment:
        """Validate one tagged spec and build its row; nothing is added to the session"""
        checkout = spec.checkout_date or (basket.checkout_date if basket else None) or date.today()
        return_date = _default_return(
            checkout, spec.return_date or (basket.expected_return_date if basket else None)
        )
        if return_date < checkout:
            raise ValueError("Return date cannot be before checkout date")

        row = BookingEquipment(
            booking_id=booking_id,
            basket_id=basket.id if basket else None,
            price=spec.price,
            checkout_date=checkout,
            return_date=return_date,
            equipment_source=spec.equipment_source,
            assignment_status=AssignmentStatus.CHECKED_OUT.value,
            damage_reported=False,
            charge_customer=False,
            dive_center_id=dive_center_id,
        )

        if spec.equipment_source == EquipmentSource.CENTER.value:
            item = self._validate_center_item(spec, checkout, return_date, dive_center_id)
            row.equipment_item_id = item.id
            row.equipment_item = item
        else:
            row.customer_equipment_type = spec.customer_equipment_type
            row.customer_equipment_brand = spec.customer_equipment_brand
            row.customer_equipment_model = spec.customer_equipment_model
            row.customer_equipment_serial = spec.customer_equipment_serial
            row.customer_equipment_notes = spec.customer_equipment_notes
        return row

    def _check_out(self, rows: Iterable[BookingEquipment]):
        for row in rows:
            self.db.add(row)
            if row.equipment_item is not None:
                row.equipment_item.status = EquipmentItemStatus.RENTED.value
        self.db.flush()

    def create(self, data, dive_center_id: int) -> BookingEquipment:
        basket = None
        booking_id = data.booking_id

        if data.basket_id:
            basket = BasketService(self.db).get_by_id(data.basket_id, dive_center_id)
            if not basket:
                raise ValueError("Basket not found")
            if not basket.is_active:
                raise ValueError("Cannot add equipment to a returned basket")
            booking_id = booking_id or basket.booking_id

        if booking_id and not BookingService(self.db).get_by_id(booking_id, dive_center_id):
            raise ValueError("Booking not found")

        row = self._build_row(data.to_spec(), dive_center_id, booking_id=booking_id, basket=basket)
        self._check_out([row])
        return row

    # ---------- updates ----------

    def update(self, equipment_id: int, data, dive_center_id: int) -> Optional[BookingEquipment]:
        row = self.get_by_id(equipment_id, dive_center_id)
        if not row:
            return None

        changes = data.model_dump(exclude_unset=True)
        if row.is_terminal and set(changes) - set(DAMAGE_FIELDS):
            raise ValueError(f"Equipment #{row.id} is {row.assignment_status}; only damage details can change")

        if "return_date" in changes and row.is_center_equipment and row.equipment_item_id:
            if changes["return_date"] and row.checkout_date and changes["return_date"] < row.checkout_date:
                raise ValueError("Return date cannot be before checkout date")
            if self.find_conflicts(row.equipment_item_id, row.checkout_date or date.today(),
                                   changes["return_date"], exclude_id=row.id):
                raise ValueError("Equipment item is already assigned for the new dates")

        for key, value in changes.items():
            setattr(row, key, value)

        self.db.flush()
        return row

    def _apply_damage(self, row: BookingEquipment, report):
        if report is None:
            return
        for key, value in report.model_dump().items():
            setattr(row, key, value)

    def _return_row(self, row: BookingEquipment, report=None, on: date = None):
        self._apply_damage(row, report)
        row.transition_to(AssignmentStatus.RETURNED.value)
        row.actual_return_date = on or date.today()
        if row.equipment_item is not None:
            row.equipment_item.status = (
                EquipmentItemStatus.MAINTENANCE.value if row.damage_reported
                else EquipmentItemStatus.AVAILABLE.value
            )

    def _sync_basket(self, basket: Optional[EquipmentBasket]):
        """Close the basket once nothing in it is still checked out"""
        if basket is None or not basket.is_active:
            return
        self.db.flush()
        self.db.refresh(basket)
        if basket.equipment and not any(row.is_checked_out for row in basket.equipment):
            basket.status = BasketStatus.RETURNED.value
            basket.actual_return_date = date.today()

    def return_one(self, equipment_id: int, report, dive_center_id: int) -> Optional[BookingEquipment]:
        row = self.get_by_id(equipment_id, dive_center_id)
        if not row:
            return None

        self._return_row(row, report)
        self._sync_basket(row.basket)
        self.db.flush()
        return row

    def mark_lost(self, equipment_id: int, dive_center_id: int) -> Optional[BookingEquipment]:
        row = self.get_by_id(equipment_id, dive_center_id)
        if not row:
            return None

        row.transition_to(AssignmentStatus.LOST.value)
        if row.equipment_item is not None:
            row.equipment_item.status = EquipmentItemStatus.MAINTENANCE.value
        self._sync_basket(row.basket)
        self.db.flush()
        logger.warning(f"Equipment assignment {row.id} ({row.display_name}) marked lost")
        return row

    def bulk_return(self, equipment_ids: List[int], damage: Dict[int, object],
                    dive_center_id: int) -> List[BookingEquipment]:
        """Return rows by id across baskets; an unknown id rejects the whole batch"""
        rows = []
        for equipment_id in dict.fromkeys(equipment_ids):
            row = self.get_by_id(equipment_id, dive_center_id)
            if not row:
                raise ValueError(f"Booking equipment {equipment_id} not found")
            rows.append(row)

        today = date.today()
        for row in rows:
            self._return_row(row, damage.get(row.id), on=today)

        for basket in {row.basket for row in rows if row.basket is not None}:
            self._sync_basket(basket)

        self.db.flush()
        return rows

    def delete(self, equipment_id: int, dive_center_id: int) -> bool:
        row = self.get_by_id(equipment_id, dive_center_id)
        if not row:
            return False

        if row.invoice_items:
            raise ValueError("Cannot delete equipment that has been invoiced")

        if row.is_checked_out and row.equipment_item is not None:
            row.equipment_item.status = EquipmentItemStatus.AVAILABLE.value

        self.db.delete(row)
        self.db.flush()
        return True


class BasketService:
    def __init__(self, db: Session):
        self.db = db
        self.equipment = BookingEquipmentService(db)

    def get_by_id(self, basket_id: int, dive_center_id: int) -> Optional[EquipmentBasket]:
        return self.db.query(EquipmentBasket).filter(
            EquipmentBasket.id == basket_id,
            EquipmentBasket.dive_center_id == dive_center_id
        ).first()

    def get_detail(self, basket_id: int, dive_center_id: int) -> Optional[EquipmentBasket]:
        return self.db.query(EquipmentBasket)\
            .options(selectinload(EquipmentBasket.equipment).selectinload(BookingEquipment.equipment_item)
                     .selectinload(EquipmentItem.equipment))\
            .filter(EquipmentBasket.id == basket_id, EquipmentBasket.dive_center_id == dive_center_id)\
            .first()

    def query_by_dive_center(self, dive_center_id: int, status: str = None, customer_id: int = None,
                             booking_id: int = None):
        query = self.db.query(EquipmentBasket).filter(EquipmentBasket.dive_center_id == dive_center_id)
        if status:
            query = query.filter(EquipmentBasket.status == status)
        if customer_id:
            query = query.filter(EquipmentBasket.customer_id == customer_id)
        if booking_id:
            query = query.filter(EquipmentBasket.booking_id == booking_id)
        return query.order_by(EquipmentBasket.id.desc())

    def get_next_number(self, dive_center_id: int) -> str:
        return next_document_number(self.db, EquipmentBasket, "basket_no", "BASK", dive_center_id)

    def create(self, basket_data, dive_center_id: int) -> EquipmentBasket:
        if not CustomerService(self.db).get_by_id(basket_data.customer_id, dive_center_id):
            raise ValueError("Customer not found")
        if basket_data.booking_id and not BookingService(self.db).get_by_id(basket_data.booking_id, dive_center_id):
            raise ValueError("Booking not found")

        checkout = basket_data.checkout_date or date.today()
        expected = basket_data.expected_return_date
        if expected and expected < checkout:
            raise ValueError("Expected return date cannot be before checkout date")

        basket = EquipmentBasket(
            basket_no=self.get_next_number(dive_center_id),
            customer_id=basket_data.customer_id,
            booking_id=basket_data.booking_id,
            center_bucket_no=basket_data.center_bucket_no,
            checkout_date=checkout,
            expected_return_date=expected,
            notes=basket_data.notes,
            status=BasketStatus.ACTIVE.value,
            dive_center_id=dive_center_id,
        )
        self.db.add(basket)
        self.db.flush()
        logger.info(f"Basket {basket.basket_no} opened for customer {basket.customer_id}")
        return basket

    def update(self, basket_id: int, basket_data, dive_center_id: int) -> Optional[EquipmentBasket]:
        basket = self.get_by_id(basket_id, dive_center_id)
        if not basket:
            return None

        changes = basket_data.model_dump(exclude_unset=True)
        if changes.get("booking_id") and not BookingService(self.db).get_by_id(changes["booking_id"], dive_center_id):
            raise ValueError("Booking not found")

        for key, value in changes.items():
            setattr(basket, key, value)

        self.db.flush()
        return basket

    def delete(self, basket_id: int, dive_center_id: int) -> bool:
        basket = self.get_by_id(basket_id, dive_center_id)
        if not basket:
            return False
        if basket.equipment:
            raise ValueError("Cannot delete a basket that has equipment")
        self.db.delete(basket)
        self.db.flush()
        return True

    def return_basket(self, basket_id: int, damage: Dict[int, object],
                      dive_center_id: int) -> Optional[EquipmentBasket]:
        """Return every checked-out row and close the basket"""
        basket = self.get_by_id(basket_id, dive_center_id)
        if not basket:
            return None
        if not basket.is_active:
            raise ValueError(f"Basket {basket.basket_no} is already returned")

        unknown = set(damage) - {row.id for row in basket.equipment}
        if unknown:
            raise ValueError(f"Equipment {sorted(unknown)} does not belong to basket {basket.basket_no}")

        settled = sorted(row.id for row in basket.equipment if row.id in damage and not row.is_checked_out)
        if settled:
            raise ValueError(
                f"Equipment {settled} is no longer checked out; "
                f"update its damage details on the equipment assignment instead"
            )

        today = date.today()
        returned = 0
        for row in basket.equipment:
            if row.is_checked_out:
                self.equipment._return_row(row, damage.get(row.id), on=today)
                returned += 1

        basket.status = BasketStatus.RETURNED.value
        basket.actual_return_date = today
        self.db.flush()
        logger.info(f"Basket {basket.basket_no} returned with {returned} items")
        return basket

    def return_selected(self, basket_id: int, equipment_ids: List[int], damage: Dict[int, object],
                        dive_center_id: int) -> Optional[EquipmentBasket]:
        """Return a subset; the basket closes only when nothing is left checked out"""
        basket = self.get_by_id(basket_id, dive_center_id)
        if not basket:
            return None

        rows_by_id = {row.id: row for row in basket.equipment}
        unknown = [i for i in equipment_ids if i not in rows_by_id]
        if unknown:
            raise ValueError(f"Equipment {unknown} does not belong to basket {basket.basket_no}")

        today = date.today()
        for equipment_id in dict.fromkeys(equipment_ids):
            self.equipment._return_row(rows_by_id[equipment_id], damage.get(equipment_id), on=today)

        self.equipment._sync_basket(basket)
        self.db.flush()
        return basket

    def bulk_add(self, basket_id: int, specs: list, dive_center_id: int) -> List[BookingEquipment]:
        """
        Add several tagged equipment specs to a basket.

        All specs are validated before anything is written, so one bad or
        unavailable item rejects the batch.
        """
        basket = self.get_by_id(basket_id, dive_center_id)
        if not basket:
            raise LookupError("Basket not found")
        if not basket.is_active:
            raise ValueError("Cannot add equipment to a returned basket")

        seen_items = set()
        rows = []
        for index, spec in enumerate(specs, start=1):
            if spec.equipment_source == EquipmentSource.CENTER.value:
                if spec.equipment_item_id in seen_items:
                    raise ValueError(f"Item {index}: equipment item {spec.equipment_item_id} is listed twice")
                seen_items.add(spec.equipment_item_id)
            try:
                rows.append(self.equipment._build_row(
                    spec, dive_center_id, booking_id=basket.booking_id, basket=basket
                ))
            except ValueError as e:
                raise ValueError(f"Item {index}: {e}")

        self.equipment._check_out(rows)
        logger.info(f"Added {len(rows)} items to basket {basket.basket_no}")
        return rows
