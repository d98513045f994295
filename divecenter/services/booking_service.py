"""
Booking Service - Bookings, scheduled dives, dive sites and boats
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from sqlalchemy.orm import Session, selectinload
import logging

from divecenter.models import (
    Booking, BookingDive, BookingInstructor, DiveSite, Boat, User,
    DiveStatus, AssignmentStatus
)
from divecenter.services.customer_service import CustomerService, DiveGroupService
from divecenter.services.pricing_service import DivePricingService, PriceListItemService, DIVE_TRIP

logger = logging.getLogger(__name__)

DIVE_LOG_FIELDS = ("dive_duration", "max_depth", "gas_mix", "dive_log_notes")


class DiveSiteService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, site_id: int, dive_center_id: int) -> Optional[DiveSite]:
        return self.db.query(DiveSite).filter(
            DiveSite.id == site_id,
            DiveSite.dive_center_id == dive_center_id
        ).first()

    def get_by_dive_center(self, dive_center_id: int) -> List[DiveSite]:
        return self.db.query(DiveSite)\
            .filter(DiveSite.dive_center_id == dive_center_id)\
            .order_by(DiveSite.name)\
            .all()

    def create(self, data, dive_center_id: int) -> DiveSite:
        site = DiveSite(**data.model_dump(), dive_center_id=dive_center_id)
        self.db.add(site)
        self.db.flush()
        return site

    def update(self, site_id: int, data, dive_center_id: int) -> Optional[DiveSite]:
        site = self.get_by_id(site_id, dive_center_id)
        if not site:
            return None
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(site, key, value)
        self.db.flush()
        return site

    def delete(self, site_id: int, dive_center_id: int) -> bool:
        site = self.get_by_id(site_id, dive_center_id)
        if not site:
            return False
        self.db.delete(site)
        self.db.flush()
        return True


class BoatService(DiveSiteService):
    def get_by_id(self, boat_id: int, dive_center_id: int) -> Optional[Boat]:
        return self.db.query(Boat).filter(
            Boat.id == boat_id,
            Boat.dive_center_id == dive_center_id
        ).first()

    def get_by_dive_center(self, dive_center_id: int) -> List[Boat]:
        return self.db.query(Boat)\
            .filter(Boat.dive_center_id == dive_center_id)\
            .order_by(Boat.name)\
            .all()

    def create(self, data, dive_center_id: int) -> Boat:
        boat = Boat(**data.model_dump(), dive_center_id=dive_center_id)
        self.db.add(boat)
        self.db.flush()
        return boat


class BookingService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, booking_id: int, dive_center_id: int) -> Optional[Booking]:
        return self.db.query(Booking).filter(
            Booking.id == booking_id,
            Booking.dive_center_id == dive_center_id
        ).first()

    def get_detail(self, booking_id: int, dive_center_id: int) -> Optional[Booking]:
        return self.db.query(Booking)\
            .options(selectinload(Booking.dives).selectinload(BookingDive.instructors))\
            .filter(Booking.id == booking_id, Booking.dive_center_id == dive_center_id)\
            .first()

    def query_by_dive_center(self, dive_center_id: int, status: str = None,
                             customer_id: int = None, dive_group_id: int = None):
        query = self.db.query(Booking).filter(Booking.dive_center_id == dive_center_id)
        if status:
            query = query.filter(Booking.status == status)
        if customer_id:
            query = query.filter(Booking.customer_id == customer_id)
        if dive_group_id:
            query = query.filter(Booking.dive_group_id == dive_group_id)
        return query.order_by(Booking.booking_date.desc(), Booking.id.desc())

    def _check_links(self, data: dict, dive_center_id: int):
        if data.get("customer_id") and not CustomerService(self.db).get_by_id(data["customer_id"], dive_center_id):
            raise ValueError("Customer not found")
        if data.get("dive_group_id") and not DiveGroupService(self.db).get_by_id(data["dive_group_id"], dive_center_id):
            raise ValueError("Dive group not found")

    def create(self, booking_data, dive_center_id: int) -> Booking:
        data = booking_data.model_dump()
        self._check_links(data, dive_center_id)

        booking = Booking(**data, dive_center_id=dive_center_id)
        self.db.add(booking)
        self.db.flush()
        return booking

    def update(self, booking_id: int, booking_data, dive_center_id: int) -> Optional[Booking]:
        booking = self.get_by_id(booking_id, dive_center_id)
        if not booking:
            return None

        data = booking_data.model_dump(exclude_unset=True)
        self._check_links(data, dive_center_id)

        for key, value in data.items():
            setattr(booking, key, value)

        if booking.customer_id is None and booking.dive_group_id is None:
            raise ValueError("Either customer_id or dive_group_id is required")

        self.db.flush()
        return booking

    def delete(self, booking_id: int, dive_center_id: int) -> bool:
        booking = self.get_by_id(booking_id, dive_center_id)
        if not booking:
            return False

        if booking.invoices:
            raise ValueError("Cannot delete a booking that has invoices")
        if any(row.assignment_status == AssignmentStatus.CHECKED_OUT.value for row in booking.equipment):
            raise ValueError("Cannot delete a booking with equipment still checked out")

        self.db.delete(booking)
        self.db.flush()
        return True


class BookingDiveService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, dive_id: int, dive_center_id: int) -> Optional[BookingDive]:
        return self.db.query(BookingDive)\
            .join(Booking, BookingDive.booking_id == Booking.id)\
            .filter(BookingDive.id == dive_id, Booking.dive_center_id == dive_center_id)\
            .first()

    def query_by_dive_center(self, dive_center_id: int, booking_id: int = None,
                             status: str = None, dive_date=None):
        query = self.db.query(BookingDive)\
            .join(Booking, BookingDive.booking_id == Booking.id)\
            .filter(Booking.dive_center_id == dive_center_id)
        if booking_id:
            query = query.filter(BookingDive.booking_id == booking_id)
        if status:
            query = query.filter(BookingDive.status == status)
        if dive_date:
            query = query.filter(BookingDive.dive_date == dive_date)
        return query.order_by(BookingDive.dive_date, BookingDive.dive_time, BookingDive.id)

    def _check_refs(self, data: dict, dive_center_id: int):
        if data.get("dive_site_id") and not DiveSiteService(self.db).get_by_id(data["dive_site_id"], dive_center_id):
            raise ValueError("Dive site not found")
        if data.get("boat_id") and not BoatService(self.db).get_by_id(data["boat_id"], dive_center_id):
            raise ValueError("Boat not found")

    def _set_instructors(self, dive: BookingDive, instructors, dive_center_id: int):
        dive.instructors.clear()
        for instructor in instructors:
            user = self.db.query(User).filter(
                User.id == instructor.user_id,
                User.dive_center_id == dive_center_id
            ).first()
            if not user:
                raise ValueError(f"Instructor {instructor.user_id} not found")
            dive.instructors.append(BookingInstructor(user_id=user.id, role=instructor.role))

    def _price_dive(self, data: dict, booking: Booking, dive_center_id: int):
        """Fill price from the given price list item, or pick the best Dive Trip price"""
        pricing = DivePricingService(self.db)
        dive_count = len(booking.dives) + 1

        if data.get("price_list_item_id"):
            item = PriceListItemService(self.db).get_by_id(data["price_list_item_id"], dive_center_id)
            if not item:
                raise ValueError("Price list item not found")
            if data.get("price") is None:
                data["price"] = pricing.price_of(item, dive_count)
            return

        if data.get("price") is not None:
            return

        match = pricing.best_price(
            dive_center_id, dive_count, DIVE_TRIP,
            customer_type=pricing.booking_customer_type(booking),
            on=data.get("dive_date"),
        )
        if match:
            item, data["price"] = match
            data["price_list_item_id"] = item.id
            logger.info(f"Dive {dive_count} of booking {booking.id} priced {data['price']} from '{item.name}'")
        else:
            data["price"] = Decimal("0.00")

    def create(self, dive_data, dive_center_id: int) -> BookingDive:
        booking = BookingService(self.db).get_by_id(dive_data.booking_id, dive_center_id)
        if not booking:
            raise ValueError("Booking not found")

        data = dive_data.model_dump(exclude={"instructors"})
        self._check_refs(data, dive_center_id)
        self._price_dive(data, booking, dive_center_id)

        dive = BookingDive(**data)
        self.db.add(dive)
        self._set_instructors(dive, dive_data.instructors, dive_center_id)
        self.db.flush()
        return dive

    def update(self, dive_id: int, dive_data, dive_center_id: int) -> Optional[BookingDive]:
        dive = self.get_by_id(dive_id, dive_center_id)
        if not dive:
            return None

        data = dive_data.model_dump(exclude_unset=True, exclude={"instructors"})
        self._check_refs(data, dive_center_id)

        new_status = data.get("status", dive.status)
        log_fields = [f for f in DIVE_LOG_FIELDS if data.get(f) is not None]
        if log_fields and new_status != DiveStatus.COMPLETED.value:
            raise ValueError("Dive log can only be recorded on a completed dive")

        for key, value in data.items():
            setattr(dive, key, value)

        if new_status == DiveStatus.COMPLETED.value and dive.completed_at is None:
            dive.completed_at = datetime.utcnow()

        if dive_data.instructors is not None:
            self._set_instructors(dive, dive_data.instructors, dive_center_id)

        self.db.flush()
        return dive

    def complete(self, dive_id: int, log_data, dive_center_id: int) -> Optional[BookingDive]:
        """Mark a dive completed and write its log"""
        dive = self.get_by_id(dive_id, dive_center_id)
        if not dive:
            return None

        if dive.status == DiveStatus.CANCELLED.value:
            raise ValueError("A cancelled dive cannot be completed")

        dive.status = DiveStatus.COMPLETED.value
        for key, value in log_data.model_dump(exclude_unset=True).items():
            setattr(dive, key, value)
        dive.completed_at = datetime.utcnow()

        self.db.flush()
        logger.info(f"Dive {dive.id} of booking {dive.booking_id} completed")
        return dive

    def delete(self, dive_id: int, dive_center_id: int) -> bool:
        dive = self.get_by_id(dive_id, dive_center_id)
        if not dive:
            return False

        if dive.invoice_items:
            raise ValueError("Cannot delete a dive that has been invoiced")

        self.db.delete(dive)
        self.db.flush()
        return True
