"""
Equipment Service - Catalog, serialized items and service history
"""
from datetime import date, timedelta
from typing import Optional, List
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import or_
import logging

from divecenter.models import Equipment, EquipmentItem, EquipmentServiceHistory

logger = logging.getLogger(__name__)


def next_service_from(start: Optional[date], interval_days: Optional[int]) -> Optional[date]:
    if start is None or not interval_days:
        return None
    return start + timedelta(days=interval_days)


class EquipmentService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, equipment_id: int, dive_center_id: int) -> Optional[Equipment]:
        return self.db.query(Equipment).filter(
            Equipment.id == equipment_id,
            Equipment.dive_center_id == dive_center_id
        ).first()

    def query_by_dive_center(self, dive_center_id: int, category: str = None, active: bool = None):
        query = self.db.query(Equipment).filter(Equipment.dive_center_id == dive_center_id)
        if category:
            query = query.filter(Equipment.category == category)
        if active is not None:
            query = query.filter(Equipment.active.is_(active))
        return query.order_by(Equipment.name)

    def create(self, data, dive_center_id: int) -> Equipment:
        equipment = Equipment(**data.model_dump(), dive_center_id=dive_center_id)
        self.db.add(equipment)
        self.db.flush()
        return equipment

    def update(self, equipment_id: int, data, dive_center_id: int) -> Optional[Equipment]:
        equipment = self.get_by_id(equipment_id, dive_center_id)
        if not equipment:
            return None
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(equipment, key, value)
        self.db.flush()
        return equipment

    def delete(self, equipment_id: int, dive_center_id: int) -> bool:
        equipment = self.get_by_id(equipment_id, dive_center_id)
        if not equipment:
            return False
        if any(item.assignments for item in equipment.items):
            raise ValueError("Cannot delete equipment whose items have rental history; deactivate it instead")
        self.db.delete(equipment)
        self.db.flush()
        return True


class EquipmentItemService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, item_id: int, dive_center_id: int) -> Optional[EquipmentItem]:
        return self.db.query(EquipmentItem)\
            .join(Equipment, EquipmentItem.equipment_id == Equipment.id)\
            .options(joinedload(EquipmentItem.equipment))\
            .filter(EquipmentItem.id == item_id, Equipment.dive_center_id == dive_center_id)\
            .first()

    def query_by_dive_center(self, dive_center_id: int, equipment_id: int = None, status: str = None,
                             search: str = None, overdue: bool = None):
        query = self.db.query(EquipmentItem)\
            .join(Equipment, EquipmentItem.equipment_id == Equipment.id)\
            .options(joinedload(EquipmentItem.equipment))\
            .filter(Equipment.dive_center_id == dive_center_id)

        if equipment_id:
            query = query.filter(EquipmentItem.equipment_id == equipment_id)
        if status:
            query = query.filter(EquipmentItem.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Equipment.name.ilike(pattern),
                EquipmentItem.serial_no.ilike(pattern),
                EquipmentItem.inventory_code.ilike(pattern),
                EquipmentItem.brand.ilike(pattern),
                EquipmentItem.size.ilike(pattern)
            ))
        if overdue:
            query = query.filter(
                EquipmentItem.requires_service.is_(True),
                EquipmentItem.next_service_date.isnot(None),
                EquipmentItem.next_service_date <= date.today()
            )
        return query.order_by(Equipment.name, EquipmentItem.id)

    def create(self, data, dive_center_id: int) -> EquipmentItem:
        if not EquipmentService(self.db).get_by_id(data.equipment_id, dive_center_id):
            raise ValueError("Equipment not found")

        item = EquipmentItem(**data.model_dump())
        if item.requires_service and not item.next_service_date:
            item.next_service_date = next_service_from(
                item.last_service_date or item.purchase_date,
                item.service_interval_days
            )

        self.db.add(item)
        self.db.flush()
        return item

    def update(self, item_id: int, data, dive_center_id: int) -> Optional[EquipmentItem]:
        item = self.get_by_id(item_id, dive_center_id)
        if not item:
            return None
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(item, key, value)
        self.db.flush()
        return item

    def delete(self, item_id: int, dive_center_id: int) -> bool:
        item = self.get_by_id(item_id, dive_center_id)
        if not item:
            return False
        if item.assignments:
            raise ValueError("Cannot delete an item with rental history")
        self.db.delete(item)
        self.db.flush()
        return True


class ServiceHistoryService:
    """
    Service records for equipment items.

    Every write re-syncs the item's last/next service dates from its most
    recent record.
    """

    def __init__(self, db: Session):
        self.db = db
        self.items = EquipmentItemService(db)

    def _item(self, item_id: int, dive_center_id: int) -> EquipmentItem:
        item = self.items.get_by_id(item_id, dive_center_id)
        if not item:
            raise LookupError("Equipment item not found")
        return item

    def get_by_item(self, item_id: int, dive_center_id: int) -> List[EquipmentServiceHistory]:
        self._item(item_id, dive_center_id)
        return self.db.query(EquipmentServiceHistory)\
            .filter(EquipmentServiceHistory.equipment_item_id == item_id)\
            .order_by(EquipmentServiceHistory.service_date.desc(), EquipmentServiceHistory.id.desc())\
            .all()

    def get_by_id(self, record_id: int, item_id: int, dive_center_id: int) -> Optional[EquipmentServiceHistory]:
        self._item(item_id, dive_center_id)
        return self.db.query(EquipmentServiceHistory).filter(
            EquipmentServiceHistory.id == record_id,
            EquipmentServiceHistory.equipment_item_id == item_id
        ).first()

    def _sync_item_dates(self, item: EquipmentItem):
        latest = self.db.query(EquipmentServiceHistory)\
            .filter(EquipmentServiceHistory.equipment_item_id == item.id)\
            .order_by(EquipmentServiceHistory.service_date.desc(), EquipmentServiceHistory.id.desc())\
            .first()

        if latest is None:
            item.last_service_date = None
            item.next_service_date = next_service_from(item.purchase_date, item.service_interval_days) \
                if item.requires_service else None
            return

        item.last_service_date = latest.service_date
        item.next_service_date = latest.next_service_due_date

    def _add_record(self, item: EquipmentItem, data: dict, auto_next: bool = True) -> EquipmentServiceHistory:
        record = EquipmentServiceHistory(equipment_item_id=item.id, **data)
        if record.next_service_due_date is None and auto_next and item.requires_service:
            record.next_service_due_date = next_service_from(record.service_date, item.service_interval_days)
        self.db.add(record)
        self.db.flush()
        self._sync_item_dates(item)
        return record

    def create(self, item_id: int, data, dive_center_id: int) -> EquipmentServiceHistory:
        item = self._item(item_id, dive_center_id)
        record = self._add_record(item, data.model_dump())
        self.db.flush()
        return record

    def update(self, record_id: int, item_id: int, data, dive_center_id: int) -> Optional[EquipmentServiceHistory]:
        record = self.get_by_id(record_id, item_id, dive_center_id)
        if not record:
            return None

        changes = data.model_dump(exclude_unset=True)
        for key, value in changes.items():
            setattr(record, key, value)

        item = record.equipment_item
        if "service_date" in changes and "next_service_due_date" not in changes and item.requires_service:
            record.next_service_due_date = next_service_from(record.service_date, item.service_interval_days)

        self.db.flush()
        self._sync_item_dates(item)
        self.db.flush()
        return record

    def delete(self, record_id: int, item_id: int, dive_center_id: int) -> bool:
        record = self.get_by_id(record_id, item_id, dive_center_id)
        if not record:
            return False

        item = record.equipment_item
        self.db.delete(record)
        self.db.flush()
        self._sync_item_dates(item)
        self.db.flush()
        return True

    def bulk_create(self, bulk_data, dive_center_id: int) -> List[EquipmentServiceHistory]:
        """Apply one service event to many items; any unknown item rejects the batch"""
        item_ids = list(dict.fromkeys(bulk_data.equipment_item_ids))
        items = []
        for item_id in item_ids:
            item = self.items.get_by_id(item_id, dive_center_id)
            if not item:
                raise ValueError(f"Equipment item {item_id} not found")
            items.append(item)

        shared = bulk_data.model_dump(exclude={"equipment_item_ids", "auto_calculate_next_service"})
        records = [
            self._add_record(item, dict(shared), auto_next=bulk_data.auto_calculate_next_service)
            for item in items
        ]

        self.db.flush()
        logger.info(f"Bulk service recorded on {len(records)} equipment items")
        return records
