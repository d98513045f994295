"""
Customer Service - Divers, their documents and dive groups
"""
from typing import Optional, List
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import or_

from divecenter.models import (
    Customer, CustomerCertification, CustomerInsurance, EmergencyContact,
    DiveGroup, DiveGroupMember
)


class CustomerService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, customer_id: int, dive_center_id: int) -> Optional[Customer]:
        return self.db.query(Customer).filter(
            Customer.id == customer_id,
            Customer.dive_center_id == dive_center_id
        ).first()

    def get_detail(self, customer_id: int, dive_center_id: int) -> Optional[Customer]:
        return self.db.query(Customer)\
            .options(
                selectinload(Customer.certifications),
                selectinload(Customer.insurances),
                selectinload(Customer.emergency_contacts)
            )\
            .filter(Customer.id == customer_id, Customer.dive_center_id == dive_center_id)\
            .first()

    def query_by_dive_center(self, dive_center_id: int, search: str = None):
        query = self.db.query(Customer).filter(Customer.dive_center_id == dive_center_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Customer.full_name.ilike(pattern),
                Customer.email.ilike(pattern),
                Customer.phone.ilike(pattern),
                Customer.passport_no.ilike(pattern)
            ))
        return query.order_by(Customer.full_name)

    def create(self, customer_data, dive_center_id: int) -> Customer:
        customer = Customer(**customer_data.model_dump(), dive_center_id=dive_center_id)
        self.db.add(customer)
        self.db.flush()
        return customer

    def update(self, customer_id: int, customer_data, dive_center_id: int) -> Optional[Customer]:
        customer = self.get_by_id(customer_id, dive_center_id)
        if not customer:
            return None

        for key, value in customer_data.model_dump(exclude_unset=True).items():
            setattr(customer, key, value)

        self.db.flush()
        return customer

    def delete(self, customer_id: int, dive_center_id: int) -> bool:
        customer = self.get_by_id(customer_id, dive_center_id)
        if not customer:
            return False

        if customer.bookings:
            raise ValueError("Cannot delete a customer with bookings")

        self.db.delete(customer)
        self.db.flush()
        return True


class _CustomerChildService:
    """CRUD for a record type that hangs off a customer"""
    model = None

    def __init__(self, db: Session):
        self.db = db

    def _customer(self, customer_id: int, dive_center_id: int) -> Customer:
        customer = CustomerService(self.db).get_by_id(customer_id, dive_center_id)
        if not customer:
            raise LookupError("Customer not found")
        return customer

    def get_by_customer(self, customer_id: int, dive_center_id: int) -> list:
        self._customer(customer_id, dive_center_id)
        return self.db.query(self.model)\
            .filter(self.model.customer_id == customer_id)\
            .order_by(self.model.id)\
            .all()

    def get_by_id(self, record_id: int, customer_id: int, dive_center_id: int):
        self._customer(customer_id, dive_center_id)
        return self.db.query(self.model).filter(
            self.model.id == record_id,
            self.model.customer_id == customer_id
        ).first()

    def create(self, data, customer_id: int, dive_center_id: int):
        self._customer(customer_id, dive_center_id)
        record = self.model(**data.model_dump(), customer_id=customer_id)
        self.db.add(record)
        self.db.flush()
        return record

    def update(self, record_id: int, data, customer_id: int, dive_center_id: int):
        record = self.get_by_id(record_id, customer_id, dive_center_id)
        if not record:
            return None

        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(record, key, value)

        self.db.flush()
        return record

    def delete(self, record_id: int, customer_id: int, dive_center_id: int) -> bool:
        record = self.get_by_id(record_id, customer_id, dive_center_id)
        if not record:
            return False
        self.db.delete(record)
        self.db.flush()
        return True


class CertificationService(_CustomerChildService):
    model = CustomerCertification


class InsuranceService(_CustomerChildService):
    model = CustomerInsurance


class EmergencyContactService(_CustomerChildService):
    """Emergency contacts; at most one is primary per customer"""
    model = EmergencyContact

    def _clear_primary(self, customer_id: int, keep_id: int = None):
        query = self.db.query(EmergencyContact).filter(
            EmergencyContact.customer_id == customer_id,
            EmergencyContact.is_primary.is_(True)
        )
        if keep_id:
            query = query.filter(EmergencyContact.id != keep_id)
        for contact in query.all():
            contact.is_primary = False

    def create(self, data, customer_id: int, dive_center_id: int):
        if data.is_primary:
            self._customer(customer_id, dive_center_id)
            self._clear_primary(customer_id)
        return super().create(data, customer_id, dive_center_id)

    def update(self, record_id: int, data, customer_id: int, dive_center_id: int):
        record = super().update(record_id, data, customer_id, dive_center_id)
        if record and record.is_primary:
            self._clear_primary(customer_id, keep_id=record.id)
            self.db.flush()
        return record


class DiveGroupService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, group_id: int, dive_center_id: int) -> Optional[DiveGroup]:
        return self.db.query(DiveGroup).filter(
            DiveGroup.id == group_id,
            DiveGroup.dive_center_id == dive_center_id
        ).first()

    def query_by_dive_center(self, dive_center_id: int, status: str = None):
        query = self.db.query(DiveGroup).filter(DiveGroup.dive_center_id == dive_center_id)
        if status:
            query = query.filter(DiveGroup.status == status)
        return query.order_by(DiveGroup.group_name)

    def create(self, group_data, dive_center_id: int, user_id: int = None) -> DiveGroup:
        data = group_data.model_dump(exclude={"member_ids"})
        group = DiveGroup(**data, dive_center_id=dive_center_id, created_by=user_id)
        self.db.add(group)
        self.db.flush()

        for customer_id in dict.fromkeys(group_data.member_ids):
            self.add_member(group.id, customer_id, dive_center_id)

        self.db.refresh(group)
        return group

    def update(self, group_id: int, group_data, dive_center_id: int) -> Optional[DiveGroup]:
        group = self.get_by_id(group_id, dive_center_id)
        if not group:
            return None

        for key, value in group_data.model_dump(exclude_unset=True).items():
            setattr(group, key, value)

        self.db.flush()
        return group

    def delete(self, group_id: int, dive_center_id: int) -> bool:
        group = self.get_by_id(group_id, dive_center_id)
        if not group:
            return False
        self.db.delete(group)
        self.db.flush()
        return True

    def add_member(self, group_id: int, customer_id: int, dive_center_id: int) -> DiveGroup:
        group = self.get_by_id(group_id, dive_center_id)
        if not group:
            raise LookupError("Dive group not found")
        if not CustomerService(self.db).get_by_id(customer_id, dive_center_id):
            raise ValueError(f"Customer {customer_id} not found")

        exists = self.db.query(DiveGroupMember).filter(
            DiveGroupMember.dive_group_id == group_id,
            DiveGroupMember.customer_id == customer_id
        ).first()
        if exists:
            raise ValueError("Customer is already a member of this group")

        self.db.add(DiveGroupMember(dive_group_id=group_id, customer_id=customer_id))
        self.db.flush()
        self.db.refresh(group)
        return group

    def remove_member(self, group_id: int, customer_id: int, dive_center_id: int) -> DiveGroup:
        group = self.get_by_id(group_id, dive_center_id)
        if not group:
            raise LookupError("Dive group not found")

        member = self.db.query(DiveGroupMember).filter(
            DiveGroupMember.dive_group_id == group_id,
            DiveGroupMember.customer_id == customer_id
        ).first()
        if not member:
            raise ValueError("Customer is not a member of this group")

        self.db.delete(member)
        self.db.flush()
        self.db.refresh(group)
        return group
