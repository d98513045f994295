"""
SQLAlchemy Models for the Dive Center System
"""
from datetime import datetime, date
from decimal import Decimal
from typing import Optional
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Date, Numeric, JSON,
    ForeignKey, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship
import enum

from divecenter.core.database import Base


# ==================== ENUMS ====================

class UserRole(enum.Enum):
    ADMIN = "Admin"
    INSTRUCTOR = "Instructor"
    DIVE_MASTER = "DiveMaster"
    AGENT = "Agent"


class TaxCalculationMode(enum.Enum):
    INCLUSIVE = "inclusive"
    EXCLUSIVE = "exclusive"


class BookingStatus(enum.Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class DiveStatus(enum.Enum):
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class EquipmentItemStatus(enum.Enum):
    AVAILABLE = "Available"
    RENTED = "Rented"
    MAINTENANCE = "Maintenance"


class EquipmentSource(enum.Enum):
    CENTER = "Center"
    CUSTOMER_OWN = "Customer Own"


class AssignmentStatus(enum.Enum):
    CHECKED_OUT = "Checked Out"
    RETURNED = "Returned"
    LOST = "Lost"


# Every legal assignment_status change; terminal states have no exits
ASSIGNMENT_TRANSITIONS = {
    AssignmentStatus.CHECKED_OUT.value: {AssignmentStatus.RETURNED.value, AssignmentStatus.LOST.value},
    AssignmentStatus.RETURNED.value: set(),
    AssignmentStatus.LOST.value: set(),
}


class BasketStatus(enum.Enum):
    ACTIVE = "Active"
    RETURNED = "Returned"


class InvoiceStatus(enum.Enum):
    DRAFT = "Draft"
    PARTIALLY_PAID = "Partially Paid"
    PAID = "Paid"
    REFUNDED = "Refunded"


class InvoiceType(enum.Enum):
    ADVANCE = "Advance"
    FINAL = "Final"
    FULL = "Full"


class PaymentType(enum.Enum):
    ADVANCE = "Advance"
    FINAL = "Final"
    REFUND = "Refund"


class PaymentMethodType(enum.Enum):
    CASH = "Cash"
    BANK_TRANSFER = "Bank Transfer"
    CREDIT_CARD = "Credit Card"
    WALLET = "Wallet"
    CRYPTO = "Crypto"


class RecurringPeriod(enum.Enum):
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    YEARLY = "Yearly"


class PricingModel(enum.Enum):
    SINGLE = "SINGLE"
    RANGE = "RANGE"
    TIERED = "TIERED"


class CustomerType(enum.Enum):
    ALL = "ALL"
    MEMBER = "MEMBER"
    NON_MEMBER = "NON_MEMBER"
    GROUP = "GROUP"
    CORPORATE = "CORPORATE"


# ==================== CORE MODELS ====================

class DiveCenter(Base):
    """Dive center (tenant) with its billing settings"""
    __tablename__ = 'dive_centers'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    legal_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    country = Column(String(100), nullable=True)
    currency = Column(String(10), default="USD")
    status = Column(String(20), default="Active")
    settings = Column(JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    users = relationship("User", back_populates="dive_center", cascade="all, delete-orphan")
    customers = relationship("Customer", back_populates="dive_center", cascade="all, delete-orphan")

    @property
    def tax_calculation_mode(self) -> str:
        """Current mode from settings; anything unknown reads as exclusive"""
        mode = (self.settings or {}).get("tax_calculation_mode")
        if mode in (TaxCalculationMode.INCLUSIVE.value, TaxCalculationMode.EXCLUSIVE.value):
            return mode
        return TaxCalculationMode.EXCLUSIVE.value


class User(Base):
    """Staff account"""
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    hashed_password = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    role = Column(String(20), default=UserRole.ADMIN.value)
    active = Column(Boolean, default=True)
    dive_center_id = Column(Integer, ForeignKey('dive_centers.id', ondelete='CASCADE'), nullable=False)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    dive_center = relationship("DiveCenter", back_populates="users")


# ==================== CUSTOMERS ====================

class Customer(Base):
    """Diver / customer record"""
    __tablename__ = 'customers'

    id = Column(Integer, primary_key=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    zip_code = Column(String(20), nullable=True)
    country = Column(String(100), nullable=True)
    passport_no = Column(String(100), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String(20), nullable=True)
    nationality = Column(String(100), nullable=True)
    departure_date = Column(Date, nullable=True)
    departure_flight = Column(String(50), nullable=True)
    departure_flight_time = Column(String(10), nullable=True)
    departure_to = Column(String(255), nullable=True)
    dive_center_id = Column(Integer, ForeignKey('dive_centers.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    dive_center = relationship("DiveCenter", back_populates="customers")
    bookings = relationship("Booking", back_populates="customer")
    certifications = relationship("CustomerCertification", back_populates="customer", cascade="all, delete-orphan")
    insurances = relationship("CustomerInsurance", back_populates="customer", cascade="all, delete-orphan")
    emergency_contacts = relationship("EmergencyContact", back_populates="customer", cascade="all, delete-orphan")

    __table_args__ = (
        Index('ix_customers_dive_center_id', 'dive_center_id'),
    )


class CustomerCertification(Base):
    """Diving certification held by a customer"""
    __tablename__ = 'customer_certifications'

    id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey('customers.id', ondelete='CASCADE'), nullable=False)
    certification_name = Column(String(255), nullable=False)
    certification_no = Column(String(100), nullable=True)
    agency = Column(String(100), nullable=True)
    certification_date = Column(Date, nullable=True)
    last_dive_date = Column(Date, nullable=True)
    no_of_dives = Column(Integer, nullable=True)
    instructor = Column(String(255), nullable=True)
    file_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    customer = relationship("Customer", back_populates="certifications")


class CustomerInsurance(Base):
    """Dive insurance policy"""
    __tablename__ = 'customer_insurances'

    id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey('customers.id', ondelete='CASCADE'), nullable=False)
    insurance_provider = Column(String(255), nullable=True)
    insurance_no = Column(String(100), nullable=True)
    insurance_hotline_no = Column(String(50), nullable=True)
    expiry_date = Column(Date, nullable=True)
    file_url = Column(String(500), nullable=True)
    status = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    customer = relationship("Customer", back_populates="insurances")


class EmergencyContact(Base):
    """Emergency contact of a customer"""
    __tablename__ = 'emergency_contacts'

    id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey('customers.id', ondelete='CASCADE'), nullable=False)
    name = Column(String(255), nullable=False)
    relationship_type = Column("relationship", String(100), nullable=True)
    phone_1 = Column(String(50), nullable=True)
    phone_2 = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    is_primary = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    customer = relationship("Customer", back_populates="emergency_contacts")


class DiveGroupMember(Base):
    """Association table for DiveGroup-Customer many-to-many"""
    __tablename__ = 'dive_group_members'

    id = Column(Integer, primary_key=True)
    dive_group_id = Column(Integer, ForeignKey('dive_groups.id', ondelete='CASCADE'), nullable=False)
    customer_id = Column(Integer, ForeignKey('customers.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('dive_group_id', 'customer_id', name='uq_dive_group_member'),
    )


class DiveGroup(Base):
    """Named collection of customers sharing a booking"""
    __tablename__ = 'dive_groups'

    id = Column(Integer, primary_key=True)
    group_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), default="Active")
    dive_center_id = Column(Integer, ForeignKey('dive_centers.id', ondelete='CASCADE'), nullable=False)
    created_by = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    members = relationship("Customer", secondary="dive_group_members", order_by="Customer.full_name")
    bookings = relationship("Booking", back_populates="dive_group")


# ==================== DIVE CATALOG ====================

class DiveSite(Base):
    __tablename__ = 'dive_sites'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    max_depth = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)
    dive_center_id = Column(Integer, ForeignKey('dive_centers.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class Boat(Base):
    __tablename__ = 'boats'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    capacity = Column(Integer, nullable=True)
    active = Column(Boolean, default=True)
    dive_center_id = Column(Integer, ForeignKey('dive_centers.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


# ==================== BOOKINGS ====================

class Booking(Base):
    """Booking for a customer or a dive group"""
    __tablename__ = 'bookings'

    id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey('customers.id', ondelete='CASCADE'), nullable=True)
    dive_group_id = Column(Integer, ForeignKey('dive_groups.id', ondelete='SET NULL'), nullable=True)
    booking_date = Column(Date, nullable=True)
    number_of_divers = Column(Integer, nullable=True)
    status = Column(String(20), default=BookingStatus.PENDING.value)
    notes = Column(Text, nullable=True)
    dive_center_id = Column(Integer, ForeignKey('dive_centers.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    customer = relationship("Customer", back_populates="bookings")
    dive_group = relationship("DiveGroup", back_populates="bookings")
    dives = relationship("BookingDive", back_populates="booking", cascade="all, delete-orphan")
    equipment = relationship("BookingEquipment", back_populates="booking")
    baskets = relationship("EquipmentBasket", back_populates="booking")
    invoices = relationship("Invoice", back_populates="booking")

    __table_args__ = (
        Index('ix_bookings_dive_center_id', 'dive_center_id'),
    )


class BookingInstructor(Base):
    """Instructor assigned to a booking dive"""
    __tablename__ = 'booking_instructors'

    id = Column(Integer, primary_key=True)
    booking_dive_id = Column(Integer, ForeignKey('booking_dives.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    role = Column(String(50), nullable=True)

    booking_dive = relationship("BookingDive", back_populates="instructors")
    user = relationship("User")


class BookingDive(Base):
    """Scheduled or completed dive, with its log once completed"""
    __tablename__ = 'booking_dives'

    id = Column(Integer, primary_key=True)
    booking_id = Column(Integer, ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False)
    dive_site_id = Column(Integer, ForeignKey('dive_sites.id', ondelete='SET NULL'), nullable=True)
    boat_id = Column(Integer, ForeignKey('boats.id', ondelete='SET NULL'), nullable=True)
    dive_date = Column(Date, nullable=True)
    dive_time = Column(String(10), nullable=True)
    price_list_item_id = Column(Integer, ForeignKey('price_list_items.id', ondelete='SET NULL'), nullable=True)
    price = Column(Numeric(10, 2), default=Decimal("0.00"))
    status = Column(String(20), default=DiveStatus.SCHEDULED.value)
    # Dive log
    dive_duration = Column(Integer, nullable=True)  # minutes
    max_depth = Column(Numeric(6, 2), nullable=True)  # meters
    gas_mix = Column(String(50), nullable=True)
    dive_log_notes = Column(Text, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    booking = relationship("Booking", back_populates="dives")
    dive_site = relationship("DiveSite")
    boat = relationship("Boat")
    instructors = relationship("BookingInstructor", back_populates="booking_dive", cascade="all, delete-orphan")
    price_list_item = relationship("PriceListItem")
    invoice_items = relationship("InvoiceItem", back_populates="booking_dive")

    @property
    def is_completed(self) -> bool:
        return self.status == DiveStatus.COMPLETED.value


# ==================== EQUIPMENT ====================

class Equipment(Base):
    """Equipment catalog type (BCD, regulator, wetsuit...)"""
    __tablename__ = 'equipment'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=True)
    active = Column(Boolean, default=True)
    dive_center_id = Column(Integer, ForeignKey('dive_centers.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    items = relationship("EquipmentItem", back_populates="equipment", cascade="all, delete-orphan")


class EquipmentItem(Base):
    """Serialized physical unit of an Equipment type"""
    __tablename__ = 'equipment_items'

    id = Column(Integer, primary_key=True)
    equipment_id = Column(Integer, ForeignKey('equipment.id', ondelete='CASCADE'), nullable=False)
    size = Column(String(50), nullable=True)
    serial_no = Column(String(100), nullable=True)
    inventory_code = Column(String(100), nullable=True)
    brand = Column(String(100), nullable=True)
    color = Column(String(50), nullable=True)
    status = Column(String(20), default=EquipmentItemStatus.AVAILABLE.value)
    purchase_date = Column(Date, nullable=True)
    requires_service = Column(Boolean, default=False)
    service_interval_days = Column(Integer, nullable=True)
    last_service_date = Column(Date, nullable=True)
    next_service_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    equipment = relationship("Equipment", back_populates="items")
    service_history = relationship("EquipmentServiceHistory", back_populates="equipment_item",
                                   cascade="all, delete-orphan")
    assignments = relationship("BookingEquipment", back_populates="equipment_item")

    @property
    def is_service_overdue(self) -> bool:
        return bool(self.requires_service and self.next_service_date and self.next_service_date <= date.today())

    @property
    def display_name(self) -> str:
        name = self.equipment.name if self.equipment else "Equipment"
        if self.size:
            name += f" - {self.size}"
        return name


class EquipmentServiceHistory(Base):
    """One service event on an equipment item"""
    __tablename__ = 'equipment_service_history'

    id = Column(Integer, primary_key=True)
    equipment_item_id = Column(Integer, ForeignKey('equipment_items.id', ondelete='CASCADE'), nullable=False)
    service_date = Column(Date, nullable=False)
    service_type = Column(String(255), nullable=True)
    technician = Column(String(255), nullable=True)
    service_provider = Column(String(255), nullable=True)
    cost = Column(Numeric(10, 2), nullable=True)
    notes = Column(Text, nullable=True)
    parts_replaced = Column(Text, nullable=True)
    warranty_info = Column(Text, nullable=True)
    next_service_due_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    equipment_item = relationship("EquipmentItem", back_populates="service_history")


class EquipmentBasket(Base):
    """Physical container tracking one customer's equipment"""
    __tablename__ = 'equipment_baskets'

    id = Column(Integer, primary_key=True)
    basket_no = Column(String(50), nullable=False)
    customer_id = Column(Integer, ForeignKey('customers.id', ondelete='CASCADE'), nullable=False)
    booking_id = Column(Integer, ForeignKey('bookings.id', ondelete='SET NULL'), nullable=True)
    center_bucket_no = Column(String(255), nullable=True)
    checkout_date = Column(Date, nullable=True)
    expected_return_date = Column(Date, nullable=True)
    actual_return_date = Column(Date, nullable=True)
    status = Column(String(20), default=BasketStatus.ACTIVE.value)
    notes = Column(Text, nullable=True)
    dive_center_id = Column(Integer, ForeignKey('dive_centers.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    customer = relationship("Customer")
    booking = relationship("Booking", back_populates="baskets")
    equipment = relationship("BookingEquipment", back_populates="basket", order_by="BookingEquipment.id")

    __table_args__ = (
        UniqueConstraint('basket_no', 'dive_center_id', name='uq_basket_no'),
    )

    @property
    def is_active(self) -> bool:
        return self.status == BasketStatus.ACTIVE.value


class BookingEquipment(Base):
    """One rented or customer-owned item assigned to a basket/booking"""
    __tablename__ = 'booking_equipment'

    id = Column(Integer, primary_key=True)
    booking_id = Column(Integer, ForeignKey('bookings.id', ondelete='CASCADE'), nullable=True)
    basket_id = Column(Integer, ForeignKey('equipment_baskets.id', ondelete='CASCADE'), nullable=True)
    equipment_item_id = Column(Integer, ForeignKey('equipment_items.id', ondelete='SET NULL'), nullable=True)
    price = Column(Numeric(10, 2), default=Decimal("0.00"))
    checkout_date = Column(Date, nullable=True)
    return_date = Column(Date, nullable=True)
    actual_return_date = Column(Date, nullable=True)
    equipment_source = Column(String(20), default=EquipmentSource.CENTER.value)
    customer_equipment_type = Column(String(255), nullable=True)
    customer_equipment_brand = Column(String(255), nullable=True)
    customer_equipment_model = Column(String(255), nullable=True)
    customer_equipment_serial = Column(String(255), nullable=True)
    customer_equipment_notes = Column(Text, nullable=True)
    assignment_status = Column(String(20), default=AssignmentStatus.CHECKED_OUT.value)
    damage_reported = Column(Boolean, default=False)
    damage_description = Column(Text, nullable=True)
    damage_cost = Column(Numeric(10, 2), nullable=True)
    charge_customer = Column(Boolean, default=False)
    damage_charge_amount = Column(Numeric(10, 2), nullable=True)
    dive_center_id = Column(Integer, ForeignKey('dive_centers.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    booking = relationship("Booking", back_populates="equipment")
    basket = relationship("EquipmentBasket", back_populates="equipment")
    equipment_item = relationship("EquipmentItem", back_populates="assignments")
    invoice_items = relationship("InvoiceItem", back_populates="booking_equipment")

    __table_args__ = (
        Index('ix_booking_equipment_item_status', 'equipment_item_id', 'assignment_status'),
    )

    @property
    def is_center_equipment(self) -> bool:
        return self.equipment_source == EquipmentSource.CENTER.value

    @property
    def is_checked_out(self) -> bool:
        return self.assignment_status == AssignmentStatus.CHECKED_OUT.value

    @property
    def is_terminal(self) -> bool:
        return not ASSIGNMENT_TRANSITIONS.get(self.assignment_status)

    @property
    def display_name(self) -> str:
        if self.equipment_item:
            return self.equipment_item.display_name
        if self.customer_equipment_type:
            name = self.customer_equipment_type
            if self.customer_equipment_brand:
                name += f" - {self.customer_equipment_brand}"
            return name
        return "Equipment"

    def transition_to(self, new_status: str):
        """Move assignment_status along ASSIGNMENT_TRANSITIONS or raise ValueError"""
        allowed = ASSIGNMENT_TRANSITIONS.get(self.assignment_status, set())
        if new_status not in allowed:
            raise ValueError(
                f"Equipment #{self.id} cannot change from '{self.assignment_status}' to '{new_status}'"
            )
        self.assignment_status = new_status


# ==================== PRICING ====================

class Tax(Base):
    """Named charge percentage; 'Service Charge' and 'T-GST' back the invoice charges"""
    __tablename__ = 'taxes'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    percentage = Column(Numeric(5, 2), nullable=False)
    dive_center_id = Column(Integer, ForeignKey('dive_centers.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('name', 'dive_center_id', name='uq_tax_name'),
    )


class PriceList(Base):
    __tablename__ = 'price_lists'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True)
    dive_center_id = Column(Integer, ForeignKey('dive_centers.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = relationship("PriceListItem", back_populates="price_list", cascade="all, delete-orphan",
                         order_by="PriceListItem.sort_order")


class PriceListItem(Base):
    """Priced service; dive trips can be priced by dive count, range or tier"""
    __tablename__ = 'price_list_items'

    id = Column(Integer, primary_key=True)
    price_list_id = Column(Integer, ForeignKey('price_lists.id', ondelete='CASCADE'), nullable=False)
    service_type = Column(String(100), nullable=False)
    equipment_item_id = Column(Integer, ForeignKey('equipment_items.id', ondelete='SET NULL'), nullable=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    base_price = Column(Numeric(10, 2), nullable=True)
    pricing_model = Column(String(20), default=PricingModel.SINGLE.value)
    min_dives = Column(Integer, default=1)
    max_dives = Column(Integer, nullable=True)  # open-ended when null
    priority = Column(Integer, default=0)
    valid_from = Column(Date, nullable=True)
    valid_until = Column(Date, nullable=True)
    applicable_to = Column(String(20), default=CustomerType.ALL.value)
    unit = Column(String(50), nullable=True)
    sort_order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    dive_center_id = Column(Integer, ForeignKey('dive_centers.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    price_list = relationship("PriceList", back_populates="items")
    equipment_item = relationship("EquipmentItem")
    tiers = relationship("PriceListItemTier", back_populates="item", cascade="all, delete-orphan",
                         order_by="PriceListItemTier.from_dives")

    __table_args__ = (
        Index('ix_price_list_items_service_type', 'dive_center_id', 'service_type'),
    )

    @property
    def effective_price(self) -> Decimal:
        return self.base_price if self.base_price is not None else self.price

    @property
    def is_tiered(self) -> bool:
        return self.pricing_model == PricingModel.TIERED.value

    def covers(self, dive_count: int) -> bool:
        if dive_count < (self.min_dives or 1):
            return False
        return self.max_dives is None or dive_count <= self.max_dives

    def is_valid_on(self, on: date) -> bool:
        if self.valid_from and self.valid_from > on:
            return False
        return not (self.valid_until and self.valid_until < on)

    def applies_to(self, customer_type: Optional[str]) -> bool:
        return not customer_type or self.applicable_to in (CustomerType.ALL.value, customer_type)


class PriceListItemTier(Base):
    """Dive-count band of a tiered item, priced per dive or as a block"""
    __tablename__ = 'price_list_item_tiers'

    id = Column(Integer, primary_key=True)
    item_id = Column(Integer, ForeignKey('price_list_items.id', ondelete='CASCADE'), nullable=False)
    tier_name = Column(String(100), nullable=True)
    from_dives = Column(Integer, nullable=False)
    to_dives = Column(Integer, nullable=False)
    price_per_dive = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=True)
    is_active = Column(Boolean, default=True)
    sort_order = Column(Integer, default=0)

    item = relationship("PriceListItem", back_populates="tiers")

    @property
    def size(self) -> int:
        return self.to_dives - self.from_dives + 1


# ==================== INVOICES & PAYMENTS ====================

class Invoice(Base):
    """Customer invoice"""
    __tablename__ = 'invoices'

    id = Column(Integer, primary_key=True)
    invoice_no = Column(String(50), nullable=True)
    booking_id = Column(Integer, ForeignKey('bookings.id', ondelete='SET NULL'), nullable=True)
    customer_id = Column(Integer, ForeignKey('customers.id', ondelete='SET NULL'), nullable=True)
    invoice_date = Column(Date, nullable=True)
    invoice_type = Column(String(20), default=InvoiceType.FULL.value)
    subtotal = Column(Numeric(10, 2), default=Decimal("0.00"))
    discount = Column(Numeric(10, 2), default=Decimal("0.00"))
    service_charge = Column(Numeric(10, 2), default=Decimal("0.00"))
    tax = Column(Numeric(10, 2), default=Decimal("0.00"))
    total = Column(Numeric(10, 2), default=Decimal("0.00"))
    currency = Column(String(10), default="USD")
    status = Column(String(20), default=InvoiceStatus.DRAFT.value)
    notes = Column(Text, nullable=True)
    dive_center_id = Column(Integer, ForeignKey('dive_centers.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    dive_center = relationship("DiveCenter")
    booking = relationship("Booking", back_populates="invoices")
    customer = relationship("Customer")
    items = relationship("InvoiceItem", back_populates="invoice", cascade="all, delete-orphan",
                         order_by="InvoiceItem.id")
    payments = relationship("Payment", back_populates="invoice", cascade="all, delete-orphan",
                            order_by="Payment.id")

    __table_args__ = (
        UniqueConstraint('invoice_no', 'dive_center_id', name='uq_invoice_no'),
        Index('ix_invoices_dive_center_id', 'dive_center_id'),
    )

    @property
    def total_paid(self) -> Decimal:
        return sum((p.amount or Decimal("0") for p in self.payments), Decimal("0"))

    @property
    def remaining_balance(self) -> Decimal:
        return (self.total or Decimal("0")) - self.total_paid

    @property
    def is_fully_paid(self) -> bool:
        return self.remaining_balance <= 0

    @property
    def is_locked(self) -> bool:
        """Paid invoices no longer accept item or discount changes"""
        return self.status == InvoiceStatus.PAID.value and self.is_fully_paid


class InvoiceItem(Base):
    """Invoice line item"""
    __tablename__ = 'invoice_items'

    id = Column(Integer, primary_key=True)
    invoice_id = Column(Integer, ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False)
    description = Column(String(500), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(10, 2), default=Decimal("0.00"))
    total = Column(Numeric(10, 2), nullable=False)
    price_list_item_id = Column(Integer, ForeignKey('price_list_items.id', ondelete='SET NULL'), nullable=True)
    booking_dive_id = Column(Integer, ForeignKey('booking_dives.id', ondelete='SET NULL'), nullable=True)
    booking_equipment_id = Column(Integer, ForeignKey('booking_equipment.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    invoice = relationship("Invoice", back_populates="items")
    booking_dive = relationship("BookingDive", back_populates="invoice_items")
    booking_equipment = relationship("BookingEquipment", back_populates="invoice_items")
    price_list_item = relationship("PriceListItem")


class PaymentMethod(Base):
    """Payment method configured by the dive center"""
    __tablename__ = 'payment_methods'

    id = Column(Integer, primary_key=True)
    method_type = Column(String(20), nullable=False)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True)
    settings = Column(JSON, nullable=True)
    dive_center_id = Column(Integer, ForeignKey('dive_centers.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    payments = relationship("Payment", back_populates="payment_method")


class Payment(Base):
    """Partial or full settlement of an invoice"""
    __tablename__ = 'payments'

    id = Column(Integer, primary_key=True)
    invoice_id = Column(Integer, ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False)
    payment_method_id = Column(Integer, ForeignKey('payment_methods.id', ondelete='SET NULL'), nullable=True)
    payment_date = Column(Date, nullable=True)
    amount = Column(Numeric(10, 2), nullable=False)
    payment_type = Column(String(20), default=PaymentType.FINAL.value)
    method_type = Column(String(20), default=PaymentMethodType.CASH.value)
    method_details = Column(JSON, nullable=True)
    reference = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    invoice = relationship("Invoice", back_populates="payments")
    payment_method = relationship("PaymentMethod", back_populates="payments")


# ==================== EXPENSES ====================

class Supplier(Base):
    __tablename__ = 'suppliers'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    address = Column(Text, nullable=True)
    contact_no = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    gst_tin = Column(String(100), nullable=True)
    currency = Column(String(10), nullable=True)
    status = Column(String(20), default="Active")
    dive_center_id = Column(Integer, ForeignKey('dive_centers.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    expenses = relationship("Expense", back_populates="supplier")

    __table_args__ = (
        UniqueConstraint('name', 'dive_center_id', name='uq_supplier_name'),
    )


class ExpenseCategory(Base):
    __tablename__ = 'expense_categories'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    dive_center_id = Column(Integer, ForeignKey('dive_centers.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    expenses = relationship("Expense", back_populates="category")

    __table_args__ = (
        UniqueConstraint('name', 'dive_center_id', name='uq_expense_category_name'),
    )


class Expense(Base):
    """Operational cost record"""
    __tablename__ = 'expenses'

    id = Column(Integer, primary_key=True)
    expense_no = Column(String(50), nullable=False)
    supplier_id = Column(Integer, ForeignKey('suppliers.id', ondelete='SET NULL'), nullable=True)
    expense_category_id = Column(Integer, ForeignKey('expense_categories.id', ondelete='SET NULL'), nullable=True)
    created_by = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    expense_date = Column(Date, nullable=False)
    description = Column(String(255), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(10), default="USD")
    is_recurring = Column(Boolean, default=False)
    recurring_period = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)
    dive_center_id = Column(Integer, ForeignKey('dive_centers.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    supplier = relationship("Supplier", back_populates="expenses")
    category = relationship("ExpenseCategory", back_populates="expenses")

    __table_args__ = (
        UniqueConstraint('expense_no', 'dive_center_id', name='uq_expense_no'),
    )
