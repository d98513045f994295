"""
Pydantic Schemas for API Validation
"""
from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator, model_validator
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from datetime import datetime, date
from decimal import Decimal
from enum import Enum


# ==================== ENUMS ====================

class UserRoleEnum(str, Enum):
    ADMIN = "Admin"
    INSTRUCTOR = "Instructor"
    DIVE_MASTER = "DiveMaster"
    AGENT = "Agent"


class TaxCalculationModeEnum(str, Enum):
    INCLUSIVE = "inclusive"
    EXCLUSIVE = "exclusive"


class BookingStatusEnum(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class DiveStatusEnum(str, Enum):
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class EquipmentItemStatusEnum(str, Enum):
    AVAILABLE = "Available"
    RENTED = "Rented"
    MAINTENANCE = "Maintenance"


class EquipmentSourceEnum(str, Enum):
    CENTER = "Center"
    CUSTOMER_OWN = "Customer Own"


class BasketStatusEnum(str, Enum):
    ACTIVE = "Active"
    RETURNED = "Returned"


class InvoiceTypeEnum(str, Enum):
    ADVANCE = "Advance"
    FINAL = "Final"
    FULL = "Full"


class InvoiceStatusEnum(str, Enum):
    DRAFT = "Draft"
    PARTIALLY_PAID = "Partially Paid"
    PAID = "Paid"
    REFUNDED = "Refunded"


class PaymentTypeEnum(str, Enum):
    ADVANCE = "Advance"
    FINAL = "Final"
    REFUND = "Refund"


class PaymentMethodTypeEnum(str, Enum):
    CASH = "Cash"
    BANK_TRANSFER = "Bank Transfer"
    CREDIT_CARD = "Credit Card"
    WALLET = "Wallet"
    CRYPTO = "Crypto"


class RecurringPeriodEnum(str, Enum):
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    YEARLY = "Yearly"


class UploadCategoryEnum(str, Enum):
    INSURANCE = "insurance"
    CERTIFICATION = "certification"
    DOCUMENT = "document"


class PricingModelEnum(str, Enum):
    SINGLE = "SINGLE"
    RANGE = "RANGE"
    TIERED = "TIERED"


class CustomerTypeEnum(str, Enum):
    ALL = "ALL"
    MEMBER = "MEMBER"
    NON_MEMBER = "NON_MEMBER"
    GROUP = "GROUP"
    CORPORATE = "CORPORATE"


# ==================== COMMON ====================

class MessageResponse(BaseModel):
    message: str
    success: bool = True


class PaginatedResponse(BaseModel):
    data: List[Any]
    total: int
    per_page: int
    last_page: int
    current_page: int


# ==================== AUTH SCHEMAS ====================

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class SignupRequest(BaseModel):
    dive_center_name: str = Field(..., min_length=2, max_length=255)
    full_name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6)


# ==================== USER SCHEMAS ====================

class UserBase(BaseModel):
    full_name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=50)
    role: UserRoleEnum = UserRoleEnum.INSTRUCTOR

    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class UserCreate(UserBase):
    password: str = Field(..., min_length=6)


class UserUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=2, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    role: Optional[UserRoleEnum] = None
    active: Optional[bool] = None

    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class UserResponse(BaseModel):
    id: int
    full_name: str
    email: str
    phone: Optional[str] = None
    role: str
    active: bool
    dive_center_id: int
    last_login: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==================== DIVE CENTER SCHEMAS ====================

class DiveCenterUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    legal_name: Optional[str] = Field(None, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    country: Optional[str] = Field(None, max_length=100)
    currency: Optional[str] = Field(None, min_length=3, max_length=10)
    settings: Optional[Dict[str, Any]] = None

    @field_validator("settings")
    @classmethod
    def check_known_settings(cls, value):
        if not value:
            return value
        mode = value.get("tax_calculation_mode")
        if mode is not None and mode not in ("inclusive", "exclusive"):
            raise ValueError("tax_calculation_mode must be 'inclusive' or 'exclusive'")
        for key in ("service_charge_percentage", "tax_percentage"):
            if key in value and value[key] is not None:
                try:
                    pct = Decimal(str(value[key]))
                except ArithmeticError:
                    raise ValueError(f"{key} must be a number")
                if pct < 0 or pct > 100:
                    raise ValueError(f"{key} must be between 0 and 100")
        return value


class DiveCenterResponse(BaseModel):
    id: int
    name: str
    legal_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    country: Optional[str] = None
    currency: str
    status: str
    settings: Optional[Dict[str, Any]] = None
    tax_calculation_mode: str = "exclusive"
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==================== CUSTOMER SCHEMAS ====================

class CustomerBase(BaseModel):
    full_name: str = Field(..., min_length=2, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=100)
    passport_no: Optional[str] = Field(None, max_length=100)
    date_of_birth: Optional[date] = None
    gender: Optional[str] = Field(None, max_length=20)
    nationality: Optional[str] = Field(None, max_length=100)
    departure_date: Optional[date] = None
    departure_flight: Optional[str] = Field(None, max_length=50)
    departure_flight_time: Optional[str] = Field(None, max_length=10)
    departure_to: Optional[str] = Field(None, max_length=255)


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=2, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=100)
    passport_no: Optional[str] = Field(None, max_length=100)
    date_of_birth: Optional[date] = None
    gender: Optional[str] = Field(None, max_length=20)
    nationality: Optional[str] = Field(None, max_length=100)
    departure_date: Optional[date] = None
    departure_flight: Optional[str] = Field(None, max_length=50)
    departure_flight_time: Optional[str] = Field(None, max_length=10)
    departure_to: Optional[str] = Field(None, max_length=255)


class CustomerResponse(CustomerBase):
    id: int
    email: Optional[str] = None
    dive_center_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CustomerSummary(BaseModel):
    id: int
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class CertificationBase(BaseModel):
    certification_name: str = Field(..., min_length=2, max_length=255)
    certification_no: Optional[str] = Field(None, max_length=100)
    agency: Optional[str] = Field(None, max_length=100)
    certification_date: Optional[date] = None
    last_dive_date: Optional[date] = None
    no_of_dives: Optional[int] = Field(None, ge=0)
    instructor: Optional[str] = Field(None, max_length=255)
    file_url: Optional[str] = Field(None, max_length=500)


class CertificationCreate(CertificationBase):
    pass


class CertificationUpdate(BaseModel):
    certification_name: Optional[str] = Field(None, min_length=2, max_length=255)
    certification_no: Optional[str] = Field(None, max_length=100)
    agency: Optional[str] = Field(None, max_length=100)
    certification_date: Optional[date] = None
    last_dive_date: Optional[date] = None
    no_of_dives: Optional[int] = Field(None, ge=0)
    instructor: Optional[str] = Field(None, max_length=255)
    file_url: Optional[str] = Field(None, max_length=500)


class CertificationResponse(CertificationBase):
    id: int
    customer_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InsuranceBase(BaseModel):
    insurance_provider: Optional[str] = Field(None, max_length=255)
    insurance_no: Optional[str] = Field(None, max_length=100)
    insurance_hotline_no: Optional[str] = Field(None, max_length=50)
    expiry_date: Optional[date] = None
    file_url: Optional[str] = Field(None, max_length=500)
    status: bool = True


class InsuranceCreate(InsuranceBase):
    pass


class InsuranceUpdate(BaseModel):
    insurance_provider: Optional[str] = Field(None, max_length=255)
    insurance_no: Optional[str] = Field(None, max_length=100)
    insurance_hotline_no: Optional[str] = Field(None, max_length=50)
    expiry_date: Optional[date] = None
    file_url: Optional[str] = Field(None, max_length=500)
    status: Optional[bool] = None


class InsuranceResponse(InsuranceBase):
    id: int
    customer_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EmergencyContactBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    relationship_type: Optional[str] = Field(None, max_length=100)
    phone_1: Optional[str] = Field(None, max_length=50)
    phone_2: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    is_primary: bool = False


class EmergencyContactCreate(EmergencyContactBase):
    pass


class EmergencyContactUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    relationship_type: Optional[str] = Field(None, max_length=100)
    phone_1: Optional[str] = Field(None, max_length=50)
    phone_2: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    is_primary: Optional[bool] = None


class EmergencyContactResponse(EmergencyContactBase):
    id: int
    customer_id: int
    email: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CustomerDetail(CustomerResponse):
    certifications: List[CertificationResponse] = []
    insurances: List[InsuranceResponse] = []
    emergency_contacts: List[EmergencyContactResponse] = []


# ==================== DIVE GROUP SCHEMAS ====================

class DiveGroupCreate(BaseModel):
    group_name: str = Field(..., min_length=2, max_length=255)
    description: Optional[str] = None
    status: Literal["Active", "Inactive"] = "Active"
    member_ids: List[int] = []


class DiveGroupUpdate(BaseModel):
    group_name: Optional[str] = Field(None, min_length=2, max_length=255)
    description: Optional[str] = None
    status: Optional[Literal["Active", "Inactive"]] = None


class DiveGroupMemberRequest(BaseModel):
    customer_id: int


class DiveGroupResponse(BaseModel):
    id: int
    group_name: str
    description: Optional[str] = None
    status: str
    dive_center_id: int
    members: List[CustomerSummary] = []
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==================== DIVE SITE / BOAT SCHEMAS ====================

class DiveSiteCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    max_depth: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None


class DiveSiteUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    max_depth: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None


class DiveSiteResponse(DiveSiteCreate):
    id: int
    dive_center_id: int

    model_config = ConfigDict(from_attributes=True)


class BoatCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    capacity: Optional[int] = Field(None, ge=1)
    active: bool = True


class BoatUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    capacity: Optional[int] = Field(None, ge=1)
    active: Optional[bool] = None


class BoatResponse(BoatCreate):
    id: int
    dive_center_id: int

    model_config = ConfigDict(from_attributes=True)


# ==================== BOOKING SCHEMAS ====================

class BookingCreate(BaseModel):
    customer_id: Optional[int] = None
    dive_group_id: Optional[int] = None
    booking_date: Optional[date] = None
    number_of_divers: Optional[int] = Field(None, ge=1)
    status: BookingStatusEnum = BookingStatusEnum.PENDING
    notes: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    @model_validator(mode="after")
    def require_customer_or_group(self):
        if self.customer_id is None and self.dive_group_id is None:
            raise ValueError("Either customer_id or dive_group_id is required")
        return self


class BookingUpdate(BaseModel):
    customer_id: Optional[int] = None
    dive_group_id: Optional[int] = None
    booking_date: Optional[date] = None
    number_of_divers: Optional[int] = Field(None, ge=1)
    status: Optional[BookingStatusEnum] = None
    notes: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class BookingResponse(BaseModel):
    id: int
    customer_id: Optional[int] = None
    dive_group_id: Optional[int] = None
    booking_date: Optional[date] = None
    number_of_divers: Optional[int] = None
    status: str
    notes: Optional[str] = None
    dive_center_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BookingInstructorCreate(BaseModel):
    user_id: int
    role: Optional[str] = Field(None, max_length=50)


class BookingInstructorResponse(BookingInstructorCreate):
    id: int

    model_config = ConfigDict(from_attributes=True)


class BookingDiveCreate(BaseModel):
    booking_id: int
    dive_site_id: Optional[int] = None
    boat_id: Optional[int] = None
    dive_date: Optional[date] = None
    dive_time: Optional[str] = Field(None, max_length=10)
    # Without a price or price list item, the best Dive Trip price is picked
    price: Optional[Decimal] = Field(None, ge=0)
    price_list_item_id: Optional[int] = None
    instructors: List[BookingInstructorCreate] = []


class BookingDiveUpdate(BaseModel):
    dive_site_id: Optional[int] = None
    boat_id: Optional[int] = None
    dive_date: Optional[date] = None
    dive_time: Optional[str] = Field(None, max_length=10)
    price: Optional[Decimal] = Field(None, ge=0)
    status: Optional[DiveStatusEnum] = None
    instructors: Optional[List[BookingInstructorCreate]] = None
    dive_duration: Optional[int] = Field(None, ge=0)
    max_depth: Optional[Decimal] = Field(None, ge=0)
    gas_mix: Optional[str] = Field(None, max_length=50)
    dive_log_notes: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class CompleteDiveRequest(BaseModel):
    dive_duration: Optional[int] = Field(None, ge=0)
    max_depth: Optional[Decimal] = Field(None, ge=0)
    gas_mix: Optional[str] = Field(None, max_length=50)
    dive_log_notes: Optional[str] = None


class BookingDiveResponse(BaseModel):
    id: int
    booking_id: int
    dive_site_id: Optional[int] = None
    boat_id: Optional[int] = None
    dive_date: Optional[date] = None
    dive_time: Optional[str] = None
    price: Decimal
    price_list_item_id: Optional[int] = None
    status: str
    dive_duration: Optional[int] = None
    max_depth: Optional[Decimal] = None
    gas_mix: Optional[str] = None
    dive_log_notes: Optional[str] = None
    completed_at: Optional[datetime] = None
    instructors: List[BookingInstructorResponse] = []

    model_config = ConfigDict(from_attributes=True)


class BookingDetail(BookingResponse):
    dives: List[BookingDiveResponse] = []


# ==================== EQUIPMENT SCHEMAS ====================

class EquipmentCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    active: bool = True


class EquipmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    active: Optional[bool] = None


class EquipmentResponse(EquipmentCreate):
    id: int
    dive_center_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EquipmentItemCreate(BaseModel):
    equipment_id: int
    size: Optional[str] = Field(None, max_length=50)
    serial_no: Optional[str] = Field(None, max_length=100)
    inventory_code: Optional[str] = Field(None, max_length=100)
    brand: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, max_length=50)
    status: EquipmentItemStatusEnum = EquipmentItemStatusEnum.AVAILABLE
    purchase_date: Optional[date] = None
    requires_service: bool = False
    service_interval_days: Optional[int] = Field(None, ge=1)
    last_service_date: Optional[date] = None
    next_service_date: Optional[date] = None

    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class EquipmentItemUpdate(BaseModel):
    size: Optional[str] = Field(None, max_length=50)
    serial_no: Optional[str] = Field(None, max_length=100)
    inventory_code: Optional[str] = Field(None, max_length=100)
    brand: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, max_length=50)
    status: Optional[EquipmentItemStatusEnum] = None
    purchase_date: Optional[date] = None
    requires_service: Optional[bool] = None
    service_interval_days: Optional[int] = Field(None, ge=1)
    last_service_date: Optional[date] = None
    next_service_date: Optional[date] = None

    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class EquipmentItemResponse(BaseModel):
    id: int
    equipment_id: int
    display_name: str
    size: Optional[str] = None
    serial_no: Optional[str] = None
    inventory_code: Optional[str] = None
    brand: Optional[str] = None
    color: Optional[str] = None
    status: str
    purchase_date: Optional[date] = None
    requires_service: bool
    service_interval_days: Optional[int] = None
    last_service_date: Optional[date] = None
    next_service_date: Optional[date] = None
    is_service_overdue: bool = False

    model_config = ConfigDict(from_attributes=True)


class ServiceHistoryCreate(BaseModel):
    service_date: date
    service_type: Optional[str] = Field(None, max_length=255)
    technician: Optional[str] = Field(None, max_length=255)
    service_provider: Optional[str] = Field(None, max_length=255)
    cost: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None
    parts_replaced: Optional[str] = None
    warranty_info: Optional[str] = None
    next_service_due_date: Optional[date] = None


class ServiceHistoryUpdate(BaseModel):
    service_date: Optional[date] = None
    service_type: Optional[str] = Field(None, max_length=255)
    technician: Optional[str] = Field(None, max_length=255)
    service_provider: Optional[str] = Field(None, max_length=255)
    cost: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None
    parts_replaced: Optional[str] = None
    warranty_info: Optional[str] = None
    next_service_due_date: Optional[date] = None


class ServiceHistoryResponse(ServiceHistoryCreate):
    id: int
    equipment_item_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BulkServiceCreate(ServiceHistoryCreate):
    equipment_item_ids: List[int] = Field(..., min_length=1)
    auto_calculate_next_service: bool = True


class BulkServiceResponse(BaseModel):
    success: bool = True
    message: str
    records: List[ServiceHistoryResponse] = []


# ==================== BASKET SCHEMAS ====================

class CenterEquipmentSpec(BaseModel):
    """Rental unit drawn from the center's inventory"""
    equipment_source: Literal["Center"]
    equipment_item_id: int
    price: Decimal = Field(default=Decimal("0.00"), ge=0)
    checkout_date: Optional[date] = None
    return_date: Optional[date] = None


class CustomerOwnEquipmentSpec(BaseModel):
    """Gear the customer brought along, described freeform"""
    equipment_source: Literal["Customer Own"]
    customer_equipment_type: str = Field(..., min_length=1, max_length=255)
    customer_equipment_brand: Optional[str] = Field(None, max_length=255)
    customer_equipment_model: Optional[str] = Field(None, max_length=255)
    customer_equipment_serial: Optional[str] = Field(None, max_length=255)
    customer_equipment_notes: Optional[str] = None
    price: Decimal = Field(default=Decimal("0.00"), ge=0)
    checkout_date: Optional[date] = None
    return_date: Optional[date] = None


EquipmentSpec = Annotated[
    Union[CenterEquipmentSpec, CustomerOwnEquipmentSpec],
    Field(discriminator="equipment_source")
]


class BulkEquipmentAdd(BaseModel):
    items: List[EquipmentSpec] = Field(..., min_length=1)


class BookingEquipmentCreate(BaseModel):
    booking_id: Optional[int] = None
    basket_id: Optional[int] = None
    equipment_source: EquipmentSourceEnum = EquipmentSourceEnum.CENTER
    equipment_item_id: Optional[int] = None
    customer_equipment_type: Optional[str] = Field(None, max_length=255)
    customer_equipment_brand: Optional[str] = Field(None, max_length=255)
    customer_equipment_model: Optional[str] = Field(None, max_length=255)
    customer_equipment_serial: Optional[str] = Field(None, max_length=255)
    customer_equipment_notes: Optional[str] = None
    price: Decimal = Field(default=Decimal("0.00"), ge=0)
    checkout_date: Optional[date] = None
    return_date: Optional[date] = None

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    @model_validator(mode="after")
    def check_source_fields(self):
        if self.booking_id is None and self.basket_id is None:
            raise ValueError("Either booking_id or basket_id is required")
        if self.equipment_source == EquipmentSourceEnum.CENTER.value:
            if self.equipment_item_id is None:
                raise ValueError("equipment_item_id is required for Center equipment")
        elif not self.customer_equipment_type:
            raise ValueError("customer_equipment_type is required for Customer Own equipment")
        return self

    def to_spec(self) -> Union[CenterEquipmentSpec, CustomerOwnEquipmentSpec]:
        """Narrow the flat request to its tagged variant"""
        if self.equipment_source == EquipmentSourceEnum.CENTER.value:
            return CenterEquipmentSpec(
                equipment_source="Center",
                equipment_item_id=self.equipment_item_id,
                price=self.price,
                checkout_date=self.checkout_date,
                return_date=self.return_date,
            )
        return CustomerOwnEquipmentSpec(
            equipment_source="Customer Own",
            customer_equipment_type=self.customer_equipment_type,
            customer_equipment_brand=self.customer_equipment_brand,
            customer_equipment_model=self.customer_equipment_model,
            customer_equipment_serial=self.customer_equipment_serial,
            customer_equipment_notes=self.customer_equipment_notes,
            price=self.price,
            checkout_date=self.checkout_date,
            return_date=self.return_date,
        )


class BookingEquipmentUpdate(BaseModel):
    price: Optional[Decimal] = Field(None, ge=0)
    return_date: Optional[date] = None
    customer_equipment_type: Optional[str] = Field(None, max_length=255)
    customer_equipment_brand: Optional[str] = Field(None, max_length=255)
    customer_equipment_model: Optional[str] = Field(None, max_length=255)
    customer_equipment_serial: Optional[str] = Field(None, max_length=255)
    customer_equipment_notes: Optional[str] = None
    damage_reported: Optional[bool] = None
    damage_description: Optional[str] = None
    damage_cost: Optional[Decimal] = Field(None, ge=0)
    charge_customer: Optional[bool] = None
    damage_charge_amount: Optional[Decimal] = Field(None, ge=0)


class DamageReport(BaseModel):
    damage_reported: bool = False
    damage_description: Optional[str] = None
    damage_cost: Optional[Decimal] = Field(None, ge=0)
    charge_customer: bool = False
    damage_charge_amount: Optional[Decimal] = Field(None, ge=0)


class ReturnBasketRequest(BaseModel):
    """Return a basket; damage keyed by booking equipment id"""
    damage: Dict[int, DamageReport] = {}


class ReturnSelectedRequest(BaseModel):
    equipment_ids: List[int] = Field(..., min_length=1)
    damage: Dict[int, DamageReport] = {}


class BulkReturnRequest(BaseModel):
    equipment_ids: List[int] = Field(..., min_length=1)
    damage: Dict[int, DamageReport] = {}


class BookingEquipmentResponse(BaseModel):
    id: int
    booking_id: Optional[int] = None
    basket_id: Optional[int] = None
    equipment_item_id: Optional[int] = None
    display_name: str
    price: Decimal
    checkout_date: Optional[date] = None
    return_date: Optional[date] = None
    actual_return_date: Optional[date] = None
    equipment_source: str
    customer_equipment_type: Optional[str] = None
    customer_equipment_brand: Optional[str] = None
    customer_equipment_model: Optional[str] = None
    customer_equipment_serial: Optional[str] = None
    customer_equipment_notes: Optional[str] = None
    assignment_status: str
    damage_reported: bool
    damage_description: Optional[str] = None
    damage_cost: Optional[Decimal] = None
    charge_customer: bool
    damage_charge_amount: Optional[Decimal] = None

    model_config = ConfigDict(from_attributes=True)


class BasketCreate(BaseModel):
    customer_id: int
    booking_id: Optional[int] = None
    center_bucket_no: Optional[str] = Field(None, max_length=255)
    checkout_date: Optional[date] = None
    expected_return_date: Optional[date] = None
    notes: Optional[str] = None


class BasketUpdate(BaseModel):
    booking_id: Optional[int] = None
    center_bucket_no: Optional[str] = Field(None, max_length=255)
    expected_return_date: Optional[date] = None
    notes: Optional[str] = None


class BasketResponse(BaseModel):
    id: int
    basket_no: str
    customer_id: int
    booking_id: Optional[int] = None
    center_bucket_no: Optional[str] = None
    checkout_date: Optional[date] = None
    expected_return_date: Optional[date] = None
    actual_return_date: Optional[date] = None
    status: str
    notes: Optional[str] = None
    dive_center_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BasketDetail(BasketResponse):
    equipment: List[BookingEquipmentResponse] = []


class AvailabilityResponse(BaseModel):
    equipment_item_id: int
    checkout_date: date
    return_date: date
    available: bool
    conflicts: List[int] = []


# ==================== PRICING SCHEMAS ====================

class TaxCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    percentage: Decimal = Field(..., ge=0, le=100)


class TaxUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    percentage: Optional[Decimal] = Field(None, ge=0, le=100)


class TaxResponse(TaxCreate):
    id: int
    dive_center_id: int

    model_config = ConfigDict(from_attributes=True)


class PriceListCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    notes: Optional[str] = None


class PriceListUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    notes: Optional[str] = None


class PriceListItemTierCreate(BaseModel):
    tier_name: Optional[str] = Field(None, max_length=100)
    from_dives: int = Field(..., ge=1)
    to_dives: int = Field(..., ge=1)
    price_per_dive: Decimal = Field(..., ge=0)
    total_price: Optional[Decimal] = Field(None, ge=0)
    is_active: bool = True
    sort_order: int = 0

    @model_validator(mode="after")
    def check_band(self):
        if self.from_dives > self.to_dives:
            raise ValueError("from_dives must be less than or equal to to_dives")
        return self


class PriceListItemTierResponse(PriceListItemTierCreate):
    id: int

    model_config = ConfigDict(from_attributes=True)


def _check_tiers(tiers: List[PriceListItemTierCreate]):
    bands = sorted((t.from_dives, t.to_dives) for t in tiers)
    for (_, previous_end), (start, _) in zip(bands, bands[1:]):
        if start <= previous_end:
            raise ValueError("Tiers must not overlap")


class PriceListItemCreate(BaseModel):
    price_list_id: Optional[int] = None
    service_type: str = Field(..., min_length=1, max_length=100)
    equipment_item_id: Optional[int] = None
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    base_price: Optional[Decimal] = Field(None, ge=0)
    pricing_model: PricingModelEnum = PricingModelEnum.SINGLE
    min_dives: int = Field(default=1, ge=1)
    max_dives: Optional[int] = Field(None, ge=1)
    priority: int = 0
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None
    applicable_to: CustomerTypeEnum = CustomerTypeEnum.ALL
    unit: Optional[str] = Field(None, max_length=50)
    sort_order: int = 0
    is_active: bool = True
    tiers: List[PriceListItemTierCreate] = []

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    @model_validator(mode="after")
    def check_ranges(self):
        if self.max_dives is not None and self.max_dives < self.min_dives:
            raise ValueError("max_dives cannot be less than min_dives")
        if self.valid_from and self.valid_until and self.valid_until < self.valid_from:
            raise ValueError("valid_until cannot be before valid_from")
        if self.pricing_model == PricingModelEnum.TIERED.value and not self.tiers:
            raise ValueError("A tiered item needs at least one tier")
        if self.pricing_model != PricingModelEnum.TIERED.value and self.tiers:
            raise ValueError("Only tiered items can have tiers")
        _check_tiers(self.tiers)
        return self


class PriceListItemUpdate(BaseModel):
    service_type: Optional[str] = Field(None, min_length=1, max_length=100)
    equipment_item_id: Optional[int] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    base_price: Optional[Decimal] = Field(None, ge=0)
    pricing_model: Optional[PricingModelEnum] = None
    min_dives: Optional[int] = Field(None, ge=1)
    max_dives: Optional[int] = Field(None, ge=1)
    priority: Optional[int] = None
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None
    applicable_to: Optional[CustomerTypeEnum] = None
    unit: Optional[str] = Field(None, max_length=50)
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None
    tiers: Optional[List[PriceListItemTierCreate]] = None

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    @field_validator("tiers")
    @classmethod
    def check_tiers(cls, v):
        if v:
            _check_tiers(v)
        return v


class PriceListItemBulkLine(PriceListItemUpdate):
    id: int


class PriceListItemBulkUpdate(BaseModel):
    items: List[PriceListItemBulkLine] = Field(..., min_length=1)


class PriceListItemResponse(BaseModel):
    id: int
    price_list_id: int
    service_type: str
    equipment_item_id: Optional[int] = None
    name: str
    description: Optional[str] = None
    price: Decimal
    base_price: Optional[Decimal] = None
    effective_price: Decimal
    pricing_model: str
    min_dives: Optional[int] = None
    max_dives: Optional[int] = None
    priority: int = 0
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None
    applicable_to: str
    unit: Optional[str] = None
    sort_order: int = 0
    is_active: bool
    tiers: List[PriceListItemTierResponse] = []

    model_config = ConfigDict(from_attributes=True)


class PriceListResponse(PriceListCreate):
    id: int
    dive_center_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PriceListDetail(PriceListResponse):
    base_currency: str = "USD"
    items: List[PriceListItemResponse] = []


class PriceQuote(BaseModel):
    """Price a given item charges for a dive count"""
    price_list_item_id: int
    name: str
    description: Optional[str] = None
    pricing_model: str
    min_dives: Optional[int] = None
    max_dives: Optional[int] = None
    priority: int = 0
    applicable_to: str
    base_price: Decimal
    price: Decimal


# ==================== INVOICE SCHEMAS ====================

class InvoiceItemCreate(BaseModel):
    """Line item; a price list item supplies the description and unit price when they are omitted"""
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    quantity: int = Field(default=1, gt=0)
    unit_price: Optional[Decimal] = Field(None, ge=0)
    discount: Optional[Decimal] = Field(default=Decimal("0.00"), ge=0)
    price_list_item_id: Optional[int] = None
    booking_dive_id: Optional[int] = None
    booking_equipment_id: Optional[int] = None

    @model_validator(mode="after")
    def require_price_source(self):
        if self.price_list_item_id is None and (self.description is None or self.unit_price is None):
            raise ValueError("description and unit_price are required without a price_list_item_id")
        return self


class InvoiceItemResponse(BaseModel):
    id: int
    invoice_id: int
    description: str
    quantity: int
    unit_price: Decimal
    discount: Optional[Decimal] = None
    total: Decimal
    price_list_item_id: Optional[int] = None
    booking_dive_id: Optional[int] = None
    booking_equipment_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class InvoiceCreate(BaseModel):
    booking_id: Optional[int] = None
    customer_id: Optional[int] = None
    invoice_date: Optional[date] = None
    invoice_type: InvoiceTypeEnum = InvoiceTypeEnum.FULL
    discount: Optional[Decimal] = Field(default=Decimal("0.00"), ge=0)
    notes: Optional[str] = None
    items: List[InvoiceItemCreate] = []

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    @model_validator(mode="after")
    def require_booking_or_customer(self):
        if self.booking_id is None and self.customer_id is None:
            raise ValueError("Either booking_id or customer_id is required")
        return self


class InvoiceUpdate(BaseModel):
    invoice_date: Optional[date] = None
    invoice_type: Optional[InvoiceTypeEnum] = None
    notes: Optional[str] = None
    discount: Optional[Decimal] = Field(None, ge=0)
    tax: Optional[Decimal] = Field(None, ge=0)
    service_charge: Optional[Decimal] = Field(None, ge=0)
    recalculate: bool = False

    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class InvoiceFromBookingRequest(BaseModel):
    booking_id: int
    invoice_type: InvoiceTypeEnum = InvoiceTypeEnum.FULL
    invoice_date: Optional[date] = None

    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class DamageChargeRequest(BaseModel):
    booking_equipment_id: int


class InvoiceResponse(BaseModel):
    id: int
    invoice_no: Optional[str] = None
    booking_id: Optional[int] = None
    customer_id: Optional[int] = None
    invoice_date: Optional[date] = None
    invoice_type: str
    subtotal: Decimal
    discount: Decimal
    service_charge: Decimal
    tax: Decimal
    total: Decimal
    currency: str
    status: str
    notes: Optional[str] = None
    total_paid: Decimal
    remaining_balance: Decimal
    dive_center_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvoiceBreakdownResponse(BaseModel):
    mode: str
    subtotal_before_discounts: Decimal
    total_item_discounts: Decimal
    invoice_discount: Decimal
    discount_sum: Decimal
    subtotal_after_discount: Decimal
    service_charge: Decimal
    tax: Decimal
    grand_total: Decimal
    total_paid: Decimal
    remaining_balance: Decimal


# ==================== PAYMENT SCHEMAS ====================

class CashDetails(BaseModel):
    method_type: Literal["Cash"] = "Cash"


class BankTransferDetails(BaseModel):
    method_type: Literal["Bank Transfer"]
    bank_name: str = Field(..., min_length=1, max_length=255)
    account_name: Optional[str] = Field(None, max_length=255)
    account_number: Optional[str] = Field(None, max_length=100)
    swift_code: Optional[str] = Field(None, max_length=20)


class CreditCardDetails(BaseModel):
    method_type: Literal["Credit Card"]
    card_brand: Optional[str] = Field(None, max_length=50)
    last_four: Optional[str] = Field(None, pattern=r"^\d{4}$")
    authorization_code: Optional[str] = Field(None, max_length=100)


class WalletDetails(BaseModel):
    method_type: Literal["Wallet"]
    provider: str = Field(..., min_length=1, max_length=100)
    wallet_id: Optional[str] = Field(None, max_length=255)


class CryptoDetails(BaseModel):
    method_type: Literal["Crypto"]
    network: str = Field(..., min_length=1, max_length=50)
    currency: str = Field(..., min_length=1, max_length=20)
    wallet_address: Optional[str] = Field(None, max_length=255)
    transaction_hash: Optional[str] = Field(None, max_length=255)


PaymentMethodDetails = Annotated[
    Union[CashDetails, BankTransferDetails, CreditCardDetails, WalletDetails, CryptoDetails],
    Field(discriminator="method_type")
]


class PaymentCreate(BaseModel):
    invoice_id: int
    payment_method_id: Optional[int] = None
    amount: Decimal = Field(..., gt=0)
    payment_type: PaymentTypeEnum = PaymentTypeEnum.FINAL
    payment_date: Optional[date] = None
    reference: Optional[str] = Field(None, max_length=255)
    method_details: PaymentMethodDetails = Field(default_factory=CashDetails)

    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class PaymentUpdate(BaseModel):
    amount: Optional[Decimal] = Field(None, gt=0)
    payment_date: Optional[date] = None
    reference: Optional[str] = Field(None, max_length=255)
    method_details: Optional[PaymentMethodDetails] = None


class PaymentResponse(BaseModel):
    id: int
    invoice_id: int
    payment_method_id: Optional[int] = None
    amount: Decimal
    payment_type: str
    payment_date: Optional[date] = None
    method_type: str
    method_details: Optional[Dict[str, Any]] = None
    reference: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvoiceDetail(InvoiceResponse):
    items: List[InvoiceItemResponse] = []
    payments: List[PaymentResponse] = []
    breakdown: Optional[InvoiceBreakdownResponse] = None
    is_consistent: bool = True


class PaymentMethodCreate(BaseModel):
    method_type: PaymentMethodTypeEnum
    name: str = Field(..., min_length=2, max_length=255)
    is_active: bool = True
    settings: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class PaymentMethodUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    is_active: Optional[bool] = None
    settings: Optional[Dict[str, Any]] = None


class PaymentMethodResponse(BaseModel):
    id: int
    method_type: str
    name: str
    is_active: bool
    settings: Optional[Dict[str, Any]] = None
    dive_center_id: int

    model_config = ConfigDict(from_attributes=True)


# ==================== EXPENSE SCHEMAS ====================

class SupplierBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    address: Optional[str] = None
    contact_no: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    gst_tin: Optional[str] = Field(None, max_length=100)
    currency: Optional[str] = Field(None, max_length=10)
    status: Literal["Active", "Inactive"] = "Active"


class SupplierCreate(SupplierBase):
    pass


class SupplierUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    address: Optional[str] = None
    contact_no: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    gst_tin: Optional[str] = Field(None, max_length=100)
    currency: Optional[str] = Field(None, max_length=10)
    status: Optional[Literal["Active", "Inactive"]] = None


class SupplierResponse(SupplierBase):
    id: int
    email: Optional[str] = None
    dive_center_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ExpenseCategoryCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    description: Optional[str] = None


class ExpenseCategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    description: Optional[str] = None


class ExpenseCategoryResponse(ExpenseCategoryCreate):
    id: int
    dive_center_id: int

    model_config = ConfigDict(from_attributes=True)


class ExpenseCreate(BaseModel):
    supplier_id: Optional[int] = None
    expense_category_id: Optional[int] = None
    expense_date: date
    description: str = Field(..., min_length=2, max_length=255)
    amount: Decimal = Field(..., gt=0)
    currency: Optional[str] = Field(None, max_length=10)
    is_recurring: bool = False
    recurring_period: Optional[RecurringPeriodEnum] = None
    notes: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class ExpenseUpdate(BaseModel):
    supplier_id: Optional[int] = None
    expense_category_id: Optional[int] = None
    expense_date: Optional[date] = None
    description: Optional[str] = Field(None, min_length=2, max_length=255)
    amount: Optional[Decimal] = Field(None, gt=0)
    currency: Optional[str] = Field(None, max_length=10)
    is_recurring: Optional[bool] = None
    recurring_period: Optional[RecurringPeriodEnum] = None
    notes: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class ExpenseResponse(BaseModel):
    id: int
    expense_no: str
    supplier_id: Optional[int] = None
    expense_category_id: Optional[int] = None
    expense_date: date
    description: str
    amount: Decimal
    currency: str
    is_recurring: bool
    recurring_period: Optional[str] = None
    notes: Optional[str] = None
    dive_center_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ExpenseSummaryLine(BaseModel):
    category_id: Optional[int] = None
    category_name: str
    count: int
    total: Decimal


class ExpenseSummary(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total: Decimal
    by_category: List[ExpenseSummaryLine] = []


# ==================== FILE SCHEMAS ====================

class FileUploadResponse(BaseModel):
    success: bool = True
    url: str
    original_name: str
    message: str
