# Services Package
from divecenter.services.user_service import UserService
from divecenter.services.dive_center_service import DiveCenterService
from divecenter.services.customer_service import (
    CustomerService, CertificationService, InsuranceService,
    EmergencyContactService, DiveGroupService
)
from divecenter.services.booking_service import (
    BookingService, BookingDiveService, DiveSiteService, BoatService
)
from divecenter.services.equipment_service import (
    EquipmentService, EquipmentItemService, ServiceHistoryService
)
from divecenter.services.basket_service import BasketService, BookingEquipmentService
from divecenter.services.invoice_service import InvoiceService
from divecenter.services.payment_service import PaymentService, PaymentMethodService
from divecenter.services.expense_service import SupplierService, ExpenseCategoryService, ExpenseService
from divecenter.services.pricing_service import (
    TaxService, PriceListService, PriceListItemService, DivePricingService
)
from divecenter.services.file_service import FileService

__all__ = [
    'UserService',
    'DiveCenterService',
    'CustomerService',
    'CertificationService',
    'InsuranceService',
    'EmergencyContactService',
    'DiveGroupService',
    'BookingService',
    'BookingDiveService',
    'DiveSiteService',
    'BoatService',
    'EquipmentService',
    'EquipmentItemService',
    'ServiceHistoryService',
    'BasketService',
    'BookingEquipmentService',
    'InvoiceService',
    'PaymentService',
    'PaymentMethodService',
    'SupplierService',
    'ExpenseCategoryService',
    'ExpenseService',
    'TaxService',
    'PriceListService',
    'PriceListItemService',
    'DivePricingService',
    'FileService',
]
