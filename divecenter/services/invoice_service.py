"""
Invoice Service - Invoices, line items and total recalculation
"""
from datetime import date
from decimal import Decimal
from typing import Optional, Tuple
from sqlalchemy.orm import Session, selectinload
import logging

from divecenter.models import (
    Invoice, InvoiceItem, Booking, BookingDive, BookingEquipment, PaymentType,
    InvoiceStatus, DiveStatus, EquipmentSource
)
from divecenter.services import invoice_calculator as calc
from divecenter.services.dive_center_service import DiveCenterService
from divecenter.services.customer_service import CustomerService
from divecenter.services.booking_service import BookingService
from divecenter.services.pricing_service import PriceListItemService
from divecenter.services.numbering import next_document_number

logger = logging.getLogger(__name__)

DAMAGE_CHARGE_PREFIX = "Damage Charge"


def apply_payment_status(invoice: Invoice):
    """Derive the invoice status from what has been paid against it"""
    paid = invoice.total_paid
    total = invoice.total or Decimal("0")
    has_refunds = any(p.payment_type == PaymentType.REFUND.value for p in invoice.payments)

    if total > 0 and paid >= total:
        invoice.status = InvoiceStatus.PAID.value
    elif paid > 0:
        invoice.status = InvoiceStatus.PARTIALLY_PAID.value
    elif has_refunds:
        invoice.status = InvoiceStatus.REFUNDED.value
    else:
        invoice.status = InvoiceStatus.DRAFT.value


class InvoiceService:
    def __init__(self, db: Session):
        self.db = db
        self.dive_centers = DiveCenterService(db)

    def get_by_id(self, invoice_id: int, dive_center_id: int) -> Optional[Invoice]:
        return self.db.query(Invoice).filter(
            Invoice.id == invoice_id,
            Invoice.dive_center_id == dive_center_id
        ).first()

    def get_detail(self, invoice_id: int, dive_center_id: int) -> Optional[Invoice]:
        return self.db.query(Invoice)\
            .options(selectinload(Invoice.items), selectinload(Invoice.payments))\
            .filter(Invoice.id == invoice_id, Invoice.dive_center_id == dive_center_id)\
            .first()

    def query_by_dive_center(self, dive_center_id: int, status: str = None, customer_id: int = None,
                             invoice_type: str = None, booking_id: int = None):
        query = self.db.query(Invoice).filter(Invoice.dive_center_id == dive_center_id)
        if status:
            query = query.filter(Invoice.status == status)
        if customer_id:
            query = query.filter(Invoice.customer_id == customer_id)
        if invoice_type:
            query = query.filter(Invoice.invoice_type == invoice_type)
        if booking_id:
            query = query.filter(Invoice.booking_id == booking_id)
        return query.order_by(Invoice.invoice_date.desc(), Invoice.id.desc())

    def get_next_number(self, dive_center_id: int) -> str:
        return next_document_number(self.db, Invoice, "invoice_no", "INV", dive_center_id)

    # ---------- totals ----------

    def recalculate(self, invoice: Invoice, service_charge_override=None, tax_override=None) -> Invoice:
        """Re-derive subtotal, charges and total from the current items"""
        subtotal = calc.money(sum((item.total or Decimal("0") for item in invoice.items), Decimal("0")))
        sc_pct, tax_pct = self.dive_centers.get_charge_percentages(invoice.dive_center_id)
        mode = self.dive_centers.get_tax_calculation_mode(invoice.dive_center_id)

        result = calc.calculate_charges(
            subtotal,
            discount=invoice.discount,
            service_charge_percentage=sc_pct,
            tax_percentage=tax_pct,
            mode=mode,
            service_charge_override=service_charge_override,
            tax_override=tax_override,
        )

        invoice.subtotal = result.subtotal
        invoice.discount = result.discount
        invoice.service_charge = result.service_charge
        invoice.tax = result.tax
        invoice.total = result.total
        apply_payment_status(invoice)
        return invoice

    def get_breakdown(self, invoice: Invoice) -> Tuple[calc.InvoiceBreakdown, bool]:
        """Breakdown of the persisted figures and whether they agree with the stored total"""
        mode = self.dive_centers.get_tax_calculation_mode(invoice.dive_center_id)
        breakdown = calc.build_breakdown(
            invoice.items,
            invoice.discount,
            invoice.subtotal,
            invoice.service_charge,
            invoice.tax,
            invoice.total,
            payments=[p.amount for p in invoice.payments],
            mode=mode,
        )
        consistent = calc.is_consistent(breakdown, invoice.total)
        if not consistent:
            logger.warning(
                f"Invoice {invoice.invoice_no} total {invoice.total} does not match "
                f"derived grand total {breakdown.grand_total} ({mode})"
            )
        return breakdown, consistent

    def _ensure_editable(self, invoice: Invoice):
        if invoice.is_locked:
            raise ValueError("Cannot modify a paid invoice")

    # ---------- items ----------

    def _check_item_links(self, item_data, invoice: Invoice):
        if item_data.booking_dive_id:
            dive = self.db.query(BookingDive)\
                .join(Booking, BookingDive.booking_id == Booking.id)\
                .filter(BookingDive.id == item_data.booking_dive_id,
                        Booking.dive_center_id == invoice.dive_center_id)\
                .first()
            if not dive:
                raise ValueError("Booking dive not found")
        if item_data.booking_equipment_id:
            row = self.db.query(BookingEquipment).filter(
                BookingEquipment.id == item_data.booking_equipment_id,
                BookingEquipment.dive_center_id == invoice.dive_center_id
            ).first()
            if not row:
                raise ValueError("Booking equipment not found")

    def _item_fields(self, item_data, invoice: Invoice) -> dict:
        """Validated line fields, filling description and unit price from a price list item"""
        self._check_item_links(item_data, invoice)
        fields = item_data.model_dump()
        if item_data.price_list_item_id:
            priced = PriceListItemService(self.db).get_by_id(item_data.price_list_item_id, invoice.dive_center_id)
            if not priced:
                raise ValueError("Price list item not found")
            if not priced.is_active:
                raise ValueError(f"Price list item '{priced.name}' is inactive")
            if fields["description"] is None:
                fields["description"] = priced.name
            if fields["unit_price"] is None:
                fields["unit_price"] = priced.effective_price
        return fields

    def _append_item(self, invoice: Invoice, description: str, quantity: int, unit_price,
                     discount=None, price_list_item_id: int = None,
                     booking_dive_id: int = None, booking_equipment_id: int = None) -> InvoiceItem:
        item = InvoiceItem(
            description=description,
            quantity=quantity,
            unit_price=calc.money(unit_price),
            discount=calc.money(discount),
            total=calc.item_total(quantity, unit_price, discount),
            price_list_item_id=price_list_item_id,
            booking_dive_id=booking_dive_id,
            booking_equipment_id=booking_equipment_id,
        )
        invoice.items.append(item)
        return item

    def add_item(self, invoice_id: int, item_data, dive_center_id: int) -> Optional[InvoiceItem]:
        invoice = self.get_by_id(invoice_id, dive_center_id)
        if not invoice:
            return None

        self._ensure_editable(invoice)
        item = self._append_item(invoice, **self._item_fields(item_data, invoice))
        self.recalculate(invoice)
        self.db.flush()
        return item

    def delete_item(self, invoice_id: int, item_id: int, dive_center_id: int) -> Optional[Invoice]:
        invoice = self.get_by_id(invoice_id, dive_center_id)
        if not invoice:
            return None

        item = next((i for i in invoice.items if i.id == item_id), None)
        if item is None:
            raise ValueError("Item does not belong to this invoice")

        if invoice.status != InvoiceStatus.DRAFT.value:
            raise ValueError(f"Items can only be removed from a Draft invoice (this one is {invoice.status})")
        if len(invoice.items) == 1:
            raise ValueError("Cannot delete the last item of an invoice; delete the invoice instead")

        invoice.items.remove(item)
        self.recalculate(invoice)
        self.db.flush()
        return invoice

    # ---------- invoices ----------

    def create(self, invoice_data, dive_center_id: int) -> Invoice:
        customer_id = invoice_data.customer_id
        booking = None

        if invoice_data.booking_id:
            booking = BookingService(self.db).get_by_id(invoice_data.booking_id, dive_center_id)
            if not booking:
                raise ValueError("Booking not found")
            customer_id = customer_id or booking.customer_id

        if customer_id and not CustomerService(self.db).get_by_id(customer_id, dive_center_id):
            raise ValueError("Customer not found")

        dive_center = self.dive_centers.get_by_id(dive_center_id)

        invoice = Invoice(
            invoice_no=self.get_next_number(dive_center_id),
            booking_id=booking.id if booking else None,
            customer_id=customer_id,
            invoice_date=invoice_data.invoice_date or date.today(),
            invoice_type=invoice_data.invoice_type,
            discount=calc.money(invoice_data.discount),
            currency=dive_center.currency if dive_center else "USD",
            notes=invoice_data.notes,
            status=InvoiceStatus.DRAFT.value,
            dive_center_id=dive_center_id,
        )
        self.db.add(invoice)

        for item_data in invoice_data.items:
            self._append_item(invoice, **self._item_fields(item_data, invoice))

        self.recalculate(invoice)
        self.db.flush()
        logger.info(f"Invoice {invoice.invoice_no} created, total {invoice.total} {invoice.currency}")
        return invoice

    def update(self, invoice_id: int, invoice_data, dive_center_id: int) -> Optional[Invoice]:
        invoice = self.get_by_id(invoice_id, dive_center_id)
        if not invoice:
            return None

        changes = invoice_data.model_dump(exclude_unset=True)
        force = changes.pop("recalculate", False)
        charges_given = "tax" in changes or "service_charge" in changes
        tax = changes.pop("tax", None)
        service_charge = changes.pop("service_charge", None)

        # Only money fields reprice the invoice; notes and dates leave totals alone
        reprice = force or charges_given or "discount" in changes
        if reprice:
            self._ensure_editable(invoice)
        if "discount" in changes:
            changes["discount"] = calc.money(changes["discount"])

        for key, value in changes.items():
            setattr(invoice, key, value)

        if force:
            self.recalculate(invoice)
        elif reprice:
            self.recalculate(invoice, service_charge_override=service_charge, tax_override=tax)

        self.db.flush()
        return invoice

    def delete(self, invoice_id: int, dive_center_id: int) -> bool:
        invoice = self.get_by_id(invoice_id, dive_center_id)
        if not invoice:
            return False

        if invoice.payments:
            raise ValueError("Cannot delete an invoice that has payments")

        self.db.delete(invoice)
        self.db.flush()
        return True

    def recalculate_by_id(self, invoice_id: int, dive_center_id: int) -> Optional[Invoice]:
        invoice = self.get_by_id(invoice_id, dive_center_id)
        if not invoice:
            return None

        self._ensure_editable(invoice)

        previous = invoice.total
        for item in invoice.items:
            item.total = calc.item_total(item.quantity, item.unit_price, item.discount)
        self.recalculate(invoice)
        self.db.flush()

        if calc.money(previous) != invoice.total:
            logger.info(f"Invoice {invoice.invoice_no} total corrected from {previous} to {invoice.total}")
        return invoice

    # ---------- booking driven ----------

    def generate_from_booking(self, request, dive_center_id: int) -> Invoice:
        """Invoice every dive and center rental of a booking not billed yet"""
        booking = BookingService(self.db).get_by_id(request.booking_id, dive_center_id)
        if not booking:
            raise ValueError("Booking not found")

        dives = [
            d for d in booking.dives
            if d.status != DiveStatus.CANCELLED.value and not d.invoice_items
        ]
        rentals = [
            r for r in booking.equipment
            if r.equipment_source == EquipmentSource.CENTER.value
            and not any(not i.description.startswith(DAMAGE_CHARGE_PREFIX) for i in r.invoice_items)
        ]
        if not dives and not rentals:
            raise ValueError("Nothing left to invoice for this booking")

        dive_center = self.dive_centers.get_by_id(dive_center_id)
        invoice = Invoice(
            invoice_no=self.get_next_number(dive_center_id),
            booking_id=booking.id,
            customer_id=booking.customer_id,
            invoice_date=request.invoice_date or date.today(),
            invoice_type=request.invoice_type,
            discount=Decimal("0.00"),
            currency=dive_center.currency if dive_center else "USD",
            status=InvoiceStatus.DRAFT.value,
            dive_center_id=dive_center_id,
        )
        self.db.add(invoice)

        for dive in dives:
            label = dive.dive_site.name if dive.dive_site else "Dive"
            when = f" ({dive.dive_date.isoformat()})" if dive.dive_date else ""
            self._append_item(invoice, f"Dive - {label}{when}", 1, dive.price,
                              price_list_item_id=dive.price_list_item_id, booking_dive_id=dive.id)

        for rental in rentals:
            self._append_item(invoice, f"Equipment Rental - {rental.display_name}", 1, rental.price,
                              booking_equipment_id=rental.id)

        self.recalculate(invoice)
        self.db.flush()
        logger.info(f"Invoice {invoice.invoice_no} generated from booking {booking.id} "
                    f"with {len(invoice.items)} items")
        return invoice

    def add_damage_charge(self, invoice_id: int, booking_equipment_id: int,
                          dive_center_id: int) -> Optional[InvoiceItem]:
        invoice = self.get_by_id(invoice_id, dive_center_id)
        if not invoice:
            return None

        self._ensure_editable(invoice)

        row = self.db.query(BookingEquipment).filter(
            BookingEquipment.id == booking_equipment_id,
            BookingEquipment.dive_center_id == dive_center_id
        ).first()
        if not row:
            raise ValueError("Booking equipment not found")

        row_booking_id = row.booking_id or (row.basket.booking_id if row.basket else None)
        if invoice.booking_id is None or row_booking_id != invoice.booking_id:
            raise ValueError("Equipment does not belong to this invoice's booking")
        if not row.damage_reported:
            raise ValueError("No damage has been reported for this equipment")
        if not row.charge_customer:
            raise ValueError("Damage on this equipment is not marked as chargeable")
        if any(i.description.startswith(DAMAGE_CHARGE_PREFIX) for i in row.invoice_items):
            raise ValueError("Damage charge has already been invoiced")

        amount = row.damage_charge_amount or row.damage_cost
        if not amount or amount <= 0:
            raise ValueError("Damage charge amount must be greater than zero")

        description = f"{DAMAGE_CHARGE_PREFIX} - {row.display_name}"
        if row.damage_description:
            description += f": {row.damage_description}"

        item = self._append_item(invoice, description[:500], 1, amount, booking_equipment_id=row.id)
        self.recalculate(invoice)
        self.db.flush()
        return item
