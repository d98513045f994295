"""
Invoice Calculator - Pure Decimal arithmetic for invoice totals

No database access here: the invoice service feeds persisted values in and
writes the results back.
"""
from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Iterable, Optional

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

INCLUSIVE = "inclusive"
EXCLUSIVE = "exclusive"


def to_decimal(value) -> Decimal:
    """None, empty strings and junk normalize to 0"""
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return ZERO


def money(value) -> Decimal:
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def normalize_mode(mode: Optional[str]) -> str:
    return INCLUSIVE if mode == INCLUSIVE else EXCLUSIVE


def item_total(quantity, unit_price, discount=None) -> Decimal:
    """Line total, never negative"""
    total = to_decimal(quantity) * to_decimal(unit_price) - to_decimal(discount)
    return money(max(total, ZERO))


@dataclass
class ChargeResult:
    subtotal: Decimal
    discount: Decimal
    service_charge: Decimal
    tax: Decimal
    total: Decimal


def calculate_charges(
    subtotal,
    discount=None,
    service_charge_percentage=None,
    tax_percentage=None,
    mode: str = EXCLUSIVE,
    service_charge_override=None,
    tax_override=None,
) -> ChargeResult:
    """
    Derive service charge, tax and total from a subtotal.

    Exclusive mode adds service charge on the discounted amount and tax on
    top of both. Inclusive mode treats the discounted amount as the gross
    figure and backs the base out of it; any rounding residue is folded
    into tax so the total equals the discounted amount exactly.

    Overrides replace the percentage-derived amounts.
    """
    subtotal = money(max(to_decimal(subtotal), ZERO))
    discount = money(min(max(to_decimal(discount), ZERO), subtotal))
    amount_after_discount = max(subtotal - discount, ZERO)

    sc_rate = max(to_decimal(service_charge_percentage), ZERO) / HUNDRED
    tax_rate = max(to_decimal(tax_percentage), ZERO) / HUNDRED

    if normalize_mode(mode) == INCLUSIVE:
        base = amount_after_discount / ((1 + sc_rate) * (1 + tax_rate))
        if service_charge_override is not None:
            service_charge = money(service_charge_override)
        else:
            service_charge = money(base * sc_rate)
        if tax_override is not None:
            tax = money(tax_override)
        else:
            tax = money((base + service_charge) * tax_rate)
            residue = amount_after_discount - (money(base) + service_charge + tax)
            tax += residue
        total = amount_after_discount
    else:
        if service_charge_override is not None:
            service_charge = money(service_charge_override)
        else:
            service_charge = money(amount_after_discount * sc_rate)
        if tax_override is not None:
            tax = money(tax_override)
        else:
            tax = money((amount_after_discount + service_charge) * tax_rate)
        total = amount_after_discount + service_charge + tax

    return ChargeResult(
        subtotal=subtotal,
        discount=discount,
        service_charge=money(max(service_charge, ZERO)),
        tax=money(max(tax, ZERO)),
        total=money(max(total, ZERO)),
    )


@dataclass
class InvoiceBreakdown:
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

    def to_dict(self) -> dict:
        return asdict(self)


def build_breakdown(
    items: Iterable,
    invoice_discount,
    subtotal,
    service_charge,
    tax,
    total,
    payments: Iterable = (),
    mode: str = EXCLUSIVE,
) -> InvoiceBreakdown:
    """
    Display breakdown of an invoice from its persisted figures.

    `items` need quantity, unit_price and discount attributes; `payments`
    is an iterable of amounts.
    """
    mode = normalize_mode(mode)
    items = list(items)

    subtotal_before_discounts = sum(
        (to_decimal(i.quantity) * to_decimal(i.unit_price) for i in items), ZERO
    )
    total_item_discounts = sum((to_decimal(i.discount) for i in items), ZERO)
    invoice_discount = to_decimal(invoice_discount)
    discount_sum = total_item_discounts + invoice_discount
    subtotal_after_discount = to_decimal(subtotal) - invoice_discount

    service_charge = to_decimal(service_charge)
    tax = to_decimal(tax)
    if mode == EXCLUSIVE:
        grand_total = subtotal_after_discount + service_charge + tax
    else:
        grand_total = subtotal_after_discount

    total_paid = sum((to_decimal(p) for p in payments), ZERO)

    return InvoiceBreakdown(
        mode=mode,
        subtotal_before_discounts=money(subtotal_before_discounts),
        total_item_discounts=money(total_item_discounts),
        invoice_discount=money(invoice_discount),
        discount_sum=money(discount_sum),
        subtotal_after_discount=money(subtotal_after_discount),
        service_charge=money(service_charge),
        tax=money(tax),
        grand_total=money(grand_total),
        total_paid=money(total_paid),
        remaining_balance=money(to_decimal(total) - total_paid),
    )


def is_consistent(breakdown: InvoiceBreakdown, persisted_total, tolerance=TWO_PLACES) -> bool:
    return abs(breakdown.grand_total - money(persisted_total)) < tolerance
