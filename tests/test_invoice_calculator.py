"""
Tests for the pure invoice arithmetic.
"""
from decimal import Decimal
from types import SimpleNamespace

from divecenter.services import invoice_calculator as calc


def item(quantity, unit_price, discount=0):
    return SimpleNamespace(quantity=quantity, unit_price=Decimal(str(unit_price)),
                           discount=Decimal(str(discount)))


ITEMS = [item(2, 50), item(1, 30, 5)]


class TestBreakdown:
    """Display breakdown built from persisted invoice figures"""

    def test_exclusive_breakdown_adds_charges(self):
        breakdown = calc.build_breakdown(ITEMS, invoice_discount=10, subtotal=125,
                                         service_charge=10, tax=5, total=130, mode="exclusive")

        assert breakdown.subtotal_before_discounts == Decimal("130.00")
        assert breakdown.total_item_discounts == Decimal("5.00")
        assert breakdown.discount_sum == Decimal("15.00")
        assert breakdown.subtotal_after_discount == Decimal("115.00")
        assert breakdown.grand_total == Decimal("130.00")
        assert calc.is_consistent(breakdown, Decimal("130.00"))

    def test_inclusive_breakdown_does_not_add_charges_again(self):
        breakdown = calc.build_breakdown(ITEMS, invoice_discount=10, subtotal=125,
                                         service_charge=10, tax=5, total=115, mode="inclusive")

        assert breakdown.mode == "inclusive"
        assert breakdown.grand_total == Decimal("115.00")
        assert calc.is_consistent(breakdown, 115)
        assert not calc.is_consistent(breakdown, 130)

    def test_payments_reduce_remaining_balance(self):
        breakdown = calc.build_breakdown(ITEMS, invoice_discount=0, subtotal=125,
                                         service_charge=0, tax=0, total=125,
                                         payments=[Decimal("50"), Decimal("-10")])

        assert breakdown.total_paid == Decimal("40.00")
        assert breakdown.remaining_balance == Decimal("85.00")

    def test_unknown_mode_reads_as_exclusive(self):
        breakdown = calc.build_breakdown([], 0, 100, 10, 5, 115, mode="sideways")
        assert breakdown.mode == "exclusive"
        assert breakdown.grand_total == Decimal("115.00")

    def test_to_dict_has_every_field(self):
        data = calc.build_breakdown(ITEMS, 0, 125, 0, 0, 125).to_dict()
        assert set(data) == {
            "mode", "subtotal_before_discounts", "total_item_discounts", "invoice_discount",
            "discount_sum", "subtotal_after_discount", "service_charge", "tax", "grand_total",
            "total_paid", "remaining_balance",
        }


class TestCalculateCharges:
    def test_exclusive_mode(self):
        result = calc.calculate_charges(Decimal("100"), service_charge_percentage=10, tax_percentage=5)

        assert result.service_charge == Decimal("10.00")
        assert result.tax == Decimal("5.50")
        assert result.total == Decimal("115.50")

    def test_exclusive_mode_applies_discount_first(self):
        result = calc.calculate_charges(Decimal("120"), discount=Decimal("20"),
                                        service_charge_percentage=10, tax_percentage=5)

        assert result.discount == Decimal("20.00")
        assert result.total == Decimal("115.50")

    def test_inclusive_mode_backs_out_charges(self):
        result = calc.calculate_charges(Decimal("115.50"), service_charge_percentage=10,
                                        tax_percentage=5, mode="inclusive")

        assert result.service_charge == Decimal("10.00")
        assert result.tax == Decimal("5.50")
        assert result.total == Decimal("115.50")

    def test_inclusive_total_equals_discounted_subtotal(self):
        result = calc.calculate_charges(Decimal("100"), service_charge_percentage=10,
                                        tax_percentage=5, mode="inclusive")

        assert result.total == Decimal("100.00")
        assert result.service_charge == Decimal("8.66")
        assert result.tax == Decimal("4.76")

    def test_discount_is_capped_at_subtotal(self):
        result = calc.calculate_charges(Decimal("50"), discount=Decimal("80"), tax_percentage=10)

        assert result.discount == Decimal("50.00")
        assert result.tax == Decimal("0.00")
        assert result.total == Decimal("0.00")

    def test_overrides_replace_percentages(self):
        result = calc.calculate_charges(Decimal("100"), service_charge_percentage=10, tax_percentage=5,
                                        tax_override=Decimal("7"))

        assert result.service_charge == Decimal("10.00")
        assert result.tax == Decimal("7.00")
        assert result.total == Decimal("117.00")

    def test_no_percentages_means_no_charges(self):
        result = calc.calculate_charges(Decimal("42.10"))
        assert result.service_charge == Decimal("0.00")
        assert result.tax == Decimal("0.00")
        assert result.total == Decimal("42.10")


class TestHelpers:
    def test_item_total_never_negative(self):
        assert calc.item_total(3, 10, 40) == Decimal("0.00")

    def test_item_total_rounds_half_up(self):
        assert calc.item_total(1, "12.345") == Decimal("12.35")
        assert calc.item_total(2, "12.50", "5") == Decimal("20.00")

    def test_to_decimal_normalizes_junk(self):
        assert calc.to_decimal(None) == Decimal("0")
        assert calc.to_decimal("") == Decimal("0")
        assert calc.to_decimal("abc") == Decimal("0")
        assert calc.to_decimal(2.5) == Decimal("2.5")
