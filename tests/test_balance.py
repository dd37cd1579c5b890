"""
Tests for the balance rules: status tiers, credit capping, day selection and upgrades
"""
from decimal import Decimal

import pytest

from fyw_pay.constants import EVENT_DAY_KEYS
from fyw_pay.db.models.student import PaymentStatus
from fyw_pay.exceptions import BadRequestError, ValidationError
from fyw_pay.services.balance import (
    UPGRADE_RULE_MESSAGE,
    apply_credit,
    calculate_outstanding,
    derive_payment_status,
    resolve_selected_days,
    to_decimal,
    validate_upgrade,
)
from fyw_pay.services.reference import generate_reference


class TestPaymentStatus:
    """Status is a pure function of total paid against price"""

    def test_nothing_paid(self):
        assert derive_payment_status(Decimal("0"), Decimal("25000")) == PaymentStatus.NOT_PAID

    def test_partial(self):
        assert derive_payment_status(Decimal("0.01"), Decimal("25000")) == PaymentStatus.PARTIALLY_PAID
        assert derive_payment_status(Decimal("24999.99"), Decimal("25000")) == PaymentStatus.PARTIALLY_PAID

    def test_exactly_price_is_fully_paid(self):
        assert derive_payment_status(Decimal("25000"), Decimal("25000")) == PaymentStatus.FULLY_PAID

    def test_free_package_with_no_payment_is_not_paid(self):
        assert derive_payment_status(Decimal("0"), Decimal("0")) == PaymentStatus.NOT_PAID


class TestCredit:
    """Credits accumulate but never pass the package price"""

    def test_partial_credit(self):
        total, status = apply_credit(Decimal("0"), Decimal("10000"), Decimal("25000"))
        assert total == Decimal("10000")
        assert status == PaymentStatus.PARTIALLY_PAID

    def test_credit_reaching_price(self):
        total, status = apply_credit(Decimal("10000"), Decimal("15000"), Decimal("25000"))
        assert total == Decimal("25000")
        assert status == PaymentStatus.FULLY_PAID

    def test_overpayment_is_capped(self):
        total, status = apply_credit(Decimal("20000"), Decimal("30000"), Decimal("25000"))
        assert total == Decimal("25000")
        assert status == PaymentStatus.FULLY_PAID

    def test_outstanding_never_negative(self):
        assert calculate_outstanding(Decimal("25000"), Decimal("10000")) == Decimal("15000")
        assert calculate_outstanding(Decimal("25000"), Decimal("30000")) == Decimal("0")

    def test_to_decimal_rounds_to_kobo(self):
        assert to_decimal(0.1) == Decimal("0.10")
        assert to_decimal("12345.678") == Decimal("12345.68")
        assert to_decimal(5000) == Decimal("5000.00")


class TestDaySelection:
    """Day rules per package type"""

    def test_full_package_gets_every_day(self):
        assert resolve_selected_days("FULL", None) == EVENT_DAY_KEYS
        assert resolve_selected_days("FULL", ["MONDAY"]) == EVENT_DAY_KEYS

    def test_two_days_normalized_and_ordered(self):
        days = resolve_selected_days("TWO_DAY", [" friday", "Monday"])
        assert days == ["MONDAY", "FRIDAY"]

    def test_duplicates_do_not_count_twice(self):
        with pytest.raises(ValidationError, match="exactly 2 days"):
            resolve_selected_days("TWO_DAY", ["MONDAY", "monday"])

    def test_wrong_count(self):
        with pytest.raises(ValidationError, match="exactly 2 days"):
            resolve_selected_days("CORPORATE_OWAMBE", ["MONDAY", "TUESDAY", "FRIDAY"])
        with pytest.raises(ValidationError, match="exactly 2 days"):
            resolve_selected_days("CORPORATE_PLUS", None)

    def test_unknown_day(self):
        with pytest.raises(ValidationError, match="invalid day values"):
            resolve_selected_days("TWO_DAY", ["MONDAY", "SATURDAY"])

    def test_unknown_package_type(self):
        with pytest.raises(ValidationError):
            resolve_selected_days("VIP", ["MONDAY", "FRIDAY"])


class TestUpgradeRule:
    """Only strictly more expensive packages are upgrades"""

    def test_higher_price_allowed(self):
        validate_upgrade(Decimal("25000"), Decimal("40000"))

    def test_same_price_rejected(self):
        with pytest.raises(BadRequestError) as exc_info:
            validate_upgrade(Decimal("25000"), Decimal("25000"))
        assert exc_info.value.message == UPGRADE_RULE_MESSAGE

    def test_downgrade_rejected(self):
        with pytest.raises(BadRequestError):
            validate_upgrade(Decimal("40000"), Decimal("25000"))


class TestReference:
    """Payment references"""

    def test_format(self):
        reference = generate_reference()
        prefix, millis, suffix = reference.split("-")
        assert prefix == "FYW"
        assert millis.isdigit()
        assert len(suffix) == 8
        assert suffix == suffix.upper()

    def test_unique(self):
        references = {generate_reference() for _ in range(500)}
        assert len(references) == 500
