"""
Student balance rules
Pure functions: status derivation, credit capping, outstanding balance,
day selection and the upgrade policy. No database access here.
"""
import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from ..constants import EVENT_DAY_KEYS, REQUIRED_DAY_COUNT, PackageType
from ..db.models.student import PaymentStatus
from ..exceptions import BadRequestError, ValidationError

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Largest value a Numeric(12, 2) money column holds
MAX_AMOUNT = Decimal("9999999999.99")

UPGRADE_RULE_MESSAGE = "Can only upgrade to a higher-priced package. Downgrades are not allowed."


def to_decimal(value) -> Decimal:
    """Coerce ints, floats, strings and Decimals to a 2dp Decimal"""
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        result = Decimal(value)
    return result.quantize(Decimal("0.01"))


def derive_payment_status(total_paid: Decimal, price: Decimal) -> PaymentStatus:
    """0 -> NOT_PAID, 0 < x < price -> PARTIALLY_PAID, x >= price -> FULLY_PAID"""
    if total_paid <= ZERO:
        return PaymentStatus.NOT_PAID
    if total_paid >= price:
        return PaymentStatus.FULLY_PAID
    return PaymentStatus.PARTIALLY_PAID


def calculate_outstanding(price: Decimal, total_paid: Decimal) -> Decimal:
    """Amount still owed, floored at zero"""
    return max(to_decimal(price) - to_decimal(total_paid), ZERO)


def apply_credit(total_paid: Decimal, amount: Decimal, price: Decimal) -> Tuple[Decimal, PaymentStatus]:
    """
    Add a settled amount to a running total, capped at the package price

    Returns:
        (new_total, new_status)
    """
    total_paid = to_decimal(total_paid)
    price = to_decimal(price)
    uncapped = total_paid + to_decimal(amount)
    new_total = min(uncapped, price)
    if uncapped > price:
        logger.warning(f"Overpayment of {uncapped - price} discarded (price {price})")
    return new_total, derive_payment_status(new_total, price)


def resolve_selected_days(package_type: str, selected_days: Optional[Iterable[str]]) -> List[str]:
    """
    Normalize the day selection for a package type

    FULL packages always get all five days. Other types need exactly N
    distinct valid day keys after upper-casing and de-duplication.

    Raises:
        ValidationError: wrong day count or unknown day value
    """
    if package_type == PackageType.FULL.value:
        return list(EVENT_DAY_KEYS)

    expected = REQUIRED_DAY_COUNT.get(package_type)
    if expected is None:
        raise ValidationError(f"Unknown package type: {package_type}")

    days: List[str] = []
    for day in selected_days or []:
        normalized = str(day).strip().upper()
        if normalized not in days:
            days.append(normalized)

    if len(days) != expected:
        raise ValidationError(f"You must select exactly {expected} days")
    if any(day not in EVENT_DAY_KEYS for day in days):
        raise ValidationError("Selected days contain invalid day values")

    # Keep calendar order
    return [day for day in EVENT_DAY_KEYS if day in days]


def validate_upgrade(current_price: Decimal, new_price: Decimal) -> None:
    """Only a strictly higher-priced package is an upgrade"""
    if to_decimal(new_price) <= to_decimal(current_price):
        raise BadRequestError(UPGRADE_RULE_MESSAGE)
