"""
Anchor Transforms

Functions that turn raw values into the display text written at a
template anchor. Each transform is registered by name and can be
referenced in YAML anchor definitions.

Usage in YAML:
    - field_key: device_price
      anchor: /price1/
      source: prices.device_price
      transform: currency
"""

import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

# Type alias for transform functions
TransformFunc = Callable[[Any], str]

WHOLE = Decimal('1')
CENTS = Decimal('0.01')


def _to_decimal(value: Any) -> Optional[Decimal]:
    """Parse numbers and "$1,234.50"-style strings; None if blank."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, str):
        value = value.replace('$', '').replace(',', '').strip()
        if not value:
            return None
    return Decimal(str(value))


def _format_amount(amount: Decimal) -> str:
    sign = '-' if amount < 0 else ''
    return f"{sign}${abs(amount):f}"


def transform_currency(value: Any) -> str:
    """
    Format an amount as dollars without thousands separators.

    Whole amounts keep no decimals, anything else gets two.

    Examples:
        999 -> "$999"
        "1039.00" -> "$1039"
        43.285 -> "$43.29"
        -50 -> "-$50"
    """
    if value is None:
        return ""

    try:
        amount = _to_decimal(value)
        if amount is None:
            return ""
        if amount == amount.to_integral_value():
            return _format_amount(amount.quantize(WHOLE, rounding=ROUND_HALF_UP))
        return _format_amount(amount.quantize(CENTS, rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError, TypeError):
        logger.warning(f"Could not format as currency: {value}")
        return str(value)


def transform_currency_cents(value: Any) -> str:
    """
    Format an amount as dollars, always with two decimals.

    Examples:
        43 -> "$43.00"
        "4.166" -> "$4.17"
    """
    if value is None:
        return ""

    try:
        amount = _to_decimal(value)
        if amount is None:
            return ""
        return _format_amount(amount.quantize(CENTS, rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError, TypeError):
        logger.warning(f"Could not format as currency: {value}")
        return str(value)


# Registry of available transforms
TRANSFORMS: Dict[str, TransformFunc] = {
    'currency': transform_currency,
    'currency_cents': transform_currency_cents,
}


def apply_transform(value: Any, transform_name: Optional[str]) -> str:
    """
    Apply a named transform to a value.

    If transform_name is None or not found, returns str(value).
    """
    if value is None:
        return ""

    if not transform_name:
        return str(value)

    transform_func = TRANSFORMS.get(transform_name)
    if transform_func:
        return transform_func(value)

    logger.warning(f"Unknown transform: {transform_name}")
    return str(value)


def register_transform(name: str, func: TransformFunc) -> None:
    """
    Register a custom transform function.

    Use this to add new transforms without modifying this file:
        from services.envelopes.transforms import register_transform
        register_transform('euro', my_euro_formatter)
    """
    TRANSFORMS[name] = func
    logger.debug(f"Registered transform: {name}")
