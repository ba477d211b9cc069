"""
Device Catalog

Fixed prices for the devices offered on the purchase form and the
insurance add-on. Lookups are exact: one model, one price.
"""

import logging
from decimal import Decimal
from typing import Dict

from .exceptions import UnknownSelectionError

logger = logging.getLogger(__name__)

DEVICE_PRICES: Dict[str, int] = {
    'iPhone 13 128GB': 799,
    'iPhone 13 Pro 128GB': 999,
    'iPhone 13 Pro Max 128GB': 1099,
    'Samsung Galaxy S22 Ultra 128GB': 1199,
    'Google Pixel 6 Pro 128GB': 899,
}

# Insurance is billed as one amount spread over the installment term
INSURANCE_PRICE = 240
INSTALLMENT_MONTHS = 24


def is_known_device(device_model: str) -> bool:
    """Check if a device model has a catalog price."""
    return device_model in DEVICE_PRICES


def lookup_device_price(device_model: str, strict: bool = False) -> Decimal:
    """
    Get the catalog price of a device model.

    Args:
        device_model: Model string exactly as shown on the purchase form
        strict: Raise instead of pricing an unknown model at zero

    Returns:
        The model's price, or 0 for an unknown model in lenient mode

    Raises:
        UnknownSelectionError: Unknown model and ``strict`` is set
    """
    price = DEVICE_PRICES.get(device_model)
    if price is None:
        if strict:
            raise UnknownSelectionError(
                f"Unknown device model: {device_model!r}",
                device_model=device_model
            )
        logger.warning(f"Unknown device model {device_model!r}, pricing at $0")
        return Decimal('0')
    return Decimal(price)


def insurance_price(requested: bool) -> Decimal:
    """Price of the insurance line."""
    return Decimal(INSURANCE_PRICE) if requested else Decimal('0')
