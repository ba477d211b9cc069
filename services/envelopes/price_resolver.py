"""
Price Resolver

Computes the price table for a purchase selection and resolves the
display text of every anchor declared by the template definition.

Anchor source paths use dot notation against the resolution context:
    selection.device_model  -> context['selection'].device_model
    prices.balance_combined -> context['prices'].balance_combined
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional, Tuple

from .catalog import INSTALLMENT_MONTHS, insurance_price, is_known_device, lookup_device_price
from .exceptions import ResolutionError
from .loader import TemplateLoader
from .transforms import apply_transform
from .types import (
    AnchorBinding,
    AnchorDefinition,
    PriceTable,
    PurchaseSelection,
    ResolvedAnchor,
    TemplateDefinition,
)

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')


class PriceResolver:
    """
    Resolves a PurchaseSelection to a PriceTable and an AnchorBinding.

    Pure computation: the same selection and definition always produce
    the same result, and nothing outside the returned values changes.
    """

    @classmethod
    def resolve(
        cls,
        selection: PurchaseSelection,
        definition: Optional[TemplateDefinition] = None,
        strict: bool = False
    ) -> Tuple[PriceTable, AnchorBinding]:
        """
        Price a selection and bind every template anchor.

        Args:
            selection: What the buyer picked
            definition: Template to bind against (defaults to the loaded
                purchase template)
            strict: Raise UnknownSelectionError for an unknown device
                instead of pricing it at zero

        Returns:
            (PriceTable, AnchorBinding)
        """
        if definition is None:
            definition = TemplateLoader.get_default()

        prices = cls.compute_prices(selection, strict=strict)
        context = {'selection': selection, 'prices': prices}
        return prices, cls.bind_anchors(definition, context)

    @classmethod
    def compute_prices(cls, selection: PurchaseSelection, strict: bool = False) -> PriceTable:
        """
        Derive every price and balance line from a selection.

        The down payment is taken off the device line only. A down
        payment larger than the total leaves negative balances as-is.
        """
        device_price = lookup_device_price(selection.device_model, strict=strict)
        insurance = insurance_price(selection.insurance_requested)
        down_payment = Decimal(str(selection.down_payment))

        balance_device = device_price - down_payment
        balance_combined = balance_device + insurance
        monthly = (balance_combined / INSTALLMENT_MONTHS).quantize(CENTS, rounding=ROUND_HALF_UP)

        return PriceTable(
            device_price=device_price,
            insurance_price=insurance,
            combined_total=device_price + insurance,
            down_payment=down_payment,
            balance_device=balance_device,
            balance_insurance=insurance,
            balance_combined=balance_combined,
            monthly_installment=monthly,
            installment_months=INSTALLMENT_MONTHS,
            unknown_selection=not is_known_device(selection.device_model)
        )

    @classmethod
    def bind_anchors(cls, definition: TemplateDefinition, context: Dict[str, Any]) -> AnchorBinding:
        """Resolve each anchor of the definition, in template order."""
        resolved = []

        for anchor_def in definition.anchors:
            try:
                resolved.append(cls.resolve_anchor(anchor_def, context))
            except ResolutionError as e:
                logger.warning(f"Failed to resolve anchor {anchor_def.field_key}: {e}")
                resolved.append(ResolvedAnchor(
                    field_key=anchor_def.field_key,
                    anchor=anchor_def.anchor,
                    value='',
                    locked=anchor_def.locked,
                    is_manual=anchor_def.manual
                ))

        return AnchorBinding(fields=tuple(resolved))

    @classmethod
    def resolve_anchor(cls, anchor_def: AnchorDefinition, context: Dict[str, Any]) -> ResolvedAnchor:
        """
        Resolve a single anchor definition.

        Manual anchors and anchors whose condition is not met resolve to
        an empty string.
        """
        # Manual entry anchors are filled in by the signer
        if anchor_def.manual:
            return ResolvedAnchor(
                field_key=anchor_def.field_key,
                anchor=anchor_def.anchor,
                value='',
                locked=anchor_def.locked,
                is_manual=True
            )

        if anchor_def.condition_field:
            condition_value = cls.resolve_path(anchor_def.condition_field, context)
            if str(condition_value) != str(anchor_def.condition_equals):
                logger.debug(
                    f"Condition not met for {anchor_def.field_key}: "
                    f"{condition_value} != {anchor_def.condition_equals}"
                )
                return ResolvedAnchor(
                    field_key=anchor_def.field_key,
                    anchor=anchor_def.anchor,
                    value='',
                    locked=anchor_def.locked
                )

        if anchor_def.source:
            raw_value = cls.resolve_path(anchor_def.source, context)
        else:
            raw_value = anchor_def.value

        text = apply_transform(raw_value, anchor_def.transform)
        if text and anchor_def.template:
            text = anchor_def.template.format(value=text)

        return ResolvedAnchor(
            field_key=anchor_def.field_key,
            anchor=anchor_def.anchor,
            value=text,
            locked=anchor_def.locked
        )

    @classmethod
    def resolve_path(cls, source_path: str, context: Dict[str, Any]) -> Any:
        """
        Resolve a dotted source path against the context.

        Raises:
            ResolutionError: The root is missing or an attribute does
                not exist
        """
        parts = [p for p in source_path.split('.') if p]
        if not parts:
            raise ResolutionError("Empty source path", source_path=source_path)

        root_key = parts[0]
        if root_key not in context:
            raise ResolutionError(f"Root key '{root_key}' not in context", source_path=source_path)

        current = context[root_key]
        for part in parts[1:]:
            if current is None:
                return None
            current = cls._get_attr_or_key(current, part, source_path)

        return current

    @classmethod
    def _get_attr_or_key(cls, obj: Any, key: str, source_path: str) -> Any:
        """Get a value by dict key or attribute."""
        if isinstance(obj, dict):
            if key not in obj:
                raise ResolutionError(f"Unknown key '{key}'", source_path=source_path)
            return obj[key]

        if not hasattr(obj, key):
            raise ResolutionError(f"Unknown attribute '{key}'", source_path=source_path)
        return getattr(obj, key)
