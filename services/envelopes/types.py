"""
Envelope System Type Definitions

Dataclasses for the purchase request, the derived price table, the
anchor bindings and the template definition loaded from YAML.
All of them are immutable once built.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from .exceptions import ValidationError


# Values shipped in .env.example, e.g. "{YOUR_PAYMENT_GATEWAY_ACCOUNT_ID}"
PLACEHOLDER_PATTERN = re.compile(r'^\{.*\}$')

CENTS = Decimal('0.01')

# Anything this large is a typo, not a down payment
MAX_DOWN_PAYMENT = Decimal('1000000000')


class DispatchStatus(Enum):
    """Envelope status requested at creation time."""
    SENT = "sent"        # dispatch to the signer immediately
    CREATED = "created"  # save as a draft


class TabKind(Enum):
    """Signature marks a signer can be asked to complete."""
    INITIAL_HERE = "initial_here"
    SIGN_HERE = "sign_here"
    FULL_NAME = "full_name"
    DATE_SIGNED = "date_signed"

    @property
    def collection(self) -> str:
        """Name of the DocuSign ``tabs`` list this kind belongs to."""
        return {
            TabKind.INITIAL_HERE: 'initialHereTabs',
            TabKind.SIGN_HERE: 'signHereTabs',
            TabKind.FULL_NAME: 'fullNameTabs',
            TabKind.DATE_SIGNED: 'dateSignedTabs',
        }[self]


@dataclass(frozen=True)
class TabDefinition:
    """
    A signature mark placed at an anchor in the template.

    Attributes:
        kind: Which signature mark this is
        anchor: Anchor token printed in the PDF (e.g. "/sn1/")
        ignore_if_not_present: Tolerate the anchor missing from the document
    """
    kind: TabKind
    anchor: str
    anchor_units: str = 'pixels'
    anchor_x_offset: Optional[str] = None
    anchor_y_offset: Optional[str] = None
    ignore_if_not_present: bool = False

    def to_docusign_format(self) -> Dict[str, Any]:
        """Convert to a DocuSign tab object."""
        tab = {
            'anchorString': self.anchor,
            'anchorUnits': self.anchor_units,
            'anchorIgnoreIfNotPresent': 'true' if self.ignore_if_not_present else 'false',
        }
        if self.anchor_x_offset is not None:
            tab['anchorXOffset'] = self.anchor_x_offset
        if self.anchor_y_offset is not None:
            tab['anchorYOffset'] = self.anchor_y_offset
        return tab


@dataclass(frozen=True)
class AnchorDefinition:
    """
    A free-text field bound to an anchor token in the template.

    Exactly one of ``source``, ``value`` or ``manual`` decides where
    the text comes from.

    Attributes:
        field_key: Stable internal identifier (snake_case)
        anchor: Anchor token printed in the PDF (e.g. "/price1/")
        source: Context path (e.g. "prices.device_price")
        value: Literal text (e.g. "Insurance")
        transform: Optional transform name (e.g. "currency")
        template: Optional format string applied to the transformed value
        condition_field: Context path that must match ``condition_equals``
        manual: Left blank for the signer to fill in
        locked: Signer cannot edit the populated value
    """
    field_key: str
    anchor: str
    source: Optional[str] = None
    value: Optional[str] = None
    transform: Optional[str] = None
    template: Optional[str] = None
    condition_field: Optional[str] = None
    condition_equals: Any = None
    manual: bool = False
    locked: bool = True
    anchor_units: Optional[str] = None
    anchor_x_offset: Optional[str] = None
    anchor_y_offset: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class TemplateDefinition:
    """
    Complete definition of a signing template loaded from YAML.

    One YAML file = one TemplateDefinition. It is the manifest of the
    anchors printed in the PDF, so anything bound to the document must
    be declared here first.
    """
    schema_version: str
    slug: str
    name: str  # Display name of the document inside the envelope
    file: str
    email_subject: str
    tabs: Tuple[TabDefinition, ...]
    anchors: Tuple[AnchorDefinition, ...]
    file_extension: str = 'pdf'
    document_id: str = '1'

    def get_anchor(self, anchor: str) -> Optional[AnchorDefinition]:
        """Get an anchor definition by its token."""
        return next((a for a in self.anchors if a.anchor == anchor), None)

    def anchor_tokens(self) -> List[str]:
        """All text anchor tokens, in template order."""
        return [a.anchor for a in self.anchors]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TemplateDefinition':
        """Create a TemplateDefinition from a parsed YAML dict."""
        document = data['document']

        tabs = []
        for tab_data in data.get('tabs', []):
            tabs.append(TabDefinition(
                kind=TabKind(tab_data['kind']),
                anchor=tab_data['anchor'],
                anchor_units=tab_data.get('anchor_units', 'pixels'),
                anchor_x_offset=_optional_str(tab_data.get('anchor_x_offset')),
                anchor_y_offset=_optional_str(tab_data.get('anchor_y_offset')),
                ignore_if_not_present=tab_data.get('ignore_if_not_present', False)
            ))

        anchors = []
        for anchor_data in data.get('anchors', []):
            manual = anchor_data.get('manual', False)
            anchors.append(AnchorDefinition(
                field_key=anchor_data['field_key'],
                anchor=anchor_data['anchor'],
                source=anchor_data.get('source'),
                value=anchor_data.get('value'),
                transform=anchor_data.get('transform'),
                template=anchor_data.get('template'),
                condition_field=anchor_data.get('condition_field'),
                condition_equals=anchor_data.get('condition_equals'),
                manual=manual,
                locked=anchor_data.get('locked', not manual),
                anchor_units=anchor_data.get('anchor_units'),
                anchor_x_offset=_optional_str(anchor_data.get('anchor_x_offset')),
                anchor_y_offset=_optional_str(anchor_data.get('anchor_y_offset')),
                width=anchor_data.get('width'),
                height=anchor_data.get('height')
            ))

        return cls(
            schema_version=str(data['schema_version']),
            slug=data['slug'],
            name=document['name'],
            file=document['file'],
            file_extension=document.get('file_extension', 'pdf'),
            document_id=str(document.get('document_id', '1')),
            email_subject=data['email_subject'],
            tabs=tuple(tabs),
            anchors=tuple(anchors)
        )


def _optional_str(value: Any) -> Optional[str]:
    # DocuSign takes offsets as strings
    return None if value is None else str(value)


@dataclass(frozen=True)
class PurchaseSelection:
    """What the buyer picked on the purchase form."""
    device_model: str
    insurance_requested: bool
    down_payment: Decimal = Decimal('0')

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> 'PurchaseSelection':
        """
        Build a selection from the purchase request payload.

        Only the exact string "Yes" requests insurance. A blank down
        payment counts as zero. Other amounts are rounded half-up to
        whole cents; anything non-numeric, negative or at least
        MAX_DOWN_PAYMENT is rejected.
        """
        raw_down_payment = payload.get('signerDownPayment')
        if raw_down_payment is None or str(raw_down_payment).strip() == '':
            down_payment = Decimal('0')
        else:
            try:
                down_payment = Decimal(str(raw_down_payment).strip())
            except InvalidOperation:
                raise ValidationError(
                    f"Invalid down payment: {raw_down_payment!r}",
                    field='signerDownPayment'
                )
            if not down_payment.is_finite() or down_payment < 0 or down_payment >= MAX_DOWN_PAYMENT:
                raise ValidationError(
                    f"Invalid down payment: {raw_down_payment!r}",
                    field='signerDownPayment'
                )
            # Balances are derived from the amount printed on the agreement
            down_payment = down_payment.quantize(CENTS, rounding=ROUND_HALF_UP)

        return cls(
            device_model=str(payload.get('signerPhoneSelection') or '').strip(),
            insurance_requested=payload.get('signerInsuranceSelection') == 'Yes',
            down_payment=down_payment
        )


@dataclass(frozen=True)
class PriceTable:
    """
    Prices derived from a PurchaseSelection.

    The down payment only reduces the device line; the insurance line
    is financed in full.
    """
    device_price: Decimal
    insurance_price: Decimal
    combined_total: Decimal
    down_payment: Decimal
    balance_device: Decimal
    balance_insurance: Decimal
    balance_combined: Decimal
    monthly_installment: Decimal
    installment_months: int
    unknown_selection: bool = False


@dataclass(frozen=True)
class ResolvedAnchor:
    """
    An anchor with its display text resolved from a PriceTable.

    This is the intermediate representation between the template
    definition and the final DocuSign text tab.
    """
    field_key: str
    anchor: str
    value: str  # Never None; empty for unused lines
    locked: bool = True
    is_manual: bool = False


@dataclass(frozen=True)
class AnchorBinding:
    """
    Ordered anchor -> display text mapping for one envelope.

    Keys are the closed set of anchors declared by the template.
    """
    fields: Tuple[ResolvedAnchor, ...] = ()

    def get(self, anchor: str, default: Optional[str] = None) -> Optional[str]:
        resolved = self.get_field(anchor)
        return resolved.value if resolved else default

    def get_field(self, anchor: str) -> Optional[ResolvedAnchor]:
        return next((f for f in self.fields if f.anchor == anchor), None)

    def anchors(self) -> List[str]:
        return [f.anchor for f in self.fields]

    def as_dict(self) -> Dict[str, str]:
        return {f.anchor: f.value for f in self.fields}

    def __contains__(self, anchor: object) -> bool:
        return any(f.anchor == anchor for f in self.fields)

    def __iter__(self) -> Iterator[ResolvedAnchor]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    @classmethod
    def from_dict(cls, values: Mapping[str, str]) -> 'AnchorBinding':
        """
        Wrap a plain anchor -> text mapping.

        Every entry is treated as a populated, locked field keyed by the
        anchor token without its slashes.
        """
        return cls(fields=tuple(
            ResolvedAnchor(
                field_key=anchor.strip('/'),
                anchor=anchor,
                value='' if value is None else str(value)
            )
            for anchor, value in values.items()
        ))


@dataclass(frozen=True)
class SignerIdentity:
    """The single recipient who signs the purchase agreement."""
    email: str
    name: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> 'SignerIdentity':
        email = str(payload.get('signerEmail') or '').strip()
        name = str(payload.get('signerName') or '').strip()
        if not email:
            raise ValidationError("Signer email is required", field='signerEmail')
        if not name:
            raise ValidationError("Signer name is required", field='signerName')
        return cls(email=email, name=name)


@dataclass(frozen=True)
class GatewayConfig:
    """Payment gateway settings that must be configured before sending."""
    account_id: Optional[str]
    name: Optional[str]
    display_name: Optional[str]

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'GatewayConfig':
        """Build from a Flask config (or any mapping of setting names)."""
        return cls(
            account_id=config.get('PAYMENT_GATEWAY_ACCOUNT_ID'),
            name=config.get('PAYMENT_GATEWAY_NAME'),
            display_name=config.get('PAYMENT_GATEWAY_DISPLAY_NAME')
        )

    def missing_settings(self) -> List[str]:
        """Names of settings that are unset, blank or still a placeholder."""
        settings = {
            'PAYMENT_GATEWAY_ACCOUNT_ID': self.account_id,
            'PAYMENT_GATEWAY_NAME': self.name,
            'PAYMENT_GATEWAY_DISPLAY_NAME': self.display_name,
        }
        return [
            key for key, value in settings.items()
            if not value or not str(value).strip() or PLACEHOLDER_PATTERN.match(str(value).strip())
        ]

    @property
    def is_complete(self) -> bool:
        return not self.missing_settings()


@dataclass(frozen=True)
class SessionContext:
    """
    Credentials of the authenticated session.

    Supplied by the authentication layer, which keeps the token fresh.
    """
    access_token: str
    base_path: str
    account_id: str

    @classmethod
    def from_session(cls, session: Mapping[str, Any]) -> Optional['SessionContext']:
        """Read from a Flask session; None if any value is missing."""
        access_token = session.get('access_token')
        base_path = session.get('base_path')
        account_id = session.get('account_id')
        if not (access_token and base_path and account_id):
            return None
        return cls(access_token=access_token, base_path=base_path, account_id=account_id)


@dataclass(frozen=True)
class EnvelopeRequest:
    """Everything needed to build one envelope definition."""
    document_base64: str
    signer: SignerIdentity
    anchor_binding: AnchorBinding
    status: DispatchStatus = DispatchStatus.SENT


@dataclass(frozen=True)
class EnvelopeResult:
    """Identifier DocuSign assigned to the created envelope."""
    envelope_id: str
