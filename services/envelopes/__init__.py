"""
Device Purchase Envelope System

Prices a device purchase, binds the results to the anchors of a
prepared PDF template and sends it to DocuSign for signature.
Templates are declared in YAML files and processed through a pipeline
of pricing, anchor binding, envelope building and submission.

Usage:
    from services.envelopes import TemplateLoader, PriceResolver, submit

    # On app startup
    TemplateLoader.load_all()

    # When handling a purchase
    definition = TemplateLoader.get_default()
    prices, binding = PriceResolver.resolve(selection, definition)
    result = submit(signer, TemplateLoader.read_document(definition), binding,
                    DispatchStatus.SENT, gateway_config, session, definition=definition)
"""

from .types import (
    DispatchStatus,
    TabKind,
    TabDefinition,
    AnchorDefinition,
    TemplateDefinition,
    PurchaseSelection,
    PriceTable,
    ResolvedAnchor,
    AnchorBinding,
    SignerIdentity,
    GatewayConfig,
    SessionContext,
    EnvelopeRequest,
    EnvelopeResult
)

from .exceptions import (
    EnvelopeError,
    ConfigurationError,
    ValidationError,
    UnknownSelectionError,
    ResolutionError,
    DocuSignAPIError,
    SubmissionError
)

from .catalog import DEVICE_PRICES, INSURANCE_PRICE, INSTALLMENT_MONTHS, lookup_device_price
from .loader import TemplateLoader
from .price_resolver import PriceResolver
from .envelope_builder import EnvelopeBuilder
from .docusign_client import DocuSignClient
from .submitter import EnvelopeSubmission, SubmissionState, require_gateway_config, submit
from .transforms import TRANSFORMS, apply_transform, register_transform

__all__ = [
    # Types
    'DispatchStatus',
    'TabKind',
    'TabDefinition',
    'AnchorDefinition',
    'TemplateDefinition',
    'PurchaseSelection',
    'PriceTable',
    'ResolvedAnchor',
    'AnchorBinding',
    'SignerIdentity',
    'GatewayConfig',
    'SessionContext',
    'EnvelopeRequest',
    'EnvelopeResult',

    # Exceptions
    'EnvelopeError',
    'ConfigurationError',
    'ValidationError',
    'UnknownSelectionError',
    'ResolutionError',
    'DocuSignAPIError',
    'SubmissionError',

    # Catalog
    'DEVICE_PRICES',
    'INSURANCE_PRICE',
    'INSTALLMENT_MONTHS',
    'lookup_device_price',

    # Services
    'TemplateLoader',
    'PriceResolver',
    'EnvelopeBuilder',
    'DocuSignClient',
    'EnvelopeSubmission',
    'SubmissionState',
    'require_gateway_config',
    'submit',

    # Transforms
    'TRANSFORMS',
    'apply_transform',
    'register_transform',
]
