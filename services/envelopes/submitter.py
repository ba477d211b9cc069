"""
Envelope Submitter

Validates configuration, assembles the envelope and submits it to
DocuSign exactly once. Each submission walks one way through:

    UNVALIDATED -> CONFIG_VALIDATED -> ASSEMBLED -> SUBMITTED -> SUCCEEDED

Any step may end in FAILED. Nothing is retried.
"""

import base64
import logging
from enum import Enum
from typing import Any, Dict, Optional, Union

from .docusign_client import DEFAULT_TIMEOUT, DocuSignClient
from .envelope_builder import EnvelopeBuilder
from .exceptions import ConfigurationError, EnvelopeError, SubmissionError, ValidationError
from .loader import TemplateLoader
from .types import (
    AnchorBinding,
    DispatchStatus,
    EnvelopeRequest,
    EnvelopeResult,
    GatewayConfig,
    SessionContext,
    SignerIdentity,
    TemplateDefinition,
)

logger = logging.getLogger(__name__)

PAYMENT_CONFIG_MESSAGE = (
    "Payment gateway is not configured. Set PAYMENT_GATEWAY_ACCOUNT_ID, "
    "PAYMENT_GATEWAY_NAME and PAYMENT_GATEWAY_DISPLAY_NAME."
)


def require_gateway_config(gateway_config: GatewayConfig) -> None:
    """
    Raise ConfigurationError unless every payment gateway setting is usable.
    """
    missing = gateway_config.missing_settings()
    if missing:
        logger.error(f"Payment gateway settings missing or placeholder: {', '.join(missing)}")
        raise ConfigurationError(PAYMENT_CONFIG_MESSAGE)


class SubmissionState(Enum):
    UNVALIDATED = "unvalidated"
    CONFIG_VALIDATED = "config_validated"
    ASSEMBLED = "assembled"
    SUBMITTED = "submitted"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_NEXT_STATES = {
    SubmissionState.UNVALIDATED: {SubmissionState.CONFIG_VALIDATED, SubmissionState.FAILED},
    SubmissionState.CONFIG_VALIDATED: {SubmissionState.ASSEMBLED, SubmissionState.FAILED},
    SubmissionState.ASSEMBLED: {SubmissionState.SUBMITTED, SubmissionState.FAILED},
    SubmissionState.SUBMITTED: {SubmissionState.SUCCEEDED, SubmissionState.FAILED},
    SubmissionState.SUCCEEDED: set(),
    SubmissionState.FAILED: set(),
}


class EnvelopeSubmission:
    """
    One envelope submission for one signer and one document.

    The ``client`` is anything with ``create_envelope(envelope_definition)``
    returning a dict with 'envelopeId'. When omitted, a DocuSignClient is
    built from ``session``.
    """

    def __init__(
        self,
        signer: SignerIdentity,
        document_bytes: bytes,
        anchor_binding: AnchorBinding,
        status: Union[DispatchStatus, str],
        gateway_config: GatewayConfig,
        session: Optional[SessionContext] = None,
        client: Any = None,
        definition: Optional[TemplateDefinition] = None,
        timeout: float = DEFAULT_TIMEOUT,
        mock: bool = False
    ):
        try:
            self.status = DispatchStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown envelope status: {status!r}", field='status')

        if client is None and session is None:
            raise ValidationError("A session is required to build a DocuSign client")

        self.signer = signer
        self.document_bytes = document_bytes
        self.anchor_binding = anchor_binding
        self.gateway_config = gateway_config
        self.session = session
        self.client = client
        self.definition = definition
        self.timeout = timeout
        self.mock = mock

        self.state = SubmissionState.UNVALIDATED
        self.request: Optional[EnvelopeRequest] = None
        self.envelope: Optional[Dict[str, Any]] = None
        self.result: Optional[EnvelopeResult] = None

    def _transition(self, new_state: SubmissionState) -> None:
        if new_state not in _NEXT_STATES[self.state]:
            raise EnvelopeError(f"Invalid submission transition {self.state.value} -> {new_state.value}")
        logger.debug(f"Envelope submission {self.state.value} -> {new_state.value}")
        self.state = new_state

    def run(self) -> EnvelopeResult:
        """
        Validate, assemble and submit.

        Raises:
            ConfigurationError: Payment gateway settings are incomplete
            ValidationError: The binding does not fit the template
            SubmissionError: DocuSign rejected or never answered the call
        """
        if self.state is not SubmissionState.UNVALIDATED:
            raise EnvelopeError(f"Submission already {self.state.value}")

        try:
            self.validate_config()
            self.assemble()
            return self.send()
        except Exception:
            self._transition(SubmissionState.FAILED)
            raise

    def validate_config(self) -> None:
        """Refuse to go any further without a usable payment gateway."""
        require_gateway_config(self.gateway_config)
        self._transition(SubmissionState.CONFIG_VALIDATED)

    def assemble(self) -> Dict[str, Any]:
        """Encode the document and build the envelope definition."""
        definition = self.definition or TemplateLoader.get_default()

        self.request = EnvelopeRequest(
            document_base64=base64.b64encode(self.document_bytes).decode('ascii'),
            signer=self.signer,
            anchor_binding=self.anchor_binding,
            status=self.status
        )
        self.envelope = EnvelopeBuilder.build(self.request, definition)
        self._transition(SubmissionState.ASSEMBLED)
        return self.envelope

    def send(self) -> EnvelopeResult:
        """Make the single create-envelope call."""
        client = self.client or DocuSignClient(self.session, timeout=self.timeout, mock=self.mock)
        self._transition(SubmissionState.SUBMITTED)

        try:
            response = client.create_envelope(self.envelope)
        except Exception as e:
            logger.error(f"Error sending the envelope: {e!r}")
            raise SubmissionError("Error sending envelope", cause=e) from e

        envelope_id = _envelope_id(response)
        if not envelope_id:
            logger.error(f"Envelope response without an id: {response!r}")
            raise SubmissionError("Envelope response did not include an envelope id")

        self.result = EnvelopeResult(envelope_id=envelope_id)
        self._transition(SubmissionState.SUCCEEDED)
        logger.info(f"Envelope was created. EnvelopeId {envelope_id}")
        return self.result


def _envelope_id(response: Any) -> Optional[str]:
    # SDK summaries expose envelope_id, the REST API returns envelopeId
    if isinstance(response, dict):
        return response.get('envelopeId') or response.get('envelope_id')
    return getattr(response, 'envelope_id', None)


def submit(
    signer: SignerIdentity,
    document_bytes: bytes,
    anchor_binding: AnchorBinding,
    status: Union[DispatchStatus, str],
    gateway_config: GatewayConfig,
    session: Optional[SessionContext] = None,
    client: Any = None,
    definition: Optional[TemplateDefinition] = None,
    **client_options
) -> EnvelopeResult:
    """
    Submit one envelope and return its identifier.

    See EnvelopeSubmission for arguments and errors.
    """
    return EnvelopeSubmission(
        signer=signer,
        document_bytes=document_bytes,
        anchor_binding=anchor_binding,
        status=status,
        gateway_config=gateway_config,
        session=session,
        client=client,
        definition=definition,
        **client_options
    ).run()
