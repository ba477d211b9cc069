"""
DocuSign Client

Thin wrapper around the DocuSign eSignature REST API for creating
envelopes. Uses the access token, base path and account id of an
already-authenticated session; it never obtains or refreshes tokens.
"""

import logging
import uuid
from typing import Any, Dict

import requests

from .exceptions import DocuSignAPIError
from .types import SessionContext

logger = logging.getLogger(__name__)

API_VERSION = 'v2.1'

# Request timeout
DEFAULT_TIMEOUT = 30


class DocuSignClient:
    """
    Client for DocuSign envelope operations.

    Any object with a ``create_envelope(envelope_definition) -> dict``
    method can stand in for this class (see EnvelopeSubmission).
    """

    def __init__(self, session: SessionContext, timeout: float = DEFAULT_TIMEOUT, mock: bool = False):
        self.session = session
        self.timeout = timeout
        self.mock = mock

    @property
    def envelopes_url(self) -> str:
        base_path = self.session.base_path.rstrip('/')
        return f"{base_path}/{API_VERSION}/accounts/{self.session.account_id}/envelopes"

    def _get_headers(self) -> Dict[str, str]:
        """Get request headers with auth."""
        return {
            'Authorization': f"Bearer {self.session.access_token}",
            'Content-Type': 'application/json',
            'Accept': 'application/json'
        }

    def create_envelope(self, envelope_definition: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create (and, with status "sent", dispatch) an envelope.

        Args:
            envelope_definition: Envelope JSON built by EnvelopeBuilder

        Returns:
            Envelope summary with 'envelopeId', 'status' and 'uri'
        """
        if self.mock:
            return self._mock_envelope(envelope_definition)

        try:
            response = requests.post(
                self.envelopes_url,
                headers=self._get_headers(),
                json=envelope_definition,
                timeout=self.timeout
            )
            response.raise_for_status()
            result = response.json()

        except requests.exceptions.RequestException as e:
            error_body = None
            status_code = None

            if getattr(e, 'response', None) is not None:
                status_code = e.response.status_code
                error_body = e.response.text

            logger.error(f"DocuSign create envelope failed: {e}")
            if error_body:
                logger.error(f"Response body: {error_body}")

            raise DocuSignAPIError(
                f"Failed to create envelope: {e}",
                status_code=status_code,
                response_body=error_body
            )
        except ValueError as e:
            raise DocuSignAPIError(f"Invalid JSON in create envelope response: {e}")

        if not isinstance(result, dict) or not result.get('envelopeId'):
            raise DocuSignAPIError(
                "Create envelope response has no envelopeId",
                status_code=response.status_code,
                response_body=response.text
            )

        return result

    def _mock_envelope(self, envelope_definition: Dict[str, Any]) -> Dict[str, Any]:
        """Return mock envelope data for local development."""
        envelope_id = f"mock-{uuid.uuid4().hex}"
        logger.info(f"Mock mode: pretending to create envelope {envelope_id}")
        return {
            'envelopeId': envelope_id,
            'status': envelope_definition.get('status', 'sent'),
            'uri': f"/envelopes/{envelope_id}",
        }
