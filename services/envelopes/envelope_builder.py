"""
Envelope Builder

Turns an EnvelopeRequest into a DocuSign envelope definition: one
document, one signer, and the signer's tabs placed by anchor.
"""

import logging
from typing import Any, Dict, List

from .exceptions import ValidationError
from .types import (
    AnchorBinding,
    AnchorDefinition,
    EnvelopeRequest,
    ResolvedAnchor,
    TabKind,
    TemplateDefinition,
)

logger = logging.getLogger(__name__)

SIGNER_RECIPIENT_ID = '1'


class EnvelopeBuilder:
    """
    Builds DocuSign envelope definitions from a template definition and
    an EnvelopeRequest.

    Takes:
        - Template definition (document, signature marks, anchors)
        - EnvelopeRequest (encoded document, signer, anchor binding)

    Returns:
        - Envelope definition dict ready for the envelopes API
    """

    @classmethod
    def build(cls, request: EnvelopeRequest, definition: TemplateDefinition) -> Dict[str, Any]:
        """
        Build the envelope definition for a single signer and document.

        Raises:
            ValidationError: The binding holds an anchor the template
                does not declare
        """
        signer = {
            'email': request.signer.email,
            'name': request.signer.name,
            'recipientId': SIGNER_RECIPIENT_ID,
            'routingOrder': '1',
            'tabs': cls.build_tabs(request.anchor_binding, definition),
        }

        envelope = {
            'emailSubject': definition.email_subject,
            'documents': [cls._build_document(request, definition)],
            'recipients': {'signers': [signer]},
            'status': request.status.value,
        }

        logger.debug(
            f"Built envelope for {definition.slug} with "
            f"{len(request.anchor_binding)} text tab(s), status '{request.status.value}'"
        )
        return envelope

    @classmethod
    def _build_document(cls, request: EnvelopeRequest, definition: TemplateDefinition) -> Dict[str, Any]:
        # The display name can differ from the file name
        return {
            'documentBase64': request.document_base64,
            'name': definition.name,
            'fileExtension': definition.file_extension,
            'documentId': definition.document_id,
        }

    @classmethod
    def build_tabs(cls, binding: AnchorBinding, definition: TemplateDefinition) -> Dict[str, List[Dict[str, Any]]]:
        """
        Build the signer's tabs: the template's signature marks plus one
        text tab per bound anchor.
        """
        tabs: Dict[str, List[Dict[str, Any]]] = {kind.collection: [] for kind in TabKind}

        for tab_def in definition.tabs:
            tabs[tab_def.kind.collection].append(tab_def.to_docusign_format())

        text_tabs = []
        for resolved in binding:
            anchor_def = definition.get_anchor(resolved.anchor)
            if anchor_def is None:
                raise ValidationError(
                    f"Anchor '{resolved.anchor}' is not declared by template '{definition.slug}'",
                    field=resolved.field_key
                )
            text_tabs.append(cls._build_text_tab(anchor_def, resolved))

        tabs['textTabs'] = text_tabs
        return tabs

    @classmethod
    def _build_text_tab(cls, anchor_def: AnchorDefinition, resolved: ResolvedAnchor) -> Dict[str, Any]:
        """Build a free-text tab for one resolved anchor."""
        tab = {
            'tabLabel': resolved.field_key,
            'anchorString': resolved.anchor,
            'anchorIgnoreIfNotPresent': 'true',
            'locked': 'true' if resolved.locked else 'false',
        }

        # Manual fields start blank for the signer
        if not resolved.is_manual:
            tab['value'] = resolved.value

        if anchor_def.anchor_units:
            tab['anchorUnits'] = anchor_def.anchor_units
        if anchor_def.anchor_x_offset is not None:
            tab['anchorXOffset'] = anchor_def.anchor_x_offset
        if anchor_def.anchor_y_offset is not None:
            tab['anchorYOffset'] = anchor_def.anchor_y_offset
        if anchor_def.width is not None:
            tab['width'] = str(anchor_def.width)
        if anchor_def.height is not None:
            tab['height'] = str(anchor_def.height)

        return tab
