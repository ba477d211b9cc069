# routes/purchase.py
"""
Device purchase routes (DocuSign integration).
"""

import logging
from flask import Blueprint, current_app, jsonify, request, session
from services.envelopes import (
    DEVICE_PRICES,
    INSTALLMENT_MONTHS,
    INSURANCE_PRICE,
    ConfigurationError,
    DispatchStatus,
    GatewayConfig,
    PriceResolver,
    PurchaseSelection,
    SessionContext,
    SignerIdentity,
    SubmissionError,
    TemplateLoader,
    UnknownSelectionError,
    ValidationError,
    require_gateway_config,
    submit,
)
from .decorators import docusign_session_required

logger = logging.getLogger(__name__)

purchase_bp = Blueprint('purchase', __name__, url_prefix='/api')


# =============================================================================
# PURCHASE DEVICE
# =============================================================================

@purchase_bp.route('/purchase-device', methods=['POST'])
@docusign_session_required
def purchase_device():
    """
    Price the selected device and send the purchase agreement to the
    signer. The new envelope id is kept in the session.
    """
    data = request.get_json(silent=True) or request.form.to_dict()
    if not isinstance(data, dict):
        return jsonify({'success': False, 'error': 'Request body must be a JSON object'}), 400

    try:
        signer = SignerIdentity.from_payload(data)
        selection = PurchaseSelection.from_payload(data)
        status = DispatchStatus(data.get('status') or DispatchStatus.SENT.value)
    except ValidationError as e:
        return jsonify({'success': False, 'error': str(e), 'field': e.field}), 400
    except ValueError:
        return jsonify({'success': False, 'error': 'Invalid status', 'field': 'status'}), 400

    gateway_config = GatewayConfig.from_config(current_app.config)

    try:
        # Check the payment gateway before doing anything with envelopes
        require_gateway_config(gateway_config)

        definition = TemplateLoader.get_default()
        _, binding = PriceResolver.resolve(
            selection,
            definition,
            strict=current_app.config.get('STRICT_DEVICE_SELECTION', False)
        )

        result = submit(
            signer=signer,
            document_bytes=TemplateLoader.read_document(definition),
            anchor_binding=binding,
            status=status,
            gateway_config=gateway_config,
            session=SessionContext.from_session(session),
            definition=definition,
            timeout=current_app.config.get('DOCUSIGN_TIMEOUT', 30),
            mock=current_app.config.get('DOCUSIGN_MOCK_MODE', False)
        )
    except UnknownSelectionError as e:
        return jsonify({'success': False, 'error': str(e), 'field': 'signerPhoneSelection'}), 400
    except ConfigurationError as e:
        logger.error(f"Purchase envelope not sent: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
    except SubmissionError as e:
        logger.error(f"Error sending envelope in purchase_device: {e.cause!r}")
        return jsonify({'success': False, 'error': str(e)}), 502

    session['envelope_id'] = result.envelope_id
    return 'Envelope Successfully Sent!', 200


@purchase_bp.route('/purchase-device/prices')
def get_prices():
    """Catalog prices for the purchase form."""
    return jsonify({
        'devices': [{'model': model, 'price': price} for model, price in DEVICE_PRICES.items()],
        'insurance_price': INSURANCE_PRICE,
        'installment_months': INSTALLMENT_MONTHS
    })
