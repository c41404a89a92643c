# drainr/routes/qwilr.py
from flask import Blueprint, request, jsonify, current_app
import logging

from ..errors import ValidationError, Gone
from ..middleware.auth import intake_required

qwilr_bp = Blueprint('qwilr', __name__)
logger = logging.getLogger(__name__)


@qwilr_bp.route('/send-to-qwilr', methods=['POST'])
@intake_required
def send_to_qwilr():
    """Relay a published quote to the Zapier hook that builds the Qwilr page"""
    body = request.get_json(silent=True) or {}
    public_id = body.get('public_id') if isinstance(body, dict) else None
    if not public_id:
        raise ValidationError('missing_fields', 'public_id is required', needs=['public_id'])

    quote = current_app.extensions['quote_service'].get(public_id)
    if quote.is_deleted:
        raise Gone('deleted', 'This quote is no longer available')

    result = current_app.extensions['qwilr_relay'].send(
        quote,
        tz_name=current_app.config.get('TIMEZONE'),
        valid_days=current_app.config.get('QUOTE_VALID_DAYS', 30),
    )
    return jsonify(result)
