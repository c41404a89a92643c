# drainr/routes/quotes.py
from flask import Blueprint, request, jsonify, current_app
import logging

from ..middleware.auth import intake_required
from ..services.file_utils import generate_quote_proposal

quotes_bp = Blueprint('quotes', __name__)
logger = logging.getLogger(__name__)


def _quotes():
    return current_app.extensions['quote_service']


@quotes_bp.route('/generate-quote', methods=['POST'])
@intake_required
def generate_quote():
    """Price, store and publish a quote, returning its public link"""
    service = _quotes()
    quote = service.publish(request.get_json(silent=True))
    url = service.public_url(quote)

    return jsonify({
        'ok': True,
        'public_id': quote.public_id,
        'publicUrl': url,
        'url': url,
    }), 201


@quotes_bp.route('/quotes/<public_id>', methods=['GET'])
def get_public_quote(public_id):
    """Customer-facing quote data, gated on the link token"""
    quote = _quotes().get_public(public_id, request.args.get('t'))
    return jsonify(quote.to_public_dict())


@quotes_bp.route('/quotes/<public_id>/pdf', methods=['GET'])
def get_quote_pdf(public_id):
    """Render the published snapshot as a PDF proposal"""
    quote = _quotes().get_public(public_id, request.args.get('t'))
    logger.info(f"Generating PDF for quote {public_id}")
    return generate_quote_proposal(quote, current_app.config)
