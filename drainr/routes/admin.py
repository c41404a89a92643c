# drainr/routes/admin.py
from flask import Blueprint, request, jsonify, current_app
import logging

from ..errors import ValidationError
from ..middleware.auth import admin_required

admin_bp = Blueprint('admin', __name__)
logger = logging.getLogger(__name__)


def _quotes():
    return current_app.extensions['quote_service']


@admin_bp.route('/quotes', methods=['GET'])
@admin_required
def list_quotes():
    """Dashboard listing with tab, status, search, sort and pagination"""
    service = _quotes()
    args = request.args

    result = service.list_quotes(
        tab=args.get('tab'),
        status=args.get('status') or None,
        search=args.get('search'),
        sort=args.get('sort'),
        direction=args.get('dir'),
        page=args.get('page'),
        page_size=args.get('pageSize'),
    )

    data = []
    for quote in result['items']:
        row = quote.to_summary_dict()
        row['publicUrl'] = service.public_url(quote)
        data.append(row)

    return jsonify({
        'ok': True,
        'data': data,
        'count': result['count'],
        'page': result['page'],
        'pageSize': result['page_size'],
    })


@admin_bp.route('/quotes/<public_id>', methods=['GET'])
@admin_required
def get_quote(public_id):
    """Full record in any lifecycle state"""
    service = _quotes()
    quote = service.get(public_id)

    data = quote.to_dict()
    data['publicUrl'] = service.public_url(quote)
    return jsonify({'ok': True, 'data': data})


@admin_bp.route('/quote-action', methods=['POST'])
@admin_required
def quote_action():
    """
    Apply one of archive, unarchive, delete, set_status or regenerate_link.

    Body: {"public_id": str, "action": str, "status": str (optional)}
    """
    body = request.get_json(silent=True)
    if body is None:
        body = {}
    if not isinstance(body, dict):
        raise ValidationError('invalid_body', 'Request body must be a JSON object')

    service = _quotes()
    quote = service.apply_action(body.get('public_id'), body.get('action'), body.get('status'))

    return jsonify({
        'ok': True,
        'data': quote.to_action_dict(),
        'publicUrl': service.public_url(quote),
    })
