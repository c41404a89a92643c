# drainr/routes/viewer.py
"""Customer-facing quote pages served at /q/<public_id>?t=<token>."""

from urllib.parse import quote as urlquote

from flask import Blueprint, request, render_template, current_app
import logging

from ..errors import NotFound, Gone
from ..services.date_utils import format_document_date
from ..services.qwilr import build_line_items

viewer_bp = Blueprint('viewer', __name__)
logger = logging.getLogger(__name__)

REACTIVATION_SUBJECT = 'Quote reactivation request'


def reactivation_links(public_id, email, phone):
    """mailto:/tel: links offered on the expired screen"""
    body = (
        "Hi,\n\n"
        "My quote link has expired. Could you please send me an updated link?\n\n"
        f"Quote ID: {public_id}\n"
    )
    mailto = None
    if email:
        mailto = f"mailto:{email}?subject={urlquote(REACTIVATION_SUBJECT)}&body={urlquote(body)}"
    tel = None
    if phone:
        tel = 'tel:' + ''.join(ch for ch in phone if ch.isdigit() or ch == '+')
    return mailto, tel


@viewer_bp.route('/q/<public_id>', methods=['GET'])
def view_quote(public_id):
    config = current_app.config
    token = request.args.get('t')

    try:
        quote = current_app.extensions['quote_service'].get_public(public_id, token)
    except Gone as e:
        if e.code == 'deleted':
            return render_template('viewer/deleted.html', company_name=config.get('COMPANY_NAME')), 410
        mailto, tel = reactivation_links(public_id, config.get('REACTIVATION_EMAIL'),
                                         config.get('REACTIVATION_PHONE'))
        return render_template(
            'viewer/expired.html',
            company_name=config.get('COMPANY_NAME'),
            public_id=public_id,
            mailto=mailto,
            tel=tel,
            phone=config.get('REACTIVATION_PHONE'),
        ), 410
    except NotFound:
        return render_template('viewer/invalid.html', company_name=config.get('COMPANY_NAME')), 404

    return render_template(
        'viewer/quote.html',
        company_name=config.get('COMPANY_NAME'),
        quote=quote,
        totals=quote.totals or {},
        line_items=build_line_items(quote),
        quote_date=format_document_date(quote.created_at, config.get('TIMEZONE')),
        pdf_url=f"/api/quotes/{quote.public_id}/pdf?t={quote.public_token}",
    )
