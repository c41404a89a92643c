# drainr/services/qwilr.py
"""
Formats a published quote for Qwilr and relays it through a Zapier catch hook.

The Zap on the other end creates the Qwilr page from this payload, so the
field names here follow Qwilr's camelCase conventions rather than ours.
"""

import logging
from typing import Optional

import requests

from ..errors import UpstreamError
from .date_utils import format_timestamp, to_local, utcnow, valid_until
from .pricing import round2

logger = logging.getLogger(__name__)

CURRENCY = 'AUD'
SOURCE = 'Drainr Quote Tool'


def _item(index, name, description, quantity, unit_price, unit_label, total):
    return {
        'id': f'item_{index}',
        'name': name,
        'description': description,
        'quantity': quantity,
        'unitPrice': round2(unit_price),
        'unitLabel': unit_label,
        'total': round2(total),
        'optional': False,
        'selected': True,
    }


def build_line_items(quote):
    """Line items from the frozen snapshot: setup, each pipe run, excavation, extras."""
    payload = quote.payload or {}
    totals = quote.totals or {}
    items = []

    setup_cost = totals.get('setup_cost', quote.setup_cost) or 0
    if setup_cost:
        items.append(_item(len(items) + 1, 'Setup & Mobilisation',
                           'Site setup, CCTV inspection and equipment mobilisation',
                           1, setup_cost, 'job', setup_cost))

    for line in payload.get('pipe_lines') or []:
        meters = line.get('meters') or 0
        junctions = line.get('junctions') or 0
        line_total = line.get('total') or 0
        description = f"{meters:g}m of {line.get('size')} pipe relining"
        if junctions:
            description += f", {junctions} junction{'s' if junctions != 1 else ''} reinstated"
        # Per-run pricing mixes meters and junctions, so the run is one unit
        items.append(_item(len(items) + 1, f"Pipe Relining - {line.get('size')}",
                           description, 1, line_total, 'run', line_total))

    if payload.get('digging_enabled') and totals.get('digging_total'):
        hours = payload.get('digging_hours') or 0
        digging = totals['digging_total']
        items.append(_item(len(items) + 1, 'Excavation',
                           f"{hours:g} hours of excavation",
                           hours, digging / hours if hours else digging, 'hour', digging))

    for extra in payload.get('extras') or []:
        amount = extra.get('amount') or 0
        if not amount:
            continue
        items.append(_item(len(items) + 1, extra.get('note') or 'Additional work',
                           extra.get('note') or '', 1, amount, 'item', amount))

    return items


def format_quote_for_qwilr(quote, tz_name=None, valid_days=30):
    """
    Build the payload the Zapier hook expects.

    Args:
        quote (Quote): a published quote
        tz_name (str): business timezone for the quote and expiry dates
        valid_days (int): days until the Qwilr page expires

    Returns:
        dict
    """
    totals = quote.totals or {}
    payload = quote.payload or {}
    created = to_local(quote.created_at, tz_name)

    return {
        'pageTitle': f"Quote {quote.job_number} - {quote.customer_name}",
        'jobNumber': quote.job_number,
        'quoteDate': created.strftime('%Y-%m-%d') if created else None,
        'validUntil': valid_until(valid_days, tz_name).strftime('%Y-%m-%d'),
        'customer': {
            'name': quote.customer_name,
            'email': quote.customer_email or '',
            'phone': quote.customer_phone or '',
            'address': quote.customer_address or '',
        },
        'job': {
            'address': quote.job_address or '',
            'notes': quote.scope_of_works or payload.get('job_description') or '',
        },
        'lineItems': build_line_items(quote),
        'pricing': {
            'subtotal': totals.get('subtotal', quote.subtotal),
            'gst': totals.get('gst', quote.gst),
            'total': totals.get('grand_total', quote.grand_total),
            'currency': CURRENCY,
        },
        'metadata': {
            'source': SOURCE,
            'jobNumber': quote.job_number,
            'publicId': quote.public_id,
            'timestamp': format_timestamp(utcnow()),
        },
    }


class QwilrRelay:
    """Posts formatted quotes to the Zapier webhook that builds Qwilr pages."""

    def __init__(self, webhook_url: str, timeout: float = 15, session: Optional[requests.Session] = None):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, quote, tz_name=None, valid_days=30):
        if not self.webhook_url:
            raise UpstreamError('qwilr_not_configured', 'Zapier webhook URL is not configured', status_code=500)

        data = format_quote_for_qwilr(quote, tz_name, valid_days)

        try:
            resp = self.session.post(self.webhook_url, json=data, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Zapier webhook for quote {quote.public_id} failed: {e}")
            raise UpstreamError('qwilr_error', 'Failed to reach the Qwilr webhook', detail=type(e).__name__)

        if not resp.ok:
            logger.error(f"Zapier webhook for quote {quote.public_id} returned {resp.status_code}")
            raise UpstreamError('qwilr_error', 'The Qwilr webhook rejected the quote', detail=f"HTTP {resp.status_code}")

        logger.info(f"Sent quote {quote.public_id} (job {quote.job_number}) to Qwilr")
        return {
            'success': True,
            'message': 'Quote sent to Qwilr',
            'data': data,
        }
