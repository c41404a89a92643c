# drainr/services/quote_service.py
"""
Quote lifecycle: publishing, the public access gate, admin actions and the
admin listing.

A quote is in one of three visibility states:

    live      deleted_at is null, archived is false
    archived  deleted_at is null, archived is true   (public link shows "expired")
    deleted   deleted_at is set                      (terminal)

The business ``status`` (sent, pending, deposit_paid, ...) is independent of
visibility.
"""

import hmac
import logging

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from ..errors import ValidationError, NotFound, Gone, UpstreamError
from ..models import Quote, QUOTE_STATUSES
from ..schemas.quote import parse_quote_payload
from .date_utils import utcnow
from .pricing import compute_totals, line_total
from .tokens import make_public_id, make_token

logger = logging.getLogger(__name__)

ACTIONS = ('archive', 'unarchive', 'delete', 'set_status', 'regenerate_link')
TABS = ('active', 'archived', 'deleted')
SORT_FIELDS = ('created_at', 'grand_total', 'customer_name', 'status')

DEFAULT_PUBLISH_STATUS = 'sent'
DEFAULT_REACTIVATED_STATUS = 'pending'
DEFAULT_PAGE_SIZE = 25
MIN_PAGE_SIZE = 5
MAX_PAGE_SIZE = 100
MAX_PAGE = 10000
PUBLIC_ID_ATTEMPTS = 5


def _escape_like(text):
    return text.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def _to_int(value, default):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class QuoteService:
    """Reads and mutates quote records through the given Flask-SQLAlchemy handle."""

    def __init__(self, db, pricing_table, public_base_url=''):
        self.db = db
        self.pricing_table = pricing_table
        self.public_base_url = (public_base_url or '').rstrip('/')

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    def public_url(self, quote):
        return f"{self.public_base_url}{quote.public_path()}"

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find(self, public_id):
        if not public_id:
            return None
        return Quote.query.filter_by(public_id=public_id).first()

    def get(self, public_id):
        """Admin lookup: any lifecycle state, NotFound when absent."""
        quote = self.find(public_id)
        if quote is None:
            raise NotFound()
        return quote

    def find_latest_for_job(self, job_uuid):
        """Most recent quote for a ServiceM8 job that has not been deleted"""
        if not job_uuid:
            return None
        return (Quote.query
                .filter(Quote.job_uuid == job_uuid, Quote.deleted_at.is_(None))
                .order_by(Quote.created_at.desc(), Quote.id.desc())
                .first())

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def build_snapshot(self, quote_in):
        """
        Price a validated quote and build the payload stored with it.

        Returns:
            tuple: (QuoteTotals, payload dict)
        """
        table = self.pricing_table
        for index, line in enumerate(quote_in.pipe_lines):
            if line.size not in table.pipe_rates:
                raise ValidationError(
                    'invalid_pipe_size',
                    f"Unsupported pipe size '{line.size}'",
                    field=f'pipe_lines.{index}.size',
                    allowed=table.sizes,
                )

        totals = compute_totals(
            quote_in.pipe_lines,
            quote_in.digging_enabled,
            quote_in.digging_hours,
            quote_in.extras,
            table,
            supplied_extras_total=quote_in.extras_total,
        )

        payload = quote_in.model_dump(exclude={'extras_total'})
        for line in payload['pipe_lines']:
            line['total'] = line_total(line['size'], line['meters'], line['junctions'], table)
        payload.update(totals.to_dict())
        return totals, payload

    def _unused_public_id(self):
        for _ in range(PUBLIC_ID_ATTEMPTS):
            candidate = make_public_id()
            if self.find(candidate) is None:
                return candidate
            logger.warning("Public id collision, generating another")
        raise UpstreamError('id_generation_failed', 'Could not allocate a public id', status_code=500)

    def publish(self, body):
        """
        Validate, price and persist a quote.

        Args:
            body: raw request JSON, either the quote or ``{"payload": quote}``

        Returns:
            Quote: the stored record
        """
        quote_in = parse_quote_payload(body)
        totals, payload = self.build_snapshot(quote_in)

        quote = Quote(
            public_id=self._unused_public_id(),
            public_token=make_token(),
            job_number=quote_in.job_number,
            job_uuid=quote_in.job_uuid,
            customer_name=quote_in.customer_name,
            customer_email=quote_in.customer_email,
            customer_phone=quote_in.customer_phone,
            customer_address=quote_in.customer_address,
            job_address=quote_in.job_address,
            scope_of_works=quote_in.scope_of_works,
            technician_name=quote_in.technician_name,
            setup_cost=totals.setup_cost,
            pipe_work_total=totals.pipe_work_total,
            digging_total=totals.digging_total,
            extras_total=totals.extras_total,
            subtotal=totals.subtotal,
            gst=totals.gst,
            grand_total=totals.grand_total,
            total=totals.grand_total,
            totals=totals.to_dict(),
            payload=payload,
            status=DEFAULT_PUBLISH_STATUS,
            archived=False,
            created_at=utcnow(),
        )

        try:
            self.db.session.add(quote)
            self.db.session.commit()
        except SQLAlchemyError as e:
            self.db.session.rollback()
            logger.error(f"Error saving quote for job {quote_in.job_number}: {str(e)}")
            raise UpstreamError('save_failed', 'Failed to save quote', status_code=500, detail=type(e).__name__)

        logger.info(f"Published quote {quote.public_id} for job {quote.job_number} (grand total {quote.grand_total:.2f})")
        return quote

    # ------------------------------------------------------------------
    # Public access gate
    # ------------------------------------------------------------------

    def get_public(self, public_id, token):
        """
        Resolve a public link.

        A wrong or missing token raises exactly the same NotFound as an
        unknown public id.

        Raises:
            NotFound: unknown id, or token mismatch
            Gone: quote deleted ('deleted') or archived ('expired')
        """
        quote = self.find(public_id)
        if quote is None:
            raise NotFound()

        if quote.deleted_at is not None:
            raise Gone('deleted', 'This quote is no longer available')

        if quote.archived:
            raise Gone('expired', 'This quote has expired')

        if not token or not hmac.compare_digest(str(token).encode('utf-8'), quote.public_token.encode('utf-8')):
            raise NotFound()

        return quote

    # ------------------------------------------------------------------
    # Admin actions
    # ------------------------------------------------------------------

    def _validate_status(self, status):
        if status not in QUOTE_STATUSES:
            raise ValidationError('invalid_status', f"Invalid status '{status}'", allowed=list(QUOTE_STATUSES))
        return status

    def build_patch(self, quote, action, status=None):
        """
        Work out the field changes for an admin action.

        Deleted quotes are terminal: only 'delete' and 'set_status' may be
        applied to them, neither of which restores public visibility.
        """
        if action not in ACTIONS:
            raise ValidationError('invalid_action', f"Invalid action '{action}'", allowed=list(ACTIONS))

        now = utcnow()

        if quote.is_deleted and action not in ('delete', 'set_status'):
            raise Gone('deleted', 'Deleted quotes cannot be restored')

        if action == 'archive':
            return {
                'archived': True,
                'archived_at': now,
                'status_updated_at': now,
                'public_token': make_token(),
            }

        if action == 'unarchive':
            return {
                'archived': False,
                'archived_at': None,
                'status_updated_at': now,
                'public_token': make_token(),
            }

        if action == 'delete':
            return {
                'deleted_at': quote.deleted_at or now,
                'status_updated_at': now,
                'public_token': make_token(),
            }

        if action == 'set_status':
            if not status:
                raise ValidationError('invalid_status', 'A status is required', allowed=list(QUOTE_STATUSES))
            return {
                'status': self._validate_status(status),
                'status_updated_at': now,
            }

        # regenerate_link
        next_status = self._validate_status(status or DEFAULT_REACTIVATED_STATUS)
        return {
            'public_token': make_token(),
            'archived': False,
            'archived_at': None,
            'status': next_status,
            'status_updated_at': now,
        }

    def apply_action(self, public_id, action, status=None):
        """
        Apply a named admin action to a quote.

        Returns:
            Quote: the patched record
        """
        missing = [name for name, value in (('public_id', public_id), ('action', action)) if not value]
        if missing:
            raise ValidationError('missing_fields', 'Missing required fields',
                                  needs=['public_id', 'action'], missing=missing)

        if action not in ACTIONS:
            raise ValidationError('invalid_action', f"Invalid action '{action}'", allowed=list(ACTIONS))

        quote = self.get(public_id)
        patch = self.build_patch(quote, action, status)

        for field, value in patch.items():
            setattr(quote, field, value)

        try:
            self.db.session.commit()
        except SQLAlchemyError as e:
            self.db.session.rollback()
            logger.error(f"Error applying '{action}' to quote {public_id}: {str(e)}")
            raise UpstreamError('update_failed', 'Failed to update quote', status_code=500, detail=type(e).__name__)

        logger.info(f"Applied '{action}' to quote {public_id} (state {quote.state}, status {quote.status})")
        return quote

    # ------------------------------------------------------------------
    # Admin listing
    # ------------------------------------------------------------------

    def list_quotes(self, tab='active', status=None, search=None, sort='created_at',
                    direction='desc', page=1, page_size=DEFAULT_PAGE_SIZE):
        """
        Filtered, sorted, paginated listing for the admin dashboard.

        Returns:
            dict: {'items': [Quote], 'count': int, 'page': int, 'page_size': int}
        """
        tab = (tab or 'active').lower()
        if tab not in TABS:
            raise ValidationError('invalid_tab', f"Invalid tab '{tab}'", allowed=list(TABS))

        page = min(MAX_PAGE, max(1, _to_int(page, 1)))
        page_size = min(MAX_PAGE_SIZE, max(MIN_PAGE_SIZE, _to_int(page_size, DEFAULT_PAGE_SIZE)))

        query = Quote.query
        if tab == 'deleted':
            query = query.filter(Quote.deleted_at.isnot(None))
        else:
            query = query.filter(Quote.deleted_at.is_(None), Quote.archived == (tab == 'archived'))

        if status:
            query = query.filter(Quote.status == status)

        search = (search or '').strip()
        if search:
            pattern = f"%{_escape_like(search)}%"
            query = query.filter(or_(
                Quote.customer_name.ilike(pattern, escape='\\'),
                Quote.job_address.ilike(pattern, escape='\\'),
                Quote.job_number.ilike(pattern, escape='\\'),
            ))

        sort_field = sort if sort in SORT_FIELDS else 'created_at'
        column = getattr(Quote, sort_field)
        ordering = column.asc() if (direction or '').lower() == 'asc' else column.desc()

        try:
            count = query.count()
            items = (query
                     .order_by(ordering, Quote.id.asc())
                     .offset((page - 1) * page_size)
                     .limit(page_size)
                     .all())
        except SQLAlchemyError as e:
            logger.error(f"Error listing quotes: {str(e)}")
            raise UpstreamError('query_failed', 'Failed to list quotes', status_code=500, detail=type(e).__name__)

        return {'items': items, 'count': count, 'page': page, 'page_size': page_size}
