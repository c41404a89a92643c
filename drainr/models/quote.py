# drainr/models/quote.py

from .base import db
from ..services.date_utils import utcnow, format_timestamp

QUOTE_STATUSES = (
    'draft',
    'sent',
    'pending',
    'awaiting_payment',
    'deposit_paid',
    'completed',
    'lost',
    'declined',
)

TOTAL_FIELDS = (
    'setup_cost',
    'pipe_work_total',
    'digging_total',
    'extras_total',
    'subtotal',
    'gst',
    'grand_total',
)


class Quote(db.Model):
    __tablename__ = 'quotes'

    id = db.Column(db.Integer, primary_key=True)
    public_id = db.Column(db.String(32), unique=True, index=True, nullable=False)
    public_token = db.Column(db.String(64), nullable=False)

    # Job & customer
    job_number = db.Column(db.String(50), index=True, nullable=False)
    job_uuid = db.Column(db.String(64), index=True, nullable=True)
    customer_name = db.Column(db.String(200), nullable=False)
    customer_email = db.Column(db.String(200))
    customer_phone = db.Column(db.String(50))
    customer_address = db.Column(db.String(300))
    job_address = db.Column(db.String(300))
    scope_of_works = db.Column(db.Text)
    technician_name = db.Column(db.String(100))

    # Snapshot totals, frozen at publish time
    setup_cost = db.Column(db.Float, default=0.0)
    pipe_work_total = db.Column(db.Float, default=0.0)
    digging_total = db.Column(db.Float, default=0.0)
    extras_total = db.Column(db.Float, default=0.0)
    subtotal = db.Column(db.Float, default=0.0)
    gst = db.Column(db.Float, default=0.0)
    grand_total = db.Column(db.Float, default=0.0)
    total = db.Column(db.Float, default=0.0)  # mirrors grand_total for list views
    totals = db.Column(db.JSON, nullable=False, default=dict)
    payload = db.Column(db.JSON, nullable=False, default=dict)

    # Lifecycle
    status = db.Column(db.String(20), default='sent', nullable=False, index=True)
    status_updated_at = db.Column(db.DateTime, nullable=True)
    archived = db.Column(db.Boolean, default=False, nullable=False)
    archived_at = db.Column(db.DateTime, nullable=True)
    deleted_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    # Relationships
    videos = db.relationship('QuoteVideo', backref='quote', lazy='dynamic', cascade="all, delete-orphan")

    @property
    def state(self):
        """Visibility state: 'deleted' is terminal, 'archived' is recoverable."""
        if self.deleted_at is not None:
            return 'deleted'
        if self.archived:
            return 'archived'
        return 'live'

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    def public_path(self):
        return f"/q/{self.public_id}?t={self.public_token}"

    def to_public_dict(self):
        """Shape returned to the customer-facing viewer."""
        return {
            'ok': True,
            'meta': {
                'public_id': self.public_id,
                'status': self.status,
                'created_at': format_timestamp(self.created_at),
                'customer_name': self.customer_name,
                'job_address': self.job_address,
            },
            'totals': self.totals,
            'payload': self.payload,
        }

    def to_action_dict(self):
        return {
            'public_id': self.public_id,
            'public_token': self.public_token,
            'status': self.status,
            'archived': self.archived,
            'archived_at': format_timestamp(self.archived_at),
            'deleted_at': format_timestamp(self.deleted_at),
        }

    def to_summary_dict(self):
        """Row shown in the admin list."""
        return {
            'public_id': self.public_id,
            'public_token': self.public_token,
            'job_number': self.job_number,
            'customer_name': self.customer_name,
            'job_address': self.job_address,
            'status': self.status,
            'archived': self.archived,
            'archived_at': format_timestamp(self.archived_at),
            'deleted_at': format_timestamp(self.deleted_at),
            'created_at': format_timestamp(self.created_at),
            'grand_total': self.grand_total,
        }

    def to_dict(self):
        """Full record for admin views."""
        data = self.to_summary_dict()
        data.update({
            'job_uuid': self.job_uuid,
            'customer_email': self.customer_email,
            'customer_phone': self.customer_phone,
            'customer_address': self.customer_address,
            'scope_of_works': self.scope_of_works,
            'technician_name': self.technician_name,
            'state': self.state,
            'status_updated_at': format_timestamp(self.status_updated_at),
            'totals': self.totals,
            'payload': self.payload,
            'videos': [video.to_dict() for video in self.videos],
        })
        for field in TOTAL_FIELDS:
            data[field] = getattr(self, field)
        return data

    def __repr__(self):
        return f'<Quote public_id={self.public_id} job={self.job_number} state={self.state}>'
