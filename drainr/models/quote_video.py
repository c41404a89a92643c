# drainr/models/quote_video.py

from .base import db
from ..services.date_utils import utcnow, format_timestamp


class QuoteVideo(db.Model):
    __tablename__ = 'quote_videos'

    id = db.Column(db.Integer, primary_key=True)
    quote_id = db.Column(db.Integer, db.ForeignKey('quotes.id'), nullable=False)
    upload_id = db.Column(db.String(128), unique=True, nullable=False)
    status = db.Column(db.String(20), default='waiting', nullable=False)  # Mux upload status, 'waiting' until the file arrives
    created_by = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'upload_id': self.upload_id,
            'status': self.status,
            'created_by': self.created_by,
            'created_at': format_timestamp(self.created_at),
        }
