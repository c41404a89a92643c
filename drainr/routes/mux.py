# drainr/routes/mux.py
from flask import Blueprint, request, jsonify, current_app
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError
import logging

from ..errors import ValidationError, NotFound, Gone, UpstreamError
from ..middleware.auth import intake_required
from ..models import db, QuoteVideo

mux_bp = Blueprint('mux', __name__)
logger = logging.getLogger(__name__)


@mux_bp.route('/create-upload', methods=['POST'])
@intake_required
def create_upload():
    """
    Create a Mux direct upload for a quote's CCTV footage.

    Body: {"public_id": str} or {"job_uuid": str}, optionally "created_by".
    The client PUTs the video straight to the returned upload_url.
    """
    body = request.get_json(silent=True) or {}
    if not isinstance(body, dict):
        raise ValidationError('invalid_body', 'Request body must be a JSON object')

    service = current_app.extensions['quote_service']
    public_id = body.get('public_id')
    job_uuid = body.get('job_uuid')

    if public_id:
        quote = service.get(public_id)
    elif job_uuid:
        quote = service.find_latest_for_job(job_uuid)
        if quote is None:
            raise NotFound('not_found', 'No quote found for this job')
    else:
        raise ValidationError('missing_fields', 'public_id or job_uuid is required',
                              needs=['public_id', 'job_uuid'])

    if quote.is_deleted:
        raise Gone('deleted', 'This quote is no longer available')

    created_by = body.get('created_by') or current_user.role
    upload = current_app.extensions['mux_client'].create_upload({
        'public_id': quote.public_id,
        'created_by': created_by,
    })

    try:
        video = QuoteVideo(
            quote_id=quote.id,
            upload_id=upload['upload_id'],
            created_by=created_by,
        )
        db.session.add(video)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error recording upload {upload['upload_id']} for quote {quote.public_id}: {str(e)}")
        raise UpstreamError('save_failed', 'Failed to record the upload', status_code=500, detail=type(e).__name__)

    logger.info(f"Created Mux upload {upload['upload_id']} for quote {quote.public_id}")
    return jsonify({
        'ok': True,
        'upload_id': upload['upload_id'],
        'upload_url': upload['upload_url'],
    })
