# drainr/routes/servicem8.py
from flask import Blueprint, request, jsonify, current_app
import logging

from ..errors import ValidationError
from ..middleware.auth import intake_required

servicem8_bp = Blueprint('servicem8', __name__)
logger = logging.getLogger(__name__)


@servicem8_bp.route('/servicem8', methods=['GET'])
@intake_required
def lookup_job():
    """Fetch a ServiceM8 job with its company, contact and technician"""
    job_number = (request.args.get('jobNumber') or '').strip()
    if not job_number:
        raise ValidationError('missing_fields', 'jobNumber is required', needs=['jobNumber'])

    data = current_app.extensions['servicem8_client'].get_job_data(job_number)
    return jsonify(data)
