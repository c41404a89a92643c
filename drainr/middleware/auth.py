# drainr/middleware/auth.py
"""
Bearer-secret authentication.

There are no user accounts. Callers present one of two shared secrets in an
``Authorization: Bearer <secret>`` header and Flask-Login's request loader
turns a match into a role-carrying user for the duration of the request:

    ADMIN_SECRET   -> role 'admin'   (dashboard, quote actions)
    INTAKE_SECRET  -> role 'intake'  (operator quote tool)

A secret that is not configured never matches anything.
"""

import hmac
import logging
from functools import wraps

from flask import current_app, request
from flask_login import UserMixin, current_user

logger = logging.getLogger(__name__)

ROLE_ADMIN = 'admin'
ROLE_INTAKE = 'intake'


class ServiceUser(UserMixin):
    """The authenticated caller. ``id`` is the role since there is one identity per secret."""

    def __init__(self, role):
        self.id = role
        self.role = role

    def __repr__(self):
        return f'<ServiceUser {self.role}>'


def parse_bearer(header):
    if not header:
        return None
    scheme, _, credential = header.partition(' ')
    if scheme.lower() != 'bearer':
        return None
    return credential.strip() or None


def _matches(presented, configured):
    if not presented or not configured:
        return False
    return hmac.compare_digest(presented.encode('utf-8'), configured.encode('utf-8'))


def load_user_from_request(req):
    """Flask-Login request loader: resolve the bearer secret to a ServiceUser or None."""
    secret = parse_bearer(req.headers.get('Authorization'))
    if not secret:
        return None

    if _matches(secret, current_app.config.get('ADMIN_SECRET')):
        return ServiceUser(ROLE_ADMIN)
    if _matches(secret, current_app.config.get('INTAKE_SECRET')):
        return ServiceUser(ROLE_INTAKE)

    logger.warning(f"Rejected bearer credential for {req.path} from {req.remote_addr}")
    return None


def admin_required(f):
    """Only the admin secret may call the decorated route."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated or current_user.role != ROLE_ADMIN:
            logger.warning(f"Unauthorized access attempt to admin route: {request.endpoint}")
            return current_app.login_manager.unauthorized()
        return f(*args, **kwargs)
    return decorated_function


def intake_required(f):
    """
    Either secret may call the decorated route.

    The admin secret is accepted so the dashboard can use the operator tools.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated or current_user.role not in (ROLE_ADMIN, ROLE_INTAKE):
            logger.warning(f"Unauthorized access attempt to intake route: {request.endpoint}")
            return current_app.login_manager.unauthorized()
        return f(*args, **kwargs)
    return decorated_function
