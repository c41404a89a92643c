"""
Routes package for the Drainr quote API.
Each module owns one Flask blueprint; ``register_blueprints`` mounts them all.
"""

import logging

from .admin import admin_bp
from .health import health_bp
from .mux import mux_bp
from .quotes import quotes_bp
from .qwilr import qwilr_bp
from .servicem8 import servicem8_bp
from .viewer import viewer_bp

logger = logging.getLogger(__name__)

# (blueprint, url_prefix)
BLUEPRINTS = [
    (quotes_bp, '/api'),
    (admin_bp, '/api/admin'),
    (mux_bp, '/api/mux'),
    (servicem8_bp, '/api'),
    (qwilr_bp, '/api'),
    (health_bp, '/api'),
    (viewer_bp, None),  # public HTML pages live at the site root
]


def register_blueprints(app):
    """
    Register every blueprint on the app

    Returns:
        list: names of the registered blueprints
    """
    registered = []
    for blueprint, url_prefix in BLUEPRINTS:
        app.register_blueprint(blueprint, url_prefix=url_prefix)
        registered.append(blueprint.name)
        logger.debug(f"Registered {blueprint.name} blueprint at {url_prefix or '/'}")
    return registered


__all__ = [
    'admin_bp',
    'health_bp',
    'mux_bp',
    'quotes_bp',
    'qwilr_bp',
    'servicem8_bp',
    'viewer_bp',
    'register_blueprints',
]
