# drainr/app.py
import os
import logging
from flask import Flask, request, jsonify
from flask_login import LoginManager
from flask_cors import CORS
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .config import config, get_config_name
from .errors import ApiError, Unauthorized
from .middleware.auth import load_user_from_request
from .models import db
from .routes import register_blueprints
from .services.mux import MuxClient
from .services.pricing import PricingTable
from .services.quote_service import QuoteService
from .services.qwilr import QwilrRelay
from .services.servicem8 import ServiceM8Client


def create_app(config_name=None, config_overrides=None, quote_service=None,
               servicem8_client=None, mux_client=None, qwilr_relay=None):
    """
    Application factory.

    Services are built here from the loaded configuration and kept on
    ``app.extensions``. Tests pass prebuilt clients (usually wrapping a mock
    HTTP session) through the keyword arguments instead.

    Args:
        config_name (str): 'development', 'production' or 'testing'; auto-detected when None
        config_overrides (dict): values applied on top of the config class
    """
    if config_name is None:
        config_name = get_config_name()

    app = Flask(__name__)

    try:
        config_instance = config[config_name]()  # resolves env-dependent settings
        app.config.from_object(config_instance)
    except Exception as config_error:
        app.logger.error(f"Configuration loading failed: {config_error}")
        raise
    if config_overrides:
        app.config.update(config_overrides)

    # Configure logging based on environment
    if config_name == 'production':
        app.logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        app.logger.addHandler(handler)
    elif app.debug:
        app.logger.setLevel(logging.DEBUG)

    app.logger.info(f"Configuration loaded for {config_name} environment")

    db_uri = app.config.get('SQLALCHEMY_DATABASE_URI', '')
    if db_uri.startswith('sqlite:///') and ':memory:' not in db_uri:
        try:
            os.makedirs(os.path.dirname(db_uri[len('sqlite:///'):]), exist_ok=True)
        except OSError as e:
            app.logger.warning(f"Could not create database directory: {e}")

    db.init_app(app)

    CORS(app,
         origins=app.config.get('CORS_ORIGINS', []),
         supports_credentials=app.config.get('CORS_SUPPORTS_CREDENTIALS', False),
         methods=['GET', 'POST', 'OPTIONS'],
         allow_headers=['Content-Type', 'Authorization', 'Accept', 'Origin'],
         max_age=86400)  # Cache preflight for 24 hours

    # Flask-Login, driven entirely by the Authorization header
    login_manager = LoginManager()
    login_manager.init_app(app)
    login_manager.request_loader(load_user_from_request)

    @login_manager.unauthorized_handler
    def handle_unauthorized():
        """JSON 401 instead of a login redirect"""
        return jsonify(Unauthorized().to_dict()), 401

    # Services
    timeout = app.config.get('HTTP_TIMEOUT', 15)
    app.extensions['quote_service'] = quote_service or QuoteService(
        db,
        PricingTable.from_config(app.config),
        app.config.get('PUBLIC_QUOTE_BASE_URL', ''),
    )
    app.extensions['servicem8_client'] = servicem8_client or ServiceM8Client(
        app.config.get('SERVICEM8_API_KEY', ''),
        app.config.get('SERVICEM8_API_BASE'),
        timeout=timeout,
    )
    app.extensions['mux_client'] = mux_client or MuxClient(
        app.config.get('MUX_TOKEN_ID', ''),
        app.config.get('MUX_TOKEN_SECRET', ''),
        app.config.get('MUX_API_BASE'),
        cors_origin=app.config.get('MUX_CORS_ORIGIN', '*'),
        timeout=timeout,
    )
    app.extensions['qwilr_relay'] = qwilr_relay or QwilrRelay(
        app.config.get('ZAPIER_WEBHOOK_URL', ''),
        timeout=timeout,
    )

    registered_blueprints = register_blueprints(app)
    app.logger.info(f"Registered blueprints: {', '.join(registered_blueprints)}")

    @app.route('/')
    def index():
        return jsonify({
            'message': 'Drainr Quote API',
            'status': 'running',
            'version': '1.0.0',
            'environment': config_name,
            'endpoints': {
                'health': '/api/health',
                'generate_quote': '/api/generate-quote',
                'quotes': '/api/quotes/<public_id>',
                'admin': '/api/admin/quotes',
                'viewer': '/q/<public_id>',
            },
        })

    @app.errorhandler(ApiError)
    def handle_api_error(error):
        if error.status_code >= 500:
            app.logger.error(f"{request.method} {request.path} failed: {error}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found(error):
        if request.path.startswith('/api/'):
            return jsonify({
                'error': 'not_found',
                'message': f'The requested endpoint {request.path} does not exist',
            }), 404
        return jsonify({'error': 'not_found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({
            'error': 'method_not_allowed',
            'message': f'The method {request.method} is not allowed for endpoint {request.path}',
            'allowed_methods': list(error.valid_methods) if getattr(error, 'valid_methods', None) else None
        }), 405

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.error(f"Internal server error: {error}")
        return jsonify({
            'error': 'server_error',
            'message': 'An unexpected error occurred. Please try again later.',
        }), 500

    with app.app_context():
        try:
            db.session.execute(text('SELECT 1'))
            db.create_all()
            app.logger.info("Database tables created/verified")
        except SQLAlchemyError as db_error:
            app.logger.error(f"Database initialization error: {db_error}")
            # In production, log error but don't crash the app
            if config_name != 'production':
                raise

    return app
