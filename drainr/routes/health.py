# drainr/routes/health.py
from flask import Blueprint, jsonify, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..models import db
from ..services.date_utils import utcnow, format_timestamp

health_bp = Blueprint('health', __name__)

CRITICAL_BLUEPRINTS = ['quotes', 'admin', 'viewer']


def _integration_checks(config):
    """Which third-party integrations have credentials configured"""
    integrations = {
        'servicem8': bool(config.get('SERVICEM8_API_KEY')),
        'mux': bool(config.get('MUX_TOKEN_ID') and config.get('MUX_TOKEN_SECRET')),
        'qwilr': bool(config.get('ZAPIER_WEBHOOK_URL')),
    }
    missing = [name for name, configured in integrations.items() if not configured]
    return {
        'status': 'healthy' if not missing else 'warning',
        'configured': integrations,
        'missing': missing,
    }


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Health check endpoint to verify service status
    Tests database connectivity, configuration and registered blueprints
    """
    health_status = {
        'status': 'healthy',
        'app': 'Drainr Quote API',
        'version': '1.0.0',
        'timestamp': format_timestamp(utcnow()),
        'checks': {}
    }

    overall_healthy = True
    status_code = 200

    # Database
    try:
        db.session.execute(text('SELECT 1'))
        db.session.commit()

        db_url = current_app.config.get('SQLALCHEMY_DATABASE_URI', '')
        if 'sqlite' in db_url.lower():
            db_type = 'SQLite'
        elif 'postgresql' in db_url.lower():
            db_type = 'PostgreSQL'
        else:
            db_type = 'Unknown'

        health_status['checks']['database'] = {
            'status': 'healthy',
            'type': db_type,
            'connected': True
        }
    except SQLAlchemyError as db_error:
        db.session.rollback()
        current_app.logger.error(f"Database health check failed: {db_error}")
        health_status['checks']['database'] = {
            'status': 'unhealthy',
            'connected': False,
            'error': type(db_error).__name__
        }
        overall_healthy = False

    # Configuration
    config_issues = []
    if not current_app.config.get('ADMIN_SECRET'):
        config_issues.append('Missing ADMIN_SECRET')
    if not current_app.config.get('INTAKE_SECRET'):
        config_issues.append('Missing INTAKE_SECRET')
    if not current_app.config.get('PUBLIC_QUOTE_BASE_URL'):
        config_issues.append('Missing PUBLIC_QUOTE_BASE_URL')

    health_status['checks']['configuration'] = {
        'status': 'healthy' if not config_issues else 'warning',
        'issues': config_issues,
        'cors_configured': bool(current_app.config.get('CORS_ORIGINS'))
    }
    if config_issues:
        current_app.logger.warning(f"Configuration issues detected: {config_issues}")

    health_status['checks']['integrations'] = _integration_checks(current_app.config)

    # Application state
    registered_blueprints = list(current_app.blueprints)
    missing_blueprints = [bp for bp in CRITICAL_BLUEPRINTS if bp not in registered_blueprints]
    health_status['checks']['application'] = {
        'status': 'healthy' if not missing_blueprints else 'unhealthy',
        'blueprints': {
            'registered': registered_blueprints,
            'missing_critical': missing_blueprints,
        },
        'routes': {
            'total': len(list(current_app.url_map.iter_rules())),
            'api_routes': len([rule for rule in current_app.url_map.iter_rules()
                               if rule.rule.startswith('/api/')])
        }
    }
    if missing_blueprints:
        overall_healthy = False

    if not overall_healthy:
        health_status['status'] = 'unhealthy'
        status_code = 503  # Service Unavailable
    elif any(check.get('status') == 'warning' for check in health_status['checks'].values()):
        health_status['status'] = 'degraded'

    health_status['summary'] = {
        'healthy_checks': sum(1 for check in health_status['checks'].values()
                              if check.get('status') == 'healthy'),
        'warning_checks': sum(1 for check in health_status['checks'].values()
                              if check.get('status') == 'warning'),
        'unhealthy_checks': sum(1 for check in health_status['checks'].values()
                                if check.get('status') == 'unhealthy'),
        'total_checks': len(health_status['checks'])
    }

    current_app.logger.info(f"Health check completed: {health_status['status']}")
    return jsonify(health_status), status_code


@health_bp.route('/health/simple', methods=['GET'])
def simple_health_check():
    """
    Simple health check for load balancers
    """
    try:
        db.session.execute(text('SELECT 1'))
        db.session.commit()
        return jsonify({
            'status': 'healthy',
            'message': 'Service is running'
        }), 200
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Simple health check failed: {e}")
        return jsonify({
            'status': 'unhealthy',
            'message': 'Database connection failed'
        }), 503
