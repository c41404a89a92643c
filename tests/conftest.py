"""
Shared pytest fixtures for the Drainr quote API.

Every test gets a fresh app on its own in-memory SQLite database. Outbound
HTTP goes through a single MagicMock standing in for ``requests.Session``;
tests program its ``get``/``post`` return values.
"""
import copy
from unittest.mock import MagicMock

import pytest
import requests

from drainr.app import create_app
from drainr.models import db
from drainr.services.mux import MuxClient
from drainr.services.qwilr import QwilrRelay
from drainr.services.servicem8 import ServiceM8Client

ADMIN_SECRET = 'test-admin-secret'
INTAKE_SECRET = 'test-intake-secret'

SAMPLE_QUOTE = {
    'job_number': 'J1001',
    'job_uuid': 'job-uuid-1001',
    'customer_name': 'Jane Citizen',
    'customer_email': 'jane@example.com',
    'customer_phone': '0412 345 678',
    'customer_address': '1 Example St, Sydney NSW 2000',
    'job_address': '12 Harbour Rd, Manly NSW 2095',
    'scope_of_works': 'Reline collapsed sewer line from boundary trap to house.',
    'technician_name': 'Sam Plumber',
    'pipe_lines': [
        {'id': 'line-1', 'size': '100mm', 'meters': 12, 'junctions': 1},
    ],
    'digging_enabled': False,
    'digging_hours': 0,
    'extras': [],
}


def sample_quote(**overrides):
    body = copy.deepcopy(SAMPLE_QUOTE)
    body.update(overrides)
    return body


def bearer(secret):
    return {'Authorization': f'Bearer {secret}'}


def fake_response(status_code=200, json_data=None):
    """Minimal stand-in for requests.Response"""
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = status_code < 400
    resp.reason = 'OK' if resp.ok else 'Error'
    if isinstance(json_data, Exception):
        resp.json.side_effect = json_data
    else:
        resp.json.return_value = json_data
    return resp


class AuthenticatedClient:
    """Wraps Flask test client to add a bearer credential to every request."""
    def __init__(self, client, headers):
        self._client = client
        self._headers = headers

    def get(self, *args, **kwargs):
        kwargs.setdefault("headers", {}).update(self._headers)
        return self._client.get(*args, **kwargs)

    def post(self, *args, **kwargs):
        kwargs.setdefault("headers", {}).update(self._headers)
        return self._client.post(*args, **kwargs)


@pytest.fixture
def http_session():
    """Mock requests.Session shared by every outbound client."""
    return MagicMock(spec=requests.Session)


@pytest.fixture
def make_app(http_session):
    """Build a testing app; keyword arguments become config overrides."""
    created = []

    def _make_app(**config_overrides):
        app = create_app(
            'testing',
            config_overrides=config_overrides or None,
            servicem8_client=ServiceM8Client(
                config_overrides.get('SERVICEM8_API_KEY', 'test-servicem8-key'),
                session=http_session,
            ),
            mux_client=MuxClient(
                config_overrides.get('MUX_TOKEN_ID', 'test-mux-id'),
                config_overrides.get('MUX_TOKEN_SECRET', 'test-mux-secret'),
                session=http_session,
            ),
            qwilr_relay=QwilrRelay(
                config_overrides.get('ZAPIER_WEBHOOK_URL', 'https://hooks.zapier.example.com/catch/1/abc'),
                session=http_session,
            ),
        )
        created.append(app)
        return app

    yield _make_app

    for app in created:
        with app.app_context():
            db.session.remove()
            db.drop_all()


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    """Unauthenticated test client."""
    with app.test_client() as c:
        yield c


@pytest.fixture
def admin_client(app):
    with app.test_client() as c:
        yield AuthenticatedClient(c, bearer(ADMIN_SECRET))


@pytest.fixture
def intake_client(app):
    with app.test_client() as c:
        yield AuthenticatedClient(c, bearer(INTAKE_SECRET))


@pytest.fixture
def quote_service(app):
    return app.extensions['quote_service']


@pytest.fixture
def publish(app, quote_service):
    """Publish a quote straight through the service; returns its id and token."""
    def _publish(**overrides):
        with app.app_context():
            quote = quote_service.publish(sample_quote(**overrides))
            return {'public_id': quote.public_id, 'public_token': quote.public_token}
    return _publish


@pytest.fixture
def act(app, quote_service):
    """Apply an admin action through the service; returns the new token."""
    def _act(public_id, action, status=None):
        with app.app_context():
            quote = quote_service.apply_action(public_id, action, status)
            return quote.public_token
    return _act
