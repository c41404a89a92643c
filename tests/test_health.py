"""Tests for health checks, the index route and bearer authentication."""
import pytest
from flask import Flask, request

from drainr.config import config, get_config_name
from drainr.middleware.auth import ServiceUser, _matches, load_user_from_request, parse_bearer


class TestHealth:
    def test_healthy(self, client):
        resp = client.get('/api/health')
        assert resp.status_code == 200

        data = resp.get_json()
        assert data['status'] == 'healthy'
        assert data['checks']['database'] == {'status': 'healthy', 'type': 'SQLite', 'connected': True}
        assert data['checks']['integrations']['missing'] == []
        assert data['checks']['application']['blueprints']['missing_critical'] == []
        assert data['timestamp'].endswith('Z')

    def test_degraded_without_integrations(self, make_app):
        app = make_app(ZAPIER_WEBHOOK_URL='', MUX_TOKEN_SECRET='')
        with app.test_client() as c:
            data = c.get('/api/health').get_json()
        assert data['status'] == 'degraded'
        assert data['checks']['integrations']['missing'] == ['mux', 'qwilr']

    def test_simple(self, client):
        resp = client.get('/api/health/simple')
        assert resp.status_code == 200
        assert resp.get_json()['status'] == 'healthy'

    def test_index(self, client):
        data = client.get('/').get_json()
        assert data['status'] == 'running'
        assert data['environment'] == 'testing'


class TestBearerAuth:
    @pytest.mark.parametrize('header,expected', [
        ('Bearer abc', 'abc'),
        ('bearer abc', 'abc'),
        ('Bearer   abc  ', 'abc'),
        ('Bearer ', None),
        ('Basic abc', None),
        ('abc', None),
        (None, None),
    ])
    def test_parse_bearer(self, header, expected):
        assert parse_bearer(header) == expected

    def test_empty_secrets_never_match(self):
        assert _matches('', '') is False
        assert _matches('anything', '') is False
        assert _matches('', 'configured') is False
        assert _matches('configured', 'configured') is True

    def test_request_loader_roles(self):
        app = Flask(__name__)
        app.config.update(ADMIN_SECRET='admin-s', INTAKE_SECRET='intake-s')

        with app.test_request_context(headers={'Authorization': 'Bearer admin-s'}):
            user = load_user_from_request(request)
            assert isinstance(user, ServiceUser)
            assert user.role == 'admin'

        with app.test_request_context(headers={'Authorization': 'Bearer intake-s'}):
            assert load_user_from_request(request).role == 'intake'

        with app.test_request_context(headers={'Authorization': 'Bearer nope'}):
            assert load_user_from_request(request) is None

    def test_unconfigured_intake_secret_fails_closed(self, make_app):
        app = make_app(INTAKE_SECRET='')
        with app.test_client() as c:
            resp = c.post('/api/generate-quote', json={}, headers={'Authorization': 'Bearer '})
        assert resp.status_code == 401


class TestConfig:
    def test_config_name_from_flask_env(self, monkeypatch):
        monkeypatch.setenv('FLASK_ENV', 'testing')
        assert get_config_name() == 'testing'

    def test_postgres_url_means_production(self, monkeypatch):
        monkeypatch.delenv('FLASK_ENV', raising=False)
        monkeypatch.delenv('TESTING', raising=False)
        monkeypatch.delenv('CI', raising=False)
        monkeypatch.setenv('DATABASE_URL', 'postgres://u:p@db/drainr')
        assert get_config_name() == 'production'

    def test_production_requires_secrets(self, monkeypatch):
        monkeypatch.delenv('SECRET_KEY', raising=False)
        with pytest.raises(ValueError) as exc:
            config['production']()
        assert 'SECRET_KEY' in str(exc.value)

        monkeypatch.setenv('SECRET_KEY', 'prod-secret')
        monkeypatch.setenv('DATABASE_URL', 'postgres://u:p@db/drainr')
        monkeypatch.delenv('ADMIN_SECRET', raising=False)
        with pytest.raises(ValueError) as exc:
            config['production']()
        assert 'ADMIN_SECRET' in str(exc.value)

    def test_production_normalises_database_url(self, monkeypatch):
        monkeypatch.setenv('SECRET_KEY', 'prod-secret')
        monkeypatch.setenv('ADMIN_SECRET', 'prod-admin')
        monkeypatch.setenv('DATABASE_URL', 'postgres://u:p@db/drainr')
        settings = config['production']()
        assert settings.SQLALCHEMY_DATABASE_URI == 'postgresql://u:p@db/drainr'
        assert settings.SQLALCHEMY_ENGINE_OPTIONS['pool_size'] == 10

    def test_pipe_pricing_from_env(self, monkeypatch):
        monkeypatch.setenv('PIPE_PRICING', '{"225mm": {"per_meter": 700, "per_junction": 900}}')
        assert config['development']().PIPE_PRICING == {'225mm': {'per_meter': 700, 'per_junction': 900}}

    def test_bad_pipe_pricing_falls_back(self, monkeypatch):
        monkeypatch.setenv('PIPE_PRICING', 'not json')
        assert '100mm' in config['development']().PIPE_PRICING
