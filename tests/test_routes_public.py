"""Tests for quote generation and the public quote endpoints."""
import pytest

from conftest import bearer, sample_quote


class TestGenerateQuote:
    def test_requires_credential(self, client):
        resp = client.post('/api/generate-quote', json=sample_quote())
        assert resp.status_code == 401
        assert resp.get_json()['error'] == 'unauthorized'

    def test_rejects_wrong_secret(self, client):
        resp = client.post('/api/generate-quote', json=sample_quote(), headers=bearer('guess'))
        assert resp.status_code == 401

    def test_rejects_non_bearer_scheme(self, client):
        resp = client.post('/api/generate-quote', json=sample_quote(),
                           headers={'Authorization': 'Basic test-intake-secret'})
        assert resp.status_code == 401

    def test_intake_publishes(self, intake_client):
        resp = intake_client.post('/api/generate-quote', json=sample_quote())
        assert resp.status_code == 201

        data = resp.get_json()
        assert data['ok'] is True
        assert data['publicUrl'] == data['url']
        assert data['publicUrl'].startswith(f"https://quotes.example.com/q/{data['public_id']}?t=")

    def test_admin_may_publish(self, admin_client):
        resp = admin_client.post('/api/generate-quote', json=sample_quote())
        assert resp.status_code == 201

    def test_wrapped_payload(self, intake_client):
        resp = intake_client.post('/api/generate-quote', json={'payload': sample_quote()})
        assert resp.status_code == 201

    @pytest.mark.parametrize('body', [[1, 2, 3], 'quote'])
    def test_non_object_body(self, intake_client, body):
        resp = intake_client.post('/api/generate-quote', json=body)
        assert resp.status_code == 400
        assert resp.get_json()['error'] == 'invalid_body'

    def test_non_json_body(self, intake_client):
        resp = intake_client.post('/api/generate-quote', data='not json', content_type='text/plain')
        assert resp.status_code == 400
        assert resp.get_json()['error'] == 'invalid_body'

    def test_missing_fields(self, intake_client):
        resp = intake_client.post('/api/generate-quote', json=sample_quote(job_number=None))
        assert resp.status_code == 400

        data = resp.get_json()
        assert data['error'] == 'missing_fields'
        assert data['needs'] == ['job_number', 'customer_name']
        assert data['missing'] == ['job_number']


class TestPublicQuote:
    def test_valid_link(self, client, publish):
        published = publish()
        resp = client.get(f"/api/quotes/{published['public_id']}?t={published['public_token']}")
        assert resp.status_code == 200

        data = resp.get_json()
        assert data['ok'] is True
        assert data['meta']['public_id'] == published['public_id']
        assert data['meta']['status'] == 'sent'
        assert data['meta']['customer_name'] == 'Jane Citizen'
        assert data['meta']['created_at'].endswith('Z')
        assert data['totals']['grand_total'] == 8649.99
        assert data['payload']['pipe_lines'][0]['size'] == '100mm'
        assert 'public_token' not in data['meta']

    def test_wrong_token_matches_unknown_id(self, client, publish):
        published = publish()
        wrong = client.get(f"/api/quotes/{published['public_id']}?t=wrongtoken")
        missing = client.get(f"/api/quotes/{published['public_id']}")
        unknown = client.get(f"/api/quotes/nosuchid00?t={published['public_token']}")

        assert wrong.status_code == missing.status_code == unknown.status_code == 404
        assert wrong.get_json() == missing.get_json() == unknown.get_json()
        assert wrong.get_json()['error'] == 'not_found'

    def test_archived_link_expired(self, client, publish, act):
        published = publish()
        act(published['public_id'], 'archive')
        resp = client.get(f"/api/quotes/{published['public_id']}?t={published['public_token']}")
        assert resp.status_code == 410
        assert resp.get_json()['error'] == 'expired'

    def test_deleted_link(self, client, publish, act):
        published = publish()
        act(published['public_id'], 'delete')
        resp = client.get(f"/api/quotes/{published['public_id']}?t={published['public_token']}")
        assert resp.status_code == 410
        assert resp.get_json()['error'] == 'deleted'

    def test_deleted_never_visible_again(self, client, publish, act):
        published = publish()
        act(published['public_id'], 'delete')
        token = act(published['public_id'], 'set_status', 'pending')
        resp = client.get(f"/api/quotes/{published['public_id']}?t={token}")
        assert resp.status_code == 410


class TestQuotePdf:
    def test_pdf_rendered(self, client, publish):
        published = publish(extras=[{'note': 'Install inspection pit & cap', 'amount': 450}],
                            digging_enabled=True, digging_hours=2)
        resp = client.get(f"/api/quotes/{published['public_id']}/pdf?t={published['public_token']}")
        assert resp.status_code == 200
        assert resp.headers['Content-Type'] == 'application/pdf'
        assert resp.data.startswith(b'%PDF')
        assert published['public_id'] in resp.headers['Content-Disposition']

    def test_pdf_gated(self, client, publish):
        published = publish()
        resp = client.get(f"/api/quotes/{published['public_id']}/pdf?t=wrong")
        assert resp.status_code == 404


class TestErrorHandlers:
    def test_unknown_api_path(self, client):
        resp = client.get('/api/nothing-here')
        assert resp.status_code == 404
        assert resp.get_json()['error'] == 'not_found'

    def test_wrong_method(self, client):
        resp = client.get('/api/generate-quote')
        assert resp.status_code == 405
        assert resp.get_json()['error'] == 'method_not_allowed'
