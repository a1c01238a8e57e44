"""
Integration tests for the HTTP endpoints.

Runs the Flask app against a LookupService with in-memory stores and a
scripted fetcher; no database or network is touched.
"""

from datetime import timedelta

import pytest

from delaylookup.app import create_app
from delaylookup.errors import InvalidFormat, UpstreamInvalidCredentials, UpstreamRateLimited
from tests.conftest import NOW, TODAY, make_identity

INSTALL_ID = 'ext_testinstall00001'


@pytest.fixture
def client(service):
    app = create_app(lookup_service=service, init_database=False)
    app.config['TESTING'] = True
    return app.test_client()


class TestRegisterEndpoint:
    """Test POST /api/register."""

    def test_register(self, client, identities):
        response = client.post('/api/register')

        assert response.status_code == 200
        body = response.get_json()
        assert body['installId'].startswith('ext_')
        assert body['dailyLimit'] == 20
        assert identities.get(body['installId']) is not None

    def test_register_requires_post(self, client):
        response = client.get('/api/register')

        assert response.status_code == 405


class TestLookupEndpoint:
    """Test POST /api/lookup."""

    def test_missing_fields(self, client):
        response = client.post('/api/lookup', json={'installId': INSTALL_ID})

        assert response.status_code == 400
        body = response.get_json()
        assert body['code'] == 'missing_fields'
        assert body['required'] == ['installId', 'flightNumber']

    def test_non_json_body(self, client):
        response = client.post('/api/lookup', data='nonsense', content_type='text/plain')

        assert response.status_code == 400

    def test_numeric_flight_number(self, client, identities, fetcher):
        identities.add(make_identity())

        response = client.post('/api/lookup', json={'installId': INSTALL_ID, 'flightNumber': 1234})

        assert response.status_code == 400
        assert response.get_json()['code'] == 'invalid_format'
        assert fetcher.calls == []

    def test_invalid_identity(self, client):
        response = client.post('/api/lookup', json={'installId': 'ext_nobody', 'flightNumber': 'DL1234'})

        assert response.status_code == 401
        assert response.get_json()['code'] == 'invalid_identity'

    def test_quota_exceeded(self, client, identities):
        identities.add(make_identity(usage_today=20, usage_day=TODAY))

        response = client.post('/api/lookup', json={'installId': INSTALL_ID, 'flightNumber': 'DL1234'})

        assert response.status_code == 429
        body = response.get_json()
        assert body['code'] == 'quota_exceeded'
        assert body['limit'] == 20
        assert body['resetsAt'] == 'midnight UTC'

    def test_api_lookup(self, client, identities):
        identities.add(make_identity(usage_today=4, usage_day=TODAY))

        response = client.post('/api/lookup', json={
            'installId': INSTALL_ID,
            'flightNumber': 'DL 1234',
            'origin': 'ATL',
            'destination': 'LAX',
        })

        assert response.status_code == 200
        body = response.get_json()
        assert body['source'] == 'api'
        assert body['usage'] == {'today': 5, 'limit': 20}
        assert body['stats']['sample_size'] == 4
        assert body['stats']['avg_delay'] == 25

    def test_cache_lookup_has_no_usage(self, client, identities, result_cache):
        identities.add(make_identity())
        stats = {'error': 'No flight data available', 'insufficient_data': True}
        result_cache.put('DL1234', stats, NOW - timedelta(hours=2))

        response = client.post('/api/lookup', json={'installId': INSTALL_ID, 'flightNumber': 'DL1234'})

        assert response.get_json() == {'source': 'cache', 'stats': stats}

    def test_invalid_flight_number(self, client, identities, fetcher):
        identities.add(make_identity())
        fetcher.error = InvalidFormat('Invalid flight number format')

        response = client.post('/api/lookup', json={'installId': INSTALL_ID, 'flightNumber': '12345'})

        assert response.status_code == 400
        assert response.get_json()['code'] == 'invalid_format'

    @pytest.mark.parametrize('error,code', [
        (UpstreamRateLimited('Failed to fetch flight data', details='FlightAware rate limit exceeded'),
         'upstream_rate_limited'),
        (UpstreamInvalidCredentials('Failed to fetch flight data', details='Invalid FlightAware API key'),
         'upstream_invalid_credentials'),
    ])
    def test_upstream_failure(self, client, identities, fetcher, error, code):
        identities.add(make_identity())
        fetcher.error = error

        response = client.post('/api/lookup', json={'installId': INSTALL_ID, 'flightNumber': 'DL1234'})

        assert response.status_code == 502
        body = response.get_json()
        assert body['code'] == code
        assert body['error'] == 'Failed to fetch flight data'
        assert 'details' in body

    def test_server_misconfigured(self, client, identities, fetcher):
        identities.add(make_identity())
        fetcher.is_configured = False

        response = client.post('/api/lookup', json={'installId': INSTALL_ID, 'flightNumber': 'DL1234'})

        assert response.status_code == 500
        assert response.get_json()['code'] == 'server_misconfigured'


class TestStatusEndpoints:
    """Test health and metrics endpoints."""

    def test_health(self, client):
        response = client.get('/health')

        assert response.status_code == 200
        assert response.get_json() == {'status': 'ok'}

    def test_metrics_status(self, client, identities):
        identities.add(make_identity())
        client.post('/api/lookup', json={'installId': INSTALL_ID, 'flightNumber': 'DL1234'})
        client.post('/api/lookup', json={'installId': INSTALL_ID, 'flightNumber': 'DL1234'})

        body = client.get('/api/metrics/status').get_json()

        assert body['cache']['hits'] == 1
        assert body['cache']['misses'] == 1
        assert body['cache']['entries'] == 1
        assert body['upstream']['configured'] is True
        assert body['config'] == {'daily_limit': 20, 'cache_ttl_days': 3}

    def test_unknown_route(self, client):
        response = client.get('/api/nowhere')

        assert response.status_code == 404
        assert response.get_json() == {'error': 'Not found'}
