"""
Tests for centralized error handling, security headers and CORS
"""
import io
import uuid
import pytest

from security import SecurityConfig, sanitize_error_response


@pytest.mark.unit
class TestSecurityConfig:
    """Tests for secret key helpers"""

    def test_generate_secret_key(self):
        """Test generated keys are long and unique"""
        first, second = SecurityConfig.generate_secret_key(), SecurityConfig.generate_secret_key()
        assert len(first) >= 32
        assert first != second

    def test_validate_secret_key(self):
        """Test weak keys are rejected"""
        assert SecurityConfig.validate_secret_key('short') is False
        assert SecurityConfig.validate_secret_key(SecurityConfig.generate_secret_key()) is True

    def test_sanitize_error_response(self):
        """Test details appear only when requested"""
        error = RuntimeError('connection string leaked')
        assert 'details' not in sanitize_error_response(error)
        detailed = sanitize_error_response(error, include_details=True)
        assert detailed['details'] == 'connection string leaked'
        assert detailed['type'] == 'RuntimeError'


@pytest.mark.integration
class TestErrorHandlers:
    """Tests for JSON error responses"""

    def test_unknown_route(self, client):
        """Test unknown routes return JSON with path and method"""
        response = client.get('/api/unknown')
        assert response.status_code == 404
        assert response.get_json() == {'error': 'Route not found', 'path': '/api/unknown', 'method': 'GET'}

    def test_method_not_allowed(self, client):
        """Test wrong methods return a JSON 405"""
        response = client.delete('/api/health')
        assert response.status_code == 405
        assert response.get_json()['error'] == 'Method Not Allowed'

    def test_non_object_body(self, client, auth_headers):
        """Test a JSON array body is a validation error"""
        response = client.post('/api/clients', json=['not', 'an', 'object'], headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json()['details'][0]['field'] == 'body'

    def test_invalid_identifier(self, client, auth_headers):
        """Test malformed ids name the offending field"""
        response = client.get('/api/orders/abc', headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json() == {'error': 'Invalid ID format', 'field': 'id'}

    def test_not_found_error(self, client, auth_headers):
        """Test NotFoundError from the service layer is a 404"""
        response = client.post(f'/api/messages/payment-reminder/{uuid.uuid4()}', headers=auth_headers)
        assert response.status_code == 404
        assert response.get_json() == {'error': 'Client not found'}

    def test_file_too_large(self, client, auth_headers, make_order):
        """Test oversized images get the size limit in the response"""
        order = make_order()
        big = io.BytesIO(b'\0' * (5 * 1024 * 1024 + 1))
        response = client.post(f"/api/orders/{order['id']}/trial-notes", headers=auth_headers,
                               content_type='multipart/form-data',
                               data={'note': 'Big photo', 'images': [(big, 'big.png', 'image/png')]})
        assert response.status_code == 400
        assert response.get_json() == {'error': 'File too large', 'max_size': '5MB'}

    def test_unexpected_error_is_sanitized(self, app, client):
        """Test unhandled exceptions become a 500 with details only in debug"""
        def boom():
            raise RuntimeError('kaboom')
        app.add_url_rule('/api/boom', 'boom', boom)

        response = client.get('/api/boom')
        assert response.status_code == 500
        data = response.get_json()
        assert data['error'] == 'Internal Server Error'
        assert data['details'] == 'kaboom'
        assert data['type'] == 'RuntimeError'


@pytest.mark.integration
class TestResponseHeaders:
    """Tests for security headers and CORS"""

    def test_security_headers(self, client):
        """Test standard security headers are set"""
        response = client.get('/api/health')
        assert response.headers['X-Content-Type-Options'] == 'nosniff'
        assert response.headers['X-Frame-Options']

    def test_cors_preflight(self, client):
        """Test preflight requests succeed without a token"""
        response = client.options('/api/clients', headers={
            'Origin': 'http://localhost:3000',
            'Access-Control-Request-Method': 'POST',
            'Access-Control-Request-Headers': 'Authorization, Content-Type',
        })
        assert response.status_code == 200
        assert 'Access-Control-Allow-Origin' in response.headers
