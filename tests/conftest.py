"""
Pytest configuration and shared fixtures
"""
import os
import sys
import pytest
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

os.environ.setdefault('FLASK_ENV', 'testing')


@pytest.fixture
def app_config():
    """Fixture providing test configuration"""
    from config import TestingConfig
    return TestingConfig


@pytest.fixture
def test_env_vars():
    """Fixture providing test environment variables"""
    original_env = os.environ.copy()

    os.environ['FLASK_ENV'] = 'testing'
    os.environ['SECRET_KEY'] = 'test-secret-key-minimum-32-chars-long-for-security'
    os.environ['JWT_SECRET'] = 'test-jwt-secret-minimum-32-chars-long-for-security'

    yield

    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run the test inside a temporary directory (uploads/, invoices/, logs/ land here)"""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def app(workdir, app_config):
    """Flask app against a fresh in-memory SQLite database"""
    from app_init import create_app

    flask_app = create_app(app_config)
    yield flask_app

    from database.connection import drop_db
    drop_db()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_user(app):
    from database.connection import get_db_session
    from services.users_repository import UsersRepository

    with get_db_session() as session:
        user = UsersRepository(session).create_user({
            'username': 'admin',
            'password': 'admin123',
            'name': 'Administrator',
            'role': 'admin'
        })
    return user


@pytest.fixture
def auth_headers(app, admin_user):
    """Bearer header for the seeded admin"""
    from auth import create_access_token

    with app.app_context():
        token = create_access_token(admin_user)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def make_client(app):
    """Factory creating clients through the repository"""
    from database.connection import get_db_session
    from services.clients_repository import ClientsRepository

    counter = {'n': 0}

    def _make(**overrides):
        counter['n'] += 1
        data = {
            'name': f'Client {counter["n"]}',
            'phone': f'+9198765{counter["n"]:05d}',
            'email': f'client{counter["n"]}@example.com',
        }
        data.update(overrides)
        with get_db_session() as session:
            return ClientsRepository(session).create_client(data)

    return _make


@pytest.fixture
def make_garment(app):
    """Factory creating garment types"""
    from database.connection import get_db_session
    from services.garments_repository import GarmentsRepository

    counter = {'n': 0}

    def _make(**overrides):
        counter['n'] += 1
        data = {'name': f'Garment {counter["n"]}', 'price': 800, 'cost': 300, 'category': 'Men'}
        data.update(overrides)
        with get_db_session() as session:
            return GarmentsRepository(session).create_garment(data)

    return _make


@pytest.fixture
def order_payload(make_client, make_garment):
    """Factory building a valid order create payload"""
    def _payload(client=None, garment=None, quantity=2, **overrides):
        client = client or make_client()
        garment = garment or make_garment()
        subtotal = garment['price'] * quantity
        payload = {
            'client_id': client['id'],
            'items': [{
                'garment_type_id': garment['id'],
                'quantity': quantity,
                'price': garment['price'],
                'subtotal': subtotal
            }],
            'total_amount': subtotal,
            'advance': 0,
        }
        payload.update(overrides)
        return payload

    return _payload


@pytest.fixture
def make_order(client, auth_headers, order_payload):
    """Factory creating orders through the API; returns the order JSON"""
    def _make(**kwargs):
        response = client.post('/api/orders', json=order_payload(**kwargs), headers=auth_headers)
        assert response.status_code == 201, response.get_json()
        return response.get_json()['order']

    return _make
