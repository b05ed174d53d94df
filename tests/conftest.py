import pytest

from app import create_app
from store import MemStore
from user import User

ADMIN_PASSWORD = 'adminpass'


def make_user(name, password_hash='hash', **kwargs):
    """Build a user without paying for a real password hash."""
    return User(name=name, password_hash=password_hash, **kwargs)


@pytest.fixture
def store():
    return MemStore()


@pytest.fixture
def app(store):
    return create_app(store, {
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'ADMIN_USERNAME': 'admin',
        'ADMIN_PASSWORD': ADMIN_PASSWORD,
    })


@pytest.fixture
def client(app):
    return app.test_client()


def register(client, username, password='secret'):
    return client.post('/register', data={'username': username, 'password': password})


def login(client, username, password='secret'):
    return client.post('/login', data={'username': username, 'password': password})
