"""
Shared pytest fixtures.

Every test gets its own application instance backed by a fresh SQLite file and
upload folder inside pytest's `tmp_path`, so tests never share state.
"""
import pytest

from app import create_app
from app.config import TestingConfig
from app.models import store as store_model
from app.models import user as user_model


@pytest.fixture
def app(tmp_path):
    app = create_app(TestingConfig, {
        'DATA_DIR': str(tmp_path),
        'DATABASE': str(tmp_path / 'instance' / 'stores.db'),
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
    })
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def other_client(app):
    """A second browser, for acting as a different user."""
    return app.test_client()


def register(client, email='wes@example.com', name='Wes', password='hunter2'):
    """Registers (and thereby logs in) a user through the HTML form."""
    return client.post('/register', data={
        'name': name,
        'email': email,
        'password': password,
        'password-confirm': password,
    })


def login(client, email='wes@example.com', password='hunter2'):
    return client.post('/login', data={'email': email, 'password': password})


def store_form(**overrides):
    data = {
        'name': "Wes's Coffee",
        'description': 'Great espresso and pastries',
        'address': '1 King St W, Hamilton',
        'lng': '-79.8',
        'lat': '43.2',
        'tags': ['Wifi'],
    }
    data.update(overrides)
    return data


def add_store(client, **overrides):
    return client.post('/add', data=store_form(**overrides))


@pytest.fixture
def logged_in(client):
    """The default client, registered and signed in as wes@example.com."""
    response = register(client)
    assert response.status_code == 302
    return client


@pytest.fixture
def make_user(app):
    """Creates a user directly in the database and returns its row."""
    def _make_user(email, name='Someone', password='hunter2'):
        with app.app_context():
            user_id = user_model.create_user(email, name, password)
            return user_model.get_user(user_id)
    return _make_user


@pytest.fixture
def make_store(app):
    """Creates a store directly in the database and returns it."""
    def _make_store(author_id, **overrides):
        data = {
            'name': 'Store',
            'description': '',
            'address': 'Somewhere',
            'lng': -79.8,
            'lat': 43.2,
            'tags': [],
        }
        data.update(overrides)
        with app.app_context():
            return store_model.create_store(author_id, data)
    return _make_store
