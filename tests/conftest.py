"""
Shared fixtures: a throwaway SQLite database, a Flask app with the stub
provider, and helpers for salon / admin accounts.
"""

import base64
import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix='stylepreview-tests-')

# Must be set before the app modules read their configuration
os.environ['DATABASE_URL'] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ['AUDIT_LOG_DIR'] = os.path.join(_TMP_DIR, 'audit')
os.environ['GEMINI_API_KEY'] = ''
os.environ['OPENAI_API_KEY'] = ''
os.environ['IMGBB_API_KEY'] = 'test-imgbb-key'

import pytest

from app import create_app
from generation.providers import StubProvider
from salon.auth import register_user
from salon.db import create_all_tables, drop_all_tables, get_scoped_session, get_db
from salon.models import Image


PHOTO_DATA_URL = 'data:image/png;base64,' + base64.b64encode(b'client-photo').decode('ascii')
STYLE_DATA_URL = 'data:image/png;base64,' + base64.b64encode(b'style-photo').decode('ascii')
PASSWORD = 'secret123'


@pytest.fixture(autouse=True)
def database():
    drop_all_tables()
    create_all_tables()
    yield
    get_scoped_session().remove()


@pytest.fixture
def make_app():
    """Factory: make_app(provider=None, refund_on_failure=None)."""
    def _make(provider=None, refund_on_failure=None):
        app = create_app(provider=provider or StubProvider(), refund_on_failure=refund_on_failure)
        app.config['TESTING'] = True
        return app
    return _make


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()


def signup_salon(client, email, slug, salon_type='hairsalon', services='both'):
    """Sign up and log in a salon user. Returns the user dict."""
    response = client.post('/auth/signup', json={
        'email': email,
        'password': PASSWORD,
        'name': slug.replace('-', ' ').title(),
        'role': 'salon',
        'salonSlug': slug,
        'salonType': salon_type,
        'salonServices': services,
    })
    assert response.status_code == 201, response.get_json()

    response = client.post('/auth/login', json={'email': email, 'password': PASSWORD})
    assert response.status_code == 200, response.get_json()
    return response.get_json()['user']


def login_admin(client, email='admin@example.com'):
    """Create an admin account directly and log it in."""
    user = register_user(email=email, password=PASSWORD, name='Admin', role='admin')
    user_id = user.id
    response = client.post('/auth/login', json={'email': email, 'password': PASSWORD})
    assert response.status_code == 200
    return user_id


def add_image(salon_id, url=PHOTO_DATA_URL):
    """Store a client photo row without going through the image host."""
    db = get_db()
    image = Image(salon_id=salon_id, url=url)
    db.add(image)
    db.commit()
    return image.id


@pytest.fixture
def salon_client(app):
    """Logged-in salon user with 50 signup credits: (client, user dict)."""
    client = app.test_client()
    user = signup_salon(client, 'owner@example.com', 'downtown-cuts')
    return client, user
