"""
Shared fixtures for the Atelier test suite.

Every test gets its own temporary DB_DIR and upload folder, so nothing is
written to the working directory.
"""

import io
import os
import shutil
import tempfile

import pytest
from flask import Flask
from PIL import Image
from werkzeug.datastructures import FileStorage

from atelier import Atelier

PASSWORD = 'Secret123'


def png_bytes(size=(10, 10), color=(200, 40, 40)):
    buf = io.BytesIO()
    Image.new('RGB', size, color).save(buf, format='PNG')
    return buf.getvalue()


def upload(name='a.png', data=None, content_type='image/png'):
    """A FileStorage like the ones request.files hands to the service."""
    return FileStorage(stream=io.BytesIO(data if data is not None else png_bytes()),
                       filename=name, content_type=content_type)


def project_fields(**overrides):
    """Valid typed fields for CatalogService.create"""
    fields = {
        'title': 'Brand Refresh',
        'description': 'A complete identity overhaul for a coffee roaster.',
        'short_description': 'New identity for a roaster',
        'category': 'Branding',
        'technologies': ['Illustrator', 'Figma'],
        'year': 2023,
    }
    fields.update(overrides)
    return fields


def project_form(**overrides):
    """Valid multipart form values for POST /api/projects"""
    form = {
        'title': 'Brand Refresh',
        'description': 'A complete identity overhaul for a coffee roaster.',
        'shortDescription': 'New identity for a roaster',
        'category': 'Branding',
        'technologies': 'Illustrator, Figma',
        'year': '2023',
    }
    form.update(overrides)
    return form


def make_app(db_dir, **config):
    app = Flask(__name__)
    app.config['TESTING'] = True
    app.config['SECRET_KEY'] = 'test-secret'
    app.config['DB_DIR'] = db_dir
    app.config['PROJECTS_DB'] = os.path.join(db_dir, 'projects.db')
    app.config['USER_DB'] = os.path.join(db_dir, 'users.db')
    app.config['LOGS_DB'] = os.path.join(db_dir, 'app_logs.db')
    app.config['STORAGE_TYPE'] = 'local'
    app.config['UPLOAD_FOLDER'] = os.path.join(db_dir, 'uploads')
    app.config['CORS_ORIGINS'] = ['https://studio.example']
    app.config.update(config)
    return app


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_db_dir():
    """Create a temporary directory for test databases, cleaned up after."""
    d = tempfile.mkdtemp(prefix='atelier-test-')
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def app(tmp_db_dir):
    """Fully initialised Flask app with local image storage."""
    app = make_app(tmp_db_dir)
    Atelier(app)
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def service(app_ctx):
    return app_ctx.extensions['atelier'].get_catalog_service(app_ctx)


@pytest.fixture
def users(app_ctx):
    """Two registered owners: (alice_id, bob_id)"""
    from atelier.modules.auth import UserDatabase
    alice = UserDatabase.create_user('alice', 'alice@example.com', PASSWORD)
    bob = UserDatabase.create_user('bob', 'bob@example.com', PASSWORD)
    return alice, bob


def register(client, username='alice', email='alice@example.com', password=PASSWORD):
    return client.post('/api/auth/register', json={
        'username': username, 'email': email, 'password': password,
    })


@pytest.fixture
def auth_client(app):
    """Test client signed in as alice"""
    client = app.test_client()
    response = register(client)
    assert response.status_code == 201
    return client
