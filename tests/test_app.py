"""
Critical Integration Tests for Atelier
======================================

Focused tests covering the integration points most likely to break.
Run with: pytest tests/test_app.py -v

NOTE: pytest is listed under extras_require["dev"] in setup.py.
Install with: pip install -e ".[dev]"
"""

import os
import shutil
import tempfile
from unittest.mock import patch

from flask import Flask

from atelier import Atelier
from conftest import make_app, png_bytes


# ---------------------------------------------------------------------------
# 1. Framework initialisation -- Atelier(app) does not raise
# ---------------------------------------------------------------------------

def test_framework_initialisation(tmp_db_dir):
    """Atelier(app) boots without errors and stores itself on the app."""
    app = make_app(tmp_db_dir)
    atelier = Atelier(app)

    assert 'atelier' in app.extensions
    assert app.extensions['atelier'] is atelier


def test_init_app_deferred(tmp_db_dir):
    """The extension also supports the init_app pattern."""
    app = make_app(tmp_db_dir)
    atelier = Atelier()
    atelier.init_app(app)
    assert app.extensions['atelier'] is atelier


# ---------------------------------------------------------------------------
# 2. Config resolution -- DB paths derive from DB_DIR when not set
# ---------------------------------------------------------------------------

def test_config_db_paths_default_from_db_dir(tmp_db_dir):
    app = Flask(__name__)
    app.config['TESTING'] = True
    app.config['SECRET_KEY'] = 'test-secret'
    app.config['DB_DIR'] = tmp_db_dir
    app.config['UPLOAD_FOLDER'] = os.path.join(tmp_db_dir, 'uploads')
    Atelier(app)

    assert app.config['PROJECTS_DB'] == os.path.join(tmp_db_dir, 'projects.db')
    assert app.config['USER_DB'] == os.path.join(tmp_db_dir, 'users.db')
    assert app.config['LOGS_DB'] == os.path.join(tmp_db_dir, 'app_logs.db')
    assert app.config['MAX_PAGE_SIZE'] == 100
    assert app.config['MAX_CONTENT_LENGTH'] > app.config['MAX_FILE_SIZE']


def test_site_config_wins(tmp_db_dir):
    app = make_app(tmp_db_dir, DEFAULT_PAGE_SIZE=5, EXPOSE_OWNER_ON_DETAIL=False)
    Atelier(app)
    assert app.config['DEFAULT_PAGE_SIZE'] == 5
    assert app.config['EXPOSE_OWNER_ON_DETAIL'] is False


# ---------------------------------------------------------------------------
# 3. Blueprint registration
# ---------------------------------------------------------------------------

EXPECTED_MODULES = ['auth', 'projects', 'ops']


def test_all_blueprints_registered(app):
    registered = app.extensions['atelier'].get_registered_modules()
    assert registered == EXPECTED_MODULES

    rules = {rule.rule for rule in app.url_map.iter_rules()}
    for path in ('/api/projects', '/api/projects/<slug>', '/api/projects/admin/all',
                 '/api/projects/admin/images', '/api/projects/admin/<project_id>',
                 '/api/auth/login', '/api/health', '/uploads/projects/<path:filename>'):
        assert path in rules, f"{path} not registered. Routes: {sorted(rules)}"


def test_cloud_storage_skips_upload_route(tmp_db_dir):
    app = make_app(tmp_db_dir, STORAGE_TYPE='cloud', DO_SPACES_REGION='nyc3', DO_SPACES_NAME='studio')
    Atelier(app)
    rules = {rule.rule for rule in app.url_map.iter_rules()}
    assert '/uploads/projects/<path:filename>' not in rules


# ---------------------------------------------------------------------------
# 4. Database directory creation
# ---------------------------------------------------------------------------

def test_database_dir_creation():
    """Atelier creates the configured DB_DIR on disk."""
    d = tempfile.mkdtemp(prefix='atelier-dbtest-')
    target = os.path.join(d, 'sub', 'databases')

    try:
        Atelier(make_app(target))
        assert os.path.isdir(target), f"DB_DIR was not created at {target}"
    finally:
        shutil.rmtree(d, ignore_errors=True)


# ---------------------------------------------------------------------------
# 5. Health endpoint -- GET /api/health returns status and checks
# ---------------------------------------------------------------------------

def test_health_endpoint(client):
    response = client.get('/api/health')
    assert response.status_code == 200
    data = response.get_json()
    assert data['status'] == 'ok'
    assert 'timestamp' in data
    assert data['checks']['projects_db'] is True
    assert data['checks']['users_db'] is True
    assert data['checks']['storage'] == 'local'
    assert 'disk' in data['checks']


def test_health_reports_critical_when_database_down(client):
    with patch('atelier.modules.ops.routes.Database.check', return_value=False):
        response = client.get('/api/health')
    assert response.status_code == 503
    assert response.get_json()['status'] == 'critical'


def test_ops_errors_requires_login(client):
    response = client.get('/api/ops/errors')
    assert response.status_code == 401
    assert response.get_json() == {'message': 'Authentication required'}


# ---------------------------------------------------------------------------
# 6. CORS -- allow-listed origins pass, others get 403
# ---------------------------------------------------------------------------

def test_cors_allowed_origin(client):
    response = client.get('/api/projects', headers={'Origin': 'https://studio.example'})
    assert response.status_code == 200
    assert response.headers.get('Access-Control-Allow-Origin') == 'https://studio.example'
    assert response.headers.get('Access-Control-Allow-Credentials') == 'true'


def test_cors_dev_origin_always_allowed(client):
    response = client.get('/api/projects', headers={'Origin': 'http://localhost:3000'})
    assert response.status_code == 200


def test_cors_rejects_unknown_origin(client):
    response = client.get('/api/projects', headers={'Origin': 'https://evil.example'})
    assert response.status_code == 403
    assert response.get_json() == {'message': 'Not allowed by CORS'}


def test_requests_without_origin_pass(client):
    assert client.get('/api/projects').status_code == 200


def test_cors_origins_from_comma_separated_string(tmp_db_dir):
    app = make_app(tmp_db_dir, CORS_ORIGINS='https://studio.example, https://press.example/')
    atelier = Atelier(app)
    assert {'https://studio.example', 'https://press.example'} <= atelier.allowed_origins
    assert 'h' not in atelier.allowed_origins

    client = app.test_client()
    for origin in ('https://studio.example', 'https://press.example'):
        response = client.get('/api/projects', headers={'Origin': origin})
        assert response.status_code == 200
        assert response.headers.get('Access-Control-Allow-Origin') == origin


# ---------------------------------------------------------------------------
# 7. Error handlers -- JSON bodies for unknown routes and crashes
# ---------------------------------------------------------------------------

def test_unknown_route_returns_json_404(client):
    response = client.get('/api/nope')
    assert response.status_code == 404
    assert response.get_json() == {'message': 'Route not found'}


def test_unexpected_error_returns_generic_500(app, client):
    service = app.extensions['atelier'].get_catalog_service(app)
    with patch.object(service, 'list_published', side_effect=RuntimeError('db exploded')):
        response = client.get('/api/projects')

    assert response.status_code == 500
    assert response.get_json() == {'message': 'Server error'}
    assert b'db exploded' not in response.data


def test_oversized_request_returns_413(tmp_db_dir):
    app = make_app(tmp_db_dir, MAX_CONTENT_LENGTH=1024)
    Atelier(app)
    response = app.test_client().post('/api/auth/login', data={'email': 'x' * 4096})
    assert response.status_code == 413
    assert response.get_json() == {'message': 'Request too large'}


# ---------------------------------------------------------------------------
# 8. Local uploads are served from UPLOAD_FOLDER
# ---------------------------------------------------------------------------

def test_serves_local_upload(app, client):
    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)
    data = png_bytes()
    with open(os.path.join(app.config['UPLOAD_FOLDER'], 'abc.png'), 'wb') as f:
        f.write(data)

    response = client.get('/uploads/projects/abc.png')
    assert response.status_code == 200
    assert response.data == data
    response.close()
