"""
Atelier - Portfolio Catalog for Flask
=====================================

Backend for a design studio site:
- Public catalog of published projects
- Session-authenticated admin CRUD with image uploads
- Local disk or DigitalOcean Spaces image storage
- Health endpoint and database-backed logging

Usage:
    from flask import Flask
    from atelier import Atelier

    app = Flask(__name__)
    Atelier(app)
"""

import os

from flask import jsonify, request, send_from_directory
from flask_cors import CORS
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from .core import Config, LoggingService
from .core.config import split_origins
from .core.exceptions import AtelierError, OriginNotAllowed, PayloadTooLarge
from .core.storage import create_image_store

__version__ = '0.1.0'

DEFAULT_DEV_ORIGIN = 'http://localhost:3000'

CONFIG_KEYS = [
    'STORAGE_TYPE', 'UPLOAD_FOLDER', 'UPLOAD_URL_PREFIX', 'MAX_FILE_SIZE', 'MAX_UPLOAD_FILES',
    'SPACES_FOLDER', 'DO_SPACES_REGION', 'DO_SPACES_NAME', 'DO_SPACES_KEY', 'DO_SPACES_SECRET',
    'DO_SPACES_ENDPOINT', 'DO_SPACES_PUBLIC_URL', 'CLOUD_MAX_FILE_SIZE', 'CLOUD_MAX_DIMENSION',
    'CORS_ORIGINS', 'FRONTEND_URL', 'EXPOSE_OWNER_ON_DETAIL', 'DEFAULT_PAGE_SIZE', 'MAX_PAGE_SIZE',
]


class Atelier:
    """Flask extension that wires the catalog, auth and ops modules into an app.

    Site config in app.config wins; anything unset falls back to
    atelier.core.Config (which reads the environment).
    """

    def __init__(self, app=None, image_store=None):
        self._registered_modules = []
        self._image_store = image_store
        self._catalog_service = None
        self.allowed_origins = frozenset()
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self._apply_config(app)
        self._setup_database_dir(app)
        self._setup_cors(app)
        self._register_error_handlers(app)
        self._register_modules(app)
        if app.config['STORAGE_TYPE'].lower() == 'local':
            self._register_upload_route(app)

        app.extensions['atelier'] = self
        with app.app_context():
            LoggingService.info('atelier', 'Atelier initialised', {
                'modules': self._registered_modules,
                'storage': app.config['STORAGE_TYPE'],
            })

    # ===== Setup =====

    def _apply_config(self, app):
        if not app.config.get('SECRET_KEY') and Config.SECRET_KEY:
            app.config['SECRET_KEY'] = Config.SECRET_KEY

        db_dir = app.config.setdefault('DB_DIR', Config.DB_DIR)
        app.config.setdefault('PROJECTS_DB', os.path.join(db_dir, 'projects.db'))
        app.config.setdefault('USER_DB', os.path.join(db_dir, 'users.db'))
        app.config.setdefault('LOGS_DB', os.path.join(db_dir, 'app_logs.db'))

        for key in CONFIG_KEYS:
            app.config.setdefault(key, getattr(Config, key))
        app.config['STORAGE_TYPE'] = (app.config['STORAGE_TYPE'] or 'local')

        app.config.setdefault('SESSION_COOKIE_HTTPONLY', True)
        app.config.setdefault('SESSION_COOKIE_SAMESITE', 'Lax')
        # Room for a full multipart batch plus form fields
        app.config.setdefault(
            'MAX_CONTENT_LENGTH',
            app.config['MAX_FILE_SIZE'] * app.config['MAX_UPLOAD_FILES'] + 1024 * 1024,
        )

    def _setup_database_dir(self, app):
        db_dir = app.config['DB_DIR']
        if not os.path.exists(db_dir):
            os.makedirs(db_dir, exist_ok=True)
            print(f"Created database directory: {db_dir}")

    def _setup_cors(self, app):
        origins = split_origins(app.config.get('CORS_ORIGINS'))
        if app.config.get('FRONTEND_URL'):
            origins.append(app.config['FRONTEND_URL'])
        origins.append(DEFAULT_DEV_ORIGIN)
        self.allowed_origins = frozenset(o.rstrip('/') for o in origins)

        CORS(app, resources={r"/api/*": {"origins": sorted(self.allowed_origins)}},
             supports_credentials=True)

        @app.before_request
        def _check_origin():
            origin = request.headers.get('Origin')
            if not origin or not request.path.startswith('/api'):
                return None
            origin = origin.rstrip('/')
            if origin in self.allowed_origins or origin == request.host_url.rstrip('/'):
                return None
            LoggingService.log_security_event('Rejected cross-origin request', {
                'origin': origin, 'path': request.path,
            })
            raise OriginNotAllowed()

    def _register_error_handlers(self, app):

        @app.errorhandler(AtelierError)
        def handle_atelier_error(error):
            return jsonify(error.to_dict()), error.status_code

        @app.errorhandler(RequestEntityTooLarge)
        def handle_too_large(error):
            return jsonify(PayloadTooLarge('Request too large').to_dict()), 413

        @app.errorhandler(HTTPException)
        def handle_http_error(error):
            if error.code == 404:
                return jsonify({'message': 'Route not found'}), 404
            return jsonify({'message': error.description}), error.code

        @app.errorhandler(Exception)
        def handle_unexpected(error):
            LoggingService.log_error_with_traceback('server', error, {
                'path': request.path, 'method': request.method,
            })
            return jsonify({'message': 'Server error'}), 500

    def _register_modules(self, app):
        from .modules.auth import auth_bp
        from .modules.projects import projects_bp
        from .modules.ops import ops_health_bp, ops_admin_bp

        app.register_blueprint(auth_bp)
        self._registered_modules.append('auth')

        app.register_blueprint(projects_bp)
        self._registered_modules.append('projects')

        app.register_blueprint(ops_health_bp)
        app.register_blueprint(ops_admin_bp)
        self._registered_modules.append('ops')

    def _register_upload_route(self, app):
        prefix = app.config['UPLOAD_URL_PREFIX'].rstrip('/')

        @app.route(f'{prefix}/<path:filename>', endpoint='atelier_uploads')
        def serve_upload(filename):
            return send_from_directory(app.config['UPLOAD_FOLDER'], filename)

    # ===== Accessors =====

    def get_registered_modules(self):
        return list(self._registered_modules)

    def get_image_store(self, app):
        if self._image_store is None:
            with app.app_context():
                self._image_store = create_image_store()
        return self._image_store

    def get_catalog_service(self, app):
        if self._catalog_service is None:
            from .modules.projects import CatalogService, ProjectDatabase
            self._catalog_service = CatalogService(
                ProjectDatabase(app.config['PROJECTS_DB']),
                self.get_image_store(app),
                max_files=app.config['MAX_UPLOAD_FILES'],
                default_page_size=app.config['DEFAULT_PAGE_SIZE'],
                max_page_size=app.config['MAX_PAGE_SIZE'],
            )
        return self._catalog_service


__all__ = ['Atelier', '__version__']
