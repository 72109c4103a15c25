import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def split_origins(value):
    """Comma separated string or list -> list of trimmed, non-empty origins"""
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(',')
    return [o.strip() for o in value if o and o.strip()]


def _env_int(name, default):
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


class Config:
    """
    Base configuration for the Atelier framework.
    Sites override any of these through Flask app.config or environment variables.
    """
    SECRET_KEY = os.getenv('FLASK_SECRET_KEY')

    # Get DB_DIR from environment, or use a default if not set
    DB_DIR = os.getenv('DB_DIR', os.path.join(os.getcwd(), 'databases'))

    # Database paths
    PROJECTS_DB = os.getenv('PROJECTS_DB', os.path.join(DB_DIR, 'projects.db'))
    USER_DB = os.getenv('USER_DB', os.path.join(DB_DIR, 'users.db'))
    LOGS_DB = os.getenv('LOGS_DB', os.path.join(DB_DIR, 'app_logs.db'))

    # Storage: 'local' writes under UPLOAD_FOLDER, 'cloud' uses DigitalOcean Spaces
    STORAGE_TYPE = os.getenv('STORAGE_TYPE', 'local')
    UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER', os.path.join(os.getcwd(), 'uploads', 'projects'))
    UPLOAD_URL_PREFIX = os.getenv('UPLOAD_URL_PREFIX', '/uploads/projects')
    MAX_FILE_SIZE = _env_int('MAX_FILE_SIZE', 5 * 1024 * 1024)  # 5MB
    MAX_UPLOAD_FILES = _env_int('MAX_UPLOAD_FILES', 10)

    # Spaces settings
    SPACES_FOLDER = os.getenv('SPACES_FOLDER', 'uploads')
    DO_SPACES_REGION = os.getenv('DO_SPACES_REGION')
    DO_SPACES_NAME = os.getenv('DO_SPACES_NAME')
    DO_SPACES_KEY = os.getenv('DO_SPACES_KEY')
    DO_SPACES_SECRET = os.getenv('DO_SPACES_SECRET')
    DO_SPACES_ENDPOINT = os.getenv('DO_SPACES_ENDPOINT')
    DO_SPACES_PUBLIC_URL = os.getenv('DO_SPACES_PUBLIC_URL')
    CLOUD_MAX_FILE_SIZE = _env_int('CLOUD_MAX_FILE_SIZE', None)
    CLOUD_MAX_DIMENSION = _env_int('CLOUD_MAX_DIMENSION', 1200)

    # CORS allow-list (comma separated) plus the frontend URL
    CORS_ORIGINS = split_origins(os.getenv('CORS_ORIGINS'))
    FRONTEND_URL = os.getenv('FRONTEND_URL')

    # Public project detail includes the owner's username/email
    EXPOSE_OWNER_ON_DETAIL = _env_bool('EXPOSE_OWNER_ON_DETAIL', True)

    # Pagination
    DEFAULT_PAGE_SIZE = _env_int('DEFAULT_PAGE_SIZE', 20)
    MAX_PAGE_SIZE = _env_int('MAX_PAGE_SIZE', 100)


def get_config_value(key, default=None):
    """Get configuration value: Flask app config first, then Config, then env var"""
    try:
        from flask import current_app
        if key in current_app.config:
            return current_app.config[key]
    except RuntimeError:
        pass
    val = getattr(Config, key, None)
    if val is not None:
        return val
    return os.getenv(key, default)
