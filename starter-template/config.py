import os
from dotenv import load_dotenv

load_dotenv()

IS_PRODUCTION = (
    os.getenv('ENVIRONMENT') == 'production' or
    os.getenv('FLASK_ENV') == 'production' or
    os.getenv('PRODUCTION') == '1'
)

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DB_DIR = os.path.join(BASE_DIR, 'databases')


class Config:
    SECRET_KEY = os.getenv('FLASK_SECRET_KEY', 'dev-secret-key-change-in-production')
    SESSION_COOKIE_SECURE = IS_PRODUCTION

    # Database paths
    DB_DIR = DB_DIR
    PROJECTS_DB = os.path.join(DB_DIR, 'projects.db')
    USER_DB = os.path.join(DB_DIR, 'users.db')
    LOGS_DB = os.path.join(DB_DIR, 'app_logs.db')

    # Image storage ('local' or 'cloud')
    STORAGE_TYPE = os.getenv('STORAGE_TYPE', 'local')
    UPLOAD_FOLDER = os.path.join(BASE_DIR, 'uploads', 'projects')

    # DigitalOcean Spaces (uncomment if STORAGE_TYPE=cloud)
    # DO_SPACES_REGION = os.getenv('DO_SPACES_REGION', '')
    # DO_SPACES_NAME = os.getenv('DO_SPACES_NAME', '')
    # DO_SPACES_KEY = os.getenv('DO_SPACES_KEY', '')
    # DO_SPACES_SECRET = os.getenv('DO_SPACES_SECRET', '')

    # Frontend that calls the API
    FRONTEND_URL = os.getenv('FRONTEND_URL', 'http://localhost:3000')
