"""
Atelier Auth Module

Session-based authentication for the admin area:
- Register (username, email, password)
- Login / logout
- Current user lookup

Other modules consume the verified identity through `login_required`
and `get_current_user_id`.
"""

from flask import Blueprint

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')

from . import routes
from .database import UserDatabase
from .utils import login_required, get_current_user, get_current_user_id

__all__ = ['auth_bp', 'UserDatabase', 'login_required', 'get_current_user', 'get_current_user_id']
