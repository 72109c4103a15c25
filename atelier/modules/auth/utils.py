import re
from functools import wraps
from flask import session, g

from atelier.core.exceptions import AuthenticationError
from .database import UserDatabase

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
USERNAME_PATTERN = re.compile(r'^[A-Za-z0-9_.-]{3,30}$')


def validate_password_strength(password):
    """Validate password meets security requirements"""
    if len(password) < 8:
        return False

    has_upper = any(c.isupper() for c in password)
    has_lower = any(c.islower() for c in password)
    has_digit = any(c.isdigit() for c in password)

    return has_upper and has_lower and has_digit


def get_current_user():
    """The signed-in user for this request, or None."""
    user_id = session.get('user_id')
    if user_id is None:
        return None

    # Cached per user id, an app context can outlive a single request
    cached = g.get('current_user')
    if cached is not None and cached['id'] == user_id:
        return cached

    g.current_user = UserDatabase.get_user_by_id(user_id)
    if g.current_user is None:
        # Account was removed or deactivated since login
        session.pop('user_id', None)
    return g.current_user


def get_current_user_id():
    """Verified caller identity. Raises AuthenticationError when signed out."""
    user = get_current_user()
    if user is None:
        raise AuthenticationError()
    return user['id']


def login_required(f):
    """Decorator to require an authenticated session"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        get_current_user_id()
        return f(*args, **kwargs)
    return decorated_function
