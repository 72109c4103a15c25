from flask import request, session, jsonify

from atelier.core import LoggingService
from atelier.core.exceptions import AuthenticationError, ValidationError
from . import auth_bp
from .database import UserDatabase
from .utils import (
    EMAIL_PATTERN, USERNAME_PATTERN, get_current_user, login_required, validate_password_strength,
)


def _payload():
    """Accept JSON or form-encoded bodies"""
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form


@auth_bp.route('/register', methods=['POST'])
def register():
    data = _payload()
    username = (data.get('username') or '').strip()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''

    issues = []
    if not USERNAME_PATTERN.match(username):
        issues.append({'field': 'username', 'message': 'Username must be 3-30 letters, digits, _ . or -'})
    if not EMAIL_PATTERN.match(email):
        issues.append({'field': 'email', 'message': 'A valid email is required'})
    if not validate_password_strength(password):
        issues.append({
            'field': 'password',
            'message': 'Password must be at least 8 characters with upper, lower case and a digit',
        })
    if issues:
        raise ValidationError(issues)

    if UserDatabase.get_user_by_email(email):
        raise ValidationError.for_field('email', 'An account with this email already exists')

    # The first account administers the site
    role = 'admin' if UserDatabase.count_users() == 0 else 'editor'
    user_id = UserDatabase.create_user(username, email, password, role=role)
    if user_id is None:
        raise ValidationError.for_field('username', 'Username is already taken')

    session.clear()
    session['user_id'] = user_id
    LoggingService.log_user_action('auth', 'register', user_id, {'email': email})

    return jsonify({
        'message': 'Account created successfully',
        'user': UserDatabase.get_user_by_id(user_id),
    }), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    data = _payload()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''

    if not email or not password:
        raise ValidationError([
            {'field': name, 'message': f'{name.capitalize()} is required'}
            for name, value in (('email', email), ('password', password)) if not value
        ])

    user = UserDatabase.verify_user_credentials(email, password)
    if not user:
        LoggingService.log_security_event('Failed login', {'email': email})
        raise AuthenticationError('Invalid email or password')

    session.clear()
    session['user_id'] = user['id']
    LoggingService.log_user_action('auth', 'login', user['id'])

    return jsonify({'message': 'Login successful', 'user': user})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    user_id = session.pop('user_id', None)
    if user_id is not None:
        LoggingService.log_user_action('auth', 'logout', user_id)
    return jsonify({'message': 'Logged out'})


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify({'user': get_current_user()})
