"""Authentication utilities."""
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import current_app, g, jsonify, request

from agi_factory.models import db, User

TOKEN_LIFETIME = timedelta(days=7)

def _secret_key():
    return current_app.config['SECRET_KEY']

def generate_token(user):
    """Generate JWT token for user."""
    payload = {
        'user_id': user.id,
        'username': user.username,
        'exp': datetime.now(timezone.utc) + TOKEN_LIFETIME
    }
    return jwt.encode(payload, _secret_key(), algorithm='HS256')

def verify_token(token):
    """Verify JWT token and return user."""
    try:
        payload = jwt.decode(token, _secret_key(), algorithms=['HS256'])
    except jwt.InvalidTokenError:
        return None
    user_id = payload.get('user_id')
    if user_id:
        return db.session.get(User, user_id)
    return None

def get_current_user():
    """Get current user from request token."""
    auth_header = request.headers.get('Authorization')
    if auth_header:
        try:
            token = auth_header.split(' ')[1]  # Bearer <token>
            return verify_token(token)
        except IndexError:
            return None
    return None

def login_required(f):
    """Decorator to require authentication."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = get_current_user()
        if not user:
            return jsonify({'error': 'Authentication required'}), 401
        g.current_user = user
        return f(*args, **kwargs)
    return decorated_function

def login_optional(f):
    """Decorator that attaches the user when a valid token is sent (guests allowed)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.current_user = get_current_user()
        return f(*args, **kwargs)
    return decorated_function
