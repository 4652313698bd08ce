"""
Bearer Token Authentication
Issues and verifies HS256 JWTs and guards the API blueprints.

Token errors (JWTError, ExpiredSignatureError) are raised to the centralized
error handlers in security.py.
"""
import re
import time
import logging
from functools import wraps
from flask import current_app, g, jsonify, request
from jose import jwt

logger = logging.getLogger(__name__)

EXPIRY_PATTERN = re.compile(r'^\s*(\d+)\s*([smhd]?)\s*$')
EXPIRY_UNITS = {'': 1, 's': 1, 'm': 60, 'h': 3600, 'd': 86400}
DEFAULT_EXPIRES_IN = 7 * 86400


def parse_expires_in(value) -> int:
    """
    Convert an expiry like '7d', '12h', '30m', '45s' or '3600' to seconds

    Unparseable values fall back to seven days.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    match = EXPIRY_PATTERN.match(str(value or ''))
    if not match:
        logger.warning(f"Invalid JWT_EXPIRES_IN '{value}', using 7d")
        return DEFAULT_EXPIRES_IN
    amount, unit = match.groups()
    return int(amount) * EXPIRY_UNITS[unit]


def _secret():
    secret = current_app.config.get('JWT_SECRET')
    if not secret:
        raise RuntimeError("JWT_SECRET is not configured")
    return secret


def create_access_token(user) -> str:
    """Sign a token carrying the user's id, username and role"""
    now = int(time.time())
    payload = {
        'user_id': user.id,
        'username': user.username,
        'role': user.role,
        'iat': now,
        'exp': now + parse_expires_in(current_app.config.get('JWT_EXPIRES_IN', '7d')),
    }
    return jwt.encode(payload, _secret(), algorithm=current_app.config.get('JWT_ALGORITHM', 'HS256'))


def decode_access_token(token: str) -> dict:
    """Verify signature and expiry; raises jose.JWTError / ExpiredSignatureError"""
    return jwt.decode(token, _secret(), algorithms=[current_app.config.get('JWT_ALGORITHM', 'HS256')])


def get_bearer_token():
    header = request.headers.get('Authorization', '')
    if not header.startswith('Bearer '):
        return None
    return header.split(' ', 1)[1].strip() or None


def authenticate_request():
    """
    before_request hook for protected blueprints.

    Stores the decoded claims in ``g.current_user`` and the id in ``g.user_id``.
    """
    if request.method == 'OPTIONS':
        return None

    token = get_bearer_token()
    if not token:
        return jsonify({'error': 'Authentication required', 'message': 'No token provided'}), 401

    claims = decode_access_token(token)
    g.current_user = claims
    g.user_id = claims.get('user_id')
    return None


def protect_blueprint(blueprint):
    """Require a valid bearer token for every route in ``blueprint``"""
    blueprint.before_request(authenticate_request)
    return blueprint


def current_user_id():
    return getattr(g, 'user_id', None)


def admin_required(f):
    """Decorator to require the admin role (use on protected blueprints)"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = getattr(g, 'current_user', None) or {}
        if user.get('role') != 'admin':
            return jsonify({'error': 'Access denied', 'message': 'Admin privileges required'}), 403
        return f(*args, **kwargs)
    return decorated_function
