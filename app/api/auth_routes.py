"""
Authentication Routes Blueprint

Handles registration, login and token refresh:
- /api/auth/register, /api/auth/login: public
- /api/auth/me, /api/auth/refresh: bearer token required
"""

from flask import Blueprint, jsonify, g
from functools import wraps
import logging

from database.connection import get_db_session
from services.users_repository import UsersRepository
from validators import validate_register, validate_login
from app.utils.helpers import get_json_body

logger = logging.getLogger(__name__)

# Create blueprint
auth_bp = Blueprint('auth_bp', __name__)


def get_auth():
    """Get auth module - imported lazily to avoid circular imports"""
    import auth
    return auth


def login_required_wrapper(f):
    """Require a bearer token on a single route of this public blueprint"""
    @wraps(f)
    def decorated(*args, **kwargs):
        denied = get_auth().authenticate_request()
        if denied is not None:
            return denied
        return f(*args, **kwargs)
    return decorated


# ============================================================================
# REGISTER / LOGIN
# ============================================================================

@auth_bp.route('/register', methods=['POST'])
def register():
    """Create a user account and return a token"""
    data = validate_register(get_json_body())

    with get_db_session() as session:
        user = UsersRepository(session).create_user(data)
        token = get_auth().create_access_token(user)
        logger.info(f"Registered user {user.username}")
        return jsonify({
            'message': 'User registered successfully',
            'token': token,
            'user': user.to_dict()
        }), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    """Exchange username/password for a token"""
    data = validate_login(get_json_body())

    with get_db_session() as session:
        repo = UsersRepository(session)
        user = repo.authenticate(data['username'], data['password'])
        if not user:
            logger.warning(f"Failed login for '{data['username']}'")
            return jsonify({'error': 'Invalid credentials'}), 401

        repo.update_last_login(user)
        return jsonify({
            'message': 'Login successful',
            'token': get_auth().create_access_token(user),
            'user': user.to_dict()
        })


# ============================================================================
# CURRENT USER
# ============================================================================

@auth_bp.route('/me', methods=['GET'])
@login_required_wrapper
def me():
    """Get the authenticated user"""
    with get_db_session() as session:
        user = UsersRepository(session).get_user(g.user_id)
        if not user:
            return jsonify({'error': 'User not found'}), 404
        return jsonify({'user': user.to_dict()})


@auth_bp.route('/refresh', methods=['POST'])
@login_required_wrapper
def refresh():
    """Issue a fresh token for an active user"""
    with get_db_session() as session:
        user = UsersRepository(session).get_user(g.user_id)
        if not user or not user.is_active:
            return jsonify({'error': 'Invalid token', 'message': 'User not found or inactive'}), 401
        return jsonify({'token': get_auth().create_access_token(user)})
