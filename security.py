"""
Security Utilities & Middleware
Provides CORS, security headers, request logging and the centralized
exception-to-JSON translation for the API
"""
import os
import re
import secrets
from typing import Dict, Any, Optional
from flask import Flask, request, jsonify, Response
from flask_cors import CORS
from jose import JWTError, ExpiredSignatureError
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge
import logging

from validators import ValidationError, InvalidIdentifierError, FileTooLargeError, NotFoundError, format_size

logger = logging.getLogger(__name__)

QUIET_PATHS = ('/api/health', '/api/ping')

# "UNIQUE constraint failed: clients.phone" (sqlite) / "Key (phone)=(...)" (postgres)
SQLITE_UNIQUE_PATTERN = re.compile(r'UNIQUE constraint failed: ([\w.]+)')
POSTGRES_KEY_PATTERN = re.compile(r'Key \((\w+)\)')


class SecurityConfig:
    """Security configuration and validation"""

    @staticmethod
    def generate_secret_key() -> str:
        """
        Generate a cryptographically secure secret key

        Returns:
            Hex-encoded secret key
        """
        return secrets.token_hex(32)

    @staticmethod
    def validate_secret_key(secret_key: str) -> bool:
        """
        Validate that secret key is sufficiently secure

        Args:
            secret_key: Secret key to validate

        Returns:
            True if key is secure, False otherwise
        """
        if not secret_key:
            return False

        # Check minimum length (32 characters for 128-bit security)
        if len(secret_key) < 32:
            logger.warning("Secret key is too short (minimum 32 characters)")
            return False

        return True

    @staticmethod
    def ensure_secret_key(config: Dict[str, Any]) -> str:
        """
        Ensure a secure secret key is configured

        Args:
            config: Application configuration dictionary

        Returns:
            Secure secret key
        """
        secret_key = config.get('SECRET_KEY')

        if not secret_key or not SecurityConfig.validate_secret_key(secret_key):
            secret_key = SecurityConfig.generate_secret_key()
            logger.warning(f"Generated new secret key (length: {len(secret_key)})")

        return secret_key

    @staticmethod
    def ensure_jwt_secret(app: Flask):
        """
        Refuse to run in production without a JWT secret

        Raises:
            RuntimeError: production config with no JWT_SECRET
        """
        if app.config.get('JWT_SECRET'):
            if len(app.config['JWT_SECRET']) < 32:
                logger.warning("JWT_SECRET is shorter than 32 characters")
            return
        if app.debug or app.testing:
            app.config['JWT_SECRET'] = SecurityConfig.generate_secret_key()
            logger.warning("JWT_SECRET not set; generated an ephemeral one (tokens will not survive restarts)")
            return
        raise RuntimeError("JWT_SECRET must be set in production")


def setup_security_headers(app: Flask):
    """
    Add security headers to all responses

    Args:
        app: Flask application instance
    """
    @app.after_request
    def add_security_headers(response: Response) -> Response:
        """Add security headers to response"""
        response.headers['X-Frame-Options'] = 'SAMEORIGIN'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'

        # Strict Transport Security (HTTPS only in production)
        if not app.debug:
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'

        # Uploaded images and invoices are fetched cross-origin by the web client
        if request.path.startswith(('/uploads/', '/invoices/')):
            response.headers['Cross-Origin-Resource-Policy'] = 'cross-origin'

        return response

    logger.info("Security headers configured")


def setup_cors(app: Flask, config: Dict[str, Any]):
    """
    Configure CORS for the API and static file routes

    Args:
        app: Flask application instance
        config: Application configuration dictionary
    """
    cors_origins = config.get('CORS_ORIGINS', ['*'])
    cors_methods = config.get('CORS_METHODS', ['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS'])
    cors_headers = config.get('CORS_ALLOW_HEADERS', ['Content-Type', 'Authorization'])

    if not app.debug and '*' in cors_origins:
        logger.warning("Using wildcard CORS in production! Set CORS_ORIGINS environment variable.")

    CORS(
        app,
        origins=cors_origins,
        methods=cors_methods,
        allow_headers=cors_headers,
        supports_credentials='*' not in cors_origins,
        max_age=3600
    )

    logger.info(f"CORS configured: origins={cors_origins}")


def sanitize_error_response(error: Exception, include_details: bool = False) -> Dict[str, Any]:
    """
    Sanitize error response to prevent information leakage

    Args:
        error: Exception object
        include_details: Whether to include detailed error info (dev only)

    Returns:
        Sanitized error response dictionary
    """
    error_response = {
        'error': 'Internal Server Error',
        'message': 'An error occurred while processing your request'
    }

    # Only include details in development
    if include_details:
        error_response['details'] = str(error)
        error_response['type'] = type(error).__name__

    return error_response


def extract_duplicate_field(error: IntegrityError) -> Optional[str]:
    """
    Name the column behind a unique violation, or None for other integrity errors

    Args:
        error: IntegrityError raised on flush/commit

    Returns:
        Column name (e.g. 'phone') or None
    """
    message = str(error.orig)

    match = SQLITE_UNIQUE_PATTERN.search(message)
    if match:
        return match.group(1).split('.')[-1]

    if 'duplicate key' in message.lower() or 'unique' in message.lower():
        match = POSTGRES_KEY_PATTERN.search(message)
        return match.group(1) if match else 'field'

    return None


def _log_handled(error: Exception, status: int):
    log = logger.warning if status < 500 else logger.error
    log(f"{request.method} {request.path} -> {status} {type(error).__name__}: {error}")


def setup_error_handlers(app: Flask):
    """
    Register JSON error handlers for domain, database, token and HTTP errors

    Args:
        app: Flask application instance
    """
    include_details = app.debug

    @app.errorhandler(ValidationError)
    def handle_validation_error(error):
        _log_handled(error, 400)
        return jsonify({'error': 'Validation error', 'details': error.details}), 400

    @app.errorhandler(InvalidIdentifierError)
    def handle_invalid_identifier(error):
        _log_handled(error, 400)
        return jsonify({'error': 'Invalid ID format', 'field': error.field}), 400

    @app.errorhandler(NotFoundError)
    def handle_not_found_error(error):
        _log_handled(error, 404)
        return jsonify({'error': f"{error.resource} not found"}), 404

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error):
        field = extract_duplicate_field(error)
        if field is None:
            return handle_unexpected_error(error)
        _log_handled(error, 409)
        return jsonify({
            'error': 'Duplicate value',
            'message': f"{field} already exists",
            'field': field
        }), 409

    @app.errorhandler(ExpiredSignatureError)
    def handle_expired_token(error):
        _log_handled(error, 401)
        return jsonify({'error': 'Token expired', 'message': 'Please login again'}), 401

    @app.errorhandler(JWTError)
    def handle_invalid_token(error):
        _log_handled(error, 401)
        return jsonify({'error': 'Invalid token', 'message': 'Authentication failed'}), 401

    @app.errorhandler(FileTooLargeError)
    @app.errorhandler(RequestEntityTooLarge)
    def handle_file_too_large(error):
        _log_handled(error, 400)
        return jsonify({
            'error': 'File too large',
            'max_size': format_size(app.config.get('MAX_UPLOAD_SIZE', 5 * 1024 * 1024))
        }), 400

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 Not Found"""
        return jsonify({
            'error': 'Route not found',
            'path': request.path,
            'method': request.method
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        """Handle 405 Method Not Allowed"""
        return jsonify({
            'error': 'Method Not Allowed',
            'message': 'The method is not allowed for the requested URL'
        }), 405

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        """Anything else: HTTP errors keep their code, the rest become a sanitized 500"""
        if isinstance(error, HTTPException):
            return jsonify({'error': error.name, 'message': error.description}), error.code
        logger.error(f"Unhandled error on {request.method} {request.path}: {error}", exc_info=True)
        return jsonify(sanitize_error_response(error, include_details)), 500

    logger.info("Error handlers registered")


def setup_request_logging(app: Flask):
    """
    Setup request/response logging

    Args:
        app: Flask application instance
    """
    @app.before_request
    def log_request():
        """Log incoming requests"""
        if request.path in QUIET_PATHS:
            return

        logger.info(
            f"Request: {request.method} {request.path} "
            f"from {request.remote_addr}"
        )

    @app.after_request
    def log_response(response: Response) -> Response:
        """Log outgoing responses"""
        if request.path in QUIET_PATHS:
            return response

        logger.info(
            f"Response: {request.method} {request.path} "
            f"status={response.status_code} "
            f"size={response.content_length}"
        )

        return response

    logger.info("Request logging configured")


def validate_environment_variables(required_vars: list, app: Flask):
    """
    Validate that required environment variables are set

    Args:
        required_vars: List of required environment variable names
        app: Flask application instance
    """
    missing_vars = [var for var in required_vars if not os.environ.get(var)]

    for var in missing_vars:
        logger.warning(f"Missing environment variable: {var}")

    if missing_vars and not app.debug:
        logger.error(f"Missing required environment variables in production: {missing_vars}")

    return len(missing_vars) == 0


def setup_security(app: Flask, config: Dict[str, Any]):
    """
    Setup all security features for the application

    Args:
        app: Flask application instance
        config: Application configuration dictionary
    """
    logger.info("Configuring application security...")

    app.secret_key = SecurityConfig.ensure_secret_key(config)
    SecurityConfig.ensure_jwt_secret(app)

    setup_cors(app, config)
    setup_security_headers(app)
    setup_error_handlers(app)
    setup_request_logging(app)

    if not app.debug and not app.testing:
        validate_environment_variables(['SECRET_KEY', 'JWT_SECRET', 'DATABASE_URL'], app)

    logger.info("Security configuration complete")
