"""
Health Check & Monitoring Endpoints
Provides liveness, readiness and metrics endpoints for deployment monitoring
"""
import os
import sys
import time
import psutil
from datetime import datetime, timezone
from typing import Dict, Any
from flask import Blueprint, jsonify, current_app
import logging

logger = logging.getLogger(__name__)

# Create Blueprint for health check routes
health_bp = Blueprint('health', __name__)

# Track application start time
START_TIME = time.time()

SERVICE_NAME = 'thedarji-api'
SERVICE_VERSION = '1.0.0'


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_system_metrics() -> Dict[str, Any]:
    """
    Get basic process metrics

    Returns:
        Dictionary of system metrics
    """
    try:
        process = psutil.Process()

        return {
            'cpu_percent': process.cpu_percent(interval=0.1),
            'memory_mb': round(process.memory_info().rss / 1024 / 1024, 2),
            'memory_percent': round(process.memory_percent(), 2),
            'threads': process.num_threads(),
        }
    except psutil.Error as e:
        logger.warning(f"Failed to get system metrics: {e}")
        return {}


def get_uptime() -> Dict[str, Any]:
    """
    Get application uptime

    Returns:
        Dictionary with uptime information
    """
    uptime_seconds = time.time() - START_TIME

    return {
        'uptime_seconds': round(uptime_seconds, 2),
        'uptime_hours': round(uptime_seconds / 3600, 2),
        'started_at': datetime.fromtimestamp(START_TIME).isoformat()
    }


def check_filesystem(app) -> Dict[str, Dict[str, bool]]:
    """
    Check the upload and invoice directories exist and are writable

    Args:
        app: Flask application instance

    Returns:
        Dictionary of filesystem checks
    """
    filesystem_status = {}

    for key in ('UPLOAD_FOLDER', 'INVOICE_FOLDER'):
        dir_path = os.path.abspath(app.config[key])
        exists = os.path.isdir(dir_path)
        writable = os.access(dir_path, os.W_OK) if exists else False

        filesystem_status[app.config[key]] = {
            'exists': exists,
            'writable': writable,
            'healthy': exists and writable
        }

    return filesystem_status


def check_database() -> Dict[str, Any]:
    """Run SELECT 1 against the configured database"""
    from database.connection import check_db_connection

    try:
        check_db_connection()
        return {'healthy': True}
    except RuntimeError as e:
        return {'healthy': False, 'error': str(e)}


def storage_mode(app) -> str:
    from services.storage_service import StorageService
    return StorageService(app.config).mode


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Basic health check endpoint
    Returns 200 if application is running
    """
    return jsonify({
        'status': 'ok',
        'message': 'The Darji API is running',
        'timestamp': _now()
    }), 200


@health_bp.route('/ready', methods=['GET'])
def readiness_check():
    """
    Readiness probe endpoint
    Returns 200 when the database answers and storage folders are writable
    """
    database = check_database()
    filesystem = check_filesystem(current_app)
    filesystem_healthy = all(status['healthy'] for status in filesystem.values())
    is_ready = database['healthy'] and filesystem_healthy

    response = {
        'status': 'ready' if is_ready else 'not_ready',
        'timestamp': _now(),
        'checks': {
            'database': database,
            'filesystem': filesystem,
            'filesystem_healthy': filesystem_healthy
        }
    }

    return jsonify(response), 200 if is_ready else 503


@health_bp.route('/metrics', methods=['GET'])
def metrics():
    """
    Basic metrics endpoint
    Returns process metrics and application statistics
    """
    response = {
        'timestamp': _now(),
        'service': SERVICE_NAME,
        'version': SERVICE_VERSION,
        'environment': os.environ.get('FLASK_ENV', 'production'),
        'uptime': get_uptime(),
        'system': get_system_metrics(),
        'storage_mode': storage_mode(current_app),
        'python_version': sys.version.split()[0]
    }

    return jsonify(response), 200


@health_bp.route('/ping', methods=['GET'])
def ping():
    """
    Simple ping endpoint
    Returns immediate response for basic connectivity tests
    """
    return 'pong', 200


def register_health_checks(app):
    """
    Register health check blueprint with Flask app

    Args:
        app: Flask application instance
    """
    app.register_blueprint(health_bp, url_prefix='/api')
    logger.info("Health check endpoints registered: /api/health, /api/ready, /api/metrics, /api/ping")
