"""
Application Initialization Module
Initializes the Flask app with configuration, logging, security, database and routes
"""
import os
from flask import Flask
from config import get_config
from logging_config import setup_logging
from security import setup_security
from health_checks import register_health_checks
from database.connection import configure_database, init_db
from services.storage_service import StorageService
from services.scheduler import get_scheduler, register_default_jobs
import logging

logger = logging.getLogger(__name__)


def create_app(config_class=None):
    """
    Application factory that creates and configures the Flask app

    Args:
        config_class: Config class to load; defaults to the one selected by FLASK_ENV

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)

    app.config.from_object(config_class or get_config())

    setup_logging(app)

    logger.info("=" * 60)
    logger.info(f"Initializing {app.config['SHOP_NAME']} back office API")
    logger.info("=" * 60)
    logger.info(f"Environment: {os.environ.get('FLASK_ENV', 'development')}")
    logger.info(f"Debug mode: {app.debug}")

    # Setup security (CORS, headers, error handlers, JWT secret)
    setup_security(app, app.config)

    create_required_directories(app)

    initialize_database(app)

    register_health_checks(app)

    from app import register_blueprints
    register_blueprints(app)

    # Jobs are always registered so they can be run manually; the thread starts in application.py
    register_default_jobs(get_scheduler(), shop_name=app.config['SHOP_NAME'])

    logger.info(f"File storage: {StorageService(app.config).mode}")
    logger.info("Application initialization complete")
    logger.info("=" * 60)

    return app


def create_required_directories(app):
    """
    Create the local upload and invoice directories

    Args:
        app: Flask application instance
    """
    StorageService(app.config).ensure_directories()
    os.makedirs('logs', exist_ok=True)
    logger.debug(f"Directories ensured: {app.config['UPLOAD_FOLDER']}, {app.config['INVOICE_FOLDER']}")


def initialize_database(app):
    """
    Bind the engine to DATABASE_URL and create missing tables

    Args:
        app: Flask application instance
    """
    engine_options = {} if app.config['DATABASE_URL'].startswith('sqlite') \
        else dict(app.config.get('SQLALCHEMY_ENGINE_OPTIONS') or {})
    configure_database(app.config['DATABASE_URL'], **engine_options)
    init_db()
