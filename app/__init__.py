"""
The Darji Back Office - Application Package

This package contains the modular backend structure:
- api/: HTTP route handlers (Flask Blueprints)
- utils/: Shared request helpers

The app factory and core Flask setup remain in app_init.py at the project root.
"""

import logging

logger = logging.getLogger(__name__)

# Import blueprints
from app.api.auth_routes import auth_bp
from app.api.clients import clients_bp
from app.api.garments import garments_bp
from app.api.orders import orders_bp
from app.api.invoices import invoices_bp
from app.api.messages import messages_bp
from app.api.message_templates import message_templates_bp
from app.api.measurement_templates import measurement_templates_bp
from app.api.analytics import analytics_bp
from app.api.scheduler import scheduler_bp
from app.api.files import files_bp


def register_blueprints(app):
    """
    Register all API blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(clients_bp, url_prefix='/api/clients')
    app.register_blueprint(garments_bp, url_prefix='/api/garments')
    app.register_blueprint(orders_bp, url_prefix='/api/orders')
    app.register_blueprint(invoices_bp, url_prefix='/api/invoices')
    app.register_blueprint(messages_bp, url_prefix='/api/messages')
    app.register_blueprint(message_templates_bp, url_prefix='/api/message-templates')
    app.register_blueprint(measurement_templates_bp, url_prefix='/api/measurement-templates')
    app.register_blueprint(analytics_bp, url_prefix='/api/analytics')
    app.register_blueprint(scheduler_bp, url_prefix='/api/scheduler')
    app.register_blueprint(files_bp)

    logger.info(f"Registered {len(app.blueprints)} blueprints")
