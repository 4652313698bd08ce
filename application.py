"""
The Darji Back Office Application

Tailoring-shop API: clients, garment catalog, orders, PDF invoices,
WhatsApp-link messaging and analytics, organised as Flask blueprints.

Structure:
- app/api/: HTTP route handlers (Flask Blueprints)
- services/: repositories and business services
- database/: SQLAlchemy models, connection and seeding
- app_init.py: application factory
"""
import os
import logging

from app_init import create_app

# Initialize Flask app with infrastructure and blueprints
app = create_app()
logger = logging.getLogger(__name__)


# ============================================================================
# APPLICATION STARTUP
# ============================================================================

def start_background_services():
    """Seed defaults and start the reminder scheduler."""
    from database.seed import seed_database
    from services.scheduler import init_scheduler

    with app.app_context():
        seed_database()

    scheduler = init_scheduler(start=app.config['SCHEDULER_ENABLED'], shop_name=app.config['SHOP_NAME'])
    if scheduler.running:
        logger.info("Background scheduler started")
    else:
        logger.info("Background scheduler disabled (SCHEDULER_ENABLED=false); jobs can be run manually")


# Start background services when module loads (gunicorn imports wsgi -> application)
if os.environ.get('FLASK_ENV') != 'testing':
    start_background_services()


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    app.run(host='0.0.0.0', port=port, debug=False)
