"""
API Blueprints Package

All HTTP route handlers for the application, organized by domain.
Each module defines a Flask Blueprint registered in app/__init__.py.

BLUEPRINT REFERENCE:
====================

Shop Domain:
- clients.py               : Clients with order stats (/api/clients)
- garments.py              : Garment catalog (/api/garments)
- orders.py                : Orders, notes, costs (/api/orders)
- invoices.py              : PDF invoices (/api/invoices)
- measurement_templates.py : Saved measurements (/api/measurement-templates)

Messaging:
- messages.py              : Message log, WhatsApp links (/api/messages)
- message_templates.py     : Message templates (/api/message-templates)

Other:
- auth_routes.py           : Register, login, token refresh (/api/auth)
- analytics.py             : Reporting (/api/analytics)
- scheduler.py             : Scheduler status and manual runs (/api/scheduler)
- files.py                 : Local uploads and invoices (/uploads, /invoices)

Health endpoints live in health_checks.py at the project root.
"""

# All blueprints are imported and registered in app/__init__.py
# This file serves as documentation only

__all__ = []
