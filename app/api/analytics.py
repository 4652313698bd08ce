"""
Analytics Routes Blueprint

Business reporting over orders and clients:
- /api/analytics/overview, /revenue, /profit
- /api/analytics/garments, /clients, /status
- /api/analytics/discounts, /discounted-orders
"""

import logging
from flask import Blueprint, request, jsonify

from auth import protect_blueprint
from database.connection import get_db_session
from services.analytics_service import AnalyticsService
from validators import ValidationError
from app.utils.helpers import parse_date_args

logger = logging.getLogger(__name__)

# Create blueprint
analytics_bp = protect_blueprint(Blueprint('analytics_bp', __name__))

GROUP_BY_CHOICES = ('day', 'month', 'year')


@analytics_bp.route('/overview', methods=['GET'])
def overview():
    with get_db_session() as session:
        return jsonify(AnalyticsService(session).overview())


@analytics_bp.route('/revenue', methods=['GET'])
def revenue():
    """Revenue grouped by day, month or year"""
    start_date, end_date = parse_date_args()
    group_by = request.args.get('group_by', 'month')
    if group_by not in GROUP_BY_CHOICES:
        raise ValidationError(f"group_by must be one of: {', '.join(GROUP_BY_CHOICES)}", field='group_by')

    with get_db_session() as session:
        periods = AnalyticsService(session).revenue(start_date, end_date, group_by)
    return jsonify({'group_by': group_by, 'revenue': periods})


@analytics_bp.route('/profit', methods=['GET'])
def profit():
    start_date, end_date = parse_date_args()
    with get_db_session() as session:
        return jsonify(AnalyticsService(session).profit(start_date, end_date))


@analytics_bp.route('/garments', methods=['GET'])
def garments():
    with get_db_session() as session:
        return jsonify({'garments': AnalyticsService(session).garments()})


@analytics_bp.route('/clients', methods=['GET'])
def top_clients():
    with get_db_session() as session:
        return jsonify({'clients': AnalyticsService(session).top_clients()})


@analytics_bp.route('/status', methods=['GET'])
def status_breakdown():
    with get_db_session() as session:
        return jsonify({'statuses': AnalyticsService(session).status_breakdown()})


@analytics_bp.route('/discounts', methods=['GET'])
def discounts():
    start_date, end_date = parse_date_args()
    with get_db_session() as session:
        return jsonify(AnalyticsService(session).discounts(start_date, end_date))


@analytics_bp.route('/discounted-orders', methods=['GET'])
def discounted_orders():
    start_date, end_date = parse_date_args()
    with get_db_session() as session:
        orders = AnalyticsService(session).discounted_orders(start_date, end_date)
    return jsonify({'orders': orders})
