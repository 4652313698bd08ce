"""
Analytics Service - revenue, profit, garment, client and discount reporting.

Figures are computed in Python over the matching orders; an order's amount is
always its effective amount (final amount when set, else total).
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session, selectinload, joinedload

from database.models import Order, OrderItem, Client, GarmentType

logger = logging.getLogger(__name__)

CLOSED_STATUSES = ('Completed', 'Delivered')
ESTIMATED_COST_RATIO = 0.6
GROUP_FORMATS = {'day': '%Y-%m-%d', 'month': '%Y-%m', 'year': '%Y'}


def _round(value: float, places: int = 2) -> float:
    return round(value, places)


def _percentage(part: float, whole: float) -> float:
    return _round(part / whole * 100) if whole else 0


def item_unit_cost(item: OrderItem) -> float:
    """Recorded cost, else catalog cost, else an estimate of 60% of the unit price."""
    if item.cost and item.cost > 0:
        return item.cost
    if item.garment_type is not None and item.garment_type.cost and item.garment_type.cost > 0:
        return item.garment_type.cost
    quantity = item.quantity or 1
    return ESTIMATED_COST_RATIO * (item.subtotal or 0) / quantity


def order_cost(order: Order) -> float:
    items = sum(item_unit_cost(item) * (item.quantity or 0) for item in order.items)
    services = sum(service.cost or 0 for service in order.additional_services)
    return items + services


def is_discounted(order: Order) -> bool:
    return bool(order.final_amount) and order.final_amount < (order.total_amount or 0)


class AnalyticsService:
    """Read-only reporting over orders and clients."""

    def __init__(self, session: Session):
        self.session = session

    def _orders(self, start_date: Optional[datetime] = None, end_date: Optional[datetime] = None,
                include_cancelled: bool = False, statuses=None):
        query = self.session.query(Order).options(
            selectinload(Order.items).joinedload(OrderItem.garment_type),
            selectinload(Order.additional_services),
            joinedload(Order.client),
        )
        if not include_cancelled:
            query = query.filter(Order.status != 'Cancelled')
        if statuses:
            query = query.filter(Order.status.in_(statuses))
        if start_date:
            query = query.filter(Order.created_at >= start_date)
        if end_date:
            query = query.filter(Order.created_at <= end_date)
        return query

    def overview(self) -> Dict:
        orders = self._orders().all()
        open_orders = [o for o in orders if o.status not in CLOSED_STATUSES]
        recent = self._orders(include_cancelled=True).order_by(Order.created_at.desc()).limit(5).all()
        return {
            'total_orders': self.session.query(Order).count(),
            'total_clients': self.session.query(Client).count(),
            'total_revenue': sum(o.effective_amount for o in orders if o.status in CLOSED_STATUSES),
            'pending_orders': sum(1 for o in orders if o.status == 'Pending'),
            'pending_order_revenue': sum(o.effective_amount for o in open_orders),
            'recent_orders': [o.to_dict() for o in recent],
        }

    def revenue(self, start_date=None, end_date=None, group_by: str = 'month') -> List[Dict]:
        fmt = GROUP_FORMATS.get(group_by, GROUP_FORMATS['month'])
        groups = defaultdict(lambda: {'total_revenue': 0.0, 'total_orders': 0})
        for order in self._orders(start_date, end_date):
            bucket = groups[order.created_at.strftime(fmt)]
            bucket['total_revenue'] += order.effective_amount
            bucket['total_orders'] += 1

        return [
            {
                'period': period,
                'total_revenue': data['total_revenue'],
                'total_orders': data['total_orders'],
                'average_order_value': _round(data['total_revenue'] / data['total_orders']),
            }
            for period, data in sorted(groups.items())
        ]

    def profit(self, start_date=None, end_date=None) -> Dict:
        realized_revenue = realized_cost = 0.0
        potential_revenue = potential_cost = 0.0
        order_count = 0

        for order in self._orders(start_date, end_date):
            amount, cost = order.effective_amount, order_cost(order)
            if order.status in CLOSED_STATUSES:
                realized_revenue += amount
                realized_cost += cost
                order_count += 1
            else:
                potential_revenue += amount
                potential_cost += cost

        profit = realized_revenue - realized_cost
        return {
            'total_revenue': _round(realized_revenue),
            'total_cost': _round(realized_cost),
            'profit': _round(profit),
            'profit_margin': _percentage(profit, realized_revenue),
            'order_count': order_count,
            'potential_revenue': _round(potential_revenue),
            'potential_profit': _round(potential_revenue - potential_cost),
        }

    def garments(self) -> List[Dict]:
        stats: Dict[str, Dict] = {}
        for order in self._orders():
            seen_in_order = set()
            for item in order.items:
                garment = item.garment_type
                entry = stats.setdefault(item.garment_type_id, {
                    'garment_type_id': item.garment_type_id,
                    'name': garment.name if garment else 'Unknown Garment',
                    'price': garment.price if garment else item.price,
                    'total_quantity': 0,
                    'total_revenue': 0.0,
                    'total_cost': 0.0,
                    'order_count': 0,
                })
                entry['total_quantity'] += item.quantity or 0
                entry['total_revenue'] += item.subtotal or 0
                entry['total_cost'] += item_unit_cost(item) * (item.quantity or 0)
                if item.garment_type_id not in seen_in_order:
                    entry['order_count'] += 1
                    seen_in_order.add(item.garment_type_id)

        result = []
        for entry in stats.values():
            entry['total_cost'] = _round(entry['total_cost'])
            entry['profit'] = _round(entry['total_revenue'] - entry['total_cost'])
            result.append(entry)
        return sorted(result, key=lambda e: e['total_quantity'], reverse=True)

    def top_clients(self, limit: int = 10) -> List[Dict]:
        totals: Dict[str, Dict] = {}
        for order in self._orders():
            client = order.client
            if client is None:
                continue
            entry = totals.setdefault(client.id, {
                'client_id': client.id,
                'name': client.name,
                'phone': client.phone,
                'total_spent': 0.0,
                'order_count': 0,
            })
            entry['total_spent'] += order.effective_amount
            entry['order_count'] += 1

        for entry in totals.values():
            entry['average_order_value'] = _round(entry['total_spent'] / entry['order_count'])
        ranked = sorted(totals.values(), key=lambda e: e['total_spent'], reverse=True)
        return ranked[:limit]

    def status_breakdown(self) -> List[Dict]:
        breakdown: Dict[str, Dict] = {}
        for order in self._orders(include_cancelled=True):
            entry = breakdown.setdefault(order.status, {'status': order.status, 'count': 0, 'total_value': 0.0})
            entry['count'] += 1
            entry['total_value'] += order.effective_amount
        return sorted(breakdown.values(), key=lambda e: e['count'], reverse=True)

    def discounts(self, start_date=None, end_date=None) -> Dict:
        orders = self._orders(start_date, end_date).all()
        original = sum(o.total_amount or 0 for o in orders)
        final = sum(o.effective_amount for o in orders)
        total_discounts = original - final
        return {
            'total_original_amount': original,
            'total_final_amount': final,
            'total_discounts': total_discounts,
            'avg_discount_percentage': _percentage(total_discounts, original),
            'orders_with_discounts': sum(1 for o in orders if is_discounted(o)),
            'total_orders': len(orders),
        }

    def discounted_orders(self, start_date=None, end_date=None, limit: int = 50) -> List[Dict]:
        orders = self._orders(start_date, end_date).order_by(Order.created_at.desc()).all()
        result = []
        for order in orders:
            if not is_discounted(order):
                continue
            discount = order.total_amount - order.final_amount
            result.append({
                'order_id': order.id,
                'order_number': order.order_number,
                'client_name': order.client.name if order.client else None,
                'client_phone': order.client.phone if order.client else None,
                'total_amount': order.total_amount,
                'final_amount': order.final_amount,
                'discount_amount': discount,
                'discount_percentage': _percentage(discount, order.total_amount),
                'status': order.status,
                'order_date': order.created_at.isoformat(),
            })
            if len(result) >= limit:
                break
        return result

    def garment_profitability(self) -> List[Dict]:
        garments = self.session.query(GarmentType).filter(GarmentType.is_active == True).all()
        return sorted((g.to_dict() for g in garments),
                      key=lambda g: g['profit_margin_percentage'], reverse=True)
