"""
Tests for analytics reporting
"""
import pytest

from database.models import Order, OrderItem, GarmentType
from services.analytics_service import item_unit_cost, is_discounted


@pytest.fixture
def shop(client, auth_headers, make_client, make_garment, make_order):
    """
    Four orders of 2 x Kurta (800, cost 300):
    completed, delivered at a 1400 discount, pending, cancelled.
    """
    asha = make_client(name='Asha')
    ravi = make_client(name='Ravi')
    kurta = make_garment(name='Kurta', price=800, cost=300)

    def set_status(order, **body):
        response = client.patch(f"/api/orders/{order['id']}/status", json=body, headers=auth_headers)
        assert response.status_code == 200

    completed = make_order(client=asha, garment=kurta)
    set_status(completed, status='Completed')
    delivered = make_order(client=asha, garment=kurta)
    set_status(delivered, status='Delivered', final_amount=1400)
    pending = make_order(client=ravi, garment=kurta)
    cancelled = make_order(client=ravi, garment=kurta)
    set_status(cancelled, status='Cancelled')

    return {'asha': asha, 'ravi': ravi, 'kurta': kurta, 'completed': completed,
            'delivered': delivered, 'pending': pending, 'cancelled': cancelled}


@pytest.mark.unit
class TestCostHelpers:
    """Tests for cost fallbacks"""

    def test_recorded_cost_wins(self):
        """Test an item's own cost is used first"""
        item = OrderItem(quantity=2, price=800, subtotal=1600, cost=250,
                         garment_type=GarmentType(name='Kurta', price=800, cost=300))
        assert item_unit_cost(item) == 250

    def test_catalog_cost_fallback(self):
        """Test the garment's catalog cost is used when the item has none"""
        item = OrderItem(quantity=2, price=800, subtotal=1600, cost=0,
                         garment_type=GarmentType(name='Kurta', price=800, cost=300))
        assert item_unit_cost(item) == 300

    def test_estimated_cost_fallback(self):
        """Test 60% of the unit price is assumed without any cost"""
        item = OrderItem(quantity=2, price=800, subtotal=1600, cost=0,
                         garment_type=GarmentType(name='Kurta', price=800, cost=0))
        assert item_unit_cost(item) == pytest.approx(480)

    def test_is_discounted(self):
        """Test only a lower final amount counts as a discount"""
        assert is_discounted(Order(total_amount=1000, final_amount=900))
        assert not is_discounted(Order(total_amount=1000, final_amount=1100))
        assert not is_discounted(Order(total_amount=1000, final_amount=None))


@pytest.mark.integration
class TestAnalyticsAPI:
    """Tests for /api/analytics"""

    def test_overview(self, client, auth_headers, shop):
        """Test every order is counted while revenue counts closed orders only"""
        data = client.get('/api/analytics/overview', headers=auth_headers).get_json()
        assert data['total_orders'] == 4
        assert data['total_clients'] == 2
        assert data['total_revenue'] == 3000
        assert data['pending_orders'] == 1
        assert data['pending_order_revenue'] == 1600
        assert len(data['recent_orders']) == 4
        assert 'Cancelled' in {o['status'] for o in data['recent_orders']}

    def test_revenue_by_day(self, client, auth_headers, shop):
        """Test revenue grouped by day"""
        data = client.get('/api/analytics/revenue?group_by=day', headers=auth_headers).get_json()
        assert data['group_by'] == 'day'
        assert len(data['revenue']) == 1
        period = data['revenue'][0]
        assert period['total_orders'] == 3
        assert period['total_revenue'] == 4600
        assert period['average_order_value'] == pytest.approx(1533.33)

    def test_revenue_defaults_to_month(self, client, auth_headers, shop):
        """Test revenue is grouped by month when no group_by is given"""
        data = client.get('/api/analytics/revenue', headers=auth_headers).get_json()
        assert data['group_by'] == 'month'
        assert len(data['revenue']) == 1
        period = data['revenue'][0]
        assert len(period['period']) == len('2026-01')
        assert period['total_revenue'] == 4600

    def test_revenue_invalid_group(self, client, auth_headers):
        """Test group_by choices"""
        response = client.get('/api/analytics/revenue?group_by=week', headers=auth_headers)
        assert response.status_code == 400

    def test_profit(self, client, auth_headers, shop):
        """Test realized and potential profit use catalog costs"""
        data = client.get('/api/analytics/profit', headers=auth_headers).get_json()
        assert data['total_revenue'] == 3000
        assert data['total_cost'] == 1200
        assert data['profit'] == 1800
        assert data['profit_margin'] == 60
        assert data['order_count'] == 2
        assert data['potential_revenue'] == 1600
        assert data['potential_profit'] == 1000

    def test_garments(self, client, auth_headers, shop):
        """Test garment sales summary"""
        garments = client.get('/api/analytics/garments', headers=auth_headers).get_json()['garments']
        assert len(garments) == 1
        kurta = garments[0]
        assert kurta['name'] == 'Kurta'
        assert kurta['total_quantity'] == 6
        assert kurta['order_count'] == 3
        assert kurta['total_revenue'] == 4800
        assert kurta['profit'] == 3000

    def test_top_clients(self, client, auth_headers, shop):
        """Test clients ranked by spend"""
        clients = client.get('/api/analytics/clients', headers=auth_headers).get_json()['clients']
        assert [c['name'] for c in clients] == ['Asha', 'Ravi']
        assert clients[0]['total_spent'] == 3000
        assert clients[0]['average_order_value'] == 1500

    def test_status_breakdown(self, client, auth_headers, shop):
        """Test every status including cancelled is counted"""
        statuses = client.get('/api/analytics/status', headers=auth_headers).get_json()['statuses']
        assert {s['status']: s['count'] for s in statuses} == {
            'Completed': 1, 'Delivered': 1, 'Pending': 1, 'Cancelled': 1
        }

    def test_discounts(self, client, auth_headers, shop):
        """Test discount totals span every non-cancelled order"""
        data = client.get('/api/analytics/discounts', headers=auth_headers).get_json()
        assert data['orders_with_discounts'] == 1
        assert data['total_discounts'] == 200
        assert data['total_original_amount'] == 4800
        assert data['total_final_amount'] == 4600
        assert data['avg_discount_percentage'] == 4.17
        assert data['total_orders'] == 3

    def test_discounts_mixed_orders(self, client, auth_headers, make_garment, make_order):
        """Test plain orders count toward the original total and cancelled ones are left out"""
        kurta = make_garment(name='Kurta', price=800, cost=300)
        make_order(garment=kurta)
        discounted = make_order(garment=kurta)
        cancelled = make_order(garment=kurta)
        client.patch(f"/api/orders/{discounted['id']}/status",
                     json={'status': 'Delivered', 'final_amount': 1400}, headers=auth_headers)
        client.patch(f"/api/orders/{cancelled['id']}/status", json={'status': 'Cancelled'}, headers=auth_headers)

        data = client.get('/api/analytics/discounts', headers=auth_headers).get_json()
        assert data['total_original_amount'] == 3200
        assert data['total_final_amount'] == 3000
        assert data['total_discounts'] == 200
        assert data['avg_discount_percentage'] == 6.25
        assert data['orders_with_discounts'] == 1
        assert data['total_orders'] == 2

    def test_discounted_orders(self, client, auth_headers, shop):
        """Test discounted order listing"""
        orders = client.get('/api/analytics/discounted-orders', headers=auth_headers).get_json()['orders']
        assert len(orders) == 1
        assert orders[0]['order_number'] == shop['delivered']['order_number']
        assert orders[0]['discount_amount'] == 200
        assert orders[0]['discount_percentage'] == 12.5

    def test_date_filter(self, client, auth_headers, shop):
        """Test a future start date excludes every order"""
        data = client.get('/api/analytics/profit?start_date=2999-01-01', headers=auth_headers).get_json()
        assert data['order_count'] == 0
        assert data['profit_margin'] == 0

    def test_empty_shop(self, client, auth_headers):
        """Test reports work with no data"""
        data = client.get('/api/analytics/overview', headers=auth_headers).get_json()
        assert data['total_orders'] == 0
        assert data['recent_orders'] == []
