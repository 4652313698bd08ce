"""
Tests for the clients and garment types APIs
"""
import uuid
import pytest


@pytest.mark.integration
class TestClientsAPI:
    """Tests for /api/clients"""

    def test_create_client(self, client, auth_headers):
        """Test creating a client normalises the email"""
        response = client.post('/api/clients', headers=auth_headers, json={
            'name': 'Asha Verma', 'phone': '+919876543210', 'email': 'Asha@Example.com', 'tags': ['vip']
        })
        assert response.status_code == 201
        created = response.get_json()['client']
        assert created['email'] == 'asha@example.com'
        assert created['tags'] == ['vip']

    def test_create_client_duplicate_phone(self, client, auth_headers, make_client):
        """Test phone numbers are unique"""
        make_client(phone='+919876543210')
        response = client.post('/api/clients', headers=auth_headers, json={
            'name': 'Someone Else', 'phone': '+919876543210'
        })
        assert response.status_code == 409
        data = response.get_json()
        assert data['field'] == 'phone'
        assert data['message'] == 'phone already exists'

    def test_create_client_invalid(self, client, auth_headers):
        """Test validation errors are reported per field"""
        response = client.post('/api/clients', headers=auth_headers, json={'name': 'A', 'phone': 'abc'})
        assert response.status_code == 400
        assert {d['field'] for d in response.get_json()['details']} == {'name', 'phone'}

    def test_list_and_search(self, client, auth_headers, make_client):
        """Test search matches name, phone or email"""
        make_client(name='Asha Verma')
        make_client(name='Ravi Kumar')
        response = client.get('/api/clients?search=asha', headers=auth_headers)
        data = response.get_json()
        assert [c['name'] for c in data['clients']] == ['Asha Verma']
        assert data['pagination']['total'] == 1

    def test_list_pagination(self, client, auth_headers, make_client):
        """Test page and limit"""
        for _ in range(3):
            make_client()
        data = client.get('/api/clients?page=2&limit=2', headers=auth_headers).get_json()
        assert len(data['clients']) == 1
        assert data['pagination'] == {'page': 2, 'limit': 2, 'total': 3, 'pages': 2}

    def test_list_bad_pagination(self, client, auth_headers):
        """Test non-numeric pagination is a validation error"""
        assert client.get('/api/clients?page=abc', headers=auth_headers).status_code == 400

    def test_get_client_with_stats(self, client, auth_headers, make_client, make_order):
        """Test client detail includes orders and lifetime stats"""
        asha = make_client()
        make_order(client=asha, advance=500)
        data = client.get(f"/api/clients/{asha['id']}", headers=auth_headers).get_json()['client']
        assert len(data['orders']) == 1
        assert data['stats']['total_orders'] == 1
        assert data['stats']['total_spent'] == 1600
        assert data['stats']['pending_balance'] == 1100

    def test_client_stats_cover_every_order(self, client, auth_headers, make_client, make_order):
        """Test spend and balance sum every order, cancelled ones included"""
        asha = make_client()
        make_order(client=asha, advance=500)
        cancelled = make_order(client=asha)
        client.patch(f"/api/orders/{cancelled['id']}/status", json={'status': 'Cancelled'}, headers=auth_headers)

        stats = client.get(f"/api/clients/{asha['id']}", headers=auth_headers).get_json()['client']['stats']
        assert stats['total_orders'] == 2
        assert stats['total_spent'] == 3200
        assert stats['pending_balance'] == 2700
        assert stats['completed_orders'] == 0

    def test_get_client_not_found(self, client, auth_headers):
        """Test unknown ids are a 404"""
        response = client.get(f'/api/clients/{uuid.uuid4()}', headers=auth_headers)
        assert response.status_code == 404
        assert response.get_json()['error'] == 'Client not found'

    def test_get_client_malformed_id(self, client, auth_headers):
        """Test malformed ids are a 400"""
        response = client.get('/api/clients/123', headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid ID format'

    def test_update_client(self, client, auth_headers, make_client):
        """Test updating a client"""
        asha = make_client()
        response = client.put(f"/api/clients/{asha['id']}", headers=auth_headers, json={
            'name': 'Asha V', 'phone': asha['phone'], 'address': 'MG Road'
        })
        assert response.status_code == 200
        assert response.get_json()['client']['address'] == 'MG Road'

    def test_delete_client(self, client, auth_headers, make_client):
        """Test deleting a client without orders"""
        asha = make_client()
        assert client.delete(f"/api/clients/{asha['id']}", headers=auth_headers).status_code == 200
        assert client.get(f"/api/clients/{asha['id']}", headers=auth_headers).status_code == 404

    def test_delete_client_with_orders(self, client, auth_headers, make_client, make_order):
        """Test clients with orders cannot be deleted"""
        asha = make_client()
        make_order(client=asha)
        response = client.delete(f"/api/clients/{asha['id']}", headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json() == {'error': 'Cannot delete client with existing orders', 'order_count': 1}


@pytest.mark.integration
class TestGarmentsAPI:
    """Tests for /api/garments"""

    def test_create_garment(self, client, auth_headers):
        """Test creation reports the profit margin"""
        response = client.post('/api/garments', headers=auth_headers, json={
            'name': 'Sherwani', 'price': 5000, 'cost': 2000, 'category': 'Men'
        })
        assert response.status_code == 201
        garment = response.get_json()['garment']
        assert garment['profit_margin'] == 3000
        assert garment['profit_margin_percentage'] == 150

    def test_create_garment_duplicate_name(self, client, auth_headers, make_garment):
        """Test garment names are unique"""
        make_garment(name='Kurta')
        response = client.post('/api/garments', headers=auth_headers, json={'name': 'Kurta', 'price': 900})
        assert response.status_code == 409

    def test_list_filters(self, client, auth_headers, make_garment):
        """Test category and is_active filters"""
        make_garment(name='Blouse', category='Women')
        make_garment(name='Kurta', category='Men')
        make_garment(name='Old Coat', category='Men', is_active=False)

        women = client.get('/api/garments?category=Women', headers=auth_headers).get_json()['garments']
        assert [g['name'] for g in women] == ['Blouse']

        active_men = client.get('/api/garments?category=Men&is_active=true', headers=auth_headers).get_json()
        assert [g['name'] for g in active_men['garments']] == ['Kurta']

    def test_profitability_sorted_by_margin(self, client, auth_headers, make_garment):
        """Test profitability lists active garments by margin percentage"""
        make_garment(name='Low', price=400, cost=300)
        make_garment(name='High', price=900, cost=300)
        make_garment(name='Free', price=500, cost=0)
        garments = client.get('/api/garments/stats/profitability', headers=auth_headers).get_json()['garments']
        assert [g['name'] for g in garments] == ['High', 'Free', 'Low']

    def test_update_garment(self, client, auth_headers, make_garment):
        """Test updating price"""
        kurta = make_garment(name='Kurta')
        response = client.put(f"/api/garments/{kurta['id']}", headers=auth_headers,
                              json={'name': 'Kurta', 'price': 950})
        assert response.status_code == 200
        assert response.get_json()['garment']['price'] == 950

    def test_delete_unused_garment(self, client, auth_headers, make_garment):
        """Test an unused garment can be deleted"""
        kurta = make_garment()
        assert client.delete(f"/api/garments/{kurta['id']}", headers=auth_headers).status_code == 200

    def test_delete_garment_removes_measurement_templates(self, client, auth_headers, make_client, make_garment):
        """Test measurement templates for a deleted garment are deleted with it"""
        asha, kurta = make_client(), make_garment()
        created = client.post('/api/measurement-templates', headers=auth_headers, json={
            'name': 'Regular fit', 'client_id': asha['id'], 'garment_type_id': kurta['id'],
            'measurements': {'chest': 40}
        })
        assert created.status_code == 201

        response = client.delete(f"/api/garments/{kurta['id']}", headers=auth_headers)
        assert response.status_code == 200
        templates = client.get(f"/api/measurement-templates/client/{asha['id']}", headers=auth_headers)
        assert templates.get_json()['templates'] == []

    def test_delete_used_garment(self, client, auth_headers, make_garment, make_order):
        """Test a garment used in orders cannot be deleted"""
        kurta = make_garment()
        make_order(garment=kurta)
        response = client.delete(f"/api/garments/{kurta['id']}", headers=auth_headers)
        assert response.status_code == 400
        data = response.get_json()
        assert data['usage_count'] == 1
        assert data['suggestion'] == 'Consider marking it as inactive instead'

    def test_get_garment_not_found(self, client, auth_headers):
        """Test unknown garments are a 404"""
        response = client.get(f'/api/garments/{uuid.uuid4()}', headers=auth_headers)
        assert response.status_code == 404
