"""
Tests for invoice generation, numbering and the invoices API
"""
import uuid
from datetime import datetime
from unittest.mock import patch
import pytest

from services.invoice_service import invoice_filename


@pytest.mark.unit
class TestInvoiceFilename:
    """Tests for invoice file naming"""

    def test_filename_strips_spaces(self):
        """Test client name whitespace is removed"""
        assert invoice_filename('TD-2026-0001', 'Asha  Verma') == 'Invoice_TD-2026-0001_AshaVerma.pdf'

    def test_filename_is_sanitised(self):
        """Test path characters cannot escape the invoices folder"""
        name = invoice_filename('TD-2026-0001', '../../etc')
        assert '/' not in name


@pytest.mark.integration
class TestInvoicesAPI:
    """Tests for /api/invoices"""

    def _generate(self, client, auth_headers, order):
        response = client.post(f"/api/invoices/generate/{order['id']}", headers=auth_headers)
        assert response.status_code == 201, response.get_json()
        return response.get_json()['invoice']

    def test_generate_invoice(self, client, auth_headers, make_order, workdir, admin_user):
        """Test generation writes a PDF and numbers the invoice"""
        order = make_order()
        invoice = self._generate(client, auth_headers, order)
        assert invoice['invoice_number'] == f'TD-{datetime.now().year}-0001'
        assert invoice['storage_type'] == 'Local'
        assert invoice['generated_by'] == admin_user.id
        assert invoice['order_number'] == order['order_number']
        pdf = workdir / invoice['pdf_path']
        assert pdf.read_bytes().startswith(b'%PDF')

    def test_generate_twice_is_rejected(self, client, auth_headers, make_order):
        """Test one invoice per order"""
        order = make_order()
        first = self._generate(client, auth_headers, order)
        response = client.post(f"/api/invoices/generate/{order['id']}", headers=auth_headers)
        assert response.status_code == 400
        data = response.get_json()
        assert data['error'] == 'Invoice already exists for this order'
        assert data['invoice']['id'] == first['id']

    def test_generate_unknown_order(self, client, auth_headers):
        """Test generating for a missing order is a 404"""
        response = client.post(f'/api/invoices/generate/{uuid.uuid4()}', headers=auth_headers)
        assert response.status_code == 404

    def test_invoice_numbers_increment(self, client, auth_headers, make_order):
        """Test consecutive invoices get consecutive numbers"""
        first = self._generate(client, auth_headers, make_order())
        second = self._generate(client, auth_headers, make_order())
        year = datetime.now().year
        assert [first['invoice_number'], second['invoice_number']] == [f'TD-{year}-0001', f'TD-{year}-0002']

    def test_stream_invoice_regenerates_with_same_number(self, client, auth_headers, make_order):
        """Test streaming an order's invoice keeps its number"""
        order = make_order()
        invoice = self._generate(client, auth_headers, order)

        response = client.get(f"/api/invoices/order/{order['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.mimetype == 'application/pdf'
        assert f"invoice-{invoice['invoice_number']}.pdf" in response.headers['Content-Disposition']
        assert response.data.startswith(b'%PDF')

        listed = client.get('/api/invoices', headers=auth_headers).get_json()
        assert listed['pagination']['total'] == 1

    def test_stream_invoice_creates_when_missing(self, client, auth_headers, make_order):
        """Test streaming creates the invoice when the order has none"""
        order = make_order()
        response = client.get(f"/api/invoices/order/{order['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert client.get('/api/invoices', headers=auth_headers).get_json()['pagination']['total'] == 1

    def test_send_invoice_builds_whatsapp_link(self, client, auth_headers, make_client, make_order):
        """Test sending records a pending confirmation and returns a wa.me link"""
        asha = make_client(phone='9876543210')
        order = make_order(client=asha)
        response = client.post(f"/api/invoices/{order['id']}/send", headers=auth_headers)
        assert response.status_code == 200
        data = response.get_json()
        assert data['whatsapp_link'].startswith('https://wa.me/919876543210?text=')
        assert data['invoice_path'].startswith('invoices/Invoice_')
        assert data['message']['type'] == 'OrderConfirmation'
        assert data['message']['status'] == 'Pending'
        assert 'Total Amount: Rs 1600.00' in data['message']['content']

    def test_send_invoice_quotes_order_total(self, client, auth_headers, make_order):
        """Test the confirmation quotes the order total even after a final amount is agreed"""
        order = make_order()
        client.patch(f"/api/orders/{order['id']}/status", headers=auth_headers,
                     json={'status': 'Pending', 'final_amount': 1400})
        data = client.post(f"/api/invoices/{order['id']}/send", headers=auth_headers).get_json()
        assert 'Total Amount: Rs 1600.00' in data['message']['content']

    def test_download_local(self, client, auth_headers, make_order):
        """Test local invoices download from the static path"""
        invoice = self._generate(client, auth_headers, make_order())
        response = client.get(f"/api/invoices/download/{invoice['id']}", headers=auth_headers)
        assert response.get_json() == {'url': f"/{invoice['pdf_path']}"}

    def test_download_s3_uses_presigned_url(self, client, auth_headers, make_order, app):
        """Test S3 invoices return a short-lived presigned URL"""
        from database.connection import get_db_session
        from database.models import Invoice

        invoice = self._generate(client, auth_headers, make_order())
        with get_db_session() as session:
            session.query(Invoice).filter(Invoice.id == invoice['id']).update({'s3_key': 'invoices/x.pdf'})

        with patch('app.api.invoices.get_storage_service') as mock_storage:
            storage = mock_storage.return_value
            storage.invoice_bucket = 'thedarji-invoices'
            storage.presigned_url.return_value = 'https://signed.example/x.pdf'
            response = client.get(f"/api/invoices/download/{invoice['id']}", headers=auth_headers)

        assert response.get_json() == {'url': 'https://signed.example/x.pdf'}
        storage.presigned_url.assert_called_once_with('invoices/x.pdf', bucket='thedarji-invoices', expires_in=300)

    def test_get_invoice_includes_order(self, client, auth_headers, make_order):
        """Test invoice detail embeds the order"""
        order = make_order()
        invoice = self._generate(client, auth_headers, order)
        data = client.get(f"/api/invoices/{invoice['id']}", headers=auth_headers).get_json()['invoice']
        assert data['order']['id'] == order['id']

    def test_delete_invoice(self, client, auth_headers, make_order, workdir):
        """Test deleting an invoice removes the file but keeps the order"""
        order = make_order()
        invoice = self._generate(client, auth_headers, order)
        response = client.delete(f"/api/invoices/{invoice['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert not (workdir / invoice['pdf_path']).exists()
        assert client.get(f"/api/orders/{order['id']}", headers=auth_headers).status_code == 200

    def test_invoice_file_served_statically(self, client, auth_headers, make_order):
        """Test generated PDFs are reachable under /invoices"""
        invoice = self._generate(client, auth_headers, make_order())
        response = client.get(f"/{invoice['pdf_path']}")
        assert response.status_code == 200
        assert response.data.startswith(b'%PDF')
