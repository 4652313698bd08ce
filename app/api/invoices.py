"""
Invoices Routes Blueprint

PDF invoices for orders:
- /api/invoices: list
- /api/invoices/order/<order_id>: regenerate and stream the PDF
- /api/invoices/generate/<order_id>: create the invoice
- /api/invoices/<order_id>/send: WhatsApp confirmation with invoice
- /api/invoices/download/<id>: download URL
- /api/invoices/<id>: detail, delete
"""

import io
import logging
from pathlib import Path
from flask import Blueprint, jsonify, send_file, current_app
from botocore.exceptions import BotoCoreError, ClientError

from auth import protect_blueprint, current_user_id
from database.connection import get_db_session
from services.orders_repository import OrdersRepository
from services.invoices_repository import InvoicesRepository
from services.invoice_service import InvoiceService
from services.messaging_service import MessagingService
from services.storage_service import get_storage_service
from validators import validate_uuid
from app.utils.helpers import get_pagination, pagination_info

logger = logging.getLogger(__name__)

# Create blueprint
invoices_bp = protect_blueprint(Blueprint('invoices_bp', __name__))

DOWNLOAD_URL_EXPIRY = 300


def _invoice_service(session, storage=None):
    return InvoiceService(session, storage or get_storage_service(), current_app.config)


@invoices_bp.route('', methods=['GET'])
@invoices_bp.route('/', methods=['GET'])
def list_invoices():
    page, limit = get_pagination(default_limit=20)
    with get_db_session() as session:
        invoices, total = InvoicesRepository(session).list_invoices(page, limit)
    return jsonify({'invoices': invoices, 'pagination': pagination_info(page, limit, total)})


@invoices_bp.route('/order/<order_id>', methods=['GET'])
def stream_order_invoice(order_id):
    """Regenerate the order's invoice (keeping its number) and stream the PDF"""
    order_id = validate_uuid(order_id, 'order_id')
    storage = get_storage_service()

    with get_db_session() as session:
        order = OrdersRepository(session).get_order_model(order_id)
        if not order:
            return jsonify({'error': 'Order not found'}), 404
        if order.client is None:
            return jsonify({'error': 'Cannot generate invoice: Client data missing'}), 400

        existing = InvoicesRepository(session).get_for_order(order.id)
        invoice = _invoice_service(session, storage).generate_invoice(
            order, user_id=current_user_id(), existing=existing
        )
        download_name = f"invoice-{invoice.invoice_number}.pdf"
        s3_key, pdf_path = invoice.s3_key, invoice.pdf_path

    if s3_key:
        try:
            content = storage.read_bytes(s3_key, bucket=storage.invoice_bucket)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to read invoice {s3_key} from S3: {e}")
            return jsonify({'error': 'PDF file not found'}), 404
        return send_file(io.BytesIO(content), mimetype='application/pdf',
                         as_attachment=True, download_name=download_name)

    local_path = storage.invoice_folder / Path(pdf_path or '').name
    if not pdf_path or not local_path.is_file():
        return jsonify({'error': 'PDF file not found'}), 404
    return send_file(str(local_path.resolve()), mimetype='application/pdf',
                     as_attachment=True, download_name=download_name)


@invoices_bp.route('/generate/<order_id>', methods=['POST'])
def generate_invoice(order_id):
    order_id = validate_uuid(order_id, 'order_id')

    with get_db_session() as session:
        existing = InvoicesRepository(session).get_for_order(order_id)
        if existing:
            return jsonify({
                'error': 'Invoice already exists for this order',
                'invoice': existing.to_dict()
            }), 400

        order = OrdersRepository(session).get_order_model(order_id)
        if not order:
            return jsonify({'error': 'Order not found'}), 404
        if order.client is None:
            return jsonify({'error': 'Cannot generate invoice: Client data missing'}), 400

        invoice = _invoice_service(session).generate_invoice(order, user_id=current_user_id())
        return jsonify({'message': 'Invoice generated successfully', 'invoice': invoice.to_dict()}), 201


@invoices_bp.route('/<order_id>/send', methods=['POST'])
def send_invoice(order_id):
    """Generate the invoice if needed and build the WhatsApp confirmation link"""
    order_id = validate_uuid(order_id, 'order_id')

    with get_db_session() as session:
        order = OrdersRepository(session).get_order_model(order_id)
        if not order:
            return jsonify({'error': 'Order not found'}), 404
        if order.client is None:
            return jsonify({'error': 'Cannot generate invoice: Client data missing'}), 400

        invoice = InvoicesRepository(session).get_for_order(order.id)
        if invoice is None:
            invoice = _invoice_service(session).generate_invoice(order, user_id=current_user_id())

        result = MessagingService(session, shop_name=current_app.config['SHOP_NAME'],
                                  user_id=current_user_id()).send_order_confirmation(order, invoice)
        return jsonify(result)


@invoices_bp.route('/download/<invoice_id>', methods=['GET'])
def download_invoice(invoice_id):
    invoice_id = validate_uuid(invoice_id, 'id')

    with get_db_session() as session:
        invoice = InvoicesRepository(session).get_invoice_model(invoice_id)
        if not invoice:
            return jsonify({'error': 'Invoice not found'}), 404
        s3_key, pdf_path = invoice.s3_key, invoice.pdf_path

    if s3_key:
        storage = get_storage_service()
        url = storage.presigned_url(s3_key, bucket=storage.invoice_bucket, expires_in=DOWNLOAD_URL_EXPIRY)
        return jsonify({'url': url})
    if pdf_path:
        return jsonify({'url': f"/{pdf_path}"})
    return jsonify({'error': 'PDF not found'}), 404


@invoices_bp.route('/<invoice_id>', methods=['GET'])
def get_invoice(invoice_id):
    invoice_id = validate_uuid(invoice_id, 'id')
    with get_db_session() as session:
        invoice = InvoicesRepository(session).get_invoice(invoice_id)
    if not invoice:
        return jsonify({'error': 'Invoice not found'}), 404
    return jsonify({'invoice': invoice})


@invoices_bp.route('/<invoice_id>', methods=['DELETE'])
def delete_invoice(invoice_id):
    """Delete the invoice record and its stored PDF"""
    invoice_id = validate_uuid(invoice_id, 'id')

    with get_db_session() as session:
        repo = InvoicesRepository(session)
        invoice = repo.get_invoice_model(invoice_id)
        if not invoice:
            return jsonify({'error': 'Invoice not found'}), 404
        _invoice_service(session).delete_invoice_file(invoice)
        repo.delete_invoice(invoice)
    return jsonify({'message': 'Invoice deleted successfully'})
