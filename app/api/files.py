"""
Static File Routes Blueprint

Serves locally stored uploads and invoice PDFs (no auth):
- /uploads/<path>
- /invoices/<path>
"""

import os
import logging
from flask import Blueprint, send_from_directory, current_app

logger = logging.getLogger(__name__)

# Create blueprint
files_bp = Blueprint('files_bp', __name__)


@files_bp.route('/uploads/<path:filename>', methods=['GET'])
def serve_upload(filename):
    return send_from_directory(os.path.abspath(current_app.config['UPLOAD_FOLDER']), filename)


@files_bp.route('/invoices/<path:filename>', methods=['GET'])
def serve_invoice(filename):
    return send_from_directory(os.path.abspath(current_app.config['INVOICE_FOLDER']), filename)
