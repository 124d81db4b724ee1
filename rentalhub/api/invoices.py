"""
Invoice API Routes Blueprint

- /api/invoices/generate - build, render and store an invoice for a rental
- /api/invoices - list per business
- /api/invoices/<id> - read with payments, update notes/due date/status
- /api/invoices/<id>/html - rendered invoice document
"""

import logging
from flask import Blueprint, Response, current_app, request

from database.connection import get_db_session
from services.errors import RentalHubError
from services.invoice_service import InvoiceService
from rentalhub.utils.helpers import (
    error_response, get_json_body, require_business_id, server_error, success
)

logger = logging.getLogger(__name__)

invoices_bp = Blueprint('invoices_bp', __name__)


def _service(session, business_id=None):
    return InvoiceService(
        session, business_id, default_tax_rate=current_app.config.get('DEFAULT_INVOICE_TAX_RATE', 0.055)
    )


@invoices_bp.route('/api/invoices/generate', methods=['POST'])
def generate_invoice():
    try:
        with get_db_session() as session:
            invoice = _service(session).generate_invoice(get_json_body())
        return success({
            'id': invoice['id'],
            'number': invoice['invoice_number'],
            'amount': invoice['amount'],
            'dueDate': invoice['due_date'],
            'downloadUrl': f"/api/invoices/{invoice['id']}/html",
        }, 201)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Invoice generation error: {e}")
        return server_error('Failed to generate invoice')


@invoices_bp.route('/api/invoices', methods=['GET'])
def list_invoices():
    try:
        business_id = require_business_id()
        with get_db_session() as session:
            invoices, pagination = _service(session, business_id).list_invoices(
                rental_id=request.args.get('rental_id'),
                customer_id=request.args.get('customer_id'),
                status=request.args.get('status'),
                page=request.args.get('page', 1),
                limit=request.args.get('limit', 50)
            )
        return success(invoices, pagination=pagination)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error listing invoices: {e}")
        return server_error('Failed to fetch invoices')


@invoices_bp.route('/api/invoices/<invoice_id>', methods=['GET', 'PUT'])
def handle_invoice(invoice_id):
    try:
        with get_db_session() as session:
            service = _service(session, request.args.get('business_id'))
            if request.method == 'GET':
                return success(service.get_invoice(invoice_id))
            return success(service.update_invoice(invoice_id, get_json_body()))
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error handling invoice {invoice_id}: {e}")
        return server_error('Failed to process invoice request')


@invoices_bp.route('/api/invoices/<invoice_id>/html', methods=['GET'])
def invoice_html(invoice_id):
    try:
        with get_db_session() as session:
            html = _service(session, request.args.get('business_id')).get_html(invoice_id)
        return Response(html, mimetype='text/html')
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error rendering invoice {invoice_id}: {e}")
        return server_error('Failed to render invoice')
