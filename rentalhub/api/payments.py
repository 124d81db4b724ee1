"""
Payment API Routes Blueprint (Stripe)

- /api/payments/create-intent - PaymentIntent for client-side confirmation
- /api/payments/process - charge a payment method for a rental or invoice
- /api/payments/webhook - Stripe event receiver (signature verified)
- /api/payments - list per business
"""

import logging
from flask import Blueprint, current_app, request

from database.connection import get_db_session
from services.errors import RentalHubError
from services.payment_service import PaymentService
from rentalhub.utils.helpers import (
    error_response, get_json_body, require_business_id, server_error, success
)

logger = logging.getLogger(__name__)

payments_bp = Blueprint('payments_bp', __name__)


@payments_bp.route('/api/payments/create-intent', methods=['POST'])
def create_payment_intent():
    try:
        with get_db_session() as session:
            intent = PaymentService(session, current_app.config).create_intent(get_json_body())
        return success(intent)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Payment intent error: {e}")
        return server_error('Failed to create payment intent')


@payments_bp.route('/api/payments/process', methods=['POST'])
def process_payment():
    try:
        with get_db_session() as session:
            payment = PaymentService(session, current_app.config).process_payment(get_json_body())
        return success(payment)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Payment processing error: {e}")
        return server_error('Payment processing failed')


@payments_bp.route('/api/payments/webhook', methods=['POST'])
def stripe_webhook():
    try:
        with get_db_session() as session:
            result = PaymentService(session, current_app.config).handle_webhook(
                request.get_data(), request.headers.get('Stripe-Signature')
            )
        return success(result)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Webhook error: {e}")
        return server_error('Webhook handling failed')


@payments_bp.route('/api/payments', methods=['GET'])
def list_payments():
    try:
        business_id = require_business_id()
        with get_db_session() as session:
            payments, pagination = PaymentService(session, current_app.config, business_id).list_payments(
                rental_id=request.args.get('rental_id'),
                status=request.args.get('status'),
                page=request.args.get('page', 1),
                limit=request.args.get('limit', 50)
            )
        return success(payments, pagination=pagination)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error listing payments: {e}")
        return server_error('Failed to fetch payments')
