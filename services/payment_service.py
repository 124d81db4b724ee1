"""
Payment Service - Stripe PaymentIntents, Connect fees and webhook sync.

Each Stripe call is made once; failures surface to the caller as
PaymentError instead of being retried.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Tuple

import stripe
from sqlalchemy import func

from database.models import Business, Customer, Invoice, Payment, Rental
from services.base_repository import BaseRepository
from services.errors import IntegrationNotConfigured, NotFoundError, PaymentError, ValidationError
from validators import require, validate_required_fields

logger = logging.getLogger(__name__)

PAYMENT_TYPES = ('deposit', 'rental', 'final', 'other')


def to_cents(amount: float) -> int:
    return int(round(float(amount) * 100))


def application_fee_cents(amount: float, percent: float = 0.025, fixed_cents: int = 30) -> int:
    """Platform fee: percent of the charge plus a fixed amount, in cents."""
    return int(round(float(amount) * percent * 100)) + int(fixed_cents)


def payment_status_from_intent(intent_status: str) -> str:
    """Collapse Stripe's PaymentIntent states into succeeded/pending/failed."""
    if intent_status == 'succeeded':
        return 'succeeded'
    if intent_status == 'processing' or (intent_status or '').startswith('requires_'):
        return 'pending'
    return 'failed'


def _positive_amount(value) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError('Amount must be a positive number', field='amount')
    if amount <= 0:
        raise ValidationError('Amount must be a positive number', field='amount')
    return amount


class PaymentService(BaseRepository):
    """Stripe-backed payments for one business."""

    def __init__(self, session, config: Mapping[str, Any], business_id: str = None):
        super().__init__(session, business_id)
        self.config = config
        if not config.get('STRIPE_SECRET_KEY'):
            raise IntegrationNotConfigured('Payment service not configured')
        stripe.api_key = config['STRIPE_SECRET_KEY']

    # =========================================================================
    # PAYMENT INTENTS
    # =========================================================================

    def create_intent(self, data: Dict) -> Dict:
        """Client-confirmed PaymentIntent for the checkout form."""
        amount = _positive_amount(data.get('amount'))
        currency = (data.get('currency') or 'usd').lower()
        metadata = {k: str(v) for k, v in (data.get('metadata') or {}).items()}
        for key in ('businessId', 'customerId', 'rentalId'):
            if data.get(key):
                metadata.setdefault(key, str(data[key]))

        try:
            intent = stripe.PaymentIntent.create(
                amount=to_cents(amount),
                currency=currency,
                metadata=metadata,
                automatic_payment_methods={'enabled': True},
            )
        except stripe.StripeError as e:
            logger.error(f"PaymentIntent creation failed: {e}")
            raise PaymentError('Payment setup failed')

        logger.info(f"Created PaymentIntent {intent.id} for {amount} {currency}")
        return {'clientSecret': intent.client_secret, 'paymentIntentId': intent.id}

    def _stripe_customer_id(self, customer: Customer) -> str:
        if customer.stripe_customer_id:
            return customer.stripe_customer_id
        stripe_customer = stripe.Customer.create(
            email=customer.email,
            name=customer.contact_name or customer.name,
            phone=customer.phone or None,
            metadata={'business_id': customer.business_id, 'customer_id': customer.id},
        )
        customer.stripe_customer_id = stripe_customer.id
        self.session.flush()
        logger.info(f"Created Stripe customer {stripe_customer.id} for {customer.id}")
        return stripe_customer.id

    def process_payment(self, data: Dict) -> Dict:
        """
        Charge a saved card for a rental, deposit or invoice.

        Card declines raise PaymentError with status 402; other Stripe
        failures raise PaymentError with status 400.
        """
        require(validate_required_fields(data, ['businessId', 'customerId', 'amount', 'paymentMethodId']))
        amount = _positive_amount(data['amount'])
        payment_type = data.get('paymentType') or data.get('type') or 'rental'
        if payment_type not in PAYMENT_TYPES:
            payment_type = 'other'

        business = self.session.get(Business, data['businessId'])
        if business is None:
            raise NotFoundError('Business not found')
        customer = self.session.query(Customer).filter(
            Customer.id == data['customerId'],
            Customer.business_id == business.id
        ).first()
        if customer is None:
            raise NotFoundError('Customer not found')

        rental_id = data.get('rentalId')
        if rental_id and not self.session.query(Rental.id).filter(
                Rental.id == rental_id,
                Rental.business_id == business.id,
                Rental.customer_id == customer.id).first():
            raise NotFoundError('Rental not found')
        invoice_id = data.get('invoiceId')
        if invoice_id and not self.session.query(Invoice.id).filter(
                Invoice.id == invoice_id,
                Invoice.business_id == business.id,
                Invoice.customer_id == customer.id).first():
            raise NotFoundError('Invoice not found')
        fee = application_fee_cents(
            amount,
            self.config.get('PLATFORM_FEE_PERCENT', 0.025),
            self.config.get('PLATFORM_FEE_FIXED_CENTS', 30),
        )

        try:
            stripe_customer_id = self._stripe_customer_id(customer)
            stripe.PaymentMethod.attach(data['paymentMethodId'], customer=stripe_customer_id)

            params = {
                'amount': to_cents(amount),
                'currency': (data.get('currency') or 'usd').lower(),
                'customer': stripe_customer_id,
                'payment_method': data['paymentMethodId'],
                'confirm': True,
                'automatic_payment_methods': {'enabled': True, 'allow_redirects': 'never'},
                'metadata': {
                    'business_id': business.id,
                    'customer_id': customer.id,
                    'rental_id': rental_id or '',
                    'invoice_id': invoice_id or '',
                    'payment_type': payment_type,
                },
                'description': f"{payment_type} payment for {business.name} - {customer.contact_name or customer.name}",
            }
            if business.stripe_account_id:
                params['application_fee_amount'] = fee
                params['transfer_data'] = {'destination': business.stripe_account_id}

            intent = stripe.PaymentIntent.create(**params)
        except stripe.CardError as e:
            logger.warning(f"Card declined for customer {customer.id}: {e.user_message or e}")
            raise PaymentError(e.user_message or str(e), status_code=402)
        except stripe.StripeError as e:
            logger.error(f"Stripe payment failed for customer {customer.id}: {e}")
            raise PaymentError(e.user_message or 'Payment processing failed')

        payment = Payment(
            business_id=business.id,
            customer_id=customer.id,
            rental_id=rental_id,
            invoice_id=invoice_id,
            amount=amount,
            currency=params['currency'],
            payment_type=payment_type,
            status=payment_status_from_intent(intent.status),
            stripe_payment_intent_id=intent.id,
            application_fee=fee,
        )
        self.session.add(payment)
        if payment.status == 'succeeded':
            self._apply_success(payment)
        self.session.flush()

        logger.info(f"Payment {payment.id} ({intent.id}) {payment.status}: {amount}")
        return {
            'id': payment.id,
            'status': intent.status,
            'amount': amount,
            'paymentIntentId': intent.id,
            'clientSecret': intent.client_secret,
        }

    def _apply_success(self, payment: Payment):
        """Mark the deposit paid, and the linked invoice once it is covered in full."""
        self.session.flush()
        if payment.rental_id and payment.payment_type == 'deposit':
            rental = self.session.query(Rental).filter(
                Rental.id == payment.rental_id,
                Rental.business_id == payment.business_id
            ).first()
            if rental is not None:
                rental.deposit_paid = True
        if payment.invoice_id:
            invoice = self.session.query(Invoice).filter(
                Invoice.id == payment.invoice_id,
                Invoice.business_id == payment.business_id
            ).first()
            if invoice is None:
                return
            paid = self.session.query(func.coalesce(func.sum(Payment.amount), 0)).filter(
                Payment.invoice_id == invoice.id,
                Payment.status == 'succeeded'
            ).scalar()
            if float(paid) >= (invoice.amount or 0):
                invoice.status = 'paid'
                invoice.paid_at = datetime.utcnow()
            else:
                logger.info(f"Invoice {invoice.id} partially paid: {paid} of {invoice.amount}")

    # =========================================================================
    # WEBHOOK
    # =========================================================================

    def handle_webhook(self, payload: bytes, signature: str) -> Dict:
        if not signature:
            raise ValidationError('Missing Stripe signature')
        secret = self.config.get('STRIPE_WEBHOOK_SECRET')
        if not secret:
            raise IntegrationNotConfigured('Webhook secret not configured')
        try:
            event = stripe.Webhook.construct_event(payload, signature, secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning(f"Rejected Stripe webhook: {e}")
            raise ValidationError('Invalid webhook signature')

        event_type = event['type']
        intent = event['data']['object']
        logger.info(f"Stripe webhook received: {event_type}")

        if event_type == 'payment_intent.succeeded':
            for payment in self._payments_for_intent(intent['id']):
                payment.status = 'succeeded'
                self._apply_success(payment)
        elif event_type == 'payment_intent.payment_failed':
            error = intent.get('last_payment_error') or {}
            for payment in self._payments_for_intent(intent['id']):
                payment.status = 'failed'
                payment.failure_reason = error.get('message') or 'Payment failed'
        else:
            logger.debug(f"Unhandled Stripe event type: {event_type}")

        self.session.flush()
        return {'received': True, 'type': event_type}

    def _payments_for_intent(self, intent_id: str) -> List[Payment]:
        return self.session.query(Payment).filter(Payment.stripe_payment_intent_id == intent_id).all()

    # =========================================================================
    # READS
    # =========================================================================

    def list_payments(self, rental_id: str = None, status: str = None,
                      page=1, limit=50) -> Tuple[List[Dict], Dict]:
        query = self._scoped(Payment)
        if rental_id:
            query = query.filter(Payment.rental_id == rental_id)
        if status:
            query = query.filter(Payment.status == status)
        query = query.order_by(Payment.created_at.desc())
        items, pagination = self._paginate(query, page, limit)
        return [p.to_dict() for p in items], pagination
