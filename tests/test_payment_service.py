"""
Tests for Stripe payments: intents, charges, fees and webhook sync
"""
import pytest
import stripe
from types import SimpleNamespace
from unittest.mock import patch

from database.models import Customer, Invoice, Payment, Rental
from services.errors import IntegrationNotConfigured, NotFoundError, PaymentError, ValidationError
from services.payment_service import (
    PaymentService,
    application_fee_cents,
    payment_status_from_intent,
    to_cents,
)

STRIPE_CONFIG = {
    'STRIPE_SECRET_KEY': 'sk_test_123',
    'STRIPE_WEBHOOK_SECRET': 'whsec_123',
    'PLATFORM_FEE_PERCENT': 0.025,
    'PLATFORM_FEE_FIXED_CENTS': 30,
}


def _intent(status='succeeded', intent_id='pi_123'):
    return SimpleNamespace(id=intent_id, status=status, client_secret=f'{intent_id}_secret')


@pytest.mark.unit
class TestPaymentHelpers:
    """Tests for amount and status helpers"""

    def test_to_cents_rounds(self):
        """Test that dollar amounts convert to whole cents"""
        assert to_cents(324.0) == 32400
        assert to_cents(19.999) == 2000

    def test_application_fee(self):
        """Test that the platform fee is 2.5% plus 30 cents"""
        assert application_fee_cents(100) == 280

    @pytest.mark.parametrize('intent_status,expected', [
        ('succeeded', 'succeeded'),
        ('processing', 'pending'),
        ('requires_action', 'pending'),
        ('canceled', 'failed'),
    ])
    def test_status_mapping(self, intent_status, expected):
        """Test that Stripe intent states collapse to three payment states"""
        assert payment_status_from_intent(intent_status) == expected

    def test_requires_secret_key(self, db_session):
        """Test that the service refuses to start without Stripe credentials"""
        with pytest.raises(IntegrationNotConfigured):
            PaymentService(db_session, {})


@pytest.mark.integration
class TestCreateIntent:
    """Tests for PaymentService.create_intent"""

    @patch('services.payment_service.stripe.PaymentIntent.create')
    def test_create_intent(self, mock_create, db_session):
        """Test that the intent is created in cents with metadata"""
        mock_create.return_value = _intent('requires_payment_method')

        result = PaymentService(db_session, STRIPE_CONFIG).create_intent({
            'amount': 324, 'businessId': 'biz_1', 'metadata': {'note': 'deposit'}
        })

        assert result == {'clientSecret': 'pi_123_secret', 'paymentIntentId': 'pi_123'}
        kwargs = mock_create.call_args.kwargs
        assert kwargs['amount'] == 32400
        assert kwargs['currency'] == 'usd'
        assert kwargs['metadata'] == {'note': 'deposit', 'businessId': 'biz_1'}

    def test_rejects_non_positive_amount(self, db_session):
        """Test that zero amounts are refused before calling Stripe"""
        with pytest.raises(ValidationError):
            PaymentService(db_session, STRIPE_CONFIG).create_intent({'amount': 0})

    @patch('services.payment_service.stripe.PaymentIntent.create')
    def test_stripe_failure_is_not_retried(self, mock_create, db_session):
        """Test that a Stripe error surfaces once as PaymentError"""
        mock_create.side_effect = stripe.APIConnectionError('network down')

        with pytest.raises(PaymentError):
            PaymentService(db_session, STRIPE_CONFIG).create_intent({'amount': 10})
        assert mock_create.call_count == 1


@pytest.mark.integration
class TestProcessPayment:
    """Tests for PaymentService.process_payment"""

    def _payload(self, business, customer, **extra):
        payload = {
            'businessId': business.id,
            'customerId': customer.id,
            'amount': 100,
            'paymentMethodId': 'pm_card_visa',
        }
        payload.update(extra)
        return payload

    @patch('services.payment_service.stripe.PaymentIntent.create')
    @patch('services.payment_service.stripe.PaymentMethod.attach')
    @patch('services.payment_service.stripe.Customer.create')
    def test_successful_deposit(self, mock_customer, mock_attach, mock_intent,
                                db_session, business, customer, reserved_rental):
        """Test that a succeeded deposit payment is stored and marks the deposit paid"""
        mock_customer.return_value = SimpleNamespace(id='cus_123')
        mock_intent.return_value = _intent('succeeded')

        result = PaymentService(db_session, STRIPE_CONFIG).process_payment(
            self._payload(business, customer, rentalId=reserved_rental['id'], paymentType='deposit')
        )
        db_session.commit()

        assert result['status'] == 'succeeded'
        payment = db_session.get(Payment, result['id'])
        assert payment.status == 'succeeded'
        assert payment.application_fee == 280
        assert db_session.get(Rental, reserved_rental['id']).deposit_paid is True
        assert customer.stripe_customer_id == 'cus_123'
        mock_attach.assert_called_once_with('pm_card_visa', customer='cus_123')
        assert 'transfer_data' not in mock_intent.call_args.kwargs

    @patch('services.payment_service.stripe.PaymentIntent.create')
    @patch('services.payment_service.stripe.PaymentMethod.attach')
    def test_connect_account_gets_fee_and_transfer(self, mock_attach, mock_intent,
                                                   db_session, business, customer):
        """Test that a connected business receives the transfer minus the platform fee"""
        business.stripe_account_id = 'acct_123'
        customer.stripe_customer_id = 'cus_existing'
        db_session.commit()
        mock_intent.return_value = _intent('processing')

        result = PaymentService(db_session, STRIPE_CONFIG).process_payment(self._payload(business, customer))

        kwargs = mock_intent.call_args.kwargs
        assert kwargs['application_fee_amount'] == 280
        assert kwargs['transfer_data'] == {'destination': 'acct_123'}
        assert kwargs['customer'] == 'cus_existing'
        assert db_session.get(Payment, result['id']).status == 'pending'

    @patch('services.payment_service.stripe.PaymentIntent.create')
    @patch('services.payment_service.stripe.PaymentMethod.attach')
    def test_card_declined_is_402(self, mock_attach, mock_intent, db_session, business, customer):
        """Test that card declines raise PaymentError with status 402"""
        customer.stripe_customer_id = 'cus_existing'
        db_session.commit()
        mock_intent.side_effect = stripe.CardError('Your card was declined.', None, 'card_declined')

        with pytest.raises(PaymentError) as exc:
            PaymentService(db_session, STRIPE_CONFIG).process_payment(self._payload(business, customer))

        assert exc.value.status_code == 402
        assert exc.value.message == 'Your card was declined.'

    @patch('services.payment_service.stripe.PaymentIntent.create')
    def test_other_tenant_invoice_rejected(self, mock_intent, db_session, business, customer,
                                           other_business, reserved_rental):
        """Test that an invoice of another business cannot be paid, and no charge is made"""
        invoice = Invoice(business_id=business.id, customer_id=customer.id,
                          rental_id=reserved_rental['id'], invoice_number='INV-2024-0001',
                          amount=50, status='sent')
        outsider = Customer(business_id=other_business.id, name='Outsider', email='out@side.com',
                            stripe_customer_id='cus_out')
        db_session.add_all([invoice, outsider])
        db_session.commit()

        with pytest.raises(NotFoundError):
            PaymentService(db_session, STRIPE_CONFIG).process_payment(
                self._payload(other_business, outsider, amount=1, invoiceId=invoice.id)
            )

        mock_intent.assert_not_called()
        assert invoice.status == 'sent'

    @patch('services.payment_service.stripe.PaymentIntent.create')
    def test_other_tenant_rental_rejected(self, mock_intent, db_session, other_business, reserved_rental):
        """Test that a rental of another business cannot be charged against"""
        outsider = Customer(business_id=other_business.id, name='Outsider', email='out@side.com',
                            stripe_customer_id='cus_out')
        db_session.add(outsider)
        db_session.commit()

        with pytest.raises(NotFoundError):
            PaymentService(db_session, STRIPE_CONFIG).process_payment(
                self._payload(other_business, outsider, rentalId=reserved_rental['id'], paymentType='deposit')
            )
        mock_intent.assert_not_called()

    @patch('services.payment_service.stripe.PaymentIntent.create')
    @patch('services.payment_service.stripe.PaymentMethod.attach')
    def test_partial_payment_leaves_invoice_open(self, mock_attach, mock_intent, db_session,
                                                 business, customer, reserved_rental):
        """Test that an invoice is only paid once payments cover its amount"""
        customer.stripe_customer_id = 'cus_existing'
        invoice = Invoice(business_id=business.id, customer_id=customer.id,
                          rental_id=reserved_rental['id'], invoice_number='INV-2024-0001',
                          amount=50, status='sent')
        db_session.add(invoice)
        db_session.commit()
        service = PaymentService(db_session, STRIPE_CONFIG)

        mock_intent.return_value = _intent('succeeded', 'pi_1')
        service.process_payment(self._payload(business, customer, amount=20, invoiceId=invoice.id))
        assert invoice.status == 'sent'

        mock_intent.return_value = _intent('succeeded', 'pi_2')
        service.process_payment(self._payload(business, customer, amount=30, invoiceId=invoice.id))
        assert invoice.status == 'paid'
        assert invoice.paid_at is not None

    def test_missing_fields(self, db_session):
        """Test that required payment fields are validated"""
        with pytest.raises(ValidationError):
            PaymentService(db_session, STRIPE_CONFIG).process_payment({'amount': 10})


@pytest.mark.integration
class TestWebhook:
    """Tests for PaymentService.handle_webhook"""

    def _pending_payment(self, db_session, business, customer, invoice_id=None):
        payment = Payment(
            business_id=business.id, customer_id=customer.id, invoice_id=invoice_id,
            amount=50, status='pending', stripe_payment_intent_id='pi_hook'
        )
        db_session.add(payment)
        db_session.commit()
        return payment

    def test_missing_signature(self, db_session):
        """Test that unsigned webhooks are rejected"""
        with pytest.raises(ValidationError):
            PaymentService(db_session, STRIPE_CONFIG).handle_webhook(b'{}', None)

    @patch('services.payment_service.stripe.Webhook.construct_event')
    def test_bad_signature(self, mock_construct, db_session):
        """Test that signature verification failures are a 400"""
        mock_construct.side_effect = stripe.SignatureVerificationError('bad', 'sig')

        with pytest.raises(ValidationError) as exc:
            PaymentService(db_session, STRIPE_CONFIG).handle_webhook(b'{}', 'sig')
        assert exc.value.message == 'Invalid webhook signature'

    @patch('services.payment_service.stripe.Webhook.construct_event')
    def test_succeeded_event_marks_invoice_paid(self, mock_construct, db_session,
                                                business, customer, reserved_rental):
        """Test that payment_intent.succeeded settles the payment and its invoice"""
        invoice = Invoice(business_id=business.id, customer_id=customer.id,
                          rental_id=reserved_rental['id'], invoice_number='INV-2024-0001',
                          amount=50, status='sent')
        db_session.add(invoice)
        db_session.commit()
        payment = self._pending_payment(db_session, business, customer, invoice.id)
        mock_construct.return_value = {
            'type': 'payment_intent.succeeded',
            'data': {'object': {'id': 'pi_hook'}},
        }

        result = PaymentService(db_session, STRIPE_CONFIG).handle_webhook(b'{}', 'sig')
        db_session.commit()

        assert result == {'received': True, 'type': 'payment_intent.succeeded'}
        assert payment.status == 'succeeded'
        assert invoice.status == 'paid'
        assert invoice.paid_at is not None

    @patch('services.payment_service.stripe.Webhook.construct_event')
    def test_failed_event_records_reason(self, mock_construct, db_session, business, customer):
        """Test that payment_intent.payment_failed stores the failure message"""
        payment = self._pending_payment(db_session, business, customer)
        mock_construct.return_value = {
            'type': 'payment_intent.payment_failed',
            'data': {'object': {'id': 'pi_hook', 'last_payment_error': {'message': 'Insufficient funds'}}},
        }

        PaymentService(db_session, STRIPE_CONFIG).handle_webhook(b'{}', 'sig')

        assert payment.status == 'failed'
        assert payment.failure_reason == 'Insufficient funds'


@pytest.mark.integration
class TestPaymentRoutes:
    """Tests for /api/payments"""

    def test_not_configured(self, client):
        """Test that payment routes answer 500 without Stripe credentials"""
        response = client.post('/api/payments/create-intent', json={'amount': 10})
        assert response.status_code == 500
        assert response.get_json()['error'] == 'Payment service not configured'

    @patch('services.payment_service.stripe.PaymentIntent.create')
    def test_create_intent_route(self, mock_create, app, client):
        """Test the create-intent endpoint with Stripe configured"""
        app.config['STRIPE_SECRET_KEY'] = 'sk_test_123'
        mock_create.return_value = _intent('requires_payment_method')

        response = client.post('/api/payments/create-intent', json={'amount': 25.5})

        assert response.status_code == 200
        assert response.get_json()['data']['paymentIntentId'] == 'pi_123'
        assert mock_create.call_args.kwargs['amount'] == 2550
