"""
Tests for SMS notifications
"""
import pytest
import requests
from unittest.mock import Mock, patch

from services.errors import IntegrationNotConfigured, ValidationError
from services.notification_service import (
    NotificationService,
    SMSDeliveryError,
    normalize_phone,
    render_template,
)

TWILIO_CONFIG = {
    'TWILIO_ACCOUNT_SID': 'AC123',
    'TWILIO_AUTH_TOKEN': 'token',
    'TWILIO_PHONE_NUMBER': '+15550001111',
    'HTTP_TIMEOUT': 7,
}


def _twilio_reply(sid='SM1'):
    return Mock(json=Mock(return_value={'sid': sid, 'status': 'queued'}))


@pytest.mark.unit
class TestTemplates:
    """Tests for message templates and phone numbers"""

    def test_render_confirmation(self):
        """Test that a template is filled with the business name and args"""
        message = render_template('rental_confirmation', 'Big Iron', 'R-1', 'June 1', '324.00')
        assert message == 'Big Iron: Your rental #R-1 is confirmed for June 1. Total: $324.00. Reply STOP to opt out.'

    def test_unknown_template(self):
        """Test that unknown templates render empty"""
        assert render_template('birthday', 'Big Iron') == ''

    def test_missing_arguments(self):
        """Test that too few arguments are a validation error"""
        with pytest.raises(ValidationError):
            render_template('payment_due', 'Big Iron', '50.00')

    @pytest.mark.parametrize('raw,expected', [
        ('(555) 123-4567', '+15551234567'),
        ('15551234567', '+15551234567'),
        ('+1 555.123.4567', '+15551234567'),
    ])
    def test_normalize_phone(self, raw, expected):
        """Test E.164 normalization of US numbers"""
        assert normalize_phone(raw) == expected


@pytest.mark.unit
class TestNotificationService:
    """Tests for NotificationService"""

    @patch('services.notification_service.requests.post')
    def test_send_sms(self, mock_post):
        """Test that a message is posted to Twilio once"""
        mock_post.return_value = _twilio_reply()

        result = NotificationService(TWILIO_CONFIG).send_sms('(555) 123-4567', 'Hello')

        assert result == {'sid': 'SM1', 'status': 'queued', 'to': '+15551234567'}
        kwargs = mock_post.call_args.kwargs
        assert kwargs['data'] == {'To': '+15551234567', 'From': '+15550001111', 'Body': 'Hello'}
        assert kwargs['auth'] == ('AC123', 'token')
        assert kwargs['timeout'] == 7
        assert 'AC123' in mock_post.call_args.args[0]

    def test_requires_recipient_and_message(self):
        """Test that empty sends are rejected"""
        with pytest.raises(ValidationError):
            NotificationService(TWILIO_CONFIG).send_sms('', 'Hello')

    def test_not_configured(self):
        """Test that missing credentials raise IntegrationNotConfigured"""
        with pytest.raises(IntegrationNotConfigured):
            NotificationService({}).send_sms('5551234567', 'Hello')

    @patch('services.notification_service.requests.post')
    def test_twilio_failure(self, mock_post):
        """Test that a Twilio error is raised once as SMSDeliveryError"""
        mock_post.side_effect = requests.HTTPError('400 Client Error')

        with pytest.raises(SMSDeliveryError) as exc:
            NotificationService(TWILIO_CONFIG).send_sms('5551234567', 'Hello')

        assert exc.value.status_code == 500
        assert mock_post.call_count == 1

    @patch('services.notification_service.requests.post')
    def test_send_bulk_reports_each(self, mock_post):
        """Test that bulk sends report per-recipient outcomes"""
        mock_post.side_effect = [_twilio_reply('SM1'), requests.ConnectionError('down')]

        result = NotificationService(TWILIO_CONFIG).send_bulk(['5551234567', '5559876543'], 'Closed today')

        assert result['total'] == 2
        assert result['successful'] == 1
        assert result['failed'] == 1
        assert result['results'][0] == {'to': '5551234567', 'success': True, 'sid': 'SM1'}
        assert result['results'][1]['error'] == 'Failed to send SMS'


@pytest.mark.integration
class TestNotificationRoutes:
    """Tests for /api/notifications/sms"""

    def test_not_configured(self, client):
        """Test that the endpoint answers 500 without Twilio credentials"""
        response = client.post('/api/notifications/sms', json={'to': '5551234567', 'message': 'Hi'})
        assert response.status_code == 500
        assert response.get_json()['error'] == 'SMS service not configured'

    def test_missing_recipient(self, client):
        """Test that a recipient is required"""
        response = client.post('/api/notifications/sms', json={'message': 'Hi'})
        assert response.status_code == 400

    @patch('services.notification_service.requests.post')
    def test_send_from_template(self, mock_post, app, client):
        """Test sending a templated message"""
        app.config.update(TWILIO_CONFIG)
        mock_post.return_value = _twilio_reply()

        response = client.post('/api/notifications/sms', json={
            'to': '5551234567',
            'template': 'pickup_reminder',
            'businessName': 'Big Iron',
            'args': ['3 PM'],
        })

        assert response.status_code == 200
        assert mock_post.call_args.kwargs['data']['Body'] == (
            "Big Iron: We'll pick up your rental equipment tomorrow at 3 PM. Please have it ready."
        )

    @patch('services.notification_service.requests.post')
    def test_bulk(self, mock_post, app, client):
        """Test the bulk endpoint"""
        app.config.update(TWILIO_CONFIG)
        mock_post.return_value = _twilio_reply()

        data = client.put('/api/notifications/sms', json={
            'recipients': ['5551234567', '5559876543'], 'message': 'Yard closed Monday'
        }).get_json()['data']

        assert data['successful'] == 2
