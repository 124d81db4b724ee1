"""
Tests for invoice generation, numbering and rendering
"""
import pytest
from datetime import datetime

from database.models import Invoice
from services.errors import NotFoundError, ValidationError
from services.invoice_service import InvoiceService, due_date_for_terms, render_invoice_html


def _generate(db_session, business, customer, rental, invoice_type='rental'):
    invoice = InvoiceService(db_session).generate_invoice({
        'businessId': business.id,
        'rentalId': rental['id'],
        'customerId': customer.id,
        'type': invoice_type,
    })
    db_session.commit()
    return invoice


@pytest.mark.unit
class TestInvoiceHelpers:
    """Tests for due dates and HTML rendering"""

    def test_due_date_follows_terms(self):
        """Test that payment terms set the due date offset"""
        issued = datetime(2024, 6, 1)
        assert due_date_for_terms('net_15', issued) == datetime(2024, 6, 16)
        assert due_date_for_terms('prepaid', issued) == issued
        assert due_date_for_terms('unknown', issued) == datetime(2024, 7, 1)

    def test_render_escapes_values(self):
        """Test that customer supplied text is HTML escaped"""
        invoice = {
            'invoice_number': 'INV-2024-0001',
            'line_items': [{'description': '<b>Lift</b>', 'quantity': 1, 'rate': 10, 'amount': 10}],
            'subtotal': 10, 'tax_amount': 0.55, 'amount': 10.55,
            'due_date': '2024-07-01', 'created_at': '2024-06-01T00:00:00', 'notes': None,
        }
        html = render_invoice_html(
            invoice,
            {'name': 'Big Iron', 'branding': {'primary_color': '#FF6600'}},
            {'name': '<script>alert(1)</script>'},
            None,
        )

        assert '<script>' not in html
        assert '&lt;script&gt;' in html
        assert '&lt;b&gt;Lift&lt;/b&gt;' in html
        assert '#FF6600' in html
        assert '$10.55' in html


@pytest.mark.integration
class TestGenerateInvoice:
    """Tests for InvoiceService.generate_invoice"""

    def test_rental_invoice_totals(self, db_session, business, customer, reserved_rental):
        """Test line items, tax and due date of a rental invoice"""
        invoice = _generate(db_session, business, customer, reserved_rental)

        assert invoice['invoice_number'] == f"INV-{datetime.utcnow().year}-0001"
        assert [item['amount'] for item in invoice['line_items']] == [300.0, 150.0]
        assert invoice['subtotal'] == 450.0
        assert invoice['tax_amount'] == 24.75
        assert invoice['amount'] == 474.75
        assert invoice['status'] == 'sent'

    def test_deposit_invoice(self, db_session, business, customer, reserved_rental):
        """Test that a deposit invoice bills only the deposit"""
        invoice = _generate(db_session, business, customer, reserved_rental, 'deposit')

        assert invoice['invoice_number'].startswith('DEP-')
        assert invoice['subtotal'] == 200.0
        assert invoice['amount'] == 211.0

    def test_final_invoice_applies_deposit(self, db_session, business, customer, reserved_rental):
        """Test that the final invoice subtracts the deposit"""
        invoice = _generate(db_session, business, customer, reserved_rental, 'final')

        assert invoice['line_items'][-1]['amount'] == -200.0
        assert invoice['subtotal'] == 250.0

    def test_numbers_increment(self, db_session, business, customer, reserved_rental):
        """Test that invoice numbers are sequential per business"""
        _generate(db_session, business, customer, reserved_rental)
        second = _generate(db_session, business, customer, reserved_rental)

        assert second['invoice_number'].endswith('-0002')

    def test_numbers_restart_each_year(self, db_session, business, customer, reserved_rental):
        """Test that numbering starts again at 0001 in a new year"""
        db_session.add(Invoice(business_id=business.id, customer_id=customer.id,
                               rental_id=reserved_rental['id'], invoice_number='INV-1999-0041',
                               amount=10, status='paid', created_at=datetime.utcnow()))
        db_session.commit()

        invoice = _generate(db_session, business, customer, reserved_rental)

        assert invoice['invoice_number'] == f"INV-{datetime.utcnow().year}-0001"

    def test_invalid_type(self, db_session, business, customer, reserved_rental):
        """Test that unknown invoice types are rejected"""
        with pytest.raises(ValidationError):
            _generate(db_session, business, customer, reserved_rental, 'proforma')

    def test_rental_must_belong_to_business(self, db_session, business, customer):
        """Test that an unknown rental raises NotFoundError"""
        with pytest.raises(NotFoundError):
            _generate(db_session, business, customer, {'id': 'rent_missing'})

    def test_mark_paid(self, db_session, business, customer, reserved_rental):
        """Test that marking paid stamps paid_at"""
        invoice = _generate(db_session, business, customer, reserved_rental)

        updated = InvoiceService(db_session).update_status(invoice['id'], 'paid')

        assert updated['status'] == 'paid'
        assert updated['paid_at'] is not None


@pytest.mark.integration
class TestInvoiceRoutes:
    """Tests for /api/invoices"""

    def test_generate_route_shape(self, client, business, customer, reserved_rental):
        """Test that the generate endpoint returns the download link"""
        response = client.post('/api/invoices/generate', json={
            'businessId': business.id,
            'rentalId': reserved_rental['id'],
            'customerId': customer.id,
        })

        assert response.status_code == 201
        data = response.get_json()['data']
        assert data['amount'] == 474.75
        assert data['downloadUrl'] == f"/api/invoices/{data['id']}/html"

    def test_html_download(self, client, business, customer, reserved_rental):
        """Test that the rendered invoice is served as HTML"""
        data = client.post('/api/invoices/generate', json={
            'businessId': business.id,
            'rentalId': reserved_rental['id'],
            'customerId': customer.id,
        }).get_json()['data']

        response = client.get(data['downloadUrl'])

        assert response.status_code == 200
        assert response.mimetype == 'text/html'
        assert data['number'].encode() in response.data

    def test_generate_requires_ids(self, client):
        """Test that missing ids answer 400"""
        response = client.post('/api/invoices/generate', json={})
        assert response.status_code == 400

    def test_list_invoices(self, client, business, customer, reserved_rental):
        """Test that invoices are listed per business"""
        client.post('/api/invoices/generate', json={
            'businessId': business.id, 'rentalId': reserved_rental['id'], 'customerId': customer.id,
        })

        body = client.get('/api/invoices', query_string={'business_id': business.id}).get_json()

        assert body['pagination']['total'] == 1
