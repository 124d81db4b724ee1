"""
Invoice Service - numbering, line items and HTML rendering for rental invoices.
"""

import html
import logging
import re
from datetime import datetime, timedelta
from typing import Dict, List, Tuple

from database.models import Business, Customer, Invoice, Rental
from services.base_repository import BaseRepository
from services.errors import NotFoundError, ValidationError
from services.pricing import parse_datetime
from validators import require, validate_required_fields

logger = logging.getLogger(__name__)

INVOICE_TYPES = ('rental', 'deposit', 'final')
INVOICE_STATUSES = ('draft', 'sent', 'paid', 'void')

NUMBER_PREFIXES = {'rental': 'INV', 'deposit': 'DEP', 'final': 'FIN'}

PAYMENT_TERM_DAYS = {'prepaid': 0, 'net_15': 15, 'net_30': 30, 'net_60': 60}
DEFAULT_TERM_DAYS = 30

DELIVERY_PICKUP_FEE = 150.0
DEFAULT_PRIMARY_COLOR = '#3B82F6'

INVOICE_NOTES = {
    'deposit': ("This deposit is required to confirm your equipment rental. "
                "The deposit will be applied to your final invoice."),
    'rental': ("Thank you for choosing our equipment rental services. "
               "Payment is due according to your payment terms."),
    'final': ("Final invoice for your equipment rental. "
              "Your deposit has been applied to this invoice."),
}
DEFAULT_NOTES = "Thank you for your business!"

_TRAILING_DIGITS = re.compile(r'(\d+)$')


def due_date_for_terms(payment_terms: str, issued: datetime = None) -> datetime:
    issued = issued or datetime.utcnow()
    return issued + timedelta(days=PAYMENT_TERM_DAYS.get(payment_terms, DEFAULT_TERM_DAYS))


def build_line_items(invoice_type: str, rental: Rental, equipment_name: str) -> List[Dict]:
    """Line items for one rental. Each item has description, quantity, rate, amount."""
    if invoice_type == 'deposit':
        deposit = rental.deposit_amount or 0
        return [{
            'description': f"Deposit for {equipment_name}",
            'quantity': 1,
            'rate': deposit,
            'amount': deposit,
        }]

    days = rental.total_days or 0
    items = [{
        'description': f"{equipment_name} Rental",
        'quantity': days,
        'rate': rental.daily_rate,
        'amount': round(days * (rental.daily_rate or 0), 2),
    }]
    if rental.delivery_address:
        items.append({
            'description': 'Delivery & Pickup',
            'quantity': 1,
            'rate': DELIVERY_PICKUP_FEE,
            'amount': DELIVERY_PICKUP_FEE,
        })
    if invoice_type == 'final' and rental.deposit_amount:
        items.append({
            'description': 'Deposit Applied',
            'quantity': 1,
            'rate': -rental.deposit_amount,
            'amount': -rental.deposit_amount,
        })
    return items


def _money(value) -> str:
    return f"${(value or 0):,.2f}"


def render_invoice_html(invoice: Dict, business: Dict, customer: Dict, rental: Dict) -> str:
    """Standalone printable HTML for an invoice. All values are escaped."""
    esc = lambda value: html.escape(str(value if value is not None else ''))
    color = esc((business.get('branding') or {}).get('primary_color') or DEFAULT_PRIMARY_COLOR)

    rows = ''.join(
        f"<tr><td>{esc(item['description'])}</td>"
        f"<td class=\"num\">{esc(item['quantity'])}</td>"
        f"<td class=\"num\">{esc(_money(item['rate']))}</td>"
        f"<td class=\"num\">{esc(_money(item['amount']))}</td></tr>"
        for item in invoice['line_items']
    )
    period = ''
    if rental:
        period = (f"<p><strong>Rental:</strong> {esc(rental.get('rental_number'))} "
                  f"({esc((rental.get('start_date') or '')[:10])} to "
                  f"{esc((rental.get('end_date') or '')[:10])})</p>")

    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Invoice {esc(invoice['invoice_number'])}</title>
<style>
body {{ font-family: Arial, sans-serif; color: #1f2937; margin: 40px; }}
.header {{ border-bottom: 4px solid {color}; padding-bottom: 16px; margin-bottom: 24px; }}
.header h1 {{ color: {color}; margin: 0; }}
table {{ width: 100%; border-collapse: collapse; margin-top: 16px; }}
th {{ background: {color}; color: #fff; text-align: left; padding: 8px; }}
td {{ border-bottom: 1px solid #e5e7eb; padding: 8px; }}
.num {{ text-align: right; }}
.totals {{ margin-top: 16px; text-align: right; }}
.total {{ font-size: 1.25em; color: {color}; font-weight: bold; }}
</style>
</head>
<body>
<div class="header">
<h1>{esc(business.get('name'))}</h1>
<p>{esc(business.get('address'))}<br>{esc(business.get('phone'))} {esc(business.get('email'))}</p>
</div>
<h2>Invoice {esc(invoice['invoice_number'])}</h2>
<p><strong>Date:</strong> {esc((invoice.get('created_at') or '')[:10])}<br>
<strong>Due:</strong> {esc(invoice.get('due_date'))}</p>
<p><strong>Bill to:</strong><br>{esc(customer.get('company_name') or customer.get('name'))}<br>
{esc(customer.get('contact_name'))}<br>{esc(customer.get('email'))}<br>{esc(customer.get('address'))}</p>
{period}
<table>
<thead><tr><th>Description</th><th class="num">Qty</th><th class="num">Rate</th><th class="num">Amount</th></tr></thead>
<tbody>{rows}</tbody>
</table>
<div class="totals">
<p>Subtotal: {esc(_money(invoice['subtotal']))}</p>
<p>Tax: {esc(_money(invoice['tax_amount']))}</p>
<p class="total">Total: {esc(_money(invoice['amount']))}</p>
</div>
<p>{esc(invoice.get('notes'))}</p>
</body>
</html>"""


class InvoiceService(BaseRepository):
    """Generates and tracks invoices for one business."""

    def __init__(self, session, business_id: str = None, default_tax_rate: float = 0.055):
        super().__init__(session, business_id)
        self.default_tax_rate = default_tax_rate

    def next_invoice_number(self, business_id: str, invoice_type: str) -> str:
        """The sequence is shared by all invoice types and restarts each year."""
        year = datetime.utcnow().year
        latest = self.session.query(Invoice.invoice_number).filter(
            Invoice.business_id == business_id,
            Invoice.invoice_number.like(f"%-{year}-%")
        ).order_by(Invoice.created_at.desc(), Invoice.invoice_number.desc()).first()

        sequence = 1
        if latest:
            match = _TRAILING_DIGITS.search(latest[0])
            if match:
                sequence = int(match.group(1)) + 1
        prefix = NUMBER_PREFIXES.get(invoice_type, 'INV')
        return f"{prefix}-{year}-{sequence:04d}"

    def generate_invoice(self, data: Dict) -> Dict:
        """
        Build, render and store an invoice for a rental.

        Accepts camelCase (businessId) or snake_case (business_id) keys.
        Returns the stored invoice dict; the route shapes the response.
        """
        payload = {
            'business_id': data.get('businessId', data.get('business_id')),
            'rental_id': data.get('rentalId', data.get('rental_id')),
            'customer_id': data.get('customerId', data.get('customer_id')),
        }
        require(validate_required_fields(payload, ['business_id', 'rental_id', 'customer_id']))
        invoice_type = data.get('type') or 'rental'
        if invoice_type not in INVOICE_TYPES:
            raise ValidationError(f"Invalid invoice type: {invoice_type}", field='type')

        business = self.session.get(Business, payload['business_id'])
        if business is None:
            raise NotFoundError('Business not found')
        rental = self.session.query(Rental).filter(
            Rental.id == payload['rental_id'],
            Rental.business_id == business.id
        ).first()
        if rental is None:
            raise NotFoundError('Rental not found')
        customer = self.session.query(Customer).filter(
            Customer.id == payload['customer_id'],
            Customer.business_id == business.id
        ).first()
        if customer is None:
            raise NotFoundError('Customer not found')

        equipment_name = rental.equipment.name if rental.equipment else 'Equipment'
        line_items = build_line_items(invoice_type, rental, equipment_name)
        tax_rate = business.tax_rate if business.tax_rate is not None else self.default_tax_rate
        subtotal = round(sum(item['amount'] for item in line_items), 2)
        tax_amount = round(subtotal * tax_rate, 2)
        now = datetime.utcnow()

        invoice = Invoice(
            business_id=business.id,
            customer_id=customer.id,
            rental_id=rental.id,
            invoice_number=self.next_invoice_number(business.id, invoice_type),
            invoice_type=invoice_type,
            subtotal=subtotal,
            tax_amount=tax_amount,
            amount=round(subtotal + tax_amount, 2),
            due_date=due_date_for_terms(customer.payment_terms, now),
            status='sent',
            line_items=line_items,
            notes=INVOICE_NOTES.get(invoice_type, DEFAULT_NOTES),
            created_at=now,
        )
        self.session.add(invoice)
        self.session.flush()

        invoice.html = render_invoice_html(
            invoice.to_dict(), business.to_dict(), customer.to_dict(), rental.to_dict()
        )
        self.session.flush()
        logger.info(f"Generated {invoice_type} invoice {invoice.invoice_number} for rental {rental.id}")
        return invoice.to_dict()

    def list_invoices(self, rental_id: str = None, customer_id: str = None,
                      status: str = None, page=1, limit=50) -> Tuple[List[Dict], Dict]:
        query = self._scoped(Invoice)
        if rental_id:
            query = query.filter(Invoice.rental_id == rental_id)
        if customer_id:
            query = query.filter(Invoice.customer_id == customer_id)
        if status:
            query = query.filter(Invoice.status == status)
        query = query.order_by(Invoice.created_at.desc())
        items, pagination = self._paginate(query, page, limit)
        return [i.to_dict() for i in items], pagination

    def get_model(self, invoice_id: str) -> Invoice:
        invoice = self._scoped(Invoice).filter(Invoice.id == invoice_id).first()
        if not invoice:
            raise NotFoundError('Invoice not found')
        return invoice

    def get_invoice(self, invoice_id: str) -> Dict:
        invoice = self.get_model(invoice_id)
        data = invoice.to_dict()
        data['payments'] = [p.to_dict() for p in invoice.payments]
        return data

    def get_html(self, invoice_id: str) -> str:
        return self.get_model(invoice_id).html or ''

    def update_status(self, invoice_id: str, status: str) -> Dict:
        if status not in INVOICE_STATUSES:
            raise ValidationError(f"Invalid invoice status: {status}", field='status')
        invoice = self.get_model(invoice_id)
        invoice.status = status
        invoice.paid_at = datetime.utcnow() if status == 'paid' else None
        invoice.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Invoice {invoice.invoice_number} marked {status}")
        return invoice.to_dict()

    def update_invoice(self, invoice_id: str, data: Dict) -> Dict:
        invoice = self.get_model(invoice_id)
        if 'notes' in data:
            invoice.notes = data['notes']
        if data.get('due_date'):
            invoice.due_date = parse_datetime(data['due_date'], 'due_date')
        if data.get('status') and data['status'] != invoice.status:
            return self.update_status(invoice_id, data['status'])
        invoice.updated_at = datetime.utcnow()
        self.session.flush()
        return invoice.to_dict()
