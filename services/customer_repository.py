"""
Customer Repository - database access for a business's customers.
Email is unique per business; deletes are refused while rentals are live.
"""

import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from database.models import Customer, Rental
from services.base_repository import BaseRepository
from services.errors import ConflictError, DeleteGuardError, NotFoundError
from services.pricing import BLOCKING_STATUSES
from validators import sanitize_string, validate_customer_payload

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = [
    'name', 'contact_name', 'company_name', 'email', 'phone', 'address',
    'billing_address', 'tax_id', 'driver_license', 'emergency_contact',
    'payment_methods', 'payment_terms', 'credit_limit', 'status', 'notes',
    'custom_fields',
]


def normalize_email(email: Optional[str]) -> Optional[str]:
    return email.strip().lower() if isinstance(email, str) else email


class CustomerRepository(BaseRepository):
    """Repository for customer records of one business."""

    def list_customers(self, status: str = None, search: str = None,
                       page=1, limit=50) -> Tuple[List[Dict], Dict]:
        query = self._scoped(Customer)
        if status:
            query = query.filter(Customer.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Customer.name.ilike(pattern),
                Customer.email.ilike(pattern),
                Customer.company_name.ilike(pattern)
            ))
        query = query.order_by(Customer.created_at.desc())
        customers, pagination = self._paginate(query, page, limit)
        return [c.to_dict() for c in customers], pagination

    def get_model(self, customer_id: str) -> Customer:
        customer = self._scoped(Customer).filter(Customer.id == customer_id).first()
        if not customer:
            raise NotFoundError('Customer not found')
        return customer

    def get_customer(self, customer_id: str) -> Dict:
        """Customer with its rentals, newest first."""
        customer = self.get_model(customer_id)
        data = customer.to_dict()
        rentals = sorted(customer.rentals, key=lambda r: r.created_at, reverse=True)
        data['rentals'] = [r.to_dict() for r in rentals]
        return data

    def _email_taken(self, business_id: str, email: str, exclude_id: str = None) -> bool:
        query = self.session.query(Customer.id).filter(
            Customer.business_id == business_id,
            Customer.email == email
        )
        if exclude_id:
            query = query.filter(Customer.id != exclude_id)
        return query.first() is not None

    def create_customer(self, data: Dict) -> Dict:
        validate_customer_payload(data)
        business_id = data['business_id']
        email = normalize_email(data['email'])

        if self._email_taken(business_id, email):
            raise ConflictError('Customer with this email already exists', field='email')

        customer = Customer(
            business_id=business_id,
            name=sanitize_string(data['name'], 255),
            contact_name=data.get('contact_name'),
            company_name=data.get('company_name') or data.get('company'),
            email=email,
            phone=data.get('phone'),
            address=data.get('address'),
            billing_address=data.get('billing_address'),
            tax_id=data.get('tax_id'),
            driver_license=data.get('driver_license'),
            emergency_contact=data.get('emergency_contact') or {},
            payment_methods=data.get('payment_methods') or [],
            payment_terms=data.get('payment_terms') or 'net_30',
            credit_limit=float(data.get('credit_limit') or 0),
            status=data.get('status') or 'active',
            notes=data.get('notes'),
            custom_fields=data.get('custom_fields') or {}
        )
        self.session.add(customer)
        try:
            self.session.flush()
        except IntegrityError:
            # Lost a race with a concurrent insert of the same email
            raise ConflictError('Customer with this email already exists', field='email')

        logger.info(f"Created customer: {customer.id}")
        return customer.to_dict()

    def update_customer(self, customer_id: str, data: Dict) -> Dict:
        customer = self.get_model(customer_id)
        validate_customer_payload(data, partial=True)

        if data.get('email') is not None:
            data = dict(data, email=normalize_email(data['email']))
            if data['email'] != customer.email and self._email_taken(
                    customer.business_id, data['email'], exclude_id=customer.id):
                raise ConflictError('Customer with this email already exists', field='email')
        if 'company' in data and 'company_name' not in data:
            data = dict(data, company_name=data['company'])

        changes = self._apply_fields(customer, data, UPDATABLE_FIELDS)
        try:
            self.session.flush()
        except IntegrityError:
            raise ConflictError('Customer with this email already exists', field='email')

        logger.info(f"Updated customer: {customer_id} ({', '.join(changes) or 'no changes'})")
        return customer.to_dict()

    def has_blocking_rentals(self, customer_id: str) -> bool:
        return self.session.query(Rental.id).filter(
            Rental.customer_id == customer_id,
            Rental.status.in_(BLOCKING_STATUSES)
        ).first() is not None

    def delete_customer(self, customer_id: str) -> bool:
        customer = self.get_model(customer_id)
        if self.has_blocking_rentals(customer_id):
            raise DeleteGuardError('Cannot delete customer with active rentals')

        self.session.delete(customer)
        self.session.flush()
        logger.info(f"Deleted customer: {customer_id}")
        return True
