"""
Delivery Repository - delivery and pickup runs and their effect on rentals.

A completed delivery puts a reserved rental on hire; a completed pickup
closes an active one and frees the equipment.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List

from database.models import DeliverySchedule, Rental, Staff
from services.base_repository import BaseRepository
from services.errors import NotFoundError, ValidationError
from services.pricing import parse_datetime
from services.rental_repository import RentalRepository
from validators import require, validate_choice, validate_required_fields

logger = logging.getLogger(__name__)

DELIVERY_TYPES = ('delivery', 'pickup')
DELIVERY_STATUSES = ('scheduled', 'in_transit', 'completed', 'cancelled')
REQUIRED_FIELDS = ['business_id', 'rental_id', 'type', 'scheduled_date']

UPDATABLE_FIELDS = [
    'status', 'address', 'contact_person', 'contact_phone', 'driver_id',
    'signature_data', 'photos', 'vehicle_info', 'notes',
]

# Rental transition triggered when a run of the given type completes
COMPLETION_TRANSITIONS = {
    'delivery': ('reserved', 'active'),
    'pickup': ('active', 'completed'),
}


class DeliveryRepository(BaseRepository):
    """Repository for one business's delivery schedule."""

    def list_deliveries(self, rental_id: str = None, status: str = None,
                        driver_id: str = None, date: str = None) -> List[Dict]:
        query = self._scoped(DeliverySchedule)
        if rental_id:
            query = query.filter(DeliverySchedule.rental_id == rental_id)
        if status:
            query = query.filter(DeliverySchedule.status == status)
        if driver_id:
            query = query.filter(DeliverySchedule.driver_id == driver_id)
        if date:
            day = parse_datetime(date, 'date').replace(hour=0, minute=0, second=0, microsecond=0)
            query = query.filter(
                DeliverySchedule.scheduled_date >= day,
                DeliverySchedule.scheduled_date < day + timedelta(days=1)
            )
        deliveries = query.order_by(DeliverySchedule.scheduled_date.asc()).all()
        return [d.to_dict() for d in deliveries]

    def get_model(self, delivery_id: str) -> DeliverySchedule:
        delivery = self._scoped(DeliverySchedule).filter(DeliverySchedule.id == delivery_id).first()
        if not delivery:
            raise NotFoundError('Delivery not found')
        return delivery

    def _check_driver(self, business_id: str, driver_id: str):
        if driver_id and not self.session.query(Staff.id).filter(
                Staff.id == driver_id, Staff.business_id == business_id).first():
            raise NotFoundError('Driver not found')

    def create_delivery(self, data: Dict) -> Dict:
        require(validate_required_fields(data, REQUIRED_FIELDS))
        require(validate_choice(data['type'], DELIVERY_TYPES, 'type'), 'type')
        business_id = data['business_id']

        rental = self.session.query(Rental).filter(
            Rental.id == data['rental_id'],
            Rental.business_id == business_id
        ).first()
        if not rental:
            raise NotFoundError('Rental not found')
        self._check_driver(business_id, data.get('driver_id'))

        delivery = DeliverySchedule(
            business_id=business_id,
            rental_id=rental.id,
            type=data['type'],
            scheduled_date=parse_datetime(data['scheduled_date'], 'scheduled_date'),
            address=data.get('address') or rental.delivery_address,
            contact_person=data.get('contact_person'),
            contact_phone=data.get('contact_phone'),
            driver_id=data.get('driver_id'),
            vehicle_info=data.get('vehicle_info') or {},
            photos=[],
            status='scheduled',
            notes=data.get('notes')
        )
        self.session.add(delivery)
        self.session.flush()
        logger.info(f"Scheduled {delivery.type} {delivery.id} for rental {rental.id}")
        return delivery.to_dict()

    def update_delivery(self, delivery_id: str, data: Dict) -> Dict:
        """Driver update. Completing the run moves the rental along."""
        delivery = self.get_model(delivery_id)
        if data.get('status') is not None:
            require(validate_choice(data['status'], DELIVERY_STATUSES, 'status'), 'status')
        if 'driver_id' in data:
            self._check_driver(delivery.business_id, data['driver_id'])

        patch = dict(data)
        if patch.get('scheduled_date'):
            delivery.scheduled_date = parse_datetime(patch['scheduled_date'], 'scheduled_date')
        if patch.get('actual_date'):
            delivery.actual_date = parse_datetime(patch['actual_date'], 'actual_date')

        completing = patch.get('status') == 'completed' and delivery.status != 'completed'
        self._apply_fields(delivery, patch, UPDATABLE_FIELDS)

        if completing:
            if not delivery.actual_date:
                delivery.actual_date = datetime.utcnow()
            self._advance_rental(delivery)

        self.session.flush()
        logger.info(f"Updated delivery: {delivery_id}")
        return delivery.to_dict()

    def _advance_rental(self, delivery: DeliverySchedule):
        expected, target = COMPLETION_TRANSITIONS[delivery.type]
        rentals = RentalRepository(self.session, delivery.business_id)
        rental = rentals.get_model(delivery.rental_id)
        if rental.status != expected:
            logger.info(f"Rental {rental.id} is {rental.status}, leaving it after {delivery.type} {delivery.id}")
            return
        rentals.change_status(rental, target)
        if target == 'completed':
            rental.actual_return_date = delivery.actual_date

    def delete_delivery(self, delivery_id: str) -> bool:
        delivery = self.get_model(delivery_id)
        if delivery.status == 'completed':
            raise ValidationError('Cannot delete a completed delivery')
        self.session.delete(delivery)
        self.session.flush()
        logger.info(f"Deleted delivery: {delivery_id}")
        return True
