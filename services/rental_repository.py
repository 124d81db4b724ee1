"""
Rental Repository - bookings, availability and lifecycle side effects.

The availability check and the insert run inside the caller's transaction,
after the equipment row has been locked. Two requests booking the same item
therefore serialize on that lock instead of both passing the overlap query.
"""

import logging
import time
from datetime import datetime
from typing import Dict, List, Tuple

from database.models import Business, Customer, Equipment, Rental
from services.base_repository import BaseRepository
from services.equipment_repository import EquipmentRepository
from services.errors import ConflictError, DeleteGuardError, NotFoundError, ValidationError
from services import pricing
from validators import require, validate_required_fields

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ['business_id', 'customer_id', 'equipment_id', 'start_date', 'end_date', 'daily_rate']

UNAVAILABLE_MESSAGE = 'Equipment is not available for the selected dates'

# Plain fields a PUT may change without recomputation
PATCHABLE_FIELDS = [
    'delivery_required', 'delivery_address', 'pickup_required', 'notes',
    'terms_accepted', 'signature_data', 'deposit_amount', 'deposit_paid',
]


def generate_rental_number() -> str:
    """R followed by the last six digits of the millisecond clock."""
    return f"R{str(int(time.time() * 1000))[-6:]}"


class RentalRepository(BaseRepository):
    """Repository for rentals, scoped to one business when business_id is set."""

    def __init__(self, session, business_id: str = None, default_tax_rate: float = 0.08):
        super().__init__(session, business_id)
        self.default_tax_rate = default_tax_rate

    # =========================================================================
    # READS
    # =========================================================================

    def list_rentals(self, customer_id: str = None, equipment_id: str = None,
                     status: str = None, start_date=None, end_date=None,
                     page=1, limit=50) -> Tuple[List[Dict], Dict]:
        query = self._scoped(Rental)
        if customer_id:
            query = query.filter(Rental.customer_id == customer_id)
        if equipment_id:
            query = query.filter(Rental.equipment_id == equipment_id)
        if status:
            query = query.filter(Rental.status == status)
        if start_date:
            query = query.filter(Rental.start_date >= pricing.parse_datetime(start_date, 'start_date'))
        if end_date:
            query = query.filter(Rental.end_date <= pricing.parse_datetime(end_date, 'end_date'))
        query = query.order_by(Rental.created_at.desc())

        rentals, pagination = self._paginate(query, page, limit)
        items = []
        for rental in rentals:
            data = rental.to_dict()
            data['customer'] = rental.customer.to_dict() if rental.customer else None
            data['equipment'] = rental.equipment.to_dict() if rental.equipment else None
            items.append(data)
        return items, pagination

    def get_model(self, rental_id: str) -> Rental:
        rental = self._scoped(Rental).filter(Rental.id == rental_id).first()
        if not rental:
            raise NotFoundError('Rental not found')
        return rental

    def get_rental(self, rental_id: str) -> Dict:
        rental = self.get_model(rental_id)
        data = rental.to_dict()
        data['customer'] = rental.customer.to_dict() if rental.customer else None
        data['equipment'] = rental.equipment.to_dict() if rental.equipment else None
        data['invoices'] = [i.to_dict() for i in rental.invoices]
        data['payments'] = [p.to_dict() for p in rental.payments]
        data['delivery_schedules'] = [
            d.to_dict() for d in sorted(rental.delivery_schedules, key=lambda d: d.scheduled_date)
        ]
        return data

    # =========================================================================
    # AVAILABILITY & PRICING
    # =========================================================================

    def find_conflicts(self, equipment_id: str, start: datetime, end: datetime,
                       exclude_id: str = None) -> List[Rental]:
        """Blocking rentals whose [start, end] overlaps the requested range."""
        query = self.session.query(Rental).filter(
            Rental.equipment_id == equipment_id,
            Rental.status.in_(pricing.BLOCKING_STATUSES),
            Rental.start_date <= end,
            Rental.end_date >= start
        )
        if exclude_id:
            query = query.filter(Rental.id != exclude_id)
        return query.order_by(Rental.start_date).all()

    def check_availability(self, equipment_id: str, start_date, end_date) -> Dict:
        start = pricing.parse_datetime(start_date, 'start_date')
        end = pricing.parse_datetime(end_date, 'end_date')
        if end < start:
            raise ValidationError('End date must be after start date', field='end_date')
        EquipmentRepository(self.session, self.business_id).get_model(equipment_id)
        conflicts = self.find_conflicts(equipment_id, start, end)
        return {
            'equipment_id': equipment_id,
            'available': not conflicts,
            'conflicts': [
                {'id': r.id, 'rental_number': r.rental_number, 'status': r.status,
                 'start_date': r.start_date.isoformat(), 'end_date': r.end_date.isoformat()}
                for r in conflicts
            ],
        }

    def _tax_rate_for(self, business_id: str) -> float:
        business = self.session.get(Business, business_id)
        if business is None:
            raise NotFoundError('Business not found')
        rate = business.tax_rate
        return rate if rate is not None else self.default_tax_rate

    def quote(self, data: Dict) -> Dict:
        """Price a prospective rental without writing anything."""
        require(validate_required_fields(data, REQUIRED_FIELDS))
        equipment = EquipmentRepository(self.session, data['business_id']).get_model(data['equipment_id'])
        start = pricing.parse_datetime(data['start_date'], 'start_date')
        end = pricing.parse_datetime(data['end_date'], 'end_date')

        totals = pricing.calculate_rental_totals(
            start, end, data['daily_rate'], self._tax_rate_for(data['business_id']),
            data.get('delivery_fee'), data.get('pickup_fee')
        )
        totals['available'] = not self.find_conflicts(equipment.id, start, end)
        totals['tiered'] = pricing.best_rate(
            totals['total_days'], equipment.daily_rate, equipment.weekly_rate, equipment.monthly_rate
        )
        return totals

    # =========================================================================
    # WRITES
    # =========================================================================

    def create_rental(self, data: Dict) -> Dict:
        """
        Book equipment for a customer.

        Raises ValidationError for bad input, NotFoundError for unknown
        customer/equipment and ConflictError when the dates overlap a live
        rental on the same equipment.
        """
        require(validate_required_fields(data, REQUIRED_FIELDS))
        business_id = data['business_id']

        customer = self.session.query(Customer).filter(
            Customer.id == data['customer_id'],
            Customer.business_id == business_id
        ).first()
        if not customer:
            raise NotFoundError('Customer not found')

        equipment = EquipmentRepository(self.session, business_id).get_model(
            data['equipment_id'], lock=True
        )
        if equipment.status in ('maintenance', 'inactive'):
            raise ConflictError(UNAVAILABLE_MESSAGE)

        start = pricing.parse_datetime(data['start_date'], 'start_date')
        end = pricing.parse_datetime(data['end_date'], 'end_date')
        totals = pricing.calculate_rental_totals(
            start, end, data['daily_rate'], self._tax_rate_for(business_id),
            data.get('delivery_fee'), data.get('pickup_fee')
        )

        if self.find_conflicts(equipment.id, start, end):
            raise ConflictError(UNAVAILABLE_MESSAGE)

        deposit = data.get('deposit', data.get('deposit_amount'))
        rental = Rental(
            business_id=business_id,
            customer_id=customer.id,
            equipment_id=equipment.id,
            rental_number=generate_rental_number(),
            start_date=start,
            end_date=end,
            daily_rate=pricing.to_money(data['daily_rate']),
            deposit_amount=pricing.to_money(deposit) if deposit is not None else (equipment.deposit_amount or 0),
            delivery_required=bool(data.get('delivery_required', False)),
            delivery_address=data.get('delivery_address'),
            delivery_fee=pricing.to_money(data.get('delivery_fee')),
            pickup_required=bool(data.get('pickup_required', False)),
            pickup_fee=pricing.to_money(data.get('pickup_fee')),
            status='reserved',
            notes=data.get('notes'),
            terms_accepted=bool(data.get('terms_accepted', False)),
            **totals
        )
        self.session.add(rental)
        equipment.status = 'rented'
        self.session.flush()

        logger.info(f"Created rental {rental.id} ({rental.rental_number}) for equipment {equipment.id}")
        return rental.to_dict()

    def update_rental(self, rental_id: str, data: Dict) -> Dict:
        rental = self.get_model(rental_id)

        reprice_keys = ('start_date', 'end_date', 'daily_rate', 'delivery_fee', 'pickup_fee')
        if any(key in data for key in reprice_keys):
            if rental.status not in pricing.BLOCKING_STATUSES:
                raise ValidationError(f"Cannot change dates or pricing of a {rental.status} rental")
            start = pricing.parse_datetime(data.get('start_date', rental.start_date), 'start_date')
            end = pricing.parse_datetime(data.get('end_date', rental.end_date), 'end_date')
            daily_rate = data.get('daily_rate', rental.daily_rate)
            delivery_fee = data.get('delivery_fee', rental.delivery_fee)
            pickup_fee = data.get('pickup_fee', rental.pickup_fee)
            totals = pricing.calculate_rental_totals(
                start, end, daily_rate, self._tax_rate_for(rental.business_id), delivery_fee, pickup_fee
            )

            if start != rental.start_date or end != rental.end_date:
                # Lock before re-checking so a concurrent booking cannot slip in
                EquipmentRepository(self.session, rental.business_id).get_model(rental.equipment_id, lock=True)
                if self.find_conflicts(rental.equipment_id, start, end, exclude_id=rental.id):
                    raise ConflictError(UNAVAILABLE_MESSAGE)

            rental.start_date = start
            rental.end_date = end
            rental.daily_rate = pricing.to_money(daily_rate)
            rental.delivery_fee = pricing.to_money(delivery_fee)
            rental.pickup_fee = pricing.to_money(pickup_fee)
            for key, value in totals.items():
                setattr(rental, key, value)

        if data.get('actual_return_date'):
            rental.actual_return_date = pricing.parse_datetime(data['actual_return_date'], 'actual_return_date')

        patch = dict(data)
        if 'deposit' in patch and 'deposit_amount' not in patch:
            patch['deposit_amount'] = patch['deposit']
        if 'deposit_amount' in patch:
            patch['deposit_amount'] = pricing.to_money(patch['deposit_amount'])
        self._apply_fields(rental, patch, PATCHABLE_FIELDS)

        new_status = data.get('status')
        if new_status and new_status != rental.status:
            self.change_status(rental, new_status)

        rental.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Updated rental: {rental_id}")
        return rental.to_dict()

    def change_status(self, rental: Rental, new_status: str):
        """Apply a lifecycle transition and move the equipment status with it."""
        pricing.validate_transition(rental.status, new_status)
        old_status = rental.status
        rental.status = new_status

        if new_status == 'completed' and not rental.actual_return_date:
            rental.actual_return_date = datetime.utcnow()

        equipment = self.session.get(Equipment, rental.equipment_id)
        if equipment is not None and equipment.status not in ('maintenance', 'inactive'):
            equipment.status = pricing.equipment_status_for_rental(new_status)

        logger.info(f"Rental {rental.id} status {old_status} -> {new_status}")

    def delete_rental(self, rental_id: str) -> bool:
        rental = self.get_model(rental_id)
        if rental.status == 'active':
            raise DeleteGuardError('Cannot delete active rental')

        if rental.status == 'reserved':
            equipment = self.session.get(Equipment, rental.equipment_id)
            if equipment is not None and equipment.status == 'rented':
                equipment.status = 'available'

        self.session.delete(rental)
        self.session.flush()
        logger.info(f"Deleted rental: {rental_id}")
        return True

