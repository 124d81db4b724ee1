"""
Rental availability and pricing rules.

Pure functions only: the repositories feed them dates and rates and persist
the results. Money is rounded to cents at the end of each calculation.
"""

import math
from datetime import date, datetime, timedelta
from typing import Dict, Optional, Union

from dateutil import parser as date_parser

from services.errors import ValidationError

DateLike = Union[str, date, datetime]

# Rentals in these states hold the equipment
BLOCKING_STATUSES = ('active', 'reserved')

RENTAL_STATUSES = ('reserved', 'active', 'completed', 'cancelled')

# Allowed lifecycle moves; completed and cancelled are terminal
STATUS_TRANSITIONS = {
    'reserved': ('active', 'cancelled'),
    'active': ('completed', 'cancelled'),
    'completed': (),
    'cancelled': (),
}

WEEK_DAYS = 7
MONTH_DAYS = 30


def parse_datetime(value: DateLike, field: str = 'date') -> datetime:
    """Coerce an ISO string, date or datetime into a naive datetime."""
    if value is None or value == '':
        raise ValidationError(f"{field} is required", field=field)
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        try:
            parsed = date_parser.parse(str(value))
        except (ValueError, OverflowError):
            raise ValidationError(f"Invalid {field}: {value}", field=field)
    if parsed.tzinfo is not None:
        parsed = parsed.replace(tzinfo=None) - (parsed.utcoffset() or timedelta(0))
    return parsed


def to_money(value) -> float:
    """Parse a rate or fee, rejecting negatives."""
    if value is None or value == '':
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid amount: {value}")
    if amount < 0 or math.isnan(amount):
        raise ValidationError(f"Amount cannot be negative: {value}")
    return amount


def calculate_total_days(start: DateLike, end: DateLike) -> int:
    """Whole days between start and end, rounding partial days up."""
    start_dt = parse_datetime(start, 'start_date')
    end_dt = parse_datetime(end, 'end_date')
    if end_dt < start_dt:
        raise ValidationError('End date must be after start date', field='end_date')
    return math.ceil((end_dt - start_dt) / timedelta(days=1))


def calculate_rental_totals(start: DateLike, end: DateLike, daily_rate, tax_rate: float,
                            delivery_fee=0, pickup_fee=0) -> Dict[str, float]:
    """
    Derived rental fields.

    subtotal = days * daily_rate, tax = subtotal * tax_rate,
    total = subtotal + tax + delivery_fee + pickup_fee
    """
    days = calculate_total_days(start, end)
    rate = to_money(daily_rate)
    subtotal = days * rate
    tax = subtotal * float(tax_rate)
    total = subtotal + tax + to_money(delivery_fee) + to_money(pickup_fee)
    return {
        'total_days': days,
        'subtotal': round(subtotal, 2),
        'tax_amount': round(tax, 2),
        'total_amount': round(total, 2),
    }


def ranges_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Inclusive overlap: touching ranges conflict."""
    return a_start <= b_end and a_end >= b_start


def equipment_status_for_rental(rental_status: str) -> str:
    return 'rented' if rental_status in BLOCKING_STATUSES else 'available'


def validate_transition(current: str, new: str):
    if new not in RENTAL_STATUSES:
        raise ValidationError(f"Invalid rental status: {new}", field='status')
    if new == current:
        return
    if new not in STATUS_TRANSITIONS.get(current, ()):
        raise ValidationError(f"Cannot change rental status from {current} to {new}", field='status')


def best_rate(days: int, daily_rate, weekly_rate=None, monthly_rate=None) -> Dict[str, float]:
    """
    Cheapest combination of monthly, weekly and daily tiers for a quote.

    Missing tiers are priced as multiples of the daily rate. Each month block
    is also compared against pricing the same days with smaller tiers.
    """
    daily = to_money(daily_rate)
    weekly = to_money(weekly_rate) if weekly_rate else daily * WEEK_DAYS
    monthly = to_money(monthly_rate) if monthly_rate else daily * MONTH_DAYS

    def weekly_cost(remaining: int) -> float:
        weeks, rest = divmod(remaining, WEEK_DAYS)
        # A partial week can still be cheaper at the weekly rate
        return weeks * weekly + min(rest * daily, weekly if rest else 0)

    best: Optional[Dict[str, float]] = None
    for months in range(days // MONTH_DAYS + 2):
        covered = months * MONTH_DAYS
        remaining = max(days - covered, 0)
        cost = months * monthly + weekly_cost(remaining)
        if best is None or cost < best['amount']:
            best = {'months': months, 'amount': round(cost, 2)}
        if covered >= days:
            break

    flat = round(days * daily, 2)
    return {
        'days': days,
        'daily_total': flat,
        'best_total': best['amount'],
        'savings': round(flat - best['amount'], 2),
    }
