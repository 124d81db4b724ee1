"""
Tests for rental booking, availability and lifecycle endpoints
"""
import pytest

from database.models import Equipment, Rental


def _create(client, payload):
    return client.post('/api/rentals', json=payload)


@pytest.mark.integration
class TestCreateRental:
    """Tests for POST /api/rentals"""

    def test_create_rental_computes_totals(self, client, db_session, rental_payload, equipment):
        """Test that booking prices the rental and marks the equipment rented"""
        response = _create(client, rental_payload)

        assert response.status_code == 201
        body = response.get_json()
        assert body['success'] is True
        rental = body['data']
        assert rental['total_days'] == 3
        assert rental['subtotal'] == 300.0
        assert rental['tax_amount'] == 24.0
        assert rental['total_amount'] == 324.0
        assert rental['status'] == 'reserved'
        assert rental['rental_number'].startswith('R')
        assert rental['deposit_amount'] == 200.0

        db_session.expire_all()
        assert db_session.get(Equipment, equipment.id).status == 'rented'

    def test_business_tax_override(self, client, db_session, business, rental_payload):
        """Test that a business tax_rate setting replaces the default"""
        business.settings = {'tax_rate': 0.1}
        db_session.commit()

        rental = _create(client, rental_payload).get_json()['data']

        assert rental['tax_amount'] == 30.0
        assert rental['total_amount'] == 330.0

    def test_overlapping_booking_rejected(self, client, rental_payload):
        """Test that a second booking touching the first is refused"""
        assert _create(client, rental_payload).status_code == 201

        overlapping = dict(rental_payload, start_date='2024-06-04', end_date='2024-06-06')
        response = _create(client, overlapping)

        assert response.status_code == 400
        assert response.get_json() == {
            'success': False,
            'error': 'Equipment is not available for the selected dates',
        }

    def test_missing_fields(self, client, rental_payload):
        """Test that missing required fields are listed"""
        payload = dict(rental_payload)
        del payload['customer_id']

        response = _create(client, payload)

        assert response.status_code == 400
        assert 'customer_id' in response.get_json()['error']

    def test_unknown_customer(self, client, rental_payload):
        """Test that an unknown customer answers 404"""
        response = _create(client, dict(rental_payload, customer_id='cust_missing'))
        assert response.status_code == 404
        assert response.get_json()['error'] == 'Customer not found'

    def test_equipment_in_maintenance_not_bookable(self, client, db_session, equipment, rental_payload):
        """Test that equipment under maintenance cannot be booked"""
        equipment.status = 'maintenance'
        db_session.commit()

        response = _create(client, rental_payload)

        assert response.status_code == 400

    def test_reversed_dates_rejected(self, client, rental_payload):
        """Test that end before start is a validation error"""
        response = _create(client, dict(rental_payload, start_date='2024-06-05', end_date='2024-06-01'))
        assert response.status_code == 400
        assert response.get_json()['error'] == 'End date must be after start date'


@pytest.mark.integration
class TestAvailabilityAndQuote:
    """Tests for availability checks and quotes"""

    def test_availability_reports_conflicts(self, client, reserved_rental, equipment):
        """Test that an overlapping range lists the blocking rental"""
        response = client.get('/api/rentals/availability', query_string={
            'equipment_id': equipment.id,
            'start_date': '2024-06-02',
            'end_date': '2024-06-03',
        })

        data = response.get_json()['data']
        assert data['available'] is False
        assert data['conflicts'][0]['id'] == reserved_rental['id']

    def test_availability_free_range(self, client, reserved_rental, equipment):
        """Test that a later range is available"""
        response = client.get('/api/rentals/availability', query_string={
            'equipment_id': equipment.id,
            'start_date': '2024-07-01',
            'end_date': '2024-07-03',
        })
        assert response.get_json()['data']['available'] is True

    def test_availability_requires_equipment(self, client):
        """Test that the equipment id is required"""
        response = client.get('/api/rentals/availability')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Equipment ID is required'

    def test_quote_does_not_write(self, client, db_session, rental_payload):
        """Test that a quote prices the booking without creating a rental"""
        response = client.post('/api/rentals/quote', json=rental_payload)

        data = response.get_json()['data']
        assert data['total_amount'] == 324.0
        assert data['available'] is True
        assert data['tiered']['days'] == 3
        assert db_session.query(Rental).count() == 0


@pytest.mark.integration
class TestRentalLifecycle:
    """Tests for status changes and deletes"""

    def test_list_requires_business(self, client):
        """Test that listing without business_id is a 400"""
        response = client.get('/api/rentals')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Business ID is required'

    def test_list_includes_related(self, client, business, reserved_rental):
        """Test that listed rentals embed customer and equipment"""
        body = client.get('/api/rentals', query_string={'business_id': business.id}).get_json()

        assert body['pagination']['total'] == 1
        assert body['data'][0]['customer']['name'] == 'ABC Construction'
        assert body['data'][0]['equipment']['name'] == 'CAT 320 Excavator'

    def test_get_rental_with_related(self, client, reserved_rental):
        """Test that a single rental includes invoices and payments"""
        data = client.get(f"/api/rentals/{reserved_rental['id']}").get_json()['data']
        assert data['invoices'] == []
        assert data['payments'] == []
        assert data['delivery_schedules'] == []

    def test_complete_frees_equipment(self, client, db_session, reserved_rental, equipment):
        """Test that reserved -> active -> completed releases the equipment"""
        url = f"/api/rentals/{reserved_rental['id']}"
        assert client.put(url, json={'status': 'active'}).status_code == 200

        data = client.put(url, json={'status': 'completed'}).get_json()['data']

        assert data['status'] == 'completed'
        assert data['actual_return_date'] is not None
        db_session.expire_all()
        assert db_session.get(Equipment, equipment.id).status == 'available'

    def test_complete_frees_equipment_with_later_reservation(self, client, db_session, rental_payload, equipment):
        """Test that completion frees the equipment even when a later booking exists"""
        first = client.post('/api/rentals', json=rental_payload).get_json()['data']
        later = dict(rental_payload, start_date='2024-07-01', end_date='2024-07-03')
        assert client.post('/api/rentals', json=later).status_code == 201

        url = f"/api/rentals/{first['id']}"
        client.put(url, json={'status': 'active'})
        client.put(url, json={'status': 'completed'})

        db_session.expire_all()
        assert db_session.get(Equipment, equipment.id).status == 'available'

    def test_invalid_transition(self, client, reserved_rental):
        """Test that reserved cannot jump to completed"""
        response = client.put(f"/api/rentals/{reserved_rental['id']}", json={'status': 'completed'})
        assert response.status_code == 400

    def test_update_dates_recomputes_totals(self, client, reserved_rental):
        """Test that moving the end date reprices the rental"""
        response = client.put(f"/api/rentals/{reserved_rental['id']}", json={
            'end_date': '2024-06-06T09:00:00'
        })
        data = response.get_json()['data']
        assert data['total_days'] == 5
        assert data['subtotal'] == 500.0

    def test_cannot_delete_active_rental(self, client, reserved_rental):
        """Test that active rentals are protected from deletion"""
        url = f"/api/rentals/{reserved_rental['id']}"
        client.put(url, json={'status': 'active'})

        response = client.delete(url)

        assert response.status_code == 400
        assert response.get_json()['error'] == 'Cannot delete active rental'

    def test_delete_reserved_releases_equipment(self, client, db_session, reserved_rental, equipment):
        """Test that deleting a reservation frees the equipment"""
        response = client.delete(f"/api/rentals/{reserved_rental['id']}")

        assert response.status_code == 200
        assert response.get_json()['data'] == {'id': reserved_rental['id']}
        db_session.expire_all()
        assert db_session.get(Equipment, equipment.id).status == 'available'

    def test_get_missing_rental(self, client):
        """Test that unknown rentals answer 404"""
        response = client.get('/api/rentals/rent_missing')
        assert response.status_code == 404
        assert response.get_json()['error'] == 'Rental not found'
