from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from marketplace.main import app
from marketplace.api.auth import create_access_token
from marketplace.database import Base, get_db
from marketplace.models import Booking, BookingStatus, UserType
from marketplace.services import reservation as reservation_module
from marketplace.core.config import settings

from factories import make_booking, make_service, make_user


def setup_app():
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, expire_on_commit=False)

    def override_db():
        db = Session()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_db
    return Session


def seed(Session):
    db = Session()
    provider = make_user(db, 'pro@test.com', role=UserType.PROVIDER, name='Pat Pro')
    alice = make_user(db, 'alice@test.com', name='Alice')
    bob = make_user(db, 'bob@test.com', name='Bob')
    service = make_service(db, provider, title='Deep Clean', price='80.00')
    db.close()
    return provider, alice, bob, service


def auth(user):
    return {'Authorization': f'Bearer {create_access_token(user)}'}


def test_create_booking_with_client_keys():
    Session = setup_app()
    _, alice, _, service = seed(Session)
    client = TestClient(app)

    res = client.post(
        '/api/bookings',
        json={'serviceId': service.id, 'datetime': '2025-11-10T14:00:00Z', 'quantity': 2},
        headers=auth(alice),
    )

    assert res.status_code == 201
    data = res.json()
    assert data['status'] == 'pending'
    assert data['service_id'] == service.id
    assert data['user_id'] == alice.id
    assert data['quantity'] == 2
    assert datetime.fromisoformat(data['start_time'].replace('Z', '+00:00')).hour == 14
    assert datetime.fromisoformat(data['end_time'].replace('Z', '+00:00')).hour == 15


def test_create_booking_with_snake_case_and_offset():
    Session = setup_app()
    _, alice, _, service = seed(Session)
    client = TestClient(app)

    res = client.post(
        '/api/bookings',
        json={'service_id': service.id, 'start_time': '2025-11-10T16:00:00+02:00'},
        headers=auth(alice),
    )

    assert res.status_code == 201
    db = Session()
    booking = db.query(Booking).one()
    # Stored as naive UTC
    assert booking.start_time == datetime(2025, 11, 10, 14, 0)
    assert booking.quantity == 1
    db.close()


def test_overlapping_booking_returns_conflict_flag():
    Session = setup_app()
    _, alice, bob, service = seed(Session)
    client = TestClient(app)
    first = client.post(
        '/api/bookings',
        json={'serviceId': service.id, 'datetime': '2025-11-10T14:00:00Z'},
        headers=auth(alice),
    )
    assert first.status_code == 201

    res = client.post(
        '/api/bookings',
        json={'serviceId': service.id, 'datetime': '2025-11-10T14:30:00Z'},
        headers=auth(bob),
    )

    assert res.status_code == 409
    body = res.json()
    assert body['conflict'] is True
    assert body['error']

    adjacent = client.post(
        '/api/bookings',
        json={'serviceId': service.id, 'datetime': '2025-11-10T15:00:00Z'},
        headers=auth(bob),
    )
    assert adjacent.status_code == 201


def test_booking_unknown_service_returns_404():
    Session = setup_app()
    _, alice, _, _ = seed(Session)
    client = TestClient(app)

    res = client.post(
        '/api/bookings',
        json={'serviceId': 999, 'datetime': '2025-11-10T14:00:00Z'},
        headers=auth(alice),
    )

    assert res.status_code == 404
    assert res.json()['detail']['message']


def test_booking_invalid_quantity_returns_422():
    Session = setup_app()
    _, alice, _, service = seed(Session)
    client = TestClient(app)

    res = client.post(
        '/api/bookings',
        json={'serviceId': service.id, 'datetime': '2025-11-10T14:00:00Z', 'quantity': 0},
        headers=auth(alice),
    )

    assert res.status_code == 422
    assert 'quantity' in res.json()['detail']['field_errors']
    db = Session()
    assert db.query(Booking).count() == 0
    db.close()


@pytest.mark.parametrize(
    'overrides',
    [
        {'datetime': '9999-12-31T23:30:00Z'},
        {'datetime': '0001-01-01T00:30:00Z'},
        {'datetime': '0001-01-01T00:30:00+05:00'},
        {'quantity': 10**20},
        {'quantity': 2**31},
        {'serviceId': 10**20},
    ],
)
def test_booking_out_of_range_input_returns_422(overrides):
    Session = setup_app()
    _, alice, _, service = seed(Session)
    client = TestClient(app)
    payload = {'serviceId': service.id, 'datetime': '2025-11-10T14:00:00Z', 'quantity': 1}

    res = client.post('/api/bookings', json={**payload, **overrides}, headers=auth(alice))

    assert res.status_code == 422
    assert res.json()['detail']['message'] == 'Validation failed'
    db = Session()
    assert db.query(Booking).count() == 0
    db.close()


def test_booking_accepts_start_near_range_edge():
    Session = setup_app()
    _, alice, _, service = seed(Session)
    client = TestClient(app)

    res = client.post(
        '/api/bookings',
        json={'serviceId': service.id, 'datetime': '9999-12-31T22:00:00Z'},
        headers=auth(alice),
    )

    assert res.status_code == 201


def test_booking_requires_token():
    Session = setup_app()
    _, _, _, service = seed(Session)
    client = TestClient(app)

    res = client.post('/api/bookings', json={'serviceId': service.id, 'datetime': '2025-11-10T14:00:00Z'})

    assert res.status_code == 401


def test_past_start_rejected_when_enabled(monkeypatch):
    Session = setup_app()
    _, alice, _, service = seed(Session)
    monkeypatch.setattr(settings, 'BOOKING_REQUIRE_FUTURE_START', True)
    client = TestClient(app)

    res = client.post(
        '/api/bookings',
        json={'serviceId': service.id, 'datetime': '2020-01-01T10:00:00Z'},
        headers=auth(alice),
    )

    assert res.status_code == 422
    assert res.json()['detail']['field_errors'] == {'datetime': 'past'}


def test_store_failure_returns_503_and_writes_nothing(monkeypatch):
    Session = setup_app()
    _, alice, _, service = seed(Session)

    def broken(*args, **kwargs):
        raise OperationalError('SELECT', {}, Exception('database is locked'))

    monkeypatch.setattr(reservation_module, 'find_conflicts', broken)
    client = TestClient(app)

    res = client.post(
        '/api/bookings',
        json={'serviceId': service.id, 'datetime': '2025-11-10T14:00:00Z'},
        headers=auth(alice),
    )

    assert res.status_code == 503
    assert res.headers['Retry-After'] == '1'
    db = Session()
    assert db.query(Booking).count() == 0
    db.close()


def test_list_bookings_scoped_to_caller():
    Session = setup_app()
    provider, alice, bob, service = seed(Session)
    db = Session()
    make_booking(db, alice, service, datetime(2025, 11, 10, 9, 0))
    make_booking(db, alice, service, datetime(2025, 11, 11, 9, 0))
    make_booking(db, bob, service, datetime(2025, 11, 12, 9, 0))
    db.close()
    client = TestClient(app)

    mine = client.get('/api/bookings', headers=auth(alice))
    assert mine.status_code == 200
    items = mine.json()['data']
    assert [i['user_id'] for i in items] == [alice.id, alice.id]
    # Latest session first
    assert items[0]['start_time'] > items[1]['start_time']
    assert items[0]['service_title'] == 'Deep Clean'
    assert items[0]['user_name'] == 'Alice'
    assert float(items[0]['price']) == 80.0

    as_provider = client.get('/api/bookings', headers=auth(provider))
    assert len(as_provider.json()['data']) == 3

    filtered = client.get(f'/api/bookings?provider_id={provider.id}', headers=auth(provider))
    assert len(filtered.json()['data']) == 3


def test_list_bookings_rejects_foreign_filters():
    Session = setup_app()
    provider, alice, bob, _ = seed(Session)
    client = TestClient(app)

    assert client.get(f'/api/bookings?user_id={bob.id}', headers=auth(alice)).status_code == 403
    assert client.get(f'/api/bookings?provider_id={provider.id}', headers=auth(alice)).status_code == 403
    assert client.get(f'/api/bookings?user_id={alice.id}', headers=auth(alice)).status_code == 200


def test_read_booking_detail_for_participants_only():
    Session = setup_app()
    provider, alice, bob, service = seed(Session)
    db = Session()
    booking = make_booking(db, alice, service, datetime(2025, 11, 10, 9, 0))
    db.close()
    client = TestClient(app)

    res = client.get(f'/api/bookings/{booking.id}', headers=auth(provider))
    assert res.status_code == 200
    data = res.json()
    assert data['user_email'] == 'alice@test.com'
    assert data['provider_name'] == 'Pat Pro'
    assert data['provider_id'] == provider.id

    assert client.get(f'/api/bookings/{booking.id}', headers=auth(alice)).status_code == 200
    assert client.get(f'/api/bookings/{booking.id}', headers=auth(bob)).status_code == 403
    assert client.get('/api/bookings/999', headers=auth(alice)).status_code == 404


def test_patch_status_rules():
    Session = setup_app()
    provider, alice, bob, service = seed(Session)
    db = Session()
    booking = make_booking(db, alice, service, datetime(2025, 11, 10, 14, 0))
    db.close()
    client = TestClient(app)
    url = f'/api/bookings/{booking.id}'

    assert client.patch(url, json={'status': 'confirmed'}, headers=auth(alice)).status_code == 403
    assert client.patch(url, json={'status': 'cancelled'}, headers=auth(bob)).status_code == 403

    res = client.patch(url, json={'status': 'confirmed'}, headers=auth(provider))
    assert res.status_code == 200
    assert res.json()['status'] == 'confirmed'

    res = client.patch(url, json={'status': 'cancelled'}, headers=auth(alice))
    assert res.status_code == 200
    assert res.json()['status'] == 'cancelled'

    assert client.patch(url, json={'status': 'bogus'}, headers=auth(provider)).status_code == 422
    assert client.patch('/api/bookings/999', json={'status': 'cancelled'}, headers=auth(alice)).status_code == 404


def test_patch_reconfirm_into_taken_window_conflicts():
    Session = setup_app()
    provider, alice, bob, service = seed(Session)
    db = Session()
    cancelled = make_booking(db, alice, service, datetime(2025, 11, 10, 14, 0), status=BookingStatus.CANCELLED)
    make_booking(db, bob, service, datetime(2025, 11, 10, 14, 30))
    db.close()
    client = TestClient(app)

    res = client.patch(f'/api/bookings/{cancelled.id}', json={'status': 'confirmed'}, headers=auth(provider))

    assert res.status_code == 409
    assert res.json()['conflict'] is True
