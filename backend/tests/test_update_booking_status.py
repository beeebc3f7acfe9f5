from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from marketplace.database import Base
from marketplace.errors import Forbidden, NotFound, SlotUnavailable
from marketplace.models import BookingStatus, UserType
from marketplace.services.reservation import reservations

from factories import make_booking, make_service, make_user

START = datetime(2030, 1, 1, 12, 0)


def setup_db():
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, expire_on_commit=False)
    return Session()


def setup_booking(status=BookingStatus.PENDING):
    db = setup_db()
    provider = make_user(db, 'pro@test.com', role=UserType.PROVIDER)
    other_provider = make_user(db, 'other@test.com', role=UserType.PROVIDER)
    customer = make_user(db, 'c@test.com')
    service = make_service(db, provider)
    booking = make_booking(db, customer, service, START, status=status)
    return db, provider, other_provider, customer, booking


@pytest.mark.parametrize(
    "new_status",
    [BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingStatus.COMPLETED],
)
def test_provider_can_set_status(new_status):
    db, provider, _, _, booking = setup_booking()

    updated = reservations.set_status(db, booking_id=booking.id, caller=provider, new_status=new_status)

    assert updated.status == new_status


def test_provider_can_complete_pending_booking_directly():
    db, provider, _, _, booking = setup_booking()

    updated = reservations.set_status(
        db, booking_id=booking.id, caller=provider, new_status=BookingStatus.COMPLETED
    )

    assert updated.status == BookingStatus.COMPLETED


def test_provider_cannot_reset_to_pending():
    db, provider, _, _, booking = setup_booking(status=BookingStatus.CONFIRMED)

    with pytest.raises(Forbidden):
        reservations.set_status(db, booking_id=booking.id, caller=provider, new_status=BookingStatus.PENDING)


def test_customer_can_cancel():
    db, _, _, customer, booking = setup_booking()

    updated = reservations.set_status(
        db, booking_id=booking.id, caller=customer, new_status=BookingStatus.CANCELLED
    )

    assert updated.status == BookingStatus.CANCELLED


@pytest.mark.parametrize("new_status", [BookingStatus.CONFIRMED, BookingStatus.COMPLETED])
def test_customer_cannot_confirm_or_complete(new_status):
    db, _, _, customer, booking = setup_booking()

    with pytest.raises(Forbidden):
        reservations.set_status(db, booking_id=booking.id, caller=customer, new_status=new_status)
    db.refresh(booking)
    assert booking.status == BookingStatus.PENDING


def test_other_provider_is_forbidden():
    db, _, other_provider, _, booking = setup_booking()

    with pytest.raises(Forbidden):
        reservations.set_status(
            db, booking_id=booking.id, caller=other_provider, new_status=BookingStatus.CONFIRMED
        )


def test_missing_booking_raises_not_found():
    db, provider, _, _, _ = setup_booking()

    with pytest.raises(NotFound):
        reservations.set_status(db, booking_id=4242, caller=provider, new_status=BookingStatus.CONFIRMED)


def test_updated_at_moves_forward():
    db, provider, _, _, booking = setup_booking()
    before = booking.updated_at

    updated = reservations.set_status(
        db, booking_id=booking.id, caller=provider, new_status=BookingStatus.CONFIRMED
    )

    assert updated.updated_at >= before


def test_reconfirming_cancelled_booking_checks_window():
    db, provider, _, customer, booking = setup_booking(status=BookingStatus.CANCELLED)
    newcomer = make_user(db, 'n@test.com')
    make_booking(db, newcomer, booking.service, START, status=BookingStatus.PENDING)

    with pytest.raises(SlotUnavailable):
        reservations.set_status(
            db, booking_id=booking.id, caller=provider, new_status=BookingStatus.CONFIRMED
        )
    db.refresh(booking)
    assert booking.status == BookingStatus.CANCELLED


def test_reconfirming_cancelled_booking_with_free_window():
    db, provider, _, _, booking = setup_booking(status=BookingStatus.CANCELLED)

    updated = reservations.set_status(
        db, booking_id=booking.id, caller=provider, new_status=BookingStatus.CONFIRMED
    )

    assert updated.status == BookingStatus.CONFIRMED


def test_status_change_is_logged(caplog):
    import logging
    from marketplace.utils.status_logger import register_status_listeners

    register_status_listeners()
    caplog.set_level(logging.INFO, logger="marketplace.utils.status_logger")
    db, provider, _, _, booking = setup_booking()

    reservations.set_status(db, booking_id=booking.id, caller=provider, new_status=BookingStatus.CONFIRMED)

    assert any(
        "from pending to confirmed" in r.getMessage() for r in caplog.records
    )
