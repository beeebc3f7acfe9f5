"""Real threads racing for the same session window on a file-backed SQLite DB."""

import threading
from datetime import datetime, timedelta

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from marketplace.database import Base, configure_sqlite
from marketplace.errors import SlotUnavailable
from marketplace.models import Booking, UserType
from marketplace.services.reservation import reservations

from factories import make_service, make_user

START = datetime(2025, 11, 10, 14, 0)


def setup_engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={'check_same_thread': False, 'timeout': 30},
    )
    configure_sqlite(engine)
    Base.metadata.create_all(engine)
    return engine, sessionmaker(bind=engine, expire_on_commit=False)


def seed(Session, customers=8, services=1):
    db = Session()
    provider = make_user(db, 'pro@test.com', role=UserType.PROVIDER)
    users = [make_user(db, f'u{i}@test.com') for i in range(customers)]
    svc = [make_service(db, provider, title=f'Service {i}') for i in range(services)]
    db.close()
    return users, svc


def race(Session, attempts):
    """Run ``reserve`` for every (user_id, service_id, start) at once; collect outcomes."""
    barrier = threading.Barrier(len(attempts))
    results = []
    lock = threading.Lock()

    def worker(user_id, service_id, start):
        db = Session()
        try:
            barrier.wait()
            try:
                booking = reservations.reserve(
                    db, requester_id=user_id, service_id=service_id, start=start, quantity=1
                )
                outcome = ('ok', booking.id)
            except SlotUnavailable:
                outcome = ('conflict', None)
            with lock:
                results.append(outcome)
        finally:
            db.close()

    threads = [threading.Thread(target=worker, args=a) for a in attempts]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return results


def test_concurrent_identical_requests_admit_exactly_one(tmp_path):
    engine, Session = setup_engine(tmp_path)
    users, (service,) = seed(Session)

    results = race(Session, [(u.id, service.id, START) for u in users])

    assert len(results) == len(users)
    assert sum(1 for kind, _ in results if kind == 'ok') == 1
    assert sum(1 for kind, _ in results if kind == 'conflict') == len(users) - 1
    db = Session()
    assert db.query(Booking).count() == 1
    db.close()
    engine.dispose()


def test_concurrent_overlapping_windows_admit_exactly_one(tmp_path):
    engine, Session = setup_engine(tmp_path)
    users, (service,) = seed(Session, customers=4)
    offsets = [0, 15, 30, 45]

    results = race(
        Session,
        [(u.id, service.id, START + timedelta(minutes=m)) for u, m in zip(users, offsets)],
    )

    # Every pair of these windows overlaps, so only one can win
    assert sum(1 for kind, _ in results if kind == 'ok') == 1
    engine.dispose()


def test_concurrent_disjoint_windows_all_succeed(tmp_path):
    engine, Session = setup_engine(tmp_path)
    users, (service,) = seed(Session, customers=4)

    results = race(
        Session,
        [(u.id, service.id, START + timedelta(hours=i)) for i, u in enumerate(users)],
    )

    assert [kind for kind, _ in results] == ['ok'] * 4
    engine.dispose()


def test_concurrent_requests_on_different_services_all_succeed(tmp_path):
    engine, Session = setup_engine(tmp_path)
    users, services = seed(Session, customers=4, services=4)

    results = race(
        Session,
        [(u.id, s.id, START) for u, s in zip(users, services)],
    )

    assert [kind for kind, _ in results] == ['ok'] * 4
    db = Session()
    assert db.query(Booking).count() == 4
    db.close()
    engine.dispose()
