from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from marketplace.main import app
from marketplace.api.auth import create_access_token
from marketplace.database import Base, get_db

from factories import make_user


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


def test_update_profile_fields():
    Session = setup_app()
    db = Session()
    user = make_user(db, 'sam@test.com', name='Sam')
    db.close()
    client = TestClient(app)
    headers = {'Authorization': f'Bearer {create_access_token(user)}'}

    res = client.put(
        '/api/user/profile',
        json={'name': 'Samantha', 'phone': '555-0199', 'bio': 'Hi!'},
        headers=headers,
    )

    assert res.status_code == 200
    profile = res.json()['profile']
    assert profile['name'] == 'Samantha'
    assert profile['phone'] == '555-0199'
    assert profile['bio'] == 'Hi!'
    assert client.get('/api/user/profile', headers=headers).json()['profile']['name'] == 'Samantha'


def test_blank_name_is_ignored_and_email_not_editable():
    Session = setup_app()
    db = Session()
    user = make_user(db, 'sam@test.com', name='Sam')
    db.close()
    client = TestClient(app)
    headers = {'Authorization': f'Bearer {create_access_token(user)}'}

    res = client.put(
        '/api/user/profile',
        json={'name': '   ', 'email': 'evil@test.com', 'role': 'admin'},
        headers=headers,
    )

    assert res.status_code == 200
    profile = res.json()['profile']
    assert profile['name'] == 'Sam'
    assert profile['email'] == 'sam@test.com'
    assert profile['role'] == 'user'
