from datetime import date, time, timedelta
from decimal import Decimal

import pytest

from app import create_app
from config import TestConfig
from models import db
from models.service import Service
from models.staff import Staff
from models.user import Role, User
from security.password import hash_password

PASSWORD = "secret123"


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    """Service 1: 1000 / 30 min, Service 2: 500 / 20 min."""
    haircut = Service(name="Haircut", category="Hair", price=Decimal("1000.00"), duration=30)
    manicure = Service(name="Manicure", category="Nails", price=Decimal("500.00"), duration=20)
    db.session.add_all([haircut, manicure])
    db.session.commit()
    return haircut.id, manicure.id


@pytest.fixture
def stylist(app):
    staff = Staff(name="Asha", email="asha@salon.test", specialization="Hair")
    db.session.add(staff)
    db.session.commit()
    return staff.id


def make_user(email, role="CUSTOMER", full_name=None):
    user = User(email=email, password_hash=hash_password(PASSWORD), full_name=full_name)
    user.roles.append(Role.query.filter_by(name=role).one())
    db.session.add(user)
    db.session.commit()
    return user.id


@pytest.fixture
def customer(app):
    return make_user("alice@example.com", full_name="Alice")


@pytest.fixture
def other_customer(app):
    return make_user("bob@example.com", full_name="Bob")


@pytest.fixture
def admin(app):
    return make_user("admin@salon.test", role="ADMIN")


def login(client, email):
    resp = client.post("/auth/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    return client


@pytest.fixture
def customer_client(app, customer):
    return login(app.test_client(), "alice@example.com")


@pytest.fixture
def other_client(app, other_customer):
    return login(app.test_client(), "bob@example.com")


@pytest.fixture
def admin_client(app, admin):
    return login(app.test_client(), "admin@salon.test")


@pytest.fixture
def day():
    return date.today() + timedelta(days=7)


@pytest.fixture
def at():
    return time(10, 0)
