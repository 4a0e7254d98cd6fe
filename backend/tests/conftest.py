"""
Pytest fixtures for the shelter backend tests.

Provides the test database, users for every role, animals, invoices and a
test client with bearer-token helpers.
"""

from decimal import Decimal

import pytest

from shelter import create_app
from shelter.extensions import db
from shelter.models import Animal, AnimalStatus, Invoice, InvoiceStatus, RoleName, TransactionType
from shelter.services.auth_service import create_default_roles, create_user
from shelter.services.caller_context import CallerContext


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'TRANSACTION_RETRY_BACKOFF': 0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def setup_roles(db_session):
    """Setup the four default roles."""
    create_default_roles()


def _make_user(username: str, role: str):
    return create_user(
        username=username,
        email=f"{username}@shelter.local",
        password=PASSWORD,
        role_name=role,
    )


@pytest.fixture(scope='function')
def admin_user(setup_roles):
    return _make_user("admin", RoleName.ADMIN)


@pytest.fixture(scope='function')
def staff_user(setup_roles):
    return _make_user("staff1", RoleName.STAFF)


@pytest.fixture(scope='function')
def vet_user(setup_roles):
    return _make_user("vet1", RoleName.VETERINARIAN)


@pytest.fixture(scope='function')
def adopter(setup_roles):
    return _make_user("adopter", RoleName.ADOPTER)


@pytest.fixture(scope='function')
def adopters(setup_roles):
    """Three distinct adopters."""
    return [_make_user(f"adopter{i}", RoleName.ADOPTER) for i in range(1, 4)]


@pytest.fixture(scope='function')
def staff(staff_user):
    """CallerContext for the staff user."""
    return CallerContext.for_user(staff_user)


def _create_animal(name: str = "Bantay", status: str = AnimalStatus.AVAILABLE) -> Animal:
    animal = Animal(name=name, species="Dog", breed="Aspin", status=status)
    db.session.add(animal)
    db.session.commit()
    return animal


@pytest.fixture(scope='function')
def make_animal(db_session):
    """Factory for animals in a given status."""
    return _create_animal


@pytest.fixture(scope='function')
def animal(db_session):
    """An Available animal."""
    return _create_animal()


def _create_invoice(payer, issuer, total: str = "1000.00", transaction_type: str = TransactionType.ADOPTION_FEE) -> Invoice:
    invoice = Invoice(
        payer_id=payer.id,
        issued_by_id=issuer.id,
        transaction_type=transaction_type,
        total_amount=Decimal(total),
        status=InvoiceStatus.UNPAID,
    )
    db.session.add(invoice)
    db.session.commit()
    return invoice


@pytest.fixture(scope='function')
def make_invoice(db_session):
    """Factory for Unpaid invoices inserted directly (bypassing the service)."""
    return _create_invoice


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def staff_headers(client, staff_user):
    return auth_headers(get_auth_token(client, staff_user.username))


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.username))


@pytest.fixture(scope='function')
def adopter_headers(client, adopter):
    return auth_headers(get_auth_token(client, adopter.username))


@pytest.fixture(scope='function')
def vet_headers(client, vet_user):
    return auth_headers(get_auth_token(client, vet_user.username))
