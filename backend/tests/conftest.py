"""
Pytest fixtures for JustSell backend tests.

Provides an in-memory database, a store with employees for every role,
a small catalog, a customer and login helpers.
"""

from datetime import date

import pytest

from justsell import create_app
from justsell.extensions import db
from justsell.models import Product, Store
from justsell.repositories import CustomerRepository, StoreRepository
from justsell.security import FieldCipher, StaticKeyProvider
from justsell.services.auth_service import create_user

TEST_KEY = "11" * 32
PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'FIELD_ENCRYPTION_KEYS': {'v1': TEST_KEY},
        'FIELD_ENCRYPTION_KEY_VERSION': 'v1',
        'DEFAULT_TAX_RATE_BPS': 800,
    })

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh tables and an app context for each test."""
    with app.app_context():
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()
        db.session.remove()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client (shares the test's app context and session)."""
    return app.test_client()


@pytest.fixture
def cipher():
    return FieldCipher(StaticKeyProvider({'v1': TEST_KEY}, 'v1'))


@pytest.fixture
def store(db_session):
    store = StoreRepository().create(
        code="MAIN",
        name="Smoke Shop",
        address_line1="123 Main St",
        city="Albany",
        state_code="NY",
        zip_code="12207",
        phone="(518) 555-0100",
        tax_id="12-3456789",
        is_active=True,
    )
    db_session.commit()
    return store


def _employee(store, username, role, first_name):
    return create_user(
        username,
        PASSWORD,
        role=role,
        store_id=store.id,
        first_name=first_name,
        last_name="Tester",
        bcrypt_rounds=4,
    )


@pytest.fixture
def cashier(store):
    return _employee(store, "cashier", "CASHIER", "Casey")


@pytest.fixture
def manager(store):
    return _employee(store, "manager", "MANAGER", "Morgan")


@pytest.fixture
def admin(store):
    return _employee(store, "admin", "ADMIN", "Alex")


@pytest.fixture
def vape(db_session):
    """Age-restricted, $19.99, 10 on hand."""
    product = Product(
        sku="VPE-001",
        name="Vape Pod Mint",
        category="Vape",
        price_cents=1999,
        quantity=10,
        age_restricted=True,
        lot_number="LOT-42",
        expiration_date=date(2030, 1, 31),
        is_active=True,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture
def lighter(db_session):
    """Unrestricted, $12.99, 5 on hand."""
    product = Product(
        sku="ACC-001",
        name="Refillable Lighter",
        category="Accessories",
        price_cents=1299,
        quantity=5,
        age_restricted=False,
        is_active=True,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture
def customer(db_session):
    customer = CustomerRepository().create(
        first_name="Jane",
        last_name="Doe",
        email="jane@example.com",
        phone="555-0199",
        date_of_birth=date(1990, 1, 15),
    )
    db_session.commit()
    return customer


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


@pytest.fixture
def cashier_headers(client, cashier):
    return auth_headers(get_auth_token(client, cashier.username))


@pytest.fixture
def manager_headers(client, manager):
    return auth_headers(get_auth_token(client, manager.username))


@pytest.fixture
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, admin.username))
