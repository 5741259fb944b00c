"""
Pytest fixtures for Duka backend tests.

Provides an in-memory database, two tenants (Org A / Org B) each with a
shop, an admin and a worker, a product, and helpers for bearer-token auth.
"""

import pytest

from duka import create_app
from duka.extensions import db
from duka.models import Organization, Shop, Product
from duka.services.auth_service import create_admin, create_worker


ADMIN_PASSWORD = "Password123!"
WORKER_PASSWORD = "worker1"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'CHECKOUT_ATOMIC': True,
        'BUSINESS_TIMEZONE': 'UTC',
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
def org_a(db_session):
    """Create Organization A (first tenant)."""
    org = Organization(name="Org A - Acme Traders", code="ACME", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def org_b(db_session):
    """Create Organization B (second tenant)."""
    org = Organization(name="Org B - Beta Stores", code="BETA", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def shop_a(db_session, org_a):
    shop = Shop(org_id=org_a.id, name="Shop A1", location="Nairobi CBD")
    db_session.add(shop)
    db_session.commit()
    return shop


@pytest.fixture(scope='function')
def shop_b(db_session, org_b):
    shop = Shop(org_id=org_b.id, name="Shop B1", location="Mombasa")
    db_session.add(shop)
    db_session.commit()
    return shop


@pytest.fixture(scope='function')
def admin_a(db_session, org_a):
    return create_admin(name="Admin A", email="admin@acme.test", password=ADMIN_PASSWORD, org_id=org_a.id)


@pytest.fixture(scope='function')
def admin_b(db_session, org_b):
    return create_admin(name="Admin B", email="admin@beta.test", password=ADMIN_PASSWORD, org_id=org_b.id)


@pytest.fixture(scope='function')
def worker_a(db_session, org_a, shop_a, admin_a):
    """Worker in Shop A1, created by Admin A."""
    return create_worker(
        name="Worker A",
        email="worker@acme.test",
        password=WORKER_PASSWORD,
        org_id=org_a.id,
        shop_id=shop_a.id,
        created_by_user_id=admin_a.id,
    )


@pytest.fixture(scope='function')
def worker_b(db_session, org_b, shop_b, admin_b):
    return create_worker(
        name="Worker B",
        email="worker@beta.test",
        password=WORKER_PASSWORD,
        org_id=org_b.id,
        shop_id=shop_b.id,
        created_by_user_id=admin_b.id,
    )


def make_product(db_session, shop, name="Soap", buying=10000, minimum=12000, stock=10):
    product = Product(
        org_id=shop.org_id,
        shop_id=shop.id,
        name=name,
        buying_price_cents=buying,
        minimum_selling_price_cents=minimum,
        stock=stock,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_a(db_session, shop_a):
    """Buying 100.00, minimum 120.00, stock 10."""
    return make_product(db_session, shop_a)


@pytest.fixture(scope='function')
def product_b(db_session, shop_b):
    return make_product(db_session, shop_b, name="Sugar")


def get_auth_token(client, email: str, password: str, worker: bool = False) -> str:
    """Helper to get auth token for a user."""
    path = '/api/auth/worker-login' if worker else '/api/auth/login'
    response = client.post(path, json={'email': email, 'password': password})
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_a):
    token = get_auth_token(client, admin_a.email, ADMIN_PASSWORD)
    assert token, "admin login failed"
    return auth_headers(token)


@pytest.fixture(scope='function')
def worker_headers(client, worker_a):
    token = get_auth_token(client, worker_a.email, WORKER_PASSWORD, worker=True)
    assert token, "worker login failed"
    return auth_headers(token)


@pytest.fixture(scope='function')
def admin_b_headers(client, admin_b):
    token = get_auth_token(client, admin_b.email, ADMIN_PASSWORD)
    assert token, "admin login failed"
    return auth_headers(token)
