"""
Pytest fixtures for storefront backend tests.

Provides an in-memory application, per-test table cleanup, account/product
factories and auth header helpers.
"""

import pytest

from storefront import create_app
from storefront.config import Config
from storefront.extensions import db
from storefront.models import Product, ProductImage, User
from storefront.models.users import ROLE_ADMIN, ROLE_USER
from storefront.services import email_service, rate_limit_service, token_service
from storefront.services.auth_service import hash_password


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SECRET_KEY = "test-secret"
    TOKEN_SECRET = "test-token-secret"
    BCRYPT_ROUNDS = 4
    RATE_LIMIT_STORE = "memory"
    MAIL_BACKEND = "memory"
    MAIL_FALLBACK_BACKEND = "memory"
    EMAIL_DELIVER_INLINE = True
    EMAIL_MAX_ATTEMPTS = 3
    EMAIL_MAX_WORKERS = 2
    STORE_TIMEZONE = "UTC"
    CONTACT_EMAIL = "owner@shop.test"
    LOG_LEVEL = "WARNING"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

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
    """Fresh tables, mailboxes and rate-limit windows for each test."""
    with app.app_context():
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        dispatcher = email_service.get_dispatcher(app)
        dispatcher.primary.clear()
        dispatcher.fallback.clear()
        rate_limit_service.get_store(app).reset()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='function')
def mailbox(app, db_session):
    """Messages accepted by the primary (memory) transport."""
    return email_service.get_dispatcher(app).primary


def make_user(email="customer@example.com", name="Jane Customer", password="secret123",
              role=ROLE_USER, **extra) -> User:
    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role,
        **extra,
    )
    db.session.add(user)
    db.session.commit()
    return user


def make_product(sku="SKU-001", name="Velvet Lipstick", price_cents=1000, quantity=10, **extra) -> Product:
    product = Product(
        sku=sku,
        name=name,
        slug=extra.pop("slug", sku.lower()),
        description=extra.pop("description", "A long enough product description."),
        price_cents=price_cents,
        category=extra.pop("category", "makeup"),
        brand=extra.pop("brand", "Lumiere"),
        inventory_quantity=quantity,
        **extra,
    )
    product.images = [ProductImage(position=0, url="https://cdn.example.com/p.jpg", alt=name, is_primary=True)]
    db.session.add(product)
    db.session.commit()
    return product


@pytest.fixture(scope='function')
def customer(db_session):
    return make_user()


@pytest.fixture(scope='function')
def other_customer(db_session):
    return make_user(email="other@example.com", name="Olga Other")


@pytest.fixture(scope='function')
def admin(db_session):
    return make_user(email="admin@example.com", name="Ada Admin", role=ROLE_ADMIN)


@pytest.fixture(scope='function')
def customer_headers(app, customer):
    return auth_headers(token_service.issue_access_token(customer))


@pytest.fixture(scope='function')
def other_headers(app, other_customer):
    return auth_headers(token_service.issue_access_token(other_customer))


@pytest.fixture(scope='function')
def admin_headers(app, admin):
    return auth_headers(token_service.issue_access_token(admin))


@pytest.fixture(scope='function')
def lipstick(db_session):
    return make_product(sku="LIP-001", name="Velvet Lipstick", price_cents=1000)


@pytest.fixture(scope='function')
def blush(db_session):
    return make_product(sku="BLU-002", name="Rose Blush", price_cents=500, brand="Petal")


def address(**overrides) -> dict:
    data = {
        "street": "1 Main St",
        "city": "Springfield",
        "state": "IL",
        "zip_code": "62701",
        "country": "US",
    }
    data.update(overrides)
    return data


def order_payload(items, **overrides) -> dict:
    payload = {
        "items": items,
        "tax": {"amount_cents": 0, "rate_bps": 0},
        "shipping": {"cost_cents": 0, "method": "standard"},
        "discount": {"amount_cents": 0},
        "shipping_address": address(),
        "payment_method": "credit-card",
    }
    payload.update(overrides)
    return payload


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
