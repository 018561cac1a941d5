"""
Pytest fixtures for junkshop backend tests.

Provides test database setup, two business tenants, role-bearing profiles
and a test client.
"""

import pytest

from junkshop import create_app, get_services
from junkshop.extensions import db
from junkshop.models import Business, BusinessUser, Profile
from junkshop.services.auth_service import hash_password
from junkshop.services.session_service import create_session
from junkshop.time_utils import utcnow
from junkshop.validation import parse_create_request


TEST_PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'UPLOAD_FOLDER': str(tmp_path_factory.mktemp("uploads")),
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(TEST_PASSWORD)


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
def services(app, db_session):
    return get_services()


@pytest.fixture(scope='function')
def make_profile(db_session, password_hash):
    """Factory: make_profile("name", business=None, role=None)."""
    def _make(name: str, business: Business | None = None, role: str | None = None, email: str | None = None):
        profile = Profile(
            email=email or f"{name}@example.com",
            name=name.title(),
            password_hash=password_hash,
        )
        db_session.add(profile)
        db_session.flush()

        if business is not None:
            db_session.add(BusinessUser(
                business_id=business.id,
                profile_id=profile.id,
                role=role,
                is_active=True,
                joined_at=utcnow(),
            ))
            profile.current_business_id = business.id

        db_session.commit()
        return profile

    return _make


@pytest.fixture(scope='function')
def business_a(db_session):
    """Create Business A (first tenant)."""
    business = Business(name="A - Acme Scrap", settings={})
    db_session.add(business)
    db_session.commit()
    return business


@pytest.fixture(scope='function')
def business_b(db_session):
    """Create Business B (second tenant)."""
    business = Business(name="B - Beta Metals", settings={})
    db_session.add(business)
    db_session.commit()
    return business


@pytest.fixture(scope='function')
def owner_a(make_profile, business_a):
    return make_profile("owner_a", business_a, "owner")


@pytest.fixture(scope='function')
def manager_a(make_profile, business_a):
    return make_profile("manager_a", business_a, "manager")


@pytest.fixture(scope='function')
def employee_a(make_profile, business_a):
    return make_profile("employee_a", business_a, "employee")


@pytest.fixture(scope='function')
def employee_a2(make_profile, business_a):
    return make_profile("employee_a2", business_a, "employee")


@pytest.fixture(scope='function')
def viewer_a(make_profile, business_a):
    return make_profile("viewer_a", business_a, "viewer")


@pytest.fixture(scope='function')
def owner_b(make_profile, business_b):
    return make_profile("owner_b", business_b, "owner")


@pytest.fixture(scope='function')
def caller_for(services):
    """Factory: CallerContext for a profile in its current business."""
    def _caller(profile):
        business, membership = services.directory.resolve_membership(profile)
        return services.gate.context_for(profile, business, membership)
    return _caller


def transaction_payload(**overrides) -> dict:
    payload = {
        "type": "buy",
        "customer_type": "person",
        "customer_name": "Juan",
        "items": [
            {"name": "Copper", "weight": 2.5, "price": 300},
            {"name": "Bottles", "pieces": 10, "price": 1.5},
        ],
        "expenses": 50,
    }
    payload.update(overrides)
    return payload


@pytest.fixture(scope='session')
def tx_payload():
    """Factory: a valid create payload (subtotal 765, total 815) with overrides."""
    return transaction_payload


@pytest.fixture(scope='function')
def create_tx(services, caller_for):
    """Factory: create_tx(profile, **payload_overrides) -> Transaction."""
    def _create(profile, **overrides):
        request = parse_create_request(transaction_payload(**overrides))
        return services.transactions.create(caller_for(profile), request)
    return _create


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def headers_for(db_session):
    """Factory: Authorization headers with a fresh session for a profile."""
    def _headers(profile):
        _, token = create_session(profile_id=profile.id)
        return auth_headers(token)
    return _headers
