"""
Pytest fixtures for DeliciaSoft backend tests.

Provides test database setup, seeded roles, staff/customer accounts with
bearer headers, and a few catalog rows shared by the sales, production and
inventory tests.
"""

from decimal import Decimal

import pytest

from deliciasoft import create_app
from deliciasoft.extensions import db
from deliciasoft.models import Customer, InventoryRecord, Location, Product, Role, User
from deliciasoft.models.auth import ACCOUNT_TYPE_CUSTOMER, ACCOUNT_TYPE_USER
from deliciasoft.services import permission_service, session_service
from deliciasoft.services.auth_service import hash_password
from deliciasoft.services.verification_service import InMemoryVerificationCodeStore


TEST_PASSWORD = "Delicia@2024"
TEST_EMAIL = "tester@deliciasoft.test"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'APP_ENV': 'development',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TEST_EMAILS': [TEST_EMAIL],
        'TEST_VERIFICATION_CODE': '123456',
        'CONTACT_INBOX': 'owner@deliciasoft.test',
        'BREVO_API_KEY': '',
        'EMAIL_SENDER': '',
        'IMAGEKIT_PUBLIC_KEY': '',
        'IMAGEKIT_PRIVATE_KEY': '',
        'IMAGEKIT_URL_ENDPOINT': '',
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
    """Create fresh database (and an empty code store) for each test."""
    with app.app_context():
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        app.extensions["verification_codes"].store = InMemoryVerificationCodeStore()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(TEST_PASSWORD)


@pytest.fixture(scope='function')
def setup_roles(db_session):
    """Seed permissions and the default admin/employee roles."""
    permission_service.seed_permissions()
    return permission_service.seed_default_roles()


def _make_user(db_session, role: Role, name: str, email: str, password_hash: str) -> User:
    user = User(name=name, email=email, password_hash=password_hash, role_id=role.id, is_active=True)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session, setup_roles, password_hash):
    return _make_user(db_session, setup_roles["admin"], "Admin", "admin@deliciasoft.test", password_hash)


@pytest.fixture(scope='function')
def employee_user(db_session, setup_roles, password_hash):
    return _make_user(db_session, setup_roles["employee"], "Employee", "employee@deliciasoft.test", password_hash)


@pytest.fixture(scope='function')
def customer(db_session, password_hash):
    customer = Customer(
        first_name="Laura",
        last_name="Gomez",
        email="laura@example.com",
        document="1010",
        password_hash=password_hash,
        is_active=True,
    )
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def other_customer(db_session):
    customer = Customer(first_name="Pedro", last_name="Ruiz", email="pedro@example.com", document="2020")
    db_session.add(customer)
    db_session.commit()
    return customer


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    _, token = session_service.create_session(ACCOUNT_TYPE_USER, admin_user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def employee_headers(employee_user):
    _, token = session_service.create_session(ACCOUNT_TYPE_USER, employee_user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def customer_headers(setup_roles, customer):
    _, token = session_service.create_session(ACCOUNT_TYPE_CUSTOMER, customer.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def north(db_session):
    """Active location "Sede Norte"."""
    location = Location(name="Sede Norte", address="Calle 1", is_active=True)
    db_session.add(location)
    db_session.commit()
    return location


@pytest.fixture(scope='function')
def south(db_session):
    location = Location(name="Sede Sur", address="Calle 2", is_active=True)
    db_session.add(location)
    db_session.commit()
    return location


@pytest.fixture(scope='function')
def bread(db_session):
    product = Product(name="Pan de bono", price_cents=2500)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def cake(db_session):
    product = Product(name="Torta de chocolate", price_cents=45000)
    db_session.add(product)
    db_session.commit()
    return product


def put_stock(product: Product, location: Location, quantity) -> InventoryRecord:
    """Helper to seed an inventory record directly."""
    record = InventoryRecord(product_id=product.id, location_id=location.id, quantity=Decimal(str(quantity)))
    db.session.add(record)
    db.session.commit()
    return record


def stock_of(product: Product, location: Location) -> Decimal:
    record = db.session.query(InventoryRecord).filter_by(
        product_id=product.id, location_id=location.id
    ).first()
    return None if record is None else Decimal(record.quantity)
