import os
import tempfile

# Environment must be in place before procurehub.core.config is imported
_TEST_DIR = tempfile.mkdtemp(prefix="procurehub-tests-")
os.environ["SECRET_KEY"] = "test-secret-key-0123456789abcdef0123456789"
os.environ["DATABASE_URL"] = f"sqlite+pysqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["DEBUG"] = "false"
os.environ["SEED_DEMO"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"

import secrets
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from procurehub.core.security import create_access_token, get_password_hash
from procurehub.db.session import Base, get_db, engine as app_engine
from procurehub.db.models import Organization, User, UserRole, UserSession, Vendor, Product
from procurehub.main import app

TEST_ENGINE = app_engine

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=TEST_ENGINE)

TEST_PASSWORD = "correct-horse-42"


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(scope="function", autouse=True)
def setup_test_database():
    """Fresh schema for every test."""
    original_overrides = dict(app.dependency_overrides)
    Base.metadata.drop_all(bind=TEST_ENGINE)
    Base.metadata.create_all(bind=TEST_ENGINE)

    yield

    app.dependency_overrides.clear()
    app.dependency_overrides.update(original_overrides)
    Base.metadata.drop_all(bind=TEST_ENGINE)


@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def org(db_session):
    org = Organization(name="Test Buyer Org")
    db_session.add(org)
    db_session.commit()
    db_session.refresh(org)
    return org


@pytest.fixture
def make_user(db_session, org):
    def _make_user(role: UserRole, email: str = None, password: str = TEST_PASSWORD, **kwargs):
        user = User(
            email=email or f"{role.value}-{secrets.token_hex(3)}@procurehub.example.com",
            hashed_password=get_password_hash(password) if password else None,
            first_name=kwargs.pop("first_name", role.value.title()),
            role=role.value,
            organization_id=org.id,
            is_active=kwargs.pop("is_active", True),
            **kwargs,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make_user


@pytest.fixture
def login_headers(db_session):
    """Open a session row for the user and return bearer headers for it."""
    def _login_headers(user: User, expires_in: timedelta = timedelta(hours=1)) -> dict:
        sid = secrets.token_urlsafe(16)
        db_session.add(UserSession(
            sid=sid,
            sess={"user_id": user.id},
            expire=datetime.now(timezone.utc) + expires_in,
        ))
        db_session.commit()
        token = create_access_token({"sub": str(user.id), "sid": sid, "role": user.role})
        return {"Authorization": f"Bearer {token}"}
    return _login_headers


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.BUYER_ADMIN, email="admin@procurehub.example.com")


@pytest.fixture
def manager(make_user):
    return make_user(UserRole.SOURCING_MANAGER, email="manager@procurehub.example.com")


@pytest.fixture
def buyer(make_user):
    return make_user(UserRole.BUYER_USER, email="buyer@procurehub.example.com")


@pytest.fixture
def admin_headers(admin, login_headers):
    return login_headers(admin)


@pytest.fixture
def manager_headers(manager, login_headers):
    return login_headers(manager)


@pytest.fixture
def buyer_headers(buyer, login_headers):
    return login_headers(buyer)


@pytest.fixture
def make_vendor(db_session):
    def _make_vendor(company_name: str = "Acme Supplies", user: User = None, **kwargs):
        vendor = Vendor(
            company_name=company_name,
            email=kwargs.pop("email", "sales@acme.example.com"),
            categories=kwargs.pop("categories", ["Furniture"]),
            user_id=user.id if user else None,
            **kwargs,
        )
        db_session.add(vendor)
        db_session.commit()
        db_session.refresh(vendor)
        return vendor
    return _make_vendor


@pytest.fixture
def vendor_login(make_user, make_vendor, login_headers):
    """A vendor profile with its own login. Returns (vendor, headers)."""
    user = make_user(UserRole.VENDOR, email="vendor@acme.example.com")
    vendor = make_vendor("Acme Supplies", user=user)
    return vendor, login_headers(user)


@pytest.fixture
def make_product(db_session):
    def _make_product(item_name: str, base_price=None, category=None, uom=None, **kwargs):
        product = Product(
            item_name=item_name,
            base_price=Decimal(str(base_price)) if base_price is not None else None,
            category=category,
            uom=uom,
            is_active=kwargs.pop("is_active", True),
            **kwargs,
        )
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product
    return _make_product
