"""Pytest fixtures for testing"""

import os

# Settings are read at import time, so the test environment goes in first
TEST_DATABASE_URL = "sqlite:///./test.db"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["SETTLEMENT_MODE"] = "manual"
os.environ["WELCOME_BONUS"] = "50.00"
os.environ["DEPOSIT_REQUIRES_APPROVAL"] = "false"

import uuid
from decimal import Decimal
from typing import Callable, Dict, Generator, List, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from lumabank.api.dependencies import get_email_client, get_settlement_scheduler
from lumabank.api.main import create_app
from lumabank.domain.models import Principal, Role
from lumabank.infrastructure.database.models import Account, Admin, Base, User
from lumabank.infrastructure.database.session import get_db
from lumabank.infrastructure.security import create_access_token, generate_account_number, hash_password
from lumabank.infrastructure.settlement import SettlementScheduler
from lumabank.utils.money import to_cents

# Test database
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

DEFAULT_PASSWORD = "Password123"


class RecordingEmailClient:
    """Collects outgoing emails instead of sending them"""

    def __init__(self):
        self.sent: List[Dict[str, str]] = []

    async def send(self, to: str, subject: str, body: str) -> bool:
        self.sent.append({"to": to, "subject": subject, "body": body})
        return True


class RecordingScheduler(SettlementScheduler):
    """Collects scheduled external transfers; settling is left to the test"""

    def __init__(self):
        self.scheduled: List[uuid.UUID] = []

    def schedule(self, transaction_id: uuid.UUID) -> None:
        self.scheduled.append(transaction_id)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(db) -> sessionmaker:
    """Opens extra sessions on the test database, one per simulated worker"""
    return TestingSessionLocal


@pytest.fixture
def outbox() -> RecordingEmailClient:
    return RecordingEmailClient()


@pytest.fixture
def scheduler() -> RecordingScheduler:
    return RecordingScheduler()


@pytest.fixture
def client(db: Session, outbox: RecordingEmailClient, scheduler: RecordingScheduler) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_client] = lambda: outbox
    app.dependency_overrides[get_settlement_scheduler] = lambda: scheduler
    return TestClient(app)


@pytest.fixture
def make_customer(db: Session) -> Callable[..., Tuple[User, Account]]:
    """Factory for customers with an account in a given state"""

    def _make(
        email: str = "alice@example.com",
        balance: Decimal = Decimal("0.00"),
        approved: bool = True,
        verified: bool = True,
        password: str = DEFAULT_PASSWORD,
        name: str = "Alice Example",
    ) -> Tuple[User, Account]:
        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            phone="+1 555 010 0000",
            address={"street": "1 Main St", "city": "Springfield", "state": "IL", "zip_code": "62701", "country": "US"},
            id_number=uuid.uuid4().hex[:12],
        )
        account = Account(
            user=user,
            account_number=generate_account_number() if approved else None,
            balance_cents=to_cents(balance),
            verified=verified,
            approved=approved,
        )
        db.add_all([user, account])
        db.commit()
        return user, account

    return _make


@pytest.fixture
def make_admin(db: Session) -> Callable[..., Admin]:
    def _make(email: str = "admin@example.com", password: str = DEFAULT_PASSWORD) -> Admin:
        admin = Admin(name="Ops Admin", email=email, password_hash=hash_password(password), role="staff")
        db.add(admin)
        db.commit()
        return admin

    return _make


def _user_headers(user: User, account: Account) -> Dict[str, str]:
    token = create_access_token(
        Principal(subject_id=user.id, email=user.email, role=Role.USER, account_number=account.account_number)
    )
    return {"Authorization": f"Bearer {token}"}


def _admin_headers(admin: Admin) -> Dict[str, str]:
    token = create_access_token(Principal(subject_id=admin.id, email=admin.email, role=Role.ADMIN))
    return {"Authorization": f"Bearer {token}"}


def _principal_for(user: User, account: Account) -> Principal:
    return Principal(subject_id=user.id, email=user.email, role=Role.USER, account_number=account.account_number)


@pytest.fixture
def user_headers() -> Callable[[User, Account], Dict[str, str]]:
    """Bearer header for a customer, issued without going through login"""
    return _user_headers


@pytest.fixture
def admin_headers() -> Callable[[Admin], Dict[str, str]]:
    return _admin_headers


@pytest.fixture
def principal_for() -> Callable[[User, Account], Principal]:
    return _principal_for
