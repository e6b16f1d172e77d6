"""
Shared fixtures.

Settings are read once at import time, so the environment is prepared here
before any application module is imported.
"""
import os
import tempfile

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENABLE_SCHEDULER"] = "false"
os.environ["UPLOADS_DIR"] = tempfile.mkdtemp(prefix="leadvault-uploads-")
os.environ["BULK_CHUNK_DELAY_SECONDS"] = "0"
os.environ["TWILIO_ACCOUNT_SID"] = "AC_test"
os.environ["TWILIO_AUTH_TOKEN"] = "twilio-test-token"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["SQUARE_ACCESS_TOKEN"] = "sq_test_token"
os.environ["SQUARE_LOCATION_ID"] = "LOC123"
os.environ["SQUARE_WEBHOOK_SIGNATURE_KEY"] = "sq_signature_key"

from datetime import datetime, timedelta  # noqa: E402
from typing import Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from core.database import get_session  # noqa: E402
from core.security import create_token_for_user, hash_password  # noqa: E402
from core.timeutils import utcnow  # noqa: E402
from main import app  # noqa: E402
from models.models import (  # noqa: E402
    Contact,
    ContactPhase,
    ContactType,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
    User,
    ValidationHistory,
    ValidationType,
)


# =============================================================================
# DATABASE
# =============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(session):
    def _get_session_override():
        yield session

    app.dependency_overrides[get_session] = _get_session_override
    yield TestClient(app)
    app.dependency_overrides.clear()


# =============================================================================
# FACTORIES
# =============================================================================

def make_user(session: Session, email: str = "user@example.com", name: str = "Test User") -> User:
    user = User(name=name, email=email, password_hash=hash_password("password123"))
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def make_contact(
    session: Session,
    contact_type: ContactType = ContactType.B2C,
    phase: ContactPhase = ContactPhase.RAW,
    delivered_at: Optional[datetime] = None,
    name: str = "Jane Lead",
) -> Contact:
    contact = Contact(type=contact_type, phase=phase, name=name, delivered_at=delivered_at)
    session.add(contact)
    session.commit()
    session.refresh(contact)
    return contact


def make_subscription(
    session: Session,
    user_id: str,
    end_date: datetime,
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
    start_date: Optional[datetime] = None,
) -> Subscription:
    subscription = Subscription(
        user_id=user_id,
        plan=SubscriptionPlan.PREMIUM,
        status=status,
        start_date=start_date or end_date - timedelta(days=30),
        end_date=end_date,
    )
    session.add(subscription)
    session.commit()
    session.refresh(subscription)
    return subscription


def add_history(session: Session, user_id: str, total: int, validation_type: ValidationType = ValidationType.BULK):
    entry = ValidationHistory(user_id=user_id, type=validation_type, file_path="csvs/test.csv", total=total)
    session.add(entry)
    session.commit()
    return entry


@pytest.fixture
def user(session):
    return make_user(session)


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {create_token_for_user(user)}"}


@pytest.fixture
def now():
    return utcnow()
