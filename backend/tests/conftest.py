"""Pytest configuration and fixtures."""

import pytest
from decimal import Decimal
from typing import Generator, List

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.rbac import ActorContext, UserRole
from app.core.security import create_access_token
from app.db.base import Base
from app.db.session import get_db
from app.main import app
# Import all models to ensure they're registered with Base.metadata
from app.models import *
from app.services.notification_service import NotificationSink, StatusEvent, get_notification_sink

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

SWIGGY_SECRET = "swiggy-test-secret"
ZOMATO_SECRET = "zomato-test-secret"


class RecordingSink(NotificationSink):
    """Keeps every published event for assertions."""

    def __init__(self):
        self.events: List[StatusEvent] = []

    def publish(self, event: StatusEvent) -> None:
        self.events.append(event)

    def statuses(self, subject: str = "order") -> List[str]:
        return [e.new_status for e in self.events if e.subject == subject]


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture(scope="function")
def client(db_session: Session, sink: RecordingSink) -> Generator[TestClient, None, None]:
    """Create a test client with database and notification overrides."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_sink] = lambda: sink
    # Disable rate limiter during tests to avoid flaky failures
    from app.core.rate_limit import limiter as global_limiter
    global_limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    global_limiter.enabled = True
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Floor and catalog
# ---------------------------------------------------------------------------

@pytest.fixture
def branch(db_session: Session) -> Branch:
    """Branch with webhook secrets for Swiggy and Zomato, none for Dunzo."""
    branch = Branch(
        id="branch-main",
        name="Main Street",
        marketplace_config={
            "SWIGGY": {"webhook_secret": SWIGGY_SECRET},
            "ZOMATO": {"webhook_secret": ZOMATO_SECRET},
        },
        default_staff_id="cashier-1",
    )
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture
def other_branch(db_session: Session) -> Branch:
    branch = Branch(id="branch-other", name="Harbour Road")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture
def table(db_session: Session, branch: Branch) -> Table:
    table = Table(id="table-1", branch_id=branch.id, number="1", name="T1")
    db_session.add(table)
    db_session.commit()
    return table


@pytest.fixture
def menu(db_session: Session, branch: Branch) -> dict:
    """Catalog: paneer 100, naan 40, dal HALF 120 / FULL 200, soup unavailable."""
    items = {
        "paneer": MenuItem(id="item-paneer", branch_id=branch.id, name="Paneer Tikka", price=Decimal("100")),
        "naan": MenuItem(id="item-naan", branch_id=branch.id, name="Butter Naan", price=Decimal("40")),
        "dal": MenuItem(
            id="item-dal",
            branch_id=branch.id,
            name="Dal Makhani",
            price=Decimal("200"),
            size_prices={"HALF": 120, "FULL": 200},
        ),
        "soup": MenuItem(
            id="item-soup", branch_id=branch.id, name="Tomato Soup", price=Decimal("90"), available=False
        ),
    }
    db_session.add_all(items.values())
    db_session.commit()
    return items


# ---------------------------------------------------------------------------
# Actors and auth headers
# ---------------------------------------------------------------------------

@pytest.fixture
def cashier(branch: Branch) -> ActorContext:
    return ActorContext(staff_id="cashier-1", role=UserRole.CASHIER, branch_id=branch.id)


@pytest.fixture
def waiter(branch: Branch) -> ActorContext:
    return ActorContext(staff_id="waiter-1", role=UserRole.WAITER, branch_id=branch.id)


@pytest.fixture
def kitchen(branch: Branch) -> ActorContext:
    return ActorContext(staff_id="chef-1", role=UserRole.KITCHEN, branch_id=branch.id)


@pytest.fixture
def chairman(branch: Branch) -> ActorContext:
    return ActorContext(staff_id="owner-1", role=UserRole.CHAIRMAN, branch_id=branch.id)


def headers_for(actor: ActorContext) -> dict:
    token = create_access_token(
        data={"sub": actor.staff_id, "role": actor.role.value, "branch_id": actor.branch_id}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def cashier_headers(cashier: ActorContext) -> dict:
    return headers_for(cashier)


@pytest.fixture
def waiter_headers(waiter: ActorContext) -> dict:
    return headers_for(waiter)


@pytest.fixture
def kitchen_headers(kitchen: ActorContext) -> dict:
    return headers_for(kitchen)
