"""Pytest fixtures for testing"""

import os

# Keep the module-level app and engine off the service database
TEST_DATABASE_URL = "sqlite:///./test.db"
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)

import httpx
import pytest
from decimal import Decimal
from typing import Callable, Generator, List, Optional, Tuple
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from paywall_checkout.api.dependencies import get_catalog_client
from paywall_checkout.api.main import create_app
from paywall_checkout.api.sessions import FlowRegistry
from paywall_checkout.domain.checkout import CheckoutMachine
from paywall_checkout.domain.decision import PaymentPolicy
from paywall_checkout.domain.models import SubscriptionPlan
from paywall_checkout.domain.payment_form import PaymentFormModel
from paywall_checkout.domain.session_store import MemoryKeyValueStore, SessionStore
from paywall_checkout.infrastructure.clients.catalog import CatalogClient
from paywall_checkout.infrastructure.database.models import Base
from paywall_checkout.infrastructure.database.repositories import SqlKeyValueStore
from paywall_checkout.infrastructure.database.session import build_engine


# Test database
engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeTimer:
    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Deterministic clock: timers only fire when the test advances time"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.clock = start
        self.timers: List[FakeTimer] = []

    def now(self) -> float:
        return self.clock

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.clock + delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for t in self.timers if not t.cancelled)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due timers in order (including ones scheduled on the way)"""
        target = self.clock + seconds
        while True:
            due = [t for t in self.timers if not t.cancelled and t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.timers.remove(timer)
            self.clock = timer.due
            timer.callback()
        self.clock = target
        self.timers = [t for t in self.timers if not t.cancelled]


class RecordingTracker:
    """Analytics sink that keeps every event for assertions"""

    def __init__(self):
        self.events: List[Tuple[str, str, str, Optional[str], Optional[float]]] = []

    def track(self, event, category, action, label=None, value=None) -> None:
        self.events.append((event, category, action, label, value))

    def actions(self) -> List[str]:
        return [action for _, _, action, _, _ in self.events]

    # EventTracker helpers used by the API routes
    def track_page_view(self, page_name: str) -> None:
        self.track("page_view", "navigation", "view_page", page_name)

    def track_onboarding_step(self, step, data=None) -> None:
        self.track("onboarding_step", "onboarding", f"step_{step}", None, step)

    def track_payment_method_selection(self, method: str) -> None:
        self.track("payment_method_selection", "payment", "select_method", method)

    def track_language_change(self, language: str) -> None:
        self.track("language_change", "settings", "change_language", language)


class RecordingErrorReporter:
    def __init__(self):
        self.reports = []

    def report_error(self, error, context) -> None:
        self.reports.append((error, context))


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def tracker() -> RecordingTracker:
    return RecordingTracker()


@pytest.fixture
def error_reporter() -> RecordingErrorReporter:
    return RecordingErrorReporter()


@pytest.fixture
def policy() -> PaymentPolicy:
    return PaymentPolicy(success_card_number="4242424242424242", success_password="123456")


@pytest.fixture
def monthly_plan() -> SubscriptionPlan:
    return SubscriptionPlan(id="1-month", name="1 month", price=Decimal("11.6"))


@pytest.fixture
def free_plan() -> SubscriptionPlan:
    return SubscriptionPlan(id="free-trial", name="7 days free trial", price=Decimal("0"), isFree=True)


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def store(kv: MemoryKeyValueStore) -> SessionStore:
    return SessionStore(kv)


@pytest.fixture
def form(store: SessionStore) -> PaymentFormModel:
    return PaymentFormModel(store=store)


@pytest.fixture
def make_machine(store, scheduler, tracker, error_reporter, policy):
    """Factory for a checkout machine wired to the fake collaborators"""

    def _make(**kwargs) -> CheckoutMachine:
        options = dict(
            store=store,
            scheduler=scheduler,
            tracker=tracker,
            error_reporter=error_reporter,
            policy=policy,
            countdown_seconds=300,
            reveal_delay=2.0,
            processing_delay=3.0,
        )
        options.update(kwargs)
        return CheckoutMachine(**options)

    return _make


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
def sql_kv_factory(db: Session) -> Callable[[str], SqlKeyValueStore]:
    return lambda session_id: SqlKeyValueStore(TestingSessionLocal, session_id)


@pytest.fixture
def registry(scheduler, tracker, error_reporter, policy, sql_kv_factory) -> FlowRegistry:
    return FlowRegistry(
        scheduler=scheduler,
        kv_factory=sql_kv_factory,
        tracker=tracker,
        error_reporter=error_reporter,
        policy=policy,
    )


@pytest.fixture
def catalog_requests() -> List[httpx.Request]:
    return []


@pytest.fixture
def offline_catalog(catalog_requests: List[httpx.Request]) -> CatalogClient:
    """Catalog client whose API always answers 503, so fallback data is served"""

    def handler(request: httpx.Request) -> httpx.Response:
        catalog_requests.append(request)
        return httpx.Response(503)

    return CatalogClient(base_url="http://catalog.test", transport=httpx.MockTransport(handler), sandbox=True)


@pytest.fixture
def client(registry: FlowRegistry, offline_catalog: CatalogClient) -> TestClient:
    """Create FastAPI test client with test database, fake scheduler and offline catalog"""
    app = create_app(registry=registry)
    app.dependency_overrides[get_catalog_client] = lambda: offline_catalog
    return TestClient(app, headers={"X-Session-ID": "test-session"})
