"""Per-session checkout flows held by the running service"""

import logging
import threading
from collections import OrderedDict
from functools import partial
from typing import Callable, Optional

from paywall_checkout.config import settings
from paywall_checkout.domain.checkout import CheckoutMachine
from paywall_checkout.domain.decision import PaymentPolicy
from paywall_checkout.domain.exceptions import InvalidTransitionError
from paywall_checkout.domain.models import CheckoutSession, CheckoutState, PaymentDraft
from paywall_checkout.domain.outcome import Outcome
from paywall_checkout.domain.payment_form import PaymentFormModel
from paywall_checkout.domain.session_store import KeyValueStore, SessionStore
from paywall_checkout.infrastructure.clients.catalog import CatalogClient
from paywall_checkout.infrastructure.database.repositories import SqlKeyValueStore
from paywall_checkout.infrastructure.database.session import SessionLocal
from paywall_checkout.infrastructure.observability.error_reporting import ErrorReporter
from paywall_checkout.infrastructure.observability.logging import log_checkout_outcome
from paywall_checkout.infrastructure.observability.metrics import (
    active_sessions_gauge,
    record_checkout_outcome,
)
from paywall_checkout.infrastructure.observability.tracking import EventTracker
from paywall_checkout.utils.timers import AsyncioScheduler, Scheduler

# States in which the session may not be wiped
_BUSY_STATES = (CheckoutState.AUTHENTICATING, CheckoutState.PROCESSING)


class CheckoutFlow:
    """Session store, payment form and checkout machine of one browser session"""

    def __init__(self, session_id: str, store: SessionStore, form: PaymentFormModel, machine: CheckoutMachine):
        self.session_id = session_id
        self.store = store
        self.form = form
        self.machine = machine
        self.payment_queued = False
        self.transaction_id: Optional[str] = None

    def restart(self) -> CheckoutState:
        state = self.machine.restart()
        self.payment_queued = False
        self.transaction_id = None
        return state

    async def record_payment(self, catalog: CatalogClient) -> None:
        """Send a completed payment to the catalog API"""
        session = self.machine.session
        result = await catalog.submit_payment(session.draft, session.selected_plan.id)

        if not result.success:
            logging.warning(
                f"Payment record rejected: {result.error}",
                extra={"session_id": self.session_id, "step": "payment_record"},
            )
            return

        self.transaction_id = result.transaction_id
        logging.info(
            "Payment recorded",
            extra={
                "session_id": self.session_id,
                "step": "payment_record",
                "transaction_id": result.transaction_id,
            },
        )


def _sql_store(session_id: str) -> KeyValueStore:
    return SqlKeyValueStore(SessionLocal, session_id)


class FlowRegistry:
    """
    In-process registry of checkout flows keyed by session id.

    A flow is rebuilt from the persisted snapshot the first time its session
    is seen, so a service restart behaves like a browser reload. At most
    `max_flows` flows are held; the least recently used flows that are not
    mid-authentication or processing are evicted beyond that.
    """

    def __init__(
        self,
        scheduler: Scheduler | None = None,
        kv_factory: Callable[[str], KeyValueStore] | None = None,
        tracker: EventTracker | None = None,
        error_reporter: ErrorReporter | None = None,
        policy: PaymentPolicy | None = None,
        max_flows: int | None = None,
    ):
        self.scheduler = scheduler or AsyncioScheduler()
        self.tracker = tracker or EventTracker()
        self.error_reporter = error_reporter or ErrorReporter()
        self.policy = policy or PaymentPolicy(
            success_card_number=settings.success_card_number,
            success_password=settings.success_auth_password,
        )
        self._kv_factory = kv_factory or _sql_store
        self.max_flows = max_flows or settings.max_cached_flows
        self._flows: "OrderedDict[str, CheckoutFlow]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._flows)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._flows

    def get(self, session_id: str) -> CheckoutFlow:
        with self._lock:
            flow = self._flows.get(session_id)
            if flow is None:
                flow = self._build(session_id)
                self._flows[session_id] = flow
                active_sessions_gauge.inc()
                self._evict_idle()
            else:
                self._flows.move_to_end(session_id)
            return flow

    def release(self, session_id: str) -> bool:
        """Drop a cached flow unless it is busy; its state stays in storage"""
        with self._lock:
            flow = self._flows.get(session_id)
            if flow is None or flow.machine.state in _BUSY_STATES:
                return False
            self._drop(session_id)
            return True

    def _evict_idle(self) -> None:
        """Evict least recently used idle flows while over capacity (lock held)"""
        excess = len(self._flows) - self.max_flows
        if excess <= 0:
            return

        newest = next(reversed(self._flows))
        idle = [
            sid
            for sid, flow in self._flows.items()
            if sid != newest and flow.machine.state not in _BUSY_STATES
        ]
        for session_id in idle[:excess]:
            self._drop(session_id)

        if len(self._flows) > self.max_flows:
            logging.warning(
                "Flow cache over capacity with busy sessions",
                extra={"step": "flow_eviction", "cached_flows": len(self._flows)},
            )

    def _drop(self, session_id: str) -> None:
        del self._flows[session_id]
        active_sessions_gauge.dec()

    def reset(self, session_id: str) -> CheckoutFlow:
        """Wipe the session's storage and start a fresh flow"""
        flow = self.get(session_id)
        if flow.machine.state in _BUSY_STATES:
            raise InvalidTransitionError("reset session", flow.machine.state.value)

        flow.store.reset()
        with self._lock:
            if session_id in self._flows:
                self._drop(session_id)

        logging.info("Session reset", extra={"session_id": session_id, "step": "session_reset"})
        return self.get(session_id)

    def _build(self, session_id: str) -> CheckoutFlow:
        store = SessionStore(self._kv_factory(session_id))
        form = PaymentFormModel(PaymentDraft.from_payment_info(store.state.payment_info), store=store)
        machine = CheckoutMachine(
            store=store,
            scheduler=self.scheduler,
            tracker=self.tracker,
            error_reporter=self.error_reporter,
            policy=self.policy,
            countdown_seconds=settings.auth_countdown_seconds,
            reveal_delay=settings.auth_reveal_delay_seconds,
            processing_delay=settings.processing_delay_seconds,
            on_outcome=partial(self._handle_outcome, session_id),
        )
        return CheckoutFlow(session_id, store, form, machine)

    def _handle_outcome(self, session_id: str, outcome: Outcome, session: CheckoutSession) -> None:
        record_checkout_outcome(outcome.state.value)
        log_checkout_outcome(
            session_id=session_id,
            state=outcome.state.value,
            destination=outcome.destination.value,
            plan_id=session.selected_plan.id if session.selected_plan else None,
            attempt_count=session.attempt_count,
        )
