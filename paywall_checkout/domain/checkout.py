"""Checkout state machine - plan selection through simulated 3-D Secure to outcome"""

from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, Optional, Protocol

from paywall_checkout.domain.decision import PaymentPolicy, decide_payment
from paywall_checkout.domain.exceptions import InvalidTransitionError
from paywall_checkout.domain.models import (
    CheckoutSession,
    CheckoutState,
    PaymentMethod,
    SubscriptionPlan,
)
from paywall_checkout.domain.outcome import Outcome, route_outcome
from paywall_checkout.domain.payment_form import ErrorMap, FieldError, PaymentFormModel
from paywall_checkout.domain.session_store import SessionStore
from paywall_checkout.utils.timers import Scheduler, TimerHandle

PROCESSING_ERROR = "processing_error"

REVEAL_TIMER = "reveal"
COUNTDOWN_TIMER = "countdown"
PROCESSING_TIMER = "processing"

TICK_SECONDS = 1.0

# Timers torn down on every exit from AUTHENTICATING
_CANCELLABLE_TIMERS = (REVEAL_TIMER, COUNTDOWN_TIMER)


class EventSink(Protocol):
    def track(
        self,
        event: str,
        category: str,
        action: str,
        label: Optional[str] = None,
        value: Optional[float] = None,
    ) -> None: ...


class ErrorSink(Protocol):
    def report_error(self, error: BaseException, context: Dict[str, Any]) -> None: ...


class CheckoutMachine:
    """
    Drives one checkout session.

    States:
        SELECTING_PLAN → ENTERING_PAYMENT → AUTHENTICATING (card only)
        → PROCESSING → SUCCEEDED | DECLINED
    plus AUTH_EXPIRED (countdown ran out), CANCELLED (user) and FAILED
    (unexpected exception). Non-card methods go straight from
    ENTERING_PAYMENT to SUCCEEDED.

    Timers:
    - reveal (one-shot) shows the authentication form
    - countdown ticks once per tick interval; at most one is pending
    - processing (one-shot) is never cancelled once started
    Reveal and countdown are cancelled together on every exit from
    AUTHENTICATING (submit, cancel or expiry).
    """

    def __init__(
        self,
        store: SessionStore,
        scheduler: Scheduler,
        tracker: EventSink,
        error_reporter: ErrorSink,
        policy: PaymentPolicy,
        countdown_seconds: int = 300,
        reveal_delay: float = 2.0,
        processing_delay: float = 3.0,
        on_outcome: Optional[Callable[[Outcome, CheckoutSession], None]] = None,
    ):
        self._store = store
        self._scheduler = scheduler
        self._tracker = tracker
        self._error_reporter = error_reporter
        self._policy = policy
        self._countdown_seconds = countdown_seconds
        self._reveal_delay = reveal_delay
        self._processing_delay = processing_delay
        self._on_outcome = on_outcome
        self._timers: Dict[str, TimerHandle] = {}

        self.session = CheckoutSession(selected_plan=store.state.selected_plan)
        if self.session.selected_plan is not None:
            self.session.state = CheckoutState.ENTERING_PAYMENT

    @property
    def state(self) -> CheckoutState:
        return self.session.state

    # Plan selection

    def select_plan(self, plan: SubscriptionPlan) -> None:
        self._require("select plan", CheckoutState.SELECTING_PLAN, CheckoutState.ENTERING_PAYMENT)

        self.session.selected_plan = plan
        self.session.state = CheckoutState.ENTERING_PAYMENT
        self._store.select_plan(plan)

        self._tracker.track("plan_selection", "subscription", "select_plan", f"{plan.display_name} ({plan.id})")
        self._track_payment("plan_selected", plan.id)

    def auto_select_default(self, plans: Iterable[SubscriptionPlan]) -> Optional[SubscriptionPlan]:
        """Select the free-trial plan when nothing is selected yet"""
        if self.session.selected_plan is not None or self.state is not CheckoutState.SELECTING_PLAN:
            return self.session.selected_plan

        free_plan = next((plan for plan in plans if plan.is_free), None)
        if free_plan is not None:
            self.session.selected_plan = free_plan
            self.session.state = CheckoutState.ENTERING_PAYMENT
            self._store.select_plan(free_plan)

        return free_plan

    # Payment submission

    def submit(self, form: PaymentFormModel) -> ErrorMap:
        """
        Submit the payment form.

        Returns the validation error map; empty when the draft was accepted.
        On acceptance card payments move to AUTHENTICATING and every other
        method is decided immediately.
        """
        if self.state is CheckoutState.SELECTING_PLAN:
            self._track_payment("validation_failed")
            return {"plan": FieldError.PLAN_REQUIRED}

        self._require("submit payment", CheckoutState.ENTERING_PAYMENT)
        self.session.attempt_count += 1

        errors = form.validate_all()
        if errors:
            self._track_payment("validation_failed")
            return errors

        plan = self.session.selected_plan
        self.session.draft = replace(form.draft)
        self._track_payment("payment_initiated", plan.id)

        try:
            if form.draft.payment_method is PaymentMethod.CARD:
                self._begin_authentication()
            else:
                self._finish_with_decision(password=None)
        except Exception as e:
            self._fail(e, "submit_payment")

        return {}

    # Authentication

    def _begin_authentication(self) -> None:
        self.session.state = CheckoutState.AUTHENTICATING
        self.session.auth_form_visible = False
        self.session.time_left = self._countdown_seconds
        self._tracker.track("user_interaction", "ui", "page_load", "secure_checkout")
        self._schedule(REVEAL_TIMER, self._reveal_delay, self._reveal_auth_form)

    def _reveal_auth_form(self) -> None:
        if self.state is not CheckoutState.AUTHENTICATING:
            return

        self.session.auth_form_visible = True
        self.session.auth_deadline = self._scheduler.now() + self._countdown_seconds
        self._schedule(COUNTDOWN_TIMER, TICK_SECONDS, self._tick)

    def _tick(self) -> None:
        if self.state is not CheckoutState.AUTHENTICATING:
            return

        self.session.time_left -= 1
        if self.session.time_left <= 0:
            self.session.time_left = 0
            self._teardown_timers()
            self._track_payment("auth_expired", "secure_checkout")
            self._finish(CheckoutState.AUTH_EXPIRED)
            return

        self._schedule(COUNTDOWN_TIMER, TICK_SECONDS, self._tick)

    def submit_authentication(self, password: str) -> Optional[FieldError]:
        """
        Submit the 3-D Secure password.

        An empty password is a validation error and keeps the form open. Any
        non-empty value moves to PROCESSING; after the processing delay the
        payment decision selects SUCCEEDED or DECLINED.
        """
        self._require("authenticate", CheckoutState.AUTHENTICATING)
        if not self.session.auth_form_visible:
            raise InvalidTransitionError("authenticate before the form is shown", self.state.value)

        if not (password or "").strip():
            self._track_payment("validation_failed", "secure_checkout")
            return FieldError.PASSWORD_REQUIRED

        self._teardown_timers()
        self.session.state = CheckoutState.PROCESSING
        self._track_payment("processing_started", self.session.selected_plan.id)
        self._schedule(PROCESSING_TIMER, self._processing_delay, lambda: self._complete_processing(password))
        return None

    def _complete_processing(self, password: str) -> None:
        try:
            self._finish_with_decision(password=password)
        except Exception as e:
            self._fail(e, "complete_processing")

    def _finish_with_decision(self, password: Optional[str]) -> None:
        plan = self.session.selected_plan
        decision = decide_payment(self.session.draft, self._policy, password)

        if decision.approved:
            self._track_payment("payment_success", plan.id)
            self._tracker.track("conversion", "conversion", "onboarding_complete", value=1)
            self._finish(CheckoutState.SUCCEEDED)
        else:
            self._track_payment("payment_failed", "secure_checkout")
            self._finish(CheckoutState.DECLINED, decision.reason)

    # Cancellation and restart

    def cancel(self) -> Outcome:
        self._require("cancel", CheckoutState.ENTERING_PAYMENT, CheckoutState.AUTHENTICATING)
        self._teardown_timers()
        self._track_payment("checkout_cancelled", "secure_checkout")
        return self._finish(CheckoutState.CANCELLED)

    def restart(self) -> CheckoutState:
        """Leave a finished attempt; the selected plan and draft are kept"""
        if not self.state.is_terminal:
            raise InvalidTransitionError("restart", self.state.value)

        self._teardown_timers()
        self.session.auth_form_visible = False
        self.session.auth_deadline = None
        self.session.time_left = 0
        self.session.outcome = None
        self.session.state = (
            CheckoutState.ENTERING_PAYMENT
            if self.session.selected_plan is not None
            else CheckoutState.SELECTING_PLAN
        )
        return self.state

    # Internals

    def _finish(self, state: CheckoutState, message: Optional[str] = None) -> Outcome:
        self.session.state = state
        self.session.auth_form_visible = False
        outcome = route_outcome(state, message)
        self.session.outcome = outcome
        self._store.record_checkout_outcome(state)

        if self._on_outcome is not None:
            self._on_outcome(outcome, self.session)

        return outcome

    def _fail(self, error: Exception, operation: str) -> None:
        self._teardown_timers()
        self._track_payment("processing_error", "secure_checkout")
        self._error_reporter.report_error(
            error,
            {
                "operation": operation,
                "state": self.state.value,
                "plan_id": self.session.selected_plan.id if self.session.selected_plan else None,
                "attempt_count": self.session.attempt_count,
            },
        )
        self._finish(CheckoutState.FAILED, PROCESSING_ERROR)

    def _schedule(self, name: str, delay: float, callback: Callable[[], None]) -> None:
        previous = self._timers.pop(name, None)
        if previous is not None:
            previous.cancel()

        def fire() -> None:
            self._timers.pop(name, None)
            callback()

        self._timers[name] = self._scheduler.call_later(delay, fire)

    def _teardown_timers(self) -> None:
        for name in _CANCELLABLE_TIMERS:
            handle = self._timers.pop(name, None)
            if handle is not None:
                handle.cancel()

    def _require(self, operation: str, *allowed: CheckoutState) -> None:
        if self.state not in allowed:
            raise InvalidTransitionError(operation, self.state.value)

    def _track_payment(self, action: str, label: Optional[str] = None) -> None:
        self._tracker.track("payment", "payment", action, label)
