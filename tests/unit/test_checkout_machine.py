"""Unit tests for the checkout state machine"""

import pytest
from paywall_checkout.domain.checkout import PROCESSING_ERROR
from paywall_checkout.domain.exceptions import InvalidTransitionError
from paywall_checkout.domain.models import CheckoutState, PaymentMethod
from paywall_checkout.domain.outcome import Destination
from paywall_checkout.domain.payment_form import FieldError, PaymentFormModel
from paywall_checkout.domain.session_store import SUCCESS_STEP


def _fill_card(form: PaymentFormModel, card_number: str = "4242424242424242") -> None:
    form.set_field("email", "user@example.com")
    form.set_field("card_number", card_number)
    form.set_field("expiration", "12/99")
    form.set_field("cvc", "123")
    form.set_field("cardholder_name", "Jane Doe")
    form.set_field("country", "TR")


def _reach_auth_form(machine, form, scheduler, card_number="4242424242424242"):
    _fill_card(form, card_number)
    assert machine.submit(form) == {}
    assert machine.state is CheckoutState.AUTHENTICATING
    scheduler.advance(2.0)
    assert machine.session.auth_form_visible is True


def test_machine_starts_selecting_plan_without_stored_plan(make_machine):
    """Test a fresh session has to pick a plan first"""
    machine = make_machine()
    assert machine.state is CheckoutState.SELECTING_PLAN


def test_machine_resumes_with_stored_plan(make_machine, store, monthly_plan):
    """Test a plan recovered from storage skips plan selection"""
    store.select_plan(monthly_plan)
    machine = make_machine()

    assert machine.state is CheckoutState.ENTERING_PAYMENT
    assert machine.session.selected_plan == monthly_plan


def test_submit_without_plan_reports_plan_required(make_machine, form, tracker):
    """Test submitting before choosing a plan is a validation error, not a transition"""
    machine = make_machine()
    errors = machine.submit(form)

    assert errors == {"plan": FieldError.PLAN_REQUIRED}
    assert machine.state is CheckoutState.SELECTING_PLAN
    assert "validation_failed" in tracker.actions()


def test_submit_invalid_form_keeps_state(make_machine, form, monthly_plan):
    """Test validation errors leave the machine in ENTERING_PAYMENT"""
    machine = make_machine()
    machine.select_plan(monthly_plan)

    errors = machine.submit(form)

    assert errors["email"] is FieldError.EMAIL_REQUIRED
    assert machine.state is CheckoutState.ENTERING_PAYMENT
    assert machine.session.attempt_count == 1


def test_non_card_method_succeeds_without_authentication(make_machine, form, free_plan, tracker, scheduler):
    """Test free trial + PayPal goes straight to SUCCEEDED with one conversion event"""
    machine = make_machine()
    machine.select_plan(free_plan)
    form.set_payment_method(PaymentMethod.PAYPAL)
    form.set_field("email", "user@example.com")

    errors = machine.submit(form)

    assert errors == {}
    assert machine.state is CheckoutState.SUCCEEDED
    assert "processing_started" not in tracker.actions()
    assert machine.session.outcome.destination is Destination.SUCCESS
    assert tracker.actions().count("onboarding_complete") == 1
    assert scheduler.pending == 0


def test_card_payment_success(make_machine, form, monthly_plan, scheduler, store, tracker):
    """Test the success card with the success password ends in SUCCEEDED"""
    machine = make_machine()
    machine.select_plan(monthly_plan)
    _reach_auth_form(machine, form, scheduler)

    assert machine.submit_authentication("123456") is None
    assert machine.state is CheckoutState.PROCESSING

    scheduler.advance(3.0)

    assert machine.state is CheckoutState.SUCCEEDED
    assert machine.session.outcome.destination is Destination.SUCCESS
    assert machine.session.outcome.message is None
    assert store.state.current_step_index == SUCCESS_STEP
    assert store.state.checkout_outcome == "succeeded"
    assert tracker.actions().count("onboarding_complete") == 1
    assert scheduler.pending == 0


def test_card_payment_wrong_password_declined(make_machine, form, monthly_plan, scheduler):
    """Test any other password at the authentication step is declined"""
    machine = make_machine()
    machine.select_plan(monthly_plan)
    _reach_auth_form(machine, form, scheduler)

    machine.submit_authentication("000000")
    scheduler.advance(3.0)

    assert machine.state is CheckoutState.DECLINED
    assert machine.session.outcome.destination is Destination.ERROR
    assert machine.session.outcome.message == "payment_failed"


def test_declined_card_reaches_error_destination(make_machine, form, monthly_plan, scheduler, tracker):
    """Test card 4000000000000002 is declined whatever password is typed"""
    machine = make_machine()
    machine.select_plan(monthly_plan)
    _reach_auth_form(machine, form, scheduler, card_number="4000000000000002")

    machine.submit_authentication("123456")
    scheduler.advance(3.0)

    assert machine.state is CheckoutState.DECLINED
    assert machine.session.outcome.destination is Destination.ERROR
    assert "onboarding_complete" not in tracker.actions()
    assert scheduler.pending == 0


def test_empty_password_keeps_form_open(make_machine, form, monthly_plan, scheduler):
    """Test an empty password is a field error and the countdown keeps running"""
    machine = make_machine()
    machine.select_plan(monthly_plan)
    _reach_auth_form(machine, form, scheduler)

    assert machine.submit_authentication("  ") is FieldError.PASSWORD_REQUIRED
    assert machine.state is CheckoutState.AUTHENTICATING
    assert scheduler.pending == 1


def test_authenticate_before_form_is_shown(make_machine, form, monthly_plan):
    """Test the password cannot be sent during the redirecting delay"""
    machine = make_machine()
    machine.select_plan(monthly_plan)
    _fill_card(form)
    machine.submit(form)

    with pytest.raises(InvalidTransitionError):
        machine.submit_authentication("123456")


def test_countdown_ticks_and_expires(make_machine, form, monthly_plan, scheduler, tracker):
    """Test the countdown expiry routes to cancel with no message and leaves no timers"""
    machine = make_machine()
    machine.select_plan(monthly_plan)
    _reach_auth_form(machine, form, scheduler)
    assert machine.session.auth_deadline == scheduler.now() + 300

    scheduler.advance(10)
    assert machine.session.time_left == 290
    assert scheduler.pending == 1

    scheduler.advance(290)

    assert machine.state is CheckoutState.AUTH_EXPIRED
    assert machine.session.time_left == 0
    assert machine.session.outcome.destination is Destination.CANCEL
    assert machine.session.outcome.message is None
    assert "auth_expired" in tracker.actions()
    assert scheduler.pending == 0


def test_cancel_during_redirect_tears_down_reveal_timer(make_machine, form, monthly_plan, scheduler):
    """Test cancelling before the form appears leaves nothing scheduled"""
    machine = make_machine()
    machine.select_plan(monthly_plan)
    _fill_card(form)
    machine.submit(form)
    assert scheduler.pending == 1

    outcome = machine.cancel()

    assert outcome.destination is Destination.CANCEL
    assert outcome.message is None
    assert machine.state is CheckoutState.CANCELLED
    assert scheduler.pending == 0

    scheduler.advance(10)
    assert machine.session.auth_form_visible is False


def test_cancel_not_allowed_while_processing(make_machine, form, monthly_plan, scheduler):
    """Test processing runs to completion once started"""
    machine = make_machine()
    machine.select_plan(monthly_plan)
    _reach_auth_form(machine, form, scheduler)
    machine.submit_authentication("123456")

    with pytest.raises(InvalidTransitionError):
        machine.cancel()

    scheduler.advance(3.0)
    assert machine.state is CheckoutState.SUCCEEDED


def test_unexpected_error_routes_to_error_destination(make_machine, form, monthly_plan, scheduler, error_reporter, monkeypatch):
    """Test an exception during processing ends in FAILED and is reported"""
    machine = make_machine()
    machine.select_plan(monthly_plan)
    _reach_auth_form(machine, form, scheduler)

    def explode(*args, **kwargs):
        raise RuntimeError("gateway exploded")

    monkeypatch.setattr("paywall_checkout.domain.checkout.decide_payment", explode)
    machine.submit_authentication("123456")
    scheduler.advance(3.0)

    assert machine.state is CheckoutState.FAILED
    assert machine.session.outcome.destination is Destination.ERROR
    assert machine.session.outcome.message == PROCESSING_ERROR
    assert len(error_reporter.reports) == 1
    error, context = error_reporter.reports[0]
    assert isinstance(error, RuntimeError)
    assert context["operation"] == "complete_processing"
    assert context["plan_id"] == monthly_plan.id


def test_restart_after_decline(make_machine, form, monthly_plan, scheduler):
    """Test a finished attempt can be retried with the same plan"""
    machine = make_machine()
    machine.select_plan(monthly_plan)
    _reach_auth_form(machine, form, scheduler, card_number="4000000000000002")
    machine.submit_authentication("x")
    scheduler.advance(3.0)

    assert machine.restart() is CheckoutState.ENTERING_PAYMENT
    assert machine.session.outcome is None
    assert machine.session.attempt_count == 1


def test_restart_only_from_terminal_states(make_machine, monthly_plan):
    """Test restart is rejected mid-checkout"""
    machine = make_machine()
    machine.select_plan(monthly_plan)

    with pytest.raises(InvalidTransitionError):
        machine.restart()


def test_on_outcome_called_once_per_terminal_transition(make_machine, form, free_plan):
    """Test the outcome hook sees each finished attempt"""
    seen = []
    machine = make_machine(on_outcome=lambda outcome, session: seen.append((outcome.state, session.attempt_count)))
    machine.select_plan(free_plan)
    form.set_payment_method("paypal")
    form.set_field("email", "user@example.com")
    machine.submit(form)

    assert seen == [(CheckoutState.SUCCEEDED, 1)]


def test_auto_select_default_picks_free_plan(make_machine, free_plan, monthly_plan, store):
    """Test the free trial is preselected only when nothing is chosen"""
    machine = make_machine()

    assert machine.auto_select_default([monthly_plan, free_plan]) == free_plan
    assert machine.state is CheckoutState.ENTERING_PAYMENT
    assert store.state.selected_plan == free_plan

    machine.select_plan(monthly_plan)
    assert machine.auto_select_default([free_plan]) == monthly_plan


def test_select_plan_tracks_events(make_machine, monthly_plan, tracker):
    """Test plan selection emits the plan_selection and plan_selected events"""
    machine = make_machine()
    machine.select_plan(monthly_plan)

    assert tracker.events[0] == ("plan_selection", "subscription", "select_plan", "1 month (1-month)", None)
    assert tracker.events[1] == ("payment", "payment", "plan_selected", "1-month", None)
