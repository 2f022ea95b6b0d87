"""Checkout routes - plan selection, payment form, 3-D Secure step, and outcome"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request

from paywall_checkout.api.dependencies import get_catalog_client, get_flow, get_registry, get_request_id
from paywall_checkout.api.sessions import CheckoutFlow, FlowRegistry
from paywall_checkout.api.v1.schemas import (
    AuthenticationRequest,
    CheckoutResponse,
    FieldUpdateRequest,
    FieldUpdateResponse,
    OutcomeSchema,
    PaymentDetails,
    PaymentMethodRequest,
    PlanSelectionRequest,
    SuccessResponse,
)
from paywall_checkout.domain.exceptions import InvalidTransitionError, UnknownPlanError
from paywall_checkout.domain.models import CheckoutState, PaymentMethod
from paywall_checkout.domain.payment_form import ErrorMap
from paywall_checkout.domain.session_store import PAYWALL_STEP
from paywall_checkout.domain.validation import format_countdown, mask_card_number
from paywall_checkout.infrastructure.clients.catalog import CatalogClient

router = APIRouter()

_EDITABLE_STATES = (CheckoutState.SELECTING_PLAN, CheckoutState.ENTERING_PAYMENT)


def _checkout_response(flow: CheckoutFlow, errors: Optional[ErrorMap] = None) -> CheckoutResponse:
    session = flow.machine.session
    draft = flow.form.draft
    outcome = session.outcome

    return CheckoutResponse(
        state=session.state,
        selected_plan_id=session.selected_plan.id if session.selected_plan else None,
        payment=PaymentDetails(
            email=draft.email,
            payment_method=draft.payment_method.value,
            card_number=draft.card_number,
            masked_card_number=mask_card_number(draft.card_number),
            expiration=flow.form.expiration_input,
            cardholder_name=draft.cardholder_name,
            country=draft.country,
        ),
        errors=flow.form.errors if errors is None else errors,
        attempt_count=session.attempt_count,
        auth_form_visible=session.auth_form_visible,
        time_left=session.time_left,
        countdown=format_countdown(session.time_left),
        outcome=(
            OutcomeSchema(
                state=outcome.state,
                destination=outcome.destination.value,
                path=outcome.destination.path,
                message=outcome.message,
            )
            if outcome is not None
            else None
        ),
    )


def _queue_payment_record(flow: CheckoutFlow, background_tasks: BackgroundTasks, catalog: CatalogClient) -> None:
    """Record a succeeded payment with the catalog API once per attempt"""
    if flow.machine.state is CheckoutState.SUCCEEDED and not flow.payment_queued:
        flow.payment_queued = True
        background_tasks.add_task(flow.record_payment, catalog)


def _require_editable(flow: CheckoutFlow) -> None:
    if flow.machine.state not in _EDITABLE_STATES:
        raise InvalidTransitionError("edit payment details", flow.machine.state.value)


@router.get("/checkout", response_model=CheckoutResponse)
async def get_checkout(
    background_tasks: BackgroundTasks,
    flow: CheckoutFlow = Depends(get_flow),
    catalog: CatalogClient = Depends(get_catalog_client),
):
    _queue_payment_record(flow, background_tasks, catalog)
    return _checkout_response(flow)


@router.post("/checkout/plan", response_model=CheckoutResponse)
async def select_plan(
    request_body: PlanSelectionRequest,
    flow: CheckoutFlow = Depends(get_flow),
    catalog: CatalogClient = Depends(get_catalog_client),
):
    plans = await catalog.get_subscription_plans()
    plan = next((p for p in plans if p.id == request_body.plan_id), None)
    if plan is None:
        raise UnknownPlanError(f"Plan {request_body.plan_id} not found")

    flow.machine.select_plan(plan)
    if flow.store.state.current_step_index < PAYWALL_STEP:
        flow.store.set_step(PAYWALL_STEP)

    return _checkout_response(flow)


@router.put("/checkout/fields/{field}", response_model=FieldUpdateResponse)
async def update_field(
    field: str,
    request_body: FieldUpdateRequest,
    flow: CheckoutFlow = Depends(get_flow),
):
    """Format and store one payment field; only that field's error is recomputed"""
    _require_editable(flow)

    try:
        value, error = flow.form.set_field(field, request_body.value)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown payment field: {field}")

    return FieldUpdateResponse(field=field, value=value, error=error)


@router.put("/checkout/payment-method", response_model=CheckoutResponse)
async def select_payment_method(
    request_body: PaymentMethodRequest,
    flow: CheckoutFlow = Depends(get_flow),
    registry: FlowRegistry = Depends(get_registry),
):
    _require_editable(flow)

    try:
        method = PaymentMethod(request_body.payment_method)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Unknown payment method: {request_body.payment_method}")

    flow.form.set_payment_method(method)
    registry.tracker.track_payment_method_selection(method.value)
    return _checkout_response(flow)


@router.post("/checkout/submit", response_model=CheckoutResponse)
async def submit_payment(
    request: Request,
    background_tasks: BackgroundTasks,
    flow: CheckoutFlow = Depends(get_flow),
    catalog: CatalogClient = Depends(get_catalog_client),
):
    """
    Submit the payment form.

    Card payments continue to the 3-D Secure step; Apple Pay and PayPal are
    decided immediately. Validation errors come back in `errors` with the
    state unchanged.
    """
    errors = flow.machine.submit(flow.form)
    if errors:
        logging.info(
            "Payment form rejected",
            extra={
                "request_id": get_request_id(request),
                "session_id": flow.session_id,
                "step": "payment_form",
                "fields": sorted(errors),
            },
        )

    _queue_payment_record(flow, background_tasks, catalog)
    return _checkout_response(flow, errors)


@router.post("/checkout/authenticate", response_model=CheckoutResponse)
async def authenticate(
    request_body: AuthenticationRequest,
    flow: CheckoutFlow = Depends(get_flow),
):
    error = flow.machine.submit_authentication(request_body.password)
    return _checkout_response(flow, {"password": error} if error else {})


@router.post("/checkout/cancel", response_model=CheckoutResponse)
async def cancel_checkout(flow: CheckoutFlow = Depends(get_flow)):
    flow.machine.cancel()
    return _checkout_response(flow)


@router.post("/checkout/restart", response_model=CheckoutResponse)
async def restart_checkout(flow: CheckoutFlow = Depends(get_flow)):
    """Leave a finished attempt and return to the payment form"""
    flow.restart()
    return _checkout_response(flow)


@router.get("/success", response_model=SuccessResponse)
async def get_success(
    background_tasks: BackgroundTasks,
    flow: CheckoutFlow = Depends(get_flow),
    registry: FlowRegistry = Depends(get_registry),
    catalog: CatalogClient = Depends(get_catalog_client),
):
    """
    Success page data.

    Also answers after a reload: the persisted outcome is checked, and the
    email is recovered from the draft, the email key, or the snapshot.
    """
    if flow.store.state.checkout_outcome != CheckoutState.SUCCEEDED.value:
        raise InvalidTransitionError("show success", flow.machine.state.value)

    _queue_payment_record(flow, background_tasks, catalog)
    registry.tracker.track_page_view("payment_success")

    plan = flow.machine.session.selected_plan or flow.store.state.selected_plan
    return SuccessResponse(
        email=flow.store.current_email(flow.machine.session),
        plan_id=plan.id if plan else None,
        plan_name=plan.display_name if plan else None,
        transaction_id=flow.transaction_id,
    )
