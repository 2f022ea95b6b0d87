"""Session routes - recovered app state, language switch, reset, and onboarding steps"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Path, Request

from paywall_checkout.api.dependencies import (
    get_catalog_client,
    get_flow,
    get_registry,
    get_request_id,
    get_session_id,
)
from paywall_checkout.api.sessions import CheckoutFlow, FlowRegistry
from paywall_checkout.api.v1.schemas import (
    LanguageRequest,
    OnboardingStepRequest,
    OnboardingStepResponse,
    SessionResponse,
)
from paywall_checkout.domain.models import OnboardingAnswers
from paywall_checkout.domain.onboarding import LUNCH_STEP, WEIGHT_STEP
from paywall_checkout.infrastructure.clients.catalog import CatalogClient

router = APIRouter()


def _session_response(flow: CheckoutFlow) -> SessionResponse:
    state = flow.store.state
    return SessionResponse(
        session_id=flow.session_id,
        current_step_index=state.current_step_index,
        language=state.language,
        direction=state.direction,
        onboarding_answers=state.onboarding_answers,
        selected_plan_id=state.selected_plan.id if state.selected_plan else None,
        checkout_outcome=state.checkout_outcome,
    )


@router.get("/session", response_model=SessionResponse)
def get_session(flow: CheckoutFlow = Depends(get_flow)):
    return _session_response(flow)


@router.post("/session/language", response_model=SessionResponse)
def switch_language(
    request_body: LanguageRequest,
    flow: CheckoutFlow = Depends(get_flow),
    registry: FlowRegistry = Depends(get_registry),
):
    """Switch the display language; text direction follows it"""
    flow.store.switch_language(request_body.language)
    registry.tracker.track_language_change(request_body.language)
    return _session_response(flow)


@router.post("/session/reset", response_model=SessionResponse)
def reset_session(
    request: Request,
    session_id: str = Depends(get_session_id),
    registry: FlowRegistry = Depends(get_registry),
):
    """Erase the persisted snapshot and email and start over"""
    response = _session_response(registry.reset(session_id))
    if request.state.session_issued:
        registry.release(session_id)
    return response


@router.post("/onboarding/{step}", response_model=OnboardingStepResponse)
async def submit_onboarding_step(
    request_body: OnboardingStepRequest,
    request: Request,
    step: int = Path(..., ge=LUNCH_STEP, le=WEIGHT_STEP),
    flow: CheckoutFlow = Depends(get_flow),
    registry: FlowRegistry = Depends(get_registry),
    catalog: CatalogClient = Depends(get_catalog_client),
):
    """
    Submit one onboarding answer.

    Flow:
    1. Merge the answer into the session's onboarding answers
    2. Validate and send the step to the catalog API (kept locally when it is down)
    3. Persist the answers and advance to the next step
    """
    request_id = get_request_id(request)
    update = request_body.model_dump(exclude_none=True)
    answers = OnboardingAnswers.model_validate({**flow.store.state.onboarding_answers.model_dump(), **update})

    result = await catalog.submit_onboarding_step(step, answers)
    if not result.success:
        registry.tracker.track("validation", "onboarding", "validation_failed", "onboarding")
        logging.warning(
            f"Onboarding step rejected: {result.error}",
            extra={"request_id": request_id, "session_id": flow.session_id, "step": f"onboarding_{step}"},
        )
        raise HTTPException(status_code=422, detail=result.error)

    flow.store.update_onboarding(**update)
    flow.store.set_step(step + 1)
    registry.tracker.track_onboarding_step(step, update)

    return OnboardingStepResponse(
        step=step,
        current_step_index=flow.store.state.current_step_index,
        answers=flow.store.state.onboarding_answers,
    )
