"""Pydantic schemas for API request/response validation"""

from typing import Dict, Optional

from pydantic import BaseModel, Field

from paywall_checkout.domain.models import (
    CheckoutState,
    Language,
    LunchPreference,
    OnboardingAnswers,
    WeightUnit,
)
from paywall_checkout.domain.payment_form import FieldError


class LanguageRequest(BaseModel):
    """Request body for POST /v1/session/language"""

    language: Language


class OnboardingStepRequest(BaseModel):
    """Request body for POST /v1/onboarding/{step}"""

    lunch_preference: Optional[LunchPreference] = None
    weight: Optional[float] = Field(default=None, gt=0)
    weight_unit: Optional[WeightUnit] = None


class OnboardingStepResponse(BaseModel):
    step: int
    current_step_index: int
    answers: OnboardingAnswers


class SessionResponse(BaseModel):
    """Response for GET /v1/session"""

    session_id: str
    current_step_index: int
    language: Language
    direction: str
    onboarding_answers: OnboardingAnswers
    selected_plan_id: Optional[str] = None
    checkout_outcome: Optional[str] = None


class PlanSelectionRequest(BaseModel):
    """Request body for POST /v1/checkout/plan"""

    plan_id: str = Field(..., min_length=1)


class FieldUpdateRequest(BaseModel):
    """Request body for PUT /v1/checkout/fields/{field}"""

    value: str = ""


class FieldUpdateResponse(BaseModel):
    field: str
    value: str
    error: Optional[FieldError] = None


class PaymentMethodRequest(BaseModel):
    """Request body for PUT /v1/checkout/payment-method; `apple-pay` is accepted"""

    payment_method: str = Field(..., min_length=1)


class AuthenticationRequest(BaseModel):
    """Request body for POST /v1/checkout/authenticate"""

    password: str = ""


class PaymentDetails(BaseModel):
    email: str
    payment_method: str
    card_number: str
    masked_card_number: str
    expiration: str
    cardholder_name: str
    country: str


class OutcomeSchema(BaseModel):
    state: CheckoutState
    destination: str
    path: str
    message: Optional[str] = None


class CheckoutResponse(BaseModel):
    """Snapshot of the session's checkout, returned by every checkout route"""

    state: CheckoutState
    selected_plan_id: Optional[str] = None
    payment: PaymentDetails
    errors: Dict[str, FieldError] = Field(default_factory=dict)
    attempt_count: int
    auth_form_visible: bool
    time_left: int
    countdown: str
    outcome: Optional[OutcomeSchema] = None


class SuccessResponse(BaseModel):
    """Response for GET /v1/success"""

    email: Optional[str] = None
    plan_id: Optional[str] = None
    plan_name: Optional[str] = None
    transaction_id: Optional[str] = None
