"""Onboarding step validation"""

from paywall_checkout.domain.exceptions import OnboardingValidationError
from paywall_checkout.domain.models import OnboardingAnswers
from paywall_checkout.domain.validation import validate_weight

LUNCH_STEP = 1
WEIGHT_STEP = 2


def validate_onboarding_step(step: int, answers: OnboardingAnswers) -> None:
    """
    Check the answer each onboarding step collects.

    Raises:
        OnboardingValidationError: Step 1 without a lunch preference, step 2
            without a weight in range for its unit, or an unknown step
    """
    if step == LUNCH_STEP:
        if answers.lunch_preference is None:
            raise OnboardingValidationError("Lunch type is required")
    elif step == WEIGHT_STEP:
        if answers.weight is None or not validate_weight(answers.weight, answers.weight_unit):
            raise OnboardingValidationError("Valid weight is required")
    else:
        raise OnboardingValidationError(f"Unknown onboarding step: {step}")
