"""Single authoritative payment decision for the simulated gateway"""

from dataclasses import dataclass
from typing import Optional

from paywall_checkout.domain.models import PaymentDraft, PaymentMethod

DECLINE_REASON = "payment_failed"


@dataclass(frozen=True)
class PaymentPolicy:
    """Values the simulated gateway treats as a successful card payment"""

    success_card_number: str
    success_password: str


@dataclass
class PaymentDecision:
    approved: bool
    reason: Optional[str] = None


def decide_payment(
    draft: PaymentDraft,
    policy: PaymentPolicy,
    password: Optional[str] = None,
) -> PaymentDecision:
    """
    Decide whether a payment attempt succeeds.

    Used by both checkout branches:
    - Non-card methods (Apple Pay, PayPal) have no external provider and are
      approved once the draft passed validation
    - Card payments succeed only when the card number AND the authentication
      password both match the policy values; anything else is declined
    """
    if draft.payment_method is not PaymentMethod.CARD:
        return PaymentDecision(approved=True)

    is_correct_card = draft.card_digits == policy.success_card_number
    is_correct_password = password is not None and password == policy.success_password

    if is_correct_card and is_correct_password:
        return PaymentDecision(approved=True)

    return PaymentDecision(approved=False, reason=DECLINE_REASON)
