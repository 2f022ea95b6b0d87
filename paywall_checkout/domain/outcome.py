"""Maps terminal checkout states to outcome destinations"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from paywall_checkout.domain.exceptions import InvalidTransitionError
from paywall_checkout.domain.models import CheckoutState


class Destination(str, Enum):
    SUCCESS = "success"
    CANCEL = "cancel"
    ERROR = "error"

    @property
    def path(self) -> str:
        return f"/payment/{self.value}"


@dataclass(frozen=True)
class Outcome:
    state: CheckoutState
    destination: Destination
    message: Optional[str] = None


_DESTINATIONS = {
    CheckoutState.SUCCEEDED: Destination.SUCCESS,
    CheckoutState.DECLINED: Destination.ERROR,
    CheckoutState.FAILED: Destination.ERROR,
    CheckoutState.AUTH_EXPIRED: Destination.CANCEL,
    CheckoutState.CANCELLED: Destination.CANCEL,
}


def route_outcome(state: CheckoutState, message: Optional[str] = None) -> Outcome:
    """
    Select the destination for a terminal state.

    Only the error destination carries a message; success and cancel never do.
    """
    try:
        destination = _DESTINATIONS[state]
    except KeyError:
        raise InvalidTransitionError("route outcome", state.value) from None

    return Outcome(
        state=state,
        destination=destination,
        message=message if destination is Destination.ERROR else None,
    )
