"""Payment form model - draft payment fields with per-field error state"""

from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, Optional, Tuple

from paywall_checkout.domain.models import PaymentDraft, PaymentMethod
from paywall_checkout.domain.validation import (
    expiration_is_future,
    format_card_number,
    format_cardholder_name,
    format_cvc,
    format_expiration,
    split_expiration,
    validate_email,
)

if TYPE_CHECKING:
    from paywall_checkout.domain.session_store import SessionStore


class FieldError(str, Enum):
    """Stable error codes; clients translate them for display"""

    EMAIL_REQUIRED = "email_required"
    EMAIL_INVALID = "email_invalid"
    CARD_NUMBER_REQUIRED = "card_number_required"
    EXPIRATION_REQUIRED = "expiration_required"
    EXPIRATION_PAST = "expiration_past"
    CVC_REQUIRED = "cvc_required"
    COUNTRY_REQUIRED = "country_required"
    PLAN_REQUIRED = "plan_required"
    PASSWORD_REQUIRED = "password_required"


ErrorMap = Dict[str, FieldError]

FORM_FIELDS = ("email", "card_number", "expiration", "cvc", "cardholder_name", "country")
CARD_ERROR_FIELDS = ("card_number", "expiration", "cvc")

_FORMATTERS: Dict[str, Callable[[str], str]] = {
    "card_number": format_card_number,
    "cvc": format_cvc,
    "cardholder_name": format_cardholder_name,
    "email": str.strip,
    "country": str.strip,
}


def validate_draft(draft: PaymentDraft) -> ErrorMap:
    """
    Full-draft validation run on a submit attempt.

    Requirements:
    - Email is required and must be well formed for every method
    - For card payments: card number, expiration (missing vs. past are
      different errors), CVC and country are required
    - Card number validity is not checked here; that is deferred to the
      authentication step
    """
    errors: ErrorMap = {}

    if not draft.email.strip():
        errors["email"] = FieldError.EMAIL_REQUIRED
    elif not validate_email(draft.email):
        errors["email"] = FieldError.EMAIL_INVALID

    if draft.payment_method is PaymentMethod.CARD:
        if not draft.card_number.strip():
            errors["card_number"] = FieldError.CARD_NUMBER_REQUIRED

        if not draft.expiration_month or not draft.expiration_year:
            errors["expiration"] = FieldError.EXPIRATION_REQUIRED
        elif not expiration_is_future(draft.expiration_month, draft.expiration_year):
            errors["expiration"] = FieldError.EXPIRATION_PAST

        if not draft.cvc.strip():
            errors["cvc"] = FieldError.CVC_REQUIRED

        if not draft.country:
            errors["country"] = FieldError.COUNTRY_REQUIRED

    return errors


class PaymentFormModel:
    """
    Holds the mutable payment draft and its error map.

    Every accepted change is synchronised into the session store (when one is
    attached) so a reload can recover the draft.
    """

    def __init__(self, draft: PaymentDraft | None = None, store: Optional["SessionStore"] = None):
        self.draft = draft or PaymentDraft()
        self.errors: ErrorMap = {}
        self.expiration_input = ""
        self._store = store

        if self.draft.expiration_month:
            self.expiration_input = "/".join(
                part for part in (self.draft.expiration_month, self.draft.expiration_year) if part
            )

    @property
    def is_valid(self) -> bool:
        return not validate_draft(self.draft)

    def set_field(self, name: str, raw_value: str) -> Tuple[str, Optional[FieldError]]:
        """
        Format and store one field, then recompute only that field's error.

        Returns:
            (formatted value, field error or None)
        """
        if name not in FORM_FIELDS:
            raise KeyError(f"Unknown payment field: {name}")

        if name == "expiration":
            return self._set_expiration(raw_value or "")

        value = _FORMATTERS[name](raw_value or "")
        setattr(self.draft, name, value)

        error = None
        if name == "email" and value and not validate_email(value):
            error = FieldError.EMAIL_INVALID
        self._set_error(name, error)

        if self._store is not None:
            self._store.update_payment_info(**{name: value})

        return value, error

    def _set_expiration(self, raw_value: str) -> Tuple[str, Optional[FieldError]]:
        formatted = format_expiration(raw_value, self.expiration_input)
        self.expiration_input = formatted

        month, year = split_expiration(formatted)
        self.draft.expiration_month = month
        self.draft.expiration_year = year

        error = None
        if len(month) == 2 and len(year) == 2 and not expiration_is_future(month, year):
            error = FieldError.EXPIRATION_PAST
        self._set_error("expiration", error)

        if self._store is not None:
            self._store.update_payment_info(expiration_month=month, expiration_year=year)

        return formatted, error

    def set_payment_method(self, method: PaymentMethod | str) -> PaymentMethod:
        """Switch payment method; card sub-fields and their errors are always cleared"""
        method = PaymentMethod(method)
        self.draft.payment_method = method
        self.draft.clear_card_fields()
        self.expiration_input = ""

        for name in CARD_ERROR_FIELDS:
            self.errors.pop(name, None)

        if self._store is not None:
            self._store.update_payment_info(
                payment_method=method.value,
                card_number="",
                expiration_month="",
                expiration_year="",
                cvc="",
            )

        return method

    def validate_all(self) -> ErrorMap:
        self.errors = validate_draft(self.draft)
        return dict(self.errors)

    def _set_error(self, name: str, error: Optional[FieldError]) -> None:
        if error is None:
            self.errors.pop(name, None)
        else:
            self.errors[name] = error
