"""Unit tests for the payment form model"""

import pytest
from paywall_checkout.domain.models import PaymentDraft, PaymentMethod
from paywall_checkout.domain.payment_form import FieldError, PaymentFormModel, validate_draft
from paywall_checkout.domain.session_store import USER_EMAIL_KEY


def _complete_card_draft(**overrides) -> PaymentDraft:
    values = dict(
        email="user@example.com",
        card_number="4242 4242 4242 4242",
        expiration_month="12",
        expiration_year="99",
        cvc="123",
        cardholder_name="Jane Doe",
        country="TR",
    )
    values.update(overrides)
    return PaymentDraft(**values)


def test_set_field_formats_card_number(form: PaymentFormModel):
    """Test raw card input is grouped before it is stored"""
    value, error = form.set_field("card_number", "4242424242424242")

    assert value == "4242 4242 4242 4242"
    assert error is None
    assert form.draft.card_number == "4242 4242 4242 4242"


def test_set_field_email_error_is_immediate(form: PaymentFormModel):
    """Test a malformed email is flagged on the keystroke, and cleared once fixed"""
    _, error = form.set_field("email", "user@")
    assert error is FieldError.EMAIL_INVALID
    assert form.errors == {"email": FieldError.EMAIL_INVALID}

    _, error = form.set_field("email", "user@example.com")
    assert error is None
    assert form.errors == {}


def test_set_field_does_not_touch_other_errors(form: PaymentFormModel):
    """Test only the edited field's error is recomputed"""
    form.validate_all()
    assert "cvc" in form.errors

    form.set_field("email", "user@example.com")

    assert form.errors["cvc"] is FieldError.CVC_REQUIRED
    assert "email" not in form.errors


def test_set_field_expiration_uses_previous_input(form: PaymentFormModel):
    """Test expiration typing and deletion go through the incremental formatter"""
    assert form.set_field("expiration", "1")[0] == "1"
    assert form.set_field("expiration", "12")[0] == "12/"
    assert form.set_field("expiration", "12/3")[0] == "12/3"
    assert form.set_field("expiration", "12/")[0] == "12"

    assert form.draft.expiration_month == "12"
    assert form.draft.expiration_year == ""


def test_set_field_expiration_past_once_complete(form: PaymentFormModel):
    """Test a complete past date is flagged, a partial one is not"""
    _, error = form.set_field("expiration", "01")
    assert error is None

    _, error = form.set_field("expiration", "01/20")
    assert error is FieldError.EXPIRATION_PAST


def test_set_field_unknown_field(form: PaymentFormModel):
    """Test unknown field names are rejected"""
    with pytest.raises(KeyError):
        form.set_field("password", "x")


def test_set_field_syncs_session_store(form: PaymentFormModel, store, kv):
    """Test accepted changes land in the persisted payment info and email key"""
    form.set_field("email", " user@example.com ")

    assert store.state.payment_info["email"] == "user@example.com"
    assert kv.get(USER_EMAIL_KEY) == "user@example.com"


def test_set_payment_method_clears_card_fields(form: PaymentFormModel, store):
    """Test switching method wipes card data and card errors"""
    form.set_field("card_number", "4242424242424242")
    form.set_field("cvc", "123")
    form.validate_all()
    assert "expiration" in form.errors

    method = form.set_payment_method("apple-pay")

    assert method is PaymentMethod.APPLE_PAY
    assert form.draft.card_number == ""
    assert form.draft.cvc == ""
    assert "expiration" not in form.errors
    assert store.state.payment_info["payment_method"] == "apple_pay"
    assert store.state.payment_info["card_number"] == ""


def test_validate_draft_card_requirements():
    """Test an empty card draft reports every required field"""
    errors = validate_draft(PaymentDraft())

    assert errors == {
        "email": FieldError.EMAIL_REQUIRED,
        "card_number": FieldError.CARD_NUMBER_REQUIRED,
        "expiration": FieldError.EXPIRATION_REQUIRED,
        "cvc": FieldError.CVC_REQUIRED,
        "country": FieldError.COUNTRY_REQUIRED,
    }


def test_validate_draft_distinguishes_missing_and_past_expiration():
    """Test missing and expired dates produce different codes"""
    assert validate_draft(_complete_card_draft(expiration_year=""))["expiration"] is FieldError.EXPIRATION_REQUIRED
    assert validate_draft(_complete_card_draft(expiration_year="20"))["expiration"] is FieldError.EXPIRATION_PAST


def test_validate_draft_defers_card_checksum():
    """Test a Luhn-invalid card number is not a form error"""
    assert validate_draft(_complete_card_draft(card_number="4242 4242 4242 4243")) == {}


def test_validate_draft_non_card_only_needs_email():
    """Test PayPal and Apple Pay skip card and country checks"""
    assert validate_draft(PaymentDraft(email="user@example.com", payment_method=PaymentMethod.PAYPAL)) == {}
    assert validate_draft(PaymentDraft(payment_method=PaymentMethod.APPLE_PAY)) == {
        "email": FieldError.EMAIL_REQUIRED
    }


def test_form_restores_expiration_input_from_draft():
    """Test a recovered draft shows its expiration as MM/YY"""
    form = PaymentFormModel(_complete_card_draft(expiration_month="04", expiration_year="31"))

    assert form.expiration_input == "04/31"
    assert form.is_valid is True
