"""Card and field formatters/validators - pure functions over user input"""

import re
from datetime import date
from typing import Tuple

from paywall_checkout.domain.exceptions import PaymentValidationError
from paywall_checkout.domain.models import PaymentDraft, PaymentMethod, WeightUnit

# Designated sandbox card; accepted without a checksum when sandbox mode is on
TEST_SUCCESS_CARD = "4242424242424242"

CARD_MIN_DIGITS = 13
CARD_MAX_DIGITS = 19
CARD_DISPLAY_LENGTH = 19  # 16 digits + 3 separators
CARDHOLDER_NAME_MAX_LENGTH = 50

WEIGHT_RANGES = {
    WeightUnit.KG: (20, 300),
    WeightUnit.LBS: (44, 660),
}

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_NON_DIGIT_RE = re.compile(r"\D")


def digits_only(value: str) -> str:
    return _NON_DIGIT_RE.sub("", value or "")


def luhn_valid(card_number: str, sandbox: bool = False) -> bool:
    """
    Validate a card number with the Luhn checksum.

    Requirements:
    - Non-digits are ignored
    - Length outside [13, 19] digits is invalid
    - The sandbox test card is accepted before the checksum runs, but only
      when `sandbox` is True

    Example:
        4242 4242 4242 4242 → True
        4242 4242 4242 4243 → False
    """
    digits = digits_only(card_number)

    if len(digits) < CARD_MIN_DIGITS or len(digits) > CARD_MAX_DIGITS:
        return False

    if sandbox and digits == TEST_SUCCESS_CARD:
        return True

    total = 0
    # Double every second digit counting from the right
    for index, char in enumerate(reversed(digits)):
        digit = int(char)
        if index % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit

    return total % 10 == 0


def format_card_number(value: str) -> str:
    """Group digits in blocks of 4 separated by single spaces, max 16 digits"""
    digits = digits_only(value)
    groups = [digits[i:i + 4] for i in range(0, len(digits), 4)]
    return " ".join(groups)[:CARD_DISPLAY_LENGTH]


def format_expiration(value: str, previous_value: str = "") -> str:
    """
    Incrementally format an expiration date as MM/YY while the user types.

    Rules, in order:
    - Empty input → ""
    - One digit 2-9, not deleting → zero-padded month plus "/" ("3" → "03/")
    - Two digits > 12 → first digit is the month, second starts the year
      ("13" → "01/3")
    - Two digits == 0 → "01"
    - Two digits, not deleting → append "/" ("12" → "12/")
    - Three or more digits → month clamped to [01, 12], then the 2-digit year

    Deletion is detected by comparing the digit counts of the current and
    previous input; a trailing "/" is never re-appended while deleting.
    """
    clean = digits_only(value)
    previous_clean = digits_only(previous_value)
    is_deleting = len(clean) < len(previous_clean)

    if not clean:
        return ""

    if len(clean) == 1:
        if int(clean) > 1 and not is_deleting:
            return f"0{clean}/"
        return clean

    if len(clean) == 2:
        month_num = int(clean)
        if month_num > 12:
            return f"0{clean[0]}/{clean[1]}"

        month = "01" if month_num == 0 else clean
        if not is_deleting:
            return f"{month}/"
        return month

    month = clean[:2]
    month_num = int(month)
    if month_num > 12:
        month = "12"
    elif month_num == 0:
        month = "01"

    return f"{month}/{clean[2:4]}"


def split_expiration(formatted: str) -> Tuple[str, str]:
    """Split "MM/YY" (possibly partial) into (month, year)"""
    month, _, year = formatted.partition("/")
    return month, year


def expiration_is_future(month: str, year: str, today: date | None = None) -> bool:
    """
    Check that a two-digit month/year has not passed.

    The year is compared against today's year modulo 100; no century
    disambiguation is attempted. The current month itself is still valid.
    """
    try:
        month_num = int(month)
        year_num = int(year)
    except (TypeError, ValueError):
        return False

    if month_num < 1 or month_num > 12:
        return False

    today = today or date.today()
    current_year = today.year % 100

    if year_num < current_year:
        return False

    if year_num == current_year and month_num < today.month:
        return False

    return True


def format_cvc(value: str) -> str:
    return digits_only(value)[:4]


def validate_cvc(value: str) -> bool:
    return 3 <= len(digits_only(value)) <= 4


def format_cardholder_name(value: str) -> str:
    """Keep letters (any script) and whitespace, max 50 characters"""
    kept = "".join(ch for ch in value or "" if ch.isalpha() or ch.isspace())
    return kept[:CARDHOLDER_NAME_MAX_LENGTH]


def validate_email(value: str) -> bool:
    return bool(_EMAIL_RE.match((value or "").strip()))


def validate_weight(value: float, unit: WeightUnit | str) -> bool:
    """Weight must be positive and inside the plausible range for its unit"""
    if value is None or value <= 0:
        return False

    low, high = WEIGHT_RANGES[WeightUnit(unit)]
    return low <= value <= high


def mask_card_number(card_number: str) -> str:
    """Replace every digit that is followed by at least four more digits with *"""
    return re.sub(r"\d(?=\d{4})", "*", digits_only(card_number))


def format_countdown(seconds: int) -> str:
    """Render remaining seconds as M:SS"""
    minutes, remaining = divmod(max(seconds, 0), 60)
    return f"{minutes}:{remaining:02d}"


def validate_payment_info(draft: PaymentDraft, sandbox: bool = False) -> None:
    """
    Gate payment information before it is sent to the payment collaborator.

    Raises:
        PaymentValidationError: With the first problem found
    """
    if not validate_email(draft.email):
        raise PaymentValidationError("Valid email is required")

    if draft.payment_method is PaymentMethod.CARD:
        if not luhn_valid(draft.card_number, sandbox=sandbox):
            raise PaymentValidationError("Valid card number is required")

        if not draft.expiration_month or not draft.expiration_year:
            raise PaymentValidationError("Card expiration date is required")

        if not validate_cvc(draft.cvc):
            raise PaymentValidationError("Valid CVC is required")

        if not draft.country:
            raise PaymentValidationError("Country is required")
