"""Domain models for the onboarding and checkout flow.

Reference data and the persisted session snapshot are pydantic models so they
round-trip through JSON (catalog responses, key-value storage). Mutable
in-flight state (payment draft, checkout session) stays in plain dataclasses.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

if TYPE_CHECKING:
    from paywall_checkout.domain.outcome import Outcome


Language = Literal["en", "ar"]


class LunchPreference(str, Enum):
    SANDWICHES = "sandwiches"
    SOUPS = "soups"
    FASTFOOD = "fastfood"
    OTHER = "other"


class WeightUnit(str, Enum):
    KG = "kg"
    LBS = "lbs"


class PaymentMethod(str, Enum):
    """Payment method; accepts both `apple_pay` and `apple-pay`"""

    CARD = "card"
    APPLE_PAY = "apple_pay"
    PAYPAL = "paypal"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().lower().replace("-", "_")
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class CheckoutState(str, Enum):
    SELECTING_PLAN = "selecting_plan"
    ENTERING_PAYMENT = "entering_payment"
    AUTHENTICATING = "authenticating"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    DECLINED = "declined"
    AUTH_EXPIRED = "auth_expired"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset(
    {
        CheckoutState.SUCCEEDED,
        CheckoutState.DECLINED,
        CheckoutState.AUTH_EXPIRED,
        CheckoutState.CANCELLED,
        CheckoutState.FAILED,
    }
)


class CatalogModel(BaseModel):
    """Immutable reference data; accepts the catalog API's camelCase keys"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class SubscriptionPlan(CatalogModel):
    id: str
    display_name: str = Field(alias="name")
    duration_label: str = Field(default="", alias="duration")
    price: Decimal
    original_price: Optional[Decimal] = Field(default=None, alias="originalPrice")
    discount_percent: Optional[int] = Field(default=None, alias="discount")
    is_free: bool = Field(default=False, alias="isFree")
    is_popular: bool = Field(default=False, alias="isPopular")


class Country(CatalogModel):
    id: str
    code: str
    name_key: str = Field(alias="nameKey")


class LunchOption(CatalogModel):
    id: str
    value: str
    label_key: str = Field(alias="labelKey")
    emoji: str = ""


class Testimonial(CatalogModel):
    id: str
    name: str
    rating_title: str = Field(alias="ratingTitle")
    text: str
    stars: int
    before_image: str = Field(default="", alias="beforeImage")
    after_image: str = Field(default="", alias="afterImage")


class Review(CatalogModel):
    id: str
    title: str
    emoji: str = ""
    stars: int
    content: str
    reviewer: str
    review_date: str = Field(default="", alias="reviewDate")


class OnboardingAnswers(BaseModel):
    """Answers collected by the two onboarding questions"""

    model_config = ConfigDict(validate_assignment=True)

    lunch_preference: Optional[LunchPreference] = None
    weight: Optional[float] = Field(default=None, gt=0)
    weight_unit: WeightUnit = WeightUnit.KG


class PersistedAppState(BaseModel):
    """Session snapshot written on every mutation, read once at bootstrap"""

    model_config = ConfigDict(validate_assignment=True)

    current_step_index: int = 1
    onboarding_answers: OnboardingAnswers = Field(default_factory=OnboardingAnswers)
    payment_info: Dict[str, str] = Field(default_factory=dict)
    selected_plan: Optional[SubscriptionPlan] = None
    language: Language = "en"
    checkout_outcome: Optional[str] = None

    @computed_field
    @property
    def direction(self) -> str:
        # Derived only; never stored independently of language
        return "rtl" if self.language == "ar" else "ltr"


@dataclass
class PaymentDraft:
    """In-progress payment form data"""

    email: str = ""
    payment_method: PaymentMethod = PaymentMethod.CARD
    card_number: str = ""
    expiration_month: str = ""
    expiration_year: str = ""
    cvc: str = ""
    cardholder_name: str = ""
    country: str = ""

    def clear_card_fields(self) -> None:
        self.card_number = ""
        self.expiration_month = ""
        self.expiration_year = ""
        self.cvc = ""

    @property
    def card_digits(self) -> str:
        return "".join(ch for ch in self.card_number if ch.isdigit())

    @classmethod
    def from_payment_info(cls, info: Dict[str, str]) -> "PaymentDraft":
        known = {k: v for k, v in info.items() if k in cls.__dataclass_fields__}
        if known.get("payment_method"):
            known["payment_method"] = PaymentMethod(known["payment_method"])
        else:
            known.pop("payment_method", None)
        return cls(**known)


@dataclass
class CheckoutSession:
    """Single in-flight checkout attempt, owned by the checkout machine"""

    state: CheckoutState = CheckoutState.SELECTING_PLAN
    selected_plan: Optional[SubscriptionPlan] = None
    draft: PaymentDraft = field(default_factory=PaymentDraft)
    attempt_count: int = 0
    auth_deadline: Optional[float] = None  # epoch seconds
    time_left: int = 0
    auth_form_visible: bool = False
    outcome: Optional["Outcome"] = None
