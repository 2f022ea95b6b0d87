"""Catalog API HTTP client with built-in fallback data"""

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from paywall_checkout.config import settings
from paywall_checkout.domain.exceptions import (
    CatalogAPIError,
    OnboardingValidationError,
    PaymentValidationError,
)
from paywall_checkout.domain.models import (
    Country,
    LunchOption,
    OnboardingAnswers,
    PaymentDraft,
    Review,
    SubscriptionPlan,
    Testimonial,
)
from paywall_checkout.domain.onboarding import validate_onboarding_step
from paywall_checkout.domain.validation import mask_card_number, validate_payment_info
from paywall_checkout.infrastructure.clients import fallback_data
from paywall_checkout.infrastructure.observability.metrics import (
    catalog_fallback_counter,
    catalog_latency_histogram,
)

T = TypeVar("T", bound=BaseModel)


@dataclass
class SubmissionResult:
    success: bool
    transaction_id: Optional[str] = None
    error: Optional[str] = None


def _local_transaction_id() -> str:
    return f"txn_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class CatalogClient:
    """
    Client for the catalog/onboarding/payment mock API.

    Every call degrades to built-in data or local processing when the API
    fails or times out; callers never see a hard failure for reference data.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        sandbox: bool | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.catalog_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.sandbox = settings.sandbox_mode if sandbox is None else sandbox
        self._transport = transport

    async def _request(self, method: str, path: str, payload: Dict[str, Any] | None = None) -> Any:
        """
        Perform one API call.

        Raises:
            CatalogAPIError: On timeout, HTTP errors, or invalid JSON
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                with catalog_latency_histogram.time():
                    response = await client.request(method, f"{self.base_url}{path}", json=payload)
                response.raise_for_status()
                return response.json()

            except httpx.TimeoutException as e:
                raise CatalogAPIError(f"Catalog API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise CatalogAPIError(f"Catalog API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise CatalogAPIError(f"Catalog API unreachable: {e}") from e
            except ValueError as e:
                raise CatalogAPIError(f"Invalid JSON from catalog API: {e}") from e

    async def _fetch_list(
        self,
        resource: str,
        path: str,
        model: Type[T],
        fallback: List[Dict[str, Any]],
    ) -> List[T]:
        try:
            payload = await self._request("GET", path)
            if not isinstance(payload, list):
                raise CatalogAPIError(f"Expected a list of {resource}")
            return [model.model_validate(item) for item in payload]

        except (CatalogAPIError, ValidationError) as e:
            catalog_fallback_counter.labels(resource=resource).inc()
            logging.warning(f"Catalog API not available, using fallback {resource}: {e}")
            return [model.model_validate(item) for item in fallback]

    async def get_plans(self) -> List[SubscriptionPlan]:
        return await self._fetch_list("plans", "/plans", SubscriptionPlan, fallback_data.FALLBACK_PLANS)

    async def get_subscription_plans(self) -> List[SubscriptionPlan]:
        return await self._fetch_list(
            "subscription_plans",
            "/subscriptionPlans",
            SubscriptionPlan,
            fallback_data.FALLBACK_SUBSCRIPTION_PLANS,
        )

    async def get_countries(self) -> List[Country]:
        return await self._fetch_list("countries", "/countries", Country, fallback_data.FALLBACK_COUNTRIES)

    async def get_lunch_types(self) -> List[LunchOption]:
        return await self._fetch_list("lunch_types", "/lunchTypes", LunchOption, fallback_data.FALLBACK_LUNCH_TYPES)

    async def get_testimonials(self) -> List[Testimonial]:
        return await self._fetch_list(
            "testimonials", "/testimonials", Testimonial, fallback_data.FALLBACK_TESTIMONIALS
        )

    async def get_reviews(self) -> List[Review]:
        return await self._fetch_list("reviews", "/reviews", Review, fallback_data.FALLBACK_REVIEWS)

    async def submit_onboarding_step(self, step: int, answers: OnboardingAnswers) -> SubmissionResult:
        """Validate and store one onboarding step; stored locally when the API is down"""
        try:
            validate_onboarding_step(step, answers)
        except OnboardingValidationError as e:
            return SubmissionResult(success=False, error=str(e))

        try:
            await self._request(
                "POST",
                "/onboarding",
                {
                    "step": step,
                    "data": answers.model_dump(mode="json", exclude_none=True),
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                },
            )
        except CatalogAPIError as e:
            catalog_fallback_counter.labels(resource="onboarding").inc()
            logging.warning(f"Catalog API not available, keeping onboarding step locally: {e}")

        return SubmissionResult(success=True)

    async def submit_payment(self, draft: PaymentDraft, plan_id: str) -> SubmissionResult:
        """
        Record a completed payment.

        Only the masked card number leaves the process; the CVC is never sent.
        """
        try:
            validate_payment_info(draft, sandbox=self.sandbox)
        except PaymentValidationError as e:
            return SubmissionResult(success=False, error=str(e))

        payload = {
            "planId": plan_id,
            "email": draft.email,
            "country": draft.country,
            "paymentMethod": draft.payment_method.value,
            "cardNumber": mask_card_number(draft.card_number),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        try:
            data = await self._request("POST", "/payment", payload)
            transaction_id = data.get("transactionId") if isinstance(data, dict) else None
        except CatalogAPIError as e:
            catalog_fallback_counter.labels(resource="payment").inc()
            logging.warning(f"Catalog API not available, processing payment locally: {e}")
            transaction_id = None

        return SubmissionResult(success=True, transaction_id=transaction_id or _local_transaction_id())
