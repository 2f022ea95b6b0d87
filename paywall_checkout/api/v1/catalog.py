"""GET /v1/plans and the other catalog listings - served with fallback data when the catalog API is down"""

from typing import List

from fastapi import APIRouter, Depends

from paywall_checkout.api.dependencies import get_catalog_client, get_flow
from paywall_checkout.api.sessions import CheckoutFlow
from paywall_checkout.domain.models import Country, LunchOption, Review, SubscriptionPlan, Testimonial
from paywall_checkout.infrastructure.clients.catalog import CatalogClient

router = APIRouter()


@router.get("/plans", response_model=List[SubscriptionPlan], response_model_by_alias=False)
async def list_plans(
    flow: CheckoutFlow = Depends(get_flow),
    catalog: CatalogClient = Depends(get_catalog_client),
):
    """
    Subscription plans shown on the paywall.

    The free-trial plan is selected for the session when nothing is selected yet.
    """
    plans = await catalog.get_subscription_plans()
    flow.machine.auto_select_default(plans)
    return plans


@router.get("/countries", response_model=List[Country], response_model_by_alias=False)
async def list_countries(catalog: CatalogClient = Depends(get_catalog_client)):
    return await catalog.get_countries()


@router.get("/lunch-types", response_model=List[LunchOption], response_model_by_alias=False)
async def list_lunch_types(catalog: CatalogClient = Depends(get_catalog_client)):
    return await catalog.get_lunch_types()


@router.get("/testimonials", response_model=List[Testimonial], response_model_by_alias=False)
async def list_testimonials(catalog: CatalogClient = Depends(get_catalog_client)):
    return await catalog.get_testimonials()


@router.get("/reviews", response_model=List[Review], response_model_by_alias=False)
async def list_reviews(catalog: CatalogClient = Depends(get_catalog_client)):
    return await catalog.get_reviews()
