"""Dependency injection for FastAPI endpoints"""

import uuid
from typing import Iterator, Optional

from fastapi import Depends, Header, Request, Response

from paywall_checkout.api.sessions import CheckoutFlow, FlowRegistry
from paywall_checkout.infrastructure.clients.catalog import CatalogClient

SESSION_HEADER = "X-Session-ID"


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_registry(request: Request) -> FlowRegistry:
    return request.app.state.registry


def get_catalog_client() -> CatalogClient:
    """Provide catalog API client instance"""
    return CatalogClient()


def get_session_id(
    request: Request,
    response: Response,
    x_session_id: Optional[str] = Header(default=None, max_length=64),
) -> str:
    """Browser session id; a new one is issued and echoed back when absent"""
    request.state.session_issued = not x_session_id
    session_id = x_session_id or str(uuid.uuid4())
    response.headers[SESSION_HEADER] = session_id
    return session_id


def get_flow(
    request: Request,
    session_id: str = Depends(get_session_id),
    registry: FlowRegistry = Depends(get_registry),
) -> Iterator[CheckoutFlow]:
    """
    Checkout flow of the request's session.

    Flows for freshly issued session ids are not kept after the request
    unless a checkout is in flight; the snapshot in storage is enough to
    rebuild them when the client comes back with the id.
    """
    yield registry.get(session_id)

    if request.state.session_issued:
        registry.release(session_id)
