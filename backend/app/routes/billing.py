"""API routes exposing the Stripe billing flows."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Request, status
from starlette.concurrency import run_in_threadpool

from ..billing import AuthenticatedUser, GatewayError, GatewayUnavailable, WebhookVerificationError
from ..schemas.billing import (
    ActiveSubscriptionsResponse,
    CheckoutSessionRequest,
    SessionUrlResponse,
    WebhookAck,
)
from ..services.billing import get_billing_service
from ...auth import get_current_user


logger = logging.getLogger("billing")

router = APIRouter(prefix="/api/stripe", tags=["billing"])


def _request_origin(request: Request) -> str:
    return f"{request.url.scheme}://{request.url.netloc}"


def _internal_error() -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


def _unavailable(exc: GatewayUnavailable) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))


@router.post("/checkout", response_model=SessionUrlResponse)
def create_checkout_session(
    request: Request,
    payload: Optional[CheckoutSessionRequest] = Body(None),
    *,
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> SessionUrlResponse:
    service = get_billing_service()
    payload = payload or CheckoutSessionRequest()
    try:
        session = service.create_checkout_session(
            user=current_user,
            price_id=payload.price_id,
            quantity=payload.quantity,
            origin=_request_origin(request),
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except GatewayUnavailable as exc:
        raise _unavailable(exc) from exc
    except GatewayError as exc:
        logger.exception("Stripe checkout error for user %s", current_user.id)
        raise _internal_error() from exc
    return SessionUrlResponse(url=session.url)


@router.get("/portal", response_model=SessionUrlResponse)
def create_portal_session(
    request: Request,
    *,
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> SessionUrlResponse:
    service = get_billing_service()
    try:
        url = service.create_portal_session(user=current_user, origin=_request_origin(request))
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except GatewayUnavailable as exc:
        raise _unavailable(exc) from exc
    except GatewayError as exc:
        logger.exception("Stripe portal error for user %s", current_user.id)
        raise _internal_error() from exc
    return SessionUrlResponse(url=url)


@router.get("/subscriptions", response_model=ActiveSubscriptionsResponse)
def list_active_subscriptions(
    *,
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> ActiveSubscriptionsResponse:
    service = get_billing_service()
    try:
        customer_id, subscriptions = service.list_active_subscriptions(user=current_user)
    except GatewayUnavailable as exc:
        raise _unavailable(exc) from exc
    except GatewayError as exc:
        logger.exception("Stripe subscription listing error for user %s", current_user.id)
        raise _internal_error() from exc
    return ActiveSubscriptionsResponse(customer_id=customer_id, subscriptions=subscriptions)


@router.post("/webhook", response_model=WebhookAck)
async def receive_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
) -> WebhookAck:
    service = get_billing_service()
    # The signature covers the exact bytes Stripe sent.
    body = await request.body()

    try:
        event = service.parse_webhook(body, stripe_signature)
    except GatewayUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Stripe webhook not configured",
        ) from exc
    except WebhookVerificationError as exc:
        logger.warning("Webhook signature verification failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Webhook signature verification failed",
        ) from exc

    try:
        await run_in_threadpool(service.handle_webhook, event)
    except Exception as exc:
        logger.exception(
            "Webhook handler error for event %s (%s)",
            event.event_id,
            event.event_type,
            extra={"stripe_event_id": event.event_id, "stripe_event_type": event.event_type},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook handler failed",
        ) from exc
    return WebhookAck()
