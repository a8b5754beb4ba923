"""API schemas for billing endpoints."""
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..billing import ActiveSubscription


class CheckoutSessionRequest(BaseModel):
    # Validated by the service so a missing price id surfaces as 400, not 422.
    price_id: Optional[Any] = Field(default=None, alias="priceId")
    quantity: Optional[Any] = None

    model_config = ConfigDict(populate_by_name=True)


class SessionUrlResponse(BaseModel):
    url: str


class WebhookAck(BaseModel):
    received: bool = True


class ActiveSubscriptionsResponse(BaseModel):
    customer_id: Optional[str] = Field(default=None, alias="customerId")
    subscriptions: List[ActiveSubscription] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)
