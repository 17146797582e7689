"""Schemas for Web Push registration."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class PushSubscriptionKeys(BaseModel):
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class PushSubscriptionCreate(BaseModel):
    """Body produced by ``PushSubscription.toJSON()`` in the browser."""

    endpoint: str = Field(..., min_length=1, max_length=500)
    keys: PushSubscriptionKeys
    user_agent: str | None = None


class PushUnsubscribeRequest(BaseModel):
    endpoint: str = Field(..., min_length=1, max_length=500)


class PushSubscriptionRead(BaseModel):
    id: int
    endpoint: str
    user_agent: str | None = None
    is_active: bool
    created_at: datetime | None = None
    last_used_at: datetime | None = None


class VapidPublicKeyResponse(BaseModel):
    public_key: str


class PushDeactivateAllResponse(BaseModel):
    deactivated: int


class PushTestResponse(BaseModel):
    sent: int
    failed: int
    deactivated: int


__all__ = [
    "PushDeactivateAllResponse",
    "PushSubscriptionCreate",
    "PushSubscriptionKeys",
    "PushSubscriptionRead",
    "PushTestResponse",
    "PushUnsubscribeRequest",
    "VapidPublicKeyResponse",
]
