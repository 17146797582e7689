"""Endpoints to manage Web Push subscriptions."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.application.use_cases.notifications import (
    deactivate_all_push_subscriptions,
    list_push_subscriptions,
    register_push_subscription,
    send_test_push,
    unregister_push_subscription,
)
from app.config import get_settings
from app.domain.channels import PushSender
from app.domain.entities import PushSubscription, User
from app.domain.exceptions import ChannelUnavailableError
from app.infrastructure.database import get_db
from app.interfaces.api.dependencies import get_current_active_user, get_push_sender
from app.interfaces.api.schemas import (
    PushDeactivateAllResponse,
    PushSubscriptionCreate,
    PushSubscriptionRead,
    PushTestResponse,
    PushUnsubscribeRequest,
    VapidPublicKeyResponse,
)

router = APIRouter(prefix="/push", tags=["push"])


def _subscription_to_schema(subscription: PushSubscription) -> PushSubscriptionRead:
    return PushSubscriptionRead(
        id=subscription.id or 0,
        endpoint=subscription.endpoint,
        user_agent=subscription.user_agent,
        is_active=subscription.is_active,
        created_at=subscription.created_at,
        last_used_at=subscription.last_used_at,
    )


@router.get("/vapid-public-key", response_model=VapidPublicKeyResponse)
def read_vapid_public_key() -> VapidPublicKeyResponse:
    """Return the application server key browsers need to subscribe."""

    public_key = get_settings().vapid_public_key
    if not public_key:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Push notifications are not configured",
        )
    return VapidPublicKeyResponse(public_key=public_key)


@router.post(
    "/subscribe",
    response_model=PushSubscriptionRead,
    status_code=status.HTTP_201_CREATED,
)
def subscribe(
    payload: PushSubscriptionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> PushSubscriptionRead:
    try:
        subscription = register_push_subscription(
            db,
            user_id=current_user.id,
            endpoint=payload.endpoint,
            p256dh_key=payload.keys.p256dh,
            auth_key=payload.keys.auth,
            user_agent=payload.user_agent,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _subscription_to_schema(subscription)


@router.post("/unsubscribe", status_code=status.HTTP_204_NO_CONTENT)
def unsubscribe(
    payload: PushUnsubscribeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> None:
    try:
        unregister_push_subscription(db, user_id=current_user.id, endpoint=payload.endpoint)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("/subscriptions", response_model=list[PushSubscriptionRead])
def read_subscriptions(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> list[PushSubscriptionRead]:
    return [
        _subscription_to_schema(subscription)
        for subscription in list_push_subscriptions(db, user_id=current_user.id)
    ]


@router.post("/subscriptions/deactivate-all", response_model=PushDeactivateAllResponse)
def deactivate_all(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> PushDeactivateAllResponse:
    """Turn off push on every device of the authenticated user."""

    count = deactivate_all_push_subscriptions(db, user_id=current_user.id)
    return PushDeactivateAllResponse(deactivated=count)


@router.post("/test", response_model=PushTestResponse)
def send_test(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    sender: PushSender = Depends(get_push_sender),
) -> PushTestResponse:
    try:
        summary = send_test_push(db, user_id=current_user.id, sender=sender)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ChannelUnavailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc
    return PushTestResponse(**summary)
