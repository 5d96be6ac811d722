"""API router for the notifications feature.

Dispatch:
- POST /notifications - Send one notification
- POST /notifications/batch - Send independent notifications concurrently

Feed:
- GET /notifications - Page through the caller's notifications
- GET /notifications/unread-count - Unread counter
- POST /notifications/{notification_id}/read - Mark as read (idempotent)
- WS /notifications/ws - Live in-app feed

Preferences and subscriptions:
- GET|PATCH /notifications/preferences
- POST|DELETE /notifications/push-subscriptions
- GET|POST /notifications/webhooks, DELETE /notifications/webhooks/{webhook_id}

The caller is identified by the ``X-User-ID`` header.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Query, Response, WebSocket, WebSocketDisconnect, status

from notification_service.core.exceptions import AppException
from notification_service.features.notifications.channels.in_app import UNREAD_COUNT_EVENT
from notification_service.features.notifications.dependencies import (
    CurrentUserIdDep,
    NotificationServiceDep,
    get_notification_service,
)
from notification_service.features.notifications.enums import NotificationType
from notification_service.features.notifications.schemas import (
    BatchItemError,
    BatchItemResult,
    BatchSendRequest,
    BatchSendResponse,
    DispatchResult,
    NotificationPage,
    NotificationRecord,
    NotificationRequest,
    PreferencesUpdate,
    PushSubscriptionCreate,
    PushSubscriptionRecord,
    PushUnsubscribe,
    UnreadCount,
    UserPreferences,
    WebhookEndpointCreate,
    WebhookEndpointCreated,
    WebhookEndpointResponse,
)
from notification_service.features.notifications.service import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, NotificationService
from notification_service.infra.logging import get_lazy_logger
from notification_service.infra.realtime import ConnectionLimitExceeded, get_connection_manager

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
)


# ============================================================================
# Dispatch
# ============================================================================


@router.post(
    "/",
    response_model=DispatchResult,
    status_code=status.HTTP_201_CREATED,
    summary="Send a notification",
    description="""
Persist one notification and deliver it on the requested channels.

The record is stored whatever the outcome: `state` tells whether it was
dispatched, suppressed by the recipient's preferences, or scheduled for the
end of their quiet hours. Per-channel failures are reported in `outcomes`
and never fail the request.
""",
    responses={503: {"description": "The notification could not be persisted"}},
)
async def send_notification(
    request: NotificationRequest,
    service: NotificationServiceDep,
) -> DispatchResult:
    return await service.send(request)


@router.post(
    "/batch",
    response_model=BatchSendResponse,
    summary="Send independent notifications",
    description="Each item is validated and dispatched on its own; failures are reported per item.",
)
async def send_batch(
    batch: BatchSendRequest,
    service: NotificationServiceDep,
) -> BatchSendResponse:
    results = await service.send_many(batch.requests)

    items: list[BatchItemResult] = []
    for index, result in enumerate(results):
        if isinstance(result, AppException):
            items.append(
                BatchItemResult(
                    index=index,
                    error=BatchItemError(
                        type=result.type,
                        title=result.title,
                        status=result.status_code,
                        detail=result.detail,
                        extra=result.extra,
                    ),
                ),
            )
        else:
            items.append(BatchItemResult(index=index, result=result))

    failed = sum(1 for item in items if item.error is not None)
    return BatchSendResponse(results=items, succeeded=len(items) - failed, failed=failed)


# ============================================================================
# Feed
# ============================================================================


@router.get(
    "/",
    response_model=NotificationPage,
    summary="List the caller's notifications",
    description="Newest first. Expired notifications are not listed.",
)
async def list_notifications(
    user_id: CurrentUserIdDep,
    service: NotificationServiceDep,
    page: Annotated[int, Query(ge=1, description="1-based page number")] = 1,
    page_size: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE, description="Records per page")] = DEFAULT_PAGE_SIZE,
    types: Annotated[list[NotificationType] | None, Query(description="Only these types")] = None,
) -> NotificationPage:
    return await service.list_notifications(user_id, page, types, page_size=page_size)


@router.get("/unread-count", response_model=UnreadCount, summary="Unread notification count")
async def get_unread_count(user_id: CurrentUserIdDep, service: NotificationServiceDep) -> UnreadCount:
    return UnreadCount(unread_count=await service.get_unread_count(user_id))


@router.post(
    "/{notification_id}/read",
    response_model=NotificationRecord,
    summary="Mark a notification as read",
    responses={404: {"description": "Notification not found"}},
)
async def mark_as_read(
    notification_id: UUID,
    user_id: CurrentUserIdDep,
    service: NotificationServiceDep,
) -> NotificationRecord:
    return await service.mark_as_read(notification_id, user_id)


# ============================================================================
# Preferences
# ============================================================================


@router.get("/preferences", response_model=UserPreferences, summary="Get notification preferences")
async def get_preferences(user_id: CurrentUserIdDep, service: NotificationServiceDep) -> UserPreferences:
    return await service.get_preferences(user_id)


@router.patch(
    "/preferences",
    response_model=UserPreferences,
    summary="Update notification preferences",
    description="Only the listed types and fields change; everything else is kept.",
)
async def update_preferences(
    update: PreferencesUpdate,
    user_id: CurrentUserIdDep,
    service: NotificationServiceDep,
) -> UserPreferences:
    return await service.update_preferences(user_id, update)


# ============================================================================
# Push subscriptions
# ============================================================================


@router.post(
    "/push-subscriptions",
    response_model=PushSubscriptionRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Register a browser push subscription",
)
async def subscribe_to_push(
    subscription: PushSubscriptionCreate,
    user_id: CurrentUserIdDep,
    service: NotificationServiceDep,
) -> PushSubscriptionRecord:
    return await service.subscribe_to_push(user_id, subscription)


@router.delete(
    "/push-subscriptions",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a browser push subscription",
)
async def unsubscribe_from_push(
    body: PushUnsubscribe,
    user_id: CurrentUserIdDep,
    service: NotificationServiceDep,
) -> Response:
    await service.unsubscribe_from_push(user_id, body.endpoint)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Webhooks
# ============================================================================


@router.get("/webhooks", response_model=list[WebhookEndpointResponse], summary="List webhook endpoints")
async def list_webhooks(user_id: CurrentUserIdDep, service: NotificationServiceDep) -> list[WebhookEndpointResponse]:
    endpoints = await service.list_webhooks(user_id)
    return [WebhookEndpointResponse.model_validate(e, from_attributes=True) for e in endpoints]


@router.post(
    "/webhooks",
    response_model=WebhookEndpointCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Register a webhook endpoint",
    description="The signing secret is returned once, in this response.",
)
async def register_webhook(
    body: WebhookEndpointCreate,
    user_id: CurrentUserIdDep,
    service: NotificationServiceDep,
) -> WebhookEndpointCreated:
    endpoint = await service.register_webhook(user_id, str(body.url), body.secret)
    return WebhookEndpointCreated.model_validate(endpoint, from_attributes=True)


@router.delete(
    "/webhooks/{webhook_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a webhook endpoint",
    responses={404: {"description": "Webhook endpoint not found"}},
)
async def delete_webhook(
    webhook_id: UUID,
    user_id: CurrentUserIdDep,
    service: NotificationServiceDep,
) -> Response:
    await service.delete_webhook(user_id, webhook_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Live feed
# ============================================================================


@router.websocket("/ws")
async def notification_feed(
    websocket: WebSocket,
    service: Annotated[NotificationService, Depends(get_notification_service)],
    user_id: Annotated[str | None, Query(max_length=255)] = None,
    x_user_id: Annotated[str | None, Header()] = None,
) -> None:
    """Live in-app feed: ``notification`` and ``unread-count`` events.

    Browsers cannot set headers on WebSocket upgrades, so ``?user_id=`` is
    accepted as well.
    """
    caller = (x_user_id or user_id or "").strip()
    if not caller:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Missing user id")
        return

    manager = get_connection_manager()
    try:
        connection_id = await manager.connect(websocket, caller)
    except ConnectionLimitExceeded:
        await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER, reason="Too many connections")
        return

    try:
        unread = await service.get_unread_count(caller)
        await manager.send_to_connection(connection_id, {"type": UNREAD_COUNT_EVENT, "data": {"count": unread}})
        async for text in websocket.iter_text():
            if text == "ping":
                await websocket.send_text("pong")
            else:
                lazy_logger.debug(lambda: f"Ignoring client message on feed: {text[:100]!r}")
    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(connection_id)
