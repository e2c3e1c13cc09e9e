"""Endpoints and websocket handler for user notifications."""

from __future__ import annotations

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Query,
    Response,
    WebSocket,
    WebSocketDisconnect,
    status,
)

from app.application.notification_service import NotificationService
from app.application.use_cases.notifications import NotificationValidationError
from app.domain.entities import (
    Notification,
    NotificationPriority,
    NotificationRequest,
    NotificationType,
    SendResult,
)
from app.infrastructure.notifications import notification_manager, serialize_notification
from app.interfaces.api.dependencies import (
    AuthenticatedUser,
    get_current_user,
    get_notification_service,
    require_admin,
    resolve_current_user,
)
from app.interfaces.api.schemas import (
    ChannelStatusRead,
    DispatchResultRead,
    NotificationActionSchema,
    NotificationBatchCreate,
    NotificationBatchRead,
    NotificationCreate,
    NotificationDataSchema,
    NotificationDeleteRequest,
    NotificationMarkReadRequest,
    NotificationRead,
    NotificationResendRequest,
    NotificationStatsRead,
    SendResultRead,
    UnreadCountRead,
    UpdatedCountRead,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])

def _to_read_model(notification: Notification) -> NotificationRead:
    return NotificationRead(
        id=notification.id or 0,
        recipient_id=notification.recipient_id,
        sender_id=notification.sender_id,
        type=notification.type.value,
        priority=notification.priority.value,
        title=notification.title,
        content=notification.content,
        data=NotificationDataSchema(
            object_type=notification.data.object_type.value
            if notification.data.object_type
            else None,
            object_id=notification.data.object_id,
            extra=notification.data.extra or {},
        ),
        icon=notification.icon,
        image=notification.image,
        action_url=notification.action_url,
        actions=[
            NotificationActionSchema(
                label=action.label, action=action.action, style=action.style.value
            )
            for action in notification.actions
        ],
        channels=[channel.value for channel in notification.channels],
        status={
            channel.value: ChannelStatusRead(
                sent=channel_status.sent,
                sent_at=channel_status.sent_at,
                message_id=channel_status.message_id,
                error=channel_status.error,
            )
            for channel, channel_status in notification.status.items()
        },
        batch_id=notification.batch_id,
        retry_count=notification.retry_count,
        next_retry_at=notification.next_retry_at,
        expires_at=notification.expires_at,
        is_read=notification.is_read,
        read_at=notification.read_at,
        created_at=notification.created_at,
    )


def _to_request(payload: NotificationCreate) -> NotificationRequest:
    return NotificationRequest(
        recipient_id=payload.recipient_id,
        sender_id=payload.sender_id,
        type=payload.type,
        title=payload.title,
        content=payload.content,
        data=payload.data.model_dump() if payload.data else None,
        icon=payload.icon,
        image=payload.image,
        action_url=payload.action_url,
        actions=[action.model_dump() for action in payload.actions],
        priority=payload.priority,
        channels=payload.channels,
        expires_at=payload.expires_at,
    )


def _to_result_model(result: SendResult) -> SendResultRead:
    return SendResultRead(
        success=result.success,
        sent_at=result.sent_at,
        message_id=result.message_id,
        error=result.error,
    )


def _parse_filter(enum_cls, value: str | None, label: str):
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=f"{label} no válido: {value}"
        ) from exc


@router.get("/", response_model=list[NotificationRead])
async def list_notifications(
    type: str | None = Query(default=None),
    is_read: bool | None = Query(default=None),
    priority: str | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> list[NotificationRead]:
    """Devuelve las notificaciones del usuario autenticado, las más recientes primero."""

    notifications = await service.list_notifications(
        current_user.id,
        notification_type=_parse_filter(NotificationType, type, "Tipo de notificación"),
        is_read=is_read,
        priority=_parse_filter(NotificationPriority, priority, "Prioridad"),
        limit=limit,
        offset=offset,
    )
    return [_to_read_model(notification) for notification in notifications]


@router.get("/unread-count", response_model=UnreadCountRead)
async def unread_count(
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> UnreadCountRead:
    return UnreadCountRead(unread=await service.unread_count(current_user.id))


@router.get("/stats", response_model=NotificationStatsRead)
async def notification_stats(
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationStatsRead:
    return NotificationStatsRead(**await service.stats(current_user.id))


@router.post("/read", response_model=UpdatedCountRead)
async def mark_notifications_as_read(
    payload: NotificationMarkReadRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> UpdatedCountRead:
    """Marca como leídas las notificaciones indicadas."""

    count = await service.mark_as_read(current_user.id, payload.unique_ids())
    return UpdatedCountRead(count=count)


@router.post("/read-all", response_model=UpdatedCountRead)
async def mark_all_notifications_as_read(
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> UpdatedCountRead:
    return UpdatedCountRead(count=await service.mark_all_as_read(current_user.id))


@router.post("/delete", response_model=UpdatedCountRead)
async def delete_notifications(
    payload: NotificationDeleteRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> UpdatedCountRead:
    """Elimina en bloque las notificaciones indicadas."""

    count = await service.delete_many(current_user.id, payload.unique_ids())
    return UpdatedCountRead(count=count)


@router.post(
    "/",
    response_model=NotificationRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_notification(
    payload: NotificationCreate,
    _: AuthenticatedUser = Depends(require_admin),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationRead | Response:
    """Crea una notificación. Si el destinatario la tiene desactivada no se crea nada."""

    try:
        notification = await service.create(_to_request(payload))
    except NotificationValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    if notification is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return _to_read_model(notification)


@router.post(
    "/batch",
    response_model=NotificationBatchRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_notification_batch(
    payload: NotificationBatchCreate,
    _: AuthenticatedUser = Depends(require_admin),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationBatchRead:
    """Crea varias notificaciones bajo un mismo lote; las inválidas se omiten."""

    notifications = await service.create_batch(
        [_to_request(item) for item in payload.notifications], batch_id=payload.batch_id
    )
    batch_id = notifications[0].batch_id if notifications else payload.batch_id
    return NotificationBatchRead(
        batch_id=batch_id,
        created=len(notifications),
        notifications=[_to_read_model(notification) for notification in notifications],
    )


@router.get("/{notification_id}", response_model=NotificationRead)
async def get_notification(
    notification_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationRead:
    try:
        notification = await service.get_notification(current_user.id, notification_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _to_read_model(notification)


@router.post("/{notification_id}/read", response_model=NotificationRead)
async def mark_notification_as_read(
    notification_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationRead:
    try:
        await service.mark_as_read(current_user.id, [notification_id])
        notification = await service.get_notification(current_user.id, notification_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _to_read_model(notification)


@router.post("/{notification_id}/send", response_model=DispatchResultRead)
async def resend_notification(
    notification_id: int,
    payload: NotificationResendRequest | None = None,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> DispatchResultRead:
    """Reintenta en el momento los canales pendientes de una notificación."""

    try:
        results = await service.dispatch(
            notification_id,
            payload.channels if payload else None,
            user_id=None if current_user.is_admin() else current_user.id,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return DispatchResultRead(
        notification_id=notification_id,
        results={
            channel.value: _to_result_model(result) for channel, result in results.items()
        },
    )


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> Response:
    try:
        await service.delete(current_user.id, notification_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams notifications to the authenticated user."""

    token = websocket.query_params.get("token")
    service: NotificationService | None = getattr(
        websocket.app.state, "notification_service", None
    )
    if not token or service is None:
        await websocket.close(code=1008)
        return

    try:
        user = resolve_current_user(token)
        pending_notifications = await service.list_notifications(user.id, is_read=False)
    except HTTPException:
        await websocket.close(code=1008)
        return

    await notification_manager.connect(user.id, websocket)
    try:
        if pending_notifications:
            await websocket.send_json(
                {
                    "type": "init",
                    "data": [serialize_notification(n) for n in pending_notifications],
                }
            )
        while True:
            try:
                message = await websocket.receive_json()
            except WebSocketDisconnect:
                raise
            except ValueError:
                continue

            if not isinstance(message, dict):
                continue

            message_type = message.get("type")
            if message_type == "ping":
                await websocket.send_json({"type": "pong"})
                continue

            if message_type == "ack":
                ids = message.get("ids", [])
                if isinstance(ids, list) and ids:
                    valid_ids = [item for item in ids if isinstance(item, int)]
                    await service.mark_as_read(user.id, valid_ids)
                continue
    except WebSocketDisconnect:
        notification_manager.disconnect(user.id, websocket)
    except Exception:
        notification_manager.disconnect(user.id, websocket)
        raise


__all__ = ["router"]
