"""Rutas para consultar y modificar las preferencias de notificación."""

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.application.notification_service import NotificationService
from app.domain.entities import NotificationSettings
from app.interfaces.api.dependencies import (
    AuthenticatedUser,
    get_current_user,
    get_notification_service,
)
from app.interfaces.api.schemas import (
    NotificationSettingsRead,
    NotificationSettingsUpdate,
    PushTokenCreate,
    PushTokenRead,
    QuietHoursSchema,
    TypePreferenceSchema,
)

router = APIRouter(prefix="/notifications/settings", tags=["notification-settings"])


def _to_read_model(settings: NotificationSettings) -> NotificationSettingsRead:
    return NotificationSettingsRead(
        user_id=settings.user_id,
        enabled=settings.enabled,
        quiet_hours=QuietHoursSchema(
            enabled=settings.quiet_hours.enabled,
            start=settings.quiet_hours.start,
            end=settings.quiet_hours.end,
        ),
        types={
            notification_type.value: TypePreferenceSchema(
                enabled=preference.enabled,
                channels=[channel.value for channel in preference.channels],
            )
            for notification_type, preference in settings.types.items()
        },
        push_tokens=[
            PushTokenRead(
                device_id=token.device_id,
                platform=token.platform.value,
                is_active=token.is_active,
                last_used=token.last_used,
            )
            for token in settings.push_tokens
        ],
        updated_at=settings.updated_at,
    )


@router.get("", response_model=NotificationSettingsRead)
async def get_settings(
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationSettingsRead:
    """Devuelve las preferencias del usuario, creándolas por defecto si no existen."""

    return _to_read_model(await service.get_settings(current_user.id))


@router.patch("", response_model=NotificationSettingsRead)
async def update_settings(
    payload: NotificationSettingsUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationSettingsRead:
    try:
        settings = await service.update_settings(
            current_user.id,
            enabled=payload.enabled,
            quiet_hours=payload.quiet_hours.model_dump(exclude_none=True)
            if payload.quiet_hours
            else None,
            types={
                notification_type: preference.model_dump(exclude_none=True)
                for notification_type, preference in payload.types.items()
            }
            if payload.types is not None
            else None,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _to_read_model(settings)


@router.post(
    "/push-tokens",
    response_model=NotificationSettingsRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_push_token(
    payload: PushTokenCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationSettingsRead:
    """Registra el token push de un dispositivo, sustituyendo el anterior."""

    try:
        settings = await service.add_push_token(
            current_user.id,
            token=payload.token,
            device_id=payload.device_id,
            platform=payload.platform,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _to_read_model(settings)


@router.delete("/push-tokens/{device_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_push_token(
    device_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
) -> Response:
    if not await service.remove_push_token(current_user.id, device_id=device_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Dispositivo no encontrado"
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
