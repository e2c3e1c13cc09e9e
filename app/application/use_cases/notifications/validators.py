"""Validation helpers for notification use cases."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import HttpUrl, TypeAdapter, ValidationError

from app.domain.entities import (
    ActionStyle,
    Notification,
    NotificationAction,
    NotificationChannel,
    NotificationData,
    NotificationPriority,
    NotificationRequest,
    NotificationType,
    ObjectType,
)
from app.utils import ensure_app_timezone

TITLE_MAX_LENGTH = 100
CONTENT_MAX_LENGTH = 500
ACTION_LABEL_MAX_LENGTH = 20
DEFAULT_CHANNELS = (NotificationChannel.IN_APP,)

_URL_ADAPTER = TypeAdapter(HttpUrl)


class NotificationValidationError(ValueError):
    """Raised when a notification request is malformed."""


def _parse_enum(enum_cls, value: Any, label: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(item.value for item in enum_cls)
        raise NotificationValidationError(
            f"{label} '{value}' no es válido. Valores permitidos: {allowed}"
        ) from None


def _require_text(value: Any, label: str, max_length: int) -> str:
    if not isinstance(value, str) or not value.strip():
        raise NotificationValidationError(f"El campo {label} es obligatorio")
    cleaned = value.strip()
    if len(cleaned) > max_length:
        raise NotificationValidationError(
            f"El campo {label} no puede superar {max_length} caracteres"
        )
    return cleaned


def _optional_url(value: str | None, label: str) -> str | None:
    if value is None or not str(value).strip():
        return None
    cleaned = str(value).strip()
    try:
        _URL_ADAPTER.validate_python(cleaned)
    except ValidationError:
        raise NotificationValidationError(f"El campo {label} debe ser una URL válida") from None
    return cleaned


def normalize_channels(
    channels: Sequence[NotificationChannel | str] | None,
) -> list[NotificationChannel]:
    """Parse ``channels`` keeping their order and dropping duplicates."""

    if channels is None:
        return list(DEFAULT_CHANNELS)
    if isinstance(channels, (str, bytes)):
        raise NotificationValidationError("Los canales deben enviarse como una lista")

    normalized: list[NotificationChannel] = []
    for raw_channel in channels:
        channel = _parse_enum(NotificationChannel, raw_channel, "El canal")
        if channel not in normalized:
            normalized.append(channel)
    return normalized


def _build_data(data: Mapping[str, Any] | NotificationData | None) -> NotificationData:
    if data is None:
        return NotificationData()
    if isinstance(data, NotificationData):
        return data
    if not isinstance(data, Mapping):
        raise NotificationValidationError("El campo data debe ser un objeto")

    object_type = data.get("object_type")
    object_id = data.get("object_id")
    extra = data.get("extra") or {}
    if not isinstance(extra, Mapping):
        raise NotificationValidationError("El campo data.extra debe ser un objeto")
    return NotificationData(
        object_type=_parse_enum(ObjectType, object_type, "El tipo de objeto")
        if object_type
        else None,
        object_id=str(object_id) if object_id not in (None, "") else None,
        extra=dict(extra),
    )


def _build_actions(
    actions: Sequence[NotificationAction | Mapping[str, Any]] | None,
) -> list[NotificationAction]:
    parsed: list[NotificationAction] = []
    for index, raw_action in enumerate(actions or [], start=1):
        if isinstance(raw_action, NotificationAction):
            raw_action = {
                "label": raw_action.label,
                "action": raw_action.action,
                "style": raw_action.style,
            }
        if not isinstance(raw_action, Mapping):
            raise NotificationValidationError(f"La acción {index} debe ser un objeto")

        label = _require_text(
            raw_action.get("label"), f"label de la acción {index}", ACTION_LABEL_MAX_LENGTH
        )
        action = raw_action.get("action")
        if not isinstance(action, str) or not action.strip():
            raise NotificationValidationError(f"La acción {index} debe indicar una operación")
        style = _parse_enum(
            ActionStyle, raw_action.get("style") or ActionStyle.PRIMARY, "El estilo"
        )
        parsed.append(NotificationAction(label=label, action=action.strip(), style=style))
    return parsed


def build_notification(request: NotificationRequest) -> Notification:
    """Validate ``request`` and return an unsaved notification.

    The returned entity carries the requested channels; the caller narrows them
    down to the channels allowed by the recipient's settings.
    """

    if not isinstance(request.recipient_id, int) or request.recipient_id <= 0:
        raise NotificationValidationError("El destinatario de la notificación es obligatorio")

    return Notification(
        id=None,
        recipient_id=request.recipient_id,
        sender_id=request.sender_id,
        type=_parse_enum(NotificationType, request.type, "El tipo de notificación"),
        priority=_parse_enum(
            NotificationPriority,
            request.priority or NotificationPriority.NORMAL,
            "La prioridad",
        ),
        title=_require_text(request.title, "title", TITLE_MAX_LENGTH),
        content=_require_text(request.content, "content", CONTENT_MAX_LENGTH),
        data=_build_data(request.data),
        icon=request.icon or None,
        image=_optional_url(request.image, "image"),
        action_url=_optional_url(request.action_url, "action_url"),
        actions=_build_actions(request.actions),
        channels=normalize_channels(request.channels),
        batch_id=request.batch_id,
        expires_at=ensure_app_timezone(request.expires_at),
    )


__all__ = [
    "ACTION_LABEL_MAX_LENGTH",
    "CONTENT_MAX_LENGTH",
    "DEFAULT_CHANNELS",
    "NotificationValidationError",
    "TITLE_MAX_LENGTH",
    "build_notification",
    "normalize_channels",
]
