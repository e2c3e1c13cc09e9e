"""Rutas de mantenimiento para ejecutar los procesos periódicos bajo demanda."""

from fastapi import APIRouter, Depends

from app.application.notification_service import NotificationService
from app.interfaces.api.dependencies import (
    AuthenticatedUser,
    get_notification_service,
    require_admin,
)
from app.interfaces.api.schemas import ExpiryCleanupRead, RetrySweepRead

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.post("/retry-sweep", response_model=RetrySweepRead)
async def run_retry_sweep(
    _: AuthenticatedUser = Depends(require_admin),
    service: NotificationService = Depends(get_notification_service),
) -> RetrySweepRead:
    """Reintenta las notificaciones cuyo siguiente intento ya venció."""

    report = await service.run_retry_sweep()
    return RetrySweepRead(
        total=report.total,
        delivered=report.delivered,
        rescheduled=report.rescheduled,
        abandoned=report.abandoned,
        skipped=report.skipped,
        errors=report.errors,
    )


@router.post("/expiry-cleanup", response_model=ExpiryCleanupRead)
async def run_expiry_cleanup(
    _: AuthenticatedUser = Depends(require_admin),
    service: NotificationService = Depends(get_notification_service),
) -> ExpiryCleanupRead:
    """Elimina las notificaciones caducadas."""

    return ExpiryCleanupRead(deleted=await service.run_expiry_cleanup())
