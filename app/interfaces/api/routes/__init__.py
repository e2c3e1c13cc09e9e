from fastapi import FastAPI

from .maintenance import router as maintenance_router
from .notification_settings import router as notification_settings_router
from .notifications import router as notifications_router


def register_routes(app: FastAPI) -> None:
    """Registra todos los routers de la API en la aplicación FastAPI."""

    # Las preferencias van antes para que /notifications/settings no se
    # interprete como /notifications/{notification_id}.
    app.include_router(notification_settings_router)
    app.include_router(notifications_router)
    app.include_router(maintenance_router)
