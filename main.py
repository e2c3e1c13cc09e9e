import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.application.notification_service import NotificationService, build_channel_providers
from app.config import get_settings
from app.infrastructure.database import SessionLocal, engine, initialize_database
from app.infrastructure.notifications import run_periodically
from app.interfaces.api.routes import register_routes


def _start_periodic_jobs(service: NotificationService) -> list[asyncio.Task]:
    settings = get_settings()
    jobs = (
        ("retry-sweep", settings.retry_sweep_interval_seconds, service.run_retry_sweep),
        ("expiry-cleanup", settings.expiry_cleanup_interval_seconds, service.run_expiry_cleanup),
    )
    return [
        asyncio.create_task(run_periodically(name, interval, job), name=name)
        for name, interval, job in jobs
        if interval > 0
    ]


def create_app(
    notification_service: NotificationService | None = None,
    *,
    run_periodic_jobs: bool = True,
) -> FastAPI:
    """Crea y configura la aplicación principal de FastAPI."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Prepara la base de datos y el servicio al arrancar y libera los recursos al cerrar."""

        service = notification_service
        if service is None:
            initialize_database()
            settings = get_settings()
            service = NotificationService(
                SessionLocal, build_channel_providers(settings), settings=settings
            )
        app.state.notification_service = service

        jobs = _start_periodic_jobs(service) if run_periodic_jobs else []
        try:
            yield
        finally:
            for job in jobs:
                job.cancel()
            await asyncio.gather(*jobs, return_exceptions=True)
            await service.drain()
            if notification_service is None:
                engine.dispose()

    app = FastAPI(lifespan=lifespan)

    # Autoriza peticiones desde la aplicación cliente.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:4200"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


app = create_app()
