"""FastAPI dependency utilities."""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.application.notification_service import NotificationService
from app.infrastructure.security import decode_access_token

ADMIN_ROLE = "admin"

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity extracted from the bearer token."""

    id: int
    role: str | None = None

    def is_admin(self) -> bool:
        return (self.role or "").lower() == ADMIN_ROLE


def _unauthorized(detail: str = "Credenciales inválidas") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def resolve_current_user(token: str) -> AuthenticatedUser:
    """Resolve the authenticated user for the provided token."""

    try:
        payload = decode_access_token(token)
    except ValueError as exc:
        raise _unauthorized() from exc

    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise _unauthorized() from None
    if user_id <= 0:
        raise _unauthorized()

    role = payload.get("role")
    return AuthenticatedUser(id=user_id, role=role if isinstance(role, str) else None)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthenticatedUser:
    """Return the authenticated user from the provided token."""

    if credentials is None or not credentials.credentials:
        raise _unauthorized("No autenticado")
    return resolve_current_user(credentials.credentials)


def require_admin(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> AuthenticatedUser:
    """Ensure the authenticated user has administrator privileges."""

    if not current_user.is_admin():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No autorizado",
        )
    return current_user


def get_notification_service(request: Request) -> NotificationService:
    """Return the service created by the application lifespan."""

    service = getattr(request.app.state, "notification_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Servicio de notificaciones no disponible",
        )
    return service
