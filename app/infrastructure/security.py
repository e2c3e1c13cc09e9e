"""Verification of the bearer tokens issued by the identity service."""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from app.config import get_settings

ALGORITHM = "HS256"
DEFAULT_TOKEN_LIFETIME = timedelta(minutes=60)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Sign ``data`` the same way the identity service does."""

    expire = datetime.now(timezone.utc) + (expires_delta or DEFAULT_TOKEN_LIFETIME)
    return jwt.encode({**data, "exp": expire}, get_settings().secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, get_settings().secret_key, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise ValueError("Could not validate credentials") from exc
