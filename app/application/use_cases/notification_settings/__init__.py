"""Use cases for managing notification preferences."""

from .push_tokens import add_push_token, remove_push_token
from .resolve_settings import resolve_settings
from .update_settings import update_settings

__all__ = [
    "add_push_token",
    "remove_push_token",
    "resolve_settings",
    "update_settings",
]
