"""Schemas for the maintenance endpoints."""

from pydantic import BaseModel


class RetrySweepRead(BaseModel):
    total: int
    delivered: int
    rescheduled: int
    abandoned: int
    skipped: int
    errors: int


class ExpiryCleanupRead(BaseModel):
    deleted: int


__all__ = ["ExpiryCleanupRead", "RetrySweepRead"]
