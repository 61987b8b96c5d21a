"""
Domain models for OAuth token persistence.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenRecord(BaseModel):
    """Represents the token row stored for one web session."""

    session_id: str = Field(..., min_length=1, description="Opaque web session identifier.")
    access_token: str = Field(..., min_length=1)
    refresh_token: Optional[str] = None
    expires_at: datetime
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def expires_within(self, window: timedelta, *, now: Optional[datetime] = None) -> bool:
        """Return True when the access token expires before ``now + window``."""
        reference = now or _utcnow()
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= reference + window


__all__ = ["TokenRecord"]
