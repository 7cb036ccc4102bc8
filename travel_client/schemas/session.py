"""Pydantic models describing the authenticated identity."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_DISPLAY_NAME = "User"
DEFAULT_EMAIL = "No email"


class SessionUser(BaseModel):
    """User record attached to a session by the identity provider."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1, description="Stable unique user identifier")
    email: str | None = Field(None, description="Email address the account signed up with")
    user_metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Free-form metadata; ``full_name`` carries the display name.",
    )

    @property
    def display_name(self) -> str:
        full_name = self.user_metadata.get("full_name")
        if isinstance(full_name, str) and full_name.strip():
            return full_name
        return DEFAULT_DISPLAY_NAME


class Session(BaseModel):
    """Opaque token pair plus the user it belongs to."""

    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(..., min_length=1)
    refresh_token: str | None = None
    token_type: str = "bearer"
    expires_at: datetime | None = Field(
        None, description="Absolute expiry; ``None`` when the provider omitted it."
    )
    user: SessionUser

    @property
    def user_id(self) -> str:
        return self.user.id

    @property
    def display_name(self) -> str:
        return self.user.display_name

    @property
    def email(self) -> str:
        return self.user.email or DEFAULT_EMAIL

    def expires_within(self, seconds: float, *, now: datetime | None = None) -> bool:
        """Return ``True`` when the token expires in less than ``seconds``."""

        if self.expires_at is None:
            return False
        current = now or datetime.now(UTC)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return (expires_at - current).total_seconds() < seconds


class SignUpResult(BaseModel):
    """Outcome of a registration: the user, and a session unless confirmation is pending."""

    user: SessionUser
    session: Session | None = None
