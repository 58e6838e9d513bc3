from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ClerkEmailAddress(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    email_address: str


class ClerkUserData(BaseModel):
    """User payload of user.created / user.updated / user.deleted events."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    email_addresses: list[ClerkEmailAddress] | None = None
    first_name: str | None = None
    last_name: str | None = None

    def primary_email(self) -> str | None:
        if not self.email_addresses:
            return None
        return self.email_addresses[0].email_address or None

    def display_name(self) -> str | None:
        parts = [part for part in (self.first_name, self.last_name) if part]
        return " ".join(parts) or None


class ClerkWebhookEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str
    data: dict[str, Any] = Field(default_factory=dict)
