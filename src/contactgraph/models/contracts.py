from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class IdentifyRequest(BaseModel):
    """Body accepted by POST /identify."""

    model_config = ConfigDict(populate_by_name=True)

    email: str | None = None
    phone_number: str | None = Field(default=None, alias="phoneNumber")

    @field_validator("email", "phone_number", mode="before")
    @classmethod
    def blank_to_none(cls, value: object) -> object:
        # Clients send phone numbers as JSON numbers as often as strings
        if isinstance(value, bool):
            raise ValueError("must be a string")
        if isinstance(value, int):
            value = str(value)
        if isinstance(value, str):
            return value if value.strip() else None
        return value

    @model_validator(mode="after")
    def require_identifier(self) -> "IdentifyRequest":
        if self.email is None and self.phone_number is None:
            raise ValueError("At least one of email or phoneNumber must be provided")
        return self


class IdentitySummary(BaseModel):
    """Caller-facing view of one resolved identity family."""

    model_config = ConfigDict(populate_by_name=True)

    primary_contact_id: int = Field(alias="primaryContactId")
    emails: List[str] = Field(default_factory=list)
    phone_numbers: List[str] = Field(default_factory=list, alias="phoneNumbers")
    secondary_contact_ids: List[int] = Field(default_factory=list, alias="secondaryContactIds")


class IdentifyResponse(BaseModel):
    contact: IdentitySummary


__all__ = ["IdentifyRequest", "IdentifyResponse", "IdentitySummary"]
