"""
Domain models for identity metadata.

Field aliases match the keys stored in Auth0 app_metadata.
"""

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserMetadata(BaseModel):
    """Billing-relevant slice of a user's app_metadata."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    is_registered: bool = Field(default=False, alias="isRegistered")
    usage_count: int = Field(default=0, alias="usageCount", ge=0)
    stripe_customer_id: Optional[str] = Field(default=None, alias="stripeCustomerId")

    @field_validator("is_registered", "usage_count", mode="before")
    @classmethod
    def _null_as_default(cls, value, info):
        # Auth0 keeps explicit nulls when a key was cleared
        if value is None:
            return cls.model_fields[info.field_name].default
        return value

    def to_app_metadata(self) -> dict[str, Any]:
        """Full app_metadata blob, including keys this service doesn't own."""
        return self.model_dump(by_alias=True, exclude_none=True)


class MetadataPatch(BaseModel):
    """Partial app_metadata update. Only fields that are set are sent."""

    model_config = ConfigDict(populate_by_name=True)

    is_registered: Optional[bool] = Field(default=None, alias="isRegistered")
    usage_count: Optional[int] = Field(default=None, alias="usageCount", ge=0)
    stripe_customer_id: Optional[str] = Field(default=None, alias="stripeCustomerId")

    def to_app_metadata(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
