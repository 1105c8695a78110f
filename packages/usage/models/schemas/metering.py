"""
API schemas for metered actions and usage lookups.

Field names on the wire are camelCase, matching the frontend's user profile.
"""

from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from packages.extraction.models.domain.keyword import Keyword


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserProfile(CamelModel):
    """Identity profile as held by the client."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    sub: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    is_registered: Optional[bool] = None
    app_metadata: dict[str, Any] = Field(default_factory=dict, alias="app_metadata")


class MeterActionRequest(CamelModel):
    text: str = ""
    user: UserProfile = Field(default_factory=UserProfile)
    is_registered: bool = False


class MeterActionResponse(CamelModel):
    success: bool = True
    keywords: List[Keyword]
    usage_count: Optional[int] = None
    invoice_id: Optional[str] = None


class UsageMetadataRequest(CamelModel):
    token: Optional[UserProfile] = None
    track_usage: bool = True
