from datetime import datetime
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from packages.billing.models.domain.enums import WebhookEventStatus


class WebhookEvent(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    event_id: str
    event_type: str
    customer_id: Optional[str] = None
    status: WebhookEventStatus
    completed_steps: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    payload: dict[str, Any]
    attempts: int = 1
    claimed_at: Optional[datetime] = None
    received_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
