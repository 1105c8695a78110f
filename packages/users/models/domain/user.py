from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class LocalUser(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    auth_sub: str
    created_at: Optional[datetime] = None
