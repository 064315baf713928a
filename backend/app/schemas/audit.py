from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class AuditLogRead(BaseModel):
    id: int
    user_id: Optional[int] = None
    action: str
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="details")
    ip_address: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
