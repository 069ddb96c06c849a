"""Audit log schemas."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class AuditLogResponse(BaseModel):
    log_id: int
    action: str
    description: str
    entity_type: Optional[str] = None
    entity_id: Optional[int] = None
    user_id: Optional[int] = None
    result: str
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True, protected_namespaces=())
