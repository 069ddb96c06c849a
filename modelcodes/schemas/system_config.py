"""System configuration schemas."""
from pydantic import BaseModel
from typing import Dict, Optional


class SystemConfigValue(BaseModel):
    value: str
    description: Optional[str] = None


class SystemConfigBulkUpdate(BaseModel):
    configs: Dict[str, str]


class SystemConfigResponse(BaseModel):
    config_key: str
    config_value: str
    description: Optional[str] = None
    is_active: bool

    class Config:
        from_attributes = True
