"""System configuration routes."""
from typing import Dict
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from modelcodes.api.responses import unwrap
from modelcodes.core.database import get_db
from modelcodes.core.deps import Actor, get_current_actor
from modelcodes.core.audit import record_action
from modelcodes.schemas.system_config import (
    SystemConfigBulkUpdate,
    SystemConfigResponse,
    SystemConfigValue,
)
from modelcodes.services import system_config

router = APIRouter()


@router.get("/", response_model=Dict[str, str])
def get_configs(
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    """Effective configuration values, with defaults for unset keys."""
    return system_config.get_all_configs(db)


@router.put("/", response_model=Dict[str, str])
def update_configs(
    data: SystemConfigBulkUpdate,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    configs = unwrap(system_config.update_configs(db, data.configs))
    record_action(db, "UpdateSystemConfig", f"Updated {', '.join(sorted(data.configs))}",
                  "SystemConfig", None, current_actor.user_id)
    db.commit()
    return configs


@router.put("/{config_key}", response_model=SystemConfigResponse)
def set_config(
    config_key: str,
    data: SystemConfigValue,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor)
):
    config = unwrap(system_config.set_config_value(db, config_key, data.value, data.description))
    record_action(db, "UpdateSystemConfig", f"Set {config_key} to {data.value}",
                  "SystemConfig", config.id, current_actor.user_id)
    db.commit()
    return config
