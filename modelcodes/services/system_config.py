"""Configuration provider for code numbering rules.

Runtime values live in the ``system_configs`` table so administrators can
change them without a redeploy; the environment settings supply defaults
for keys that were never written.
"""
import logging
from typing import Dict, FrozenSet, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from modelcodes.core.config import settings
from modelcodes.core.code_format import parse_excluded_chars
from modelcodes.core.results import ServiceResult, ErrorCode
from modelcodes.core.time import utc_now
from modelcodes.models.system_config import SystemConfig

logger = logging.getLogger(__name__)

NUMBER_DIGITS_KEY = "NumberDigits"
EXTENSION_MAX_LENGTH_KEY = "ExtensionMaxLength"
EXTENSION_EXCLUDED_CHARS_KEY = "ExtensionExcludedChars"

# Width of the extension column
EXTENSION_COLUMN_LENGTH = 10

CONFIG_DESCRIPTIONS = {
    NUMBER_DIGITS_KEY: "Number of digits in the numeric part of generated codes",
    EXTENSION_MAX_LENGTH_KEY: "Maximum length of a code extension",
    EXTENSION_EXCLUDED_CHARS_KEY: "Comma-separated characters not allowed in extensions",
}


def _defaults() -> Dict[str, str]:
    return {
        NUMBER_DIGITS_KEY: str(settings.DEFAULT_NUMBER_DIGITS),
        EXTENSION_MAX_LENGTH_KEY: str(settings.DEFAULT_EXTENSION_MAX_LENGTH),
        EXTENSION_EXCLUDED_CHARS_KEY: settings.DEFAULT_EXTENSION_EXCLUDED_CHARS,
    }


def get_config_value(db: Session, key: str) -> Optional[str]:
    """Return the active stored value for ``key``, falling back to the default."""
    config = db.query(SystemConfig).filter(
        SystemConfig.config_key == key,
        SystemConfig.is_active == True
    ).first()
    if config is None or config.config_value is None:
        return _defaults().get(key)
    return config.config_value


def _get_int(db: Session, key: str, default: int) -> int:
    raw = get_config_value(db, key)
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.warning("Config %s has non-integer value %r, using %s", key, raw, default)
        return default


def get_number_digits(db: Session) -> int:
    return _get_int(db, NUMBER_DIGITS_KEY, settings.DEFAULT_NUMBER_DIGITS)


def get_extension_max_length(db: Session) -> int:
    return _get_int(db, EXTENSION_MAX_LENGTH_KEY, settings.DEFAULT_EXTENSION_MAX_LENGTH)


def get_extension_excluded_chars(db: Session) -> FrozenSet[str]:
    return parse_excluded_chars(get_config_value(db, EXTENSION_EXCLUDED_CHARS_KEY))


def get_all_configs(db: Session) -> Dict[str, str]:
    """All active configuration values, defaults included."""
    configs = _defaults()
    rows = db.query(SystemConfig).filter(SystemConfig.is_active == True).all()
    for row in rows:
        configs[row.config_key] = row.config_value or ""
    return configs


def validate_config_value(key: str, value: str) -> Optional[str]:
    """Return an error message if ``value`` is not acceptable for ``key``."""
    if key == NUMBER_DIGITS_KEY:
        try:
            digits = int(value)
        except (TypeError, ValueError):
            return f"{key} must be an integer"
        if not 1 <= digits <= settings.MAX_NUMBER_DIGITS:
            return f"{key} must be between 1 and {settings.MAX_NUMBER_DIGITS}"
    elif key == EXTENSION_MAX_LENGTH_KEY:
        try:
            length = int(value)
        except (TypeError, ValueError):
            return f"{key} must be an integer"
        if not 0 <= length <= EXTENSION_COLUMN_LENGTH:
            return f"{key} must be between 0 and {EXTENSION_COLUMN_LENGTH}"
    return None


def _upsert(db: Session, key: str, value: str, description: Optional[str] = None) -> SystemConfig:
    existing = db.query(SystemConfig).filter(SystemConfig.config_key == key).first()
    if existing:
        existing.config_value = value
        existing.is_active = True
        existing.updated_at = utc_now()
        if description:
            existing.description = description
        return existing

    config = SystemConfig(
        config_key=key,
        config_value=value,
        description=description or CONFIG_DESCRIPTIONS.get(key),
        is_active=True,
    )
    db.add(config)
    return config


def set_config_value(
    db: Session,
    key: str,
    value: str,
    description: Optional[str] = None,
) -> ServiceResult[SystemConfig]:
    """Create or update a single configuration value."""
    error = validate_config_value(key, value)
    if error:
        return ServiceResult.invalid(error, ErrorCode.CONFIGURATION)

    try:
        config = _upsert(db, key, value, description)
        db.commit()
        db.refresh(config)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to set config %s", key)
        return ServiceResult.system_error(f"Failed to set config {key}")

    logger.info("Config %s set to %r", key, value)
    return ServiceResult.ok(config, "Configuration updated")


def update_configs(db: Session, configs: Dict[str, str]) -> ServiceResult[Dict[str, str]]:
    """Update several configuration values in one transaction."""
    for key, value in configs.items():
        error = validate_config_value(key, value)
        if error:
            return ServiceResult.invalid(error, ErrorCode.CONFIGURATION)

    try:
        for key, value in configs.items():
            _upsert(db, key, value)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to update configs %s", sorted(configs))
        return ServiceResult.system_error("Failed to update configuration")

    logger.info("Updated %d config values", len(configs))
    return ServiceResult.ok(get_all_configs(db), "Configuration updated")
