"""Fire-and-forget audit sink.

Audit rows join the caller's transaction through a savepoint. Recording an
action must never break the business operation, so a rejected audit insert
only rolls back its own savepoint and is logged.
"""
import logging
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from modelcodes.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def record_action(
    db: Session,
    action: str,
    description: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    user_id: Optional[int] = None,
) -> None:
    """Write an audit log entry in a savepoint of the caller's transaction."""
    # Business changes flush outside the savepoint; their errors belong to the caller.
    db.flush()
    try:
        with db.begin_nested():
            db.add(AuditLog(
                action=action,
                description=description,
                entity_type=entity_type,
                entity_id=entity_id,
                user_id=user_id,
                result="Success",
            ))
    except SQLAlchemyError:
        logger.exception("Failed to record audit action %s", action)
