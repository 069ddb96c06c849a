"""Batch operations over code usage entries and product types.

Each batch runs in one transaction, with every item in its own savepoint.
Items that fail a precondition or hit a storage error are reported
individually and skipped; the rest are committed together.
"""
import logging
from typing import Callable, Iterable, List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from modelcodes.core.audit import record_action
from modelcodes.core.results import BatchOperationResult, ErrorCode, ServiceResult
from modelcodes.models.code_usage import CodeUsageEntry, OccupancyType
from modelcodes.models.product_type import ProductType
from modelcodes.services.code_usage import (
    VALID_OCCUPANCY_TYPES,
    mark_deleted,
    mark_restored,
    set_occupancy_type,
)

logger = logging.getLogger(__name__)


def _apply(
    db: Session, result: BatchOperationResult, item, operation: Callable[[], ServiceResult]
) -> None:
    """Run one item in a savepoint; a storage error fails only that item."""
    try:
        with db.begin_nested():
            outcome = operation()
    except SQLAlchemyError:
        logger.exception("Storage error on batch item %s", item)
        result.record_failure(item, "Storage error", ErrorCode.STORAGE)
        return
    if outcome.success:
        result.record_success(item)
    else:
        result.record_failure(item, outcome.message, outcome.error_code)


def _finish(
    db: Session,
    result: BatchOperationResult,
    action: str,
    label: str,
    actor_id: Optional[int],
) -> BatchOperationResult:
    """Commit a batch and write its audit record; a storage failure fails every item."""
    try:
        if result.success_count:
            record_action(
                db, action,
                f"{label}: {result.success_count} succeeded, {result.failed_count} failed",
                "Batch", None, actor_id,
            )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("%s batch failed, rolled back", label)
        failed = BatchOperationResult(total=result.total)
        for outcome in result.items:
            failed.record_failure(outcome.item, "Batch rolled back", ErrorCode.STORAGE)
        failed.message = f"{label} failed and was rolled back"
        return failed

    result.message = f"{label}: {result.success_count} of {result.total} succeeded"
    logger.info(result.message)
    return result


def batch_soft_delete(
    db: Session, entry_ids: List[int], reason: Optional[str] = None, actor_id: Optional[int] = None
) -> BatchOperationResult:
    result = BatchOperationResult(total=len(entry_ids))
    for entry_id in entry_ids:
        _apply(db, result, entry_id, lambda: mark_deleted(db, entry_id, reason))
    return _finish(db, result, "BatchSoftDelete", "Batch delete", actor_id)


def batch_restore(
    db: Session, entry_ids: List[int], actor_id: Optional[int] = None
) -> BatchOperationResult:
    result = BatchOperationResult(total=len(entry_ids))
    for entry_id in entry_ids:
        _apply(db, result, entry_id, lambda: mark_restored(db, entry_id))
    return _finish(db, result, "BatchRestore", "Batch restore", actor_id)


def _update_occupancy(db: Session, entry_id: int, occupancy: str) -> ServiceResult[None]:
    entry = db.query(CodeUsageEntry).filter(
        CodeUsageEntry.id == entry_id,
        CodeUsageEntry.is_deleted == False
    ).first()
    if not entry:
        return ServiceResult.not_found(f"Code usage entry {entry_id} not found")
    set_occupancy_type(entry, occupancy)
    return ServiceResult.ok(None)


def batch_update_occupancy_types(
    db: Session, updates: Iterable[dict], actor_id: Optional[int] = None
) -> BatchOperationResult:
    """Apply ``{"id": ..., "occupancy_type": ...}`` updates."""
    updates = list(updates)
    result = BatchOperationResult(total=len(updates))
    for item in updates:
        entry_id = item["id"]
        occupancy = item["occupancy_type"]
        if isinstance(occupancy, OccupancyType):
            occupancy = occupancy.value
        if occupancy not in VALID_OCCUPANCY_TYPES:
            result.record_failure(
                entry_id, f"Invalid occupancy type: {occupancy}", ErrorCode.INVALID_OCCUPANCY_TYPE)
            continue
        _apply(db, result, entry_id, lambda: _update_occupancy(db, entry_id, occupancy))
    return _finish(db, result, "BatchUpdateOccupancyType", "Batch occupancy update", actor_id)


def _add_product_type(db: Session, code: str, seen: set) -> ServiceResult[None]:
    exists = db.query(ProductType).filter(ProductType.code == code).first()
    if exists or code in seen:
        return ServiceResult.conflict(f"Product type {code} already exists")
    db.add(ProductType(code=code))
    seen.add(code)
    return ServiceResult.ok(None)


def batch_create_product_types(
    db: Session, codes: Iterable[str], actor_id: Optional[int] = None
) -> BatchOperationResult:
    """Create product types, skipping blanks and codes that already exist."""
    codes = list(codes)
    result = BatchOperationResult(total=len(codes))
    seen = set()
    for code in codes:
        normalized = (code or "").strip()
        if not normalized:
            result.record_failure(code, "Product type code is required", ErrorCode.INVALID_FORMAT)
            continue
        _apply(db, result, normalized, lambda: _add_product_type(db, normalized, seen))
    return _finish(db, result, "BatchCreateProductType", "Batch product type create", actor_id)
