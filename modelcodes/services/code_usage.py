"""Code usage lifecycle: allocation, manual creation, edits, soft delete and restore.

States of an entry::

    Available (not allocated, not deleted)
      -> Allocated (allocate_code)
      -> Deleted (soft_delete; is_allocated preserved)
      -> back to its previous state (restore)

Every transition that touches the state flags is a compare-and-swap
``UPDATE ... WHERE`` on those flags, and the partial unique index on
``model`` backs the application-level availability checks, so concurrent
requests cannot double-allocate an entry or duplicate a live code.
"""
import enum
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple
from sqlalchemy import update, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from modelcodes.core.audit import record_action
from modelcodes.core.database import violates_unique
from modelcodes.core.code_format import (
    compose_model,
    is_valid_number_part,
    strip_extension,
    validate_extension as check_extension_rules,
)
from modelcodes.core.results import ServiceResult, ErrorCode
from modelcodes.core.time import utc_now
from modelcodes.models.code_classification import CodeClassification
from modelcodes.models.code_usage import CodeUsageEntry, OccupancyType
from modelcodes.models.model_classification import ModelClassification
from modelcodes.services.system_config import (
    get_extension_excluded_chars,
    get_extension_max_length,
    get_number_digits,
)

logger = logging.getLogger(__name__)

LIVE_CODE_INDEX = "uq_code_usage_entries_model_live"


def is_duplicate_code(exc: IntegrityError) -> bool:
    """Whether the live-code unique index rejected the write."""
    return violates_unique(exc, LIVE_CODE_INDEX, "code_usage_entries.model")


# Editable product metadata carried by allocations, manual codes and edits
METADATA_FIELDS = (
    "product_name",
    "description",
    "occupancy_type",
    "customer",
    "factory",
    "builder",
    "requester",
    "creation_date",
)

VALID_OCCUPANCY_TYPES = {o.value for o in OccupancyType}


class ManualCodeOutcome(str, enum.Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"


@dataclass
class ManualCodeResult:
    outcome: ManualCodeOutcome
    entry: CodeUsageEntry


def _metadata(data: dict) -> dict:
    values = {field: data[field] for field in METADATA_FIELDS if field in data}
    occupancy = values.get("occupancy_type")
    if isinstance(occupancy, OccupancyType):
        values["occupancy_type"] = occupancy.value
    return values


def _invalid_occupancy(data: dict) -> Optional[ServiceResult]:
    occupancy = data.get("occupancy_type")
    if occupancy is None or isinstance(occupancy, OccupancyType):
        return None
    if occupancy not in VALID_OCCUPANCY_TYPES:
        return ServiceResult.invalid(
            f"Invalid occupancy type: {occupancy}", ErrorCode.INVALID_OCCUPANCY_TYPE)
    return None


# Validation and availability

def validate_extension(db: Session, extension: Optional[str]) -> ServiceResult[None]:
    """Check ``extension`` against the configured length and excluded characters."""
    is_valid, error = check_extension_rules(
        extension,
        get_extension_max_length(db),
        get_extension_excluded_chars(db),
    )
    if not is_valid:
        return ServiceResult.invalid(error, ErrorCode.INVALID_EXTENSION)
    return ServiceResult.ok(None, "Extension is valid")


def check_composed_code_available(
    db: Session, candidate: str, excluding_entry_id: Optional[int] = None
) -> bool:
    """True when no live entry other than ``excluding_entry_id`` holds ``candidate``."""
    query = db.query(CodeUsageEntry.id).filter(
        CodeUsageEntry.model == candidate,
        CodeUsageEntry.is_deleted == False
    )
    if excluding_entry_id is not None:
        query = query.filter(CodeUsageEntry.id != excluding_entry_id)
    return query.first() is None


def check_code_availability(
    db: Session,
    model_type: str,
    classification_number: Optional[int],
    actual_number: str,
    extension: Optional[str] = None,
) -> bool:
    model = compose_model(model_type, classification_number, actual_number, extension)
    return check_composed_code_available(db, model)


def validate_manual_code(
    db: Session,
    model_type: str,
    number_part: str,
    extension: Optional[str] = None,
) -> ServiceResult[str]:
    """Pre-check a manual code and return the composed code when it is free."""
    model_classification = db.query(ModelClassification).filter(
        ModelClassification.type == model_type
    ).first()
    if not model_classification:
        return ServiceResult.not_found(f"Model type {model_type} not found")

    digits = get_number_digits(db)
    if not is_valid_number_part(number_part, digits):
        return ServiceResult.invalid(f"Number must be exactly {digits} digits")

    extension_check = validate_extension(db, extension)
    if not extension_check.success:
        return extension_check.cast()

    model = compose_model(model_type, None, number_part, extension)
    if not check_composed_code_available(db, model):
        return ServiceResult.conflict(f"Code {model} already exists")
    return ServiceResult.ok(model, f"Code {model} is available")


def get_available_code_stats(
    db: Session,
    model_classification_id: Optional[int] = None,
    code_classification_id: Optional[int] = None,
) -> dict:
    """Count live codes, optionally scoped to a model or code classification."""
    query = db.query(CodeUsageEntry).filter(CodeUsageEntry.is_deleted == False)
    if model_classification_id is not None:
        query = query.filter(CodeUsageEntry.model_classification_id == model_classification_id)
    if code_classification_id is not None:
        query = query.filter(CodeUsageEntry.code_classification_id == code_classification_id)

    total = query.count()
    allocated = query.filter(CodeUsageEntry.is_allocated == True).count()
    return {"total": total, "allocated": allocated, "available": total - allocated}


# Queries

def get_entry(db: Session, entry_id: int) -> ServiceResult[CodeUsageEntry]:
    entry = db.query(CodeUsageEntry).filter(CodeUsageEntry.id == entry_id).first()
    if not entry:
        logger.warning("Code usage entry %s not found", entry_id)
        return ServiceResult.not_found(f"Code usage entry {entry_id} not found")
    return ServiceResult.ok(entry)


def list_entries(
    db: Session,
    model_classification_id: Optional[int] = None,
    code_classification_id: Optional[int] = None,
    is_allocated: Optional[bool] = None,
    occupancy_type: Optional[str] = None,
    keyword: Optional[str] = None,
    include_deleted: bool = False,
    limit: int = 100,
    offset: int = 0,
) -> Tuple[int, List[CodeUsageEntry]]:
    """Filtered listing ordered by code; returns (total, page)."""
    query = db.query(CodeUsageEntry)
    if not include_deleted:
        query = query.filter(CodeUsageEntry.is_deleted == False)
    if model_classification_id is not None:
        query = query.filter(CodeUsageEntry.model_classification_id == model_classification_id)
    if code_classification_id is not None:
        query = query.filter(CodeUsageEntry.code_classification_id == code_classification_id)
    if is_allocated is not None:
        query = query.filter(CodeUsageEntry.is_allocated == is_allocated)
    if occupancy_type:
        query = query.filter(CodeUsageEntry.occupancy_type == occupancy_type)
    if keyword:
        pattern = f"%{keyword}%"
        query = query.filter(or_(
            CodeUsageEntry.model.ilike(pattern),
            CodeUsageEntry.product_name.ilike(pattern),
            CodeUsageEntry.description.ilike(pattern),
        ))

    total = query.count()
    items = query.order_by(CodeUsageEntry.model).offset(offset).limit(limit).all()
    return total, items


def list_by_model_type(
    db: Session, model_type: str, include_deleted: bool = False
) -> List[CodeUsageEntry]:
    query = db.query(CodeUsageEntry).filter(CodeUsageEntry.model_type == model_type)
    if not include_deleted:
        query = query.filter(CodeUsageEntry.is_deleted == False)
    return query.order_by(CodeUsageEntry.actual_number, CodeUsageEntry.extension).all()


def list_by_model_type_and_number(
    db: Session, model_type: str, classification_number: int, include_deleted: bool = False
) -> List[CodeUsageEntry]:
    query = db.query(CodeUsageEntry).filter(
        CodeUsageEntry.model_type == model_type,
        CodeUsageEntry.classification_number == classification_number
    )
    if not include_deleted:
        query = query.filter(CodeUsageEntry.is_deleted == False)
    return query.order_by(CodeUsageEntry.actual_number, CodeUsageEntry.extension).all()


# Transitions

def allocate_code(
    db: Session, entry_id: int, data: dict, actor_id: Optional[int] = None
) -> ServiceResult[CodeUsageEntry]:
    """
    Allocate an available (pre-allocated) code.

    Args:
        db: Database session
        entry_id: Entry to allocate
        data: Optional ``extension`` plus product metadata fields
        actor_id: Acting user, recorded in the audit log

    Returns:
        The allocated entry, or NOT_FOUND / CONFLICT (ALREADY_ALLOCATED,
        DUPLICATE_CODE) / VALIDATION (INVALID_EXTENSION)
    """
    entry = db.query(CodeUsageEntry).filter(
        CodeUsageEntry.id == entry_id,
        CodeUsageEntry.is_deleted == False
    ).first()
    if not entry:
        logger.warning("Code usage entry %s not found for allocation", entry_id)
        return ServiceResult.not_found(f"Code usage entry {entry_id} not found")

    if entry.is_allocated:
        logger.warning("Code %s (id=%s) is already allocated", entry.model, entry_id)
        return ServiceResult.conflict(
            f"Code {entry.model} is already allocated", ErrorCode.ALREADY_ALLOCATED)

    invalid = _invalid_occupancy(data)
    if invalid:
        return invalid

    extension = data.get("extension") or None
    new_model = entry.model
    if extension:
        extension_check = validate_extension(db, extension)
        if not extension_check.success:
            return extension_check.cast()
        new_model = entry.model.rstrip() + extension
        if not check_composed_code_available(db, new_model, excluding_entry_id=entry_id):
            logger.warning("Code %s already exists", new_model)
            return ServiceResult.conflict(f"Code {new_model} already exists")

    values = _metadata(data)
    values.update({"is_allocated": True, "updated_at": utc_now()})
    if extension:
        values.update({"extension": extension, "model": new_model})

    try:
        result = db.execute(
            update(CodeUsageEntry)
            .where(
                CodeUsageEntry.id == entry_id,
                CodeUsageEntry.is_allocated == False,
                CodeUsageEntry.is_deleted == False,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            logger.warning("Lost allocation race for entry %s", entry_id)
            return ServiceResult.conflict(
                f"Code {entry.model} is already allocated", ErrorCode.ALREADY_ALLOCATED)
        record_action(db, "AllocateCode", f"Allocated code {new_model}",
                      "CodeUsageEntry", entry_id, actor_id)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        if isinstance(exc, IntegrityError) and is_duplicate_code(exc):
            logger.warning("Code %s already exists (constraint)", new_model)
            return ServiceResult.conflict(f"Code {new_model} already exists")
        logger.exception("Failed to allocate entry %s", entry_id)
        return ServiceResult.system_error("Failed to allocate code")

    db.refresh(entry)
    logger.info("Allocated code %s (id=%s)", entry.model, entry_id)
    return ServiceResult.ok(entry, "Code allocated")


def create_manual_code(
    db: Session,
    model_classification_id: int,
    number_part: str,
    extension: Optional[str] = None,
    data: Optional[dict] = None,
    actor_id: Optional[int] = None,
) -> ServiceResult[ManualCodeResult]:
    """
    Create an allocated code directly, or edit it if it already exists.

    Re-submitting a live code overwrites its metadata and leaves its state
    flags alone; the outcome says which path was taken.
    """
    data = data or {}
    model_classification = db.query(ModelClassification).filter(
        ModelClassification.id == model_classification_id
    ).first()
    if not model_classification:
        return ServiceResult.not_found(f"Model classification {model_classification_id} not found")

    digits = get_number_digits(db)
    if not is_valid_number_part(number_part, digits):
        return ServiceResult.invalid(f"Number must be exactly {digits} digits")

    extension = extension or None
    extension_check = validate_extension(db, extension)
    if not extension_check.success:
        return extension_check.cast()

    invalid = _invalid_occupancy(data)
    if invalid:
        return invalid.cast()

    model = compose_model(model_classification.type, None, number_part, extension)
    existing = db.query(CodeUsageEntry).filter(
        CodeUsageEntry.model == model,
        CodeUsageEntry.is_deleted == False
    ).first()

    try:
        if existing:
            for field, value in _metadata(data).items():
                setattr(existing, field, value)
            existing.updated_at = utc_now()
            record_action(db, "UpdateManualCode", f"Code {model} exists, metadata updated",
                          "CodeUsageEntry", existing.id, actor_id)
            db.commit()
            db.refresh(existing)
            logger.info("Code %s already exists, updated instead of created", model)
            return ServiceResult.ok(
                ManualCodeResult(ManualCodeOutcome.UPDATED, existing),
                f"Code {model} already exists and was updated")

        entry = CodeUsageEntry(
            model=model,
            model_type=model_classification.type,
            classification_number=None,
            actual_number=number_part,
            extension=extension,
            model_classification_id=model_classification.id,
            code_classification_id=None,
            is_allocated=True,
            is_deleted=False,
            number_digits=digits,
            created_by=actor_id,
            **_metadata(data),
        )
        db.add(entry)
        db.flush()
        record_action(db, "CreateManualCode", f"Created code {model}",
                      "CodeUsageEntry", entry.id, actor_id)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        if isinstance(exc, IntegrityError) and is_duplicate_code(exc):
            logger.warning("Code %s was created concurrently", model)
            return ServiceResult.conflict(f"Code {model} already exists")
        logger.exception("Failed to create manual code %s", model)
        return ServiceResult.system_error("Failed to create manual code")

    db.refresh(entry)
    logger.info("Created manual code %s (id=%s)", model, entry.id)
    return ServiceResult.ok(ManualCodeResult(ManualCodeOutcome.CREATED, entry), "Code created")


def create_code(
    db: Session,
    model_type: str,
    actual_number: str,
    classification_number: Optional[int] = None,
    extension: Optional[str] = None,
    data: Optional[dict] = None,
    actor_id: Optional[int] = None,
) -> ServiceResult[CodeUsageEntry]:
    """Create an allocated code from explicit components; existing codes are a conflict."""
    data = data or {}
    model_classification = db.query(ModelClassification).filter(
        ModelClassification.type == model_type
    ).first()
    if not model_classification:
        return ServiceResult.not_found(f"Model type {model_type} not found")

    code_classification_id = None
    if classification_number is not None:
        if not model_classification.has_code_classification:
            return ServiceResult.invalid(
                f"Model type {model_type} does not use code classifications",
                ErrorCode.UNSUPPORTED_STRUCTURE)
        siblings = db.query(CodeClassification).filter(
            CodeClassification.model_classification_id == model_classification.id
        ).all()
        match = next((c for c in siblings if c.classification_number == classification_number), None)
        if match is None:
            return ServiceResult.not_found(
                f"No code classification numbered {classification_number} under {model_type}")
        code_classification_id = match.id

    digits = get_number_digits(db)
    if not is_valid_number_part(actual_number, digits):
        return ServiceResult.invalid(f"Number must be exactly {digits} digits")

    extension = extension or None
    extension_check = validate_extension(db, extension)
    if not extension_check.success:
        return extension_check.cast()

    invalid = _invalid_occupancy(data)
    if invalid:
        return invalid

    model = compose_model(model_type, classification_number, actual_number, extension)
    if not check_composed_code_available(db, model):
        return ServiceResult.conflict(f"Code {model} already exists")

    entry = CodeUsageEntry(
        model=model,
        model_type=model_type,
        classification_number=classification_number,
        actual_number=actual_number,
        extension=extension,
        model_classification_id=model_classification.id,
        code_classification_id=code_classification_id,
        is_allocated=True,
        is_deleted=False,
        number_digits=digits,
        created_by=actor_id,
        **_metadata(data),
    )
    try:
        db.add(entry)
        db.flush()
        record_action(db, "CreateCode", f"Created code {model}",
                      "CodeUsageEntry", entry.id, actor_id)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        if isinstance(exc, IntegrityError) and is_duplicate_code(exc):
            return ServiceResult.conflict(f"Code {model} already exists")
        logger.exception("Failed to create code %s", model)
        return ServiceResult.system_error("Failed to create code")

    db.refresh(entry)
    logger.info("Created code %s (id=%s)", model, entry.id)
    return ServiceResult.ok(entry, "Code created")


def update_entry(
    db: Session, entry_id: int, update_data: dict, actor_id: Optional[int] = None
) -> ServiceResult[CodeUsageEntry]:
    """Edit an allocated entry; a changed extension re-composes and re-checks the code."""
    entry = db.query(CodeUsageEntry).filter(
        CodeUsageEntry.id == entry_id,
        CodeUsageEntry.is_deleted == False
    ).first()
    if not entry:
        return ServiceResult.not_found(f"Code usage entry {entry_id} not found")

    if not entry.is_allocated:
        return ServiceResult.conflict(
            f"Code {entry.model} is not allocated; allocate it before editing",
            ErrorCode.NOT_ALLOCATED)

    invalid = _invalid_occupancy(update_data)
    if invalid:
        return invalid

    new_model = entry.model
    new_extension = entry.extension
    if "extension" in update_data and (update_data["extension"] or None) != entry.extension:
        new_extension = update_data["extension"] or None
        extension_check = validate_extension(db, new_extension)
        if not extension_check.success:
            return extension_check.cast()
        new_model = strip_extension(entry.model, entry.extension) + (new_extension or "")
        if not check_composed_code_available(db, new_model, excluding_entry_id=entry_id):
            return ServiceResult.conflict(f"Code {new_model} already exists")

    try:
        for field, value in _metadata(update_data).items():
            setattr(entry, field, value)
        entry.extension = new_extension
        entry.model = new_model
        entry.updated_at = utc_now()
        record_action(db, "UpdateCode", f"Updated code {new_model}",
                      "CodeUsageEntry", entry_id, actor_id)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        if isinstance(exc, IntegrityError) and is_duplicate_code(exc):
            return ServiceResult.conflict(f"Code {new_model} already exists")
        logger.exception("Failed to update entry %s", entry_id)
        return ServiceResult.system_error("Failed to update code")

    db.refresh(entry)
    return ServiceResult.ok(entry, "Code updated")


def update_occupancy_type(
    db: Session, entry_id: int, occupancy_type: str, actor_id: Optional[int] = None
) -> ServiceResult[CodeUsageEntry]:
    invalid = _invalid_occupancy({"occupancy_type": occupancy_type})
    if invalid:
        return invalid

    entry = db.query(CodeUsageEntry).filter(
        CodeUsageEntry.id == entry_id,
        CodeUsageEntry.is_deleted == False
    ).first()
    if not entry:
        return ServiceResult.not_found(f"Code usage entry {entry_id} not found")

    try:
        set_occupancy_type(entry, occupancy_type)
        record_action(db, "UpdateOccupancyType",
                      f"Set occupancy of {entry.model} to {entry.occupancy_type}",
                      "CodeUsageEntry", entry_id, actor_id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to update occupancy type of entry %s", entry_id)
        return ServiceResult.system_error("Failed to update occupancy type")

    db.refresh(entry)
    return ServiceResult.ok(entry, "Occupancy type updated")


def set_occupancy_type(entry: CodeUsageEntry, occupancy_type) -> None:
    if isinstance(occupancy_type, OccupancyType):
        occupancy_type = occupancy_type.value
    entry.occupancy_type = occupancy_type
    entry.updated_at = utc_now()


def mark_deleted(db: Session, entry_id: int, reason: Optional[str]) -> ServiceResult[None]:
    """Soft-delete transition without committing; shared with batch operations."""
    result = db.execute(
        update(CodeUsageEntry)
        .where(CodeUsageEntry.id == entry_id, CodeUsageEntry.is_deleted == False)
        .values(is_deleted=True, deleted_reason=reason, updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return ServiceResult.not_found(f"Code usage entry {entry_id} not found or already deleted")
    return ServiceResult.ok(None)


def mark_restored(db: Session, entry_id: int) -> ServiceResult[None]:
    """Restore transition without committing; shared with batch operations."""
    entry = db.query(CodeUsageEntry).filter(CodeUsageEntry.id == entry_id).first()
    if not entry:
        return ServiceResult.not_found(f"Code usage entry {entry_id} not found")
    if not entry.is_deleted:
        return ServiceResult.conflict(
            f"Code {entry.model} is not deleted", ErrorCode.NOT_DELETED)
    if not check_composed_code_available(db, entry.model, excluding_entry_id=entry_id):
        return ServiceResult.conflict(
            f"Code {entry.model} is held by another entry and cannot be restored")

    result = db.execute(
        update(CodeUsageEntry)
        .where(CodeUsageEntry.id == entry_id, CodeUsageEntry.is_deleted == True)
        .values(is_deleted=False, deleted_reason=None, updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return ServiceResult.conflict(
            f"Code {entry.model} is not deleted", ErrorCode.NOT_DELETED)
    return ServiceResult.ok(None)


def soft_delete(
    db: Session, entry_id: int, reason: Optional[str], actor_id: Optional[int] = None
) -> ServiceResult[None]:
    """Mark an entry deleted; its allocation flag is kept."""
    try:
        result = mark_deleted(db, entry_id, reason)
        if not result.success:
            db.rollback()
            logger.warning("Soft delete rejected for entry %s: %s", entry_id, result.message)
            return result
        record_action(db, "SoftDeleteCode", f"Deleted code entry {entry_id}: {reason or ''}",
                      "CodeUsageEntry", entry_id, actor_id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to soft delete entry %s", entry_id)
        return ServiceResult.system_error("Failed to delete code")

    logger.info("Soft deleted entry %s", entry_id)
    return ServiceResult.ok(None, "Code deleted")


def restore(db: Session, entry_id: int, actor_id: Optional[int] = None) -> ServiceResult[None]:
    """Undo a soft delete."""
    try:
        result = mark_restored(db, entry_id)
        if not result.success:
            db.rollback()
            logger.warning("Restore rejected for entry %s: %s", entry_id, result.message)
            return result
        record_action(db, "RestoreCode", f"Restored code entry {entry_id}",
                      "CodeUsageEntry", entry_id, actor_id)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        if isinstance(exc, IntegrityError) and is_duplicate_code(exc):
            return ServiceResult.conflict(
                f"Code entry {entry_id} is held by another entry and cannot be restored")
        logger.exception("Failed to restore entry %s", entry_id)
        return ServiceResult.system_error("Failed to restore code")

    logger.info("Restored entry %s", entry_id)
    return ServiceResult.ok(None, "Code restored")
