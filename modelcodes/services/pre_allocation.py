"""Pre-allocation of the full code range of a code classification.

Materialising every code up front turns "is this code free" into a row
lookup and gives listings a deterministic order. For digit width ``D`` and
classification number ``N`` under model type ``T`` the range is
``T+N+"0"*D`` .. ``T+N+"9"*D``.

The generator never commits; it runs inside the caller's transaction so a
classification and its codes appear together or not at all.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional
from sqlalchemy import insert
from sqlalchemy.orm import Session
from modelcodes.core.config import settings
from modelcodes.core.code_format import code_range, compose_model, pad_number
from modelcodes.core.results import ServiceResult, ErrorCode
from modelcodes.core.time import utc_now
from modelcodes.models.code_classification import CodeClassification
from modelcodes.models.code_usage import CodeUsageEntry
from modelcodes.models.pre_allocation_log import CodePreAllocationLog
from modelcodes.services.system_config import get_number_digits

logger = logging.getLogger(__name__)


@dataclass
class PreAllocationResult:
    generated_count: int
    skipped_count: int
    first_code: Optional[str]
    last_code: Optional[str]
    number_digits: int


def _live_codes_with_prefix(db: Session, prefix: str) -> set:
    rows = db.query(CodeUsageEntry.model).filter(
        CodeUsageEntry.model.startswith(prefix, autoescape=True),
        CodeUsageEntry.is_deleted == False
    ).all()
    return {row[0] for row in rows}


def _chunks(rows: List[dict], size: int):
    for start in range(0, len(rows), size):
        yield rows[start:start + size]


def generate_codes(
    db: Session,
    code_classification: CodeClassification,
    actor_id: Optional[int] = None,
) -> ServiceResult[PreAllocationResult]:
    """
    Insert every unallocated code of ``code_classification``.

    Candidates already held by a live entry are skipped and counted rather
    than aborting the batch, so re-running the generator after a partial
    failure fills only the gaps.

    Args:
        db: Database session; flushed but not committed
        code_classification: Classification whose range is generated
        actor_id: User recorded on the pre-allocation log

    Returns:
        ServiceResult carrying a PreAllocationResult, or a VALIDATION failure
        when the classification number cannot be read from the code
    """
    model_classification = code_classification.model_classification
    classification_number = code_classification.classification_number
    if classification_number is None:
        return ServiceResult.invalid(
            f"Cannot extract a classification number from code '{code_classification.code}'",
            ErrorCode.EXTRACTION_FAILURE,
        )

    number_digits = get_number_digits(db)
    model_type = model_classification.type
    prefix = compose_model(model_type, classification_number, "")
    taken = _live_codes_with_prefix(db, prefix)

    now = utc_now()
    rows = []
    skipped = 0
    for value in code_range(number_digits):
        actual_number = pad_number(value, number_digits)
        model = compose_model(model_type, classification_number, actual_number)
        if model in taken:
            skipped += 1
            continue
        rows.append({
            "model": model,
            "model_type": model_type,
            "classification_number": classification_number,
            "actual_number": actual_number,
            "extension": None,
            "model_classification_id": model_classification.id,
            "code_classification_id": code_classification.id,
            "is_allocated": False,
            "is_deleted": False,
            "number_digits": number_digits,
            "created_by": actor_id,
            "created_at": now,
            "updated_at": now,
        })

    for chunk in _chunks(rows, settings.PREALLOCATION_CHUNK_SIZE):
        db.execute(insert(CodeUsageEntry), chunk)

    if skipped:
        logger.warning(
            "Pre-allocation for %s skipped %d codes already in use",
            prefix, skipped)

    if not rows:
        return ServiceResult.ok(
            PreAllocationResult(0, skipped, None, None, number_digits),
            "No codes generated; the whole range is already in use",
        )

    first_code = rows[0]["model"]
    last_code = rows[-1]["model"]
    db.add(CodePreAllocationLog(
        model_classification_id=model_classification.id,
        code_classification_id=code_classification.id,
        model_type=model_type,
        classification_number=str(classification_number),
        allocation_count=len(rows),
        skipped_count=skipped,
        number_digits=number_digits,
        start_code=first_code,
        end_code=last_code,
        created_by=actor_id,
        created_at=now,
    ))
    db.flush()

    logger.info(
        "Pre-allocated %d codes %s..%s for code classification %s",
        len(rows), first_code, last_code, code_classification.id)
    return ServiceResult.ok(
        PreAllocationResult(len(rows), skipped, first_code, last_code, number_digits),
        f"Generated {len(rows)} codes",
    )
