"""Classification hierarchy: product types, model classifications, code classifications.

Creating a code classification under a 3-tier model classification also
materialises its full code range in the same transaction.
"""
import logging
from typing import List, Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload
from modelcodes.core.audit import record_action
from modelcodes.core.database import violates_unique
from modelcodes.core.code_format import extract_classification_number
from modelcodes.core.results import ServiceResult, ErrorCode
from modelcodes.core.time import utc_now
from modelcodes.models.product_type import ProductType
from modelcodes.models.model_classification import ModelClassification
from modelcodes.models.code_classification import CodeClassification
from modelcodes.models.code_usage import CodeUsageEntry
from modelcodes.services.pre_allocation import PreAllocationResult, generate_codes
from modelcodes.services.code_usage import is_duplicate_code

logger = logging.getLogger(__name__)


def _is_duplicate_classification(exc: IntegrityError) -> bool:
    """A clash on the parent's code or on a generated live code."""
    return is_duplicate_code(exc) or violates_unique(
        exc, "uq_code_classifications_parent_code",
        "code_classifications.model_classification_id, code_classifications.code")


# Product types

def list_product_types(db: Session) -> List[ProductType]:
    return db.query(ProductType).order_by(ProductType.code).all()


def get_product_type(db: Session, product_type_id: int) -> ServiceResult[ProductType]:
    product_type = db.query(ProductType).filter(ProductType.id == product_type_id).first()
    if not product_type:
        return ServiceResult.not_found(f"Product type {product_type_id} not found")
    return ServiceResult.ok(product_type)


def create_product_type(db: Session, code: str, actor_id: Optional[int] = None) -> ServiceResult[ProductType]:
    existing = db.query(ProductType).filter(ProductType.code == code).first()
    if existing:
        return ServiceResult.conflict(f"Product type code {code} already exists")

    product_type = ProductType(code=code)
    try:
        db.add(product_type)
        db.flush()
        record_action(db, "CreateProductType", f"Created product type {code}",
                      "ProductType", product_type.id, actor_id)
        db.commit()
    except IntegrityError:
        db.rollback()
        return ServiceResult.conflict(f"Product type code {code} already exists")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to create product type %s", code)
        return ServiceResult.system_error("Failed to create product type")

    db.refresh(product_type)
    logger.info("Created product type %s (id=%s)", code, product_type.id)
    return ServiceResult.ok(product_type, "Product type created")


def update_product_type(
    db: Session, product_type_id: int, code: str, actor_id: Optional[int] = None
) -> ServiceResult[ProductType]:
    product_type = db.query(ProductType).filter(ProductType.id == product_type_id).first()
    if not product_type:
        return ServiceResult.not_found(f"Product type {product_type_id} not found")

    if code != product_type.code:
        existing = db.query(ProductType).filter(
            ProductType.code == code, ProductType.id != product_type_id
        ).first()
        if existing:
            return ServiceResult.conflict(f"Product type code {code} already exists")

    try:
        product_type.code = code
        record_action(db, "UpdateProductType", f"Renamed product type to {code}",
                      "ProductType", product_type.id, actor_id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to update product type %s", product_type_id)
        return ServiceResult.system_error("Failed to update product type")

    db.refresh(product_type)
    return ServiceResult.ok(product_type, "Product type updated")


def delete_product_type(db: Session, product_type_id: int, actor_id: Optional[int] = None) -> ServiceResult[None]:
    product_type = db.query(ProductType).filter(ProductType.id == product_type_id).first()
    if not product_type:
        return ServiceResult.not_found(f"Product type {product_type_id} not found")

    has_children = db.query(ModelClassification.id).filter(
        ModelClassification.product_type_id == product_type_id
    ).first()
    if has_children:
        return ServiceResult.conflict(
            "Product type still has model classifications", ErrorCode.HAS_CHILDREN)

    try:
        db.delete(product_type)
        record_action(db, "DeleteProductType", f"Deleted product type {product_type.code}",
                      "ProductType", product_type_id, actor_id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to delete product type %s", product_type_id)
        return ServiceResult.system_error("Failed to delete product type")

    return ServiceResult.ok(None, "Product type deleted")


# Model classifications

def list_model_classifications(db: Session, product_type_id: Optional[int] = None) -> List[ModelClassification]:
    query = db.query(ModelClassification)
    if product_type_id is not None:
        query = query.filter(ModelClassification.product_type_id == product_type_id)
    return query.order_by(ModelClassification.type).all()


def get_model_classification(db: Session, model_classification_id: int) -> ServiceResult[ModelClassification]:
    model_classification = db.query(ModelClassification).filter(
        ModelClassification.id == model_classification_id
    ).first()
    if not model_classification:
        return ServiceResult.not_found(f"Model classification {model_classification_id} not found")
    return ServiceResult.ok(model_classification)


def create_model_classification(
    db: Session,
    product_type_id: int,
    model_type: str,
    description: Optional[List[str]] = None,
    has_code_classification: bool = True,
    actor_id: Optional[int] = None,
) -> ServiceResult[ModelClassification]:
    product_type = db.query(ProductType).filter(ProductType.id == product_type_id).first()
    if not product_type:
        return ServiceResult.not_found(f"Product type {product_type_id} not found")

    existing = db.query(ModelClassification).filter(ModelClassification.type == model_type).first()
    if existing:
        return ServiceResult.conflict(f"Model type {model_type} already exists")

    model_classification = ModelClassification(
        product_type_id=product_type_id,
        type=model_type,
        description=description or [],
        has_code_classification=has_code_classification,
    )
    try:
        db.add(model_classification)
        db.flush()
        record_action(db, "CreateModelClassification", f"Created model type {model_type}",
                      "ModelClassification", model_classification.id, actor_id)
        db.commit()
    except IntegrityError:
        db.rollback()
        return ServiceResult.conflict(f"Model type {model_type} already exists")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to create model classification %s", model_type)
        return ServiceResult.system_error("Failed to create model classification")

    db.refresh(model_classification)
    logger.info("Created model classification %s (id=%s, 3-tier=%s)",
                model_type, model_classification.id, has_code_classification)
    return ServiceResult.ok(model_classification, "Model classification created")


def update_model_classification(
    db: Session,
    model_classification_id: int,
    update_data: dict,
    actor_id: Optional[int] = None,
) -> ServiceResult[ModelClassification]:
    """Update a model classification.

    The model type and the tier structure are part of every composed code,
    so neither can change once codes exist.
    """
    model_classification = db.query(ModelClassification).filter(
        ModelClassification.id == model_classification_id
    ).first()
    if not model_classification:
        return ServiceResult.not_found(f"Model classification {model_classification_id} not found")

    new_type = update_data.get("type")
    new_structure = update_data.get("has_code_classification")
    type_changes = new_type is not None and new_type != model_classification.type
    structure_changes = (new_structure is not None
                         and new_structure != model_classification.has_code_classification)

    if type_changes:
        existing = db.query(ModelClassification).filter(
            ModelClassification.type == new_type,
            ModelClassification.id != model_classification_id
        ).first()
        if existing:
            return ServiceResult.conflict(f"Model type {new_type} already exists")

    if type_changes or structure_changes:
        has_codes = db.query(CodeUsageEntry.id).filter(
            CodeUsageEntry.model_classification_id == model_classification_id
        ).first()
        if has_codes:
            return ServiceResult.conflict(
                "Model type and structure cannot change while codes exist",
                ErrorCode.HAS_CHILDREN)

    if "product_type_id" in update_data:
        product_type = db.query(ProductType).filter(
            ProductType.id == update_data["product_type_id"]).first()
        if not product_type:
            return ServiceResult.not_found(f"Product type {update_data['product_type_id']} not found")

    try:
        for field, value in update_data.items():
            setattr(model_classification, field, value)
        model_classification.updated_at = utc_now()
        record_action(db, "UpdateModelClassification",
                      f"Updated model classification {model_classification.type}",
                      "ModelClassification", model_classification.id, actor_id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to update model classification %s", model_classification_id)
        return ServiceResult.system_error("Failed to update model classification")

    db.refresh(model_classification)
    return ServiceResult.ok(model_classification, "Model classification updated")


def delete_model_classification(
    db: Session, model_classification_id: int, actor_id: Optional[int] = None
) -> ServiceResult[None]:
    model_classification = db.query(ModelClassification).filter(
        ModelClassification.id == model_classification_id
    ).first()
    if not model_classification:
        return ServiceResult.not_found(f"Model classification {model_classification_id} not found")

    has_code_classifications = db.query(CodeClassification.id).filter(
        CodeClassification.model_classification_id == model_classification_id
    ).first()
    if has_code_classifications:
        return ServiceResult.conflict(
            "Model classification still has code classifications", ErrorCode.HAS_CHILDREN)

    has_allocated = db.query(CodeUsageEntry.id).filter(
        CodeUsageEntry.model_classification_id == model_classification_id,
        CodeUsageEntry.is_allocated == True
    ).first()
    if has_allocated:
        return ServiceResult.conflict(
            "Model classification has allocated codes", ErrorCode.HAS_ALLOCATED_ENTRIES)

    try:
        removed = db.query(CodeUsageEntry).filter(
            CodeUsageEntry.model_classification_id == model_classification_id,
            CodeUsageEntry.is_allocated == False
        ).delete(synchronize_session=False)
        db.delete(model_classification)
        record_action(db, "DeleteModelClassification",
                      f"Deleted model classification {model_classification.type} "
                      f"and {removed} unallocated codes",
                      "ModelClassification", model_classification_id, actor_id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to delete model classification %s", model_classification_id)
        return ServiceResult.system_error("Failed to delete model classification")

    return ServiceResult.ok(None, "Model classification deleted")


# Code classifications

def list_code_classifications(
    db: Session,
    model_classification_id: Optional[int] = None,
    model_type: Optional[str] = None,
) -> List[CodeClassification]:
    query = db.query(CodeClassification).options(
        joinedload(CodeClassification.model_classification))
    if model_classification_id is not None:
        query = query.filter(CodeClassification.model_classification_id == model_classification_id)
    if model_type:
        query = query.join(ModelClassification).filter(ModelClassification.type == model_type)
    return query.order_by(CodeClassification.code).all()


def get_code_classification(db: Session, code_classification_id: int) -> ServiceResult[CodeClassification]:
    code_classification = db.query(CodeClassification).options(
        joinedload(CodeClassification.model_classification)
    ).filter(CodeClassification.id == code_classification_id).first()
    if not code_classification:
        return ServiceResult.not_found(f"Code classification {code_classification_id} not found")
    return ServiceResult.ok(code_classification)


def _number_taken_by_sibling(
    db: Session,
    model_classification_id: int,
    number: int,
    exclude_id: Optional[int] = None,
) -> bool:
    siblings = db.query(CodeClassification).filter(
        CodeClassification.model_classification_id == model_classification_id
    )
    if exclude_id is not None:
        siblings = siblings.filter(CodeClassification.id != exclude_id)
    return any(s.classification_number == number for s in siblings.all())


def create_code_classification(
    db: Session,
    model_classification_id: int,
    code: str,
    name: str,
    actor_id: Optional[int] = None,
) -> ServiceResult[CodeClassification]:
    """
    Create a code classification and, for 3-tier parents, pre-allocate its codes.

    Creation and pre-allocation commit together; if generation fails the
    classification is rolled back as well.
    """
    model_classification = db.query(ModelClassification).filter(
        ModelClassification.id == model_classification_id
    ).first()
    if not model_classification:
        logger.warning("Model classification %s not found", model_classification_id)
        return ServiceResult.not_found(f"Model classification {model_classification_id} not found")

    code_exists = db.query(CodeClassification.id).filter(
        CodeClassification.code == code,
        CodeClassification.model_classification_id == model_classification_id
    ).first()
    if code_exists:
        logger.warning("Code %s already exists under model classification %s",
                       code, model_classification_id)
        return ServiceResult.conflict(f"Code {code} already exists in this model classification")

    if model_classification.has_code_classification:
        number = extract_classification_number(code)
        if number is None:
            return ServiceResult.invalid(
                f"Cannot extract a classification number from code '{code}'",
                ErrorCode.EXTRACTION_FAILURE)
        if _number_taken_by_sibling(db, model_classification_id, number):
            return ServiceResult.conflict(
                f"Classification number {number} is already used in this model classification")

    code_classification = CodeClassification(
        model_classification_id=model_classification_id,
        code=code,
        name=name,
    )
    try:
        db.add(code_classification)
        db.flush()

        if model_classification.has_code_classification:
            generated = generate_codes(db, code_classification, actor_id)
            if not generated.success:
                db.rollback()
                return generated.cast()

        record_action(db, "CreateCodeClassification",
                      f"Created code classification {code} under {model_classification.type}",
                      "CodeClassification", code_classification.id, actor_id)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        if isinstance(exc, IntegrityError) and _is_duplicate_classification(exc):
            logger.warning("Integrity violation creating code classification %s", code, exc_info=True)
            return ServiceResult.conflict(f"Code {code} conflicts with existing data")
        logger.exception("Failed to create code classification %s", code)
        return ServiceResult.system_error("Failed to create code classification")

    db.refresh(code_classification)
    logger.info("Created code classification %s (id=%s)", code, code_classification.id)
    return ServiceResult.ok(code_classification, "Code classification created")


def update_code_classification(
    db: Session,
    code_classification_id: int,
    code: Optional[str] = None,
    name: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> ServiceResult[CodeClassification]:
    """Rename a code classification.

    The leading number is baked into every code of the group, so it may only
    change while the group owns no codes.
    """
    code_classification = db.query(CodeClassification).options(
        joinedload(CodeClassification.model_classification)
    ).filter(CodeClassification.id == code_classification_id).first()
    if not code_classification:
        logger.warning("Code classification %s not found for update", code_classification_id)
        return ServiceResult.not_found(f"Code classification {code_classification_id} not found")

    if code is not None and code != code_classification.code:
        parent_id = code_classification.model_classification_id
        code_exists = db.query(CodeClassification.id).filter(
            CodeClassification.code == code,
            CodeClassification.model_classification_id == parent_id,
            CodeClassification.id != code_classification_id
        ).first()
        if code_exists:
            return ServiceResult.conflict(
                f"Code {code} is already used by another code classification")

        if code_classification.model_classification.has_code_classification:
            new_number = extract_classification_number(code)
            if new_number is None:
                return ServiceResult.invalid(
                    f"Cannot extract a classification number from code '{code}'",
                    ErrorCode.EXTRACTION_FAILURE)
            if new_number != code_classification.classification_number:
                has_codes = db.query(CodeUsageEntry.id).filter(
                    CodeUsageEntry.code_classification_id == code_classification_id
                ).first()
                if has_codes:
                    return ServiceResult.conflict(
                        "Classification number cannot change while codes exist",
                        ErrorCode.HAS_CHILDREN)
                if _number_taken_by_sibling(db, parent_id, new_number, exclude_id=code_classification_id):
                    return ServiceResult.conflict(
                        f"Classification number {new_number} is already used in this model classification")

    try:
        if code is not None:
            code_classification.code = code
        if name is not None:
            code_classification.name = name
        record_action(db, "UpdateCodeClassification",
                      f"Updated code classification {code_classification.code}",
                      "CodeClassification", code_classification.id, actor_id)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        if isinstance(exc, IntegrityError) and _is_duplicate_classification(exc):
            return ServiceResult.conflict(
                f"Code {code} is already used by another code classification")
        logger.exception("Failed to update code classification %s", code_classification_id)
        return ServiceResult.system_error("Failed to update code classification")

    db.refresh(code_classification)
    return ServiceResult.ok(code_classification, "Code classification updated")


def delete_code_classification(
    db: Session, code_classification_id: int, actor_id: Optional[int] = None
) -> ServiceResult[int]:
    """Delete a code classification and its never-allocated codes.

    Returns the number of code rows removed.
    """
    code_classification = db.query(CodeClassification).filter(
        CodeClassification.id == code_classification_id
    ).first()
    if not code_classification:
        logger.warning("Code classification %s not found for delete", code_classification_id)
        return ServiceResult.not_found(f"Code classification {code_classification_id} not found")

    has_allocated = db.query(CodeUsageEntry.id).filter(
        CodeUsageEntry.code_classification_id == code_classification_id,
        CodeUsageEntry.is_allocated == True
    ).first()
    if has_allocated:
        return ServiceResult.conflict(
            "Code classification has allocated codes and cannot be deleted",
            ErrorCode.HAS_ALLOCATED_ENTRIES)

    try:
        removed = db.query(CodeUsageEntry).filter(
            CodeUsageEntry.code_classification_id == code_classification_id,
            CodeUsageEntry.is_allocated == False
        ).delete(synchronize_session=False)
        db.delete(code_classification)
        record_action(db, "DeleteCodeClassification",
                      f"Deleted code classification {code_classification.code} "
                      f"and {removed} pre-allocated codes",
                      "CodeClassification", code_classification_id, actor_id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to delete code classification %s", code_classification_id)
        return ServiceResult.system_error("Failed to delete code classification")

    logger.info("Deleted code classification %s with %d pre-allocated codes",
                code_classification_id, removed)
    return ServiceResult.ok(removed, "Code classification deleted")


def pre_allocate_codes(
    db: Session, code_classification_id: int, actor_id: Optional[int] = None
) -> ServiceResult[PreAllocationResult]:
    """Re-run pre-allocation for an existing code classification."""
    code_classification = db.query(CodeClassification).options(
        joinedload(CodeClassification.model_classification)
    ).filter(CodeClassification.id == code_classification_id).first()
    if not code_classification:
        return ServiceResult.not_found(f"Code classification {code_classification_id} not found")

    if not code_classification.model_classification.has_code_classification:
        return ServiceResult.invalid(
            "This model classification does not use code classifications",
            ErrorCode.UNSUPPORTED_STRUCTURE)

    try:
        result = generate_codes(db, code_classification, actor_id)
        if not result.success:
            db.rollback()
            return result
        record_action(db, "PreAllocateCodes",
                      f"Pre-allocated {result.data.generated_count} codes for "
                      f"{code_classification.code} ({result.data.skipped_count} skipped)",
                      "CodeClassification", code_classification_id, actor_id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Pre-allocation failed for code classification %s", code_classification_id)
        return ServiceResult.system_error("Pre-allocation failed")

    return result
