"""Code usage lifecycle tests: allocation, manual codes, edits, soft delete and restore."""
import pytest
from datetime import date
from sqlalchemy.exc import IntegrityError
from modelcodes.core.results import ErrorCode, ErrorKind
from modelcodes.models.code_usage import CodeUsageEntry, OccupancyType
from modelcodes.services import code_usage
from modelcodes.services.classification import pre_allocate_codes
from modelcodes.services.code_usage import ManualCodeOutcome


def _live_entry(db_session, model_classification, model, is_allocated=True):
    entry = CodeUsageEntry(
        model=model,
        model_type=model_classification.type,
        actual_number="00",
        model_classification_id=model_classification.id,
        is_allocated=is_allocated,
    )
    db_session.add(entry)
    db_session.commit()
    return entry


class TestAllocateCode:
    """Allocation of pre-allocated codes."""

    def test_allocate_with_extension(self, db_session, slu_150):
        result = code_usage.allocate_code(
            db_session, slu_150.id,
            {"extension": "B", "product_name": "Board", "occupancy_type": OccupancyType.PLANNING},
            actor_id=1,
        )
        assert result.success
        entry = result.data
        assert entry.model == "SLU-150B"
        assert entry.extension == "B"
        assert entry.is_allocated
        assert entry.product_name == "Board"
        assert entry.occupancy_type == "PLANNING"

    def test_allocate_without_extension_keeps_code(self, db_session, slu_150):
        result = code_usage.allocate_code(db_session, slu_150.id, {"customer": "ACME"})
        assert result.success
        assert result.data.model == "SLU-150"
        assert result.data.extension is None
        assert result.data.customer == "ACME"

    def test_second_allocation_conflicts(self, db_session, slu_150, entry_by_model):
        assert code_usage.allocate_code(db_session, slu_150.id, {"extension": "B"}).success

        result = code_usage.allocate_code(db_session, slu_150.id, {"extension": "C", "product_name": "X"})
        assert result.error_kind == ErrorKind.CONFLICT
        assert result.error_code == ErrorCode.ALREADY_ALLOCATED
        entry = entry_by_model("SLU-150B")
        assert entry is not None
        assert entry.product_name is None

    def test_excluded_extension_rejected(self, db_session, slu_150, entry_by_model):
        result = code_usage.allocate_code(db_session, slu_150.id, {"extension": "I"})
        assert result.error_kind == ErrorKind.VALIDATION
        assert result.error_code == ErrorCode.INVALID_EXTENSION
        assert not entry_by_model("SLU-150").is_allocated

    def test_too_long_extension_rejected(self, db_session, slu_150):
        result = code_usage.allocate_code(db_session, slu_150.id, {"extension": "ABCD"})
        assert result.error_code == ErrorCode.INVALID_EXTENSION

    def test_extension_collision(self, db_session, three_tier_classification, code_classification, entry_by_model):
        _live_entry(db_session, three_tier_classification, "SLU-151B")
        slu_151 = entry_by_model("SLU-151")

        result = code_usage.allocate_code(db_session, slu_151.id, {"extension": "B"})
        assert result.error_kind == ErrorKind.CONFLICT
        assert result.error_code == ErrorCode.DUPLICATE_CODE
        assert not entry_by_model("SLU-151").is_allocated

    def test_deleted_entry_not_found(self, db_session, slu_150):
        assert code_usage.soft_delete(db_session, slu_150.id, "obsolete").success
        result = code_usage.allocate_code(db_session, slu_150.id, {})
        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_missing_entry_not_found(self, db_session):
        result = code_usage.allocate_code(db_session, 12345, {})
        assert result.error_kind == ErrorKind.NOT_FOUND


class TestLiveCodeUniqueness:
    """The partial unique index backs the application checks."""

    def test_second_live_row_rejected(self, db_session, two_tier_classification):
        _live_entry(db_session, two_tier_classification, "ABC-01")
        db_session.add(CodeUsageEntry(
            model="ABC-01", model_type="ABC-", actual_number="01",
            model_classification_id=two_tier_classification.id,
        ))
        with pytest.raises(IntegrityError) as excinfo:
            db_session.commit()
        db_session.rollback()
        assert code_usage.is_duplicate_code(excinfo.value)

    def test_other_constraint_is_not_a_duplicate(self, db_session, two_tier_classification):
        db_session.add(CodeUsageEntry(
            model="ABC-02", model_type="ABC-", actual_number=None,
            model_classification_id=two_tier_classification.id,
        ))
        with pytest.raises(IntegrityError) as excinfo:
            db_session.commit()
        db_session.rollback()
        assert not code_usage.is_duplicate_code(excinfo.value)

    def test_store_rejection_is_a_system_error(self, db_session, slu_150, reject_writes):
        reject_writes("code_usage_entries", "UPDATE")

        result = code_usage.allocate_code(db_session, slu_150.id, {"extension": "B"})
        assert result.error_kind == ErrorKind.SYSTEM
        assert result.error_code == ErrorCode.STORAGE

        db_session.expire_all()
        assert db_session.get(CodeUsageEntry, slu_150.id).is_allocated is False

    def test_deleted_rows_do_not_count(self, db_session, two_tier_classification):
        first = _live_entry(db_session, two_tier_classification, "ABC-01")
        first.is_deleted = True
        db_session.commit()
        _live_entry(db_session, two_tier_classification, "ABC-01")
        assert db_session.query(CodeUsageEntry).filter(CodeUsageEntry.model == "ABC-01").count() == 2


class TestManualCode:
    def test_create_then_update(self, db_session, two_tier_classification):
        created = code_usage.create_manual_code(
            db_session, two_tier_classification.id, "07", data={"product_name": "First"})
        assert created.success
        assert created.data.outcome == ManualCodeOutcome.CREATED
        entry = created.data.entry
        assert entry.model == "ABC-07"
        assert entry.is_allocated
        assert entry.classification_number is None
        assert entry.code_classification_id is None

        updated = code_usage.create_manual_code(
            db_session, two_tier_classification.id, "07", data={"product_name": "Second"})
        assert updated.success
        assert updated.data.outcome == ManualCodeOutcome.UPDATED
        assert updated.data.entry.id == entry.id
        assert updated.data.entry.product_name == "Second"
        assert db_session.query(CodeUsageEntry).count() == 1

    def test_with_extension(self, db_session, two_tier_classification):
        result = code_usage.create_manual_code(db_session, two_tier_classification.id, "07", "A")
        assert result.data.entry.model == "ABC-07A"

    def test_invalid_number_part(self, db_session, two_tier_classification):
        result = code_usage.create_manual_code(db_session, two_tier_classification.id, "7")
        assert result.error_kind == ErrorKind.VALIDATION
        assert result.error_code == ErrorCode.INVALID_FORMAT

    def test_invalid_extension(self, db_session, two_tier_classification):
        result = code_usage.create_manual_code(db_session, two_tier_classification.id, "07", "O")
        assert result.error_code == ErrorCode.INVALID_EXTENSION

    def test_unknown_model_classification(self, db_session):
        result = code_usage.create_manual_code(db_session, 999, "07")
        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_validate_manual_code(self, db_session, two_tier_classification):
        result = code_usage.validate_manual_code(db_session, "ABC-", "07", "A")
        assert result.success
        assert result.data == "ABC-07A"

        code_usage.create_manual_code(db_session, two_tier_classification.id, "07", "A")
        result = code_usage.validate_manual_code(db_session, "ABC-", "07", "A")
        assert result.error_kind == ErrorKind.CONFLICT

    def test_validate_unknown_model_type(self, db_session):
        result = code_usage.validate_manual_code(db_session, "NOPE-", "07")
        assert result.error_kind == ErrorKind.NOT_FOUND


class TestCreateCode:
    def test_existing_code_conflicts(self, db_session, code_classification):
        result = code_usage.create_code(db_session, "SLU-", "50", classification_number=1)
        assert result.error_kind == ErrorKind.CONFLICT

    def test_create_with_extension(self, db_session, code_classification):
        result = code_usage.create_code(
            db_session, "SLU-", "50", classification_number=1, extension="C",
            data={"occupancy_type": "WORK_ORDER"})
        assert result.success
        assert result.data.model == "SLU-150C"
        assert result.data.code_classification_id == code_classification.id
        assert result.data.occupancy_type == "WORK_ORDER"

    def test_unknown_classification_number(self, db_session, code_classification):
        result = code_usage.create_code(db_session, "SLU-", "50", classification_number=5)
        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_number_on_two_tier_model(self, db_session, two_tier_classification):
        result = code_usage.create_code(db_session, "ABC-", "50", classification_number=1)
        assert result.error_code == ErrorCode.UNSUPPORTED_STRUCTURE

    def test_invalid_occupancy_type(self, db_session, two_tier_classification):
        result = code_usage.create_code(db_session, "ABC-", "50", data={"occupancy_type": "IDLE"})
        assert result.error_code == ErrorCode.INVALID_OCCUPANCY_TYPE


class TestUpdateEntry:
    def test_requires_allocation(self, db_session, slu_150):
        result = code_usage.update_entry(db_session, slu_150.id, {"product_name": "X"})
        assert result.error_kind == ErrorKind.CONFLICT
        assert result.error_code == ErrorCode.NOT_ALLOCATED

    def test_change_extension(self, db_session, slu_150):
        code_usage.allocate_code(db_session, slu_150.id, {"extension": "B"})

        result = code_usage.update_entry(db_session, slu_150.id, {"extension": "C"})
        assert result.success
        assert result.data.model == "SLU-150C"

        result = code_usage.update_entry(db_session, slu_150.id, {"extension": None})
        assert result.success
        assert result.data.model == "SLU-150"
        assert result.data.extension is None

    def test_metadata_only(self, db_session, slu_150):
        code_usage.allocate_code(db_session, slu_150.id, {"extension": "B"})
        result = code_usage.update_entry(
            db_session, slu_150.id, {"factory": "F1", "creation_date": date(2024, 5, 1)})
        assert result.success
        assert result.data.model == "SLU-150B"
        assert result.data.factory == "F1"
        assert result.data.creation_date == date(2024, 5, 1)

    def test_extension_collision(self, db_session, three_tier_classification, code_classification, entry_by_model):
        _live_entry(db_session, three_tier_classification, "SLU-151C")
        slu_151 = entry_by_model("SLU-151")
        code_usage.allocate_code(db_session, slu_151.id, {})

        result = code_usage.update_entry(db_session, slu_151.id, {"extension": "C"})
        assert result.error_code == ErrorCode.DUPLICATE_CODE
        assert entry_by_model("SLU-151") is not None

    def test_invalid_extension(self, db_session, slu_150):
        code_usage.allocate_code(db_session, slu_150.id, {})
        result = code_usage.update_entry(db_session, slu_150.id, {"extension": "OI"})
        assert result.error_code == ErrorCode.INVALID_EXTENSION


class TestOccupancyType:
    def test_update(self, db_session, slu_150):
        result = code_usage.update_occupancy_type(db_session, slu_150.id, "PAUSE")
        assert result.success
        assert result.data.occupancy_type == "PAUSE"

    def test_invalid_value(self, db_session, slu_150):
        result = code_usage.update_occupancy_type(db_session, slu_150.id, "IDLE")
        assert result.error_code == ErrorCode.INVALID_OCCUPANCY_TYPE


class TestSoftDeleteAndRestore:
    def test_round_trip_keeps_allocation(self, db_session, slu_150):
        code_usage.allocate_code(db_session, slu_150.id, {"extension": "B"})

        assert code_usage.soft_delete(db_session, slu_150.id, "customer cancelled").success
        db_session.refresh(slu_150)
        assert slu_150.is_deleted
        assert slu_150.is_allocated
        assert slu_150.deleted_reason == "customer cancelled"

        assert code_usage.restore(db_session, slu_150.id).success
        db_session.refresh(slu_150)
        assert not slu_150.is_deleted
        assert slu_150.is_allocated
        assert slu_150.deleted_reason is None
        assert slu_150.model == "SLU-150B"

    def test_delete_twice(self, db_session, slu_150):
        assert code_usage.soft_delete(db_session, slu_150.id, None).success
        result = code_usage.soft_delete(db_session, slu_150.id, None)
        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_restore_not_deleted(self, db_session, slu_150):
        result = code_usage.restore(db_session, slu_150.id)
        assert result.error_kind == ErrorKind.CONFLICT
        assert result.error_code == ErrorCode.NOT_DELETED

    def test_restore_missing(self, db_session):
        assert code_usage.restore(db_session, 999).error_kind == ErrorKind.NOT_FOUND

    def test_restore_blocked_by_regenerated_code(self, db_session, code_classification, slu_150, entry_by_model):
        code_usage.soft_delete(db_session, slu_150.id, "retired")
        generated = pre_allocate_codes(db_session, code_classification.id)
        assert generated.data.generated_count == 1
        assert entry_by_model("SLU-150").id != slu_150.id

        result = code_usage.restore(db_session, slu_150.id)
        assert result.error_kind == ErrorKind.CONFLICT
        assert result.error_code == ErrorCode.DUPLICATE_CODE
        db_session.refresh(slu_150)
        assert slu_150.is_deleted


class TestQueries:
    def test_stats(self, db_session, code_classification, slu_150, entry_by_model):
        code_usage.allocate_code(db_session, slu_150.id, {})
        code_usage.soft_delete(db_session, entry_by_model("SLU-199").id, None)

        stats = code_usage.get_available_code_stats(db_session, code_classification_id=code_classification.id)
        assert stats == {"total": 99, "allocated": 1, "available": 98}

    def test_check_code_availability(self, db_session, code_classification):
        assert not code_usage.check_code_availability(db_session, "SLU-", 1, "50")
        assert code_usage.check_code_availability(db_session, "SLU-", 1, "50", "Z")
        assert code_usage.check_code_availability(db_session, "SLU-", 2, "50")

    def test_list_entries_filters(self, db_session, code_classification, slu_150):
        code_usage.allocate_code(db_session, slu_150.id, {"product_name": "Rigid board"})

        total, items = code_usage.list_entries(db_session, is_allocated=True)
        assert total == 1
        assert items[0].model == "SLU-150"

        total, items = code_usage.list_entries(db_session, keyword="rigid")
        assert total == 1

        total, items = code_usage.list_entries(db_session, limit=10, offset=10)
        assert total == 100
        assert [e.model for e in items][0] == "SLU-110"

    def test_list_by_model_type(self, db_session, code_classification, two_tier_classification):
        code_usage.create_manual_code(db_session, two_tier_classification.id, "07")
        assert len(code_usage.list_by_model_type(db_session, "SLU-")) == 100
        assert len(code_usage.list_by_model_type_and_number(db_session, "SLU-", 1)) == 100
        assert [e.model for e in code_usage.list_by_model_type(db_session, "ABC-")] == ["ABC-07"]
