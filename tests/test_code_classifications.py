"""Classification hierarchy tests: product types, model and code classifications."""
from modelcodes.core.results import ErrorCode, ErrorKind
from modelcodes.models.code_classification import CodeClassification
from modelcodes.models.code_usage import CodeUsageEntry
from modelcodes.services.classification import (
    create_code_classification,
    create_model_classification,
    create_product_type,
    delete_code_classification,
    delete_model_classification,
    delete_product_type,
    update_code_classification,
    update_model_classification,
)
from modelcodes.services.code_usage import allocate_code


class TestProductTypes:
    def test_create_duplicate(self, db_session, product_type):
        result = create_product_type(db_session, "PCB")
        assert result.error_kind == ErrorKind.CONFLICT

    def test_delete_with_children(self, db_session, three_tier_classification):
        result = delete_product_type(db_session, three_tier_classification.product_type_id)
        assert result.error_kind == ErrorKind.CONFLICT
        assert result.error_code == ErrorCode.HAS_CHILDREN

    def test_api_crud(self, client, auth_headers):
        response = client.post("/product-types/", headers=auth_headers, json={"code": "FPC"})
        assert response.status_code == 201
        product_type_id = response.json()["id"]

        response = client.patch(
            f"/product-types/{product_type_id}", headers=auth_headers, json={"code": "FPC2"})
        assert response.status_code == 200
        assert response.json()["code"] == "FPC2"

        response = client.delete(f"/product-types/{product_type_id}", headers=auth_headers)
        assert response.status_code == 204

        response = client.get(f"/product-types/{product_type_id}", headers=auth_headers)
        assert response.status_code == 404


class TestModelClassifications:
    def test_create(self, db_session, product_type):
        result = create_model_classification(
            db_session, product_type.id, "XYZ-", description=["a", "b"], has_code_classification=False)
        assert result.success
        assert result.data.description == ["a", "b"]
        assert result.data.has_code_classification is False

    def test_create_duplicate_type(self, db_session, three_tier_classification):
        result = create_model_classification(
            db_session, three_tier_classification.product_type_id, "SLU-")
        assert result.error_kind == ErrorKind.CONFLICT

    def test_create_unknown_product_type(self, db_session):
        result = create_model_classification(db_session, 999, "XYZ-")
        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_type_frozen_while_codes_exist(self, db_session, three_tier_classification, code_classification):
        result = update_model_classification(
            db_session, three_tier_classification.id, {"type": "SLX-"})
        assert result.error_kind == ErrorKind.CONFLICT

    def test_structure_frozen_while_codes_exist(self, db_session, three_tier_classification, code_classification):
        result = update_model_classification(
            db_session, three_tier_classification.id, {"has_code_classification": False})
        assert result.error_kind == ErrorKind.CONFLICT

    def test_description_editable_while_codes_exist(self, db_session, three_tier_classification, code_classification):
        result = update_model_classification(
            db_session, three_tier_classification.id, {"description": ["updated"]})
        assert result.success
        assert result.data.description == ["updated"]

    def test_delete_with_code_classifications(self, db_session, three_tier_classification, code_classification):
        result = delete_model_classification(db_session, three_tier_classification.id)
        assert result.error_code == ErrorCode.HAS_CHILDREN

    def test_api_create_and_list(self, client, auth_headers, product_type):
        response = client.post(
            "/model-classifications/",
            headers=auth_headers,
            json={"type": "NEW-", "product_type_id": product_type.id, "description": ["x"]}
        )
        assert response.status_code == 201
        assert response.json()["has_code_classification"] is True

        response = client.get(
            f"/model-classifications/?product_type_id={product_type.id}", headers=auth_headers)
        assert response.status_code == 200
        assert [m["type"] for m in response.json()] == ["NEW-"]


class TestCreateCodeClassification:
    def test_created_with_classification_number(self, db_session, code_classification):
        assert code_classification.classification_number == 1
        assert code_classification.name == "Inner layer"

    def test_duplicate_code(self, db_session, three_tier_classification, code_classification):
        result = create_code_classification(db_session, three_tier_classification.id, "1-内层", "Again")
        assert result.error_kind == ErrorKind.CONFLICT
        assert db_session.query(CodeUsageEntry).count() == 100

    def test_sibling_number_taken(self, db_session, three_tier_classification, code_classification):
        result = create_code_classification(db_session, three_tier_classification.id, "1-other", "Other")
        assert result.error_kind == ErrorKind.CONFLICT
        assert db_session.query(CodeClassification).count() == 1

    def test_unextractable_number(self, db_session, three_tier_classification):
        result = create_code_classification(db_session, three_tier_classification.id, "A-外层", "Outer")
        assert result.error_kind == ErrorKind.VALIDATION
        assert result.error_code == ErrorCode.EXTRACTION_FAILURE
        assert db_session.query(CodeClassification).count() == 0
        assert db_session.query(CodeUsageEntry).count() == 0

    def test_unknown_parent(self, db_session):
        result = create_code_classification(db_session, 999, "1-x", "X")
        assert result.error_kind == ErrorKind.NOT_FOUND

    def test_two_tier_accepts_non_numeric_code(self, db_session, two_tier_classification):
        result = create_code_classification(db_session, two_tier_classification.id, "misc", "Misc")
        assert result.success
        assert result.data.classification_number is None

    def test_api_create(self, client, auth_headers, three_tier_classification):
        response = client.post(
            "/code-classifications/",
            headers=auth_headers,
            json={"model_classification_id": three_tier_classification.id, "code": "3-中层", "name": "Middle"}
        )
        assert response.status_code == 201
        data = response.json()
        assert data["classification_number"] == 3

        response = client.get(
            "/code-usage/stats",
            headers=auth_headers,
            params={"code_classification_id": data["id"]}
        )
        assert response.json() == {"total": 100, "allocated": 0, "available": 100}

    def test_api_extraction_failure(self, client, auth_headers, three_tier_classification):
        response = client.post(
            "/code-classifications/",
            headers=auth_headers,
            json={"model_classification_id": three_tier_classification.id, "code": "abc", "name": "Bad"}
        )
        assert response.status_code == 400


class TestUpdateCodeClassification:
    def test_rename_label(self, db_session, code_classification):
        result = update_code_classification(db_session, code_classification.id, name="Inner 2")
        assert result.success
        assert result.data.name == "Inner 2"

    def test_same_number_new_label(self, db_session, code_classification):
        result = update_code_classification(db_session, code_classification.id, code="1-inner")
        assert result.success
        assert result.data.code == "1-inner"

    def test_renumber_rejected_while_codes_exist(self, db_session, code_classification):
        result = update_code_classification(db_session, code_classification.id, code="2-内层")
        assert result.error_kind == ErrorKind.CONFLICT

    def test_not_found(self, db_session):
        result = update_code_classification(db_session, 999, name="x")
        assert result.error_kind == ErrorKind.NOT_FOUND


class TestDeleteCodeClassification:
    def test_delete_removes_unallocated_codes(self, db_session, code_classification):
        result = delete_code_classification(db_session, code_classification.id)
        assert result.success
        assert result.data == 100
        assert db_session.query(CodeUsageEntry).count() == 0
        assert db_session.query(CodeClassification).count() == 0

    def test_delete_blocked_by_allocated_code(self, db_session, code_classification, slu_150, entry_by_model):
        assert allocate_code(db_session, slu_150.id, {}).success

        result = delete_code_classification(db_session, code_classification.id)
        assert result.error_kind == ErrorKind.CONFLICT
        assert result.error_code == ErrorCode.HAS_ALLOCATED_ENTRIES
        assert db_session.query(CodeUsageEntry).count() == 100
        assert entry_by_model("SLU-150").is_allocated

    def test_delete_blocked_by_soft_deleted_allocated_code(self, db_session, code_classification, slu_150, entry_by_model):
        """Soft-deleted allocations are history and still block deletion."""
        entry = entry_by_model("SLU-150")
        entry.is_allocated = True
        entry.is_deleted = True
        db_session.commit()

        result = delete_code_classification(db_session, code_classification.id)
        assert result.error_code == ErrorCode.HAS_ALLOCATED_ENTRIES

    def test_api_delete(self, client, auth_headers, code_classification):
        response = client.delete(f"/code-classifications/{code_classification.id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["removed_entries"] == 100

    def test_api_delete_conflict(self, client, auth_headers, code_classification, slu_150):
        client.post(f"/code-usage/{slu_150.id}/allocate", headers=auth_headers, json={})
        response = client.delete(f"/code-classifications/{code_classification.id}", headers=auth_headers)
        assert response.status_code == 409
