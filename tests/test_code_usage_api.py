"""Code usage API tests."""


class TestAllocateEndpoint:
    def test_allocate_then_conflict(self, client, auth_headers, slu_150):
        response = client.post(
            f"/code-usage/{slu_150.id}/allocate",
            headers=auth_headers,
            json={"extension": "B", "occupancy_type": "PLANNING", "creation_date": "2024-05-01"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["model"] == "SLU-150B"
        assert data["is_allocated"] is True
        assert data["occupancy_type"] == "PLANNING"
        assert data["creation_date"] == "2024-05-01"

        response = client.post(f"/code-usage/{slu_150.id}/allocate", headers=auth_headers, json={})
        assert response.status_code == 409

    def test_invalid_extension(self, client, auth_headers, slu_150):
        response = client.post(
            f"/code-usage/{slu_150.id}/allocate", headers=auth_headers, json={"extension": "O"})
        assert response.status_code == 400
        assert "O" in response.json()["detail"]

    def test_unknown_occupancy_type(self, client, auth_headers, slu_150):
        response = client.post(
            f"/code-usage/{slu_150.id}/allocate", headers=auth_headers, json={"occupancy_type": "IDLE"})
        assert response.status_code == 422

    def test_missing_entry(self, client, auth_headers, code_classification):
        response = client.post("/code-usage/99999/allocate", headers=auth_headers, json={})
        assert response.status_code == 404

    def test_unauthenticated(self, client, slu_150):
        response = client.post(f"/code-usage/{slu_150.id}/allocate", json={})
        assert response.status_code == 403

    def test_invalid_token(self, client, slu_150):
        response = client.post(
            f"/code-usage/{slu_150.id}/allocate",
            headers={"Authorization": "Bearer not-a-token"},
            json={}
        )
        assert response.status_code == 401


class TestManualEndpoints:
    def test_created_then_updated(self, client, auth_headers, two_tier_classification):
        payload = {
            "model_classification_id": two_tier_classification.id,
            "number_part": "07",
            "product_name": "First",
        }
        response = client.post("/code-usage/manual", headers=auth_headers, json=payload)
        assert response.status_code == 201
        created = response.json()
        assert created["outcome"] == "CREATED"
        assert created["entry"]["model"] == "ABC-07"

        payload["product_name"] = "Second"
        response = client.post("/code-usage/manual", headers=auth_headers, json=payload)
        assert response.status_code == 200
        updated = response.json()
        assert updated["outcome"] == "UPDATED"
        assert updated["entry"]["id"] == created["entry"]["id"]
        assert updated["entry"]["product_name"] == "Second"

    def test_bad_number_part(self, client, auth_headers, two_tier_classification):
        response = client.post(
            "/code-usage/manual",
            headers=auth_headers,
            json={"model_classification_id": two_tier_classification.id, "number_part": "7"}
        )
        assert response.status_code == 400

    def test_validate(self, client, auth_headers, two_tier_classification):
        response = client.post(
            "/code-usage/manual/validate",
            headers=auth_headers,
            json={"model_type": "ABC-", "number_part": "07", "extension": "A"}
        )
        assert response.status_code == 200
        assert response.json()["model"] == "ABC-07A"
        assert response.json()["available"] is True


class TestEntryEndpoints:
    def test_create_code(self, client, auth_headers, two_tier_classification):
        response = client.post(
            "/code-usage/",
            headers=auth_headers,
            json={"model_type": "ABC-", "actual_number": "12", "extension": "X"}
        )
        assert response.status_code == 201
        assert response.json()["model"] == "ABC-12X"

        response = client.post(
            "/code-usage/",
            headers=auth_headers,
            json={"model_type": "ABC-", "actual_number": "12", "extension": "X"}
        )
        assert response.status_code == 409

    def test_update_requires_allocation(self, client, auth_headers, slu_150):
        response = client.patch(
            f"/code-usage/{slu_150.id}", headers=auth_headers, json={"product_name": "X"})
        assert response.status_code == 409

    def test_update_extension(self, client, auth_headers, slu_150):
        client.post(f"/code-usage/{slu_150.id}/allocate", headers=auth_headers, json={"extension": "B"})
        response = client.patch(
            f"/code-usage/{slu_150.id}", headers=auth_headers, json={"extension": "C"})
        assert response.status_code == 200
        assert response.json()["model"] == "SLU-150C"

    def test_occupancy_type(self, client, auth_headers, slu_150):
        response = client.patch(
            f"/code-usage/{slu_150.id}/occupancy-type",
            headers=auth_headers,
            json={"occupancy_type": "WORK_ORDER"}
        )
        assert response.status_code == 200
        assert response.json()["occupancy_type"] == "WORK_ORDER"

    def test_soft_delete_and_restore(self, client, auth_headers, slu_150):
        response = client.request(
            "DELETE", f"/code-usage/{slu_150.id}", headers=auth_headers, json={"reason": "scrapped"})
        assert response.status_code == 204

        response = client.get(f"/code-usage/{slu_150.id}", headers=auth_headers)
        assert response.json()["is_deleted"] is True
        assert response.json()["deleted_reason"] == "scrapped"

        response = client.delete(f"/code-usage/{slu_150.id}", headers=auth_headers)
        assert response.status_code == 404

        response = client.post(f"/code-usage/{slu_150.id}/restore", headers=auth_headers)
        assert response.status_code == 204

        response = client.post(f"/code-usage/{slu_150.id}/restore", headers=auth_headers)
        assert response.status_code == 409


class TestQueryEndpoints:
    def test_list_paginated(self, client, auth_headers, code_classification):
        response = client.get("/code-usage/?limit=5&offset=95", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 100
        assert [e["model"] for e in data["items"]] == [
            "SLU-195", "SLU-196", "SLU-197", "SLU-198", "SLU-199"]

    def test_list_allocated(self, client, auth_headers, slu_150):
        client.post(f"/code-usage/{slu_150.id}/allocate", headers=auth_headers, json={})
        response = client.get("/code-usage/?is_allocated=true", headers=auth_headers)
        assert response.json()["total"] == 1

    def test_availability(self, client, auth_headers, code_classification):
        response = client.get(
            "/code-usage/availability",
            headers=auth_headers,
            params={"model_type": "SLU-", "classification_number": 1, "actual_number": "50"}
        )
        assert response.status_code == 200
        assert response.json() == {"model": "SLU-150", "available": False}

        response = client.get(
            "/code-usage/availability",
            headers=auth_headers,
            params={"model_type": "SLU-", "classification_number": 1, "actual_number": "50", "extension": "Z"}
        )
        assert response.json() == {"model": "SLU-150Z", "available": True}

    def test_stats(self, client, auth_headers, three_tier_classification, code_classification):
        response = client.get(
            "/code-usage/stats",
            headers=auth_headers,
            params={"model_classification_id": three_tier_classification.id}
        )
        assert response.json() == {"total": 100, "allocated": 0, "available": 100}

    def test_by_model(self, client, auth_headers, code_classification):
        response = client.get("/code-usage/by-model/SLU-/1", headers=auth_headers)
        assert response.status_code == 200
        assert len(response.json()) == 100

        response = client.get("/code-usage/by-model/SLU-/2", headers=auth_headers)
        assert response.json() == []

    def test_get_missing(self, client, auth_headers):
        response = client.get("/code-usage/99999", headers=auth_headers)
        assert response.status_code == 404


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}
