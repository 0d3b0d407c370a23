from collections.abc import Generator
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from vault.main import app
from vault.routes.deps import get_locker_service, get_requirement_validator
from vault.schemas.schemas import RequirementSet
from vault.services.requirement_validator import RequirementCatalog, RequirementValidator

PIN = "2468"
USER = {"user-id": "citizen-42"}

AADHAAR_FIELDS = {
    "full_name": "Ravi Kumar",
    "date_of_birth": "1990-06-15",
    "aadhaar_number": "234567890123",
    "address": {"line1": "12 MG Road", "state": "Karnataka", "pincode": "560038"},
    "raw_text": "GOVERNMENT OF INDIA ...",
    "confidence": 91,
}
PAN_FIELDS = {
    "full_name": "RAVI KUMAR",
    "date_of_birth": "1990-06-15",
    "pan_number": "ABCPK1234F",
    "raw_text": "INCOME TAX DEPARTMENT ...",
    "confidence": 88,
}

SERVICE = {
    "service_id": "income-certificate",
    "documents": [
        {"id": "aadhaar", "name": "Aadhaar Card", "category": "identity", "priority": 1},
        {"id": "ration-card", "name": "Ration Card", "category": "address", "priority": 2},
        {"id": "salary-slip", "name": "Salary Slip", "category": "income", "priority": 3},
    ],
    "validation_rules": {
        "total_required": 3,
        "minimum_threshold": 2,
        "category_requirements": [{"category": "identity", "minimum_required": 1}],
        "priority_requirements": [],
    },
}


@pytest.fixture()
def client(service, db) -> Generator[TestClient, None, None]:
    catalog = RequirementCatalog(db)
    catalog.upsert(RequirementSet.model_validate(SERVICE))
    app.dependency_overrides[get_locker_service] = lambda: service
    app.dependency_overrides[get_requirement_validator] = lambda: RequirementValidator(catalog)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def with_locker(client) -> TestClient:
    response = client.post("/api/locker/create", json={"pin": PIN, "confirm_pin": PIN}, headers=USER)
    assert response.status_code == 201
    return client


def upload(client, stub_ocr, fields, document_type, filename, content_type="image/jpeg", pin=PIN, **form):
    stub_ocr.will_return(fields)
    return client.post(
        "/api/locker/upload",
        data={"pin": pin, "document_type": document_type, **form},
        files={"document": (filename, b"\xff\xd8\xff fake jpeg", content_type)},
        headers=USER,
    )


@pytest.fixture()
def with_documents(with_locker, stub_ocr, clock):
    first = upload(with_locker, stub_ocr, AADHAAR_FIELDS, "aadhaar_card", "aadhaar.jpg", name="Aadhaar", tags="id,kyc")
    clock.advance(minutes=1)
    second = upload(with_locker, stub_ocr, PAN_FIELDS, "pan_card", "pan.jpg")
    clock.advance(minutes=1)
    assert first.status_code == 201
    assert second.status_code == 201
    return with_locker, first.json()["document_id"], second.json()["document_id"]


class TestLockerLifecycle:
    def test_create_and_exists(self, client) -> None:
        assert client.get("/api/locker/exists", headers=USER).json() == {
            "success": True, "exists": False, "is_locked": False,
        }

        response = client.post("/api/locker/create", json={"pin": PIN, "confirm_pin": PIN}, headers=USER)
        body = response.json()

        assert response.status_code == 201
        assert body["success"] is True
        assert body["locker_id"]
        assert client.get("/api/locker/exists", headers=USER).json()["exists"] is True

    def test_duplicate_locker(self, with_locker) -> None:
        response = with_locker.post("/api/locker/create", json={"pin": PIN, "confirm_pin": PIN}, headers=USER)

        assert response.status_code == 409
        assert response.json() == {"success": False, "message": "Document locker already exists"}

    def test_pin_mismatch(self, client) -> None:
        response = client.post("/api/locker/create", json={"pin": "1234", "confirm_pin": "4321"}, headers=USER)

        assert response.status_code == 400
        assert response.json()["message"] == "PIN and confirmation PIN do not match"

    def test_user_header_required(self, client) -> None:
        response = client.get("/api/locker/exists")

        assert response.status_code == 400
        assert response.json()["message"] == "user-id header is required"

    def test_unlock(self, with_locker) -> None:
        response = with_locker.post("/api/locker/unlock", json={"pin": PIN}, headers=USER)

        assert response.status_code == 200
        assert response.json()["ok"] is True
        assert response.json()["attempts_remaining"] == 3

    def test_lockout(self, with_locker, clock) -> None:
        statuses = [
            with_locker.post("/api/locker/unlock", json={"pin": "0000"}, headers=USER).status_code
            for _ in range(3)
        ]
        locked = with_locker.post("/api/locker/unlock", json={"pin": PIN}, headers=USER)

        assert statuses == [401, 401, 401]
        assert locked.status_code == 423
        assert locked.json()["retry_after_minutes"] == 15
        assert locked.json()["retry_after"] == (clock.now + timedelta(minutes=15)).isoformat()
        assert with_locker.get("/api/locker/exists", headers=USER).json()["is_locked"] is True

    def test_wrong_pin_reports_attempts(self, with_locker) -> None:
        response = with_locker.post("/api/locker/documents", json={"pin": "0000"}, headers=USER)

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Invalid PIN", "attempts_remaining": 2}

    def test_missing_locker(self, client) -> None:
        response = client.post("/api/locker/unlock", json={"pin": PIN}, headers=USER)
        assert response.status_code == 404

    def test_change_pin(self, with_locker) -> None:
        response = with_locker.put(
            "/api/locker/change-pin",
            json={"current_pin": PIN, "new_pin": "97531", "confirm_new_pin": "97531"},
            headers=USER,
        )

        assert response.status_code == 200
        assert with_locker.post("/api/locker/unlock", json={"pin": "97531"}, headers=USER).status_code == 200
        assert with_locker.post("/api/locker/unlock", json={"pin": PIN}, headers=USER).status_code == 401


class TestDocuments:
    def test_upload_response(self, with_locker, stub_ocr) -> None:
        response = upload(with_locker, stub_ocr, AADHAAR_FIELDS, "aadhaar_card", "aadhaar.jpg", name="Aadhaar")
        body = response.json()

        assert response.status_code == 201
        assert body["success"] is True
        assert body["name"] == "Aadhaar"
        assert body["document_type"] == "aadhaar_card"
        assert body["extracted_data"]["aadhaar_number"] == "234567890123"
        assert body["validation_results"] is None

    def test_upload_rejects_unsupported_files(self, with_locker, stub_ocr) -> None:
        response = upload(with_locker, stub_ocr, AADHAAR_FIELDS, "aadhaar_card", "notes.txt", content_type="text/plain")

        assert response.status_code == 400
        assert response.json()["message"] == "Only JPEG, JPG, PNG, WEBP, GIF, BMP, TIFF, and PDF files are allowed"

    def test_upload_wrong_pin(self, with_locker, stub_ocr) -> None:
        response = upload(with_locker, stub_ocr, AADHAAR_FIELDS, "aadhaar_card", "aadhaar.jpg", pin="0000")
        assert response.status_code == 401

    def test_list_hides_storage_secrets(self, with_documents) -> None:
        client, aadhaar_id, pan_id = with_documents

        response = client.post("/api/locker/documents", json={"pin": PIN}, headers=USER)
        documents = response.json()["data"]

        assert response.status_code == 200
        assert [d["id"] for d in documents] == [aadhaar_id, pan_id]
        assert documents[0]["tags"] == ["id", "kyc"]
        for document in documents:
            assert "file_path" not in document
            assert "encryption_key" not in document
            assert document["validation_results"]["overall_score"] == 100

    def test_document_detail(self, with_documents) -> None:
        client, aadhaar_id, _ = with_documents

        response = client.post(f"/api/locker/documents/{aadhaar_id}", json={"pin": PIN}, headers=USER)
        body = response.json()

        assert response.status_code == 200
        assert body["access_count"] == 1
        assert [entry["action"] for entry in body["audit_trail"]] == ["created", "viewed"]
        assert "file_path" not in body
        assert "encryption_key" not in body

    def test_download(self, with_documents) -> None:
        client, aadhaar_id, _ = with_documents

        response = client.post(f"/api/locker/documents/{aadhaar_id}/download", json={"pin": PIN}, headers=USER)

        assert response.status_code == 200
        assert response.content == b"\xff\xd8\xff fake jpeg"
        assert response.headers["content-type"] == "image/jpeg"

    def test_unknown_document(self, with_documents) -> None:
        client, _, _ = with_documents

        response = client.post("/api/locker/documents/missing", json={"pin": PIN}, headers=USER)

        assert response.status_code == 404
        assert response.json()["message"] == "Document not found"

    def test_update_and_correct(self, with_documents) -> None:
        client, _, pan_id = with_documents

        updated = client.put(
            f"/api/locker/documents/{pan_id}",
            json={"pin": PIN, "name": "PAN", "tags": "tax", "notes": "laminated"},
            headers=USER,
        )
        corrected = client.put(
            f"/api/locker/documents/{pan_id}/extracted-data",
            json={"pin": PIN, "extracted_data": {"date_of_birth": "1990-06-16"}},
            headers=USER,
        )

        assert updated.status_code == 200
        assert updated.json()["name"] == "PAN"
        assert updated.json()["tags"] == ["tax"]
        assert corrected.status_code == 200
        assert corrected.json()["extracted_data"]["is_verified"] is True
        assert corrected.json()["extracted_data"]["verified_by"] == "citizen-42"
        assert corrected.json()["validation_results"]["dob_consistency"]["score"] == 50

    def test_delete(self, with_documents) -> None:
        client, aadhaar_id, pan_id = with_documents

        response = client.request("DELETE", f"/api/locker/documents/{aadhaar_id}", json={"pin": PIN}, headers=USER)
        remaining = client.post("/api/locker/documents", json={"pin": PIN}, headers=USER).json()["data"]

        assert response.status_code == 200
        assert [d["id"] for d in remaining] == [pan_id]


class TestAggregates:
    def test_cross_validate(self, with_documents) -> None:
        client, _, _ = with_documents

        response = client.post("/api/locker/cross-validate", json={"pin": PIN}, headers=USER)
        body = response.json()

        assert response.status_code == 200
        assert body["overall_score"] == 100
        assert body["recommendations"] == ["Most data is consistent - good document quality"]
        assert len(body["documents"]) == 2

    def test_cross_validate_needs_two_documents(self, with_locker, stub_ocr) -> None:
        upload(with_locker, stub_ocr, AADHAAR_FIELDS, "aadhaar_card", "aadhaar.jpg")

        response = with_locker.post("/api/locker/cross-validate", json={"pin": PIN}, headers=USER)

        assert response.status_code == 400
        assert response.json()["message"] == "At least 2 documents are required for cross-validation"

    def test_stats(self, with_documents) -> None:
        client, _, _ = with_documents

        body = client.post("/api/locker/stats", json={"pin": PIN}, headers=USER).json()

        assert body["total_documents"] == 2
        assert body["document_types"] == {"aadhaar_card": 1, "pan_card": 1}
        assert body["validation_summary"]["fully_validated"] == 2

    def test_profile_data(self, with_documents) -> None:
        client, _, _ = with_documents

        body = client.post("/api/locker/profile-data", json={"pin": PIN}, headers=USER).json()

        assert body["success"] is True
        assert body["data"]["full_name"] == "Ravi Kumar"
        assert body["data"]["pan_number"] == "ABCPK1234F"
        assert body["data"]["address"]["pincode"] == "560038"

    def test_sync_field(self, with_documents) -> None:
        client, aadhaar_id, pan_id = with_documents

        response = client.put(
            "/api/locker/sync-field",
            json={"pin": PIN, "field_name": "full_name", "field_value": "Ravi Kumar", "source_document_id": aadhaar_id},
            headers=USER,
        )
        body = response.json()

        assert response.status_code == 200
        assert body["updated_count"] == 1
        assert body["updated_documents"][0]["id"] == pan_id
        assert body["message"] == "Synchronized full_name across 1 documents"


class TestRequirements:
    def test_get_requirements(self, client) -> None:
        response = client.get("/api/documents/requirements/income-certificate")

        assert response.status_code == 200
        assert [d["id"] for d in response.json()["documents"]] == ["aadhaar", "ration-card", "salary-slip"]

    def test_unknown_service(self, client) -> None:
        response = client.get("/api/documents/requirements/unknown")

        assert response.status_code == 404
        assert response.json()["message"] == "Document requirements not found for this service"

    def test_validate(self, client) -> None:
        response = client.post(
            "/api/documents/validate",
            json={"service_id": "income-certificate", "selected_documents": [{"document_id": "aadhaar"}, {"document_id": "ration-card"}]},
        )
        body = response.json()

        assert response.status_code == 200
        assert body["can_proceed"] is True
        assert body["completion_percentage"] == 67

    def test_malformed_selection(self, client) -> None:
        response = client.post(
            "/api/documents/validate",
            json={"service_id": "income-certificate", "selected_documents": [{"name": "Aadhaar"}]},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Selected document at position 0 is missing a valid document_id"

    def test_require_complete(self, client) -> None:
        response = client.post(
            "/api/documents/validate",
            json={"service_id": "income-certificate", "selected_documents": [{"document_id": "ration-card"}], "require_complete": True},
        )
        body = response.json()

        assert response.status_code == 422
        assert body["success"] is False
        assert body["verdict"]["can_proceed"] is False
        assert body["verdict"]["missing_categories"][0]["category"] == "identity"


class TestHealth:
    def test_health(self, client) -> None:
        body = client.get("/health").json()

        assert body["status"] in ("healthy", "degraded")
        assert body["version"] == "1.0.0"
