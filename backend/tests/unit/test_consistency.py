from datetime import date, datetime
from types import SimpleNamespace

import pytest

from vault.schemas.schemas import DocumentValidity
from vault.services.consistency import (
    ConsistencyScores,
    aggregate_validity,
    cross_validate,
    evaluate_validity,
    validation_results_for,
)

NOW = datetime(2025, 1, 15, 10, 0, 0)


def aadhaar(**overrides):
    fields = {
        "full_name": "Ravi Kumar",
        "date_of_birth": "1990-06-15",
        "address": {"line1": "12 MG Road", "state": "Karnataka", "pincode": "560038"},
    }
    fields.update(overrides)
    return fields


def doc(name, fields, document_type="aadhaar_card", doc_id=None):
    return SimpleNamespace(id=doc_id or name, name=name, document_type=document_type, extracted_data=fields)


class TestEvaluateValidity:
    def test_no_expiry_is_valid(self) -> None:
        validity = evaluate_validity({"full_name": "Ravi"}, NOW)
        assert validity == DocumentValidity(is_valid=True, expiry_status="valid", issues=[])

    def test_expired(self) -> None:
        validity = evaluate_validity({"expiry_date": "2025-01-10"}, NOW)

        assert validity.is_valid is False
        assert validity.expiry_status == "expired"
        assert validity.issues == ["Document expired on 2025-01-10"]

    def test_expiring_soon_counts_whole_days(self) -> None:
        validity = evaluate_validity({"expiry_date": "2025-02-01"}, NOW)

        assert validity.is_valid is True
        assert validity.expiry_status == "expiring_soon"
        assert validity.issues == ["Document expires in 17 days"]

    def test_expiring_today_is_not_yet_expired(self) -> None:
        validity = evaluate_validity({"expiry_date": date(2025, 1, 15)}, NOW)

        assert validity.is_valid is True
        assert validity.expiry_status == "expiring_soon"
        assert validity.issues == ["Document expires in 0 days"]

    def test_far_expiry_is_valid(self) -> None:
        assert evaluate_validity({"expiry_date": "2026-06-30"}, NOW).expiry_status == "valid"

    def test_warning_window_is_configurable(self) -> None:
        assert evaluate_validity({"expiry_date": "2025-02-01"}, NOW, warning_days=10).expiry_status == "valid"

    def test_validity_field_is_an_expiry_alias(self) -> None:
        assert evaluate_validity({"validity": "2025-01-10"}, NOW).expiry_status == "expired"

    def test_unreadable_expiry(self) -> None:
        validity = evaluate_validity({"expiry_date": "sometime"}, NOW)

        assert validity.is_valid is True
        assert validity.expiry_status == "unknown"
        assert validity.issues == ["Unreadable expiry date: sometime"]


class TestConsistencyScores:
    def test_single_document_is_fully_consistent(self) -> None:
        scores = ConsistencyScores([aadhaar()])

        assert (scores.name.score, scores.dob.score, scores.address.score) == (100, 100, 100)
        assert scores.consistent_fields == 0
        assert scores.inconsistent_fields == 0
        assert scores.overall(True) == 100

    def test_name_variation(self) -> None:
        scores = ConsistencyScores([aadhaar(), aadhaar(full_name="Ravi Kumaar")])

        assert scores.name.score == 60
        assert scores.name.issues == ["Name variations found: ravi kumar, ravi kumaar"]
        assert "Verify name spelling consistency across documents" in scores.recommendations

    def test_names_compare_case_and_whitespace_insensitively(self) -> None:
        scores = ConsistencyScores([aadhaar(), aadhaar(full_name="  RAVI KUMAR ")])

        assert scores.name.score == 100
        assert scores.consistent_fields == 3

    def test_dob_variation(self) -> None:
        scores = ConsistencyScores([aadhaar(), aadhaar(date_of_birth="1990-06-16")])

        assert scores.dob.score == 50
        assert scores.dob.issues == ["Date of birth variations found: 1990-06-15, 1990-06-16"]

    def test_dob_compares_calendar_dates(self) -> None:
        scores = ConsistencyScores([aadhaar(), aadhaar(date_of_birth="1990-06-15T00:00:00")])
        assert scores.dob.score == 100

    def test_pincode_variation(self) -> None:
        other = aadhaar(address={"state": "Karnataka", "pincode": "560001"})
        scores = ConsistencyScores([aadhaar(), other])

        assert scores.address.score == 70
        assert scores.address.issues == ["Multiple PIN codes found: 560038, 560001"]

    def test_state_variation_caps_at_sixty(self) -> None:
        other = aadhaar(address={"state": "Kerala", "pincode": "682001"})
        scores = ConsistencyScores([aadhaar(), other])

        assert scores.address.score == 60
        assert len(scores.address.issues) == 2
        assert scores.inconsistent_fields == 2

    def test_state_variation_without_pincodes(self) -> None:
        scores = ConsistencyScores([
            aadhaar(address={"state": "Karnataka"}),
            aadhaar(address={"state": "Kerala"}),
        ])
        assert scores.address.score == 60

    def test_missing_values_are_ignored(self) -> None:
        scores = ConsistencyScores([aadhaar(), {"full_name": None}, {}])
        assert (scores.name.score, scores.dob.score, scores.address.score) == (100, 100, 100)

    def test_overall_rounds_half_up(self) -> None:
        scores = ConsistencyScores([aadhaar(), aadhaar(address={"state": "Karnataka", "pincode": "560001"})])

        # (100 + 100 + 70 + 100) / 4 = 92.5
        assert scores.overall(True) == 93

    def test_invalid_document_lowers_overall(self) -> None:
        assert ConsistencyScores([aadhaar()]).overall(False) == 88


class TestValidationResults:
    def test_combines_scores_and_validity(self) -> None:
        fields = aadhaar(expiry_date="2025-01-10")
        results = validation_results_for(fields, ConsistencyScores([fields]), NOW)

        assert results.document_validity.expiry_status == "expired"
        assert results.overall_score == 88
        assert results.last_validated == NOW


class TestAggregateValidity:
    def test_worst_status_wins(self) -> None:
        validities = [
            DocumentValidity(is_valid=True, expiry_status="valid"),
            DocumentValidity(is_valid=False, expiry_status="expired", issues=["Document expired on 2025-01-10"]),
            DocumentValidity(is_valid=True, expiry_status="expiring_soon", issues=["Document expires in 3 days"]),
        ]
        validity = aggregate_validity(validities)

        assert validity.is_valid is False
        assert validity.expiry_status == "expired"
        assert len(validity.issues) == 2

    def test_empty_is_valid(self) -> None:
        assert aggregate_validity([]).is_valid is True


class TestCrossValidate:
    def test_consistent_locker(self) -> None:
        report = cross_validate([doc("Aadhaar", aadhaar()), doc("Voter ID", aadhaar(), "voter_id")], NOW)

        assert report.overall_score == 100
        assert report.consistent_fields == 3
        assert report.inconsistent_fields == 0
        assert report.recommendations == ["Most data is consistent - good document quality"]
        assert [d["name"] for d in report.documents] == ["Aadhaar", "Voter ID"]
        assert report.documents[0]["validation_results"]["overall_score"] == 100

    def test_inconsistent_locker_gets_quality_advice(self) -> None:
        report = cross_validate([
            doc("Aadhaar", aadhaar()),
            doc("PAN", aadhaar(full_name="R Kumar", date_of_birth="1991-01-01"), "pan_card"),
        ], NOW)

        # (60 + 50 + 100 + 100) / 4 = 77.5
        assert report.overall_score == 78
        assert report.inconsistent_fields == 2
        assert "Consider re-uploading documents with better image quality" in report.recommendations
        assert "Manually verify and correct OCR data for accuracy" in report.recommendations
        assert "Most data is consistent - good document quality" not in report.recommendations

    def test_expired_documents_named(self) -> None:
        report = cross_validate([
            doc("Aadhaar", aadhaar()),
            doc("Licence", aadhaar(expiry_date="2024-12-31"), "driving_license"),
        ], NOW)

        assert report.document_validity.expiry_status == "expired"
        assert report.overall_score == 88
        assert "Replace expired documents: Licence" in report.recommendations
        assert report.documents[0]["validation_results"]["overall_score"] == 100
        assert report.documents[1]["validation_results"]["overall_score"] == 88

    @pytest.mark.parametrize("count", [2, 5])
    def test_every_document_is_reported(self, count) -> None:
        documents = [doc(f"d{i}", aadhaar()) for i in range(count)]
        assert len(cross_validate(documents, NOW).documents) == count
