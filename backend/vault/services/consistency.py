"""
Consistency Validator — Single-document validity and cross-document agreement.

Scores are computed from the stored extracted_data dicts of a locker's active
documents:

    name     60 when more than one distinct (lowercased, trimmed) full name
    dob      50 when more than one distinct calendar date of birth
    address  70 on differing pincodes, capped at 60 on differing states
    overall  round_half_up(mean(name, dob, address, 100 if valid else 50))
"""
import math
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from vault.schemas.schemas import ConsistencyCheck, CrossValidationReport, DocumentValidity, ValidationResults
from vault.utils.rounding import round_half_up

NAME_MISMATCH_SCORE = 60
DOB_MISMATCH_SCORE = 50
PINCODE_MISMATCH_SCORE = 70
STATE_MISMATCH_SCORE = 60
INVALID_DOCUMENT_SCORE = 50

_EXPIRY_RANK = {"unknown": 0, "valid": 1, "expiring_soon": 2, "expired": 3}


def _as_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def _distinct(values: Iterable[Any]) -> List[Any]:
    """Unique values in first-seen order."""
    return list(dict.fromkeys(v for v in values if v))


def evaluate_validity(fields: Mapping[str, Any], now: datetime, warning_days: int = 30) -> DocumentValidity:
    """Expiry check for one document; documents without an expiry date are valid."""
    raw = fields.get("expiry_date") or fields.get("validity")
    if not raw:
        return DocumentValidity(is_valid=True, expiry_status="valid")

    expiry = _as_date(raw)
    if expiry is None:
        return DocumentValidity(is_valid=True, expiry_status="unknown", issues=[f"Unreadable expiry date: {raw}"])

    days = math.ceil((datetime.combine(expiry, time.min) - now).total_seconds() / 86400)
    if days < 0:
        return DocumentValidity(is_valid=False, expiry_status="expired", issues=[f"Document expired on {expiry.isoformat()}"])
    if days <= warning_days:
        return DocumentValidity(
            is_valid=True,
            expiry_status="expiring_soon",
            issues=[f"Document expires in {days} days"],
        )
    return DocumentValidity(is_valid=True, expiry_status="valid")


class ConsistencyScores:
    """Name / date of birth / address agreement across a set of extracted field dicts."""

    def __init__(self, field_sets: Sequence[Mapping[str, Any]]):
        self.name = ConsistencyCheck()
        self.dob = ConsistencyCheck()
        self.address = ConsistencyCheck()
        self.consistent_fields = 0
        self.inconsistent_fields = 0
        self.recommendations: List[str] = []
        self._score(field_sets)

    def _score(self, field_sets: Sequence[Mapping[str, Any]]) -> None:
        names = [str(f.get("full_name")).strip().lower() for f in field_sets if f.get("full_name")]
        if len(names) > 1:
            variants = _distinct(names)
            if len(variants) > 1:
                self.name = ConsistencyCheck(
                    score=NAME_MISMATCH_SCORE,
                    issues=[f"Name variations found: {', '.join(variants)}"],
                )
                self.inconsistent_fields += 1
                self.recommendations.append("Verify name spelling consistency across documents")
            else:
                self.consistent_fields += 1

        dobs = [d for d in (_as_date(f.get("date_of_birth")) for f in field_sets) if d]
        if len(dobs) > 1:
            variants = _distinct(dobs)
            if len(variants) > 1:
                self.dob = ConsistencyCheck(
                    score=DOB_MISMATCH_SCORE,
                    issues=[f"Date of birth variations found: {', '.join(d.isoformat() for d in variants)}"],
                )
                self.inconsistent_fields += 1
                self.recommendations.append("Verify date of birth consistency across documents")
            else:
                self.consistent_fields += 1

        addresses = [f.get("address") or {} for f in field_sets]
        pincodes = [str(a["pincode"]) for a in addresses if a.get("pincode")]
        states = [str(a["state"]).strip() for a in addresses if a.get("state")]
        if len(pincodes) > 1 or len(states) > 1:
            score, issues = 100, []
            pincodes = _distinct(pincodes)
            if len(pincodes) > 1:
                score = PINCODE_MISMATCH_SCORE
                issues.append(f"Multiple PIN codes found: {', '.join(pincodes)}")
                self.inconsistent_fields += 1
            states = _distinct(states)
            if len(states) > 1:
                score = min(score, STATE_MISMATCH_SCORE)
                issues.append(f"Multiple states found: {', '.join(states)}")
                self.inconsistent_fields += 1
            self.address = ConsistencyCheck(score=score, issues=issues)
            if issues:
                self.recommendations.append("Verify address consistency across documents")
            else:
                self.consistent_fields += 1

    def overall(self, is_valid: bool) -> int:
        validity_score = 100 if is_valid else INVALID_DOCUMENT_SCORE
        return round_half_up((self.name.score + self.dob.score + self.address.score + validity_score) / 4)


def validation_results_for(
    fields: Mapping[str, Any],
    scores: ConsistencyScores,
    now: datetime,
    warning_days: int = 30,
) -> ValidationResults:
    """Stored validation_results of one document given the locker-wide scores."""
    validity = evaluate_validity(fields, now, warning_days)
    return ValidationResults(
        name_consistency=scores.name,
        dob_consistency=scores.dob,
        address_consistency=scores.address,
        document_validity=validity,
        overall_score=scores.overall(validity.is_valid),
        last_validated=now,
    )


def aggregate_validity(validities: Sequence[DocumentValidity]) -> DocumentValidity:
    """Worst expiry status across documents; valid only if every document is."""
    if not validities:
        return DocumentValidity(is_valid=True, expiry_status="valid")
    worst = max(validities, key=lambda v: _EXPIRY_RANK[v.expiry_status])
    issues = [issue for v in validities for issue in v.issues]
    return DocumentValidity(
        is_valid=all(v.is_valid for v in validities),
        expiry_status=worst.expiry_status,
        issues=issues,
    )


def cross_validate(documents: Sequence[Any], now: datetime, warning_days: int = 30) -> CrossValidationReport:
    """Locker-wide report over documents exposing id, name, document_type and extracted_data."""
    field_sets = [doc.extracted_data or {} for doc in documents]
    scores = ConsistencyScores(field_sets)

    per_document: List[Dict[str, Any]] = []
    validities = []
    for doc, fields in zip(documents, field_sets):
        results = validation_results_for(fields, scores, now, warning_days)
        validities.append(results.document_validity)
        per_document.append({
            "id": doc.id,
            "name": doc.name,
            "document_type": doc.document_type,
            "validation_results": results.model_dump(mode="json"),
        })

    validity = aggregate_validity(validities)
    overall = scores.overall(validity.is_valid)

    recommendations = list(scores.recommendations)
    expired = [doc.name for doc, v in zip(documents, validities) if v.expiry_status == "expired"]
    if expired:
        recommendations.append(f"Replace expired documents: {', '.join(expired)}")
    if overall < 80:
        recommendations.append("Consider re-uploading documents with better image quality")
        recommendations.append("Manually verify and correct OCR data for accuracy")
    if scores.consistent_fields > scores.inconsistent_fields:
        recommendations.append("Most data is consistent - good document quality")

    return CrossValidationReport(
        overall_score=overall,
        consistent_fields=scores.consistent_fields,
        inconsistent_fields=scores.inconsistent_fields,
        name_consistency=scores.name,
        dob_consistency=scores.dob,
        address_consistency=scores.address,
        document_validity=validity,
        recommendations=recommendations,
        documents=per_document,
    )
