"""
Requirement Validator — Checks a user's document selection against a service's RequirementSet.
"""
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.orm import Session

from vault.exceptions import NotFoundError, ValidationError
from vault.models.requirement import DocumentRequirement
from vault.schemas.schemas import RequirementSet, SelectedDocument, SelectionVerdict
from vault.utils.logger import get_logger
from vault.utils.rounding import round_half_up

logger = get_logger("requirements")

PRIORITY_NAMES = {1: "high priority", 2: "medium priority", 3: "low priority"}


class RequirementCatalog:
    """Read-only access to the RequirementSets owned by the service catalog."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, service_id: str) -> RequirementSet:
        row = self.db.query(DocumentRequirement).filter(DocumentRequirement.service_id == service_id).first()
        if row is None:
            raise NotFoundError("Document requirements not found for this service")
        return RequirementSet.model_validate(row)

    def upsert(self, requirement_set: RequirementSet) -> DocumentRequirement:
        """Load or replace a service's RequirementSet (used by the seed command)."""
        row = self.db.query(DocumentRequirement).filter(
            DocumentRequirement.service_id == requirement_set.service_id
        ).first()
        if row is None:
            row = DocumentRequirement(service_id=requirement_set.service_id)
            self.db.add(row)
        row.documents = [d.model_dump(mode="json") for d in requirement_set.documents]
        row.validation_rules = requirement_set.validation_rules.model_dump(mode="json")
        if requirement_set.instructions:
            row.instructions = requirement_set.instructions
        self.db.commit()
        self.db.refresh(row)
        return row


def parse_selection(selected_documents: Sequence[Any]) -> List[SelectedDocument]:
    """Validate every selection item up front; one malformed item rejects the whole request."""
    if selected_documents is None or isinstance(selected_documents, (str, bytes, dict)):
        raise ValidationError("Service ID and selected documents are required")
    parsed = []
    for index, item in enumerate(selected_documents):
        try:
            parsed.append(SelectedDocument.model_validate(item))
        except SchemaValidationError as e:
            raise ValidationError(f"Selected document at position {index} is missing a valid document_id") from e
    return parsed


def validate_selection(requirements: RequirementSet, selected_documents: Sequence[Any]) -> SelectionVerdict:
    selection = parse_selection(selected_documents)
    rules = requirements.validation_rules
    by_id = {doc.id: doc for doc in requirements.documents}
    chosen = [by_id.get(item.document_id) for item in selection]

    selected_count = len(selection)
    meets_threshold = selected_count >= rules.minimum_threshold

    # A repeated category or priority keeps its first unmet entry
    category_validation: Dict[str, Dict[str, Any]] = {}
    missing_categories: List[Dict[str, Any]] = []
    category_met = True
    for req in rules.category_requirements:
        count = sum(1 for doc in chosen if doc is not None and doc.category == req.category)
        met = count >= req.minimum_required
        category_met = category_met and met
        if category_validation.get(req.category, {}).get("met", True):
            category_validation[req.category] = {
                "required": req.minimum_required,
                "selected": count,
                "met": met,
                "description": req.description,
            }
        if not met:
            missing_categories.append(
                {"category": req.category, "needed": req.minimum_required - count, "description": req.description}
            )

    priority_validation: Dict[str, Dict[str, Any]] = {}
    missing_priorities: List[Dict[str, Any]] = []
    priority_met = True
    for req in rules.priority_requirements:
        count = sum(1 for doc in chosen if doc is not None and doc.priority == req.priority)
        met = count >= req.minimum_required
        priority_met = priority_met and met
        if priority_validation.get(str(req.priority), {}).get("met", True):
            priority_validation[str(req.priority)] = {
                "required": req.minimum_required,
                "selected": count,
                "met": met,
                "description": req.description,
            }
        if not met:
            missing_priorities.append(
                {"priority": req.priority, "needed": req.minimum_required - count, "description": req.description}
            )

    is_valid = meets_threshold and category_met and priority_met

    if is_valid:
        message = (
            f"Great! You have selected {selected_count} documents which meets the minimum requirement. "
            f"You can proceed to center selection."
        )
    else:
        issues = []
        if not meets_threshold:
            issues.append(
                f"Need {rules.minimum_threshold - selected_count} more document(s) "
                f"(at least {rules.minimum_threshold} required, currently have {selected_count})"
            )
        for missing in missing_categories:
            issues.append(f"Need {missing['needed']} more {missing['category']} document(s)")
        for missing in missing_priorities:
            issues.append(f"Need {missing['needed']} more {PRIORITY_NAMES.get(missing['priority'], 'low priority')} document(s)")
        message = f"Please select additional documents: {', '.join(issues)}."

    return SelectionVerdict(
        is_valid=is_valid,
        can_proceed=is_valid,
        selected_count=selected_count,
        total_required=rules.total_required,
        minimum_threshold=rules.minimum_threshold,
        meets_threshold=meets_threshold,
        category_requirements_met=category_met,
        priority_requirements_met=priority_met,
        category_validation=category_validation,
        priority_validation=priority_validation,
        missing_categories=missing_categories,
        missing_priorities=missing_priorities,
        completion_percentage=round_half_up(selected_count / rules.total_required * 100),
        message=message,
    )


def ensure_satisfied(requirements: RequirementSet, selected_documents: Sequence[Any]) -> SelectionVerdict:
    """Like validate_selection, but an unsatisfied selection raises with the verdict attached."""
    verdict = validate_selection(requirements, selected_documents)
    if not verdict.can_proceed:
        raise ValidationError(verdict.message, verdict=verdict.model_dump(mode="json"))
    return verdict


class RequirementValidator:
    """Service-id level entry point used by the routes."""

    def __init__(self, catalog: RequirementCatalog):
        self.catalog = catalog

    def requirements(self, service_id: str) -> RequirementSet:
        return self.catalog.get(service_id)

    def validate(self, service_id: str, selected_documents: Sequence[Any], require_complete: bool = False) -> SelectionVerdict:
        if not service_id:
            raise ValidationError("Service ID and selected documents are required")
        # Malformed selections are rejected before the catalog lookup
        parse_selection(selected_documents)
        requirements = self.catalog.get(service_id)
        if require_complete:
            verdict = ensure_satisfied(requirements, selected_documents)
        else:
            verdict = validate_selection(requirements, selected_documents)
        logger.info(f"Selection for {service_id}: {verdict.selected_count} selected, can_proceed={verdict.can_proceed}")
        return verdict
