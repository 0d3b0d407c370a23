"""
Requirement Routes — Service document requirements and selection validation.
"""
from fastapi import APIRouter, Depends

from vault.routes.deps import get_requirement_validator
from vault.schemas.schemas import RequirementSet, SelectionVerdict, ValidateSelectionRequest
from vault.services.requirement_validator import RequirementValidator

router = APIRouter(prefix="/api/documents", tags=["Document Requirements"])


@router.get("/requirements/{service_id}", response_model=RequirementSet)
def get_requirements(
    service_id: str,
    validator: RequirementValidator = Depends(get_requirement_validator),
):
    """RequirementSet for a service (read-only, owned by the service catalog)."""
    return validator.requirements(service_id)


@router.post("/validate", response_model=SelectionVerdict)
def validate_selection(
    payload: ValidateSelectionRequest,
    validator: RequirementValidator = Depends(get_requirement_validator),
):
    """Evaluate the user's document selection. With require_complete, an unmet selection is a 422 carrying the verdict."""
    return validator.validate(payload.service_id, payload.selected_documents, payload.require_complete)
