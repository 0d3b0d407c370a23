"""
Pydantic Schemas — Request & Response models for API validation.
"""
from datetime import datetime
from typing import Any, Optional, Dict, List, Literal
from pydantic import BaseModel, Field

from vault.schemas.extracted import DocumentType


# ──────────────── Locker ────────────────

class PinRequest(BaseModel):
    """Body of every PIN-gated locker call."""
    pin: str = Field(..., description="Locker PIN (4-6 digits)")


class CreateLockerRequest(BaseModel):
    pin: str = Field(..., description="New locker PIN (4-6 digits)")
    confirm_pin: str


class CreateLockerResponse(BaseModel):
    success: bool = True
    message: str = "Document locker created successfully"
    locker_id: str
    created_at: datetime


class LockerExistsResponse(BaseModel):
    success: bool = True
    exists: bool
    is_locked: bool = False


class UnlockResponse(BaseModel):
    success: bool = True
    ok: bool
    attempts_remaining: int
    message: str = "Locker unlocked successfully"


class ChangePinRequest(BaseModel):
    current_pin: str
    new_pin: str
    confirm_new_pin: str


# ──────────────── Documents ────────────────

class DocumentUpdateRequest(PinRequest):
    name: Optional[str] = None
    tags: Optional[str] = Field(None, description="Comma separated tags")
    notes: Optional[str] = None


class ExtractedDataUpdateRequest(PinRequest):
    extracted_data: Dict[str, Any] = Field(..., description="Corrected field values, merged over the stored ones")


class SyncFieldRequest(PinRequest):
    field_name: str = Field(..., description="Field to propagate, e.g. full_name or address.city")
    field_value: Any = None
    source_document_id: Optional[str] = None


class DocumentSummary(BaseModel):
    """List view; never carries the stored file path or encryption key."""
    id: str
    name: str
    original_name: str
    document_type: DocumentType
    file_size: int
    mime_type: str
    extracted_data: Dict[str, Any] = {}
    validation_results: Optional[Dict[str, Any]] = None
    tags: List[str] = []
    notes: Optional[str] = None
    access_count: int = 0
    last_accessed: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DocumentDetail(DocumentSummary):
    file_sha256: Optional[str] = None
    audit_trail: List[Dict[str, Any]] = []


class UploadResponse(BaseModel):
    success: bool = True
    message: str = "Document uploaded and processed successfully"
    document_id: str
    name: str
    document_type: DocumentType
    extracted_data: Dict[str, Any]
    validation_results: Optional[Dict[str, Any]] = None
    created_at: datetime


class SyncFieldResponse(BaseModel):
    success: bool = True
    message: str
    updated_count: int
    updated_documents: List[Dict[str, Any]] = []


# ──────────────── Validation ────────────────

class ConsistencyCheck(BaseModel):
    score: int = Field(100, ge=0, le=100)
    issues: List[str] = []


class DocumentValidity(BaseModel):
    is_valid: bool = True
    expiry_status: Literal["valid", "expiring_soon", "expired", "unknown"] = "unknown"
    issues: List[str] = []


class ValidationResults(BaseModel):
    name_consistency: ConsistencyCheck = ConsistencyCheck()
    dob_consistency: ConsistencyCheck = ConsistencyCheck()
    address_consistency: ConsistencyCheck = ConsistencyCheck()
    document_validity: DocumentValidity = DocumentValidity()
    overall_score: int = 100
    last_validated: datetime


class CrossValidationReport(BaseModel):
    overall_score: int
    consistent_fields: int = 0
    inconsistent_fields: int = 0
    name_consistency: ConsistencyCheck
    dob_consistency: ConsistencyCheck
    address_consistency: ConsistencyCheck
    document_validity: DocumentValidity
    recommendations: List[str] = []
    documents: List[Dict[str, Any]] = []


class LockerStats(BaseModel):
    total_documents: int
    document_types: Dict[str, int] = {}
    total_size: int = 0
    recent_activity: List[Dict[str, Any]] = []
    validation_summary: Dict[str, int] = {}


# ──────────────── Requirements ────────────────

Category = Literal["identity", "address", "income", "educational", "medical", "other"]


class Alternative(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    notes: Optional[str] = None


class RequirementDocument(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    category: Category = "other"
    priority: int = Field(1, ge=1, le=3, description="1 high, 2 medium, 3 low")
    is_required: bool = True
    alternatives: List[Alternative] = []
    notes: Optional[str] = None
    validity_period: Optional[str] = None
    acceptable_formats: List[str] = []


class CategoryRequirement(BaseModel):
    category: Category
    minimum_required: int = Field(..., ge=0)
    description: Optional[str] = None


class PriorityRequirement(BaseModel):
    priority: int = Field(..., ge=1, le=3)
    minimum_required: int = Field(..., ge=0)
    description: Optional[str] = None


class ValidationRules(BaseModel):
    total_required: int = Field(..., ge=1)
    minimum_threshold: int = Field(..., ge=1)
    category_requirements: List[CategoryRequirement] = []
    priority_requirements: List[PriorityRequirement] = []


class RequirementSet(BaseModel):
    service_id: str
    documents: List[RequirementDocument] = []
    validation_rules: ValidationRules
    instructions: Optional[str] = None

    class Config:
        from_attributes = True


class SelectedDocument(BaseModel):
    document_id: str = Field(..., min_length=1)
    alternative_id: Optional[str] = None


class ValidateSelectionRequest(BaseModel):
    service_id: str
    # Items are checked by the validator so a malformed entry rejects the whole request
    selected_documents: List[Dict[str, Any]]
    require_complete: bool = False


class SelectionVerdict(BaseModel):
    is_valid: bool
    can_proceed: bool
    selected_count: int
    total_required: int
    minimum_threshold: int
    meets_threshold: bool
    category_requirements_met: bool
    priority_requirements_met: bool
    category_validation: Dict[str, Dict[str, Any]] = {}
    priority_validation: Dict[str, Dict[str, Any]] = {}
    missing_categories: List[Dict[str, Any]] = []
    missing_priorities: List[Dict[str, Any]] = []
    completion_percentage: int
    message: str
