"""
Extracted Data — Typed, partially-populated field sets per document type.

Every document type maps to one field model holding the shared common fields
plus only the fields relevant to that type. Parser output and manual
corrections are validated through the model at the boundary, so the stored
JSON always has the shape of its document type.
"""
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, Field


class DocumentType(str, Enum):
    AADHAAR_CARD = "aadhaar_card"
    PAN_CARD = "pan_card"
    VOTER_ID = "voter_id"
    RATION_CARD = "ration_card"
    BIRTH_CERTIFICATE = "birth_certificate"
    DEATH_CERTIFICATE = "death_certificate"
    INCOME_CERTIFICATE = "income_certificate"
    CASTE_CERTIFICATE = "caste_certificate"
    COMMUNITY_CERTIFICATE = "community_certificate"
    DOMICILE_CERTIFICATE = "domicile_certificate"
    RESIDENCE_CERTIFICATE = "residence_certificate"
    MARRIAGE_CERTIFICATE = "marriage_certificate"
    DRIVING_LICENSE = "driving_license"
    SSLC_CERTIFICATE = "sslc_certificate"
    PENSION_CERTIFICATE = "pension_certificate"
    # Legacy document types
    PASSPORT = "passport"
    BANK_PASSBOOK = "bank_passbook"
    SALARY_SLIP = "salary_slip"
    PROPERTY_DOCUMENT = "property_document"
    EDUCATIONAL_CERTIFICATE = "educational_certificate"
    MEDICAL_CERTIFICATE = "medical_certificate"
    OTHER = "other"


class Address(BaseModel):
    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    country: Optional[str] = None

    class Config:
        extra = "ignore"


class ExtractedFields(BaseModel):
    """Fields shared by every document type, plus OCR and verification metadata."""

    full_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    father_name: Optional[str] = None
    address: Optional[Address] = None

    raw_text: str = ""
    confidence: float = Field(0, ge=0, le=100)

    is_verified: bool = False
    verified_at: Optional[datetime] = None
    verified_by: Optional[str] = None
    verification_notes: Optional[str] = None

    class Config:
        extra = "ignore"

    @classmethod
    def data_fields(cls) -> List[str]:
        """Field names that carry document data, i.e. everything but OCR/verification metadata."""
        return [name for name in cls.model_fields if name not in METADATA_FIELDS]


METADATA_FIELDS = frozenset({
    "raw_text", "confidence", "is_verified", "verified_at", "verified_by", "verification_notes",
})


class AadhaarFields(ExtractedFields):
    aadhaar_number: Optional[str] = None
    mobile_number: Optional[str] = None


class PanFields(ExtractedFields):
    pan_number: Optional[str] = None
    has_signature: Optional[bool] = None
    has_photo: Optional[bool] = None


class VoterIdFields(ExtractedFields):
    voter_id_number: Optional[str] = None
    age: Optional[int] = None


class RationCardFields(ExtractedFields):
    ration_card_number: Optional[str] = None
    card_type: Optional[str] = None


class IncomeCertificateFields(ExtractedFields):
    certificate_number: Optional[str] = None
    annual_income: Optional[int] = None
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    issuing_authority: Optional[str] = None


class DrivingLicenseFields(ExtractedFields):
    license_number: Optional[str] = None
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    vehicle_class: Optional[str] = None


class PassportFields(ExtractedFields):
    passport_number: Optional[str] = None
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    issuing_authority: Optional[str] = None


class BirthCertificateFields(ExtractedFields):
    certificate_number: Optional[str] = None
    mother_name: Optional[str] = None
    issue_date: Optional[date] = None
    issuing_authority: Optional[str] = None


class CertificateFields(ExtractedFields):
    """Death, caste, community, domicile, residence, marriage, SSLC and pension certificates."""

    certificate_number: Optional[str] = None
    issue_date: Optional[date] = None


FIELD_MODELS: Dict[DocumentType, Type[ExtractedFields]] = {
    DocumentType.AADHAAR_CARD: AadhaarFields,
    DocumentType.PAN_CARD: PanFields,
    DocumentType.VOTER_ID: VoterIdFields,
    DocumentType.RATION_CARD: RationCardFields,
    DocumentType.INCOME_CERTIFICATE: IncomeCertificateFields,
    DocumentType.DRIVING_LICENSE: DrivingLicenseFields,
    DocumentType.PASSPORT: PassportFields,
    DocumentType.BIRTH_CERTIFICATE: BirthCertificateFields,
    DocumentType.DEATH_CERTIFICATE: CertificateFields,
    DocumentType.CASTE_CERTIFICATE: CertificateFields,
    DocumentType.COMMUNITY_CERTIFICATE: CertificateFields,
    DocumentType.DOMICILE_CERTIFICATE: CertificateFields,
    DocumentType.RESIDENCE_CERTIFICATE: CertificateFields,
    DocumentType.MARRIAGE_CERTIFICATE: CertificateFields,
    DocumentType.SSLC_CERTIFICATE: CertificateFields,
    DocumentType.PENSION_CERTIFICATE: CertificateFields,
}


def field_model_for(document_type: DocumentType | str) -> Type[ExtractedFields]:
    """Field model for a document type; types without a parser keep only the common fields."""
    return FIELD_MODELS.get(DocumentType(document_type), ExtractedFields)


def build_extracted_data(document_type: DocumentType | str, values: Dict[str, Any]) -> ExtractedFields:
    """Validate a raw field dict into the variant for `document_type`, dropping unrelated keys."""
    return field_model_for(document_type).model_validate(values or {})


def dump_extracted_data(fields: ExtractedFields) -> Dict[str, Any]:
    """JSON-ready dict for persistence; unset optional fields are omitted."""
    return fields.model_dump(mode="json", exclude_none=True)


def relevant_fields(document_type: DocumentType | str) -> List[str]:
    """Data fields a document of this type can carry (used by field sync)."""
    return field_model_for(document_type).data_fields()
