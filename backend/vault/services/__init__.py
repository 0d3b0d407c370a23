from vault.services.access_gate import AccessGate, AttemptState, LockoutPolicy, VerifyOutcome
from vault.services.document_store import DocumentStore
from vault.services.file_store import FileStore
from vault.services.locker_service import LockerService
from vault.services.ocr_service import OCRService
from vault.services.requirement_validator import RequirementCatalog, RequirementValidator

__all__ = [
    "AccessGate", "AttemptState", "LockoutPolicy", "VerifyOutcome",
    "DocumentStore", "FileStore", "LockerService", "OCRService",
    "RequirementCatalog", "RequirementValidator",
]
