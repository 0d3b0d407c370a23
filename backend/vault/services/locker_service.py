"""
Locker Service — Request-scoped orchestration of locker document flows.

Every operation re-presents the PIN through the AccessGate, then performs its
read-modify-write under the locker's keyed lock so concurrent requests on the
same locker are serialized.
"""
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from vault.config import Settings, get_settings
from vault.exceptions import AuthenticationError, NotFoundError, StorageError, ValidationError
from vault.models.document import LockerDocument
from vault.models.locker import DocumentLocker
from vault.schemas.extracted import (
    METADATA_FIELDS,
    DocumentType,
    ExtractedFields,
    build_extracted_data,
    dump_extracted_data,
    relevant_fields,
)
from vault.schemas.schemas import CrossValidationReport
from vault.services.access_gate import AccessGate, VerifyOutcome
from vault.services.consistency import ConsistencyScores, cross_validate, validation_results_for
from vault.services.document_store import DocumentStore, access_entry, audit_entry
from vault.services.file_store import FileStore
from vault.services.ocr_service import OCRService
from vault.utils.hashing import file_digest
from vault.utils.locks import LOCKER_LOCKS, KeyedLock
from vault.utils.logger import get_logger

logger = get_logger("locker")

RECENT_ACTIVITY = 10


@dataclass
class Download:
    path: str
    filename: str
    mime_type: str


def split_tags(tags: Optional[str]) -> List[str]:
    if not tags:
        return []
    return [tag.strip() for tag in tags.split(",") if tag.strip()]


def _ip(request_info: Optional[Dict]) -> Optional[str]:
    return (request_info or {}).get("ip")


class LockerService:
    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        ocr: Optional[OCRService] = None,
        files: Optional[FileStore] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
        locks: KeyedLock = LOCKER_LOCKS,
    ):
        self.settings = settings or get_settings()
        self.store = DocumentStore(db)
        self.gate = AccessGate(self.store, self.settings, clock, locks)
        self.ocr = ocr or OCRService(self.settings)
        self.files = files or FileStore(self.settings)
        self.clock = clock
        self.locks = locks

    # ──────────────── Locker ────────────────

    def create_locker(self, user_id: str, pin: str, confirm_pin: str, request_info: Optional[Dict] = None) -> DocumentLocker:
        return self.gate.create_locker(user_id, pin, confirm_pin, request_info)

    def check_exists(self, user_id: str) -> Dict[str, bool]:
        return self.gate.check_exists(user_id)

    def unlock(self, user_id: str, pin: str, request_info: Optional[Dict] = None) -> VerifyOutcome:
        if not pin:
            raise ValidationError("Locker PIN is required")
        locker = self.store.get_locker_by_user(user_id)
        if locker is None:
            raise NotFoundError("Document locker not found")
        outcome = self.gate.verify(locker.id, pin, request_info)
        if not outcome.ok:
            raise AuthenticationError(attempts_remaining=outcome.attempts_remaining)
        return outcome

    def change_pin(self, user_id: str, current_pin: str, new_pin: str, confirm_new_pin: str, request_info: Optional[Dict] = None):
        return self.gate.change_pin(user_id, current_pin, new_pin, confirm_new_pin, request_info)

    def reset(self, user_id: str) -> int:
        """Account reset: drop the locker, its documents and their stored files."""
        file_paths = self.gate.reset_locker(user_id)
        for path in file_paths:
            self.files.delete(path)
        return len(file_paths)

    # ──────────────── Upload ────────────────

    def _check_upload(self, document_type: str, mime_type: str, contents: bytes) -> DocumentType:
        if not contents:
            raise ValidationError("No document file uploaded")
        try:
            doc_type = DocumentType(document_type)
        except ValueError:
            raise ValidationError(f"Unsupported document type: {document_type}")
        if mime_type not in self.settings.ALLOWED_MIME_TYPES:
            raise ValidationError("Only JPEG, JPG, PNG, WEBP, GIF, BMP, TIFF, and PDF files are allowed")
        if len(contents) > self.settings.MAX_UPLOAD_BYTES:
            raise ValidationError(f"File exceeds the {self.settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB limit")
        return doc_type

    async def upload(
        self,
        user_id: str,
        pin: str,
        document_type: str,
        filename: str,
        mime_type: str,
        contents: bytes,
        name: Optional[str] = None,
        tags: Optional[str] = None,
        request_info: Optional[Dict] = None,
    ) -> LockerDocument:
        """Gate, store the blob, extract fields (time-boxed) and persist; the blob is removed if any later step fails."""
        doc_type = self._check_upload(document_type, mime_type, contents)
        locker = await run_in_threadpool(self.gate.authorize, user_id, pin, request_info)
        locker_id = locker.id

        path = await run_in_threadpool(self.files.save, user_id, filename or "document", contents)
        try:
            fields = await self.ocr.extract(contents, mime_type, doc_type)
            document = await run_in_threadpool(
                self._persist_upload, locker_id, doc_type, filename, mime_type, contents, path, fields, name, tags, request_info,
            )
        except Exception as e:
            self.store.db.rollback()
            self.files.delete(path)
            logger.warning(f"Upload to locker {locker_id} failed, removed stored file: {e}")
            if isinstance(e, SQLAlchemyError):
                raise StorageError("Failed to upload document") from e
            raise

        logger.info(f"Document {document.id} ({doc_type.value}) uploaded to locker {locker_id}")
        return document

    def _persist_upload(
        self,
        locker_id: str,
        doc_type: DocumentType,
        filename: str,
        mime_type: str,
        contents: bytes,
        path: str,
        fields: ExtractedFields,
        name: Optional[str],
        tags: Optional[str],
        request_info: Optional[Dict],
    ) -> LockerDocument:
        with self.locks.hold(locker_id):
            locker = self.store.get_locker(locker_id, for_update=True)
            if locker is None:
                raise NotFoundError("Document locker not found")
            now = self.clock()
            document = LockerDocument(
                locker_id=locker_id,
                name=name or filename,
                original_name=filename,
                document_type=doc_type.value,
                file_path=path,
                file_size=len(contents),
                mime_type=mime_type,
                file_sha256=file_digest(contents),
                encryption_key=secrets.token_hex(32),
                extracted_data=dump_extracted_data(fields),
                validation_results=None,
                tags=split_tags(tags),
                access_count=0,
                audit_trail=[audit_entry("created", "Document uploaded", _ip(request_info), now)],
                is_active=True,
                created_at=now,
                updated_at=now,
            )
            self.store.put(document, commit=False)
            self.store.append_access_log(
                locker, access_entry("upload_document", request_info, now, document_id=document.id), commit=False,
            )
            self._rescore(locker_id, now)
            self.store.commit()
        return document

    # ──────────────── Documents ────────────────

    def _document(self, locker: DocumentLocker, document_id: str) -> LockerDocument:
        document = self.store.get(document_id, locker_id=locker.id)
        if document is None:
            raise NotFoundError("Document not found")
        return document

    def _rescore(self, locker_id: str, now: datetime) -> List[LockerDocument]:
        """Recompute validation_results of every active document once two or more exist."""
        self.store.db.flush()
        documents = self.store.list_active(locker_id)
        if len(documents) < 2:
            return documents
        scores = ConsistencyScores([doc.extracted_data or {} for doc in documents])
        for doc in documents:
            results = validation_results_for(doc.extracted_data or {}, scores, now, self.settings.EXPIRY_WARNING_DAYS)
            doc.validation_results = results.model_dump(mode="json")
        return documents

    def list_documents(self, user_id: str, pin: str, request_info: Optional[Dict] = None) -> List[LockerDocument]:
        locker = self.gate.authorize(user_id, pin, request_info)
        return self.store.list_active(locker.id)

    def get_document(self, user_id: str, pin: str, document_id: str, request_info: Optional[Dict] = None) -> LockerDocument:
        locker = self.gate.authorize(user_id, pin, request_info)
        with self.locks.hold(locker.id):
            document = self._document(locker, document_id)
            now = self.clock()
            document.access_count = (document.access_count or 0) + 1
            document.last_accessed = now
            self.store.append_audit(document.id, audit_entry("viewed", "Document accessed", _ip(request_info), now), commit=False)
            self.store.append_access_log(
                locker, access_entry("view_document", request_info, now, document_id=document.id), commit=False,
            )
            self.store.commit()
        return document

    def download_document(self, user_id: str, pin: str, document_id: str, request_info: Optional[Dict] = None) -> Download:
        locker = self.gate.authorize(user_id, pin, request_info)
        with self.locks.hold(locker.id):
            document = self._document(locker, document_id)
            if not self.files.exists(document.file_path):
                raise NotFoundError("Document file not found")
            now = self.clock()
            document.access_count = (document.access_count or 0) + 1
            document.last_accessed = now
            self.store.append_audit(document.id, audit_entry("downloaded", "Document downloaded", _ip(request_info), now), commit=False)
            self.store.append_access_log(
                locker, access_entry("view_document", request_info, now, document_id=document.id), commit=False,
            )
            self.store.commit()
            return Download(path=document.file_path, filename=document.original_name, mime_type=document.mime_type)

    def delete_document(self, user_id: str, pin: str, document_id: str, request_info: Optional[Dict] = None) -> None:
        """Soft delete; the stored file stays for the retention collaborator."""
        locker = self.gate.authorize(user_id, pin, request_info)
        with self.locks.hold(locker.id):
            document = self._document(locker, document_id)
            now = self.clock()
            self.store.append_audit(document.id, audit_entry("deleted", "Document deleted", _ip(request_info), now), commit=False)
            self.store.soft_delete(document.id, commit=False)
            self.store.append_access_log(
                locker, access_entry("delete_document", request_info, now, document_id=document.id), commit=False,
            )
            self.store.commit()
        logger.info(f"Document {document_id} deleted from locker {locker.id}")

    def update_document(
        self,
        user_id: str,
        pin: str,
        document_id: str,
        name: Optional[str] = None,
        tags: Optional[str] = None,
        notes: Optional[str] = None,
        request_info: Optional[Dict] = None,
    ) -> LockerDocument:
        locker = self.gate.authorize(user_id, pin, request_info)
        with self.locks.hold(locker.id):
            document = self._document(locker, document_id)
            if name:
                document.name = name
            if tags is not None:
                document.tags = split_tags(tags)
            if notes is not None:
                document.notes = notes
            self.store.append_audit(
                document.id, audit_entry("updated", "Document metadata updated", _ip(request_info), self.clock()), commit=False,
            )
            self.store.commit()
        return document

    def _validated(self, document: LockerDocument, values: Dict[str, Any]) -> Dict[str, Any]:
        try:
            return dump_extracted_data(build_extracted_data(document.document_type, values))
        except SchemaValidationError as e:
            raise ValidationError(f"Invalid extracted data for {document.document_type}: {e.errors()[0]['msg']}") from e

    def correct_extracted_data(
        self,
        user_id: str,
        pin: str,
        document_id: str,
        values: Dict[str, Any],
        request_info: Optional[Dict] = None,
    ) -> LockerDocument:
        """Manual OCR correction: merge, mark verified, re-score the locker."""
        locker = self.gate.authorize(user_id, pin, request_info)
        with self.locks.hold(locker.id):
            document = self._document(locker, document_id)
            now = self.clock()
            merged = {**(document.extracted_data or {}), **(values or {})}
            merged.update(is_verified=True, verified_at=now, verified_by=user_id)
            document.extracted_data = self._validated(document, merged)
            self.store.append_audit(
                document.id, audit_entry("updated", "OCR data verified and updated", _ip(request_info), now), commit=False,
            )
            self._rescore(locker.id, now)
            self.store.commit()
        return document

    def sync_field(
        self,
        user_id: str,
        pin: str,
        field_name: str,
        field_value: Any,
        source_document_id: Optional[str] = None,
        request_info: Optional[Dict] = None,
    ) -> Tuple[int, List[Dict[str, Any]]]:
        """Copy one field to every other active document whose type carries it."""
        if not field_name:
            raise ValidationError("Field name is required")
        base_field, _, address_part = field_name.partition(".")
        if address_part and base_field != "address":
            raise ValidationError(f"Unsupported field: {field_name}")

        locker = self.gate.authorize(user_id, pin, request_info)
        updated: List[Dict[str, Any]] = []
        with self.locks.hold(locker.id):
            now = self.clock()
            for document in self.store.list_active(locker.id):
                if document.id == source_document_id:
                    continue
                if base_field not in relevant_fields(document.document_type):
                    continue

                data = dict(document.extracted_data or {})
                if base_field == "address":
                    address = dict(data.get("address") or {})
                    if address_part:
                        address[address_part] = field_value
                    elif isinstance(field_value, dict):
                        address.update(field_value)
                    else:
                        raise ValidationError("Address must be an object or addressed by part, e.g. address.city")
                    data["address"] = address
                else:
                    data[base_field] = field_value
                data.update(is_verified=True, verified_at=now, verified_by=user_id)

                document.extracted_data = self._validated(document, data)
                self.store.append_audit(
                    document.id,
                    audit_entry("updated", f"Field {field_name} synced from another document", _ip(request_info), now),
                    commit=False,
                )
                updated.append({"id": document.id, "name": document.name, "document_type": document.document_type})

            if updated:
                self._rescore(locker.id, now)
            self.store.commit()
        logger.info(f"Synchronized {field_name} across {len(updated)} documents in locker {locker.id}")
        return len(updated), updated

    # ──────────────── Aggregates ────────────────

    def cross_validate(self, user_id: str, pin: str, request_info: Optional[Dict] = None) -> CrossValidationReport:
        locker = self.gate.authorize(user_id, pin, request_info)
        with self.locks.hold(locker.id):
            documents = self.store.list_active(locker.id)
            if len(documents) < 2:
                raise ValidationError("At least 2 documents are required for cross-validation")
            now = self.clock()
            report = cross_validate(documents, now, self.settings.EXPIRY_WARNING_DAYS)
            results_by_id = {entry["id"]: entry["validation_results"] for entry in report.documents}
            for document in documents:
                document.validation_results = results_by_id[document.id]
                self.store.append_audit(
                    document.id, audit_entry("updated", "Cross-validation performed", _ip(request_info), now), commit=False,
                )
            self.store.append_access_log(locker, access_entry("view_document", request_info, now), commit=False)
            self.store.commit()
        return report

    def stats(self, user_id: str, pin: str, request_info: Optional[Dict] = None) -> Dict[str, Any]:
        locker = self.gate.authorize(user_id, pin, request_info)
        documents = self.store.list_active(locker.id)

        document_types: Dict[str, int] = {}
        summary = {"fully_validated": 0, "partially_validated": 0, "needs_attention": 0}
        for doc in documents:
            document_types[doc.document_type] = document_types.get(doc.document_type, 0) + 1
            score = (doc.validation_results or {}).get("overall_score")
            if score is None:
                continue
            if score >= 90:
                summary["fully_validated"] += 1
            elif score >= 70:
                summary["partially_validated"] += 1
            else:
                summary["needs_attention"] += 1

        return {
            "total_documents": len(documents),
            "document_types": document_types,
            "total_size": sum(doc.file_size or 0 for doc in documents),
            "recent_activity": list(reversed((locker.access_log or [])[-RECENT_ACTIVITY:])),
            "validation_summary": summary,
        }

    def profile_data(self, user_id: str, pin: str, request_info: Optional[Dict] = None) -> Dict[str, Any]:
        """First-seen value of every data field across active documents, for auto-fill."""
        locker = self.gate.authorize(user_id, pin, request_info)
        profile: Dict[str, Any] = {}
        for doc in self.store.list_active(locker.id):
            for key, value in (doc.extracted_data or {}).items():
                if key in METADATA_FIELDS or value in (None, "", [], {}):
                    continue
                if key == "address" and isinstance(value, dict):
                    address = profile.setdefault("address", {})
                    for part, part_value in value.items():
                        if part_value and part not in address:
                            address[part] = part_value
                elif key not in profile:
                    profile[key] = value
        return profile
