"""
Document Store — Persistence for lockers, documents and their bounded logs.
Every component reaches the database through one of these, never directly.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from vault.exceptions import ConcurrentUpdateError, DuplicateError, NotFoundError, StorageError
from vault.models.document import LockerDocument
from vault.models.locker import DocumentLocker
from vault.utils.logger import get_logger
from vault.utils.ring_buffer import ACCESS_LOG_CAPACITY, AUDIT_TRAIL_CAPACITY, append_bounded

logger = get_logger("store")


def audit_entry(action: str, details: str, ip: Optional[str], now: datetime) -> Dict[str, Any]:
    return {"action": action, "timestamp": now.isoformat(), "details": details, "ip": ip}


def access_entry(
    action: str,
    request_info: Optional[Dict[str, Any]],
    now: datetime,
    success: bool = True,
    document_id: Optional[str] = None,
) -> Dict[str, Any]:
    request_info = request_info or {}
    entry = {
        "timestamp": now.isoformat(),
        "action": action,
        "ip": request_info.get("ip"),
        "user_agent": request_info.get("user_agent"),
        "success": success,
    }
    if document_id:
        entry["document_id"] = document_id
    return entry


class DocumentStore:
    """Session-scoped store; mutating calls commit unless told otherwise."""

    def __init__(self, db: Session):
        self.db = db

    def commit(self) -> None:
        try:
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            raise ConcurrentUpdateError("Record was modified by another request, please retry") from e
        except IntegrityError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Commit failed: {e}")
            raise StorageError("Failed to save changes") from e

    # ──────────────── Lockers ────────────────

    def add_locker(self, locker: DocumentLocker) -> DocumentLocker:
        self.db.add(locker)
        try:
            self.commit()
        except IntegrityError as e:
            raise DuplicateError("Document locker already exists") from e
        self.db.refresh(locker)
        return locker

    def get_locker(self, locker_id: str, for_update: bool = False) -> Optional[DocumentLocker]:
        query = self.db.query(DocumentLocker).filter(DocumentLocker.id == locker_id)
        if for_update:
            # Re-read the row so a counter written by another session is not missed
            query = query.populate_existing().with_for_update()
        return query.first()

    def get_locker_by_user(self, user_id: str) -> Optional[DocumentLocker]:
        return self.db.query(DocumentLocker).filter(DocumentLocker.user_id == user_id).first()

    def save_locker(self, locker: DocumentLocker) -> DocumentLocker:
        self.commit()
        return locker

    def delete_locker(self, locker: DocumentLocker) -> List[str]:
        """Hard-delete a locker and every document it owns; returns their file paths."""
        documents = self.db.query(LockerDocument).filter(LockerDocument.locker_id == locker.id).all()
        file_paths = [doc.file_path for doc in documents if doc.file_path]
        for doc in documents:
            self.db.delete(doc)
        self.db.delete(locker)
        self.commit()
        return file_paths

    def append_access_log(self, locker: DocumentLocker, entry: Dict[str, Any], commit: bool = True) -> DocumentLocker:
        locker.access_log = append_bounded(locker.access_log, entry, ACCESS_LOG_CAPACITY)
        if entry.get("success", True):
            locker.last_accessed = datetime.fromisoformat(entry["timestamp"])
        if commit:
            self.commit()
        return locker

    # ──────────────── Documents ────────────────

    def put(self, document: LockerDocument, commit: bool = True) -> LockerDocument:
        """Insert or update a document, keeping the owning locker's active id list in step."""
        self.db.add(document)
        self.db.flush()
        locker = self.db.get(DocumentLocker, document.locker_id)
        if locker is None:
            raise NotFoundError("Document locker not found")
        ids = list(locker.document_ids or [])
        if document.is_active and document.id not in ids:
            locker.document_ids = ids + [document.id]
        elif not document.is_active and document.id in ids:
            locker.document_ids = [i for i in ids if i != document.id]
        if commit:
            self.commit()
        return document

    def get(self, document_id: str, locker_id: Optional[str] = None, active_only: bool = True) -> Optional[LockerDocument]:
        query = self.db.query(LockerDocument).filter(LockerDocument.id == document_id)
        if locker_id is not None:
            query = query.filter(LockerDocument.locker_id == locker_id)
        if active_only:
            query = query.filter(LockerDocument.is_active.is_(True))
        return query.first()

    def list_active(self, locker_id: str) -> List[LockerDocument]:
        return (
            self.db.query(LockerDocument)
            .filter(LockerDocument.locker_id == locker_id, LockerDocument.is_active.is_(True))
            .order_by(LockerDocument.created_at.asc())
            .all()
        )

    def soft_delete(self, document_id: str, commit: bool = True) -> LockerDocument:
        """Deactivate a document; the stored file is left for retention cleanup."""
        document = self.get(document_id)
        if document is None:
            raise NotFoundError("Document not found")
        document.is_active = False
        return self.put(document, commit=commit)

    def append_audit(self, document_id: str, entry: Dict[str, Any], commit: bool = True) -> LockerDocument:
        document = self.get(document_id, active_only=False)
        if document is None:
            raise NotFoundError("Document not found")
        document.audit_trail = append_bounded(document.audit_trail, entry, AUDIT_TRAIL_CAPACITY)
        if commit:
            self.commit()
        return document
