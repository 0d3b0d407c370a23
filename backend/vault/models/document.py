"""
Locker Document Model — An uploaded identity/certificate document with its
OCR-extracted fields, consistency scores and bounded audit trail.
"""
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Integer, DateTime, JSON, ForeignKey, Boolean, Text
from sqlalchemy.orm import validates

from vault.database import Base


class LockerDocument(Base):
    __tablename__ = "locker_documents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    locker_id = Column(String(36), ForeignKey("lockers.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(256), nullable=False)
    original_name = Column(String(256), nullable=False)
    document_type = Column(String(32), nullable=False)  # See DocumentType

    # File information
    file_path = Column(String(512), nullable=False)
    file_size = Column(Integer, nullable=False)
    mime_type = Column(String(64), nullable=False)
    file_sha256 = Column(String(64))
    encryption_key = Column(String(64))

    extracted_data = Column(JSON, default=dict)       # Field set for document_type
    validation_results = Column(JSON, nullable=True)  # Set once scored

    access_count = Column(Integer, default=0)
    last_accessed = Column(DateTime, nullable=True)

    tags = Column(JSON, default=list)
    notes = Column(Text, nullable=True)

    audit_trail = Column(JSON, default=list)  # Ring buffer, last 50 entries
    # Actions: created, viewed, updated, shared, downloaded, deleted

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    version = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    @validates("locker_id")
    def _locker_is_immutable(self, key, value):
        if self.locker_id is not None and value != self.locker_id:
            raise ValueError("A document cannot move to another locker")
        return value
