"""
Document Locker Model — One PIN-protected locker per user.
Holds the lockout counters, the bounded access log and the ordered set of
active document ids.
"""
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Integer, DateTime, JSON, Boolean

from vault.database import Base


class DocumentLocker(Base):
    __tablename__ = "lockers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), unique=True, nullable=False, index=True)

    pin_hash = Column(String(100), nullable=False)  # bcrypt

    # Security settings
    max_failed_attempts = Column(Integer, nullable=False, default=3)
    lockout_duration_minutes = Column(Integer, nullable=False, default=15)
    session_timeout_minutes = Column(Integer, nullable=False, default=30)

    # Failed attempts tracking
    failed_attempt_count = Column(Integer, nullable=False, default=0)
    last_failed_attempt_at = Column(DateTime, nullable=True)
    locked_until = Column(DateTime, nullable=True)

    document_ids = Column(JSON, default=list)   # Active documents only, upload order
    access_log = Column(JSON, default=list)     # Ring buffer, last 100 entries
    # Actions: unlock, lock, view_document, upload_document, delete_document,
    #          failed_attempt, change_pin

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    last_accessed = Column(DateTime, default=datetime.utcnow)

    version = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    @property
    def security_settings(self) -> dict:
        return {
            "max_failed_attempts": self.max_failed_attempts,
            "lockout_duration_minutes": self.lockout_duration_minutes,
            "session_timeout_minutes": self.session_timeout_minutes,
        }
