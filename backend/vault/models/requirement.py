"""
Document Requirement Model — Per-service RequirementSet.
Owned by the service catalog; the vault only reads it.
"""
from datetime import datetime

from sqlalchemy import Column, String, Integer, DateTime, JSON, Text

from vault.database import Base


class DocumentRequirement(Base):
    __tablename__ = "document_requirements"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    service_id = Column(String(64), unique=True, nullable=False, index=True)

    documents = Column(JSON, default=list)          # [{id, name, category, priority, is_required, alternatives}]
    validation_rules = Column(JSON, default=dict)   # {total_required, minimum_threshold, category_/priority_requirements}

    instructions = Column(
        Text,
        default="Please review the document requirements and select which documents you currently have.",
    )

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
