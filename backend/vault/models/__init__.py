from vault.models.locker import DocumentLocker
from vault.models.document import LockerDocument
from vault.models.requirement import DocumentRequirement

__all__ = ["DocumentLocker", "LockerDocument", "DocumentRequirement"]
