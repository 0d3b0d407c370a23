"""
Shared route dependencies — caller identity, request metadata and services.
"""
from typing import Dict, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from vault.database import get_db
from vault.exceptions import ValidationError
from vault.services.locker_service import LockerService
from vault.services.requirement_validator import RequirementCatalog, RequirementValidator


def get_locker_service(db: Session = Depends(get_db)) -> LockerService:
    return LockerService(db)


def get_requirement_validator(db: Session = Depends(get_db)) -> RequirementValidator:
    return RequirementValidator(RequirementCatalog(db))


def current_user(user_id: Optional[str] = Header(None, alias="user-id")) -> str:
    """Caller identity, already authenticated upstream."""
    if not user_id:
        raise ValidationError("user-id header is required")
    return user_id


def request_info(request: Request) -> Dict[str, str]:
    return {
        "ip": request.client.host if request.client else "0.0.0.0",
        "user_agent": request.headers.get("user-agent", "Unknown")[:256],
    }
