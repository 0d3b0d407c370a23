"""
Locker Routes — PIN-gated document locker endpoints.
Handles: creation, unlock, upload, view/download/delete, OCR correction,
cross-validation, stats and profile auto-fill.
"""
from typing import Dict, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import FileResponse

from vault.routes.deps import current_user, get_locker_service, request_info
from vault.schemas.schemas import (
    ChangePinRequest, CreateLockerRequest, CreateLockerResponse, CrossValidationReport,
    DocumentDetail, DocumentSummary, DocumentUpdateRequest, ExtractedDataUpdateRequest,
    LockerExistsResponse, LockerStats, PinRequest, SyncFieldRequest, SyncFieldResponse,
    UnlockResponse, UploadResponse,
)
from vault.services.locker_service import LockerService

router = APIRouter(prefix="/api/locker", tags=["Document Locker"])


@router.post("/create", response_model=CreateLockerResponse, status_code=201)
def create_locker(
    payload: CreateLockerRequest,
    user_id: str = Depends(current_user),
    info: Dict = Depends(request_info),
    service: LockerService = Depends(get_locker_service),
):
    """Create the caller's locker with a 4-6 digit PIN."""
    locker = service.create_locker(user_id, payload.pin, payload.confirm_pin, info)
    return CreateLockerResponse(locker_id=locker.id, created_at=locker.created_at)


@router.get("/exists", response_model=LockerExistsResponse)
def locker_exists(
    user_id: str = Depends(current_user),
    service: LockerService = Depends(get_locker_service),
):
    return LockerExistsResponse(**service.check_exists(user_id))


@router.post("/unlock", response_model=UnlockResponse)
def unlock_locker(
    payload: PinRequest,
    user_id: str = Depends(current_user),
    info: Dict = Depends(request_info),
    service: LockerService = Depends(get_locker_service),
):
    outcome = service.unlock(user_id, payload.pin, info)
    return UnlockResponse(ok=outcome.ok, attempts_remaining=outcome.attempts_remaining)


@router.post("/documents")
def list_documents(
    payload: PinRequest,
    user_id: str = Depends(current_user),
    info: Dict = Depends(request_info),
    service: LockerService = Depends(get_locker_service),
):
    """Active documents, without file paths or encryption keys."""
    documents = service.list_documents(user_id, payload.pin, info)
    return {
        "success": True,
        "data": [DocumentSummary.model_validate(doc).model_dump(mode="json") for doc in documents],
    }


@router.post("/upload", response_model=UploadResponse, status_code=201)
async def upload_document(
    pin: str = Form(...),
    document_type: str = Form(...),
    name: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    document: UploadFile = File(...),
    user_id: str = Depends(current_user),
    info: Dict = Depends(request_info),
    service: LockerService = Depends(get_locker_service),
):
    """Upload a document; OCR problems degrade extracted_data instead of failing."""
    contents = await document.read()
    created = await service.upload(
        user_id=user_id,
        pin=pin,
        document_type=document_type,
        filename=document.filename or "document",
        mime_type=document.content_type or "application/octet-stream",
        contents=contents,
        name=name,
        tags=tags,
        request_info=info,
    )
    return UploadResponse(
        document_id=created.id,
        name=created.name,
        document_type=created.document_type,
        extracted_data=created.extracted_data or {},
        validation_results=created.validation_results,
        created_at=created.created_at,
    )


@router.post("/cross-validate", response_model=CrossValidationReport)
def cross_validate(
    payload: PinRequest,
    user_id: str = Depends(current_user),
    info: Dict = Depends(request_info),
    service: LockerService = Depends(get_locker_service),
):
    return service.cross_validate(user_id, payload.pin, info)


@router.post("/stats", response_model=LockerStats)
def locker_stats(
    payload: PinRequest,
    user_id: str = Depends(current_user),
    info: Dict = Depends(request_info),
    service: LockerService = Depends(get_locker_service),
):
    return service.stats(user_id, payload.pin, info)


@router.post("/profile-data")
def profile_data(
    payload: PinRequest,
    user_id: str = Depends(current_user),
    info: Dict = Depends(request_info),
    service: LockerService = Depends(get_locker_service),
):
    """Aggregated field values for form auto-fill."""
    return {"success": True, "data": service.profile_data(user_id, payload.pin, info)}


@router.put("/sync-field", response_model=SyncFieldResponse)
def sync_field(
    payload: SyncFieldRequest,
    user_id: str = Depends(current_user),
    info: Dict = Depends(request_info),
    service: LockerService = Depends(get_locker_service),
):
    count, updated = service.sync_field(
        user_id, payload.pin, payload.field_name, payload.field_value, payload.source_document_id, info,
    )
    return SyncFieldResponse(
        message=f"Synchronized {payload.field_name} across {count} documents",
        updated_count=count,
        updated_documents=updated,
    )


@router.put("/change-pin")
def change_pin(
    payload: ChangePinRequest,
    user_id: str = Depends(current_user),
    info: Dict = Depends(request_info),
    service: LockerService = Depends(get_locker_service),
):
    service.change_pin(user_id, payload.current_pin, payload.new_pin, payload.confirm_new_pin, info)
    return {"success": True, "message": "PIN changed successfully"}


@router.post("/documents/{document_id}", response_model=DocumentDetail)
def get_document(
    document_id: str,
    payload: PinRequest,
    user_id: str = Depends(current_user),
    info: Dict = Depends(request_info),
    service: LockerService = Depends(get_locker_service),
):
    return service.get_document(user_id, payload.pin, document_id, info)


@router.post("/documents/{document_id}/download")
def download_document(
    document_id: str,
    payload: PinRequest,
    user_id: str = Depends(current_user),
    info: Dict = Depends(request_info),
    service: LockerService = Depends(get_locker_service),
):
    download = service.download_document(user_id, payload.pin, document_id, info)
    return FileResponse(download.path, filename=download.filename, media_type=download.mime_type)


@router.delete("/documents/{document_id}")
def delete_document(
    document_id: str,
    payload: PinRequest,
    user_id: str = Depends(current_user),
    info: Dict = Depends(request_info),
    service: LockerService = Depends(get_locker_service),
):
    service.delete_document(user_id, payload.pin, document_id, info)
    return {"success": True, "message": "Document deleted successfully"}


@router.put("/documents/{document_id}", response_model=DocumentDetail)
def update_document(
    document_id: str,
    payload: DocumentUpdateRequest,
    user_id: str = Depends(current_user),
    info: Dict = Depends(request_info),
    service: LockerService = Depends(get_locker_service),
):
    return service.update_document(
        user_id, payload.pin, document_id, name=payload.name, tags=payload.tags, notes=payload.notes, request_info=info,
    )


@router.put("/documents/{document_id}/extracted-data", response_model=DocumentDetail)
def correct_extracted_data(
    document_id: str,
    payload: ExtractedDataUpdateRequest,
    user_id: str = Depends(current_user),
    info: Dict = Depends(request_info),
    service: LockerService = Depends(get_locker_service),
):
    """Manual correction of OCR output; marks the data verified and re-scores the locker."""
    return service.correct_extracted_data(user_id, payload.pin, document_id, payload.extracted_data, info)
