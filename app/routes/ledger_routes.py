from datetime import date
from typing import Literal, Optional
from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.core.clock import Clock
from app.database import get_db
from app.dependencies import get_blob_store, get_clock, get_identity
from app.models.identity import Identity
from app.models.ledger_entry import EntryKind
from app.repositories.ledger_repository import EntrySort
from app.schemas.common_schemas import ApiResponse
from app.schemas.ledger_schemas import (
    AttachmentResponse,
    EntryCreate,
    EntryDetailResponse,
    EntryResponse,
    EntryUpdate,
)
from app.services.attachment_service import AttachmentService
from app.services.ledger_service import LedgerService
from app.storage.blob_store import BlobStore
from app.utils.pagination import build_meta, parse_pagination

router = APIRouter()


def get_ledger_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    blob_store: BlobStore = Depends(get_blob_store),
) -> LedgerService:
    return LedgerService(db, clock, blob_store)


def get_attachment_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    blob_store: BlobStore = Depends(get_blob_store),
) -> AttachmentService:
    return AttachmentService(db, clock, blob_store)


@router.get("", response_model=ApiResponse[list[EntryResponse]])
def list_entries(
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    search: Optional[str] = Query(None, description="Description (partial match)"),
    kind: Optional[EntryKind] = Query(None),
    start_date: Optional[date] = Query(None, description="Created on or after (inclusive)"),
    end_date: Optional[date] = Query(None, description="Created on or before (whole day)"),
    tenant_id: Optional[int] = Query(None, description="Honored for SUPER_ADMIN only"),
    sort_by: EntrySort = Query(EntrySort.CREATED_AT),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    status_filter: Optional[Literal["ACTIVE", "ARCHIVED"]] = Query(None, alias="status"),
    identity: Identity = Depends(get_identity),
    service: LedgerService = Depends(get_ledger_service),
):
    """
    List ledger entries with optional filters.

    - Non SUPER_ADMIN callers only see their own tenant; tenant_id is ignored for them
    - status=ARCHIVED lists archived entries for SUPER_ADMIN and is ignored otherwise
    """
    page_request = parse_pagination(page, limit)
    entries, total = service.list_entries(
        identity,
        page_request,
        tenant_id=tenant_id,
        search=search,
        kind=kind,
        start_date=start_date,
        end_date=end_date,
        sort_by=sort_by,
        descending=sort_order == "desc",
        archived=status_filter == "ARCHIVED",
    )
    return ApiResponse(
        data=[service.to_response(entry) for entry in entries],
        meta=build_meta(total, page_request),
    )


@router.post("", response_model=ApiResponse[EntryDetailResponse], status_code=status.HTTP_201_CREATED)
def create_entry(
    entry_data: EntryCreate,
    identity: Identity = Depends(get_identity),
    service: LedgerService = Depends(get_ledger_service),
):
    """
    Create a ledger entry, optionally itemized.

    - Entry and items are written in one transaction
    - total_amount must equal the sum of item subtotals when items are given
    - SUPER_ADMIN may target another tenant via tenant_id
    """
    entry = service.create_entry(identity, entry_data)
    return ApiResponse(data=service.to_detail(entry), message="Ledger entry created successfully")


@router.get("/{entry_id}", response_model=ApiResponse[EntryDetailResponse])
def get_entry(
    entry_id: int,
    identity: Identity = Depends(get_identity),
    service: LedgerService = Depends(get_ledger_service),
):
    """
    Get an entry with its items and presigned attachment URLs.

    - Returns 404 if the entry doesn't exist or belongs to another tenant
    """
    return ApiResponse(data=service.to_detail(service.get_entry(identity, entry_id)))


@router.put("/{entry_id}", response_model=ApiResponse[EntryDetailResponse])
def update_entry(
    entry_id: int,
    entry_data: EntryUpdate,
    identity: Identity = Depends(get_identity),
    service: LedgerService = Depends(get_ledger_service),
):
    """
    Update an entry.

    - STAFF may only edit their own entries, within 24 hours of creation
    - items, when given, replace the existing items
    """
    entry = service.update_entry(identity, entry_id, entry_data)
    return ApiResponse(data=service.to_detail(entry), message="Ledger entry updated successfully")


@router.delete("/{entry_id}", response_model=ApiResponse[None])
def archive_entry(
    entry_id: int,
    identity: Identity = Depends(get_identity),
    service: LedgerService = Depends(get_ledger_service),
):
    """
    Archive (soft delete) an entry.

    - STAFF may only archive their own entries, within 24 hours of creation
    """
    service.archive_entry(identity, entry_id)
    return ApiResponse(message="Ledger entry archived successfully")


@router.post("/{entry_id}/restore", response_model=ApiResponse[EntryDetailResponse])
def restore_entry(
    entry_id: int,
    identity: Identity = Depends(get_identity),
    service: LedgerService = Depends(get_ledger_service),
):
    """
    Restore an archived entry.

    - **Requires SUPER_ADMIN**
    """
    entry = service.restore_entry(identity, entry_id)
    return ApiResponse(data=service.to_detail(entry), message="Ledger entry restored successfully")


@router.post(
    "/{entry_id}/attachments",
    response_model=ApiResponse[AttachmentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def upload_attachment(
    entry_id: int,
    file: UploadFile = File(...),
    identity: Identity = Depends(get_identity),
    service: AttachmentService = Depends(get_attachment_service),
):
    """
    Attach a receipt to an entry.

    - JPEG, PNG, WebP or PDF, max 10MB
    """
    data = await file.read()
    attachment = service.upload(identity, entry_id, file.filename or "upload", file.content_type, data)
    return ApiResponse(data=attachment, message="Attachment uploaded successfully")


@router.delete("/{entry_id}/attachments/{attachment_id}", response_model=ApiResponse[None])
def delete_attachment(
    entry_id: int,
    attachment_id: int,
    identity: Identity = Depends(get_identity),
    service: AttachmentService = Depends(get_attachment_service),
):
    service.delete(identity, entry_id, attachment_id)
    return ApiResponse(message="Attachment deleted successfully")
