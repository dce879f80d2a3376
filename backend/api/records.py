"""
Records REST API

Extraction, commit, reload-for-edit and the draft endpoints.
All endpoints require authentication and filter by user_id; no owner is ever
taken from the request body.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from backend.agents.extractor import RecordExtractionAgent, decode_documents
from backend.api.deps import (
    get_current_user_id,
    get_draft_store,
    get_extractor,
    get_submission_service,
)
from backend.errors import NotFoundOrUnauthorized, ValidationFailed
from backend.persistence import DraftStore
from backend.records.methods import SubmissionMethod
from backend.records.sections import normalize_record
from backend.records.service import RecordSubmissionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/records", tags=["records"])


# --- Pydantic Schemas ---

class FilePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data: str  # base64
    mime_type: str = Field(alias="mimeType")
    name: Optional[str] = None


class ParseRequest(BaseModel):
    files: List[FilePayload] = Field(default_factory=list)


class SubmitRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    method: Optional[str] = None
    record: Optional[Dict[str, Any]] = None
    record_id: Optional[str] = Field(default=None, alias="recordId")


class IdResponse(BaseModel):
    id: str


class DraftSaveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    method: Optional[str] = None
    record: Optional[Dict[str, Any]] = None
    is_reviewed: bool = Field(default=False, alias="isReviewed")


class DraftResponse(BaseModel):
    id: str
    user_id: str
    submission_type: str
    record_data: Dict[str, Any]
    is_reviewed: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EditableRecordResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    record_id: str = Field(serialization_alias="recordId")
    method: str
    record: Dict[str, List[Dict[str, Any]]]


class RecordDetailResponse(BaseModel):
    id: str
    user_id: str
    submission_type: str
    grade_level: str
    is_verified: bool
    created_at: datetime
    updated_at: datetime
    sections: Dict[str, List[Dict[str, Any]]]


class SuccessResponse(BaseModel):
    success: bool = True


# --- Endpoints ---

@router.post("/parse")
async def parse_record(
    body: ParseRequest,
    user_id: str = Depends(get_current_user_id),
    extractor: RecordExtractionAgent = Depends(get_extractor),
) -> Dict[str, List[Dict[str, Any]]]:
    """Run document extraction and return a client-shaped SchoolRecord."""
    documents = decode_documents([item.model_dump() for item in body.files])
    logger.info("Parse requested", extra={"owner_id": user_id, "files": len(documents)})
    return await extractor.extract(documents)


@router.post("/submit", response_model=IdResponse)
async def submit_record(
    body: SubmitRequest,
    user_id: str = Depends(get_current_user_id),
    service: RecordSubmissionService = Depends(get_submission_service),
):
    """Commit a record (or replace an existing one when recordId is given)."""
    if not body.method or body.record is None:
        raise ValidationFailed("Both method and record are required.")
    record_id = await service.submit(
        owner_id=user_id,
        method=body.method,
        record=body.record,
        existing_record_id=body.record_id,
    )
    return IdResponse(id=record_id)


@router.get("/latest", response_model=EditableRecordResponse, response_model_by_alias=True)
async def get_latest_record(
    user_id: str = Depends(get_current_user_id),
    service: RecordSubmissionService = Depends(get_submission_service),
):
    """Reload the most recent record for editing (fresh row ids)."""
    editable = await service.load_for_edit(user_id)
    if editable is None:
        raise NotFoundOrUnauthorized("No submitted record yet.")
    return EditableRecordResponse(
        record_id=editable.record_id,
        method=editable.method.value,
        record=editable.record,
    )


# --- Drafts (declared before /{record_id}) ---

@router.get("/drafts", response_model=DraftResponse)
async def get_draft(
    user_id: str = Depends(get_current_user_id),
    drafts: DraftStore = Depends(get_draft_store),
):
    draft = await drafts.load(user_id)
    if draft is None:
        raise NotFoundOrUnauthorized("No saved draft.")
    return draft


@router.post("/drafts", response_model=IdResponse)
async def save_draft(
    body: DraftSaveRequest,
    user_id: str = Depends(get_current_user_id),
    drafts: DraftStore = Depends(get_draft_store),
):
    if not body.method or body.record is None:
        raise ValidationFailed("Both method and record are required.")
    method = SubmissionMethod.parse(body.method)
    draft_id = await drafts.save(
        user_id,
        method.value,
        normalize_record(body.record),
        reviewed=body.is_reviewed,
    )
    return IdResponse(id=draft_id)


@router.delete("/drafts", response_model=SuccessResponse)
async def delete_draft(
    user_id: str = Depends(get_current_user_id),
    drafts: DraftStore = Depends(get_draft_store),
):
    await drafts.discard(user_id)
    return SuccessResponse()


@router.get("/{record_id}", response_model=RecordDetailResponse)
async def get_record(
    record_id: str,
    user_id: str = Depends(get_current_user_id),
    service: RecordSubmissionService = Depends(get_submission_service),
):
    """Owner-scoped read of one committed record (storage shape)."""
    stored = await service.load_record(user_id, record_id)
    record = stored.record
    return RecordDetailResponse(
        id=record.id,
        user_id=record.user_id,
        submission_type=record.submission_type,
        grade_level=record.grade_level,
        is_verified=record.is_verified,
        created_at=record.created_at,
        updated_at=record.updated_at,
        sections=stored.sections,
    )
