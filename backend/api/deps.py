"""
Shared FastAPI dependencies for the records and submissions routers.
"""

from typing import Optional

from fastapi import Depends, Header

from backend.agents.extractor import RecordExtractionAgent
from backend.errors import AuthenticationRequired
from backend.graph import SubmissionWorkflow, get_submission_workflow
from backend.persistence import DraftStore, RecordStore
from backend.records.service import RecordSubmissionService


# --- Temporary: Get user_id from header (stand-in for the real auth layer) ---

def get_current_user_id(
    user_id: Optional[str] = Header(None, alias="user-id", description="Authenticated user ID"),
) -> str:
    """
    Returns the user ID passed in the header.
    The login mechanism in front of this service is responsible for setting it.
    """
    if not user_id or not user_id.strip():
        raise AuthenticationRequired()
    return user_id.strip()


def get_draft_store() -> DraftStore:
    return DraftStore()


def get_record_store() -> RecordStore:
    return RecordStore()


def get_submission_service(
    records: RecordStore = Depends(get_record_store),
    drafts: DraftStore = Depends(get_draft_store),
) -> RecordSubmissionService:
    return RecordSubmissionService(records=records, drafts=drafts)


_extractor: Optional[RecordExtractionAgent] = None


def get_extractor() -> RecordExtractionAgent:
    global _extractor
    if _extractor is None:
        _extractor = RecordExtractionAgent()
    return _extractor


def get_workflow() -> SubmissionWorkflow:
    return get_submission_workflow()
