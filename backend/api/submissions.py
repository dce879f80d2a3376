"""
Submissions REST API

Guided, resumable submissions driven by the submission graph. A client
starts a submission, then posts one action at a time and renders the
returned view.
"""

from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from backend.api.deps import get_current_user_id, get_workflow
from backend.graph import SubmissionWorkflow

router = APIRouter(prefix="/api/submissions", tags=["submissions"])


# --- Pydantic Schemas ---

class SubmissionCreate(BaseModel):
    mode: Literal["create", "edit"] = "create"


ActionType = Literal[
    "resume_draft",
    "discard_draft",
    "choose_method",
    "update_record",
    "attach_files",
    "save_draft",
    "next",
    "back",
    "submit",
]


class SubmissionAction(BaseModel):
    """One user action; only the fields the action needs are read."""
    model_config = ConfigDict(extra="ignore")

    type: ActionType
    method: Optional[str] = None
    record: Optional[Dict[str, Any]] = None
    files: Optional[List[Dict[str, Any]]] = None


class SubmissionResponse(BaseModel):
    submission_id: str
    mode: str
    step: str
    method: Optional[str]
    record: Dict[str, List[Dict[str, Any]]]
    error: Optional[Dict[str, Any]] = None
    record_id: Optional[str] = None
    existing_record_id: Optional[str] = None
    draft: Optional[Dict[str, Any]] = None
    files: List[Dict[str, Any]] = Field(default_factory=list)
    allowed_actions: List[str] = Field(default_factory=list)


# --- Endpoints ---

@router.post("", response_model=SubmissionResponse)
async def start_submission(
    body: SubmissionCreate,
    user_id: str = Depends(get_current_user_id),
    workflow: SubmissionWorkflow = Depends(get_workflow),
):
    """Start a submission; edit mode loads the latest committed record."""
    view = await workflow.start(user_id, mode=body.mode)
    return view.to_dict()


@router.get("/{submission_id}", response_model=SubmissionResponse)
async def get_submission(
    submission_id: str,
    user_id: str = Depends(get_current_user_id),
    workflow: SubmissionWorkflow = Depends(get_workflow),
):
    view = await workflow.view(user_id, submission_id)
    return view.to_dict()


@router.post("/{submission_id}/actions", response_model=SubmissionResponse)
async def apply_action(
    submission_id: str,
    body: SubmissionAction,
    user_id: str = Depends(get_current_user_id),
    workflow: SubmissionWorkflow = Depends(get_workflow),
):
    """Apply one action. A refused action comes back as the view's error."""
    action = body.model_dump(exclude_none=True)
    view = await workflow.act(user_id, submission_id, action)
    return view.to_dict()
