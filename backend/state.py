"""
State TypedDict for the guided submission graph.
"""

from typing import Any, Dict, List, Optional, TypedDict


class Step:
    DRAFT_PENDING = "draft_pending"
    METHOD_SELECT = "method_select"
    INPUT_CAPTURE = "input_capture"
    EXTRACTING = "extracting"
    REVIEW = "review"
    SUBMITTING = "submitting"
    DONE = "done"


# Steps during which the graph is running and no user action is accepted
BUSY_STEPS = (Step.EXTRACTING, Step.SUBMITTING)


class SubmissionState(TypedDict, total=False):
    # Identity
    owner_id: str
    submission_id: str
    mode: str                               # "create" or "edit"

    # Flow position
    step: str
    method: Optional[str]                   # manual, pdf, image
    error: Optional[Dict[str, Any]]         # {"code", "message"} of the last failure

    # Content
    record: Dict[str, List[Dict[str, Any]]] # Client-shaped SchoolRecord
    files: List[Dict[str, Any]]             # [{"data": base64, "mime_type", "name"}]
    reviewed: bool                          # Record has been through review at least once

    # Draft offered on start (draft_pending only)
    draft: Optional[Dict[str, Any]]

    # Commit targets / result
    existing_record_id: Optional[str]       # Edit mode
    record_id: Optional[str]                # Set once committed
