"""
Event bus for the guided submission flow.

The state machine publishes what happened (step changed, record changed,
submit started, ...); subscribers such as the draft autosaver react to it.
Handlers may be plain functions or coroutines and run in subscription order.
"""
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

logger = logging.getLogger(__name__)


class EventType(Enum):
    STEP_CHANGED = "step_changed"
    RECORD_CHANGED = "record_changed"
    DRAFT_SAVE_REQUESTED = "draft_save_requested"  # Manual save, skips the debounce
    EXTRACTION_FAILED = "extraction_failed"
    SUBMITTING = "submitting"
    RECORD_COMMITTED = "record_committed"
    SUBMISSION_FAILED = "submission_failed"


@dataclass
class SubmissionEvent:
    """Represents a single event from a submission."""
    type: EventType
    submission_id: str
    owner_id: str
    mode: str = "create"
    step: Optional[str] = None
    method: Optional[str] = None
    record: Optional[Dict[str, Any]] = None  # Snapshot for RECORD_CHANGED / DRAFT_SAVE_REQUESTED
    reviewed: bool = False
    error: Optional[Dict[str, Any]] = None
    record_id: Optional[str] = None

    @property
    def is_edit(self) -> bool:
        return self.mode == "edit"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: Dict[str, Any] = {
            "type": self.type.value,
            "submission_id": self.submission_id,
            "mode": self.mode,
        }
        if self.step:
            result["step"] = self.step
        if self.method:
            result["method"] = self.method
        if self.error is not None:
            result["error"] = self.error
        if self.record_id:
            result["record_id"] = self.record_id
        return result


EventHandler = Callable[[SubmissionEvent], Union[None, Awaitable[None]]]


class EventEmitter:
    """In-process publish/subscribe for submission events."""

    def __init__(self):
        self._handlers: List[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    async def emit(self, event: SubmissionEvent) -> None:
        logger.debug("Submission event", extra=event.to_dict())
        for handler in list(self._handlers):
            result = handler(event)
            if inspect.isawaitable(result):
                await result
