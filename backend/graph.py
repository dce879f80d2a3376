"""
LangGraph workflow for a guided record submission.

Flow:
  start → [draft_pending] → method_select → input_capture → (extracting) → review → submitting → END
                                  ↑               ↑                          │
                                  └──── back ─────┴────────── back ──────────┘

Human-in-the-Loop:
- draft_pending, method_select, input_capture and review halt with interrupt()
  and are resumed with one user action: Command(resume={"type": ..., ...})
- extracting and submitting run straight through; no action is accepted while
  they are in progress

Edit mode starts at input_capture with the latest committed record loaded,
the method fixed to manual, and commits against the existing record id.

Checkpointing:
- PostgresSaver when DATABASE_URL is set (MemorySaver otherwise)
- Each submission is one thread_id, so a submission survives between requests
"""

import asyncio
import base64
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from langgraph.graph import END, StateGraph
from langgraph.types import Command, interrupt

from backend.agents.extractor import RecordExtractionAgent, decode_documents
from backend.database import get_checkpointer
from backend.errors import (
    DraftPersistenceFailure,
    NotFoundOrUnauthorized,
    RecordIntakeError,
    ValidationFailed,
)
from backend.events import EventEmitter, EventType, SubmissionEvent
from backend.persistence import DraftStore, RecordStore
from backend.records.autosave import DraftAutosaver
from backend.records.methods import SubmissionMethod
from backend.records.sections import empty_record, normalize_record, record_has_rows
from backend.records.service import RecordSubmissionService
from backend.state import BUSY_STEPS, Step, SubmissionState
from backend.utils.id_generator import generate_submission_id

logger = logging.getLogger(__name__)


MODE_CREATE = "create"
MODE_EDIT = "edit"

START_NODE = "start"


def allowed_actions(state: Mapping[str, Any]) -> List[str]:
    """Actions the user may send at the current step."""
    step = state.get("step")
    is_edit = state.get("mode") == MODE_EDIT
    file_based = state.get("method") in (SubmissionMethod.PDF.value, SubmissionMethod.IMAGE.value)

    if step == Step.DRAFT_PENDING:
        return ["resume_draft", "discard_draft"]
    if step == Step.METHOD_SELECT:
        return ["choose_method"]
    if step == Step.INPUT_CAPTURE:
        actions = ["attach_files"] if file_based else ["update_record"]
        if not is_edit:
            actions += ["save_draft", "back"]
        return actions + ["next"]
    if step == Step.REVIEW:
        actions = ["update_record"]
        if not is_edit:
            actions.append("save_draft")
        return actions + ["back", "submit"]
    return []


@dataclass
class SubmissionView:
    """What a client needs to render a submission."""
    submission_id: str
    mode: str
    step: str
    method: Optional[str]
    record: Dict[str, List[Dict[str, Any]]]
    error: Optional[Dict[str, Any]] = None
    record_id: Optional[str] = None
    existing_record_id: Optional[str] = None
    draft: Optional[Dict[str, Any]] = None
    files: List[Dict[str, Any]] = field(default_factory=list)
    allowed_actions: List[str] = field(default_factory=list)

    @classmethod
    def from_state(cls, state: Mapping[str, Any]) -> "SubmissionView":
        draft = state.get("draft")
        return cls(
            submission_id=state["submission_id"],
            mode=state.get("mode", MODE_CREATE),
            step=state.get("step", START_NODE),
            method=state.get("method"),
            record=state.get("record") or empty_record(),
            error=state.get("error"),
            record_id=state.get("record_id"),
            existing_record_id=state.get("existing_record_id"),
            # The draft's content is only handed out once it is resumed
            draft={k: v for k, v in draft.items() if k != "record"} if draft else None,
            files=[
                {"name": item.get("name"), "mime_type": item.get("mime_type")}
                for item in state.get("files") or []
            ],
            allowed_actions=allowed_actions(state),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class SubmissionWorkflow:
    """
    Drives one user's submission through the graph.

    Calls for the same submission are serialised by a per-submission lock;
    a call that arrives while another one is running is refused.
    """

    def __init__(
        self,
        service: RecordSubmissionService,
        drafts: DraftStore,
        extractor: RecordExtractionAgent,
        emitter: Optional[EventEmitter] = None,
        checkpointer=None,
        autosaver: Optional[DraftAutosaver] = None,
    ):
        self.service = service
        self.drafts = drafts
        self.extractor = extractor
        self.emitter = emitter or EventEmitter()
        self.autosaver = autosaver
        if autosaver is not None:
            self.emitter.subscribe(autosaver.handle_event)
        self._locks: Dict[str, asyncio.Lock] = {}
        self._graph = self._build().compile(
            checkpointer=checkpointer if checkpointer is not None else get_checkpointer()
        )

    # -------------------------------------------------------------------------
    # Graph construction
    # -------------------------------------------------------------------------
    def _build(self) -> StateGraph:
        workflow = StateGraph(SubmissionState)

        workflow.add_node(START_NODE, self._start)
        workflow.add_node(Step.DRAFT_PENDING, self._awaiting(self._on_draft_pending))
        workflow.add_node(Step.METHOD_SELECT, self._awaiting(self._on_method_select))
        workflow.add_node(Step.INPUT_CAPTURE, self._awaiting(self._on_input_capture))
        workflow.add_node(Step.EXTRACTING, self._extracting)
        workflow.add_node(Step.REVIEW, self._awaiting(self._on_review))
        workflow.add_node(Step.SUBMITTING, self._submitting)

        workflow.set_entry_point(START_NODE)

        # Every node hands over to whatever step it left in the state
        routes = {
            Step.DRAFT_PENDING: Step.DRAFT_PENDING,
            Step.METHOD_SELECT: Step.METHOD_SELECT,
            Step.INPUT_CAPTURE: Step.INPUT_CAPTURE,
            Step.EXTRACTING: Step.EXTRACTING,
            Step.REVIEW: Step.REVIEW,
            Step.SUBMITTING: Step.SUBMITTING,
            END: END,
        }
        for node in (START_NODE, *routes):
            if node == END:
                continue
            workflow.add_conditional_edges(node, _route_by_step, routes)

        return workflow

    def _awaiting(self, handler):
        """Wrap an action handler into a node that halts for user input."""

        async def node(state: SubmissionState):
            # Nothing before interrupt(): the node re-runs from the top on resume
            action = interrupt({
                "step": state["step"],
                "allowed_actions": allowed_actions(state),
            })

            kind = action.get("type") if isinstance(action, Mapping) else None
            if kind not in allowed_actions(state):
                return _rejected(ValidationFailed(
                    f"Action {kind!r} is not available at step {state['step']!r}."
                ))

            try:
                update = await handler(state, kind, action)
            except ValidationFailed as e:
                return _rejected(e)

            update.setdefault("error", None)
            new_step = update.get("step", state["step"])
            if new_step != state["step"]:
                await self._emit(EventType.STEP_CHANGED, {**state, **update})
            return update

        return node

    # -------------------------------------------------------------------------
    # Nodes
    # -------------------------------------------------------------------------
    async def _start(self, state: SubmissionState):
        if state.get("mode") == MODE_EDIT:
            return {"step": Step.INPUT_CAPTURE}

        try:
            draft = await self.drafts.load(state["owner_id"])
        except DraftPersistenceFailure:
            logger.warning("Could not check for a draft", extra={"owner_id": state["owner_id"]}, exc_info=True)
            draft = None

        if draft is None:
            return {"step": Step.METHOD_SELECT}

        return {
            "step": Step.DRAFT_PENDING,
            "draft": {
                "id": draft.id,
                "method": draft.submission_type,
                "record": draft.record_data,
                "reviewed": draft.is_reviewed,
                "updated_at": draft.updated_at.isoformat(),
            },
        }

    async def _on_draft_pending(self, state: SubmissionState, kind: str, action: Mapping[str, Any]):
        draft = state.get("draft") or {}

        if kind == "discard_draft":
            await self.drafts.discard_quietly(state["owner_id"])
            return {
                "step": Step.METHOD_SELECT,
                "draft": None,
                "method": None,
                "record": empty_record(),
                "reviewed": False,
            }

        # resume_draft
        try:
            method = SubmissionMethod.parse(draft.get("method"))
        except ValidationFailed:
            logger.warning("Draft has an unknown method; starting fresh", extra={"owner_id": state["owner_id"]})
            return {"step": Step.METHOD_SELECT, "draft": None, "record": empty_record()}

        reviewed = bool(draft.get("reviewed"))
        resume_at = Step.REVIEW if (method.is_file_based or reviewed) else Step.INPUT_CAPTURE
        return {
            "step": resume_at,
            "draft": None,
            "method": method.value,
            "record": normalize_record(draft.get("record") or {}),
            "reviewed": reviewed,
        }

    async def _on_method_select(self, state: SubmissionState, kind: str, action: Mapping[str, Any]):
        method = SubmissionMethod.parse(action.get("method"))
        update: Dict[str, Any] = {"step": Step.INPUT_CAPTURE, "method": method.value}
        if method.value != state.get("method"):
            update["files"] = []
        return update

    async def _on_input_capture(self, state: SubmissionState, kind: str, action: Mapping[str, Any]):
        method = SubmissionMethod.parse(state.get("method"))

        if kind == "update_record":
            return await self._update_record(state, action)

        if kind == "attach_files":
            files = action.get("files")
            documents = decode_documents(files if isinstance(files, list) else [])
            if method is SubmissionMethod.PDF and (len(documents) != 1 or not documents[0].is_pdf):
                raise ValidationFailed("A PDF submission takes exactly one PDF file.")
            if method is SubmissionMethod.IMAGE and not all(doc.is_image for doc in documents):
                raise ValidationFailed("An image submission only takes image files.")
            return {
                "files": [
                    {
                        "data": base64.b64encode(doc.data).decode("ascii"),
                        "mime_type": doc.mime_type,
                        "name": doc.display_name,
                    }
                    for doc in documents
                ]
            }

        if kind == "save_draft":
            await self._emit(EventType.DRAFT_SAVE_REQUESTED, state)
            return {}

        if kind == "back":
            return {"step": Step.METHOD_SELECT}

        # next
        if method.is_file_based:
            if not state.get("files"):
                raise ValidationFailed("Attach at least one file before continuing.")
            return {"step": Step.EXTRACTING}
        if not record_has_rows(state.get("record") or {}):
            raise ValidationFailed("Enter at least one row before continuing.")
        return {"step": Step.REVIEW, "reviewed": True}

    async def _extracting(self, state: SubmissionState):
        try:
            documents = decode_documents(state.get("files") or [])
            record = await self.extractor.extract(documents)
        except RecordIntakeError as e:
            logger.warning(
                "Extraction failed",
                extra={"submission_id": state["submission_id"], "code": e.code},
            )
            update = {"step": Step.INPUT_CAPTURE, "error": e.to_dict()}
            await self._emit(EventType.EXTRACTION_FAILED, {**state, **update})
            await self._emit(EventType.STEP_CHANGED, {**state, **update})
            return update

        update = {"step": Step.REVIEW, "record": record, "reviewed": True, "error": None}
        merged = {**state, **update}
        await self._emit(EventType.STEP_CHANGED, merged)
        # A fresh extraction is worth keeping right away
        await self._emit(EventType.DRAFT_SAVE_REQUESTED, merged)
        return update

    async def _on_review(self, state: SubmissionState, kind: str, action: Mapping[str, Any]):
        if kind == "update_record":
            return await self._update_record(state, action)

        if kind == "save_draft":
            await self._emit(EventType.DRAFT_SAVE_REQUESTED, state)
            return {}

        if kind == "back":
            return {"step": Step.INPUT_CAPTURE, "reviewed": False}

        # submit
        if not record_has_rows(state.get("record") or {}):
            raise ValidationFailed("The record has no rows to submit.")
        await self._emit(EventType.SUBMITTING, state)
        return {"step": Step.SUBMITTING}

    async def _submitting(self, state: SubmissionState):
        try:
            record_id = await self.service.submit(
                owner_id=state["owner_id"],
                method=state.get("method"),
                record=state.get("record") or {},
                existing_record_id=state.get("existing_record_id"),
            )
        except RecordIntakeError as e:
            logger.warning(
                "Submission failed",
                extra={"submission_id": state["submission_id"], "code": e.code},
            )
            update = {"step": Step.REVIEW, "error": e.to_dict()}
            await self._emit(EventType.SUBMISSION_FAILED, {**state, **update})
            return update

        update = {"step": Step.DONE, "record_id": record_id, "files": [], "error": None}
        merged = {**state, **update}
        await self._emit(EventType.RECORD_COMMITTED, merged)
        await self._emit(EventType.STEP_CHANGED, merged)
        return update

    async def _update_record(self, state: SubmissionState, action: Mapping[str, Any]):
        record = action.get("record")
        if not isinstance(record, Mapping):
            raise ValidationFailed("update_record needs a record object.")
        update = {"record": normalize_record(record)}
        await self._emit(EventType.RECORD_CHANGED, {**state, **update})
        return update

    async def _emit(self, event_type: EventType, state: Mapping[str, Any]) -> None:
        await self.emitter.emit(SubmissionEvent(
            type=event_type,
            submission_id=state["submission_id"],
            owner_id=state["owner_id"],
            mode=state.get("mode", MODE_CREATE),
            step=state.get("step"),
            method=state.get("method"),
            record=state.get("record"),
            reviewed=bool(state.get("reviewed")),
            error=state.get("error"),
            record_id=state.get("record_id"),
        ))

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------
    async def start(
        self,
        owner_id: str,
        submission_id: Optional[str] = None,
        mode: str = MODE_CREATE,
    ) -> SubmissionView:
        """Begin a submission. Edit mode needs an existing record of the owner."""
        if mode not in (MODE_CREATE, MODE_EDIT):
            raise ValidationFailed(f"Unknown submission mode {mode!r}; expected create or edit.")

        submission_id = submission_id or generate_submission_id()
        config = _thread_config(submission_id)

        existing = await self._graph.aget_state(config)
        if existing.values:
            raise ValidationFailed("This submission has already been started.")

        initial: SubmissionState = {
            "owner_id": owner_id,
            "submission_id": submission_id,
            "mode": mode,
            "step": START_NODE,
            "method": None,
            "record": empty_record(),
            "files": [],
            "reviewed": False,
            "draft": None,
            "existing_record_id": None,
            "record_id": None,
            "error": None,
        }
        if mode == MODE_EDIT:
            editable = await self.service.load_for_edit(owner_id)
            if editable is None:
                raise NotFoundOrUnauthorized("There is no submitted record to edit.")
            initial.update(
                method=SubmissionMethod.MANUAL.value,
                record=editable.record,
                existing_record_id=editable.record_id,
            )

        async with self._lock(submission_id):
            await self._graph.ainvoke(initial, config)

        logger.info(
            "Submission started",
            extra={"owner_id": owner_id, "submission_id": submission_id, "mode": mode},
        )
        return await self.view(owner_id, submission_id)

    async def act(self, owner_id: str, submission_id: str, action: Mapping[str, Any]) -> SubmissionView:
        """Apply one user action. An action the step does not accept comes back as the view's error."""
        lock = self._lock(submission_id)
        if lock.locked():
            raise ValidationFailed("The submission is busy. Wait for the current step to finish.")

        async with lock:
            snapshot = await self._snapshot(owner_id, submission_id)
            config = _thread_config(submission_id)
            step = snapshot.values.get("step")

            if not snapshot.next:
                self._locks.pop(submission_id, None)
                raise ValidationFailed("This submission is already finished.")

            if step in BUSY_STEPS:
                # Only reachable when a previous process stopped mid-step
                logger.warning(
                    "Continuing an interrupted step",
                    extra={"submission_id": submission_id, "step": step},
                )
                await self._graph.ainvoke(None, config)
            else:
                await self._graph.ainvoke(Command(resume=dict(action)), config)

        view = await self.view(owner_id, submission_id)
        if view.step == Step.DONE:
            self._locks.pop(submission_id, None)
        return view

    async def view(self, owner_id: str, submission_id: str) -> SubmissionView:
        snapshot = await self._snapshot(owner_id, submission_id)
        return SubmissionView.from_state(snapshot.values)

    async def _snapshot(self, owner_id: str, submission_id: str):
        snapshot = await self._graph.aget_state(_thread_config(submission_id))
        if not snapshot.values or snapshot.values.get("owner_id") != owner_id:
            raise NotFoundOrUnauthorized("Submission not found.")
        return snapshot

    def _lock(self, submission_id: str) -> asyncio.Lock:
        lock = self._locks.get(submission_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[submission_id] = lock
        return lock


# --- Routing Logic ---

def _route_by_step(state: SubmissionState) -> str:
    step = state.get("step")
    if step == Step.DONE:
        return END
    return step


def _rejected(error: RecordIntakeError) -> Dict[str, Any]:
    """State update for a refused action: keep the step, attach the error."""
    return {"error": error.to_dict()}


def _thread_config(submission_id: str) -> Dict[str, Any]:
    return {"configurable": {"thread_id": submission_id}}


# --- Wiring ---

_workflow: Optional[SubmissionWorkflow] = None


def build_submission_workflow(
    drafts: Optional[DraftStore] = None,
    records: Optional[RecordStore] = None,
    extractor: Optional[RecordExtractionAgent] = None,
    checkpointer=None,
    autosave_delay: Optional[float] = None,
) -> SubmissionWorkflow:
    """Assemble a workflow with draft autosave subscribed to its events."""
    drafts = drafts or DraftStore()
    records = records or RecordStore()
    return SubmissionWorkflow(
        service=RecordSubmissionService(records=records, drafts=drafts),
        drafts=drafts,
        extractor=extractor or RecordExtractionAgent(),
        checkpointer=checkpointer,
        autosaver=DraftAutosaver(drafts, delay=autosave_delay),
    )


def get_submission_workflow() -> SubmissionWorkflow:
    """
    Process-wide workflow.

    Created on first use so it picks up the checkpointer set up at startup.
    """
    global _workflow
    if _workflow is None:
        _workflow = build_submission_workflow()
    return _workflow


def reset_submission_workflow() -> None:
    global _workflow
    _workflow = None


async def shutdown_submission_workflow() -> None:
    """Write pending autosaves, then drop the process-wide workflow."""
    global _workflow
    if _workflow is not None and _workflow.autosaver is not None:
        await _workflow.autosaver.flush_all()
    _workflow = None
