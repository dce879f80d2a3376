"""
Record Extraction Agent - turns uploaded record documents into a SchoolRecord.

Pipeline:
1. Upload - every file goes to the Gemini File API concurrently
2. Extract - one structured-extraction call referencing all uploaded files
3. Parse  - strict JSON parse + validation against the section registry
4. Enrich - a fresh client id on every row

Each step fails with a typed extraction error; nothing is retried here.
"""

import asyncio
import json
import logging
import mimetypes
import os
import re
import tempfile
from typing import Any, Dict, List, Optional, Sequence

from google import genai
from google.genai import types as genai_types
from langchain_core.messages import HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from pydantic import ValidationError

from backend.agents.extractor.prompts import EXTRACTION_PROMPT
from backend.agents.extractor.schemas import ExtractedRecord, UploadedDocument
from backend.errors import (
    EmptyResponse,
    ExtractionAuthFailed,
    ExtractionError,
    ExtractionQuotaExceeded,
    ExtractionUnavailable,
    MalformedResponse,
    ValidationFailed,
)
from backend.records.sections import ROW_ID_FIELD, SchoolRecord
from backend.settings import settings
from backend.utils.id_generator import generate_row_id

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?```")


class RecordExtractionAgent:
    """
    Wraps the external document-understanding service.

    The Gemini client and chat model are created lazily so the agent can be
    constructed without credentials; ``extract`` then reports the service as
    unavailable.
    """

    def __init__(
        self,
        model_name: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Any = None,
        llm: Any = None,
    ):
        """
        Args:
            model_name: Gemini model (default: settings.GEMINI_MODEL)
            api_key: Gemini API key (default: settings.GEMINI_API_KEY)
            timeout: Seconds allowed for upload + extraction together
            client: Pre-built google-genai client (used for file uploads)
            llm: Pre-built chat model (used for the extraction call)
        """
        self.model_name = model_name or settings.GEMINI_MODEL
        self.api_key = settings.GEMINI_API_KEY if api_key is None else api_key
        self.timeout = timeout or settings.EXTRACTION_TIMEOUT_SECONDS
        self._client = client
        self._llm = llm

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) or (self._client is not None and self._llm is not None)

    def _get_client(self):
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def _get_llm(self):
        if self._llm is None:
            self._llm = ChatGoogleGenerativeAI(
                model=self.model_name,
                temperature=0.0,  # Deterministic transcription
                google_api_key=self.api_key,
                timeout=self.timeout,
                max_retries=0,  # Retries are a user decision
            )
        return self._llm

    # -------------------------------------------------------------------------
    # PUBLIC API
    # -------------------------------------------------------------------------
    async def extract(self, documents: Sequence[UploadedDocument]) -> SchoolRecord:
        """Run the whole pipeline for one attempt."""
        if not documents:
            raise ValidationFailed("At least one file is required for extraction.")
        if not self.is_configured:
            raise ExtractionUnavailable("Document extraction is not configured (GEMINI_API_KEY is missing).")

        logger.info("Extraction started", extra={"files": len(documents), "model": self.model_name})
        try:
            response_text = await asyncio.wait_for(self._run(documents), timeout=self.timeout)
        except ExtractionError:
            raise
        except asyncio.TimeoutError as e:
            logger.warning("Extraction timed out after %.0fs", self.timeout)
            raise ExtractionUnavailable("The extraction service did not answer in time.") from e
        except Exception as e:
            logger.warning("Extraction service call failed", exc_info=True)
            raise classify_service_error(e) from e

        record = self.parse_response(response_text)
        logger.info(
            "Extraction finished",
            extra={"rows": sum(len(rows) for rows in record.values())},
        )
        return record

    # -------------------------------------------------------------------------
    # STEP 1 + 2: UPLOAD AND EXTRACT
    # -------------------------------------------------------------------------
    async def _run(self, documents: Sequence[UploadedDocument]) -> str:
        # Local copies exist only inside this block, whatever happens during upload
        with tempfile.TemporaryDirectory(prefix="record-extract-") as workdir:
            uploads = [
                asyncio.create_task(self._upload(workdir, index, document))
                for index, document in enumerate(documents)
            ]
            try:
                file_parts = await asyncio.gather(*uploads)
            except BaseException:
                # No upload may outlive the attempt that started it
                for task in uploads:
                    task.cancel()
                await asyncio.gather(*uploads, return_exceptions=True)
                raise

        message = HumanMessage(content=[*file_parts, {"type": "text", "text": EXTRACTION_PROMPT}])
        response = await self._get_llm().ainvoke([message])
        return self._extract_text_content(response.content)

    async def _upload(self, workdir: str, index: int, document: UploadedDocument) -> Dict[str, Any]:
        extension = ".pdf" if document.is_pdf else (mimetypes.guess_extension(document.mime_type) or ".img")
        path = os.path.join(workdir, f"school-record-{index}{extension}")
        with open(path, "wb") as handle:
            handle.write(document.data)

        uploaded = await self._get_client().aio.files.upload(
            file=path,
            config=genai_types.UploadFileConfig(
                mime_type=document.mime_type,
                display_name=document.display_name or f"school-record-{index}",
            ),
        )
        return {
            "type": "media",
            "file_uri": uploaded.uri,
            "mime_type": uploaded.mime_type or document.mime_type,
        }

    def _extract_text_content(self, content) -> str:
        """Extract text content from various response formats."""
        if content is None:
            return ""
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            text_parts = []
            for part in content:
                if isinstance(part, str):
                    text_parts.append(part)
                elif isinstance(part, dict) and "text" in part:
                    text_parts.append(part["text"])
            return "".join(text_parts)
        return str(content)

    # -------------------------------------------------------------------------
    # STEP 3 + 4: PARSE AND ENRICH
    # -------------------------------------------------------------------------
    @staticmethod
    def parse_response(response_text: str) -> SchoolRecord:
        """
        Strictly parse the service's text into a SchoolRecord.

        A surrounding ```json fence is tolerated; anything else that is not
        the expected JSON object is a MalformedResponse.
        """
        text = (response_text or "").strip()
        if not text:
            raise EmptyResponse()

        fenced = _CODE_FENCE.search(text)
        json_str = (fenced.group(1) if fenced else text).strip()
        if not json_str:
            raise EmptyResponse()

        try:
            payload = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise MalformedResponse("The extraction result is not valid JSON.") from e

        if not isinstance(payload, dict):
            raise MalformedResponse("The extraction result is not a JSON object.")

        try:
            sections = ExtractedRecord.model_validate(payload).model_dump()
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(item) for item in first["loc"])
            raise MalformedResponse(
                f"The extraction result does not match the record schema ({location}: {first['msg']})."
            ) from e

        return {
            key: [{ROW_ID_FIELD: generate_row_id(), **row} for row in rows]
            for key, rows in sections.items()
        }


def classify_service_error(exc: BaseException) -> ExtractionError:
    """Map a Gemini SDK / transport error onto the extraction taxonomy."""
    status = getattr(exc, "code", None) or getattr(exc, "status_code", None)
    text = str(exc).lower()

    if status == 429 or "429" in text or "quota" in text or "resource_exhausted" in text:
        return ExtractionQuotaExceeded()
    if (
        status in (401, 403)
        or "api key not valid" in text
        or "permission_denied" in text
        or "unauthenticated" in text
    ):
        return ExtractionAuthFailed()
    return ExtractionUnavailable(f"The extraction service failed ({exc.__class__.__name__}).")


__all__: List[str] = ["RecordExtractionAgent", "classify_service_error"]
