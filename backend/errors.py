"""
Error taxonomy for record intake.

Every error carries a stable ``code`` (used by clients and in the submission
state) and the HTTP status the API answers with.
"""

from typing import Optional


class RecordIntakeError(Exception):
    code: str = "internal_error"
    status_code: int = 500
    default_message: str = "Unexpected error."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class AuthenticationRequired(RecordIntakeError):
    code = "authentication_required"
    status_code = 401
    default_message = "Login required."


class ValidationFailed(RecordIntakeError):
    code = "validation_failed"
    status_code = 400
    default_message = "Request is missing required data."


class NotFoundOrUnauthorized(RecordIntakeError):
    code = "not_found"
    status_code = 404
    default_message = "Record not found."


class PersistenceFailure(RecordIntakeError):
    code = "persistence_failure"
    status_code = 500
    default_message = "Saving the record failed. Please try again."


class DraftPersistenceFailure(RecordIntakeError):
    code = "draft_persistence_failure"
    status_code = 500
    default_message = "Saving the draft failed."


# --- Extraction service ---

class ExtractionError(RecordIntakeError):
    code = "extraction_failed"
    status_code = 502
    default_message = "Document extraction failed. Please try again."


class ExtractionUnavailable(ExtractionError):
    code = "extraction_unavailable"
    status_code = 503
    default_message = "Document extraction is not available."


class EmptyResponse(ExtractionError):
    code = "empty_response"
    default_message = "The extraction service returned an empty response."


class MalformedResponse(ExtractionError):
    code = "malformed_response"
    default_message = "The extraction service returned data in an unexpected format."


class ExtractionAuthFailed(ExtractionError):
    code = "extraction_auth_failed"
    default_message = "The extraction service rejected our credentials."


class ExtractionQuotaExceeded(ExtractionError):
    code = "extraction_quota_exceeded"
    status_code = 429
    default_message = "Extraction quota exceeded. Please try again later."
