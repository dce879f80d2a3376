from backend.agents.extractor.agent import RecordExtractionAgent, classify_service_error
from backend.agents.extractor.schemas import UploadedDocument, decode_documents

__all__ = ["RecordExtractionAgent", "UploadedDocument", "classify_service_error", "decode_documents"]
