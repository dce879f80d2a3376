import base64
import json

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from langgraph.checkpoint.memory import MemorySaver

from backend.agents.extractor import RecordExtractionAgent
from backend.api.deps import get_draft_store, get_extractor, get_record_store, get_workflow
from backend.graph import build_submission_workflow
from backend.main import app
from tests.helpers import FakeChatModel, FakeExtractor, FakeGenaiClient


USER = {"user-id": "user-1"}
OTHER_USER = {"user-id": "user-2"}


@pytest_asyncio.fixture
async def client(drafts, records):
    workflow = build_submission_workflow(
        drafts=drafts,
        records=records,
        extractor=FakeExtractor(),
        checkpointer=MemorySaver(),
        autosave_delay=60,
    )
    app.dependency_overrides[get_draft_store] = lambda: drafts
    app.dependency_overrides[get_record_store] = lambda: records
    app.dependency_overrides[get_workflow] = lambda: workflow

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http

    app.dependency_overrides.clear()


def _use_extractor(agent):
    app.dependency_overrides[get_extractor] = lambda: agent


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_missing_user_header_is_rejected(client):
    response = await client.get("/api/records/drafts")

    assert response.status_code == 401
    assert response.json()["code"] == "authentication_required"


# =============================================================================
# Drafts
# =============================================================================

@pytest.mark.asyncio
async def test_draft_lifecycle(client, sample_record):
    assert (await client.get("/api/records/drafts", headers=USER)).status_code == 404

    saved = await client.post(
        "/api/records/drafts",
        json={"method": "manual", "record": sample_record, "isReviewed": True},
        headers=USER,
    )
    assert saved.status_code == 200
    assert saved.json()["id"].startswith("DRF_")

    loaded = (await client.get("/api/records/drafts", headers=USER)).json()
    assert loaded["submission_type"] == "manual"
    assert loaded["is_reviewed"] is True
    assert loaded["record_data"]["awards"][1]["name"] == "과학탐구대회"

    # Drafts belong to one user
    assert (await client.get("/api/records/drafts", headers=OTHER_USER)).status_code == 404

    deleted = await client.delete("/api/records/drafts", headers=USER)
    assert deleted.json() == {"success": True}
    assert (await client.get("/api/records/drafts", headers=USER)).status_code == 404


@pytest.mark.asyncio
async def test_draft_save_needs_method(client, sample_record):
    response = await client.post("/api/records/drafts", json={"record": sample_record}, headers=USER)

    assert response.status_code == 400
    assert response.json()["code"] == "validation_failed"


# =============================================================================
# Submit and reload
# =============================================================================

@pytest.mark.asyncio
async def test_submit_then_reload(client, sample_record):
    submitted = await client.post(
        "/api/records/submit",
        json={"method": "pdf", "record": sample_record},
        headers=USER,
    )
    assert submitted.status_code == 200
    record_id = submitted.json()["id"]
    assert record_id.startswith("REC_")

    latest = (await client.get("/api/records/latest", headers=USER)).json()
    assert latest["recordId"] == record_id
    assert latest["method"] == "pdf"
    assert len(latest["record"]["awards"]) == 2

    detail = await client.get(f"/api/records/{record_id}", headers=USER)
    assert detail.status_code == 200
    body = detail.json()
    assert body["grade_level"] == "high2"
    assert body["is_verified"] is False
    assert body["sections"]["generalSubjects"][0]["raw_score"] == 92.5


@pytest.mark.asyncio
async def test_record_is_hidden_from_other_users(client, sample_record):
    submitted = await client.post(
        "/api/records/submit", json={"method": "manual", "record": sample_record}, headers=USER
    )
    record_id = submitted.json()["id"]

    response = await client.get(f"/api/records/{record_id}", headers=OTHER_USER)
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"

    replaced = await client.post(
        "/api/records/submit",
        json={"method": "manual", "record": sample_record, "recordId": record_id},
        headers=OTHER_USER,
    )
    assert replaced.status_code == 404


@pytest.mark.asyncio
async def test_latest_without_record(client):
    response = await client.get("/api/records/latest", headers=USER)

    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"method": "manual", "record": {}},
    {"method": "manual"},
    {"record": {"awards": [{"year": 1, "name": "상"}]}},
    {"method": "fax", "record": {"awards": [{"year": 1, "name": "상"}]}},
])
async def test_submit_rejects_incomplete_payload(client, payload):
    response = await client.post("/api/records/submit", json=payload, headers=USER)

    assert response.status_code == 400
    assert response.json()["code"] == "validation_failed"


# =============================================================================
# Parse
# =============================================================================

@pytest.mark.asyncio
async def test_parse_returns_client_record(client):
    reply = json.dumps({"awards": [{"year": 1, "name": "교내 독서토론대회", "rank": "은상"}]}, ensure_ascii=False)
    genai_client = FakeGenaiClient()
    _use_extractor(RecordExtractionAgent(api_key="test-key", client=genai_client, llm=FakeChatModel(reply)))

    response = await client.post(
        "/api/records/parse",
        json={"files": [{"data": base64.b64encode(b"%PDF-1.7").decode(), "mimeType": "application/pdf"}]},
        headers=USER,
    )

    assert response.status_code == 200
    record = response.json()
    assert record["awards"][0]["name"] == "교내 독서토론대회"
    assert record["awards"][0]["id"]
    assert record["attendance"] == []
    assert genai_client.files.uploads[0]["mime_type"] == "application/pdf"


@pytest.mark.asyncio
async def test_parse_without_files(client):
    _use_extractor(RecordExtractionAgent(api_key="test-key", client=FakeGenaiClient(), llm=FakeChatModel("{}")))

    response = await client.post("/api/records/parse", json={"files": []}, headers=USER)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_parse_without_credentials(client):
    _use_extractor(RecordExtractionAgent(api_key=""))

    response = await client.post(
        "/api/records/parse",
        json={"files": [{"data": base64.b64encode(b"\x89PNG").decode(), "mimeType": "image/png"}]},
        headers=USER,
    )

    assert response.status_code == 503
    assert response.json()["code"] == "extraction_unavailable"


# =============================================================================
# Guided submissions
# =============================================================================

@pytest.mark.asyncio
async def test_guided_manual_submission(client, records):
    started = await client.post("/api/submissions", json={}, headers=USER)
    assert started.status_code == 200
    view = started.json()
    assert view["step"] == "method_select"
    sid = view["submission_id"]

    async def act(payload):
        response = await client.post(f"/api/submissions/{sid}/actions", json=payload, headers=USER)
        assert response.status_code == 200
        return response.json()

    await act({"type": "choose_method", "method": "manual"})
    view = await act({"type": "update_record", "record": {"readingActivities": [{"year": 2, "content": "데미안"}]}})
    assert view["record"]["readingActivities"][0]["content"] == "데미안"

    view = await act({"type": "next"})
    assert view["step"] == "review"

    view = await act({"type": "submit"})
    assert view["step"] == "done"

    stored = await records.load("user-1", view["record_id"])
    assert stored.sections["readingActivities"][0]["content"] == "데미안"

    again = await client.get(f"/api/submissions/{sid}", headers=USER)
    assert again.json()["step"] == "done"


@pytest.mark.asyncio
async def test_guided_submission_is_owner_scoped(client):
    view = (await client.post("/api/submissions", json={}, headers=USER)).json()

    response = await client.get(f"/api/submissions/{view['submission_id']}", headers=OTHER_USER)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_unknown_action_type_is_rejected(client):
    view = (await client.post("/api/submissions", json={}, headers=USER)).json()

    response = await client.post(
        f"/api/submissions/{view['submission_id']}/actions", json={"type": "teleport"}, headers=USER
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_edit_without_record(client):
    response = await client.post("/api/submissions", json={"mode": "edit"}, headers=USER)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_draft_saved_over_http_is_normalised(client):
    body = {"awards": [{"year": 1, "name": "모범상", "grade": "A+"}], "hobbies": [{"name": "바둑"}]}

    await client.post("/api/records/drafts", json={"method": "manual", "record": body}, headers=USER)
    stored = (await client.get("/api/records/drafts", headers=USER)).json()["record_data"]

    assert "hobbies" not in stored
    assert stored["attendance"] == []
    award = stored["awards"][0]
    assert award["id"]
    assert award["name"] == "모범상"
    assert "grade" not in award
