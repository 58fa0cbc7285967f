"""
HTTP surface: FastAPI TestClient against an app wired with a temp JSON store,
a deterministic rate limiter and an unconfigured OCR client.
"""
import pytest
from fastapi.testclient import TestClient

from app import create_app
from labelsafe.ocr.vision_client import VisionOcrClient
from labelsafe.rate_limiter import FixedWindowRateLimiter
from labelsafe.storage import JsonScanStore

LABEL = "Ingredients: wheat flour, sugar, milk, soy lecithin. Contains: wheat, milk, soy."
ALLERGIC = {"id": "p1", "name": "Alex", "allergies": ["Milk", "Wheat"]}
UNREADABLE = {"type": "unreadable", "raw_text": "", "confidence": "low", "notes": "blurry"}


def _client(tmp_path, max_requests=1000):
    app = create_app(
        store=JsonScanStore(tmp_path / "scan_store.json"),
        rate_limiter=FixedWindowRateLimiter(max_requests=max_requests, window_seconds=60),
        ocr_client=VisionOcrClient(api_key=""),
    )
    return TestClient(app)


@pytest.fixture
def client(tmp_path):
    return _client(tmp_path)


def _new_session(client, **extra):
    resp = client.post("/sessions", json={"user_id": "u1", **extra})
    assert resp.status_code == 200
    return resp.json()["session_id"]


def test_health(client):
    assert client.get("/").json() == {"status": "ok", "service": "labelsafe"}


class TestAnalyze:
    def test_analyze_text(self, client):
        resp = client.post("/analyze", json={"raw_text": LABEL, "profiles": [ALLERGIC, {"id": "p2"}]})
        assert resp.status_code == 200
        body = resp.json()
        assert [r["status"] for r in body["results"]] == ["unsafe", "safe"]
        assert body["results"][0]["safe"] is False
        assert "session" not in body

    def test_analyze_records_session_attempt(self, client):
        sid = _new_session(client)
        body = client.post(
            "/analyze", json={"raw_text": LABEL, "profiles": [ALLERGIC], "user_id": "u1", "session_id": sid},
        ).json()
        assert body["session"]["attempt_count"] == 1
        assert body["session"]["manual_review_count"] == 0

    def test_inferred_risks(self, client):
        body = client.post(
            "/analyze", json={"raw_text": "Ingredients: rice", "profiles": [{"id": "p"}], "inferred_risks": ["sesame"]},
        ).json()
        assert body["results"][0]["status"] == "unsafe"


class TestAnalyzeOcr:
    def test_unreadable_is_manual_review(self, client):
        body = client.post("/analyze/ocr", json={"ocr": UNREADABLE, "profiles": [ALLERGIC]}).json()
        assert body["results"][0]["status"] == "manual_review"
        assert body["results"][0]["safe"] is False
        assert body["confidence"] == 0.0
        assert "blurry" in body["warnings"]

    def test_readable_ocr(self, client):
        ocr = {"type": "ingredient_label", "raw_text": "Ingredients: sugar, cocoa", "contains_statement": "milk",
               "confidence": "high"}
        body = client.post("/analyze/ocr", json={"ocr": ocr, "profiles": [ALLERGIC]}).json()
        assert body["results"][0]["status"] == "unsafe"
        assert body["raw_extracted_text"].endswith("Contains: milk")

    def test_image_without_configured_ocr(self, client):
        body = client.post("/analyze/ocr", json={"image_base64": "aGVsbG8=", "profiles": [ALLERGIC]}).json()
        assert body["results"][0]["status"] == "manual_review"

    def test_missing_input(self, client):
        assert client.post("/analyze/ocr", json={"profiles": [ALLERGIC]}).status_code == 400

    def test_escalation_prompt_after_three_manual_reviews(self, client):
        sid = _new_session(client)
        payload = {"ocr": UNREADABLE, "profiles": [ALLERGIC], "user_id": "u1", "session_id": sid}
        shown = [client.post("/analyze/ocr", json=payload).json()["session"]["should_show_escalation"] for _ in range(4)]
        assert shown == [False, False, True, False]


class TestSessions:
    def test_create_with_guessed_name(self, client):
        body = client.post("/sessions", json={"user_id": "u1", "guessed_name": "Pad Thai"}).json()
        assert body["item_fingerprint"] == "fp:pad-thai"
        assert body["status"] == "in_progress"

    def test_attempts(self, client):
        sid = _new_session(client)
        body = client.post(f"/sessions/{sid}/attempts", json={"user_id": "u1", "is_manual_review": True}).json()
        assert body["attempt_count"] == 1
        assert body["manual_review_count"] == 1

    def test_attempts_missing_session(self, client):
        resp = client.post("/sessions/nope/attempts", json={"user_id": "u1"})
        assert resp.status_code == 404

    def test_set_item(self, client):
        sid = _new_session(client)
        body = client.post(f"/sessions/{sid}/item", json={"user_id": "u1", "confirmed_name": "Green Curry"}).json()
        assert body["item_fingerprint"] == "fp:green-curry"

    def test_end(self, client):
        sid = _new_session(client)
        resp = client.post(f"/sessions/{sid}/end", json={"user_id": "u1", "status": "abandoned"})
        assert resp.json() == {"session_id": sid, "status": "abandoned"}
        assert client.post(f"/sessions/{sid}/end", json={"user_id": "u1", "status": "paused"}).status_code == 400
        assert client.post("/sessions/nope/end", json={"user_id": "u1"}).status_code == 404


class TestOverrides:
    OVERRIDE = {"allergens_detected": [{"allergen_id": "Milk", "severity": 1.0, "matches": ["whey"]}]}

    def test_save_and_apply(self, client):
        sid = _new_session(client)
        saved = client.post("/overrides", json={
            "user_id": "u1", "payload": self.OVERRIDE, "confirmed_name": "Pad Thai", "session_id": sid,
        }).json()
        assert saved["item_fingerprint"] == "fp:pad-thai"
        assert saved["key"] == "u1/overrides/u1_fp:pad-thai"
        assert saved["correction_id"]

        applied = client.post("/overrides/apply", json={
            "user_id": "u1", "result": {"dietary_flags": ["Vegan"], "confidence": 0.4}, "guessed_name": "pad thai",
        }).json()
        assert applied["applied"] is True
        assert applied["user_corrected"] is True
        assert applied["result"]["allergens_detected"][0]["allergen_id"] == "Milk"
        assert applied["result"]["dietary_flags"] == ["Vegan", "user_corrected"]

    def test_save_requires_name(self, client):
        resp = client.post("/overrides", json={"user_id": "u1", "payload": self.OVERRIDE})
        assert resp.status_code == 400

    def test_apply_without_override(self, client):
        body = client.post("/overrides/apply", json={"user_id": "u1", "result": {}, "guessed_name": "soup"}).json()
        assert body["applied"] is False
        assert body["item_fingerprint"] == "fp:soup"


class TestAlerts:
    def test_alert_from_full_analysis(self, client):
        analysis = client.post("/analyze", json={"raw_text": LABEL, "profiles": [ALLERGIC]}).json()
        body = client.post("/alerts", json={
            "user_id": "u1", "session_id": "s1", "result": analysis, "profile_ids": ["p1"],
        }).json()
        assert body["created"] is True
        assert body["alert"]["allergens"] == ["Wheat", "Milk"]
        assert body["alert"]["summary"] == "Contains Wheat and Milk"

    def test_no_alert_without_allergens(self, client):
        body = client.post("/alerts", json={
            "user_id": "u1", "session_id": "s1", "result": {"dietary_flags": ["Vegan"], "confidence": 1.0},
        }).json()
        assert body == {"created": False, "alert_id": None}


def test_rate_limit(tmp_path):
    client = _client(tmp_path, max_requests=2)
    payload = {"raw_text": "Ingredients: rice", "profiles": []}
    codes = [client.post("/analyze", json=payload).status_code for _ in range(3)]
    assert codes == [200, 200, 429]
    resp = client.post("/analyze", json=payload)
    assert int(resp.headers["Retry-After"]) >= 1
