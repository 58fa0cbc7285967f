"""
LabelSafe FastAPI application.

Endpoints:
    GET  /                                Health check
    POST /analyze                         Label text + profiles -> per-profile verdicts
    POST /analyze/ocr                     OCR payload (or image) + profiles -> per-profile verdicts
    POST /sessions                        Start a scan session
    POST /sessions/{session_id}/attempts  Record one attempt (manual-review streak, escalation prompt)
    POST /sessions/{session_id}/item      Set confirmed / guessed item name (recomputes fingerprint)
    POST /sessions/{session_id}/end       Complete or abandon a session
    POST /overrides                       Save a user correction for an item
    POST /overrides/apply                 Apply a stored correction to a scan summary
    POST /alerts                          Raise an admin alert when allergens are involved
"""
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from typing import Dict, List, Optional
import logging
from dotenv import load_dotenv
from pathlib import Path

# Load env vars
load_dotenv(Path(__file__).parent / ".env")

# Logger
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from labelsafe.config import get_scan_store_backend, log_config
from labelsafe.models.analysis import AnalysisResult
from labelsafe.ocr.ocr_result import OcrResult
from labelsafe.ocr.vision_client import VisionOcrClient
from labelsafe.rate_limiter import FixedWindowRateLimiter
from labelsafe.results.alerts import build_admin_alert
from labelsafe.results.fingerprint import compute_item_fingerprint
from labelsafe.results.merge import apply_user_override_to_result, as_summary, is_user_corrected
from labelsafe.results.pipeline import analyze_ocr_result, analyze_text, summarize_analysis
from labelsafe.storage.base import SESSION_COMPLETED, SESSION_END_STATES, ScanStore
from labelsafe.storage.json_store import JsonScanStore


# --- Request Models ---
class AnalyzeRequest(BaseModel):
    raw_text: str = ""
    profiles: List[Dict] = []
    inferred_risks: Optional[List[str]] = None
    user_id: Optional[str] = None
    session_id: Optional[str] = None


class OcrAnalyzeRequest(BaseModel):
    ocr: Optional[Dict] = None
    image_base64: Optional[str] = None
    profiles: List[Dict] = []
    inferred_risks: Optional[List[str]] = None
    user_id: Optional[str] = None
    session_id: Optional[str] = None


class SessionCreateRequest(BaseModel):
    user_id: str
    guessed_name: Optional[str] = None


class AttemptRequest(BaseModel):
    user_id: str
    is_manual_review: bool = False


class ItemNameRequest(BaseModel):
    user_id: str
    confirmed_name: Optional[str] = None
    guessed_name: Optional[str] = None


class SessionEndRequest(BaseModel):
    user_id: str
    status: str = SESSION_COMPLETED


class OverrideRequest(BaseModel):
    user_id: str
    payload: Dict
    session_id: Optional[str] = None
    confirmed_name: Optional[str] = None
    guessed_name: Optional[str] = None
    before: Optional[Dict] = None


class ApplyOverrideRequest(BaseModel):
    user_id: str
    result: Dict
    confirmed_name: Optional[str] = None
    guessed_name: Optional[str] = None


class AlertRequest(BaseModel):
    user_id: str
    session_id: str
    result: Dict
    profile_ids: List[str] = []


# --- Helper Functions ---

def build_scan_store() -> ScanStore:
    """SCAN_STORE=supabase uses Supabase when configured; everything else uses the JSON file."""
    if get_scan_store_backend() == "supabase":
        from labelsafe.storage.supabase_store import SupabaseScanStore
        try:
            return SupabaseScanStore.from_env()
        except ValueError as e:
            logger.warning("SCAN_STORE supabase unavailable (%s); using JSON store", e)
    return JsonScanStore()


def _analysis_response(result: AnalysisResult, store: ScanStore, user_id: Optional[str], session_id: Optional[str]) -> dict:
    """Analysis dict plus the session counters when the call belongs to a session."""
    body = result.to_dict()
    if user_id and session_id:
        counters = store.record_attempt(user_id, session_id, result.requires_manual_review)
        if counters is not None:
            body["session"] = counters.to_dict()
    return body


def create_app(
    store: Optional[ScanStore] = None,
    rate_limiter: Optional[FixedWindowRateLimiter] = None,
    ocr_client: Optional[VisionOcrClient] = None,
) -> FastAPI:
    """Collaborators are injected; defaults come from the environment."""
    store = store or build_scan_store()
    limiter = rate_limiter or FixedWindowRateLimiter()
    ocr = ocr_client or VisionOcrClient()

    app = FastAPI(title="LabelSafe Label Safety API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.store = store
    app.state.rate_limiter = limiter
    app.state.ocr_client = ocr

    def rate_limited(request: Request) -> None:
        key = request.client.host if request.client else "anonymous"
        if not limiter.allow(key):
            retry_after = limiter.retry_after(key)
            logger.warning("RATE_LIMIT exceeded client=%s retry_after=%.0fs", key, retry_after)
            raise HTTPException(
                status_code=429,
                detail="Too many requests. Please wait and try again.",
                headers={"Retry-After": str(int(retry_after) + 1)},
            )

    @app.get("/")
    def health():
        return {"status": "ok", "service": "labelsafe"}

    @app.post("/analyze", dependencies=[Depends(rate_limited)])
    def analyze(request: AnalyzeRequest):
        logger.info("Analyze request chars=%d profiles=%d", len(request.raw_text), len(request.profiles))
        try:
            result = analyze_text(request.raw_text, request.profiles, inferred_risks=request.inferred_risks)
            return _analysis_response(result, store, request.user_id, request.session_id)
        except Exception as e:
            logger.error("Analyze failed: %s", e, exc_info=True)
            raise HTTPException(status_code=500, detail=str(e))

    @app.post("/analyze/ocr", dependencies=[Depends(rate_limited)])
    def analyze_ocr(request: OcrAnalyzeRequest):
        try:
            if request.ocr is not None:
                ocr_result = OcrResult.from_dict(request.ocr)
            elif request.image_base64:
                ocr_result = ocr.extract_text(request.image_base64)
            else:
                raise HTTPException(status_code=400, detail="Provide either 'ocr' or 'image_base64'")
            logger.info(
                "OCR analyze request type=%s confidence=%s profiles=%d",
                ocr_result.type, ocr_result.confidence, len(request.profiles),
            )
            result = analyze_ocr_result(ocr_result, request.profiles, inferred_risks=request.inferred_risks)
            return _analysis_response(result, store, request.user_id, request.session_id)
        except HTTPException:
            raise
        except Exception as e:
            logger.error("OCR analyze failed: %s", e, exc_info=True)
            raise HTTPException(status_code=500, detail=str(e))

    @app.post("/sessions")
    def create_session(request: SessionCreateRequest):
        session = store.create_session(request.user_id, guessed_name=request.guessed_name)
        if session is None:
            raise HTTPException(status_code=503, detail="Could not create scan session")
        return session

    @app.post("/sessions/{session_id}/attempts")
    def record_attempt(session_id: str, request: AttemptRequest):
        counters = store.record_attempt(request.user_id, session_id, request.is_manual_review)
        if counters is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return counters.to_dict()

    @app.post("/sessions/{session_id}/item")
    def set_item_name(session_id: str, request: ItemNameRequest):
        session = store.set_item_name(
            request.user_id, session_id,
            confirmed_name=request.confirmed_name, guessed_name=request.guessed_name,
        )
        if session is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return session

    @app.post("/sessions/{session_id}/end")
    def end_session(session_id: str, request: SessionEndRequest):
        if request.status not in SESSION_END_STATES:
            raise HTTPException(status_code=400, detail=f"status must be one of {list(SESSION_END_STATES)}")
        if not store.end_session(request.user_id, session_id, request.status):
            raise HTTPException(status_code=404, detail="Session not found")
        return {"session_id": session_id, "status": request.status}

    @app.post("/overrides")
    def save_override(request: OverrideRequest):
        fingerprint = compute_item_fingerprint(request.confirmed_name, request.guessed_name)
        if fingerprint is None:
            raise HTTPException(status_code=400, detail="An item name is required to save a correction")
        payload = as_summary(request.payload)
        key = store.save_override(request.user_id, fingerprint, payload)
        if key is None:
            raise HTTPException(status_code=503, detail="Could not save correction")
        correction_id = None
        if request.session_id:
            correction_id = store.log_correction(
                request.user_id, request.session_id, fingerprint, as_summary(request.before), payload,
            )
        logger.info("OVERRIDE saved key=%s correction=%s", key, correction_id)
        return {"key": key, "item_fingerprint": fingerprint, "correction_id": correction_id}

    @app.post("/overrides/apply")
    def apply_override(request: ApplyOverrideRequest):
        fingerprint = compute_item_fingerprint(request.confirmed_name, request.guessed_name)
        base = as_summary(request.result)
        override = store.get_override(request.user_id, fingerprint)
        if override is None:
            return {"applied": False, "item_fingerprint": fingerprint, "result": base.to_dict()}
        merged = apply_user_override_to_result(base, override)
        return {
            "applied": True,
            "item_fingerprint": fingerprint,
            "user_corrected": is_user_corrected(merged),
            "result": merged.to_dict(),
        }

    @app.post("/alerts")
    def create_alert(request: AlertRequest):
        # Accept either the compact summary or a full analysis result
        if "results" in request.result:
            summary = summarize_analysis(AnalysisResult.from_dict(request.result))
        else:
            summary = as_summary(request.result)
        alert = build_admin_alert(request.session_id, summary, request.profile_ids)
        if alert is None:
            return {"created": False, "alert_id": None}
        alert_id = store.create_admin_alert(request.user_id, alert)
        return {"created": alert_id is not None, "alert_id": alert_id, "alert": alert.to_dict()}

    return app


log_config()
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app:app", host="0.0.0.0", port=8000, reload=True)
