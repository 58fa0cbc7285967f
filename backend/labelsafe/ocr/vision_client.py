"""
Vision OCR client: OpenAI-compatible chat completions endpoint, image in, label text out.
The model is asked to transcribe only; all safety decisions stay in the deterministic engine.
"""
import logging
from typing import Optional

import requests

from labelsafe.config import (
    VISION_OCR_TIMEOUT,
    get_vision_ocr_api_key,
    get_vision_ocr_model,
    get_vision_ocr_url,
)
from labelsafe.ocr.http_retry import post_with_retries
from labelsafe.ocr.ocr_result import OcrResult, parse_ocr_response

logger = logging.getLogger(__name__)

OCR_SYSTEM_PROMPT = """You are an OCR system for food product labels. Your ONLY job is to read text from the image.

INSTRUCTIONS:
1. Read ALL text from the ingredient label, "Contains:", and "May contain:" sections.
2. Return the text EXACTLY as printed on the label. Do not interpret, summarize, or modify it.
3. If the image shows a restaurant menu instead of a product label, extract each dish name with its description.
4. If you cannot read the text clearly, return what you can read and note any unclear parts.

OUTPUT FORMAT (JSON only):
{
  "type": "ingredient_label" | "menu" | "unreadable",
  "raw_text": "The complete text from the ingredient/allergen sections, exactly as printed",
  "contains_statement": "Text from any 'Contains:' line, or null",
  "may_contain_statement": "Text from any 'May contain:' line, or null",
  "confidence": "high" | "medium" | "low",
  "notes": "Any issues with readability, or null"
}

IMPORTANT:
- Do NOT analyze allergens or safety. Just read the text.
- Preserve original spelling, punctuation, and formatting.
- Include sub-ingredients in parentheses exactly as shown.
- If the image is not a food label or menu, set type to "unreadable"."""

_USER_PROMPT = "Read all ingredient and allergen text from this food label image. Return JSON only."


class VisionOcrClient:
    """
    Never raises on network or parse trouble: failures come back as an unreadable OcrResult
    with the error in notes, which the pipeline routes to manual review.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        self._api_key = api_key if api_key is not None else get_vision_ocr_api_key()
        self._url = url or get_vision_ocr_url()
        self._model = model or get_vision_ocr_model()
        self._timeout = timeout or VISION_OCR_TIMEOUT
        self._session = session

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def _build_request(self, base64_image: str) -> dict:
        return {
            "model": self._model,
            "messages": [
                {"role": "system", "content": OCR_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": _USER_PROMPT},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:image/jpeg;base64,{base64_image}", "detail": "high"},
                        },
                    ],
                },
            ],
            "max_tokens": 1500,
            "temperature": 0.1,
        }

    def extract_text(self, base64_image: str) -> OcrResult:
        if not base64_image:
            return OcrResult.unreadable("No image provided")
        if not self.configured:
            logger.warning("VISION_OCR api key not configured")
            return OcrResult.unreadable("Vision OCR is not configured")

        resp, err = post_with_retries(
            self._url,
            self._build_request(base64_image),
            headers={"Authorization": f"Bearer {self._api_key}"},
            timeout=self._timeout,
            session=self._session,
        )
        if resp is None:
            logger.warning("VISION_OCR failed model=%s error=%s", self._model, err)
            return OcrResult.unreadable(f"Vision OCR request failed: {err}")

        try:
            data = resp.json()
        except ValueError:
            logger.warning("VISION_OCR non-JSON response status=%s", resp.status_code)
            return OcrResult.unreadable("Vision OCR returned a non-JSON response")

        choices = (data.get("choices") or []) if isinstance(data, dict) else []
        content = None
        if choices and isinstance(choices[0], dict):
            content = (choices[0].get("message") or {}).get("content")
        result = parse_ocr_response(content)
        logger.info(
            "VISION_OCR type=%s confidence=%s chars=%d",
            result.type, result.confidence, len(result.raw_text),
        )
        return result
