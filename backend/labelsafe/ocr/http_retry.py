"""
HTTP POST with retries and exponential backoff for the vision OCR endpoint.
"""
import logging
import time
from typing import Optional, Tuple

import requests

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_BACKOFF = 1.0
# Worth another attempt: rate limited or upstream trouble
RETRY_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def post_with_retries(
    url: str,
    json_body: dict,
    headers: Optional[dict] = None,
    timeout: int = 60,
    max_retries: int = DEFAULT_MAX_RETRIES,
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
    session: Optional[requests.Session] = None,
) -> Tuple[Optional[requests.Response], Optional[str]]:
    """
    POST with retries and exponential backoff on timeout/connection errors and retryable status codes.
    Returns (response, None) on success, (None, error_message) on failure.
    Non-retryable HTTP errors (400, 401, ...) are returned as failures immediately.
    """
    http = session or requests
    last_error: Optional[str] = None
    for attempt in range(max_retries):
        try:
            resp = http.post(url, json=json_body, headers=headers or {}, timeout=timeout)
            if resp.status_code < 400:
                return (resp, None)
            last_error = f"HTTP {resp.status_code}: {resp.text[:200]}"
            if resp.status_code not in RETRY_STATUS_CODES:
                logger.warning("VISION_OCR request rejected url=%s error=%s", url[:60], last_error)
                return (None, last_error)
            logger.warning(
                "VISION_OCR retry attempt=%s/%s url=%s error=%s",
                attempt + 1, max_retries, url[:60], last_error,
            )
        except requests.Timeout as e:
            last_error = f"Read timed out: {e}"
            logger.warning(
                "VISION_OCR retry attempt=%s/%s url=%s error=%s",
                attempt + 1, max_retries, url[:60], last_error,
            )
        except requests.RequestException as e:
            last_error = f"{type(e).__name__}: {e}"
            logger.warning(
                "VISION_OCR retry attempt=%s/%s url=%s error=%s",
                attempt + 1, max_retries, url[:60], last_error,
            )
        if attempt < max_retries - 1:
            delay = initial_backoff * (2 ** attempt)
            logger.info("VISION_OCR backoff %.1fs before retry", delay)
            time.sleep(delay)
    return (None, last_error)
