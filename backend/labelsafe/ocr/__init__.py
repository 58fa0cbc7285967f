"""
Vision OCR collaborator: transcribes label images; returns OcrResult, never a safety verdict.
"""
from .ocr_result import OcrResult, build_full_label_text, parse_ocr_response
from .vision_client import VisionOcrClient

__all__ = [
    "OcrResult",
    "build_full_label_text",
    "parse_ocr_response",
    "VisionOcrClient",
]
