"""
OCR Service — Google Gemini document transcription feeding the field parsers.
Preprocesses the image, reads back verbatim text with a confidence score and
hands it to the per-type parser. Extraction is fail-soft: any OCR problem
yields a degraded record instead of an error.
"""
import asyncio
import io
import json
from typing import Optional, Tuple

import google.generativeai as genai
from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError
from pydantic import ValidationError as SchemaValidationError

from vault.config import Settings, get_settings
from vault.exceptions import ExtractionFailure
from vault.extraction.parsers import parse_document_text
from vault.schemas.extracted import DocumentType, ExtractedFields, build_extracted_data
from vault.utils.logger import get_logger

logger = get_logger("ocr")

OCR_DISABLED_TEXT = "OCR disabled - please verify data manually"
NOT_AN_IMAGE_TEXT = "PDF document - OCR not performed"
OCR_FAILED_TEXT = "OCR failed - please verify data manually"
OCR_TIMEOUT_TEXT = "OCR timed out - please verify data manually"

_model = None


def get_ocr_model(settings: Optional[Settings] = None):
    """Lazily initialize the Gemini model; None when no API key is configured."""
    global _model
    settings = settings or get_settings()
    if _model is None and settings.GEMINI_API_KEY:
        genai.configure(api_key=settings.GEMINI_API_KEY)
        _model = genai.GenerativeModel(
            model_name=settings.GEMINI_MODEL,
            generation_config={
                "temperature": 0,
                "top_p": 1,
                "top_k": 32,
                "max_output_tokens": 4096,
            },
        )
    return _model


# Transcription only: field parsing happens locally so it stays testable
OCR_PROMPT = """You are a deterministic OCR engine for Indian identity documents and certificates
(Aadhaar, PAN, Voter ID, Ration Card, Driving License, Passport, and government certificates).

STRICT RULES:
1. Transcribe ALL visible text EXACTLY as printed, line by line, keeping the original line breaks.
2. Keep labels and their values on the same line as on the document (e.g. "DOB: 15/06/1990").
3. DO NOT translate, correct, reorder, summarize or guess any text.
4. Return ONLY raw JSON. No markdown, no explanation.

RESPONSE FORMAT:
{"text": "<full transcription>", "confidence": <integer 0-100, how legible the document was>}"""


def preprocess_image(contents: bytes, max_dimension: int = 2000) -> bytes:
    """Grayscale, bound the longer side (never enlarging), stretch contrast and sharpen; returns PNG bytes."""
    try:
        with Image.open(io.BytesIO(contents)) as image:
            image = ImageOps.exif_transpose(image)
            image = image.convert("L")
            if max(image.size) > max_dimension:
                image.thumbnail((max_dimension, max_dimension), Image.LANCZOS)
            image = ImageOps.autocontrast(image)
            image = image.filter(ImageFilter.SHARPEN)

            output = io.BytesIO()
            image.save(output, format="PNG")
            return output.getvalue()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ExtractionFailure(f"Image preprocessing failed: {e}") from e


def _strip_fences(raw_text: str) -> str:
    cleaned = raw_text.strip()
    if "```json" in cleaned:
        cleaned = cleaned.split("```json")[1].split("```")[0].strip()
    elif "```" in cleaned:
        cleaned = cleaned.split("```")[1].split("```")[0].strip()
    return cleaned


def run_ocr(image_png: bytes, settings: Optional[Settings] = None) -> Tuple[str, float]:
    """Transcribe a preprocessed PNG with Gemini. Returns (text, confidence 0-100)."""
    model = get_ocr_model(settings)
    if not model:
        raise ExtractionFailure("AI OCR is not available - GEMINI_API_KEY is not configured")

    try:
        response = model.generate_content(contents=[OCR_PROMPT, {"mime_type": "image/png", "data": image_png}])
    except Exception as e:
        raise ExtractionFailure(f"Gemini API call failed: {e}") from e

    try:
        raw_text = response.text
    except Exception as e:
        # Blocked or empty candidates
        raise ExtractionFailure(f"AI failed to generate readable text: {e}") from e

    if not raw_text or not raw_text.strip():
        raise ExtractionFailure("AI returned an empty response")

    cleaned = _strip_fences(raw_text)
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError:
        # Plain transcription without the JSON envelope is still usable text
        return cleaned, 0.0

    if not isinstance(payload, dict):
        raise ExtractionFailure("AI returned an unexpected payload")
    text = str(payload.get("text") or "")
    try:
        confidence = float(payload.get("confidence") or 0)
    except (TypeError, ValueError):
        confidence = 0.0
    return text, max(0.0, min(100.0, confidence))


def degraded(document_type: DocumentType | str, placeholder: str) -> ExtractedFields:
    return build_extracted_data(document_type, {"raw_text": placeholder, "confidence": 0})


class OCRService:
    """Turns an uploaded file into the typed field set for its document type."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def extract_text(self, contents: bytes) -> Tuple[str, float]:
        image_png = preprocess_image(contents, self.settings.OCR_MAX_DIMENSION)
        return run_ocr(image_png, self.settings)

    def process_document(self, contents: bytes, mime_type: str, document_type: DocumentType | str) -> ExtractedFields:
        """Blocking pipeline; never raises for OCR problems."""
        if not (mime_type or "").startswith("image/"):
            logger.info(f"Skipping OCR for non-image file: {mime_type}")
            return degraded(document_type, NOT_AN_IMAGE_TEXT)
        if not self.settings.OCR_ENABLED:
            logger.info("OCR disabled - skipping image")
            return degraded(document_type, OCR_DISABLED_TEXT)

        try:
            text, confidence = self.extract_text(contents)
            fields = parse_document_text(document_type, text, confidence)
        except (ExtractionFailure, SchemaValidationError) as e:
            logger.warning(f"OCR degraded for {document_type}: {e}")
            return degraded(document_type, OCR_FAILED_TEXT)
        except Exception as e:
            logger.exception(f"Unexpected OCR error for {document_type}: {e}")
            return degraded(document_type, OCR_FAILED_TEXT)

        logger.info(f"OCR completed for {document_type} (confidence {fields.confidence:.0f})")
        return fields

    async def extract(
        self,
        contents: bytes,
        mime_type: str,
        document_type: DocumentType | str,
        timeout: Optional[float] = None,
    ) -> ExtractedFields:
        """Run the pipeline off the event loop, degrading when it exceeds `timeout` seconds."""
        timeout = self.settings.EXTRACTION_TIMEOUT_SECONDS if timeout is None else timeout
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.process_document, contents, mime_type, document_type),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"OCR timed out after {timeout}s for {document_type}")
            return degraded(document_type, OCR_TIMEOUT_TEXT)
