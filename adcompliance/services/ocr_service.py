"""
OCR and transcription collaborators used by the creative evidence aggregator.

The aggregator only depends on the abstract contracts:
- OcrService.extract_text(image_path) -> str, raises OcrError
- TranscriptionService.transcribe(video_ref) -> str, raises TranscriptionError

GeminiOcrService reads image text with Gemini vision. Audio transcription
has no backend yet; UnavailableTranscriptionService says so explicitly.
"""

import logging
import mimetypes
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from google import genai
from google.genai import types

from ..core.config import Config
from ..core.exceptions import OcrError

logger = logging.getLogger(__name__)

OCR_PROMPT = (
    "Transcribe every piece of text visible in this advertisement image, "
    "exactly as written, one line per text block. Do not describe the image. "
    "If the image contains no text, reply with an empty response."
)


class OcrService(ABC):
    """Extracts visible text from a local ad image."""

    @abstractmethod
    def extract_text(self, image_path: str) -> str:
        """Return the text found in the image (may be empty). Raises OcrError."""


class TranscriptionService(ABC):
    """Transcribes the audio track of an ad video."""

    @abstractmethod
    def transcribe(self, video_ref: str) -> str:
        """Return the transcript. Raises TranscriptionError or NotImplementedError."""


class GeminiOcrService(OcrService):
    """OCR via Gemini vision."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        """
        Args:
            api_key: Gemini API key (if None, uses Config.GEMINI_API_KEY)
            model: Gemini model to use (if None, uses Config.OCR_MODEL)

        Raises:
            ValueError: If API key not found
        """
        self.api_key = api_key or Config.GEMINI_API_KEY
        if not self.api_key:
            raise ValueError("GEMINI_API_KEY not found in environment")

        self.model_name = model or Config.OCR_MODEL
        self.client = genai.Client(api_key=self.api_key)

    def extract_text(self, image_path: str) -> str:
        path = Path(image_path)
        if not path.is_file():
            raise OcrError(f"Image not found: {image_path}")

        media_type = mimetypes.guess_type(path.name)[0] or "image/png"

        try:
            response = self.client.models.generate_content(
                model=self.model_name,
                contents=[
                    types.Part.from_bytes(data=path.read_bytes(), mime_type=media_type),
                    OCR_PROMPT,
                ],
                config=types.GenerateContentConfig(temperature=0.0),
            )
        except Exception as e:
            raise OcrError(f"Gemini OCR failed for {image_path}: {e}") from e

        text = response.text or ""
        logger.debug(f"OCR extracted {len(text)} chars from {image_path}")
        return text.strip()


class UnavailableTranscriptionService(TranscriptionService):
    """Placeholder until a speech-to-text backend is wired in."""

    def transcribe(self, video_ref: str) -> str:
        raise NotImplementedError("Audio transcription is not available")
