"""
CreativeEvidenceService - Assembles the creative evidence bundle for one ad.

Collects four modalities:
- Declared copy (headline, primary text, description, call to action)
- OCR text from each ad image
- Visual description (no vision backend: flagged for manual review)
- Audio transcript from video ads

gather() never raises. A failing modality degrades to a sentinel string with
an explicit EvidenceStatus so downstream code can tell "no images" apart
from "OCR found nothing".
"""

import logging
from typing import List, Optional

from ..core.exceptions import OcrError, TranscriptionError
from ..core.models import (
    CreativeEvidenceBundle,
    EvidenceField,
    EvidenceStatus,
    ScrapedAd,
)
from .ocr_service import OcrService, TranscriptionService, UnavailableTranscriptionService

logger = logging.getLogger(__name__)

# Sentinels (must stay pairwise distinct)
NO_AD_TEXT = "no ad text provided"
NO_IMAGES = "no images available"
NO_TEXT_DETECTED = "no text detected"
NO_VIDEO = "no video content"
TRANSCRIPTION_UNAVAILABLE = "transcription unavailable"

TEXT_FIELD_LABELS = [
    ("headline", "Headline"),
    ("primary_text", "Primary Text"),
    ("description", "Description"),
    ("call_to_action", "Call to Action"),
]


class CreativeEvidenceService:
    """Builds CreativeEvidenceBundle instances from scraped ads.

    Usage:
        service = CreativeEvidenceService(ocr=GeminiOcrService())
        bundle = service.gather(scraped_ad)
    """

    def __init__(
        self,
        ocr: Optional[OcrService] = None,
        transcription: Optional[TranscriptionService] = None,
    ):
        self.ocr = ocr
        self.transcription = transcription or UnavailableTranscriptionService()

    def gather(self, ad: ScrapedAd) -> CreativeEvidenceBundle:
        """Assemble all creative evidence for an ad."""
        images = list(ad.local_image_paths or [])
        videos = list(ad.video_urls or [])

        bundle = CreativeEvidenceBundle(
            ad_id=ad.ad_id,
            text_content=self.extract_text_content(ad),
            ocr_text=self.extract_ocr_text(ad.ad_id, images),
            visual_description=self.describe_visuals(images),
            audio_transcript=self.transcribe_audio(ad.ad_id, videos),
            image_count=len(images),
            video_count=len(videos),
        )

        logger.info(
            f"Creative evidence for ad {ad.ad_id}: text={bundle.text_content.status.value}, "
            f"ocr={bundle.ocr_text.status.value}, visual={bundle.visual_description.status.value}, "
            f"audio={bundle.audio_transcript.status.value}"
        )
        return bundle

    # ------------------------------------------------------------------
    # Modalities
    # ------------------------------------------------------------------

    @staticmethod
    def extract_text_content(ad: ScrapedAd) -> EvidenceField:
        """Declared copy as '<Label>: <value>' lines in fixed order."""
        lines = []
        for attr, label in TEXT_FIELD_LABELS:
            value = getattr(ad, attr)
            if value and value.strip():
                lines.append(f"{label}: {value}")

        text = "\n".join(lines).strip()
        if not text:
            return EvidenceField(text=NO_AD_TEXT, status=EvidenceStatus.NOT_PROVIDED)
        return EvidenceField(text=text)

    def extract_ocr_text(self, ad_id: str, image_paths: List[str]) -> EvidenceField:
        """Run OCR per image, skipping images whose extraction fails."""
        if not image_paths:
            return EvidenceField(text=NO_IMAGES, status=EvidenceStatus.NO_IMAGES)

        if self.ocr is None:
            logger.warning(f"No OCR service configured; skipping {len(image_paths)} image(s) for ad {ad_id}")
            return EvidenceField(text=NO_TEXT_DETECTED, status=EvidenceStatus.NO_TEXT_DETECTED)

        multiple = len(image_paths) > 1
        parts = []
        for index, image_path in enumerate(image_paths, start=1):
            try:
                extracted = self.ocr.extract_text(image_path)
            except OcrError as e:
                logger.warning(f"OCR failed for ad {ad_id} image {index}: {e}")
                continue
            except Exception as e:
                logger.warning(f"Unexpected OCR error for ad {ad_id} image {index}: {e}")
                continue

            if not extracted or not extracted.strip():
                continue
            if multiple:
                parts.append(f"Image {index}:\n{extracted.strip()}")
            else:
                parts.append(extracted.strip())

        text = "\n".join(parts).strip()
        if not text:
            return EvidenceField(text=NO_TEXT_DETECTED, status=EvidenceStatus.NO_TEXT_DETECTED)
        return EvidenceField(text=text)

    @staticmethod
    def describe_visuals(image_paths: List[str]) -> EvidenceField:
        """Structural placeholder until a vision model is wired in."""
        if not image_paths:
            return EvidenceField(text=NO_IMAGES, status=EvidenceStatus.NO_IMAGES)

        count = len(image_paths)
        return EvidenceField(
            text=f"{count} image(s) detected; visual content requires manual review",
            status=EvidenceStatus.REQUIRES_MANUAL_REVIEW,
        )

    def transcribe_audio(self, ad_id: str, video_refs: List[str]) -> EvidenceField:
        """Transcribe each video; any failure marks the transcript unavailable."""
        if not video_refs:
            return EvidenceField(text=NO_VIDEO, status=EvidenceStatus.NO_VIDEO)

        multiple = len(video_refs) > 1
        parts = []
        for index, video_ref in enumerate(video_refs, start=1):
            try:
                transcript = self.transcription.transcribe(video_ref)
            except NotImplementedError:
                logger.debug(f"Transcription not implemented; ad {ad_id} audio unavailable")
                return _transcription_unavailable()
            except TranscriptionError as e:
                logger.warning(f"Transcription failed for ad {ad_id} video {index}: {e}")
                return _transcription_unavailable()
            except Exception as e:
                logger.warning(f"Unexpected transcription error for ad {ad_id} video {index}: {e}")
                return _transcription_unavailable()

            if transcript and transcript.strip():
                parts.append(f"Video {index}:\n{transcript.strip()}" if multiple else transcript.strip())

        text = "\n".join(parts).strip()
        if not text:
            return _transcription_unavailable()
        return EvidenceField(text=text)


def _transcription_unavailable() -> EvidenceField:
    return EvidenceField(
        text=TRANSCRIPTION_UNAVAILABLE,
        status=EvidenceStatus.TRANSCRIPTION_UNAVAILABLE,
    )


def degraded_bundle(ad: ScrapedAd, error: Exception) -> CreativeEvidenceBundle:
    """Bundle for an ad whose aggregation crashed: declared copy only, error recorded."""
    images = list(ad.local_image_paths or [])
    videos = list(ad.video_urls or [])
    return CreativeEvidenceBundle(
        ad_id=ad.ad_id,
        text_content=CreativeEvidenceService.extract_text_content(ad),
        ocr_text=EvidenceField(
            text=NO_TEXT_DETECTED if images else NO_IMAGES,
            status=EvidenceStatus.NO_TEXT_DETECTED if images else EvidenceStatus.NO_IMAGES,
        ),
        visual_description=CreativeEvidenceService.describe_visuals(images),
        audio_transcript=_transcription_unavailable() if videos else EvidenceField(
            text=NO_VIDEO, status=EvidenceStatus.NO_VIDEO
        ),
        image_count=len(images),
        video_count=len(videos),
        error=str(error) or type(error).__name__,
    )
