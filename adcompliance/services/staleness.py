"""
Staleness policy: decides when a stored compliance analysis must be redone.

An analysis is stale when
- none exists yet,
- the evidence fingerprint changed (ad copy, OCR output, page content), or
- it is older than the max age (rules and reasoning models evolve).
"""

import hashlib
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from ..core.config import Config
from ..core.models import (
    AdComplianceAnalysis,
    CreativeEvidenceBundle,
    LandingPageEvidenceBundle,
)

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_FIELD_SEPARATOR = "\x1f"
_ABSENT = "<none>"


def _normalize(value: Optional[str]) -> str:
    if value is None:
        return _ABSENT
    return _WHITESPACE_RE.sub(" ", value).strip()


def fingerprint_fields(
    creative: CreativeEvidenceBundle,
    landing_page: LandingPageEvidenceBundle,
) -> List[str]:
    """Evidence fields that feed the judgment requests, in fixed order."""
    evidence = [
        creative.text_content,
        creative.ocr_text,
        creative.visual_description,
        creative.audio_transcript,
    ]
    fields = [creative.ad_id]
    for field in evidence:
        fields.extend([field.status.value, field.text])
    fields.append(creative.error)

    fields.append(landing_page.landing_page_url)
    fields.extend(landing_page.ad_content.get(k) for k in sorted(landing_page.ad_content))
    fields.extend([
        "accessible" if landing_page.is_accessible else "unreachable",
        landing_page.error,
        landing_page.page_content,
    ])
    return [_normalize(f) for f in fields]


def compute_fingerprint(
    creative: CreativeEvidenceBundle,
    landing_page: LandingPageEvidenceBundle,
) -> str:
    """Stable SHA-256 over the whitespace-normalized evidence fields."""
    payload = _FIELD_SEPARATOR.join(fingerprint_fields(creative, landing_page))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def needs_reanalysis(
    current_fingerprint: str,
    last_analysis: Optional[AdComplianceAnalysis],
    max_age: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> bool:
    """
    Decide whether an ad must be analyzed again.

    Args:
        current_fingerprint: Fingerprint of the evidence gathered now
        last_analysis: Most recent stored analysis, or None
        max_age: Oldest acceptable analysis (default Config.REANALYSIS_MAX_AGE_DAYS)
        now: Reference time (default: current UTC time)

    Returns:
        True if there is no prior analysis, the content changed, or the
        prior analysis is older than max_age
    """
    if last_analysis is None:
        return True

    if last_analysis.content_fingerprint != current_fingerprint:
        logger.debug(f"Content changed for ad {last_analysis.ad_id}; re-analysis required")
        return True

    max_age = max_age if max_age is not None else timedelta(days=Config.REANALYSIS_MAX_AGE_DAYS)
    now = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    age = now - _as_utc(last_analysis.computed_at)
    if age > max_age:
        logger.debug(f"Analysis for ad {last_analysis.ad_id} is {age.days} days old; re-analysis required")
        return True

    return False


class StalenessPolicy:
    """Configured staleness decision plus age-based sweeps over the store.

    Usage:
        policy = StalenessPolicy(max_age=timedelta(days=14))
        if policy.needs_reanalysis(fingerprint, store.get(ad_id, domain_id)):
            ...
        due = policy.ads_due_for_reanalysis(store)
    """

    def __init__(self, max_age: Optional[timedelta] = None):
        self.max_age = max_age if max_age is not None else timedelta(days=Config.REANALYSIS_MAX_AGE_DAYS)

    def needs_reanalysis(
        self,
        current_fingerprint: str,
        last_analysis: Optional[AdComplianceAnalysis],
        now: Optional[datetime] = None,
    ) -> bool:
        return needs_reanalysis(current_fingerprint, last_analysis, self.max_age, now)

    def ads_due_for_reanalysis(self, store) -> List[str]:
        """Ad ids whose stored analysis has aged past max_age."""
        return list(store.list_stale(self.max_age))
