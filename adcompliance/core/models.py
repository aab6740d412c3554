"""
Pydantic models for ads, evidence, verdicts, and stored analyses
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


# ============================================================================
# Enums
# ============================================================================

class TaskKind(str, Enum):
    """Kind of judgment requested from the reasoning service"""
    CREATIVE = "creative"
    LANDING_PAGE = "landing_page"


class Severity(str, Enum):
    """Violation severity, ordered LOW < MEDIUM < HIGH < CRITICAL"""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def __lt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class RuleType(str, Enum):
    """Compliance rule categories a violation can be filed under"""
    # Creative
    MISLEADING_CLAIMS = "misleading_claims"
    FALSE_PROMISES = "false_promises"
    CLICKBAIT = "clickbait"
    MEDICAL_CLAIMS = "medical_claims"
    FINANCIAL_GUARANTEES = "financial_guarantees"
    BEFORE_AFTER_CLAIMS = "before_after_claims"
    # Landing page
    RELEVANCE_TO_AD = "relevance_to_ad"
    MISLEADING_CONTENT = "misleading_content"
    PAGE_ACCESSIBILITY = "page_accessibility"
    USER_EXPERIENCE = "user_experience"
    CONTENT_QUALITY = "content_quality"
    # Anything the judge reports outside the checklist
    OTHER = "other"


class EvidenceStatus(str, Enum):
    """Why an evidence field holds the text it holds"""
    PRESENT = "present"
    NOT_PROVIDED = "not_provided"
    NO_IMAGES = "no_images"
    NO_TEXT_DETECTED = "no_text_detected"
    NO_VIDEO = "no_video"
    TRANSCRIPTION_UNAVAILABLE = "transcription_unavailable"
    REQUIRES_MANUAL_REVIEW = "requires_manual_review"


class AnalysisRunStatus(str, Enum):
    """Orchestrator state for one ad's analysis run"""
    PENDING = "pending"
    EVIDENCE_GATHERED = "evidence_gathered"
    JUDGED = "judged"
    STORED = "stored"
    FAILED = "failed"
    UP_TO_DATE = "up_to_date"


# ============================================================================
# Input
# ============================================================================

class ScrapedAd(BaseModel):
    """Ad record as produced by the scraper"""
    ad_id: str
    domain_id: str
    headline: Optional[str] = None
    primary_text: Optional[str] = None
    description: Optional[str] = None
    call_to_action: Optional[str] = None
    landing_page_url: Optional[str] = None
    local_image_paths: List[str] = Field(default_factory=list)
    video_urls: List[str] = Field(default_factory=list)

    def declared_copy(self) -> Dict[str, Optional[str]]:
        """Declared text fields in their fixed order."""
        return {
            "headline": self.headline,
            "primary_text": self.primary_text,
            "description": self.description,
            "call_to_action": self.call_to_action,
        }


# ============================================================================
# Evidence
# ============================================================================

class EvidenceField(BaseModel):
    """One modality of evidence. Absence is always explicit via status."""
    text: str
    status: EvidenceStatus = EvidenceStatus.PRESENT

    @property
    def is_present(self) -> bool:
        return self.status == EvidenceStatus.PRESENT


class CreativeEvidenceBundle(BaseModel):
    """Everything known about an ad's creative, normalized for judgment"""
    ad_id: str
    text_content: EvidenceField
    ocr_text: EvidenceField
    visual_description: EvidenceField
    audio_transcript: EvidenceField
    image_count: int = 0
    video_count: int = 0
    error: Optional[str] = None

    @property
    def requires_manual_review(self) -> bool:
        return self.visual_description.status == EvidenceStatus.REQUIRES_MANUAL_REVIEW


class LandingPageEvidenceBundle(BaseModel):
    """Landing page content plus the ad copy it must be relevant to"""
    ad_id: str
    landing_page_url: Optional[str] = None
    ad_content: Dict[str, Optional[str]] = Field(default_factory=dict)
    page_content: Optional[str] = None
    screenshot_path: Optional[str] = None
    truncated: bool = False
    error: Optional[str] = None

    @property
    def has_landing_page(self) -> bool:
        return bool(self.landing_page_url and self.landing_page_url.strip())

    @property
    def is_accessible(self) -> bool:
        return self.page_content is not None and self.error is None


# ============================================================================
# Verdicts
# ============================================================================

class Violation(BaseModel):
    """A single rule violation reported by the judge"""
    rule_type: RuleType
    severity: Severity
    description: str = ""
    violated_text: str = ""


class ComplianceVerdict(BaseModel):
    """
    Typed result of one compliance judgment.

    compliant=True may still carry low-severity violations; never infer
    compliance from the violation count.
    """
    compliant: bool
    confidence_score: float
    reasoning: str = ""
    violations: List[Violation] = Field(default_factory=list)
    raw_response: str = ""
    parse_error: Optional[str] = None
    skipped: bool = False

    @field_validator("confidence_score", mode="before")
    @classmethod
    def _clamp_confidence(cls, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return min(1.0, max(0.0, float(value)))
        return value

    @property
    def is_fallback(self) -> bool:
        return self.parse_error is not None

    @property
    def has_violations(self) -> bool:
        return len(self.violations) > 0

    @property
    def violation_count(self) -> int:
        return len(self.violations)

    @property
    def critical_violation_count(self) -> int:
        return sum(1 for v in self.violations if v.severity == Severity.CRITICAL)

    @property
    def max_severity(self) -> Optional[Severity]:
        if not self.violations:
            return None
        return max((v.severity for v in self.violations), key=lambda s: s.rank)


# ============================================================================
# Persisted aggregate
# ============================================================================

class AdComplianceAnalysis(BaseModel):
    """Stored compliance analysis for one ad within one domain"""
    ad_id: str
    domain_id: str
    creative_verdict: ComplianceVerdict
    landing_page_verdict: ComplianceVerdict
    overall_compliant: bool
    overall_score: float
    requires_manual_review: bool = False
    computed_at: datetime
    content_fingerprint: str
    run_id: Optional[str] = None

    @property
    def critical_violation_count(self) -> int:
        return (
            self.creative_verdict.critical_violation_count
            + self.landing_page_verdict.critical_violation_count
        )


class ComplianceRunResult(BaseModel):
    """What the caller gets back from one orchestration run"""
    run_id: str
    ad_id: str
    domain_id: str
    status: AnalysisRunStatus
    analysis: Optional[AdComplianceAnalysis] = None
    error: Optional[str] = None
    error_step: Optional[str] = None
    processing_time_ms: int = 0

    @property
    def failed(self) -> bool:
        return self.status == AnalysisRunStatus.FAILED
