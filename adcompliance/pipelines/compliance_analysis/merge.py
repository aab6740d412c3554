"""
Verdict merge - combines the two judgments into one stored analysis.
"""

from datetime import datetime, timezone
from typing import Optional

from ...core.config import Config
from ...core.models import AdComplianceAnalysis, ComplianceVerdict

NO_LANDING_PAGE_REASONING = "no landing page to evaluate"


def skipped_landing_page_verdict() -> ComplianceVerdict:
    """Stand-in verdict for ads without a landing page URL."""
    return ComplianceVerdict(
        compliant=True,
        confidence_score=0.0,
        reasoning=NO_LANDING_PAGE_REASONING,
        skipped=True,
    )


def overall_score(creative: ComplianceVerdict, landing_page: ComplianceVerdict) -> float:
    """
    Weighted confidence: 0.6 creative + 0.4 landing page.

    A skipped landing page contributes nothing; the creative score stands alone.
    """
    if landing_page.skipped:
        return creative.confidence_score
    return (
        Config.CREATIVE_WEIGHT * creative.confidence_score
        + Config.LANDING_PAGE_WEIGHT * landing_page.confidence_score
    )


def merge_verdicts(
    ad_id: str,
    domain_id: str,
    creative: ComplianceVerdict,
    landing_page: ComplianceVerdict,
    content_fingerprint: str,
    requires_manual_review: bool = False,
    run_id: Optional[str] = None,
    computed_at: Optional[datetime] = None,
) -> AdComplianceAnalysis:
    return AdComplianceAnalysis(
        ad_id=ad_id,
        domain_id=domain_id,
        creative_verdict=creative,
        landing_page_verdict=landing_page,
        overall_compliant=creative.compliant and landing_page.compliant,
        overall_score=overall_score(creative, landing_page),
        requires_manual_review=requires_manual_review,
        computed_at=computed_at or datetime.now(timezone.utc),
        content_fingerprint=content_fingerprint,
        run_id=run_id,
    )
