"""
Compliance Analysis State - dataclass passed through all pipeline nodes.

One state object per run. Runs share nothing mutable; the run id and ad id
carried here are the logging and tracing context for the run.
"""

import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from ...core.models import (
    AdComplianceAnalysis,
    AnalysisRunStatus,
    ComplianceRunResult,
    ComplianceVerdict,
    CreativeEvidenceBundle,
    LandingPageEvidenceBundle,
    ScrapedAd,
)


@dataclass
class ComplianceAnalysisState:
    """
    State passed through the compliance analysis nodes.

    Lifecycle:
        1. Caller creates with the ad, its scraped page content, and force flag
        2. Each node reads what it needs and writes its outputs
        3. The last node to run returns to_result() via End()
    """

    # === REQUIRED INPUT ===
    ad: ScrapedAd

    # === CONFIGURATION ===
    page_content: Optional[str] = None
    force: bool = False
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    # === POPULATED BY NODES ===

    # GatherEvidenceNode
    creative_evidence: Optional[CreativeEvidenceBundle] = None
    landing_page_evidence: Optional[LandingPageEvidenceBundle] = None
    content_fingerprint: Optional[str] = None
    previous_analysis: Optional[AdComplianceAnalysis] = None

    # JudgeComplianceNode
    creative_verdict: Optional[ComplianceVerdict] = None
    landing_page_verdict: Optional[ComplianceVerdict] = None
    analysis: Optional[AdComplianceAnalysis] = None

    # === TRACKING ===
    status: AnalysisRunStatus = AnalysisRunStatus.PENDING
    current_step: str = "pending"
    error: Optional[str] = None
    error_step: Optional[str] = None
    started_at: float = field(default_factory=time.monotonic)

    def mark_step_complete(self, step_name: str, status: AnalysisRunStatus) -> None:
        """Record a finished step and advance the run status."""
        self.current_step = f"{step_name}_complete"
        self.status = status

    def mark_failed(self, step_name: str, error: BaseException) -> None:
        self.current_step = "failed"
        self.status = AnalysisRunStatus.FAILED
        self.error = str(error) or type(error).__name__
        self.error_step = step_name

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started_at) * 1000)

    def to_result(self) -> ComplianceRunResult:
        """Caller-facing result. Failed runs never carry an analysis."""
        failed = self.status == AnalysisRunStatus.FAILED
        return ComplianceRunResult(
            run_id=self.run_id,
            ad_id=self.ad.ad_id,
            domain_id=self.ad.domain_id,
            status=self.status,
            analysis=None if failed else self.analysis,
            error=self.error,
            error_step=self.error_step,
            processing_time_ms=self.elapsed_ms,
        )
