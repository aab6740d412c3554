"""
Compliance Analysis Dependencies - services injected into every node.

Tests build this directly with fakes; production code calls create().
"""

import logging
from datetime import timedelta
from typing import Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from ...core.config import Config
from ...core.database import get_supabase_client
from ...core.models import TaskKind
from ...services.analysis_store import AnalysisStore, SupabaseAnalysisStore
from ...services.evidence_service import CreativeEvidenceService
from ...services.judgment_client import JudgmentClient, PydanticAIJudgmentClient
from ...services.judgment_request import build_checklist
from ...services.landing_page_evidence_service import LandingPageEvidenceService
from ...services.ocr_service import GeminiOcrService
from ...services.staleness import StalenessPolicy
from ...services.usage_tracker import UsageTracker

logger = logging.getLogger(__name__)


class ComplianceDependencies(BaseModel):
    """Typed access to the collaborators a compliance run needs."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    creative_evidence: CreativeEvidenceService
    landing_page_evidence: LandingPageEvidenceService
    judgment_client: JudgmentClient
    store: AnalysisStore
    staleness: StalenessPolicy = Field(default_factory=StalenessPolicy)
    checklists: Dict[TaskKind, Dict[str, bool]] = Field(default_factory=dict)
    judgment_timeout: float = Field(default_factory=lambda: Config.JUDGMENT_TIMEOUT_SECONDS)

    def checklist_for(self, task: TaskKind) -> Dict[str, bool]:
        return self.checklists.get(task) or build_checklist(task)

    @classmethod
    def create(
        cls,
        rule_overrides: Optional[Mapping[str, Mapping[str, bool]]] = None,
        max_age: Optional[timedelta] = None,
        enable_ocr: bool = True,
    ) -> "ComplianceDependencies":
        """
        Wire production services from Config.

        Args:
            rule_overrides: task kind -> {rule: enabled} (see load_rule_overrides)
            max_age: Staleness window (default Config.REANALYSIS_MAX_AGE_DAYS)
            enable_ocr: Run Gemini OCR over ad images

        Raises:
            ValueError: If required configuration or an override rule is invalid
        """
        supabase = get_supabase_client()
        tracker = UsageTracker(supabase)

        ocr = GeminiOcrService() if enable_ocr else None
        if ocr is None:
            logger.info("OCR disabled; image text will be reported as not detected")

        checklists = {
            TaskKind(task): build_checklist(TaskKind(task), rules)
            for task, rules in (rule_overrides or {}).items()
        }

        deps = cls(
            creative_evidence=CreativeEvidenceService(ocr=ocr),
            landing_page_evidence=LandingPageEvidenceService(),
            judgment_client=PydanticAIJudgmentClient(tracker=tracker),
            store=SupabaseAnalysisStore(supabase),
            staleness=StalenessPolicy(max_age),
            checklists=checklists,
        )
        logger.info(f"ComplianceDependencies initialized (model={Config.get_model('compliance')})")
        return deps
