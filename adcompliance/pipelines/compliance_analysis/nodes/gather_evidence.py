"""
GatherEvidenceNode - Build both evidence bundles and check staleness.

First node in the compliance analysis pipeline.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import ClassVar, Union

from pydantic_graph import BaseNode, End, GraphRunContext

from ....core.exceptions import AnalysisStoreError
from ....core.models import AnalysisRunStatus, ComplianceRunResult
from ....services import evidence_service, landing_page_evidence_service
from ....services.staleness import compute_fingerprint
from ...metadata import NodeMetadata
from ..dependencies import ComplianceDependencies
from ..state import ComplianceAnalysisState

logger = logging.getLogger(__name__)


@dataclass
class GatherEvidenceNode(BaseNode[ComplianceAnalysisState, ComplianceDependencies, ComplianceRunResult]):
    """
    Step 1: Gather creative and landing page evidence concurrently.

    An aggregator crash yields an error-marked bundle; the run continues.
    Unless force is set, an unchanged and recent prior analysis ends the run
    as up_to_date without calling the reasoning service.

    Reads: ad, page_content, force
    Writes: creative_evidence, landing_page_evidence, content_fingerprint, previous_analysis
    """

    metadata: ClassVar[NodeMetadata] = NodeMetadata(
        inputs=["ad", "page_content", "force"],
        outputs=["creative_evidence", "landing_page_evidence", "content_fingerprint", "previous_analysis"],
        services=["creative_evidence.gather", "landing_page_evidence.gather", "store.get"],
    )

    async def run(
        self,
        ctx: GraphRunContext[ComplianceAnalysisState, ComplianceDependencies]
    ) -> Union["JudgeComplianceNode", End[ComplianceRunResult]]:
        from .judge_compliance import JudgeComplianceNode

        state = ctx.state
        ad = state.ad
        logger.info(f"[run {state.run_id}] Step 1: Gathering evidence for ad {ad.ad_id}")
        state.current_step = "gather_evidence"

        creative, landing_page = await asyncio.gather(
            asyncio.to_thread(ctx.deps.creative_evidence.gather, ad),
            asyncio.to_thread(ctx.deps.landing_page_evidence.gather, ad, state.page_content),
            return_exceptions=True,
        )

        if isinstance(creative, Exception):
            logger.warning(f"[run {state.run_id}] Creative evidence failed for ad {ad.ad_id}: {creative}")
            creative = evidence_service.degraded_bundle(ad, creative)
        if isinstance(landing_page, Exception):
            logger.warning(f"[run {state.run_id}] Landing page evidence failed for ad {ad.ad_id}: {landing_page}")
            landing_page = landing_page_evidence_service.degraded_bundle(ad, landing_page)

        state.creative_evidence = creative
        state.landing_page_evidence = landing_page
        state.content_fingerprint = compute_fingerprint(creative, landing_page)
        state.mark_step_complete("gather_evidence", AnalysisRunStatus.EVIDENCE_GATHERED)

        if state.force:
            return JudgeComplianceNode()

        try:
            state.previous_analysis = await asyncio.to_thread(ctx.deps.store.get, ad.ad_id, ad.domain_id)
        except AnalysisStoreError as e:
            logger.warning(f"[run {state.run_id}] Could not load prior analysis for ad {ad.ad_id}: {e}")
            state.previous_analysis = None

        if not ctx.deps.staleness.needs_reanalysis(state.content_fingerprint, state.previous_analysis):
            logger.info(f"[run {state.run_id}] Analysis for ad {ad.ad_id} is up to date; skipping judgment")
            state.analysis = state.previous_analysis
            state.mark_step_complete("staleness_check", AnalysisRunStatus.UP_TO_DATE)
            return End(state.to_result())

        return JudgeComplianceNode()
