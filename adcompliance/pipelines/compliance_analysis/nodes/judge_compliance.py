"""
JudgeComplianceNode - Ask the reasoning service for both verdicts and merge them.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import ClassVar, Optional, Union

from pydantic_graph import BaseNode, End, GraphRunContext

from ....core.exceptions import TransportError
from ....core.models import AnalysisRunStatus, ComplianceRunResult, TaskKind
from ....services.judgment_request import (
    build_creative_request,
    build_landing_page_request,
    to_request_document,
)
from ....services.verdict_parser import parse_verdict
from ...metadata import NodeMetadata
from ..dependencies import ComplianceDependencies
from ..merge import merge_verdicts, skipped_landing_page_verdict
from ..state import ComplianceAnalysisState

logger = logging.getLogger(__name__)


async def judge_with_timeout(deps: ComplianceDependencies, request_doc: str) -> str:
    """One judgment call bounded by the configured timeout; a timeout is a transport failure."""
    try:
        return await asyncio.wait_for(deps.judgment_client.judge(request_doc), timeout=deps.judgment_timeout)
    except asyncio.TimeoutError as e:
        raise TransportError(f"reasoning service did not answer within {deps.judgment_timeout:g}s") from e


@dataclass
class JudgeComplianceNode(BaseNode[ComplianceAnalysisState, ComplianceDependencies, ComplianceRunResult]):
    """
    Step 2: Judge the creative and the landing page concurrently, then merge.

    Both calls are awaited before merging. Any transport failure fails the
    run; an unparseable response becomes a fail-closed fallback verdict.

    Reads: creative_evidence, landing_page_evidence, content_fingerprint
    Writes: creative_verdict, landing_page_verdict, analysis
    """

    metadata: ClassVar[NodeMetadata] = NodeMetadata(
        inputs=["creative_evidence", "landing_page_evidence", "content_fingerprint"],
        outputs=["creative_verdict", "landing_page_verdict", "analysis"],
        services=["judgment_client.judge"],
        llm="Config.get_model('compliance')",
        llm_purpose="Judge ad creative and landing page against the rule checklists",
    )

    async def run(
        self,
        ctx: GraphRunContext[ComplianceAnalysisState, ComplianceDependencies]
    ) -> Union["StoreAnalysisNode", End[ComplianceRunResult]]:
        from .store_analysis import StoreAnalysisNode

        state = ctx.state
        deps = ctx.deps
        ad = state.ad
        logger.info(f"[run {state.run_id}] Step 2: Judging compliance for ad {ad.ad_id}")
        state.current_step = "judge_compliance"

        try:
            creative_doc = to_request_document(
                build_creative_request(state.creative_evidence, deps.checklist_for(TaskKind.CREATIVE))
            )
            landing_page_doc: Optional[str] = None
            if state.landing_page_evidence.has_landing_page:
                landing_page_doc = to_request_document(
                    build_landing_page_request(
                        state.landing_page_evidence, deps.checklist_for(TaskKind.LANDING_PAGE)
                    )
                )
            else:
                logger.info(f"[run {state.run_id}] Ad {ad.ad_id} has no landing page; skipping that judgment")

            calls = [judge_with_timeout(deps, creative_doc)]
            if landing_page_doc is not None:
                calls.append(judge_with_timeout(deps, landing_page_doc))

            responses = await asyncio.gather(*calls, return_exceptions=True)
            for response in responses:
                if isinstance(response, BaseException):
                    raise response

            creative_verdict = parse_verdict(responses[0])
            landing_page_verdict = (
                parse_verdict(responses[1]) if landing_page_doc is not None else skipped_landing_page_verdict()
            )
        except TransportError as e:
            logger.error(f"[run {state.run_id}] Reasoning service failed for ad {ad.ad_id}: {e}")
            state.mark_failed("judge_compliance", e)
            return End(state.to_result())
        except Exception as e:
            logger.error(f"[run {state.run_id}] Judgment failed for ad {ad.ad_id}: {e}")
            state.mark_failed("judge_compliance", e)
            return End(state.to_result())

        for label, verdict in (("creative", creative_verdict), ("landing page", landing_page_verdict)):
            if verdict.is_fallback:
                logger.warning(f"[run {state.run_id}] Unparseable {label} verdict for ad {ad.ad_id}: {verdict.parse_error}")

        state.creative_verdict = creative_verdict
        state.landing_page_verdict = landing_page_verdict
        state.analysis = merge_verdicts(
            ad_id=ad.ad_id,
            domain_id=ad.domain_id,
            creative=creative_verdict,
            landing_page=landing_page_verdict,
            content_fingerprint=state.content_fingerprint,
            requires_manual_review=state.creative_evidence.requires_manual_review,
            run_id=state.run_id,
        )
        state.mark_step_complete("judge_compliance", AnalysisRunStatus.JUDGED)
        logger.info(
            f"[run {state.run_id}] Ad {ad.ad_id}: compliant={state.analysis.overall_compliant}, "
            f"score={state.analysis.overall_score:.2f}, "
            f"violations={creative_verdict.violation_count + landing_page_verdict.violation_count}"
        )

        return StoreAnalysisNode()

