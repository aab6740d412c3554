"""
StoreAnalysisNode - Persist the merged analysis.

Final node in the compliance analysis pipeline.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import ClassVar

from pydantic_graph import BaseNode, End, GraphRunContext

from ....core.models import AnalysisRunStatus, ComplianceRunResult
from ...metadata import NodeMetadata
from ..dependencies import ComplianceDependencies
from ..state import ComplianceAnalysisState

logger = logging.getLogger(__name__)


@dataclass
class StoreAnalysisNode(BaseNode[ComplianceAnalysisState, ComplianceDependencies, ComplianceRunResult]):
    """
    Step 3: Replace the stored analysis for this ad in one write.

    Reads: analysis
    Writes: status
    """

    metadata: ClassVar[NodeMetadata] = NodeMetadata(
        inputs=["analysis"],
        outputs=["status"],
        services=["store.put"],
    )

    async def run(
        self,
        ctx: GraphRunContext[ComplianceAnalysisState, ComplianceDependencies]
    ) -> End[ComplianceRunResult]:
        state = ctx.state
        logger.info(f"[run {state.run_id}] Step 3: Storing analysis for ad {state.ad.ad_id}")
        state.current_step = "store_analysis"

        try:
            await asyncio.to_thread(ctx.deps.store.put, state.analysis)
        except Exception as e:
            logger.error(f"[run {state.run_id}] Failed to store analysis for ad {state.ad.ad_id}: {e}")
            state.mark_failed("store_analysis", e)
            return End(state.to_result())

        state.mark_step_complete("store_analysis", AnalysisRunStatus.STORED)
        return End(state.to_result())
