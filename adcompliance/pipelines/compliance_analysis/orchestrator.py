"""
Compliance Analysis Orchestrator - Graph definition and convenience functions.

Defines the pydantic-graph pipeline and provides:
- run_compliance_analysis(): one ad, serialized per ad id
- run_compliance_batch(): many ads with bounded concurrency

Run lifecycle:
    pending -> evidence_gathered -> judged -> stored
    pending -> evidence_gathered -> up_to_date     (prior analysis still fresh)
    any step -> failed                              (nothing is written)
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic_graph import Graph

from ...core.config import Config
from ...core.models import AnalysisRunStatus, ComplianceRunResult, ScrapedAd
from ...core.observability import get_logfire
from .dependencies import ComplianceDependencies
from .nodes.gather_evidence import GatherEvidenceNode
from .nodes.judge_compliance import JudgeComplianceNode
from .nodes.store_analysis import StoreAnalysisNode
from .state import ComplianceAnalysisState

logger = logging.getLogger(__name__)

# ============================================================================
# Graph Definition
# ============================================================================

PIPELINE_NODES = (
    GatherEvidenceNode,
    JudgeComplianceNode,
    StoreAnalysisNode,
)

compliance_analysis_graph = Graph(
    nodes=PIPELINE_NODES,
    name="compliance_analysis_pipeline"
)


# ============================================================================
# Per-ad mutual exclusion
# ============================================================================

class AdRunLocks:
    """
    One asyncio.Lock per ad id; a second run for the same ad waits for the first.

    Locks are dropped once no run holds or awaits them.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, ad_id: str):
        lock = self._locks.get(ad_id)
        if lock is None:
            lock = self._locks[ad_id] = asyncio.Lock()
        self._holders[ad_id] = self._holders.get(ad_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[ad_id] -= 1
            if self._holders[ad_id] == 0:
                del self._holders[ad_id]
                del self._locks[ad_id]

    def is_locked(self, ad_id: str) -> bool:
        lock = self._locks.get(ad_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)


_default_locks = AdRunLocks()


# ============================================================================
# Convenience Functions
# ============================================================================

async def run_compliance_analysis(
    ad: ScrapedAd,
    page_content: Optional[str] = None,
    *,
    deps: Optional[ComplianceDependencies] = None,
    force: bool = False,
    locks: Optional[AdRunLocks] = None,
) -> ComplianceRunResult:
    """
    Run the compliance analysis pipeline for one ad.

    Args:
        ad: Scraped ad record
        page_content: Scraped landing page text (None if the page was unreachable)
        deps: ComplianceDependencies (creates production wiring if not provided)
        force: Re-analyze even when the stored analysis is still fresh
        locks: Per-ad lock registry (defaults to the process-wide one)

    Returns:
        ComplianceRunResult; status is stored, up_to_date, or failed.
        Failures are reported in the result, never raised.
    """
    if deps is None:
        deps = ComplianceDependencies.create()
    locks = locks or _default_locks

    state = ComplianceAnalysisState(ad=ad, page_content=page_content, force=force)
    logger.info(f"=== STARTING COMPLIANCE ANALYSIS run={state.run_id} ad={ad.ad_id} domain={ad.domain_id} ===")

    async with locks.hold(ad.ad_id):
        with get_logfire().span("compliance_analysis", run_id=state.run_id, ad_id=ad.ad_id):
            try:
                result = await compliance_analysis_graph.run(
                    GatherEvidenceNode(),
                    state=state,
                    deps=deps,
                )
                run_result = result.output
            except Exception as e:
                logger.error(f"Compliance analysis run {state.run_id} for ad {ad.ad_id} failed: {e}")
                state.mark_failed(state.current_step, e)
                run_result = state.to_result()

    logger.info(
        f"=== COMPLIANCE ANALYSIS {run_result.status.value.upper()} run={state.run_id} "
        f"ad={ad.ad_id} ({run_result.processing_time_ms}ms) ==="
    )
    return run_result


async def run_compliance_batch(
    items: Iterable[Tuple[ScrapedAd, Optional[str]]],
    *,
    deps: Optional[ComplianceDependencies] = None,
    max_concurrency: Optional[int] = None,
    force: bool = False,
) -> List[ComplianceRunResult]:
    """
    Analyze many ads concurrently.

    Args:
        items: (ad, page_content) pairs
        deps: Shared ComplianceDependencies (created once if not provided)
        max_concurrency: Max runs in flight (default Config.DEFAULT_CONCURRENCY)
        force: Re-analyze even when stored analyses are fresh

    Returns:
        Results in input order
    """
    items = list(items)
    if not items:
        return []

    if deps is None:
        deps = ComplianceDependencies.create()
    semaphore = asyncio.Semaphore(max_concurrency or Config.DEFAULT_CONCURRENCY)

    async def _run_one(ad: ScrapedAd, page_content: Optional[str]) -> ComplianceRunResult:
        async with semaphore:
            return await run_compliance_analysis(ad, page_content, deps=deps, force=force)

    results = await asyncio.gather(*(_run_one(ad, page) for ad, page in items))

    counts: Dict[str, int] = {}
    for r in results:
        counts[r.status.value] = counts.get(r.status.value, 0) + 1
    logger.info(f"Compliance batch complete: {len(results)} ads, {counts}")

    failed = [r.ad_id for r in results if r.status == AnalysisRunStatus.FAILED]
    if failed:
        logger.warning(f"{len(failed)} ad(s) failed and can be retried: {failed}")

    return list(results)
