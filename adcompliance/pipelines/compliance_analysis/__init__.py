"""
Compliance analysis pipeline.

Gathers creative and landing page evidence for a scraped ad, asks the
reasoning service for a verdict on each, merges them, and stores the result.

Usage:
    from adcompliance.pipelines.compliance_analysis import run_compliance_analysis

    result = await run_compliance_analysis(ad, page_content)
"""

from .dependencies import ComplianceDependencies
from .orchestrator import (
    AdRunLocks,
    compliance_analysis_graph,
    run_compliance_analysis,
    run_compliance_batch,
)
from .state import ComplianceAnalysisState

__all__ = [
    "AdRunLocks",
    "ComplianceAnalysisState",
    "ComplianceDependencies",
    "compliance_analysis_graph",
    "run_compliance_analysis",
    "run_compliance_batch",
]
