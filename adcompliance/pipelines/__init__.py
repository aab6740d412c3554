"""
Pipelines - pydantic-graph workflows.

Available pipelines:
- compliance_analysis: evidence -> judgment -> stored verdict for one ad
"""

from .compliance_analysis import (
    compliance_analysis_graph,
    run_compliance_analysis,
    run_compliance_batch,
)

__all__ = [
    "compliance_analysis_graph",
    "run_compliance_analysis",
    "run_compliance_batch",
]
