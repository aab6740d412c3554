"""
Compliance analysis pipeline nodes.

Flow: GatherEvidence -> JudgeCompliance -> StoreAnalysis
"""

from .gather_evidence import GatherEvidenceNode
from .judge_compliance import JudgeComplianceNode
from .store_analysis import StoreAnalysisNode

__all__ = [
    "GatherEvidenceNode",
    "JudgeComplianceNode",
    "StoreAnalysisNode",
]
