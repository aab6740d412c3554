"""
AdCompliance - Ad Creative & Landing Page Compliance Analysis Engine

Gathers evidence about third-party ads (copy, image text, video audio,
landing page), asks a reasoning model for a structured compliance verdict,
and keeps per-ad verdicts fresh as content and rules change.
"""

__version__ = "0.1.0"
__author__ = "AdCompliance Team"
