"""
Shared fixtures: scraped ads, in-memory store, and a scripted reasoning service.
"""

import asyncio
import json
from typing import Dict, List, Optional, Union

import pytest

from adcompliance.core.models import ScrapedAd, TaskKind
from adcompliance.pipelines.compliance_analysis.dependencies import ComplianceDependencies
from adcompliance.services.analysis_store import InMemoryAnalysisStore
from adcompliance.services.evidence_service import CreativeEvidenceService
from adcompliance.services.judgment_client import JudgmentClient
from adcompliance.services.landing_page_evidence_service import LandingPageEvidenceService
from adcompliance.services.ocr_service import OcrService


class ScriptedJudgmentClient(JudgmentClient):
    """Answers per task kind from a script; an exception in the script is raised."""

    def __init__(
        self,
        responses: Optional[Dict[TaskKind, Union[str, Exception]]] = None,
        delay: float = 0.0,
    ):
        self.responses = responses or {}
        self.delay = delay
        self.calls: List[dict] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def judge(self, request_doc: str) -> str:
        doc = json.loads(request_doc)
        self.calls.append(doc)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            answer = self.responses.get(TaskKind(doc["task"]), verdict_json())
            if isinstance(answer, Exception):
                raise answer
            return answer
        finally:
            self.in_flight -= 1

    def calls_for(self, task: TaskKind) -> List[dict]:
        return [c for c in self.calls if c["task"] == task.value]


class StaticOcr(OcrService):
    """OCR that returns fixed text per image path."""

    def __init__(self, texts: Dict[str, Union[str, Exception]]):
        self.texts = texts

    def extract_text(self, image_path: str) -> str:
        value = self.texts.get(image_path, "")
        if isinstance(value, Exception):
            raise value
        return value


def verdict_json(compliant=True, confidence_score=0.9, violations=None, reasoning="ok") -> str:
    return json.dumps({
        "compliant": compliant,
        "confidence_score": confidence_score,
        "violations": violations or [],
        "reasoning": reasoning,
    })


@pytest.fixture
def make_verdict_json():
    return verdict_json


@pytest.fixture
def make_ad():
    def _make_ad(**overrides) -> ScrapedAd:
        defaults = {
            "ad_id": "ad-1",
            "domain_id": "example.com",
            "headline": "Try our new blender",
            "primary_text": "Smoothies in seconds.",
            "landing_page_url": "https://www.example.com/blender",
        }
        defaults.update(overrides)
        return ScrapedAd(**defaults)
    return _make_ad


@pytest.fixture
def store():
    return InMemoryAnalysisStore()


@pytest.fixture
def judge():
    return ScriptedJudgmentClient()


@pytest.fixture
def make_judge():
    return ScriptedJudgmentClient


@pytest.fixture
def make_ocr():
    return StaticOcr


@pytest.fixture
def make_deps(tmp_path, store, judge):
    """ComplianceDependencies wired with fakes; override any collaborator by keyword."""
    def _make_deps(**overrides) -> ComplianceDependencies:
        fields = {
            "creative_evidence": CreativeEvidenceService(),
            "landing_page_evidence": LandingPageEvidenceService(media_root=str(tmp_path)),
            "judgment_client": judge,
            "store": store,
        }
        fields.update(overrides)
        return ComplianceDependencies(**fields)
    return _make_deps
