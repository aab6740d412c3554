"""
Judgment request construction.

Turns an evidence bundle plus the rule checklist for its task kind into a
self-describing JSON document: a reasoning service with no other context can
answer it. Serialization is deterministic (sorted keys, no timestamps), so
the same bundle and checklist always produce byte-identical documents.
"""

import json
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel

from ..core.models import (
    CreativeEvidenceBundle,
    LandingPageEvidenceBundle,
    RuleType,
    Severity,
    TaskKind,
)

CHECKLIST_VERSION = "2024.1"

CREATIVE_RULES: List[str] = [
    RuleType.MISLEADING_CLAIMS.value,
    RuleType.FALSE_PROMISES.value,
    RuleType.CLICKBAIT.value,
    RuleType.MEDICAL_CLAIMS.value,
    RuleType.FINANCIAL_GUARANTEES.value,
    RuleType.BEFORE_AFTER_CLAIMS.value,
]

LANDING_PAGE_RULES: List[str] = [
    RuleType.RELEVANCE_TO_AD.value,
    RuleType.MISLEADING_CONTENT.value,
    RuleType.PAGE_ACCESSIBILITY.value,
    RuleType.USER_EXPERIENCE.value,
    RuleType.CONTENT_QUALITY.value,
]

RULES_BY_TASK: Dict[TaskKind, List[str]] = {
    TaskKind.CREATIVE: CREATIVE_RULES,
    TaskKind.LANDING_PAGE: LANDING_PAGE_RULES,
}

_SEVERITIES = "|".join(s.value for s in Severity)

INSTRUCTIONS = {
    TaskKind.CREATIVE: (
        "You are an ad compliance analyst. Judge the ad creative in 'content' "
        "against every rule set to true in 'rules'. Text fields may hold "
        "placeholders such as 'no images available'; 'evidence_status' says "
        "which fields are real evidence. Report each violation with the exact "
        "offending excerpt. Respond with a single JSON object matching "
        "'expected_response_format' and nothing else."
    ),
    TaskKind.LANDING_PAGE: (
        "You are an ad compliance analyst. Judge the landing page in 'content' "
        "against every rule set to true in 'rules'. 'ad_content' is the ad that "
        "links to the page; relevance_to_ad asks whether the page delivers what "
        "the ad promises. A null 'landing_page_content' means the page could "
        "not be reached. Respond with a single JSON object matching "
        "'expected_response_format' and nothing else."
    ),
}


class JudgmentRequest(BaseModel):
    """Structured request document sent to the reasoning service."""
    task: TaskKind
    ad_id: str
    content: Dict[str, Any]
    rules: Dict[str, bool]
    expected_response_format: Dict[str, str]
    instructions: str
    checklist_version: str = CHECKLIST_VERSION


def default_checklist(task: TaskKind) -> Dict[str, bool]:
    """All rules for a task kind, enabled."""
    return {rule: True for rule in RULES_BY_TASK[task]}


def build_checklist(task: TaskKind, overrides: Optional[Mapping[str, bool]] = None) -> Dict[str, bool]:
    """
    Default checklist with per-rule toggles applied.

    Raises:
        ValueError: If an override names a rule outside this task's checklist
    """
    checklist = default_checklist(task)
    for rule, enabled in (overrides or {}).items():
        if rule not in checklist:
            raise ValueError(f"Unknown {task.value} rule: {rule}")
        checklist[rule] = bool(enabled)
    return checklist


def expected_response_format(task: TaskKind) -> Dict[str, str]:
    """Schema descriptor for the verdict the reasoning service must return."""
    rule_names = ", ".join(RULES_BY_TASK[task] + [RuleType.OTHER.value])
    return {
        "compliant": "boolean",
        "confidence_score": "number (0-1)",
        "violations": (
            "array of objects: {rule_type: one of [" + rule_names + "], "
            "severity: " + _SEVERITIES + ", description: string, "
            "violated_text: string (exact excerpt, empty if structural)}"
        ),
        "reasoning": "string",
    }


def build_creative_request(
    bundle: CreativeEvidenceBundle,
    checklist: Optional[Mapping[str, bool]] = None,
) -> JudgmentRequest:
    """Judgment request for an ad's creative."""
    content = {
        "text_content": bundle.text_content.text,
        "ocr_text": bundle.ocr_text.text,
        "visual_description": bundle.visual_description.text,
        "audio_transcript": bundle.audio_transcript.text,
        "evidence_status": {
            "text_content": bundle.text_content.status.value,
            "ocr_text": bundle.ocr_text.status.value,
            "visual_description": bundle.visual_description.status.value,
            "audio_transcript": bundle.audio_transcript.status.value,
        },
    }
    return JudgmentRequest(
        task=TaskKind.CREATIVE,
        ad_id=bundle.ad_id,
        content=content,
        rules=dict(checklist) if checklist is not None else default_checklist(TaskKind.CREATIVE),
        expected_response_format=expected_response_format(TaskKind.CREATIVE),
        instructions=INSTRUCTIONS[TaskKind.CREATIVE],
    )


def build_landing_page_request(
    bundle: LandingPageEvidenceBundle,
    checklist: Optional[Mapping[str, bool]] = None,
) -> JudgmentRequest:
    """Judgment request for an ad's landing page."""
    content = {
        "landing_page_url": bundle.landing_page_url,
        "ad_content": dict(bundle.ad_content),
        "landing_page_content": bundle.page_content,
        "content_truncated": bundle.truncated,
        "page_reachable": bundle.is_accessible,
        "screenshot_available": bundle.screenshot_path is not None,
    }
    return JudgmentRequest(
        task=TaskKind.LANDING_PAGE,
        ad_id=bundle.ad_id,
        content=content,
        rules=dict(checklist) if checklist is not None else default_checklist(TaskKind.LANDING_PAGE),
        expected_response_format=expected_response_format(TaskKind.LANDING_PAGE),
        instructions=INSTRUCTIONS[TaskKind.LANDING_PAGE],
    )


def to_request_document(request: JudgmentRequest) -> str:
    """Serialize a request to its canonical JSON document."""
    return json.dumps(
        request.model_dump(mode="json"),
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
    )
