"""
Verdict parsing for reasoning-service responses.

parse_verdict() always returns a ComplianceVerdict:
1. Strict JSON decode of the raw response
2. Lenient extraction (markdown code fences, JSON embedded in prose)
3. Schema validation of the decoded object

If any step fails the result is a fallback verdict that fails closed:
compliant=False, confidence 0.0, the failure reason in `reasoning`, and the
raw response kept verbatim for audit.
"""

import json
import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, StrictBool, StrictStr, ValidationError, field_validator

from ..core.models import ComplianceVerdict, RuleType, Severity, Violation

logger = logging.getLogger(__name__)

FALLBACK_REASONING_PREFIX = "Compliance verdict could not be parsed"


# ============================================================================
# Response schema
# ============================================================================

class JudgmentViolation(BaseModel):
    """One violation as reported by the judge, before normalization."""
    model_config = ConfigDict(extra="ignore")

    rule_type: StrictStr
    severity: StrictStr
    description: Optional[StrictStr] = None
    violated_text: Optional[StrictStr] = None


class JudgmentResponse(BaseModel):
    """The response document the judge is asked to produce."""
    model_config = ConfigDict(extra="ignore")

    compliant: StrictBool
    confidence_score: float
    violations: List[JudgmentViolation]
    reasoning: StrictStr

    @field_validator("confidence_score", mode="before")
    @classmethod
    def _must_be_finite_number(cls, value: Any) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("confidence_score must be a number")
        try:
            number = float(value)
        except OverflowError:
            # Integers past float range still clamp into [0, 1]
            return 1.0 if value > 0 else 0.0
        if not math.isfinite(number):
            raise ValueError("confidence_score must be finite")
        return number


# ============================================================================
# Decoding
# ============================================================================

def extract_json_object(response_text: str) -> Dict[str, Any]:
    """Parse a JSON object from LLM output, tolerating code fences and prose.

    Tries three strategies:
    1. Direct JSON parse
    2. Parse after stripping ``` fences
    3. Parse the outermost {...} span of the text

    Raises:
        ValueError: If no JSON object can be decoded
    """
    try:
        return json.loads(response_text)
    except json.JSONDecodeError:
        pass

    clean = response_text.strip()
    if clean.startswith("```"):
        lines = clean.split("\n")
        if lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        clean = "\n".join(lines).strip()
        try:
            return json.loads(clean)
        except json.JSONDecodeError:
            pass

    start = clean.find("{")
    end = clean.rfind("}")
    if start != -1 and end != -1 and end > start:
        try:
            return json.loads(clean[start : end + 1])
        except json.JSONDecodeError:
            pass

    preview = clean[:200] if clean else "<empty>"
    raise ValueError(f"no JSON object found in response: {preview}")


# ============================================================================
# Normalization
# ============================================================================

def normalize_severity(value: str) -> Tuple[Severity, Optional[str]]:
    """Match a severity case-insensitively; unknown values become MEDIUM.

    Returns:
        (severity, unrecognized original string or None)
    """
    try:
        return Severity(value.strip().upper()), None
    except ValueError:
        return Severity.MEDIUM, value


def normalize_rule_type(value: str) -> Tuple[RuleType, Optional[str]]:
    """Match a rule type leniently ('Check Medical-Claims' -> medical_claims).

    Returns:
        (rule type, unrecognized original string or None)
    """
    key = value.strip().lower().replace("-", "_").replace(" ", "_")
    if key.startswith("check_"):
        key = key[len("check_"):]
    try:
        return RuleType(key), None
    except ValueError:
        return RuleType.OTHER, value


def _to_violation(item: JudgmentViolation) -> Violation:
    severity, unknown_severity = normalize_severity(item.severity)
    rule_type, unknown_rule = normalize_rule_type(item.rule_type)

    description = item.description or ""
    if unknown_rule is not None:
        description = f"{description} [unrecognized rule type: {unknown_rule}]".strip()
    if unknown_severity is not None:
        description = f"{description} [unrecognized severity: {unknown_severity}]".strip()

    return Violation(
        rule_type=rule_type,
        severity=severity,
        description=description,
        violated_text=item.violated_text or "",
    )


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        location = ".".join(str(p) for p in err.get("loc", ())) or "response"
        parts.append(f"{location}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


# ============================================================================
# Public API
# ============================================================================

def fallback_verdict(raw_response: str, reason: str) -> ComplianceVerdict:
    """Conservative non-compliant verdict for an unusable response."""
    return ComplianceVerdict(
        compliant=False,
        confidence_score=0.0,
        reasoning=f"{FALLBACK_REASONING_PREFIX}: {reason}",
        violations=[],
        raw_response=raw_response,
        parse_error=reason,
    )


def parse_verdict(raw_response: str) -> ComplianceVerdict:
    """
    Parse a reasoning-service response document into a ComplianceVerdict.

    Never raises. Confidence scores are clamped into [0, 1].
    """
    if not isinstance(raw_response, str):
        return fallback_verdict("" if raw_response is None else str(raw_response), "response is not text")

    try:
        data = extract_json_object(raw_response)
        parsed = JudgmentResponse.model_validate(data)
    except ValidationError as e:
        reason = _describe_validation_error(e)
        logger.warning(f"Judgment response failed schema validation: {reason}")
        return fallback_verdict(raw_response, reason)
    except (ValueError, TypeError, OverflowError) as e:
        logger.warning(f"Judgment response could not be decoded: {e}")
        return fallback_verdict(raw_response, str(e))
    except RecursionError:
        logger.warning("Judgment response is nested too deeply to decode")
        return fallback_verdict(raw_response, "response is nested too deeply")

    return ComplianceVerdict(
        compliant=parsed.compliant,
        confidence_score=parsed.confidence_score,
        reasoning=parsed.reasoning,
        violations=[_to_violation(v) for v in parsed.violations],
        raw_response=raw_response,
    )
