"""
Tests for verdict parsing - fail-closed fallback, lenient extraction,
confidence clamping, and severity / rule type normalization.
"""

import json

import pytest

from adcompliance.core.models import RuleType, Severity
from adcompliance.services.verdict_parser import (
    FALLBACK_REASONING_PREFIX,
    extract_json_object,
    normalize_rule_type,
    normalize_severity,
    parse_verdict,
)


def _response(**overrides):
    data = {
        "compliant": False,
        "confidence_score": 0.8,
        "violations": [],
        "reasoning": "because",
    }
    data.update(overrides)
    return json.dumps(data)


# ============================================================================
# Fallback safety
# ============================================================================

class TestFallback:
    @pytest.mark.parametrize("raw", [
        "",
        "not json at all",
        "{\"compliant\": true",
        "[1, 2, 3]",
        json.dumps({"compliant": "yes", "confidence_score": 1, "violations": [], "reasoning": ""}),
        json.dumps({"compliant": True, "violations": [], "reasoning": ""}),
        json.dumps({"compliant": True, "confidence_score": True, "violations": [], "reasoning": ""}),
        json.dumps({"compliant": True, "confidence_score": 0.5, "violations": "none", "reasoning": ""}),
        "[" * 100000,
        "{\"compliant\": true, \"reasoning\": " + "{\"a\": " * 50000,
    ])
    def test_unusable_response_fails_closed(self, raw):
        verdict = parse_verdict(raw)

        assert verdict.compliant is False
        assert verdict.confidence_score == 0.0
        assert verdict.violations == []
        assert verdict.raw_response == raw
        assert verdict.is_fallback
        assert verdict.reasoning.startswith(FALLBACK_REASONING_PREFIX)

    def test_non_finite_confidence_rejected(self):
        raw = '{"compliant": true, "confidence_score": NaN, "violations": [], "reasoning": "x"}'
        assert parse_verdict(raw).is_fallback

    def test_non_text_input(self):
        verdict = parse_verdict(None)
        assert verdict.is_fallback
        assert verdict.raw_response == ""

    def test_raw_response_kept_verbatim(self):
        raw = "Sorry, I cannot help with that."
        assert parse_verdict(raw).raw_response == raw


# ============================================================================
# Lenient extraction
# ============================================================================

class TestExtraction:
    def test_code_fence(self):
        raw = "```json\n" + _response() + "\n```"
        verdict = parse_verdict(raw)
        assert not verdict.is_fallback
        assert verdict.raw_response == raw

    def test_embedded_in_prose(self):
        raw = "Here is my verdict: " + _response(compliant=True) + " Thanks."
        assert parse_verdict(raw).compliant is True

    def test_extract_raises_value_error(self):
        with pytest.raises(ValueError, match="no JSON object"):
            extract_json_object("nothing here")


# ============================================================================
# Clamping
# ============================================================================

class TestConfidence:
    @pytest.mark.parametrize("score,expected", [(-0.5, 0.0), (1.7, 1.0), (0.42, 0.42), (1, 1.0)])
    def test_clamped(self, score, expected):
        assert parse_verdict(_response(confidence_score=score)).confidence_score == expected

    @pytest.mark.parametrize("digits,expected", [("1" + "0" * 400, 1.0), ("-1" + "0" * 400, 0.0)])
    def test_integer_beyond_float_range_clamped(self, digits, expected):
        raw = '{"compliant": true, "confidence_score": ' + digits + ', "violations": [], "reasoning": "x"}'

        verdict = parse_verdict(raw)

        assert not verdict.is_fallback
        assert verdict.confidence_score == expected


# ============================================================================
# Violations
# ============================================================================

class TestViolations:
    def test_parsed(self):
        raw = _response(violations=[{
            "rule_type": "medical_claims",
            "severity": "critical",
            "description": "Unsubstantiated weight loss",
            "violated_text": "Lose 30 lbs in 30 days",
        }])

        verdict = parse_verdict(raw)

        assert verdict.violation_count == 1
        violation = verdict.violations[0]
        assert violation.rule_type == RuleType.MEDICAL_CLAIMS
        assert violation.severity == Severity.CRITICAL
        assert violation.violated_text == "Lose 30 lbs in 30 days"
        assert verdict.critical_violation_count == 1
        assert verdict.max_severity == Severity.CRITICAL

    def test_unknown_severity_becomes_medium(self):
        raw = _response(violations=[{"rule_type": "clickbait", "severity": "SEVERE", "description": "bait"}])

        violation = parse_verdict(raw).violations[0]

        assert violation.severity == Severity.MEDIUM
        assert violation.description == "bait [unrecognized severity: SEVERE]"

    def test_unknown_rule_type_becomes_other(self):
        raw = _response(violations=[{"rule_type": "tobacco", "severity": "HIGH"}])

        violation = parse_verdict(raw).violations[0]

        assert violation.rule_type == RuleType.OTHER
        assert violation.description == "[unrecognized rule type: tobacco]"

    def test_missing_optional_fields(self):
        raw = _response(violations=[{"rule_type": "clickbait", "severity": "LOW"}])
        violation = parse_verdict(raw).violations[0]
        assert violation.description == ""
        assert violation.violated_text == ""

    def test_compliant_with_low_violation_is_kept(self):
        raw = _response(compliant=True, violations=[{"rule_type": "clickbait", "severity": "LOW"}])
        verdict = parse_verdict(raw)
        assert verdict.compliant is True
        assert verdict.has_violations


class TestNormalization:
    @pytest.mark.parametrize("value,expected", [
        ("check_medical_claims", RuleType.MEDICAL_CLAIMS),
        ("Before-After Claims", RuleType.BEFORE_AFTER_CLAIMS),
        ("RELEVANCE_TO_AD", RuleType.RELEVANCE_TO_AD),
    ])
    def test_rule_type(self, value, expected):
        assert normalize_rule_type(value) == (expected, None)

    def test_severity_case_insensitive(self):
        assert normalize_severity(" high ") == (Severity.HIGH, None)
