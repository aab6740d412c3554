"""
Tests for judgment request construction - checklist defaults and overrides,
request content, and deterministic serialization.
"""

import json

import pytest

from adcompliance.core.models import TaskKind
from adcompliance.services.evidence_service import CreativeEvidenceService
from adcompliance.services.judgment_request import (
    CHECKLIST_VERSION,
    CREATIVE_RULES,
    LANDING_PAGE_RULES,
    build_checklist,
    build_creative_request,
    build_landing_page_request,
    default_checklist,
    to_request_document,
)
from adcompliance.services.landing_page_evidence_service import LandingPageEvidenceService


@pytest.fixture
def creative_bundle(make_ad):
    return CreativeEvidenceService().gather(make_ad(local_image_paths=["a.png"]))


@pytest.fixture
def landing_bundle(tmp_path, make_ad):
    return LandingPageEvidenceService(media_root=str(tmp_path)).gather(make_ad(), "Blender. Free shipping.")


# ============================================================================
# Checklists
# ============================================================================

class TestChecklists:
    def test_creative_defaults_all_enabled(self):
        checklist = default_checklist(TaskKind.CREATIVE)
        assert list(checklist) == CREATIVE_RULES
        assert all(checklist.values())

    def test_landing_page_rules(self):
        assert LANDING_PAGE_RULES == [
            "relevance_to_ad",
            "misleading_content",
            "page_accessibility",
            "user_experience",
            "content_quality",
        ]

    def test_override_disables_rule(self):
        checklist = build_checklist(TaskKind.CREATIVE, {"clickbait": False})
        assert checklist["clickbait"] is False
        assert checklist["medical_claims"] is True

    def test_unknown_rule_raises(self):
        with pytest.raises(ValueError, match="Unknown creative rule"):
            build_checklist(TaskKind.CREATIVE, {"relevance_to_ad": True})


# ============================================================================
# Request content
# ============================================================================

class TestCreativeRequest:
    def test_fields(self, creative_bundle):
        request = build_creative_request(creative_bundle)

        assert request.task == TaskKind.CREATIVE
        assert request.ad_id == "ad-1"
        assert request.checklist_version == CHECKLIST_VERSION
        assert request.content["evidence_status"]["visual_description"] == "requires_manual_review"
        assert set(request.expected_response_format) == {
            "compliant", "confidence_score", "violations", "reasoning",
        }

    def test_custom_checklist_is_used(self, creative_bundle):
        checklist = build_checklist(TaskKind.CREATIVE, {"clickbait": False})
        request = build_creative_request(creative_bundle, checklist)
        assert request.rules["clickbait"] is False


class TestLandingPageRequest:
    def test_carries_url_and_ad_copy(self, landing_bundle):
        request = build_landing_page_request(landing_bundle)

        assert request.task == TaskKind.LANDING_PAGE
        assert request.content["landing_page_url"] == "https://www.example.com/blender"
        assert request.content["ad_content"]["headline"] == "Try our new blender"
        assert request.content["landing_page_content"] == "Blender. Free shipping."
        assert request.content["page_reachable"] is True


# ============================================================================
# Serialization
# ============================================================================

class TestRequestDocument:
    def test_byte_identical_for_same_input(self, creative_bundle):
        first = to_request_document(build_creative_request(creative_bundle))
        second = to_request_document(build_creative_request(creative_bundle.model_copy(deep=True)))
        assert first == second

    def test_is_self_describing_json(self, landing_bundle):
        doc = json.loads(to_request_document(build_landing_page_request(landing_bundle)))

        for key in ("task", "ad_id", "content", "rules", "expected_response_format", "instructions"):
            assert key in doc
        assert doc["task"] == "landing_page"

    def test_keys_sorted(self, creative_bundle):
        doc = to_request_document(build_creative_request(creative_bundle))
        parsed = json.loads(doc)
        assert list(parsed) == sorted(parsed)
