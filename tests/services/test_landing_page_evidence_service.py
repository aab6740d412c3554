"""
Tests for LandingPageEvidenceService - domain normalization, truncation,
screenshot lookup, and unreachable pages.
"""

import pytest

from adcompliance.services import landing_page_evidence_service
from adcompliance.services.landing_page_evidence_service import (
    LandingPageEvidenceService,
    normalize_domain,
    truncate_content,
)


class TestNormalizeDomain:
    @pytest.mark.parametrize("url,expected", [
        ("https://www.Example.com/offer?x=1", "example.com"),
        ("http://shop.example.com", "shop.example.com"),
        ("www.example.com/a/b", "example.com"),
        ("example.com", "example.com"),
        ("", "unknown"),
        (None, "unknown"),
    ])
    def test_normalize(self, url, expected):
        assert normalize_domain(url) == expected


class TestTruncateContent:
    def test_under_limit_untouched(self):
        assert truncate_content("abc", 3) == ("abc", False)

    def test_over_limit_cut(self):
        assert truncate_content("abcdef", 4) == ("abcd", True)


class TestGather:
    def test_no_url(self, tmp_path, make_ad):
        service = LandingPageEvidenceService(media_root=str(tmp_path))

        bundle = service.gather(make_ad(landing_page_url=None), "ignored")

        assert bundle.landing_page_url is None
        assert bundle.has_landing_page is False
        assert bundle.page_content is None

    def test_unreachable_page(self, tmp_path, make_ad):
        service = LandingPageEvidenceService(media_root=str(tmp_path))

        bundle = service.gather(make_ad(), None)

        assert bundle.has_landing_page is True
        assert bundle.is_accessible is False

    def test_content_truncated_to_limit(self, tmp_path, make_ad):
        service = LandingPageEvidenceService(media_root=str(tmp_path), content_limit=3000)

        bundle = service.gather(make_ad(), "x" * 5000)

        assert len(bundle.page_content) == 3000
        assert bundle.truncated is True
        assert bundle.is_accessible is True

    def test_ad_copy_is_carried(self, tmp_path, make_ad):
        service = LandingPageEvidenceService(media_root=str(tmp_path))

        bundle = service.gather(make_ad(call_to_action="Shop Now"), "page")

        assert bundle.ad_content == {
            "headline": "Try our new blender",
            "primary_text": "Smoothies in seconds.",
            "description": None,
            "call_to_action": "Shop Now",
        }


class TestScreenshots:
    def test_candidate_order(self, tmp_path, make_ad):
        service = LandingPageEvidenceService(media_root=str(tmp_path))

        candidates = service.screenshot_candidates(make_ad())

        assert candidates == [
            tmp_path / "screenshots" / "example.com" / "ad-1_landing_page.png",
            tmp_path / "screenshots" / "ad-1_landing_page.png",
            tmp_path / "images" / "example.com" / "ad-1_landing_page.png",
        ]

    def test_first_existing_wins(self, tmp_path, make_ad):
        fallback = tmp_path / "images" / "example.com" / "ad-1_landing_page.png"
        fallback.parent.mkdir(parents=True)
        fallback.write_bytes(b"png")
        service = LandingPageEvidenceService(media_root=str(tmp_path))

        bundle = service.gather(make_ad(), "page")

        assert bundle.screenshot_path == str(fallback)

    def test_missing_screenshot(self, tmp_path, make_ad):
        service = LandingPageEvidenceService(media_root=str(tmp_path))
        assert service.find_screenshot(make_ad()) is None


class TestDegradedBundle:
    def test_marks_page_unreachable(self, make_ad):
        bundle = landing_page_evidence_service.degraded_bundle(make_ad(), ValueError("bad"))

        assert bundle.error == "bad"
        assert bundle.has_landing_page is True
        assert bundle.is_accessible is False
