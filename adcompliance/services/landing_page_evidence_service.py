"""
LandingPageEvidenceService - Assembles the landing page evidence bundle.

Works on page content the scraper already fetched; this service never makes
network calls. It locates a stored screenshot, truncates long content to the
request limit, and carries the ad copy along for the relevance rule.
"""

import logging
import re
from pathlib import Path
from typing import List, Optional

from ..core.config import Config
from ..core.models import LandingPageEvidenceBundle, ScrapedAd

logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_WWW_RE = re.compile(r"^www\.", re.IGNORECASE)


def normalize_domain(url: Optional[str]) -> str:
    """
    Reduce a URL to its bare lowercase host.

    'https://www.Example.com/offer?x=1' -> 'example.com'
    """
    if not url or not url.strip():
        return "unknown"

    domain = _SCHEME_RE.sub("", url.strip())
    domain = _WWW_RE.sub("", domain)
    slash = domain.find("/")
    if slash > 0:
        domain = domain[:slash]
    return domain.lower()


def truncate_content(content: str, limit: int) -> tuple:
    """Return (content, truncated) keeping at most `limit` characters."""
    if len(content) > limit:
        return content[:limit], True
    return content, False


class LandingPageEvidenceService:
    """Builds LandingPageEvidenceBundle instances.

    Usage:
        service = LandingPageEvidenceService()
        bundle = service.gather(scraped_ad, page_markdown)
    """

    def __init__(self, media_root: Optional[str] = None, content_limit: Optional[int] = None):
        self.media_root = Path(media_root or Config.MEDIA_ROOT)
        self.content_limit = content_limit or Config.LANDING_PAGE_CONTENT_LIMIT

    def gather(self, ad: ScrapedAd, page_content: Optional[str]) -> LandingPageEvidenceBundle:
        """
        Assemble landing page evidence for an ad.

        Args:
            ad: The scraped ad
            page_content: Scraped page text, or None if the page was unreachable

        Returns:
            LandingPageEvidenceBundle (landing_page_url is None when the ad has no link)
        """
        bundle = LandingPageEvidenceBundle(
            ad_id=ad.ad_id,
            landing_page_url=ad.landing_page_url or None,
            ad_content=ad.declared_copy(),
        )

        if not bundle.has_landing_page:
            logger.info(f"Ad {ad.ad_id} has no landing page URL")
            return bundle

        bundle.screenshot_path = self.find_screenshot(ad)

        if page_content is None:
            logger.warning(f"Landing page for ad {ad.ad_id} was not reachable: {ad.landing_page_url}")
            return bundle

        bundle.page_content, bundle.truncated = truncate_content(page_content, self.content_limit)
        if bundle.truncated:
            logger.debug(
                f"Truncated landing page content for ad {ad.ad_id} "
                f"from {len(page_content)} to {self.content_limit} chars"
            )
        return bundle

    def screenshot_candidates(self, ad: ScrapedAd) -> List[Path]:
        """Conventional screenshot locations, in lookup order."""
        domain = normalize_domain(ad.landing_page_url)
        filename = f"{ad.ad_id}_landing_page.png"
        return [
            self.media_root / "screenshots" / domain / filename,
            self.media_root / "screenshots" / filename,
            self.media_root / "images" / domain / filename,
        ]

    def find_screenshot(self, ad: ScrapedAd) -> Optional[str]:
        """First existing screenshot path, or None."""
        for candidate in self.screenshot_candidates(ad):
            if candidate.exists():
                logger.debug(f"Found screenshot at: {candidate}")
                return str(candidate)

        logger.debug(f"No screenshot found for ad: {ad.ad_id}")
        return None


def degraded_bundle(ad: ScrapedAd, error: Exception) -> LandingPageEvidenceBundle:
    """Bundle for an ad whose landing page aggregation crashed; the page counts as unreachable."""
    return LandingPageEvidenceBundle(
        ad_id=ad.ad_id,
        landing_page_url=ad.landing_page_url or None,
        ad_content=ad.declared_copy(),
        error=str(error) or type(error).__name__,
    )
