"""
Analysis Store - Persistence for AdComplianceAnalysis records.

One record per (ad_id, domain_id). put() replaces the whole record in a
single upsert, so readers see either the previous analysis or the new one,
never a mix.

Usage:
    from adcompliance.services.analysis_store import SupabaseAnalysisStore

    store = SupabaseAnalysisStore()
    store.put(analysis)
    latest = store.get("ad-123", "example.com")
"""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from supabase import Client

from ..core.database import get_supabase_client
from ..core.exceptions import AnalysisStoreError
from ..core.models import AdComplianceAnalysis

logger = logging.getLogger(__name__)

ANALYSIS_TABLE = "ad_compliance_analyses"


class AnalysisStore(ABC):
    """Storage contract used by the orchestrator and staleness policy."""

    @abstractmethod
    def get(self, ad_id: str, domain_id: Optional[str] = None) -> Optional[AdComplianceAnalysis]:
        """Latest analysis for an ad (restricted to domain_id when given)."""

    @abstractmethod
    def put(self, analysis: AdComplianceAnalysis) -> None:
        """Atomically replace the stored analysis for (ad_id, domain_id)."""

    @abstractmethod
    def list_stale(self, max_age: timedelta) -> List[str]:
        """Ad ids whose analysis was computed more than max_age ago."""


def analysis_to_row(analysis: AdComplianceAnalysis) -> Dict[str, Any]:
    """Flatten an analysis into a table row (verdicts stored as JSON)."""
    row = analysis.model_dump(mode="json")
    row["critical_violation_count"] = analysis.critical_violation_count
    return row


def row_to_analysis(row: Dict[str, Any]) -> AdComplianceAnalysis:
    return AdComplianceAnalysis.model_validate(row)


class SupabaseAnalysisStore(AnalysisStore):
    """AnalysisStore on the ad_compliance_analyses table."""

    def __init__(self, supabase: Optional[Client] = None):
        self.supabase = supabase or get_supabase_client()

    def get(self, ad_id: str, domain_id: Optional[str] = None) -> Optional[AdComplianceAnalysis]:
        try:
            query = self.supabase.table(ANALYSIS_TABLE).select("*").eq("ad_id", ad_id)
            if domain_id is not None:
                query = query.eq("domain_id", domain_id)
            result = query.order("computed_at", desc=True).limit(1).execute()
        except Exception as e:
            raise AnalysisStoreError(f"Failed to load analysis for ad {ad_id}: {e}") from e

        if not result.data:
            return None
        return row_to_analysis(result.data[0])

    def put(self, analysis: AdComplianceAnalysis) -> None:
        try:
            self.supabase.table(ANALYSIS_TABLE).upsert(
                analysis_to_row(analysis), on_conflict="ad_id,domain_id"
            ).execute()
        except Exception as e:
            raise AnalysisStoreError(f"Failed to store analysis for ad {analysis.ad_id}: {e}") from e

        logger.info(
            f"Stored compliance analysis for ad {analysis.ad_id} "
            f"(compliant={analysis.overall_compliant}, score={analysis.overall_score:.2f})"
        )

    def list_stale(self, max_age: timedelta) -> List[str]:
        cutoff = datetime.now(timezone.utc) - max_age
        try:
            result = self.supabase.table(ANALYSIS_TABLE).select("ad_id").lt(
                "computed_at", cutoff.isoformat()
            ).order("computed_at").execute()
        except Exception as e:
            raise AnalysisStoreError(f"Failed to list stale analyses: {e}") from e

        ad_ids = []
        for row in result.data or []:
            if row["ad_id"] not in ad_ids:
                ad_ids.append(row["ad_id"])
        return ad_ids

    def list_for_domain(self, domain_id: str, limit: int = 100) -> List[AdComplianceAnalysis]:
        """Most recent analyses for a domain, newest first."""
        try:
            result = self.supabase.table(ANALYSIS_TABLE).select("*").eq(
                "domain_id", domain_id
            ).order("computed_at", desc=True).limit(limit).execute()
        except Exception as e:
            raise AnalysisStoreError(f"Failed to list analyses for domain {domain_id}: {e}") from e

        return [row_to_analysis(row) for row in result.data or []]

    def get_domain_summary(self, domain_id: str) -> Dict[str, Any]:
        """
        Compliance roll-up for one domain.

        Returns:
            Dict with total_analyses, compliant_count, compliance_rate (%),
            average_score, manual_review_count, critical_violations
        """
        try:
            result = self.supabase.table(ANALYSIS_TABLE).select(
                "overall_compliant, overall_score, requires_manual_review, critical_violation_count"
            ).eq("domain_id", domain_id).execute()
        except Exception as e:
            raise AnalysisStoreError(f"Failed to summarize domain {domain_id}: {e}") from e

        return summarize_rows(domain_id, result.data or [])


def summarize_rows(domain_id: str, rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    total = len(rows)
    compliant = sum(1 for r in rows if r.get("overall_compliant"))
    scores = [r["overall_score"] for r in rows if r.get("overall_score") is not None]

    return {
        "domain_id": domain_id,
        "total_analyses": total,
        "compliant_count": compliant,
        "compliance_rate": round(compliant / total * 100, 2) if total else 0.0,
        "average_score": round(sum(scores) / len(scores), 4) if scores else 0.0,
        "manual_review_count": sum(1 for r in rows if r.get("requires_manual_review")),
        "critical_violations": sum(r.get("critical_violation_count") or 0 for r in rows),
    }


class InMemoryAnalysisStore(AnalysisStore):
    """Process-local store for dry runs and tests."""

    def __init__(self):
        self._records: Dict[Tuple[str, str], AdComplianceAnalysis] = {}
        self._lock = threading.Lock()

    def get(self, ad_id: str, domain_id: Optional[str] = None) -> Optional[AdComplianceAnalysis]:
        with self._lock:
            if domain_id is not None:
                found = self._records.get((ad_id, domain_id))
            else:
                matches = [a for (aid, _), a in self._records.items() if aid == ad_id]
                found = max(matches, key=lambda a: a.computed_at) if matches else None
            return found.model_copy(deep=True) if found is not None else None

    def put(self, analysis: AdComplianceAnalysis) -> None:
        with self._lock:
            self._records[(analysis.ad_id, analysis.domain_id)] = analysis.model_copy(deep=True)

    def list_stale(self, max_age: timedelta) -> List[str]:
        cutoff = datetime.now(timezone.utc) - max_age
        with self._lock:
            stale = [a for a in self._records.values() if _as_utc(a.computed_at) < cutoff]
        return sorted({a.ad_id for a in stale})

    def __len__(self) -> int:
        return len(self._records)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
