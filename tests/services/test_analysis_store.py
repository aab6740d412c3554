"""
Tests for analysis persistence - Supabase upsert/query shapes, error
wrapping, domain roll-ups, and the in-memory store.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from adcompliance.core.exceptions import AnalysisStoreError
from adcompliance.core.models import AdComplianceAnalysis, ComplianceVerdict, Severity, Violation
from adcompliance.services.analysis_store import (
    ANALYSIS_TABLE,
    InMemoryAnalysisStore,
    SupabaseAnalysisStore,
    analysis_to_row,
    summarize_rows,
)


def _analysis(ad_id="ad-1", domain_id="example.com", computed_at=None, compliant=True, score=0.8):
    creative = ComplianceVerdict(
        compliant=compliant,
        confidence_score=score,
        violations=[] if compliant else [
            Violation(rule_type="medical_claims", severity=Severity.CRITICAL, description="x"),
        ],
    )
    return AdComplianceAnalysis(
        ad_id=ad_id,
        domain_id=domain_id,
        creative_verdict=creative,
        landing_page_verdict=ComplianceVerdict(compliant=True, confidence_score=0.5),
        overall_compliant=compliant,
        overall_score=score,
        computed_at=computed_at or datetime.now(timezone.utc),
        content_fingerprint="fp",
    )


@pytest.fixture
def mock_db():
    """Create a mock Supabase client."""
    return MagicMock()


@pytest.fixture
def supabase_store(mock_db):
    return SupabaseAnalysisStore(mock_db)


# ============================================================================
# SupabaseAnalysisStore
# ============================================================================

class TestPut:
    def test_upserts_full_record(self, supabase_store, mock_db):
        analysis = _analysis(compliant=False)

        supabase_store.put(analysis)

        mock_db.table.assert_called_with(ANALYSIS_TABLE)
        upsert = mock_db.table.return_value.upsert
        row = upsert.call_args[0][0]
        assert upsert.call_args[1] == {"on_conflict": "ad_id,domain_id"}
        assert row["ad_id"] == "ad-1"
        assert row["critical_violation_count"] == 1
        assert row["creative_verdict"]["violations"][0]["severity"] == "CRITICAL"
        upsert.return_value.execute.assert_called_once()

    def test_errors_wrapped(self, supabase_store, mock_db):
        mock_db.table.return_value.upsert.return_value.execute.side_effect = RuntimeError("conn reset")

        with pytest.raises(AnalysisStoreError, match="conn reset"):
            supabase_store.put(_analysis())


class TestGet:
    def test_round_trips_row(self, supabase_store, mock_db):
        row = analysis_to_row(_analysis())
        query = mock_db.table.return_value.select.return_value.eq.return_value.eq.return_value
        query.order.return_value.limit.return_value.execute.return_value = MagicMock(data=[row])

        result = supabase_store.get("ad-1", "example.com")

        assert result.ad_id == "ad-1"
        assert result.creative_verdict.confidence_score == 0.8

    def test_missing(self, supabase_store, mock_db):
        query = mock_db.table.return_value.select.return_value.eq.return_value
        query.order.return_value.limit.return_value.execute.return_value = MagicMock(data=[])

        assert supabase_store.get("ad-1") is None


class TestListStale:
    def test_dedupes_ad_ids(self, supabase_store, mock_db):
        query = mock_db.table.return_value.select.return_value.lt.return_value
        query.order.return_value.execute.return_value = MagicMock(
            data=[{"ad_id": "a"}, {"ad_id": "b"}, {"ad_id": "a"}]
        )

        assert supabase_store.list_stale(timedelta(days=30)) == ["a", "b"]
        assert mock_db.table.return_value.select.return_value.lt.call_args[0][0] == "computed_at"


class TestDomainSummary:
    def test_summarize_rows(self):
        rows = [
            {"overall_compliant": True, "overall_score": 0.9, "requires_manual_review": True, "critical_violation_count": 0},
            {"overall_compliant": False, "overall_score": 0.5, "requires_manual_review": False, "critical_violation_count": 2},
        ]

        summary = summarize_rows("example.com", rows)

        assert summary["total_analyses"] == 2
        assert summary["compliant_count"] == 1
        assert summary["compliance_rate"] == 50.0
        assert summary["average_score"] == pytest.approx(0.7)
        assert summary["manual_review_count"] == 1
        assert summary["critical_violations"] == 2

    def test_empty_domain(self):
        summary = summarize_rows("none.com", [])
        assert summary["total_analyses"] == 0
        assert summary["compliance_rate"] == 0.0


# ============================================================================
# InMemoryAnalysisStore
# ============================================================================

class TestInMemoryStore:
    def test_put_replaces(self):
        store = InMemoryAnalysisStore()
        store.put(_analysis(score=0.1))
        store.put(_analysis(score=0.9))

        assert len(store) == 1
        assert store.get("ad-1", "example.com").overall_score == 0.9

    def test_get_without_domain_returns_latest(self):
        store = InMemoryAnalysisStore()
        now = datetime.now(timezone.utc)
        store.put(_analysis(domain_id="a.com", computed_at=now - timedelta(days=2)))
        store.put(_analysis(domain_id="b.com", computed_at=now))

        assert store.get("ad-1").domain_id == "b.com"

    def test_list_stale(self):
        store = InMemoryAnalysisStore()
        now = datetime.now(timezone.utc)
        store.put(_analysis(ad_id="old", computed_at=now - timedelta(days=40)))
        store.put(_analysis(ad_id="new", computed_at=now))

        assert store.list_stale(timedelta(days=30)) == ["old"]

    def test_get_returns_a_copy(self):
        store = InMemoryAnalysisStore()
        store.put(_analysis(score=0.8))

        fetched = store.get("ad-1", "example.com")
        fetched.overall_score = 0.1
        fetched.creative_verdict.violations.append(
            Violation(rule_type="clickbait", severity=Severity.LOW),
        )

        stored = store.get("ad-1")
        assert stored.overall_score == 0.8
        assert stored.creative_verdict.violations == []
