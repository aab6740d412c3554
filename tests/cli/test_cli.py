"""
Tests for the adcompliance CLI commands.
"""

import json
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

from click.testing import CliRunner

from adcompliance.cli.main import cli
from adcompliance.core.models import AnalysisRunStatus, ComplianceRunResult
from adcompliance.services.usage_tracker import UsageSummary


class TestDescribe:
    def test_lists_nodes(self):
        result = CliRunner().invoke(cli, ["describe"])

        assert result.exit_code == 0
        nodes = [n["node"] for n in json.loads(result.output)]
        assert nodes == ["GatherEvidenceNode", "JudgeComplianceNode", "StoreAnalysisNode"]


class TestStale:
    def test_prints_ad_ids(self):
        store = MagicMock()
        store.list_stale.return_value = ["ad-1", "ad-2"]

        with patch("adcompliance.cli.compliance.SupabaseAnalysisStore", return_value=store):
            result = CliRunner().invoke(cli, ["stale", "--days", "7"])

        assert result.exit_code == 0
        assert "ad-1" in result.output
        assert store.list_stale.call_args[0][0].days == 7

    def test_nothing_stale(self):
        store = MagicMock()
        store.list_stale.return_value = []

        with patch("adcompliance.cli.compliance.SupabaseAnalysisStore", return_value=store):
            result = CliRunner().invoke(cli, ["stale"])

        assert "No analyses older than" in result.output


class TestAnalyzeAd:
    def test_failed_run_exits_nonzero(self, tmp_path):
        ad_file = tmp_path / "ad.json"
        ad_file.write_text(json.dumps({"ad_id": "ad-1", "domain_id": "example.com", "headline": "Hi"}))
        failed = ComplianceRunResult(
            run_id="r1", ad_id="ad-1", domain_id="example.com",
            status=AnalysisRunStatus.FAILED, error="service down", error_step="judge_compliance",
        )

        with patch("adcompliance.cli.compliance.ComplianceDependencies.create", return_value=MagicMock()), \
                patch("adcompliance.cli.compliance.run_compliance_analysis", new=AsyncMock(return_value=failed)):
            result = CliRunner().invoke(cli, ["analyze-ad", "--ad-file", str(ad_file), "--no-ocr"])

        assert result.exit_code == 1
        assert "FAILED at judge_compliance" in result.output

    def test_invalid_ad_file(self, tmp_path):
        ad_file = tmp_path / "ad.json"
        ad_file.write_text(json.dumps({"headline": "missing ids"}))

        result = CliRunner().invoke(cli, ["analyze-ad", "--ad-file", str(ad_file)])

        assert result.exit_code == 2


class TestUsage:
    def test_summary(self):
        tracker = MagicMock()
        tracker.get_usage_summary.return_value = UsageSummary(
            period_start=datetime(2024, 1, 1, tzinfo=timezone.utc),
            period_end=datetime(2024, 1, 8, tzinfo=timezone.utc),
            total_requests=4,
            successful_requests=3,
            total_input_tokens=1000,
            total_output_tokens=200,
            total_cost_usd=Decimal("0.0045"),
            by_model={"gpt-4o": {"requests": 4, "tokens": 1200, "cost": 0.0045}},
        )

        with patch("adcompliance.cli.compliance.get_supabase_client"), \
                patch("adcompliance.cli.compliance.UsageTracker", return_value=tracker):
            result = CliRunner().invoke(cli, ["usage", "--days", "7"])

        assert result.exit_code == 0
        assert "75.0% successful" in result.output
        assert "gpt-4o: 4 requests" in result.output
        start, end = tracker.get_usage_summary.call_args[0]
        assert (end - start).days == 7

    def test_recent_calls_for_ad(self):
        tracker = MagicMock()
        tracker.get_recent_usage.return_value = [
            {"created_at": "2024-01-01T00:00:00", "operation": "creative", "model": "gpt-4o",
             "total_tokens": 300, "cost_usd": 0.001, "success": False, "error_message": "timeout"},
        ]

        with patch("adcompliance.cli.compliance.get_supabase_client"), \
                patch("adcompliance.cli.compliance.UsageTracker", return_value=tracker):
            result = CliRunner().invoke(cli, ["usage", "--ad", "ad-1", "--limit", "5"])

        assert result.exit_code == 0
        assert "failed: timeout" in result.output
        tracker.get_recent_usage.assert_called_once_with(subject_id="ad-1", limit=5)

    def test_ledger_error_exits_nonzero(self):
        with patch("adcompliance.cli.compliance.get_supabase_client", side_effect=ValueError("SUPABASE_URL missing")):
            result = CliRunner().invoke(cli, ["usage"])

        assert result.exit_code == 1
