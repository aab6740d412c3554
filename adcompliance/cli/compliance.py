"""
Compliance CLI Commands

Run analyses for single ads, list ads due for re-analysis, report usage,
and summarize stored verdicts per domain.
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError

from ..core.config import Config, load_rule_overrides
from ..core.database import get_supabase_client
from ..core.exceptions import AnalysisStoreError
from ..core.models import AnalysisRunStatus, ComplianceRunResult, ComplianceVerdict, ScrapedAd
from ..pipelines.compliance_analysis import ComplianceDependencies, run_compliance_analysis
from ..pipelines.compliance_analysis.orchestrator import PIPELINE_NODES
from ..pipelines.metadata import describe_pipeline
from ..services.analysis_store import SupabaseAnalysisStore
from ..services.staleness import StalenessPolicy
from ..services.usage_tracker import UsageTracker


@click.command('analyze-ad')
@click.option('--ad-file', required=True, type=click.Path(exists=True, dir_okay=False), help='Scraped ad record (JSON)')
@click.option('--page-file', type=click.Path(exists=True, dir_okay=False), help='Scraped landing page text')
@click.option('--force', is_flag=True, help='Re-analyze even if the stored analysis is fresh')
@click.option('--rules', 'rules_file', type=click.Path(exists=True, dir_okay=False), help='YAML rule toggles')
@click.option('--no-ocr', is_flag=True, help='Skip OCR of ad images')
@click.option('--output-json', type=click.Path(dir_okay=False), help='Write the full result to a JSON file')
def analyze_ad(
    ad_file: str,
    page_file: Optional[str],
    force: bool,
    rules_file: Optional[str],
    no_ocr: bool,
    output_json: Optional[str],
):
    """
    Analyze one scraped ad and store the verdict.

    Examples:
        adcompliance analyze-ad --ad-file ad.json --page-file page.txt
        adcompliance analyze-ad --ad-file ad.json --force --rules rules.yaml
    """
    try:
        ad = ScrapedAd.model_validate_json(Path(ad_file).read_text(encoding="utf-8"))
    except ValidationError as e:
        raise click.BadParameter(f"not a valid ad record: {e}", param_hint="--ad-file")

    page_content = Path(page_file).read_text(encoding="utf-8") if page_file else None

    try:
        overrides = load_rule_overrides(rules_file) if rules_file else None
        deps = ComplianceDependencies.create(rule_overrides=overrides, enable_ocr=not no_ocr)
    except ValueError as e:
        click.echo(f"❌ Configuration error: {e}", err=True)
        raise click.exceptions.Exit(2)

    result = asyncio.run(run_compliance_analysis(ad, page_content, deps=deps, force=force))
    _display_result(result)

    if output_json:
        with open(output_json, 'w') as f:
            f.write(result.model_dump_json(indent=2))
        click.echo(f"\n📄 Result exported to: {output_json}")

    if result.status == AnalysisRunStatus.FAILED:
        raise click.exceptions.Exit(1)


@click.command('stale')
@click.option('--days', type=int, default=None, help=f'Max analysis age in days (default {Config.REANALYSIS_MAX_AGE_DAYS})')
def stale_ads(days: Optional[int]):
    """
    List ad ids whose stored analysis is older than the max age.

    Examples:
        adcompliance stale
        adcompliance stale --days 7
    """
    policy = StalenessPolicy(timedelta(days=days) if days is not None else None)
    try:
        ad_ids = policy.ads_due_for_reanalysis(SupabaseAnalysisStore())
    except (AnalysisStoreError, ValueError) as e:
        click.echo(f"❌ Error: {e}", err=True)
        raise click.exceptions.Exit(1)

    if not ad_ids:
        click.echo(f"✅ No analyses older than {policy.max_age.days} days")
        return

    click.echo(f"{len(ad_ids)} ad(s) due for re-analysis (older than {policy.max_age.days} days):")
    for ad_id in ad_ids:
        click.echo(ad_id)


@click.command('summary')
@click.option('--domain', 'domain_id', required=True, help='Domain id (e.g. example.com)')
def domain_summary(domain_id: str):
    """
    Compliance roll-up for one domain.

    Example:
        adcompliance summary --domain example.com
    """
    try:
        summary = SupabaseAnalysisStore().get_domain_summary(domain_id)
    except (AnalysisStoreError, ValueError) as e:
        click.echo(f"❌ Error: {e}", err=True)
        raise click.exceptions.Exit(1)

    click.echo(f"Domain: {domain_id}")
    click.echo(f"  Analyses:          {summary['total_analyses']}")
    click.echo(f"  Compliant:         {summary['compliant_count']} ({summary['compliance_rate']}%)")
    click.echo(f"  Average score:     {summary['average_score']:.2f}")
    click.echo(f"  Manual review:     {summary['manual_review_count']}")
    click.echo(f"  Critical findings: {summary['critical_violations']}")


@click.command('describe')
def describe_pipeline_command():
    """Print the analysis pipeline's nodes and what they read and write."""
    click.echo(json.dumps(describe_pipeline(list(PIPELINE_NODES)), indent=2))


@click.command('usage')
@click.option('--days', type=int, default=7, help='Summarize judgment calls from the last N days')
@click.option('--ad', 'ad_id', help='List the most recent calls for one ad instead')
@click.option('--limit', type=int, default=20, help='Rows to show with --ad')
def usage_report(days: int, ad_id: Optional[str], limit: int):
    """
    Reasoning-service usage and estimated cost from the usage ledger.

    Examples:
        adcompliance usage --days 30
        adcompliance usage --ad 1234567890 --limit 5
    """
    try:
        tracker = UsageTracker(get_supabase_client())
        if ad_id:
            rows = tracker.get_recent_usage(subject_id=ad_id, limit=limit)
        else:
            end = datetime.now(timezone.utc)
            summary = tracker.get_usage_summary(end - timedelta(days=days), end)
    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        raise click.exceptions.Exit(1)

    if ad_id:
        if not rows:
            click.echo(f"No judgment calls recorded for ad {ad_id}")
            return
        for row in rows:
            status = "ok" if row.get("success") else f"failed: {row.get('error_message')}"
            click.echo(
                f"{row.get('created_at')}  {row.get('operation')}  {row.get('model')}  "
                f"{row.get('total_tokens') or 0} tokens  ${row.get('cost_usd') or 0}  {status}"
            )
        return

    click.echo(f"Usage for the last {days} day(s):")
    click.echo(f"  Requests:      {summary.total_requests} ({summary.success_rate}% successful)")
    click.echo(f"  Input tokens:  {summary.total_input_tokens}")
    click.echo(f"  Output tokens: {summary.total_output_tokens}")
    click.echo(f"  Cost (USD):    ${summary.total_cost_usd}")
    for model, stats in sorted(summary.by_model.items()):
        click.echo(f"  - {model}: {stats['requests']} requests, {stats['tokens']} tokens")

def _display_result(result: ComplianceRunResult) -> None:
    click.echo("=" * 60)
    click.echo(f"Ad {result.ad_id} ({result.domain_id}) - run {result.run_id}")
    click.echo("=" * 60)

    if result.status == AnalysisRunStatus.FAILED:
        click.echo(f"❌ FAILED at {result.error_step}: {result.error}")
        return

    analysis = result.analysis
    if result.status == AnalysisRunStatus.UP_TO_DATE:
        click.echo("♻️  Stored analysis is up to date (use --force to re-analyze)")
    if analysis is None:
        return

    icon = "✅" if analysis.overall_compliant else "🚫"
    click.echo(f"{icon} Overall compliant: {analysis.overall_compliant}   score: {analysis.overall_score:.2f}")
    if analysis.requires_manual_review:
        click.echo("👀 Visual content requires manual review")

    _display_verdict("Creative", analysis.creative_verdict)
    _display_verdict("Landing page", analysis.landing_page_verdict)
    click.echo(f"\nProcessing time: {result.processing_time_ms}ms")


def _display_verdict(label: str, verdict: ComplianceVerdict) -> None:
    click.echo(f"\n{label}:")
    if verdict.skipped:
        click.echo(f"  (skipped: {verdict.reasoning})")
        return
    if verdict.is_fallback:
        click.echo(f"  ⚠️  {verdict.reasoning}")
        return

    click.echo(f"  compliant={verdict.compliant} confidence={verdict.confidence_score:.2f}")
    click.echo(f"  {verdict.reasoning}")
    for v in verdict.violations:
        click.echo(f"  - [{v.severity.value}] {v.rule_type.value}: {v.description}")
        if v.violated_text:
            click.echo(f"      \"{v.violated_text}\"")
