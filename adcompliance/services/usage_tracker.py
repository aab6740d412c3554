"""
Usage Tracker Service - Ledger of reasoning-service calls for cost visibility.

Every judgment call is recorded with the ad it was about, the model, token
counts, estimated cost, and whether it succeeded.

Usage:
    from adcompliance.services.usage_tracker import UsageTracker, UsageRecord
    from adcompliance.core.database import get_supabase_client

    tracker = UsageTracker(get_supabase_client())
    tracker.track(UsageRecord(
        provider="openai",
        model="gpt-4o",
        subject_id="ad-123",
        operation="creative",
        input_tokens=1500,
        output_tokens=300,
        success=True,
    ))
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from supabase import Client

from ..core.config import Config

logger = logging.getLogger(__name__)

USAGE_TABLE = "judgment_usage"


@dataclass
class UsageRecord:
    """
    Single reasoning-service call for the ledger.
    """
    provider: str                           # 'openai', 'anthropic', 'google'
    model: str                              # 'gpt-4o', 'claude-sonnet-4-5'
    subject_id: str                         # ad id the call judged
    tool_name: str = "compliance_judgment"
    operation: Optional[str] = None         # 'creative', 'landing_page'
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: Optional[Decimal] = None      # Pre-calculated cost (optional)
    success: bool = True
    error_message: Optional[str] = None
    duration_ms: Optional[int] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class UsageSummary:
    """Aggregated usage for a time period."""
    period_start: datetime
    period_end: datetime
    total_requests: int
    successful_requests: int
    total_input_tokens: int
    total_output_tokens: int
    total_cost_usd: Decimal
    by_model: dict  # {model: {requests, tokens, cost}}

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return round(self.successful_requests / self.total_requests * 100, 2)


def estimate_cost(model: str, input_tokens: int, output_tokens: int) -> Optional[Decimal]:
    """
    Estimate the USD cost of a call from configured per-million-token rates.

    Returns:
        Cost rounded to 6 places, or None when the model has no known price
    """
    input_rate, output_rate = Config.get_token_cost(model)
    if input_rate <= 0 and output_rate <= 0:
        return None
    input_cost = (input_tokens / 1_000_000) * input_rate
    output_cost = (output_tokens / 1_000_000) * output_rate
    return Decimal(str(round(input_cost + output_cost, 6)))


class UsageTracker:
    """
    Service for recording reasoning-service usage.

    Recording is wrapped in try/except so it never fails the compliance run.
    If tracking fails, it logs a warning and continues.
    """

    def __init__(self, supabase_client: Client):
        """
        Initialize UsageTracker.

        Args:
            supabase_client: Supabase client instance
        """
        self.client = supabase_client

    def track(self, record: UsageRecord) -> None:
        """
        Record a usage event.

        This method is fire-and-forget - it will never raise an exception.

        Args:
            record: Usage details
        """
        try:
            cost = record.cost_usd
            if cost is None and record.total_tokens > 0:
                cost = estimate_cost(record.model, record.input_tokens, record.output_tokens)

            self.client.table(USAGE_TABLE).insert({
                "subject_id": record.subject_id,
                "provider": record.provider,
                "model": record.model,
                "tool_name": record.tool_name,
                "operation": record.operation,
                "input_tokens": record.input_tokens,
                "output_tokens": record.output_tokens,
                "total_tokens": record.total_tokens,
                "cost_usd": float(cost) if cost is not None else None,
                "success": record.success,
                "error_message": record.error_message,
                "duration_ms": record.duration_ms,
                "created_at": record.created_at.isoformat(),
            }).execute()

            logger.debug(
                f"Tracked usage: {record.provider}/{record.model} subject={record.subject_id} "
                f"tokens={record.input_tokens}+{record.output_tokens} cost=${cost} success={record.success}"
            )

        except Exception as e:
            # Never fail the main operation - just log and continue
            logger.warning(f"Usage tracking failed (non-fatal): {e}")

    def get_usage_summary(self, start_date: datetime, end_date: datetime) -> UsageSummary:
        """
        Aggregate ledger rows between two timestamps (inclusive).

        Args:
            start_date: Period start
            end_date: Period end

        Returns:
            UsageSummary with totals and a per-model breakdown
        """
        result = self.client.table(USAGE_TABLE).select("*").gte(
            "created_at", start_date.isoformat()
        ).lte(
            "created_at", end_date.isoformat()
        ).execute()

        records = result.data or []

        by_model = {}
        for r in records:
            model = r.get("model") or "unknown"
            if model not in by_model:
                by_model[model] = {"requests": 0, "tokens": 0, "cost": Decimal("0")}
            by_model[model]["requests"] += 1
            by_model[model]["tokens"] += (r.get("input_tokens", 0) or 0) + (r.get("output_tokens", 0) or 0)
            by_model[model]["cost"] += Decimal(str(r.get("cost_usd", 0) or 0))

        return UsageSummary(
            period_start=start_date,
            period_end=end_date,
            total_requests=len(records),
            successful_requests=sum(1 for r in records if r.get("success")),
            total_input_tokens=sum(r.get("input_tokens", 0) or 0 for r in records),
            total_output_tokens=sum(r.get("output_tokens", 0) or 0 for r in records),
            total_cost_usd=sum((Decimal(str(r.get("cost_usd", 0) or 0)) for r in records), Decimal("0")),
            by_model=by_model,
        )

    def get_recent_usage(self, subject_id: Optional[str] = None, limit: int = 50) -> List[dict]:
        """
        Most recent ledger rows, optionally for one ad.

        Args:
            subject_id: Restrict to calls about this ad
            limit: Maximum records to return
        """
        query = self.client.table(USAGE_TABLE).select("*")
        if subject_id:
            query = query.eq("subject_id", subject_id)
        result = query.order("created_at", desc=True).limit(limit).execute()
        return result.data or []
