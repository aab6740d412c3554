"""
PydanticAI agent usage tracking wrapper.

Runs a judgment agent and records the call (tokens, cost, outcome) to the
usage ledger. The ledger is never allowed to fail the run.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional, TypeVar

from pydantic_ai import Agent

from .usage_tracker import UsageRecord, UsageTracker

logger = logging.getLogger(__name__)

T = TypeVar('T')


async def run_agent_with_tracking(
    agent: Agent[Any, T],
    prompt: str,
    *,
    tracker: Optional[UsageTracker] = None,
    subject_id: str = "unknown",
    tool_name: str = "compliance_judgment",
    operation: str = "run",
    model_name: Optional[str] = None,
    **run_kwargs
):
    """
    Run a PydanticAI agent and track usage.

    Failed runs are recorded with success=False before the exception is
    re-raised unchanged.

    Args:
        agent: The PydanticAI Agent to run
        prompt: The prompt to send
        tracker: UsageTracker instance (if None, tracking is skipped)
        subject_id: Ad id the call is about
        tool_name: Name of the tool/service for reporting
        operation: Specific operation name ('creative', 'landing_page')
        model_name: Model identifier for the ledger (defaults to agent.model)
        **run_kwargs: Additional args passed to agent.run()

    Returns:
        The agent run result (same as agent.run())
    """
    model_name = model_name or (str(agent.model) if agent.model else "unknown")
    start = time.monotonic()

    try:
        result = await agent.run(prompt, **run_kwargs)
    except Exception as e:
        if tracker:
            _track_failure(
                tracker=tracker,
                model_name=model_name,
                subject_id=subject_id,
                tool_name=tool_name,
                operation=operation,
                error=e,
                duration_ms=_elapsed_ms(start),
            )
        raise

    # Track usage (fire-and-forget)
    if tracker:
        try:
            _track_agent_usage(
                result=result,
                model_name=model_name,
                tracker=tracker,
                subject_id=subject_id,
                tool_name=tool_name,
                operation=operation,
                duration_ms=_elapsed_ms(start),
            )
        except Exception as e:
            logger.warning(f"Agent usage tracking failed (non-fatal): {e}")

    return result


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _token_counts(usage) -> tuple:
    """(input, output) tokens across pydantic-ai Usage field names."""
    input_tokens = getattr(usage, "input_tokens", None)
    if input_tokens is None:
        input_tokens = getattr(usage, "request_tokens", None)
    output_tokens = getattr(usage, "output_tokens", None)
    if output_tokens is None:
        output_tokens = getattr(usage, "response_tokens", None)
    return input_tokens or 0, output_tokens or 0


def _track_agent_usage(
    result,
    model_name: str,
    tracker: UsageTracker,
    subject_id: str,
    tool_name: str,
    operation: str,
    duration_ms: int,
) -> None:
    """Extract usage from result and track it."""
    input_tokens, output_tokens = _token_counts(result.usage())

    record = UsageRecord(
        provider=_get_provider_from_model(model_name),
        model=model_name,
        subject_id=subject_id,
        tool_name=tool_name,
        operation=operation,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        success=True,
        duration_ms=duration_ms,
    )

    tracker.track(record)
    logger.debug(f"Tracked {tool_name}/{operation} for {subject_id}: {input_tokens}+{output_tokens} tokens")


def _track_failure(
    tracker: UsageTracker,
    model_name: str,
    subject_id: str,
    tool_name: str,
    operation: str,
    error: Exception,
    duration_ms: int,
) -> None:
    try:
        tracker.track(UsageRecord(
            provider=_get_provider_from_model(model_name),
            model=model_name,
            subject_id=subject_id,
            tool_name=tool_name,
            operation=operation,
            success=False,
            error_message=str(error)[:500],
            duration_ms=duration_ms,
        ))
    except Exception as e:
        logger.warning(f"Agent usage tracking failed (non-fatal): {e}")


def _get_provider_from_model(model_name: str) -> str:
    """Determine provider from model name."""
    model_lower = model_name.lower()
    if "claude" in model_lower or "anthropic" in model_lower:
        return "anthropic"
    elif "gpt" in model_lower or "openai" in model_lower:
        return "openai"
    elif "gemini" in model_lower or "google" in model_lower:
        return "google"
    return "unknown"
