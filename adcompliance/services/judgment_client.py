"""
Judgment client adapter for the reasoning service.

JudgmentClient is the only contract the pipeline depends on:
    async judge(request_doc: str) -> str    raises TransportError

PydanticAIJudgmentClient sends the request document to a PydanticAI agent
and returns its raw text answer. It does not parse, validate, or retry;
those belong to the verdict parser and the caller.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from pydantic_ai import Agent
from pydantic_ai.settings import ModelSettings

from ..core.config import Config
from ..core.exceptions import TransportError
from .agent_tracking import run_agent_with_tracking
from .usage_tracker import UsageTracker

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an advertising compliance reviewer.

You receive one JSON request document. Follow its "instructions", evaluate
"content" against every rule enabled in "rules", and answer with exactly one
JSON object shaped like "expected_response_format". Quote offending text
verbatim in violated_text. Do not wrap the JSON in markdown or add commentary."""


class JudgmentClient(ABC):
    """Sends a judgment request document and returns the raw response text."""

    @abstractmethod
    async def judge(self, request_doc: str) -> str:
        """
        Raises:
            TransportError: If the reasoning service is unreachable or errors
        """


def _request_identity(request_doc: str) -> Tuple[str, str]:
    """(ad_id, task) from a request document, for the usage ledger."""
    try:
        doc = json.loads(request_doc)
        return str(doc.get("ad_id", "unknown")), str(doc.get("task", "run"))
    except (ValueError, TypeError, AttributeError):
        return "unknown", "run"


class PydanticAIJudgmentClient(JudgmentClient):
    """JudgmentClient backed by a PydanticAI text agent.

    Usage:
        client = PydanticAIJudgmentClient(tracker=UsageTracker(get_supabase_client()))
        raw = await client.judge(to_request_document(request))
    """

    def __init__(
        self,
        model: Optional[str] = None,
        tracker: Optional[UsageTracker] = None,
        max_tokens: int = 4096,
    ):
        """
        Args:
            model: pydantic-ai model string (if None, uses Config.get_model("compliance"))
            tracker: Usage ledger; when None, calls are not recorded
            max_tokens: Response token cap
        """
        self.model = model or Config.get_model("compliance")
        self.tracker = tracker
        self.max_tokens = max_tokens
        self._agent: Optional[Agent] = None

    @property
    def agent(self) -> Agent:
        if self._agent is None:
            self._agent = Agent(
                model=self.model,
                system_prompt=SYSTEM_PROMPT,
                model_settings=ModelSettings(max_tokens=self.max_tokens, temperature=0.0),
            )
        return self._agent

    async def judge(self, request_doc: str) -> str:
        ad_id, task = _request_identity(request_doc)
        logger.debug(f"Requesting {task} judgment for ad {ad_id} from {self.model}")

        try:
            result = await run_agent_with_tracking(
                self.agent,
                request_doc,
                tracker=self.tracker,
                subject_id=ad_id,
                operation=task,
                model_name=self.model,
            )
        except Exception as e:
            logger.error(f"Reasoning service call failed for ad {ad_id} ({task}): {e}")
            raise TransportError(f"{task} judgment for ad {ad_id} failed: {e}") from e

        output = result.output
        return output if isinstance(output, str) else str(output)
