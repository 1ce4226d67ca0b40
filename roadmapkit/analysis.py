"""Client for the external analysis service.

The service is a hosted model reached through the ``anthropic`` SDK. It gets
a system prompt and a user prompt and must answer with the JSON object
described by :data:`roadmapkit.prompts.RESPONSE_SCHEMA`.
"""

from __future__ import annotations

import json
import logging
import math
import os
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import anthropic

from .models import AnalysisOutput

logger = logging.getLogger("roadmapkit.analysis")

DEFAULT_MODEL = "claude-opus-4-6"
DEFAULT_MAX_TOKENS = 16000
DEFAULT_THINKING_BUDGET = 10000

MAX_RETRIES = 3
BASE_DELAY_SECONDS = 2.0
RETRYABLE_STATUS_CODES = (429, 529)

# USD per million tokens; thinking tokens are billed as output.
INPUT_PRICE_PER_MILLION = 15.0
OUTPUT_PRICE_PER_MILLION = 75.0

REQUIRED_KEYS: Dict[str, type] = {
    "executive_summary": str,
    "kpi_assessment": list,
    "recommendations": list,
    "workstream_updates": dict,
    "observations": list,
}


class AnalysisError(RuntimeError):
    """The analysis cycle could not produce a usable response."""


@dataclass(slots=True)
class AnalysisResult:
    response: str
    thinking: str
    input_tokens: int
    output_tokens: int
    thinking_tokens: int
    cost_estimate: float
    model: str


def estimate_tokens(text: str) -> int:
    """Rough token count, about four characters per token."""
    return math.ceil(len(text) / 4)


def estimate_cost(input_tokens: int, output_tokens: int) -> float:
    return (
        input_tokens / 1_000_000 * INPUT_PRICE_PER_MILLION
        + output_tokens / 1_000_000 * OUTPUT_PRICE_PER_MILLION
    )


def _status_code(error: Exception) -> Optional[int]:
    return getattr(error, "status_code", None)


class AnalysisClient:
    """Calls the analysis model with bounded retries on transient failures.

    Only rate-limit (429) and overloaded (529) responses are retried, with a
    delay of ``BASE_DELAY_SECONDS * 2 ** (attempt - 1)`` between attempts.
    Every other error is raised immediately. The default SDK client is built
    with its own retries turned off.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        *,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        thinking_budget: Optional[int] = DEFAULT_THINKING_BUDGET,
        client: Any = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.model = model or os.getenv("ROADMAPKIT_MODEL", DEFAULT_MODEL)
        self.max_tokens = max_tokens
        self.thinking_budget = thinking_budget
        self._client = client
        self._sleep = sleep

    def _get_client(self):
        if self._client is None:
            self._client = anthropic.Anthropic(max_retries=0)
        return self._client

    def _request(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
        }
        if self.thinking_budget:
            params["thinking"] = {"type": "enabled", "budget_tokens": self.thinking_budget}
        return params

    def analyze(self, system_prompt: str, user_prompt: str) -> AnalysisResult:
        """Send one analysis request and collect text, thinking and usage."""
        client = self._get_client()
        params = self._request(system_prompt, user_prompt)
        last_error: Optional[Exception] = None

        for attempt in range(1, MAX_RETRIES + 1):
            try:
                response = client.messages.create(**params)
            except anthropic.APIStatusError as e:
                if _status_code(e) not in RETRYABLE_STATUS_CODES:
                    raise AnalysisError(f"Analysis request failed ({_status_code(e)}): {e}") from e
                last_error = e
                if attempt < MAX_RETRIES:
                    delay = BASE_DELAY_SECONDS * 2 ** (attempt - 1)
                    logger.warning(
                        f"API attempt {attempt}/{MAX_RETRIES} failed ({_status_code(e)}), retrying in {delay:.0f}s..."
                    )
                    self._sleep(delay)
                continue
            except anthropic.APIError as e:
                raise AnalysisError(f"Analysis request failed: {e}") from e
            return self._result(response)

        raise AnalysisError(f"Analysis failed after {MAX_RETRIES} attempts: {last_error}") from last_error

    def _result(self, response: Any) -> AnalysisResult:
        thinking = ""
        text = ""
        for block in response.content:
            if block.type == "thinking":
                thinking = block.thinking
            elif block.type == "text":
                text = block.text

        input_tokens = response.usage.input_tokens
        output_tokens = response.usage.output_tokens
        return AnalysisResult(
            response=text,
            thinking=thinking,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            thinking_tokens=estimate_tokens(thinking),
            cost_estimate=estimate_cost(input_tokens, output_tokens),
            model=self.model,
        )


def strip_code_fence(text: str) -> str:
    """Remove a surrounding Markdown code fence, if present."""
    stripped = text.strip()
    if not stripped.startswith("```"):
        return stripped
    first_newline = stripped.find("\n")
    body = stripped[first_newline + 1:] if first_newline != -1 else ""
    if body.rstrip().endswith("```"):
        body = body.rstrip()[:-3]
    return body.strip()


def parse_analysis_json(text: str) -> AnalysisOutput:
    """Decode and check a service response.

    Raises:
        AnalysisError: if the text is not JSON or a top-level key is missing
            or has the wrong type.
    """
    try:
        data = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise AnalysisError(f"Analysis response is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise AnalysisError("Analysis response must be a JSON object")
    for key, expected in REQUIRED_KEYS.items():
        if key not in data:
            raise AnalysisError(f"Analysis response is missing '{key}'")
        if not isinstance(data[key], expected):
            raise AnalysisError(f"Analysis response key '{key}' must be a {expected.__name__}")

    try:
        return AnalysisOutput.from_dict(data)
    except (KeyError, TypeError, AttributeError) as e:
        raise AnalysisError(f"Analysis response has a malformed entry: {e}") from e
