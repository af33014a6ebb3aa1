"""Base assessor implementing the Template Method pattern.

All providers share the same assessment algorithm:
    score()   → _build_scoring_prompt()     → _call_with_retry() → _call_api() → _parse_assessment()
    improve() → _build_improvement_prompt() → _call_with_retry() → _call_api() → _strip_fences()
                                                                  ↑ only this differs per provider

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text plus token usage

Everything else (prompt construction, JSON parsing, retry logic, cost
calculation) lives here so it is defined once and inherited consistently by
every provider.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from doclens_core.errors import AssessorError
from doclens_store.models import DIMENSIONS, CostInfo

logger = logging.getLogger(__name__)

# Shared defaults; subclasses may override as class attributes if needed.
_MAX_RETRIES = 3
_MAX_TOKENS = 8192
# Rough output size of one scoring response, used only for estimates.
_ESTIMATED_SCORING_OUTPUT_TOKENS = 800

_DIMENSION_GUIDE = {
    "readability": "sentence structure, vocabulary, paragraph organization, transitions, clarity",
    "seoScore": "keyword usage, header structure, linking opportunities, meta description potential",
    "technicalAccuracy": "factual correctness, code examples, terminology, up-to-date information",
    "engagement": "tone, examples and analogies, storytelling, calls to action",
    "contentDepth": "coverage breadth, supporting evidence, thoroughness, handling of advanced concepts",
}


@dataclass
class DimensionAnalysis:
    reasoning: str = ""
    suggestions: list[str] = field(default_factory=list)


@dataclass
class Assessment:
    """Scores plus per-dimension reasoning for one document."""

    scores: dict[str, float]
    analysis: dict[str, DimensionAnalysis] = field(default_factory=dict)
    cost_info: CostInfo | None = None

    def suggestions(self) -> list[str]:
        """Flatten every dimension's suggestions, in dimension order."""
        return [s for dim in self.analysis for s in self.analysis[dim].suggestions]

    def to_prompt_dict(self) -> dict:
        return {
            dim: {
                "score": self.scores.get(dim),
                "reasoning": self.analysis[dim].reasoning if dim in self.analysis else "",
                "suggestions": self.analysis[dim].suggestions if dim in self.analysis else [],
            }
            for dim in self.scores
        }


@dataclass
class Improvement:
    text: str
    cost_info: CostInfo | None = None


@dataclass
class ApiResponse:
    text: str
    input_tokens: int = 0
    output_tokens: int = 0


class QualityAssessor(ABC):
    """What the workflow needs from a scoring/rewriting backend."""

    @abstractmethod
    async def score(self, text: str) -> Assessment:
        """Score ``text`` on every quality dimension."""

    @abstractmethod
    async def improve(self, text: str, assessment: Assessment) -> Improvement:
        """Rewrite ``text`` guided by ``assessment``."""


class CostEstimator(ABC):
    """Optional capability: predict the spend of scoring a document."""

    @abstractmethod
    def estimate_cost(self, text: str) -> float:
        """Return the estimated USD cost of one ``score(text)`` call."""


class BaseAssessor(QualityAssessor, CostEstimator):
    PROVIDER: str = "unknown"
    MODEL: str = ""
    MAX_RETRIES: int = _MAX_RETRIES
    MAX_TOKENS: int = _MAX_TOKENS
    RETRY_BASE_DELAY: float = 1.0
    # USD per million tokens: model -> (input, output).
    PRICING: dict[str, tuple[float, float]] = {}

    def __init__(self, model: str | None = None):
        self.model = model or self.MODEL

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    async def score(self, text: str) -> Assessment:
        """Score a document on all dimensions in a single call."""
        response = await self._call_with_retry(self._build_system_prompt(), self._build_scoring_prompt(text))
        assessment = self._parse_assessment(response.text)
        assessment.cost_info = self._cost_info(response)
        return assessment

    async def improve(self, text: str, assessment: Assessment) -> Improvement:
        """Return a rewritten document. Integrity checks are the caller's job."""
        response = await self._call_with_retry(
            self._build_system_prompt(), self._build_improvement_prompt(text, assessment)
        )
        return Improvement(text=self._strip_fences(response.text), cost_info=self._cost_info(response))

    def estimate_cost(self, text: str) -> float:
        prompt = self._build_system_prompt() + self._build_scoring_prompt(text)
        return self._price(math.ceil(len(prompt) / 4), _ESTIMATED_SCORING_OUTPUT_TOKENS)

    # ------------------------------------------------------------------ #
    # Abstract: implement in each provider                               #
    # ------------------------------------------------------------------ #

    @abstractmethod
    async def _call_api(self, system_prompt: str, user_prompt: str) -> ApiResponse:
        """Make a single API call and return the raw text response and usage.

        This is the only method subclasses must implement. It should raise
        on failure; _call_with_retry handles retries and logging.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    async def _call_with_retry(self, system_prompt: str, user_prompt: str) -> ApiResponse:
        """Retry _call_api up to MAX_RETRIES times with exponential backoff.

        Raises AssessorError once every attempt has failed; a failed call is
        never turned into a default score.
        """
        for attempt in range(self.MAX_RETRIES):
            try:
                return await self._call_api(system_prompt, user_prompt)
            except Exception as e:
                if attempt == self.MAX_RETRIES - 1:
                    logger.error(
                        "%s API failed after %d attempts: %s",
                        self.__class__.__name__,
                        self.MAX_RETRIES,
                        e,
                    )
                    raise AssessorError(f"{self.PROVIDER} API failed after {self.MAX_RETRIES} attempts: {e}") from e
                delay = self.RETRY_BASE_DELAY * 2**attempt
                logger.warning(
                    "%s API error (attempt %d/%d): %s. Retrying in %.1fs...",
                    self.__class__.__name__,
                    attempt + 1,
                    self.MAX_RETRIES,
                    e,
                    delay,
                )
                await asyncio.sleep(delay)
        raise AssessorError(f"{self.PROVIDER} API was not called (MAX_RETRIES={self.MAX_RETRIES})")

    def _build_system_prompt(self) -> str:
        return """You are a meticulous technical editor for a documentation and blog site.
You assess markdown documents and rewrite them to raise their quality.
Preserve front matter, code blocks, links, and the author's meaning and voice.
Never invent facts, and never add commentary about your own work."""

    def _build_scoring_prompt(self, text: str) -> str:
        guide = "\n".join(f"- {dim}: {hint}" for dim, hint in _DIMENSION_GUIDE.items())
        return f"""Score the document below from 0 to 10 on each quality dimension:
{guide}

Scale: 0-3 poor, 4-6 needs work, 7-8 good, 9-10 excellent.

### Output Format:
Respond with **only** a valid JSON object with one key per dimension:

{{
  "<dimension>": {{
    "score": <number 0-10>,
    "reasoning": "<one or two sentences>",
    "suggestions": ["<specific, actionable change>", ...]
  }},
  ...
}}

## Document
{text}"""

    def _build_improvement_prompt(self, text: str, assessment: Assessment) -> str:
        analysis = json.dumps(assessment.to_prompt_dict(), indent=2)
        return f"""Rewrite the document below to address its quality analysis.
Focus on the lowest-scoring dimensions first.

## Quality Analysis
{analysis}

## Document
{text}

Return the complete improved document and nothing else: no preamble, no
summary of changes, no placeholder for omitted sections."""

    def _parse_assessment(self, raw: str) -> Assessment:
        """Parse the model's JSON response into an Assessment.

        Missing dimensions, non-numeric or out-of-range scores raise
        AssessorError rather than being filled with defaults.
        """
        try:
            payload = json.loads(self._strip_fences(raw))
        except json.JSONDecodeError as e:
            logger.warning("%s: failed to parse response as JSON: %s", self.__class__.__name__, raw[:200])
            raise AssessorError(f"Unparsable assessment from {self.PROVIDER}: {e}") from e
        if not isinstance(payload, dict):
            raise AssessorError(f"Assessment from {self.PROVIDER} is not a JSON object")

        scores: dict[str, float] = {}
        analysis: dict[str, DimensionAnalysis] = {}
        for dim in DIMENSIONS:
            item = payload.get(dim)
            if not isinstance(item, dict) or "score" not in item:
                raise AssessorError(f"Assessment from {self.PROVIDER} is missing dimension {dim!r}")
            try:
                value = float(item["score"])
            except (TypeError, ValueError) as e:
                raise AssessorError(f"Non-numeric {dim} score: {item['score']!r}") from e
            if not 0 <= value <= 10:
                raise AssessorError(f"{dim} score {value} is outside 0-10")
            scores[dim] = value
            analysis[dim] = DimensionAnalysis(
                reasoning=str(item.get("reasoning", "")),
                suggestions=[str(s) for s in item.get("suggestions") or []],
            )
        return Assessment(scores=scores, analysis=analysis)

    @staticmethod
    def _strip_fences(raw: str) -> str:
        # Strip only an outer ``` fence wrapping the whole response, never
        # fences that belong to code blocks inside the document.
        cleaned = raw.strip()
        match = re.fullmatch(r"```(?:json|markdown|md)?\s*\n(.*)\n```", cleaned, re.DOTALL)
        return match.group(1).strip() if match else cleaned

    def _price(self, input_tokens: int, output_tokens: int) -> float:
        rates = self.PRICING.get(self.model)
        if rates is None:
            logger.debug("No pricing for %s model %s; reporting zero cost", self.PROVIDER, self.model)
            return 0.0
        input_rate, output_rate = rates
        return (input_tokens * input_rate + output_tokens * output_rate) / 1_000_000

    def _cost_info(self, response: ApiResponse) -> CostInfo:
        return CostInfo(
            provider=self.PROVIDER,
            model=self.model,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            total_cost=self._price(response.input_tokens, response.output_tokens),
        )
