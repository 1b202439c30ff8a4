"""
Evaluation pipeline: research → thesis → risk → recommendations → score.

Each generator step degrades to a fixed fallback on ``GenerationError``
instead of aborting, so a pitch is always scored (possibly as 0).
"""

import logging
import re

from dealflow.errors import GenerationError
from dealflow.schemas.evaluation import EvaluationPackage
from dealflow.services import prompts
from dealflow.services.narrative import NarrativeGenerator

logger = logging.getLogger(__name__)

RISK_FALLBACK = "Risk assessment not available."
RECOMMENDATION_FALLBACK = "No recommendations available."

_FLOAT_TOKEN = re.compile(r"[-+]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][-+]?\d+)?")


def parse_score(text: str) -> float:
    """First floating-point token in ``text``, or 0 when there is none."""
    match = _FLOAT_TOKEN.search(text or "")
    if not match:
        return 0.0
    try:
        return float(match.group())
    except ValueError:
        return 0.0


def draft_research(topic: str) -> str:
    return f'Preliminary research on "{topic}": aggregated market data, trends, and news.'


def draft_thesis(summary: str) -> str:
    return (
        "Investment Thesis: Based on the research, this opportunity looks promising. "
        f"Details: {summary}"
    )


class EvaluationPipeline:
    def __init__(self, generator: NarrativeGenerator):
        self.generator = generator

    async def evaluate(self, topic: str, submitter_is_privileged: bool = False) -> EvaluationPackage:
        draft = draft_research(topic)
        summary = await self._summarize(draft)
        thesis = draft_thesis(summary)
        risk = await self._assess_risk(thesis)
        recommendations = await self._recommend(thesis, risk)
        score = await self._score(topic)

        logger.info(f"Evaluated {topic!r}: score={score}")
        return EvaluationPackage(
            summary=summary,
            thesis=thesis,
            risk=risk,
            recommendations=recommendations,
            score=score,
            privileged=submitter_is_privileged,
        )

    async def _summarize(self, draft: str) -> str:
        try:
            return await self.generator.complete(
                prompts.summarize_prompt.format(text=draft), max_tokens=150, temperature=0.5
            )
        except GenerationError as e:
            logger.warning(f"Summarization failed ({e}), keeping the raw draft")
            return draft

    async def _assess_risk(self, thesis: str) -> str:
        try:
            return await self.generator.complete(
                prompts.risk_prompt.format(thesis=thesis), max_tokens=200, temperature=0.6
            )
        except GenerationError as e:
            logger.warning(f"Risk assessment failed ({e})")
            return RISK_FALLBACK

    async def _recommend(self, thesis: str, risk: str) -> str:
        try:
            return await self.generator.complete(
                prompts.recommendation_prompt.format(thesis=thesis, risk=risk),
                max_tokens=150,
                temperature=0.7,
            )
        except GenerationError as e:
            logger.warning(f"Recommendations failed ({e})")
            return RECOMMENDATION_FALLBACK

    async def _score(self, topic: str) -> float:
        try:
            reply = await self.generator.complete(
                prompts.score_prompt.format(topic=topic), max_tokens=20, temperature=0.3
            )
        except GenerationError as e:
            logger.warning(f"Scoring failed ({e}), scoring as 0")
            return 0.0
        return parse_score(reply)
