"""Best-effort intent classification for messages that mention the bot."""

import json
import logging

from pydantic import ValidationError

from dealflow.errors import GenerationError
from dealflow.schemas.evaluation import ClassifiedIntent, IntentKind
from dealflow.services import prompts
from dealflow.services.narrative import NarrativeGenerator

logger = logging.getLogger(__name__)


def _strip_fences(text: str) -> str:
    """Drop a ```json ... ``` wrapper some models put around their output."""
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


class IntentClassifier:
    def __init__(self, generator: NarrativeGenerator):
        self.generator = generator

    async def classify(self, message: str) -> ClassifiedIntent:
        fallback = ClassifiedIntent(kind=IntentKind.OTHER, query=message)
        try:
            reply = await self.generator.complete(
                prompts.intent_prompt.format(message=message), max_tokens=80, temperature=0.3
            )
        except GenerationError as e:
            logger.warning(f"Intent recognition failed ({e})")
            return fallback

        try:
            data = json.loads(_strip_fences(reply))
            if not isinstance(data, dict):
                raise ValueError("intent payload is not an object")
            intent = ClassifiedIntent(
                kind=IntentKind(data.get("intent") or IntentKind.OTHER.value),
                query=data.get("query") or message,
            )
        except (ValueError, ValidationError) as e:
            logger.warning(f"Malformed intent payload {reply!r} ({e})")
            return fallback

        logger.info(f"Recognized intent {intent.kind.value} for {message!r}")
        return intent
