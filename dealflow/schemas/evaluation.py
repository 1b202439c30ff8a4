"""Evaluation package and intent classification schemas."""

import enum

from pydantic import BaseModel


class EvaluationPackage(BaseModel):
    summary: str
    thesis: str
    risk: str
    recommendations: str
    score: float = 0.0
    privileged: bool = False

    def passes_gate(self, threshold: float) -> bool:
        """Privileged submissions always pass; founders need ``score >= threshold``."""
        return self.privileged or self.score >= threshold


class IntentKind(str, enum.Enum):
    INVESTMENT_QUERY = "investment_query"
    GENERAL_INFO = "general_info"
    SEARCH_QUERY = "search_query"
    OTHER = "other"


class ClassifiedIntent(BaseModel):
    kind: IntentKind = IntentKind.OTHER
    query: str
