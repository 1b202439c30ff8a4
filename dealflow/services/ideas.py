"""Idea store adapter — create, look up and finalize investment ideas."""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dealflow.errors import StoreError
from dealflow.models.idea import IdeaStatus, InvestmentIdea
from dealflow.schemas.evaluation import EvaluationPackage

logger = logging.getLogger(__name__)


class IdeaStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create(
        self,
        topic: str,
        submitter_id: int,
        submitter_username: str,
        package: EvaluationPackage,
    ) -> int:
        """Persist a scored idea with status ``pending`` and return its id."""
        idea = InvestmentIdea(
            topic=topic,
            submitter_id=submitter_id,
            submitter_username=submitter_username,
            research_summary=package.summary,
            thesis=package.thesis,
            risk_assessment=package.risk,
            recommendations=package.recommendations,
            evaluation_score=package.score,
            status=IdeaStatus.PENDING,
        )
        try:
            async with self._session_factory() as db:
                db.add(idea)
                await db.commit()
                await db.refresh(idea)
        except SQLAlchemyError as e:
            raise StoreError(f"Could not store investment idea {topic!r}: {e}") from e

        logger.info(f"Stored investment idea {idea.id} ({topic!r}) from {submitter_username}")
        return idea.id

    async def get(self, idea_id: int) -> Optional[InvestmentIdea]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(InvestmentIdea).where(InvestmentIdea.id == idea_id)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not load investment idea {idea_id}: {e}") from e

    async def finalize(self, idea_id: int, outcome: IdeaStatus) -> bool:
        """
        Move a pending idea to its terminal status.

        The UPDATE only matches rows still ``pending``, so the transition
        happens at most once; returns False if the idea is missing or was
        already finalized.
        """
        if outcome is IdeaStatus.PENDING:
            raise ValueError("An idea can only be finalized as approved or rejected")

        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    update(InvestmentIdea)
                    .where(
                        InvestmentIdea.id == idea_id,
                        InvestmentIdea.status == IdeaStatus.PENDING,
                    )
                    .values(status=outcome, finalized_at=datetime.now(timezone.utc))
                )
                await db.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not set status of idea {idea_id} to {outcome.value}: {e}") from e

        return result.rowcount == 1
