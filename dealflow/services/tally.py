"""Feedback tally — the append-only vote log and its yes/no counts."""

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dealflow.errors import StoreError
from dealflow.models.feedback import Feedback
from dealflow.services.locks import KeyedLocks

logger = logging.getLogger(__name__)

VALID_VOTES = ("yes", "no")


@dataclass(frozen=True)
class Tally:
    yes: int = 0
    no: int = 0

    @property
    def majority(self) -> Optional[str]:
        """``"yes"``/``"no"`` for the larger side, ``None`` on a tie."""
        if self.yes > self.no:
            return "yes"
        if self.no > self.yes:
            return "no"
        return None


@dataclass(frozen=True)
class Voter:
    member_id: int
    member_username: str


def normalize_vote(raw: str) -> str:
    """Lower-case and validate a poll payload; raises ``ValueError`` for anything else."""
    vote = (raw or "").strip().lower()
    if vote not in VALID_VOTES:
        raise ValueError(f"Unknown vote {raw!r}")
    return vote


class FeedbackTally:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], one_vote_per_member: bool = True):
        self._session_factory = session_factory
        self.one_vote_per_member = one_vote_per_member
        self._locks = KeyedLocks()

    async def record_vote(self, idea_id: int, voter_id: int, voter_name: str, vote: str) -> bool:
        """
        Append a vote to the log.

        Returns False without writing when ``one_vote_per_member`` is on and
        this voter already voted on the idea. The check and the insert for one
        voter on one idea run under a shared lock, so a double-tapped button
        records a single vote.
        """
        async with self._locks((idea_id, voter_id)):
            try:
                async with self._session_factory() as db:
                    if self.one_vote_per_member and await self._has_voted(db, idea_id, voter_id):
                        logger.info(f"Ignoring repeat vote by {voter_name} ({voter_id}) on idea {idea_id}")
                        return False
                    db.add(Feedback(
                        idea_id=idea_id,
                        member_id=voter_id,
                        member_username=voter_name,
                        vote=vote.lower(),
                    ))
                    await db.commit()
            except SQLAlchemyError as e:
                raise StoreError(f"Could not record vote on idea {idea_id}: {e}") from e
        return True

    async def has_voted(self, idea_id: int, voter_id: int) -> bool:
        try:
            async with self._session_factory() as db:
                return await self._has_voted(db, idea_id, voter_id)
        except SQLAlchemyError as e:
            raise StoreError(f"Could not read votes for idea {idea_id}: {e}") from e

    async def count_votes(self, idea_id: int) -> Tally:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(Feedback.vote).where(Feedback.idea_id == idea_id)
                )
                votes = [v.lower() for v in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StoreError(f"Could not count votes for idea {idea_id}: {e}") from e
        return Tally(yes=votes.count("yes"), no=votes.count("no"))

    async def voters(self, idea_id: int, vote: str) -> List[Voter]:
        """Every vote record on ``idea_id`` whose value equals ``vote`` (case-insensitive)."""
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(Feedback.member_id, Feedback.member_username)
                    .where(
                        Feedback.idea_id == idea_id,
                        func.lower(Feedback.vote) == vote.lower(),
                    )
                    .order_by(Feedback.id)
                )
                return [Voter(member_id, username) for member_id, username in result.all()]
        except SQLAlchemyError as e:
            raise StoreError(f"Could not list voters for idea {idea_id}: {e}") from e

    @staticmethod
    async def _has_voted(db: AsyncSession, idea_id: int, voter_id: int) -> bool:
        result = await db.execute(
            select(func.count(Feedback.id)).where(
                Feedback.idea_id == idea_id,
                Feedback.member_id == voter_id,
            )
        )
        return (result.scalar() or 0) > 0
