"""
Incentive-points ledger.

Every award is a single atomic ``points = points + delta`` UPDATE, with the
first award for a member inserting the row instead. Awards for the same
member are serialized by a per-member lock so the update-or-insert step
cannot race with itself inside this process.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import desc, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dealflow.errors import StoreError
from dealflow.models.member import Member
from dealflow.services.locks import KeyedLocks

logger = logging.getLogger(__name__)

# ── Point policy ──
VOTE_POINTS = 1
APPROVAL_BONUS = 5
ALIGNMENT_BONUS = 2


class Ledger:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._locks = KeyedLocks()

    async def award(self, member_id: int, member_name: str, delta: int) -> None:
        """Add ``delta`` points to a member, creating the entry on first award."""
        if delta < 0:
            raise ValueError("Ledger points never decrease")

        async with self._locks(member_id):
            try:
                async with self._session_factory() as db:
                    result = await db.execute(
                        update(Member)
                        .where(Member.member_id == member_id)
                        .values(points=Member.points + delta)
                    )
                    if result.rowcount == 0:
                        db.add(Member(member_id=member_id, username=member_name, points=delta))
                    await db.commit()
            except SQLAlchemyError as e:
                raise StoreError(f"Could not award {delta} points to member {member_id}: {e}") from e

        logger.info(f"Awarded {delta} points to {member_name} ({member_id})")

    async def points_for(self, member_id: int) -> Optional[int]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(Member.points).where(Member.member_id == member_id)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not read points for member {member_id}: {e}") from e

    async def leaderboard(self) -> List[Tuple[str, int]]:
        """Return ``(username, points)`` pairs, highest balance first."""
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(Member.username, Member.points).order_by(desc(Member.points), Member.username)
                )
                return [(username, points) for username, points in result.all()]
        except SQLAlchemyError as e:
            raise StoreError(f"Could not read the leaderboard: {e}") from e
