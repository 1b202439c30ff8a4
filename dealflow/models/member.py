"""Member model — cumulative incentive points per chat member."""

from sqlalchemy import BigInteger, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from dealflow.database import Base


class Member(Base):
    __tablename__ = "members"

    # Telegram user ids do not fit in 32 bits.
    member_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
