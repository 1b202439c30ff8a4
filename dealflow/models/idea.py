"""InvestmentIdea model — a pitched topic and its generated evaluation package."""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Enum, Float, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from dealflow.database import Base


class IdeaStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class InvestmentIdea(Base):
    __tablename__ = "investment_ideas"

    # ── Identity ──
    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    topic: Mapped[str] = mapped_column(Text, nullable=False)

    # ── Submitter ──
    submitter_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    submitter_username: Mapped[str] = mapped_column(String(100), nullable=False)

    # ── Evaluation package ──
    research_summary: Mapped[Optional[str]] = mapped_column(Text)
    thesis: Mapped[Optional[str]] = mapped_column(Text)
    risk_assessment: Mapped[Optional[str]] = mapped_column(Text)
    recommendations: Mapped[Optional[str]] = mapped_column(Text)
    evaluation_score: Mapped[float] = mapped_column(Float, default=0.0)

    # ── Lifecycle ──
    status: Mapped[IdeaStatus] = mapped_column(
        Enum(IdeaStatus, values_callable=lambda e: [m.value for m in e]),
        default=IdeaStatus.PENDING,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    finalized_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
