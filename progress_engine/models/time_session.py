"""TimeSession model - one continuous interval of work against a milestone."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from progress_engine.database import Base


class TimeSession(Base):
    """Tracked work interval.

    A session is active while ``end_time`` is NULL.  The partial unique index
    ``uq_time_session_active_actor`` allows at most one active session per
    actor across all proposals, so a racing second ``start`` fails at the
    database instead of producing two running timers.

    Attributes:
        id: Primary key.
        milestone_id: FK to Milestone.
        proposal_id: FK to Proposal (denormalised for per-proposal queries).
        actor_id: Id of the user doing the work.
        start_time: When the timer was started.
        end_time: When the timer was stopped (NULL while active).
        duration_seconds: ``end_time - start_time`` in whole seconds.
        description: What was worked on.
        created_at: Record creation timestamp.
        updated_at: Last modification timestamp.
    """

    __tablename__ = "time_session"
    __table_args__ = (
        Index(
            "uq_time_session_active_actor",
            "actor_id",
            unique=True,
            postgresql_where=text("end_time IS NULL"),
            sqlite_where=text("end_time IS NULL"),
        ),
        CheckConstraint(
            "duration_seconds IS NULL OR duration_seconds >= 0",
            name="ck_time_session_duration",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    milestone_id = Column(Integer, ForeignKey("milestone.id"), nullable=False, index=True)
    proposal_id = Column(Integer, ForeignKey("proposal.id"), nullable=False, index=True)
    actor_id = Column(String(64), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=True)
    duration_seconds = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    milestone = relationship("Milestone", back_populates="sessions", lazy="select")

    @property
    def is_active(self) -> bool:
        return self.end_time is None
