"""Milestone model - one stage in the five-step proposal workflow."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from progress_engine.database import Base


class Milestone(Base):
    """One stage of work within a proposal.

    Milestones are rendered as a linear stepper in the campaign timeline.
    ``completed_at`` is set if and only if ``status == "completed"``; the
    transition is one-way.

    Attributes:
        id: Primary key.
        proposal_id: FK to Proposal.
        order: Sequential position 1–5, unique per proposal.
        type: Stage type, e.g. "content_creation", "payment".
        title: Display name of the milestone.
        description: Optional longer description.
        status: "pending", "in_progress" or "completed".
        estimated_hours: Planned effort in hours.
        actual_hours: Sum of stopped session durations, in hours.
        payment_percentage: Share of compensation payable on completion.
        due_date: Optional deadline used for the urgency flag.
        started_at: First time a timer was started against this milestone.
        completed_at: Completion timestamp.
        created_at: Record creation timestamp.
        updated_at: Last modification timestamp.
    """

    __tablename__ = "milestone"
    __table_args__ = (
        UniqueConstraint("proposal_id", "order", name="uq_milestone_proposal_order"),
        UniqueConstraint("proposal_id", "type", name="uq_milestone_proposal_type"),
        CheckConstraint("estimated_hours >= 0", name="ck_milestone_estimated_hours"),
        CheckConstraint(
            "payment_percentage IS NULL OR "
            "(payment_percentage >= 0 AND payment_percentage <= 100)",
            name="ck_milestone_payment_percentage",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    proposal_id = Column(Integer, ForeignKey("proposal.id"), nullable=False, index=True)
    order = Column(Integer, nullable=False)  # 1–5
    type = Column(String(30), nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), default="pending", nullable=False)
    # "pending", "in_progress", "completed"
    estimated_hours = Column(Numeric(6, 2), default=0, nullable=False)
    actual_hours = Column(Numeric(8, 2), nullable=True)
    payment_percentage = Column(Numeric(5, 2), nullable=True)
    due_date = Column(DateTime, nullable=True)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    proposal = relationship("Proposal", back_populates="milestones", lazy="select")
    sessions = relationship(
        "TimeSession",
        back_populates="milestone",
        order_by="TimeSession.start_time",
        lazy="select",
    )
