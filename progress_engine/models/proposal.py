"""Proposal model - brand/influencer collaboration owned by the proposals module."""

from sqlalchemy import Column, DateTime, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from progress_engine.database import Base


class Proposal(Base):
    """Collaboration record a milestone set belongs to.

    The engine never writes proposals; it reads ``proposed_compensation`` and
    ``currency`` for the hourly-rate metric and checks existence on
    ``initialize``.

    Attributes:
        id: Primary key.
        influencer_id: Actor id of the influencer doing the work.
        proposed_compensation: Agreed compensation in ``currency`` units.
        currency: ISO 4217 code, e.g. "INR".
        created_at: Record creation timestamp.
    """

    __tablename__ = "proposal"

    id = Column(Integer, primary_key=True, autoincrement=True)
    influencer_id = Column(String(64), nullable=False, index=True)
    proposed_compensation = Column(Numeric(12, 2), default=0, nullable=False)
    currency = Column(String(3), default="INR", nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    # Relationships
    milestones = relationship(
        "Milestone",
        back_populates="proposal",
        order_by="Milestone.order",
        lazy="select",
    )
