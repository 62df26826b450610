"""SQLAlchemy models package for the progress engine.

Importing all models here ensures that SQLAlchemy's mapper registry is
populated before ``Base.metadata.create_all()`` or Alembic migrations run.
The import order follows the foreign-key dependency graph so that parent
tables are always registered before their children.

Usage from other modules:
    from progress_engine.models import Milestone, TimeSession
"""

# External collaborator (read-only from the engine's perspective)
from progress_engine.models.proposal import Proposal  # noqa: F401

# Milestone chain
from progress_engine.models.milestone import Milestone  # noqa: F401
from progress_engine.models.time_session import TimeSession  # noqa: F401

__all__ = [
    "Proposal",
    "Milestone",
    "TimeSession",
]
