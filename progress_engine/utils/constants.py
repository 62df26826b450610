"""
Application-wide constants for the milestone progress engine.

Defines the stage taxonomy, milestone and session states, the default
milestone table used by ``initialize`` and the default payment schedule.
"""

from decimal import Decimal
from typing import Final

# ---------------------------------------------------------------------------
# Actor roles (supplied by the external auth layer inside the JWT)
# ---------------------------------------------------------------------------

ROLE_INFLUENCER: Final[str] = "influencer"
ROLE_BRAND: Final[str] = "brand"
ROLE_ADMIN: Final[str] = "admin"

ROLES: Final[list[str]] = [ROLE_INFLUENCER, ROLE_BRAND, ROLE_ADMIN]

# ---------------------------------------------------------------------------
# Stage taxonomy - fixed pipeline order
# ---------------------------------------------------------------------------

STAGE_CONTENT_CREATION: Final[str] = "content_creation"
STAGE_SUBMISSION: Final[str] = "submission"
STAGE_REVIEW: Final[str] = "review"
STAGE_APPROVAL: Final[str] = "approval"
STAGE_PAYMENT: Final[str] = "payment"

STAGE_ORDER: Final[tuple[str, ...]] = (
    STAGE_CONTENT_CREATION,
    STAGE_SUBMISSION,
    STAGE_REVIEW,
    STAGE_APPROVAL,
    STAGE_PAYMENT,
)

# ---------------------------------------------------------------------------
# Milestone states
# ---------------------------------------------------------------------------

STATUS_PENDING: Final[str] = "pending"
STATUS_IN_PROGRESS: Final[str] = "in_progress"
STATUS_COMPLETED: Final[str] = "completed"

MILESTONE_STATUSES: Final[list[str]] = [
    STATUS_PENDING,
    STATUS_IN_PROGRESS,
    STATUS_COMPLETED,
]

# ---------------------------------------------------------------------------
# Default milestone set created by ``initialize``
# ---------------------------------------------------------------------------

DEFAULT_MILESTONES: Final[list[dict]] = [
    {
        "order": 1,
        "type": STAGE_CONTENT_CREATION,
        "title": "Content Creation",
        "description": "Script, film and edit the content",
        "estimated_hours": Decimal("6.00"),
    },
    {
        "order": 2,
        "type": STAGE_SUBMISSION,
        "title": "Content Submission",
        "description": "Submit the draft content to the brand",
        "estimated_hours": Decimal("1.00"),
    },
    {
        "order": 3,
        "type": STAGE_REVIEW,
        "title": "Review & Revisions",
        "description": "Address brand feedback and revise",
        "estimated_hours": Decimal("2.00"),
    },
    {
        "order": 4,
        "type": STAGE_APPROVAL,
        "title": "Final Approval",
        "description": "Brand approves the final content",
        "estimated_hours": Decimal("0.50"),
    },
    {
        "order": 5,
        "type": STAGE_PAYMENT,
        "title": "Payment Release",
        "description": "Content published and payment released",
        "estimated_hours": Decimal("0.50"),
    },
]

# Payment milestone holds the full amount unless the proposal defines its own
DEFAULT_PAYMENT_SCHEDULE: Final[tuple[Decimal, ...]] = (
    Decimal("0"),
    Decimal("0"),
    Decimal("0"),
    Decimal("0"),
    Decimal("100"),
)

PAYMENT_TOTAL_PERCENTAGE: Final[Decimal] = Decimal("100")

# Upper bound of a milestone estimate (column is NUMERIC(6, 2))
MAX_ESTIMATED_HOURS: Final[Decimal] = Decimal("9999")

# ---------------------------------------------------------------------------
# Progress values
# ---------------------------------------------------------------------------

STAGE_COMPLETE: Final[int] = 100
STAGE_INCOMPLETE: Final[int] = 0

SECONDS_PER_HOUR: Final[int] = 3600
