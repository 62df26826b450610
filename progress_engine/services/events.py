"""
Milestone completion events.

``MilestoneCompleted`` is published after the completing transaction has
committed.  Subscribers (payment release, gamification) own their retries;
a subscriber that raises is logged and skipped so the completion never
appears failed to the user.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Callable, List

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MilestoneCompleted:
    """Emitted once per milestone, when it transitions to ``completed``."""

    milestone_id: int
    proposal_id: int
    payment_percentage: float | None
    completed_at: datetime.datetime

    def to_dict(self) -> dict:
        data = asdict(self)
        data["completed_at"] = self.completed_at.isoformat()
        return data


EventHandler = Callable[[MilestoneCompleted], None]


class EventDispatcher:
    """
    In-process fan-out of ``MilestoneCompleted`` events.

    Responsibilities:
    - Keep the ordered list of subscribers
    - Deliver each event to every subscriber, isolating failures

    Does NOT:
    - Retry failed deliveries (that's the subscriber's job)
    - Persist events
    """

    def __init__(self) -> None:
        self._handlers: List[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    @property
    def handlers(self) -> List[EventHandler]:
        return list(self._handlers)

    def publish(self, event: MilestoneCompleted) -> int:
        """Deliver *event* to every subscriber.

        Returns:
            Number of subscribers that handled the event without raising.
        """
        delivered = 0
        for handler in list(self._handlers):
            try:
                handler(event)
                delivered += 1
            except Exception:
                logger.exception(
                    "publish: subscriber %r failed for milestone_id=%d",
                    handler, event.milestone_id,
                )
        return delivered


def log_milestone_completed(event: MilestoneCompleted) -> None:
    """Default subscriber: record the event for the payment/invoice pipeline."""
    logger.info(
        "MilestoneCompleted milestone_id=%d proposal_id=%d payment_percentage=%s",
        event.milestone_id, event.proposal_id, event.payment_percentage,
    )


@lru_cache
def get_event_dispatcher() -> EventDispatcher:
    return EventDispatcher()
