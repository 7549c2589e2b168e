from __future__ import annotations

from ..logging import get_logger
from .stores import ActivitySink


LOG = get_logger("inventory-activity")


class ActivityLogger:
    """Fire-and-forget front for an activity sink.

    Inventory changes have already been written when an entry is recorded, so
    a failing sink is logged and otherwise ignored.
    """

    def __init__(self, sink: ActivitySink) -> None:
        self.sink = sink

    def record(self, type: str, description: str, amount: int) -> bool:
        try:
            self.sink.append(type, description, int(amount))
        except Exception as exc:
            LOG.warning("Activity log append failed (%s %s: %s): %s", type, amount, description, exc)
            return False
        return True
