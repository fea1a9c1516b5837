"""Domain errors raised by the scheduling core.

Only ``ConstraintConflict`` is meant to reach end users as an actionable
message. Everything else is operational.
"""

from __future__ import annotations

from typing import Any


class BrightPathError(Exception):
    """Base class for scheduling core errors."""


class NotFound(BrightPathError):
    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class ConstraintConflict(BrightPathError):
    """Two fixed blocks overlap, so no valid schedule can be built."""

    def __init__(self, conflicts: list[tuple[Any, Any]]) -> None:
        self.conflicts = conflicts
        details = "; ".join(
            f"{first.label} overlaps {second.label} on {first.day.strftime('%A %Y-%m-%d')}"
            for first, second in conflicts
        )
        super().__init__(f"Conflicting fixed commitments: {details}")

    def to_detail(self) -> list[dict[str, Any]]:
        return [
            {
                "day": first.day.isoformat(),
                "first": {
                    "label": first.label,
                    "start_time": first.start_time.strftime("%H:%M"),
                    "end_time": first.end_time.strftime("%H:%M"),
                },
                "second": {
                    "label": second.label,
                    "start_time": second.start_time.strftime("%H:%M"),
                    "end_time": second.end_time.strftime("%H:%M"),
                },
            }
            for first, second in self.conflicts
        ]


class ConcurrentRegenerationConflict(BrightPathError):
    """Another regeneration for the same child and week won the race."""

    def __init__(self, child_id: int, week_start: Any) -> None:
        super().__init__(
            f"Schedule for child {child_id} week {week_start} was regenerated concurrently"
        )
        self.child_id = child_id
        self.week_start = week_start


class InvalidScheduleTransition(BrightPathError):
    pass


class ScheduleItemConflict(BrightPathError):
    """A rescheduled item would overlap another item on the same day."""


class RetrainingFailure(BrightPathError):
    pass


class RetrainingCancelled(RetrainingFailure):
    pass
