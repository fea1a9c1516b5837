"""Feedback ingest and schedule item interactions.

Every interaction with a schedule item appends an ``ActivityLog`` row. Items
are never edited in place when rescheduled: the old item is superseded and a
new one is inserted pointing back at it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from brightpath.core.errors import InvalidScheduleTransition, NotFound, ScheduleItemConflict
from brightpath.db.session import SessionLocal
from brightpath.models.activity_log import ActivityEvent, ActivityLog
from brightpath.models.feedback import Feedback
from brightpath.models.schedule import ItemStatus, ItemType, Schedule, ScheduleItem, ScheduleStatus
from brightpath.schemas.feedback import FeedbackCreate
from brightpath.schemas.schedule import ItemCompletion, ItemReschedule
from brightpath.services import evaluator as evaluator_service

logger = logging.getLogger(__name__)


def _minutes(value) -> int:
    return value.hour * 60 + value.minute


def derived_flags(schedule: Schedule) -> dict[str, bool]:
    """Adjustment flags implied by what the family actually did."""
    flags = {"time_shifted": False, "reordered": False, "removed": False}
    for log in schedule.activity_logs:
        if log.event == ActivityEvent.SKIPPED:
            flags["removed"] = True
        elif log.event == ActivityEvent.RESCHEDULED:
            if log.new_day is not None and log.new_day != log.scheduled_day:
                flags["reordered"] = True
            if log.new_start is not None and log.new_start != log.scheduled_start:
                flags["time_shifted"] = True
    return flags


def ingest(db: Session, schedule_id: int, payload: FeedbackCreate) -> Feedback:
    """Persist feedback for a schedule. Scoring happens later, off the request."""
    schedule = db.get(Schedule, schedule_id)
    if schedule is None:
        raise NotFound("Schedule", schedule_id)
    if schedule.status == ScheduleStatus.GENERATED:
        raise InvalidScheduleTransition(
            f"Schedule {schedule_id} has not been activated and cannot receive feedback"
        )

    derived = derived_flags(schedule)
    feedback = Feedback(
        schedule_id=schedule.id,
        star_rating=payload.star_rating,
        likert_ratings=dict(payload.likert_ratings),
        comments=payload.comments,
        time_shifted=payload.time_shifted or derived["time_shifted"],
        reordered=payload.reordered or derived["reordered"],
        removed=payload.removed or derived["removed"],
    )
    db.add(feedback)
    db.commit()
    db.refresh(feedback)
    logger.info(
        f"Feedback {feedback.id} recorded for schedule {schedule_id} "
        f"({feedback.star_rating} stars)"
    )
    return feedback


def score_feedback(feedback_id: int) -> None:
    """Background task: score one feedback record with the active evaluator."""
    with SessionLocal() as session:
        feedback = session.get(Feedback, feedback_id)
        if feedback is None:
            logger.warning(f"Feedback {feedback_id} vanished before scoring")
            return
        try:
            value = evaluator_service.score_feedback_record(session, feedback)
        except Exception:
            session.rollback()
            logger.exception(f"Scoring feedback {feedback_id} failed")
            return
        logger.info(f"Feedback {feedback_id} scored {value:.3f}")


def _get_item(db: Session, item_id: int) -> ScheduleItem:
    item = db.get(ScheduleItem, item_id)
    if item is None:
        raise NotFound("ScheduleItem", item_id)
    if item.status != ItemStatus.PENDING:
        raise ScheduleItemConflict(f"Item {item_id} is already {item.status.value}")
    if not item.schedule.is_active:
        raise ScheduleItemConflict(
            f"Item {item_id} belongs to schedule {item.schedule_id}, which is no longer active"
        )
    return item


def _log(item: ScheduleItem, event: ActivityEvent, **fields) -> ActivityLog:
    return ActivityLog(
        schedule_id=item.schedule_id,
        schedule_item_id=item.id,
        event=event,
        scheduled_day=item.day,
        scheduled_start=item.start_time,
        scheduled_end=item.end_time,
        **fields,
    )


def complete_item(db: Session, item_id: int, payload: ItemCompletion) -> ActivityLog:
    item = _get_item(db, item_id)
    item.status = ItemStatus.COMPLETED
    log = _log(
        item,
        ActivityEvent.COMPLETED,
        completed_at=payload.completed_at or datetime.utcnow(),
        actual_minutes=payload.actual_minutes,
    )
    db.add(log)
    db.commit()
    db.refresh(log)
    return log


def skip_item(db: Session, item_id: int) -> ActivityLog:
    item = _get_item(db, item_id)
    item.status = ItemStatus.SKIPPED
    log = _log(item, ActivityEvent.SKIPPED)
    db.add(log)
    db.commit()
    db.refresh(log)
    return log


def reschedule_item(db: Session, item_id: int, payload: ItemReschedule) -> ActivityLog:
    """Move an item by superseding it with a new one.

    Raises ScheduleItemConflict when the target slot is invalid or overlaps
    another live item on the target day.
    """
    item = _get_item(db, item_id)
    if item.item_type == ItemType.COMMITMENT:
        raise ScheduleItemConflict(f"Commitment item {item_id} cannot be rescheduled")

    schedule = item.schedule
    week_end = schedule.week_start_date + timedelta(days=6)
    if not schedule.week_start_date <= payload.day <= week_end:
        raise ScheduleItemConflict(
            f"{payload.day} is outside the week starting {schedule.week_start_date}"
        )
    if payload.end_time <= payload.start_time:
        raise ScheduleItemConflict("end_time must be after start_time")

    new_start = _minutes(payload.start_time)
    new_end = _minutes(payload.end_time)
    live = [
        other
        for other in schedule.items
        if other.id != item.id
        and other.day == payload.day
        and other.status != ItemStatus.SUPERSEDED
    ]
    clashes = [
        other for other in live
        if new_start < _minutes(other.end_time) and _minutes(other.start_time) < new_end
    ]
    if clashes:
        raise ScheduleItemConflict(
            f"Moving '{item.title}' to {payload.day} {payload.start_time:%H:%M}-"
            f"{payload.end_time:%H:%M} overlaps '{clashes[0].title}'"
        )

    replacement = ScheduleItem(
        schedule_id=schedule.id,
        day=payload.day,
        position=len(live),
        item_type=item.item_type,
        title=item.title,
        start_time=payload.start_time,
        end_time=payload.end_time,
        status=ItemStatus.PENDING,
        subject_id=item.subject_id,
        commitment_id=item.commitment_id,
        is_fixed=item.is_fixed,
        replaces_item_id=item.id,
    )
    item.status = ItemStatus.SUPERSEDED
    db.add(replacement)
    db.flush()

    log = _log(
        item,
        ActivityEvent.RESCHEDULED,
        new_day=payload.day,
        new_start=payload.start_time,
        new_end=payload.end_time,
        new_item_id=replacement.id,
    )
    db.add(log)
    db.commit()
    db.refresh(log)
    logger.info(f"Item {item.id} rescheduled as {replacement.id} on schedule {schedule.id}")
    return log
