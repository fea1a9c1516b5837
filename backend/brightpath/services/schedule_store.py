"""Storage boundary for generated schedules.

The generator's ``WeeklySchedule`` is stored verbatim as a JSON document and
expanded into ``ScheduleItem`` rows for interaction tracking. Activation is a
compare-and-swap on the active row so that at most one schedule per child and
week is ever active.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from brightpath.core.errors import ConcurrentRegenerationConflict, InvalidScheduleTransition
from brightpath.models.schedule import ItemType, Schedule, ScheduleItem, ScheduleStatus
from brightpath.schemas.schedule import CommitmentItem, SubjectItem, WeeklySchedule

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    ScheduleStatus.GENERATED: {ScheduleStatus.ACTIVE},
    ScheduleStatus.ACTIVE: {ScheduleStatus.SUPERSEDED},
    ScheduleStatus.SUPERSEDED: set(),
}


def transition(schedule: Schedule, target: ScheduleStatus) -> None:
    current = schedule.status or ScheduleStatus.GENERATED
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidScheduleTransition(
            f"Schedule {schedule.id} cannot move from {current.value} to {target.value}"
        )
    schedule.status = target
    schedule.is_active = target == ScheduleStatus.ACTIVE
    if target == ScheduleStatus.SUPERSEDED:
        schedule.superseded_at = datetime.utcnow()


def build_items(plan: WeeklySchedule) -> list[ScheduleItem]:
    items: list[ScheduleItem] = []
    for day_schedule in plan.days:
        for position, entry in enumerate(day_schedule.items):
            item = ScheduleItem(
                day=day_schedule.day,
                position=position,
                item_type=ItemType(entry.kind),
                title=entry.title,
                start_time=entry.start_time,
                end_time=entry.end_time,
            )
            if isinstance(entry, SubjectItem):
                item.subject_id = entry.subject_id
                item.is_fixed = entry.is_fixed
            elif isinstance(entry, CommitmentItem):
                item.commitment_id = entry.commitment_id
                item.is_fixed = True
            items.append(item)
    return items


def get_active_schedule(
    db: Session, child_id: int, week_start: date
) -> Schedule | None:
    return (
        db.query(Schedule)
        .filter(
            Schedule.child_id == child_id,
            Schedule.week_start_date == week_start,
            Schedule.is_active.is_(True),
        )
        .one_or_none()
    )


def _next_version(db: Session, child_id: int, week_start: date) -> int:
    latest = (
        db.query(func.max(Schedule.version))
        .filter(Schedule.child_id == child_id, Schedule.week_start_date == week_start)
        .scalar()
    )
    return (latest or 0) + 1


def activate_schedule(
    db: Session,
    plan: WeeklySchedule,
    evaluator_model_id: int | None = None,
    expected_version: int | None = None,
) -> Schedule:
    """Insert ``plan`` as the active schedule, superseding the previous one.

    ``expected_version`` is the version of the active schedule the caller
    based its request on (0 when there was none). When given and no longer
    current, or when another regeneration commits first, this raises
    ConcurrentRegenerationConflict and leaves the database untouched.
    """
    child_id = plan.child_id
    week_start = plan.week_start

    try:
        current = get_active_schedule(db, child_id, week_start)
        current_version = current.version if current else 0
        if expected_version is not None and expected_version != current_version:
            raise ConcurrentRegenerationConflict(child_id, week_start)

        if current is not None:
            swapped = (
                db.query(Schedule)
                .filter(
                    Schedule.id == current.id,
                    Schedule.version == current_version,
                    Schedule.is_active.is_(True),
                )
                .update(
                    {
                        Schedule.is_active: False,
                        Schedule.status: ScheduleStatus.SUPERSEDED,
                        Schedule.superseded_at: datetime.utcnow(),
                    },
                    synchronize_session="fetch",
                )
            )
            if swapped != 1:
                raise ConcurrentRegenerationConflict(child_id, week_start)

        schedule = Schedule(
            child_id=child_id,
            week_start_date=week_start,
            version=_next_version(db, child_id, week_start),
            status=ScheduleStatus.GENERATED,
            is_active=False,
            generation_method=plan.generation_method,
            schedule_data=plan.to_document(),
            unscheduled_subjects=[
                subject.model_dump() for subject in plan.metadata.unscheduled_subjects
            ],
            evaluator_model_id=evaluator_model_id,
            generated_at=plan.generated_at.replace(tzinfo=None),
        )
        schedule.items = build_items(plan)
        transition(schedule, ScheduleStatus.ACTIVE)
        db.add(schedule)
        db.flush()
        db.commit()
    except ConcurrentRegenerationConflict:
        db.rollback()
        logger.info(f"Regeneration for child {child_id} week {week_start} lost the race")
        raise
    except IntegrityError as exc:
        db.rollback()
        logger.info(f"Regeneration for child {child_id} week {week_start} lost the race: {exc}")
        raise ConcurrentRegenerationConflict(child_id, week_start) from exc

    db.refresh(schedule)
    logger.info(
        f"Activated schedule {schedule.id} (v{schedule.version}) for child {child_id} "
        f"week {week_start}"
    )
    return schedule


def load_document(schedule: Schedule) -> WeeklySchedule:
    return WeeklySchedule.from_document(schedule.schedule_data)
