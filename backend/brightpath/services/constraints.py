"""Collect hard constraints for one child and one week.

Commitments are expanded into concrete intervals, fixed-time subjects become
extra fixed blocks, and any overlap between fixed blocks is reported as a
``ConstraintConflict`` before generation starts.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, Sequence

from sqlalchemy import or_
from sqlalchemy.orm import Session

from brightpath.core.errors import ConstraintConflict, NotFound
from brightpath.models.child import Child, DayPart
from brightpath.models.commitment import Commitment, Recurrence
from brightpath.models.subject import ParentInvolvement, Subject, SubjectFrequency
from brightpath.schemas.constraint import ConstraintSet, SubjectSpec, TimeInterval

logger = logging.getLogger(__name__)

SESSIONS_PER_WEEK = {
    SubjectFrequency.DAILY: 5,
    SubjectFrequency.TWO_TO_THREE_PER_WEEK: 3,
    SubjectFrequency.WEEKLY: 1,
    SubjectFrequency.OCCASIONAL: 1,
}

DEFAULT_FIXED_DAYS = {
    SubjectFrequency.DAILY: [0, 1, 2, 3, 4],
    SubjectFrequency.TWO_TO_THREE_PER_WEEK: [0, 2, 4],
    SubjectFrequency.WEEKLY: [0],
    SubjectFrequency.OCCASIONAL: [0],
}

DEFAULT_SESSION_MINUTES = 30


def week_start_for(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def _week_days(week_start: date) -> list[date]:
    return [week_start + timedelta(days=offset) for offset in range(7)]


def _within_bounds(commitment: Commitment, day: date) -> bool:
    if commitment.starts_on and day < commitment.starts_on:
        return False
    if commitment.ends_on and day > commitment.ends_on:
        return False
    return True


def _commitment_days(commitment: Commitment, week_start: date) -> list[date]:
    """Dates within the target week on which a commitment occurs."""
    recurrence = commitment.recurrence
    days = _week_days(week_start)

    if recurrence == Recurrence.ONE_TIME:
        if commitment.starts_on and commitment.starts_on in days:
            return [commitment.starts_on]
        return []

    if recurrence == Recurrence.MONTHLY:
        if not commitment.starts_on:
            return []
        anchor = commitment.starts_on.day
        return [day for day in days if day.day == anchor and _within_bounds(commitment, day)]

    weekdays = commitment.days_of_week
    if recurrence == Recurrence.DAILY and not weekdays:
        weekdays = list(range(7))
    weekdays = set(weekdays or [])
    return [
        day for day in days if day.weekday() in weekdays and _within_bounds(commitment, day)
    ]


def expand_commitments(
    commitments: Iterable[Commitment], week_start: date
) -> list[TimeInterval]:
    intervals: list[TimeInterval] = []
    for commitment in commitments:
        for day in _commitment_days(commitment, week_start):
            intervals.append(
                TimeInterval(
                    day=day,
                    start_time=commitment.start_time,
                    end_time=commitment.end_time,
                    kind="commitment",
                    source_id=commitment.id,
                    label=commitment.name,
                )
            )
    return intervals


def _add_minutes(value: time, minutes: int) -> time:
    moved = datetime.combine(date.min, value) + timedelta(minutes=minutes)
    if moved.date() != date.min:
        return time.max.replace(second=0, microsecond=0)
    return moved.time()


def fixed_subject_blocks(
    subjects: Iterable[Subject], week_start: date
) -> list[TimeInterval]:
    intervals: list[TimeInterval] = []
    for subject in subjects:
        if subject.fixed_start_time is None:
            continue
        minutes = subject.session_minutes or DEFAULT_SESSION_MINUTES
        weekdays = subject.fixed_days or DEFAULT_FIXED_DAYS[subject.frequency]
        for offset in sorted(set(weekdays)):
            intervals.append(
                TimeInterval(
                    day=week_start + timedelta(days=offset),
                    start_time=subject.fixed_start_time,
                    end_time=_add_minutes(subject.fixed_start_time, minutes),
                    kind="subject",
                    source_id=subject.id,
                    label=subject.name,
                )
            )
    return intervals


def find_conflicts(
    blocks: Sequence[TimeInterval],
) -> list[tuple[TimeInterval, TimeInterval]]:
    conflicts: list[tuple[TimeInterval, TimeInterval]] = []
    ordered = sorted(blocks, key=lambda block: (block.day, block.start_time, block.end_time))
    for idx, block in enumerate(ordered):
        for other in ordered[idx + 1:]:
            if other.day != block.day or other.start_minutes >= block.end_minutes:
                break
            if block.overlaps(other):
                conflicts.append((block, other))
    return conflicts


def subject_spec(subject: Subject) -> SubjectSpec:
    return SubjectSpec(
        subject_id=subject.id,
        name=subject.name,
        is_core=subject.is_core is not False,
        session_minutes=subject.session_minutes,
        frequency=subject.frequency,
        sessions_per_week=SESSIONS_PER_WEEK[subject.frequency],
        parent_involvement=subject.parent_involvement or ParentInvolvement.MINIMAL,
        interest_level=subject.interest_level or 3,
        is_fixed=subject.fixed_start_time is not None,
    )


def build_constraint_set(
    child: Child,
    commitments: Iterable[Commitment],
    subjects: Iterable[Subject],
    week_start: date,
) -> ConstraintSet:
    week_start = week_start_for(week_start)
    subjects = [subject for subject in subjects if subject.is_active]

    fixed_blocks = expand_commitments(commitments, week_start)
    fixed_blocks.extend(fixed_subject_blocks(subjects, week_start))

    conflicts = find_conflicts(fixed_blocks)
    if conflicts:
        logger.warning(
            f"Child {child.id} week {week_start}: {len(conflicts)} conflicting fixed blocks"
        )
        raise ConstraintConflict(conflicts)

    return ConstraintSet(
        child_id=child.id,
        week_start=week_start,
        homeschool_start=child.homeschool_start,
        homeschool_end=child.homeschool_end,
        best_learning_times=[DayPart(value) for value in (child.best_learning_times or [])],
        fixed_blocks=sorted(fixed_blocks, key=lambda block: (block.day, block.start_time)),
        subject_requirements=[subject_spec(subject) for subject in subjects],
    )


def collect(db: Session, child_id: int, week_start: date) -> ConstraintSet:
    child = db.get(Child, child_id)
    if child is None:
        raise NotFound("Child", child_id)

    commitments = (
        db.query(Commitment)
        .filter(
            Commitment.family_id == child.family_id,
            or_(Commitment.child_id.is_(None), Commitment.child_id == child.id),
        )
        .all()
    )
    subjects = (
        db.query(Subject)
        .filter(Subject.child_id == child.id, Subject.is_active.is_(True))
        .order_by(Subject.id.asc())
        .all()
    )
    return build_constraint_set(child, commitments, subjects, week_start)
