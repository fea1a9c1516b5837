from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Sequence

from sqlalchemy.orm import Session

from brightpath.core.config import get_settings
from brightpath.core.errors import NotFound
from brightpath.models.child import Child, DayPart
from brightpath.models.schedule import Schedule
from brightpath.schemas.constraint import ConstraintSet, SubjectSpec, TimeInterval, minutes_of
from brightpath.schemas.evaluator import GeneratorTuning
from brightpath.schemas.preferences import FeatureVector
from brightpath.schemas.schedule import (
    BreakItem,
    CommitmentItem,
    DaySchedule,
    GenerationParameters,
    ScheduleMetadata,
    SubjectItem,
    UnscheduledSubject,
    WeeklySchedule,
)
from brightpath.services import evaluator as evaluator_service
from brightpath.services import schedule_store
from brightpath.services.constraints import collect, week_start_for
from brightpath.services.preferences import current_preferences, derive_features, responses_for

logger = logging.getLogger(__name__)

DAY_PART_WINDOWS = {
    DayPart.EARLY_MORNING: (time(hour=6), time(hour=9)),
    DayPart.MORNING: (time(hour=9), time(hour=12)),
    DayPart.AFTERNOON: (time(hour=12), time(hour=16)),
    DayPart.EVENING: (time(hour=16), time(hour=20)),
}

SCHOOL_DAYS = 5
BREAK_MINUTES = 15
MIN_BLOCK_MINUTES = 15
MAX_BLOCK_MINUTES = 90
GENERATION_METHOD = "greedy_rotation"


def _to_time(minutes: int) -> time:
    return time(hour=minutes // 60, minute=minutes % 60)


def derive_parameters(
    features: FeatureVector, tuning: GeneratorTuning | None = None
) -> GenerationParameters:
    """Block length, break cadence and start hour for one child."""
    tuning = tuning or GeneratorTuning()

    block = MIN_BLOCK_MINUTES + features.attention_span * (MAX_BLOCK_MINUTES - MIN_BLOCK_MINUTES)
    block *= 1 - tuning.rotation_shortening * features.rotation_preference
    block *= tuning.block_scale
    if features.is_low_confidence:
        # Hedge: wider blocks leave room when preferences are unreliable.
        block += tuning.low_confidence_widen_minutes
    block_duration = int(5 * round(block / 5))
    block_duration = max(MIN_BLOCK_MINUTES, min(MAX_BLOCK_MINUTES, block_duration))

    breaks = tuning.breaks_base + max(0, features.age - 6) // tuning.breaks_age_step
    breaks_frequency = max(2, min(5, breaks + tuning.breaks_shift))

    if features.structure_level >= tuning.early_start_threshold:
        day_start_hour = 8
    elif features.structure_level >= tuning.mid_start_threshold:
        day_start_hour = 9
    else:
        day_start_hour = 10

    return GenerationParameters(
        block_duration=block_duration,
        breaks_frequency=breaks_frequency,
        day_start_hour=day_start_hour,
    )


def learning_segments(constraint_set: ConstraintSet) -> list[tuple[int, int]]:
    """Homeschool window clipped to best-learning day parts, in minutes.

    Falls back to the whole homeschool window when the clip is empty.
    """
    window_start = minutes_of(constraint_set.homeschool_start)
    window_end = minutes_of(constraint_set.homeschool_end)
    if window_end <= window_start:
        return []
    if not constraint_set.best_learning_times:
        return [(window_start, window_end)]

    clipped: list[tuple[int, int]] = []
    for part in constraint_set.best_learning_times:
        part_start, part_end = DAY_PART_WINDOWS[part]
        start = max(window_start, minutes_of(part_start))
        end = min(window_end, minutes_of(part_end))
        if start < end:
            clipped.append((start, end))
    if not clipped:
        return [(window_start, window_end)]

    clipped.sort()
    merged = [clipped[0]]
    for start, end in clipped[1:]:
        last_start, last_end = merged[-1]
        if start <= last_end:
            merged[-1] = (last_start, max(last_end, end))
        else:
            merged.append((start, end))
    return merged


def _day_segments(
    segments: list[tuple[int, int]], day_start_hour: int
) -> list[tuple[int, int]]:
    cutoff = day_start_hour * 60
    result = []
    for start, end in segments:
        start = max(start, cutoff)
        if start < end:
            result.append((start, end))
    return result


def _free_minutes(
    segments: list[tuple[int, int]], obstacles: list[tuple[int, int]]
) -> int:
    total = 0
    for seg_start, seg_end in segments:
        free = seg_end - seg_start
        for start, end in obstacles:
            free -= max(0, min(seg_end, end) - max(seg_start, start))
        total += max(0, free)
    return total


@dataclass
class _RotationSlot:
    spec: SubjectSpec
    minutes: int
    placed: int = 0

    @property
    def remaining(self) -> int:
        return self.spec.sessions_per_week - self.placed

    def is_due(self, day_index: int) -> bool:
        # Spread the weekly quota: by day d at most ceil(q * (d + 1) / 5) sessions.
        if self.remaining <= 0:
            return False
        allowance = math.ceil(self.spec.sessions_per_week * (day_index + 1) / SCHOOL_DAYS)
        return self.placed < allowance


def _fixed_item(block: TimeInterval) -> SubjectItem | CommitmentItem:
    if block.kind == "subject":
        return SubjectItem(
            start_time=block.start_time,
            end_time=block.end_time,
            title=block.label,
            subject_id=block.source_id,
            is_fixed=True,
        )
    return CommitmentItem(
        start_time=block.start_time,
        end_time=block.end_time,
        title=block.label,
        commitment_id=block.source_id,
    )


def _fill_day(
    day_index: int,
    segments: list[tuple[int, int]],
    obstacles: list[tuple[int, int]],
    rotation: list[_RotationSlot],
    pointer: int,
    parameters: GenerationParameters,
    break_minutes: int,
) -> tuple[list[SubjectItem | BreakItem], list[_RotationSlot]]:
    """Greedy walk over one school day.

    Returns the placed items and the due subjects that did not fit.
    """
    order = [rotation[(pointer + k) % len(rotation)] for k in range(len(rotation))]
    placed_today: set[int] = set()
    items: list[SubjectItem | BreakItem] = []

    def pending() -> list[_RotationSlot]:
        return [
            slot for slot in order
            if slot.spec.subject_id not in placed_today and slot.is_due(day_index)
        ]

    for seg_start, seg_end in segments:
        cursor = seg_start
        consecutive = 0
        while cursor < seg_end and pending():
            blocking = next(((s, e) for s, e in obstacles if s <= cursor < e), None)
            if blocking:
                cursor = blocking[1]
                consecutive = 0
                continue

            gap_end = min([seg_end] + [s for s, _ in obstacles if s > cursor])
            gap = gap_end - cursor

            if consecutive >= parameters.breaks_frequency:
                if gap >= break_minutes:
                    items.append(
                        BreakItem(
                            start_time=_to_time(cursor),
                            end_time=_to_time(cursor + break_minutes),
                        )
                    )
                    cursor += break_minutes
                consecutive = 0
                continue

            candidate = next((slot for slot in pending() if slot.minutes <= gap), None)
            if candidate is None:
                cursor = gap_end
                continue

            items.append(
                SubjectItem(
                    start_time=_to_time(cursor),
                    end_time=_to_time(cursor + candidate.minutes),
                    title=candidate.spec.name,
                    subject_id=candidate.spec.subject_id,
                )
            )
            candidate.placed += 1
            placed_today.add(candidate.spec.subject_id)
            cursor += candidate.minutes
            consecutive += 1

        if (
            consecutive >= parameters.breaks_frequency
            and items
            and isinstance(items[-1], SubjectItem)
            and seg_end - cursor >= break_minutes
            and not any(s < cursor + break_minutes and cursor < e for s, e in obstacles)
        ):
            items.append(
                BreakItem(start_time=_to_time(cursor), end_time=_to_time(cursor + break_minutes))
            )
            consecutive = 0

    return items, pending()


def generate(
    features: FeatureVector,
    constraint_set: ConstraintSet,
    subjects: Sequence[SubjectSpec],
    parameters: GeneratorTuning | None = None,
    break_minutes: int = BREAK_MINUTES,
    generated_at: datetime | None = None,
) -> WeeklySchedule:
    """Build a week-shaped timetable for one child.

    Fixed blocks are copied verbatim onto every day of the week; rotating
    subjects are placed Monday to Friday. Subjects whose weekly quota cannot
    be met are listed in ``metadata.unscheduled_subjects``.
    """
    generation = derive_parameters(features, parameters)
    segments = _day_segments(learning_segments(constraint_set), generation.day_start_hour)

    rotation = [
        _RotationSlot(spec=spec, minutes=spec.session_minutes or generation.block_duration)
        for spec in subjects
        if not spec.is_fixed and spec.sessions_per_week > 0
    ]

    days: list[DaySchedule] = []
    available_minutes = 0
    pointer = 0

    for day_index in range(7):
        day = constraint_set.week_start + timedelta(days=day_index)
        fixed = constraint_set.fixed_blocks_on(day)
        items: list = [_fixed_item(block) for block in fixed]

        if day_index < SCHOOL_DAYS:
            obstacles = [(block.start_minutes, block.end_minutes) for block in fixed]
            available_minutes += _free_minutes(segments, obstacles)
            if rotation:
                placed, carried = _fill_day(
                    day_index,
                    segments,
                    obstacles,
                    rotation,
                    pointer,
                    generation,
                    break_minutes,
                )
                items.extend(placed)
                if carried:
                    pointer = rotation.index(carried[0])
                else:
                    pointer = (day_index + 1) % len(rotation)

        items.sort(key=lambda item: (item.start_time, item.end_time))
        days.append(DaySchedule(day=day, items=items))

    required_minutes = sum(slot.minutes * slot.spec.sessions_per_week for slot in rotation)
    unscheduled = [
        UnscheduledSubject(
            subject_id=slot.spec.subject_id,
            name=slot.spec.name,
            missing_sessions=slot.remaining,
            missing_minutes=slot.remaining * slot.minutes,
        )
        for slot in rotation
        if slot.remaining > 0
    ]
    capacity_exceeded = required_minutes > available_minutes

    if capacity_exceeded or unscheduled:
        logger.warning(
            f"Child {constraint_set.child_id} week {constraint_set.week_start}: "
            f"{required_minutes} minutes required, {available_minutes} available; "
            f"unscheduled: {[subject.name for subject in unscheduled]}"
        )

    return WeeklySchedule(
        child_id=constraint_set.child_id,
        week_start=constraint_set.week_start,
        generated_at=generated_at or datetime.now(timezone.utc),
        generation_method=GENERATION_METHOD,
        days=days,
        metadata=ScheduleMetadata(
            parameters=generation,
            unscheduled_subjects=unscheduled,
            capacity_exceeded=capacity_exceeded,
            required_minutes=required_minutes,
            available_minutes=available_minutes,
            low_confidence_clusters=list(features.low_confidence_clusters),
        ),
    )


def generate_weekly_schedule(
    db: Session, child_id: int, week_start: date, expected_version: int | None = None
) -> Schedule:
    """Generate a schedule for one child/week and make it the active one.

    Raises ConstraintConflict before anything is written when fixed
    commitments overlap, and ConcurrentRegenerationConflict when another
    regeneration for the same week wins the race.
    """
    child = db.get(Child, child_id)
    if child is None:
        raise NotFound("Child", child_id)
    week_start = week_start_for(week_start)

    preferences = current_preferences(db, child.family_id)
    if preferences is None:
        logger.warning(f"Family {child.family_id} has no questionnaire; using neutral defaults")
    features = derive_features(responses_for(preferences), age=child.age)

    constraint_set = collect(db, child.id, week_start)

    active_model = evaluator_service.get_active_model(db)
    tuning = evaluator_service.tuning_for(active_model)

    plan = generate(
        features,
        constraint_set,
        constraint_set.subject_requirements,
        parameters=tuning,
        break_minutes=get_settings().break_minutes,
    )
    return schedule_store.activate_schedule(
        db,
        plan,
        evaluator_model_id=active_model.id if active_model else None,
        expected_version=expected_version,
    )
