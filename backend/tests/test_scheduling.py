from datetime import date, time, timedelta

import pytest

from brightpath.models.child import DayPart
from brightpath.models.schedule import ItemType, ScheduleStatus
from brightpath.models.subject import SubjectFrequency
from brightpath.schemas.constraint import ConstraintSet, SubjectSpec, TimeInterval
from brightpath.schemas.evaluator import GeneratorTuning
from brightpath.schemas.schedule import BreakItem, CommitmentItem, SubjectItem
from brightpath.services.preferences import derive_features
from brightpath.services.scheduling import (
    derive_parameters,
    generate,
    generate_weekly_schedule,
    learning_segments,
)

from conftest import WEEK


def _spec(subject_id: int, name: str, minutes: int | None, frequency=SubjectFrequency.DAILY):
    sessions = {"daily": 5, "2-3_per_week": 3, "weekly": 1, "occasional": 1}[frequency.value]
    return SubjectSpec(
        subject_id=subject_id,
        name=name,
        session_minutes=minutes,
        frequency=frequency,
        sessions_per_week=sessions,
    )


def _constraints(subjects, fixed_blocks=(), start=time(9, 0), end=time(14, 0), best=()):
    return ConstraintSet(
        child_id=1,
        week_start=WEEK,
        homeschool_start=start,
        homeschool_end=end,
        best_learning_times=list(best),
        fixed_blocks=list(fixed_blocks),
        subject_requirements=list(subjects),
    )


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def _assert_no_overlap(plan):
    for day in plan.days:
        ordered = sorted(day.items, key=lambda item: item.start_time)
        for current, following in zip(ordered, ordered[1:]):
            assert current.end_time <= following.start_time, (day.day, current, following)


def test_structured_six_year_old_gets_two_blocks_and_a_break():
    features = derive_features({"flexibility_level": "strictly_structured"}, age=6)
    subjects = [_spec(1, "Math", 30), _spec(2, "Reading", 45)]

    plan = generate(features, _constraints(subjects), subjects)

    assert plan.metadata.parameters.day_start_hour == 8
    assert not plan.metadata.capacity_exceeded
    assert plan.metadata.unscheduled_subjects == []
    _assert_no_overlap(plan)

    for day in plan.days[:5]:
        subject_items = day.subject_items
        breaks = [item for item in day.items if isinstance(item, BreakItem)]
        assert sorted(item.title for item in subject_items) == ["Math", "Reading"]
        assert len(breaks) == 1
        assert all(time(9, 0) <= item.start_time for item in day.items)
        assert all(item.end_time <= time(14, 0) for item in day.items)
        durations = {item.title: item.duration_minutes for item in subject_items}
        assert durations == {"Math": 30, "Reading": 45}

    assert all(day.items == [] for day in plan.days[5:])


def test_rotation_changes_first_subject_each_day():
    features = derive_features({}, age=9)
    subjects = [_spec(1, "Math", 30), _spec(2, "Reading", 30), _spec(3, "Science", 30)]

    plan = generate(features, _constraints(subjects), subjects)

    first_subjects = [day.subject_items[0].title for day in plan.days[:5]]
    assert first_subjects[:3] == ["Math", "Reading", "Science"]


def test_fixed_blocks_are_copied_verbatim():
    features = derive_features({}, age=8)
    subjects = [_spec(1, "Math", 45), _spec(2, "Reading", 45), _spec(3, "Writing", 30)]
    co_op = TimeInterval(
        day=WEEK + timedelta(days=2),
        start_time=time(10, 0),
        end_time=time(11, 30),
        source_id=5,
        label="Co-op",
    )
    saturday_game = TimeInterval(
        day=WEEK + timedelta(days=5),
        start_time=time(9, 0),
        end_time=time(10, 0),
        source_id=6,
        label="Game",
    )

    plan = generate(features, _constraints(subjects, [co_op, saturday_game]), subjects)

    wednesday = plan.day(co_op.day)
    commitments = [item for item in wednesday.items if isinstance(item, CommitmentItem)]
    assert [(c.start_time, c.end_time, c.title) for c in commitments] == [
        (time(10, 0), time(11, 30), "Co-op")
    ]
    saturday = plan.day(saturday_game.day)
    assert len(saturday.items) == 1
    assert saturday.items[0].title == "Game"
    _assert_no_overlap(plan)


def test_capacity_shortfall_is_reported_not_dropped():
    features = derive_features({}, age=10)
    subjects = [_spec(i, f"Subject {i}", 60) for i in range(1, 6)]

    plan = generate(features, _constraints(subjects, end=time(11, 0)), subjects)

    assert plan.metadata.capacity_exceeded
    assert plan.metadata.required_minutes == 5 * 5 * 60
    unscheduled = plan.metadata.unscheduled_subjects
    assert unscheduled
    placed = sum(len(day.subject_items) for day in plan.days)
    missing = sum(subject.missing_sessions for subject in unscheduled)
    assert placed + missing == 25
    _assert_no_overlap(plan)


def test_weekly_quota_is_spread_over_the_week():
    features = derive_features({}, age=9)
    subjects = [
        _spec(1, "Art", 30, SubjectFrequency.TWO_TO_THREE_PER_WEEK),
        _spec(2, "History", 30, SubjectFrequency.WEEKLY),
    ]

    plan = generate(features, _constraints(subjects), subjects)

    art_days = [day.day for day in plan.days if any(i.title == "Art" for i in day.subject_items)]
    history_days = [
        day.day for day in plan.days if any(i.title == "History" for i in day.subject_items)
    ]
    assert len(art_days) == 3
    assert len(history_days) == 1
    assert all(day.weekday() < 5 for day in art_days + history_days)


def test_learning_segments_clip_to_best_times():
    constraint_set = _constraints(
        [], start=time(8, 0), end=time(15, 0), best=[DayPart.MORNING, DayPart.EARLY_MORNING]
    )
    assert learning_segments(constraint_set) == [(8 * 60, 12 * 60)]

    evening_only = _constraints([], best=[DayPart.EVENING])
    assert learning_segments(evening_only) == [(9 * 60, 14 * 60)]


def test_derive_parameters_follow_tuning():
    features = derive_features({"flexibility_level": "very_flexible"}, age=12)
    default = derive_parameters(features)
    scaled = derive_parameters(features, GeneratorTuning(block_scale=0.5))

    assert default.day_start_hour == 10
    assert scaled.block_duration < default.block_duration
    assert 15 <= scaled.block_duration <= 90
    assert default.breaks_frequency == 4


def test_subjects_without_duration_use_block_duration():
    features = derive_features({}, age=8)
    subjects = [_spec(1, "Math", None)]

    plan = generate(features, _constraints(subjects), subjects)

    block = plan.metadata.parameters.block_duration
    assert all(item.duration_minutes == block for item in plan.days[0].subject_items)


def test_generate_weekly_schedule_persists_active_version(db_session, child):
    schedule = generate_weekly_schedule(db_session, child.id, date(2026, 10, 21))

    assert schedule.week_start_date == WEEK
    assert schedule.status == ScheduleStatus.ACTIVE
    assert schedule.is_active
    assert schedule.version == 1
    subject_rows = [item for item in schedule.items if item.item_type == ItemType.SUBJECT]
    assert len(subject_rows) == 10
    assert schedule.schedule_data["metadata"]["parameters"]["day_start_hour"] in (8, 9, 10)


def test_generation_is_deterministic_for_same_inputs():
    features = derive_features({"rotation_1": 5}, age=7)
    subjects = [_spec(1, "Math", 30), _spec(2, "Reading", 30)]
    constraint_set = _constraints(subjects)

    first = generate(features, constraint_set, subjects, generated_at=None)
    second = generate(features, constraint_set, subjects)

    assert [d.model_dump() for d in first.days] == [d.model_dump() for d in second.days]


@pytest.mark.parametrize("age", [4, 8, 14])
def test_no_overlaps_with_commitments_across_ages(age):
    features = derive_features({}, age=age)
    subjects = [_spec(i, f"S{i}", None) for i in range(1, 5)]
    lunch = [
        TimeInterval(
            day=WEEK + timedelta(days=offset),
            start_time=time(12, 0),
            end_time=time(12, 45),
            label="Lunch",
        )
        for offset in range(5)
    ]

    plan = generate(features, _constraints(subjects, lunch, end=time(15, 0)), subjects)

    _assert_no_overlap(plan)
    for day in plan.days[:5]:
        for item in day.items:
            if isinstance(item, SubjectItem):
                assert not (_minutes(item.start_time) < 12 * 60 + 45 and 12 * 60 < _minutes(item.end_time))
