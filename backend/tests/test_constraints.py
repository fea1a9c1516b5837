from datetime import date, time

import pytest

from brightpath.core.errors import ConstraintConflict, NotFound
from brightpath.models.child import Child
from brightpath.models.commitment import Commitment, Recurrence
from brightpath.models.subject import Subject, SubjectFrequency
from brightpath.services.constraints import (
    build_constraint_set,
    collect,
    expand_commitments,
    week_start_for,
)

from conftest import WEEK


def _child() -> Child:
    return Child(
        id=1,
        family_id=1,
        name="Leo",
        age=8,
        best_learning_times=["morning"],
        homeschool_start=time(9, 0),
        homeschool_end=time(14, 0),
    )


def _commitment(id: int, name: str, **kwargs) -> Commitment:
    kwargs.setdefault("recurrence", Recurrence.WEEKLY)
    return Commitment(id=id, family_id=1, name=name, **kwargs)


def test_week_start_for_returns_monday():
    assert week_start_for(date(2026, 10, 22)) == WEEK
    assert week_start_for(WEEK) == WEEK
    assert week_start_for(date(2026, 10, 25)) == WEEK


def test_commitment_outside_homeschool_window_is_kept_without_conflict():
    soccer = _commitment(
        1, "Soccer", days_of_week=[1, 3], start_time=time(16, 0), end_time=time(17, 0)
    )
    constraint_set = build_constraint_set(_child(), [soccer], [], WEEK)

    assert [block.day for block in constraint_set.fixed_blocks] == [
        date(2026, 10, 20),
        date(2026, 10, 22),
    ]
    assert all(block.label == "Soccer" for block in constraint_set.fixed_blocks)


def test_overlapping_commitments_raise_conflict():
    piano = _commitment(
        1, "Piano", days_of_week=[0], start_time=time(15, 0), end_time=time(16, 0)
    )
    doctor = _commitment(
        2,
        "Doctor",
        recurrence=Recurrence.ONE_TIME,
        starts_on=WEEK,
        start_time=time(15, 30),
        end_time=time(16, 30),
    )

    with pytest.raises(ConstraintConflict) as excinfo:
        build_constraint_set(_child(), [piano, doctor], [], WEEK)

    (first, second), = excinfo.value.conflicts
    assert {first.label, second.label} == {"Piano", "Doctor"}
    assert first.day == WEEK
    detail = excinfo.value.to_detail()
    assert detail[0]["day"] == "2026-10-19"


def test_touching_blocks_do_not_conflict():
    first = _commitment(
        1, "Art", days_of_week=[2], start_time=time(10, 0), end_time=time(11, 0)
    )
    second = _commitment(
        2, "Swim", days_of_week=[2], start_time=time(11, 0), end_time=time(12, 0)
    )
    constraint_set = build_constraint_set(_child(), [first, second], [], WEEK)
    assert len(constraint_set.fixed_blocks) == 2


def test_recurrence_expansion():
    commitments = [
        _commitment(
            1,
            "Co-op",
            recurrence=Recurrence.MONTHLY,
            starts_on=date(2026, 9, 23),
            start_time=time(15, 0),
            end_time=time(16, 0),
        ),
        _commitment(
            2, "Chores", recurrence=Recurrence.DAILY, start_time=time(7, 0), end_time=time(7, 30)
        ),
        _commitment(
            3,
            "Dentist",
            recurrence=Recurrence.ONE_TIME,
            starts_on=date(2026, 11, 2),
            start_time=time(9, 0),
            end_time=time(10, 0),
        ),
        _commitment(
            4,
            "Old class",
            days_of_week=[0],
            ends_on=date(2026, 10, 1),
            start_time=time(12, 0),
            end_time=time(13, 0),
        ),
    ]
    intervals = expand_commitments(commitments, WEEK)
    by_label: dict[str, list[date]] = {}
    for interval in intervals:
        by_label.setdefault(interval.label, []).append(interval.day)

    assert by_label["Co-op"] == [date(2026, 10, 23)]
    assert len(by_label["Chores"]) == 7
    assert "Dentist" not in by_label
    assert "Old class" not in by_label


def test_fixed_time_subjects_become_fixed_blocks():
    music = Subject(
        id=7,
        child_id=1,
        name="Music",
        session_minutes=30,
        frequency=SubjectFrequency.TWO_TO_THREE_PER_WEEK,
        fixed_start_time=time(13, 0),
        is_active=True,
    )
    constraint_set = build_constraint_set(_child(), [], [music], WEEK)

    assert [block.day.weekday() for block in constraint_set.fixed_blocks] == [0, 2, 4]
    assert all(block.end_time == time(13, 30) for block in constraint_set.fixed_blocks)
    (spec,) = constraint_set.subject_requirements
    assert spec.is_fixed
    assert spec.sessions_per_week == 3


def test_fixed_subject_colliding_with_commitment_is_a_conflict():
    music = Subject(
        id=7,
        child_id=1,
        name="Music",
        session_minutes=30,
        frequency=SubjectFrequency.WEEKLY,
        fixed_start_time=time(10, 0),
        fixed_days=[0],
        is_active=True,
    )
    piano = _commitment(
        1, "Piano", days_of_week=[0], start_time=time(10, 15), end_time=time(11, 0)
    )
    with pytest.raises(ConstraintConflict):
        build_constraint_set(_child(), [piano], [music], WEEK)


def test_collect_loads_family_and_child_commitments(db_session, child):
    db_session.add_all(
        [
            Commitment(
                family_id=child.family_id,
                name="Family dinner",
                recurrence=Recurrence.DAILY,
                start_time=time(18, 0),
                end_time=time(19, 0),
            ),
            Commitment(
                family_id=child.family_id,
                child_id=child.id,
                name="Soccer",
                recurrence=Recurrence.WEEKLY,
                days_of_week=[1, 3],
                start_time=time(16, 0),
                end_time=time(17, 0),
            ),
        ]
    )
    db_session.commit()

    constraint_set = collect(db_session, child.id, date(2026, 10, 21))

    assert constraint_set.week_start == WEEK
    labels = [block.label for block in constraint_set.fixed_blocks]
    assert labels.count("Family dinner") == 7
    assert labels.count("Soccer") == 2
    assert [spec.name for spec in constraint_set.subject_requirements] == ["Math", "Reading"]


def test_collect_unknown_child(db_session):
    with pytest.raises(NotFound):
        collect(db_session, 999, WEEK)
