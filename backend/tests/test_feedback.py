from datetime import date, datetime, time, timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from brightpath.core.errors import (
    InvalidScheduleTransition,
    RetrainingCancelled,
    ScheduleItemConflict,
)
from brightpath.models.activity_log import ActivityEvent, ActivityLog
from brightpath.models.evaluator_model import EvaluatorModel
from brightpath.models.feedback import Feedback
from brightpath.models.schedule import ItemStatus, ItemType, ScheduleStatus
from brightpath.schemas.feedback import FeedbackCreate
from brightpath.schemas.schedule import ItemCompletion, ItemReschedule
from brightpath.services import evaluator, feedback, retraining
from brightpath.services.retraining import RetrainJob
from brightpath.services.scheduling import generate_weekly_schedule

from conftest import WEEK


@pytest.fixture()
def schedule(db_session, child):
    return generate_weekly_schedule(db_session, child.id, WEEK)


def _subject_items(schedule, day=WEEK):
    return [
        item for item in schedule.items
        if item.item_type == ItemType.SUBJECT and item.day == day
    ]


def test_complete_and_skip_append_activity(db_session, schedule):
    first, second = _subject_items(schedule)[:2]

    log = feedback.complete_item(db_session, first.id, ItemCompletion(actual_minutes=25))
    assert log.event == ActivityEvent.COMPLETED
    assert log.actual_minutes == 25
    assert first.status == ItemStatus.COMPLETED

    feedback.skip_item(db_session, second.id)
    assert second.status == ItemStatus.SKIPPED
    assert db_session.query(ActivityLog).count() == 2

    with pytest.raises(ScheduleItemConflict):
        feedback.skip_item(db_session, first.id)


def test_reschedule_supersedes_instead_of_editing(db_session, schedule):
    item = _subject_items(schedule)[0]
    original_start = item.start_time
    tuesday = WEEK + timedelta(days=1)

    log = feedback.reschedule_item(
        db_session,
        item.id,
        ItemReschedule(day=tuesday, start_time=time(13, 0), end_time=time(13, 30)),
    )

    db_session.refresh(item)
    assert item.status == ItemStatus.SUPERSEDED
    assert item.start_time == original_start
    replacement = db_session.get(type(item), log.new_item_id)
    assert replacement.replaces_item_id == item.id
    assert replacement.day == tuesday
    assert replacement.status == ItemStatus.PENDING
    assert log.event == ActivityEvent.RESCHEDULED
    assert log.scheduled_start == original_start


def test_reschedule_rejects_overlaps(db_session, schedule):
    first, second = _subject_items(schedule)[:2]

    with pytest.raises(ScheduleItemConflict):
        feedback.reschedule_item(
            db_session,
            first.id,
            ItemReschedule(day=second.day, start_time=second.start_time, end_time=second.end_time),
        )
    assert db_session.query(ActivityLog).count() == 0


def test_reschedule_rejects_days_outside_the_week(db_session, schedule):
    item = _subject_items(schedule)[0]
    with pytest.raises(ScheduleItemConflict):
        feedback.reschedule_item(
            db_session,
            item.id,
            ItemReschedule(day=WEEK + timedelta(days=9), start_time=time(13), end_time=time(13, 30)),
        )


def test_ingest_ors_explicit_and_derived_flags(db_session, schedule):
    item = _subject_items(schedule)[0]
    feedback.skip_item(db_session, item.id)

    record = feedback.ingest(
        db_session, schedule.id, FeedbackCreate(star_rating=4, time_shifted=True)
    )

    assert record.removed is True
    assert record.time_shifted is True
    assert record.reordered is False
    assert record.score is None


def test_ingest_rejects_generated_schedule(db_session, schedule):
    schedule.status = ScheduleStatus.GENERATED
    db_session.commit()

    with pytest.raises(InvalidScheduleTransition):
        feedback.ingest(db_session, schedule.id, FeedbackCreate(star_rating=3))


def test_score_feedback_uses_its_own_session(engine, db_session, schedule, monkeypatch):
    record = feedback.ingest(db_session, schedule.id, FeedbackCreate(star_rating=5))
    monkeypatch.setattr(feedback, "SessionLocal", sessionmaker(bind=engine))

    feedback.score_feedback(record.id)

    db_session.refresh(record)
    assert record.score is not None
    assert 0.0 <= record.score <= 1.0
    assert record.scored_at is not None


def _seed_feedback(db_session, schedule, ratings):
    for rating in ratings:
        db_session.add(
            Feedback(
                schedule_id=schedule.id,
                star_rating=rating,
                likert_ratings={"pacing": rating},
            )
        )
    db_session.commit()


def test_retrain_failure_keeps_previous_model(db_session, schedule):
    previous = EvaluatorModel(
        version=1, parameters=evaluator.prior_parameters(), generator_parameters={}
    )
    db_session.add(previous)
    db_session.commit()
    evaluator.activate_model(db_session, previous.id)

    _seed_feedback(db_session, schedule, [4, 5])

    assert retraining.retrain(db_session, RetrainJob()) is None
    assert evaluator.get_active_model(db_session).id == previous.id
    assert db_session.query(EvaluatorModel).count() == 1


def test_retrain_activates_new_version(db_session, schedule):
    item = _subject_items(schedule)[0]
    feedback.complete_item(db_session, item.id, ItemCompletion(actual_minutes=20))
    _seed_feedback(db_session, schedule, [1, 2, 3, 4, 5, 4])

    model = retraining.retrain(db_session, RetrainJob())

    assert model is not None
    assert model.is_active
    assert model.version == 1
    assert model.training_samples == 6
    # Observed sessions ran shorter than planned.
    assert model.generator_parameters["block_scale"] < 1.0
    assert evaluator.get_active_model(db_session).id == model.id


def test_cancelled_retrain_changes_nothing(db_session, schedule):
    _seed_feedback(db_session, schedule, [1, 2, 3, 4, 5])
    job = RetrainJob()
    job.cancel()

    assert retraining.retrain(db_session, job) is None
    assert evaluator.get_active_model(db_session) is None
    with pytest.raises(RetrainingCancelled):
        job.check()


def test_expired_job_times_out():
    job = RetrainJob(timeout_seconds=0.0)
    job.deadline -= 1
    with pytest.raises(RetrainingCancelled):
        job.check()


def test_rollback_to_retained_version(db_session, schedule):
    _seed_feedback(db_session, schedule, [1, 2, 3, 4, 5])
    first = retraining.retrain(db_session, RetrainJob())
    second = retraining.retrain(db_session, RetrainJob())
    assert second.version == 2

    evaluator.activate_model(db_session, first.id)

    db_session.refresh(second)
    assert evaluator.get_active_model(db_session).version == 1
    assert second.is_active is False


def test_retrain_due(db_session):
    assert retraining.retrain_due(db_session)

    model = EvaluatorModel(version=1, parameters=evaluator.prior_parameters())
    db_session.add(model)
    db_session.commit()
    activated = evaluator.activate_model(db_session, model.id)

    assert not retraining.retrain_due(db_session, activated.activated_at + timedelta(days=1))
    assert retraining.retrain_due(db_session, activated.activated_at + timedelta(days=8))


def test_generation_uses_active_tuning(db_session, child):
    model = EvaluatorModel(
        version=1,
        parameters=evaluator.prior_parameters(),
        generator_parameters={"early_start_threshold": 0.0, "mid_start_threshold": 0.0},
    )
    db_session.add(model)
    db_session.commit()
    evaluator.activate_model(db_session, model.id)

    schedule = generate_weekly_schedule(db_session, child.id, date(2026, 11, 2))

    assert schedule.evaluator_model_id == model.id
    assert schedule.schedule_data["metadata"]["parameters"]["day_start_hour"] == 8
    assert isinstance(schedule.generated_at, datetime)
