"""Periodic evaluator retraining.

Retraining runs off the request path. A failed or cancelled run never
touches the active model: the new version is only activated once training
and tuning have both finished.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from brightpath.core.config import get_settings
from brightpath.core.errors import RetrainingCancelled, RetrainingFailure
from brightpath.db.session import SessionLocal
from brightpath.models.activity_log import ActivityEvent, ActivityLog
from brightpath.models.evaluator_model import EvaluatorModel
from brightpath.models.feedback import Feedback
from brightpath.models.schedule import ItemStatus, ItemType
from brightpath.schemas.evaluator import TuningSignals
from brightpath.services import evaluator as evaluator_service
from brightpath.services.evaluator import TrainingSample
from brightpath.services.schedule_store import load_document

logger = logging.getLogger(__name__)


class RetrainJob:
    """Cooperative cancellation and timeout token for one retraining run."""

    def __init__(self, timeout_seconds: float | None = None) -> None:
        self._cancelled = threading.Event()
        self.deadline = (
            time.monotonic() + timeout_seconds if timeout_seconds is not None else None
        )

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def check(self) -> None:
        if self.cancelled:
            raise RetrainingCancelled("Retraining was cancelled")
        if self.deadline is not None and time.monotonic() > self.deadline:
            raise RetrainingCancelled("Retraining timed out")


def _completion_rate(schedule) -> float | None:
    if not schedule.activity_logs:
        return None
    items = [
        item for item in schedule.items
        if item.item_type == ItemType.SUBJECT and item.status != ItemStatus.SUPERSEDED
    ]
    if not items:
        return None
    completed = sum(1 for item in items if item.status == ItemStatus.COMPLETED)
    return completed / len(items)


def build_training_history(db: Session) -> list[TrainingSample]:
    history: list[TrainingSample] = []
    for feedback in db.query(Feedback).order_by(Feedback.id.asc()).all():
        try:
            document = load_document(feedback.schedule)
        except ValueError as exc:
            logger.warning(f"Schedule {feedback.schedule_id} has an unreadable document: {exc}")
            continue
        history.append(
            TrainingSample(
                schedule=document,
                feedback=feedback,
                completion_rate=_completion_rate(feedback.schedule),
            )
        )
    return history


def _minutes(value) -> int:
    return value.hour * 60 + value.minute


def tuning_signals(db: Session) -> TuningSignals:
    scheduled = 0
    actual = 0
    completions = 0
    shifts: list[int] = []

    for log in db.query(ActivityLog).all():
        if log.event == ActivityEvent.COMPLETED and log.actual_minutes is not None:
            planned = _minutes(log.scheduled_end) - _minutes(log.scheduled_start)
            if planned > 0:
                scheduled += planned
                actual += log.actual_minutes
                completions += 1
        elif log.event == ActivityEvent.RESCHEDULED and log.new_start is not None:
            shifts.append(_minutes(log.new_start) - _minutes(log.scheduled_start))

    return TuningSignals(
        duration_ratio=actual / scheduled if scheduled else None,
        mean_reschedule_shift_minutes=sum(shifts) / len(shifts) if shifts else None,
        reschedule_count=len(shifts),
        completion_count=completions,
    )


def retrain(db: Session, job: RetrainJob | None = None) -> EvaluatorModel | None:
    """Train, tune and activate a new evaluator version.

    Returns the newly active model, or None when the run failed and the
    previous model was kept.
    """
    settings = get_settings()
    job = job or RetrainJob(settings.retrain_timeout_seconds)

    previous = evaluator_service.get_active_model(db)
    previous_label = f"v{previous.version}" if previous else "prior weights"

    try:
        job.check()
        history = build_training_history(db)
        job.check()

        model = evaluator_service.train(history, checkpoint=job.check)
        tuning = evaluator_service.tune_generator_parameters(
            evaluator_service.tuning_for(previous), tuning_signals(db)
        )
        model.generator_parameters = tuning.model_dump()
        model.version = evaluator_service.next_version(db)
        job.check()

        db.add(model)
        db.flush()
        activated = evaluator_service.activate_model(db, model.id)
    except (RetrainingFailure, SQLAlchemyError) as exc:
        db.rollback()
        logger.error(f"Evaluator retraining failed, keeping {previous_label}: {exc}")
        return None

    logger.info(
        f"Evaluator retrained: v{activated.version} from {activated.training_samples} samples "
        f"(metrics {activated.metrics})"
    )
    return activated


def retrain_due(db: Session, now: datetime | None = None) -> bool:
    active = evaluator_service.get_active_model(db)
    if active is None:
        return True
    now = now or datetime.utcnow()
    reference = active.activated_at or active.created_at
    return now - reference >= timedelta(days=get_settings().retrain_interval_days)


def run_retraining(timeout_seconds: float | None = None) -> None:
    """Background entry point with its own session."""
    settings = get_settings()
    job = RetrainJob(timeout_seconds or settings.retrain_timeout_seconds)
    with SessionLocal() as session:
        retrain(session, job)
