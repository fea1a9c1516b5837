"""Reward model scoring (schedule, feedback) pairs.

The model is a ridge regression constrained to non-negative coefficients.
Structural schedule features enter the design twice, as ``x`` and ``1 - x``,
so they can still pull the score either way, while feedback features enter
only in their "higher is better" orientation. With non-negative weights the
score can therefore never decrease when the star rating goes up.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Sequence

import numpy as np
from sklearn.linear_model import Ridge
from sklearn.metrics import mean_absolute_error, r2_score
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from brightpath.core.config import get_settings
from brightpath.core.errors import NotFound, RetrainingFailure
from brightpath.models.evaluator_model import EvaluatorModel
from brightpath.models.feedback import Feedback
from brightpath.schemas.evaluator import GeneratorTuning, TuningSignals
from brightpath.schemas.feedback import LIKERT_KEYS
from brightpath.schemas.schedule import WeeklySchedule
from brightpath.services.schedule_store import load_document

logger = logging.getLogger(__name__)

STRUCTURAL_FEATURES = ("avg_block_duration", "blocks_per_day", "avg_start_time")
FEEDBACK_FEATURES = (
    ("star_rating",)
    + tuple(f"likert_{key}" for key in LIKERT_KEYS)
    + ("not_time_shifted", "not_reordered", "not_removed")
)
BASE_FEATURES = STRUCTURAL_FEATURES + FEEDBACK_FEATURES
DESIGN_FEATURES = (
    tuple(f"{name}" for name in STRUCTURAL_FEATURES)
    + tuple(f"{name}_inverse" for name in STRUCTURAL_FEATURES)
    + FEEDBACK_FEATURES
)

RATING_WEIGHT = 0.6
COMPLETION_WEIGHT = 0.4

# Used until a model has been trained.
PRIOR_WEIGHTS: dict[str, float] = {
    "star_rating": 0.6,
    **{f"likert_{key}": 0.05 for key in LIKERT_KEYS},
    "not_time_shifted": 0.05,
    "not_reordered": 0.05,
    "not_removed": 0.05,
}


@dataclass
class TrainingSample:
    schedule: WeeklySchedule
    feedback: Any
    completion_rate: float | None = None


def _minutes(value) -> int:
    return value.hour * 60 + value.minute


def structural_features(schedule: WeeklySchedule) -> list[float]:
    school_days = [day for day in schedule.days if day.day.weekday() < 5]
    blocks = [item for day in school_days for item in day.subject_items]
    if not blocks:
        return [0.0, 0.0, 0.5]

    avg_duration = sum(item.duration_minutes for item in blocks) / len(blocks)
    blocks_per_day = len(blocks) / max(1, len(school_days))
    first_starts = [
        min(_minutes(item.start_time) for item in day.subject_items)
        for day in school_days
        if day.subject_items
    ]
    avg_start = sum(first_starts) / len(first_starts)

    return [
        min(1.0, avg_duration / 90),
        min(1.0, blocks_per_day / 8),
        min(1.0, max(0.0, (avg_start - 6 * 60) / (12 * 60))),
    ]


def _value(feedback: Any, name: str, default: Any = None) -> Any:
    if isinstance(feedback, dict):
        return feedback.get(name, default)
    return getattr(feedback, name, default)


def feedback_features(feedback: Any) -> list[float]:
    rating = _value(feedback, "star_rating")
    if rating is None or not 1 <= rating <= 5:
        raise ValueError(f"star_rating must be between 1 and 5, got {rating!r}")
    likert = _value(feedback, "likert_ratings") or {}

    values = [(rating - 1) / 4]
    for key in LIKERT_KEYS:
        answer = likert.get(key)
        values.append(0.5 if answer is None else (min(5, max(1, answer)) - 1) / 4)
    values.extend(
        [
            0.0 if _value(feedback, "time_shifted", False) else 1.0,
            0.0 if _value(feedback, "reordered", False) else 1.0,
            0.0 if _value(feedback, "removed", False) else 1.0,
        ]
    )
    return values


def extract_features(schedule: WeeklySchedule, feedback: Any) -> list[float]:
    """Base feature vector in BASE_FEATURES order."""
    return structural_features(schedule) + feedback_features(feedback)


def design_row(schedule: WeeklySchedule, feedback: Any) -> np.ndarray:
    structural = structural_features(schedule)
    row = structural + [1.0 - value for value in structural] + feedback_features(feedback)
    return np.asarray(row, dtype=float)


def prior_parameters() -> dict[str, Any]:
    return {
        "feature_names": list(DESIGN_FEATURES),
        "coefficients": [PRIOR_WEIGHTS.get(name, 0.0) for name in DESIGN_FEATURES],
        "intercept": 0.0,
    }


def score(
    schedule: WeeklySchedule,
    feedback: Any,
    model: EvaluatorModel | None = None,
) -> float:
    """Quality estimate in [0, 1] for one schedule and one feedback record."""
    parameters = model.parameters if model is not None else prior_parameters()
    if list(parameters.get("feature_names", [])) != list(DESIGN_FEATURES):
        logger.warning("Evaluator parameters use an unknown feature layout; using prior")
        parameters = prior_parameters()

    coefficients = np.asarray(parameters["coefficients"], dtype=float)
    raw = float(design_row(schedule, feedback) @ coefficients + parameters["intercept"])
    return min(1.0, max(0.0, raw))


def training_target(sample: TrainingSample) -> float:
    rating = (_value(sample.feedback, "star_rating") - 1) / 4
    if sample.completion_rate is None:
        return rating
    return RATING_WEIGHT * rating + COMPLETION_WEIGHT * sample.completion_rate


def _feature_importance(coefficients: np.ndarray) -> dict[str, float]:
    n_structural = len(STRUCTURAL_FEATURES)
    weights: dict[str, float] = {}
    for idx, name in enumerate(STRUCTURAL_FEATURES):
        weights[name] = abs(coefficients[idx]) + abs(coefficients[idx + n_structural])
    for idx, name in enumerate(FEEDBACK_FEATURES):
        weights[name] = abs(coefficients[2 * n_structural + idx])
    total = sum(weights.values())
    if total == 0:
        return {name: 0.0 for name in weights}
    return {name: round(value / total, 4) for name, value in weights.items()}


def train(
    history: Sequence[TrainingSample],
    checkpoint: Callable[[], None] | None = None,
    alpha: float | None = None,
    min_samples: int | None = None,
) -> EvaluatorModel:
    """Fit a new evaluator over the full feedback history.

    Returns an unsaved EvaluatorModel; persisting and activating it is the
    caller's job. Raises RetrainingFailure for malformed or insufficient data.
    """
    settings = get_settings()
    alpha = settings.ridge_alpha if alpha is None else alpha
    min_samples = settings.min_training_samples if min_samples is None else min_samples

    rows: list[np.ndarray] = []
    targets: list[float] = []
    skipped = 0
    for sample in history:
        try:
            row = design_row(sample.schedule, sample.feedback)
            target = training_target(sample)
        except (TypeError, ValueError) as exc:
            skipped += 1
            logger.warning(f"Skipping malformed training sample: {exc}")
            continue
        if not np.all(np.isfinite(row)) or not math.isfinite(target):
            skipped += 1
            continue
        rows.append(row)
        targets.append(min(1.0, max(0.0, target)))

    if checkpoint:
        checkpoint()

    if len(rows) < min_samples:
        raise RetrainingFailure(
            f"Need at least {min_samples} well-formed feedback samples, got {len(rows)}"
            f" ({skipped} malformed)"
        )

    X = np.vstack(rows)
    y = np.asarray(targets, dtype=float)

    regressor = Ridge(alpha=alpha, positive=True)
    try:
        regressor.fit(X, y)
    except ValueError as exc:
        raise RetrainingFailure(f"Evaluator fit failed: {exc}") from exc

    if checkpoint:
        checkpoint()

    predictions = np.clip(regressor.predict(X), 0.0, 1.0)
    metrics = {
        "mae": round(float(mean_absolute_error(y, predictions)), 4),
        "samples": float(len(rows)),
        "skipped": float(skipped),
    }
    if len(rows) > 1 and float(np.var(y)) > 0:
        metrics["r2"] = round(float(r2_score(y, predictions)), 4)

    coefficients = np.asarray(regressor.coef_, dtype=float)
    return EvaluatorModel(
        parameters={
            "feature_names": list(DESIGN_FEATURES),
            "coefficients": [float(value) for value in coefficients],
            "intercept": float(regressor.intercept_),
        },
        feature_importance=_feature_importance(coefficients),
        metrics=metrics,
        training_samples=len(rows),
        is_active=False,
    )


def tune_generator_parameters(
    current: GeneratorTuning, signals: TuningSignals, learning_rate: float = 0.5
) -> GeneratorTuning:
    """Nudge generator tuning toward what families actually do.

    Blocks that are consistently finished early or late rescale
    ``block_scale``; items consistently moved later push the start-hour
    thresholds up so fewer children get the earliest start.
    """
    data = current.model_dump()

    if signals.duration_ratio is not None and signals.completion_count > 0:
        scale = current.block_scale * (1 + learning_rate * (signals.duration_ratio - 1))
        data["block_scale"] = round(min(1.5, max(0.5, scale)), 3)

    shift = signals.mean_reschedule_shift_minutes
    if shift is not None and signals.reschedule_count > 0 and abs(shift) >= 30:
        step = 0.05 if shift > 0 else -0.05
        data["early_start_threshold"] = round(
            min(1.0, max(0.0, current.early_start_threshold + step)), 3
        )
        data["mid_start_threshold"] = round(
            min(data["early_start_threshold"], max(0.0, current.mid_start_threshold + step)), 3
        )

    return GeneratorTuning(**data)


def get_active_model(db: Session) -> EvaluatorModel | None:
    return db.query(EvaluatorModel).filter(EvaluatorModel.is_active.is_(True)).one_or_none()


def tuning_for(model: EvaluatorModel | None) -> GeneratorTuning:
    if model is None or not model.generator_parameters:
        return GeneratorTuning()
    return GeneratorTuning(**model.generator_parameters)


def next_version(db: Session) -> int:
    latest = db.query(EvaluatorModel).order_by(EvaluatorModel.version.desc()).first()
    return (latest.version if latest else 0) + 1


def activate_model(db: Session, model_id: int) -> EvaluatorModel:
    """Make one retained version the only active evaluator.

    The previous active row is swapped out with a conditional update, so two
    concurrent activations cannot both succeed.
    """
    model = db.get(EvaluatorModel, model_id)
    if model is None:
        raise NotFound("EvaluatorModel", model_id)
    current = get_active_model(db)
    if current is not None and current.id == model.id:
        return model
    if current is not None:
        swapped = (
            db.query(EvaluatorModel)
            .filter(EvaluatorModel.id == current.id, EvaluatorModel.is_active.is_(True))
            .update({EvaluatorModel.is_active: False}, synchronize_session="fetch")
        )
        if swapped != 1:
            db.rollback()
            raise RetrainingFailure("Active evaluator changed during activation")
    model.is_active = True
    model.activated_at = datetime.utcnow()
    db.add(model)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise RetrainingFailure("Active evaluator changed during activation") from exc
    db.refresh(model)
    logger.info(f"Evaluator model v{model.version} is now active")
    return model


def score_feedback_record(db: Session, feedback: Feedback) -> float:
    model = get_active_model(db)
    value = score(load_document(feedback.schedule), feedback, model)
    feedback.score = value
    feedback.scored_by_model_id = model.id if model else None
    feedback.scored_at = datetime.utcnow()
    db.add(feedback)
    db.commit()
    return value
