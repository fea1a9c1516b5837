"""Questionnaire normalization.

Turns raw answers (question id -> 1-5 rating or Likert label) into a
``FeatureVector``. Missing answers never fail: they fall back to the neutral
midpoint and the affected cluster is flagged low-confidence when more than
half of its items are missing.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy.orm import Session

from brightpath.models.family import FamilyPreferences, FlexibilityLevel
from brightpath.schemas.preferences import CLUSTERS, FeatureVector

logger = logging.getLogger(__name__)

NEUTRAL = 3
QUESTIONS_PER_CLUSTER = 5

# question id -> reverse-scored
QUESTION_BANK: dict[str, dict[str, bool]] = {
    "flexibility": {
        "flexibility_1": False,
        "flexibility_2": False,
        "flexibility_3": True,
        "flexibility_4": False,
        "flexibility_5": True,
    },
    "rotation": {
        "rotation_1": False,
        "rotation_2": True,
        "rotation_3": False,
        "rotation_4": False,
        "rotation_5": False,
    },
    "time_management": {
        "time_management_1": False,
        "time_management_2": False,
        "time_management_3": False,
        "time_management_4": True,
        "time_management_5": False,
    },
    "long_term_scheduling": {
        "long_term_scheduling_1": False,
        "long_term_scheduling_2": False,
        "long_term_scheduling_3": True,
        "long_term_scheduling_4": False,
        "long_term_scheduling_5": False,
    },
    "prioritization": {
        "prioritization_1": False,
        "prioritization_2": False,
        "prioritization_3": False,
        "prioritization_4": False,
        "prioritization_5": True,
    },
}

# score name -> {question id: weight}
PHILOSOPHY_QUESTIONS: dict[str, dict[str, float]] = {
    "classical": {"philosophy_1": 1.0, "philosophy_2": 0.5},
    "charlotte_mason": {"philosophy_3": 1.0, "philosophy_4": 0.5},
    "montessori": {"philosophy_5": 1.0, "philosophy_6": 0.5},
    "unschooling": {"philosophy_7": 1.0, "philosophy_8": 0.5},
}

ACTIVITY_QUESTIONS: dict[str, dict[str, float]] = {
    "hands_on": {"activity_1": 1.0, "activity_2": 0.5},
    "reading_aloud": {"activity_3": 1.0, "activity_4": 0.5},
    "outdoor": {"activity_5": 1.0, "activity_6": 0.5},
    "screen_based": {"activity_7": 1.0, "activity_8": 0.5},
}

LIKERT_LABELS = {
    "strongly_disagree": 1,
    "disagree": 2,
    "neutral": 3,
    "agree": 4,
    "strongly_agree": 5,
}

FLEXIBILITY_STRUCTURE = {
    FlexibilityLevel.VERY_FLEXIBLE: 0.0,
    FlexibilityLevel.SOMEWHAT_FLEXIBLE: 0.25,
    FlexibilityLevel.BALANCED: 0.5,
    FlexibilityLevel.SOMEWHAT_STRUCTURED: 0.75,
    FlexibilityLevel.STRICTLY_STRUCTURED: 1.0,
}

STRUCTURE_CLUSTERS = ("flexibility", "time_management", "long_term_scheduling")

MIN_ATTENTION_MINUTES = 15
MAX_ATTENTION_MINUTES = 90
DEFAULT_AGE = 8


def _parse_answer(question_id: str, value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        label = value.strip().lower().replace(" ", "_")
        if label in LIKERT_LABELS:
            return LIKERT_LABELS[label]
        try:
            value = int(label)
        except ValueError:
            logger.warning(f"Unrecognized answer for {question_id}: {value!r}")
            return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and 1 <= value <= 5:
        return value
    logger.warning(f"Out-of-range answer for {question_id}: {value!r}")
    return None


def _parse_flexibility_level(value: Any) -> FlexibilityLevel | None:
    if value is None:
        return None
    if isinstance(value, FlexibilityLevel):
        return value
    try:
        return FlexibilityLevel(str(value).strip().lower())
    except ValueError:
        logger.warning(f"Unrecognized flexibility level: {value!r}")
        return None


def score_cluster(
    cluster: str, raw_responses: Mapping[str, Any]
) -> tuple[float, int]:
    """Return the cluster mean (1-5) and how many of its items were missing."""
    values: list[int] = []
    missing = 0
    for question_id, reverse in QUESTION_BANK[cluster].items():
        answer = _parse_answer(question_id, raw_responses.get(question_id))
        if answer is None:
            missing += 1
            answer = NEUTRAL
        elif reverse:
            answer = 6 - answer
        values.append(answer)
    return sum(values) / len(values), missing


def weighted_scores(
    bank: Mapping[str, Mapping[str, float]], raw_responses: Mapping[str, Any]
) -> dict[str, float]:
    """Weighted mean of the answered items per score, rescaled to 0-1.

    Scores with no answered items are left out.
    """
    scores: dict[str, float] = {}
    for name, questions in bank.items():
        total = 0.0
        weight_sum = 0.0
        for question_id, weight in questions.items():
            answer = _parse_answer(question_id, raw_responses.get(question_id))
            if answer is None:
                continue
            total += weight * (answer - 1) / 4
            weight_sum += weight
        if weight_sum:
            scores[name] = round(total / weight_sum, 4)
    return scores


def preference_scores(
    raw_responses: Mapping[str, Any] | None,
) -> tuple[dict[str, float], dict[str, float]]:
    """Philosophy and activity-preference scores for a questionnaire submission."""
    raw_responses = raw_responses or {}
    return (
        weighted_scores(PHILOSOPHY_QUESTIONS, raw_responses),
        weighted_scores(ACTIVITY_QUESTIONS, raw_responses),
    )


def attention_span_minutes(age: int) -> int:
    # Roughly five minutes of focused work per year of age.
    return max(MIN_ATTENTION_MINUTES, min(MAX_ATTENTION_MINUTES, age * 5))


def derive_features(
    raw_responses: Mapping[str, Any] | None, age: int | None = None
) -> FeatureVector:
    raw_responses = raw_responses or {}
    cluster_scores: dict[str, float] = {}
    low_confidence: list[str] = []

    for cluster in CLUSTERS:
        score, missing = score_cluster(cluster, raw_responses)
        cluster_scores[cluster] = round(score, 4)
        if missing * 2 > QUESTIONS_PER_CLUSTER:
            low_confidence.append(cluster)
        if missing:
            logger.info(
                f"Cluster {cluster}: {missing}/{QUESTIONS_PER_CLUSTER} answers missing, "
                "using neutral defaults"
            )

    if low_confidence:
        logger.warning(f"Low-confidence preference clusters: {', '.join(low_confidence)}")

    questionnaire_structure = (
        (5 - cluster_scores["flexibility"]) / 4
        + (cluster_scores["time_management"] - 1) / 4
        + (cluster_scores["long_term_scheduling"] - 1) / 4
    ) / 3

    flexibility_level = _parse_flexibility_level(raw_responses.get("flexibility_level"))
    if flexibility_level is None:
        structure_level = questionnaire_structure
    elif all(cluster in low_confidence for cluster in STRUCTURE_CLUSTERS):
        structure_level = FLEXIBILITY_STRUCTURE[flexibility_level]
    else:
        structure_level = (questionnaire_structure + FLEXIBILITY_STRUCTURE[flexibility_level]) / 2

    if age is None:
        logger.warning(f"Child age missing, assuming {DEFAULT_AGE}")
        age = DEFAULT_AGE

    span = attention_span_minutes(age)
    attention_span = (span - MIN_ATTENTION_MINUTES) / (MAX_ATTENTION_MINUTES - MIN_ATTENTION_MINUTES)

    return FeatureVector(
        cluster_scores=cluster_scores,
        low_confidence_clusters=low_confidence,
        structure_level=round(min(1.0, max(0.0, structure_level)), 4),
        rotation_preference=round((cluster_scores["rotation"] - 1) / 4, 4),
        age=age,
        attention_span=round(attention_span, 4),
        flexibility_level=flexibility_level,
    )


def responses_for(preferences: Any) -> dict[str, Any]:
    """Merge a FamilyPreferences row into the raw-response mapping."""
    if preferences is None:
        return {}
    responses = dict(preferences.raw_responses or {})
    if preferences.flexibility_level is not None:
        responses.setdefault("flexibility_level", preferences.flexibility_level.value)
    return responses


def current_preferences(db: Session, family_id: int) -> FamilyPreferences | None:
    return (
        db.query(FamilyPreferences)
        .filter(
            FamilyPreferences.family_id == family_id,
            FamilyPreferences.is_current.is_(True),
        )
        .order_by(FamilyPreferences.submitted_at.desc())
        .first()
    )
