import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from brightpath.api.routes.families import get_child_or_404, get_family_or_404
from brightpath.db.session import get_db
from brightpath.models.family import FamilyPreferences
from brightpath.schemas.preferences import (
    FeatureVector,
    PreferencesPublic,
    PreferencesSubmission,
)
from brightpath.services.preferences import (
    current_preferences,
    derive_features,
    preference_scores,
    responses_for,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/families/{family_id}/preferences",
    response_model=PreferencesPublic,
    status_code=status.HTTP_201_CREATED,
)
def submit_preferences(
    family_id: int, payload: PreferencesSubmission, db: Session = Depends(get_db)
) -> PreferencesPublic:
    get_family_or_404(db, family_id)
    philosophy_scores, activity_preferences = preference_scores(payload.responses)

    db.query(FamilyPreferences).filter(
        FamilyPreferences.family_id == family_id,
        FamilyPreferences.is_current.is_(True),
    ).update({FamilyPreferences.is_current: False}, synchronize_session="fetch")

    preferences = FamilyPreferences(
        family_id=family_id,
        flexibility_level=payload.flexibility_level,
        planning_approach=payload.planning_approach,
        philosophy_scores=philosophy_scores,
        activity_preferences=activity_preferences,
        raw_responses=payload.responses,
        is_current=True,
    )
    db.add(preferences)
    db.commit()
    db.refresh(preferences)
    logger.info(f"Family {family_id} submitted preferences {preferences.id}")
    return preferences


@router.get("/families/{family_id}/preferences", response_model=PreferencesPublic)
def read_preferences(family_id: int, db: Session = Depends(get_db)) -> PreferencesPublic:
    get_family_or_404(db, family_id)
    preferences = current_preferences(db, family_id)
    if not preferences:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="No preferences submitted"
        )
    return preferences


@router.get("/children/{child_id}/features", response_model=FeatureVector)
def read_features(child_id: int, db: Session = Depends(get_db)) -> FeatureVector:
    child = get_child_or_404(db, child_id)
    return derive_features(responses_for(current_preferences(db, child.family_id)), age=child.age)
