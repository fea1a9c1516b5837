from fastapi import APIRouter

from brightpath.api.routes import (
    commitments,
    evaluator,
    families,
    feedback,
    preferences,
    schedules,
    subjects,
)


api_router = APIRouter()
api_router.include_router(families.router, tags=["families"])
api_router.include_router(preferences.router, tags=["preferences"])
api_router.include_router(subjects.router, tags=["subjects"])
api_router.include_router(commitments.router, tags=["commitments"])
api_router.include_router(schedules.router, tags=["schedules"])
api_router.include_router(feedback.router, tags=["feedback"])
api_router.include_router(evaluator.router, prefix="/evaluator", tags=["evaluator"])
