from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from brightpath.db.session import get_db
from brightpath.models.feedback import Feedback
from brightpath.schemas.feedback import FeedbackCreate, FeedbackPublic
from brightpath.schemas.schedule import ActivityLogPublic, ItemCompletion, ItemReschedule
from brightpath.services import feedback as feedback_service

router = APIRouter()


@router.post(
    "/schedules/{schedule_id}/feedback",
    response_model=FeedbackPublic,
    status_code=status.HTTP_202_ACCEPTED,
)
def submit_feedback(
    schedule_id: int,
    payload: FeedbackCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> FeedbackPublic:
    feedback = feedback_service.ingest(db, schedule_id, payload)
    background_tasks.add_task(feedback_service.score_feedback, feedback.id)
    return feedback


@router.get("/schedules/{schedule_id}/feedback", response_model=list[FeedbackPublic])
def list_feedback(schedule_id: int, db: Session = Depends(get_db)) -> list[FeedbackPublic]:
    return (
        db.query(Feedback)
        .filter(Feedback.schedule_id == schedule_id)
        .order_by(Feedback.created_at.asc())
        .all()
    )


@router.post("/schedule-items/{item_id}/complete", response_model=ActivityLogPublic)
def complete_item(
    item_id: int, payload: ItemCompletion, db: Session = Depends(get_db)
) -> ActivityLogPublic:
    return feedback_service.complete_item(db, item_id, payload)


@router.post("/schedule-items/{item_id}/skip", response_model=ActivityLogPublic)
def skip_item(item_id: int, db: Session = Depends(get_db)) -> ActivityLogPublic:
    return feedback_service.skip_item(db, item_id)


@router.post("/schedule-items/{item_id}/reschedule", response_model=ActivityLogPublic)
def reschedule_item(
    item_id: int, payload: ItemReschedule, db: Session = Depends(get_db)
) -> ActivityLogPublic:
    return feedback_service.reschedule_item(db, item_id, payload)
