import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session

from brightpath.core.errors import RetrainingFailure
from brightpath.db.session import get_db
from brightpath.models.evaluator_model import EvaluatorModel
from brightpath.schemas.evaluator import EvaluatorModelPublic, RetrainAccepted
from brightpath.services import evaluator as evaluator_service
from brightpath.services.retraining import run_retraining

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/retrain", response_model=RetrainAccepted, status_code=status.HTTP_202_ACCEPTED
)
def trigger_retraining(
    background_tasks: BackgroundTasks, db: Session = Depends(get_db)
) -> RetrainAccepted:
    active = evaluator_service.get_active_model(db)
    background_tasks.add_task(run_retraining)
    logger.info("Evaluator retraining scheduled")
    return RetrainAccepted(active_model_version=active.version if active else None)


@router.get("/models", response_model=list[EvaluatorModelPublic])
def list_models(db: Session = Depends(get_db)) -> list[EvaluatorModelPublic]:
    return db.query(EvaluatorModel).order_by(EvaluatorModel.version.desc()).all()


@router.get("/models/active", response_model=EvaluatorModelPublic)
def read_active_model(db: Session = Depends(get_db)) -> EvaluatorModelPublic:
    model = evaluator_service.get_active_model(db)
    if not model:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="No evaluator model trained yet"
        )
    return model


@router.post("/models/{model_id}/activate", response_model=EvaluatorModelPublic)
def activate_model(model_id: int, db: Session = Depends(get_db)) -> EvaluatorModelPublic:
    try:
        return evaluator_service.activate_model(db, model_id)
    except RetrainingFailure as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
