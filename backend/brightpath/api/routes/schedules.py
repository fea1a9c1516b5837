import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from brightpath.api.routes.families import get_child_or_404
from brightpath.db.session import get_db
from brightpath.models.schedule import Schedule
from brightpath.schemas.schedule import ScheduleItemPublic, SchedulePublic
from brightpath.services import schedule_store
from brightpath.services.constraints import week_start_for
from brightpath.services.scheduling import generate_weekly_schedule

logger = logging.getLogger(__name__)

router = APIRouter()


def _warnings(schedule: Schedule) -> list[str]:
    metadata = (schedule.schedule_data or {}).get("metadata", {})
    warnings = []
    if metadata.get("capacity_exceeded"):
        warnings.append(
            f"Subjects need {metadata.get('required_minutes')} minutes but only "
            f"{metadata.get('available_minutes')} are free this week"
        )
    for subject in schedule.unscheduled_subjects or []:
        warnings.append(
            f"{subject['name']}: {subject['missing_sessions']} session(s) could not be placed"
        )
    if metadata.get("low_confidence_clusters"):
        warnings.append(
            "Few answers for: " + ", ".join(metadata["low_confidence_clusters"])
        )
    return warnings


def serialize_schedule(schedule: Schedule) -> SchedulePublic:
    return SchedulePublic(
        id=schedule.id,
        child_id=schedule.child_id,
        week_start_date=schedule.week_start_date,
        version=schedule.version,
        is_active=schedule.is_active,
        status=schedule.status,
        generation_method=schedule.generation_method,
        generated_at=schedule.generated_at,
        schedule_data=schedule_store.load_document(schedule),
        unscheduled_subjects=schedule.unscheduled_subjects or [],
        items=[ScheduleItemPublic.model_validate(item) for item in schedule.items],
        warnings=_warnings(schedule),
    )


@router.post(
    "/children/{child_id}/schedules",
    response_model=SchedulePublic,
    status_code=status.HTTP_201_CREATED,
)
def create_schedule(
    child_id: int,
    week_start: date | None = Query(default=None),
    expected_version: int | None = Query(default=None, ge=0),
    db: Session = Depends(get_db),
) -> SchedulePublic:
    get_child_or_404(db, child_id)
    week_start = week_start_for(week_start or date.today())
    schedule = generate_weekly_schedule(db, child_id, week_start, expected_version)
    return serialize_schedule(schedule)


@router.get("/children/{child_id}/schedules/active", response_model=SchedulePublic)
def read_active_schedule(
    child_id: int,
    week_start: date | None = Query(default=None),
    db: Session = Depends(get_db),
) -> SchedulePublic:
    get_child_or_404(db, child_id)
    week_start = week_start_for(week_start or date.today())
    schedule = schedule_store.get_active_schedule(db, child_id, week_start)
    if not schedule:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No active schedule for week starting {week_start}",
        )
    return serialize_schedule(schedule)


@router.get("/children/{child_id}/schedules", response_model=list[SchedulePublic])
def list_schedule_versions(
    child_id: int,
    week_start: date | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[SchedulePublic]:
    get_child_or_404(db, child_id)
    week_start = week_start_for(week_start or date.today())
    schedules = (
        db.query(Schedule)
        .filter(Schedule.child_id == child_id, Schedule.week_start_date == week_start)
        .order_by(Schedule.version.desc())
        .all()
    )
    return [serialize_schedule(schedule) for schedule in schedules]


@router.get("/schedules/{schedule_id}", response_model=SchedulePublic)
def read_schedule(schedule_id: int, db: Session = Depends(get_db)) -> SchedulePublic:
    schedule = db.get(Schedule, schedule_id)
    if not schedule:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Schedule not found")
    return serialize_schedule(schedule)
