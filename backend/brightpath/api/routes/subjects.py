from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from brightpath.api.routes.families import get_child_or_404
from brightpath.db.session import get_db
from brightpath.models.subject import Subject
from brightpath.schemas.subject import SubjectCreate, SubjectPublic, SubjectUpdate

router = APIRouter()


def _get_subject_or_404(db: Session, subject_id: int) -> Subject:
    subject = db.get(Subject, subject_id)
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Subject not found"
        )
    return subject


def _check_fixed_days(days: list[int] | None) -> None:
    if days and any(day < 0 or day > 6 for day in days):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="fixed_days must be between 0 (Monday) and 6 (Sunday)",
        )


@router.get("/children/{child_id}/subjects", response_model=list[SubjectPublic])
def list_subjects(child_id: int, db: Session = Depends(get_db)) -> list[SubjectPublic]:
    get_child_or_404(db, child_id)
    return (
        db.query(Subject)
        .filter(Subject.child_id == child_id)
        .order_by(Subject.is_core.desc(), Subject.id.asc())
        .all()
    )


@router.post(
    "/children/{child_id}/subjects",
    response_model=SubjectPublic,
    status_code=status.HTTP_201_CREATED,
)
def create_subject(
    child_id: int, payload: SubjectCreate, db: Session = Depends(get_db)
) -> SubjectPublic:
    get_child_or_404(db, child_id)
    _check_fixed_days(payload.fixed_days)
    subject = Subject(child_id=child_id, **payload.model_dump())
    db.add(subject)
    db.commit()
    db.refresh(subject)
    return subject


@router.patch("/subjects/{subject_id}", response_model=SubjectPublic)
def update_subject(
    subject_id: int, payload: SubjectUpdate, db: Session = Depends(get_db)
) -> SubjectPublic:
    subject = _get_subject_or_404(db, subject_id)
    data = payload.model_dump(exclude_unset=True)
    _check_fixed_days(data.get("fixed_days"))

    # Explicit nulls on required fields must not reach the database.
    merged = SubjectPublic.model_validate(subject).model_dump()
    merged.update(data)
    try:
        SubjectCreate.model_validate(merged)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.errors(
                include_url=False, include_context=False, include_input=False
            ),
        ) from exc

    for key, value in data.items():
        setattr(subject, key, value)
    db.add(subject)
    db.commit()
    db.refresh(subject)
    return subject


@router.delete("/subjects/{subject_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_subject(subject_id: int, db: Session = Depends(get_db)) -> None:
    subject = _get_subject_or_404(db, subject_id)
    db.delete(subject)
    db.commit()
