from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from brightpath.api.routes.families import get_family_or_404
from brightpath.db.session import get_db
from brightpath.models.child import Child
from brightpath.models.commitment import Commitment
from brightpath.schemas.commitment import (
    CommitmentCreate,
    CommitmentPublic,
    CommitmentUpdate,
)

router = APIRouter()


def _get_commitment_or_404(db: Session, commitment_id: int) -> Commitment:
    commitment = db.get(Commitment, commitment_id)
    if not commitment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Commitment not found"
        )
    return commitment


def _check_child(db: Session, family_id: int, child_id: int | None) -> None:
    if child_id is None:
        return
    child = db.get(Child, child_id)
    if not child or child.family_id != family_id:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="child_id does not belong to this family",
        )


@router.get("/families/{family_id}/commitments", response_model=list[CommitmentPublic])
def list_commitments(family_id: int, db: Session = Depends(get_db)) -> list[CommitmentPublic]:
    get_family_or_404(db, family_id)
    return (
        db.query(Commitment)
        .filter(Commitment.family_id == family_id)
        .order_by(Commitment.start_time.asc(), Commitment.id.asc())
        .all()
    )


@router.post(
    "/families/{family_id}/commitments",
    response_model=CommitmentPublic,
    status_code=status.HTTP_201_CREATED,
)
def create_commitment(
    family_id: int, payload: CommitmentCreate, db: Session = Depends(get_db)
) -> CommitmentPublic:
    get_family_or_404(db, family_id)
    _check_child(db, family_id, payload.child_id)
    commitment = Commitment(family_id=family_id, **payload.model_dump())
    db.add(commitment)
    db.commit()
    db.refresh(commitment)
    return commitment


@router.patch("/commitments/{commitment_id}", response_model=CommitmentPublic)
def update_commitment(
    commitment_id: int, payload: CommitmentUpdate, db: Session = Depends(get_db)
) -> CommitmentPublic:
    commitment = _get_commitment_or_404(db, commitment_id)
    data = payload.model_dump(exclude_unset=True)

    # Re-validate the merged record so partial updates cannot break invariants.
    merged = CommitmentPublic.model_validate(commitment).model_dump()
    merged.update(data)
    try:
        CommitmentCreate.model_validate(merged)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.errors(
                include_url=False, include_context=False, include_input=False
            ),
        ) from exc

    for key, value in data.items():
        setattr(commitment, key, value)
    db.add(commitment)
    db.commit()
    db.refresh(commitment)
    return commitment


@router.delete("/commitments/{commitment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_commitment(commitment_id: int, db: Session = Depends(get_db)) -> None:
    commitment = _get_commitment_or_404(db, commitment_id)
    db.delete(commitment)
    db.commit()
