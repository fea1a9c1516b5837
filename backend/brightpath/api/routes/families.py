from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from brightpath.db.session import get_db
from brightpath.models.child import Child
from brightpath.models.family import Family
from brightpath.schemas.family import ChildCreate, ChildPublic, FamilyCreate, FamilyPublic

router = APIRouter()


def get_family_or_404(db: Session, family_id: int) -> Family:
    family = db.get(Family, family_id)
    if not family:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Family not found")
    return family


def get_child_or_404(db: Session, child_id: int) -> Child:
    child = db.get(Child, child_id)
    if not child:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Child not found")
    return child


@router.post("/families", response_model=FamilyPublic, status_code=status.HTTP_201_CREATED)
def create_family(payload: FamilyCreate, db: Session = Depends(get_db)) -> FamilyPublic:
    family = Family(**payload.model_dump())
    db.add(family)
    db.commit()
    db.refresh(family)
    return family


@router.get("/families/{family_id}", response_model=FamilyPublic)
def read_family(family_id: int, db: Session = Depends(get_db)) -> FamilyPublic:
    return get_family_or_404(db, family_id)


@router.get("/families/{family_id}/children", response_model=list[ChildPublic])
def list_children(family_id: int, db: Session = Depends(get_db)) -> list[ChildPublic]:
    family = get_family_or_404(db, family_id)
    return sorted(family.children, key=lambda child: child.id)


@router.post(
    "/families/{family_id}/children",
    response_model=ChildPublic,
    status_code=status.HTTP_201_CREATED,
)
def create_child(
    family_id: int, payload: ChildCreate, db: Session = Depends(get_db)
) -> ChildPublic:
    get_family_or_404(db, family_id)
    data = payload.model_dump()
    data["best_learning_times"] = [part.value for part in payload.best_learning_times]
    child = Child(family_id=family_id, **data)
    db.add(child)
    db.commit()
    db.refresh(child)
    return child


@router.get("/children/{child_id}", response_model=ChildPublic)
def read_child(child_id: int, db: Session = Depends(get_db)) -> ChildPublic:
    return get_child_or_404(db, child_id)
