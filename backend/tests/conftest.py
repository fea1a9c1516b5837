from datetime import date, time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from brightpath.db.base import Base
from brightpath.models.child import Child
from brightpath.models.family import Family
from brightpath.models.subject import Subject, SubjectFrequency

# A Monday
WEEK = date(2026, 10, 19)


@pytest.fixture()
def engine():
    engine = create_engine("sqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine):
    with Session(engine) as session:
        yield session
        session.rollback()


@pytest.fixture()
def child(db_session: Session) -> Child:
    family = Family(name="Rivera")
    child = Child(
        family=family,
        name="Mia",
        age=6,
        best_learning_times=[],
        homeschool_start=time(9, 0),
        homeschool_end=time(14, 0),
    )
    db_session.add_all([family, child])
    db_session.add_all(
        [
            Subject(
                child=child,
                name="Math",
                session_minutes=30,
                frequency=SubjectFrequency.DAILY,
            ),
            Subject(
                child=child,
                name="Reading",
                session_minutes=45,
                frequency=SubjectFrequency.DAILY,
            ),
        ]
    )
    db_session.commit()
    db_session.refresh(child)
    return child
