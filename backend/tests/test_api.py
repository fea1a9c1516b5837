import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from brightpath.db.base import Base
from brightpath.db.session import get_db
from brightpath.main import create_app
from brightpath.services import feedback as feedback_service
from brightpath.services import retraining

from conftest import WEEK


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch):
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    monkeypatch.setattr(feedback_service, "SessionLocal", TestingSession)
    monkeypatch.setattr(retraining, "SessionLocal", TestingSession)

    app = create_app()
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client

    Base.metadata.drop_all(engine)
    engine.dispose()


def _family_with_child(client: TestClient) -> tuple[int, int]:
    family = client.post("/families", json={"name": "Okafor"}).json()
    child = client.post(
        f"/families/{family['id']}/children",
        json={"name": "Ada", "age": 7, "homeschool_start": "09:00", "homeschool_end": "14:00"},
    ).json()
    return family["id"], child["id"]


def _add_subjects(client: TestClient, child_id: int) -> None:
    for name, minutes in (("Math", 30), ("Reading", 45)):
        response = client.post(
            f"/children/{child_id}/subjects",
            json={"name": name, "session_minutes": minutes, "frequency": "daily"},
        )
        assert response.status_code == 201


def test_generate_and_read_active_schedule(client: TestClient):
    family_id, child_id = _family_with_child(client)
    _add_subjects(client, child_id)
    response = client.post(
        f"/families/{family_id}/preferences",
        json={"flexibility_level": "strictly_structured", "responses": {"rotation_1": 4}},
    )
    assert response.status_code == 201

    created = client.post(f"/children/{child_id}/schedules", params={"week_start": "2026-10-21"})
    assert created.status_code == 201
    body = created.json()
    assert body["week_start_date"] == WEEK.isoformat()
    assert body["status"] == "active"
    assert body["unscheduled_subjects"] == []
    assert len(body["schedule_data"]["days"]) == 7

    active = client.get(
        f"/children/{child_id}/schedules/active", params={"week_start": WEEK.isoformat()}
    )
    assert active.status_code == 200
    assert active.json()["id"] == body["id"]


def test_conflicting_commitments_return_422(client: TestClient):
    family_id, child_id = _family_with_child(client)
    for name, start, end in (("Piano", "15:00", "16:00"), ("Doctor", "15:30", "16:30")):
        response = client.post(
            f"/families/{family_id}/commitments",
            json={"name": name, "days_of_week": [0], "start_time": start, "end_time": end},
        )
        assert response.status_code == 201

    response = client.post(
        f"/children/{child_id}/schedules", params={"week_start": WEEK.isoformat()}
    )

    assert response.status_code == 422
    conflicts = response.json()["conflicts"]
    assert {conflicts[0]["first"]["label"], conflicts[0]["second"]["label"]} == {"Piano", "Doctor"}


def test_stale_regeneration_returns_409(client: TestClient):
    _, child_id = _family_with_child(client)
    _add_subjects(client, child_id)
    params = {"week_start": WEEK.isoformat(), "expected_version": 0}

    assert client.post(f"/children/{child_id}/schedules", params=params).status_code == 201
    assert client.post(f"/children/{child_id}/schedules", params=params).status_code == 409

    versions = client.get(
        f"/children/{child_id}/schedules", params={"week_start": WEEK.isoformat()}
    ).json()
    assert [v["is_active"] for v in versions] == [True]


def test_feedback_is_accepted_and_scored_in_background(client: TestClient):
    _, child_id = _family_with_child(client)
    _add_subjects(client, child_id)
    schedule = client.post(
        f"/children/{child_id}/schedules", params={"week_start": WEEK.isoformat()}
    ).json()

    response = client.post(
        f"/schedules/{schedule['id']}/feedback",
        json={"star_rating": 5, "likert_ratings": {"pacing": 4}},
    )
    assert response.status_code == 202

    stored = client.get(f"/schedules/{schedule['id']}/feedback").json()
    assert stored[0]["score"] is not None


def test_invalid_likert_key_is_rejected(client: TestClient):
    response = client.post(
        "/schedules/1/feedback", json={"star_rating": 3, "likert_ratings": {"mood": 3}}
    )
    assert response.status_code == 422


def test_item_interactions(client: TestClient):
    _, child_id = _family_with_child(client)
    _add_subjects(client, child_id)
    schedule = client.post(
        f"/children/{child_id}/schedules", params={"week_start": WEEK.isoformat()}
    ).json()
    monday = [
        item for item in schedule["items"]
        if item["day"] == WEEK.isoformat() and item["item_type"] == "subject"
    ]

    done = client.post(
        f"/schedule-items/{monday[0]['id']}/complete", json={"actual_minutes": 30}
    )
    assert done.status_code == 200
    assert done.json()["event"] == "completed"

    clash = client.post(
        f"/schedule-items/{monday[1]['id']}/reschedule",
        json={
            "day": WEEK.isoformat(),
            "start_time": monday[0]["start_time"],
            "end_time": monday[0]["end_time"],
        },
    )
    assert clash.status_code == 409

    moved = client.post(
        f"/schedule-items/{monday[1]['id']}/reschedule",
        json={"day": WEEK.isoformat(), "start_time": "13:00", "end_time": "13:45"},
    )
    assert moved.status_code == 200
    assert moved.json()["new_item_id"] is not None

    missing = client.post("/schedule-items/9999/skip")
    assert missing.status_code == 404


def test_retrain_without_enough_feedback_keeps_no_model(client: TestClient):
    response = client.post("/evaluator/retrain")
    assert response.status_code == 202
    assert response.json()["active_model_version"] is None
    assert client.get("/evaluator/models").json() == []
    assert client.get("/evaluator/models/active").status_code == 404


def test_subject_and_commitment_crud(client: TestClient):
    family_id, child_id = _family_with_child(client)
    subject = client.post(
        f"/children/{child_id}/subjects", json={"name": "Art", "frequency": "weekly"}
    ).json()

    patched = client.patch(f"/subjects/{subject['id']}", json={"session_minutes": 40})
    assert patched.json()["session_minutes"] == 40
    assert client.delete(f"/subjects/{subject['id']}").status_code == 204
    assert client.get(f"/children/{child_id}/subjects").json() == []

    commitment = client.post(
        f"/families/{family_id}/commitments",
        json={"name": "Library", "days_of_week": [4], "start_time": "10:00", "end_time": "11:00"},
    ).json()
    bad = client.patch(f"/commitments/{commitment['id']}", json={"end_time": "09:00"})
    assert bad.status_code == 422
    assert client.delete(f"/commitments/{commitment['id']}").status_code == 204


def test_invalid_commitment_patch_reports_errors(client: TestClient):
    family_id, _ = _family_with_child(client)
    commitment = client.post(
        f"/families/{family_id}/commitments",
        json={"name": "Swim", "days_of_week": [2], "start_time": "10:00", "end_time": "11:00"},
    ).json()

    response = client.patch(f"/commitments/{commitment['id']}", json={"end_time": "09:00"})

    assert response.status_code == 422
    assert isinstance(response.json()["detail"], list)
    assert client.get(f"/families/{family_id}/commitments").json()[0]["end_time"] == "11:00:00"


def test_subject_patch_rejects_nulls_on_required_fields(client: TestClient):
    _, child_id = _family_with_child(client)
    subject = client.post(
        f"/children/{child_id}/subjects", json={"name": "Science", "frequency": "weekly"}
    ).json()

    for field in ("frequency", "is_core", "parent_involvement", "interest_level", "is_active"):
        response = client.patch(f"/subjects/{subject['id']}", json={field: None})
        assert response.status_code == 422, field

    stored = client.get(f"/children/{child_id}/subjects").json()[0]
    assert stored["frequency"] == "weekly"

    cleared = client.patch(f"/subjects/{subject['id']}", json={"session_minutes": None})
    assert cleared.status_code == 200
    assert cleared.json()["session_minutes"] is None


def test_preference_scores_are_derived_from_answers(client: TestClient):
    family_id, _ = _family_with_child(client)
    response = client.post(
        f"/families/{family_id}/preferences",
        json={
            "responses": {"philosophy_1": 5, "philosophy_2": 1, "activity_3": 3},
            "philosophy_scores": {"classical": 0.0, "unschooling": 1.0},
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["philosophy_scores"] == {"classical": pytest.approx(0.6667, abs=1e-4)}
    assert body["activity_preferences"] == {"reading_aloud": pytest.approx(0.5)}


def test_overloaded_week_lists_unscheduled_subjects(client: TestClient):
    _, child_id = _family_with_child(client)
    for name in ("Math", "Reading", "Science", "History", "Spanish"):
        response = client.post(
            f"/children/{child_id}/subjects",
            json={"name": name, "session_minutes": 90, "frequency": "daily"},
        )
        assert response.status_code == 201

    created = client.post(
        f"/children/{child_id}/schedules", params={"week_start": WEEK.isoformat()}
    )
    assert created.status_code == 201

    active = client.get(
        f"/children/{child_id}/schedules/active", params={"week_start": WEEK.isoformat()}
    ).json()
    assert active["unscheduled_subjects"]
    assert all(entry["missing_sessions"] > 0 for entry in active["unscheduled_subjects"])
    assert any("could not be placed" in warning for warning in active["warnings"])
    assert any("minutes but only" in warning for warning in active["warnings"])
