from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from conftest import answers_for, make_engine
from psyrisk.infrastructure.config import reset_settings
from psyrisk.web.dependencies import get_db_session
from psyrisk.web.main import create_application


def build_app_with_db() -> tuple[TestClient, sessionmaker[Session]]:
    engine = make_engine()
    SessionLocal = sessionmaker(bind=engine, future=True, expire_on_commit=False)

    app = create_application()

    def override_get_db_session():
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db_session] = override_get_db_session
    client = TestClient(app)
    return client, SessionLocal


def release(client: TestClient, *subjects: dict) -> dict:
    response = client.post(
        "/api/batches",
        json={"employer_name": "Acme Ltda", "subjects": list(subjects) or [{"name": "Ana"}]},
    )
    assert response.status_code == 201
    return response.json()


def submit(client: TestClient, assessment_id: int, dimension_id: int, value: int = 50):
    return client.post(
        f"/api/assessments/{assessment_id}/dimensions",
        json={"dimension_id": dimension_id, "items": answers_for(dimension_id, value)},
    )


def test_health():
    client, _ = build_app_with_db()
    assert client.get("/api/health").json() == {"status": "ok"}


def test_questions_endpoint():
    client, _ = build_app_with_db()
    data = client.get("/api/questions", params={"role": "management"}).json()
    assert len(data) == 10
    assert sum(len(d["items"]) for d in data) == 70


def test_questionnaire_flow_and_status_codes():
    client, _ = build_app_with_db()
    batch = release(client)
    aid = batch["assessment_ids"][0]

    started = client.post(f"/api/assessments/{aid}/start", json={"session_key": "tab-1"})
    assert started.status_code == 200
    assert started.json()["status"] == "in_progress"

    # skipping ahead -> 409
    assert submit(client, aid, 2).status_code == 409

    # incomplete dimension -> 422 naming the missing item
    partial = client.post(
        f"/api/assessments/{aid}/dimensions",
        json={"dimension_id": 1, "items": answers_for(1)[1:]},
    )
    assert partial.status_code == 422
    assert "Q1" in partial.json()["detail"]

    # unknown dimension and assessment -> 404
    assert client.post(f"/api/assessments/{aid}/dimensions", json={"dimension_id": 42}).status_code == 404
    assert submit(client, 9999, 1).status_code == 404

    ok = submit(client, aid, 1)
    assert ok.status_code == 200
    assert ok.json()["current_dimension"] == 2


def test_back_navigation_refusal_is_not_an_error():
    client, _ = build_app_with_db()
    aid = release(client)["assessment_ids"][0]
    for d in (1, 2, 3):
        assert submit(client, aid, d).status_code == 200

    resumed = client.post(f"/api/assessments/{aid}/resume", json={"session_key": "tab-2"})
    assert resumed.json()["resume_anchor"] == 4
    assert resumed.json()["can_navigate_back"] is False

    back = client.post(f"/api/assessments/{aid}/back")
    assert back.status_code == 200
    assert back.json() == {"outcome": "refused", "current_dimension": 4}

    # persisting below the anchor is rejected server-side
    assert submit(client, aid, 3).status_code == 409


def test_readiness_scores_and_report_lifecycle():
    client, _ = build_app_with_db()
    batch = release(client, {"name": "A", "sector": "Ops"}, {"name": "B"})
    first, second = batch["assessment_ids"]
    for d in range(1, 11):
        assert submit(client, first, d, 75).status_code == 200

    readiness = client.get(f"/api/batches/{batch['id']}/readiness").json()
    assert readiness == {"total": 2, "completed": 1, "deactivated": 0, "pending": 1, "ready": False}
    assert client.post(f"/api/batches/{batch['id']}/report/issue").status_code == 409

    assert client.post(f"/api/assessments/{second}/deactivate").status_code == 200
    assert client.get(f"/api/batches/{batch['id']}/readiness").json()["ready"] is True

    scores = client.get(f"/api/batches/{batch['id']}/scores").json()
    assert len(scores) == 10
    assert scores[0]["risk_category"] == "high"
    assert scores[1]["risk_category"] == "low"

    sectors = client.get(f"/api/batches/{batch['id']}/scores/sectors").json()
    assert list(sectors) == ["Ops"]

    updated = client.put(
        f"/api/batches/{batch['id']}/report/observations", json={"observations": "Plan reviewed."}
    )
    assert updated.status_code == 200
    assert updated.json()["status"] == "draft"

    assert client.post(f"/api/batches/{batch['id']}/report/send").status_code == 409
    issued = client.post(f"/api/batches/{batch['id']}/report/issue")
    assert issued.status_code == 200
    assert issued.json()["status"] == "issued"

    view = client.get(f"/api/batches/{batch['id']}/report").json()
    assert view["report"]["status"] == "issued"
    assert view["sections"]["conclusion"]["observations"] == "Plan reviewed."
    buckets = view["sections"]["interpretation"]["buckets"]
    assert [b["category"] for b in buckets] == ["low", "medium", "high"]

    assert (
        client.put(
            f"/api/batches/{batch['id']}/report/observations", json={"observations": "late"}
        ).status_code
        == 409
    )
    sent = client.post(f"/api/batches/{batch['id']}/report/send")
    assert sent.json()["status"] == "sent"


def test_unknown_batch_is_404():
    client, _ = build_app_with_db()
    assert client.get("/api/batches/77/readiness").status_code == 404
    assert client.get("/api/batches/77/report").status_code == 404
    assert client.get("/api/batches/77/assessments").status_code == 404


def test_exports():
    client, _ = build_app_with_db()
    batch = release(client)
    aid = batch["assessment_ids"][0]
    for d in range(1, 11):
        submit(client, aid, d)

    as_json = client.get(f"/api/batches/{batch['id']}/exports/json")
    assert as_json.status_code == 200
    assert len(as_json.json()["scores"]) == 10

    as_xlsx = client.get(f"/api/batches/{batch['id']}/exports/xlsx")
    assert as_xlsx.status_code == 200
    assert as_xlsx.content[:2] == b"PK"


def test_individual_report():
    client, _ = build_app_with_db()
    aid = release(client, {"name": "Eva"})["assessment_ids"][0]
    submit(client, aid, 1, 0)
    scores = client.get(f"/api/assessments/{aid}/scores").json()
    assert scores[0]["risk_category"] == "low"
    assert scores[1]["insufficient_data"] is True
    view = client.get(f"/api/assessments/{aid}/report").json()
    assert view["report"] is None
    assert view["sections"]["interpretation"]["introduction"].startswith("Eva")


def test_lifespan_opens_configured_database(monkeypatch):
    monkeypatch.setenv("DB_SQLITE_PATH", ":memory:")
    reset_settings()
    try:
        app = create_application()
        with TestClient(app) as client:
            batch = release(client, {"name": "Ana"}, {"name": "Bruno"})
            readiness = client.get(f"/api/batches/{batch['id']}/readiness").json()
            assert readiness["total"] == 2
        assert app.state.db_engine is None
    finally:
        monkeypatch.delenv("DB_SQLITE_PATH")
        reset_settings()


def test_batch_roster():
    client, _ = build_app_with_db()
    batch = release(client, {"name": "Ana", "sector": "Finance"}, {"name": "Bia", "role_level": "management"})
    ana, _ = batch["assessment_ids"]
    assert submit(client, ana, 1).status_code == 200

    roster = client.get(f"/api/batches/{batch['id']}/assessments").json()
    assert [row["status"] for row in roster] == ["in_progress", "not_started"]
    assert roster[1]["role_level"] == "management"
    assert roster[0]["submitted_at"] is None


def test_status_questions_and_observations():
    client, _ = build_app_with_db()
    batch = release(client, {"name": "Bia", "role_level": "management"})
    (aid,) = batch["assessment_ids"]

    status = client.get(f"/api/assessments/{aid}/status").json()
    assert status["status"] == "not_started"
    assert status["role_level"] == "management"
    assert status["can_navigate_back"] is True  # dimension 1 routes home

    questions = client.get(f"/api/assessments/{aid}/questions").json()
    assert len(questions) == 10
    assert sum(len(d["items"]) for d in questions) == 70

    updated = client.put(
        f"/api/batches/{batch['id']}/report/observations", json={"observations": "Follow up in Q3."}
    )
    assert updated.status_code == 200
    assert updated.json()["status"] == "draft"
    assert updated.json()["observations"] == "Follow up in Q3."


def test_batch_list_and_pending_reports():
    client, _ = build_app_with_db()
    waiting = release(client, {"name": "Ana"})
    in_progress = release(client, {"name": "Bia"}, {"name": "Caio"})
    (aid,) = waiting["assessment_ids"]
    for dimension_id in range(1, 11):
        assert submit(client, aid, dimension_id).status_code == 200

    listed = client.get("/api/batches")
    assert listed.status_code == 200
    by_id = {b["id"]: b for b in listed.json()}
    assert by_id[waiting["id"]]["ready"] is True
    assert by_id[in_progress["id"]]["pending"] == 2

    pending = client.get("/api/reports/pending").json()
    assert [b["id"] for b in pending] == [waiting["id"]]
    assert pending[0]["report_status"] is None

    assert client.post(f"/api/batches/{waiting['id']}/report/issue").status_code == 200
    assert client.get("/api/reports/pending").json() == []


def test_release_with_employer_address():
    client, _ = build_app_with_db()
    response = client.post(
        "/api/batches",
        json={
            "employer_name": "Acme Ltda",
            "employer_address": {"street": "Rua A, 123", "city": "Campinas", "state": "SP"},
            "subjects": [{"name": "Ana"}],
        },
    )
    assert response.status_code == 201
    report = client.get(f"/api/batches/{response.json()['id']}/report").json()
    assert report["sections"]["profile"]["employer_address"] == "Rua A, 123 - Campinas - SP"
