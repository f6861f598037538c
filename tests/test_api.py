from datetime import date

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from learnflow.config import settings
from learnflow.infrastructure.db import get_db
from learnflow.interfaces.http.authz import get_user_id, require_admin
from learnflow.interfaces.http.deps import get_today
from learnflow.main import app

AUTH = {"Authorization": "Bearer test_token"}

CURRICULUM = [
    {"course_id": "c1", "course_name": "QA/QC Fundamentals", "chapter_id": "ch1", "chapter_name": "Basics",
     "lesson_id": "l1", "lesson_name": "Lesson 1", "task_id": "t1", "task_title": "Task 1", "xp": 10},
    {"course_id": "c1", "course_name": "QA/QC Fundamentals", "chapter_id": "ch1", "chapter_name": "Basics",
     "lesson_id": "l1", "lesson_name": "Lesson 1", "task_id": "t2", "task_title": "Task 2", "xp": 20},
    {"course_id": "c1", "course_name": "QA/QC Fundamentals", "chapter_id": "ch1", "chapter_name": "Basics",
     "lesson_id": "l2", "lesson_name": "Lesson 2"},
]


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()

@pytest.fixture
def user_override():
    """Фикстура для переопределения get_user_id"""
    app.dependency_overrides[get_user_id] = lambda: "user-1"
    yield

@pytest.fixture
def admin_override():
    """Фикстура для переопределения require_admin"""
    app.dependency_overrides[require_admin] = lambda: {"sub": "admin-1", "role": "admin"}
    yield

@pytest.fixture
def today():
    """Фикстура для подмены текущей даты"""
    current = {"value": date(2025, 9, 3)}
    app.dependency_overrides[get_today] = lambda: current["value"]
    return current

@pytest.fixture
def curriculum(client, admin_override):
    response = client.put("/api/curriculum", json=CURRICULUM, headers=AUTH)
    assert response.status_code == 200
    return response.json()


def write(client, **payload):
    return client.post("/api/progress/write", json=payload, headers=AUTH)


def test_health(client):
    """Тест health-check"""
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/api/progress/health").json() == {"status": "ok"}

def test_metrics_endpoint(client):
    """Тест endpoint метрик"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "text/plain" in response.headers["content-type"]
    assert "http_requests_total" in response.text

def test_metrics_use_route_template(client, user_override, today):
    """Тест: метка endpoint - шаблон маршрута, а не конкретный id урока"""
    client.get("/api/schedule/lessons/les_1_3", headers=AUTH)
    text = client.get("/metrics").text
    assert 'endpoint="/api/schedule/lessons/{lesson_id}"' in text
    assert 'endpoint="/api/schedule/lessons/les_1_3"' not in text

def test_write_requires_token(client):
    """Тест записи прогресса без авторизации"""
    response = client.post("/api/progress/write", json={"course_id": "c1", "progress_type": "quiz_score",
                                                         "progress_value": 1})
    # HTTPBearer без заголовка отвечает 403 (в новых версиях FastAPI - 401)
    assert response.status_code in (401, 403)

def test_invalid_token(client):
    """Тест невалидного токена"""
    response = client.get("/api/progress/read", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401

def test_real_token_is_accepted(client):
    """Тест: токен, подписанный сервисом авторизации, принимается"""
    token = jwt.encode({"sub": "user-9", "role": "student"}, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    response = client.get("/api/progress/read", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json() == {"rows": []}

def test_write_and_read(client, user_override):
    """Тест записи и чтения прогресса"""
    assert write(client, course_id="c1", lesson_id="l1", task_id="t1",
                 progress_type="completed_tasks", progress_value=True).json() == {"ok": True}
    assert write(client, course_id="c2", lesson_id="l5",
                 progress_type="watched_topics", progress_value=["intro"]).status_code == 200

    rows = client.get("/api/progress/read", headers=AUTH).json()["rows"]
    assert len(rows) == 2
    assert rows[0]["user_id"] == "user-1"
    assert rows[0]["progress_type"] == "completed_tasks"
    assert rows[0]["progress_value"] is True
    assert rows[0]["updated_at"] is not None
    assert rows[1]["progress_value"] == ["intro"]

    rows = client.get("/api/progress/read?course_id=c2", headers=AUTH).json()["rows"]
    assert [r["lesson_id"] for r in rows] == ["l5"]

def test_write_null_value(client, user_override):
    """Тест: значение null читается обратно как null"""
    assert write(client, course_id="c1", lesson_id="l1", progress_type="quiz_score",
                 progress_value=None).status_code == 200
    rows = client.get("/api/progress/read", headers=AUTH).json()["rows"]
    assert rows[0]["progress_value"] is None

def test_write_validation(client, user_override):
    """Тест валидации записи прогресса"""
    assert write(client, course_id="c1", progress_type="bogus", progress_value=1).status_code == 422
    assert write(client, course_id="", progress_type="quiz_score", progress_value=1).status_code == 422
    assert write(client, course_id="c1", progress_type="quiz_score").status_code == 422

def test_lesson_state(client, user_override):
    """Тест текущего состояния урока"""
    write(client, course_id="c1", lesson_id="l1", progress_type="quiz_score", progress_value=40)
    write(client, course_id="c1", lesson_id="l1", progress_type="quiz_score", progress_value=75)
    write(client, course_id="c1", lesson_id="l1", progress_type="quiz_passed", progress_value=True)

    data = client.get("/api/progress/lessons/l1", headers=AUTH).json()
    assert data == {
        "lesson_id": "l1",
        "watched_topics": [],
        "quiz_score": 75,
        "quiz_passed": True,
        "learning_done": False,
    }

def test_curriculum_import_requires_admin(client):
    """Тест импорта учебного плана без прав администратора"""
    token = jwt.encode({"sub": "user-9", "role": "student"}, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    response = client.put("/api/curriculum", json=CURRICULUM, headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 403

def test_curriculum_tree(client, curriculum):
    """Тест дерева учебного плана"""
    assert curriculum == {"ok": True, "rows": 3}
    tree = client.get("/api/curriculum").json()
    assert len(tree) == 1
    lessons = tree[0]["chapters"][0]["lessons"]
    assert [l["id"] for l in lessons] == ["l1", "l2"]
    assert [t["xp"] for t in lessons[0]["tasks"]] == [10, 20]
    assert lessons[1]["tasks"] == []

def test_dashboard(client, curriculum, user_override):
    """Тест дашборда прогресса"""
    write(client, course_id="c1", lesson_id="l2", progress_type="learning_done", progress_value=True)
    write(client, course_id="c1", lesson_id="l1", task_id="t1", progress_type="completed_tasks", progress_value=True)
    write(client, course_id="ghost", lesson_id="l1", task_id="t2", progress_type="completed_tasks",
          progress_value=True)

    data = client.get("/api/progress/dashboard", headers=AUTH).json()
    overall = data["overall"]
    assert overall["total_lessons"] == 2
    assert overall["completed_lessons"] == 1
    assert overall["total_tasks"] == 2
    assert overall["completed_tasks"] == 1
    assert overall["total_xp"] == 30
    assert overall["earned_xp"] == 10
    assert overall["completion_percentage"] == 50
    assert overall["task_completion_percentage"] == 50
    assert [c["course_id"] for c in data["by_course"]] == ["c1"]
    assert [c["chapter_id"] for c in data["by_chapter"]] == ["ch1"]
    assert [l["completed"] for l in data["by_lesson"]] == [False, True]
    assert {a["id"] for a in data["activities"]} == {"lesson_l2", "task_t1"}
    assert all(a["timestamp"] is not None for a in data["activities"])

def test_dashboard_without_curriculum(client, user_override):
    """Тест дашборда при пустом учебном плане"""
    write(client, course_id="c1", lesson_id="l2", progress_type="learning_done", progress_value=True)
    data = client.get("/api/progress/dashboard", headers=AUTH).json()
    assert data["overall"]["total_lessons"] == 0
    assert data["overall"]["completion_percentage"] == 0
    assert data["activities"] == []

def test_schedule(client, user_override, today):
    """Тест расписания: дата старта фиксируется при первом обращении"""
    data = client.get("/api/schedule", headers=AUTH).json()
    assert data["start_date"] == "2025-09-03"
    assert data["global_launch_date"] == settings.CURRICULUM_LAUNCH_DATE.isoformat()
    assert len(data["lessons"]) == 120
    first, second = data["lessons"][0], data["lessons"][1]
    assert first["lesson_id"] == "les_1_1"
    assert first["is_first_lesson"] is True
    assert first["unlocked"] is True
    assert second["unlock_date"] == "2025-09-04"
    assert second["unlocked"] is False

    # через неделю дата старта та же
    today["value"] = date(2025, 9, 10)
    data = client.get("/api/schedule", headers=AUTH).json()
    assert data["start_date"] == "2025-09-03"
    assert sum(l["unlocked"] for l in data["lessons"]) == 6

def test_lesson_unlock_status(client, user_override, today):
    """Тест статуса открытия урока"""
    data = client.get("/api/schedule/lessons/les_1_3", headers=AUTH).json()
    # старт в среду 3.09: les_1_3 открывается в пятницу 5.09
    assert data == {
        "lesson_id": "les_1_3",
        "unlocked": False,
        "unlock_date": "2025-09-05",
        "days_until_unlock": 2,
    }

    unknown = client.get("/api/schedule/lessons/bonus", headers=AUTH).json()
    assert unknown["unlocked"] is True
    assert unknown["unlock_date"] is None
    assert unknown["days_until_unlock"] == 0
