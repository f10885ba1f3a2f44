from datetime import datetime, timedelta
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.api.v1.progress.service import build_progress_stats
from app.core.models import GameConfig, GameSession


async def _play(client: AsyncClient, player, game_type: str, score: int, completed: bool = True, **extra):
    response = await client.post(
        "/api/v1/games/sessions",
        json={"game_type": game_type, "score": score, "completed": completed, **extra},
        headers=player.headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["session_id"]


def test_build_progress_stats() -> None:
    sessions = [
        GameSession(game_type="titanic", score=10, completed=True, created_at=datetime.utcnow()),
        GameSession(game_type="titanic", score=15, completed=False, created_at=datetime.utcnow()),
        GameSession(game_type="ahorcado", score=8, completed=True, created_at=datetime.utcnow()),
    ]
    stats = build_progress_stats(sessions)
    assert stats.total_sessions == 3
    assert stats.games_completed == 2
    assert stats.total_score == 33
    assert stats.average_score == 11.0
    assert stats.by_game_type["titanic"].best_score == 15
    assert stats.by_game_type["titanic"].average_score == 12.5
    assert stats.by_game_type["ahorcado"].completed == 1
    assert stats.by_game_type["reglas"].sessions == 0

    empty = build_progress_stats([])
    assert empty.average_score == 0.0


@pytest.mark.asyncio
async def test_session_defaults_to_active_classroom(client: AsyncClient, make_user, make_classroom, enroll) -> None:
    teacher = await make_user("teacher")
    student = await make_user("student")
    classroom = await make_classroom(teacher)
    await enroll(teacher, classroom, student)

    await _play(client, student, "ortografia", 70, total_questions=10, correct_answers=7, incorrect_answers=3)
    await _play(client, student, "reglas", 85, completed=False)

    response = await client.get("/api/v1/games/progress", headers=student.headers)
    assert response.status_code == 200
    data = response.json()
    assert [s["game_type"] for s in data["progress"]] == ["reglas", "ortografia"]
    assert all(s["classroom_id"] == classroom for s in data["progress"])
    assert data["stats"]["total_sessions"] == 2
    assert data["stats"]["games_completed"] == 1
    assert data["stats"]["average_score"] == 77.5


@pytest.mark.asyncio
async def test_session_ignores_client_classroom(
    client: AsyncClient, make_user, make_classroom, enroll, session_factory
) -> None:
    teacher = await make_user("teacher")
    other_teacher = await make_user("teacher")
    student = await make_user("student")
    own = await make_classroom(teacher)
    foreign = await make_classroom(other_teacher)
    await enroll(teacher, own, student)

    # Neither a classroom the player is not enrolled in nor an unknown id is stored
    first = await _play(client, student, "titanic", 10, classroom_id=foreign)
    second = await _play(client, student, "titanic", 20, classroom_id=str(uuid4()))

    async with session_factory() as db:
        rows = (
            await db.execute(
                select(GameSession).where(GameSession.id.in_([UUID(first), UUID(second)]))
            )
        ).scalars().all()
    assert len(rows) == 2
    assert {str(row.classroom_id) for row in rows} == {own}

    report = await client.get(f"/api/v1/reports/classroom/{foreign}/progress", headers=other_teacher.headers)
    assert report.json()["report"] == []


@pytest.mark.asyncio
async def test_session_without_enrollment_has_no_classroom(client: AsyncClient, make_user, make_classroom) -> None:
    teacher = await make_user("teacher")
    player = await make_user("student")
    classroom = await make_classroom(teacher)

    await _play(client, player, "reglas", 5, classroom_id=classroom)

    progress = (await client.get("/api/v1/games/progress", headers=player.headers)).json()
    assert progress["progress"][0]["classroom_id"] is None


@pytest.mark.asyncio
async def test_session_validation(client: AsyncClient, make_user) -> None:
    player = await make_user("student")
    bad_type = await client.post(
        "/api/v1/games/sessions", json={"game_type": "chess", "score": 1}, headers=player.headers
    )
    assert bad_type.status_code == 400
    negative = await client.post(
        "/api/v1/games/sessions", json={"game_type": "titanic", "score": -1}, headers=player.headers
    )
    assert negative.status_code == 400


@pytest.mark.asyncio
async def test_who_can_view_progress(client: AsyncClient, make_user, make_classroom, enroll) -> None:
    teacher = await make_user("teacher")
    stranger = await make_user("teacher")
    student = await make_user("student")
    guardian = await make_user("guardian")
    other_guardian = await make_user("guardian")
    classmate = await make_user("student")
    classroom = await make_classroom(teacher)
    await enroll(teacher, classroom, student)
    await enroll(teacher, classroom, classmate)
    await _play(client, student, "titanic", 40)
    url = f"/api/v1/games/progress/{student.id}"

    assert (await client.get(url, headers=student.headers)).status_code == 200
    assert (await client.get(url, headers=teacher.headers)).status_code == 200
    assert (await client.get(url, headers=stranger.headers)).status_code == 403
    assert (await client.get(url, headers=classmate.headers)).status_code == 403
    assert (await client.get(url, headers=guardian.headers)).status_code == 403

    await client.post(
        "/api/v1/parent/link-child", json={"student_email": student.email}, headers=guardian.headers
    )
    seen = await client.get(url, headers=guardian.headers)
    assert seen.status_code == 200
    assert seen.json()["stats"]["total_score"] == 40

    # A guardian whose link has can_view_progress turned off is refused
    await client.post(
        "/api/v1/parent/link-child", json={"student_email": student.email}, headers=other_guardian.headers
    )
    await client.put(
        f"/api/v1/students/{student.id}/parents/{other_guardian.id}",
        json={"can_view_progress": False},
        headers=teacher.headers,
    )
    assert (await client.get(url, headers=other_guardian.headers)).status_code == 403


@pytest.mark.asyncio
async def test_classroom_report(client: AsyncClient, make_user, make_classroom, enroll) -> None:
    teacher = await make_user("teacher")
    other = await make_user("teacher")
    strong = await make_user("student", name="Ana")
    idle = await make_user("student", name="Beto")
    classroom = await make_classroom(teacher)
    await enroll(teacher, classroom, strong)
    await enroll(teacher, classroom, idle)
    await _play(client, strong, "titanic", 90, time_spent=30)
    await _play(client, strong, "ahorcado", 70, completed=False, time_spent=12)

    response = await client.get(f"/api/v1/reports/classroom/{classroom}/progress", headers=teacher.headers)
    assert response.status_code == 200
    first, second = response.json()["report"]
    assert first["student_name"] == "Ana"
    assert first["total_sessions"] == 2
    assert first["completed_sessions"] == 1
    assert first["average_score"] == 80.0
    assert first["total_time_spent"] == 42
    assert first["sessions_by_game"] == {"ortografia": 0, "reglas": 0, "ahorcado": 1, "titanic": 1}
    assert second["student_name"] == "Beto"
    assert second["total_sessions"] == 0
    assert second["average_score"] is None

    forbidden = await client.get(f"/api/v1/reports/classroom/{classroom}/progress", headers=other.headers)
    assert forbidden.status_code == 403


@pytest.mark.asyncio
async def test_teacher_dashboard(client: AsyncClient, make_user, make_classroom, enroll) -> None:
    teacher = await make_user("teacher")
    s1 = await make_user("student")
    s2 = await make_user("student")
    outsider = await make_user("student")
    c1 = await make_classroom(teacher)
    c2 = await make_classroom(teacher)
    await make_classroom(teacher)
    await enroll(teacher, c1, s1)
    await enroll(teacher, c2, s2)
    await _play(client, s1, "titanic", 10)
    await _play(client, s2, "reglas", 20)
    await _play(client, outsider, "reglas", 30)
    await client.post(
        "/api/v1/titanic/words",
        json={"word": "barco", "hint": "Flota", "category": "transporte", "difficulty": 1},
        headers=teacher.headers,
    )

    response = await client.get("/api/v1/dashboard/teacher", headers=teacher.headers)
    assert response.status_code == 200
    assert response.json()["dashboard"] == {
        "total_classrooms": 3,
        "total_students": 2,
        "recent_activity": 2,
        "words_created": 1,
    }

    assert (await client.get("/api/v1/dashboard/teacher", headers=s1.headers)).status_code == 403


@pytest.mark.asyncio
async def test_game_configs_are_public_and_ordered(client: AsyncClient, make_user, session_factory) -> None:
    teacher = await make_user("teacher", name="Marta Ruiz")
    base = datetime.utcnow()
    async with session_factory() as db:
        db.add_all(
            [
                GameConfig(
                    game_type="ahorcado", words=["barco"], category="mar", difficulty_level=2,
                    created_by=UUID(teacher.id), created_at=base,
                ),
                GameConfig(
                    game_type="ahorcado", words=["sol"], hints={"sol": "Brilla"}, difficulty_level=1,
                    created_by=UUID(teacher.id), created_at=base,
                ),
                GameConfig(
                    game_type="ahorcado", words=["luna"], difficulty_level=1,
                    created_by=UUID(teacher.id), created_at=base + timedelta(minutes=5),
                ),
                GameConfig(
                    game_type="ahorcado", words=["viejo"], difficulty_level=1, active=False,
                    created_by=UUID(teacher.id), created_at=base,
                ),
                GameConfig(
                    game_type="reglas", words=["regla"], difficulty_level=1,
                    created_by=UUID(teacher.id), created_at=base,
                ),
            ]
        )
        await db.commit()

    response = await client.get("/api/v1/games/config/ahorcado")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    configs = data["configs"]
    assert [c["words"] for c in configs] == [["luna"], ["sol"], ["barco"]]
    assert configs[1]["hints"] == {"sol": "Brilla"}
    assert configs[0]["hints"] == {}
    assert all(c["creator_name"] == "Marta Ruiz" for c in configs)

    empty = await client.get("/api/v1/games/config/titanic")
    assert empty.json()["configs"] == []

    unknown = await client.get("/api/v1/games/config/chess")
    assert unknown.status_code == 400
