import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_create_and_list_my_classrooms(client: AsyncClient, make_user, make_classroom, enroll) -> None:
    teacher = await make_user("teacher")
    other = await make_user("teacher")
    student = await make_user("student")

    created = await client.post(
        "/api/v1/classrooms",
        json={"name": "Cuarto A", "grade_level": "4", "section": "A", "school_year": "2025-2026"},
        headers=teacher.headers,
    )
    assert created.status_code == 201
    classroom_id = created.json()["classroom_id"]
    await make_classroom(other)
    await enroll(teacher, classroom_id, student)

    response = await client.get("/api/v1/classrooms/my-classrooms", headers=teacher.headers)
    assert response.status_code == 200
    [classroom] = response.json()["classrooms"]
    assert classroom["id"] == classroom_id
    assert classroom["max_students"] == 50
    assert classroom["student_count"] == 1


@pytest.mark.asyncio
async def test_duplicate_section_in_same_year_conflicts(client: AsyncClient, make_user) -> None:
    teacher = await make_user("teacher")
    payload = {"name": "Quinto", "grade_level": "5", "section": "B", "school_year": "2025-2026"}

    assert (await client.post("/api/v1/classrooms", json=payload, headers=teacher.headers)).status_code == 201
    again = await client.post("/api/v1/classrooms", json=payload, headers=teacher.headers)
    assert again.status_code == 409
    assert again.json()["details"] == {"section": "B", "school_year": "2025-2026"}

    next_year = await client.post(
        "/api/v1/classrooms", json={**payload, "school_year": "2026-2027"}, headers=teacher.headers
    )
    assert next_year.status_code == 201


@pytest.mark.asyncio
async def test_only_teachers_create_classrooms(client: AsyncClient, make_user) -> None:
    student = await make_user("student")
    response = await client.post(
        "/api/v1/classrooms",
        json={"name": "X", "grade_level": "1", "section": "A", "school_year": "2025"},
        headers=student.headers,
    )
    assert response.status_code == 403
    assert response.json() == {"success": False, "error": "Only teachers can perform this action"}


@pytest.mark.asyncio
async def test_available_hides_full_classrooms(client: AsyncClient, make_user, make_classroom, enroll) -> None:
    teacher = await make_user("teacher", name="Profe Ana")
    occupant = await make_user("student")
    looking = await make_user("student")
    full = await make_classroom(teacher, max_students=1)
    open_room = await make_classroom(teacher, max_students=30)
    await enroll(teacher, full, occupant)

    response = await client.get("/api/v1/classrooms/available", headers=looking.headers)
    assert response.status_code == 200
    [entry] = response.json()["classrooms"]
    assert entry["id"] == open_room
    assert entry["teacher_name"] == "Profe Ana"
    assert entry["current_students"] == 0

    as_teacher = await client.get("/api/v1/classrooms/available", headers=teacher.headers)
    assert as_teacher.status_code == 403


@pytest.mark.asyncio
async def test_classroom_students_roster(client: AsyncClient, make_user, make_classroom, enroll) -> None:
    teacher = await make_user("teacher")
    other = await make_user("teacher")
    student = await make_user("student", name="Beto")
    guardian = await make_user("guardian")
    outsider = await make_user("guardian")
    classroom = await make_classroom(teacher)
    await enroll(teacher, classroom, student)

    for score in (80, 91):
        await client.post(
            "/api/v1/games/sessions",
            json={"game_type": "ortografia", "score": score, "completed": True},
            headers=student.headers,
        )
    await client.post(
        "/api/v1/parent/link-child", json={"student_email": student.email}, headers=guardian.headers
    )
    url = f"/api/v1/classrooms/{classroom}/students"

    response = await client.get(url, headers=teacher.headers)
    assert response.status_code == 200
    [row] = response.json()["students"]
    assert row["name"] == "Beto"
    assert row["status"] == "active"
    assert row["total_games_played"] == 2
    assert row["average_score"] == 85.5

    assert (await client.get(url, headers=guardian.headers)).status_code == 200
    assert (await client.get(url, headers=outsider.headers)).status_code == 403
    assert (await client.get(url, headers=other.headers)).status_code == 403
    assert (await client.get(url, headers=student.headers)).status_code == 403


@pytest.mark.asyncio
async def test_deactivate_requires_empty_classroom(client: AsyncClient, make_user, make_classroom, enroll) -> None:
    teacher = await make_user("teacher")
    student = await make_user("student")
    classroom = await make_classroom(teacher)
    await enroll(teacher, classroom, student)

    busy = await client.delete(f"/api/v1/classrooms/{classroom}", headers=teacher.headers)
    assert busy.status_code == 409
    assert busy.json()["details"] == {"activeStudents": 1}

    await client.delete(f"/api/v1/students/{student.id}/unenroll", headers=teacher.headers)
    done = await client.delete(f"/api/v1/classrooms/{classroom}", headers=teacher.headers)
    assert done.status_code == 200

    listing = await client.get("/api/v1/classrooms/my-classrooms", headers=teacher.headers)
    assert listing.json()["classrooms"] == []

    # Inactive classrooms no longer accept students
    assert (await enroll(teacher, classroom, student)).status_code == 404
