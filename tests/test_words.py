import pytest
from httpx import AsyncClient

from app.api.v1.words.service import normalize_word
from app.core.exceptions import ValidationError
from app.db.init_db import DEFAULT_WORDS, seed_default_words


def _word(**overrides) -> dict:
    payload = {"word": "casa", "hint": "Donde vives", "category": "hogar", "difficulty": 1}
    payload.update(overrides)
    return payload


def test_normalize_word() -> None:
    assert normalize_word("  árbol ") == "ÁRBOL"
    assert normalize_word("pingüino") == "PINGÜINO"
    assert normalize_word("niño") == "NIÑO"
    with pytest.raises(ValidationError):
        normalize_word("yo")
    with pytest.raises(ValidationError):
        normalize_word("casa2")
    with pytest.raises(ValidationError):
        normalize_word("dos palabras")


@pytest.mark.asyncio
async def test_create_word_normalizes(client: AsyncClient, make_user) -> None:
    teacher = await make_user("teacher", name="Profe Luz")

    response = await client.post("/api/v1/titanic/words", json=_word(), headers=teacher.headers)
    assert response.status_code == 201, response.text
    word = response.json()["word"]
    assert word["word"] == "CASA"
    assert word["category"] == "HOGAR"
    assert word["is_active"] is True
    assert word["creator_name"] == "Profe Luz"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"word": "ab"},
        {"word": "casa1"},
        {"difficulty": 4},
        {"hint": "   "},
        {"category": ""},
    ],
)
async def test_create_word_validation(client: AsyncClient, make_user, overrides) -> None:
    teacher = await make_user("teacher")
    response = await client.post("/api/v1/titanic/words", json=_word(**overrides), headers=teacher.headers)
    assert response.status_code == 400
    assert response.json()["code"] == "validation"


@pytest.mark.asyncio
async def test_duplicate_word_conflicts(client: AsyncClient, make_user) -> None:
    teacher = await make_user("teacher")
    await client.post("/api/v1/titanic/words", json=_word(), headers=teacher.headers)

    duplicate = await client.post("/api/v1/titanic/words", json=_word(word="CASA"), headers=teacher.headers)
    assert duplicate.status_code == 409
    assert duplicate.json()["details"] == {"word": "CASA"}


@pytest.mark.asyncio
async def test_only_teachers_manage_words(client: AsyncClient, make_user) -> None:
    student = await make_user("student")
    assert (await client.post("/api/v1/titanic/words", json=_word(), headers=student.headers)).status_code == 403
    assert (await client.get("/api/v1/titanic/words", headers=student.headers)).status_code == 403


@pytest.mark.asyncio
async def test_update_toggle_delete(client: AsyncClient, make_user) -> None:
    teacher = await make_user("teacher")
    headers = teacher.headers
    created = await client.post("/api/v1/titanic/words", json=_word(), headers=headers)
    word_id = created.json()["word"]["id"]
    await client.post("/api/v1/titanic/words", json=_word(word="perro"), headers=headers)

    updated = await client.put(
        f"/api/v1/titanic/words/{word_id}", json={"difficulty": 2, "hint": "Hogar"}, headers=headers
    )
    assert updated.status_code == 200
    assert updated.json()["word"]["difficulty"] == 2
    assert updated.json()["word"]["word"] == "CASA"

    clash = await client.put(f"/api/v1/titanic/words/{word_id}", json={"word": "perro"}, headers=headers)
    assert clash.status_code == 409

    toggled = await client.patch(f"/api/v1/titanic/words/{word_id}/toggle", headers=headers)
    assert toggled.json()["word"]["is_active"] is False
    assert toggled.json()["message"] == "Word deactivated successfully"

    deleted = await client.delete(f"/api/v1/titanic/words/{word_id}", headers=headers)
    assert deleted.status_code == 200
    missing = await client.delete(f"/api/v1/titanic/words/{word_id}", headers=headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_list_filters_and_stats(client: AsyncClient, make_user) -> None:
    teacher = await make_user("teacher")
    headers = teacher.headers
    for payload in (
        _word(word="gato", category="animales", difficulty=1),
        _word(word="elefante", category="animales", difficulty=3, hint="Tiene trompa"),
        _word(word="manzana", category="frutas", difficulty=2, is_active=False),
    ):
        assert (await client.post("/api/v1/titanic/words", json=payload, headers=headers)).status_code == 201

    animals = await client.get("/api/v1/titanic/words", params={"category": "Animales"}, headers=headers)
    assert {w["word"] for w in animals.json()["words"]} == {"GATO", "ELEFANTE"}

    everything = await client.get("/api/v1/titanic/words", params={"category": "TODAS"}, headers=headers)
    assert len(everything.json()["words"]) == 3

    inactive = await client.get("/api/v1/titanic/words", params={"active": "false"}, headers=headers)
    assert [w["word"] for w in inactive.json()["words"]] == ["MANZANA"]

    by_hint = await client.get("/api/v1/titanic/words", params={"search": "trompa"}, headers=headers)
    assert [w["word"] for w in by_hint.json()["words"]] == ["ELEFANTE"]

    stats = (await client.get("/api/v1/titanic/words/stats", headers=headers)).json()["stats"]
    assert stats["total"] == 3
    assert stats["active"] == 2
    assert stats["inactive"] == 1
    assert stats["byDifficulty"] == {"1": 1, "2": 1, "3": 1}
    assert stats["byCategory"] == {"ANIMALES": 2, "FRUTAS": 1}


@pytest.mark.asyncio
async def test_active_words_are_public(client: AsyncClient, make_user) -> None:
    teacher = await make_user("teacher")
    for payload in (
        _word(word="sol", difficulty=1),
        _word(word="luna", difficulty=1, is_active=False),
        _word(word="estrella", difficulty=2),
    ):
        await client.post("/api/v1/titanic/words", json=payload, headers=teacher.headers)

    response = await client.get("/api/v1/titanic/words/active/1")
    assert response.status_code == 200
    assert response.json()["words"] == [{"word": "SOL", "hint": "Donde vives", "category": "HOGAR"}]

    assert (await client.get("/api/v1/titanic/words/active/7")).status_code == 400


@pytest.mark.asyncio
async def test_scoped_and_available_words(client: AsyncClient, make_user, make_classroom) -> None:
    teacher = await make_user("teacher")
    other = await make_user("teacher")
    mine = await make_classroom(teacher)
    theirs = await make_classroom(other)

    forbidden = await client.post(
        "/api/v1/titanic/words/scoped", json=_word(word="ajeno", classroom_id=theirs), headers=teacher.headers
    )
    assert forbidden.status_code == 403

    await client.post("/api/v1/titanic/words", json=_word(word="propia"), headers=teacher.headers)
    await client.post(
        "/api/v1/titanic/words/scoped", json=_word(word="mundial", is_global=True), headers=other.headers
    )
    await client.post(
        "/api/v1/titanic/words/scoped", json=_word(word="privada"), headers=other.headers
    )
    scoped = await client.post(
        "/api/v1/titanic/words/scoped", json=_word(word="salon", classroom_id=mine), headers=other.headers
    )
    assert scoped.status_code == 403

    response = await client.get(
        "/api/v1/titanic/words/available", params={"classroom_id": mine}, headers=teacher.headers
    )
    assert response.status_code == 200
    words = [(w["word"], w["source_type"]) for w in response.json()["words"]]
    assert words == [("PROPIA", "own"), ("MUNDIAL", "global")]


@pytest.mark.asyncio
async def test_seed_default_words_only_when_empty(session_factory) -> None:
    async with session_factory() as db:
        assert await seed_default_words(db) == len(DEFAULT_WORDS)
        assert await seed_default_words(db) == 0
