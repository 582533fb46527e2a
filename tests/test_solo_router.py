from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from math_racer.main import app
from math_racer.routers.solo import get_race_engine

HEADERS = {"X-Player-Uid": "player-uid-1"}


@pytest.fixture
def client(race_engine):
    app.dependency_overrides[get_race_engine] = lambda: race_engine
    yield TestClient(app)
    app.dependency_overrides.clear()


def start(client) -> dict:
    response = client.post("/solo/start/1", headers=HEADERS)
    assert response.status_code == 200
    return response.json()


def test_start_hides_the_correct_answer(client):
    body = start(client)

    assert body["status"] == "InProgress"
    assert body["lives_remaining"] == 3
    assert body["total_questions"] == 10
    assert set(body["current_question"]) == {"question_id", "equation", "options"}
    assert "questions" not in body


def test_answer_and_status(client, race_engine, clock):
    body = start(client)
    game = race_engine.game_repository.games[next(iter(race_engine.game_repository.games))]
    clock.advance(2)

    response = client.post(
        f"/solo/{body['game_id']}/answer",
        json={"answer": game.questions[0].correct_answer},
        headers=HEADERS,
    )
    assert response.status_code == 200
    answer = response.json()
    assert answer["is_correct"]
    assert answer["game"]["player_position"] == 1

    response = client.get(f"/solo/{body['game_id']}", headers=HEADERS)
    assert response.status_code == 400
    assert "review_time" in response.json()["details"]

    clock.advance(3)
    response = client.get(f"/solo/{body['game_id']}")
    assert response.status_code == 200
    assert response.json()["game"]["current_question_index"] == 1


def test_wildcard_and_abandon(client):
    body = start(client)

    response = client.post(f"/solo/{body['game_id']}/wildcard/1", headers=HEADERS)
    assert response.status_code == 200
    usage = response.json()
    assert usage["success"]
    assert usage["game"]["current_question"]["options"] == usage["modified_options"]

    response = client.post(f"/solo/{body['game_id']}/wildcard/1", headers=HEADERS)
    assert response.status_code == 400

    response = client.post(f"/solo/{body['game_id']}/abandon", headers=HEADERS)
    assert response.status_code == 200
    assert response.json()["status"] == "PlayerLost"
    assert response.json()["current_question"] is None


def test_errors_are_mapped_to_status_codes(client):
    assert client.post("/solo/start/404", headers=HEADERS).status_code == 404
    assert client.post("/solo/start/1", headers={"X-Player-Uid": "player-uid-2"}).status_code == 400
    assert client.get(f"/solo/{uuid4()}", headers=HEADERS).status_code == 404
    assert client.post("/solo/start/1").status_code == 422


def test_error_bodies_follow_the_documented_schema(client):
    response = client.get(f"/solo/{uuid4()}", headers=HEADERS)
    assert response.json() == {"message": response.json()["message"], "details": None}

    schema = client.get("/openapi.json").json()
    assert "ErrorSchema" in schema["components"]["schemas"]
    responses = schema["paths"]["/solo/{game_id}"]["get"]["responses"]
    assert responses["404"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorSchema")
    assert responses["400"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorSchema")
