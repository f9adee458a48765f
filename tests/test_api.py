from __future__ import annotations

from fastapi.testclient import TestClient

from api.app import SESS, app
from assessment_core.codec import encode_assessment

from tests.conftest import build_sample_assessment, correct_responses

client = TestClient(app)


def _start(**settings) -> dict:
    payload = {"assessment": encode_assessment(build_sample_assessment(**settings)), "seed": 7}
    resp = client.post("/sessions/start", json=payload)
    assert resp.status_code == 200, resp.text
    return resp.json()


def _json_response(value):
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    return value


def test_full_attempt_through_the_api():
    body = _start(passing_score_percent=70)
    sid = body["session_id"]
    assert body["phase"] == "in-progress"
    assert body["item"]["id"] == "sc1"
    assert "correct_option" not in body["item"]

    answers = correct_responses()
    for _ in range(len(answers)):
        item_id = client.get(f"/sessions/{sid}").json()["item"]["id"]
        resp = client.post(
            f"/sessions/{sid}/response",
            json={"item_id": item_id, "response": _json_response(answers[item_id])},
        )
        assert resp.status_code == 200
        client.post(f"/sessions/{sid}/advance")

    result = client.get(f"/sessions/{sid}/result")
    assert result.status_code == 200
    data = result.json()
    assert data["scorePercent"] == 100
    assert data["passed"] is True
    assert data["correctCount"] == 8

    csv_resp = client.get(f"/sessions/{sid}/review.csv")
    assert csv_resp.status_code == 200
    assert csv_resp.headers["content-type"].startswith("text/csv")
    assert csv_resp.text.splitlines()[0] == "position,item_id,kind,points,answered,correct"

    review = client.get(f"/sessions/{sid}/review").json()
    assert all(row["correct"] for row in review["items"])


def test_transitions_out_of_phase_return_409():
    sid = _start()["session_id"]
    assert client.post(f"/sessions/{sid}/back").status_code == 409
    assert client.get(f"/sessions/{sid}/result").status_code == 409
    assert client.post(f"/sessions/{sid}/response", json={"item_id": "nope", "response": 1}).status_code == 409

    assert client.post(f"/sessions/{sid}/complete").status_code == 200
    late = client.post(f"/sessions/{sid}/response", json={"item_id": "sc1", "response": "x"})
    assert late.status_code == 409
    assert late.json()["detail"]["code"] == "invalid_transition"

    refused = client.post(f"/sessions/{sid}/retry")
    assert refused.status_code == 409
    assert refused.json()["detail"]["code"] == "retry_not_allowed"


def test_retry_starts_the_next_attempt():
    sid = _start(allow_retry=True, max_attempts=2)["session_id"]
    client.post(f"/sessions/{sid}/complete")
    again = client.post(f"/sessions/{sid}/retry")
    assert again.status_code == 200
    body = again.json()
    assert body["phase"] == "in-progress"
    assert body["attempt_number"] == 2
    assert body["answered_count"] == 0
    client.post(f"/sessions/{sid}/complete")
    assert client.post(f"/sessions/{sid}/retry").status_code == 409


def test_tick_expires_the_session():
    sid = _start(time_limit_seconds=1)["session_id"]
    assert client.post(f"/sessions/{sid}/tick", json={"seconds": 30}).json()["time_remaining"] == 30
    assert client.post(f"/sessions/{sid}/tick", json={"seconds": -1}).status_code == 409
    done = client.post(f"/sessions/{sid}/tick", json={"seconds": 30}).json()
    assert done["phase"] == "completed"
    assert done["result"]["elapsedSeconds"] == 60


def test_unreadable_or_empty_assessment_is_rejected():
    assert client.post("/sessions/start", json={"assessment": "{broken"}).status_code == 422
    empty = client.post("/sessions/start", json={"assessment": {"items": []}})
    assert empty.status_code == 422


def test_unknown_and_discarded_sessions():
    assert client.get("/sessions/missing").status_code == 404
    sid = _start()["session_id"]
    assert sid in SESS
    assert client.delete(f"/sessions/{sid}").json() == {"ok": True}
    assert client.get(f"/sessions/{sid}").status_code == 404
