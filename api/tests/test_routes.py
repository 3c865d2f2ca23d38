from __future__ import annotations

import os
from typing import Any

import pytest
from fastapi.testclient import TestClient

import gigboard.core.security as security
from gigboard.core.config import get_settings
from gigboard.main import app
from gigboard.services.repository import get_repository
from gigboard.services.store import InMemoryStore

USERS = {
    "employer-token": {"id": "employer-1", "phone": "+15550000001"},
    "worker-token": {"id": "worker-1", "phone": "+15550000002"},
    "worker2-token": {"id": "worker-2", "phone": "+15550000003"},
}


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def api_client(monkeypatch: pytest.MonkeyPatch) -> TestClient:
    os.environ["GB_SUPABASE_URL"] = "https://example.supabase.co"
    os.environ["GB_SUPABASE_ANON_KEY"] = "anon-key"
    get_settings.cache_clear()

    async def _fake_fetch(*, token: str, **_: Any) -> dict[str, Any]:
        user = USERS.get(token)
        if user is None:
            raise security.HTTPException(status_code=401, detail="invalid bearer token")
        return user

    monkeypatch.setattr(security, "_fetch_supabase_user", _fake_fetch)

    store = InMemoryStore()
    app.dependency_overrides[get_repository] = lambda: store

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
    os.environ.pop("GB_SUPABASE_URL", None)
    os.environ.pop("GB_SUPABASE_ANON_KEY", None)
    get_settings.cache_clear()


def _create_job(client: TestClient, **overrides: Any) -> dict[str, Any]:
    payload = {
        "title": "Fix the fence",
        "description": "Two panels",
        "payment": "500",
        "location_text": "Pune",
        "required_skills": ["carpentry"],
    }
    payload.update(overrides)
    response = client.post("/jobs", json=payload, headers=_auth("employer-token"))
    assert response.status_code == 201, response.text
    return response.json()


def _apply(client: TestClient, job_id: str, token: str = "worker-token") -> dict[str, Any]:
    response = client.post("/applications", json={"job_id": job_id, "message": "hi"}, headers=_auth(token))
    assert response.status_code == 201, response.text
    return response.json()


def test_requests_without_bearer_token_are_unauthorized(api_client: TestClient) -> None:
    assert api_client.get("/users/me").status_code == 401
    assert api_client.get("/users/me", headers={"Authorization": "Basic abc"}).status_code == 401
    assert api_client.get("/users/me", headers=_auth("unknown-token")).status_code == 401


def test_me_is_created_on_first_request_and_patchable(api_client: TestClient) -> None:
    response = api_client.get("/users/me", headers=_auth("worker-token"))
    assert response.status_code == 200
    assert response.json()["id"] == "worker-1"
    assert response.json()["phone"] == "+15550000002"
    assert response.json()["push_enabled"] is False

    response = api_client.patch(
        "/users/me",
        json={"name": "  Asha ", "device_token": "device-1"},
        headers=_auth("worker-token"),
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Asha"
    assert response.json()["push_enabled"] is True


def test_full_flow_over_http(api_client: TestClient) -> None:
    job = _create_job(api_client)
    assert job["status"] == "Open"

    available = api_client.get("/jobs/available", headers=_auth("worker-token")).json()
    assert [j["id"] for j in available] == [job["id"]]
    assert api_client.get("/jobs/available", headers=_auth("employer-token")).json() == []

    first = _apply(api_client, job["id"])
    second = _apply(api_client, job["id"], "worker2-token")

    applicants = api_client.get(f"/jobs/{job['id']}/applicants", headers=_auth("employer-token"))
    assert applicants.status_code == 200
    assert len(applicants.json()) == 2
    assert api_client.get(f"/jobs/{job['id']}/applicants", headers=_auth("worker-token")).status_code == 403

    unread = api_client.get("/notifications/unread-count", headers=_auth("employer-token")).json()
    assert unread == {"count": 2}

    accepted = api_client.post(f"/applications/{first['id']}/accept", headers=_auth("employer-token"))
    assert accepted.status_code == 200
    body = accepted.json()
    assert body["rejected_applications"] == 1
    assert body["job"]["status"] == "InProgress"
    engagement_id = body["engagement"]["id"]

    losing = api_client.post(f"/applications/{second['id']}/accept", headers=_auth("employer-token"))
    assert losing.status_code == 409
    assert losing.json()["detail"]["code"] == "WORKER_EXISTS"

    engagements = api_client.get("/engagements", params={"role": "worker"}, headers=_auth("worker-token")).json()
    assert [e["id"] for e in engagements] == [engagement_id]

    completed = api_client.post(f"/engagements/{engagement_id}/complete", headers=_auth("employer-token"))
    assert completed.status_code == 200
    assert completed.json()["status"] == "Completed"

    rated = api_client.post(
        f"/engagements/{engagement_id}/rate",
        json={"rating": 5, "review": "great"},
        headers=_auth("employer-token"),
    )
    assert rated.status_code == 200
    assert rated.json()["rated_user_id"] == "worker-1"
    assert rated.json()["rating_count"] == 1

    again = api_client.post(
        f"/engagements/{engagement_id}/rate",
        json={"rating": 4},
        headers=_auth("employer-token"),
    )
    assert again.status_code == 409
    assert again.json()["detail"]["code"] == "ALREADY_RATED"

    me = api_client.get("/users/me", headers=_auth("worker-token")).json()
    assert me["rating_average"] == 5.0
    assert me["rating_count"] == 1


def test_rating_out_of_range_is_unprocessable(api_client: TestClient) -> None:
    response = api_client.post(
        "/engagements/some-id/rate",
        json={"rating": 6},
        headers=_auth("employer-token"),
    )
    assert response.status_code == 422


def test_status_mapping(api_client: TestClient) -> None:
    job = _create_job(api_client)

    assert api_client.get("/jobs/missing", headers=_auth("worker-token")).status_code == 404

    own = api_client.post("/applications", json={"job_id": job["id"]}, headers=_auth("employer-token"))
    assert own.status_code == 409
    assert own.json()["detail"]["code"] == "OWN_JOB"

    forbidden = api_client.post(f"/jobs/{job['id']}/close", headers=_auth("worker-token"))
    assert forbidden.status_code == 403

    blank_title = api_client.post(
        "/jobs",
        json={"title": "   ", "payment": "500", "location_text": "Pune"},
        headers=_auth("employer-token"),
    )
    assert blank_title.status_code == 422

    bad_update = api_client.patch(f"/jobs/{job['id']}", json={"max_workers": 0}, headers=_auth("employer-token"))
    assert bad_update.status_code == 422


def test_withdraw_and_mine_listing(api_client: TestClient) -> None:
    job = _create_job(api_client)
    application = _apply(api_client, job["id"])

    withdrawn = api_client.delete(f"/applications/{application['id']}", headers=_auth("worker-token"))
    assert withdrawn.status_code == 200
    assert withdrawn.json()["status"] == "Withdrawn"

    mine = api_client.get("/applications/mine", headers=_auth("worker-token")).json()
    assert [a["status"] for a in mine] == ["Withdrawn"]

    refreshed = api_client.get(f"/jobs/{job['id']}", headers=_auth("worker-token")).json()
    assert refreshed["applicant_count"] == 0


def test_cancel_job_with_reason(api_client: TestClient) -> None:
    job = _create_job(api_client)
    application = _apply(api_client, job["id"])
    api_client.post(f"/applications/{application['id']}/accept", headers=_auth("employer-token"))

    response = api_client.post(
        f"/jobs/{job['id']}/cancel",
        json={"reason": "Rain"},
        headers=_auth("employer-token"),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["job"]["status"] == "Cancelled"
    assert body["engagement"]["status"] == "Cancelled"
    assert body["engagement"]["cancellation_reason"] == "Rain"

    again = api_client.post(f"/jobs/{job['id']}/cancel", headers=_auth("employer-token"))
    assert again.status_code == 409
    assert again.json()["detail"]["code"] == "ALREADY_CANCELLED"


def test_update_and_close_job(api_client: TestClient) -> None:
    job = _create_job(api_client, start_time="9am")

    patched = api_client.patch(
        f"/jobs/{job['id']}",
        json={"title": "Fix two fences", "start_time": None},
        headers=_auth("employer-token"),
    )
    assert patched.status_code == 200
    assert patched.json()["title"] == "Fix two fences"
    assert patched.json()["start_time"] is None

    closed = api_client.post(f"/jobs/{job['id']}/close", headers=_auth("employer-token"))
    assert closed.status_code == 200
    assert closed.json()["status"] == "Closed"

    mine = api_client.get("/jobs/mine", params={"status": "Closed"}, headers=_auth("employer-token")).json()
    assert [j["id"] for j in mine] == [job["id"]]


def test_notification_read_endpoints(api_client: TestClient) -> None:
    job = _create_job(api_client)
    _apply(api_client, job["id"])
    _apply(api_client, job["id"], "worker2-token")

    inbox = api_client.get("/notifications", headers=_auth("employer-token")).json()
    assert len(inbox) == 2
    assert inbox[0]["type"] == "job_request"

    read = api_client.post(f"/notifications/{inbox[0]['id']}/read", headers=_auth("employer-token"))
    assert read.status_code == 200
    assert read.json()["is_read"] is True

    foreign = api_client.post(f"/notifications/{inbox[1]['id']}/read", headers=_auth("worker-token"))
    assert foreign.status_code == 404

    unread = api_client.get("/notifications", params={"unread_only": True}, headers=_auth("employer-token"))
    assert [n["id"] for n in unread.json()] == [inbox[1]["id"]]

    all_read = api_client.post("/notifications/read-all", headers=_auth("employer-token"))
    assert all_read.json() == {"updated": 1}


def test_public_profile_exposes_rating_but_not_contact(api_client: TestClient) -> None:
    api_client.get("/users/me", headers=_auth("worker-token"))

    response = api_client.get("/users/worker-1", headers=_auth("employer-token"))
    assert response.status_code == 200
    assert response.json() == {"id": "worker-1", "name": None, "rating_average": 0.0, "rating_count": 0}

    assert api_client.get("/users/nobody", headers=_auth("employer-token")).status_code == 404


def test_notification_delete_endpoints(api_client: TestClient) -> None:
    job = _create_job(api_client)
    _apply(api_client, job["id"])
    _apply(api_client, job["id"], "worker2-token")
    inbox = api_client.get("/notifications", headers=_auth("employer-token")).json()

    foreign = api_client.delete(f"/notifications/{inbox[0]['id']}", headers=_auth("worker-token"))
    assert foreign.status_code == 404

    deleted = api_client.delete(f"/notifications/{inbox[0]['id']}", headers=_auth("employer-token"))
    assert deleted.status_code == 204
    assert [n["id"] for n in api_client.get("/notifications", headers=_auth("employer-token")).json()] == [
        inbox[1]["id"]
    ]

    cleared = api_client.delete("/notifications", headers=_auth("employer-token"))
    assert cleared.json() == {"deleted": 1}
    assert api_client.get("/notifications/unread-count", headers=_auth("employer-token")).json() == {"count": 0}


def test_skill_post_flow_over_http(api_client: TestClient) -> None:
    created = api_client.post(
        "/skill-posts",
        json={"skill": "Plumbing", "description": "Leaks", "category": "Home"},
        headers=_auth("worker-token"),
    )
    assert created.status_code == 201, created.text
    post = created.json()
    assert post["status"] == "Active"

    listed = api_client.get("/skill-posts", params={"search": "plumb"}, headers=_auth("employer-token")).json()
    assert [p["id"] for p in listed] == [post["id"]]

    viewed = api_client.get(f"/skill-posts/{post['id']}", headers=_auth("employer-token"))
    assert viewed.json()["views"] == 1

    own = api_client.post(f"/skill-posts/{post['id']}/request", json={}, headers=_auth("worker-token"))
    assert own.status_code == 409
    assert own.json()["detail"]["code"] == "OWN_POST"

    requested = api_client.post(
        f"/skill-posts/{post['id']}/request",
        json={"message": "Monday?"},
        headers=_auth("employer-token"),
    )
    assert requested.status_code == 200
    assert requested.json()["request_count"] == 1

    inbox = api_client.get("/notifications", headers=_auth("worker-token")).json()
    assert inbox[0]["type"] == "skill_request"
    assert inbox[0]["data"]["skillPostId"] == post["id"]

    forbidden = api_client.patch(f"/skill-posts/{post['id']}", json={"skill": "x"}, headers=_auth("employer-token"))
    assert forbidden.status_code == 403
    bad_status = api_client.patch(
        f"/skill-posts/{post['id']}", json={"status": "Deleted"}, headers=_auth("worker-token")
    )
    assert bad_status.status_code == 422

    removed = api_client.delete(f"/skill-posts/{post['id']}", headers=_auth("worker-token"))
    assert removed.json()["status"] == "Deleted"
    assert api_client.get("/skill-posts/mine", headers=_auth("worker-token")).json() == []
    assert api_client.get(f"/skill-posts/{post['id']}", headers=_auth("employer-token")).status_code == 404
