from __future__ import annotations

from pathlib import Path
from typing import Dict

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from devconnect.auth import create_access_token
from devconnect.config import get_settings
from devconnect.db.session import create_schema, dispose_engine, session_scope
from devconnect.errors import UpstreamFailure
from devconnect.main import app
from devconnect.profile_store import profile_store
from devconnect.repositories.profiles import profile_repository
from devconnect.repositories.users import user_repository


@pytest.fixture(autouse=True)
def _database(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("DEVCONNECT_DATABASE_URL", f"sqlite:///{tmp_path / 'routes.db'}")
    get_settings.cache_clear()
    dispose_engine()
    create_schema()
    yield
    dispose_engine()
    get_settings.cache_clear()


@pytest.fixture()
def client() -> TestClient:
    return TestClient(app)


def _register(name: str = "Ada") -> Dict[str, str]:
    with session_scope() as session:
        user = user_repository.create(
            session,
            name=name,
            email=f"{name.lower()}@example.com",
            password_hash="unused",
            avatar=f"https://avatars.example/{name.lower()}",
        )
        user_id = user.id
    return {"id": user_id, "Authorization": f"Bearer {create_access_token(user_id)}"}


def _auth(user: Dict[str, str]) -> Dict[str, str]:
    return {"Authorization": user["Authorization"]}


def _create_profile(client: TestClient, user: Dict[str, str], **fields) -> dict:
    body = {"status": "Developer", "skills": "js, css, html", **fields}
    response = client.post("/api/profile", json=body, headers=_auth(user))
    assert response.status_code == 200, response.text
    return response.json()


def test_routes_require_a_token(client: TestClient) -> None:
    response = client.get("/api/profile/me")

    assert response.status_code == 401
    assert response.json() == {"msg": "No token, authorization denied"}


def test_garbage_token_is_rejected(client: TestClient) -> None:
    response = client.get("/api/profile/me", headers={"x-auth-token": "not-a-jwt"})

    assert response.status_code == 401
    assert response.json() == {"msg": "Token is not valid"}


def test_own_profile_missing(client: TestClient) -> None:
    user = _register()

    response = client.get("/api/profile/me", headers=_auth(user))

    assert response.status_code == 404
    assert response.json() == {"msg": "There is no profile for this user"}


def test_create_profile_returns_document(client: TestClient) -> None:
    user = _register()

    profile = _create_profile(client, user, company="Acme", twitter="https://twitter.com/ada")

    assert profile["skills"] == ["js", "css", "html"]
    assert profile["company"] == "Acme"
    assert profile["social"] == {"twitter": "https://twitter.com/ada"}
    assert profile["owner"] == {"id": user["id"], "name": "Ada", "avatar": "https://avatars.example/ada"}
    assert "bio" not in profile
    assert profile["experience"] == []


def test_put_is_an_alias_for_create_or_update(client: TestClient) -> None:
    user = _register()
    _create_profile(client, user, company="Acme")

    response = client.put("/api/profile", json={"status": "Lead", "skills": "go"}, headers=_auth(user))

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "Lead"
    assert body["company"] == "Acme"
    assert client.get("/api/profile/me", headers=_auth(user)).json() == body


def test_validation_errors_list_each_field(client: TestClient) -> None:
    user = _register()

    response = client.post("/api/profile", json={"status": "", "skills": " , "}, headers=_auth(user))

    assert response.status_code == 400
    params = {error["param"] for error in response.json()["errors"]}
    assert params == {"status", "skills"}


def test_public_reads(client: TestClient) -> None:
    ada = _register("Ada")
    grace = _register("Grace")
    _create_profile(client, ada)
    _create_profile(client, grace, status="Admiral")

    listing = client.get("/api/profile")
    assert listing.status_code == 200
    assert {item["owner"]["name"] for item in listing.json()} == {"Ada", "Grace"}

    by_owner = client.get(f"/api/profile/user/{grace['id']}")
    assert by_owner.status_code == 200
    assert by_owner.json()["status"] == "Admiral"


@pytest.mark.parametrize("owner_id", ["not-an-id", "00000000-0000-0000-0000-000000000000"])
def test_profile_by_owner_not_found(client: TestClient, owner_id: str) -> None:
    response = client.get(f"/api/profile/user/{owner_id}")

    assert response.status_code == 404
    assert response.json() == {"msg": "Profile not found"}


def test_experience_lifecycle(client: TestClient) -> None:
    user = _register()
    _create_profile(client, user)
    entry = {"title": "Eng", "company": "Acme", "from": "2020-01-01", "current": True}

    first = client.put("/api/profile/experience", json=entry, headers=_auth(user))
    assert first.status_code == 200
    experience = first.json()["experience"]
    assert len(experience) == 1
    assert experience[0]["from"] == "2020-01-01"
    assert "to" not in experience[0]

    second = client.put(
        "/api/profile/experience",
        json={**entry, "description": "updated"},
        headers=_auth(user),
    )
    assert [item["description"] for item in second.json()["experience"]] == ["updated"]
    assert second.json()["experience"][0]["id"] == experience[0]["id"]

    removed = client.delete(f"/api/profile/experience/{experience[0]['id']}", headers=_auth(user))
    assert removed.status_code == 200
    assert removed.json()["experience"] == []


def test_experience_requires_title_company_and_from(client: TestClient) -> None:
    user = _register()
    _create_profile(client, user)

    response = client.put("/api/profile/experience", json={"title": "Eng"}, headers=_auth(user))

    assert response.status_code == 400
    params = {error["param"] for error in response.json()["errors"]}
    assert params == {"company", "from"}


def test_unknown_entry_id_is_a_bad_request(client: TestClient) -> None:
    user = _register()
    _create_profile(client, user)

    response = client.delete("/api/profile/experience/abc123", headers=_auth(user))

    assert response.status_code == 400
    assert response.json() == {"msg": "Experience id invalid"}


def test_education_lifecycle(client: TestClient) -> None:
    user = _register()
    _create_profile(client, user)
    entry = {"school": "MIT", "degree": "BSc", "fieldofstudy": "Physics", "from": "2012-09-01", "to": "2016-06-01"}

    created = client.put("/api/profile/education", json=entry, headers=_auth(user))
    assert created.status_code == 200
    education = created.json()["education"]
    assert education[0]["to"] == "2016-06-01"

    missing = client.delete("/api/profile/education/abc123", headers=_auth(user))
    assert missing.status_code == 400
    assert missing.json() == {"msg": "Education id invalid"}

    removed = client.delete(f"/api/profile/education/{education[0]['id']}", headers=_auth(user))
    assert removed.json()["education"] == []


def test_sub_list_edit_without_profile(client: TestClient) -> None:
    user = _register()

    response = client.put(
        "/api/profile/experience",
        json={"title": "Eng", "company": "Acme", "from": "2020-01-01"},
        headers=_auth(user),
    )

    assert response.status_code == 404


def test_delete_account(client: TestClient) -> None:
    user = _register()
    _create_profile(client, user)

    response = client.delete("/api/profile", headers=_auth(user))

    assert response.status_code == 200
    assert response.json() == {"msg": "User deleted"}
    assert client.get(f"/api/profile/user/{user['id']}").status_code == 404


def test_github_route_proxies_lookup(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_fetch(username: str):
        assert username == "octocat"
        return [{"name": "hello-world"}]

    monkeypatch.setattr("devconnect.profile_routes.fetch_recent_repos", fake_fetch)

    response = client.get("/api/profile/github/octocat")

    assert response.status_code == 200
    assert response.json() == [{"name": "hello-world"}]


def test_github_route_reports_missing_profile(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_fetch(username: str):
        raise UpstreamFailure("No Github profile found", upstream_status=404)

    monkeypatch.setattr("devconnect.profile_routes.fetch_recent_repos", fake_fetch)

    response = client.get("/api/profile/github/ghost")

    assert response.status_code == 404
    assert response.json() == {"msg": "No Github profile found"}


def test_partial_account_delete_is_an_opaque_server_error(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    user = _register()
    _create_profile(client, user)

    def broken_delete_user(session, owner_id):
        raise OperationalError("DELETE FROM users", {}, Exception("disk I/O error on users.db"))

    monkeypatch.setattr(profile_repository, "delete_user", broken_delete_user)

    response = client.delete("/api/profile", headers=_auth(user))

    assert response.status_code == 500
    assert response.json() == {"msg": "Server Error"}
    assert "disk I/O" not in response.text
    assert client.get(f"/api/profile/user/{user['id']}").status_code == 404


def test_unexpected_errors_are_an_opaque_server_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def exploding_list_all():
        raise RuntimeError("connection string postgres://admin:hunter2@db")

    monkeypatch.setattr(profile_store, "list_all", exploding_list_all)
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/api/profile")

    assert response.status_code == 500
    assert response.json() == {"msg": "Server Error"}
    assert "hunter2" not in response.text
