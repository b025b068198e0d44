"""Integration tests for the reference status store API."""
from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Iterator
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_status_store.db")
os.environ.setdefault("JWT_SECRET_KEY", "status-store-test-signing-key")
os.environ.setdefault("DISABLE_CLEANUP", "true")

from status_viewer.database import Base, SessionLocal, engine  # noqa: E402
from status_viewer.main import app  # noqa: E402
from status_viewer.models import Status, StatusReaction, StatusView, User  # noqa: E402
from status_viewer.models import StatusComment as StatusCommentRecord  # noqa: E402
from status_viewer.schemas import StatusItem  # noqa: E402
from status_viewer.services import create_access_token  # noqa: E402


@pytest.fixture(scope="module", autouse=True)
def _create_schema() -> Iterator[None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_database() -> Iterator[None]:
    with SessionLocal() as session:
        for model in (StatusCommentRecord, StatusReaction, StatusView, Status, User):
            session.execute(delete(model))
        session.commit()
    yield


@pytest.fixture
def client() -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


def _make_user(username: str) -> tuple[UUID, dict[str, str]]:
    with SessionLocal() as session:
        user = User(username=username, display_name=username.title())
        session.add(user)
        session.commit()
        user_id = user.id
    return user_id, {"Authorization": f"Bearer {create_access_token(user_id)}"}


def _post_text(client: TestClient, headers: dict[str, str], content: str = "hello world") -> dict:
    response = client.post("/v1/statuses/", json={"status_type": "text", "content": content}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["status"]


def _expire(status_id: str) -> None:
    with SessionLocal() as session:
        record = session.get(Status, UUID(status_id))
        record.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        session.commit()


def test_create_text_status_expires_after_a_day(client: TestClient) -> None:
    _, headers = _make_user("author")

    created = StatusItem.model_validate(_post_text(client, headers))

    assert created.background_color == "#1a1f3a"
    assert created.expires_at - created.created_at == timedelta(hours=24)
    assert created.is_viewed
    assert created.author is not None and created.author.username == "author"


@pytest.mark.parametrize(
    "payload",
    [
        {"status_type": "text", "content": "   "},
        {"status_type": "image", "content": "caption"},
        {"status_type": "video", "media_url": "https://cdn.example.com/v.mp4"},
        {"status_type": "text", "content": "hi", "background_color": "blue"},
        {"status_type": "audio", "content": "hi"},
    ],
)
def test_create_status_validation(client: TestClient, payload: dict) -> None:
    _, headers = _make_user("author")

    response = client.post("/v1/statuses/", json=payload, headers=headers)

    assert response.status_code == 422


def test_create_media_status(client: TestClient) -> None:
    _, headers = _make_user("author")

    response = client.post(
        "/v1/statuses/",
        json={"status_type": "image", "media_url": "https://cdn.example.com/a.jpg", "media_type": "image/jpeg"},
        headers=headers,
    )

    assert response.status_code == 201, response.text
    assert response.json()["status"]["media_url"] == "https://cdn.example.com/a.jpg"


def test_mutations_require_bearer_token(client: TestClient) -> None:
    response = client.post("/v1/statuses/", json={"status_type": "text", "content": "hi"})
    assert response.status_code == 401

    bogus = client.post(f"/v1/statuses/{uuid4()}/view", headers={"Authorization": "Bearer not-a-token"})
    assert bogus.status_code == 401


def test_feed_and_user_listing_reflect_viewer_state(client: TestClient) -> None:
    author_id, author_headers = _make_user("author")
    _, viewer_headers = _make_user("viewer")
    first = _post_text(client, author_headers, "first")
    second = _post_text(client, author_headers, "second")

    client.post(f"/v1/statuses/{first['id']}/view", headers=viewer_headers)
    client.post(f"/v1/statuses/{first['id']}/react", json={"emoji": "❤️"}, headers=viewer_headers)

    feed = client.get("/v1/statuses/feed", headers=viewer_headers).json()
    by_id = {entry["id"]: entry for entry in feed["statuses"]}
    assert by_id[first["id"]]["is_viewed"] is True
    assert by_id[first["id"]]["user_reaction"] == "❤️"
    assert by_id[second["id"]]["is_viewed"] is False

    listing = client.get(f"/v1/statuses/user/{author_id}", headers=viewer_headers).json()
    assert [entry["id"] for entry in listing["statuses"]] == [second["id"], first["id"]]
    assert listing["total"] == 2


def test_expired_statuses_are_hidden_and_gone(client: TestClient) -> None:
    author_id, headers = _make_user("author")
    _, viewer_headers = _make_user("viewer")
    status = _post_text(client, headers)
    _expire(status["id"])

    listing = client.get(f"/v1/statuses/user/{author_id}", headers=viewer_headers).json()
    assert listing["statuses"] == []

    assert client.get(f"/v1/statuses/{status['id']}", headers=viewer_headers).status_code == 410
    view = client.post(f"/v1/statuses/{status['id']}/view", headers=viewer_headers)
    assert view.status_code == 410
    assert view.json()["detail"] == "Status has expired"

    assert client.get(f"/v1/statuses/{uuid4()}", headers=viewer_headers).status_code == 404


def test_views_are_idempotent_and_skip_the_author(client: TestClient) -> None:
    _, author_headers = _make_user("author")
    _, viewer_headers = _make_user("viewer")
    status = _post_text(client, author_headers)

    first = client.post(f"/v1/statuses/{status['id']}/view", headers=viewer_headers)
    again = client.post(f"/v1/statuses/{status['id']}/view", headers=viewer_headers)
    own = client.post(f"/v1/statuses/{status['id']}/view", headers=author_headers)

    assert first.json()["counts"]["views_count"] == 1
    assert again.json()["counts"]["views_count"] == 1
    assert own.json()["counts"]["views_count"] == 1


def test_reaction_upsert_and_removal(client: TestClient) -> None:
    _, author_headers = _make_user("author")
    _, viewer_headers = _make_user("viewer")
    status = _post_text(client, author_headers)
    url = f"/v1/statuses/{status['id']}/react"

    assert client.post(url, json={"emoji": "👍"}, headers=viewer_headers).json()["counts"]["reactions_count"] == 1
    assert client.post(url, json={"emoji": "💯"}, headers=viewer_headers).json()["counts"]["reactions_count"] == 1

    reactions = client.get(f"/v1/statuses/{status['id']}/reactions", headers=viewer_headers).json()["reactions"]
    assert [entry["emoji"] for entry in reactions] == ["💯"]

    assert client.delete(url, headers=viewer_headers).json()["counts"]["reactions_count"] == 0
    assert client.delete(url, headers=viewer_headers).json()["counts"]["reactions_count"] == 0

    assert client.post(url, json={"emoji": "🔥"}, headers=viewer_headers).status_code == 422


def test_comment_create_list_and_soft_delete(client: TestClient) -> None:
    _, author_headers = _make_user("author")
    _, viewer_headers = _make_user("viewer")
    status = _post_text(client, author_headers)
    url = f"/v1/statuses/{status['id']}/comments"

    created = client.post(url, json={"content": "  great shot  "}, headers=viewer_headers)
    assert created.status_code == 201, created.text
    body = created.json()
    assert body["comment"]["content"] == "great shot"
    assert body["comment"]["author"]["username"] == "viewer"
    assert body["counts"]["comments_count"] == 1

    assert client.post(url, json={"content": "   "}, headers=viewer_headers).status_code == 422
    assert client.post(url, json={"content": "x" * 501}, headers=viewer_headers).status_code == 422

    comment_id = body["comment"]["id"]
    forbidden = client.delete(f"/v1/statuses/comments/{comment_id}", headers=author_headers)
    assert forbidden.status_code == 403

    deleted = client.delete(f"/v1/statuses/comments/{comment_id}", headers=viewer_headers)
    assert deleted.json()["counts"]["comments_count"] == 0

    listing = client.get(url, headers=viewer_headers).json()
    assert listing["comments"] == []
    assert listing["total"] == 0

    with SessionLocal() as session:
        record = session.get(StatusCommentRecord, UUID(comment_id))
        assert record is not None and record.deleted_at is not None


def test_comment_pages_are_newest_first(client: TestClient) -> None:
    _, author_headers = _make_user("author")
    viewer_id, viewer_headers = _make_user("viewer")
    status = _post_text(client, author_headers)
    base = datetime.now(timezone.utc)

    with SessionLocal() as session:
        for index in range(5):
            session.add(
                StatusCommentRecord(
                    status_id=UUID(status["id"]),
                    user_id=viewer_id,
                    content=f"comment {index}",
                    created_at=base + timedelta(seconds=index),
                    updated_at=base,
                )
            )
        session.commit()

    url = f"/v1/statuses/{status['id']}/comments"
    first_page = client.get(url, params={"limit": 2, "offset": 0}, headers=viewer_headers).json()
    last_page = client.get(url, params={"limit": 2, "offset": 4}, headers=viewer_headers).json()

    assert [entry["content"] for entry in first_page["comments"]] == ["comment 4", "comment 3"]
    assert first_page["has_more"] is True
    assert first_page["total"] == 5
    assert [entry["content"] for entry in last_page["comments"]] == ["comment 0"]
    assert last_page["has_more"] is False


def test_only_author_can_delete_status(client: TestClient) -> None:
    _, author_headers = _make_user("author")
    _, viewer_headers = _make_user("viewer")
    status = _post_text(client, author_headers)
    url = f"/v1/statuses/{status['id']}"

    assert client.delete(url, headers=viewer_headers).status_code == 403
    assert client.delete(url, headers=author_headers).json()["success"] is True
    assert client.get(url, headers=author_headers).status_code == 404


def test_system_routes(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/api").json()["service"] == "Status Store"
