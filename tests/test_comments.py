"""
Like and comment endpoint tests: status codes, ordering and the body shape
each mutation returns.
"""
import pytest
from httpx import AsyncClient

from postfeed.auth import create_access_token


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _create_user_and_post(client: AsyncClient, suffix: str) -> tuple[int, str]:
    """Create a user and a post by that user, returning (user_id, post_id)."""
    resp = await client.post("/api/users", json={
        "username": f"user_{suffix}",
        "email": f"user_{suffix}@example.com",
    })
    assert resp.status_code == 201
    user_id = resp.json()["id"]

    resp = await client.post("/api/posts", json={"text": f"Post for {suffix}"}, headers=_headers(user_id))
    assert resp.status_code == 201
    return user_id, resp.json()["id"]


async def _create_user(client: AsyncClient, suffix: str) -> int:
    resp = await client.post("/api/users", json={
        "username": f"user_{suffix}",
        "email": f"user_{suffix}@example.com",
    })
    return resp.json()["id"]


def _headers(user_id: int) -> dict:
    return {"x-auth-token": create_access_token(user_id)}


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_like_and_unlike(async_client: AsyncClient):
    user_id, post_id = await _create_user_and_post(async_client, "liker")

    resp = await async_client.put(f"/api/posts/like/{post_id}", headers=_headers(user_id))
    assert resp.status_code == 200
    assert resp.json() == [{"user_id": user_id}]

    resp = await async_client.put(f"/api/posts/unlike/{post_id}", headers=_headers(user_id))
    assert resp.status_code == 200
    assert resp.json() == []


@pytest.mark.asyncio
async def test_like_twice_is_409(async_client: AsyncClient):
    user_id, post_id = await _create_user_and_post(async_client, "twice")
    await async_client.put(f"/api/posts/like/{post_id}", headers=_headers(user_id))

    resp = await async_client.put(f"/api/posts/like/{post_id}", headers=_headers(user_id))
    assert resp.status_code == 409
    assert resp.json() == {"msg": "Post already liked", "retryable": False}

    post = (await async_client.get(f"/api/posts/{post_id}", headers=_headers(user_id))).json()
    assert len(post["likes"]) == 1


@pytest.mark.asyncio
async def test_unlike_without_like_is_409(async_client: AsyncClient):
    user_id, post_id = await _create_user_and_post(async_client, "neverliked")
    resp = await async_client.put(f"/api/posts/unlike/{post_id}", headers=_headers(user_id))
    assert resp.status_code == 409
    assert resp.json()["msg"] == "Post has not been liked yet"


@pytest.mark.asyncio
async def test_like_missing_post_is_404(async_client: AsyncClient):
    user_id = await _create_user(async_client, "ghostliker")
    resp = await async_client.put("/api/posts/like/not-an-id", headers=_headers(user_id))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_newest_like_first(async_client: AsyncClient):
    _, post_id = await _create_user_and_post(async_client, "order")
    a = await _create_user(async_client, "order_a")
    b = await _create_user(async_client, "order_b")
    await async_client.put(f"/api/posts/like/{post_id}", headers=_headers(a))
    resp = await async_client.put(f"/api/posts/like/{post_id}", headers=_headers(b))
    assert [like["user_id"] for like in resp.json()] == [b, a]


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_add_comment(async_client: AsyncClient):
    user_id, post_id = await _create_user_and_post(async_client, "commenter")
    resp = await async_client.post(
        f"/api/posts/comment/{post_id}", json={"text": "Great post!"}, headers=_headers(user_id)
    )
    assert resp.status_code == 201
    comments = resp.json()
    assert len(comments) == 1
    assert comments[0]["text"] == "Great post!"
    assert comments[0]["author_id"] == user_id
    assert comments[0]["author_name"] == "user_commenter"
    assert "id" in comments[0]
    assert "created_at" in comments[0]


@pytest.mark.asyncio
async def test_comment_missing_text_is_422(async_client: AsyncClient):
    user_id, post_id = await _create_user_and_post(async_client, "notext")
    resp = await async_client.post(f"/api/posts/comment/{post_id}", json={}, headers=_headers(user_id))
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_comment_on_missing_post_is_404(async_client: AsyncClient):
    user_id = await _create_user(async_client, "ghostcomment")
    resp = await async_client.post(
        "/api/posts/comment/0f8fad5bd9cb469fa16570867728950e",
        json={"text": "anyone?"},
        headers=_headers(user_id),
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_delete_own_comment_keeps_siblings(async_client: AsyncClient):
    user_id, post_id = await _create_user_and_post(async_client, "siblings")
    await async_client.post(f"/api/posts/comment/{post_id}", json={"text": "C2"}, headers=_headers(user_id))
    resp = await async_client.post(
        f"/api/posts/comment/{post_id}", json={"text": "C1"}, headers=_headers(user_id)
    )
    c1, c2 = resp.json()
    assert c1["text"] == "C1"

    resp = await async_client.delete(f"/api/posts/comment/{post_id}/{c1['id']}", headers=_headers(user_id))
    assert resp.status_code == 200
    assert [c["id"] for c in resp.json()] == [c2["id"]]


@pytest.mark.asyncio
async def test_delete_unknown_comment_is_404(async_client: AsyncClient):
    user_id, post_id = await _create_user_and_post(async_client, "nocomment")
    resp = await async_client.delete(f"/api/posts/comment/{post_id}/missing", headers=_headers(user_id))
    assert resp.status_code == 404
    assert resp.json()["msg"] == "Comment does not exist"


@pytest.mark.asyncio
async def test_delete_someone_elses_comment_is_403(async_client: AsyncClient):
    owner, post_id = await _create_user_and_post(async_client, "thread_owner")
    commenter = await _create_user(async_client, "thread_commenter")
    resp = await async_client.post(
        f"/api/posts/comment/{post_id}", json={"text": "mine"}, headers=_headers(commenter)
    )
    comment_id = resp.json()[0]["id"]

    resp = await async_client.delete(f"/api/posts/comment/{post_id}/{comment_id}", headers=_headers(owner))
    assert resp.status_code == 403

    post = (await async_client.get(f"/api/posts/{post_id}", headers=_headers(owner))).json()
    assert [c["id"] for c in post["comments"]] == [comment_id]
