"""
Regression tests for issues found during review.

1. Deleting a comment must remove that comment, not the first comment by
   the same author.
2. Author snapshots on posts are not refreshed when the profile changes.
3. Dashed and undashed spellings of a post id address the same post.
4. Diagnostic headers and CORS configuration.
"""
import pytest
from httpx import AsyncClient
from sqlalchemy import update

from postfeed.models import User
from postfeed.services.post_service import PostService


# ---------------------------------------------------------------------------
# 1. Comment removal by identity
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_delete_comment_targets_id_not_author(post_service: PostService, create_user):
    author = await create_user("reg_author")
    commenter = await create_user("reg_commenter")
    post = await post_service.create_post(author, "thread")

    texts = ["oldest", "middle", "newest"]
    for text in texts:
        comments = await post_service.add_comment(post.id, commenter, text)
    middle = next(c for c in comments if c.text == "middle")

    remaining = await post_service.delete_comment(post.id, middle.id, commenter)
    assert [c.text for c in remaining] == ["newest", "oldest"]


# ---------------------------------------------------------------------------
# 2. Denormalised author snapshot
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_author_snapshot_not_refreshed(database, post_service: PostService, create_user):
    author = await create_user("renamed", display_name="Before")
    post = await post_service.create_post(author, "snapshot")

    async with database.session() as session:
        await session.execute(update(User).where(User.id == author).values(display_name="After"))
        await session.commit()

    assert (await post_service.get_post(post.id)).author_name == "Before"
    later = await post_service.create_post(author, "fresh")
    assert later.author_name == "After"


# ---------------------------------------------------------------------------
# 3. Post id spellings
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_dashed_post_id_resolves(post_service: PostService, create_user):
    author = await create_user("dashes")
    post = await post_service.create_post(author, "uuid")
    h = post.id
    dashed = f"{h[:8]}-{h[8:12]}-{h[12:16]}-{h[16:20]}-{h[20:]}"
    assert (await post_service.get_post(dashed)).id == post.id


# ---------------------------------------------------------------------------
# 4. Headers
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_response_timing_headers(async_client: AsyncClient):
    resp = await async_client.get("/health")
    assert "x-response-time-ms" in resp.headers
    assert int(resp.headers["x-query-count"]) >= 0


@pytest.mark.asyncio
async def test_cors_no_credentials_with_wildcard_origin(async_client: AsyncClient):
    resp = await async_client.options(
        "/api/posts",
        headers={
            "Origin": "https://example.com",
            "Access-Control-Request-Method": "GET",
        },
    )
    cred_header = resp.headers.get("access-control-allow-credentials", "").lower()
    assert cred_header != "true"
