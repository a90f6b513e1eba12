"""
Post service: business rules for the Post aggregate.

Design notes
------------
- Likes and comments are changed by read-modify-write of the whole post.
  ``_mutate`` loads the document, applies the change through the aggregate
  (which enforces ownership and duplicate rules), then writes it back
  conditioned on the version it read.  On ``VersionConflict`` it waits a
  short randomized backoff, reloads and re-applies the change against the
  fresh document, so a concurrent like from another user is never lost and
  a rule that has since become false (say the caller's like was already
  added) is re-checked.
- Reads go through the cache-aside layer; writes invalidate the list entry
  and the post's detail entry.  A read notes the cache generation before
  it loads from the store and only fills the cache if no write happened in
  between, so a deleted or updated post is never written back.
  Mutations always load from the store.
- The service does not log.  Every failure is a typed ``PostFeedError``
  that the HTTP layer maps to a response.
"""
import asyncio
import random
from typing import Callable

from postfeed.cache import (
    LIST_GENERATION_KEY,
    LIST_KEY,
    CacheManager,
    detail_key,
    generation_key,
)
from postfeed.config import settings
from postfeed.domain import Comment, Like, Post, Profile, require_text
from postfeed.errors import NotFound, StoreError, VersionConflict
from postfeed.store import PostStore, ProfileLookup, normalize_post_id


class PostService:
    def __init__(
        self,
        store: PostStore,
        profiles: ProfileLookup,
        cache: CacheManager | None = None,
        max_retries: int | None = None,
        retry_backoff: float | None = None,
    ) -> None:
        self._store = store
        self._profiles = profiles
        self._cache = cache
        self._max_retries = settings.STORE_MAX_RETRIES if max_retries is None else max_retries
        self._retry_backoff = (
            settings.STORE_RETRY_BACKOFF_SECONDS if retry_backoff is None else retry_backoff
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _load(self, post_id: str) -> Post:
        post = await self._store.find_by_id(post_id)
        if post is None:
            raise NotFound("Post not found")
        return post

    async def _profile(self, user_id: int) -> Profile:
        profile = await self._profiles.get_profile(user_id)
        if profile is None:
            raise NotFound("User not found")
        return profile

    async def _invalidate(self, post_id: str | None = None) -> None:
        if self._cache is not None:
            await self._cache.invalidate_post(post_id)

    async def _backoff(self, attempt: int) -> None:
        # Uniform in [delay / 2, delay], doubling per attempt.
        delay = self._retry_backoff * (2 ** attempt)
        if delay > 0:
            await asyncio.sleep(random.uniform(delay / 2, delay))

    async def _mutate(
        self,
        post_id: str,
        apply: Callable[[Post], object],
        post: Post | None = None,
    ) -> Post:
        """
        Apply *apply* to the stored post and persist it with a version check.

        *post* may be passed when the caller already loaded the document for
        the first attempt.  Retries re-read the post from the store.
        """
        for attempt in range(self._max_retries):
            if attempt:
                await self._backoff(attempt - 1)
            if post is None:
                post = await self._load(post_id)
            apply(post)
            try:
                await self._store.update(post, expected_version=post.version)
            except VersionConflict:
                post = None
                continue
            await self._invalidate(post.id)
            return post
        raise StoreError("Post is being modified concurrently, try again")

    # ------------------------------------------------------------------
    # Post lifecycle
    # ------------------------------------------------------------------

    async def create_post(self, caller_id: int, text: str) -> Post:
        require_text(text)
        author = await self._profile(caller_id)
        post = Post.compose(author, text)
        await self._store.insert(post)
        await self._invalidate()
        return post

    async def list_posts(self) -> list[Post]:
        """Return every post, newest first."""
        generation = None
        if self._cache is not None:
            cached = await self._cache.get(LIST_KEY)
            if cached is not None:
                return [Post.model_validate(item) for item in cached]
            generation = await self._cache.generation(LIST_GENERATION_KEY)

        posts = await self._store.find_all()
        if self._cache is not None:
            await self._cache.set_if_generation(
                LIST_KEY,
                [p.model_dump(mode="json") for p in posts],
                LIST_GENERATION_KEY,
                generation,
                ttl=settings.CACHE_TTL_LIST,
            )
        return posts

    async def get_post(self, post_id: str) -> Post:
        """Return the post or raise ``NotFound`` (also for malformed ids)."""
        canonical = normalize_post_id(post_id)
        if canonical is None:
            raise NotFound("Post not found")

        generation = None
        if self._cache is not None:
            cached = await self._cache.get(detail_key(canonical))
            if cached is not None:
                return Post.model_validate(cached)
            generation = await self._cache.generation(generation_key(canonical))

        post = await self._load(canonical)
        if self._cache is not None:
            await self._cache.set_if_generation(
                detail_key(canonical),
                post.model_dump(mode="json"),
                generation_key(canonical),
                generation,
                ttl=settings.CACHE_TTL_DETAIL,
            )
        return post

    async def delete_post(self, post_id: str, caller_id: int) -> None:
        post = await self._load(post_id)
        post.ensure_author(caller_id)
        if not await self._store.delete(post.id):
            raise NotFound("Post not found")
        await self._invalidate(post.id)

    # ------------------------------------------------------------------
    # Likes
    # ------------------------------------------------------------------

    async def like_post(self, post_id: str, caller_id: int) -> list[Like]:
        post = await self._mutate(post_id, lambda p: p.add_like(caller_id))
        return post.likes

    async def unlike_post(self, post_id: str, caller_id: int) -> list[Like]:
        post = await self._mutate(post_id, lambda p: p.remove_like(caller_id))
        return post.likes

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    async def add_comment(self, post_id: str, caller_id: int, text: str) -> list[Comment]:
        require_text(text)
        post = await self._load(post_id)
        author = await self._profile(caller_id)
        comment = Comment.compose(author, text)
        post = await self._mutate(post_id, lambda p: p.add_comment(comment), post=post)
        return post.comments

    async def delete_comment(
        self, post_id: str, comment_id: str, caller_id: int
    ) -> list[Comment]:
        post = await self._mutate(
            post_id, lambda p: p.remove_comment(comment_id, caller_id)
        )
        return post.comments
