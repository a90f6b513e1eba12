"""
Document store for posts, plus the profile lookup the service depends on.

Every call opens its own short transaction and is bounded by
``settings.STORE_TIMEOUT_SECONDS``; a timeout or driver failure surfaces as
``StoreError``.  Whole-document writes are conditional on the version that
was read, so a concurrent writer makes ``update`` raise ``VersionConflict``
instead of silently overwriting.
"""
import asyncio
import uuid

from sqlalchemy import delete, desc, func, select, update
from sqlalchemy.exc import SQLAlchemyError

from postfeed.config import settings
from postfeed.database import Database
from postfeed.domain import Post, Profile
from postfeed.errors import StoreError, VersionConflict
from postfeed.models import PostRecord, User


def normalize_post_id(post_id) -> str | None:
    """Return the canonical hex form of *post_id*, or None if malformed."""
    try:
        return uuid.UUID(str(post_id)).hex
    except ValueError:
        return None


def _to_post(record: PostRecord) -> Post:
    return Post.model_validate(record)


def _embedded(items) -> list[dict]:
    return [item.model_dump(mode="json") for item in items]


class _BoundedStore:
    def __init__(self, database: Database, timeout: float | None = None) -> None:
        self._database = database
        self.timeout = settings.STORE_TIMEOUT_SECONDS if timeout is None else timeout

    async def _bounded(self, operation):
        try:
            return await asyncio.wait_for(operation, timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise StoreError("Store operation timed out") from exc
        except SQLAlchemyError as exc:
            raise StoreError("Store operation failed") from exc


class PostStore(_BoundedStore):
    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_by_id(self, post_id: str) -> Post | None:
        key = normalize_post_id(post_id)
        if key is None:
            return None

        async def _find():
            async with self._database.session() as session:
                record = await session.get(PostRecord, key)
                return _to_post(record) if record is not None else None

        return await self._bounded(_find())

    async def find_all(self) -> list[Post]:
        async def _find_all():
            async with self._database.session() as session:
                result = await session.execute(
                    select(PostRecord).order_by(desc(PostRecord.created_at))
                )
                return [_to_post(r) for r in result.scalars().all()]

        return await self._bounded(_find_all())

    async def count(self) -> int:
        async def _count():
            async with self._database.session() as session:
                return (
                    await session.execute(select(func.count()).select_from(PostRecord))
                ).scalar_one()

        return await self._bounded(_count())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert(self, post: Post) -> str:
        async def _insert():
            async with self._database.session() as session:
                async with session.begin():
                    session.add(
                        PostRecord(
                            id=post.id,
                            author_id=post.author_id,
                            author_name=post.author_name,
                            author_avatar=post.author_avatar,
                            text=post.text,
                            created_at=post.created_at,
                            likes=_embedded(post.likes),
                            comments=_embedded(post.comments),
                            version=post.version,
                        )
                    )
            return post.id

        return await self._bounded(_insert())

    async def update(self, post: Post, expected_version: int) -> None:
        """
        Write *post*'s likes and comments back if the stored document is
        still at *expected_version*.

        Raises ``VersionConflict`` when another writer got there first (or
        the document has been deleted).  On success ``post.version`` is
        advanced to the new revision.
        """
        stmt = (
            update(PostRecord)
            .where(PostRecord.id == post.id, PostRecord.version == expected_version)
            .values(
                likes=_embedded(post.likes),
                comments=_embedded(post.comments),
                version=expected_version + 1,
            )
            .execution_options(synchronize_session=False)
        )

        async def _update():
            async with self._database.session() as session:
                async with session.begin():
                    result = await session.execute(stmt)
                    return result.rowcount

        if await self._bounded(_update()) != 1:
            raise VersionConflict(post.id, expected_version)
        post.version = expected_version + 1

    async def delete(self, post_id: str) -> bool:
        key = normalize_post_id(post_id)
        if key is None:
            return False

        async def _delete():
            async with self._database.session() as session:
                async with session.begin():
                    result = await session.execute(
                        delete(PostRecord)
                        .where(PostRecord.id == key)
                        .execution_options(synchronize_session=False)
                    )
                    return result.rowcount > 0

        return await self._bounded(_delete())


class ProfileLookup(_BoundedStore):
    async def get_profile(self, user_id: int) -> Profile | None:
        async def _get():
            async with self._database.session() as session:
                user = await session.get(User, user_id)
                if user is None:
                    return None
                return Profile(
                    user_id=user.id,
                    name=user.display_name or user.username,
                    avatar=user.avatar,
                )

        return await self._bounded(_get())

    async def count(self) -> int:
        async def _count():
            async with self._database.session() as session:
                return (
                    await session.execute(select(func.count()).select_from(User))
                ).scalar_one()

        return await self._bounded(_count())
