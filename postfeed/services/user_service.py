"""
User service: CRUD for the User records that back author profiles.

Posts and comments copy ``display_name``/``avatar`` at creation time, so
nothing here has to touch existing posts.
"""
import hashlib

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from postfeed.models import User
from postfeed.schemas import UserCreate


def gravatar_url(email: str, size: int = 200) -> str:
    """Default avatar for users who did not supply one (mystery-person fallback)."""
    digest = hashlib.md5(email.strip().lower().encode("utf-8")).hexdigest()
    return f"https://www.gravatar.com/avatar/{digest}?s={size}&r=pg&d=mm"


def _user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "display_name": user.display_name,
        "avatar": user.avatar,
        "bio": user.bio,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


async def get_users(db: AsyncSession) -> list[dict]:
    """Return all users ordered by creation date (newest first)."""
    result = await db.execute(select(User).order_by(User.created_at.desc()))
    return [_user_to_dict(u) for u in result.scalars().all()]


async def get_user(db: AsyncSession, user_id: int) -> dict | None:
    user = await db.get(User, user_id)
    if user is None:
        return None
    return _user_to_dict(user)


async def create_user(db: AsyncSession, data: UserCreate) -> dict:
    """
    Create a new user and return its serialised dict.

    Username and email uniqueness is enforced by the database; the router
    translates integrity errors into 409 responses.
    """
    user = User(
        username=data.username,
        email=data.email,
        display_name=data.display_name,
        avatar=data.avatar or gravatar_url(data.email),
        bio=data.bio,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    return _user_to_dict(user)
