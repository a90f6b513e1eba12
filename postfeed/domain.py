"""
Post aggregate and the rules that guard it.

A ``Post`` owns its likes and comments; nothing outside this module edits
those lists directly.  Every rule violation raises one of the typed errors
in ``postfeed.errors`` and leaves the aggregate untouched.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from postfeed.errors import Conflict, Forbidden, NotFound, ValidationError


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def require_text(text: str | None) -> str:
    if text is None or not text.strip():
        raise ValidationError("Text is required")
    return text


@dataclass(frozen=True)
class Profile:
    """Author snapshot copied onto posts and comments at creation time."""

    user_id: int
    name: str
    avatar: str | None = None


class Like(BaseModel):
    user_id: int


class Comment(BaseModel):
    id: str = Field(default_factory=new_id)
    author_id: int
    author_name: str
    author_avatar: str | None = None
    text: str
    created_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def compose(cls, author: Profile, text: str) -> "Comment":
        return cls(
            author_id=author.user_id,
            author_name=author.name,
            author_avatar=author.avatar,
            text=require_text(text),
        )


class Post(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=new_id)
    author_id: int
    author_name: str
    author_avatar: str | None = None
    text: str
    created_at: datetime = Field(default_factory=utcnow)
    likes: list[Like] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    # Store revision this copy was read at; never serialised to clients.
    version: int = Field(default=1, exclude=True)

    @classmethod
    def compose(cls, author: Profile, text: str) -> "Post":
        return cls(
            author_id=author.user_id,
            author_name=author.name,
            author_avatar=author.avatar,
            text=require_text(text),
        )

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    def ensure_author(self, caller_id: int) -> None:
        if self.author_id != caller_id:
            raise Forbidden("Not authorized")

    # ------------------------------------------------------------------
    # Likes
    # ------------------------------------------------------------------

    def _like_index(self, user_id: int) -> int | None:
        for index, like in enumerate(self.likes):
            if like.user_id == user_id:
                return index
        return None

    def has_liked(self, user_id: int) -> bool:
        return self._like_index(user_id) is not None

    def add_like(self, user_id: int) -> None:
        if self.has_liked(user_id):
            raise Conflict("Post already liked")
        self.likes.insert(0, Like(user_id=user_id))

    def remove_like(self, user_id: int) -> None:
        index = self._like_index(user_id)
        if index is None:
            raise Conflict("Post has not been liked yet")
        del self.likes[index]

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def add_comment(self, comment: Comment) -> None:
        if any(existing.id == comment.id for existing in self.comments):
            raise Conflict("Comment already exists")
        self.comments.insert(0, comment)

    def remove_comment(self, comment_id: str, caller_id: int) -> Comment:
        """
        Remove the comment whose id is *comment_id* and return it.

        The element removed is the one found by id; two comments by the same
        author are never confused with each other.
        """
        for index, comment in enumerate(self.comments):
            if comment.id == comment_id:
                break
        else:
            raise NotFound("Comment does not exist")

        if comment.author_id != caller_id:
            raise Forbidden("User not authorized")
        del self.comments[index]
        return comment
