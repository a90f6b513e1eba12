from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# --- User ---

class UserBase(BaseModel):
    username: str = Field(max_length=50)
    email: str = Field(max_length=255)
    display_name: str | None = None
    avatar: str | None = Field(None, max_length=500)
    bio: str | None = None


class UserCreate(UserBase):
    pass


class UserResponse(UserBase):
    id: int
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# --- Post / Comment input ---

class TextBody(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    text: str = Field(min_length=1, max_length=5000)


class PostCreate(TextBody):
    pass


class CommentCreate(TextBody):
    pass


# --- Misc ---

class MessageResponse(BaseModel):
    msg: str


class MetricsResponse(BaseModel):
    total_posts: int
    total_users: int
    cache_info: dict = {}
