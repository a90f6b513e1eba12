from fastapi import APIRouter, Depends

from postfeed.auth import get_caller_id
from postfeed.dependencies import get_post_service
from postfeed.domain import Comment, Like, Post
from postfeed.schemas import CommentCreate, MessageResponse, PostCreate
from postfeed.services.post_service import PostService

router = APIRouter(prefix="/api/posts", tags=["posts"])

@router.post("", status_code=201, response_model=Post)
async def create_post(
    data: PostCreate,
    caller_id: int = Depends(get_caller_id),
    service: PostService = Depends(get_post_service),
):
    return await service.create_post(caller_id, data.text)

@router.get("", response_model=list[Post])
async def list_posts(
    caller_id: int = Depends(get_caller_id),
    service: PostService = Depends(get_post_service),
):
    return await service.list_posts()

@router.get("/{post_id}", response_model=Post)
async def get_post(
    post_id: str,
    caller_id: int = Depends(get_caller_id),
    service: PostService = Depends(get_post_service),
):
    return await service.get_post(post_id)

@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: str,
    caller_id: int = Depends(get_caller_id),
    service: PostService = Depends(get_post_service),
):
    await service.delete_post(post_id, caller_id)
    return {"msg": "Post removed"}

@router.put("/like/{post_id}", response_model=list[Like])
async def like_post(
    post_id: str,
    caller_id: int = Depends(get_caller_id),
    service: PostService = Depends(get_post_service),
):
    return await service.like_post(post_id, caller_id)

@router.put("/unlike/{post_id}", response_model=list[Like])
async def unlike_post(
    post_id: str,
    caller_id: int = Depends(get_caller_id),
    service: PostService = Depends(get_post_service),
):
    return await service.unlike_post(post_id, caller_id)

@router.post("/comment/{post_id}", status_code=201, response_model=list[Comment])
async def add_comment(
    post_id: str,
    data: CommentCreate,
    caller_id: int = Depends(get_caller_id),
    service: PostService = Depends(get_post_service),
):
    return await service.add_comment(post_id, caller_id, data.text)

@router.delete("/comment/{post_id}/{comment_id}", response_model=list[Comment])
async def delete_comment(
    post_id: str,
    comment_id: str,
    caller_id: int = Depends(get_caller_id),
    service: PostService = Depends(get_post_service),
):
    return await service.delete_comment(post_id, comment_id, caller_id)
