from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, File, Form, Query, UploadFile
from ..schemas.posts import (
    PostOut,
    PostDetailOut,
    PostsPageOut,
    CommentIn,
    CommentOut,
    CommentsPageOut,
    LikesOut,
)
from ..schemas.users import ActionOkOut
from ..crud import (
    create_post,
    list_posts,
    get_post,
    delete_post,
    like_post,
    unlike_post,
    add_comment,
    list_comments,
    delete_comment,
    pagination_meta,
)
from ..auth import get_current_user
from ..cache import check_rate_limit
from ..core import POSTS_CREATED
from ..file_storage import file_storage
from ..queue_manager import enqueue_user_activity

router = APIRouter()


@router.get('', response_model=PostsPageOut)
async def feed(page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=50)):
    posts, total = await list_posts(page, limit)
    return {'posts': posts, 'pagination': pagination_meta(page, limit, total)}


@router.post('', response_model=PostOut)
async def create(
    text: str = Form(...),
    image: Optional[UploadFile] = File(None),
    current_user: dict = Depends(get_current_user)
):
    if not await check_rate_limit(current_user['id'], "create_post", limit=30, window=3600):
        raise HTTPException(429, "Rate limit exceeded. Too many posts.")

    image_path = None
    if image is not None and image.filename:
        image_path = await file_storage.save_post_image(current_user['id'], image)
    try:
        post = await create_post(current_user['id'], text, image_path)
    except Exception:
        if image_path:
            file_storage.delete_image(image_path)
        raise
    POSTS_CREATED.inc()
    await enqueue_user_activity(current_user['id'], "post_created", {"post_id": post['id']})
    return post


@router.get('/{post_id}', response_model=PostDetailOut)
async def detail(post_id: int):
    return await get_post(post_id)


@router.delete('/{post_id}', response_model=ActionOkOut)
async def remove(post_id: int, current_user: dict = Depends(get_current_user)):
    image_path = await delete_post(current_user['id'], post_id)
    if image_path:
        file_storage.delete_image(image_path)
    return {'ok': True, 'message': 'Post deleted'}


@router.post('/{post_id}/like', response_model=LikesOut)
async def like(post_id: int, current_user: dict = Depends(get_current_user)):
    likes = await like_post(current_user['id'], post_id)
    return {'likes': likes, 'likes_count': len(likes)}


@router.delete('/{post_id}/like', response_model=LikesOut)
async def unlike(post_id: int, current_user: dict = Depends(get_current_user)):
    likes = await unlike_post(current_user['id'], post_id)
    return {'likes': likes, 'likes_count': len(likes)}


@router.get('/{post_id}/comments', response_model=CommentsPageOut)
async def comments(post_id: int, page: int = Query(1, ge=1), limit: int = Query(5, ge=1, le=50)):
    items, total = await list_comments(post_id, page, limit)
    return {'comments': items, 'pagination': pagination_meta(page, limit, total)}


@router.post('/{post_id}/comments', response_model=CommentOut)
async def comment(post_id: int, payload: CommentIn, current_user: dict = Depends(get_current_user)):
    return await add_comment(current_user['id'], post_id, payload.text)


@router.delete('/{post_id}/comments/{comment_id}', response_model=ActionOkOut)
async def remove_comment(post_id: int, comment_id: int, current_user: dict = Depends(get_current_user)):
    await delete_comment(current_user['id'], post_id, comment_id)
    return {'ok': True, 'message': 'Comment deleted'}
