"""
Profile routes: public profile lookup, profile editing and the profile picture.
"""

from fastapi import APIRouter, Depends, HTTPException, File, UploadFile
from ..schemas.users import UserOut, ProfileOut, ProfileUpdateIn
from ..crud import get_profile, update_profile, set_profile_picture, list_friend_ids
from ..auth import get_current_user
from ..cache import check_rate_limit, invalidate_friends_cache
from ..file_storage import file_storage
from ..queue_manager import enqueue_user_activity
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


async def invalidate_friends_lists(user_id: int):
    """Drop the cached friends lists that embed this user's summary"""
    for friend_id in await list_friend_ids(user_id):
        await invalidate_friends_cache(friend_id)


@router.patch('', response_model=UserOut)
async def update_my_profile(
    profile_data: ProfileUpdateIn,
    current_user: dict = Depends(get_current_user)
):
    """Update name, bio and interests"""
    if not await check_rate_limit(current_user['id'], "profile_update", limit=20, window=3600):
        raise HTTPException(429, "Rate limit exceeded. Too many profile updates.")

    user = await update_profile(current_user['id'], profile_data)
    await invalidate_friends_lists(current_user['id'])
    await enqueue_user_activity(
        current_user['id'],
        "profile_updated",
        profile_data.model_dump(exclude_none=True)
    )
    return user


@router.post('/picture', response_model=UserOut)
async def upload_profile_picture(
    file: UploadFile = File(...),
    current_user: dict = Depends(get_current_user)
):
    """Store a new profile picture, replacing the previous one"""
    if not await check_rate_limit(current_user['id'], "profile_picture_upload", limit=5, window=3600):
        raise HTTPException(429, "Rate limit exceeded. Too many uploads.")

    picture_path = await file_storage.save_profile_picture(current_user['id'], file)
    try:
        user, old_path = await set_profile_picture(current_user['id'], picture_path)
    except Exception:
        file_storage.delete_image(picture_path)
        raise
    await invalidate_friends_lists(current_user['id'])
    if old_path:
        file_storage.delete_image(old_path)

    await enqueue_user_activity(
        current_user['id'],
        "profile_picture_updated",
        {"picture": picture_path, "content_type": file.content_type}
    )
    return user


@router.delete('/picture', response_model=UserOut)
async def delete_profile_picture(current_user: dict = Depends(get_current_user)):
    user, old_path = await set_profile_picture(current_user['id'], None)
    await invalidate_friends_lists(current_user['id'])
    if old_path:
        file_storage.delete_image(old_path)
    await enqueue_user_activity(current_user['id'], "profile_picture_deleted", {"old_picture": old_path})
    return user


@router.get('/{username}', response_model=ProfileOut)
async def public_profile(username: str):
    return await get_profile(username)
