from fastapi import APIRouter, Depends, HTTPException
from ..schemas.friendships import (
    FriendRequestIn,
    FriendRequestActionIn,
    FriendRequestOut,
    FriendRequestsOut,
    FriendsOut,
    SuggestionsOut,
)
from ..schemas.users import UserSummaryOut
from ..crud import (
    get_friend_suggestions,
    send_friend_request,
    list_incoming_requests,
    respond_to_friend_request,
    delete_friend_request,
    list_friends,
    create_notification,
)
from ..models.friend_requests import ACCEPTED
from ..auth import get_current_user
from ..cache import (
    cache_user_friends,
    get_cached_user_friends,
    invalidate_friends_cache,
    check_rate_limit,
)
from ..core import FRIEND_REQUEST_EVENTS
from ..queue_manager import enqueue_friend_request
from ..ws_manager import manager

router = APIRouter()


@router.get('/suggestions', response_model=SuggestionsOut)
async def suggestions(current_user: dict = Depends(get_current_user)):
    ranked = await get_friend_suggestions(current_user['id'])
    items = [
        {
            **UserSummaryOut.model_validate(item['user']).model_dump(),
            'common_interests': item['common_interests'],
            'similarity_score': item['similarity_score'],
        }
        for item in ranked
    ]
    return {'suggestions': items, 'total_suggestions': len(items)}


@router.post('/request', response_model=FriendRequestOut)
async def friend_request(
    payload: FriendRequestIn,
    current_user: dict = Depends(get_current_user)
):
    # max 20 friend requests per hour
    if not await check_rate_limit(current_user['id'], "friend_request", limit=20, window=3600):
        raise HTTPException(429, "Rate limit exceeded. Too many friend requests.")

    fr = await send_friend_request(current_user['id'], payload.to_user_id)
    FRIEND_REQUEST_EVENTS.labels(action='sent').inc()

    event = {'request_id': fr['id'], 'from_user': current_user['id'], 'username': current_user.get('username')}
    await create_notification(fr['to_user'], 'friend_request', event)
    await manager.send_personal(fr['to_user'], 'friend_request', event)
    await enqueue_friend_request(current_user['id'], fr['to_user'], "send_request")
    return fr


@router.get('/requests', response_model=FriendRequestsOut)
async def incoming_requests(current_user: dict = Depends(get_current_user)):
    return {'requests': await list_incoming_requests(current_user['id'])}


@router.patch('/requests/{request_id}', response_model=FriendRequestOut)
async def respond(
    request_id: int,
    payload: FriendRequestActionIn,
    current_user: dict = Depends(get_current_user)
):
    fr = await respond_to_friend_request(current_user['id'], request_id, payload.action)
    FRIEND_REQUEST_EVENTS.labels(action=fr['status']).inc()

    if fr['status'] == ACCEPTED:
        await invalidate_friends_cache(fr['from_user'])
        await invalidate_friends_cache(fr['to_user'])
        event = {'request_id': fr['id'], 'user_id': current_user['id'], 'username': current_user.get('username')}
        await create_notification(fr['from_user'], 'friend_request_accepted', event)
        await manager.send_personal(fr['from_user'], 'friend_request_accepted', event)
    await enqueue_friend_request(fr['from_user'], fr['to_user'], f"{fr['status']}_request")
    return fr


@router.delete('/requests/{request_id}', response_model=FriendRequestOut)
async def remove_request(request_id: int, current_user: dict = Depends(get_current_user)):
    fr = await delete_friend_request(current_user['id'], request_id)
    FRIEND_REQUEST_EVENTS.labels(action='deleted').inc()
    if fr['status'] == ACCEPTED:
        await invalidate_friends_cache(fr['from_user'])
        await invalidate_friends_cache(fr['to_user'])
    await enqueue_friend_request(fr['from_user'], fr['to_user'], "delete_request")
    return fr


@router.get('', response_model=FriendsOut)
async def my_friends(current_user: dict = Depends(get_current_user)):
    cached_friends = await get_cached_user_friends(current_user['id'])
    if cached_friends is not None:
        return {'friends': cached_friends}

    friends = [
        UserSummaryOut.model_validate(u).model_dump(mode='json')
        for u in await list_friends(current_user['id'])
    ]
    await cache_user_friends(current_user['id'], friends, ttl=600)
    return {'friends': friends}
