from fastapi import APIRouter, Depends, HTTPException
from ..schemas.messages import ChatCreateIn, ChatOut, ChatsOut, MessageIn, MessageOut, ReadReceiptOut
from ..crud import get_or_create_chat, list_chats, get_chat, send_chat_message, mark_chat_read
from ..auth import get_current_user
from ..cache import check_rate_limit
from ..core import CHAT_MESSAGES_SENT
from ..queue_manager import enqueue_message
from ..ws_manager import manager

router = APIRouter()


async def deliver_message(sender_id: int, chat_id: int, text: str) -> dict:
    """Persist a chat message and push it to the other participants"""
    if not await check_rate_limit(sender_id, "send_message", limit=100, window=3600):
        raise HTTPException(429, "Rate limit exceeded. Too many messages.")

    message, recipients = await send_chat_message(sender_id, chat_id, text)
    CHAT_MESSAGES_SENT.inc()

    payload = MessageOut.model_validate(message).model_dump(mode='json')
    for user_id in recipients:
        await manager.send_personal(user_id, 'new_message', payload)
    await enqueue_message(sender_id, chat_id, message['id'])
    return payload


@router.get('', response_model=ChatsOut)
async def my_chats(current_user: dict = Depends(get_current_user)):
    return {'chats': await list_chats(current_user['id'])}


@router.post('', response_model=ChatOut)
async def open_chat(payload: ChatCreateIn, current_user: dict = Depends(get_current_user)):
    return await get_or_create_chat(current_user['id'], payload.user_id)


@router.get('/{chat_id}', response_model=ChatOut)
async def chat_detail(chat_id: int, current_user: dict = Depends(get_current_user)):
    return await get_chat(current_user['id'], chat_id)


@router.post('/{chat_id}/message', response_model=MessageOut)
async def send(chat_id: int, payload: MessageIn, current_user: dict = Depends(get_current_user)):
    return await deliver_message(current_user['id'], chat_id, payload.text)


@router.patch('/{chat_id}/read', response_model=ReadReceiptOut)
async def mark_read(chat_id: int, current_user: dict = Depends(get_current_user)):
    count = await mark_chat_read(current_user['id'], chat_id)
    return {'chat_id': chat_id, 'marked_read': count}
