from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, Query
from pydantic import ValidationError as PayloadError
from ..auth import decode_token
from ..errors import ConnectHubError
from ..schemas.messages import MessageIn
from ..ws_manager import manager
from .chat import deliver_message

router = APIRouter()

@router.websocket('/chat')
async def chat_ws(websocket: WebSocket, token: str = Query(None)):
    user = decode_token(token) if token else None
    if not user:
        await websocket.close(code=1008)
        return
    user_id = user['id']
    await manager.connect(user_id, websocket)
    try:
        while True:
            try:
                data = await websocket.receive_json()
                chat_id = int(data['chat_id'])
                payload = MessageIn(text=data.get('text', ''))
                message = await deliver_message(user_id, chat_id, payload.text)
            except (KeyError, TypeError, ValueError, PayloadError):
                await websocket.send_json({'event': 'error', 'data': {'detail': 'Expected {"chat_id", "text"}'}})
                continue
            except (ConnectHubError, HTTPException) as e:
                detail = e.message if isinstance(e, ConnectHubError) else e.detail
                await websocket.send_json({'event': 'error', 'data': {'detail': detail}})
                continue
            await websocket.send_json({'event': 'message_sent', 'data': message})
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(user_id, websocket)
