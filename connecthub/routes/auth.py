from fastapi import APIRouter, Depends, HTTPException, Form
from ..schemas.users import RegisterIn, TokenOut, UserOut, RefreshIn, ActionOkOut
from ..crud import (
    create_user,
    authenticate_user,
    get_user_by_id,
    refresh_access_token,
    revoke_refresh_token,
)
from ..auth import get_current_user
from ..queue_manager import enqueue_user_activity

router = APIRouter()


@router.post('/register', response_model=UserOut)
async def register(payload: RegisterIn):
    user = await create_user(payload)
    await enqueue_user_activity(user.id, "user_registered", {"username": user.username})
    return user


@router.post('/login', response_model=TokenOut)
async def login(
    username: str = Form(...),
    password: str = Form(...),
    device_id: str = Form(None)
):
    token = await authenticate_user(username, password, device_id=device_id)
    if not token:
        raise HTTPException(status_code=401, detail='Invalid credentials')
    return token


@router.post('/refresh', response_model=TokenOut)
async def refresh(payload: RefreshIn):
    token = await refresh_access_token(payload.refresh_token)
    if not token:
        raise HTTPException(status_code=401, detail='Invalid refresh token')
    return token


@router.post('/logout', response_model=ActionOkOut)
async def logout(
    refresh_token: str = Form(None),
    current_user: dict = Depends(get_current_user)
):
    if refresh_token:
        await revoke_refresh_token(current_user['id'], refresh_token)
    await enqueue_user_activity(current_user['id'], "user_logged_out", {})
    return {'ok': True}


@router.get('/me', response_model=UserOut)
async def me(current_user: dict = Depends(get_current_user)):
    user = await get_user_by_id(current_user['id'])
    if not user:
        raise HTTPException(404, 'User not found')
    return user
