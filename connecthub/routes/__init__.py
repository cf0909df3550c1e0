from fastapi import APIRouter
from .auth import router as auth_router
from .profile import router as profile_router
from .friends import router as friends_router
from .posts import router as posts_router
from .search import router as search_router
from .chat import router as chat_router
from .notifications import router as notifications_router
from .ws import router as ws_router

router = APIRouter()
router.include_router(auth_router, prefix='/auth', tags=['auth'])
router.include_router(profile_router, prefix='/profile', tags=['profile'])
router.include_router(friends_router, prefix='/friends', tags=['friends'])
router.include_router(posts_router, prefix='/posts', tags=['posts'])
router.include_router(search_router, prefix='/search', tags=['search'])
router.include_router(chat_router, prefix='/chat', tags=['chat'])
router.include_router(notifications_router, prefix='/notifications', tags=['notifications'])
router.include_router(ws_router, prefix='/ws', tags=['ws'])
