from fastapi import APIRouter, Query
from ..schemas.posts import SearchOut, UsersPageOut, PostsPageOut
from ..crud import search_users, search_posts, pagination_meta
from ..errors import ValidationError

router = APIRouter()

PREVIEW_LIMIT = 5


def _clean(q: str) -> str:
    q = (q or '').strip()
    if not q:
        raise ValidationError('Search query is required')
    return q


@router.get('', response_model=SearchOut)
async def search(q: str = Query('')):
    q = _clean(q)
    users, _ = await search_users(q, 1, PREVIEW_LIMIT)
    posts, _ = await search_posts(q, 1, PREVIEW_LIMIT)
    return {'users': users, 'posts': posts}


@router.get('/users', response_model=UsersPageOut)
async def users(q: str = Query(''), page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=50)):
    items, total = await search_users(_clean(q), page, limit)
    return {'users': items, 'pagination': pagination_meta(page, limit, total)}


@router.get('/posts', response_model=PostsPageOut)
async def posts(q: str = Query(''), page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=50)):
    items, total = await search_posts(_clean(q), page, limit)
    return {'posts': items, 'pagination': pagination_meta(page, limit, total)}
