import json
import logging
import math
from datetime import datetime, timedelta, timezone
from collections import defaultdict

from passlib.context import CryptContext
from sqlalchemy import select, func, or_, and_, delete, update, insert
from sqlalchemy.exc import IntegrityError

from .models import AsyncSessionLocal
from .models.users import User
from .models.user_interests import user_interests
from .models.friend_requests import FriendRequest, PENDING, ACCEPTED, REJECTED
from .models.notifications import Notification
from .models.session_tokens import SessionToken
from .models.posts import Post
from .models.likes import likes_table
from .models.comments import Comment
from .models.chats import Chat, chat_participants
from .models.messages import Message
from .auth import create_access_token, generate_refresh_token, hash_token, REFRESH_TOKEN_TTL_DAYS
from .errors import ConflictError, NotAuthorizedError, NotFoundError, ValidationError
from .suggestions import normalize_interests, rank_candidates

logger = logging.getLogger(__name__)

pwd_ctx = CryptContext(schemes=['bcrypt'], deprecated='auto')

MAX_BIO_LENGTH = 500
MAX_INTERESTS = 20
MAX_INTEREST_LENGTH = 50
FRIEND_REQUEST_ACTIONS = {'accept': ACCEPTED, 'reject': REJECTED}


def _now():
    return datetime.now(timezone.utc)


def pagination_meta(page: int, limit: int, total: int) -> dict:
    total_pages = math.ceil(total / limit) if total else 0
    return {
        'current_page': page,
        'total_pages': total_pages,
        'total_items': total,
        'has_next_page': page < total_pages,
        'has_prev_page': page > 1,
    }


def _validate_interests(interests):
    tags = normalize_interests(interests)
    if len(tags) > MAX_INTERESTS:
        raise ValidationError(f"At most {MAX_INTERESTS} interests are allowed")
    if any(len(tag) > MAX_INTEREST_LENGTH for tag in tags):
        raise ValidationError(f"Interests must be {MAX_INTEREST_LENGTH} characters or less")
    return tags


async def _store_interests(session, user_id: int, tags):
    """Replace the user_interests rows backing the suggestion query"""
    await session.execute(delete(user_interests).where(user_interests.c.user_id == user_id))
    if tags:
        await session.execute(insert(user_interests), [{'user_id': user_id, 'interest': tag} for tag in tags])


async def _users_by_id(session, user_ids) -> dict:
    ids = set(user_ids)
    if not ids:
        return {}
    res = await session.execute(select(User).where(User.id.in_(ids)))
    return {u.id: u for u in res.scalars().all()}


# users & auth

async def create_user(payload):
    async with AsyncSessionLocal() as session:
        q = await session.execute(
            select(User.id).where(or_(User.username == payload.username, User.email == payload.email))
        )
        if q.first():
            raise ConflictError('Username or email already registered')
        user = User(
            username=payload.username,
            email=payload.email,
            hashed_password=pwd_ctx.hash(payload.password),
            first_name=payload.first_name.strip(),
            last_name=payload.last_name.strip(),
            interests=_validate_interests(payload.interests),
        )
        session.add(user)
        try:
            await session.flush()
            await _store_interests(session, user.id, user.interests)
            await session.commit()
        except IntegrityError:
            await session.rollback()
            raise ConflictError('Username or email already registered')
        await session.refresh(user)
        logger.info(f"Registered user {user.id} ({user.username})")
        return user

async def authenticate_user(username, password, device_id: str | None = None):
    """Check credentials and open a session; ``username`` may also be the email"""
    async with AsyncSessionLocal() as session:
        q = await session.execute(select(User).where(or_(User.username == username, User.email == username)))
        user = q.scalars().first()
        if not user or not pwd_ctx.verify(password, user.hashed_password):
            return None
        access = create_access_token({'id': user.id, 'username': user.username})
        refresh = generate_refresh_token()
        st = SessionToken(
            user_id=user.id,
            device_id=device_id,
            token_hash=hash_token(refresh),
            expires_at=_now() + timedelta(days=REFRESH_TOKEN_TTL_DAYS),
        )
        session.add(st)
        await session.commit()
        return {'access_token': access, 'token_type': 'bearer', 'refresh_token': refresh}

async def refresh_access_token(refresh_token: str):
    async with AsyncSessionLocal() as session:
        q = await session.execute(select(SessionToken).where(
            SessionToken.token_hash == hash_token(refresh_token),
            SessionToken.revoked_at.is_(None),
            SessionToken.expires_at > _now(),
        ))
        st = q.scalars().first()
        if not st:
            return None
        user = await session.get(User, st.user_id)
        if not user:
            return None
        access = create_access_token({'id': user.id, 'username': user.username})
        return {'access_token': access, 'token_type': 'bearer'}

async def revoke_refresh_token(user_id: int, refresh_token: str):
    async with AsyncSessionLocal() as session:
        q = await session.execute(select(SessionToken).where(
            SessionToken.token_hash == hash_token(refresh_token),
            SessionToken.user_id == user_id,
            SessionToken.revoked_at.is_(None),
        ))
        st = q.scalars().first()
        if not st:
            return False
        st.revoked_at = _now()
        await session.commit()
        return True

async def get_user_by_id(user_id: int):
    async with AsyncSessionLocal() as session:
        return await session.get(User, user_id)

async def get_profile(username: str):
    """Public profile with friend and post counts"""
    async with AsyncSessionLocal() as session:
        q = await session.execute(select(User).where(User.username == username))
        user = q.scalars().first()
        if not user:
            raise NotFoundError('User not found')
        friends_count = await session.scalar(
            select(func.count(FriendRequest.id)).where(
                FriendRequest.status == ACCEPTED,
                or_(FriendRequest.from_user == user.id, FriendRequest.to_user == user.id),
            )
        )
        posts_count = await session.scalar(select(func.count(Post.id)).where(Post.author_id == user.id))
        return {
            'id': user.id,
            'username': user.username,
            'first_name': user.first_name,
            'last_name': user.last_name,
            'bio': user.bio,
            'interests': user.interests or [],
            'profile_picture': user.profile_picture,
            'created_at': user.created_at,
            'friends_count': friends_count or 0,
            'posts_count': posts_count or 0,
        }

async def update_profile(user_id: int, data):
    async with AsyncSessionLocal() as session:
        user = await session.get(User, user_id)
        if not user:
            raise NotFoundError('User not found')

        if data.first_name is not None:
            first_name = data.first_name.strip()
            if not first_name:
                raise ValidationError('First name must not be empty')
            user.first_name = first_name
        if data.last_name is not None:
            last_name = data.last_name.strip()
            if not last_name:
                raise ValidationError('Last name must not be empty')
            user.last_name = last_name
        if data.bio is not None:
            bio = data.bio.strip()
            if len(bio) > MAX_BIO_LENGTH:
                raise ValidationError(f"Bio must be {MAX_BIO_LENGTH} characters or less")
            user.bio = bio
        if data.interests is not None:
            user.interests = _validate_interests(data.interests)
            await _store_interests(session, user.id, user.interests)

        await session.commit()
        await session.refresh(user)
        return user

async def set_profile_picture(user_id: int, picture_path: str | None):
    """Replace the stored picture path, returning (user, previous path)"""
    async with AsyncSessionLocal() as session:
        user = await session.get(User, user_id)
        if not user:
            raise NotFoundError('User not found')
        old_path = user.profile_picture
        user.profile_picture = picture_path
        await session.commit()
        await session.refresh(user)
        return user, old_path

# friends

async def suggestion_candidates(session, user_id: int, interests):
    """Other users sharing at least one of ``interests``, in id order"""
    tags = normalize_interests(interests)
    if not tags:
        return []
    overlapping = select(user_interests.c.user_id).where(user_interests.c.interest.in_(tags))
    res = await session.execute(
        select(User).where(User.id != user_id, User.id.in_(overlapping)).order_by(User.id)
    )
    return res.scalars().all()

async def get_friend_suggestions(user_id: int):
    """Other users ranked by how many of my interests they share"""
    async with AsyncSessionLocal() as session:
        me = await session.get(User, user_id)
        if not me:
            raise NotFoundError('User not found')
        if not me.interests:
            return []
        candidates = await suggestion_candidates(session, user_id, me.interests)
    return [
        {'user': user, 'common_interests': common, 'similarity_score': score}
        for user, common, score in rank_candidates(me.interests, candidates)
    ]

def _request_dict(fr: FriendRequest, sender=None, recipient=None) -> dict:
    return {
        'id': fr.id,
        'from_user': fr.from_user,
        'to_user': fr.to_user,
        'status': fr.status,
        'created_at': fr.created_at,
        'sender': sender,
        'recipient': recipient,
    }

async def send_friend_request(from_user: int, to_user: int | None):
    if to_user is None:
        raise ValidationError('Recipient user ID is required')
    if from_user == to_user:
        raise ValidationError('You cannot send a friend request to yourself')
    async with AsyncSessionLocal() as session:
        recipient = await session.get(User, to_user)
        if not recipient:
            raise NotFoundError('User not found')

        # any earlier request between the pair blocks a new one, whatever its status
        existing = await session.execute(select(FriendRequest.id).where(or_(
            and_(FriendRequest.from_user == from_user, FriendRequest.to_user == to_user),
            and_(FriendRequest.from_user == to_user, FriendRequest.to_user == from_user),
        )))
        if existing.first():
            raise ConflictError('Friend request already exists')

        fr = FriendRequest(from_user=from_user, to_user=to_user, status=PENDING)
        session.add(fr)
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            raise ConflictError('Friend request already exists')
        await session.refresh(fr)
        logger.info(f"Friend request {fr.id} sent from {from_user} to {to_user}")
        return _request_dict(fr, recipient=recipient)

async def list_incoming_requests(user_id: int):
    """Pending requests addressed to the user, newest first"""
    async with AsyncSessionLocal() as session:
        res = await session.execute(
            select(FriendRequest)
            .where(FriendRequest.to_user == user_id, FriendRequest.status == PENDING)
            .order_by(FriendRequest.created_at.desc(), FriendRequest.id.desc())
        )
        requests = res.scalars().all()
        senders = await _users_by_id(session, [fr.from_user for fr in requests])
        return [_request_dict(fr, sender=senders.get(fr.from_user)) for fr in requests]

async def respond_to_friend_request(user_id: int, request_id: int, action: str | None):
    if action not in FRIEND_REQUEST_ACTIONS:
        raise ValidationError("Action must be 'accept' or 'reject'")
    async with AsyncSessionLocal() as session:
        fr = await session.get(FriendRequest, request_id)
        if not fr:
            raise NotFoundError('Friend request not found')
        if fr.to_user != user_id:
            raise NotAuthorizedError('Not authorized to respond to this request')
        if fr.status != PENDING:
            raise ConflictError('Request has already been processed')
        fr.status = FRIEND_REQUEST_ACTIONS[action]
        await session.commit()
        await session.refresh(fr)
        logger.info(f"Friend request {fr.id} {fr.status} by {user_id}")
        return _request_dict(fr)

async def delete_friend_request(user_id: int, request_id: int):
    """Remove a request record; either endpoint may do it"""
    async with AsyncSessionLocal() as session:
        fr = await session.get(FriendRequest, request_id)
        if not fr:
            raise NotFoundError('Friend request not found')
        if user_id not in (fr.from_user, fr.to_user):
            raise NotAuthorizedError('Not authorized to delete this request')
        result = _request_dict(fr)
        await session.delete(fr)
        await session.commit()
        return result

async def list_friend_ids(user_id: int):
    async with AsyncSessionLocal() as session:
        res = await session.execute(select(FriendRequest.from_user, FriendRequest.to_user).where(
            FriendRequest.status == ACCEPTED,
            or_(FriendRequest.from_user == user_id, FriendRequest.to_user == user_id),
        ))
        return {to_user if from_user == user_id else from_user for from_user, to_user in res.all()}

async def list_friends(user_id: int):
    """Friends are the other endpoints of accepted requests touching the user"""
    ids = await list_friend_ids(user_id)
    if not ids:
        return []
    async with AsyncSessionLocal() as session:
        users = await session.execute(select(User).where(User.id.in_(ids)).order_by(User.username))
        return users.scalars().all()

# notifications

async def create_notification(user_id: int, kind: str, payload: dict):
    async with AsyncSessionLocal() as session:
        n = Notification(user_id=user_id, kind=kind, payload=json.dumps(payload, default=str))
        session.add(n)
        await session.commit()
        await session.refresh(n)
        return n

async def list_notifications(user_id: int, limit: int = 50):
    async with AsyncSessionLocal() as session:
        res = await session.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        )
        return res.scalars().all()

async def mark_notification_read(user_id: int, notification_id: int):
    async with AsyncSessionLocal() as session:
        n = await session.get(Notification, notification_id)
        if not n:
            raise NotFoundError('Notification not found')
        if n.user_id != user_id:
            raise NotAuthorizedError('Not authorized to update this notification')
        n.read = True
        await session.commit()
        await session.refresh(n)
        return n

# posts, likes & comments

async def _post_dicts(session, posts) -> list:
    if not posts:
        return []
    post_ids = [p.id for p in posts]
    authors = await _users_by_id(session, [p.author_id for p in posts])

    likes = defaultdict(list)
    res = await session.execute(
        select(likes_table.c.post_id, likes_table.c.user_id)
        .where(likes_table.c.post_id.in_(post_ids))
        .order_by(likes_table.c.id)
    )
    for post_id, liker_id in res.all():
        likes[post_id].append(liker_id)

    res = await session.execute(
        select(Comment.post_id, func.count(Comment.id))
        .where(Comment.post_id.in_(post_ids))
        .group_by(Comment.post_id)
    )
    comment_counts = dict(res.all())

    return [
        {
            'id': p.id,
            'text': p.text,
            'image': p.image,
            'created_at': p.created_at,
            'author': authors.get(p.author_id),
            'likes': likes[p.id],
            'comments_count': comment_counts.get(p.id, 0),
        }
        for p in posts
    ]

async def _comment_dicts(session, comments) -> list:
    authors = await _users_by_id(session, [c.author_id for c in comments])
    return [
        {
            'id': c.id,
            'post_id': c.post_id,
            'text': c.text,
            'created_at': c.created_at,
            'author': authors.get(c.author_id),
        }
        for c in comments
    ]

async def _get_post_or_404(session, post_id: int) -> Post:
    post = await session.get(Post, post_id)
    if not post:
        raise NotFoundError('Post not found')
    return post

async def create_post(user_id: int, text: str, image: str | None = None):
    text = (text or '').strip()
    if not text:
        raise ValidationError('Post text is required')
    async with AsyncSessionLocal() as session:
        post = Post(author_id=user_id, text=text, image=image)
        session.add(post)
        await session.commit()
        await session.refresh(post)
        return (await _post_dicts(session, [post]))[0]

async def list_posts(page: int, limit: int):
    """Newest posts first"""
    async with AsyncSessionLocal() as session:
        total = await session.scalar(select(func.count(Post.id)))
        res = await session.execute(
            select(Post)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        posts = await _post_dicts(session, res.scalars().all())
        return posts, total or 0

async def get_post(post_id: int, comments_limit: int = 5):
    async with AsyncSessionLocal() as session:
        post = await _get_post_or_404(session, post_id)
        result = (await _post_dicts(session, [post]))[0]
        res = await session.execute(
            select(Comment)
            .where(Comment.post_id == post_id)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
            .limit(comments_limit)
        )
        result['comments'] = await _comment_dicts(session, res.scalars().all())
        return result

async def delete_post(user_id: int, post_id: int):
    """Delete one of the user's posts and return its image path, if any"""
    async with AsyncSessionLocal() as session:
        post = await _get_post_or_404(session, post_id)
        if post.author_id != user_id:
            raise NotAuthorizedError('Not authorized to delete this post')
        image = post.image
        await session.execute(delete(likes_table).where(likes_table.c.post_id == post_id))
        await session.execute(delete(Comment).where(Comment.post_id == post_id))
        await session.delete(post)
        await session.commit()
        return image

async def _post_likes(session, post_id: int) -> list:
    res = await session.execute(
        select(likes_table.c.user_id).where(likes_table.c.post_id == post_id).order_by(likes_table.c.id)
    )
    return list(res.scalars().all())

async def like_post(user_id: int, post_id: int):
    async with AsyncSessionLocal() as session:
        await _get_post_or_404(session, post_id)
        if user_id in await _post_likes(session, post_id):
            raise ConflictError('Post already liked')
        try:
            await session.execute(insert(likes_table).values(user_id=user_id, post_id=post_id))
            await session.commit()
        except IntegrityError:
            await session.rollback()
            raise ConflictError('Post already liked')
        return await _post_likes(session, post_id)

async def unlike_post(user_id: int, post_id: int):
    async with AsyncSessionLocal() as session:
        await _get_post_or_404(session, post_id)
        res = await session.execute(
            delete(likes_table).where(likes_table.c.post_id == post_id, likes_table.c.user_id == user_id)
        )
        if not res.rowcount:
            raise ConflictError('Post has not been liked yet')
        await session.commit()
        return await _post_likes(session, post_id)

async def add_comment(user_id: int, post_id: int, text: str):
    text = (text or '').strip()
    if not text:
        raise ValidationError('Comment text is required')
    async with AsyncSessionLocal() as session:
        await _get_post_or_404(session, post_id)
        comment = Comment(post_id=post_id, author_id=user_id, text=text)
        session.add(comment)
        await session.commit()
        await session.refresh(comment)
        return (await _comment_dicts(session, [comment]))[0]

async def list_comments(post_id: int, page: int, limit: int):
    async with AsyncSessionLocal() as session:
        await _get_post_or_404(session, post_id)
        total = await session.scalar(select(func.count(Comment.id)).where(Comment.post_id == post_id))
        res = await session.execute(
            select(Comment)
            .where(Comment.post_id == post_id)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return await _comment_dicts(session, res.scalars().all()), total or 0

async def delete_comment(user_id: int, post_id: int, comment_id: int):
    """The comment's author or the post's author may delete it"""
    async with AsyncSessionLocal() as session:
        post = await _get_post_or_404(session, post_id)
        comment = await session.get(Comment, comment_id)
        if not comment or comment.post_id != post_id:
            raise NotFoundError('Comment not found')
        if user_id not in (comment.author_id, post.author_id):
            raise NotAuthorizedError('Not authorized to delete this comment')
        await session.delete(comment)
        await session.commit()

# search

def _user_search_clause(query: str):
    return or_(
        User.username.icontains(query, autoescape=True),
        User.first_name.icontains(query, autoescape=True),
        User.last_name.icontains(query, autoescape=True),
    )

async def search_users(query: str, page: int, limit: int):
    async with AsyncSessionLocal() as session:
        clause = _user_search_clause(query)
        total = await session.scalar(select(func.count(User.id)).where(clause))
        res = await session.execute(
            select(User).where(clause).order_by(User.username).offset((page - 1) * limit).limit(limit)
        )
        return res.scalars().all(), total or 0

async def search_posts(query: str, page: int, limit: int):
    async with AsyncSessionLocal() as session:
        clause = Post.text.icontains(query, autoescape=True)
        total = await session.scalar(select(func.count(Post.id)).where(clause))
        res = await session.execute(
            select(Post)
            .where(clause)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return await _post_dicts(session, res.scalars().all()), total or 0

# chat

async def _chat_participant_ids(session, chat_id: int) -> list:
    res = await session.execute(
        select(chat_participants.c.user_id).where(chat_participants.c.chat_id == chat_id)
    )
    return list(res.scalars().all())

async def _chat_dicts(session, chats) -> list:
    if not chats:
        return []
    chat_ids = [c.id for c in chats]
    participants = defaultdict(list)
    res = await session.execute(
        select(chat_participants.c.chat_id, chat_participants.c.user_id)
        .where(chat_participants.c.chat_id.in_(chat_ids))
    )
    for chat_id, user_id in res.all():
        participants[chat_id].append(user_id)

    res = await session.execute(
        select(Message).where(Message.chat_id.in_(chat_ids)).order_by(Message.created_at, Message.id)
    )
    messages = res.scalars().all()

    users = await _users_by_id(
        session, [uid for ids in participants.values() for uid in ids] + [m.sender_id for m in messages]
    )
    by_chat = defaultdict(list)
    for m in messages:
        by_chat[m.chat_id].append(_message_dict(m, users.get(m.sender_id)))

    return [
        {
            'id': c.id,
            'participants': [users[uid] for uid in sorted(participants[c.id]) if uid in users],
            'messages': by_chat[c.id],
            'last_message': c.last_message,
            'updated_at': c.updated_at,
        }
        for c in chats
    ]

def _message_dict(m: Message, sender) -> dict:
    return {
        'id': m.id,
        'chat_id': m.chat_id,
        'text': m.text,
        'read': m.read,
        'created_at': m.created_at,
        'sender': sender,
    }

async def _get_chat_for_participant(session, user_id: int, chat_id: int) -> Chat:
    chat = await session.get(Chat, chat_id)
    if not chat:
        raise NotFoundError('Chat not found')
    if user_id not in await _chat_participant_ids(session, chat_id):
        raise NotAuthorizedError('Not a participant of this chat')
    return chat

async def get_or_create_chat(user_id: int, other_id: int):
    """The one-to-one chat between two users, created on first use"""
    if user_id == other_id:
        raise ValidationError('You cannot start a chat with yourself')
    async with AsyncSessionLocal() as session:
        if not await session.get(User, other_id):
            raise NotFoundError('User not found')
        mine = select(chat_participants.c.chat_id).where(chat_participants.c.user_id == user_id)
        res = await session.execute(
            select(chat_participants.c.chat_id)
            .where(chat_participants.c.user_id == other_id, chat_participants.c.chat_id.in_(mine))
            .limit(1)
        )
        chat_id = res.scalar()
        if chat_id is None:
            chat = Chat()
            session.add(chat)
            await session.flush()
            await session.execute(insert(chat_participants), [
                {'chat_id': chat.id, 'user_id': user_id},
                {'chat_id': chat.id, 'user_id': other_id},
            ])
            await session.commit()
            chat_id = chat.id
            logger.info(f"Created chat {chat_id} between {user_id} and {other_id}")
        chat = await session.get(Chat, chat_id)
        await session.refresh(chat)
        return (await _chat_dicts(session, [chat]))[0]

async def list_chats(user_id: int):
    """Chats the user takes part in, most recently active first"""
    async with AsyncSessionLocal() as session:
        mine = select(chat_participants.c.chat_id).where(chat_participants.c.user_id == user_id)
        res = await session.execute(
            select(Chat).where(Chat.id.in_(mine)).order_by(Chat.updated_at.desc(), Chat.id.desc())
        )
        return await _chat_dicts(session, res.scalars().all())

async def get_chat(user_id: int, chat_id: int):
    async with AsyncSessionLocal() as session:
        chat = await _get_chat_for_participant(session, user_id, chat_id)
        return (await _chat_dicts(session, [chat]))[0]

async def send_chat_message(user_id: int, chat_id: int, text: str):
    """Store a message; returns it with the ids of the other participants"""
    text = (text or '').strip()
    if not text:
        raise ValidationError('Message text is required')
    async with AsyncSessionLocal() as session:
        chat = await _get_chat_for_participant(session, user_id, chat_id)
        message = Message(chat_id=chat_id, sender_id=user_id, text=text)
        session.add(message)
        chat.last_message = text
        chat.updated_at = func.now()
        await session.commit()
        await session.refresh(message)
        sender = await session.get(User, user_id)
        recipients = [uid for uid in await _chat_participant_ids(session, chat_id) if uid != user_id]
        return _message_dict(message, sender), recipients

async def mark_chat_read(user_id: int, chat_id: int) -> int:
    """Mark the other participants' messages as read, returning how many changed"""
    async with AsyncSessionLocal() as session:
        await _get_chat_for_participant(session, user_id, chat_id)
        res = await session.execute(
            update(Message)
            .where(Message.chat_id == chat_id, Message.sender_id != user_id, Message.read.is_(False))
            .values(read=True)
        )
        await session.commit()
        return res.rowcount or 0
