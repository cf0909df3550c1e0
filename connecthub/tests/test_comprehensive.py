import io
import os
import uuid

import pytest
from PIL import Image

from connecthub.file_storage import UPLOAD_DIR


def png_bytes(size=(64, 48), color=(200, 30, 30)):
    buf = io.BytesIO()
    Image.new('RGB', size, color).save(buf, format='PNG')
    return buf.getvalue()


class TestAuth:
    """Registration, login, token refresh and logout"""

    @pytest.mark.asyncio
    async def test_register_and_login(self, client):
        unique_id = uuid.uuid4().hex[:8]
        user_data = {
            'username': f"testuser_{unique_id}",
            'email': f"test_{unique_id}@example.com",
            'password': 'testpass123',
            'first_name': ' Test ',
            'last_name': 'User',
            'interests': ['Tech', ' Tech', 'Music'],
        }
        res = await client.post('/api/auth/register', json=user_data)
        assert res.status_code == 200, res.text
        user = res.json()
        assert user['username'] == user_data['username']
        assert user['first_name'] == 'Test'
        assert user['interests'] == ['Tech', 'Music']
        assert 'hashed_password' not in user

        res = await client.post('/api/auth/register', json=user_data)
        assert res.status_code == 400

        # email works as the login name too
        res = await client.post('/api/auth/login', data={'username': user_data['email'], 'password': 'testpass123'})
        assert res.status_code == 200
        assert res.json()['token_type'] == 'bearer'

        res = await client.post('/api/auth/login', data={'username': user_data['username'], 'password': 'wrong'})
        assert res.status_code == 401

    @pytest.mark.asyncio
    async def test_me_refresh_and_logout(self, client, make_user):
        user = await make_user(prefix='auth')
        res = await client.get('/api/auth/me', headers=user['headers'])
        assert res.status_code == 200
        assert res.json()['id'] == user['id']

        res = await client.post('/api/auth/refresh', json={'refresh_token': user['refresh_token']})
        assert res.status_code == 200
        new_token = res.json()['access_token']
        res = await client.get('/api/auth/me', headers={'Authorization': f"Bearer {new_token}"})
        assert res.status_code == 200

        res = await client.post('/api/auth/logout', data={'refresh_token': user['refresh_token']}, headers=user['headers'])
        assert res.status_code == 200
        res = await client.post('/api/auth/refresh', json={'refresh_token': user['refresh_token']})
        assert res.status_code == 401


class TestProfile:

    @pytest.mark.asyncio
    async def test_update_profile(self, client, make_user):
        user = await make_user(prefix='profile')
        res = await client.patch('/api/profile', json={
            'bio': '  Hiking and coffee  ',
            'interests': ['Hiking', 'Coffee', 'Hiking'],
        }, headers=user['headers'])
        assert res.status_code == 200, res.text
        assert res.json()['bio'] == 'Hiking and coffee'
        assert res.json()['interests'] == ['Hiking', 'Coffee']

        res = await client.get(f"/api/profile/{user['username']}")
        assert res.status_code == 200
        profile = res.json()
        assert profile['interests'] == ['Hiking', 'Coffee']
        assert profile['friends_count'] == 0
        assert profile['posts_count'] == 0
        assert 'email' not in profile

    @pytest.mark.asyncio
    async def test_update_profile_limits(self, client, make_user):
        user = await make_user(prefix='profile')
        res = await client.patch('/api/profile', json={'bio': 'x' * 501}, headers=user['headers'])
        assert res.status_code == 400
        res = await client.patch('/api/profile', json={'interests': [f"i{n}" for n in range(21)]}, headers=user['headers'])
        assert res.status_code == 400
        res = await client.patch('/api/profile', json={'interests': ['x' * 51]}, headers=user['headers'])
        assert res.status_code == 400
        res = await client.patch('/api/profile', json={'first_name': '   '}, headers=user['headers'])
        assert res.status_code == 400

    @pytest.mark.asyncio
    async def test_profile_picture_upload_and_delete(self, client, make_user):
        user = await make_user(prefix='avatar')
        res = await client.post(
            '/api/profile/picture',
            files={'file': ('avatar.png', png_bytes(), 'image/png')},
            headers=user['headers'],
        )
        assert res.status_code == 200, res.text
        body = res.json()
        path = body['profile_picture']
        assert path.startswith('profile_pictures/') and path.endswith('.jpg')
        assert body['profile_picture_url'] == f"http://localhost:8000/uploads/{path}"
        assert os.path.exists(os.path.join(UPLOAD_DIR, path))

        res = await client.get(f"/uploads/{path}")
        assert res.status_code == 200

        res = await client.delete('/api/profile/picture', headers=user['headers'])
        assert res.status_code == 200
        assert res.json()['profile_picture'] is None
        assert res.json()['profile_picture_url'] is None
        assert not os.path.exists(os.path.join(UPLOAD_DIR, path))

    @pytest.mark.asyncio
    async def test_profile_picture_rejects_non_images(self, client, make_user):
        user = await make_user(prefix='avatar')
        res = await client.post(
            '/api/profile/picture',
            files={'file': ('notes.txt', b'hello', 'text/plain')},
            headers=user['headers'],
        )
        assert res.status_code == 400
        res = await client.post(
            '/api/profile/picture',
            files={'file': ('fake.png', b'not really a png', 'image/png')},
            headers=user['headers'],
        )
        assert res.status_code == 400
        assert res.json()['detail'] == 'Invalid image file'


class TestPosts:

    @pytest.mark.asyncio
    async def test_create_feed_and_delete(self, client, make_user):
        author = await make_user(prefix='author')
        other = await make_user(prefix='reader')
        marker = uuid.uuid4().hex

        res = await client.post('/api/posts', data={'text': f"first {marker}"}, headers=author['headers'])
        assert res.status_code == 200, res.text
        post = res.json()
        assert post['author']['id'] == author['id']
        assert post['image'] is None and post['image_url'] is None
        assert post['likes'] == [] and post['comments_count'] == 0

        res = await client.post(
            '/api/posts',
            data={'text': f"second {marker}"},
            files={'image': ('photo.png', png_bytes((2000, 1000)), 'image/png')},
            headers=author['headers'],
        )
        assert res.status_code == 200, res.text
        with_image = res.json()
        assert with_image['image'].startswith('posts/')
        with Image.open(os.path.join(UPLOAD_DIR, with_image['image'])) as img:
            assert max(img.size) == 1024

        res = await client.get('/api/posts', params={'page': 1, 'limit': 1})
        assert res.status_code == 200
        page = res.json()
        assert len(page['posts']) == 1
        assert page['pagination']['current_page'] == 1
        assert page['pagination']['has_next_page'] is True
        assert page['pagination']['has_prev_page'] is False

        res = await client.post('/api/posts', data={'text': '   '}, headers=author['headers'])
        assert res.status_code == 400

        res = await client.delete(f"/api/posts/{post['id']}", headers=other['headers'])
        assert res.status_code == 401
        res = await client.delete(f"/api/posts/{with_image['id']}", headers=author['headers'])
        assert res.status_code == 200
        assert not os.path.exists(os.path.join(UPLOAD_DIR, with_image['image']))
        res = await client.get(f"/api/posts/{with_image['id']}")
        assert res.status_code == 404

        res = await client.get(f"/api/profile/{author['username']}")
        assert res.json()['posts_count'] == 1

    @pytest.mark.asyncio
    async def test_likes_and_comments(self, client, make_user):
        author = await make_user(prefix='author')
        fan = await make_user(prefix='fan')
        post = (await client.post('/api/posts', data={'text': 'like me'}, headers=author['headers'])).json()

        res = await client.post(f"/api/posts/{post['id']}/like", headers=fan['headers'])
        assert res.status_code == 200
        assert res.json() == {'likes': [fan['id']], 'likes_count': 1}
        res = await client.post(f"/api/posts/{post['id']}/like", headers=fan['headers'])
        assert res.status_code == 400

        res = await client.delete(f"/api/posts/{post['id']}/like", headers=fan['headers'])
        assert res.json()['likes_count'] == 0
        res = await client.delete(f"/api/posts/{post['id']}/like", headers=fan['headers'])
        assert res.status_code == 400

        res = await client.post(f"/api/posts/{post['id']}/comments", json={'text': 'nice'}, headers=fan['headers'])
        assert res.status_code == 200
        comment = res.json()
        assert comment['author']['id'] == fan['id']
        res = await client.post(f"/api/posts/{post['id']}/comments", json={'text': ' '}, headers=fan['headers'])
        assert res.status_code == 400

        res = await client.get(f"/api/posts/{post['id']}")
        detail = res.json()
        assert detail['comments_count'] == 1
        assert detail['comments'][0]['text'] == 'nice'

        res = await client.get(f"/api/posts/{post['id']}/comments")
        assert res.json()['pagination']['total_items'] == 1

        # the post's author may remove comments on it
        res = await client.delete(f"/api/posts/{post['id']}/comments/{comment['id']}", headers=author['headers'])
        assert res.status_code == 200
        res = await client.delete(f"/api/posts/{post['id']}/comments/{comment['id']}", headers=author['headers'])
        assert res.status_code == 404

        res = await client.post('/api/posts/999999/like', headers=fan['headers'])
        assert res.status_code == 404


class TestSearch:

    @pytest.mark.asyncio
    async def test_search_users_and_posts(self, client, make_user):
        marker = uuid.uuid4().hex[:8]
        user = await make_user(prefix=f"find{marker}")
        await client.post('/api/posts', data={'text': f"Looking for 100% {marker} fans"}, headers=user['headers'])

        res = await client.get('/api/search', params={'q': marker})
        assert res.status_code == 200
        body = res.json()
        assert [u['id'] for u in body['users']] == [user['id']]
        assert len(body['posts']) == 1

        res = await client.get('/api/search/users', params={'q': marker.upper()})
        assert res.json()['pagination']['total_items'] == 1

        res = await client.get('/api/search/posts', params={'q': f"100% {marker}"})
        assert res.json()['pagination']['total_items'] == 1

        for path in ('/api/search', '/api/search/users', '/api/search/posts'):
            res = await client.get(path, params={'q': '  '})
            assert res.status_code == 400


class TestChat:

    @pytest.mark.asyncio
    async def test_chat_workflow(self, client, make_user):
        alice = await make_user(prefix='alice')
        bob = await make_user(prefix='bob')
        eve = await make_user(prefix='eve')

        res = await client.post('/api/chat', json={'user_id': bob['id']}, headers=alice['headers'])
        assert res.status_code == 200, res.text
        chat = res.json()
        assert sorted(p['id'] for p in chat['participants']) == sorted([alice['id'], bob['id']])

        res = await client.post('/api/chat', json={'user_id': alice['id']}, headers=bob['headers'])
        assert res.json()['id'] == chat['id']
        res = await client.post('/api/chat', json={'user_id': alice['id']}, headers=alice['headers'])
        assert res.status_code == 400

        res = await client.post(f"/api/chat/{chat['id']}/message", json={'text': 'hi bob'}, headers=alice['headers'])
        assert res.status_code == 200, res.text
        message = res.json()
        assert message['sender']['id'] == alice['id']
        assert message['read'] is False

        res = await client.post(f"/api/chat/{chat['id']}/message", json={'text': 'hi'}, headers=eve['headers'])
        assert res.status_code == 401
        res = await client.get(f"/api/chat/{chat['id']}", headers=eve['headers'])
        assert res.status_code == 401
        res = await client.get('/api/chat/999999', headers=alice['headers'])
        assert res.status_code == 404

        res = await client.get('/api/chat', headers=bob['headers'])
        chats = res.json()['chats']
        assert chats[0]['id'] == chat['id']
        assert chats[0]['last_message'] == 'hi bob'
        assert [m['text'] for m in chats[0]['messages']] == ['hi bob']

        # the sender's own messages are not marked
        res = await client.patch(f"/api/chat/{chat['id']}/read", headers=alice['headers'])
        assert res.json() == {'chat_id': chat['id'], 'marked_read': 0}
        res = await client.patch(f"/api/chat/{chat['id']}/read", headers=bob['headers'])
        assert res.json() == {'chat_id': chat['id'], 'marked_read': 1}
        res = await client.get(f"/api/chat/{chat['id']}", headers=alice['headers'])
        assert res.json()['messages'][0]['read'] is True
