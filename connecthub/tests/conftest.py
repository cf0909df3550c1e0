import asyncio
import os
import tempfile
import uuid

import fakeredis
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Configure test environment before the app is imported: a throwaway sqlite
# database and upload dir, no redis/kafka/metrics
TEST_ROOT = tempfile.mkdtemp(prefix='connecthub-tests-')
os.environ['DATABASE_URL'] = f"sqlite+aiosqlite:///{os.path.join(TEST_ROOT, 'test.db')}"
os.environ['UPLOAD_DIR'] = os.path.join(TEST_ROOT, 'uploads')
for var in ('REDIS_URL', 'KAFKA_BOOTSTRAP_SERVERS', 'METRICS_PORT', 'PUBLIC_BASE_URL'):
    os.environ.pop(var, None)

from connecthub import core  # noqa: E402
from connecthub.main import app  # noqa: E402
from connecthub.models import init_db  # noqa: E402

asyncio.run(init_db())


@pytest_asyncio.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url='http://test') as ac:
        yield ac


@pytest.fixture
def make_user(client):
    """Register and log in a user with a unique name; returns id, username, token and headers"""
    async def _make_user(interests=None, prefix='user', password='secret123'):
        unique_id = uuid.uuid4().hex[:10]
        username = f"{prefix}_{unique_id}"
        res = await client.post('/api/auth/register', json={
            'username': username,
            'email': f"{username}@example.com",
            'password': password,
            'first_name': prefix.capitalize(),
            'last_name': 'Tester',
            'interests': interests or [],
        })
        assert res.status_code == 200, res.text
        user = res.json()
        login = await client.post('/api/auth/login', data={'username': username, 'password': password})
        assert login.status_code == 200, login.text
        tokens = login.json()
        return {
            'id': user['id'],
            'username': username,
            'token': tokens['access_token'],
            'refresh_token': tokens['refresh_token'],
            'headers': {'Authorization': f"Bearer {tokens['access_token']}"},
        }
    return _make_user


@pytest.fixture
def tag():
    """Interest suffix unique to one test so suggestion results stay isolated"""
    return uuid.uuid4().hex[:8]


@pytest_asyncio.fixture
async def fake_redis():
    """In-memory Redis installed as the app's client for one test"""
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    core.REDIS = client
    yield client
    core.REDIS = None
    await client.aclose()
