import uuid

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from connecthub.main import app
from connecthub.ws_manager import ConnectionManager


def register(client, prefix):
    username = f"{prefix}_{uuid.uuid4().hex[:10]}"
    res = client.post('/api/auth/register', json={
        'username': username,
        'email': f"{username}@example.com",
        'password': 'secret123',
        'first_name': prefix,
        'last_name': 'Socket',
    })
    assert res.status_code == 200, res.text
    token = client.post('/api/auth/login', data={'username': username, 'password': 'secret123'}).json()['access_token']
    return res.json()['id'], token


def test_ws_rejects_bad_token():
    with TestClient(app) as client:
        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect('/api/ws/chat?token=garbage'):
                pass
        assert exc.value.code == 1008


def test_ws_message_reaches_other_participant():
    with TestClient(app) as client:
        alice_id, alice_token = register(client, 'alice')
        bob_id, bob_token = register(client, 'bob')
        chat = client.post('/api/chat', json={'user_id': bob_id},
                           headers={'Authorization': f"Bearer {alice_token}"}).json()

        with client.websocket_connect(f"/api/ws/chat?token={bob_token}") as bob_ws:
            with client.websocket_connect(f"/api/ws/chat?token={alice_token}") as alice_ws:
                alice_ws.send_json({'chat_id': chat['id'], 'text': 'hello over ws'})
                ack = alice_ws.receive_json()
                assert ack['event'] == 'message_sent'
                assert ack['data']['text'] == 'hello over ws'

                pushed = bob_ws.receive_json()
                assert pushed['event'] == 'new_message'
                assert pushed['data']['sender']['id'] == alice_id
                assert pushed['data']['chat_id'] == chat['id']

                alice_ws.send_json({'text': 'no chat id'})
                assert alice_ws.receive_json()['event'] == 'error'

                alice_ws.send_json({'chat_id': 999999, 'text': 'nowhere'})
                error = alice_ws.receive_json()
                assert error == {'event': 'error', 'data': {'detail': 'Chat not found'}}


def test_friend_request_is_pushed_to_recipient():
    with TestClient(app) as client:
        alice_id, alice_token = register(client, 'alice')
        bob_id, bob_token = register(client, 'bob')

        with client.websocket_connect(f"/api/ws/chat?token={bob_token}") as bob_ws:
            res = client.post('/api/friends/request', json={'to_user_id': bob_id},
                              headers={'Authorization': f"Bearer {alice_token}"})
            assert res.status_code == 200
            pushed = bob_ws.receive_json()
            assert pushed['event'] == 'friend_request'
            assert pushed['data']['from_user'] == alice_id
            assert pushed['data']['request_id'] == res.json()['id']


class RecordingSocket:
    def __init__(self, broken=False):
        self.accepted = False
        self.broken = broken
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, message):
        if self.broken:
            raise RuntimeError('socket closed')
        self.sent.append(message)


@pytest.mark.asyncio
async def test_connection_manager_registry(fake_redis):
    manager = ConnectionManager()
    healthy, broken = RecordingSocket(), RecordingSocket(broken=True)
    await manager.connect(7, healthy)
    await manager.connect(7, broken)
    assert healthy.accepted and broken.accepted
    # connections are tracked in memory only
    assert await fake_redis.keys('*') == []

    await manager.send_personal(7, 'ping', {'n': 1})
    assert healthy.sent == [{'event': 'ping', 'data': {'n': 1}}]
    assert manager.connections[7] == {healthy}

    manager.disconnect(7, healthy)
    assert 7 not in manager.connections
    await manager.send_personal(7, 'ping', {'n': 2})
    assert healthy.sent == [{'event': 'ping', 'data': {'n': 1}}]
