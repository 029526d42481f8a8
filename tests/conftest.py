"""Test fixtures.

Each test gets a fresh in-memory MongoDB (mongomock-motor) with Beanie
initialised on it, and an app whose broadcast channel talks to an in-memory
Socket.IO stand-in that records what every socket received.
"""

from collections import defaultdict

import pytest_asyncio
from beanie import init_beanie
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from carelink.database import document_models
from carelink.features.alerts.service import AlertDispatcher
from carelink.features.auth.models import User
from carelink.features.auth.service import AuthService
from carelink.main import create_app
from carelink.realtime.channel import BroadcastChannel
from carelink.realtime.namespace import CaregiverNamespace


class FakeSocketServer:
    """Rooms plus a per-socket inbox; emit delivers to current room members only."""

    def __init__(self):
        self.rooms = defaultdict(set)
        self.inbox = defaultdict(list)

    async def enter_room(self, sid, room, namespace=None):
        self.rooms[room].add(sid)

    async def leave_room(self, sid, room, namespace=None):
        self.rooms[room].discard(sid)

    async def emit(self, event, data=None, room=None, namespace=None, **kwargs):
        targets = self.rooms[room] if room in self.rooms else {room}
        for sid in sorted(targets):
            self.inbox[sid].append((event, data))

    def received(self, sid, event):
        return [data for name, data in self.inbox[sid] if name == event]


@pytest_asyncio.fixture(autouse=True)
async def db():
    """Fresh in-memory database per test."""
    client = AsyncMongoMockClient()
    await init_beanie(database=client["carelink_test"], document_models=document_models())
    yield client


@pytest_asyncio.fixture()
async def sio():
    return FakeSocketServer()


@pytest_asyncio.fixture()
async def channel(sio):
    channel = BroadcastChannel(sio, namespace="/caregivers", timeout=1.0)
    yield channel
    await channel.wait_idle()


@pytest_asyncio.fixture()
async def dispatcher(channel):
    return AlertDispatcher(channel)


@pytest_asyncio.fixture()
async def namespace(channel, dispatcher):
    return CaregiverNamespace(channel, dispatcher)


@pytest_asyncio.fixture()
async def client(channel, dispatcher):
    """HTTP client against an app wired to the in-memory channel."""
    app = create_app()
    app.state.channel = channel
    app.state.dispatcher = dispatcher

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def make_user():
    """Factory creating a registered user; returns (user, auth headers)."""

    async def _make(name: str, email: str):
        user = User(email=email, password_hash="not-used-in-tests", name=name)
        await user.insert()
        token = AuthService.issue_token(user)
        return user, {"Authorization": f"Bearer {token}"}

    return _make


@pytest_asyncio.fixture()
async def patient(make_user):
    return await make_user("Asha Verma", "asha@example.com")


@pytest_asyncio.fixture()
async def caregiver(make_user):
    return await make_user("Ravi Verma", "ravi@example.com")


@pytest_asyncio.fixture()
async def connect(namespace, channel):
    """Open an authenticated socket for a user; returns the sid."""
    counter = {"n": 0}

    async def _connect(user: User) -> str:
        counter["n"] += 1
        sid = f"sid-{counter['n']}"
        token = AuthService.issue_token(user)
        accepted = await namespace.trigger_event("connect", sid, {}, {"token": token})
        assert accepted is True
        return sid

    return _connect
