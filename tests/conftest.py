import pytest
import sys
import os
from collections import defaultdict
from unittest.mock import AsyncMock, MagicMock
from fastapi.testclient import TestClient

# Ensure we can import from the parent directory
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from main import app
from db import get_supabase
from services import catalog


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Stands in for a postgrest query builder: records every call, answers from canned data."""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = None
        self.payload = None
        self.filters = []

    def _start(self, op, payload=None):
        if self.op is None:
            self.op = op
            self.payload = payload
        return self

    def select(self, *args, **kwargs):
        return self._start("select")

    def insert(self, payload, **kwargs):
        return self._start("insert", payload)

    def upsert(self, payload, **kwargs):
        return self._start("upsert", payload)

    def update(self, payload, **kwargs):
        return self._start("update", payload)

    def delete(self, **kwargs):
        return self._start("delete")

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)

        def record(*args, **kwargs):
            self.filters.append((name, args, kwargs))
            return self
        return record

    def eqs(self):
        return {args[0]: args[1] for name, args, _ in self.filters if name == "eq"}

    async def execute(self):
        self.db.calls.append(self)
        queue = self.db.responses.get((self.table, self.op))
        data = queue.pop(0) if queue else []
        if isinstance(data, Exception):
            raise data
        return FakeResponse(data)


class FakeChannel:
    def __init__(self, db, name):
        self.db = db
        self.name = name
        self.callback = None
        self.filter = None
        self.subscribed = False

    async def subscribe(self):
        """Replays ``db.realtime_rows`` as INSERT events once subscribed."""
        self.subscribed = True
        for row in self.db.realtime_rows:
            self.callback({"data": {"record": row}})
        return self

    def on_postgres_changes(self, event, schema=None, table=None, filter=None, callback=None):
        self.filter = filter
        self.callback = callback
        return self


class FakeSupabase:
    def __init__(self):
        self.responses = defaultdict(list)
        self.calls = []
        self.channels = []
        self.realtime_rows = []
        self.auth = MagicMock()
        self.auth.sign_up = AsyncMock()
        self.auth.sign_in_with_password = AsyncMock()
        self.auth.get_user = AsyncMock()
        self.remove_channel = AsyncMock()

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params=None):
        query = FakeQuery(self, name)
        query.op = "rpc"
        query.payload = params
        return query

    def channel(self, name):
        channel = FakeChannel(self, name)
        self.channels.append(channel)
        return channel

    def respond(self, table, op, data):
        """Queue the rows returned by the next ``op`` on ``table``."""
        self.responses[(table, op)].append(data)

    def queries(self, table, op=None):
        return [q for q in self.calls if q.table == table and (op is None or q.op == op)]


@pytest.fixture
def mock_supabase():
    catalog.clear_cache()
    return FakeSupabase()

@pytest.fixture
def client(mock_supabase):
    app.dependency_overrides[get_supabase] = lambda: mock_supabase
    yield TestClient(app)
    app.dependency_overrides.clear()

@pytest.fixture
def login_as():
    def _login(dependency, account_id):
        app.dependency_overrides[dependency] = lambda: account_id
    return _login

@pytest.fixture
def make_request_row():
    def _make(**overrides):
        row = {
            "id": "req-1",
            "user_id": "user-1",
            "provider_id": None,
            "title": "Fix kitchen sink",
            "description": "The kitchen sink has been leaking for two days now.",
            "category": "plumbing",
            "location": "Nairobi",
            "urgency": "medium",
            "status": "pending",
            "budget": 2500,
            "created_at": "2024-05-01T10:00:00+00:00",
        }
        row.update(overrides)
        return row
    return _make

@pytest.fixture
def make_provider_row():
    def _make(**overrides):
        row = {
            "id": "prov-1",
            "name": "Jane Wanjiku",
            "email": "jane@example.com",
            "phone": "+254712345678",
            "services": ["plumbing", "electrical"],
            "location": "Nairobi",
            "rating": 4.5,
            "total_jobs": 12,
            "verification_status": "approved",
            "hourly_rate": 1500,
            "bio": "Licensed plumber with ten years of experience.",
            "is_blocked": False,
        }
        row.update(overrides)
        return row
    return _make
