from contextlib import asynccontextmanager

import pytest
from fastapi.testclient import TestClient

from paperscope.config import Settings
from paperscope.dependencies import get_db, get_recommender
from paperscope.main import app
from paperscope.services.recommendations import RecommendationService


def normalize(sql: str) -> str:
    return " ".join(sql.split())


class FakeMappings:
    def __init__(self, rows):
        self.rows = rows

    def all(self):
        return list(self.rows)

    def first(self):
        return self.rows[0] if self.rows else None


class FakeResult:
    def __init__(self, rows=None, rowcount=None):
        self.rows = rows or []
        self.rowcount = len(self.rows) if rowcount is None else rowcount

    def mappings(self):
        return FakeMappings(self.rows)

    def scalar(self):
        if not self.rows:
            return None
        return next(iter(self.rows[0].values()))


class FakeConnection:
    """
    Stands in for AsyncConnection.

    `when(fragment, response)` scripts the answer for any statement whose
    whitespace-normalized SQL contains `fragment`. A response is a list of
    row dicts, a callable taking the bound params, or an exception to raise.
    Unmatched statements return no rows with rowcount 1.
    """

    def __init__(self):
        self.rules = []
        self.statements = []

    def when(self, fragment, response, rowcount=None):
        self.rules.append((normalize(fragment), response, rowcount))
        return self

    async def execute(self, statement, params=None):
        sql = normalize(str(statement))
        self.statements.append((sql, params))

        for fragment, response, rowcount in self.rules:
            if fragment in sql:
                if isinstance(response, Exception):
                    raise response
                rows = response(params) if callable(response) else response
                return FakeResult(rows, rowcount)

        return FakeResult([], 1)

    def executed(self, fragment):
        fragment = normalize(fragment)
        return [(sql, params) for sql, params in self.statements if fragment in sql]


class FakeDatabase:
    """Database double recording transaction outcomes"""

    def __init__(self):
        self.conn = FakeConnection()
        self.connects = 0
        self.commits = 0
        self.rollbacks = 0
        self.isolation_levels = []

    @asynccontextmanager
    async def connect(self):
        self.connects += 1
        yield self.conn

    @asynccontextmanager
    async def transaction(self, isolation_level="READ COMMITTED"):
        self.connects += 1
        self.isolation_levels.append(isolation_level)
        try:
            yield self.conn
        except BaseException:
            self.rollbacks += 1
            raise
        else:
            self.commits += 1

    async def ping(self):
        result = await self.conn.execute("SELECT 1 AS ok")
        return result.scalar() == 1

    async def dispose(self):
        pass


def echo_ids(params):
    """Answer an IN (...) existence check as if every id exists"""
    return [{"id": value} for value in params.values()]


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def recommender():
    return RecommendationService(Settings(gcp_project_id=""))


@pytest.fixture
def client(fake_db, recommender):
    app.dependency_overrides[get_db] = lambda: fake_db
    app.dependency_overrides[get_recommender] = lambda: recommender
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
