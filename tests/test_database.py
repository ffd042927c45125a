import asyncio
import ssl

import pytest

from paperscope.config import Settings
from paperscope.database import Database, build_connect_args


class RecordingTransaction:
    def __init__(self, conn):
        self.conn = conn

    async def __aenter__(self):
        self.conn.events.append("begin")
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.conn.events.append("rollback" if exc_type else "commit")
        return False


class RecordingConnection:
    """Mimics the parts of AsyncConnection that Database relies on"""

    def __init__(self):
        self.events = []
        self.options = {}
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed = True
        return False

    async def execution_options(self, **options):
        self.options.update(options)
        return self

    def begin(self):
        return RecordingTransaction(self)


class RecordingEngine:
    def __init__(self):
        self.connections = []
        self.disposed = False

    def connect(self):
        conn = RecordingConnection()
        self.connections.append(conn)
        return conn

    async def dispose(self):
        self.disposed = True


async def run_transaction(db, fail=False, **kwargs):
    async with db.transaction(**kwargs) as conn:
        conn.events.append("work")
        if fail:
            raise RuntimeError("statement failed")


def test_transaction_commits_at_read_committed():
    engine = RecordingEngine()

    asyncio.run(run_transaction(Database(engine)))

    conn, = engine.connections
    assert conn.options == {"isolation_level": "READ COMMITTED"}
    assert conn.events == ["begin", "work", "commit"]
    assert conn.closed


def test_transaction_rolls_back_and_releases_on_error():
    engine = RecordingEngine()

    with pytest.raises(RuntimeError):
        asyncio.run(run_transaction(Database(engine), fail=True))

    conn, = engine.connections
    assert conn.events == ["begin", "work", "rollback"]
    assert conn.closed


def test_transaction_without_isolation_level_keeps_driver_default():
    engine = RecordingEngine()

    asyncio.run(run_transaction(Database(engine), isolation_level=None))

    assert engine.connections[0].options == {}


def test_connect_releases_on_error():
    engine = RecordingEngine()

    async def failing_read():
        async with Database(engine).connect():
            raise ValueError("bad row")

    with pytest.raises(ValueError):
        asyncio.run(failing_read())

    assert engine.connections[0].closed
    assert engine.connections[0].events == []


def test_dispose_closes_engine():
    engine = RecordingEngine()
    asyncio.run(Database(engine).dispose())
    assert engine.disposed


def test_connect_args_for_socket_and_tls():
    socket_settings = Settings(db_host="/cloudsql/proj:region:inst", db_socket_path="", db_connect_timeout=5)
    assert build_connect_args(socket_settings) == {
        "connect_timeout": 5,
        "unix_socket": "/cloudsql/proj:region:inst",
    }
    assert socket_settings.database_url.startswith("mysql+aiomysql://")
    assert "@localhost/" in socket_settings.database_url

    tls_args = build_connect_args(Settings(db_host="10.0.0.5", db_ssl=True, db_socket_path=""))
    assert tls_args["ssl"].verify_mode == ssl.CERT_NONE
    assert "unix_socket" not in tls_args

    assert "ssl" not in build_connect_args(Settings(db_host="10.0.0.5", db_ssl=False, db_socket_path=""))
