import json
import socket
import threading

import pytest

EXAMPLE_LOGINREPLY_STR = (
    '{"id":0,"jsonrpc":"2.0","result":{"id":"0","job":'
    '{"blob":"0606de93b8d0055f149bdc720d9b8928e51399dbc2f85b069aa10142fff7b8814a296424f3659'
    '00000000019be9ee931ce265444a4d5b599d1e463f1f7fbada6517218fe65aea3a73390a406",'
    '"job_id":"12022","target":"b7d10000"},"status":"OK"},"error":null}'
)
EXAMPLE_JOBCOMMAND_STR = (
    '{"jsonrpc":"2.0","method":"job","params":'
    '{"blob":"06068795b8d0055b9272a308e09675e9c4c1510e84921e1ff0bfa13fc375eb8eec2207408205c'
    '000000000da5d4af05371b7bda75eef0d73cbbead3773006bd9117b1ca7dbcc9dacc1284d0d",'
    '"job_id":"12023","target":"b7d10000"}}'
)


class PoolConn:
    """Server side of one fake pool connection."""

    def __init__(self, conn: socket.socket):
        self.conn = conn
        self.buf = b""

    def recv_line(self):
        while b"\n" not in self.buf:
            chunk = self.conn.recv(4096)
            if not chunk:
                raise ConnectionError("client closed")
            self.buf += chunk
        line, self.buf = self.buf.split(b"\n", 1)
        return json.loads(line.decode())

    def send(self, obj):
        self.conn.sendall((json.dumps(obj) + "\n").encode())

    def send_raw(self, data: bytes):
        self.conn.sendall(data)


class FakePool:
    """
    Single-connection pool on 127.0.0.1. `script(conn)` runs in a thread;
    the connection is closed when it returns.
    """

    def __init__(self, script):
        self.srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.srv.bind(("127.0.0.1", 0))
        self.srv.listen(1)
        self.address = self.srv.getsockname()
        self.failure = None
        self.thread = threading.Thread(target=self._serve, args=(script,), daemon=True)
        self.thread.start()

    def _serve(self, script):
        try:
            conn, _ = self.srv.accept()
            conn.settimeout(5)
            try:
                script(PoolConn(conn))
            finally:
                conn.close()
        except Exception as e:
            self.failure = e
        finally:
            self.srv.close()

    def join(self):
        self.thread.join(5)
        assert not self.thread.is_alive(), "fake pool did not finish"
        if self.failure is not None:
            raise self.failure


@pytest.fixture
def fake_pool():
    pools = []

    def start(script):
        pool = FakePool(script)
        pools.append(pool)
        return pool

    yield start
    for pool in pools:
        pool.thread.join(5)


@pytest.fixture
def login_reply():
    return json.loads(EXAMPLE_LOGINREPLY_STR)


@pytest.fixture
def job_command():
    return json.loads(EXAMPLE_JOBCOMMAND_STR)


@pytest.fixture
def login_reply_line():
    return EXAMPLE_LOGINREPLY_STR


@pytest.fixture
def job_command_line():
    return EXAMPLE_JOBCOMMAND_STR
