"""Session layer of a pool client."""
from __future__ import annotations

import contextlib
import logging
import socket
import threading
from typing import BinaryIO, Optional, Tuple, Union

from .errors import (
    Disconnected,
    LoginTimedOut,
    LoginUnexpectedReply,
    PoolIOError,
    ServerError,
)
from .protocol import (
    U32_MAX,
    Credentials,
    Job,
    JobAssignment,
    JobNotification,
    KeepAlived,
    Login,
    PoolCommand,
    PoolEvent,
    Share,
    Submit,
    WorkerId,
    decode_event,
)
from .stratum import PoolRequest, parse_json_line

logger = logging.getLogger(__name__)

# Algorithms advertised at login.
LOGIN_ALGOS = ("cn/1",)

# Comfortably holds one request line.
WRITE_BUFFER_SIZE = 1500
READ_CHUNK_SIZE = 1500

Address = Union[str, Tuple[str, int]]


class ClientWriter:
    """
    Write end of a connection to a pool.

    Each send() allocates a request id and writes + flushes one complete line
    while holding the lock, so threads sharing a writer never interleave.
    """

    def __init__(self, stream: BinaryIO):
        self.stream = stream
        self.next_id = 1
        self._lock = threading.Lock()

    def _alloc_id(self) -> int:
        rid = self.next_id
        self.next_id = (rid + 1) & U32_MAX
        return rid

    def send(self, command: PoolCommand) -> int:
        with self._lock:
            if self.stream.closed:
                raise PoolIOError("writer closed")
            rid = self._alloc_id()
            try:
                self.stream.write(PoolRequest(rid, command).to_json_line())
                self.stream.flush()
            except OSError as e:
                raise PoolIOError(f"write failed: {e}") from e
        return rid

    def close(self) -> None:
        with self._lock, contextlib.suppress(OSError):
            self.stream.close()


class PoolClientReader:
    """
    Read end of a connection to a pool.

    Keeps bytes of a partial line across reads, including reads that time out.
    """

    def __init__(self, sock: socket.socket):
        self.sock = sock
        self.buf = b""

    def _next_line(self) -> Optional[bytes]:
        while b"\n" not in self.buf:
            try:
                chunk = self.sock.recv(READ_CHUNK_SIZE)
            except (socket.timeout, BlockingIOError):
                return None
            except OSError as e:
                raise PoolIOError(f"read failed: {e}") from e
            if not chunk:
                raise Disconnected()
            self.buf += chunk
        line, self.buf = self.buf.split(b"\n", 1)
        return line

    def read(self) -> Optional[PoolEvent]:
        """
        Next event from the pool, or None if the read timed out with nothing
        to report. Timeouts are routine; the caller uses them for keepalives.
        """
        while True:
            line = self._next_line()
            if line is None:
                return None
            line = line.strip()
            if line:
                break
        logger.debug("read() success: %r", line)
        return decode_event(parse_json_line(line))

    def close(self) -> None:
        # shutdown first so a read blocked in another thread sees end-of-stream
        with contextlib.suppress(OSError):
            self.sock.shutdown(socket.SHUT_RDWR)
        self.sock.close()


class PoolClientWriter:
    """Write end of a logged-in connection to a pool."""

    def __init__(self, writer: ClientWriter, worker_id: WorkerId):
        self._writer = writer
        self._worker_id = worker_id

    @property
    def worker_id(self) -> WorkerId:
        return self._worker_id

    def keepalive(self) -> int:
        return self._writer.send(KeepAlived(self._worker_id))

    def submit(self, job: Job, nonce: int, result: bytes) -> int:
        share = Share(
            worker_id=self._worker_id,
            job_id=job.job_id,
            nonce=nonce,
            result=result,
            algo=job.algo or "",
        )
        # a StatusReply (or an error) is expected under the returned id
        return self._writer.send(Submit(share))

    def close(self) -> None:
        self._writer.close()


def parse_address(address: Address) -> Tuple[str, int]:
    if isinstance(address, tuple):
        host, port = address
        return host, int(port)
    host, sep, port = address.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise ValueError(f"address must look like host:port, got {address!r}")
    return host.strip("[]"), int(port)


def _login(
    writer: ClientWriter,
    reader: PoolClientReader,
    login: str,
    password: str,
    agent: str,
) -> Tuple[WorkerId, Job]:
    req_id = writer.send(Login(Credentials(login, password, agent, LOGIN_ALGOS)))
    logger.debug("login sent: id=%d", req_id)

    while True:
        event = reader.read()
        if event is None:
            raise LoginTimedOut()
        if isinstance(event, JobNotification):
            logger.warning("ignoring job notification received during login")
            continue
        if event.error is not None:
            raise ServerError(event.error)
        if isinstance(event.result, JobAssignment):
            # pools are not required to echo the id back with the same type
            if event.id != req_id:
                logger.debug("login reply id %r does not match request id %r", event.id, req_id)
            assignment = event.result
            logger.info("login successful: status %r", assignment.status)
            return assignment.worker_id, assignment.job
        raise LoginUnexpectedReply()


def connect(
    address: Address,
    login: str,
    password: str,
    agent: str,
    keepalive: Optional[float] = None,
) -> Tuple[PoolClientWriter, Job, PoolClientReader]:
    """
    Synchronously connect and log in.

    `keepalive` is the read timeout in seconds (None blocks forever). Returns
    the logged-in writer, the first job and the reader for the session.
    """
    try:
        sock = socket.create_connection(parse_address(address))
    except OSError as e:
        raise PoolIOError(f"connect to {address!r} failed: {e}") from e

    reader = PoolClientReader(sock)
    try:
        # set before dup(): the halves share the descriptor's blocking mode, so the
        # idle timeout also bounds the login write and every later write
        sock.settimeout(keepalive)
        sock_w = sock.dup()
        sock_w.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        writer = ClientWriter(sock_w.makefile("wb", buffering=WRITE_BUFFER_SIZE))
        sock_w.close()  # the file object keeps the descriptor open until it is closed
    except OSError as e:
        reader.close()
        raise PoolIOError(f"socket setup failed: {e}") from e

    try:
        worker_id, job = _login(writer, reader, login, password, agent)
    except BaseException:
        writer.close()
        reader.close()
        raise
    return PoolClientWriter(writer, worker_id), job, reader
