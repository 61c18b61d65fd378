"""
Pool client. The API is synchronous: users will not normally want to
multiplex lots of upstreams.
"""
from __future__ import annotations

import abc
import logging
from typing import Callable, Generic, NoReturn, Optional, TypeVar

from . import connection
from .connection import Address, PoolClientReader, PoolClientWriter
from .protocol import (
    ErrorReply,
    Job,
    JobAssignment,
    JobNotification,
    PoolEvent,
    StatusReply,
)

logger = logging.getLogger(__name__)


class MessageHandler(abc.ABC):
    """Receives the messages read from the pool."""

    @abc.abstractmethod
    def job_command(self, job: Job) -> None:
        ...

    @abc.abstractmethod
    def error_reply(self, id: int, error: ErrorReply) -> None:
        ...

    @abc.abstractmethod
    def status_reply(self, id: int, status: str) -> None:
        ...

    @abc.abstractmethod
    def job_reply(self, id: int, assignment: JobAssignment) -> None:
        ...


H = TypeVar("H", bound=MessageHandler)


class PoolClient(Generic[H]):
    """A synchronous pool client, customized with a MessageHandler."""

    def __init__(self, writer: PoolClientWriter, reader: PoolClientReader, handler: H):
        self._writer = writer
        self._reader = reader
        self._handler = handler

    @classmethod
    def connect(
        cls,
        address: Address,
        login: str,
        password: str,
        keepalive: Optional[float],
        agent: str,
        make_handler: Callable[[Job], H],
    ) -> "PoolClient[H]":
        """Log in, then build the handler from the initial job."""
        writer, job, reader = connection.connect(address, login, password, agent, keepalive)
        logger.debug("client connected, initial job: %r", job)
        return cls(writer, reader, make_handler(job))

    def write_handle(self) -> PoolClientWriter:
        """The write end; safe to use from other threads while run() is going."""
        return self._writer

    @property
    def handler(self) -> H:
        return self._handler

    def dispatch(self, event: PoolEvent) -> None:
        if isinstance(event, JobNotification):
            self._handler.job_command(event.job)
        elif event.error is not None:
            self._handler.error_reply(event.id, event.error)
        elif isinstance(event.result, StatusReply):
            self._handler.status_reply(event.id, event.result.status)
        elif isinstance(event.result, JobAssignment):
            self._handler.job_reply(event.id, event.result)
        else:
            logger.warning("pool reply with no content (id=%r)", event.id)

    def run(self) -> NoReturn:
        """Handle messages until the connection fails; the error is raised to the caller."""
        while True:
            event = self._reader.read()
            if event is None:
                logger.debug("read timeout; sending keepalive")
                self._writer.keepalive()
                continue
            self.dispatch(event)

    def close(self) -> None:
        """Close both halves. A run() in another thread ends with an error."""
        self._reader.close()
        self._writer.close()
