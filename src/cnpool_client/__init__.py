from .client import MessageHandler, PoolClient
from .connection import PoolClientReader, PoolClientWriter, connect
from .errors import (
    Disconnected,
    LoginTimedOut,
    LoginUnexpectedReply,
    MessageError,
    PoolClientError,
    PoolIOError,
    ServerError,
)
from .protocol import ErrorReply, Job, JobAssignment, JobId, WorkerId

__version__ = "0.1.0"
