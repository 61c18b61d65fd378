from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Dict, Optional, Tuple, Union

from .errors import MessageError
from .hexbytes import bytes32_to_hex, decode_target, hex_to_varbyte, u32_to_hex_padded

# Worker and job ids are opaque strings of at most this many bytes.
MAX_TOKEN_BYTES = 64

U32_MAX = 0xFFFFFFFF


def _expect_dict(obj: Any, what: str) -> Dict[str, Any]:
    if not isinstance(obj, dict):
        raise MessageError(f"{what} must be an object, got {type(obj).__name__}")
    return obj


def _require(obj: Dict[str, Any], key: str, what: str) -> Any:
    if key not in obj:
        raise MessageError(f"{what} is missing {key!r}")
    return obj[key]


def _optional_str(obj: Dict[str, Any], key: str) -> Optional[str]:
    v = obj.get(key)
    if v is not None and not isinstance(v, str):
        raise MessageError(f"{key!r} must be a string, got {type(v).__name__}")
    return v


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def parse_request_id(v: Any) -> int:
    """Reply ids are expected back as the unsigned 32-bit ints we sent."""
    if not _is_int(v) or not 0 <= v <= U32_MAX:
        raise MessageError(f"reply id must be an unsigned 32-bit integer, got {v!r}")
    return v


############################################################
# common
############################################################


@dataclass(frozen=True)
class _Token:
    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise ValueError(f"{type(self).__name__} must be a str")
        if len(self.value.encode("utf-8")) > MAX_TOKEN_BYTES:
            raise ValueError(f"{type(self).__name__} is longer than {MAX_TOKEN_BYTES} bytes")

    @classmethod
    def from_json(cls, v: Any):
        if not isinstance(v, str):
            raise MessageError(f"{cls.__name__} must be a string, got {type(v).__name__}")
        try:
            return cls(v)
        except ValueError as e:
            raise MessageError(str(e)) from e

    def __str__(self) -> str:
        return self.value


class WorkerId(_Token):
    """Server-assigned token identifying our connection. Opaque to the worker."""


class JobId(_Token):
    """Server-defined job identifier."""


############################################################
# server -> worker
############################################################


@dataclass(frozen=True, eq=False)
class Job:
    """
    Description of what hash to try to find.

    Two jobs are the same job when their ids match; the payload is not compared.
    `target` is always the expanded 64-bit value (see hexbytes.decode_target).
    """
    blob: bytes
    job_id: JobId
    target: int
    algo: Optional[str] = None
    variant: int = 0  # sent by xmrig-proxy for old xmrig; unused

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Job):
            return NotImplemented
        return self.job_id == other.job_id

    def __hash__(self) -> int:
        return hash(self.job_id)

    @staticmethod
    def from_json(obj: Any) -> "Job":
        obj = _expect_dict(obj, "job")
        variant = obj.get("variant")
        if variant is None:
            variant = 0
        elif not _is_int(variant) or variant < 0:
            raise MessageError(f"job variant must be an unsigned integer, got {variant!r}")
        return Job(
            blob=hex_to_varbyte(_require(obj, "blob", "job")),
            job_id=JobId.from_json(_require(obj, "job_id", "job")),
            target=decode_target(_require(obj, "target", "job")),
            algo=_optional_str(obj, "algo"),
            variant=variant,
        )


@dataclass(frozen=True)
class JobAssignment:
    """Reply to login (and to getjob): our worker id plus the first job."""
    worker_id: WorkerId
    job: Job
    status: Optional[str] = None  # usually something friendly like "OK"
    extensions: Tuple[str, ...] = ()

    @staticmethod
    def from_json(obj: Any) -> "JobAssignment":
        obj = _expect_dict(obj, "job assignment")
        ext = obj.get("extensions")
        if ext is None:
            ext = []
        if not isinstance(ext, list) or not all(isinstance(x, str) for x in ext):
            raise MessageError(f"extensions must be a list of strings, got {ext!r}")
        return JobAssignment(
            worker_id=WorkerId.from_json(_require(obj, "id", "job assignment")),
            job=Job.from_json(_require(obj, "job", "job assignment")),
            status=_optional_str(obj, "status"),
            extensions=tuple(ext),
        )


@dataclass(frozen=True)
class StatusReply:
    """Reply to submit and keepalived."""
    status: str

    @staticmethod
    def from_json(obj: Any) -> "StatusReply":
        obj = _expect_dict(obj, "status reply")
        status = _require(obj, "status", "status reply")
        if not isinstance(status, str):
            raise MessageError(f"status must be a string, got {type(status).__name__}")
        return StatusReply(status)


@dataclass(frozen=True)
class ErrorReply:
    code: int
    message: str

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    @staticmethod
    def from_json(obj: Any) -> "ErrorReply":
        obj = _expect_dict(obj, "error")
        code = _require(obj, "code", "error")
        message = _require(obj, "message", "error")
        if not _is_int(code):
            raise MessageError(f"error code must be an integer, got {code!r}")
        if not isinstance(message, str):
            raise MessageError(f"error message must be a string, got {type(message).__name__}")
        return ErrorReply(code, message)


PoolReply = Union[JobAssignment, StatusReply]


def decode_pool_reply(obj: Any) -> PoolReply:
    """A job assignment carries "job"; a plain status reply only "status"."""
    obj = _expect_dict(obj, "result")
    if "job" in obj:
        return JobAssignment.from_json(obj)
    if "status" in obj:
        return StatusReply.from_json(obj)
    raise MessageError(f"result is neither a job assignment nor a status: {sorted(obj)}")


@dataclass(frozen=True)
class JobNotification:
    """Server-pushed `job` command."""
    job: Job
    jsonrpc: Optional[str] = None


@dataclass(frozen=True)
class PoolReplyEvent:
    """
    Reply to one of our requests. At most one of error/result is meaningful;
    both absent is a valid, empty reply.
    """
    id: Any
    error: Optional[ErrorReply] = None
    result: Optional[PoolReply] = None
    jsonrpc: Optional[str] = None
    status: Optional[str] = None


PoolEvent = Union[JobNotification, PoolReplyEvent]


def decode_event(obj: Any, decode_id: Callable[[Any], Any] = parse_request_id) -> PoolEvent:
    """
    Pick the event variant from the fields present: a "method" makes it a
    notification, otherwise an "id" makes it a reply.
    """
    obj = _expect_dict(obj, "message")
    jsonrpc = _optional_str(obj, "jsonrpc")
    status = _optional_str(obj, "status")

    if "method" in obj:
        method = obj["method"]
        if method != "job":
            raise MessageError(f"unknown notification method: {method!r}")
        params = _require(obj, "params", "job notification")
        return JobNotification(job=Job.from_json(params), jsonrpc=jsonrpc)

    if "id" not in obj:
        raise MessageError(f"message is neither a notification nor a reply: {sorted(obj)}")

    error = obj.get("error")
    result = obj.get("result")
    return PoolReplyEvent(
        id=decode_id(obj["id"]),
        error=None if error is None else ErrorReply.from_json(error),
        result=None if result is None else decode_pool_reply(result),
        jsonrpc=jsonrpc,
        status=status,
    )


############################################################
# worker -> server
############################################################


@dataclass(frozen=True)
class Share:
    worker_id: WorkerId
    job_id: JobId
    nonce: int
    result: bytes
    algo: str = ""

    def __post_init__(self) -> None:
        if not _is_int(self.nonce) or not 0 <= self.nonce <= U32_MAX:
            raise ValueError(f"nonce must be an unsigned 32-bit integer, got {self.nonce!r}")
        if not isinstance(self.result, (bytes, bytearray)) or len(self.result) != 32:
            raise ValueError("result must be 32 bytes")

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.worker_id.value,
            "job_id": self.job_id.value,
            "nonce": u32_to_hex_padded(self.nonce),
            "result": bytes32_to_hex(self.result),
            "algo": self.algo,
        }


@dataclass(frozen=True)
class Credentials:
    login: str
    password: str
    agent: str
    algo: Tuple[str, ...] = ()

    def to_json(self) -> Dict[str, Any]:
        return {
            "login": self.login,
            "pass": self.password,
            "agent": self.agent,
            "algo": list(self.algo),
        }


class PoolCommand:
    """Outbound command, serialized as {"method": ..., "params": ...}."""
    method: ClassVar[str]

    def params(self) -> Dict[str, Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class Submit(PoolCommand):
    share: Share
    method: ClassVar[str] = "submit"

    def params(self) -> Dict[str, Any]:
        return self.share.to_json()


@dataclass(frozen=True)
class Login(PoolCommand):
    credentials: Credentials
    method: ClassVar[str] = "login"

    def params(self) -> Dict[str, Any]:
        return self.credentials.to_json()


@dataclass(frozen=True)
class KeepAlived(PoolCommand):
    worker_id: WorkerId
    method: ClassVar[str] = "keepalived"

    def params(self) -> Dict[str, Any]:
        return {"id": self.worker_id.value}
