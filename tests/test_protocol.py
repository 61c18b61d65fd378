import json

import pytest

from cnpool_client.errors import MessageError
from cnpool_client.protocol import (
    ErrorReply,
    Job,
    JobAssignment,
    JobId,
    JobNotification,
    PoolReplyEvent,
    Share,
    StatusReply,
    WorkerId,
    decode_event,
)


def _job(job_id, blob=b"\x01", target=1, algo=None):
    return Job(blob=blob, job_id=JobId(job_id), target=target, algo=algo)


def test_deserialize_login_reply(login_reply_line):
    ev = decode_event(json.loads(login_reply_line))
    assert isinstance(ev, PoolReplyEvent)
    assert ev.id == 0
    assert ev.jsonrpc == "2.0"
    assert ev.error is None
    assignment = ev.result
    assert isinstance(assignment, JobAssignment)
    assert assignment.worker_id == WorkerId("0")
    assert assignment.status == "OK"
    assert assignment.extensions == ()
    job = assignment.job
    assert job.job_id == JobId("12022")
    assert job.target == 0x0000D1B70000D1B7
    assert len(job.blob) == 76
    assert job.blob[:3] == b"\x06\x06\xde"
    assert job.algo is None
    assert job.variant == 0


def test_deserialize_job_command(job_command_line):
    ev = decode_event(json.loads(job_command_line))
    assert isinstance(ev, JobNotification)
    assert ev.job.job_id == JobId("12023")
    assert ev.job.target == 0x0000D1B70000D1B7


def test_job_equality_is_by_id_only():
    a = _job("j1", blob=b"\x01", target=1, algo="cn/r")
    b = _job("j1", blob=b"\x02\x03", target=99)
    c = _job("j2", blob=b"\x01", target=1, algo="cn/r")
    assert a == b
    assert hash(a) == hash(b)
    assert a != c
    assert len({a, b, c}) == 2


def test_job_optional_fields():
    job = Job.from_json({"blob": "00", "job_id": "x", "target": "ffffffffffffffff", "algo": "cn/r", "variant": 1})
    assert job.algo == "cn/r"
    assert job.variant == 1
    assert job.target == 0xFFFFFFFFFFFFFFFF


def test_token_length_limit():
    WorkerId("w" * 64)
    with pytest.raises(ValueError):
        WorkerId("w" * 65)
    with pytest.raises(MessageError):
        Job.from_json({"blob": "00", "job_id": "j" * 65, "target": "ff"})
    # multi-byte characters count in bytes
    with pytest.raises(ValueError):
        JobId("é" * 33)


def test_status_and_error_replies():
    ev = decode_event({"id": 5, "jsonrpc": "2.0", "error": None, "result": {"status": "OK"}})
    assert ev == PoolReplyEvent(id=5, result=StatusReply("OK"), jsonrpc="2.0")

    ev = decode_event({"id": 6, "error": {"code": -1, "message": "Low difficulty share"}, "result": None})
    assert ev.error == ErrorReply(-1, "Low difficulty share")
    assert ev.result is None
    assert "Low difficulty share" in str(ev.error)


def test_empty_reply_is_valid():
    ev = decode_event({"id": 7})
    assert ev == PoolReplyEvent(id=7)


@pytest.mark.parametrize("msg", [
    [],
    {"jsonrpc": "2.0"},
    {"method": "mining.notify", "params": []},
    {"method": "job"},
    {"id": "1", "result": {"status": "OK"}},
    {"id": -1},
    {"id": 2 ** 32},
    {"id": True},
    {"id": 1, "result": {"foo": 1}},
    {"id": 1, "result": {"status": 1}},
    {"id": 1, "error": {"code": "x", "message": "m"}},
    {"id": 1, "error": {"code": 1}},
    {"id": 1, "jsonrpc": 2},
    {"method": "job", "params": {"blob": "0", "job_id": "a", "target": "ff"}},
    {"method": "job", "params": {"blob": "00", "job_id": 1, "target": "ff"}},
    {"method": "job", "params": {"blob": "00", "job_id": "a", "target": "ff", "variant": -1}},
])
def test_malformed_events(msg):
    with pytest.raises(MessageError):
        decode_event(msg)


def test_decode_event_custom_id():
    ev = decode_event({"id": "abc", "result": {"status": "OK"}}, decode_id=str)
    assert ev.id == "abc"


def test_share_params():
    share = Share(
        worker_id=WorkerId("w1"),
        job_id=JobId("j1"),
        nonce=0x01020304,
        result=b"\xaa" * 32,
        algo="cn/1",
    )
    assert share.to_json() == {
        "id": "w1",
        "job_id": "j1",
        "nonce": "04030201",
        "result": "aa" * 32,
        "algo": "cn/1",
    }


@pytest.mark.parametrize("nonce, result", [(-1, b"\x00" * 32), (2 ** 32, b"\x00" * 32), (0, b"\x00" * 31)])
def test_share_validation(nonce, result):
    with pytest.raises(ValueError):
        Share(WorkerId("w"), JobId("j"), nonce, result)
