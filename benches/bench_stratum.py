from __future__ import annotations

from cnpool_client.protocol import JobId, Share, Submit, WorkerId, decode_event
from cnpool_client.stratum import PoolRequest, parse_json_line

JOB_LINE = (
    b'{"jsonrpc":"2.0","method":"job","params":{"blob":"' + b"06" * 76 + b'",'
    b'"job_id":"12023","target":"b7d10000"}}\n'
)


def test_bench_submit_encode(benchmark):
    share = Share(WorkerId("worker"), JobId("12023"), 0xDEADBEEF, b"\xab" * 32, "cn/1")
    req = PoolRequest(4, Submit(share))
    benchmark(req.to_json_line)


def test_bench_job_decode(benchmark):
    benchmark(lambda: decode_event(parse_json_line(JOB_LINE)))
