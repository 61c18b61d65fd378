from __future__ import annotations

import argparse
import logging
import sys
from typing import Tuple

from .client import MessageHandler, PoolClient
from .config import ClientConfig, load_config
from .connection import LOGIN_ALGOS, connect
from .errors import PoolClientError
from .protocol import Credentials, ErrorReply, Job, JobAssignment, Login
from .stratum import PoolRequest

logger = logging.getLogger("cnpool_client")


class LoggingHandler(MessageHandler):
    """Logs every pool message and remembers the current job."""

    def __init__(self, job: Job):
        self.job = job
        logger.info("initial job %s target=%016x", job.job_id, job.target)

    def job_command(self, job: Job) -> None:
        self.job = job
        logger.info("new job %s target=%016x algo=%s", job.job_id, job.target, job.algo)

    def error_reply(self, id: int, error: ErrorReply) -> None:
        logger.warning("request %d failed: %s", id, error)

    def status_reply(self, id: int, status: str) -> None:
        logger.info("request %d: %s", id, status)

    def job_reply(self, id: int, assignment: JobAssignment) -> None:
        self.job = assignment.job
        logger.info("request %d: job %s", id, assignment.job.job_id)


def _config_defaults(argv: list[str] | None) -> Tuple[ClientConfig, list[str]]:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", default=None)
    ns, rest = pre.parse_known_args(argv)
    return load_config(ns.config), rest


def main(argv: list[str] | None = None) -> int:
    # the config file supplies defaults; flags given on the command line win
    defaults, rest = _config_defaults(argv)

    p = argparse.ArgumentParser(prog="cnpool-client")
    p.add_argument("--config", default=None, help="Path to TOML config (optional).")

    p.add_argument("--echo", action="store_true", help="Print a sample login request and exit.")
    p.add_argument("--handshake", action="store_true", help="Connect + login, print the first job, then exit.")
    p.add_argument("--run", action="store_true", help="Connect + login, then log pool messages until disconnected.")

    p.add_argument("--host", default=defaults.host, help="Pool host (plaintext TCP).")
    p.add_argument("--port", type=int, default=defaults.port, help="Pool port (plaintext TCP).")
    p.add_argument("--login", default=defaults.login, help="Pool login (usually a wallet address).")
    p.add_argument("--password", default=defaults.password, help="Pool password.")
    p.add_argument("--agent", default=defaults.agent, help="User agent sent at login.")
    p.add_argument("--keepalive", type=float, default=defaults.keepalive_s,
                   help="Idle seconds before sending a keepalive (default: never).")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")

    args = p.parse_args(rest)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.echo:
        cmd = Login(Credentials(args.login, args.password, args.agent, LOGIN_ALGOS))
        sys.stdout.buffer.write(PoolRequest(1, cmd).to_json_line())
        return 0

    address = (args.host, args.port)

    if args.handshake:
        try:
            writer, job, reader = connect(address, args.login, args.password, args.agent, args.keepalive)
        except PoolClientError as e:
            logger.error("login failed: %s", e)
            return 1
        print({"worker_id": str(writer.worker_id), "job_id": str(job.job_id), "target": f"{job.target:016x}"})
        reader.close()
        writer.close()
        return 0

    if args.run:
        try:
            client = PoolClient.connect(
                address, args.login, args.password, args.keepalive, args.agent, LoggingHandler
            )
        except PoolClientError as e:
            logger.error("login failed: %s", e)
            return 1
        try:
            client.run()
        except PoolClientError as e:
            logger.error("session ended: %s", e)
            return 1
        except KeyboardInterrupt:
            return 0
        finally:
            client.close()

    print("Nothing to do. Try --handshake or --run.")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
