import logging
import threading

from cnpool_client import MessageHandler, PoolClient, PoolClientError

# ---- EDIT THESE ----
ADDRESS = "pool.example.com:3333"
LOGIN = "PUT_WALLET_ADDRESS_HERE"
PWD = "x"
KEEPALIVE = 30.0
LISTEN_SECONDS = 60.0
# --------------------


class PrintHandler(MessageHandler):
    def __init__(self, job):
        print(f"[OK] first job {job.job_id} target={job.target:016x} blob={len(job.blob)}B")

    def job_command(self, job):
        print(f"[JOB] {job.job_id} target={job.target:016x} algo={job.algo}")

    def error_reply(self, id, error):
        print(f"[ERR] request {id}: {error}")

    def status_reply(self, id, status):
        print(f"[STATUS] request {id}: {status}")

    def job_reply(self, id, assignment):
        print(f"[JOB] request {id}: {assignment.job.job_id}")


def main():
    logging.basicConfig(level=logging.DEBUG)
    print("═" * 70)
    print(" CNPOOL LIVE SMOKE: login + listen for jobs")
    print(f" Pool: {ADDRESS}")
    print(f" Login: {LOGIN}")
    print("═" * 70)

    client = PoolClient.connect(ADDRESS, LOGIN, PWD, KEEPALIVE, "cnpool-smoke/0.1", PrintHandler)
    print(f"[OK] worker_id={client.write_handle().worker_id}")

    # stop listening after a while by closing the connection from outside
    timer = threading.Timer(LISTEN_SECONDS, client.close)
    timer.start()
    try:
        client.run()
    except PoolClientError as e:
        print(f"[DONE] session ended: {e}")
    finally:
        timer.cancel()


if __name__ == "__main__":
    main()
