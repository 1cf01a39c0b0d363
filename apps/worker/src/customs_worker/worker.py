from __future__ import annotations

import logging

from customs_api.queue.rq import QUEUE_NAME
from customs_api.settings import get_settings
from redis import Redis
from rq import Queue, Worker


def run_worker() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    settings = get_settings()
    connection = Redis.from_url(settings.redis_url)
    queue = Queue(QUEUE_NAME, connection=connection)
    worker = Worker([queue], connection=connection)
    worker.work()


if __name__ == "__main__":
    run_worker()
