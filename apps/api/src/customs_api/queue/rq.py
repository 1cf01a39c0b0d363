from __future__ import annotations

from typing import Any

from redis import Redis
from rq import Queue

QUEUE_NAME = "customs"
BATCH_TASK = "customs_worker.tasks.run_manifest_batch"


def create_queue(redis_url: str) -> Queue:
    connection = Redis.from_url(redis_url)
    return Queue(QUEUE_NAME, connection=connection)


def enqueue_manifest_batch(queue: Queue, job_id: str, payload: dict[str, Any]) -> str:
    queue.enqueue(
        BATCH_TASK,
        job_id,
        payload,
        job_timeout=3600,
    )
    return job_id
