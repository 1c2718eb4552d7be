"""
Extraction job queues and the batch dispatcher that drains them.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

from catalog_scraper.scraping.types import Job

ResultT = TypeVar("ResultT")


class JobQueue:
    """
    Append-only FIFO log of jobs with a separate pending cursor.

    `enqueued_count` never decreases; `drain` only moves the pending cursor.
    """

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self._lock = threading.Lock()
        self._jobs: list[Job] = []
        self._cursor = 0

    @property
    def enqueued_count(self) -> int:
        with self._lock:
            return len(self._jobs)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._jobs) - self._cursor

    def enqueue(self, identifier: str, *, parent_identifier: str | None = None) -> Job:
        job = Job(
            kind=self.kind,
            identifier=identifier,
            job_id=uuid.uuid4().hex,
            parent_identifier=parent_identifier,
        )
        with self._lock:
            self._jobs.append(job)
        return job

    def drain(self) -> list[Job]:
        with self._lock:
            pending = self._jobs[self._cursor :]
            self._cursor = len(self._jobs)
        return pending

    def jobs(self) -> list[Job]:
        with self._lock:
            return list(self._jobs)


def run_in_batches(
    jobs: list[Job],
    handler: Callable[[Job], ResultT],
    *,
    concurrency: int,
    thread_name_prefix: str = "catalog-batch",
) -> list[ResultT]:
    """
    Run `handler` over `jobs` in consecutive batches of at most `concurrency`.

    Each batch finishes completely before the next one starts. Results keep
    job order. Exceptions raised by `handler` propagate.
    """

    batch_size = max(1, concurrency)
    results: list[ResultT] = []
    if not jobs:
        return results

    with ThreadPoolExecutor(
        max_workers=min(batch_size, len(jobs)),
        thread_name_prefix=thread_name_prefix,
    ) as executor:
        for start in range(0, len(jobs), batch_size):
            batch = jobs[start : start + batch_size]
            futures = [executor.submit(handler, job) for job in batch]
            results.extend(future.result() for future in futures)
    return results
