"""Bound the number of conversion jobs waiting in the task queue."""

from __future__ import annotations

from webpify.core.config import Settings
from webpify.core.logging import get_logger
from webpify.models.job import ConversionJob
from webpify.services.job_queue import JobQueue

logger = get_logger(__name__)


class AdmissionController:
    """Refuse new jobs once the queue is full or the same job is already waiting.

    The ceiling is soft: two callers racing between the count and the schedule
    call can overshoot it slightly. Refused requests are dropped; a later
    request for the same image simply tries again.
    """

    def __init__(self, queue: JobQueue, settings: Settings) -> None:
        self._queue = queue
        self._settings = settings

    @property
    def ceiling(self) -> int:
        return self._settings.max_queued_conversions

    def can_enqueue(self, pending_count: int) -> bool:
        return pending_count < self.ceiling

    def admit(self, job: ConversionJob) -> bool:
        if self._queue.is_scheduled(job):
            logger.debug("admission_duplicate", subject_id=job.subject_id, size_key=job.size_key)
            return False

        pending = self._queue.pending_count()
        if not self.can_enqueue(pending):
            logger.debug("admission_queue_full", pending=pending, ceiling=self.ceiling)
            return False

        return True
