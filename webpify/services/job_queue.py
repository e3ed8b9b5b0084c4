"""Boundary to the task scheduler: register one-shot jobs and inspect what is pending."""

from __future__ import annotations

import json
import time
from threading import Lock
from typing import Callable, Dict, List, Protocol, Tuple

import redis
from celery import Celery

from webpify.core.config import Settings
from webpify.core.logging import get_logger
from webpify.models.job import ConversionJob, Dimensions, ScheduledJob

logger = get_logger(__name__)

Clock = Callable[[], float]


class JobQueue(Protocol):
    def schedule(self, job: ConversionJob, delay: int) -> None:
        ...

    def is_scheduled(self, job: ConversionJob) -> bool:
        ...

    def pending_count(self) -> int:
        ...

    def list_pending(self) -> List[ScheduledJob]:
        ...

    def mark_started(self, job: ConversionJob) -> None:
        ...


class InMemoryJobQueue:
    """Local queue; due jobs are handed out by ``pop_due``."""

    def __init__(self, clock: Clock = time.time) -> None:
        self._clock = clock
        self._lock = Lock()
        self._jobs: Dict[Tuple[int, str], ScheduledJob] = {}

    def schedule(self, job: ConversionJob, delay: int) -> None:
        with self._lock:
            self._jobs[job.signature] = ScheduledJob(job=job, eta=self._clock() + delay)

    def is_scheduled(self, job: ConversionJob) -> bool:
        with self._lock:
            return job.signature in self._jobs

    def pending_count(self) -> int:
        with self._lock:
            return len(self._jobs)

    def list_pending(self) -> List[ScheduledJob]:
        with self._lock:
            return sorted(self._jobs.values(), key=lambda entry: entry.eta)

    def mark_started(self, job: ConversionJob) -> None:
        with self._lock:
            self._jobs.pop(job.signature, None)

    def pop_due(self) -> List[ConversionJob]:
        """Remove and return every job whose run time has passed."""

        now = self._clock()
        with self._lock:
            due = [entry for entry in self._jobs.values() if entry.eta <= now]
            for entry in due:
                del self._jobs[entry.job.signature]
        return [entry.job for entry in sorted(due, key=lambda entry: entry.eta)]


class CeleryJobQueue:
    """Dispatch jobs through Celery and keep a Redis registry of what is scheduled.

    The broker cannot be asked cheaply how many countdown tasks it holds, so
    every dispatched job is also recorded in a Redis hash until a worker picks
    it up. Entries that were never picked up are dropped once they are older
    than the conversion timeout.
    """

    def __init__(
        self,
        celery_app: Celery,
        client: redis.Redis,
        settings: Settings,
        clock: Clock = time.time,
    ) -> None:
        self._celery = celery_app
        self._client = client
        self._settings = settings
        self._clock = clock

    @property
    def registry_key(self) -> str:
        return self._settings.pending_registry_key

    @staticmethod
    def field(job: ConversionJob) -> str:
        subject_id, size_key = job.signature
        return f"{subject_id}:{size_key}"

    def schedule(self, job: ConversionJob, delay: int) -> None:
        entry = {"eta": self._clock() + delay, "args": job.task_args()}
        self._client.hset(self.registry_key, self.field(job), json.dumps(entry))
        try:
            self._celery.send_task(self._settings.job_name, args=job.task_args(), countdown=delay)
        except Exception:
            # Nothing was dispatched; free the slot and the key.
            self._client.hdel(self.registry_key, self.field(job))
            raise
        logger.debug("conversion_job_scheduled", subject_id=job.subject_id, size_key=job.size_key, delay=delay)

    def is_scheduled(self, job: ConversionJob) -> bool:
        return bool(self._client.hexists(self.registry_key, self.field(job)))

    def pending_count(self) -> int:
        self._prune()
        return int(self._client.hlen(self.registry_key))

    def list_pending(self) -> List[ScheduledJob]:
        self._prune()
        jobs = [entry for _, entry in self._entries()]
        return sorted(jobs, key=lambda entry: entry.eta)

    def mark_started(self, job: ConversionJob) -> None:
        self._client.hdel(self.registry_key, self.field(job))

    def _entries(self) -> List[Tuple[str, ScheduledJob]]:
        entries: List[Tuple[str, ScheduledJob]] = []
        for raw_field, raw_value in self._client.hgetall(self.registry_key).items():
            field = raw_field.decode() if isinstance(raw_field, bytes) else raw_field
            try:
                payload = json.loads(raw_value)
                subject_id, size, dimensions = payload["args"]
                job = ConversionJob(
                    subject_id=subject_id,
                    size=size,
                    dimensions=Dimensions(**dimensions),
                )
                entries.append((field, ScheduledJob(job=job, eta=float(payload["eta"]))))
            except (ValueError, KeyError, TypeError) as exc:
                logger.warning("scheduled_entry_invalid", field=field, error=str(exc))
                self._client.hdel(self.registry_key, field)
        return entries

    def _prune(self) -> None:
        cutoff = self._clock() - self._settings.conversion_timeout
        for field, entry in self._entries():
            if entry.eta < cutoff:
                logger.info("scheduled_entry_expired", field=field)
                self._client.hdel(self.registry_key, field)
