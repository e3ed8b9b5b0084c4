"""Schedule background conversions and run them under a lease."""

from __future__ import annotations

import redis
from kombu.exceptions import OperationalError

from webpify.core.config import Settings
from webpify.core.logging import get_logger
from webpify.models.job import ConversionJob, Dimensions, JobStatus, SizeSpec
from webpify.services.admission import AdmissionController
from webpify.services.converter import VariantProcessor
from webpify.services.job_queue import JobQueue
from webpify.services.leases import LeaseManager
from webpify.services.storage import AssetStore, AssetStoreError

logger = get_logger(__name__)


class ConversionScheduler:
    """Front door to the task queue for conversion jobs."""

    def __init__(
        self,
        settings: Settings,
        queue: JobQueue,
        admission: AdmissionController,
        leases: LeaseManager,
        processor: VariantProcessor,
        assets: AssetStore,
    ) -> None:
        self._settings = settings
        self._queue = queue
        self._admission = admission
        self._leases = leases
        self._processor = processor
        self._assets = assets

    def enqueue(self, subject_id: int, size: SizeSpec, dimensions: Dimensions) -> bool:
        """Register a one-shot job unless it is refused; return whether it was scheduled."""

        job = ConversionJob(subject_id=subject_id, size=size, dimensions=dimensions)

        try:
            if not self._admission.admit(job):
                return False

            if self._leases.in_progress(subject_id, job.size_key):
                logger.debug("conversion_in_progress", subject_id=subject_id, size_key=job.size_key)
                return False

            self._queue.schedule(job, self._settings.schedule_delay_seconds)
        except (redis.RedisError, OperationalError) as exc:
            logger.warning("conversion_enqueue_failed", subject_id=subject_id, size_key=job.size_key, error=str(exc))
            return False

        logger.info("conversion_enqueued", subject_id=subject_id, size_key=job.size_key)
        return True

    def run(self, subject_id: int, size: SizeSpec, dimensions: Dimensions) -> JobStatus:
        """Job entry point: convert every rendition of the subject while holding its lease."""

        job = ConversionJob(subject_id=subject_id, size=size, dimensions=dimensions)
        log = logger.bind(subject_id=subject_id, size_key=job.size_key)

        self._leases.acquire(subject_id, job.size_key)
        try:
            try:
                metadata = self._assets.load(subject_id)
            except AssetStoreError as exc:
                log.error("conversion_metadata_unavailable", error=str(exc))
                return JobStatus.failed

            if metadata is None:
                log.info("conversion_metadata_missing")
                return JobStatus.failed

            updated, changed = self._processor.process_asset(metadata)
            if changed:
                try:
                    self._assets.save(subject_id, updated)
                except AssetStoreError as exc:
                    log.error("conversion_metadata_save_failed", error=str(exc))
                    return JobStatus.failed

            log.info("conversion_job_finished", changed=changed)
            return JobStatus.completed
        finally:
            self._leases.release(subject_id, job.size_key)
