"""Celery tasks for background WebP conversion."""

from __future__ import annotations

from webpify.core.logging import get_logger
from webpify.models.job import ConversionJob, Dimensions, SizeSpec
from webpify.services.container import get_components
from webpify.worker.celery_app import celery_app

logger = get_logger(__name__)


@celery_app.task(name="webpify.convert_existing_image")
def convert_existing_image(subject_id: int, size: SizeSpec, dimensions: dict | None = None) -> str:
    """Convert all renditions of an existing asset."""

    components = get_components()
    job = ConversionJob(subject_id=subject_id, size=size, dimensions=Dimensions(**(dimensions or {})))

    logger.info("conversion_task_started", subject_id=subject_id, size_key=job.size_key)
    components.queue.mark_started(job)
    try:
        status = components.scheduler.run(job.subject_id, job.size, job.dimensions)
    except Exception as exc:  # pragma: no cover - defensive logging
        logger.exception("conversion_task_failed", subject_id=subject_id, error=str(exc))
        raise

    logger.info("conversion_task_completed", subject_id=subject_id, status=status.value)
    return status.value
