"""Celery application configuration."""

from celery import Celery

from webpify.core.config import Settings, get_settings


def celery_config(settings: Settings) -> dict:
    broker_url = settings.celery_broker_url or settings.redis_url
    result_backend = settings.celery_result_backend or settings.redis_url

    return {
        "broker_url": broker_url,
        "result_backend": result_backend,
        "task_default_queue": "webpify",
        # Short timeouts still leave the task a moment before the hard kill.
        "task_soft_time_limit": max(settings.conversion_timeout - 30, 1),
        "task_time_limit": settings.conversion_timeout,
        "task_ignore_result": True,
        "worker_max_tasks_per_child": 100,
        "worker_prefetch_multiplier": 1,
        "task_acks_late": True,
    }


settings = get_settings()

celery_app = Celery("webpify")
celery_app.conf.update(**celery_config(settings))

celery_app.autodiscover_tasks(["webpify.tasks"], related_name="conversion_tasks")
