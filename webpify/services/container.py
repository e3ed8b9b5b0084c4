"""Wire conversion components together from a Settings instance."""

from __future__ import annotations

import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Sequence

import redis

from webpify.core.config import Settings, get_settings
from webpify.services.admission import AdmissionController
from webpify.services.codecs import CodecBackend
from webpify.services.converter import ConversionExecutor, DeletePolicy, VariantProcessor
from webpify.services.job_queue import CeleryJobQueue, JobQueue
from webpify.services.leases import Clock, LeaseManager, LeaseStore, RedisLeaseStore
from webpify.services.path_guard import PathGuard
from webpify.services.scheduler import ConversionScheduler
from webpify.services.storage import AssetStore, RedisAssetStore
from webpify.services.triggers import ConversionTriggers


@dataclass
class Components:
    settings: Settings
    path_guard: PathGuard
    executor: ConversionExecutor
    processor: VariantProcessor
    leases: LeaseManager
    queue: JobQueue
    admission: AdmissionController
    assets: AssetStore
    scheduler: ConversionScheduler
    triggers: ConversionTriggers


def build_components(
    settings: Settings,
    *,
    queue: Optional[JobQueue] = None,
    lease_store: Optional[LeaseStore] = None,
    assets: Optional[AssetStore] = None,
    backends: Optional[Sequence[CodecBackend]] = None,
    delete_policy: Optional[DeletePolicy] = None,
    clock: Optional[Clock] = None,
) -> Components:
    """Assemble the service graph; Redis and Celery fill in whatever is not given."""

    client: Optional[redis.Redis] = None
    if queue is None or lease_store is None or assets is None:
        client = redis.Redis.from_url(settings.redis_url, decode_responses=True)

    if queue is None:
        from webpify.worker.celery_app import celery_app

        queue = CeleryJobQueue(celery_app, client, settings)
    lease_store = lease_store or RedisLeaseStore(client)
    assets = assets or RedisAssetStore(client, settings.asset_key_prefix)

    path_guard = PathGuard(settings)
    executor = ConversionExecutor(settings, backends=backends)
    processor = VariantProcessor(settings, executor, path_guard, delete_policy=delete_policy)
    leases = LeaseManager(lease_store, settings, clock=clock or time.time)
    admission = AdmissionController(queue, settings)
    scheduler = ConversionScheduler(settings, queue, admission, leases, processor, assets)
    triggers = ConversionTriggers(settings, processor, scheduler, path_guard)

    return Components(
        settings=settings,
        path_guard=path_guard,
        executor=executor,
        processor=processor,
        leases=leases,
        queue=queue,
        admission=admission,
        assets=assets,
        scheduler=scheduler,
        triggers=triggers,
    )


@lru_cache
def get_components() -> Components:
    """Return the process-wide component graph built from environment settings."""

    return build_components(get_settings())
