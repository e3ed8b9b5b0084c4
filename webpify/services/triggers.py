"""Hooks the host calls at upload, render and srcset time."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from webpify.core.config import Settings
from webpify.core.logging import get_logger
from webpify.models.asset import AssetMetadata, ImageSource, SrcsetSource
from webpify.models.job import Dimensions, SizeSpec
from webpify.services.converter import VariantProcessor
from webpify.services.path_guard import PathGuard
from webpify.services.scheduler import ConversionScheduler

logger = get_logger(__name__)

SRCSET_SIZE = "srcset"


def conversion_enabled(settings: Settings) -> bool:
    """Background conversion needs a real scheduler outside local development."""

    return settings.environment == "local" or settings.external_scheduler


class ConversionTriggers:
    """Translate host events into synchronous conversions or queued jobs."""

    def __init__(
        self,
        settings: Settings,
        processor: VariantProcessor,
        scheduler: ConversionScheduler,
        path_guard: PathGuard,
    ) -> None:
        self._settings = settings
        self._processor = processor
        self._scheduler = scheduler
        self._guard = path_guard

    @property
    def base_url(self) -> str:
        return self._settings.upload_base_url.rstrip("/")

    def url_to_path(self, url: str) -> Optional[Path]:
        prefix = self.base_url + "/"
        if not url.startswith(prefix):
            return None
        return self._guard.root / url[len(prefix):]

    def path_to_url(self, path: Path) -> str:
        relative = Path(path).relative_to(self._guard.root)
        return f"{self.base_url}/{relative.as_posix()}"

    def on_upload(self, subject_id: int, metadata: AssetMetadata) -> AssetMetadata:
        """Convert a fresh upload's renditions right away.

        Always hands a record back; on an unexpected error the input is returned
        untouched so the upload itself never fails because of conversion.
        """

        try:
            updated, changed = self._processor.process_asset(metadata)
        except Exception:
            logger.exception("upload_conversion_failed", subject_id=subject_id)
            return metadata

        logger.info("upload_conversion_finished", subject_id=subject_id, changed=changed)
        return updated

    def on_image_src(
        self,
        image: Optional[ImageSource],
        subject_id: int,
        size: SizeSpec,
        icon: bool = False,
    ) -> Optional[ImageSource]:
        """Serve the WebP sibling if it exists; otherwise queue a conversion."""

        if image is None or icon:
            return image

        path = self.url_to_path(image.url)
        if path is None or not self._guard.is_convertible(path):
            return image

        webp_path = self._processor.target_path(path)
        if webp_path.is_file():
            return image.model_copy(update={"url": self.path_to_url(webp_path)})

        self._scheduler.enqueue(
            subject_id,
            size,
            Dimensions(width=image.width, height=image.height),
        )
        return image

    def on_srcset(self, sources: List[SrcsetSource], subject_id: int) -> List[SrcsetSource]:
        """Rewrite converted srcset candidates; queue one job per subject for the rest.

        The ``srcset`` job converts every size of the subject, so candidates
        that still need work share a single schedule entry.
        """

        rewritten: List[SrcsetSource] = []
        for source in sources:
            rewritten.append(self._process_srcset_source(source, subject_id))
        return rewritten

    def _process_srcset_source(self, source: SrcsetSource, subject_id: int) -> SrcsetSource:
        path = self.url_to_path(source.url)
        if path is None or self._processor.is_target_format(path.name):
            return source

        if self._guard.confined(path) is None or not path.is_file():
            return source

        webp_path = self._processor.target_path(path)
        if webp_path.is_file():
            return source.model_copy(update={"url": self.path_to_url(webp_path)})

        self._scheduler.enqueue(subject_id, SRCSET_SIZE, Dimensions(width=source.value, height=0))
        return source
