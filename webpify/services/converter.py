"""Convert image files to WebP and rewrite asset metadata to match."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Callable, List, Optional, Sequence, Tuple

from webpify.core.config import Settings
from webpify.core.logging import get_logger
from webpify.models.asset import AssetMetadata
from webpify.models.job import Dimensions
from webpify.services.codecs import CodecBackend, default_backends
from webpify.services.path_guard import PathGuard
from webpify.services.quality import QualityPolicy
from webpify.services.storage import FileStore, LocalFileStore

logger = get_logger(__name__)

DeletePolicy = Callable[[Path], bool]


class ConversionExecutor:
    """Run the codec chain for one source file and validate what it produced."""

    def __init__(
        self,
        settings: Settings,
        backends: Sequence[CodecBackend] | None = None,
        files: FileStore | None = None,
        quality_policy: QualityPolicy | None = None,
    ) -> None:
        self._settings = settings
        self._backends: List[CodecBackend] = list(backends) if backends is not None else default_backends(settings)
        self._files = files or LocalFileStore()
        self._quality = quality_policy or QualityPolicy(settings)

    @property
    def backends(self) -> List[CodecBackend]:
        return list(self._backends)

    def convert(self, source: Path, destination: Path, dimensions: Dimensions) -> bool:
        """Encode ``source`` into ``destination``; never raises for bad inputs.

        The first available backend that reports success decides the outcome.
        A destination that did not exist before the call is removed again if
        the conversion does not validate.
        """

        if not self._files.exists(source):
            logger.info("conversion_source_missing", source=str(source))
            return False

        if not self._files.is_readable(source):
            logger.info("conversion_source_unreadable", source=str(source))
            return False

        quality = self._quality.quality(dimensions.width, dimensions.height)
        preexisting = self._files.exists(destination)

        for backend in self._backends:
            if not backend.is_available():
                logger.debug("codec_unavailable", backend=backend.name)
                continue

            if backend.encode(source, destination, quality):
                if self._validate(source, destination, backend.name, quality):
                    return True
                break

        if not preexisting and self._files.exists(destination):
            self._files.delete(destination)

        logger.error(
            "conversion_failed",
            source=str(source),
            backends=[backend.name for backend in self._backends],
        )
        return False

    def _validate(self, source: Path, destination: Path, backend: str, quality: int) -> bool:
        if not self._files.exists(destination):
            logger.warning("conversion_output_missing", destination=str(destination), backend=backend)
            return False

        destination_size = self._files.size(destination)
        if destination_size == 0:
            logger.warning("conversion_output_empty", destination=str(destination), backend=backend)
            self._files.delete(destination)
            return False

        source_size = self._files.size(source)
        reduction = (1 - destination_size / source_size) * 100 if source_size else 0.0
        logger.info(
            "conversion_succeeded",
            source=source.name,
            backend=backend,
            quality=quality,
            reduction_percent=round(reduction, 2),
        )
        return True


class VariantProcessor:
    """Convert the renditions of an asset and report what changed."""

    def __init__(
        self,
        settings: Settings,
        executor: ConversionExecutor,
        path_guard: PathGuard,
        files: FileStore | None = None,
        delete_policy: DeletePolicy | None = None,
    ) -> None:
        self._settings = settings
        self._executor = executor
        self._guard = path_guard
        self._files = files or LocalFileStore()
        self._delete_policy = delete_policy or (lambda _path: self._settings.delete_original)

    @property
    def root(self) -> Path:
        return self._guard.root

    def target_path(self, path: Path) -> Path:
        return Path(path).with_suffix(self._settings.target_extension)

    def is_target_format(self, name: str) -> bool:
        return PurePosixPath(name).suffix.lower() == self._settings.target_extension.lower()

    def process_file(self, source: Path, dimensions: Dimensions) -> Optional[Path]:
        """Convert one rendition; return the WebP path when one is in place.

        An existing non-empty WebP sibling is reused as is, so repeated calls
        for the same file do not encode again.
        """

        source = Path(source)
        if self.is_target_format(source.name):
            return None

        destination = self.target_path(source)
        if self._guard.confined(destination) is not None and self._files.size(destination) > 0:
            logger.debug("conversion_already_done", destination=str(destination))
            return destination

        if not self._guard.is_convertible(source):
            return None

        if not self._executor.convert(source, destination, dimensions):
            return None

        self._delete_original(source)
        return destination

    def process_asset(self, metadata: AssetMetadata) -> Tuple[AssetMetadata, bool]:
        """Convert the scaled file and every named size of ``metadata``.

        Works on a copy; the caller gets the new record back together with a
        flag telling whether it needs to be written.
        """

        result = metadata.model_copy(deep=True)
        changed = False
        target_mime = self._settings.target_mime_type

        if result.original_image and result.file and not self.is_target_format(result.file):
            dimensions = Dimensions(width=result.width, height=result.height)
            if self.process_file(self.root / result.file, dimensions) is not None:
                result.file = str(PurePosixPath(result.file).with_suffix(self._settings.target_extension))
                result.mime_type = target_mime
                changed = True

        base = self.root / result.directory if result.directory else self.root
        for name, variant in result.sizes.items():
            if self.is_target_format(variant.file):
                continue

            dimensions = Dimensions(width=variant.width, height=variant.height)
            converted = self.process_file(base / variant.file, dimensions)
            if converted is None:
                continue

            variant.file = converted.name
            variant.mime_type = target_mime
            changed = True
            logger.debug("variant_converted", size=name, file=variant.file)

        return result, changed

    def _delete_original(self, source: Path) -> None:
        if not self._delete_policy(source):
            return
        try:
            self._files.delete(source)
        except OSError as exc:
            # The WebP is validated, so the rendition still points at it.
            logger.warning("original_delete_failed", source=str(source), error=str(exc))
            return
        logger.debug("original_deleted", source=str(source))
