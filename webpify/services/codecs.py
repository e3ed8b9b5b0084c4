"""WebP encoders tried in priority order by the converter."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Protocol, runtime_checkable

from PIL import Image, UnidentifiedImageError, features

from webpify.core.config import Settings
from webpify.core.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class CodecBackend(Protocol):
    """Capability interface shared by every encoder."""

    name: str

    def is_available(self) -> bool:
        ...

    def encode(self, source: Path, destination: Path, quality: int) -> bool:
        ...


class ImageMagickBackend:
    """Encode through the ImageMagick command line, stripping profiles and EXIF."""

    name = "imagemagick"

    def __init__(self, settings: Settings) -> None:
        self._binaries = list(settings.imagemagick_binaries)
        self._timeout = settings.codec_timeout_seconds

    def resolve_binary(self) -> Optional[str]:
        """First configured entry point found on ``PATH``."""

        for binary in self._binaries:
            if shutil.which(binary) is not None:
                return binary
        return None

    def is_available(self) -> bool:
        return self.resolve_binary() is not None

    def build_command(self, source: Path, destination: Path, quality: int) -> List[str]:
        return [
            self.resolve_binary() or self._binaries[0],
            str(source),
            "-strip",
            "-quality",
            str(quality),
            f"webp:{destination}",
        ]

    def encode(self, source: Path, destination: Path, quality: int) -> bool:
        if not self.is_available():
            return False

        cmd = self.build_command(source, destination, quality)
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True, timeout=self._timeout)
        except subprocess.TimeoutExpired:
            logger.warning("imagemagick_timeout", source=str(source), timeout=self._timeout)
            return False
        except OSError as exc:
            logger.warning("imagemagick_exec_failed", source=str(source), error=str(exc))
            return False

        if proc.returncode != 0:
            logger.warning(
                "imagemagick_conversion_failed",
                source=str(source),
                returncode=proc.returncode,
                stderr=proc.stderr[:1000],
            )
            return False

        return True


class PillowBackend:
    """Encode with Pillow; narrower input support than ImageMagick."""

    name = "pillow"

    SUPPORTED_FORMATS = {"JPEG", "PNG"}

    def is_available(self) -> bool:
        return bool(features.check("webp"))

    def encode(self, source: Path, destination: Path, quality: int) -> bool:
        try:
            with Image.open(source) as im:
                fmt = im.format
                if fmt == "WEBP":
                    shutil.copyfile(source, destination)
                    return True

                if fmt not in self.SUPPORTED_FORMATS:
                    logger.warning("pillow_unsupported_format", source=str(source), format=fmt)
                    return False

                frame = self._prepare(im)
                # Pillow may carry EXIF and ICC over from info; the output gets neither.
                frame.info = {}
                frame.save(destination, format="WEBP", quality=quality)
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            logger.warning("pillow_conversion_failed", source=str(source), error=str(exc))
            return False

        return True

    @staticmethod
    def _prepare(im: Image.Image) -> Image.Image:
        if im.mode == "P" and "transparency" in im.info:
            return im.convert("RGBA")
        if im.mode in ("RGBA", "LA", "PA"):
            return im.convert("RGBA") if im.mode != "RGBA" else im
        if im.mode != "RGB":
            return im.convert("RGB")
        return im


def default_backends(settings: Settings) -> List[CodecBackend]:
    """Primary first, fallback second."""

    return [ImageMagickBackend(settings), PillowBackend()]
