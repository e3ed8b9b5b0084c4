"""Size-adaptive compression quality selection."""

from __future__ import annotations

from webpify.core.config import Settings


class QualityPolicy:
    """Pick a WebP quality level from the rendition's dimensions.

    Small edges win over pixel area: anything with a side of at most
    ``thumbnail_max_edge`` pixels, including unknown (zero) dimensions, gets the
    thumbnail tier.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def quality(self, width: int, height: int) -> int:
        s = self._settings

        if width <= s.thumbnail_max_edge or height <= s.thumbnail_max_edge:
            return s.quality_thumbnail

        pixels = width * height
        if pixels < s.small_max_pixels:
            return s.quality_small
        if pixels < s.medium_max_pixels:
            return s.quality_medium
        return s.quality_large

    __call__ = quality
