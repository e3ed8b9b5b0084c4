"""Pydantic models for uploaded assets and their renditions."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ImageVariant(BaseModel):
    """A single rendition of an asset, stored next to the asset's main file."""

    file: str
    width: int = 0
    height: int = 0
    mime_type: Optional[str] = None

    @property
    def format(self) -> str:
        return PurePosixPath(self.file).suffix.lstrip(".").lower()


class AssetMetadata(BaseModel):
    """Metadata record owned by the asset store.

    ``file`` is relative to the upload root. When ``original_image`` is set,
    ``file`` points at a scaled-down copy that is converted like any other
    rendition. Named sizes live in the same directory as ``file``.
    """

    file: str
    width: int = 0
    height: int = 0
    original_image: Optional[str] = None
    mime_type: Optional[str] = None
    sizes: Dict[str, ImageVariant] = Field(default_factory=dict)

    @property
    def directory(self) -> str:
        parent = PurePosixPath(self.file).parent
        return "" if str(parent) == "." else str(parent)


class ImageSource(BaseModel):
    """A rendered image reference handed out to consumers."""

    url: str
    width: int = 0
    height: int = 0


class SrcsetSource(BaseModel):
    """One candidate of a responsive ``srcset`` attribute."""

    url: str
    descriptor: str = "w"
    value: int = 0


class UploadTriggerRequest(BaseModel):
    """Payload sent right after the host generated an upload's renditions."""

    subject_id: int
    metadata: AssetMetadata


class ImageSourceRequest(BaseModel):
    """Payload sent when a consumer asks for a rendition URL."""

    subject_id: int
    size: str | List[int] = "full"
    icon: bool = False
    image: Optional[ImageSource] = None


class SrcsetRequest(BaseModel):
    """Payload sent when the host assembles a ``srcset`` attribute."""

    subject_id: int
    sources: List[SrcsetSource] = Field(default_factory=list)


class QueueStatusResponse(BaseModel):
    """Snapshot of the scheduled conversion jobs."""

    pending: int
    ceiling: int
    jobs: List[Dict[str, Any]] = Field(default_factory=list)


class LeaseStatusResponse(BaseModel):
    """Whether a conversion is currently leased for a subject/size pair."""

    subject_id: int
    size_key: str
    in_progress: bool
