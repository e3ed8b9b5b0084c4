"""Shared job models."""

from __future__ import annotations

from enum import Enum
from typing import List, Tuple, Union

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    """Possible outcomes for background conversion jobs."""

    completed = "completed"
    failed = "failed"


class Dimensions(BaseModel):
    """Requested width and height of a rendition; zero means unknown."""

    width: int = 0
    height: int = 0


SizeSpec = Union[str, List[int]]


def normalize_size_key(size: SizeSpec) -> str:
    """Collapse a named or structured size into a single tracking key."""

    if isinstance(size, (list, tuple)):
        return "_".join(str(part) for part in size)
    return str(size)


class ConversionJob(BaseModel):
    """A request to convert the renditions of one subject in the background."""

    subject_id: int
    size: SizeSpec
    dimensions: Dimensions = Field(default_factory=Dimensions)

    @property
    def size_key(self) -> str:
        return normalize_size_key(self.size)

    @property
    def signature(self) -> Tuple[int, str]:
        """Identity used to suppress duplicate schedules; dimensions are ignored."""

        return self.subject_id, self.size_key

    def task_args(self) -> list:
        """Positional arguments handed to the worker task."""

        return [self.subject_id, self.size, self.dimensions.model_dump()]


class ScheduledJob(BaseModel):
    """A job registered with the task queue and the time it becomes due."""

    job: ConversionJob
    eta: float
