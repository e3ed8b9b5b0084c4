"""Filesystem and asset-metadata capabilities used by the converter and scheduler."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from threading import Lock
from typing import Dict, Optional, Protocol

import redis
from pydantic import ValidationError

from webpify.models.asset import AssetMetadata


class AssetStoreError(RuntimeError):
    """Raised when asset metadata cannot be read or written."""


class FileStore(Protocol):
    def exists(self, path: Path) -> bool:
        ...

    def is_readable(self, path: Path) -> bool:
        ...

    def size(self, path: Path) -> int:
        ...

    def delete(self, path: Path) -> None:
        ...


class LocalFileStore:
    """FileStore over the local disk."""

    def exists(self, path: Path) -> bool:
        return Path(path).is_file()

    def is_readable(self, path: Path) -> bool:
        return os.access(path, os.R_OK)

    def size(self, path: Path) -> int:
        return Path(path).stat().st_size

    def delete(self, path: Path) -> None:
        Path(path).unlink(missing_ok=True)


class AssetStore(Protocol):
    def load(self, subject_id: int) -> Optional[AssetMetadata]:
        ...

    def save(self, subject_id: int, metadata: AssetMetadata) -> None:
        ...


class InMemoryAssetStore:
    """Simple thread-safe asset registry, used by tests and local runs."""

    def __init__(self, assets: Mapping[int, AssetMetadata] | None = None) -> None:
        self._lock = Lock()
        self._assets: Dict[int, AssetMetadata] = dict(assets or {})

    def load(self, subject_id: int) -> Optional[AssetMetadata]:
        with self._lock:
            metadata = self._assets.get(subject_id)
            return metadata.model_copy(deep=True) if metadata is not None else None

    def save(self, subject_id: int, metadata: AssetMetadata) -> None:
        with self._lock:
            self._assets[subject_id] = metadata.model_copy(deep=True)


class RedisAssetStore:
    """Asset metadata kept as JSON documents in Redis."""

    def __init__(self, client: redis.Redis, key_prefix: str) -> None:
        self._client = client
        self._prefix = key_prefix

    def _key(self, subject_id: int) -> str:
        return f"{self._prefix}{subject_id}"

    def load(self, subject_id: int) -> Optional[AssetMetadata]:
        try:
            raw = self._client.get(self._key(subject_id))
        except redis.RedisError as exc:
            raise AssetStoreError(f"Unable to load asset {subject_id}: {exc}") from exc

        if raw is None:
            return None

        try:
            return AssetMetadata.model_validate_json(raw)
        except ValidationError as exc:
            raise AssetStoreError(f"Corrupt metadata for asset {subject_id}") from exc

    def save(self, subject_id: int, metadata: AssetMetadata) -> None:
        try:
            self._client.set(self._key(subject_id), metadata.model_dump_json())
        except redis.RedisError as exc:
            raise AssetStoreError(f"Unable to save asset {subject_id}: {exc}") from exc
