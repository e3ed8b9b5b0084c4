from pathlib import Path
from typing import List, Tuple

import pytest
from PIL import Image

from webpify.core.config import Settings
from webpify.services.container import Components, build_components
from webpify.services.job_queue import InMemoryJobQueue
from webpify.services.leases import InMemoryLeaseStore
from webpify.services.storage import InMemoryAssetStore


class FakeClock:
    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeBackend:
    """Codec double: 'ok' writes bytes, 'empty' writes nothing, 'fail' reports failure."""

    def __init__(self, name: str = "fake", mode: str = "ok", available: bool = True):
        self.name = name
        self.mode = mode
        self.available = available
        self.calls: List[Tuple[Path, Path, int]] = []

    def is_available(self) -> bool:
        return self.available

    def encode(self, source: Path, destination: Path, quality: int) -> bool:
        self.calls.append((Path(source), Path(destination), quality))
        if self.mode == "fail":
            return False
        if self.mode == "empty":
            Path(destination).write_bytes(b"")
            return True
        Path(destination).write_bytes(b"RIFF0000WEBP")
        return True


def make_jpeg(path: Path, size=(64, 48), color=(200, 30, 30)) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color).save(path, format="JPEG", quality=95)
    return path


def make_transparent_png(path: Path, size=(100, 100)) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    im = Image.new("RGBA", size, (0, 128, 255, 255))
    for x in range(size[0] // 2):
        for y in range(size[1]):
            im.putpixel((x, y), (0, 0, 0, 0))
    im.save(path, format="PNG")
    return path


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def upload_root(tmp_path: Path) -> Path:
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture
def settings(upload_root: Path) -> Settings:
    return Settings(
        upload_root=upload_root,
        upload_base_url="https://example.test/uploads",
        environment="local",
        api_token=None,
    )


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def components(settings: Settings, clock: FakeClock, fake_backend: FakeBackend) -> Components:
    return build_components(
        settings,
        queue=InMemoryJobQueue(clock=clock),
        lease_store=InMemoryLeaseStore(clock=clock),
        assets=InMemoryAssetStore(),
        backends=[fake_backend],
        clock=clock,
    )
