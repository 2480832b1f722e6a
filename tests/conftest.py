"""Shared fixtures for placeholder_service tests."""

from __future__ import annotations

import sys
import threading
import time
from dataclasses import replace
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from placeholder_service.config import load_settings  # noqa: E402
from placeholder_service.core.coordinator import GenerationCoordinator  # noqa: E402
from placeholder_service.core.store import ImageStore  # noqa: E402
from placeholder_service.errors import RenderError  # noqa: E402
from placeholder_service.services.renderer import PillowRenderer, RenderedImage  # noqa: E402


class CountingRenderer:
    """Wraps a real renderer, counting calls and optionally failing or stalling."""

    def __init__(
        self,
        inner: PillowRenderer | None = None,
        *,
        delay: float = 0.0,
        fail: bool = False,
        gate: threading.Event | None = None,
    ) -> None:
        self.inner = inner or PillowRenderer()
        self.delay = delay
        self.fail = fail
        self.gate = gate
        self.calls = 0
        self._lock = threading.Lock()

    @property
    def namespace(self) -> str:
        return self.inner.namespace

    def render(self, request) -> RenderedImage:
        with self._lock:
            self.calls += 1
        if self.gate is not None:
            self.gate.wait(timeout=10)
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise RenderError("renderer exploded")
        return self.inner.render(request)


def static_generate(data: bytes = b"image-bytes", content_type: str = "image/png"):
    calls = []

    def generate() -> RenderedImage:
        calls.append(1)
        return RenderedImage(data=data, content_type=content_type)

    return generate, calls


def wait_for(predicate, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        time.sleep(0.005)


@pytest.fixture()
def store(tmp_path):
    return ImageStore(tmp_path / "cache" / "images.db")


@pytest.fixture()
def coordinator(store):
    coord = GenerationCoordinator(store, stripes=8)
    yield coord
    coord.shutdown(wait=True)


@pytest.fixture()
def settings(tmp_path, monkeypatch):
    monkeypatch.delenv("PLACEHOLDER_FOOTER_TEXT", raising=False)
    return replace(
        load_settings(), data_dir=tmp_path / "data", footer_text="", perf_log_path=None
    )


@pytest.fixture()
def app_client(settings):
    """TestClient over a fresh app whose renderer counts invocations."""
    from starlette.testclient import TestClient

    from placeholder_service.app import create_app

    app = create_app(settings)
    with TestClient(app, raise_server_exceptions=False) as client:
        app.state.renderer = CountingRenderer(app.state.renderer)
        yield client
