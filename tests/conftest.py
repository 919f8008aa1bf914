"""
Pytest fixtures: synthetic images and a fake inference client.
"""
import io
from types import SimpleNamespace

import pytest
from PIL import Image, ImageDraw

from gravixocr.config import Settings


def make_completion(content):
    """Completion-shaped object with one choice holding `content`."""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeClient:
    """Stands in for `openai.OpenAI`; records every create() call."""

    def __init__(self, content="Hello World", completion=None, error=None, responder=None):
        self.content = content
        self.completion = completion
        self.error = error
        self.responder = responder
        self.calls = []
        self.closed = False
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if self.completion is not None:
            return self.completion
        if self.responder is not None:
            return make_completion(self.responder(kwargs))
        return make_completion(self.content)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True
        return False


class RecordingFactory:
    """Client factory that hands out one FakeClient and counts calls."""

    def __init__(self, client=None):
        self.client = client or FakeClient()
        self.calls = 0

    def __call__(self, settings):
        self.calls += 1
        return self.client


@pytest.fixture
def settings():
    return Settings(api_key="gl-test-key")


@pytest.fixture
def make_image():
    """Factory: encoded image bytes with some dark 'text' on a light page."""

    def _make(width=200, height=100, fmt="PNG", mode="RGB"):
        color = (230, 230, 230, 255) if mode == "RGBA" else (230, 230, 230)
        img = Image.new(mode, (width, height), color[: len(mode)])
        draw = ImageDraw.Draw(img)
        draw.rectangle(
            [width // 4, height // 3, width // 2, height // 2],
            fill=(20, 20, 20, 255)[: len(mode)],
        )
        buf = io.BytesIO()
        img.save(buf, format=fmt)
        return buf.getvalue()

    return _make


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def client_factory(fake_client):
    return RecordingFactory(fake_client)
