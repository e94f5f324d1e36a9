"""Pytest configuration and shared fixtures."""

import base64
import json
from io import BytesIO
from typing import AsyncGenerator, Callable, List

import httpx
import pytest
from PIL import Image

from futuregen.models.schemas import ImageAsset
from futuregen.providers import GeminiClient
from futuregen.utils import retry as retry_module
from futuregen.utils.config import Config


def encode_image(width: int, height: int, fmt: str = "PNG", mode: str = "RGB") -> str:
    """Solid-colour test image as base64."""
    color = (200, 120, 40, 255) if mode == "RGBA" else (200, 120, 40)
    image = Image.new(mode, (width, height), color[: len(mode)])
    buffer = BytesIO()
    image.save(buffer, format=fmt)
    return base64.b64encode(buffer.getvalue()).decode("utf-8")


@pytest.fixture
def make_asset() -> Callable[..., ImageAsset]:
    """Factory for ImageAsset test inputs."""
    def _make(
        width: int = 800,
        height: int = 600,
        fmt: str = "PNG",
        mode: str = "RGB",
        with_dimensions: bool = True,
    ) -> ImageAsset:
        return ImageAsset(
            data=encode_image(width, height, fmt, mode),
            mime_type=f"image/{fmt.lower()}",
            width=width if with_dimensions else None,
            height=height if with_dimensions else None,
        )
    return _make


def image_candidate(data: str = "R0VOX0lNQUdF", finish_reason: str = "STOP") -> dict:
    return {
        "candidates": [
            {
                "content": {
                    "role": "model",
                    "parts": [
                        {"text": "Here is your image."},
                        {"inlineData": {"mimeType": "image/png", "data": data}},
                    ],
                },
                "finishReason": finish_reason,
            }
        ]
    }


def text_candidate(text: str, finish_reason: str = "STOP") -> dict:
    return {
        "candidates": [
            {
                "content": {"role": "model", "parts": [{"text": text}]},
                "finishReason": finish_reason,
            }
        ]
    }


class RecordingTransport:
    """httpx handler that records requests and replays queued responses per path suffix."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.queues = {}

    def queue(self, suffix: str, *responses: httpx.Response):
        self.queues.setdefault(suffix, []).extend(responses)

    def calls_to(self, suffix: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(suffix)]

    def bodies_to(self, suffix: str) -> List[dict]:
        return [json.loads(r.content) for r in self.calls_to(suffix)]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for suffix, responses in self.queues.items():
            if request.url.path.endswith(suffix) and responses:
                return responses.pop(0)
        return httpx.Response(404, json={"error": {"message": f"unexpected {request.url.path}"}})


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
async def gemini_client(transport) -> AsyncGenerator[GeminiClient, None]:
    """GeminiClient wired to the recording transport."""
    async with GeminiClient(
        api_key="test-key",
        transport=httpx.MockTransport(transport),
    ) as client:
        yield client


@pytest.fixture
def config() -> Config:
    return Config(GEMINI_API_KEY="test-key")


@pytest.fixture
def sleeps(monkeypatch) -> List[float]:
    """Replace backoff sleeps with a recorder."""
    recorded: List[float] = []

    async def fake_sleep(delay):
        recorded.append(delay)

    monkeypatch.setattr(retry_module.asyncio, "sleep", fake_sleep)
    return recorded
