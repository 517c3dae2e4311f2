import io
import json

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from main import create_app
from utils.app_config import AppConfig

FACE_REGION = {
    "type": "face",
    "confidence": 0.93,
    "bbox": {"x": 10, "y": 12.5, "width": 30, "height": 40},
    "description": "smiling person",
}
FENCED_REGIONS_REPLY = "```json\n" + json.dumps([FACE_REGION]) + "\n```"


class FakeResponse:
    def __init__(self, text):
        self.output_text = text


class FakeResponses:
    def __init__(self, reply):
        self.reply = reply
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.reply, Exception):
            raise self.reply
        return FakeResponse(self.reply)


class FakeOpenAI:
    """Stands in for AsyncOpenAI; only `responses.create` is used."""

    def __init__(self, reply="[]"):
        self.responses = FakeResponses(reply)


class FakeAssetStore:
    def __init__(self):
        self.uploads = []
        self.error = None

    async def store(self, image_bytes, mime_type="image/jpeg"):
        if self.error is not None:
            raise self.error
        self.uploads.append((image_bytes, mime_type))
        return f"https://res.cloudinary.com/demo/image/upload/ai-compression/{len(self.uploads)}.jpg"


def make_image_bytes(fmt="JPEG", size=(96, 96), mode="RGB"):
    img = Image.effect_noise(size, 64).convert(mode)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def make_config(tmp_path):
    def factory(**overrides):
        values = {"database_dir": str(tmp_path / "database"), "db_connect_delay_seconds": 0}
        values.update(overrides)
        return AppConfig(**values)

    return factory


@pytest.fixture
def fake_openai():
    return FakeOpenAI(FENCED_REGIONS_REPLY)


@pytest.fixture
def fake_store():
    return FakeAssetStore()


@pytest.fixture
def make_client(make_config, fake_openai, fake_store):
    clients = []

    def factory(**config_overrides):
        app = create_app(make_config(**config_overrides), openai_client=fake_openai, asset_store=fake_store)
        test_client = TestClient(app)
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield factory
    for test_client in clients:
        test_client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def jpeg_bytes():
    return make_image_bytes("JPEG")


@pytest.fixture
def png_bytes():
    return make_image_bytes("PNG", mode="RGBA")
