import base64
import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from backend.app.config import Settings
from backend.app.main import create_app


def _image_base64(color: str, fmt: str = "PNG") -> str:
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=color).save(buffer, format=fmt)
    return base64.b64encode(buffer.getvalue()).decode("ascii")


class FakeInferenceClient:
    def __init__(self, reply: str = "{}", error: Exception = None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def complete(self, prompt, images, max_tokens, json_response=False):
        self.calls.append(
            {"prompt": prompt, "images": list(images), "max_tokens": max_tokens, "json_response": json_response}
        )
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def png_base64():
    return _image_base64("red")


@pytest.fixture
def jpeg_base64():
    return _image_base64("blue", fmt="JPEG")


@pytest.fixture
def settings():
    return Settings(api_key="test-key")


@pytest.fixture
def fake_client():
    return FakeInferenceClient()


@pytest.fixture
def app(settings, fake_client):
    application = create_app(settings)
    application.state.inference_client = fake_client
    return application


@pytest.fixture
def client(app):
    return TestClient(app)
