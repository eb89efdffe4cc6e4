import io
import os
import tempfile

# Point the app at throwaway storage before src.core.config is imported
_TEST_DIR = tempfile.mkdtemp(prefix="photo_editor_tests_")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DIR}/test.db")
os.environ.setdefault("LOCAL_STORAGE_PATH", os.path.join(_TEST_DIR, "storage"))
os.environ.setdefault("LOG_FORMAT_JSON", "false")

import pytest
from httpx import AsyncClient, ASGITransport
from PIL import Image, ImageDraw
from typing import AsyncGenerator

from src.main import app
from src.pipeline.state import PipelineState


def make_image(width: int = 100, height: int = 80, mode: str = "RGB") -> Image.Image:
    """Deterministic test image with distinct quadrants."""
    image = Image.new(mode, (width, height), "white")
    draw = ImageDraw.Draw(image)
    draw.rectangle([0, 0, width // 2, height // 2], fill="red")
    draw.rectangle([width // 2, 0, width, height // 2], fill="green")
    draw.rectangle([0, height // 2, width // 2, height], fill="blue")
    return image


def encode(image: Image.Image, fmt: str = "JPEG") -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def image_factory():
    return make_image


@pytest.fixture
def image_bytes():
    return encode


@pytest.fixture
def source_image() -> Image.Image:
    return make_image()


@pytest.fixture
def state(source_image) -> PipelineState:
    return PipelineState(image=source_image, extension=".jpg")


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    # Trigger lifespan events (startup/shutdown)
    async with app.router.lifespan_context(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
