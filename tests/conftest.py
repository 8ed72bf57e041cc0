# tests/conftest.py
"""Pytest configuration and fixtures"""
import io
import sys
from pathlib import Path

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from PIL import Image

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from media_saver.infra.http_client import close_all_sessions  # noqa: E402


# ============================================================================
# IMAGE HELPERS
# ============================================================================

def make_image_bytes(
    fmt: str = "JPEG",
    size: tuple[int, int] = (40, 20),
    color=(200, 30, 30),
    orientation: int | None = None,
) -> bytes:
    """Encode a solid-color image; optionally tag it with an EXIF orientation."""
    mode = "RGBA" if fmt == "PNG" and len(color) == 4 else "RGB"
    img = Image.new(mode, size, color)
    buf = io.BytesIO()
    if orientation is not None:
        exif = Image.Exif()
        exif[0x0112] = orientation
        img.save(buf, format=fmt, exif=exif.tobytes())
    else:
        img.save(buf, format=fmt)
    return buf.getvalue()


def make_mpo_bytes(size: tuple[int, int] = (40, 20)) -> bytes:
    """Two-frame multi-picture JPEG, as written by phone cameras."""
    first = Image.new("RGB", size, (200, 30, 30))
    second = Image.new("RGB", size, (30, 30, 200))
    buf = io.BytesIO()
    first.save(buf, "MPO", save_all=True, append_images=[second])
    return buf.getvalue()


def read_image(path: Path) -> Image.Image:
    with Image.open(path) as img:
        img.load()
        return img.copy()


def solid_png(size=(10, 10), color=(255, 0, 0, 255)) -> bytes:
    return make_image_bytes("PNG", size, color)


# ============================================================================
# FAKE COLLABORATORS
# ============================================================================

class RecordingTransferClient:
    """Writes ``payload`` to the destination; optionally fails afterwards."""

    def __init__(self, payload: bytes = b"data", fail_with: Exception | None = None):
        self.payload = payload
        self.fail_with = fail_with
        self.calls = []

    async def download(self, url, destination):
        self.calls.append((url, destination))
        Path(destination).write_bytes(self.payload)
        if self.fail_with is not None:
            raise self.fail_with


class SolidRenderer:
    """Text renderer stub: one solid square per overlay, color keyed by text."""

    COLORS = {
        "red": (255, 0, 0, 255),
        "blue": (0, 0, 255, 255),
        "green": (0, 255, 0, 255),
    }

    def __init__(self, size=(10, 10)):
        self.size = size
        self.rendered = []

    def render(self, spec):
        self.rendered.append(spec.text)
        return solid_png(self.size, self.COLORS.get(spec.text, (0, 0, 0, 255)))


@pytest.fixture
def target_dir(tmp_path):
    """Empty output directory"""
    out = tmp_path / "out"
    out.mkdir()
    return out


@pytest.fixture
def jpeg_bytes():
    return make_image_bytes("JPEG")


@pytest.fixture
def png_bytes():
    return make_image_bytes("PNG")


# ============================================================================
# LOCAL HTTP SERVER
# ============================================================================

@pytest.fixture
def served_files(jpeg_bytes, png_bytes):
    """Path -> (body, content type) served by ``http_server``"""
    return {
        "/pic.jpg": (jpeg_bytes, "image/jpeg"),
        "/pic.png": (png_bytes, "image/png"),
        "/pic.gif": (make_image_bytes("GIF"), "image/gif"),
        "/mislabeled.jpg": (png_bytes, "image/jpeg"),
        "/not-an-image.jpg": (b"<html>nope</html>", "text/html"),
        "/rotated.jpg": (make_image_bytes("JPEG", (40, 20), orientation=6), "image/jpeg"),
        "/report.pdf": (b"%PDF-1.4 fake report", "application/pdf"),
    }


@pytest.fixture
async def http_server(served_files):
    """aiohttp server with static files plus error endpoints"""
    hits: dict[str, int] = {}

    async def serve(request: web.Request) -> web.StreamResponse:
        path = request.path
        hits[path] = hits.get(path, 0) + 1

        if path == "/flaky.jpg" and hits[path] == 1:
            return web.Response(status=503)
        if path == "/flaky.jpg":
            path = "/pic.jpg"

        if path not in served_files:
            return web.Response(status=404, text="not found")

        body, content_type = served_files[path]
        return web.Response(body=body, content_type=content_type)

    app = web.Application()
    app.router.add_get("/{tail:.*}", serve)

    server = TestServer(app)
    await server.start_server()
    server.hits = hits
    try:
        yield server
    finally:
        await close_all_sessions()
        await server.close()


def url_for(server, path: str) -> str:
    return str(server.make_url(path))


@pytest.fixture
async def close_sessions():
    """Close shared aiohttp sessions created during the test"""
    yield
    await close_all_sessions()
