# test/conftest.py
import io

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image

from nodb_board.main import create_app
from nodb_board.settings_loader import BoardSettings

BOUNDARY = "----nodbboardtestboundary"


def png_bytes(size=(8, 8), color="red") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color=color).save(buf, format="PNG")
    return buf.getvalue()


def multipart_body(fields, boundary: str = BOUNDARY) -> bytes:
    """
    Builds a multipart/form-data body by hand, keeping field order.
    `fields` is a list of (name, value); value is str/bytes for a text field
    or a (filename, bytes) tuple for a file field.
    """
    out = b""
    for name, value in fields:
        out += f"--{boundary}\r\n".encode()
        if isinstance(value, tuple):
            filename, data = value
            out += (
                f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'
                "Content-Type: application/octet-stream\r\n\r\n"
            ).encode()
        else:
            data = value.encode() if isinstance(value, str) else value
            out += f'Content-Disposition: form-data; name="{name}"\r\n\r\n'.encode()
        out += data + b"\r\n"
    out += f"--{boundary}--\r\n".encode()
    return out


def multipart_headers(boundary: str = BOUNDARY) -> dict:
    return {"content-type": f"multipart/form-data; boundary={boundary}"}


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads" / "images"


@pytest.fixture
def settings(upload_dir):
    return BoardSettings(upload_dir=upload_dir, read_timeout=5.0, lock_timeout=1.0)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest_asyncio.fixture(scope="function")
async def client(app):
    """
    AsyncClient talking to the app in-process. Redirects are not followed
    so tests can assert on the 303 itself.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def post_form(client):
    """Submits the board form the way a browser does (always multipart)"""

    async def _post(name="a", subject="b", body="c", file=("", b"")):
        fields = [("name", name), ("subject", subject), ("body", body), ("file", file)]
        return await client.post(
            "/post", content=multipart_body(fields), headers=multipart_headers()
        )

    return _post
