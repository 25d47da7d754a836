import io

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from bgremoval.core.exceptions import ValidationError
from bgremoval.modules.upload import sanitize_filename, validate_upload

ALLOWED = {"image/jpeg", "image/png", "image/webp"}


def make_upload(data: bytes, filename: str = "photo.png", content_type: str = "image/png") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


@pytest.mark.asyncio
async def test_valid_upload_is_buffered():
    upload = await validate_upload(make_upload(b"abc"), max_bytes=10, allowed_types=ALLOWED)

    assert upload.content == b"abc"
    assert upload.size == 3
    assert upload.filename == "photo.png"
    assert upload.content_type == "image/png"


@pytest.mark.asyncio
async def test_missing_file_rejected():
    with pytest.raises(ValidationError) as exc_info:
        await validate_upload(None, max_bytes=10, allowed_types=ALLOWED)

    assert exc_info.value.code == 400
    assert exc_info.value.message == "No image file uploaded."


@pytest.mark.asyncio
async def test_mime_type_governs_not_extension():
    upload = make_upload(b"hello", filename="notes.png", content_type="text/plain")

    with pytest.raises(ValidationError) as exc_info:
        await validate_upload(upload, max_bytes=10, allowed_types=ALLOWED)

    assert "Invalid file type" in exc_info.value.message


@pytest.mark.asyncio
async def test_webp_with_odd_extension_accepted():
    upload = make_upload(b"RIFF", filename="image.txt", content_type="image/webp")

    result = await validate_upload(upload, max_bytes=10, allowed_types=ALLOWED)

    assert result.content_type == "image/webp"


@pytest.mark.asyncio
async def test_oversize_rejected():
    with pytest.raises(ValidationError) as exc_info:
        await validate_upload(make_upload(b"x" * 11), max_bytes=10, allowed_types=ALLOWED)

    assert "File too large" in exc_info.value.message


@pytest.mark.asyncio
async def test_exact_ceiling_accepted():
    upload = await validate_upload(make_upload(b"x" * 10), max_bytes=10, allowed_types=ALLOWED)

    assert upload.size == 10


@pytest.mark.asyncio
async def test_zero_byte_file_accepted():
    upload = await validate_upload(make_upload(b""), max_bytes=10, allowed_types=ALLOWED)

    assert upload.size == 0
    assert upload.content == b""


@pytest.mark.asyncio
async def test_filename_directory_components_dropped():
    upload = make_upload(b"abc", filename="../../etc/passwd.png")

    result = await validate_upload(upload, max_bytes=10, allowed_types=ALLOWED)

    assert result.filename == "passwd.png"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("cat.jpg", "cat.jpg"),
        ("a/b/c.png", "c.png"),
        ("C:\\Users\\me\\shot.webp", "shot.webp"),
        ("../..", "upload"),
        ("dir/", "upload"),
        ("", "upload"),
        (None, "upload"),
        ("evil\x00.png", "evil.png"),
    ],
)
def test_sanitize_filename(raw, expected):
    assert sanitize_filename(raw) == expected
