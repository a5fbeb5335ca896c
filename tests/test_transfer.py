"""
传输层测试

文件名、Range、打包、缩放与 TransferService
"""
import asyncio
import io
import zipfile
from typing import Dict, Optional, Tuple

import pytest
from PIL import Image

from mediacloud.config import CoreConfig
from mediacloud.core.exceptions import (
    ContentFetchError, RangeNotSatisfiableError, ValidationError
)
from mediacloud.core.models import CloudFile, ProviderType
from mediacloud.core.provider import CloudStorageProvider
from mediacloud.transfer import (
    ArchiveResult, DownloadResult, TransferService, content_disposition, iter_bytes,
    parse_range, sanitize_filename, unique_name
)
from mediacloud.transfer.archive import build_zip, error_entry
from mediacloud.transfer.images import resize_image, shrink_if_larger

from conftest import image_bytes, stream_of


# ==================== 文件名 ====================

def test_sanitize_filename():
    assert sanitize_filename("Café Ñandú.jpg") == "Cafe Nandu.jpg"
    assert sanitize_filename('"quoted\\name".jpg') == "quotedname.jpg"
    assert sanitize_filename("日本.jpg") == "__.jpg"
    assert sanitize_filename("") == "download"


def test_content_disposition_carries_both_forms():
    header = content_disposition("Café.jpg")

    assert header == "attachment; filename=\"Cafe.jpg\"; filename*=UTF-8''Caf%C3%A9.jpg"
    assert content_disposition("a.mp4", "inline").startswith("inline; ")


def test_unique_name_is_case_insensitive():
    used = set()

    assert unique_name("a.jpg", used) == "a.jpg"
    assert unique_name("A.JPG", used) == "A (1).JPG"
    assert unique_name("a.jpg", used) == "a (2).jpg"
    assert unique_name(".hidden", used) == ".hidden"
    assert unique_name(".hidden", used) == ".hidden (1)"


# ==================== Range ====================

@pytest.mark.parametrize("header, total, expected", [
    (None, 1000, None),
    ("bytes=0-99", 1000, (0, 99)),
    ("bytes=500-", 1000, (500, 999)),
    ("bytes=-100", 1000, (900, 999)),
    ("bytes=-5000", 1000, (0, 999)),
    ("bytes=900-5000", 1000, (900, 999)),
    ("bytes=0-1,5-6", 1000, None),
    ("items=0-1", 1000, None),
    ("bytes=10-20", None, (10, 20)),
    ("bytes=10-", None, None),
])
def test_parse_range(header, total, expected):
    assert parse_range(header, total) == expected


@pytest.mark.parametrize("header", ["bytes=1000-", "bytes=20-10", "bytes=-0"])
def test_parse_range_unsatisfiable(header):
    with pytest.raises(RangeNotSatisfiableError) as exc_info:
        parse_range(header, 1000)
    assert exc_info.value.total == 1000


# ==================== 打包与缩放 ====================

def test_build_zip_stores_entries_uncompressed():
    content = build_zip([("a.jpg", b"jpeg-bytes"), error_entry("b.jpg", "404 not found")])

    with zipfile.ZipFile(io.BytesIO(content)) as archive:
        assert archive.namelist() == ["a.jpg", "b.jpg.error.txt"]
        assert all(info.compress_type == zipfile.ZIP_STORED for info in archive.infolist())
        assert b"404 not found" in archive.read("b.jpg.error.txt")


def test_resize_image_fits_bounds_without_upscaling():
    large = resize_image(image_bytes(1200, 600), 400)
    small = resize_image(image_bytes(100, 50), 400)

    with Image.open(io.BytesIO(large)) as image:
        assert image.format == "JPEG"
        assert image.size == (400, 200)
    with Image.open(io.BytesIO(small)) as image:
        assert image.size == (100, 50)


def test_resize_image_rejects_garbage():
    with pytest.raises(ValueError):
        resize_image(b"definitely not an image", 400)


def test_shrink_if_larger():
    small = image_bytes(200, 100)
    assert shrink_if_larger(small, "image/png", 400) == (small, "image/png")

    data, mime_type = shrink_if_larger(image_bytes(800, 800), "image/png", 400)
    assert mime_type == "image/jpeg"
    with Image.open(io.BytesIO(data)) as image:
        assert image.size == (400, 400)


# ==================== TransferService ====================

class FakeAdapter(CloudStorageProvider):
    """内存中的文件与缩略图"""

    def __init__(self, honours_range: bool = True, thumbnail: Optional[str] = None,
                 urls: Dict[Tuple[str, bool], object] = None):
        super().__init__(auth=None)
        self.files: Dict[str, Tuple[CloudFile, bytes]] = {}
        self.honours_range = honours_range
        self.thumbnail = thumbnail
        self.urls = urls or {}
        self.ranges = []
        self.closed = 0

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.GOOGLE

    def add(self, file_id: str, name: str, data: bytes, mime_type: str = "image/jpeg"):
        self.files[file_id] = (CloudFile(id=file_id, name=name, mime_type=mime_type, size=len(data)), data)

    def _lookup(self, file_id: str):
        if file_id not in self.files:
            raise ContentFetchError("google", file_id, "HTTP 404")
        return self.files[file_id]

    async def list_folders(self, parent_id=None):
        return []

    async def list_files(self, parent_id=None):
        return [info for info, _ in self.files.values()]

    async def get_file_content(self, file_id):
        return None

    async def get_file_info(self, file_id):
        return self._lookup(file_id)[0]

    async def open_content(self, file_id, byte_range=None):
        info, data = self._lookup(file_id)
        self.ranges.append(byte_range)
        if byte_range is not None and self.honours_range:
            start, end = byte_range
            return stream_of(
                data[start:end + 1], status_code=206, content_type=info.mime_type,
                headers={"content-range": f"bytes {start}-{end}/{len(data)}"}
            )
        return stream_of(data, content_type=info.mime_type)

    async def open_url(self, url, authenticated=True):
        outcome = self.urls.get((url, authenticated))
        if outcome is None:
            raise ContentFetchError("google", url, "HTTP 403")
        data, content_type = outcome
        return stream_of(data, content_type=content_type)

    async def get_thumbnail(self, file_id, size=400):
        return self.thumbnail

    async def close(self):
        self.closed += 1


def _service(stub_factory, adapter: FakeAdapter):
    factory = stub_factory(lambda: adapter)
    return TransferService(auth_factory=None, provider_factory=factory, config=CoreConfig()), factory


async def _collect(body) -> bytes:
    return b"".join([chunk async for chunk in body])


def test_download_file_streams_and_closes_adapter(stub_factory):
    adapter = FakeAdapter()
    adapter.add("f1", "Café.jpg", b"0123456789")
    service, _ = _service(stub_factory, adapter)

    async def main():
        result = await service.download_file("acc", "f1")
        return result, await _collect(iter_bytes(result.stream))

    result, content = asyncio.run(main())

    assert content == b"0123456789"
    assert result.filename == "Café.jpg"
    assert result.mime_type == "image/jpeg"
    assert result.size == 10
    assert adapter.closed == 1


def test_download_file_failure_closes_adapter(stub_factory):
    adapter = FakeAdapter()
    service, _ = _service(stub_factory, adapter)

    with pytest.raises(ContentFetchError):
        asyncio.run(service.download_file("acc", "missing"))
    assert adapter.closed == 1


def test_single_file_archive_is_a_plain_download(stub_factory):
    adapter = FakeAdapter()
    adapter.add("f1", "a.jpg", b"abc")
    service, _ = _service(stub_factory, adapter)

    async def main():
        result = await service.download_archive("acc", [{"id": "f1", "name": "renamed.jpg"}])
        assert isinstance(result, DownloadResult)
        return result, await _collect(iter_bytes(result.stream))

    result, content = asyncio.run(main())

    assert result.filename == "renamed.jpg"
    assert content == b"abc"


def test_archive_keeps_going_after_a_failure(stub_factory):
    adapter = FakeAdapter()
    adapter.add("f1", "a.jpg", b"first")
    adapter.add("f3", "a.jpg", b"second")
    service, _ = _service(stub_factory, adapter)

    result = asyncio.run(service.download_archive("acc", [
        {"id": "f1", "name": "a.jpg"},
        {"id": "f2", "name": "b.jpg"},
        {"id": "f3", "name": "a.jpg"},
    ], archive_name="wedding.zip"))

    assert isinstance(result, ArchiveResult)
    assert result.filename == "wedding.zip"
    assert result.failures == ["b.jpg"]
    with zipfile.ZipFile(io.BytesIO(result.content)) as archive:
        assert archive.namelist() == ["a.jpg", "b.jpg.error.txt", "a (1).jpg"]
        assert archive.read("a (1).jpg") == b"second"
    assert adapter.closed == 1


def test_archive_placeholder_does_not_clobber_real_file(stub_factory):
    adapter = FakeAdapter()
    adapter.add("f2", "b.jpg.error.txt", b"real notes", mime_type="text/plain")
    service, _ = _service(stub_factory, adapter)

    result = asyncio.run(service.download_archive("acc", [
        {"id": "f1", "name": "b.jpg"},
        {"id": "f2", "name": "b.jpg.error.txt"},
    ]))

    assert result.failures == ["b.jpg"]
    with zipfile.ZipFile(io.BytesIO(result.content)) as archive:
        assert archive.namelist() == ["b.jpg.error.txt", "b.jpg.error (1).txt"]
        assert b"Failed to download b.jpg" in archive.read("b.jpg.error.txt")
        assert archive.read("b.jpg.error (1).txt") == b"real notes"


@pytest.mark.parametrize("files", [[], None, [{"name": "no-id.jpg"}]])
def test_archive_validation_happens_before_connecting(stub_factory, files):
    service, factory = _service(stub_factory, FakeAdapter())

    with pytest.raises(ValidationError):
        asyncio.run(service.download_archive("acc", files))
    assert factory.connects == 0


def test_stream_range_forwarded_to_provider(stub_factory):
    adapter = FakeAdapter(honours_range=True)
    adapter.add("v", "clip.mp4", b"0123456789", mime_type="video/mp4")
    service, _ = _service(stub_factory, adapter)

    async def main():
        result = await service.stream_range("acc", "v", "bytes=2-5")
        return result, await _collect(result.body)

    result, content = asyncio.run(main())

    assert result.status_code == 206
    assert content == b"2345"
    assert result.headers["Content-Range"] == "bytes 2-5/10"
    assert result.headers["Content-Length"] == "4"
    assert result.headers["Accept-Ranges"] == "bytes"
    assert adapter.ranges == [(2, 5)]
    assert adapter.closed == 1


def test_stream_range_sliced_locally_when_provider_ignores_it(stub_factory):
    adapter = FakeAdapter(honours_range=False)
    adapter.add("v", "clip.mp4", b"0123456789", mime_type="video/mp4")
    service, _ = _service(stub_factory, adapter)

    async def main():
        result = await service.stream_range("acc", "v", "bytes=2-5")
        return result, await _collect(result.body)

    result, content = asyncio.run(main())

    assert result.status_code == 206
    assert content == b"2345"
    assert adapter.closed == 1


def test_stream_without_range_returns_whole_file(stub_factory):
    adapter = FakeAdapter()
    adapter.add("v", "clip.mp4", b"0123456789", mime_type="video/mp4")
    service, _ = _service(stub_factory, adapter)

    async def main():
        result = await service.stream_range("acc", "v")
        return result, await _collect(result.body)

    result, content = asyncio.run(main())

    assert result.status_code == 200
    assert content == b"0123456789"
    assert result.headers["Content-Length"] == "10"
    assert result.headers["Content-Type"] == "video/mp4"


def test_stream_unsatisfiable_range(stub_factory):
    adapter = FakeAdapter()
    adapter.add("v", "clip.mp4", b"0123456789", mime_type="video/mp4")
    service, _ = _service(stub_factory, adapter)

    with pytest.raises(RangeNotSatisfiableError):
        asyncio.run(service.stream_range("acc", "v", "bytes=20-"))
    assert adapter.closed == 1


def test_thumbnail_native_is_shrunk_to_requested_size(stub_factory):
    url = "https://thumbs.test/f1"
    adapter = FakeAdapter(thumbnail=url, urls={(url, True): (image_bytes(800, 800), "image/png")})
    service, _ = _service(stub_factory, adapter)

    result = asyncio.run(service.resolve_thumbnail("acc", "f1", size=200))

    assert result.source == "native"
    assert result.mime_type == "image/jpeg"
    with Image.open(io.BytesIO(result.content)) as image:
        assert image.size == (200, 200)


def test_thumbnail_public_fallback(stub_factory):
    url = "https://thumbs.test/f1"
    small = image_bytes(100, 100)
    adapter = FakeAdapter(thumbnail=url, urls={(url, False): (small, "image/png")})
    service, _ = _service(stub_factory, adapter)

    result = asyncio.run(service.resolve_thumbnail("acc", "f1", size=200))

    assert result.source == "public"
    assert result.content == small
    assert result.mime_type == "image/png"


def test_thumbnail_truncated_native_falls_back_to_resize(stub_factory):
    url = "https://thumbs.test/f1"
    photo = image_bytes(1600, 1200, fmt="JPEG")
    adapter = FakeAdapter(thumbnail=url, urls={(url, True): (photo[:len(photo) // 3], "image/jpeg")})
    adapter.add("f1", "a.jpg", photo)
    service, _ = _service(stub_factory, adapter)

    result = asyncio.run(service.resolve_thumbnail("acc", "f1", size=200))

    assert result.source == "resized"
    with Image.open(io.BytesIO(result.content)) as image:
        assert image.size == (200, 150)


def test_thumbnail_non_image_response_falls_back_to_resize(stub_factory):
    url = "https://thumbs.test/f1"
    adapter = FakeAdapter(thumbnail=url, urls={
        (url, True): (b"<html>login</html>", "text/html"),
        (url, False): (b"<html>login</html>", "text/html"),
    })
    adapter.add("f1", "a.png", image_bytes(1000, 500), mime_type="image/png")
    service, _ = _service(stub_factory, adapter)

    result = asyncio.run(service.resolve_thumbnail("acc", "f1", size=300))

    assert result.source == "resized"
    assert result.mime_type == "image/jpeg"
    with Image.open(io.BytesIO(result.content)) as image:
        assert image.size == (300, 150)
    assert adapter.closed == 1


def test_thumbnail_all_sources_fail(stub_factory):
    adapter = FakeAdapter()
    adapter.add("f1", "clip.mov", b"not an image", mime_type="video/quicktime")
    service, _ = _service(stub_factory, adapter)

    with pytest.raises(ContentFetchError):
        asyncio.run(service.resolve_thumbnail("acc", "f1"))


def test_thumbnail_size_validation(stub_factory):
    service, factory = _service(stub_factory, FakeAdapter())

    with pytest.raises(ValidationError):
        asyncio.run(service.resolve_thumbnail("acc", "f1", size=0))
    assert factory.connects == 0
