"""
提供商适配器测试（httpx.MockTransport）
"""
import asyncio
import json
import time

import httpx
import pytest

from mediacloud.core.exceptions import (
    ContentFetchError, ProviderNotSupportedError, ProviderUnavailableError
)
from mediacloud.core.models import AuthHandle, AuthToken, BasicCredential, ProviderType
from mediacloud.providers import provider_factory
from mediacloud.providers.dropbox import DropboxProvider
from mediacloud.providers.google_drive import GoogleDriveProvider
from mediacloud.providers.koofr import KoofrProvider
from mediacloud.providers.microsoft import MicrosoftGraphProvider


def _oauth_handle(provider: ProviderType) -> AuthHandle:
    return AuthHandle(account_id="acc", provider=provider, token=AuthToken(access_token="tok"))


def _koofr_handle() -> AuthHandle:
    return AuthHandle(
        account_id="k", provider=ProviderType.KOOFR,
        basic=BasicCredential(username="me@example.com", password="pw")
    )


def _run(mock_client, handler, adapter_cls, handle, action, **kwargs):
    async def main():
        async with mock_client(handler) as http:
            async with adapter_cls(handle, http_client=http, **kwargs) as adapter:
                return await action(adapter)
    return asyncio.run(main())


# ==================== 工厂 ====================

def test_factory_creates_registered_adapters():
    assert set(provider_factory.get_supported_types()) == {"google", "microsoft", "dropbox", "koofr"}
    assert isinstance(provider_factory.create(_oauth_handle(ProviderType.GOOGLE)), GoogleDriveProvider)
    assert isinstance(provider_factory.create(_oauth_handle(ProviderType.MICROSOFT)), MicrosoftGraphProvider)
    assert isinstance(provider_factory.create(_oauth_handle(ProviderType.DROPBOX)), DropboxProvider)
    assert isinstance(provider_factory.create(_koofr_handle()), KoofrProvider)


def test_koofr_has_no_oauth_client():
    with pytest.raises(ProviderNotSupportedError):
        provider_factory.create_oauth_client(ProviderType.KOOFR)


def test_provider_type_parse_is_case_insensitive():
    assert ProviderType.parse("Google") == ProviderType.GOOGLE
    with pytest.raises(ProviderNotSupportedError):
        ProviderType.parse("box")


# ==================== Google Drive ====================

def test_drive_list_folders_follows_pages(mock_client):
    queries = []

    def handler(request: httpx.Request) -> httpx.Response:
        params = request.url.params
        queries.append(params["q"])
        assert request.headers["authorization"] == "Bearer tok"
        if params.get("pageToken") == "p2":
            return httpx.Response(200, json={"files": [{"id": "f2", "name": "B"}]})
        return httpx.Response(200, json={"files": [{"id": "f1", "name": "A"}], "nextPageToken": "p2"})

    folders = _run(mock_client, handler, GoogleDriveProvider, _oauth_handle(ProviderType.GOOGLE),
                   lambda adapter: adapter.list_folders(None))

    assert [(f.id, f.name) for f in folders] == [("f1", "A"), ("f2", "B")]
    assert queries[0].startswith("'root' in parents")
    assert "mimeType = 'application/vnd.google-apps.folder'" in queries[0]


def test_drive_query_escapes_quotes(mock_client):
    queries = []

    def handler(request: httpx.Request) -> httpx.Response:
        queries.append(request.url.params["q"])
        return httpx.Response(200, json={"files": []})

    _run(mock_client, handler, GoogleDriveProvider, _oauth_handle(ProviderType.GOOGLE),
         lambda adapter: adapter.list_files("it's"))

    assert queries[0].startswith("'it\\'s' in parents")


def test_drive_list_files_maps_metadata(mock_client):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"files": [
            {
                "id": "img", "name": "a.jpg", "mimeType": "image/jpeg", "size": "2048",
                "thumbnailLink": "https://lh3.googleusercontent.com/x=s220",
                "imageMediaMetadata": {"width": 4000, "height": 3000},
            },
            {
                "id": "vid", "name": "b.mp4", "mimeType": "video/mp4",
                "videoMediaMetadata": {"width": 1920, "height": 1080, "durationMillis": "61400"},
            },
        ]})

    files = _run(mock_client, handler, GoogleDriveProvider, _oauth_handle(ProviderType.GOOGLE),
                 lambda adapter: adapter.list_files("folder"))

    image, video = files
    assert image.size == 2048
    assert (image.width, image.height) == (4000, 3000)
    assert image.thumbnail_link == "https://lh3.googleusercontent.com/x=s220"
    assert video.duration_ms == 61400
    assert video.thumbnail_link == "https://drive.google.com/thumbnail?id=vid&sz=w400"


def test_drive_listing_failure_degrades_to_empty(mock_client):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="backend error")

    files = _run(mock_client, handler, GoogleDriveProvider, _oauth_handle(ProviderType.GOOGLE),
                 lambda adapter: adapter.list_files("folder"))
    assert files == []


def test_drive_listing_failure_raises_in_verify_mode(mock_client):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "invalid_token"})

    with pytest.raises(ProviderUnavailableError):
        _run(mock_client, handler, GoogleDriveProvider, _oauth_handle(ProviderType.GOOGLE),
             lambda adapter: adapter.list_folders(None), verify=True)


@pytest.mark.parametrize("body", ["null", "[]", '"oops"'])
def test_drive_non_object_json_degrades_to_empty(mock_client, body):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body, headers={"Content-Type": "application/json"})

    async def action(adapter):
        return await adapter.list_folders(None), await adapter.list_files("folder"), await adapter.get_quota()

    folders, files, quota = _run(mock_client, handler, GoogleDriveProvider,
                                 _oauth_handle(ProviderType.GOOGLE), action)
    assert (folders, files, quota) == ([], [], None)


def test_drive_thumbnail_rewrites_size(mock_client):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/drive/v3/files/img"
        return httpx.Response(200, json={
            "id": "img", "name": "a.jpg", "mimeType": "image/jpeg",
            "thumbnailLink": "https://lh3.googleusercontent.com/abc=s220",
        })

    url = _run(mock_client, handler, GoogleDriveProvider, _oauth_handle(ProviderType.GOOGLE),
               lambda adapter: adapter.get_thumbnail("img", 800))
    assert url == "https://lh3.googleusercontent.com/abc=s800"


def test_drive_content_is_byte_stream_only(mock_client):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["alt"] == "media"
        assert request.headers["range"] == "bytes=0-3"
        return httpx.Response(206, content=b"0123", headers={"Content-Range": "bytes 0-3/10"})

    async def action(adapter):
        assert await adapter.get_file_content("img") is None
        stream = await adapter.open_content("img", byte_range=(0, 3))
        return stream.status_code, stream.headers["content-range"], await stream.read()

    status, content_range, data = _run(
        mock_client, handler, GoogleDriveProvider, _oauth_handle(ProviderType.GOOGLE), action
    )
    assert (status, content_range, data) == (206, "bytes 0-3/10", b"0123")


def test_drive_open_content_error_raises_content_fetch_error(mock_client):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    with pytest.raises(ContentFetchError):
        _run(mock_client, handler, GoogleDriveProvider, _oauth_handle(ProviderType.GOOGLE),
             lambda adapter: adapter.open_content("missing"))


def test_drive_quota(mock_client):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/drive/v3/about"
        return httpx.Response(200, json={"storageQuota": {"usage": "100", "limit": "1000"}})

    quota = _run(mock_client, handler, GoogleDriveProvider, _oauth_handle(ProviderType.GOOGLE),
                 lambda adapter: adapter.get_quota())
    assert (quota.usage, quota.limit) == (100, 1000)


# ==================== Microsoft Graph ====================

def test_graph_list_files_follows_next_link_and_skips_folders(mock_client):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1.0/me/drive/root/children"
        if request.url.params.get("$skiptoken") == "p2":
            return httpx.Response(200, json={"value": [
                {"id": "2", "name": "b.mp4", "file": {"mimeType": "video/mp4"},
                 "video": {"duration": 5000, "width": 1280, "height": 720}},
            ]})
        assert request.url.params["$expand"] == "thumbnails"
        return httpx.Response(200, json={
            "value": [
                {"id": "1", "name": "a.jpg", "file": {"mimeType": "image/jpeg"}, "size": 10,
                 "thumbnails": [{"small": {"url": "https://t/s"}, "large": {"url": "https://t/l"}}]},
                {"id": "d", "name": "Ceremony", "folder": {"childCount": 2}},
            ],
            "@odata.nextLink": "https://graph.microsoft.com/v1.0/me/drive/root/children?$skiptoken=p2",
        })

    files = _run(mock_client, handler, MicrosoftGraphProvider, _oauth_handle(ProviderType.MICROSOFT),
                 lambda adapter: adapter.list_files("root"))

    assert [f.id for f in files] == ["1", "2"]
    assert files[0].thumbnail_link == "https://t/l"
    assert files[1].duration_ms == 5000
    assert (files[1].width, files[1].height) == (1280, 720)


def test_graph_list_folders_uses_item_children(mock_client):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1.0/me/drive/items/abc/children"
        return httpx.Response(200, json={"value": [
            {"id": "d1", "name": "Ceremony", "folder": {}},
            {"id": "f1", "name": "a.jpg", "file": {}},
        ]})

    folders = _run(mock_client, handler, MicrosoftGraphProvider, _oauth_handle(ProviderType.MICROSOFT),
                   lambda adapter: adapter.list_folders("abc"))
    assert [(f.id, f.name) for f in folders] == [("d1", "Ceremony")]


def test_graph_content_uses_unauthenticated_download_url(mock_client):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "download.test":
            assert "authorization" not in request.headers
            return httpx.Response(200, content=b"bytes")
        return httpx.Response(200, json={
            "id": "1", "name": "a.jpg", "@microsoft.graph.downloadUrl": "https://download.test/a?sig=1"
        })

    async def action(adapter):
        link = await adapter.get_file_content("1")
        stream = await adapter.open_content("1")
        return link, await stream.read()

    link, data = _run(mock_client, handler, MicrosoftGraphProvider,
                      _oauth_handle(ProviderType.MICROSOFT), action)
    assert link.url == "https://download.test/a?sig=1"
    assert link.requires_auth is False
    assert data == b"bytes"


def test_graph_quota(mock_client):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1.0/me/drive"
        return httpx.Response(200, json={"quota": {"used": 5, "total": 50}})

    quota = _run(mock_client, handler, MicrosoftGraphProvider, _oauth_handle(ProviderType.MICROSOFT),
                 lambda adapter: adapter.get_quota())
    assert (quota.usage, quota.limit) == (5, 50)


# ==================== Dropbox ====================

def test_dropbox_listing_continues_cursor(mock_client):
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        bodies.append((request.url.path, body))
        if request.url.path == "/2/files/list_folder/continue":
            return httpx.Response(200, json={"entries": [
                {".tag": "file", "id": "id:2", "name": "b.jpg", "path_lower": "/wedding/b.jpg", "size": 7},
            ], "has_more": False})
        return httpx.Response(200, json={"entries": [
            {".tag": "folder", "id": "id:f", "name": "Ceremony", "path_lower": "/wedding/ceremony"},
            {".tag": "file", "id": "id:1", "name": "a.jpg", "path_lower": "/wedding/a.jpg", "size": 3,
             "media_info": {"metadata": {"dimensions": {"width": 10, "height": 20}}}},
        ], "has_more": True, "cursor": "c1"})

    async def action(adapter):
        return await adapter.list_folders("/wedding"), await adapter.list_files("/wedding")

    folders, files = _run(mock_client, handler, DropboxProvider, _oauth_handle(ProviderType.DROPBOX), action)

    assert [(f.id, f.name) for f in folders] == [("/wedding/ceremony", "Ceremony")]
    assert [f.id for f in files] == ["id:1", "id:2"]
    assert (files[0].width, files[0].height) == (10, 20)
    assert files[0].mime_type == "image/jpeg"
    assert bodies[0][1]["path"] == "/wedding"
    assert bodies[-2][1]["include_media_info"] is True
    assert bodies[-1] == ("/2/files/list_folder/continue", {"cursor": "c1"})


def test_dropbox_root_is_empty_path(mock_client):
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"entries": [], "has_more": False})

    _run(mock_client, handler, DropboxProvider, _oauth_handle(ProviderType.DROPBOX),
         lambda adapter: adapter.list_folders("root"))
    assert bodies[0]["path"] == ""


def test_dropbox_temporary_link_expires_in_four_hours(mock_client):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/2/files/get_temporary_link"
        return httpx.Response(200, json={"link": "https://dl.test/tmp"})

    link = _run(mock_client, handler, DropboxProvider, _oauth_handle(ProviderType.DROPBOX),
                lambda adapter: adapter.get_file_content("id:1"))

    assert link.url == "https://dl.test/tmp"
    assert abs(link.expires_at - (time.time() + 4 * 3600)) < 60


def test_dropbox_download_uses_api_arg_header(mock_client):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.host == "content.dropboxapi.com"
        assert json.loads(request.headers["dropbox-api-arg"]) == {"path": "id:1"}
        return httpx.Response(200, content=b"abc")

    async def action(adapter):
        stream = await adapter.open_content("id:1")
        return await stream.read()

    assert _run(mock_client, handler, DropboxProvider, _oauth_handle(ProviderType.DROPBOX), action) == b"abc"


def test_dropbox_quota_posts_null(mock_client):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/2/users/get_space_usage"
        assert request.content == b"null"
        return httpx.Response(200, json={"used": 7, "allocation": {".tag": "individual", "allocated": 70}})

    quota = _run(mock_client, handler, DropboxProvider, _oauth_handle(ProviderType.DROPBOX),
                 lambda adapter: adapter.get_quota())
    assert (quota.usage, quota.limit) == (7, 70)


# ==================== Koofr ====================

def _koofr_handler(calls):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        assert request.headers["authorization"].startswith("Basic ")
        if request.url.path == "/api/v2/mounts":
            return httpx.Response(200, json={"mounts": [
                {"id": "m1", "isPrimary": False},
                {"id": "m2", "isPrimary": True},
            ]})
        if request.url.path == "/api/v2/mounts/m2/files/list":
            path = request.url.params["path"]
            if path == "/":
                return httpx.Response(200, json={"files": [
                    {"name": "Ceremony", "type": "dir"},
                    {"name": "a.jpg", "type": "file", "size": 3, "contentType": "image/jpeg"},
                ]})
            return httpx.Response(200, json={"files": [{"name": "Sub", "type": "dir"}]})
        if request.url.path == "/api/v2/user/quotas":
            return httpx.Response(200, json={"primary": {"used": 3, "limit": 10},
                                             "extra": {"used": 1, "limit": 5}})
        return httpx.Response(404)
    return handler


def test_koofr_paths_are_ids_and_mount_is_cached(mock_client):
    calls = []

    async def action(adapter):
        root_files = await adapter.list_files(None)
        root_folders = await adapter.list_folders("/")
        sub_folders = await adapter.list_folders("/Ceremony")
        return root_files, root_folders, sub_folders

    files, folders, subfolders = _run(mock_client, _koofr_handler(calls), KoofrProvider, _koofr_handle(), action)

    assert [f.id for f in files] == ["/a.jpg"]
    assert [f.id for f in folders] == ["/Ceremony"]
    assert [f.id for f in subfolders] == ["/Ceremony/Sub"]
    assert calls.count("/api/v2/mounts") == 1


def test_koofr_content_link_requires_auth(mock_client):
    link = _run(mock_client, _koofr_handler([]), KoofrProvider, _koofr_handle(),
                lambda adapter: adapter.get_file_content("/Ceremony/a b.jpg"))

    assert link.requires_auth is True
    assert link.url == (
        "https://app.koofr.net/content/api/v2/mounts/m2/files/get?path=%2FCeremony%2Fa%20b.jpg"
    )


def test_koofr_quota_sums_entries(mock_client):
    quota = _run(mock_client, _koofr_handler([]), KoofrProvider, _koofr_handle(),
                 lambda adapter: adapter.get_quota())
    assert (quota.usage, quota.limit) == (4, 15)


def test_koofr_bad_credentials_fail_verification(mock_client):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "unauthorized"})

    with pytest.raises(ProviderUnavailableError):
        _run(mock_client, handler, KoofrProvider, _koofr_handle(),
             lambda adapter: adapter.get_quota(), verify=True)

    # 非校验模式下配额缺失只返回 None
    assert _run(mock_client, handler, KoofrProvider, _koofr_handle(),
                lambda adapter: adapter.get_quota()) is None
