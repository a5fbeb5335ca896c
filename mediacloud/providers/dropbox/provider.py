"""
Dropbox Provider 实现

基于 Dropbox API v2（RPC 风格的 JSON POST 接口）
"""
import json
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from ...core.exceptions import ContentFetchError
from ...core.mime import guess_mime_type
from ...core.models import (
    ByteStream, CloudFile, CloudFolder, ContentLink, ProviderType, Quota
)
from ..base import BaseProvider
from .config import DropboxConfig, default_config as dropbox_config

logger = logging.getLogger(__name__)

_JSON_NULL = {"content": b"null", "headers": {"Content-Type": "application/json"}}


class DropboxProvider(BaseProvider):
    """Dropbox Provider

    文件夹 ID 为 path_lower，文件 ID 为 "id:..." 形式的条目 ID，根目录为 ""
    """

    root_id = ""

    def __init__(self, *args, dropbox: DropboxConfig = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.dropbox = dropbox or dropbox_config

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.DROPBOX

    def _normalize(self, parent_id: Optional[str]) -> str:
        if not parent_id or parent_id in ("root", "/"):
            return self.root_id
        return parent_id

    async def _rpc(self, endpoint: str, what: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.dropbox.API_BASE_URL}/{endpoint}"
        if payload is None:
            return await self._request_json("POST", url, what=what, **_JSON_NULL)
        return await self._request_json("POST", url, what=what, json=payload)

    async def _entries(self, path: str, include_media_info: bool = False) -> List[Dict[str, Any]]:
        """分页获取目录条目（has_more 时调用 list_folder/continue）"""
        what = f"list_folder({path or '/'})"
        data = await self._rpc("files/list_folder", what, {
            "path": path,
            "recursive": False,
            "include_media_info": include_media_info,
            "limit": self.dropbox.LIST_LIMIT,
        })

        entries: List[Dict[str, Any]] = list(data.get("entries", []))
        while data.get("has_more"):
            data = await self._rpc("files/list_folder/continue", what, {"cursor": data["cursor"]})
            entries.extend(data.get("entries", []))
        return entries

    async def list_folders(self, parent_id: Optional[str] = None) -> List[CloudFolder]:
        """列出子文件夹"""
        path = self._normalize(parent_id)

        async def call() -> List[CloudFolder]:
            entries = await self._entries(path)
            return [
                CloudFolder(id=entry.get("path_lower") or entry["id"], name=entry["name"])
                for entry in entries if entry.get(".tag") == "folder"
            ]

        return await self._listing(f"list folders of {path or '/'}", call())

    async def list_files(self, parent_id: Optional[str] = None) -> List[CloudFile]:
        """列出子文件"""
        path = self._normalize(parent_id)

        async def call() -> List[CloudFile]:
            entries = await self._entries(path, include_media_info=True)
            return [self._to_file(entry) for entry in entries if entry.get(".tag") == "file"]

        return await self._listing(f"list files of {path or '/'}", call())

    def _to_file(self, entry: Dict[str, Any]) -> CloudFile:
        name = entry["name"]
        metadata = (entry.get("media_info") or {}).get("metadata") or {}
        dimensions = metadata.get("dimensions") or {}

        return CloudFile(
            id=entry["id"],
            name=name,
            mime_type=guess_mime_type(name),
            size=self._int_or_none(entry.get("size")) or 0,
            # Dropbox 没有公开缩略图 URL，由缩略图代理下载后缩放
            thumbnail_link=None,
            width=self._int_or_none(dimensions.get("width")),
            height=self._int_or_none(dimensions.get("height")),
            duration_ms=self._int_or_none(metadata.get("duration")),
            modified_at=entry.get("server_modified"),
            raw_data=entry
        )

    async def get_file_info(self, file_id: str) -> CloudFile:
        data = await self._fetch_json(
            file_id, "POST", f"{self.dropbox.API_BASE_URL}/files/get_metadata",
            json={"path": file_id, "include_media_info": True}
        )
        return self._to_file(data)

    async def get_file_content(self, file_id: str) -> Optional[ContentLink]:
        """获取临时下载链接（约 4 小时有效）"""
        data = await self._fetch_json(
            file_id, "POST", f"{self.dropbox.API_BASE_URL}/files/get_temporary_link",
            json={"path": file_id}
        )

        link = data.get("link")
        if not link:
            return None
        return ContentLink(url=link, expires_at=time.time() + self.dropbox.TEMPORARY_LINK_TTL)

    async def open_content(
        self,
        file_id: str,
        byte_range: Optional[Tuple[int, int]] = None
    ) -> ByteStream:
        return await self._open_stream(
            file_id,
            f"{self.dropbox.CONTENT_BASE_URL}/files/download",
            byte_range=byte_range,
            method="POST",
            headers={"Dropbox-API-Arg": json.dumps({"path": file_id})}
        )

    async def get_thumbnail(self, file_id: str, size: int = 400) -> Optional[str]:
        """返回原图临时链接，由缩略图代理负责缩放"""
        try:
            link = await self.get_file_content(file_id)
        except ContentFetchError as e:
            logger.warning(f"Dropbox thumbnail lookup failed for {file_id}: {e}")
            return None
        return link.url if link else None

    async def get_quota(self) -> Optional[Quota]:
        async def call() -> Quota:
            data = await self._rpc("users/get_space_usage", "get_space_usage")
            # individual 与 team 两种分配方式都有 allocated 字段
            allocation = data.get("allocation") or {}
            return Quota(
                usage=self._int_or_none(data.get("used")) or 0,
                limit=self._int_or_none(allocation.get("allocated")) or 0
            )

        return await self._probe("quota", call())
