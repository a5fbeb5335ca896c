"""
Koofr Provider 实现

Koofr 按路径寻址，每次请求都携带 Basic Auth
"""
import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from ...core.exceptions import ContentFetchError, ProviderUnavailableError
from ...core.mime import guess_mime_type
from ...core.models import (
    ByteStream, CloudFile, CloudFolder, ContentLink, ProviderType, Quota
)
from ..base import BaseProvider
from .config import KoofrConfig, default_config as koofr_config

logger = logging.getLogger(__name__)


def join_path(parent: str, name: str) -> str:
    """拼接 Koofr 路径"""
    if not parent or parent == "/":
        return f"/{name}"
    return f"{parent.rstrip('/')}/{name}"


class KoofrProvider(BaseProvider):
    """Koofr Provider

    文件 ID 就是主挂载点内的完整路径，根目录为 "/"
    """

    root_id = "/"

    def __init__(self, *args, koofr: KoofrConfig = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.koofr = koofr or koofr_config
        self._mount_id: Optional[str] = None

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.KOOFR

    def _normalize(self, parent_id: Optional[str]) -> str:
        if not parent_id or parent_id == "root":
            return self.root_id
        return parent_id

    async def _primary_mount(self) -> str:
        """获取主挂载点 ID（isPrimary，否则第一个）

        Raises:
            ProviderUnavailableError: 请求失败或没有挂载点
        """
        if self._mount_id is not None:
            return self._mount_id

        data = await self._request_json("GET", f"{self.koofr.api_url}/mounts", what="mounts")
        mounts = data.get("mounts") or []
        primary = next((m for m in mounts if m.get("isPrimary")), None) or (mounts[0] if mounts else None)
        if not primary:
            raise ProviderUnavailableError("mounts: no storage mount found")

        self._mount_id = primary["id"]
        logger.debug(f"Koofr primary mount: {self._mount_id}")
        return self._mount_id

    async def _list(self, path: str) -> List[Dict[str, Any]]:
        mount_id = await self._primary_mount()
        data = await self._request_json(
            "GET", f"{self.koofr.api_url}/mounts/{mount_id}/files/list",
            what=f"files/list({path})", params={"path": path}
        )
        return data.get("files") or []

    async def list_folders(self, parent_id: Optional[str] = None) -> List[CloudFolder]:
        """列出子文件夹"""
        path = self._normalize(parent_id)

        async def call() -> List[CloudFolder]:
            entries = await self._list(path)
            return [
                CloudFolder(id=join_path(path, entry["name"]), name=entry["name"])
                for entry in entries if entry.get("type") == "dir"
            ]

        return await self._listing(f"list folders of {path}", call())

    async def list_files(self, parent_id: Optional[str] = None) -> List[CloudFile]:
        """列出子文件"""
        path = self._normalize(parent_id)

        async def call() -> List[CloudFile]:
            entries = await self._list(path)
            return [
                self._to_file(join_path(path, entry["name"]), entry)
                for entry in entries if entry.get("type") == "file"
            ]

        return await self._listing(f"list files of {path}", call())

    def _to_file(self, path: str, entry: Dict[str, Any]) -> CloudFile:
        name = entry["name"]
        return CloudFile(
            id=path,
            name=name,
            mime_type=entry.get("contentType") or guess_mime_type(name),
            size=self._int_or_none(entry.get("size")) or 0,
            # Koofr 只有分享链接才能公开访问，缩略图走代理
            thumbnail_link=None,
            modified_at=entry.get("modified"),
            raw_data=entry
        )

    async def _mount_for(self, file_id: str) -> str:
        try:
            return await self._primary_mount()
        except ProviderUnavailableError as e:
            raise ContentFetchError(self.provider_type.value, file_id, str(e))

    def _content_url(self, mount_id: str, path: str) -> str:
        return f"{self.koofr.content_url}/mounts/{mount_id}/files/get?path={quote(path, safe='')}"

    async def get_file_info(self, file_id: str) -> CloudFile:
        mount_id = await self._mount_for(file_id)
        data = await self._fetch_json(
            file_id, "GET", f"{self.koofr.api_url}/mounts/{mount_id}/files/info",
            params={"path": file_id}
        )
        return self._to_file(file_id, data)

    async def get_file_content(self, file_id: str) -> Optional[ContentLink]:
        """返回内容接口地址

        该地址不是预签名的，调用方必须重新附带 Basic Auth 请求头
        """
        mount_id = await self._mount_for(file_id)
        return ContentLink(url=self._content_url(mount_id, file_id), requires_auth=True)

    async def open_content(
        self,
        file_id: str,
        byte_range: Optional[Tuple[int, int]] = None
    ) -> ByteStream:
        mount_id = await self._mount_for(file_id)
        return await self._open_stream(
            file_id, self._content_url(mount_id, file_id), byte_range=byte_range
        )

    async def get_quota(self) -> Optional[Quota]:
        """获取配额

        Koofr 没有轻量的元数据探测接口，配额查询兼作凭据校验
        """
        async def call() -> Quota:
            data = await self._request_json("GET", f"{self.koofr.api_url}/user/quotas", what="quotas")
            used = 0
            limit = 0
            # 形如 {"primary": {"used": ..., "limit": ...}}
            for entry in data.values():
                if isinstance(entry, dict):
                    used += self._int_or_none(entry.get("used")) or 0
                    limit += self._int_or_none(entry.get("limit")) or 0
            return Quota(usage=used, limit=limit)

        return await self._probe("quota", call())
