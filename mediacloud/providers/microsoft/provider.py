"""
Microsoft Graph（OneDrive）Provider 实现
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from ...core.exceptions import ContentFetchError
from ...core.mime import guess_mime_type
from ...core.models import (
    ByteStream, CloudFile, CloudFolder, ContentLink, ProviderType, Quota
)
from ..base import BaseProvider
from .config import MicrosoftGraphConfig, default_config as graph_config

logger = logging.getLogger(__name__)

DOWNLOAD_URL_KEY = "@microsoft.graph.downloadUrl"


def _largest_thumbnail(item: Dict[str, Any]) -> Optional[str]:
    thumbnails = item.get("thumbnails") or []
    if not thumbnails:
        return None
    thumb = thumbnails[0]
    for size in ("large", "medium", "small"):
        url = (thumb.get(size) or {}).get("url")
        if url:
            return url
    return None


class MicrosoftGraphProvider(BaseProvider):
    """OneDrive / SharePoint Provider

    文件 ID 为 Graph 的不透明 item ID，根目录为 "root"
    """

    root_id = "root"

    def __init__(self, *args, graph: MicrosoftGraphConfig = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.graph = graph or graph_config

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.MICROSOFT

    def _children_url(self, parent_id: Optional[str]) -> str:
        if not parent_id or parent_id in ("root", "/"):
            return f"{self.graph.API_BASE_URL}/me/drive/root/children"
        return f"{self.graph.API_BASE_URL}/me/drive/items/{parent_id}/children"

    async def _children(self, parent_id: Optional[str], params: Dict[str, str]) -> List[Dict[str, Any]]:
        """分页获取子项目（跟随 @odata.nextLink）"""
        items: List[Dict[str, Any]] = []
        url: Optional[str] = self._children_url(parent_id)
        what = f"children of {parent_id or 'root'}"

        data = await self._request_json("GET", url, what=what, params=params)
        while True:
            items.extend(data.get("value", []))
            url = data.get("@odata.nextLink")
            if not url:
                return items
            # nextLink 已包含全部查询参数
            data = await self._request_json("GET", url, what=what)

    async def list_folders(self, parent_id: Optional[str] = None) -> List[CloudFolder]:
        """列出子文件夹"""
        async def call() -> List[CloudFolder]:
            items = await self._children(parent_id, {"$select": "id,name,folder"})
            return [
                CloudFolder(id=item["id"], name=item.get("name") or "Untitled Folder")
                for item in items if item.get("folder") is not None
            ]

        return await self._listing(f"list folders of {parent_id or 'root'}", call())

    async def list_files(self, parent_id: Optional[str] = None) -> List[CloudFile]:
        """列出子文件

        个人账号的 children 接口不一定支持 $filter，因此取全部后在本地过滤文件夹
        """
        async def call() -> List[CloudFile]:
            items = await self._children(
                parent_id, {"$select": self.graph.FILE_SELECT, "$expand": "thumbnails"}
            )
            return [self._to_file(item) for item in items if item.get("folder") is None]

        return await self._listing(f"list files of {parent_id or 'root'}", call())

    def _to_file(self, item: Dict[str, Any]) -> CloudFile:
        name = item.get("name") or "Untitled"
        image = item.get("image") or {}
        video = item.get("video") or {}
        mime_type = (item.get("file") or {}).get("mimeType") or guess_mime_type(name)

        return CloudFile(
            id=item["id"],
            name=name,
            mime_type=mime_type,
            size=self._int_or_none(item.get("size")) or 0,
            thumbnail_link=_largest_thumbnail(item),
            download_link=item.get(DOWNLOAD_URL_KEY),
            width=self._int_or_none(image.get("width") or video.get("width")),
            height=self._int_or_none(image.get("height") or video.get("height")),
            duration_ms=self._int_or_none(video.get("duration")),
            modified_at=item.get("lastModifiedDateTime"),
            raw_data=item
        )

    async def get_file_info(self, file_id: str) -> CloudFile:
        data = await self._fetch_json(
            file_id, "GET", f"{self.graph.API_BASE_URL}/me/drive/items/{file_id}"
        )
        return self._to_file(data)

    async def get_file_content(self, file_id: str) -> Optional[ContentLink]:
        """获取短期有效的下载链接（无需认证头）"""
        data = await self._fetch_json(
            file_id, "GET", f"{self.graph.API_BASE_URL}/me/drive/items/{file_id}"
        )
        url = data.get(DOWNLOAD_URL_KEY)
        if not url:
            logger.warning(f"Graph item {file_id} has no download URL")
            return None
        return ContentLink(url=url)

    async def open_content(
        self,
        file_id: str,
        byte_range: Optional[Tuple[int, int]] = None
    ) -> ByteStream:
        link = await self.get_file_content(file_id)
        if link is None:
            raise ContentFetchError(self.provider_type.value, file_id, "no download URL")
        # 预签名地址，附带 Bearer 头反而会被拒绝
        return await self._open_stream(
            file_id, link.url, byte_range=byte_range, authenticated=False
        )

    async def get_thumbnail(self, file_id: str, size: int = 400) -> Optional[str]:
        """获取最大的可用缩略图"""
        try:
            data = await self._fetch_json(
                file_id, "GET", f"{self.graph.API_BASE_URL}/me/drive/items/{file_id}/thumbnails"
            )
        except ContentFetchError as e:
            logger.warning(f"Graph thumbnail lookup failed for {file_id}: {e}")
            return None
        return _largest_thumbnail({"thumbnails": data.get("value")})

    async def get_quota(self) -> Optional[Quota]:
        async def call() -> Quota:
            data = await self._request_json(
                "GET", f"{self.graph.API_BASE_URL}/me/drive", what="drive quota"
            )
            quota = data.get("quota") or {}
            return Quota(
                usage=self._int_or_none(quota.get("used")) or 0,
                limit=self._int_or_none(quota.get("total")) or 0
            )

        return await self._probe("quota", call())
