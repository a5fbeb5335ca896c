"""
Google Drive Provider 实现

基于 Drive REST v3 接口
"""
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from ...core.exceptions import ContentFetchError
from ...core.mime import guess_mime_type
from ...core.models import (
    ByteStream, CloudFile, CloudFolder, ContentLink, ProviderType, Quota
)
from ..base import BaseProvider
from .config import GoogleDriveConfig, default_config as drive_config

logger = logging.getLogger(__name__)

_SIZE_PARAM = re.compile(r"=s\d+")


def _quote(value: str) -> str:
    """转义 Drive 查询语句中的字符串"""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class GoogleDriveProvider(BaseProvider):
    """Google Drive Provider

    文件 ID 为 Drive 的不透明短 ID，根目录为 "root"。
    内容不是基于 URL 的：get_file_content 返回 None，下载统一走 open_content
    """

    root_id = "root"

    def __init__(self, *args, drive: GoogleDriveConfig = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.drive = drive or drive_config

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.GOOGLE

    def _normalize(self, parent_id: Optional[str]) -> str:
        return parent_id if parent_id and parent_id != "/" else self.root_id

    async def _query(self, query: str, fields: str) -> List[Dict[str, Any]]:
        """分页执行 files.list"""
        items: List[Dict[str, Any]] = []
        page_token: Optional[str] = None

        while True:
            params = {
                "q": query,
                "fields": f"nextPageToken, files({fields})",
                "pageSize": self.drive.PAGE_SIZE,
                "supportsAllDrives": "true",
                "includeItemsFromAllDrives": "true",
            }
            if page_token:
                params["pageToken"] = page_token

            data = await self._request_json(
                "GET", f"{self.drive.API_BASE_URL}/files",
                what=f"files.list({query})", params=params
            )
            items.extend(data.get("files", []))
            page_token = data.get("nextPageToken")
            if not page_token:
                return items

    async def list_folders(self, parent_id: Optional[str] = None) -> List[CloudFolder]:
        """列出子文件夹"""
        folder_id = self._normalize(parent_id)
        query = (
            f"'{_quote(folder_id)}' in parents and "
            f"mimeType = '{self.drive.FOLDER_MIME_TYPE}' and trashed = false"
        )

        async def call() -> List[CloudFolder]:
            items = await self._query(query, "id, name")
            return [
                CloudFolder(id=item["id"], name=item.get("name") or "Untitled Folder")
                for item in items
            ]

        return await self._listing(f"list folders of {folder_id}", call())

    async def list_files(self, parent_id: Optional[str] = None) -> List[CloudFile]:
        """列出子文件"""
        folder_id = self._normalize(parent_id)
        query = (
            f"'{_quote(folder_id)}' in parents and "
            f"mimeType != '{self.drive.FOLDER_MIME_TYPE}' and trashed = false"
        )

        async def call() -> List[CloudFile]:
            items = await self._query(query, self.drive.FILE_FIELDS)
            return [self._to_file(item) for item in items]

        return await self._listing(f"list files of {folder_id}", call())

    def _to_file(self, item: Dict[str, Any]) -> CloudFile:
        name = item.get("name") or "Untitled"
        mime_type = item.get("mimeType") or guess_mime_type(name)
        is_video = mime_type.startswith("video/")
        media = item.get("videoMediaMetadata" if is_video else "imageMediaMetadata") or {}

        # 没有缩略图的视频使用 Drive 缩略图接口
        thumbnail = item.get("thumbnailLink")
        if not thumbnail and is_video:
            thumbnail = self.drive.THUMBNAIL_URL.format(file_id=item["id"], size=400)

        return CloudFile(
            id=item["id"],
            name=name,
            mime_type=mime_type,
            size=self._int_or_none(item.get("size")) or 0,
            thumbnail_link=thumbnail,
            download_link=item.get("webContentLink"),
            width=self._int_or_none(media.get("width")),
            height=self._int_or_none(media.get("height")),
            duration_ms=self._int_or_none(media.get("durationMillis")),
            modified_at=item.get("modifiedTime"),
            raw_data=item
        )

    async def get_file_info(self, file_id: str) -> CloudFile:
        data = await self._fetch_json(
            file_id, "GET", f"{self.drive.API_BASE_URL}/files/{file_id}",
            params={"fields": self.drive.FILE_FIELDS, "supportsAllDrives": "true"}
        )
        return self._to_file(data)

    async def get_file_content(self, file_id: str) -> Optional[ContentLink]:
        """Drive 内容需要带令牌的字节请求，调用方应使用 open_content"""
        return None

    async def open_content(
        self,
        file_id: str,
        byte_range: Optional[Tuple[int, int]] = None
    ) -> ByteStream:
        return await self._open_stream(
            file_id,
            f"{self.drive.API_BASE_URL}/files/{file_id}",
            byte_range=byte_range,
            params={"alt": "media", "supportsAllDrives": "true"}
        )

    async def get_thumbnail(self, file_id: str, size: int = 400) -> Optional[str]:
        """获取缩略图 URL（调整 URL 中的 =sNNN 尺寸参数）"""
        try:
            info = await self.get_file_info(file_id)
            link = info.thumbnail_link
        except ContentFetchError as e:
            logger.warning(f"Drive thumbnail lookup failed for {file_id}: {e}")
            link = None

        if not link:
            return self.drive.THUMBNAIL_URL.format(file_id=file_id, size=size)
        if _SIZE_PARAM.search(link):
            return _SIZE_PARAM.sub(f"=s{size}", link)
        return link

    async def get_quota(self) -> Optional[Quota]:
        async def call() -> Quota:
            data = await self._request_json(
                "GET", f"{self.drive.API_BASE_URL}/about",
                what="about.get", params={"fields": "storageQuota"}
            )
            quota = data.get("storageQuota") or {}
            # 无限空间的账号没有 limit
            return Quota(
                usage=self._int_or_none(quota.get("usage")) or 0,
                limit=self._int_or_none(quota.get("limit")) or 0
            )

        return await self._probe("quota", call())
