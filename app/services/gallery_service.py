"""
画廊管理服务
"""
import logging
import uuid
from typing import List, Optional

from app.core.exceptions import GalleryNotFoundError, ValidationError
from app.models.gallery import ExternalVideo, Gallery
from app.services.cloud_service import CloudService

logger = logging.getLogger(__name__)

EXTERNAL_PROVIDERS = ("youtube", "vimeo")


class GalleryService:
    """画廊管理服务"""

    def __init__(self, cloud: CloudService):
        self.cloud = cloud

    async def list_galleries(self, user_id: str) -> List[Gallery]:
        return await Gallery.filter(user_id=user_id).order_by("-created_at")

    async def get_gallery(self, user_id: str, gallery_id: str) -> Gallery:
        gallery = await Gallery.filter(id=gallery_id, user_id=user_id).first()
        if not gallery:
            raise GalleryNotFoundError(gallery_id)
        return gallery

    async def create_gallery(
        self,
        user_id: str,
        name: str,
        cloud_account_id: str,
        root_folder_id: str,
        match_formats: bool = True
    ) -> Gallery:
        """
        创建画廊

        Args:
            user_id: 用户 ID
            name: 画廊名称
            cloud_account_id: 云存储账号 ID（必须属于该用户）
            root_folder_id: 根文件夹 ID
            match_formats: 是否关联分辨率变体文件夹
        """
        if not name:
            raise ValidationError("画廊名称不能为空")
        if not root_folder_id:
            raise ValidationError("根文件夹不能为空")

        await self.cloud.get_account(user_id, cloud_account_id)
        gallery = await Gallery.create(
            id=uuid.uuid4().hex,
            user_id=user_id,
            name=name,
            cloud_account_id=cloud_account_id,
            root_folder_id=root_folder_id,
            match_formats=match_formats
        )
        logger.info(f"Created gallery {gallery.id} on account {cloud_account_id}")
        return gallery

    async def update_order(
        self,
        user_id: str,
        gallery_id: str,
        file_order: Optional[List[str]] = None,
        moments_order: Optional[List[str]] = None
    ) -> Gallery:
        """保存显式排序（None 表示不修改，空列表表示清除）"""
        gallery = await self.get_gallery(user_id, gallery_id)
        if file_order is not None:
            gallery.file_order = list(file_order)
        if moments_order is not None:
            gallery.moments_order = list(moments_order)
        await gallery.save()
        return gallery

    async def add_external_video(
        self,
        user_id: str,
        gallery_id: str,
        provider: str,
        external_id: str,
        title: Optional[str] = None,
        thumbnail: Optional[str] = None,
        duration: Optional[int] = None,
        moment_name: Optional[str] = None
    ) -> ExternalVideo:
        provider = (provider or "").lower()
        if provider not in EXTERNAL_PROVIDERS:
            raise ValidationError(f"不支持的视频平台: {provider}")
        if not external_id:
            raise ValidationError("视频 ID 不能为空")

        gallery = await self.get_gallery(user_id, gallery_id)
        return await ExternalVideo.create(
            id=uuid.uuid4().hex,
            gallery=gallery,
            provider=provider,
            external_id=external_id,
            title=title,
            thumbnail=thumbnail,
            duration=duration,
            moment_name=moment_name or None
        )

    async def delete_gallery(self, user_id: str, gallery_id: str) -> None:
        gallery = await self.get_gallery(user_id, gallery_id)
        await gallery.delete()
        logger.info(f"Deleted gallery {gallery_id}")
