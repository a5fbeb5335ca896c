"""
画廊管理 API 路由
"""
import logging

from fastapi import APIRouter, Depends, status

from app.api.deps import get_cloud_service, get_current_user, get_gallery_service
from app.api.schemas import (
    DataResponse, ExternalVideoCreate, GalleryCreate, GalleryOrderUpdate, ResponseBase
)
from app.services.cloud_service import CloudService
from app.services.gallery_service import GalleryService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/galleries", tags=["画廊"])


@router.get("")
async def list_galleries(
    user_id: str = Depends(get_current_user),
    gallery_service: GalleryService = Depends(get_gallery_service)
):
    """获取画廊列表"""
    galleries = await gallery_service.list_galleries(user_id)
    return {
        "success": True,
        "galleries": [gallery.to_dict() for gallery in galleries]
    }


@router.post("", response_model=DataResponse, status_code=status.HTTP_201_CREATED)
async def create_gallery(
    data: GalleryCreate,
    user_id: str = Depends(get_current_user),
    gallery_service: GalleryService = Depends(get_gallery_service)
):
    """创建画廊"""
    gallery = await gallery_service.create_gallery(
        user_id=user_id,
        name=data.name,
        cloud_account_id=data.cloud_account_id,
        root_folder_id=data.root_folder_id,
        match_formats=data.match_formats
    )
    return DataResponse(data=gallery.to_dict())


@router.get("/{gallery_id}", response_model=DataResponse)
async def get_gallery(
    gallery_id: str,
    user_id: str = Depends(get_current_user),
    gallery_service: GalleryService = Depends(get_gallery_service)
):
    """获取画廊详情（含外部视频）"""
    gallery = await gallery_service.get_gallery(user_id, gallery_id)
    videos = await gallery.external_videos.all()
    result = gallery.to_dict()
    result["external_videos"] = [video.to_dict() for video in videos]
    return DataResponse(data=result)


@router.put("/{gallery_id}/order", response_model=DataResponse)
async def update_order(
    gallery_id: str,
    data: GalleryOrderUpdate,
    user_id: str = Depends(get_current_user),
    gallery_service: GalleryService = Depends(get_gallery_service)
):
    """保存文件和时刻的显式排序"""
    gallery = await gallery_service.update_order(
        user_id, gallery_id,
        file_order=data.file_order,
        moments_order=data.moments_order
    )
    return DataResponse(data=gallery.to_dict())


@router.post("/{gallery_id}/videos", response_model=DataResponse, status_code=status.HTTP_201_CREATED)
async def add_external_video(
    gallery_id: str,
    data: ExternalVideoCreate,
    user_id: str = Depends(get_current_user),
    gallery_service: GalleryService = Depends(get_gallery_service)
):
    """添加外部视频"""
    video = await gallery_service.add_external_video(
        user_id, gallery_id,
        provider=data.provider,
        external_id=data.external_id,
        title=data.title,
        thumbnail=data.thumbnail,
        duration=data.duration,
        moment_name=data.moment_name
    )
    return DataResponse(data=video.to_dict())


@router.delete("/{gallery_id}", response_model=ResponseBase)
async def delete_gallery(
    gallery_id: str,
    user_id: str = Depends(get_current_user),
    gallery_service: GalleryService = Depends(get_gallery_service)
):
    """删除画廊"""
    await gallery_service.delete_gallery(user_id, gallery_id)
    return ResponseBase(message="画廊已删除")


@router.get("/{gallery_id}/index", response_model=DataResponse)
async def index_gallery(
    gallery_id: str,
    user_id: str = Depends(get_current_user),
    gallery_service: GalleryService = Depends(get_gallery_service),
    cloud: CloudService = Depends(get_cloud_service)
):
    """索引画廊：读取云端文件夹结构并组装时刻、变体和外部视频"""
    gallery = await gallery_service.get_gallery(user_id, gallery_id)
    structure = await cloud.index_gallery(gallery)
    return DataResponse(data=structure.to_dict())
