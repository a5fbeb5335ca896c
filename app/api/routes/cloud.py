"""
云存储浏览 API 路由
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from mediacloud.gallery import GalleryConfig

from app.api.deps import get_cloud_service, get_current_user
from app.api.schemas import DataResponse, IndexRequest
from app.services.cloud_service import CloudService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/cloud", tags=["云存储"])


@router.get("/folders")
async def list_folders(
    account_id: str = Query(..., description="云存储账号 ID"),
    parent_id: Optional[str] = Query(None, description="父文件夹 ID，为空表示根目录"),
    user_id: str = Depends(get_current_user),
    cloud: CloudService = Depends(get_cloud_service)
):
    """列出子文件夹（提供商不可用时返回空列表）"""
    folders = await cloud.list_folders(user_id, account_id, parent_id)
    return {
        "success": True,
        "folders": [{"id": folder.id, "name": folder.name} for folder in folders]
    }


@router.get("/files")
async def list_files(
    account_id: str = Query(..., description="云存储账号 ID"),
    parent_id: Optional[str] = Query(None, description="父文件夹 ID，为空表示根目录"),
    user_id: str = Depends(get_current_user),
    cloud: CloudService = Depends(get_cloud_service)
):
    """列出文件夹中的图片和视频"""
    files = await cloud.list_files(user_id, account_id, parent_id)
    return {
        "success": True,
        "files": [
            {
                "id": f.id,
                "name": f.name,
                "mime_type": f.mime_type,
                "size": f.size,
                "thumbnail_link": f.thumbnail_link,
                "width": f.width,
                "height": f.height,
                "duration_ms": f.duration_ms,
                "modified_at": f.modified_at,
            }
            for f in files
        ]
    }


@router.get("/quota", response_model=DataResponse)
async def get_quota(
    account_id: str = Query(..., description="云存储账号 ID"),
    user_id: str = Depends(get_current_user),
    cloud: CloudService = Depends(get_cloud_service)
):
    """获取空间配额（提供商不可用时 data 为空）"""
    quota = await cloud.get_quota(user_id, account_id)
    if quota is None:
        return DataResponse(data=None, message="配额暂不可用")
    return DataResponse(data={"usage": quota.usage, "limit": quota.limit})


@router.post("/index", response_model=DataResponse)
async def index_folder(
    data: IndexRequest,
    user_id: str = Depends(get_current_user),
    cloud: CloudService = Depends(get_cloud_service)
):
    """索引任意文件夹为画廊结构"""
    config = GalleryConfig(
        file_order=data.file_order,
        moments_order=data.moments_order,
        match_formats=data.match_formats
    )
    structure = await cloud.index_folder(user_id, data.account_id, data.root_folder_id, config)
    return DataResponse(data=structure.to_dict())
