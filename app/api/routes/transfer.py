"""
传输 API 路由

单文件下载、打包下载、Range 流媒体和缩略图代理
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import Response, StreamingResponse

from mediacloud.transfer import ArchiveResult, DownloadResult, content_disposition, iter_bytes

from app.api.deps import get_cloud_service, get_current_user
from app.api.schemas import ArchiveRequest
from app.services.cloud_service import CloudService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/cloud", tags=["传输"])

THUMBNAIL_CACHE_CONTROL = "public, max-age=86400"


def _download_response(result: DownloadResult) -> StreamingResponse:
    headers = {"Content-Disposition": content_disposition(result.filename)}
    if result.size is not None:
        headers["Content-Length"] = str(result.size)
    return StreamingResponse(
        iter_bytes(result.stream),
        media_type=result.mime_type,
        headers=headers
    )


@router.get("/download")
async def download_file(
    account_id: str = Query(..., description="云存储账号 ID"),
    file_id: str = Query(..., description="文件 ID"),
    filename: Optional[str] = Query(None, description="下载文件名"),
    user_id: str = Depends(get_current_user),
    cloud: CloudService = Depends(get_cloud_service)
):
    """下载单个文件"""
    await cloud.get_account(user_id, account_id)
    result = await cloud.transfer.download_file(account_id, file_id, filename=filename)
    return _download_response(result)


@router.post("/download-zip")
async def download_zip(
    data: ArchiveRequest,
    user_id: str = Depends(get_current_user),
    cloud: CloudService = Depends(get_cloud_service)
):
    """打包下载多个文件（只有一个文件时直接下载该文件）"""
    await cloud.get_account(user_id, data.account_id)
    result = await cloud.transfer.download_archive(
        data.account_id,
        [f.model_dump() for f in data.files],
        archive_name=data.archive_name
    )

    if isinstance(result, ArchiveResult):
        headers = {"Content-Disposition": content_disposition(result.filename)}
        if result.failures:
            headers["X-Archive-Failures"] = str(len(result.failures))
        return Response(content=result.content, media_type=result.mime_type, headers=headers)
    return _download_response(result)


@router.get("/stream")
async def stream_file(
    account_id: str = Query(..., description="云存储账号 ID"),
    file_id: str = Query(..., description="文件 ID"),
    range_header: Optional[str] = Header(None, alias="Range"),
    user_id: str = Depends(get_current_user),
    cloud: CloudService = Depends(get_cloud_service)
):
    """按 Range 请求流式播放"""
    await cloud.get_account(user_id, account_id)
    result = await cloud.transfer.stream_range(account_id, file_id, range_header)
    return StreamingResponse(
        result.body,
        status_code=result.status_code,
        headers=result.headers,
        media_type=result.headers.get("Content-Type")
    )


@router.get("/thumbnail")
async def get_thumbnail(
    account_id: str = Query(..., description="云存储账号 ID"),
    file_id: str = Query(..., description="文件 ID"),
    size: Optional[int] = Query(None, ge=1, description="最长边像素"),
    user_id: str = Depends(get_current_user),
    cloud: CloudService = Depends(get_cloud_service)
):
    """获取缩略图（原生缩略图优先，失败时下载原图缩放）"""
    await cloud.get_account(user_id, account_id)
    result = await cloud.transfer.resolve_thumbnail(account_id, file_id, size)
    return Response(
        content=result.content,
        media_type=result.mime_type,
        headers={
            "Cache-Control": THUMBNAIL_CACHE_CONTROL,
            "X-Thumbnail-Source": result.source,
        }
    )
