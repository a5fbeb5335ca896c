"""
系统 API 路由
"""
import collections
import logging
import time

from fastapi import APIRouter, Depends, Query

from mediacloud import __version__
from mediacloud.providers import provider_factory

from app.api.deps import get_settings_dep
from app.api.schemas import DataResponse
from app.core.config import Settings

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/system", tags=["系统"])


@router.get("/health")
async def health_check():
    return {"status": "ok", "version": __version__, "time": int(time.time())}


@router.get("/info", response_model=DataResponse)
async def system_info(settings: Settings = Depends(get_settings_dep)):
    """支持的提供商与当前可连接的提供商"""
    return DataResponse(data={
        "version": __version__,
        "app_url": settings.gateway.app_url,
        "providers": provider_factory.get_supported_types(),
        "configured": settings.configured_providers(),
        "encrypt_tokens": settings.security.encrypt_tokens,
    })


@router.get("/logs", response_model=DataResponse)
async def get_system_logs(
    lines: int = Query(100, ge=1, le=2000, description="获取最后 N 行日志"),
    settings: Settings = Depends(get_settings_dep)
):
    """读取滚动日志文件的最后 N 行"""
    log_file = settings.data_dir / "app.log"
    if not log_file.exists():
        return DataResponse(data=[])

    try:
        with open(log_file, "r", encoding="utf-8", errors="replace") as f:
            tail = collections.deque(f, maxlen=lines)
    except OSError as e:
        logger.error(f"Failed to read {log_file}: {e}")
        return DataResponse(success=False, message=f"读取日志失败: {e}")

    return DataResponse(data=[line.rstrip() for line in tail])
