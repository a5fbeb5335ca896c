"""
API 依赖注入模块
"""
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header

from app.core.config import Settings, get_settings
from app.core.exceptions import AuthenticationError
from app.services.account_service import AccountService
from app.services.cloud_service import CloudService
from app.services.gallery_service import GalleryService


async def get_settings_dep() -> Settings:
    """获取配置依赖"""
    return get_settings()


async def get_current_user(x_user_id: Optional[str] = Header(None)) -> str:
    """获取当前用户

    用户身份由前置的认证网关通过 X-User-Id 请求头传入
    """
    if not x_user_id:
        raise AuthenticationError("缺少用户身份")
    return x_user_id


@lru_cache
def get_cloud_service() -> CloudService:
    """获取 CloudService 单例（认证工厂的刷新锁需要进程内共享）"""
    return CloudService(get_settings())


async def get_account_service(
    cloud: CloudService = Depends(get_cloud_service)
) -> AccountService:
    """获取 AccountService 依赖"""
    return AccountService(cloud)


async def get_gallery_service(
    cloud: CloudService = Depends(get_cloud_service)
) -> GalleryService:
    """获取 GalleryService 依赖"""
    return GalleryService(cloud)
