"""
Google Drive Provider

导出 GoogleDriveProvider 并自动注册到工厂
"""
from ...core.models import ProviderType
from ..factory import provider_factory
from .auth import GoogleOAuthClient
from .config import GoogleDriveConfig, default_config
from .provider import GoogleDriveProvider

# 自动注册到工厂
provider_factory.register(ProviderType.GOOGLE, GoogleDriveProvider, GoogleOAuthClient)

__all__ = [
    "GoogleDriveProvider",
    "GoogleOAuthClient",
    "GoogleDriveConfig",
    "default_config",
]
