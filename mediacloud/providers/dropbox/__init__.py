"""
Dropbox Provider

导出 DropboxProvider 并自动注册到工厂
"""
from ...core.models import ProviderType
from ..factory import provider_factory
from .auth import DropboxOAuthClient
from .config import DropboxConfig, default_config
from .provider import DropboxProvider

# 自动注册到工厂
provider_factory.register(ProviderType.DROPBOX, DropboxProvider, DropboxOAuthClient)

__all__ = [
    "DropboxProvider",
    "DropboxOAuthClient",
    "DropboxConfig",
    "default_config",
]
