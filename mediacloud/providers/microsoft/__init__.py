"""
Microsoft Graph Provider

导出 MicrosoftGraphProvider 并自动注册到工厂
"""
from ...core.models import ProviderType
from ..factory import provider_factory
from .auth import MicrosoftOAuthClient
from .config import MicrosoftGraphConfig, default_config
from .provider import MicrosoftGraphProvider

# 自动注册到工厂
provider_factory.register(ProviderType.MICROSOFT, MicrosoftGraphProvider, MicrosoftOAuthClient)

__all__ = [
    "MicrosoftGraphProvider",
    "MicrosoftOAuthClient",
    "MicrosoftGraphConfig",
    "default_config",
]
