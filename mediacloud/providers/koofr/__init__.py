"""
Koofr Provider

Koofr 使用应用密码 + HTTP Basic Auth，没有 OAuth 客户端
"""
from ...core.models import ProviderType
from ..factory import provider_factory
from .config import KoofrConfig, default_config
from .provider import KoofrProvider

# 自动注册到工厂
provider_factory.register(ProviderType.KOOFR, KoofrProvider)

__all__ = [
    "KoofrProvider",
    "KoofrConfig",
    "default_config",
]
