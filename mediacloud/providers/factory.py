"""
Provider 工厂

负责根据账号的提供商类型创建适配器和 OAuth 客户端
"""

from typing import Dict, List, Optional, Type

import httpx

from ..config import CoreConfig, default_config
from ..core.auth import AuthFactory, OAuthClient
from ..core.exceptions import ProviderNotSupportedError
from ..core.models import AuthHandle, CloudFile, CloudFolder, ProviderType
from ..core.provider import CloudStorageProvider


class ProviderFactory:
    """Provider 工厂类"""

    _providers: Dict[ProviderType, Type[CloudStorageProvider]] = {}
    _auth_clients: Dict[ProviderType, Type[OAuthClient]] = {}

    @classmethod
    def register(
        cls,
        provider_type: ProviderType,
        provider_class: Type[CloudStorageProvider],
        auth_class: Optional[Type[OAuthClient]] = None
    ):
        """注册 Provider

        Args:
            provider_type: Provider 类型
            provider_class: Provider 类
            auth_class: OAuth 客户端类（Basic Auth 提供商为 None）
        """
        cls._providers[provider_type] = provider_class
        if auth_class is not None:
            cls._auth_clients[provider_type] = auth_class

    @classmethod
    def create(cls, auth: AuthHandle, **kwargs) -> CloudStorageProvider:
        """根据认证句柄创建 Provider 实例

        Args:
            auth: 认证句柄（决定使用哪个适配器）
            **kwargs: 额外参数（verify, config, http_client）

        Raises:
            ProviderNotSupportedError: 不支持的 Provider 类型
        """
        provider_class = cls._providers.get(auth.provider)
        if not provider_class:
            raise ProviderNotSupportedError(
                f"Provider type '{auth.provider}' is not supported. "
                f"Available types: {cls.get_supported_types()}"
            )
        return provider_class(auth=auth, **kwargs)

    @classmethod
    def create_oauth_client(
        cls,
        provider_type: ProviderType,
        config: CoreConfig = None,
        http_client: Optional[httpx.AsyncClient] = None
    ) -> OAuthClient:
        """创建 OAuth 客户端

        Raises:
            ProviderNotSupportedError: 该提供商不使用 OAuth
        """
        auth_class = cls._auth_clients.get(provider_type)
        if not auth_class:
            raise ProviderNotSupportedError(
                f"Provider type '{provider_type}' does not use OAuth"
            )
        config = config or default_config
        app = getattr(config, provider_type.value)
        return auth_class(
            app=app,
            redirect_uri=config.redirect_uri(provider_type.value),
            config=config,
            http_client=http_client
        )

    @classmethod
    async def connect(cls, auth_factory: AuthFactory, account_id: str, **kwargs) -> CloudStorageProvider:
        """获取新鲜凭据并创建该账号的 Provider 实例

        Raises:
            AuthError: 账号不存在或需要重新授权
        """
        handle = await auth_factory.ensure_fresh_credential(account_id)
        return cls.create(handle, **kwargs)

    @classmethod
    def get_supported_types(cls) -> List[str]:
        """获取支持的 Provider 类型列表"""
        return [provider.value for provider in cls._providers]


# 工厂单例
provider_factory = ProviderFactory()


async def list_folders(adapter: CloudStorageProvider, parent_id: Optional[str] = None) -> List[CloudFolder]:
    """列出文件夹"""
    return await adapter.list_folders(parent_id)


async def list_files(adapter: CloudStorageProvider, parent_id: Optional[str] = None) -> List[CloudFile]:
    """列出文件"""
    return await adapter.list_files(parent_id)
