"""
认证接口与认证工厂

OAuthClient 定义统一的 OAuth2 流程抽象，
AuthFactory 负责在每次调用前确保凭据有效（刷新并持久化）
"""

import asyncio
import logging
import weakref
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple

import httpx

from ..config import CoreConfig, OAuthAppConfig, default_config
from .exceptions import (
    AuthError, AuthRefreshError, NotFoundError, ProviderNotSupportedError,
    ReauthRequiredError
)
from .models import (
    AuthHandle, AuthToken, BasicCredential, ProviderType, StoredCredential
)

logger = logging.getLogger(__name__)


class CredentialStore(ABC):
    """凭据存储接口

    持久化每个账号的提供商凭据，读取时返回已解密的值
    """

    @abstractmethod
    async def get_account(self, account_id: str) -> Optional[StoredCredential]:
        """读取账号凭据，不存在返回 None"""
        pass

    @abstractmethod
    async def save_token(self, account_id: str, token: AuthToken) -> None:
        """持久化刷新后的令牌"""
        pass


class OAuthClient(ABC):
    """OAuth2 客户端接口

    标准 authorization_code 交换与 refresh_token 刷新
    """

    TOKEN_URL: str = ""
    AUTHORIZE_URL: str = ""
    SCOPES: Tuple[str, ...] = ()

    def __init__(
        self,
        app: OAuthAppConfig,
        redirect_uri: str,
        config: CoreConfig = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.app = app
        self.redirect_uri = redirect_uri
        self.config = config or default_config
        self._http_client = http_client

    @property
    @abstractmethod
    def provider_type(self) -> ProviderType:
        pass

    @abstractmethod
    def authorization_url(self, state: str) -> str:
        """生成授权跳转地址"""
        pass

    @abstractmethod
    async def fetch_identity(self, token: AuthToken) -> Tuple[str, Optional[str]]:
        """获取 (提供商账号 ID, 邮箱)"""
        pass

    async def revoke(self, token: AuthToken) -> None:
        """撤销令牌（尽力而为，默认不支持）"""
        logger.debug(f"{self.provider_type.value} has no revocation endpoint")

    async def exchange_code(self, code: str) -> AuthToken:
        """用授权码交换令牌"""
        data = await self._post_token({
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
        })
        return AuthToken.from_response(data)

    async def refresh(self, token: AuthToken) -> AuthToken:
        """刷新访问令牌

        Raises:
            AuthError: 提供商拒绝刷新
            httpx.HTTPError: 网络错误
        """
        if not token.refresh_token:
            raise AuthError("No refresh_token available")

        data = await self._post_token(self._refresh_payload(token))
        return AuthToken.from_response(data, previous_refresh_token=token.refresh_token)

    def _refresh_payload(self, token: AuthToken) -> Dict[str, str]:
        return {
            "grant_type": "refresh_token",
            "refresh_token": token.refresh_token,
        }

    async def _post_token(self, payload: Dict[str, str]) -> Dict:
        body = dict(payload)
        body["client_id"] = self.app.CLIENT_ID
        body["client_secret"] = self.app.CLIENT_SECRET

        async with self._client() as client:
            response = await client.post(
                self.TOKEN_URL,
                data=body,
                headers={"Content-Type": "application/x-www-form-urlencoded"}
            )

        try:
            result = response.json()
        except ValueError:
            raise AuthError(f"Invalid token response ({response.status_code})")

        if response.status_code >= 400 or "access_token" not in result:
            message = result.get("error_description") or result.get("error") or response.status_code
            logger.error(f"{self.provider_type.value} token endpoint rejected request: {message}")
            raise AuthError(f"Token request failed: {message}")

        return result

    def _client(self) -> "_ClientContext":
        return _ClientContext(self._http_client, self.config.transfer.HTTP_TIMEOUT)


class _ClientContext:
    """复用注入的 httpx 客户端，否则创建一次性客户端"""

    def __init__(self, client: Optional[httpx.AsyncClient], timeout: float):
        self._shared = client
        self._owned: Optional[httpx.AsyncClient] = None
        self._timeout = timeout

    async def __aenter__(self) -> httpx.AsyncClient:
        if self._shared is not None:
            return self._shared
        self._owned = httpx.AsyncClient(timeout=self._timeout)
        return self._owned

    async def __aexit__(self, *exc_info) -> None:
        if self._owned is not None:
            await self._owned.aclose()


class AuthFactory:
    """认证工厂

    给定账号 ID，返回可直接使用的认证句柄：
    1. Basic Auth 提供商（Koofr）直接返回解密后的凭据
    2. 令牌在安全边界内有效则直接返回
    3. 否则刷新令牌、写回凭据存储后返回

    同一账号的刷新由 asyncio.Lock 串行化，避免并发请求重复刷新导致旧的
    refresh_token 被提供商作废
    """

    def __init__(
        self,
        store: CredentialStore,
        oauth_clients: Dict[ProviderType, OAuthClient] = None,
        refresh_margin: Optional[int] = None,
        oauth_client_builder: Optional[Callable[[ProviderType], OAuthClient]] = None
    ):
        """
        Args:
            store: 凭据存储
            oauth_clients: 各提供商的 OAuth 客户端
            refresh_margin: 提前刷新时间（秒），默认取配置
            oauth_client_builder: 按需构造 OAuth 客户端（oauth_clients 中没有时使用）
        """
        self.store = store
        self.oauth_clients = dict(oauth_clients or {})
        self.refresh_margin = (
            refresh_margin if refresh_margin is not None
            else default_config.transfer.TOKEN_REFRESH_MARGIN
        )
        self._builder = oauth_client_builder
        # 锁只在有协程持有或等待时存活
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()
        # 持久化失败时保留的最新令牌
        self._fresh: Dict[str, AuthToken] = {}

    def _lock_for(self, account_id: str) -> asyncio.Lock:
        lock = self._locks.get(account_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[account_id] = lock
        return lock

    def _oauth_client(self, provider: ProviderType) -> OAuthClient:
        client = self.oauth_clients.get(provider)
        if client is None and self._builder is not None:
            client = self._builder(provider)
            self.oauth_clients[provider] = client
        if client is None:
            raise ProviderNotSupportedError(f"No OAuth client configured for {provider.value}")
        return client

    async def _load(self, account_id: str) -> StoredCredential:
        stored = await self.store.get_account(account_id)
        if stored is None:
            raise NotFoundError(account_id)
        return stored

    def _current_token(self, stored: StoredCredential) -> AuthToken:
        token = stored.to_token()
        cached = self._fresh.get(stored.account_id)
        if cached is not None and (
            token.is_expired(self.refresh_margin) and not cached.is_expired(self.refresh_margin)
        ):
            return cached
        return token

    async def get_fresh_auth(self, account_id: str) -> AuthHandle:
        """获取保证有效的认证句柄

        Raises:
            NotFoundError: 账号不存在
            ReauthRequiredError: 令牌过期且没有刷新令牌
            AuthRefreshError: 刷新失败
        """
        stored = await self._load(account_id)

        if stored.provider == ProviderType.KOOFR:
            return AuthHandle(
                account_id=account_id,
                provider=stored.provider,
                basic=BasicCredential(
                    username=stored.email or stored.provider_account_id or "",
                    password=stored.access_token
                )
            )

        token = self._current_token(stored)
        if not token.is_expired(self.refresh_margin):
            return AuthHandle(account_id=account_id, provider=stored.provider, token=token)

        async with self._lock_for(account_id):
            # 等待锁期间其他请求可能已经完成刷新
            stored = await self._load(account_id)
            token = self._current_token(stored)
            if not token.is_expired(self.refresh_margin):
                return AuthHandle(account_id=account_id, provider=stored.provider, token=token)

            if not token.refresh_token:
                raise ReauthRequiredError(account_id)

            new_token = await self._refresh(account_id, stored.provider, token)
            self._fresh[account_id] = new_token

            try:
                await self.store.save_token(account_id, new_token)
            except Exception as e:
                logger.exception(f"Failed to persist refreshed token for account {account_id}: {e}")

            return AuthHandle(account_id=account_id, provider=stored.provider, token=new_token)

    # 显式的"刷新并持久化"入口
    ensure_fresh_credential = get_fresh_auth

    async def _refresh(
        self,
        account_id: str,
        provider: ProviderType,
        token: AuthToken
    ) -> AuthToken:
        client = self._oauth_client(provider)
        logger.info(f"Refreshing {provider.value} token for account {account_id}")
        try:
            return await client.refresh(token)
        except AuthError as e:
            raise AuthRefreshError(account_id, str(e))
        except httpx.HTTPError as e:
            logger.error(f"Token refresh network error for account {account_id}: {e}")
            raise AuthRefreshError(account_id, f"Network error: {e}")
