"""
Provider 基类

提供通用的 HTTP 调用、错误降级和流式下载辅助
"""

import logging
from typing import Any, Awaitable, Dict, List, Optional, Tuple, TypeVar

import httpx

from ..config import CoreConfig, default_config
from ..core.exceptions import ContentFetchError, ProviderUnavailableError
from ..core.models import AuthHandle, ByteStream
from ..core.provider import CloudStorageProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseProvider(CloudStorageProvider):
    """Provider 基类

    所有适配器共享一个带超时的 httpx.AsyncClient；
    列表失败在这里被降级为空列表，内容获取失败转换为 ContentFetchError
    """

    def __init__(
        self,
        auth: AuthHandle,
        verify: bool = False,
        config: CoreConfig = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        """
        Args:
            auth: 认证句柄
            verify: 凭据校验模式
            config: 核心配置（可选）
            http_client: 注入的 httpx 客户端（由调用方负责关闭）
        """
        super().__init__(auth, verify)
        self.config = config or default_config
        self._shared_client = http_client
        self._client: Optional[httpx.AsyncClient] = http_client

    @property
    def client(self) -> httpx.AsyncClient:
        """获取或创建 HTTP 客户端"""
        if self._client is None:
            transfer = self.config.transfer
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(transfer.HTTP_TIMEOUT, connect=transfer.CONNECT_TIMEOUT),
                follow_redirects=True
            )
        return self._client

    async def close(self) -> None:
        """关闭自建的 HTTP 客户端"""
        if self._client is not None and self._client is not self._shared_client:
            await self._client.aclose()
            self._client = None

    # ==================== 请求辅助 ====================

    async def _request_json(
        self,
        method: str,
        url: str,
        what: str,
        authenticated: bool = True,
        headers: Optional[Dict[str, str]] = None,
        **kwargs
    ) -> Any:
        """发送请求并解析 JSON

        Raises:
            ProviderUnavailableError: 网络错误、HTTP 错误或无效响应
        """
        request_headers = dict(self.auth.headers()) if authenticated else {}
        request_headers.update(headers or {})

        try:
            response = await self.client.request(method, url, headers=request_headers, **kwargs)
        except httpx.HTTPError as e:
            raise ProviderUnavailableError(f"{what}: network error: {e}")

        if response.status_code >= 400:
            raise ProviderUnavailableError(
                f"{what}: HTTP {response.status_code} {response.text[:200]}"
            )

        try:
            return response.json()
        except ValueError:
            raise ProviderUnavailableError(f"{what}: invalid JSON response")

    async def _listing(self, what: str, call: Awaitable[List[T]]) -> List[T]:
        """执行列表调用，失败时记录日志并返回空列表（校验模式下抛出）"""
        try:
            return await call
        except ProviderUnavailableError as e:
            if self.verify:
                raise
            logger.error(f"[{self.provider_type.value}] {what} failed: {e}")
            return []
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            if self.verify:
                raise ProviderUnavailableError(f"{what}: malformed response: {e}")
            logger.error(f"[{self.provider_type.value}] {what} returned malformed data: {e}")
            return []

    async def _probe(self, what: str, call: Awaitable[T]) -> Optional[T]:
        """执行可选的查询（配额等），失败时返回 None（校验模式下抛出）"""
        try:
            return await call
        except ProviderUnavailableError as e:
            if self.verify:
                raise
            logger.error(f"[{self.provider_type.value}] {what} failed: {e}")
            return None
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            if self.verify:
                raise ProviderUnavailableError(f"{what}: malformed response: {e}")
            logger.error(f"[{self.provider_type.value}] {what} returned malformed data: {e}")
            return None

    async def _fetch_json(self, file_id: str, method: str, url: str, **kwargs) -> Any:
        """内容相关的 JSON 请求，失败转换为 ContentFetchError"""
        try:
            return await self._request_json(method, url, what=f"fetch {file_id}", **kwargs)
        except ProviderUnavailableError as e:
            raise ContentFetchError(self.provider_type.value, file_id, str(e))

    async def _open_stream(
        self,
        file_id: str,
        url: str,
        byte_range: Optional[Tuple[int, int]] = None,
        method: str = "GET",
        authenticated: bool = True,
        headers: Optional[Dict[str, str]] = None,
        **kwargs
    ) -> ByteStream:
        """打开流式响应

        Raises:
            ContentFetchError: 获取失败
        """
        request_headers = dict(self.auth.headers()) if authenticated else {}
        request_headers.update(headers or {})
        if byte_range is not None:
            start, end = byte_range
            request_headers["Range"] = f"bytes={start}-{end}"

        request = self.client.build_request(method, url, headers=request_headers, **kwargs)
        try:
            response = await self.client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise ContentFetchError(self.provider_type.value, file_id, f"network error: {e}")

        if response.status_code >= 400:
            await response.aclose()
            raise ContentFetchError(
                self.provider_type.value, file_id, f"HTTP {response.status_code}"
            )

        return ByteStream(
            status_code=response.status_code,
            headers={key.lower(): value for key, value in response.headers.items()},
            iterator=response.aiter_bytes(self.config.transfer.STREAM_CHUNK_SIZE),
            close=response.aclose
        )

    async def open_url(self, url: str, authenticated: bool = True) -> ByteStream:
        return await self._open_stream(url, url, authenticated=authenticated)

    # ==================== 通用辅助 ====================

    @staticmethod
    def _int_or_none(value: Any) -> Optional[int]:
        try:
            return int(value) if value is not None else None
        except (TypeError, ValueError):
            return None
