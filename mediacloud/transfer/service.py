"""
传输服务

单文件下载、打包下载、Range 流媒体和缩略图代理
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple, Union

import httpx

from ..config import CoreConfig, default_config
from ..core.auth import AuthFactory
from ..core.exceptions import CloudStorageError, ContentFetchError, ValidationError
from ..core.mime import detect_mime
from ..core.models import ByteStream
from ..core.provider import CloudStorageProvider
from ..providers.factory import ProviderFactory, provider_factory as default_factory
from .archive import build_zip, error_entry
from .filenames import unique_name
from .images import OUTPUT_MIME_TYPE, resize_image, shrink_if_larger
from .ranges import content_range, parse_range

logger = logging.getLogger(__name__)


@dataclass
class DownloadResult:
    """单文件下载结果（stream 必须被读完或关闭）"""
    stream: ByteStream
    filename: str
    mime_type: str
    size: Optional[int] = None


@dataclass
class ArchiveResult:
    """打包下载结果"""
    content: bytes
    filename: str
    mime_type: str = "application/zip"
    failures: List[str] = field(default_factory=list)


@dataclass
class StreamResult:
    """Range 流媒体响应"""
    status_code: int
    headers: Dict[str, str]
    body: AsyncIterator[bytes]


@dataclass
class ThumbnailResult:
    """缩略图结果"""
    content: bytes
    mime_type: str
    source: str                  # native / public / resized


async def iter_bytes(stream: ByteStream) -> AsyncIterator[bytes]:
    """逐块读取，结束或中断时关闭流"""
    try:
        async for chunk in stream.iterator:
            yield chunk
    finally:
        await stream.aclose()


async def _slice(stream: ByteStream, start: int, length: int) -> AsyncIterator[bytes]:
    """提供商忽略 Range 返回完整内容时，自行截取区间"""
    position = 0
    remaining = length
    try:
        async for chunk in stream.iterator:
            if remaining <= 0:
                break
            chunk_end = position + len(chunk)
            if chunk_end > start:
                piece = chunk[max(start - position, 0):]
                piece = piece[:remaining]
                remaining -= len(piece)
                yield piece
            position = chunk_end
    finally:
        await stream.aclose()


class TransferService:
    """传输服务

    每次调用都通过认证工厂获取新鲜凭据再创建适配器；
    返回的流在关闭时一并释放适配器的连接
    """

    def __init__(
        self,
        auth_factory: AuthFactory,
        provider_factory: ProviderFactory = None,
        config: CoreConfig = None,
        **adapter_kwargs: Any
    ):
        self.auth_factory = auth_factory
        self.provider_factory = provider_factory or default_factory
        self.config = config or default_config
        self.adapter_kwargs = dict(adapter_kwargs)
        self.adapter_kwargs.setdefault("config", self.config)

    async def _connect(self, account_id: str) -> CloudStorageProvider:
        return await self.provider_factory.connect(
            self.auth_factory, account_id, **self.adapter_kwargs
        )

    @staticmethod
    def _bind(stream: ByteStream, adapter: CloudStorageProvider) -> ByteStream:
        """让流的关闭同时关闭适配器"""
        async def close() -> None:
            try:
                await stream.aclose()
            finally:
                await adapter.close()

        return ByteStream(
            status_code=stream.status_code,
            headers=stream.headers,
            iterator=stream.iterator,
            close=close
        )

    # ==================== 单文件下载 ====================

    async def download_file(
        self,
        account_id: str,
        file_id: str,
        filename: Optional[str] = None
    ) -> DownloadResult:
        """下载单个文件

        Raises:
            ValidationError: 缺少参数
            AuthError: 认证失败
            ContentFetchError: 获取失败
        """
        if not account_id or not file_id:
            raise ValidationError("account_id and file_id are required")

        adapter = await self._connect(account_id)
        try:
            info = await adapter.get_file_info(file_id)
            stream = await adapter.open_content(file_id)
        except BaseException:
            await adapter.close()
            raise

        name = filename or info.name
        return DownloadResult(
            stream=self._bind(stream, adapter),
            filename=name,
            mime_type=detect_mime(name, info.mime_type),
            size=stream.content_length or (info.size or None)
        )

    # ==================== 打包下载 ====================

    @staticmethod
    def _validate_files(files: Any) -> List[Tuple[str, str]]:
        if not isinstance(files, list) or not files:
            raise ValidationError("files must be a non-empty list")

        result = []
        for entry in files:
            if not isinstance(entry, dict) or not entry.get("id"):
                raise ValidationError("each file needs an 'id'")
            file_id = str(entry["id"])
            result.append((file_id, str(entry.get("name") or file_id)))
        return result

    async def download_archive(
        self,
        account_id: str,
        files: List[Dict[str, str]],
        archive_name: str = "download.zip"
    ) -> Union[DownloadResult, ArchiveResult]:
        """打包下载多个文件

        只有一个文件时直接返回该文件的下载结果。
        单个文件失败时在压缩包中写入 <name>.error.txt 占位，不影响其他文件

        Args:
            account_id: 账号 ID
            files: [{"id": ..., "name": ...}]
            archive_name: 压缩包文件名

        Raises:
            ValidationError: 文件列表为空或格式错误（在任何网络请求之前）
            AuthError: 认证失败
        """
        requested = self._validate_files(files)
        if not account_id:
            raise ValidationError("account_id is required")

        if len(requested) == 1:
            file_id, name = requested[0]
            return await self.download_file(account_id, file_id, filename=name)

        adapter = await self._connect(account_id)
        async with adapter:
            async def fetch(file_id: str, name: str) -> Tuple[str, Optional[bytes], Optional[str]]:
                try:
                    stream = await adapter.open_content(file_id)
                    return name, await stream.read(), None
                except (CloudStorageError, httpx.HTTPError) as e:
                    logger.warning(f"Archive entry {name} ({file_id}) failed: {e}")
                    return name, None, str(e)

            results = []
            chunk_size = max(self.config.transfer.ZIP_CONCURRENCY, 1)
            for offset in range(0, len(requested), chunk_size):
                chunk = requested[offset:offset + chunk_size]
                results.extend(await asyncio.gather(*[fetch(fid, name) for fid, name in chunk]))

        used = set()
        entries = []
        failures = []
        for name, data, error in results:
            if data is None:
                failures.append(name)
                placeholder, text = error_entry(name, error)
                entries.append((unique_name(placeholder, used), text))
            else:
                entries.append((unique_name(name, used), data))

        content = await asyncio.to_thread(build_zip, entries)
        logger.info(
            f"Built archive for account {account_id}: {len(entries)} entries, "
            f"{len(failures)} failed, {len(content)} bytes"
        )
        return ArchiveResult(content=content, filename=archive_name, failures=failures)

    # ==================== Range 流媒体 ====================

    async def stream_range(
        self,
        account_id: str,
        file_id: str,
        range_header: Optional[str] = None
    ) -> StreamResult:
        """按 Range 请求流式返回文件

        Raises:
            ValidationError: 缺少参数
            RangeNotSatisfiableError: 范围超出文件大小
            ContentFetchError: 获取失败
        """
        if not account_id or not file_id:
            raise ValidationError("account_id and file_id are required")

        adapter = await self._connect(account_id)
        try:
            info = await adapter.get_file_info(file_id)
            total = info.size if info.size and info.size > 0 else None
            byte_range = parse_range(range_header, total)
            stream = await adapter.open_content(file_id, byte_range=byte_range)
        except BaseException:
            await adapter.close()
            raise

        stream = self._bind(stream, adapter)
        headers = {
            "Accept-Ranges": "bytes",
            "Content-Type": detect_mime(info.name, info.mime_type),
            "Cache-Control": "public, max-age=3600",
        }

        if byte_range is None:
            length = total or stream.content_length
            if length is not None:
                headers["Content-Length"] = str(length)
            return StreamResult(status_code=200, headers=headers, body=iter_bytes(stream))

        start, end = byte_range
        if total is None:
            # 大小未知，沿用提供商的 Content-Range
            upstream = stream.headers.get("content-range")
            headers["Content-Range"] = upstream or content_range(start, end, None)
            if stream.content_length is not None:
                headers["Content-Length"] = str(stream.content_length)
            return StreamResult(status_code=206, headers=headers, body=iter_bytes(stream))

        length = end - start + 1
        headers["Content-Range"] = content_range(start, end, total)
        headers["Content-Length"] = str(length)

        if stream.status_code == 206:
            body = iter_bytes(stream)
        else:
            logger.debug(f"Provider ignored Range for {file_id}, slicing locally")
            body = _slice(stream, start, length)
        return StreamResult(status_code=206, headers=headers, body=body)

    # ==================== 缩略图 ====================

    def _thumbnail_size(self, size: Optional[int]) -> int:
        transfer = self.config.transfer
        if size is None:
            return transfer.THUMBNAIL_DEFAULT_SIZE
        if size <= 0:
            raise ValidationError("size must be positive")
        return min(size, transfer.THUMBNAIL_MAX_SIZE)

    async def _fetch_native(
        self,
        adapter: CloudStorageProvider,
        url: str,
        size: int
    ) -> Optional[ThumbnailResult]:
        """先带认证头获取原生缩略图，失败再匿名获取"""
        for authenticated, source in ((True, "native"), (False, "public")):
            try:
                stream = await adapter.open_url(url, authenticated=authenticated)
                data = await stream.read()
            except (ContentFetchError, httpx.HTTPError) as e:
                logger.debug(f"Thumbnail fetch ({source}) failed for {url}: {e}")
                continue

            content_type = stream.content_type or OUTPUT_MIME_TYPE
            if not content_type.startswith("image/"):
                logger.debug(f"Thumbnail URL returned {content_type}, ignoring")
                continue

            try:
                data, content_type = await asyncio.to_thread(
                    shrink_if_larger, data, content_type, size, self.config.transfer.THUMBNAIL_QUALITY
                )
            except ValueError as e:
                # 头部可读但内容损坏/截断
                logger.debug(f"Thumbnail ({source}) from {url} is not decodable: {e}")
                continue
            return ThumbnailResult(content=data, mime_type=content_type, source=source)
        return None

    async def resolve_thumbnail(
        self,
        account_id: str,
        file_id: str,
        size: Optional[int] = None
    ) -> ThumbnailResult:
        """获取缩略图

        顺序: 原生缩略图（带认证） -> 原生缩略图（匿名） -> 下载原图本地缩放

        Raises:
            ValidationError: 参数错误
            ContentFetchError: 所有方式都失败
        """
        if not account_id or not file_id:
            raise ValidationError("account_id and file_id are required")
        size = self._thumbnail_size(size)

        adapter = await self._connect(account_id)
        async with adapter:
            url = await adapter.get_thumbnail(file_id, size)
            if url:
                result = await self._fetch_native(adapter, url, size)
                if result is not None:
                    return result

            logger.info(f"Falling back to local resize for {file_id}")
            stream = await adapter.open_content(file_id)
            try:
                original = await stream.read()
            except httpx.HTTPError as e:
                raise ContentFetchError(adapter.provider_type.value, file_id, f"read failed: {e}")

        try:
            content = await asyncio.to_thread(
                resize_image, original, size, self.config.transfer.THUMBNAIL_QUALITY
            )
        except ValueError as e:
            raise ContentFetchError(adapter.provider_type.value, file_id, str(e))
        return ThumbnailResult(content=content, mime_type=OUTPUT_MIME_TYPE, source="resized")
