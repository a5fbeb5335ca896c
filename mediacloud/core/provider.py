"""
云存储 Provider 接口

定义统一的云存储操作抽象
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from .models import (
    AuthHandle, ByteStream, CloudFile, CloudFolder, ContentLink, ProviderType, Quota
)


class CloudStorageProvider(ABC):
    """云存储提供者接口

    只保留各网盘的最小公共操作集，寻址方式（ID 或路径）、缩略图策略、
    URL 签名、MIME 推断等差异全部封装在实现内部
    """

    # 根目录约定（Drive/Graph: "root"；Dropbox: ""；Koofr: "/"）
    root_id: str = "root"

    def __init__(self, auth: AuthHandle, verify: bool = False):
        """
        Args:
            auth: 认证句柄（由 AuthFactory 返回）
            verify: 凭据校验模式，列表失败时抛出异常而不是返回空列表
        """
        self.auth = auth
        self.verify = verify

    @property
    def provider_type(self) -> ProviderType:
        """Provider 类型标识"""
        raise NotImplementedError

    # ==================== 列表 ====================

    @abstractmethod
    async def list_folders(self, parent_id: Optional[str] = None) -> List[CloudFolder]:
        """列出直接子文件夹（非递归）

        Args:
            parent_id: 父文件夹 ID，None / "root" / "" 表示根目录

        Returns:
            List[CloudFolder]: 文件夹列表，失败时返回空列表

        Raises:
            ProviderUnavailableError: 仅在 verify 模式下
        """
        pass

    @abstractmethod
    async def list_files(self, parent_id: Optional[str] = None) -> List[CloudFile]:
        """列出直接子文件（非递归，不下载内容）

        Returns:
            List[CloudFile]: 文件列表，失败时返回空列表

        Raises:
            ProviderUnavailableError: 仅在 verify 模式下
        """
        pass

    # ==================== 内容 ====================

    @abstractmethod
    async def get_file_content(self, file_id: str) -> Optional[ContentLink]:
        """解析文件内容链接

        Returns:
            Optional[ContentLink]: 无法解析时返回 None
        """
        pass

    @abstractmethod
    async def get_file_info(self, file_id: str) -> CloudFile:
        """获取文件元数据

        Raises:
            ContentFetchError: 获取失败
        """
        pass

    @abstractmethod
    async def open_content(
        self,
        file_id: str,
        byte_range: Optional[Tuple[int, int]] = None
    ) -> ByteStream:
        """打开文件内容流

        Args:
            file_id: 文件 ID
            byte_range: (start, end) 闭区间，None 表示整个文件

        Raises:
            ContentFetchError: 获取失败
        """
        pass

    async def open_url(self, url: str, authenticated: bool = True) -> ByteStream:
        """打开提供商返回的任意 URL（缩略图等）

        Args:
            url: 目标地址
            authenticated: 是否附带账号的认证头

        Raises:
            ContentFetchError: 获取失败
        """
        raise NotImplementedError

    async def get_thumbnail(self, file_id: str, size: int = 400) -> Optional[str]:
        """获取缩略图 URL

        Returns:
            Optional[str]: 不支持时返回 None（由调用方下载原图缩放）
        """
        return None

    async def get_quota(self) -> Optional[Quota]:
        """获取空间配额（也用于凭据校验）"""
        return None

    async def close(self) -> None:
        """释放资源"""
        pass

    async def __aenter__(self) -> "CloudStorageProvider":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
