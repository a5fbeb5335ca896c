"""
通用数据模型

定义跨网盘的统一数据结构
"""

import base64
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional


class ProviderType(str, Enum):
    """云存储提供商类型"""
    GOOGLE = "google"
    MICROSOFT = "microsoft"
    DROPBOX = "dropbox"
    KOOFR = "koofr"

    @classmethod
    def parse(cls, value: str) -> "ProviderType":
        """从字符串解析（不区分大小写）"""
        try:
            return cls(str(getattr(value, "value", value)).lower())
        except ValueError:
            from .exceptions import ProviderNotSupportedError
            raise ProviderNotSupportedError(
                f"Provider type '{value}' is not supported. "
                f"Available types: {[p.value for p in cls]}"
            )


@dataclass
class CloudFolder:
    """统一文件夹模型

    id 对调用方是不透明的：Drive/Graph 为短 ID，Dropbox/Koofr 为路径
    """
    id: str
    name: str


@dataclass
class CloudFile:
    """统一文件模型

    抽象不同网盘的文件表示
    """
    # 核心字段
    id: str                          # 提供商内的不透明 ID
    name: str                        # 文件名
    mime_type: str                   # MIME 类型（缺失时按扩展名推断）
    size: int = 0                    # 文件大小（字节）

    # 可选字段
    thumbnail_link: Optional[str] = None  # 缩略图 URL
    download_link: Optional[str] = None   # 下载 URL（如果提供商直接给出）
    width: Optional[int] = None
    height: Optional[int] = None
    duration_ms: Optional[int] = None     # 视频时长（毫秒）
    modified_at: Optional[str] = None     # 修改时间（ISO 8601）

    # 扩展字段（保存原始数据）
    raw_data: Optional[Dict[str, Any]] = None

    @property
    def extension(self) -> str:
        """小写扩展名（不含点）"""
        if "." not in self.name:
            return ""
        return self.name.rsplit(".", 1)[-1].lower()

    @property
    def base_name(self) -> str:
        """去掉最后一个扩展名后的小写文件名"""
        if "." not in self.name:
            return self.name.lower()
        return self.name.rsplit(".", 1)[0].lower()

    @property
    def is_video(self) -> bool:
        """是否是视频文件"""
        return (self.mime_type or "").startswith("video/")

    @property
    def is_image(self) -> bool:
        """是否是图片文件"""
        return (self.mime_type or "").startswith("image/")


@dataclass
class AuthToken:
    """OAuth2 认证令牌"""
    access_token: str                    # 访问令牌
    refresh_token: Optional[str] = None  # 刷新令牌
    expires_at: Optional[float] = None   # 过期时间（Unix 时间戳），None 表示直到撤销前有效
    token_type: str = "Bearer"           # 令牌类型

    # 扩展字段（保存原始数据）
    raw_data: Optional[Dict[str, Any]] = None

    def is_expired(self, buffer_seconds: int = 60) -> bool:
        """检查令牌是否过期

        Args:
            buffer_seconds: 提前多少秒判定为过期（默认 60 秒）
        """
        if self.expires_at is None:
            return False
        return time.time() >= (self.expires_at - buffer_seconds)

    @classmethod
    def from_response(
        cls,
        data: Dict[str, Any],
        previous_refresh_token: Optional[str] = None
    ) -> "AuthToken":
        """从标准 OAuth2 令牌响应构造

        提供商未轮换 refresh_token 时沿用旧值
        """
        expires_in = data.get("expires_in")
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or previous_refresh_token,
            expires_at=time.time() + int(expires_in) if expires_in else None,
            token_type=data.get("token_type", "Bearer"),
            raw_data=data
        )


@dataclass
class BasicCredential:
    """HTTP Basic 认证凭据（Koofr 应用密码）"""
    username: str
    password: str

    def header_value(self) -> str:
        raw = f"{self.username}:{self.password}".encode("utf-8")
        return "Basic " + base64.b64encode(raw).decode("ascii")


@dataclass
class AuthHandle:
    """认证句柄

    由 AuthFactory 返回，保证在返回时是有效的
    """
    account_id: str
    provider: ProviderType
    token: Optional[AuthToken] = None
    basic: Optional[BasicCredential] = None

    def headers(self) -> Dict[str, str]:
        """生成 Authorization 请求头"""
        if self.basic is not None:
            return {"Authorization": self.basic.header_value()}
        if self.token is not None:
            return {"Authorization": f"Bearer {self.token.access_token}"}
        return {}


@dataclass
class StoredCredential:
    """凭据存储中的账号记录（已解密）"""
    account_id: str
    provider: ProviderType
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[float] = None
    email: Optional[str] = None
    provider_account_id: Optional[str] = None

    def to_token(self) -> AuthToken:
        return AuthToken(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            expires_at=self.expires_at
        )


@dataclass
class Quota:
    """空间配额"""
    usage: int
    limit: int


@dataclass
class ContentLink:
    """文件内容链接"""
    url: str                              # 下载 URL
    expires_at: Optional[float] = None    # 过期时间
    requires_auth: bool = False           # 是否需要附带认证头才能访问


@dataclass
class ByteStream:
    """已打开的提供商响应体

    必须调用 aclose() 释放连接
    """
    status_code: int
    headers: Dict[str, str]
    iterator: AsyncIterator[bytes]
    close: Callable[[], Awaitable[None]] = field(repr=False, default=None)

    @property
    def content_length(self) -> Optional[int]:
        value = self.headers.get("content-length")
        return int(value) if value and value.isdigit() else None

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("content-type")

    async def read(self) -> bytes:
        """读取全部内容并关闭"""
        try:
            chunks = [chunk async for chunk in self.iterator]
            return b"".join(chunks)
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if self.close is not None:
            await self.close()
