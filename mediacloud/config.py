"""
核心层配置

从环境变量加载配置
"""
import os
from dataclasses import dataclass, field
from typing import Optional


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class TransferConfig:
    """网络与传输配置"""
    HTTP_TIMEOUT: float = 30.0           # 单次提供商调用超时（秒）
    CONNECT_TIMEOUT: float = 10.0
    TOKEN_REFRESH_MARGIN: int = 60       # 提前刷新令牌的时间（秒）
    ZIP_CONCURRENCY: int = 5             # 打包下载的并发数
    THUMBNAIL_DEFAULT_SIZE: int = 400
    THUMBNAIL_MAX_SIZE: int = 2000
    THUMBNAIL_QUALITY: int = 85
    STREAM_CHUNK_SIZE: int = 64 * 1024

    @classmethod
    def from_env(cls) -> "TransferConfig":
        """从环境变量加载配置"""
        return cls(
            HTTP_TIMEOUT=float(os.getenv("HTTP_TIMEOUT", "30")),
            CONNECT_TIMEOUT=float(os.getenv("HTTP_CONNECT_TIMEOUT", "10")),
            TOKEN_REFRESH_MARGIN=int(os.getenv("TOKEN_REFRESH_MARGIN", "60")),
            ZIP_CONCURRENCY=int(os.getenv("ZIP_CONCURRENCY", "5")),
            THUMBNAIL_DEFAULT_SIZE=int(os.getenv("THUMBNAIL_DEFAULT_SIZE", "400")),
            THUMBNAIL_MAX_SIZE=int(os.getenv("THUMBNAIL_MAX_SIZE", "2000")),
            THUMBNAIL_QUALITY=int(os.getenv("THUMBNAIL_QUALITY", "85")),
        )


@dataclass
class OAuthAppConfig:
    """单个 OAuth 应用配置"""
    CLIENT_ID: str = ""
    CLIENT_SECRET: str = ""
    REDIRECT_URI: Optional[str] = None

    @property
    def configured(self) -> bool:
        return bool(self.CLIENT_ID and self.CLIENT_SECRET)


@dataclass
class CoreConfig:
    """核心层配置"""
    transfer: TransferConfig = field(default_factory=TransferConfig)
    google: OAuthAppConfig = field(default_factory=OAuthAppConfig)
    microsoft: OAuthAppConfig = field(default_factory=OAuthAppConfig)
    dropbox: OAuthAppConfig = field(default_factory=OAuthAppConfig)
    MICROSOFT_TENANT: str = "common"
    APP_URL: str = "http://localhost:8000"
    ENCRYPTION_SECRET: Optional[str] = None
    ENCRYPT_TOKENS: bool = False

    def redirect_uri(self, provider: str) -> str:
        """OAuth 回调地址"""
        app = getattr(self, provider, None)
        if app is not None and app.REDIRECT_URI:
            return app.REDIRECT_URI
        return f"{self.APP_URL.rstrip('/')}/api/connect/{provider}/callback"

    @classmethod
    def from_env(cls) -> "CoreConfig":
        """从环境变量加载配置"""
        def app(prefix: str) -> OAuthAppConfig:
            return OAuthAppConfig(
                CLIENT_ID=os.getenv(f"{prefix}_CLIENT_ID", ""),
                CLIENT_SECRET=os.getenv(f"{prefix}_CLIENT_SECRET", ""),
                REDIRECT_URI=os.getenv(f"{prefix}_REDIRECT_URI"),
            )

        return cls(
            transfer=TransferConfig.from_env(),
            google=app("GOOGLE"),
            microsoft=app("MICROSOFT"),
            dropbox=app("DROPBOX"),
            MICROSOFT_TENANT=os.getenv("MICROSOFT_TENANT", "common"),
            APP_URL=os.getenv("APP_URL", "http://localhost:8000"),
            ENCRYPTION_SECRET=os.getenv("DATA_ENCRYPTION_KEY") or os.getenv("AUTH_SECRET"),
            ENCRYPT_TOKENS=_env_bool("ENCRYPT_TOKENS", "false"),
        )


# 默认配置实例
default_config = CoreConfig.from_env()
