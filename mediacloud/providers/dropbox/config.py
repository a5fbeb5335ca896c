"""
Dropbox 特定配置
"""
from dataclasses import dataclass


@dataclass
class DropboxConfig:
    """Dropbox 配置"""

    # API 端点
    API_BASE_URL: str = "https://api.dropboxapi.com/2"
    CONTENT_BASE_URL: str = "https://content.dropboxapi.com/2"

    # 认证端点
    AUTHORIZE_URL: str = "https://www.dropbox.com/oauth2/authorize"
    TOKEN_URL: str = "https://api.dropboxapi.com/oauth2/token"

    # 临时链接有效期（秒）
    TEMPORARY_LINK_TTL: int = 4 * 3600
    LIST_LIMIT: int = 2000


# 默认配置实例
default_config = DropboxConfig()
