"""
Microsoft Graph（OneDrive）特定配置
"""
from dataclasses import dataclass
from typing import Tuple


@dataclass
class MicrosoftGraphConfig:
    """Microsoft Graph 配置"""

    API_BASE_URL: str = "https://graph.microsoft.com/v1.0"

    # 认证端点（{tenant} 由 MICROSOFT_TENANT 决定）
    LOGIN_BASE_URL: str = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0"
    SCOPES: Tuple[str, ...] = (
        "User.Read",
        "Files.Read",
        "Files.Read.All",
        "offline_access",
    )

    FILE_SELECT: str = "id,name,file,image,video,size,webUrl,thumbnails,folder,lastModifiedDateTime"

    def authorize_url(self, tenant: str) -> str:
        return self.LOGIN_BASE_URL.format(tenant=tenant) + "/authorize"

    def token_url(self, tenant: str) -> str:
        return self.LOGIN_BASE_URL.format(tenant=tenant) + "/token"


# 默认配置实例
default_config = MicrosoftGraphConfig()
