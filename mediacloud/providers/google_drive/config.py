"""
Google Drive 特定配置
"""
from dataclasses import dataclass
from typing import Tuple


@dataclass
class GoogleDriveConfig:
    """Google Drive 配置"""

    # API 端点
    API_BASE_URL: str = "https://www.googleapis.com/drive/v3"
    THUMBNAIL_URL: str = "https://drive.google.com/thumbnail?id={file_id}&sz=w{size}"

    # 认证端点
    AUTHORIZE_URL: str = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL: str = "https://oauth2.googleapis.com/token"
    REVOKE_URL: str = "https://oauth2.googleapis.com/revoke"
    USERINFO_URL: str = "https://www.googleapis.com/oauth2/v3/userinfo"
    SCOPES: Tuple[str, ...] = (
        "openid",
        "email",
        "https://www.googleapis.com/auth/drive.readonly",
    )

    FOLDER_MIME_TYPE: str = "application/vnd.google-apps.folder"
    PAGE_SIZE: int = 1000
    FILE_FIELDS: str = (
        "id, name, mimeType, thumbnailLink, webContentLink, imageMediaMetadata, "
        "videoMediaMetadata, size, modifiedTime"
    )


# 默认配置实例
default_config = GoogleDriveConfig()
