"""
核心抽象层

导出核心接口和数据模型
"""

from .models import (
    ProviderType,
    CloudFolder,
    CloudFile,
    AuthToken,
    BasicCredential,
    AuthHandle,
    StoredCredential,
    Quota,
    ContentLink,
    ByteStream,
)

from .exceptions import (
    CloudStorageError,
    AuthError,
    NotFoundError,
    ReauthRequiredError,
    AuthRefreshError,
    ProviderUnavailableError,
    ContentFetchError,
    RangeNotSatisfiableError,
    ValidationError,
    ProviderNotSupportedError,
)

from .auth import AuthFactory, CredentialStore, OAuthClient
from .provider import CloudStorageProvider

__all__ = [
    # 模型
    "ProviderType",
    "CloudFolder",
    "CloudFile",
    "AuthToken",
    "BasicCredential",
    "AuthHandle",
    "StoredCredential",
    "Quota",
    "ContentLink",
    "ByteStream",
    # 异常
    "CloudStorageError",
    "AuthError",
    "NotFoundError",
    "ReauthRequiredError",
    "AuthRefreshError",
    "ProviderUnavailableError",
    "ContentFetchError",
    "RangeNotSatisfiableError",
    "ValidationError",
    "ProviderNotSupportedError",
    # 接口
    "AuthFactory",
    "CredentialStore",
    "OAuthClient",
    "CloudStorageProvider",
]
