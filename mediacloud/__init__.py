"""
多网盘媒体网关核心

统一 Google Drive、OneDrive、Dropbox、Koofr 的访问，并提供画廊索引与传输服务
"""

# 导出核心接口和数据模型
from .core import (
    ProviderType,
    CloudFolder,
    CloudFile,
    AuthToken,
    AuthHandle,
    StoredCredential,
    Quota,
    ContentLink,
    ByteStream,
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
    AuthFactory,
    CredentialStore,
    OAuthClient,
    CloudStorageProvider,
)

# 导出 Provider 工厂和基类（导入时自动注册全部 Provider）
from .providers import (
    ProviderFactory,
    provider_factory,
    BaseProvider,
    list_folders,
    list_files,
)

# 导出配置
from .config import CoreConfig, OAuthAppConfig, TransferConfig

# 导出服务
from .gallery import GalleryConfig, GalleryIndexer, GalleryStructure, index_gallery
from .transfer import TransferService

__all__ = [
    "ProviderType",
    "CloudFolder",
    "CloudFile",
    "AuthToken",
    "AuthHandle",
    "StoredCredential",
    "Quota",
    "ContentLink",
    "ByteStream",
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
    "AuthFactory",
    "CredentialStore",
    "OAuthClient",
    "CloudStorageProvider",
    "ProviderFactory",
    "provider_factory",
    "BaseProvider",
    "list_folders",
    "list_files",
    "CoreConfig",
    "OAuthAppConfig",
    "TransferConfig",
    "GalleryConfig",
    "GalleryIndexer",
    "GalleryStructure",
    "index_gallery",
    "TransferService",
]

__version__ = "1.0.0"
