"""
通用异常定义
"""
from typing import Optional


class CloudStorageError(Exception):
    """云存储基础异常"""
    pass


class AuthError(CloudStorageError):
    """认证异常（需要用户重新连接账号）"""
    pass


class NotFoundError(AuthError):
    """云存储账号不存在"""

    def __init__(self, account_id: str):
        super().__init__(f"Cloud account not found: {account_id}")
        self.account_id = account_id


class ReauthRequiredError(AuthError):
    """令牌已过期且没有刷新令牌，需要重新授权"""

    def __init__(self, account_id: str, message: Optional[str] = None):
        super().__init__(message or f"Account {account_id} must be reconnected")
        self.account_id = account_id


class AuthRefreshError(AuthError):
    """刷新令牌失败（令牌被撤销或网络错误）"""

    def __init__(self, account_id: str, message: str):
        super().__init__(f"Token refresh failed for account {account_id}: {message}")
        self.account_id = account_id


class ProviderUnavailableError(CloudStorageError):
    """列表请求失败

    在 Provider 边界被吞掉并返回空结果，仅在凭据校验时向上抛出
    """
    pass


class ContentFetchError(CloudStorageError):
    """内容获取失败（下载、流媒体、缩略图）"""

    def __init__(self, provider: str, file_id: str, message: str):
        super().__init__(f"[{provider}] failed to fetch {file_id}: {message}")
        self.provider = provider
        self.file_id = file_id
        self.detail = message


class RangeNotSatisfiableError(CloudStorageError):
    """Range 请求超出文件范围"""

    def __init__(self, total: int):
        super().__init__(f"Requested range not satisfiable (size={total})")
        self.total = total


class ValidationError(CloudStorageError):
    """参数验证错误"""
    pass


class ProviderNotSupportedError(CloudStorageError):
    """不支持的 Provider 异常"""
    pass
