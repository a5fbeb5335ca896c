"""
异常定义模块
"""
import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from mediacloud.core import exceptions as core

logger = logging.getLogger(__name__)


class AppException(HTTPException):
    """应用基础异常"""

    def __init__(self, message: str, status_code: int = 500, headers: dict = None):
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.message = message


class AuthenticationError(AppException):
    """认证错误"""

    def __init__(self, message: str = "认证失败"):
        super().__init__(message, status_code=status.HTTP_401_UNAUTHORIZED)


class ReauthRequiredError(AuthenticationError):
    """云存储账号需要重新连接"""

    def __init__(self, account_id: str = None, message: str = None):
        super().__init__(message or "云存储账号需要重新连接")
        self.account_id = account_id


class NotFoundError(AppException):
    """资源不存在错误"""

    def __init__(self, message: str = "资源不存在"):
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND)


class AccountNotFoundError(NotFoundError):
    """云存储账号不存在错误"""

    def __init__(self, account_id: str = None):
        message = f"云存储账号不存在: {account_id}" if account_id else "云存储账号不存在"
        super().__init__(message)


class GalleryNotFoundError(NotFoundError):
    """画廊不存在错误"""

    def __init__(self, gallery_id: str = None):
        message = f"画廊不存在: {gallery_id}" if gallery_id else "画廊不存在"
        super().__init__(message)


class ValidationError(AppException):
    """参数验证错误"""

    def __init__(self, message: str = "参数验证失败"):
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST)


class BadGatewayError(AppException):
    """上游云存储请求失败"""

    def __init__(self, message: str = "云存储请求失败"):
        super().__init__(message, status_code=status.HTTP_502_BAD_GATEWAY)


class RangeNotSatisfiableError(AppException):
    """Range 超出文件范围"""

    def __init__(self, total: int):
        super().__init__(
            "请求的范围无效",
            status_code=status.HTTP_416_REQUESTED_RANGE_NOT_SATISFIABLE,
            headers={"Content-Range": f"bytes */{total}"}
        )


def to_http_error(exc: core.CloudStorageError) -> AppException:
    """将核心层异常映射为 HTTP 异常"""
    if isinstance(exc, core.NotFoundError):
        return AccountNotFoundError(exc.account_id)
    if isinstance(exc, (core.ReauthRequiredError, core.AuthRefreshError)):
        return ReauthRequiredError(exc.account_id, str(exc))
    if isinstance(exc, core.AuthError):
        return AuthenticationError(str(exc))
    if isinstance(exc, core.RangeNotSatisfiableError):
        return RangeNotSatisfiableError(exc.total)
    if isinstance(exc, (core.ValidationError, core.ProviderNotSupportedError)):
        return ValidationError(str(exc))
    if isinstance(exc, (core.ContentFetchError, core.ProviderUnavailableError)):
        return BadGatewayError(str(exc))
    return AppException(str(exc))


async def cloud_storage_error_handler(request: Request, exc: core.CloudStorageError) -> JSONResponse:
    http_error = to_http_error(exc)
    if http_error.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc}")

    content = {"success": False, "detail": http_error.message}
    if isinstance(http_error, ReauthRequiredError):
        content["reconnect"] = True
        content["account_id"] = http_error.account_id
    return JSONResponse(
        status_code=http_error.status_code,
        content=content,
        headers=http_error.headers
    )


def register_exception_handlers(app: FastAPI) -> None:
    """注册核心层异常处理器"""
    app.add_exception_handler(core.CloudStorageError, cloud_storage_error_handler)
