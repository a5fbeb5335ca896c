"""
账号连接 API 路由

OAuth 授权跳转与回调、Koofr 应用密码连接
"""
import logging
from typing import Optional
from urllib.parse import quote

import httpx
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import RedirectResponse

from mediacloud.core.exceptions import AuthError
from mediacloud.core.models import ProviderType

from app.api.deps import get_account_service, get_current_user, get_settings_dep
from app.api.schemas import DataResponse, KoofrConnect
from app.core.config import Settings
from app.core.exceptions import ValidationError
from app.core.security import create_state, verify_state
from app.services.account_service import AccountService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/connect", tags=["账号连接"])

OAUTH_PROVIDERS = (ProviderType.GOOGLE, ProviderType.MICROSOFT, ProviderType.DROPBOX)


def _oauth_provider(provider: str) -> ProviderType:
    provider_type = ProviderType.parse(provider)
    if provider_type not in OAUTH_PROVIDERS:
        raise ValidationError(f"{provider_type.value} 不支持 OAuth 连接")
    return provider_type


@router.post("/koofr", response_model=DataResponse, status_code=status.HTTP_201_CREATED)
async def connect_koofr(
    data: KoofrConnect,
    user_id: str = Depends(get_current_user),
    account_service: AccountService = Depends(get_account_service)
):
    """用 Koofr 邮箱和应用密码连接（先校验凭据）"""
    account = await account_service.connect_koofr(
        user_id=user_id,
        email=data.email,
        password=data.password,
        name=data.name
    )
    return DataResponse(data=account.to_dict(), message="Koofr 账号已连接")


@router.get("/{provider}")
async def authorize(
    provider: str,
    user_id: str = Depends(get_current_user),
    settings: Settings = Depends(get_settings_dep),
    account_service: AccountService = Depends(get_account_service)
):
    """跳转到提供商授权页面

    state 携带签名后的用户 ID，回调时据此归属账号
    """
    provider_type = _oauth_provider(provider)
    state = create_state(user_id, settings.security.secret)
    url = account_service.authorization_url(provider_type, state=state)
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


@router.get("/{provider}/callback")
async def oauth_callback(
    provider: str,
    code: Optional[str] = Query(None, description="授权码"),
    state: Optional[str] = Query(None, description="签名的 state"),
    error: Optional[str] = Query(None, description="提供商返回的错误"),
    settings: Settings = Depends(get_settings_dep),
    account_service: AccountService = Depends(get_account_service)
):
    """OAuth 回调：交换授权码并保存账号，然后跳回前端"""
    provider_type = _oauth_provider(provider)
    base_url = settings.gateway.app_url.rstrip("/")

    user_id = verify_state(state, settings.security.secret)
    if error or not code or not user_id:
        reason = error or ("missing_code" if not code else "invalid_state")
        logger.warning(f"OAuth callback for {provider_type.value} rejected: {reason}")
        return RedirectResponse(
            f"{base_url}/?connect_error={quote(reason)}",
            status_code=status.HTTP_302_FOUND
        )

    try:
        account = await account_service.connect_oauth(user_id, provider_type, code)
    except (AuthError, httpx.HTTPError) as e:
        logger.error(f"OAuth connect for {provider_type.value} failed: {e}")
        return RedirectResponse(
            f"{base_url}/?connect_error=auth_failed",
            status_code=status.HTTP_302_FOUND
        )

    return RedirectResponse(
        f"{base_url}/?connected={quote(account.id)}",
        status_code=status.HTTP_302_FOUND
    )
