"""
Dropbox OAuth2 实现
"""
import logging
from typing import Optional, Tuple
from urllib.parse import urlencode

import httpx

from ...core.auth import OAuthClient
from ...core.exceptions import AuthError
from ...core.models import AuthToken, ProviderType
from .config import default_config as dropbox_config

logger = logging.getLogger(__name__)


class DropboxOAuthClient(OAuthClient):
    """Dropbox OAuth2 客户端"""

    TOKEN_URL = dropbox_config.TOKEN_URL
    AUTHORIZE_URL = dropbox_config.AUTHORIZE_URL

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.DROPBOX

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.app.CLIENT_ID,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            # 短期令牌 + refresh_token
            "token_access_type": "offline",
            "state": state,
        }
        return f"{self.AUTHORIZE_URL}?{urlencode(params)}"

    async def fetch_identity(self, token: AuthToken) -> Tuple[str, Optional[str]]:
        async with self._client() as client:
            # 该接口不接受请求体，必须显式发送 null
            response = await client.post(
                f"{dropbox_config.API_BASE_URL}/users/get_current_account",
                headers={
                    "Authorization": f"Bearer {token.access_token}",
                    "Content-Type": "application/json",
                },
                content=b"null"
            )
        if response.status_code >= 400:
            raise AuthError(f"Failed to fetch Dropbox account: HTTP {response.status_code}")
        data = response.json()
        return data["account_id"], data.get("email")

    async def revoke(self, token: AuthToken) -> None:
        try:
            async with self._client() as client:
                response = await client.post(
                    f"{dropbox_config.API_BASE_URL}/auth/token/revoke",
                    headers={"Authorization": f"Bearer {token.access_token}"}
                )
            if response.status_code >= 400:
                logger.warning(f"Dropbox token revocation returned HTTP {response.status_code}")
        except httpx.HTTPError as e:
            logger.warning(f"Dropbox token revocation failed: {e}")
