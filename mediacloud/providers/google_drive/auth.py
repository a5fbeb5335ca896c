"""
Google OAuth2 实现
"""
import logging
from typing import Optional, Tuple
from urllib.parse import urlencode

import httpx

from ...core.auth import OAuthClient
from ...core.exceptions import AuthError
from ...core.models import AuthToken, ProviderType
from .config import default_config as drive_config

logger = logging.getLogger(__name__)


class GoogleOAuthClient(OAuthClient):
    """Google OAuth2 客户端"""

    TOKEN_URL = drive_config.TOKEN_URL
    AUTHORIZE_URL = drive_config.AUTHORIZE_URL
    SCOPES = drive_config.SCOPES

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.GOOGLE

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.app.CLIENT_ID,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.SCOPES),
            # offline + consent 才能拿到 refresh_token
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return f"{self.AUTHORIZE_URL}?{urlencode(params)}"

    async def fetch_identity(self, token: AuthToken) -> Tuple[str, Optional[str]]:
        async with self._client() as client:
            response = await client.get(
                drive_config.USERINFO_URL,
                headers={"Authorization": f"Bearer {token.access_token}"}
            )
        if response.status_code >= 400:
            raise AuthError(f"Failed to fetch Google profile: HTTP {response.status_code}")
        data = response.json()
        return data["sub"], data.get("email")

    async def revoke(self, token: AuthToken) -> None:
        value = token.refresh_token or token.access_token
        try:
            async with self._client() as client:
                response = await client.post(drive_config.REVOKE_URL, data={"token": value})
            if response.status_code >= 400:
                logger.warning(f"Google token revocation returned HTTP {response.status_code}")
        except httpx.HTTPError as e:
            logger.warning(f"Google token revocation failed: {e}")
