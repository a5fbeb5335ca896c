"""
Microsoft identity platform OAuth2 实现
"""
from typing import Dict, Optional, Tuple
from urllib.parse import urlencode

from ...core.auth import OAuthClient
from ...core.exceptions import AuthError
from ...core.models import AuthToken, ProviderType
from .config import default_config as graph_config


class MicrosoftOAuthClient(OAuthClient):
    """Microsoft OAuth2 客户端

    Graph 没有撤销接口，revoke 使用基类的空实现
    """

    SCOPES = graph_config.SCOPES

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        tenant = self.config.MICROSOFT_TENANT
        self.TOKEN_URL = graph_config.token_url(tenant)
        self.AUTHORIZE_URL = graph_config.authorize_url(tenant)

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.MICROSOFT

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.app.CLIENT_ID,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "response_mode": "query",
            "scope": " ".join(self.SCOPES),
            "state": state,
        }
        return f"{self.AUTHORIZE_URL}?{urlencode(params)}"

    def _refresh_payload(self, token: AuthToken) -> Dict[str, str]:
        # Graph 刷新时要求带上 scope 与 redirect_uri
        payload = super()._refresh_payload(token)
        payload["scope"] = " ".join(self.SCOPES)
        payload["redirect_uri"] = self.redirect_uri
        return payload

    async def fetch_identity(self, token: AuthToken) -> Tuple[str, Optional[str]]:
        async with self._client() as client:
            response = await client.get(
                f"{graph_config.API_BASE_URL}/me",
                headers={"Authorization": f"Bearer {token.access_token}"}
            )
        if response.status_code >= 400:
            raise AuthError(f"Failed to fetch Microsoft profile: HTTP {response.status_code}")
        data = response.json()
        return data["id"], data.get("mail") or data.get("userPrincipalName")
