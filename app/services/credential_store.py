"""
基于 Tortoise ORM 的凭据存储
"""
import logging
from typing import Optional

from mediacloud.core import crypto
from mediacloud.core.auth import CredentialStore
from mediacloud.core.models import AuthToken, ProviderType, StoredCredential

from app.models.cloud_account import CloudAccount

logger = logging.getLogger(__name__)


class TortoiseCredentialStore(CredentialStore):
    """CloudAccount 表上的凭据存储

    读取时总是尝试解密（兼容旧的明文记录），写入时按配置加密
    """

    def __init__(self, secret: Optional[str] = None, encrypt_tokens: bool = False):
        """
        Args:
            secret: 加密密钥
            encrypt_tokens: 是否加密 OAuth 令牌
        """
        self.secret = secret
        self.encrypt_tokens = encrypt_tokens and bool(secret)
        if encrypt_tokens and not secret:
            logger.warning("ENCRYPT_TOKENS is set but no encryption key is configured")

    def seal(self, value: Optional[str], force: bool = False) -> Optional[str]:
        """按配置加密（force 用于 Koofr 密码）"""
        if value is None:
            return None
        if (force or self.encrypt_tokens) and self.secret:
            return crypto.encrypt(value, self.secret)
        if force:
            logger.warning("No encryption key configured, storing credential unencrypted")
        return value

    def unseal(self, value: Optional[str]) -> Optional[str]:
        return crypto.decrypt(value, self.secret)

    async def get_account(self, account_id: str) -> Optional[StoredCredential]:
        account = await CloudAccount.filter(id=account_id).first()
        if not account:
            return None

        return StoredCredential(
            account_id=account.id,
            provider=ProviderType.parse(account.provider),
            access_token=self.unseal(account.access_token),
            refresh_token=self.unseal(account.refresh_token),
            expires_at=account.expires_at,
            email=account.email,
            provider_account_id=account.provider_account_id
        )

    async def save_token(self, account_id: str, token: AuthToken) -> None:
        values = {
            "access_token": self.seal(token.access_token),
            "expires_at": token.expires_at,
        }
        if token.refresh_token:
            values["refresh_token"] = self.seal(token.refresh_token)

        updated = await CloudAccount.filter(id=account_id).update(**values)
        if not updated:
            logger.warning(f"Token refresh for missing account {account_id} was not persisted")
        else:
            logger.info(f"Persisted refreshed token for account {account_id}")
