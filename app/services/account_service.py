"""
云存储账号管理服务
"""
import logging
import uuid
from typing import List, Optional

from tortoise.exceptions import IntegrityError

from mediacloud.core.exceptions import AuthError, ProviderUnavailableError
from mediacloud.core.models import AuthHandle, AuthToken, BasicCredential, ProviderType
from mediacloud.providers import provider_factory

from app.models.cloud_account import CloudAccount, ProviderTag
from app.services.cloud_service import CloudService
from app.tasks import run_detached

logger = logging.getLogger(__name__)


class AccountService:
    """云存储账号管理服务"""

    def __init__(self, cloud: CloudService):
        """
        Args:
            cloud: 云存储服务（提供凭据存储与 OAuth 客户端）
        """
        self.cloud = cloud
        self.store = cloud.store

    async def list_accounts(self, user_id: str) -> List[CloudAccount]:
        """获取用户的全部账号"""
        return await CloudAccount.filter(user_id=user_id).order_by("created_at")

    async def upsert_account(
        self,
        user_id: str,
        provider: ProviderType,
        provider_account_id: str,
        access_token: str,
        refresh_token: Optional[str] = None,
        expires_at: Optional[float] = None,
        email: Optional[str] = None,
        name: Optional[str] = None,
        encrypt: bool = False
    ) -> CloudAccount:
        """
        创建或更新账号

        (user_id, provider, provider_account_id) 唯一，重复连接时更新已有记录

        Args:
            encrypt: 强制加密 access_token（Koofr 密码）
        """
        values = {
            "access_token": self.store.seal(access_token, force=encrypt),
            "expires_at": expires_at,
        }
        # 提供商没有返回新的 refresh_token 时保留旧值
        if refresh_token:
            values["refresh_token"] = self.store.seal(refresh_token)
        if email:
            values["email"] = email
        if name:
            values["name"] = name

        lookup = {
            "user_id": user_id,
            "provider": ProviderTag(provider.value),
            "provider_account_id": provider_account_id,
        }

        account = await CloudAccount.filter(**lookup).first()
        if account is None:
            fields = {**lookup, **values}
            fields.setdefault("name", provider.value.capitalize())
            try:
                account = await CloudAccount.create(id=uuid.uuid4().hex, **fields)
                logger.info(f"Connected {provider.value} account {account.id} for user {user_id}")
                return account
            except IntegrityError:
                # 并发连接时另一个请求已经插入
                account = await CloudAccount.filter(**lookup).first()
                if account is None:
                    raise

        await CloudAccount.filter(id=account.id).update(**values)
        await account.refresh_from_db()
        logger.info(f"Reconnected {provider.value} account {account.id} for user {user_id}")
        return account

    # ==================== OAuth ====================

    def authorization_url(self, provider: ProviderType, state: str) -> str:
        """生成授权跳转地址"""
        return self.cloud.oauth_client(provider).authorization_url(state)

    async def connect_oauth(
        self,
        user_id: str,
        provider: ProviderType,
        code: str,
        name: Optional[str] = None
    ) -> CloudAccount:
        """
        用授权码完成连接

        Raises:
            AuthError: 授权码交换或身份获取失败
        """
        client = self.cloud.oauth_client(provider)
        token = await client.exchange_code(code)
        provider_account_id, email = await client.fetch_identity(token)

        return await self.upsert_account(
            user_id=user_id,
            provider=provider,
            provider_account_id=provider_account_id,
            access_token=token.access_token,
            refresh_token=token.refresh_token,
            expires_at=token.expires_at,
            email=email,
            name=name
        )

    # ==================== Koofr ====================

    async def connect_koofr(
        self,
        user_id: str,
        email: str,
        password: str,
        name: Optional[str] = None
    ) -> CloudAccount:
        """
        连接 Koofr 账号

        先用配额接口校验凭据，校验通过后才写入数据库

        Raises:
            AuthError: 凭据无效或无法连接 Koofr
        """
        handle = AuthHandle(
            account_id="koofr-verification",
            provider=ProviderType.KOOFR,
            basic=BasicCredential(username=email, password=password)
        )
        adapter = provider_factory.create(handle, verify=True, **self.cloud.adapter_kwargs)
        async with adapter:
            try:
                quota = await adapter.get_quota()
            except ProviderUnavailableError as e:
                logger.warning(f"Koofr verification failed for {email}: {e}")
                raise AuthError("Invalid Koofr credentials or Koofr is unreachable")

        logger.info(f"Koofr credentials verified for {email} (usage={quota.usage if quota else 'n/a'})")
        return await self.upsert_account(
            user_id=user_id,
            provider=ProviderType.KOOFR,
            provider_account_id=email,
            access_token=password,
            email=email,
            name=name or "Koofr",
            encrypt=True
        )

    # ==================== 管理 ====================

    async def rename(self, user_id: str, account_id: str, name: str) -> CloudAccount:
        account = await self.cloud.get_account(user_id, account_id)
        account.name = name
        await account.save(update_fields=["name", "updated_at"])
        return account

    async def disconnect(self, user_id: str, account_id: str) -> None:
        """
        断开账号

        远端撤销以分离任务尽力执行，不阻塞删除
        """
        account = await self.cloud.get_account(user_id, account_id)
        provider = ProviderType.parse(account.provider)

        if provider != ProviderType.KOOFR:
            token = AuthToken(
                access_token=self.store.unseal(account.access_token),
                refresh_token=self.store.unseal(account.refresh_token)
            )
            client = self.cloud.oauth_client(provider)
            run_detached(client.revoke(token), f"revoke {provider.value} account {account_id}")

        await account.delete()
        logger.info(f"Disconnected {provider.value} account {account_id}")
