"""
云存储服务

把核心层（认证工厂、适配器、索引器、传输服务）绑定到持久化数据上
"""
import logging
from typing import List, Optional

import httpx

from mediacloud.config import CoreConfig
from mediacloud.core.auth import AuthFactory, OAuthClient
from mediacloud.core.models import CloudFile, CloudFolder, ProviderType, Quota
from mediacloud.gallery import ExternalVideo as ExternalVideoItem
from mediacloud.gallery import GalleryConfig, GalleryIndexer, GalleryStructure
from mediacloud.providers import list_files, list_folders, provider_factory
from mediacloud.transfer import TransferService

from app.core.config import Settings
from app.core.exceptions import AccountNotFoundError
from app.models.cloud_account import CloudAccount
from app.models.gallery import Gallery
from app.services.credential_store import TortoiseCredentialStore

logger = logging.getLogger(__name__)


class CloudService:
    """云存储服务

    认证工厂在进程内共享，同一账号的令牌刷新因此被同一把锁串行化
    """

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        """
        Args:
            settings: 应用配置
            http_client: 注入的 httpx 客户端（测试用，由调用方负责关闭）
        """
        self.settings = settings
        self.config: CoreConfig = settings.core_config()
        self.http_client = http_client
        self.store = TortoiseCredentialStore(
            secret=self.config.ENCRYPTION_SECRET,
            encrypt_tokens=self.config.ENCRYPT_TOKENS
        )
        self.auth_factory = AuthFactory(
            self.store,
            refresh_margin=self.config.transfer.TOKEN_REFRESH_MARGIN,
            oauth_client_builder=self.oauth_client
        )

        adapter_kwargs = {"config": self.config}
        if http_client is not None:
            adapter_kwargs["http_client"] = http_client
        self.adapter_kwargs = adapter_kwargs

        self.indexer = GalleryIndexer(self.auth_factory, provider_factory, **adapter_kwargs)
        self.transfer = TransferService(self.auth_factory, provider_factory, **adapter_kwargs)

    def oauth_client(self, provider: ProviderType) -> OAuthClient:
        """创建提供商的 OAuth 客户端"""
        return provider_factory.create_oauth_client(
            provider, config=self.config, http_client=self.http_client
        )

    async def get_account(self, user_id: str, account_id: str) -> CloudAccount:
        """获取属于该用户的账号"""
        account = await CloudAccount.filter(id=account_id, user_id=user_id).first()
        if not account:
            raise AccountNotFoundError(account_id)
        return account

    # ==================== 浏览 ====================

    async def list_folders(self, user_id: str, account_id: str, parent_id: Optional[str] = None) -> List[CloudFolder]:
        await self.get_account(user_id, account_id)
        adapter = await provider_factory.connect(self.auth_factory, account_id, **self.adapter_kwargs)
        async with adapter:
            return await list_folders(adapter, parent_id)

    async def list_files(self, user_id: str, account_id: str, parent_id: Optional[str] = None) -> List[CloudFile]:
        await self.get_account(user_id, account_id)
        adapter = await provider_factory.connect(self.auth_factory, account_id, **self.adapter_kwargs)
        async with adapter:
            return await list_files(adapter, parent_id)

    async def get_quota(self, user_id: str, account_id: str) -> Optional[Quota]:
        await self.get_account(user_id, account_id)
        adapter = await provider_factory.connect(self.auth_factory, account_id, **self.adapter_kwargs)
        async with adapter:
            return await adapter.get_quota()

    # ==================== 画廊 ====================

    @staticmethod
    async def gallery_config(gallery: Gallery) -> GalleryConfig:
        """从画廊记录生成索引配置"""
        videos = await gallery.external_videos.all()
        return GalleryConfig(
            file_order=list(gallery.file_order or []),
            moments_order=list(gallery.moments_order or []),
            match_formats=gallery.match_formats,
            external_videos=[
                ExternalVideoItem(
                    id=video.id,
                    provider=video.provider,
                    external_id=video.external_id,
                    title=video.title,
                    thumbnail=video.thumbnail,
                    duration=video.duration,
                    moment_name=video.moment_name
                )
                for video in videos
            ]
        )

    async def index_gallery(self, gallery: Gallery) -> GalleryStructure:
        config = await self.gallery_config(gallery)
        return await self.indexer.index_gallery(
            gallery.cloud_account_id, gallery.root_folder_id, config
        )

    async def index_folder(
        self,
        user_id: str,
        account_id: str,
        root_folder_id: str,
        config: Optional[GalleryConfig] = None
    ) -> GalleryStructure:
        """索引任意文件夹（未保存为画廊）"""
        await self.get_account(user_id, account_id)
        return await self.indexer.index_gallery(account_id, root_folder_id, config)
