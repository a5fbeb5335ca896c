"""
画廊索引器

遍历画廊根目录，生成 highlights（根目录文件）+ moments（内容子文件夹）结构
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from ..core.auth import AuthFactory
from ..core.models import CloudFile, CloudFolder
from ..core.provider import CloudStorageProvider
from ..providers.factory import ProviderFactory, provider_factory as default_factory
from .formats import FormatMatcher, is_reserved, is_system_name, is_valid_media
from .models import ExternalVideo, GalleryConfig, GalleryStructure, MediaItem, Moment

logger = logging.getLogger(__name__)


def _sort_key(order_map: Dict[str, int], item_id: str, name: str):
    # 不在显式顺序中的条目排在最后，同位置按名称
    position = order_map.get(item_id, len(order_map))
    return position, name.lower(), name


def sort_items(items: List[MediaItem], file_order: Sequence[str]) -> List[MediaItem]:
    order_map = {item_id: index for index, item_id in enumerate(file_order or [])}
    return sorted(items, key=lambda item: _sort_key(order_map, item.id, item.name))


def sort_moments(moments: List[Moment], moments_order: Sequence[str]) -> List[Moment]:
    order_map = {moment_id: index for index, moment_id in enumerate(moments_order or [])}
    ordered = sorted(moments, key=lambda moment: _sort_key(order_map, moment.id, moment.name))
    for index, moment in enumerate(ordered):
        moment.order = index
    return ordered


class GalleryIndexer:
    """画廊索引器

    对一个 (账号, 根文件夹) 生成完整的、已排序的画廊结构。
    相互独立的列表请求并发发出；单个时刻列表失败只会让该时刻为空
    """

    def __init__(
        self,
        auth_factory: AuthFactory,
        provider_factory: ProviderFactory = None,
        **adapter_kwargs: Any
    ):
        """
        Args:
            auth_factory: 认证工厂
            provider_factory: Provider 工厂（默认全局单例）
            **adapter_kwargs: 传给适配器的额外参数（config, http_client）
        """
        self.auth_factory = auth_factory
        self.provider_factory = provider_factory or default_factory
        self.adapter_kwargs = adapter_kwargs

    async def index_gallery(
        self,
        account_id: str,
        root_folder_id: str,
        config: Optional[GalleryConfig] = None
    ) -> GalleryStructure:
        """索引画廊

        Raises:
            AuthError: 账号不存在或需要重新授权
        """
        config = config or GalleryConfig()
        adapter = await self.provider_factory.connect(
            self.auth_factory, account_id, **self.adapter_kwargs
        )

        async with adapter:
            return await self._index(adapter, root_folder_id, config)

    async def _index(
        self,
        adapter: CloudStorageProvider,
        root_folder_id: str,
        config: GalleryConfig
    ) -> GalleryStructure:
        provider = adapter.provider_type.value

        folders, root_files = await asyncio.gather(
            adapter.list_folders(root_folder_id),
            adapter.list_files(root_folder_id)
        )

        reserved: List[CloudFolder] = []
        content: List[CloudFolder] = []
        for folder in folders:
            if is_system_name(folder.name):
                continue
            (reserved if is_reserved(folder) else content).append(folder)

        root_matcher: Optional[FormatMatcher] = None
        if config.match_formats and reserved:
            root_matcher = await self._matcher(adapter, reserved)

        externals = config.external_videos or []

        highlights = [
            self._to_item(item, provider, root_matcher)
            for item in root_files if is_valid_media(item)
        ]
        highlights.extend(
            self._external_item(video) for video in externals if not video.moment_name
        )

        moments = await asyncio.gather(*[
            self._index_moment(adapter, folder, config, root_matcher, provider)
            for folder in content
        ])

        structure = GalleryStructure(
            highlights=sort_items(highlights, config.file_order),
            moments=sort_moments(list(moments), config.moments_order)
        )
        logger.info(
            f"Indexed gallery {root_folder_id}: {len(structure.highlights)} highlights, "
            f"{len(structure.moments)} moments, {structure.total_items} items"
        )
        return structure

    async def _index_moment(
        self,
        adapter: CloudStorageProvider,
        folder: CloudFolder,
        config: GalleryConfig,
        root_matcher: Optional[FormatMatcher],
        provider: str
    ) -> Moment:
        try:
            if config.match_formats:
                files, subfolders = await asyncio.gather(
                    adapter.list_files(folder.id),
                    adapter.list_folders(folder.id)
                )
                variants = [sub for sub in subfolders if is_reserved(sub)]
                matcher = await self._matcher(adapter, variants, fallback=root_matcher)
            else:
                files = await adapter.list_files(folder.id)
                matcher = None
        except Exception as e:
            logger.error(f"Failed to list moment '{folder.name}' ({folder.id}): {e}")
            files, matcher = [], None

        items = [
            self._to_item(item, provider, matcher)
            for item in files if is_valid_media(item)
        ]
        items.extend(
            self._external_item(video)
            for video in config.external_videos or []
            if video.moment_name == folder.name
        )

        return Moment(id=folder.id, name=folder.name, items=sort_items(items, config.file_order))

    async def _matcher(
        self,
        adapter: CloudStorageProvider,
        folders: List[CloudFolder],
        fallback: Optional[FormatMatcher] = None
    ) -> FormatMatcher:
        listings = await asyncio.gather(*[adapter.list_files(folder.id) for folder in folders])
        return FormatMatcher.from_listings(folders, listings, fallback=fallback)

    @staticmethod
    def _to_item(item: CloudFile, provider: str, matcher: Optional[FormatMatcher]) -> MediaItem:
        return MediaItem(
            id=item.id,
            url=item.download_link or "",
            thumbnail_url=item.thumbnail_link,
            name=item.name,
            width=item.width,
            height=item.height,
            is_video=item.is_video,
            provider=provider,
            provider_id=item.id,
            duration=round(item.duration_ms / 1000) if item.duration_ms else None,
            formats=matcher.formats_for(item) if matcher is not None else None
        )

    @staticmethod
    def _external_item(video: ExternalVideo) -> MediaItem:
        return MediaItem(
            id=video.id,
            url=video.external_id,
            thumbnail_url=video.thumbnail,
            name=video.title or "External Video",
            is_video=True,
            provider=video.provider,
            provider_id=video.external_id,
            duration=video.duration or 0
        )


async def index_gallery(
    auth_factory: AuthFactory,
    account_id: str,
    root_folder_id: str,
    config: Optional[GalleryConfig] = None
) -> GalleryStructure:
    """索引画廊（使用默认 Provider 工厂）"""
    return await GalleryIndexer(auth_factory).index_gallery(account_id, root_folder_id, config)
