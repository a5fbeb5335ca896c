"""
画廊数据模型
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ExternalVideo:
    """外部托管的视频（YouTube / Vimeo）

    moment_name 为空时归入 highlights
    """
    id: str
    provider: str
    external_id: str
    title: Optional[str] = None
    thumbnail: Optional[str] = None
    duration: Optional[int] = None
    moment_name: Optional[str] = None


@dataclass
class GalleryConfig:
    """画廊索引配置"""
    file_order: List[str] = field(default_factory=list)      # 文件 ID 的显式顺序
    moments_order: List[str] = field(default_factory=list)   # 时刻文件夹 ID 的显式顺序
    match_formats: bool = True                               # 是否关联分辨率变体文件夹
    external_videos: List[ExternalVideo] = field(default_factory=list)


@dataclass
class MediaItem:
    """画廊中的单个媒体项"""
    id: str
    url: str
    name: str
    is_video: bool
    provider: str
    thumbnail_url: Optional[str] = None
    provider_id: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    duration: Optional[int] = None                 # 秒
    formats: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "thumbnailUrl": self.thumbnail_url,
            "name": self.name,
            "width": self.width,
            "height": self.height,
            "isVideo": self.is_video,
            "provider": self.provider,
            "providerId": self.provider_id,
            "duration": self.duration,
            "formats": self.formats,
        }


@dataclass
class Moment:
    """时刻（根目录下的内容子文件夹）"""
    id: str
    name: str
    items: List[MediaItem] = field(default_factory=list)
    order: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "items": [item.to_dict() for item in self.items],
            "order": self.order,
        }


@dataclass
class GalleryStructure:
    """索引结果"""
    highlights: List[MediaItem] = field(default_factory=list)
    moments: List[Moment] = field(default_factory=list)

    @property
    def total_items(self) -> int:
        return len(self.highlights) + sum(len(moment.items) for moment in self.moments)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "highlights": [item.to_dict() for item in self.highlights],
            "moments": [moment.to_dict() for moment in self.moments],
            "totalItems": self.total_items,
        }
