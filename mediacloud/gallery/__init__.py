"""
画廊索引

导出索引器与画廊数据模型
"""

from .formats import (
    FormatMatcher,
    PHOTO_ROLES,
    VIDEO_ROLES,
    RESERVED_FOLDERS,
    base_name,
    is_reserved,
    is_valid_media,
)
from .indexer import GalleryIndexer, index_gallery, sort_items, sort_moments
from .models import ExternalVideo, GalleryConfig, GalleryStructure, MediaItem, Moment

__all__ = [
    "FormatMatcher",
    "PHOTO_ROLES",
    "VIDEO_ROLES",
    "RESERVED_FOLDERS",
    "base_name",
    "is_reserved",
    "is_valid_media",
    "GalleryIndexer",
    "index_gallery",
    "sort_items",
    "sort_moments",
    "ExternalVideo",
    "GalleryConfig",
    "GalleryStructure",
    "MediaItem",
    "Moment",
]
