"""
分辨率变体文件夹约定

变体文件夹（webjpg、raw、hd 等）不是独立内容，而是同级文件的其他版本，
按去掉扩展名后的小写文件名与内容文件关联
"""
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..core.models import CloudFile, CloudFolder

# 照片: 角色 -> 候选文件夹名（按优先级）
PHOTO_ROLES: Dict[str, Tuple[str, ...]] = {
    "web": ("webjpg", "web"),
    "jpg": ("jpg", "high", "highres", "print"),
    "raw": ("raw", "crudos", "masters"),
}

# 视频: 角色 -> 候选文件夹名（按优先级）
VIDEO_ROLES: Dict[str, Tuple[str, ...]] = {
    "web": ("webmp4", "preview"),
    "hd": ("hd", "baja"),
    "raw": ("alta", "raw"),
}

# 不作为时刻列出的文件夹（不区分大小写）
RESERVED_FOLDERS = frozenset(
    {name for names in PHOTO_ROLES.values() for name in names}
    | {name for names in VIDEO_ROLES.values() for name in names}
    | {"selects", "fotografias"}
)

VALID_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "mp4", "mov"})

SYSTEM_FILES = frozenset({"thumbs.db", "desktop.ini", ".ds_store", "__macosx"})


def base_name(filename: str) -> str:
    """去掉最后一个扩展名后的小写文件名"""
    if "." not in filename:
        return filename.lower()
    return filename.rsplit(".", 1)[0].lower()


def is_reserved(folder: CloudFolder) -> bool:
    return folder.name.strip().lower() in RESERVED_FOLDERS


def is_system_name(name: str) -> bool:
    """系统生成的文件或文件夹（.DS_Store、._foo、Thumbs.db 等）"""
    lowered = name.lower()
    return lowered.startswith(".") or lowered in SYSTEM_FILES


def is_valid_media(item: CloudFile) -> bool:
    """扩展名在白名单中且 MIME 为 image/* 或 video/*"""
    if is_system_name(item.name):
        return False
    if item.extension not in VALID_EXTENSIONS:
        return False
    return item.is_image or item.is_video


class FormatMatcher:
    """按基础文件名在变体文件夹中查找同名文件

    先查本级变体文件夹，找不到再交给 fallback（画廊根目录的变体文件夹）
    """

    def __init__(
        self,
        variants: Dict[str, List[CloudFile]] = None,
        fallback: Optional["FormatMatcher"] = None
    ):
        """
        Args:
            variants: 小写文件夹名 -> 该文件夹中的文件
            fallback: 上一级匹配器
        """
        self.fallback = fallback
        self._maps: Dict[str, Dict[str, CloudFile]] = {}
        for folder_name, files in (variants or {}).items():
            index = self._maps.setdefault(folder_name.lower(), {})
            for item in files:
                # 同名时保留第一个
                index.setdefault(base_name(item.name), item)

    @classmethod
    def from_listings(
        cls,
        folders: Sequence[CloudFolder],
        listings: Iterable[List[CloudFile]],
        fallback: Optional["FormatMatcher"] = None
    ) -> "FormatMatcher":
        variants: Dict[str, List[CloudFile]] = {}
        for folder, files in zip(folders, listings):
            variants.setdefault(folder.name.strip().lower(), []).extend(files)
        return cls(variants, fallback)

    @property
    def empty(self) -> bool:
        own = not any(self._maps.values())
        return own and (self.fallback is None or self.fallback.empty)

    def _find_local(self, folder_names: Sequence[str], key: str) -> Optional[CloudFile]:
        for name in folder_names:
            match = self._maps.get(name, {}).get(key)
            if match is not None:
                return match
        return None

    def find(self, folder_names: Sequence[str], key: str) -> Optional[CloudFile]:
        """按优先级查找，先本级后 fallback"""
        match = self._find_local(folder_names, key)
        if match is None and self.fallback is not None:
            return self.fallback.find(folder_names, key)
        return match

    def formats_for(self, item: CloudFile) -> Optional[Dict[str, Any]]:
        """生成媒体项的 formats 映射

        没有任何变体文件夹时返回 None
        """
        if self.empty:
            return None

        key = base_name(item.name)
        if item.is_video:
            web = self.find(VIDEO_ROLES["web"], key)
            hd = self.find(VIDEO_ROLES["hd"], key)
            raw = self.find(VIDEO_ROLES["raw"], key)
            return {
                "web": web.id if web else item.id,
                "hd": hd.id if hd else None,
                "raw": {"id": raw.id, "name": raw.name} if raw else None,
            }

        web = self.find(PHOTO_ROLES["web"], key)
        full = self.find(PHOTO_ROLES["jpg"], key) or web
        raw = self.find(PHOTO_ROLES["raw"], key)
        return {
            "web": web.id if web else item.id,
            "jpg": full.id if full else None,
            "raw": {"id": raw.id, "name": raw.name} if raw else None,
        }
