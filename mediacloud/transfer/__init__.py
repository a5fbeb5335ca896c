"""
传输层

下载、打包、Range 流媒体与缩略图
"""

from .filenames import content_disposition, sanitize_filename, unique_name
from .ranges import content_range, parse_range
from .service import (
    ArchiveResult,
    DownloadResult,
    StreamResult,
    ThumbnailResult,
    TransferService,
    iter_bytes,
)

__all__ = [
    "content_disposition",
    "sanitize_filename",
    "unique_name",
    "content_range",
    "parse_range",
    "ArchiveResult",
    "DownloadResult",
    "StreamResult",
    "ThumbnailResult",
    "TransferService",
    "iter_bytes",
]
