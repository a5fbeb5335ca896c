"""
MIME 类型推断
"""
import mimetypes
from typing import Optional

# 常见媒体扩展名（优先于系统 mimetypes 表）
MIME_MAP = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
    "heic": "image/heic",
    "heif": "image/heif",
    "tif": "image/tiff",
    "tiff": "image/tiff",
    "cr2": "image/x-canon-cr2",
    "nef": "image/x-nikon-nef",
    "arw": "image/x-sony-arw",
    "dng": "image/x-adobe-dng",
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "m4v": "video/x-m4v",
    "avi": "video/x-msvideo",
    "mkv": "video/x-matroska",
    "webm": "video/webm",
    "zip": "application/zip",
}

# 提供商经常把音频报告为 video/* 或二进制类型
AUDIO_MIME_MAP = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "m4a": "audio/mp4",
    "aac": "audio/aac",
    "flac": "audio/flac",
    "ogg": "audio/ogg",
    "opus": "audio/opus",
}

GENERIC_MIME_TYPES = {
    "",
    "application/octet-stream",
    "binary/octet-stream",
    "application/binary",
}

DEFAULT_MIME_TYPE = "application/octet-stream"


def extension_of(filename: str) -> str:
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


def guess_mime_type(filename: str) -> str:
    """按扩展名推断 MIME 类型"""
    ext = extension_of(filename)
    if ext in AUDIO_MIME_MAP:
        return AUDIO_MIME_MAP[ext]
    if ext in MIME_MAP:
        return MIME_MAP[ext]
    guessed, _ = mimetypes.guess_type(filename or "")
    return guessed or DEFAULT_MIME_TYPE


def detect_mime(filename: str, provider_mime: Optional[str] = None) -> str:
    """综合提供商元数据和扩展名得到 MIME 类型

    音频扩展名总是覆盖提供商返回值；通用类型按扩展名重新推断
    """
    ext = extension_of(filename)
    if ext in AUDIO_MIME_MAP:
        return AUDIO_MIME_MAP[ext]

    mime = (provider_mime or "").split(";")[0].strip().lower()
    if mime in GENERIC_MIME_TYPES:
        return guess_mime_type(filename)
    return mime
