"""
文件名处理

Content-Disposition 的 filename 参数只能安全地携带 ASCII
"""
import unicodedata
from typing import Set
from urllib.parse import quote

DEFAULT_FILENAME = "download"


def sanitize_filename(name: str) -> str:
    """生成 ASCII 安全的文件名

    Unicode 规范化后去掉变音符号，剩余的非 ASCII 字符替换为 "_"，
    引号、反斜杠与控制字符直接删除

    Examples:
        >>> sanitize_filename("Café Ñandú.jpg")
        'Cafe Nandu.jpg'
    """
    normalized = unicodedata.normalize("NFKD", name or "")
    chars = []
    for char in normalized:
        if unicodedata.combining(char):
            continue
        code = ord(char)
        if code < 32 or code == 127 or char in '"\\':
            continue
        chars.append(char if code < 128 else "_")
    return "".join(chars).strip() or DEFAULT_FILENAME


def content_disposition(name: str, disposition: str = "attachment") -> str:
    """生成 Content-Disposition 头（ASCII filename + RFC 5987 filename*）"""
    encoded = quote(name or DEFAULT_FILENAME, safe="")
    return f"{disposition}; filename=\"{sanitize_filename(name)}\"; filename*=UTF-8''{encoded}"


def unique_name(name: str, used: Set[str]) -> str:
    """压缩包内去重: a.jpg, a (1).jpg, a (2).jpg ..."""
    candidate = name
    if "." in name and not name.startswith("."):
        stem, ext = name.rsplit(".", 1)
        ext = f".{ext}"
    else:
        stem, ext = name, ""

    counter = 1
    while candidate.lower() in used:
        candidate = f"{stem} ({counter}){ext}"
        counter += 1

    used.add(candidate.lower())
    return candidate
