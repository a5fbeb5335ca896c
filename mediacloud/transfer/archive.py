"""
内存 ZIP 打包

源文件（JPEG、RAW、视频）本身已压缩，仅存储不再压缩
"""
import io
import zipfile
from typing import Iterable, Tuple


def build_zip(entries: Iterable[Tuple[str, bytes]]) -> bytes:
    """将 (文件名, 内容) 写入 ZIP_STORED 压缩包"""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_STORED) as archive:
        for name, data in entries:
            archive.writestr(name, data)
    return buffer.getvalue()


def error_entry(name: str, message: str) -> Tuple[str, bytes]:
    """单个文件失败时写入压缩包的占位文件"""
    text = f"Failed to download {name}\n\n{message}\n"
    return f"{name}.error.txt", text.encode("utf-8")
