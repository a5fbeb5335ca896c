"""
图片缩放（Pillow）

统一输出 JPEG，按 "装入边界、不放大" 的规则缩放
"""
import io
import logging
from typing import Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

OUTPUT_MIME_TYPE = "image/jpeg"


def resize_image(data: bytes, size: int, quality: int = 85) -> bytes:
    """缩放图片到 size x size 边界内并编码为 JPEG

    Raises:
        ValueError: 无法识别或损坏的图片数据
    """
    try:
        image = ImageOps.exif_transpose(Image.open(io.BytesIO(data)))
        # thumbnail() 只会缩小
        image.thumbnail((size, size), Image.LANCZOS)
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")

        output = io.BytesIO()
        image.save(output, format="JPEG", quality=quality, optimize=True)
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Unsupported image data: {e}")

    return output.getvalue()


def shrink_if_larger(
    data: bytes,
    content_type: str,
    size: int,
    quality: int = 85
) -> Tuple[bytes, str]:
    """原生缩略图超过请求尺寸时再缩放，否则原样返回"""
    try:
        with Image.open(io.BytesIO(data)) as image:
            width, height = image.size
    except (UnidentifiedImageError, OSError):
        return data, content_type

    if max(width, height) <= size:
        return data, content_type

    logger.debug(f"Native thumbnail {width}x{height} exceeds {size}, resizing")
    return resize_image(data, size, quality), OUTPUT_MIME_TYPE
