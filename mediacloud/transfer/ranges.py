"""
HTTP Range 解析
"""
import re
from typing import Optional, Tuple

from ..core.exceptions import RangeNotSatisfiableError

_RANGE = re.compile(r"^\s*bytes\s*=\s*(\d*)\s*-\s*(\d*)\s*$", re.IGNORECASE)


def parse_range(header: Optional[str], total: Optional[int]) -> Optional[Tuple[int, int]]:
    """解析单段 Range 头

    Args:
        header: Range 请求头，例如 "bytes=100-199"、"bytes=100-"、"bytes=-500"
        total: 文件总大小，未知时为 None

    Returns:
        Optional[Tuple[int, int]]: (start, end) 闭区间；没有或无法识别的 Range 返回 None
        （按完整文件响应）

    Raises:
        RangeNotSatisfiableError: 范围超出文件大小
    """
    if not header:
        return None

    match = _RANGE.match(header)
    if not match:
        # 多段范围或其他单位按完整响应处理
        return None

    first, last = match.groups()
    if not first and not last:
        return None

    if total is None:
        # 大小未知时只能转发明确的区间
        if first and last and int(first) <= int(last):
            return int(first), int(last)
        return None

    if not first:
        # bytes=-N: 最后 N 个字节
        suffix = int(last)
        if suffix == 0 or total == 0:
            raise RangeNotSatisfiableError(total)
        return max(total - suffix, 0), total - 1

    start = int(first)
    end = int(last) if last else total - 1
    if start >= total or start > end:
        raise RangeNotSatisfiableError(total)
    return start, min(end, total - 1)


def content_range(start: int, end: int, total: Optional[int]) -> str:
    return f"bytes {start}-{end}/{total if total is not None else '*'}"
