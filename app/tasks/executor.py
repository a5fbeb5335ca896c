"""
后台任务执行器

尽力而为的旁路调用（令牌撤销等）以独立任务运行，错误只记录日志
"""
import asyncio
import logging
from typing import Any, Awaitable, Set

logger = logging.getLogger(__name__)

# 持有引用，避免任务在完成前被回收
_running: Set["asyncio.Task[Any]"] = set()


async def _guard(coro: Awaitable[Any], label: str) -> Any:
    try:
        result = await coro
        logger.debug(f"Detached task '{label}' finished")
        return result
    except Exception as e:
        logger.exception(f"Detached task '{label}' failed: {e}")
        return None


def run_detached(coro: Awaitable[Any], label: str) -> "asyncio.Task[Any]":
    """
    启动分离任务

    Args:
        coro: 要执行的协程
        label: 日志中使用的任务名称

    Returns:
        asyncio.Task（结果除日志外被丢弃）
    """
    task = asyncio.create_task(_guard(coro, label))
    _running.add(task)
    task.add_done_callback(_running.discard)
    return task


async def drain(timeout: float = 5.0) -> int:
    """
    等待仍在运行的分离任务（应用关闭时调用）

    Returns:
        超时后被取消的任务数
    """
    if not _running:
        return 0
    logger.info(f"Waiting for {len(_running)} detached task(s)")
    _, pending = await asyncio.wait(list(_running), timeout=timeout)
    for task in pending:
        task.cancel()
    return len(pending)
