"""
后台任务模块
"""
from .executor import drain, run_detached

__all__ = ["run_detached", "drain"]
