"""
Providers 包

导出 Provider 工厂和基类，并导入全部 Provider（触发自动注册）
"""

from .factory import ProviderFactory, provider_factory, list_files, list_folders
from .base import BaseProvider

from . import google_drive  # noqa: F401
from . import microsoft  # noqa: F401
from . import dropbox  # noqa: F401
from . import koofr  # noqa: F401

__all__ = [
    "ProviderFactory",
    "provider_factory",
    "BaseProvider",
    "list_folders",
    "list_files",
]
