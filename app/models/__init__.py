"""
Tortoise ORM 数据模型
"""
from .cloud_account import CloudAccount, ProviderTag
from .gallery import ExternalVideo, Gallery

__all__ = ["CloudAccount", "ProviderTag", "Gallery", "ExternalVideo"]
