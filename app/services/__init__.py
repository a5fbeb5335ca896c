"""
业务服务模块
"""
from .cloud_service import CloudService
from .account_service import AccountService
from .gallery_service import GalleryService
from .credential_store import TortoiseCredentialStore

__all__ = ["CloudService", "AccountService", "GalleryService", "TortoiseCredentialStore"]
