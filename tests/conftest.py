"""
测试公共夹具

提供商 HTTP 全部通过 httpx.MockTransport 模拟
"""
import asyncio
import io
import time
from typing import Dict, List, Optional

import httpx
import pytest
from PIL import Image
from tortoise import Tortoise

from mediacloud.config import CoreConfig, OAuthAppConfig
from mediacloud.core.auth import CredentialStore
from mediacloud.core.models import AuthToken, ByteStream, ProviderType, StoredCredential

from app.core.config import GatewaySettings, ProviderSettings, SecuritySettings, Settings


class MemoryStore(CredentialStore):
    """内存凭据存储"""

    def __init__(self):
        self.accounts: Dict[str, StoredCredential] = {}
        self.saved: List[AuthToken] = []
        self.fail_save = False

    def add(
        self,
        account_id: str,
        provider: ProviderType,
        access_token: str = "access",
        refresh_token: Optional[str] = "refresh",
        expires_in: Optional[float] = 3600,
        email: Optional[str] = None
    ) -> StoredCredential:
        stored = StoredCredential(
            account_id=account_id,
            provider=provider,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=time.time() + expires_in if expires_in is not None else None,
            email=email,
            provider_account_id=email
        )
        self.accounts[account_id] = stored
        return stored

    async def get_account(self, account_id: str) -> Optional[StoredCredential]:
        return self.accounts.get(account_id)

    async def save_token(self, account_id: str, token: AuthToken) -> None:
        if self.fail_save:
            raise RuntimeError("database is locked")
        self.saved.append(token)
        stored = self.accounts[account_id]
        stored.access_token = token.access_token
        stored.refresh_token = token.refresh_token
        stored.expires_at = token.expires_at


class StubFactory:
    """只负责把固定的适配器交给调用方的 Provider 工厂"""

    def __init__(self, adapter_builder):
        self.adapter_builder = adapter_builder
        self.connects = 0

    async def connect(self, auth_factory, account_id, **kwargs):
        self.connects += 1
        return self.adapter_builder()


def stream_of(data: bytes, status_code: int = 200, content_type: str = "application/octet-stream",
              chunk_size: int = 3, headers: Dict[str, str] = None) -> ByteStream:
    """把字节串包装为 ByteStream（按 chunk_size 分块）"""
    closed = []

    async def iterator():
        for offset in range(0, len(data), chunk_size):
            yield data[offset:offset + chunk_size]

    async def close():
        closed.append(True)

    all_headers = {"content-length": str(len(data)), "content-type": content_type}
    all_headers.update(headers or {})
    stream = ByteStream(status_code=status_code, headers=all_headers, iterator=iterator(), close=close)
    stream.closed = closed
    return stream


def image_bytes(width: int, height: int, fmt: str = "PNG", color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def core_config() -> CoreConfig:
    app = OAuthAppConfig(CLIENT_ID="client-id", CLIENT_SECRET="client-secret")
    return CoreConfig(
        google=app,
        microsoft=app,
        dropbox=app,
        APP_URL="https://gallery.test",
        ENCRYPTION_SECRET="test-secret",
    )


@pytest.fixture
def mock_client():
    """构造使用 MockTransport 的 httpx.AsyncClient"""
    def build(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return build


@pytest.fixture
def make_stream():
    return stream_of


@pytest.fixture
def make_image():
    return image_bytes


@pytest.fixture
def stub_factory():
    return StubFactory


def make_settings(**security):
    """测试用应用配置（OAuth 应用与加密密钥均已配置）"""
    security.setdefault("DATA_ENCRYPTION_KEY", "test-secret")
    return Settings(
        gateway=GatewaySettings(APP_URL="https://gallery.test"),
        security=SecuritySettings(**security),
        providers=ProviderSettings(
            GOOGLE_CLIENT_ID="client-id",
            GOOGLE_CLIENT_SECRET="client-secret",
            MICROSOFT_CLIENT_ID="client-id",
            MICROSOFT_CLIENT_SECRET="client-secret",
            DROPBOX_CLIENT_ID="client-id",
            DROPBOX_CLIENT_SECRET="client-secret",
        ),
    )


async def init_db() -> None:
    await Tortoise.init(db_url="sqlite://:memory:", modules={"models": ["app.models"]})
    await Tortoise.generate_schemas()


@pytest.fixture
def run_db():
    """在内存 SQLite 上运行协程函数"""
    def run(main):
        async def wrapper():
            await init_db()
            try:
                return await main()
            finally:
                await Tortoise.close_connections()
        return asyncio.run(wrapper())
    return run
