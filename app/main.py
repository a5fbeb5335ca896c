"""
FastAPI 主应用入口

MediaCloud 网关：统一 Google Drive / OneDrive / Dropbox / Koofr 的浏览、画廊索引与传输
"""
import logging
import os
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from tortoise import Tortoise

from mediacloud import __version__

from app.core.config import Settings, get_settings
from app.core.exceptions import register_exception_handlers
from app.api.routes import accounts, cloud, connect, galleries, system, transfer
from app.tasks import drain

logger = logging.getLogger(__name__)

ROUTERS = (accounts, connect, cloud, transfer, galleries, system)

# 前端需要读取的响应头
EXPOSED_HEADERS = [
    "Content-Disposition",
    "Content-Range",
    "Accept-Ranges",
    "X-Thumbnail-Source",
    "X-Archive-Failures",
]


def configure_logging(settings: Settings) -> None:
    """控制台 + 数据目录下的滚动日志文件（/api/system/logs 读取该文件）"""
    settings.data_dir.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(settings.log.format)
    rotating = RotatingFileHandler(
        settings.data_dir / "app.log",
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8"
    )
    console = logging.StreamHandler()
    for handler in (rotating, console):
        handler.setFormatter(formatter)

    logging.basicConfig(level=settings.log.level.upper(), handlers=[console, rotating])
    # httpx 每个请求一条 INFO，只在调试时保留
    if not settings.gateway.debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)


def _database_url(url: str) -> str:
    """展开 SQLite 路径中的 ~"""
    prefix = "sqlite://"
    if url.startswith(prefix + "~"):
        return prefix + os.path.expanduser(url[len(prefix):])
    return url


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    await Tortoise.init(
        db_url=_database_url(settings.database.url),
        modules={"models": ["app.models"]}
    )
    if settings.database.generate_schemas:
        await Tortoise.generate_schemas()
    logger.info(f"Database ready: {settings.database.url}")

    if not settings.security.secret:
        logger.warning("DATA_ENCRYPTION_KEY / AUTH_SECRET not set, Koofr accounts cannot be connected")
    logger.info(f"MediaCloud gateway {__version__} listening for {settings.gateway.app_url}")

    try:
        yield
    finally:
        # 等待令牌撤销等分离任务结束再断开数据库
        pending = await drain(timeout=10)
        if pending:
            logger.warning(f"{pending} background task(s) cancelled on shutdown")
        await Tortoise.close_connections()
        logger.info("MediaCloud gateway stopped")


def create_app(settings: Settings = None) -> FastAPI:
    """创建 FastAPI 应用"""
    settings = settings or get_settings()

    app = FastAPI(
        title="MediaCloud 网关",
        description="统一多个云存储的浏览、画廊索引、下载与流媒体服务",
        version=__version__,
        lifespan=lifespan
    )
    app.state.settings = settings

    if settings.gateway.enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.gateway.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=EXPOSED_HEADERS,
        )

    register_exception_handlers(app)
    for module in ROUTERS:
        app.include_router(module.router, prefix="/api")

    @app.get("/")
    async def root():
        return {
            "name": "MediaCloud 网关",
            "version": __version__,
            "docs": "/docs",
            "health": "/api/system/health",
        }

    return app


configure_logging(get_settings())
app = create_app()
