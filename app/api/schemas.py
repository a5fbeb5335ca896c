"""
API 数据模型 (Pydantic)
"""
from typing import Any, List, Optional

from pydantic import BaseModel, Field


# ==================== 通用响应 ====================

class ResponseBase(BaseModel):
    """基础响应"""
    success: bool = True
    message: Optional[str] = None


class DataResponse(ResponseBase):
    """数据响应"""
    data: Optional[Any] = None


class ListResponse(ResponseBase):
    """列表响应"""
    items: List[Any] = []
    total: int = 0


# ==================== 账号相关 ====================

class KoofrConnect(BaseModel):
    """连接 Koofr 请求"""
    email: str = Field(..., min_length=3, max_length=255, description="Koofr 邮箱")
    password: str = Field(..., min_length=1, description="Koofr 应用密码")
    name: Optional[str] = Field(None, max_length=255, description="显示名称")


class AccountUpdate(BaseModel):
    """更新账号请求"""
    name: str = Field(..., min_length=1, max_length=255, description="显示名称")


# ==================== 画廊相关 ====================

class GalleryCreate(BaseModel):
    """创建画廊请求"""
    name: str = Field(..., min_length=1, max_length=255, description="画廊名称")
    cloud_account_id: str = Field(..., description="云存储账号 ID")
    root_folder_id: str = Field(..., min_length=1, description="根文件夹 ID")
    match_formats: bool = Field(default=True, description="关联分辨率变体文件夹")


class GalleryOrderUpdate(BaseModel):
    """更新画廊排序请求"""
    file_order: Optional[List[str]] = Field(None, description="文件 ID 顺序")
    moments_order: Optional[List[str]] = Field(None, description="时刻文件夹 ID 顺序")


class ExternalVideoCreate(BaseModel):
    """添加外部视频请求"""
    provider: str = Field(..., description="youtube / vimeo")
    external_id: str = Field(..., min_length=1, description="平台视频 ID")
    title: Optional[str] = None
    thumbnail: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0, description="时长(秒)")
    moment_name: Optional[str] = Field(None, description="所属时刻名称，为空归入 highlights")


class IndexRequest(BaseModel):
    """索引任意文件夹请求"""
    account_id: str = Field(..., description="云存储账号 ID")
    root_folder_id: str = Field(..., min_length=1, description="根文件夹 ID")
    file_order: List[str] = Field(default_factory=list)
    moments_order: List[str] = Field(default_factory=list)
    match_formats: bool = True


# ==================== 传输相关 ====================

class ArchiveFile(BaseModel):
    """打包文件项"""
    id: str = Field(..., min_length=1)
    name: Optional[str] = None


class ArchiveRequest(BaseModel):
    """打包下载请求"""
    account_id: str = Field(..., description="云存储账号 ID")
    files: List[ArchiveFile] = Field(..., description="文件列表")
    archive_name: str = Field(default="download.zip", description="压缩包文件名")
