"""
云存储账号数据模型
"""
from enum import Enum

from tortoise import fields
from tortoise.models import Model


class ProviderTag(str, Enum):
    """提供商标识"""
    GOOGLE = "google"
    MICROSOFT = "microsoft"
    DROPBOX = "dropbox"
    KOOFR = "koofr"


class CloudAccount(Model):
    """云存储账号模型

    同一用户的同一提供商账号只有一行，重新连接时更新
    """

    # 主键：UUID（十六进制）
    id = fields.CharField(max_length=64, pk=True, description="账号ID")

    # 所属用户
    user_id = fields.CharField(max_length=64, index=True, description="用户ID")

    # 提供商
    provider = fields.CharEnumField(ProviderTag, max_length=20, description="提供商")

    # 提供商侧账号 ID（Koofr 使用邮箱）
    provider_account_id = fields.CharField(max_length=255, description="提供商账号ID")

    # 邮箱 / 显示名
    email = fields.CharField(max_length=255, null=True, description="邮箱")
    name = fields.CharField(max_length=255, null=True, description="名称")

    # 凭据（可能已加密；Koofr 存放应用密码）
    access_token = fields.TextField(description="访问令牌或密码")
    refresh_token = fields.TextField(null=True, description="刷新令牌")

    # 过期时间（Unix 时间戳），为空表示撤销前一直有效
    expires_at = fields.FloatField(null=True, description="过期时间")

    # 时间戳
    created_at = fields.DatetimeField(auto_now_add=True, description="创建时间")
    updated_at = fields.DatetimeField(auto_now=True, description="更新时间")

    class Meta:
        table = "cloud_accounts"
        table_description = "云存储账号表"
        unique_together = (("user_id", "provider", "provider_account_id"),)

    def __str__(self) -> str:
        return f"CloudAccount({self.id}: {self.provider} {self.email})"

    def to_dict(self) -> dict:
        """转换为字典（不包含凭据）"""
        return {
            "id": self.id,
            "provider": self.provider.value if isinstance(self.provider, ProviderTag) else self.provider,
            "provider_account_id": self.provider_account_id,
            "email": self.email,
            "name": self.name,
            "expires_at": self.expires_at,
            "created_at": int(self.created_at.timestamp()) if self.created_at else 0,
            "updated_at": int(self.updated_at.timestamp()) if self.updated_at else 0,
        }
