"""
画廊数据模型
"""
from tortoise import fields
from tortoise.models import Model


class Gallery(Model):
    """画廊模型

    一个画廊对应某个云存储账号中的一个根文件夹
    """

    id = fields.CharField(max_length=64, pk=True, description="画廊ID")

    # 所属用户
    user_id = fields.CharField(max_length=64, index=True, description="用户ID")

    name = fields.CharField(max_length=255, description="画廊名称")

    # 关联云存储账号
    cloud_account = fields.ForeignKeyField(
        "models.CloudAccount",
        related_name="galleries",
        on_delete=fields.CASCADE,
        description="云存储账号"
    )

    # 根文件夹 ID（提供商不透明 ID）
    root_folder_id = fields.CharField(max_length=1024, description="根文件夹ID")

    # 显式排序
    file_order = fields.JSONField(null=True, description="文件顺序")
    moments_order = fields.JSONField(null=True, description="时刻顺序")

    # 是否关联分辨率变体文件夹
    match_formats = fields.BooleanField(default=True, description="关联变体文件夹")

    created_at = fields.DatetimeField(auto_now_add=True, description="创建时间")
    updated_at = fields.DatetimeField(auto_now=True, description="更新时间")

    class Meta:
        table = "galleries"
        table_description = "画廊表"

    def __str__(self) -> str:
        return f"Gallery({self.id}: {self.name})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "cloud_account_id": self.cloud_account_id,
            "root_folder_id": self.root_folder_id,
            "file_order": self.file_order or [],
            "moments_order": self.moments_order or [],
            "match_formats": self.match_formats,
            "created_at": int(self.created_at.timestamp()) if self.created_at else 0,
        }


class ExternalVideo(Model):
    """外部托管视频（YouTube / Vimeo）"""

    id = fields.CharField(max_length=64, pk=True, description="视频ID")

    gallery = fields.ForeignKeyField(
        "models.Gallery",
        related_name="external_videos",
        on_delete=fields.CASCADE,
        description="所属画廊"
    )

    # youtube / vimeo
    provider = fields.CharField(max_length=20, description="视频平台")
    external_id = fields.CharField(max_length=255, description="平台视频ID")
    title = fields.CharField(max_length=255, null=True, description="标题")
    thumbnail = fields.CharField(max_length=1024, null=True, description="缩略图")
    duration = fields.IntField(null=True, description="时长(秒)")

    # 所属时刻名称，为空时归入 highlights
    moment_name = fields.CharField(max_length=255, null=True, description="时刻名称")

    created_at = fields.DatetimeField(auto_now_add=True, description="创建时间")

    class Meta:
        table = "external_videos"
        table_description = "外部视频表"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "provider": self.provider,
            "external_id": self.external_id,
            "title": self.title,
            "thumbnail": self.thumbnail,
            "duration": self.duration,
            "moment_name": self.moment_name,
        }
