"""
Koofr 特定配置
"""
from dataclasses import dataclass


@dataclass
class KoofrConfig:
    """Koofr 配置"""

    BASE_URL: str = "https://app.koofr.net"

    @property
    def api_url(self) -> str:
        return f"{self.BASE_URL}/api/v2"

    @property
    def content_url(self) -> str:
        return f"{self.BASE_URL}/content/api/v2"


# 默认配置实例
default_config = KoofrConfig()
