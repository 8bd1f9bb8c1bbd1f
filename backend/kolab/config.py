"""
应用配置
从环境变量 / .env 读取配置，房源目录在启动时加载一次并注入
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional
from pydantic import ConfigDict
from pydantic_settings import BaseSettings

from kolab_core.domain.catalog import PropertyCatalog

DEFAULT_CATALOG_PATH = Path(__file__).parent / "catalog" / "properties.yaml"


class Settings(BaseSettings):
    """应用设置"""

    # 应用基础配置
    APP_NAME: str = "Kolab PMS"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # 数据库配置
    DATABASE_URL: str = "sqlite:///./kolab.db"

    # 房源目录（YAML），为空时使用内置目录
    CATALOG_PATH: Optional[str] = None

    # 写入确认轮询
    BOOKING_CONFIRM_TIMEOUT_SECONDS: float = 5.0
    BOOKING_CONFIRM_POLL_INTERVAL_SECONDS: float = 0.25

    # 周期维修调度
    ENABLE_SCHEDULER: bool = True
    RECURRING_CHECK_CRON: str = "5 0 * * *"

    # 保洁/维修人员名单
    STAFF: List[str] = ["Unassigned", "Mai", "Tuan", "Linh", "Dat", "Thanh", "Ngoc"]

    model_config = ConfigDict(env_file=".env", case_sensitive=True)


# 全局设置实例
settings = Settings()


def load_catalog(path: Optional[str] = None) -> PropertyCatalog:
    """加载房源目录"""
    return PropertyCatalog.from_yaml(path or settings.CATALOG_PATH or DEFAULT_CATALOG_PATH)


@lru_cache(maxsize=1)
def _default_catalog() -> PropertyCatalog:
    return load_catalog()


def get_catalog() -> PropertyCatalog:
    """依赖注入：获取房源目录（进程内只加载一次）"""
    return _default_catalog()
