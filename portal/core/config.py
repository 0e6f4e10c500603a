"""
应用配置模块

使用 pydantic-settings 管理环境变量和应用配置
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Union
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
import json

# 项目根目录
BASE_DIR = Path(__file__).resolve().parent.parent.parent


def _split_list(v):
    """解析 JSON 数组或逗号分隔字符串"""
    if isinstance(v, str):
        try:
            return json.loads(v)
        except json.JSONDecodeError:
            return [item.strip() for item in v.split(",") if item.strip()]
    return v


class Settings(BaseSettings):
    """应用配置类"""

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # 应用基础配置
    app_name: str = "Portal-API"
    app_env: str = "development"
    debug: bool = True

    # 数据库配置
    database_url: str = f"sqlite+aiosqlite:///{BASE_DIR / 'data' / 'portal.db'}"
    # 序列计数器库；为空时 PostgreSQL 与主库共用，SQLite 使用同目录下的独立文件
    sequence_database_url: Optional[str] = None

    # CORS 配置
    cors_origins: Union[str, List[str]] = ["*"]

    # 认证配置
    secret_key: str = "change-this-secret-key-in-production"
    refresh_secret_key: str = "change-this-refresh-secret-key-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7
    refresh_token_expire_days: int = 30
    bcrypt_rounds: int = 12
    require_email_verification: bool = False

    # 文件上传配置
    upload_dir: str = str(BASE_DIR / "data" / "uploads")
    max_file_size: int = 10 * 1024 * 1024
    allowed_file_types: Union[str, List[str]] = ["pdf", "doc", "docx", "png", "jpg", "jpeg"]

    # 申请流程配置
    submit_progress_threshold: int = 80

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        return _split_list(v)

    @field_validator("allowed_file_types", mode="before")
    @classmethod
    def parse_allowed_file_types(cls, v):
        v = _split_list(v)
        return [ext.lower().lstrip(".") for ext in v]

    @field_validator("database_url", "sequence_database_url", mode="before")
    @classmethod
    def fix_database_path(cls, v):
        if isinstance(v, str) and "./data/" in v:
            return v.replace("./data/", str(BASE_DIR / "data") + "/")
        return v

    @property
    def is_development(self) -> bool:
        """是否为开发环境"""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """是否为生产环境"""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """获取配置单例"""
    return Settings()


# 全局配置实例
settings = get_settings()
