"""
配置加载模块

从 YAML 加载配置，支持 Pydantic 验证和环境变量覆盖（TEMPMON_ 前缀，嵌套用 __ 分隔）。
"""

import os
from pathlib import Path
from typing import List, Literal, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

DEFAULT_CONFIG_PATH = "tempmon.yaml"


class DatabaseConfig(BaseModel):
    """数据库配置"""
    model_config = ConfigDict(frozen=True)

    type: Literal["sqlite"] = "sqlite"
    path: str = "data/db/tempmon.db"
    timeout: int = 30


class APIConfig(BaseModel):
    """API 服务配置"""
    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: List[str] = ["http://localhost:8080", "http://127.0.0.1:8080"]

    @property
    def listen(self) -> str:
        return f"{self.host}:{self.port}"


class RetentionConfig(BaseModel):
    """数据保留策略（days=0 表示不清理）"""
    model_config = ConfigDict(frozen=True)

    days: int = 30
    cleanup_hour: int = 3


class LoggingConfig(BaseModel):
    """日志配置"""
    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    file: Optional[str] = None
    max_size_mb: int = 50
    backup_count: int = 5


class AppConfig(BaseSettings):
    """应用配置（完整配置）"""
    model_config = SettingsConfigDict(
        env_prefix="TEMPMON_",
        env_nested_delimiter="__",
        frozen=True,
    )

    api: APIConfig = Field(default_factory=APIConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    retention: RetentionConfig = Field(default_factory=RetentionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # 环境变量 > 配置文件 > 默认值
        return env_settings, init_settings


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """
    加载配置文件

    优先级：
    1. 参数指定的路径
    2. 环境变量 TEMPMON_CONFIG
    3. 默认路径 tempmon.yaml

    配置文件中的相对路径以配置文件所在目录为基准。
    """
    if config_path is None:
        config_path = os.environ.get("TEMPMON_CONFIG", DEFAULT_CONFIG_PATH)

    config_file = Path(config_path)
    if not config_file.exists():
        # 配置文件不存在时使用默认配置
        return AppConfig()

    with open(config_file, "r", encoding="utf-8") as f:
        raw_config = yaml.safe_load(f) or {}

    base_dir = config_file.resolve().parent

    def _resolve_path(value: Optional[str]) -> Optional[str]:
        if not value:
            return value
        path = Path(value)
        if path.is_absolute():
            return str(path)
        return str((base_dir / path).resolve())

    if raw_config.get("database", {}).get("path"):
        raw_config["database"]["path"] = _resolve_path(raw_config["database"]["path"])
    if raw_config.get("logging", {}).get("file"):
        raw_config["logging"]["file"] = _resolve_path(raw_config["logging"]["file"])

    return AppConfig(**raw_config)
