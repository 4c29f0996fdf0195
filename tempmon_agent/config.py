"""
配置管理模块

从 YAML 文件加载配置，环境变量（TEMPMON_AGENT_ 前缀）优先于文件内容。
配置在进程入口加载一次，之后以只读对象传入各组件。
"""

import os
import socket
from pathlib import Path
from typing import Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

DEFAULT_CONFIG_PATH = "/etc/tempmon/agent.yaml"


class ServerConfig(BaseModel):
    """中心服务配置"""
    model_config = ConfigDict(frozen=True)

    address: str = Field(default="http://localhost:8080", description="中心服务地址")
    timeout: float = Field(default=10.0, gt=0, description="提交超时（秒）")

    @property
    def url(self) -> str:
        """补全 scheme 的服务地址"""
        address = self.address.rstrip("/")
        if "://" not in address:
            address = f"http://{address}"
        return address


class ClientConfig(BaseModel):
    """采集周期与主机标识"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default="", description="主机标识，为空时使用本机 hostname")
    interval: float = Field(default=30.0, gt=0, description="采集间隔（秒）")


class MonitoringConfig(BaseModel):
    """按类型启用/禁用上报（OTHER 类型始终上报）"""
    model_config = ConfigDict(frozen=True)

    cpu: bool = True
    gpu: bool = True
    disk: bool = True


class SysfsConfig(BaseModel):
    """sysfs 路径"""
    model_config = ConfigDict(frozen=True)

    hwmon_path: str = "/sys/class/hwmon"
    thermal_path: str = "/sys/class/thermal"


class LoggingConfig(BaseModel):
    """日志配置"""
    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    file: Optional[str] = None


class AgentConfig(BaseSettings):
    """Agent 配置模型"""
    model_config = SettingsConfigDict(
        env_prefix="TEMPMON_AGENT_",
        env_nested_delimiter="__",
        frozen=True,
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    sysfs: SysfsConfig = Field(default_factory=SysfsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    listen: Optional[str] = Field(default=None, description="本地 API 监听地址，如 0.0.0.0:9109；为空则不启动")
    token: Optional[str] = Field(default=None, description="本地 API 认证 Token")

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

    @property
    def host_id(self) -> str:
        """上报使用的主机标识"""
        return self.client.id or socket.gethostname()


def load_config(config_path: Optional[str] = None) -> AgentConfig:
    """
    加载配置文件

    Args:
        config_path: 配置文件路径，默认取环境变量 TEMPMON_AGENT_CONFIG，
            再退回 /etc/tempmon/agent.yaml

    Returns:
        AgentConfig 实例（文件不存在时使用默认值 + 环境变量）
    """
    if config_path is None:
        config_path = os.getenv("TEMPMON_AGENT_CONFIG", DEFAULT_CONFIG_PATH)

    config_file = Path(config_path)
    if not config_file.exists():
        return AgentConfig()

    with open(config_file, "r", encoding="utf-8") as f:
        config_data = yaml.safe_load(f) or {}

    return AgentConfig(**config_data)
