"""
数据模型定义

使用 Pydantic 定义采样、上报读数和本地 API 响应数据结构
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class SensorType(str, Enum):
    """传感器类型"""
    CPU = "CPU"
    GPU = "GPU"
    DISK = "DISK"
    OTHER = "OTHER"


class SensorSample(BaseModel):
    """单次扫描得到的传感器采样（仅在本地存在）"""
    id: str = Field(..., description="传感器 ID，如 hwmon0_1 或 thermal_zone0")
    type: SensorType = Field(..., description="传感器类型")
    name: str = Field(..., description="传感器名称（label 或合成名称）")
    milli_celsius: int = Field(..., description="原始读数，千分之一摄氏度")

    @property
    def celsius(self) -> float:
        return self.milli_celsius / 1000.0


class TemperatureReading(BaseModel):
    """上报给中心服务的读数"""
    sensor_id: str
    host_id: str
    celsius: float
    type: SensorType
    name: str
    observed_at: datetime = Field(..., description="批次组装时间（UTC），同一批次共享")


class SubmitResponse(BaseModel):
    """中心服务提交响应"""
    success: bool
    message: str = ""


class SensorsResponse(BaseModel):
    """本地 /v1/sensors 响应"""
    host_id: str = Field(..., description="主机标识")
    ts: datetime = Field(..., description="扫描时间")
    sensors: List[SensorSample] = Field(default_factory=list, description="传感器列表")
    skipped: int = Field(0, description="读取失败被跳过的通道数")


class HealthResponse(BaseModel):
    """健康检查响应"""
    status: str = Field(..., description="健康状态: ok|degraded|error")
    timestamp: datetime = Field(..., description="检查时间")
    checks: Dict[str, str] = Field(..., description="各组件检查结果")
    details: Dict[str, Optional[str]] = Field(..., description="详细信息")
