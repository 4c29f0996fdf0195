"""
数据模型定义

Pydantic 请求/响应模型（用于 API 和数据验证）
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


# =============================================================================
# 提交
# =============================================================================

class WireReading(BaseModel):
    """Agent 上报的单条读数"""
    sensor_id: str
    host_id: str
    celsius: float
    type: SensorType = SensorType.OTHER
    name: str = ""
    observed_at: datetime = Field(..., description="Agent 采集时间")


class SubmitReadingsRequest(BaseModel):
    """POST /api/readings 请求"""
    readings: List[WireReading] = Field(default_factory=list)


class SubmitReadingsResponse(BaseModel):
    """POST /api/readings 响应"""
    success: bool
    message: str = ""


# =============================================================================
# 查询
# =============================================================================

class ReadingResponse(BaseModel):
    """读数"""
    id: int
    sensor_id: str
    host_id: str
    celsius: float
    type: str
    name: str
    observed_at: str


class HistoryResponse(BaseModel):
    """GET /api/readings/history 响应"""
    limit: int
    count: int
    data: List[ReadingResponse] = Field(default_factory=list)


class CurrentReadingsResponse(BaseModel):
    """GET /api/hosts/{host_id}/current 响应"""
    host_id: str
    data: List[ReadingResponse] = Field(default_factory=list)


class SensorStats(BaseModel):
    """单个传感器的区间统计"""
    host_id: str
    sensor_id: str
    min: float
    max: float
    avg: float
    count: int


class StatsResponse(BaseModel):
    """GET /api/readings/stats 响应"""
    data: List[SensorStats] = Field(default_factory=list)


# =============================================================================
# 主机
# =============================================================================

class HostResponse(BaseModel):
    """主机"""
    host_id: str
    first_seen: str
    last_seen: str
    sensor_count: int = 0
    is_online: bool = Field(False, description="last_seen 在 5 分钟之内")


class HostListResponse(BaseModel):
    """主机分页响应"""
    total: int
    limit: int
    offset: int
    data: List[HostResponse] = Field(default_factory=list)


class SensorInfo(BaseModel):
    """主机下的传感器及最新读数"""
    sensor_id: str
    type: str
    name: str
    current_celsius: Optional[float] = None
    last_reading: Optional[str] = None


class HostDetailResponse(BaseModel):
    """GET /api/hosts/{host_id} 响应"""
    host: HostResponse
    sensors: List[SensorInfo] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """健康检查响应"""
    status: str
    timestamp: str
    checks: Dict[str, str]
