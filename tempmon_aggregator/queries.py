"""
读数查询

历史、各传感器最新值、区间统计，以及主机清单。全部只读。
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from .database import Database, format_ts
from .models import (
    HostDetailResponse,
    HostListResponse,
    HostResponse,
    ReadingResponse,
    SensorInfo,
    SensorStats,
)

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000

# 最近一次上报在此时间窗内视为在线
ONLINE_WINDOW = timedelta(minutes=5)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_limit(limit: Optional[int]) -> int:
    """limit 不在 (0, 1000] 内时使用默认值 100"""
    if limit is None or limit <= 0 or limit > MAX_LIMIT:
        return DEFAULT_LIMIT
    return limit


class AggregationQueries:
    """读侧查询"""

    def __init__(self, db: Database, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self._clock = clock or _utc_now

    def history(
        self,
        host_id: Optional[str] = None,
        sensor_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[ReadingResponse]:
        """
        查询历史读数

        所有过滤条件可选并以 AND 组合，结果按 observed_at 倒序。
        """
        rows = self.db.query_history(
            host_id=host_id,
            sensor_id=sensor_id,
            start=start,
            end=end,
            limit=normalize_limit(limit),
        )
        return [ReadingResponse(**row) for row in rows]

    def latest_per_sensor(self, host_id: str) -> List[ReadingResponse]:
        """主机下每个传感器的最新读数（每个 sensor_id 至多一条）"""
        if not host_id:
            raise ValueError("host_id is required")
        return [ReadingResponse(**row) for row in self.db.query_latest_per_sensor(host_id)]

    def stats(
        self,
        host_id: Optional[str] = None,
        sensor_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[SensorStats]:
        """
        区间内每个传感器的 min/max/avg/count

        按 (host_id, sensor_id) 分组：hwmon0_1 这类 ID 只在主机内唯一，
        不指定 host_id 时同一个 sensor_id 会按主机各返回一行。
        """
        rows = self.db.query_stats(host_id=host_id, sensor_id=sensor_id, start=start, end=end)
        return [SensorStats(**row) for row in rows]

    def _online_cutoff(self) -> datetime:
        return self._clock() - ONLINE_WINDOW

    def _host(self, row: Dict[str, Any], cutoff: str, **extra) -> HostResponse:
        return HostResponse(is_online=row["last_seen"] > cutoff, **row, **extra)

    def list_hosts(
        self,
        limit: Optional[int] = None,
        offset: int = 0,
        online_only: bool = False,
    ) -> HostListResponse:
        """
        分页列出主机

        Args:
            limit: 每页条数（按历史查询的规则归一化）
            offset: 偏移量
            online_only: 仅返回最近 5 分钟内上报过的主机
        """
        limit = normalize_limit(limit)
        offset = max(offset, 0)
        cutoff = self._online_cutoff()
        rows, total = self.db.list_hosts(
            limit=limit,
            offset=offset,
            online_since=cutoff if online_only else None,
        )
        cutoff_ts = format_ts(cutoff)
        return HostListResponse(
            total=total,
            limit=limit,
            offset=offset,
            data=[self._host(row, cutoff_ts) for row in rows]
        )

    def get_host(self, host_id: str) -> Optional[HostDetailResponse]:
        """主机详情（不存在时返回 None）"""
        host = self.db.get_host(host_id)
        if host is None:
            return None

        sensors = [SensorInfo(**row) for row in self.db.get_host_sensors(host_id)]
        return HostDetailResponse(
            host=self._host(host, format_ts(self._online_cutoff()), sensor_count=len(sensors)),
            sensors=sensors
        )
