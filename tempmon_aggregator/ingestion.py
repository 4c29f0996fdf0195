"""
读数入库

一个批次一个事务：更新主机、更新传感器、追加读数，全部成功或全部回滚。
"""

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Sequence

from .database import Database, format_ts
from .exceptions import IngestionError, InvalidBatchError
from .models import SubmitReadingsResponse, WireReading

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def validate_batch(readings: Sequence[WireReading]):
    """
    校验批次（在打开事务之前执行）

    Raises:
        InvalidBatchError: 空批次或缺少 sensor_id / host_id
    """
    if not readings:
        raise InvalidBatchError("no readings provided")

    for index, reading in enumerate(readings):
        if not reading.sensor_id or not reading.sensor_id.strip():
            raise InvalidBatchError(f"reading {index}: sensor_id is required")
        if not reading.host_id or not reading.host_id.strip():
            raise InvalidBatchError(f"reading {index}: host_id is required")


class IngestionCoordinator:
    """批次入库协调器"""

    def __init__(self, db: Database, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self._clock = clock or _utc_now

    def submit(self, readings: Sequence[WireReading]) -> SubmitReadingsResponse:
        """
        保存一个批次

        主机 first_seen/last_seen 使用服务端时间，读数使用 Agent 提供的 observed_at。

        Raises:
            InvalidBatchError: 输入错误（未触及数据库）
            IngestionError: 持久化失败（已回滚）
        """
        validate_batch(readings)

        now = format_ts(self._clock())

        # 同一批次内主机只更新一次，传感器以批次内最后一条为准
        hosts = list(dict.fromkeys(r.host_id for r in readings))
        sensors: Dict[str, WireReading] = {}
        for reading in readings:
            sensors[reading.sensor_id] = reading

        try:
            with self.db.get_conn() as conn:
                for host_id in hosts:
                    self.db.upsert_host(conn, host_id, now)

                for sensor_id, reading in sensors.items():
                    self.db.upsert_sensor(
                        conn,
                        sensor_id=sensor_id,
                        host_id=reading.host_id,
                        sensor_type=reading.type.value,
                        name=reading.name,
                        seen_at=now,
                    )

                for reading in readings:
                    self.db.insert_reading(
                        conn,
                        sensor_id=reading.sensor_id,
                        host_id=reading.host_id,
                        celsius=reading.celsius,
                        sensor_type=reading.type.value,
                        name=reading.name,
                        observed_at=format_ts(reading.observed_at),
                    )
        except sqlite3.Error as e:
            logger.error(f"Failed to save batch of {len(readings)} readings: {e}")
            raise IngestionError(f"failed to save readings: {e}") from e

        logger.debug(f"Saved {len(readings)} readings from {', '.join(hosts)}")

        return SubmitReadingsResponse(
            success=True,
            message="Temperature readings saved successfully"
        )
