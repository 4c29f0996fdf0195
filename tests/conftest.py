"""
测试公共 fixture

- db: 已初始化 schema 的临时数据库
- sysfs: 在临时目录下构造 hwmon / thermal 目录树
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

import pytest

from tempmon_aggregator.database import Database
from tempmon_aggregator.models import WireReading


class FakeSysfs:
    """临时 sysfs 目录树"""

    def __init__(self, root: Path):
        self.hwmon = root / "class" / "hwmon"
        self.thermal = root / "class" / "thermal"
        self.hwmon.mkdir(parents=True)
        self.thermal.mkdir(parents=True)

    def add_hwmon(
        self,
        index: int,
        name: Optional[str],
        channels: Dict[int, str],
        labels: Optional[Dict[int, str]] = None,
    ) -> Path:
        """添加一个 hwmon 设备，channels 为 {通道号: temp<N>_input 内容}"""
        device = self.hwmon / f"hwmon{index}"
        device.mkdir()
        if name is not None:
            (device / "name").write_text(f"{name}\n")
        for channel, raw in channels.items():
            (device / f"temp{channel}_input").write_text(raw)
        for channel, label in (labels or {}).items():
            (device / f"temp{channel}_label").write_text(f"{label}\n")
        return device

    def add_zone(self, index: int, zone_type: Optional[str], raw: str) -> Path:
        zone = self.thermal / f"thermal_zone{index}"
        zone.mkdir()
        if zone_type is not None:
            (zone / "type").write_text(f"{zone_type}\n")
        (zone / "temp").write_text(raw)
        return zone


@pytest.fixture
def sysfs(tmp_path):
    return FakeSysfs(tmp_path / "sys")


@pytest.fixture
def db(tmp_path):
    """创建临时测试数据库"""
    db = Database(str(tmp_path / "test_tempmon.db"))
    db.init_schema()
    return db


def make_reading(
    sensor_id: str = "hwmon0_1",
    host_id: str = "node-01",
    celsius: float = 45.0,
    observed_at: Optional[datetime] = None,
    **kwargs,
) -> WireReading:
    """构造一条入库读数"""
    return WireReading(
        sensor_id=sensor_id,
        host_id=host_id,
        celsius=celsius,
        observed_at=observed_at or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        **kwargs,
    )
