"""
单元测试：读数入库

测试覆盖：
- 空批次 / 缺少标识：拒绝且不触及数据库
- 主机 first_seen 不变、last_seen 单调
- 传感器元数据以最后一次写入为准
- 批次中途失败整批回滚
"""

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_reading
from tempmon_aggregator.database import Database
from tempmon_aggregator.exceptions import IngestionError, InvalidBatchError
from tempmon_aggregator.ingestion import IngestionCoordinator, validate_batch
from tempmon_aggregator.models import SensorType


class SpyDatabase(Database):
    """记录 get_conn 调用次数"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.conn_count = 0

    def get_conn(self):
        self.conn_count += 1
        return super().get_conn()


class FailingDatabase(Database):
    """第 N 条读数写入时失败"""

    def __init__(self, *args, fail_at: int = 1, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_at = fail_at
        self.inserted = 0

    def insert_reading(self, conn, **kwargs):
        if self.inserted == self.fail_at:
            raise sqlite3.OperationalError("disk I/O error")
        self.inserted += 1
        return super().insert_reading(conn, **kwargs)


class Clock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def count(db: Database, table: str) -> int:
    with db.get_conn() as conn:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


class TestValidateBatch:

    def test_empty(self):
        with pytest.raises(InvalidBatchError, match="no readings provided"):
            validate_batch([])

    def test_blank_sensor_id(self):
        with pytest.raises(InvalidBatchError, match="reading 1: sensor_id is required"):
            validate_batch([make_reading(), make_reading(sensor_id="  ")])

    def test_blank_host_id(self):
        with pytest.raises(InvalidBatchError, match="host_id is required"):
            validate_batch([make_reading(host_id="")])


class TestIngestionCoordinator:

    def test_empty_batch_never_touches_database(self, tmp_path):
        db = SpyDatabase(str(tmp_path / "spy.db"))

        with pytest.raises(InvalidBatchError):
            IngestionCoordinator(db).submit([])

        assert db.conn_count == 0

    def test_invalid_reading_rejects_whole_batch(self, db):
        with pytest.raises(InvalidBatchError):
            IngestionCoordinator(db).submit([make_reading(), make_reading(host_id="")])

        assert count(db, "readings") == 0
        assert count(db, "hosts") == 0

    def test_saves_batch(self, db):
        readings = [
            make_reading("hwmon0_1", celsius=45.0, type=SensorType.CPU, name="Package id 0"),
            make_reading("hwmon1_1", celsius=38.9, type=SensorType.DISK, name="Composite"),
        ]

        result = IngestionCoordinator(db).submit(readings)

        assert result.success is True
        assert count(db, "readings") == 2
        assert count(db, "sensors") == 2
        assert count(db, "hosts") == 1
        with db.get_conn() as conn:
            row = conn.execute("SELECT * FROM readings WHERE sensor_id = 'hwmon1_1'").fetchone()
        assert row["type"] == "DISK"
        assert row["name"] == "Composite"
        assert row["observed_at"] == "2024-05-01T12:00:00.000000Z"

    def test_first_seen_immutable(self, db):
        clock = Clock(datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))
        coordinator = IngestionCoordinator(db, clock=clock)

        coordinator.submit([make_reading()])
        clock.advance(minutes=5)
        coordinator.submit([make_reading()])

        host = db.get_host("node-01")
        assert host["first_seen"] == "2024-05-01T12:00:00.000000Z"
        assert host["last_seen"] == "2024-05-01T12:05:00.000000Z"

    def test_last_seen_never_before_first_seen(self, db):
        clock = Clock(datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))
        coordinator = IngestionCoordinator(db, clock=clock)

        coordinator.submit([make_reading()])
        clock.advance(hours=-1)
        coordinator.submit([make_reading()])

        host = db.get_host("node-01")
        assert host["first_seen"] <= host["last_seen"]

    def test_sensor_last_write_wins(self, db):
        coordinator = IngestionCoordinator(db)

        coordinator.submit([make_reading(type=SensorType.OTHER, name="temp1")])
        coordinator.submit([make_reading(type=SensorType.CPU, name="Package id 0")])

        sensors = db.get_host_sensors("node-01")
        assert len(sensors) == 1
        assert sensors[0]["type"] == "CPU"
        assert sensors[0]["name"] == "Package id 0"

    def test_sensor_last_in_batch_wins(self, db):
        IngestionCoordinator(db).submit([
            make_reading(name="first"),
            make_reading(name="second"),
        ])

        assert db.get_host_sensors("node-01")[0]["name"] == "second"
        assert count(db, "readings") == 2

    def test_multiple_hosts_in_one_batch(self, db):
        IngestionCoordinator(db).submit([
            make_reading("a_1", host_id="node-01"),
            make_reading("b_1", host_id="node-02"),
        ])

        assert count(db, "hosts") == 2

    def test_mid_batch_failure_rolls_back(self, tmp_path):
        db = FailingDatabase(str(tmp_path / "failing.db"), fail_at=1)
        db.init_schema()

        with pytest.raises(IngestionError):
            IngestionCoordinator(db).submit([
                make_reading("hwmon0_1"),
                make_reading("hwmon0_2"),
                make_reading("hwmon0_3"),
            ])

        assert count(db, "readings") == 0
        assert count(db, "sensors") == 0
        assert count(db, "hosts") == 0
