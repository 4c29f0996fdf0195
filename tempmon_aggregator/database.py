"""
数据库操作抽象层

封装所有 SQLite 操作。写操作接收外部传入的连接，由调用方控制事务边界；
查询操作各自使用独立连接。
"""

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

# 定宽 UTC 时间格式 YYYY-MM-DDTHH:MM:SS.ffffffZ（年份单独补零）：字典序即时间序
_TS_TAIL_FORMAT = "%m-%dT%H:%M:%S.%fZ"

SCHEMA = """
CREATE TABLE IF NOT EXISTS hosts (
    host_id TEXT PRIMARY KEY,
    first_seen TEXT NOT NULL,
    last_seen TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS sensors (
    sensor_id TEXT PRIMARY KEY,
    host_id TEXT NOT NULL,
    type TEXT NOT NULL,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_sensors_host ON sensors(host_id);

CREATE TABLE IF NOT EXISTS readings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    sensor_id TEXT NOT NULL,
    host_id TEXT NOT NULL,
    celsius REAL NOT NULL,
    type TEXT NOT NULL,
    name TEXT NOT NULL,
    observed_at TEXT NOT NULL,
    FOREIGN KEY (host_id) REFERENCES hosts(host_id)
);

CREATE INDEX IF NOT EXISTS idx_readings_sensor_ts ON readings(sensor_id, observed_at DESC);
CREATE INDEX IF NOT EXISTS idx_readings_host_ts ON readings(host_id, observed_at DESC);
CREATE INDEX IF NOT EXISTS idx_readings_ts ON readings(observed_at);
"""

READING_COLUMNS = "id, sensor_id, host_id, celsius, type, name, observed_at"


def format_ts(dt: datetime) -> str:
    """datetime → 存储格式（无时区视为 UTC）"""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    # strftime 的 %Y 在部分平台上不补零
    return f"{dt.year:04d}-{dt.strftime(_TS_TAIL_FORMAT)}"


def build_reading_filters(
    host_id: Optional[str] = None,
    sensor_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> Tuple[str, List[Any]]:
    """
    构造读数过滤条件（AND 组合，未提供的条件不生效）

    Returns:
        (WHERE 子句（可能为空字符串）, 参数列表)
    """
    conditions = []
    params: List[Any] = []

    if host_id:
        conditions.append("host_id = ?")
        params.append(host_id)
    if sensor_id:
        conditions.append("sensor_id = ?")
        params.append(sensor_id)
    if start is not None:
        conditions.append("observed_at >= ?")
        params.append(format_ts(start))
    if end is not None:
        conditions.append("observed_at <= ?")
        params.append(format_ts(end))

    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    return where, params


class Database:
    """数据库操作类"""

    def __init__(self, db_path: str, timeout: int = 30):
        """
        初始化数据库

        Args:
            db_path: 数据库文件路径
            timeout: 等待写锁的超时时间（秒）
        """
        self.db_path = Path(db_path)
        self.timeout = timeout

        # 确保目录存在
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def get_conn(self):
        """
        获取数据库连接（上下文管理器）

        正常退出时提交，异常时回滚，一个 with 块即一个事务：
            with db.get_conn() as conn:
                db.upsert_host(conn, ...)
                db.insert_reading(conn, ...)
        """
        conn = sqlite3.connect(str(self.db_path), timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_schema(self):
        """创建表和索引（幂等）"""
        with self.get_conn() as conn:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.executescript(SCHEMA)

    def ping(self) -> bool:
        """检查数据库是否可用"""
        with self.get_conn() as conn:
            conn.execute("SELECT 1").fetchone()
        return True

    # =========================================================================
    # 写操作（调用方负责事务）
    # =========================================================================

    def upsert_host(self, conn: sqlite3.Connection, host_id: str, seen_at: str):
        """
        插入或更新主机

        first_seen 只在首次插入时写入；last_seen 每次更新且不早于 first_seen。
        """
        conn.execute("""
            INSERT INTO hosts (host_id, first_seen, last_seen)
            VALUES (?, ?, ?)
            ON CONFLICT(host_id) DO UPDATE SET
                last_seen = MAX(hosts.first_seen, excluded.last_seen)
        """, (host_id, seen_at, seen_at))

    def upsert_sensor(
        self,
        conn: sqlite3.Connection,
        sensor_id: str,
        host_id: str,
        sensor_type: str,
        name: str,
        seen_at: str,
    ):
        """插入或更新传感器（host/type/name 以最后一次写入为准）"""
        conn.execute("""
            INSERT INTO sensors (sensor_id, host_id, type, name, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(sensor_id) DO UPDATE SET
                host_id = excluded.host_id,
                type = excluded.type,
                name = excluded.name,
                updated_at = excluded.updated_at
        """, (sensor_id, host_id, sensor_type, name, seen_at, seen_at))

    def insert_reading(
        self,
        conn: sqlite3.Connection,
        sensor_id: str,
        host_id: str,
        celsius: float,
        sensor_type: str,
        name: str,
        observed_at: str,
    ) -> int:
        """追加一条读数"""
        cursor = conn.execute("""
            INSERT INTO readings (sensor_id, host_id, celsius, type, name, observed_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (sensor_id, host_id, celsius, sensor_type, name, observed_at))
        return cursor.lastrowid

    # =========================================================================
    # 读数查询
    # =========================================================================

    def query_history(
        self,
        host_id: Optional[str] = None,
        sensor_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        """按 observed_at 倒序查询读数"""
        where, params = build_reading_filters(host_id, sensor_id, start, end)
        with self.get_conn() as conn:
            cursor = conn.execute(f"""
                SELECT {READING_COLUMNS}
                FROM readings
                {where}
                ORDER BY observed_at DESC
                LIMIT ?
            """, (*params, limit))
            return [dict(row) for row in cursor.fetchall()]

    def query_latest_per_sensor(self, host_id: str) -> List[Dict[str, Any]]:
        """
        查询主机下每个传感器 observed_at 最大的一条读数

        observed_at 完全相同时返回其中任意一条。
        """
        with self.get_conn() as conn:
            cursor = conn.execute(f"""
                SELECT {READING_COLUMNS}
                FROM (
                    SELECT {READING_COLUMNS},
                           ROW_NUMBER() OVER (
                               PARTITION BY sensor_id ORDER BY observed_at DESC
                           ) AS rn
                    FROM readings
                    WHERE host_id = ?
                )
                WHERE rn = 1
                ORDER BY sensor_id
            """, (host_id,))
            return [dict(row) for row in cursor.fetchall()]

    def query_stats(
        self,
        host_id: Optional[str] = None,
        sensor_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """按 (host_id, sensor_id) 分组计算 min/max/avg/count"""
        where, params = build_reading_filters(host_id, sensor_id, start, end)
        with self.get_conn() as conn:
            cursor = conn.execute(f"""
                SELECT host_id, sensor_id,
                       MIN(celsius) AS min,
                       MAX(celsius) AS max,
                       AVG(celsius) AS avg,
                       COUNT(*) AS count
                FROM readings
                {where}
                GROUP BY host_id, sensor_id
                ORDER BY host_id, sensor_id
            """, params)
            return [dict(row) for row in cursor.fetchall()]

    # =========================================================================
    # 主机 / 传感器
    # =========================================================================

    def list_hosts(
        self,
        limit: int = 100,
        offset: int = 0,
        online_since: Optional[datetime] = None,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        分页列出主机

        sensor_count 按该主机自己上报过的读数统计，不依赖 sensors 表的归属
        （不同主机常有相同的 sensor_id，如 hwmon0_1）。

        Args:
            limit: 每页条数
            offset: 偏移量
            online_since: 仅返回 last_seen 晚于该时间的主机

        Returns:
            (主机列表（含 sensor_count）, 总数)
        """
        where = ""
        params: List[Any] = []
        if online_since is not None:
            where = "WHERE h.last_seen > ?"
            params.append(format_ts(online_since))

        with self.get_conn() as conn:
            total = conn.execute(f"SELECT COUNT(*) FROM hosts h {where}", params).fetchone()[0]
            cursor = conn.execute(f"""
                SELECT h.host_id, h.first_seen, h.last_seen,
                       (SELECT COUNT(DISTINCT r.sensor_id)
                        FROM readings r
                        WHERE r.host_id = h.host_id) AS sensor_count
                FROM hosts h
                {where}
                ORDER BY h.host_id
                LIMIT ? OFFSET ?
            """, (*params, limit, offset))
            return [dict(row) for row in cursor.fetchall()], total

    def get_host(self, host_id: str) -> Optional[Dict[str, Any]]:
        """根据 host_id 获取主机"""
        with self.get_conn() as conn:
            cursor = conn.execute("""
                SELECT host_id, first_seen, last_seen
                FROM hosts
                WHERE host_id = ?
            """, (host_id,))
            row = cursor.fetchone()
            return dict(row) if row else None

    def get_host_sensors(self, host_id: str) -> List[Dict[str, Any]]:
        """
        获取主机上报过的传感器及各自最新读数

        类型和名称取自该主机最新一条读数，而不是 sensors 表（后者以最后写入的主机为准）。
        """
        with self.get_conn() as conn:
            cursor = conn.execute("""
                SELECT sensor_id, type, name,
                       celsius AS current_celsius,
                       observed_at AS last_reading
                FROM (
                    SELECT sensor_id, type, name, celsius, observed_at,
                           ROW_NUMBER() OVER (
                               PARTITION BY sensor_id ORDER BY observed_at DESC
                           ) AS rn
                    FROM readings
                    WHERE host_id = ?
                )
                WHERE rn = 1
                ORDER BY sensor_id
            """, (host_id,))
            return [dict(row) for row in cursor.fetchall()]

    # =========================================================================
    # 数据清理
    # =========================================================================

    def delete_readings_before(self, cutoff: datetime) -> int:
        """
        删除 observed_at 早于 cutoff 的读数（主机和传感器保留）

        Returns:
            删除的行数
        """
        with self.get_conn() as conn:
            cursor = conn.execute(
                "DELETE FROM readings WHERE observed_at < ?",
                (format_ts(cutoff),)
            )
            return cursor.rowcount
