"""
数据清理任务

每天在指定时间删除超出保留期的读数。
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from .config import AppConfig
from .database import Database

logger = logging.getLogger(__name__)


def next_cleanup_time(now: datetime, cleanup_hour: int) -> datetime:
    """计算下次清理时间（今天的时间已过则顺延到明天）"""
    target = now.replace(hour=cleanup_hour, minute=0, second=0, microsecond=0)
    if now >= target:
        target += timedelta(days=1)
    return target


def cleanup_old_readings(db: Database, retention_days: int, now: Optional[datetime] = None) -> int:
    """
    清理过期读数

    Args:
        db: 数据库
        retention_days: 保留天数
        now: 当前时间（默认 UTC 当前时间）

    Returns:
        删除的读数条数
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=retention_days)
    return db.delete_readings_before(cutoff)


async def run_cleanup(config: AppConfig, db: Database):
    """
    运行数据清理任务

    retention.days <= 0 时不启动。
    """
    cleanup_hour = config.retention.cleanup_hour
    retention_days = config.retention.days

    if retention_days <= 0:
        logger.info("Retention disabled, readings are kept forever")
        return

    logger.info(f"Starting cleanup task (hour={cleanup_hour}, retention={retention_days}d)")

    while True:
        try:
            now = datetime.now(timezone.utc)
            next_cleanup = next_cleanup_time(now, cleanup_hour)
            wait_seconds = (next_cleanup - now).total_seconds()
            logger.info(f"Next cleanup at {next_cleanup.isoformat()} (in {wait_seconds:.0f}s)")

            await asyncio.sleep(wait_seconds)

            removed = cleanup_old_readings(db, retention_days)
            logger.info(f"Cleanup completed: removed {removed} readings older than {retention_days} days")

        except asyncio.CancelledError:
            logger.info("Cleanup task cancelled")
            raise
        except Exception as e:
            logger.error(f"Cleanup error: {e}", exc_info=True)
            await asyncio.sleep(3600)  # 出错后等 1 小时
