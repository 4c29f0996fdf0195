"""
thermal zone 采集器

读取 /sys/class/thermal/thermal_zone*，每个 zone 一个采样
"""

import logging
from pathlib import Path
from typing import List, Tuple

from tempmon_agent.models import SensorSample, SensorType
from tempmon_agent.utils import list_entries, read_millidegrees, read_text

logger = logging.getLogger(__name__)

DEFAULT_ZONE_TYPE = "thermal"


def scan_thermal_zones(root: Path) -> Tuple[List[SensorSample], int]:
    """
    扫描 thermal zone

    zone 的 type 原样作为名称，类型固定为 CPU（不做分类）。

    Args:
        root: thermal 根目录（默认 /sys/class/thermal）

    Returns:
        (采样列表, 被跳过的 zone 数)

    Raises:
        OSError: 根目录无法枚举
    """
    samples = []
    skipped = 0

    for zone_dir in list_entries(root, "thermal_zone"):
        milli_celsius = read_millidegrees(zone_dir / "temp")
        if milli_celsius is None:
            logger.debug(f"Skipping unreadable thermal zone {zone_dir}")
            skipped += 1
            continue

        samples.append(SensorSample(
            id=zone_dir.name,
            type=SensorType.CPU,
            name=read_text(zone_dir / "type") or DEFAULT_ZONE_TYPE,
            milli_celsius=milli_celsius,
        ))

    return samples, skipped
