"""
传感器扫描

合并 hwmon 与 thermal zone 两个子系统的采样结果
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Union

from tempmon_agent.collectors import scan_hwmon, scan_thermal_zones
from tempmon_agent.config import AgentConfig
from tempmon_agent.exceptions import SensorScanError
from tempmon_agent.models import SensorSample

logger = logging.getLogger(__name__)


@dataclass
class ScanReport:
    """一次扫描的结果：采样列表 + 被跳过的通道数"""
    samples: List[SensorSample] = field(default_factory=list)
    skipped: int = 0


class SensorScanner:
    """
    传感器扫描器

    每次调用都是一次独立的只读快照，可重复调用。
    """

    def __init__(
        self,
        hwmon_path: Union[str, Path] = "/sys/class/hwmon",
        thermal_path: Union[str, Path] = "/sys/class/thermal",
    ):
        self.hwmon_path = Path(hwmon_path)
        self.thermal_path = Path(thermal_path)

    @classmethod
    def from_config(cls, config: AgentConfig) -> "SensorScanner":
        return cls(config.sysfs.hwmon_path, config.sysfs.thermal_path)

    def scan_report(self) -> ScanReport:
        """
        扫描全部温度通道

        hwmon 根目录枚举失败时抛出 SensorScanError；
        thermal zone 枚举失败仅记录日志，结果中不包含 thermal 采样。

        Raises:
            SensorScanError: hwmon 子系统无法枚举
        """
        try:
            samples, skipped = scan_hwmon(self.hwmon_path)
        except OSError as e:
            raise SensorScanError(f"Failed to enumerate hwmon interfaces under {self.hwmon_path}: {e}") from e

        try:
            thermal_samples, thermal_skipped = scan_thermal_zones(self.thermal_path)
        except OSError as e:
            logger.debug(f"Thermal zones unavailable under {self.thermal_path}: {e}")
        else:
            samples = samples + thermal_samples
            skipped += thermal_skipped

        if skipped:
            logger.debug(f"Scan skipped {skipped} unreadable channel(s)")

        return ScanReport(samples=samples, skipped=skipped)

    def scan(self) -> List[SensorSample]:
        """扫描并返回采样列表"""
        return self.scan_report().samples
