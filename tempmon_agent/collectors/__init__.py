"""
数据采集器模块

包含 hwmon 与 thermal zone 温度采集器
"""

from .hwmon import classify_sensor, scan_hwmon
from .thermal import scan_thermal_zones

__all__ = [
    "classify_sensor",
    "scan_hwmon",
    "scan_thermal_zones",
]
