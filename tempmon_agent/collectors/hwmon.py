"""
hwmon 采集器

遍历 /sys/class/hwmon/hwmon*，读取 temp<N>_input 通道并推断传感器类型
"""

import logging
import re
from pathlib import Path
from typing import List, Tuple

from tempmon_agent.models import SensorSample, SensorType
from tempmon_agent.utils import list_entries, natural_key, read_millidegrees, read_text

logger = logging.getLogger(__name__)

DEFAULT_DEVICE_NAME = "Unknown"

_CHANNEL_RE = re.compile(r"^temp(\d+)_input$")

# 分类规则 (字段, 子串, 类型)：自上而下匹配，首个命中生效，否则 OTHER
CLASSIFY_RULES: Tuple[Tuple[str, str, SensorType], ...] = (
    ("device", "coretemp", SensorType.CPU),
    ("label", "cpu", SensorType.CPU),
    ("device", "amdgpu", SensorType.GPU),
    ("device", "nvidia", SensorType.GPU),
    ("label", "gpu", SensorType.GPU),
    ("device", "nvme", SensorType.DISK),
    ("label", "nvme", SensorType.DISK),
)


def classify_sensor(label: str, device_name: str) -> SensorType:
    """
    根据 label 与设备名推断传感器类型（大小写不敏感）

    Args:
        label: 通道 label
        device_name: hwmon 设备名（name 文件内容）

    Returns:
        SensorType
    """
    fields = {
        "label": (label or "").lower(),
        "device": (device_name or "").lower(),
    }
    for field, needle, sensor_type in CLASSIFY_RULES:
        if needle in fields[field]:
            return sensor_type
    return SensorType.OTHER


def read_hwmon_device(device_dir: Path) -> Tuple[List[SensorSample], int]:
    """
    读取单个 hwmon 设备的所有温度通道

    Returns:
        (采样列表, 被跳过的通道数)

    Raises:
        OSError: 设备目录无法列出
    """
    device_name = read_text(device_dir / "name") or DEFAULT_DEVICE_NAME

    channels = []
    for entry in device_dir.iterdir():
        match = _CHANNEL_RE.match(entry.name)
        if match:
            channels.append((match.group(1), entry))
    channels.sort(key=lambda item: natural_key(item[0]))

    samples = []
    skipped = 0
    for channel, input_file in channels:
        milli_celsius = read_millidegrees(input_file)
        if milli_celsius is None:
            # 单个通道失败不影响同设备其他通道
            logger.debug(f"Skipping unreadable channel {input_file}")
            skipped += 1
            continue

        label = read_text(device_dir / f"temp{channel}_label")
        if not label:
            label = f"{device_name}_{channel}"

        samples.append(SensorSample(
            id=f"{device_dir.name}_{channel}",
            type=classify_sensor(label, device_name),
            name=label,
            milli_celsius=milli_celsius,
        ))

    return samples, skipped


def scan_hwmon(root: Path) -> Tuple[List[SensorSample], int]:
    """
    扫描 hwmon 子系统

    Args:
        root: hwmon 根目录（默认 /sys/class/hwmon）

    Returns:
        (采样列表, 被跳过的通道/设备数)

    Raises:
        OSError: 根目录无法枚举
    """
    samples: List[SensorSample] = []
    skipped = 0

    for device_dir in list_entries(root, "hwmon"):
        try:
            device_samples, device_skipped = read_hwmon_device(device_dir)
        except OSError as e:
            logger.debug(f"Skipping hwmon device {device_dir}: {e}")
            skipped += 1
            continue
        samples.extend(device_samples)
        skipped += device_skipped

    return samples, skipped
