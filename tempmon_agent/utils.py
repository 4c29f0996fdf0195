"""
工具函数模块

sysfs 文件读取辅助函数，读取失败统一返回 None
"""

import re
from pathlib import Path
from typing import List, Optional, Tuple, Union

_DIGITS_RE = re.compile(r"(\d+)")


def read_text(path: Path) -> Optional[str]:
    """
    读取 sysfs 文本属性

    Args:
        path: 属性文件路径

    Returns:
        去除首尾空白的内容，文件不存在或不可读时返回 None
    """
    try:
        return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError):
        return None


def read_millidegrees(path: Path) -> Optional[int]:
    """读取千分之一摄氏度整数值，无法解析时返回 None"""
    raw = read_text(path)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def natural_key(name: str) -> List[Union[int, str]]:
    """自然排序键：hwmon2 排在 hwmon10 之前"""
    return [int(part) if part.isdigit() else part for part in _DIGITS_RE.split(name)]


def list_entries(root: Path, prefix: str) -> List[Path]:
    """
    列出目录下以 prefix 开头的条目（自然排序）

    Raises:
        OSError: 目录不存在或不可读
    """
    entries = [entry for entry in root.iterdir() if entry.name.startswith(prefix)]
    return sorted(entries, key=lambda p: natural_key(p.name))


def split_listen(listen: str) -> Tuple[str, int]:
    """解析 host:port 监听地址"""
    host, _, port = listen.rpartition(":")
    return host or "0.0.0.0", int(port)
