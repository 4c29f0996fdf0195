"""
Tempmon Agent - 温度采集代理

负责：
- 扫描 hwmon / thermal zone 温度通道并推断传感器类型
- 按配置过滤传感器类型
- 定时将一批读数推送到中心服务
"""

__version__ = "1.0.0"
