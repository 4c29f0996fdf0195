"""
Tempmon Aggregator - 温度汇聚中心服务

负责：
- 接收 Agent 推送的读数批次，事务内更新主机/传感器并追加读数
- 提供历史、各传感器最新值、区间统计查询
- 按保留策略定期清理过期读数
- 提供 REST API
"""

__version__ = "1.0.0"
