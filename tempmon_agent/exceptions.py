"""
Agent 异常定义

所有异常仅影响当前采集周期，不会终止进程。
"""


class AgentError(Exception):
    """Agent 异常基类"""


class SensorScanError(AgentError):
    """hwmon 子系统整体无法枚举"""


class SubmitError(AgentError):
    """读数提交失败（网络错误、服务端拒绝或返回 success=false）"""
