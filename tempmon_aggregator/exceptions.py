"""
服务端异常定义
"""


class AggregatorError(Exception):
    """服务端异常基类"""


class InvalidBatchError(AggregatorError):
    """客户端输入错误：空批次或缺少标识，不应重试"""


class IngestionError(AggregatorError):
    """持久化失败，整个批次已回滚"""
