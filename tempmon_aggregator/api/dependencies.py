"""
依赖注入模块

提供 FastAPI 依赖项。数据库实例挂在 app.state 上，由 create_app 注入。
"""

from fastapi import Depends, Request

from ..database import Database
from ..ingestion import IngestionCoordinator
from ..queries import AggregationQueries


def get_database(request: Request) -> Database:
    """获取数据库实例"""
    return request.app.state.db


def get_coordinator(db: Database = Depends(get_database)) -> IngestionCoordinator:
    """获取入库协调器"""
    return IngestionCoordinator(db)


def get_queries(db: Database = Depends(get_database)) -> AggregationQueries:
    """获取查询服务"""
    return AggregationQueries(db)
