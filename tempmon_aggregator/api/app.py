"""
FastAPI 应用配置

配置 CORS、路由注册、健康检查。
"""

import logging
import sqlite3
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import AppConfig
from ..database import Database
from ..models import HealthResponse
from .routers import hosts, readings

logger = logging.getLogger(__name__)


def create_app(config: AppConfig, db: Database) -> FastAPI:
    """
    创建 FastAPI 应用实例

    Args:
        config: 已加载的配置
        db: 已初始化 schema 的数据库
    """
    app = FastAPI(
        title="Tempmon Aggregator",
        description="硬件温度汇聚和查询服务",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json"
    )
    app.state.config = config
    app.state.db = db

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(readings.router)
    app.include_router(hosts.router)

    @app.get("/api/health", response_model=HealthResponse, tags=["health"])
    def health():
        """服务存活 + 数据库检查"""
        checks = {}
        overall_status = "ok"
        try:
            db.ping()
            checks["database"] = "ok"
        except sqlite3.Error as e:
            logger.warning(f"Database health check failed: {e}")
            checks["database"] = "error"
            overall_status = "degraded"

        return HealthResponse(
            status=overall_status,
            timestamp=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            checks=checks
        )

    return app
