"""
FastAPI 应用入口

提供本地 HTTP 接口，便于排查当前主机识别到的传感器
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request

from tempmon_agent import __version__
from tempmon_agent.config import AgentConfig
from tempmon_agent.exceptions import SensorScanError
from tempmon_agent.models import HealthResponse, SensorsResponse
from tempmon_agent.scanner import SensorScanner


def verify_token(request: Request, authorization: Optional[str] = Header(None)) -> bool:
    """
    验证 Token

    未配置 token 时不校验。

    Raises:
        HTTPException: Token 无效时抛出 401 错误
    """
    config: AgentConfig = request.app.state.config
    if not config.token:
        return True

    if not authorization:
        raise HTTPException(status_code=401, detail="Missing authorization header")

    # 解析 Bearer token
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid authorization header format")

    if parts[1] != config.token:
        raise HTTPException(status_code=401, detail="Invalid token")

    return True


def create_app(config: AgentConfig, scanner: SensorScanner) -> FastAPI:
    """创建本地 API 应用"""
    app = FastAPI(
        title="Tempmon Agent",
        version=__version__,
        description="硬件温度采集代理"
    )
    app.state.config = config
    app.state.scanner = scanner

    @app.get("/v1/sensors", response_model=SensorsResponse)
    def get_sensors(authorized: bool = Depends(verify_token)):
        """
        实时扫描并返回分类后的传感器列表（未经类型过滤）
        """
        try:
            report = scanner.scan_report()
        except SensorScanError as e:
            raise HTTPException(status_code=503, detail=str(e))

        return SensorsResponse(
            host_id=config.host_id,
            ts=datetime.now(timezone.utc),
            sensors=report.samples,
            skipped=report.skipped,
        )

    @app.get("/v1/health", response_model=HealthResponse)
    def get_health():
        """
        健康检查端点

        测试扫描器能否读取到传感器
        """
        checks = {}
        details = {}
        overall_status = "ok"

        try:
            report = scanner.scan_report()
            if report.samples:
                checks["scanner"] = "ok"
            else:
                checks["scanner"] = "degraded"
                overall_status = "degraded"
            details["scanner"] = f"{len(report.samples)} sensor(s), {report.skipped} skipped"
        except SensorScanError as e:
            checks["scanner"] = "error"
            details["scanner"] = str(e)
            overall_status = "error"

        return HealthResponse(
            status=overall_status,
            timestamp=datetime.now(timezone.utc),
            checks=checks,
            details=details
        )

    return app
