"""
读数 API

提交批次、历史查询、CSV 导出、区间统计。
"""

import csv
import io
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse

from ...exceptions import IngestionError, InvalidBatchError
from ...ingestion import IngestionCoordinator
from ...models import (
    HistoryResponse,
    StatsResponse,
    SubmitReadingsRequest,
    SubmitReadingsResponse,
)
from ...queries import MAX_LIMIT, AggregationQueries, normalize_limit
from ..dependencies import get_coordinator, get_queries

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/readings", tags=["readings"])


@router.post("", response_model=SubmitReadingsResponse)
def submit_readings(
    data: SubmitReadingsRequest,
    coordinator: IngestionCoordinator = Depends(get_coordinator)
):
    """
    提交一个读数批次

    空批次或缺少标识返回 400；持久化失败返回 500（整批回滚）。
    """
    try:
        return coordinator.submit(data.readings)
    except InvalidBatchError as e:
        logger.warning(f"Rejected batch: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except IngestionError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.get("/history", response_model=HistoryResponse)
def get_history(
    host_id: Optional[str] = Query(None, description="主机标识"),
    sensor_id: Optional[str] = Query(None, description="传感器 ID"),
    start: Optional[datetime] = Query(None, alias="from", description="开始时间（ISO 8601，含）"),
    end: Optional[datetime] = Query(None, alias="to", description="结束时间（ISO 8601，含）"),
    limit: Optional[int] = Query(None, description="返回条数，超出 (0, 1000] 时使用默认值 100"),
    queries: AggregationQueries = Depends(get_queries)
):
    """
    查询历史读数

    按 observed_at 倒序返回。
    """
    readings = queries.history(host_id=host_id, sensor_id=sensor_id, start=start, end=end, limit=limit)
    return HistoryResponse(
        limit=normalize_limit(limit),
        count=len(readings),
        data=readings
    )


@router.get("/history/export")
def export_history(
    host_id: Optional[str] = Query(None, description="主机标识"),
    sensor_id: Optional[str] = Query(None, description="传感器 ID"),
    start: Optional[datetime] = Query(None, alias="from", description="开始时间（ISO 8601）"),
    end: Optional[datetime] = Query(None, alias="to", description="结束时间（ISO 8601）"),
    queries: AggregationQueries = Depends(get_queries)
):
    """
    导出历史读数为 CSV

    注意：导出最多 1000 条记录。
    """
    readings = queries.history(host_id=host_id, sensor_id=sensor_id, start=start, end=end, limit=MAX_LIMIT)

    output = io.StringIO()
    fieldnames = ["id", "host_id", "sensor_id", "type", "name", "celsius", "observed_at"]
    writer = csv.DictWriter(output, fieldnames=fieldnames)
    writer.writeheader()
    writer.writerows(r.model_dump(include=set(fieldnames)) for r in readings)

    output.seek(0)
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=readings_export.csv"}
    )


@router.get("/stats", response_model=StatsResponse)
def get_stats(
    host_id: Optional[str] = Query(None, description="主机标识"),
    sensor_id: Optional[str] = Query(None, description="传感器 ID"),
    start: Optional[datetime] = Query(None, alias="from", description="开始时间（ISO 8601）"),
    end: Optional[datetime] = Query(None, alias="to", description="结束时间（ISO 8601）"),
    queries: AggregationQueries = Depends(get_queries)
):
    """
    区间统计

    每个 (host_id, sensor_id) 一行 min/max/avg/count。sensor_id 只在主机内唯一，
    不带 host_id 查询时同一个 sensor_id 可能对应多行，以 host_id 区分。
    """
    return StatsResponse(data=queries.stats(host_id=host_id, sensor_id=sensor_id, start=start, end=end))
