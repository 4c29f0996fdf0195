"""
主机 API

主机清单、主机详情、各传感器当前温度。
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...models import CurrentReadingsResponse, HostDetailResponse, HostListResponse
from ...queries import AggregationQueries
from ..dependencies import get_queries

router = APIRouter(prefix="/api/hosts", tags=["hosts"])


@router.get("", response_model=HostListResponse)
def list_hosts(
    limit: Optional[int] = Query(None, description="每页条数，超出 (0, 1000] 时使用默认值 100"),
    offset: int = Query(0, ge=0, description="偏移量"),
    online_only: bool = Query(False, description="仅返回最近 5 分钟内上报过的主机"),
    queries: AggregationQueries = Depends(get_queries)
):
    """获取主机列表（按 host_id 排序，is_online 表示 5 分钟内有上报）"""
    return queries.list_hosts(limit=limit, offset=offset, online_only=online_only)


@router.get("/{host_id}", response_model=HostDetailResponse)
def get_host(host_id: str, queries: AggregationQueries = Depends(get_queries)):
    """获取主机详情及其传感器最新温度"""
    detail = queries.get_host(host_id)
    if detail is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Host {host_id} not found"
        )
    return detail


@router.get("/{host_id}/current", response_model=CurrentReadingsResponse)
def get_current(host_id: str, queries: AggregationQueries = Depends(get_queries)):
    """
    各传感器当前温度

    每个传感器返回 observed_at 最大的一条读数；未知主机返回空列表。
    """
    return CurrentReadingsResponse(host_id=host_id, data=queries.latest_per_sensor(host_id))
