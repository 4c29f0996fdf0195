"""
读数提交客户端

将一个批次的读数 POST 到中心服务 /api/readings
"""

import logging
from typing import List, Optional, Protocol

import httpx

from tempmon_agent.exceptions import SubmitError
from tempmon_agent.models import SubmitResponse, TemperatureReading

logger = logging.getLogger(__name__)


class ReadingSink(Protocol):
    """读数提交目标"""

    async def submit(self, readings: List[TemperatureReading]) -> SubmitResponse:
        ...


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict):
        return str(data.get("detail") or data.get("message") or data)
    return str(data)


class HttpReadingSink:
    """
    通过 HTTP 提交读数

    每次提交都带有明确的超时上限，任何网络错误或非 2xx 响应都转换为 SubmitError。
    """

    def __init__(
        self,
        address: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = f"{address.rstrip('/')}/api/readings"
        self.timeout = timeout
        self._transport = transport

    async def submit(self, readings: List[TemperatureReading]) -> SubmitResponse:
        """
        提交一个批次

        Args:
            readings: 非空读数列表

        Returns:
            服务端响应

        Raises:
            SubmitError: 提交失败
        """
        payload = {"readings": [r.model_dump(mode="json") for r in readings]}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json=payload)
                response.raise_for_status()
                result = SubmitResponse(**response.json())
        except httpx.HTTPStatusError as e:
            raise SubmitError(
                f"Server rejected batch ({e.response.status_code}): {_error_detail(e.response)}"
            ) from e
        except httpx.HTTPError as e:
            raise SubmitError(f"Failed to submit temperatures: {e}") from e
        except ValueError as e:
            raise SubmitError(f"Invalid response from server: {e}") from e

        if not result.success:
            raise SubmitError(f"Server returned failure: {result.message}")

        return result
