"""
定时采集循环

每个周期：扫描 → 按类型过滤 → 以同一时间戳组装批次 → 提交。
周期之间互不影响，失败只记录日志，下一个周期照常执行。
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from tempmon_agent.client import ReadingSink
from tempmon_agent.config import AgentConfig, MonitoringConfig
from tempmon_agent.exceptions import AgentError
from tempmon_agent.models import SensorSample, SensorType, TemperatureReading
from tempmon_agent.scanner import SensorScanner

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def filter_samples(samples: List[SensorSample], monitoring: MonitoringConfig) -> List[SensorSample]:
    """
    按配置过滤采样

    CPU/GPU/DISK 由对应开关决定，OTHER 始终保留。
    """
    enabled = {
        SensorType.CPU: monitoring.cpu,
        SensorType.GPU: monitoring.gpu,
        SensorType.DISK: monitoring.disk,
    }
    return [s for s in samples if enabled.get(s.type, True)]


def build_readings(
    samples: List[SensorSample],
    host_id: str,
    observed_at: datetime,
) -> List[TemperatureReading]:
    """将采样转换为上报读数，整批共享 observed_at"""
    return [
        TemperatureReading(
            sensor_id=s.id,
            host_id=host_id,
            celsius=s.celsius,
            type=s.type,
            name=s.name,
            observed_at=observed_at,
        )
        for s in samples
    ]


class Poller:
    """采集调度器"""

    def __init__(
        self,
        config: AgentConfig,
        scanner: SensorScanner,
        sink: ReadingSink,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config
        self.scanner = scanner
        self.sink = sink
        self.host_id = config.host_id
        self._clock = clock or _utc_now

    async def run_cycle(self) -> int:
        """
        执行一个采集周期

        Returns:
            提交的读数数量（无可上报传感器时为 0）

        Raises:
            SensorScanError: 扫描失败
            SubmitError: 提交失败
        """
        samples = self.scanner.scan()
        if not samples:
            logger.info("No temperature sensors found")
            return 0

        filtered = filter_samples(samples, self.config.monitoring)
        if not filtered:
            logger.info("No sensors to report after filtering")
            return 0

        readings = build_readings(filtered, self.host_id, self._clock())
        for reading in readings:
            logger.debug(f"Sensor {reading.name} ({reading.type.value}): {reading.celsius:.1f}°C")

        await self.sink.submit(readings)

        logger.info(f"Successfully sent {len(readings)} temperature readings")
        return len(readings)

    async def run_forever(self):
        """
        运行采集循环

        启动后立即执行一次，之后按固定间隔执行；上一周期完成后才会开始下一周期。
        """
        interval = self.config.client.interval
        monitoring = self.config.monitoring
        loop = asyncio.get_running_loop()

        logger.info(f"Starting temperature poller (host_id={self.host_id}, interval={interval}s)")
        logger.info(f"Monitoring: CPU={monitoring.cpu}, GPU={monitoring.gpu}, Disk={monitoring.disk}")

        while True:
            started = loop.time()
            try:
                await self.run_cycle()
            except AgentError as e:
                logger.warning(f"Poll cycle failed: {e}")
            except Exception as e:
                logger.error(f"Poll cycle error: {e}", exc_info=True)

            elapsed = loop.time() - started
            await asyncio.sleep(max(0.0, interval - elapsed))
