"""
Tempmon Agent 主程序入口

使用方式:
    python -m tempmon_agent
    或
    tempmon-agent

配置文件路径由环境变量 TEMPMON_AGENT_CONFIG 指定，默认 /etc/tempmon/agent.yaml
"""

import asyncio
import logging
import sys
from pathlib import Path

import uvicorn
import yaml
from pydantic import ValidationError

from tempmon_agent.client import HttpReadingSink
from tempmon_agent.config import AgentConfig, load_config
from tempmon_agent.poller import Poller
from tempmon_agent.scanner import SensorScanner
from tempmon_agent.utils import split_listen

logger = logging.getLogger(__name__)


def setup_logging(config: AgentConfig):
    """配置日志"""
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    level = getattr(logging, config.logging.level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format=log_format,
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    if config.logging.file:
        log_path = Path(config.logging.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(str(log_path), encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(log_format))
        logging.getLogger().addHandler(file_handler)

    # 降低第三方库日志级别
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


async def run_api_server(config: AgentConfig, scanner: SensorScanner):
    """运行本地 API 服务器"""
    from tempmon_agent.app import create_app

    host, port = split_listen(config.listen)
    server_config = uvicorn.Config(
        app=create_app(config, scanner),
        host=host,
        port=port,
        log_level="info",
        access_log=False
    )
    server = uvicorn.Server(server_config)
    await server.serve()


async def run(config: AgentConfig):
    """启动采集循环（以及可选的本地 API）"""
    scanner = SensorScanner.from_config(config)
    sink = HttpReadingSink(config.server.url, timeout=config.server.timeout)
    poller = Poller(config, scanner, sink)

    logger.info(f"Reporting to server: {config.server.url}")

    tasks = [poller.run_forever()]
    if config.listen:
        logger.info(f"Local API listening on: {config.listen}")
        tasks.append(run_api_server(config, scanner))

    await asyncio.gather(*tasks)


def main():
    """主程序入口"""
    try:
        config = load_config()
    except (OSError, yaml.YAMLError, ValidationError) as e:
        print(f"Error: failed to load configuration: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config)
    logger.info(f"Starting Tempmon Agent (host_id={config.host_id})")

    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        print("\nShutdown requested, exiting...")
        sys.exit(0)


if __name__ == "__main__":
    main()
