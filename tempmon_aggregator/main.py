"""
主程序入口

启动两个并发任务：
1. REST API 服务（接收读数 + 查询）
2. 数据清理任务
"""

import asyncio
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import uvicorn

from . import __version__
from .config import AppConfig, load_config
from .database import Database
from .retention import run_cleanup


def setup_logging(config: AppConfig):
    """配置日志"""
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    level = getattr(logging, config.logging.level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format=log_format,
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    # 如果配置了文件日志
    if config.logging.file:
        log_path = Path(config.logging.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            str(log_path),
            maxBytes=config.logging.max_size_mb * 1024 * 1024,
            backupCount=config.logging.backup_count,
            encoding="utf-8"
        )
        file_handler.setFormatter(logging.Formatter(log_format))
        logging.getLogger().addHandler(file_handler)

    # 降低第三方库日志级别
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def acquire_single_instance_lock(lock_path: Path):
    """
    防止多个 Aggregator 实例共用同一个数据库文件。

    通过文件锁实现：同一路径下只能有一个进程持锁。
    """
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    handle = open(lock_path, "a+b")

    try:
        if os.name == "nt":
            import msvcrt  # type: ignore

            handle.seek(0)
            msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, 1)
        else:
            import fcntl  # type: ignore

            fcntl.flock(handle, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except OSError as e:
        handle.close()
        raise RuntimeError(f"Another Tempmon Aggregator instance is already running (lock: {lock_path})") from e

    handle.seek(0)
    handle.truncate()
    handle.write(str(os.getpid()).encode("utf-8"))
    handle.flush()

    return handle


async def run_api_server(config: AppConfig, db: Database):
    """运行 API 服务器"""
    from .api.app import create_app

    server_config = uvicorn.Config(
        app=create_app(config, db),
        host=config.api.host,
        port=config.api.port,
        log_level="info",
        access_log=False
    )
    server = uvicorn.Server(server_config)
    await server.serve()


async def main(config: AppConfig):
    """主函数：启动所有任务"""
    logger = logging.getLogger(__name__)

    logger.info("=" * 60)
    logger.info(f"Tempmon Aggregator v{__version__}")
    logger.info("=" * 60)
    logger.info(f"Config loaded: API={config.api.listen}")
    logger.info(f"Database: {config.database.type} ({config.database.path})")

    # 单实例锁：避免重复启动
    db_path = Path(config.database.path)
    try:
        lock_handle = acquire_single_instance_lock(db_path.parent / "tempmon-aggregator.lock")
    except RuntimeError as e:
        logger.error(str(e))
        return

    try:
        db = Database(config.database.path, timeout=config.database.timeout)
        logger.info("Running database migrations...")
        db.init_schema()
        logger.info(f"Database initialized: {db.db_path}")

        logger.info("Starting concurrent tasks...")
        await asyncio.gather(
            run_api_server(config, db),
            run_cleanup(config, db),
        )
    except asyncio.CancelledError:
        logger.info("Tasks cancelled, shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        raise
    finally:
        lock_handle.close()


def cli():
    """命令行入口"""
    config = load_config()
    setup_logging(config)
    try:
        asyncio.run(main(config))
    except KeyboardInterrupt:
        print("\nShutdown requested, exiting...")
        sys.exit(0)


if __name__ == "__main__":
    cli()
