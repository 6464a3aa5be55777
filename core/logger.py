"""
Momentum 日志配置模块。

日志去向：
- <logs>/system.log: 常规操作日志 (INFO+)
- <logs>/error.log: 异常堆栈 (ERROR/CRITICAL)
- <logs>/corruption_dump.log: 无法解析的快照原文
- stderr: 仅用户有用的提示 (WARNING+)

核心模块只通过 get_logger() 取子 logger，不自行添加 handler；
只有调用方 (CLI) 调用 setup_logging()。
"""
import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "momentum"

# 未调用 setup_logging() 时的默认目录
DEFAULT_LOGS_DIR = Path(__file__).parent.parent / "logs"

# 经验值：单文件 5MB，保留 3 个备份
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 3

# 损坏快照只保留开头部分，避免把整个大文件抄进日志
CORRUPTION_PREVIEW_CHARS = 500

FILE_FORMAT = logging.Formatter(
    "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
CONSOLE_FORMAT = logging.Formatter("[%(levelname)s] %(message)s")

_logs_dir = DEFAULT_LOGS_DIR


def level_from_env(default: int = logging.INFO) -> int:
    """MOMENTUM_LOG_LEVEL=DEBUG 之类的覆盖；无法识别时用默认值。"""
    raw = os.getenv("MOMENTUM_LOG_LEVEL", "").strip().upper()
    level = logging.getLevelName(raw) if raw else default
    return level if isinstance(level, int) else default


def _rotating_handler(path: Path, level: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(FILE_FORMAT)
    return handler


def setup_logging(
    log_level: Optional[int] = None,
    console_level: int = logging.WARNING,
    logs_dir: Optional[Path] = None
) -> logging.Logger:
    """
    初始化日志系统，可重复调用 (旧 handler 会被关闭替换)。

    Args:
        log_level: 文件日志级别 (默认读 MOMENTUM_LOG_LEVEL，否则 INFO)
        console_level: 控制台日志级别 (默认 WARNING)
        logs_dir: 日志目录 (默认 <project_root>/logs)

    Returns:
        配置好的 momentum root logger
    """
    global _logs_dir
    _logs_dir = logs_dir or DEFAULT_LOGS_DIR
    _logs_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)  # handler 负责过滤

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    logger.addHandler(_rotating_handler(_logs_dir / "system.log", log_level or level_from_env()))
    logger.addHandler(_rotating_handler(_logs_dir / "error.log", logging.ERROR))

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(CONSOLE_FORMAT)
    logger.addHandler(console_handler)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    获取模块专用的 logger。

    Args:
        name: 模块名称，如 "scheduler", "estimation"

    Returns:
        logger 实例 (momentum.<name>)
    """
    if name:
        return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    return logging.getLogger(ROOT_LOGGER_NAME)


def log_corruption(source: Path, raw_text: str, error_msg: str) -> Path:
    """
    把无法解析的快照原文 (截断) 追加到 corruption_dump.log。

    Returns:
        dump 文件路径
    """
    _logs_dir.mkdir(parents=True, exist_ok=True)
    dump_path = _logs_dir / "corruption_dump.log"

    preview = raw_text[:CORRUPTION_PREVIEW_CHARS]
    with open(dump_path, "a", encoding="utf-8") as f:
        f.write(f"[{datetime.now().isoformat()}] {source}: {error_msg}\n")
        f.write(f"  Raw: {preview}\n")
        f.write("-" * 50 + "\n")

    get_logger("state_file").warning("快照损坏 (%s): %s", source, error_msg)
    return dump_path
