"""
日志配置

控制台彩色输出；文件按日期分为全量日志和错误日志两份，目录由 LOG_DIR 配置。
"""

import logging
import sys
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional

from orderhub.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 第三方库只保留警告以上
QUIET_LOGGERS = ("uvicorn.access", "apscheduler", "urllib3")


class ColoredFormatter(logging.Formatter):
    """控制台按级别着色"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        # 在副本上加颜色，文件处理器拿到的仍是原始记录
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def log_files(log_dir: Path, day: Optional[date] = None) -> Dict[str, Path]:
    """当天的日志文件路径：all / error"""
    stamp = (day or date.today()).isoformat()
    return {
        "all": log_dir / f"orderhub_{stamp}.log",
        "error": log_dir / f"orderhub_error_{stamp}.log",
    }


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    return handler


def setup_logging(log_level: Optional[str] = None, log_dir: Optional[Path] = None) -> List[Path]:
    """
    配置根日志器，可重复调用（会替换已有处理器）

    Args:
        log_level: 日志级别，默认取 settings.LOG_LEVEL
        log_dir: 日志目录，默认取 settings.LOG_DIR

    Returns:
        写入的日志文件列表
    """
    level = getattr(logging, (log_level or settings.LOG_LEVEL).upper(), logging.INFO)
    log_dir = Path(log_dir or settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT))
    root_logger.addHandler(console_handler)

    files = log_files(log_dir)
    root_logger.addHandler(_file_handler(files["all"], logging.INFO))
    root_logger.addHandler(_file_handler(files["error"], logging.ERROR))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    # SQL_DEBUG 打开时保留 SQL 语句日志
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if settings.SQL_DEBUG else logging.WARNING)

    logging.info(f"📋 日志系统初始化完成: 级别={logging.getLevelName(level)} 目录={log_dir}")
    return list(files.values())
