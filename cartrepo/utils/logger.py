"""cartrepo 日志配置

统一的根日志器配置，支持人类可读文本与 JSON 两种输出。

仓库和实例化模块在日志调用里通过 extra 附带 cartridge 上下文::

    logger.info("已安装 cartridge", extra=cartridge_context(c))

两种格式器都会把 (name, version, cartridge_version) 与来源 URL 一并输出，
节点日志采集端无需再从消息文本里解析。
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, TYPE_CHECKING, Any

if TYPE_CHECKING:
    from cartrepo.core.cartridge.models import Cartridge

TEXT_FORMAT = "%(asctime)s [%(levelname)-7s] %(name)s: %(message)s"

# 通过 extra 注入到 LogRecord 上的上下文字段
_CONTEXT_FIELDS = ("cartridge", "source_url")


def cartridge_context(cartridge: Cartridge) -> dict[str, Any]:
    """构造日志 extra 参数"""
    ctx: dict[str, Any] = {"cartridge": list(cartridge.key)}
    if cartridge.source_url:
        ctx["source_url"] = cartridge.source_url
    return ctx


def _record_context(record: logging.LogRecord) -> dict[str, Any]:
    return {
        name: getattr(record, name)
        for name in _CONTEXT_FIELDS
        if getattr(record, name, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """结构化 JSON 日志格式器

    输出示例:
        {"timestamp": "2024-01-01T12:00:00+00:00", "level": "INFO",
         "logger": "cartrepo.core.cartridge.repository", "message": "...",
         "module": "repository", "function": "install", "line": 42,
         "cartridge": ["php", "5.4", "1.0"]}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        entry.update(_record_context(record))
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """人类可读格式，有 cartridge 上下文时追加在行尾"""

    def __init__(self) -> None:
        super().__init__(TEXT_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        ctx = _record_context(record)
        if "cartridge" in ctx:
            line += " [{}]".format(" ".join(str(p) for p in ctx["cartridge"]))
        if "source_url" in ctx:
            line += f" <{ctx['source_url']}>"
        return line


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    stream: IO[str] | None = None,
) -> logging.Handler:
    """配置根日志器，返回新安装的 handler

    参数:
        level: 日志级别字符串（DEBUG, INFO, WARNING, ERROR, CRITICAL）
        json_output: 为 True 时使用 JSON 格式
        stream: 输出流，默认 stderr（stdout 留给命令输出）
    """
    reset_logging()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JSONFormatter() if json_output else TextFormatter())
    root.addHandler(handler)
    return handler


def reset_logging() -> None:
    """清理根日志器上的全部 handlers"""
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
