"""客户端日志配置 -- structlog + 标准库 logging 统一输出

TODOWORK_LOG_FORMAT: dev（默认，控制台可读输出）/ json（一行一条 JSON）
TODOWORK_LOG_LEVEL: 日志级别，默认 INFO

密码与令牌类字段在渲染前统一替换为 REDACTED_VALUE，
包括经由标准库 logging（如 httpx）进入的记录。
"""

import logging
import os
from collections.abc import Mapping
from typing import Any

import structlog

REDACTED_VALUE = "[REDACTED]"

SENSITIVE_KEYS = frozenset(
    {
        "password",
        "token",
        "id_token",
        "refresh_token",
        "api_key",
        "authorization",
    }
)


def _is_sensitive(key: str) -> bool:
    key = key.lower()
    return key in SENSITIVE_KEYS or key.endswith(("_password", "_token", "_secret"))


def _redact(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {
            k: REDACTED_VALUE if isinstance(k, str) and _is_sensitive(k) else _redact(v)
            for k, v in value.items()
        }
    return value


def redact_secrets(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """structlog processor：屏蔽敏感字段（含嵌套 dict）"""
    for key, value in event_dict.items():
        if _is_sensitive(key):
            event_dict[key] = REDACTED_VALUE
        elif isinstance(value, Mapping):
            event_dict[key] = _redact(value)
    return event_dict


def _select_renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer()


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """初始化 structlog 与根 logger

    Args:
        log_format: 覆盖 TODOWORK_LOG_FORMAT
        log_level: 覆盖 TODOWORK_LOG_LEVEL
    """
    log_format = log_format or os.environ.get("TODOWORK_LOG_FORMAT", "dev")
    log_level = log_level or os.environ.get("TODOWORK_LOG_LEVEL", "INFO")

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_select_renderer(log_format),
            foreign_pre_chain=pre_chain,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
