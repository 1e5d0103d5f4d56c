#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Настройка структурированного логирования (structlog)."""

from __future__ import annotations

import logging
import sys
from typing import Optional

import structlog


def configure_logging(log_level: str = "INFO", json_logs: bool = False) -> None:
    """Настраивает structlog для процесса.

    Вызывается один раз при старте (сервер или скрипт индексации),
    до первой записи в лог.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
    )


def bind_request_context(user_id: Optional[str]) -> None:
    """Привязывает user_id ко всем записям текущего запроса."""
    structlog.contextvars.bind_contextvars(user_id=user_id)


def clear_request_context() -> None:
    structlog.contextvars.unbind_contextvars("user_id")
