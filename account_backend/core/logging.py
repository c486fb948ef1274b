from __future__ import annotations

import logging

import structlog

from .settings import S

def configure_logging(level: str = "", *, json: bool | None = None) -> None:
    level_name = (level or S.log_level).upper()
    render_json = S.log_json if json is None else json
    renderer = structlog.processors.JSONRenderer(sort_keys=True) if render_json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level_name)),
        cache_logger_on_first_use=True,
    )
