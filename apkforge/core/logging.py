"""
Logging for APKForge.

Every tool invocation, stage outcome and batch result is reported through
structlog. Interactive terminals get coloured console lines; batch and CI runs
(non-interactive, or stderr redirected) get one JSON object per line so the
output of long split-package runs can be filtered by ``target`` or ``member``.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from .config import Config

# libraries that log every request or flow transition at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "prefect")


def _stringify_paths(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key, value in event_dict.items():
        if isinstance(value, Path):
            event_dict[key] = str(value)
    return event_dict


def setup_logging(config: Config | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        config: Source of the level and interactivity, INFO and a tty check when None.
    """
    log_level = config.log_level if config else "INFO"
    level = getattr(logging, log_level, logging.INFO)
    as_json = (config is not None and config.non_interactive) or not sys.stderr.isatty()

    # third-party loggers (prefect, httpx) still go through the stdlib
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                console=Console(stderr=True),
                show_path=False,
                rich_tracebacks=True,
                tracebacks_show_locals=level == logging.DEBUG,
            )
        ],
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if level == logging.DEBUG else logging.WARNING)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _stringify_paths,
        structlog.dev.set_exc_info,
    ]
    if as_json:
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, typically ``get_logger(__name__)``."""
    return structlog.get_logger(name)


@contextmanager
def log_context(**kwargs: object) -> Iterator[None]:
    """Bind key-value pairs to every log entry emitted inside the block.

    Used to tag a pipeline run with its ``target`` and batch work with the
    split ``member`` being processed.
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
