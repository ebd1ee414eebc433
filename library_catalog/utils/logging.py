from __future__ import annotations

from pathlib import Path
import sys

from loguru import logger


_DEFAULT_CONTEXT = {
    "entity": "-",
}

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> "
    "| <level>{level:<8}</level> "
    "| entity={extra[entity]} "
    "| {name}:{line} - {message}"
)


def _inject_default_context(record: dict) -> None:
    extra = record["extra"]
    for key, value in _DEFAULT_CONTEXT.items():
        extra.setdefault(key, value)


def setup_logging(level: str, log_file: Path | None = None, file_level: str = "DEBUG") -> None:
    """Configure loguru logging for CLI runs.

    The console sink goes to stderr so log lines never mix into the menu text
    printed on stdout. The optional file sink is truncated on every start.
    """
    logger.remove()
    logger.configure(patcher=_inject_default_context)
    logger.add(
        sys.stderr,
        level=level,
        backtrace=True,
        diagnose=False,
        format=_FORMAT,
    )
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level=file_level,
            mode="w",
            encoding="utf-8",
            backtrace=True,
            diagnose=False,
            format=_FORMAT,
        )
