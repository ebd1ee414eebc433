from __future__ import annotations

from pathlib import Path
import sys

from loguru import logger

from library_catalog.utils.logging import setup_logging


def test_setup_logging_writes_file_with_entity_context(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "library.log"
    log_file.parent.mkdir()
    log_file.write_text("stale line from a previous run\n", encoding="utf-8")

    try:
        setup_logging("ERROR", log_file, "DEBUG")
        logger.debug("plain message")
        logger.bind(entity="book").info("bound message")
        logger.complete()
    finally:
        logger.remove()
        logger.add(sys.stderr)

    text = log_file.read_text(encoding="utf-8")
    assert "stale line" not in text
    assert "entity=- " in text
    assert "entity=book " in text
    assert "bound message" in text
