"""Logging setup for the plantmap CLI and the render manifest writer."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# third-party loggers that flood debug output while a figure is drawn
_QUIET_LOGGERS = ("matplotlib", "PIL", "fiona", "pyogrio", "urllib3")


def setup_logging(log_file: Path | None = None, verbose: bool = False) -> None:
    """Route pipeline logs to stderr and, when configured, to `output.log_file`.

    `verbose` enables DEBUG for the `plantmap.*` loggers only.
    """
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))


def write_json(path: Path, payload: Any) -> None:
    """Write a render manifest as sorted, indented UTF-8 JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, sort_keys=True, ensure_ascii=False)
        fh.write("\n")
