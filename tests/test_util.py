import json
import logging
from pathlib import Path

import pytest

from plantmap.util import setup_logging, write_json


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    mpl_level = logging.getLogger("matplotlib").level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("matplotlib").setLevel(mpl_level)


def test_verbose_logging_keeps_matplotlib_quiet(tmp_path: Path, restore_logging):
    log_file = tmp_path / "logs" / "run.log"
    setup_logging(log_file, verbose=True)

    logging.getLogger("plantmap.test").debug("pipeline detail")
    logging.getLogger("matplotlib.font_manager").debug("font scan detail")
    for handler in logging.getLogger().handlers:
        handler.flush()

    text = log_file.read_text(encoding="utf-8")
    assert "| DEBUG | plantmap.test | pipeline detail" in text
    assert "font scan detail" not in text


def test_write_json_creates_parents(tmp_path: Path):
    target = tmp_path / "build" / "map.manifest.json"
    write_json(target, {"b": 1, "a": "Ünit"})
    text = target.read_text(encoding="utf-8")
    assert text.endswith("\n")
    assert json.loads(text) == {"a": "Ünit", "b": 1}
    assert text.index('"a"') < text.index('"b"')
