from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

import pytest

from quiz_console.core import logging as core_logging


@pytest.fixture
def fresh_logger():
    """Hand out unique logger names and drop their handlers afterwards."""

    names: list[str] = []

    def make(suffix: str) -> str:
        name = f"quiz_console.test_{suffix}"
        names.append(name)
        return name

    yield make

    for name in names:
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


def _console_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [
        handler
        for handler in logger.handlers
        if getattr(handler, "_quiz_console_console", False)
    ]


def _records(path: Path) -> list[dict]:
    lines = path.read_text(encoding="utf-8").strip().splitlines()
    return [json.loads(line) for line in lines]


def test_records_are_json_lines_with_extras(tmp_path, fresh_logger):
    logger, log_path = core_logging.configure_logger(
        fresh_logger("json"),
        log_dir=tmp_path / "logs",
        filename="server.log",
    )

    logger.info("Client connected", extra={"peer": "127.0.0.1:5000"})
    try:
        raise LookupError("quiz 7")
    except LookupError:
        logger.exception(
            "Command failed",
            extra={"argv": ("show", "7"), "path": tmp_path, "obj": object},
        )
    for handler in logger.handlers:
        handler.flush()

    first, second = _records(log_path)
    assert log_path == tmp_path / "logs" / "server.log"
    assert first["message"] == "Client connected"
    assert first["level"] == "INFO"
    assert first["extra"] == {"peer": "127.0.0.1:5000"}
    assert "LookupError" in second["exception"]
    assert second["extra"]["argv"] == ["show", "7"]
    assert second["extra"]["path"] == str(tmp_path)
    assert second["extra"]["obj"] == repr(object)


def test_level_filters_file_output(tmp_path, fresh_logger):
    logger, log_path = core_logging.configure_logger(
        fresh_logger("level"),
        log_dir=tmp_path,
        level="warning",
        filename="level.log",
    )

    logger.info("quiet")
    logger.warning("loud")
    for handler in logger.handlers:
        handler.flush()

    assert [record["message"] for record in _records(log_path)] == ["loud"]


def test_default_filename_uses_last_name_part(tmp_path, fresh_logger):
    name = fresh_logger("named")

    _, log_path = core_logging.configure_logger(name, log_dir=tmp_path)

    assert log_path.name == "test_named.log"


def test_verbose_toggles_single_console_handler(tmp_path, fresh_logger):
    name = fresh_logger("toggle")

    logger, _ = core_logging.configure_logger(
        name, log_dir=tmp_path, verbose=True
    )
    core_logging.configure_logger(name, log_dir=tmp_path, verbose=True)
    assert len(_console_handlers(logger)) == 1

    core_logging.configure_logger(name, log_dir=tmp_path, verbose=False)
    assert _console_handlers(logger) == []


def test_file_handler_is_reused(tmp_path, fresh_logger):
    name = fresh_logger("reuse")

    logger, first = core_logging.configure_logger(name, log_dir=tmp_path)
    _, second = core_logging.configure_logger(
        name, log_dir=tmp_path / "elsewhere"
    )

    assert first == second
    assert len(logger.handlers) == 1


def test_unwritable_directory_falls_back(tmp_path, monkeypatch, fresh_logger):
    blocked = tmp_path / "blocked"
    fallback = tmp_path / "fallback"
    original_mkdir = Path.mkdir

    def fake_mkdir(self, *args, **kwargs):  # noqa: ANN001
        if self == blocked:
            raise PermissionError("denied")
        return original_mkdir(self, *args, **kwargs)

    monkeypatch.setattr(Path, "mkdir", fake_mkdir)
    monkeypatch.setattr(core_logging, "_fallback_log_dir", lambda: fallback)

    _, log_path = core_logging.configure_logger(
        fresh_logger("blocked"), log_dir=blocked, filename="blocked.log"
    )

    assert log_path == fallback / "blocked.log"
    assert log_path.exists()


def test_handler_permission_error_falls_back(
    tmp_path, monkeypatch, fresh_logger
):
    fallback = tmp_path / "rotate-fallback"
    original_handler = core_logging.RotatingFileHandler
    attempts: list[Path] = []

    def flaky_handler(path, *args, **kwargs):  # noqa: ANN001
        attempts.append(Path(path))
        if len(attempts) == 1:
            raise PermissionError("denied")
        return original_handler(path, *args, **kwargs)

    monkeypatch.setattr(core_logging, "RotatingFileHandler", flaky_handler)
    monkeypatch.setattr(core_logging, "_fallback_log_dir", lambda: fallback)

    _, log_path = core_logging.configure_logger(
        fresh_logger("rotate"), log_dir=tmp_path / "primary"
    )

    assert attempts[0].parent == tmp_path / "primary"
    assert log_path.parent == fallback


def test_fallback_log_dir_lives_in_tempdir(tmp_path, monkeypatch):
    monkeypatch.setattr(tempfile, "gettempdir", lambda: str(tmp_path))

    assert core_logging._fallback_log_dir() == tmp_path / "quiz-console-logs"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("debug", logging.DEBUG),
        ("ERROR", logging.ERROR),
        ("nope", logging.INFO),
    ],
)
def test_coerce_level(raw, expected):
    assert core_logging._coerce_level(raw) == expected
