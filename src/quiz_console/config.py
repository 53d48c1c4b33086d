"""Configuration for the quiz server.

The config file is TOML. Every section has defaults, so a missing default
config file simply means "run with built-in settings"; an explicitly named
file must exist.
"""

from __future__ import annotations

import copy
import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .core.workspace import WorkspaceLayout, ensure_workspace
from .errors import ConfigError

CONFIG_PATH_ENV = "QUIZ_CONSOLE_CONFIG"
CONFIG_FILENAME = "quiz-console.toml"
DATABASE_FILENAME = "quizzes.sqlite"

__all__ = [
    "CONFIG_PATH_ENV",
    "ServerConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "QuizConsoleConfig",
    "LoadResult",
    "load_config",
    "resolve_config_path",
    "config_template",
    "write_template",
]


@dataclass(frozen=True)
class ServerConfig:
    host: str
    port: int
    banner: str
    color: bool


@dataclass(frozen=True)
class DatabaseConfig:
    url: str
    echo: bool
    seed_defaults: bool


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    verbose: bool


@dataclass(frozen=True)
class QuizConsoleConfig:
    server: ServerConfig
    database: DatabaseConfig
    logging: LoggingConfig

    def with_server(
        self, *, host: Optional[str] = None, port: Optional[int] = None
    ) -> "QuizConsoleConfig":
        """Return a copy with command-line overrides applied."""

        server = self.server
        if host is not None:
            server = replace(server, host=_require_string(host, field="host"))
        if port is not None:
            server = replace(server, port=_require_port(port, field="port"))
        return replace(self, server=server)


@dataclass(frozen=True)
class LoadResult:
    config: QuizConsoleConfig
    path: Path
    layout: WorkspaceLayout
    from_file: bool


def _require_string(value: Any, *, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{field}' must be a non-empty string.")
    return value.strip()


def _require_bool(value: Any, *, field: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"'{field}' must be a boolean.")
    return value


def _require_port(value: Any, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"'{field}' must be an integer.")
    if not (0 <= value <= 65535):
        raise ConfigError(f"'{field}' must be between 0 and 65535.")
    return value


def _build_server(section: Mapping[str, Any]) -> ServerConfig:
    return ServerConfig(
        host=_require_string(section.get("host"), field="server.host"),
        port=_require_port(section.get("port"), field="server.port"),
        banner=_require_string(section.get("banner"), field="server.banner"),
        color=_require_bool(section.get("color"), field="server.color"),
    )


def _build_database(
    section: Mapping[str, Any], layout: WorkspaceLayout
) -> DatabaseConfig:
    raw_url = section.get("url")
    if raw_url is None:
        db_path = layout.path_for("db") / DATABASE_FILENAME
        url = f"sqlite+aiosqlite:///{db_path}"
    else:
        url = _require_string(raw_url, field="database.url")
    return DatabaseConfig(
        url=url,
        echo=_require_bool(section.get("echo"), field="database.echo"),
        seed_defaults=_require_bool(
            section.get("seed_defaults"), field="database.seed_defaults"
        ),
    )


def _build_logging(section: Mapping[str, Any]) -> LoggingConfig:
    raw_level = _require_string(section.get("level"), field="logging.level")
    level = raw_level.upper()
    allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    if level not in allowed:
        raise ConfigError(
            "logging.level must be one of "
            "DEBUG, INFO, WARNING, ERROR, CRITICAL."
        )
    verbose = _require_bool(section.get("verbose"), field="logging.verbose")
    return LoggingConfig(level=level, verbose=verbose)


def _build_config(
    tree: Mapping[str, Any], layout: WorkspaceLayout
) -> QuizConsoleConfig:
    return QuizConsoleConfig(
        server=_build_server(tree["server"]),
        database=_build_database(tree["database"], layout),
        logging=_build_logging(tree["logging"]),
    )


def resolve_config_path(
    *,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
    layout: WorkspaceLayout | None = None,
) -> Path:
    env_map = os.environ if env is None else env
    if explicit_path is not None:
        return explicit_path.expanduser().resolve()
    env_override = (env_map.get(CONFIG_PATH_ENV) or "").strip()
    if env_override:
        return Path(env_override).expanduser().resolve()
    if layout is None:
        layout = ensure_workspace(env=env_map)
    return layout.path_for("config") / CONFIG_FILENAME


def load_config(
    *,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
) -> LoadResult:
    """Resolve, load and validate the configuration.

    A missing file is only an error when the caller named it explicitly,
    either through ``explicit_path`` or ``QUIZ_CONSOLE_CONFIG``.
    """

    env_map = os.environ if env is None else env
    layout = ensure_workspace(env=env_map)
    path = resolve_config_path(
        explicit_path=explicit_path, env=env_map, layout=layout
    )
    named = explicit_path is not None or bool(
        (env_map.get(CONFIG_PATH_ENV) or "").strip()
    )

    tree = default_tree()
    from_file = False
    if path.exists() or named:
        _apply_file(tree, _read_file(path))
        from_file = True
    return LoadResult(
        config=_build_config(tree, layout),
        path=path,
        layout=layout,
        from_file=from_file,
    )


def default_tree() -> Dict[str, Any]:
    """Return a copy of the default configuration tree."""

    return copy.deepcopy(_DEFAULTS)


def config_template() -> str:
    return _CONFIG_TEMPLATE.strip() + "\n"


def write_template(
    path: Path, *, overwrite: bool = False, mode: int = 0o600
) -> Path:
    """Write the commented default config to ``path``."""

    if path.exists() and not overwrite:
        raise ConfigError(f"Config already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(config_template(), encoding="utf-8")
    try:
        path.chmod(mode)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
    return path


def _read_file(path: Path) -> Dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse config TOML: {exc}") from exc


def _apply_file(tree: Dict[str, Any], data: Mapping[str, Any]) -> None:
    """Overlay the file's tables on ``tree``; every table is flat."""

    for section, values in data.items():
        if section not in tree:
            known = ", ".join(f"[{name}]" for name in tree)
            raise ConfigError(
                f"Unknown config section [{section}]; expected one of "
                f"{known}."
            )
        if not isinstance(values, Mapping):
            raise ConfigError(
                f"[{section}] must be a table, not {type(values).__name__}."
            )
        defaults = tree[section]
        unknown = sorted(set(values) - set(defaults))
        if unknown:
            raise ConfigError(f"Unknown key '{unknown[0]}' in [{section}].")
        defaults.update(values)


_DEFAULTS: Dict[str, Any] = {
    "server": {
        "host": "0.0.0.0",
        "port": 3030,
        "banner": "Quiz Console",
        "color": True,
    },
    "database": {
        "url": None,
        "echo": False,
        "seed_defaults": True,
    },
    "logging": {
        "level": "INFO",
        "verbose": False,
    },
}


_CONFIG_TEMPLATE = """
# quiz-console configuration

[server]
# Interface and TCP port the line-oriented console listens on
host = "0.0.0.0"
port = 3030
# Text shown in the welcome banner
banner = "Quiz Console"
# Emit ANSI colours to clients
color = true

[database]
# Async SQLAlchemy URL; defaults to <data home>/db/quizzes.sqlite
# url = "sqlite+aiosqlite:////var/lib/quiz-console/quizzes.sqlite"
# Log every SQL statement
echo = false
# Insert the starter quizzes when the table is empty
seed_defaults = true

[logging]
level = "INFO"
verbose = false
"""
