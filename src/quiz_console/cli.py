"""Command-line entry point for the quiz console server."""

from __future__ import annotations

import argparse
import asyncio
import sys
from importlib import metadata
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from . import config as config_mod
from .core.logging import configure_logger
from .errors import ConfigError, WorkspaceError
from .server import QuizServer
from .store import QuizStore

LOG_FILENAME = "quiz-console.log"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quiz-console",
        description="Serve the quiz console over a raw TCP socket.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser(
        "serve",
        help="Listen for console clients (connect with telnet or nc).",
    )
    serve_parser.add_argument(
        "--config",
        type=str,
        help="Path to the config TOML (defaults to the data home).",
    )
    serve_parser.add_argument("--host", help="Override server.host.")
    serve_parser.add_argument(
        "--port", type=int, help="Override server.port."
    )
    serve_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Mirror log records to stderr.",
    )

    config_parser = subparsers.add_parser(
        "config",
        help="Manage the quiz-console configuration file.",
    )
    _build_config_subcommands(config_parser)

    subparsers.add_parser("version", help="Print the installed version.")
    return parser


def _build_config_subcommands(parent: argparse.ArgumentParser) -> None:
    subparsers = parent.add_subparsers(dest="config_command", required=True)

    init_parser = subparsers.add_parser(
        "init",
        help="Write the default configuration template.",
    )
    init_parser.add_argument(
        "--path",
        type=str,
        help="Destination for the config TOML (defaults to data home).",
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config file if present.",
    )

    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate the active configuration file.",
    )
    validate_parser.add_argument(
        "--path",
        type=str,
        help="Path to the config TOML (defaults to resolved data home).",
    )
    validate_parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress success output; errors still print to stderr.",
    )

    path_parser = subparsers.add_parser(
        "path",
        help="Print the resolved config path.",
    )
    path_parser.add_argument(
        "--path",
        type=str,
        help="Optional path override to resolve/normalise.",
    )


def _to_path(value: str | None) -> Path | None:
    if value is None:
        return None
    return Path(value).expanduser().resolve()


def _handle_config(args: argparse.Namespace) -> int:
    command = args.config_command
    if command == "init":
        return _handle_config_init(args)
    if command == "validate":
        return _handle_config_validate(args)
    if command == "path":
        return _handle_config_path(args)
    raise RuntimeError(f"Unhandled config command: {command}")


def _handle_config_init(args: argparse.Namespace) -> int:
    try:
        target = config_mod.resolve_config_path(
            explicit_path=_to_path(args.path)
        )
        config_mod.write_template(target, overwrite=args.force)
    except (ConfigError, WorkspaceError) as exc:
        _print_error(str(exc))
        return 2
    print(f"Wrote config template to {target}")
    return 0


def _handle_config_validate(args: argparse.Namespace) -> int:
    try:
        result = config_mod.load_config(explicit_path=_to_path(args.path))
    except (ConfigError, WorkspaceError) as exc:
        _print_error(str(exc))
        return 2
    if not args.quiet:
        cfg = result.config
        source = result.path if result.from_file else "built-in defaults"
        print("Configuration OK")
        print(f"  source: {source}")
        print(f"  listen: {cfg.server.host}:{cfg.server.port}")
        print(f"  database: {cfg.database.url}")
        print(f"  log level: {cfg.logging.level}")
    return 0


def _handle_config_path(args: argparse.Namespace) -> int:
    try:
        path = config_mod.resolve_config_path(
            explicit_path=_to_path(args.path)
        )
    except (ConfigError, WorkspaceError) as exc:
        _print_error(str(exc))
        return 2
    print(path)
    return 0


def _handle_version(args: argparse.Namespace) -> int:  # noqa: ARG001
    try:
        version = metadata.version("quiz-console")
    except metadata.PackageNotFoundError:
        version = "unknown"
    print(version)
    return 0


def _handle_serve(args: argparse.Namespace) -> int:
    try:
        result = config_mod.load_config(explicit_path=_to_path(args.config))
        cfg = result.config.with_server(host=args.host, port=args.port)
    except (ConfigError, WorkspaceError) as exc:
        _print_error(str(exc))
        return 2

    logger, log_path = configure_logger(
        "quiz_console",
        log_dir=result.layout.path_for("logs"),
        level=cfg.logging.level,
        verbose=cfg.logging.verbose or args.verbose,
        filename=LOG_FILENAME,
    )
    logger.debug("serve invoked", extra={"config_path": result.path})

    print(
        "Serving quizzes on {0}:{1} (log: {2})".format(
            cfg.server.host, cfg.server.port, log_path
        )
    )
    try:
        asyncio.run(serve(cfg))
    except KeyboardInterrupt:
        print("Stopped.")
    except OSError as exc:
        logger.error("Server failed to start", extra={"error": str(exc)})
        _print_error(
            f"Cannot listen on {cfg.server.host}:{cfg.server.port}: {exc}"
        )
        return 1
    return 0


async def serve(cfg: config_mod.QuizConsoleConfig) -> None:
    """Open the store and serve clients until cancelled."""

    store = QuizStore.open(cfg.database.url, echo=cfg.database.echo)
    try:
        await store.create_schema()
        if cfg.database.seed_defaults:
            await store.seed_defaults()
        server = QuizServer(
            store,
            host=cfg.server.host,
            port=cfg.server.port,
            banner=cfg.server.banner,
            color=cfg.server.color,
        )
        await server.start()
        try:
            await server.serve_forever()
        finally:
            await server.close()
    finally:
        await store.dispose()


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    parser = _build_parser()
    try:
        args = parser.parse_args(list(argv) if argv is not None else None)
    except SystemExit as exc:  # pragma: no cover - argparse already handles
        return int(exc.code or 0)

    handlers = {
        "serve": _handle_serve,
        "config": _handle_config,
        "version": _handle_version,
    }
    handler = handlers.get(args.command)
    if handler is None:  # pragma: no cover - argparse enforces choices
        parser.error("Command not implemented yet.")
        return 2
    return handler(args)


def _print_error(message: str) -> None:
    sys.stderr.write(message + "\n")


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
