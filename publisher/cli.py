"""Command line interface for publisher package."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from rich.logging import RichHandler

from . import __version__
from .cli_progress import (
    PublishProgress,
    print_error,
    print_notice,
    render_configuration_summary,
)
from .models import DEFAULT_SERVER, Credentials, PublishConfig, PublishResult
from .services.authorization import Authorization, Authorize, CredentialsCache
from .use_cases.publish import PublishPackageUseCase


ENV_PREFIX = "PUBLISHER_"


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Logs stay off unless --debug or --log-level is given; --silent wins.
    Returns the effective mode for the configuration summary.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    logging.disable(logging.NOTSET)

    if silent or not (debug or log_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    level = logging.DEBUG if debug else getattr(logging, log_level.upper(), logging.INFO)
    handler = RichHandler(rich_tracebacks=True, markup=False, show_time=False, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return logging.getLevelName(level)


def _normalize_server(server: Optional[str]) -> str:
    value = (server or "").strip()
    if not value:
        return DEFAULT_SERVER
    if not value.startswith(("http://", "https://")):
        raise CLIError(f"server must be an http(s) URL: {value}")
    return value.rstrip("/")


def _load_env_file(path: Path) -> None:
    """Export ``PUBLISHER_*`` settings from a .env file unless already set."""
    if not path.is_file():
        raise CLIError(f"env file not found: {path}")
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for line in content.splitlines():
        key, sep, value = line.strip().removeprefix("export ").partition("=")
        key = key.strip()
        if not sep or not key.startswith(ENV_PREFIX):
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
            value = value[1:-1]
        os.environ.setdefault(key, value)


def _build_authorize(token: Optional[str]) -> Optional[Authorize]:
    """Credentials callback for a token given on the command line or env."""
    if not token:
        return None

    async def authorize() -> Credentials:
        return Credentials(access_token=token)

    return authorize


async def _run_publish(config: PublishConfig, token: Optional[str]) -> PublishResult:
    cache = CredentialsCache(config.credentials_path)
    authorization = Authorization(
        cache,
        authorize=_build_authorize(token),
        timeout=config.timeout,
    )
    use_case = PublishPackageUseCase(config, authorization, notify=print_notice)

    progress = PublishProgress(config.package_dir.name or str(config.package_dir))
    progress.start()
    try:
        result = await use_case.execute(progress.get_callback())
    finally:
        progress.stop()
    progress.complete(result)
    return result


def _build_parser(prog: str = "publish") -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Publish the current package to a package server.",
    )
    parser.add_argument(
        "--server",
        default=None,
        help=(
            "The package server to which to upload this package "
            f"(default from PUBLISHER_SERVER or {DEFAULT_SERVER})"
        ),
    )
    parser.add_argument(
        "-C",
        "--dir",
        type=Path,
        default=Path("."),
        help="Package root directory (default: current directory)",
    )
    parser.add_argument(
        "--credentials",
        type=Path,
        default=None,
        help="Credentials file (default from PUBLISHER_CREDENTIALS or ~/.cache/publisher)",
    )
    parser.add_argument(
        "--token",
        default=None,
        help="Access token used when no stored credentials exist (default from PUBLISHER_TOKEN)",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"{prog} (publisher {__version__})",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None, prog: Optional[str] = None) -> int:
    parser = _build_parser(prog or Path(sys.argv[0]).name or "publish")
    args = parser.parse_args(argv)

    used_env_file = args.env_file
    if used_env_file is None and Path(".env").is_file():
        used_env_file = Path(".env")
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print_error(str(exc))
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    package_dir = Path(args.dir).expanduser().resolve()
    if not package_dir.is_dir():
        print_error(f"package directory does not exist: {package_dir}")
        return 1

    try:
        server = _normalize_server(args.server or os.getenv("PUBLISHER_SERVER"))
    except CLIError as exc:
        print_error(str(exc))
        return 1

    config = PublishConfig.from_env(
        server=server,
        package_dir=package_dir,
        credentials_path=args.credentials.expanduser() if args.credentials else None,
    )
    token = args.token or os.getenv("PUBLISHER_TOKEN")

    if not args.silent:
        render_configuration_summary(
            [
                ("Package", str(config.package_dir)),
                ("Server", config.server),
                ("Credentials", str(CredentialsCache(config.credentials_path).path)),
                ("Token", "provided" if token else None),
                ("Env file", str(used_env_file) if used_env_file else None),
                ("Logging", effective_log_mode),
            ],
            title=parser.prog,
        )

    try:
        result = asyncio.run(_run_publish(config, token))
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130
    return 0 if result.success else 1


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
