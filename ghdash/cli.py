"""gh-dashboard command line: load settings, resolve the token, run the TUI."""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Mapping, Sequence

import requests
from actions_sdk import ActionsAuthenticationError, ActionsError

from . import __version__
from .config import ENV_LOG_LEVEL, Settings, get_log_path, load_settings
from .credentials import resolve_token
from .dashboard import RunDashboard
from .demo import DEMO_REPOS, DEMO_TOKEN, DemoRunSource
from .errors import ConfigError, CredentialError
from .sources import GitHubRunSource, RunSource

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gh-dashboard",
        description="Live terminal dashboard of GitHub Actions workflow runs",
    )
    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument("--config", "-c", metavar="PATH", help="Read only this config file")
    parser.add_argument(
        "--refresh", "-r",
        type=float,
        metavar="SECONDS",
        help="Seconds between refreshes (overrides refresh_interval)",
    )
    parser.add_argument(
        "--demo",
        action="store_true",
        help="Show generated runs; needs no config or token",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        help=f"Log level for the log file (default WARNING, or ${ENV_LOG_LEVEL})",
    )
    return parser


def setup_logging(level: str | None, env: Mapping[str, str]) -> Path:
    """Send logs to a file; the terminal belongs to the TUI."""
    log_path = get_log_path(env)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    name = (level or env.get(ENV_LOG_LEVEL) or "WARNING").upper()
    logging.basicConfig(
        filename=str(log_path),
        level=getattr(logging, name, logging.WARNING),
        format=LOG_FORMAT,
    )
    return log_path


def validate_token(source: RunSource, token: str) -> None:
    """Check the token once before starting.

    Raises:
        CredentialError: If GitHub rejects the token. Any other failure is
            logged and ignored; the first cycle will report it.
    """
    try:
        login = source.validate_credential(token)
    except ActionsAuthenticationError as e:
        raise CredentialError(f"GitHub rejected the token: {e}") from e
    except (ActionsError, requests.RequestException, OSError) as e:
        logger.warning("Could not validate token, continuing: %s", e)
        return
    if login:
        logger.info("Authenticated as %s", login)


def prepare(
    args: argparse.Namespace,
    env: Mapping[str, str],
) -> tuple[RunSource, Settings, str]:
    """Resolve everything the dashboard needs before the UI starts.

    Raises:
        ConfigError: Unreadable or invalid configuration
        CredentialError: No usable token
    """
    if args.demo:
        settings = Settings(repos=list(DEMO_REPOS))
        source: RunSource = DemoRunSource()
        token = DEMO_TOKEN
    else:
        settings = load_settings(args.config, env)
        source = GitHubRunSource(settings.api_url)
        token = resolve_token(settings, env)
        validate_token(source, token)

    if args.refresh is not None:
        if args.refresh <= 0:
            raise ConfigError(f"--refresh must be positive, got {args.refresh:g}")
        settings.refresh_interval = args.refresh
    return source, settings, token


def main(argv: Sequence[str] | None = None, env: Mapping[str, str] | None = None) -> int:
    env = os.environ if env is None else env
    args = build_parser().parse_args(argv)

    try:
        log_path = setup_logging(args.log_level, env)
    except OSError as e:
        print(f"gh-dashboard: cannot open log file: {e}", file=sys.stderr)
        return 1

    try:
        source, settings, token = prepare(args, env)
    except (ConfigError, CredentialError) as e:
        logger.error("Startup failed: %s", e)
        print(f"gh-dashboard: {e}", file=sys.stderr)
        return 1

    logger.info(
        "Starting dashboard: %d repositories, refresh every %gs",
        len(settings.repos), settings.refresh_interval,
    )
    try:
        app = RunDashboard(
            source,
            settings.repos,
            token,
            refresh_interval=settings.refresh_interval,
            fetch_timeout=settings.fetch_timeout,
        )
        app.run()
    except Exception:
        logger.exception("Dashboard crashed")
        raise

    code = app.return_code or 0
    if code:
        print(f"gh-dashboard: exited with errors, see {log_path}", file=sys.stderr)
    return code


if __name__ == "__main__":
    sys.exit(main())
