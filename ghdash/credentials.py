"""GitHub token resolution.

Precedence:
1. auth_token from the config file
2. GH_DASHBOARD_TOKEN env var
3. GITHUB_TOKEN env var
4. `gh auth token --hostname <host>` (gh binary overridable via GH_PATH)
"""

import logging
import os
import subprocess
from typing import Mapping

from .config import Settings
from .errors import CredentialError

logger = logging.getLogger(__name__)

ENV_TOKEN = "GH_DASHBOARD_TOKEN"
ENV_GITHUB_TOKEN = "GITHUB_TOKEN"
ENV_GH_PATH = "GH_PATH"

GH_TIMEOUT_SECONDS = 10


def token_from_gh_cli(host: str, env: Mapping[str, str] | None = None) -> str | None:
    """Ask the gh CLI for its cached token. Returns None if unavailable."""
    env = os.environ if env is None else env
    gh = env.get(ENV_GH_PATH) or "gh"
    try:
        result = subprocess.run(
            [gh, "auth", "token", "--hostname", host],
            capture_output=True,
            text=True,
            timeout=GH_TIMEOUT_SECONDS,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("Error getting auth token from gh CLI: %s", e)
        return None

    if result.returncode != 0:
        logger.debug("No valid token from gh CLI: %s", result.stderr.strip())
        return None
    return result.stdout.strip() or None


def resolve_token(settings: Settings, env: Mapping[str, str] | None = None) -> str:
    """Return the first token found in precedence order.

    Raises:
        CredentialError: If no source yields a token
    """
    env = os.environ if env is None else env

    if settings.auth_token:
        logger.debug("Using GitHub token from config")
        return settings.auth_token

    for var in (ENV_TOKEN, ENV_GITHUB_TOKEN):
        value = (env.get(var) or "").strip()
        if value:
            logger.debug("Using GitHub token from %s", var)
            return value

    token = token_from_gh_cli(settings.host, env)
    if token:
        logger.debug("Using GitHub token from gh CLI")
        return token

    raise CredentialError(
        "Unable to find a GitHub token. Set auth_token in the config file, "
        f"export {ENV_TOKEN} or {ENV_GITHUB_TOKEN}, or run `gh auth login`."
    )
