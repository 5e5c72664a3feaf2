"""Open run pages in the user's browser."""

import logging
import webbrowser

logger = logging.getLogger(__name__)


def open_url(url: str) -> bool:
    """Launch url in the default browser. Returns False on failure (logged)."""
    if not url:
        return False
    try:
        opened = webbrowser.open(url, new=2)
    except webbrowser.Error:
        logger.exception("Failed to open %s", url)
        return False
    if not opened:
        logger.warning("No browser available to open %s", url)
    return opened
