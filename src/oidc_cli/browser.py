from __future__ import annotations

import logging
import webbrowser

from oidc_cli.errors import BrowserFailed
from oidc_cli.ui.types import UserInterface

logger = logging.getLogger(__name__)


def open_browser(url: str) -> None:
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as exc:
        raise BrowserFailed(f"Browser opening failed: {exc}") from exc
    if not opened:
        raise BrowserFailed("Browser opening failed: no runnable browser found")


def open_browser_with_fallback(url: str, ui: UserInterface) -> bool:
    """Try to launch the browser; on failure show ``url`` for manual navigation."""
    try:
        open_browser(url)
    except BrowserFailed as exc:
        logger.warning("could not open browser: %s", exc)
        ui.display("Unable to open browser automatically.")
        ui.display("Please manually open the following URL in your browser:")
        ui.display("")
        ui.display(url)
        ui.display("")
        return False
    ui.display("Opening browser for authentication...")
    return True
