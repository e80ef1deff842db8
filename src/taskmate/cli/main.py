# src/taskmate/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppContext, restores the session, then runs the
console REPL on an asyncio loop until /exit, EOF or Ctrl+C.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from ..cli.bootstrap import create_app_context, start_session
from ..config import get_settings
from ..connectors.console_connector import ConsoleNotifier, run_console_loop
from ..core.state import AppContext
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _shutdown(ctx: AppContext) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        await ctx.aclose()
    except Exception:
        logger.debug("Context close failed.", exc_info=True)


async def _run(settings) -> None:
    ctx = create_app_context(ConsoleNotifier(), settings=settings)
    try:
        start_session(ctx)
        await ctx.sync.wait_idle()
        if not ctx.session.is_authenticated:
            logger.info("No session. Use /login <token> to sign in.")
        await run_console_loop(ctx)
    finally:
        await _shutdown(ctx)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/taskmate")
    setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s (server %s)...", settings.app_name, settings.api_url)

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(_run(settings))

    logger.info("Bye.")


if __name__ == "__main__":
    main()
