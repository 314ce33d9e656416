# src/commandbot/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds the app, then runs the dispatch loop in the main
thread until the transport ends or a signal arrives.
"""

from __future__ import annotations

import logging
import signal
import sys

from ..cli.bootstrap import App, create_app
from ..config import get_settings
from ..core.errors import CommandBotError
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(app: App) -> None:
    """Stop the transport and kill whatever is still running."""
    app.dispatcher.stop()

    for executor in app.tasks.running():
        if executor.kill():
            logger.info("Killed task %s (%s) on shutdown.", executor.id, executor.task.command_name)


def main() -> int:
    settings = get_settings()

    level_name = str(settings.log_level).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    # keep noisy libs readable
    logging.getLogger("nio").setLevel(max(console_level, logging.INFO))
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)

    logger.info("Starting %s...", settings.app_name)

    try:
        app = create_app(settings=settings)
    except CommandBotError as e:
        logger.error("Startup failed: %s", e)
        return 1

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        app.dispatcher.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, _handle_signal)

    try:
        app.dispatcher.start()
    finally:
        _shutdown(app)
        logger.info("Bye.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
