"""Application bootstrap for Survey Chatbot.

Starts the Slack Bolt application via Socket Mode when executed as a script.
``survey_chatbot.app`` itself has no runtime side-effects beyond building the
app, so tests and tooling can import it freely.
"""
from __future__ import annotations

import os
import sys
from contextlib import suppress

from slack_bolt.adapter.socket_mode import SocketModeHandler

from survey_chatbot.app import app, logger, shutdown_executor


def main() -> None:  # pragma: no cover – manual run path
    """Start the survey bot in Socket Mode and block until interrupted."""

    app_token = os.getenv("SLACK_APP_TOKEN")
    if not app_token:
        logger.error(
            "Environment variable SLACK_APP_TOKEN is required to start the bot."
        )
        sys.exit(1)

    logger.info("Launching SocketModeHandler…")
    handler = SocketModeHandler(app, app_token)

    try:
        logger.info("Survey bot is ready to receive messages via Socket Mode.")
        handler.start()  # Blocking call
    except KeyboardInterrupt:  # pragma: no cover
        logger.info("Shutdown requested (KeyboardInterrupt). Exiting…")
    finally:
        with suppress(Exception):
            shutdown_executor()
        logger.info("Goodbye.")


if __name__ == "__main__":  # pragma: no cover
    main()
