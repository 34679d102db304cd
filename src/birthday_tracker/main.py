from __future__ import annotations

import logging

from telegram.ext import Application

from birthday_tracker.bot_handlers import HandlerDependencies, build_handlers
from birthday_tracker.settings import load_settings

LOGGER = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_application() -> Application:
    settings = load_settings()

    application = Application.builder().token(settings.telegram_bot_token).build()
    application.bot_data["handler_deps"] = HandlerDependencies(settings=settings)

    for handler in build_handlers():
        application.add_handler(handler)

    LOGGER.info(
        "Birthday tracker ready (timezone=%s, leap_day_rule=%s)",
        settings.timezone or "local",
        settings.leap_day_rule,
    )
    return application


def main() -> None:
    configure_logging()
    application = build_application()
    application.run_polling()


if __name__ == "__main__":
    main()
