"""
Основная точка входа в приложение.

Этот файл отвечает за инициализацию и запуск Telegram-бота в режиме polling.
Для режима webhook вместе с HTTP API используйте casebot.api.server.
"""

import logging

from casebot.bot import build_application
from casebot.core.config import settings
from casebot.core.logging_config import setup_logging
from casebot.dependencies import build_services

logger = logging.getLogger(__name__)


def main() -> None:
    """Основная функция для запуска бота."""
    setup_logging()

    services = build_services(settings)

    logger.info("Starting bot...")
    application = build_application(services, settings)

    logger.info("Bot is running in polling mode.")
    application.run_polling()


if __name__ == "__main__":
    main()
