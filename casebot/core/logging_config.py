"""
Модуль для конфигурации логирования.

Определяет единый формат и настройки для всех логгеров в приложении
(бот в режиме polling и HTTP API используют одну и ту же настройку).
"""

import logging
import sys


def setup_logging(level: int = logging.INFO) -> None:
    """
    Настраивает базовую конфигурацию логирования для вывода в stdout.

    Args:
        level: Уровень логирования (INFO, DEBUG и т.д.).
    """
    log_format = "%(asctime)s - [%(levelname)s] - %(name)s - (%(filename)s).%(funcName)s(%(lineno)d) - %(message)s"

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(logging.Formatter(log_format))

    logging.basicConfig(level=level, handlers=[stdout_handler], force=True)

    # Устанавливаем уровень WARNING для "шумных" библиотек
    for noisy in ("httpx", "urllib3", "telegram.ext.Updater"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
