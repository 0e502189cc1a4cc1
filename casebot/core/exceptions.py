"""
Типы ошибок работы с Google-таблицей.

Вынесены в отдельный модуль, чтобы обработчики бота и HTTP API
могли различать их без импорта транспортного слоя.
"""


class CaseBotError(Exception):
    """Базовая ошибка приложения."""


class RemoteFetchError(CaseBotError):
    """Google вернул не-2xx ответ или запрос не дошел до сервера."""

    def __init__(self, status_code: int | None, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Google Sheets request failed ({status_code}): {body[:300]}")


class InsufficientPermissionError(CaseBotError):
    """Попытка записи с учетными данными, дающими только чтение."""


class ConfigurationError(CaseBotError):
    """Не хватает обязательной настройки окружения."""
