"""
Модуль конфигурации проекта.

Загружает настройки из переменных окружения с помощью Pydantic Settings.
Обеспечивает централизованный доступ к токену бота, параметрам Google-таблицы
и учетным данным сервисного аккаунта.
"""

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Основные настройки приложения.

    Атрибуты:
        bot_token (str): Секретный токен для доступа к Telegram Bot API.
        admin_ids (list[int]): Telegram ID администраторов для отчетов об ошибках.
        google_sheet_id (str): ID Google-таблицы с делами.
        google_api_key (str | None): API-ключ для чтения. Без него используется CSV-экспорт.
        google_credentials_file (str | None): Путь к JSON-ключу сервисного аккаунта (запись).
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # --- Telegram Bot Settings ---
    bot_token: str = Field(..., description="Telegram Bot API Token")
    admin_ids_str: str = Field(
        default="",
        alias="ADMIN_IDS",
        description="List of admin Telegram IDs, comma-separated",
    )

    @computed_field
    @property
    def admin_ids(self) -> list[int]:
        """Преобразует строку admin_ids_str в список целых чисел."""
        if not self.admin_ids_str:
            return []
        return [int(item.strip()) for item in self.admin_ids_str.split(",")]

    # --- Google Sheets Settings ---
    google_sheet_id: str = Field(..., description="Google Sheet ID with court cases")
    sheet_name: str = Field(
        default="",
        description="Worksheet with cases; empty means the first worksheet",
    )
    users_sheet_name: str = Field(default="👥 Пользователи")
    clients_sheet_name: str = Field(default="👥 База клиентов")
    users_sheet_header_rows: int = Field(
        default=9,
        description="Header and instruction rows at the top of the users sheet",
    )

    # --- Google Credentials ---
    google_api_key: str | None = Field(
        default=None, description="API key for read-only access"
    )
    google_credentials_file: str | None = Field(
        default=None, description="Path to the service account JSON key"
    )
    google_service_account_email: str | None = Field(default=None)
    google_private_key: str | None = Field(default=None)

    http_timeout_seconds: float = Field(default=15.0)
    google_api_retry_attempts: int = Field(
        default=1, description="Attempts per Google API call, 1 disables retries"
    )

    # --- Mini App / HTTP API ---
    base_url: str = Field(default="https://legalaipro.ru")
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=3000)

    @computed_field
    @property
    def mini_app_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/app"

    # --- Business Logic Settings ---
    display_timezone: str = Field(
        default="Europe/Moscow",
        description="Timezone for displaying dates and times to users",
    )
    roles_cache_ttl_seconds: int = Field(default=300)
    upcoming_hearings_limit: int = Field(default=10)
    notification_days_str: str = Field(
        default="1,3",
        alias="NOTIFICATION_DAYS",
        description="Days before a hearing or deadline to notify, comma-separated",
    )

    @computed_field
    @property
    def notification_days(self) -> list[int]:
        """Преобразует строку notification_days_str в список дней."""
        if not self.notification_days_str:
            return []
        return [int(item.strip()) for item in self.notification_days_str.split(",")]


# Создаем единственный экземпляр настроек, который будет использоваться во всем приложении
settings = Settings()
