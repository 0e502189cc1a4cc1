"""
Сервисный модуль для управления пользователями и их ролями.

Пользователи читаются из листа "Пользователи" и кэшируются на TTL.
Кэш - единственное общее изменяемое состояние процесса: бот обрабатывает
несколько чатов параллельно, поэтому обновление кэша сериализовано,
и одновременно выполняется не более одного запроса к таблице.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Callable

from casebot.core.columns import USERS_COLUMNS, a1_range
from casebot.core.config import Settings, settings
from casebot.core.exceptions import RemoteFetchError
from casebot.models.user import User
from casebot.services.google_api import GoogleSheetsService
from casebot.services.row_parser import parse_user_rows

logger = logging.getLogger(__name__)


class CacheState(str, Enum):
    EMPTY = "empty"
    POPULATED = "populated"
    STALE = "stale"


class UserService:
    """
    Кэш пользователей с ролями.

    Args:
        fetch_users: Синхронная функция, читающая всех пользователей из таблицы.
        ttl_seconds: Время жизни кэша.
        clock: Источник монотонного времени (подменяется в тестах).
    """

    def __init__(
        self,
        fetch_users: Callable[[], list[User]],
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetch_users = fetch_users
        self._cache_ttl = ttl_seconds
        self._clock = clock
        self._users: dict[int, User] = {}
        self._cache_timestamp: float | None = None
        self._refresh_lock = asyncio.Lock()
        self._generation = 0
        self._last_refresh_ok = False

    @classmethod
    def from_sheets(
        cls, google_api: GoogleSheetsService, config: Settings = settings
    ) -> "UserService":
        """Создает кэш, читающий лист пользователей через GoogleSheetsService."""
        users_range = a1_range(config.users_sheet_name, 0, USERS_COLUMNS - 1)

        def fetch_users() -> list[User]:
            values = google_api.fetch_rows(users_range)
            return parse_user_rows(values, config.users_sheet_header_rows)

        return cls(fetch_users, ttl_seconds=config.roles_cache_ttl_seconds)

    @property
    def state(self) -> CacheState:
        if self._cache_timestamp is None:
            return CacheState.EMPTY
        if self._clock() - self._cache_timestamp >= self._cache_ttl:
            return CacheState.STALE
        return CacheState.POPULATED

    async def refresh(self) -> bool:
        """
        Перечитывает пользователей из таблицы.

        Если обновление уже выполняется, вызов дожидается его и возвращает
        его результат, не делая повторного запроса. При ошибке прежнее
        содержимое кэша сохраняется.
        """
        generation = self._generation
        async with self._refresh_lock:
            if self._generation != generation:
                logger.debug("Reusing result of a concurrent roles cache refresh.")
                return self._last_refresh_ok

            logger.info("Refreshing roles cache from Google Sheet...")
            try:
                users = await asyncio.to_thread(self._fetch_users)
            except RemoteFetchError as e:
                logger.warning(
                    f"Failed to refresh roles cache, keeping {len(self._users)} cached users: {e}"
                )
                self._last_refresh_ok = False
            except Exception as e:
                logger.error(f"Unexpected error while refreshing roles cache: {e}", exc_info=True)
                self._last_refresh_ok = False
            else:
                self._users = {user.telegram_id: user for user in users}
                self._cache_timestamp = self._clock()
                self._last_refresh_ok = True
                logger.info(f"Roles cache refreshed: {len(self._users)} users.")
            finally:
                self._generation += 1
            return self._last_refresh_ok

    async def _ensure_fresh(self) -> None:
        if self.state is not CacheState.POPULATED:
            await self.refresh()
        else:
            logger.debug("Returning users from cache.")

    async def resolve(self, telegram_id: int) -> User:
        """Возвращает пользователя или гостя, если его нет в таблице. Не бросает исключений."""
        await self._ensure_fresh()
        user = self._users.get(telegram_id)
        if user is None:
            return User.guest(telegram_id)
        return user

    async def get_all_users(self) -> list[User]:
        await self._ensure_fresh()
        return list(self._users.values())

    def invalidate(self) -> None:
        """Помечает кэш устаревшим; данные остаются доступными до следующего обновления."""
        if self._cache_timestamp is not None:
            self._cache_timestamp = None
            logger.info("Roles cache invalidated.")
