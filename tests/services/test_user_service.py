"""
Тесты для UserService (кэш пользователей и ролей).
"""

import asyncio

import pytest

from casebot.core.exceptions import RemoteFetchError
from casebot.models.role import RoleName
from casebot.models.user import User
from casebot.services.user_service import CacheState, UserService

SAMPLE_USERS = [
    User(telegram_id=100, name="Admin User", email="admin@firm.ru", role=RoleName.ADMIN),
    User(telegram_id=200, name="Lawyer User", email="lawyer@firm.ru", role=RoleName.LAWYER),
]


class FakeClock:
    """Управляемые часы для проверки TTL."""

    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fetch_users(mocker):
    """Фикстура для мока функции чтения листа пользователей."""
    return mocker.Mock(return_value=SAMPLE_USERS)


@pytest.fixture
def user_service(fetch_users, clock) -> UserService:
    return UserService(fetch_users, ttl_seconds=300, clock=clock)


@pytest.mark.asyncio
async def test_resolve_known_user(user_service, fetch_users):
    """Тест: Пользователь из таблицы находится по Telegram ID."""
    user = await user_service.resolve(200)

    assert user.name == "Lawyer User"
    assert user.role == RoleName.LAWYER
    assert user_service.state is CacheState.POPULATED
    fetch_users.assert_called_once()


@pytest.mark.asyncio
async def test_resolve_unknown_user_is_guest(user_service):
    """Тест: Пользователя нет в таблице, возвращается гость."""
    user = await user_service.resolve(999)

    assert user.telegram_id == 999
    assert user.role == RoleName.GUEST


@pytest.mark.asyncio
async def test_resolve_within_ttl_uses_cache(user_service, fetch_users, clock):
    """Тест: Повторные запросы в пределах TTL не обращаются к таблице."""
    await user_service.resolve(100)
    clock.now += 299
    await user_service.resolve(200)
    await user_service.get_all_users()

    fetch_users.assert_called_once()


@pytest.mark.asyncio
async def test_resolve_after_ttl_refetches(user_service, fetch_users, clock):
    """Тест: После истечения TTL кэш обновляется."""
    await user_service.resolve(100)
    clock.now += 300

    assert user_service.state is CacheState.STALE
    await user_service.resolve(100)

    assert fetch_users.call_count == 2
    assert user_service.state is CacheState.POPULATED


@pytest.mark.asyncio
async def test_empty_sheet_counts_as_populated(fetch_users, clock):
    """Тест: Пустой лист - это загруженный кэш, а не повод перечитывать."""
    fetch_users.return_value = []
    service = UserService(fetch_users, ttl_seconds=300, clock=clock)

    assert (await service.resolve(100)).role == RoleName.GUEST
    await service.resolve(100)

    assert service.state is CacheState.POPULATED
    fetch_users.assert_called_once()


@pytest.mark.asyncio
async def test_failed_refresh_keeps_previous_users(user_service, fetch_users, clock):
    """Тест: Ошибка таблицы не очищает кэш, следующий запрос снова пробует обновить."""
    await user_service.resolve(100)
    clock.now += 301
    fetch_users.side_effect = RemoteFetchError(503, "Service Unavailable")

    user = await user_service.resolve(100)

    assert user.role == RoleName.ADMIN
    assert user_service.state is CacheState.STALE

    await user_service.resolve(100)
    assert fetch_users.call_count == 3


@pytest.mark.asyncio
async def test_failed_first_load_resolves_guest(fetch_users, clock):
    """Тест: Таблица недоступна с самого начала, все пользователи - гости."""
    fetch_users.side_effect = RemoteFetchError(None, "Network Error")
    service = UserService(fetch_users, ttl_seconds=300, clock=clock)

    user = await service.resolve(100)

    assert user.role == RoleName.GUEST
    assert service.state is CacheState.EMPTY
    assert await service.refresh() is False


@pytest.mark.asyncio
async def test_concurrent_resolves_share_one_fetch(user_service, fetch_users):
    """Тест: Одновременные запросы при пустом кэше приводят к одному чтению таблицы."""
    users = await asyncio.gather(*(user_service.resolve(100) for _ in range(5)))

    assert all(user.name == "Admin User" for user in users)
    fetch_users.assert_called_once()


@pytest.mark.asyncio
async def test_invalidate_forces_refresh(user_service, fetch_users):
    """Тест: После сброса кэша данные перечитываются, но до этого остаются доступны."""
    await user_service.get_all_users()
    user_service.invalidate()

    assert user_service.state is CacheState.EMPTY
    users = await user_service.get_all_users()

    assert len(users) == 2
    assert fetch_users.call_count == 2


def test_from_sheets_builds_users_range(mocker):
    """Тест: Кэш читает лист пользователей с пропуском строк заголовка."""
    google_api = mocker.Mock()
    google_api.fetch_rows.return_value = [["Инструкция"]] * 2 + [
        ["a@firm.ru", "Администратор", "Анна", "42", "", "да", "", ""]
    ]
    config = mocker.Mock(
        users_sheet_name="Пользователи", users_sheet_header_rows=2, roles_cache_ttl_seconds=60
    )

    service = UserService.from_sheets(google_api, config)
    users = service._fetch_users()

    google_api.fetch_rows.assert_called_once_with("'Пользователи'!A:H")
    assert users[0].telegram_id == 42
    assert users[0].role == RoleName.ADMIN
    assert users[0].telegram_notifications is True
