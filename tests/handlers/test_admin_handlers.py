"""
Интеграционные тесты для обработчиков административных команд.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from casebot.core.exceptions import RemoteFetchError
from casebot.handlers.admin import list_users, refresh_roles, report
from casebot.models.case import CaseRecord
from casebot.models.role import RoleName
from casebot.models.user import User
from casebot.services.case_service import CaseService
from casebot.services.permissions import PermissionGate
from casebot.services.user_service import UserService

# --- Тестовые данные ---

ADMIN_USER = User(telegram_id=100, name="Admin", email="admin@firm.ru", role=RoleName.ADMIN)
LAWYER_USER = User(
    telegram_id=200, name="Lawyer", email="lawyer@firm.ru", role=RoleName.LAWYER, cases=["А40-1/2026"]
)
SAMPLE_USERS = [ADMIN_USER, LAWYER_USER]

# --- Фикстуры ---


@pytest.fixture
def mock_update_context_for_handlers(mocker) -> tuple[MagicMock, MagicMock]:
    """Фикстура для создания моков Update и Context для обработчиков."""
    mock_update = mocker.MagicMock()
    mock_context = mocker.MagicMock()

    mock_update.effective_message.reply_text = mocker.AsyncMock()
    # Явно симулируем обычное сообщение, чтобы избежать ошибок в декораторе
    mock_update.callback_query = None

    users = {user.telegram_id: user for user in SAMPLE_USERS}
    user_service = mocker.MagicMock(spec=UserService)
    user_service.resolve = mocker.AsyncMock(
        side_effect=lambda telegram_id: users.get(telegram_id, User.guest(telegram_id))
    )
    user_service.get_all_users = mocker.AsyncMock(return_value=SAMPLE_USERS)
    user_service.refresh = mocker.AsyncMock(return_value=True)

    case_service = mocker.MagicMock(spec=CaseService)
    case_service.get_cases = mocker.AsyncMock(return_value=[])

    mock_context.application.bot_data = {
        "user_service": user_service,
        "permission_gate": PermissionGate(user_service),
        "case_service": case_service,
    }
    mock_context.user_data = {}

    return mock_update, mock_context


# --- Тесты ---


@pytest.mark.asyncio
async def test_list_users_success(mock_update_context_for_handlers):
    """
    Тест: Команда /listusers успешно выводит список пользователей.
    """
    # Arrange
    mock_update, mock_context = mock_update_context_for_handlers
    mock_update.effective_user.id = ADMIN_USER.telegram_id

    # Act
    await list_users(mock_update, mock_context)

    # Assert
    reply_mock = mock_update.effective_message.reply_text

    # Проверяем, что было отправлено 3 сообщения: 1 заголовок + 2 пользователя
    assert reply_mock.call_count == 3

    # Проверяем вызов заголовка
    first_call_kwargs = reply_mock.call_args_list[0].kwargs
    assert first_call_kwargs["text"] == "--- 👥 Пользователи (2) ---"

    # Проверяем карточку первого пользователя (Admin)
    second_call_kwargs = reply_mock.call_args_list[1].kwargs
    admin_card_text = second_call_kwargs["text"]
    assert "👤 <b>Admin</b>" in admin_card_text
    assert "<code>100</code>" in admin_card_text
    assert "<i>👑 Администратор</i>" in admin_card_text
    assert second_call_kwargs["parse_mode"] == "HTML"

    # Проверяем карточку второго пользователя (Lawyer) с закрепленными делами
    lawyer_card_text = reply_mock.call_args_list[2].kwargs["text"]
    assert "<i>⚖️ Юрист</i>" in lawyer_card_text
    assert "А40-1/2026" in lawyer_card_text


@pytest.mark.asyncio
async def test_list_users_denied_for_lawyer(mock_update_context_for_handlers):
    """
    Тест: У юриста нет права управления пользователями.
    """
    # Arrange
    mock_update, mock_context = mock_update_context_for_handlers
    mock_update.effective_user.id = LAWYER_USER.telegram_id
    user_service = mock_context.application.bot_data["user_service"]

    # Act
    await list_users(mock_update, mock_context)

    # Assert
    user_service.get_all_users.assert_not_awaited()
    reply_mock = mock_update.effective_message.reply_text
    reply_mock.assert_awaited_once()
    assert "Доступ запрещен" in reply_mock.await_args.args[0]


@pytest.mark.asyncio
async def test_list_users_empty(mock_update_context_for_handlers):
    mock_update, mock_context = mock_update_context_for_handlers
    mock_update.effective_user.id = ADMIN_USER.telegram_id
    mock_context.application.bot_data["user_service"].get_all_users.return_value = []

    await list_users(mock_update, mock_context)

    mock_update.effective_message.reply_text.assert_awaited_once_with("👥 Список пользователей пуст.")


@pytest.mark.asyncio
async def test_refresh_roles(mock_update_context_for_handlers):
    """
    Тест: /refreshroles перечитывает роли и сообщает число пользователей.
    """
    mock_update, mock_context = mock_update_context_for_handlers
    mock_update.effective_user.id = ADMIN_USER.telegram_id
    user_service = mock_context.application.bot_data["user_service"]

    await refresh_roles(mock_update, mock_context)

    user_service.refresh.assert_awaited_once()
    assert "Пользователей в таблице: 2" in mock_update.effective_message.reply_text.await_args.args[0]


@pytest.mark.asyncio
async def test_refresh_roles_failure(mock_update_context_for_handlers):
    mock_update, mock_context = mock_update_context_for_handlers
    mock_update.effective_user.id = ADMIN_USER.telegram_id
    mock_context.application.bot_data["user_service"].refresh.return_value = False

    await refresh_roles(mock_update, mock_context)

    assert "Не удалось обновить роли" in mock_update.effective_message.reply_text.await_args.args[0]


@pytest.mark.asyncio
async def test_report(mock_update_context_for_handlers):
    """
    Тест: /report собирает сводку по делам.
    """
    mock_update, mock_context = mock_update_context_for_handlers
    mock_update.effective_user.id = LAWYER_USER.telegram_id
    soon = datetime.now(timezone.utc) + timedelta(days=3)
    mock_context.application.bot_data["case_service"].get_cases.return_value = [
        CaseRecord(row_index=1, id="1", case_number="А40-1/2026", status="В работе", lawyer="Иванов", hearing_at=soon),
        CaseRecord(row_index=2, id="2", case_number="А40-2/2026", status="Завершено", lawyer="Иванов"),
    ]

    await report(mock_update, mock_context)

    text = mock_update.effective_message.reply_text.await_args.args[0]
    assert "Всего дел: <b>2</b>" in text
    assert "В работе: 1" in text
    assert "Заседаний в ближайшие 2 недели: 1" in text
    assert "• Иванов: 2" in text


@pytest.mark.asyncio
async def test_report_data_unavailable(mock_update_context_for_handlers):
    mock_update, mock_context = mock_update_context_for_handlers
    mock_update.effective_user.id = ADMIN_USER.telegram_id
    mock_context.application.bot_data["case_service"].get_cases.side_effect = RemoteFetchError(503, "")

    await report(mock_update, mock_context)

    assert "Данные временно недоступны" in mock_update.effective_message.reply_text.await_args.args[0]
