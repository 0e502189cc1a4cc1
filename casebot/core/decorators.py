"""
Декораторы для проверки прав доступа в обработчиках бота.
"""

import logging
from functools import wraps
from typing import Any, Callable, Coroutine

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import ContextTypes

from casebot.core.navigation import back_keyboard
from casebot.models.role import Capability
from casebot.services.permissions import PermissionGate

logger = logging.getLogger(__name__)


def require_permission(capability: Capability | str) -> Callable:
    """
    Декоратор для проверки, что у пользователя есть указанное право.

    Проверка выполняется через PermissionGate из bot_data. При отказе
    пользователь получает сообщение с названием своей роли, а обработчик
    не вызывается (и возвращает None, так что диалог не начинается).

    Args:
        capability: Право, необходимое для выполнения обработчика.
    """

    def decorator(
        func: Callable[[Update, ContextTypes.DEFAULT_TYPE], Coroutine[Any, Any, Any]],
    ):
        @wraps(func)
        async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> Any:
            user = update.effective_user
            if not user:
                return None  # Не должно происходить в обычных чатах

            gate: PermissionGate = context.application.bot_data["permission_gate"]
            result = await gate.check(user.id, capability)

            if result.allowed:
                # Сохраняем данные о пользователе в контекст для удобного доступа
                context.user_data["db_user"] = result.user
                context.user_data["role"] = result.role
                return await func(update, context)

            logger.warning(
                f"Access denied for user {user.id} ({user.username}) to '{result.capability}'. "
                f"User role: '{result.role.name.value}'."
            )
            if update.callback_query:
                await update.callback_query.answer()
                await update.callback_query.edit_message_text(
                    result.message,
                    parse_mode=ParseMode.HTML,
                    reply_markup=back_keyboard(),
                )
            elif update.effective_message:
                await update.effective_message.reply_text(
                    result.message, parse_mode=ParseMode.HTML
                )
            return None

        return wrapper

    return decorator
