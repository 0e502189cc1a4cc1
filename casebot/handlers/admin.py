"""
Обработчики административных команд.
"""

import html
import logging
from datetime import datetime, timezone

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import ContextTypes

from casebot.core.decorators import require_permission
from casebot.core.exceptions import RemoteFetchError
from casebot.models.role import Capability, get_role
from casebot.models.user import User
from casebot.services.case_service import CaseService, case_statistics
from casebot.services.user_service import UserService

logger = logging.getLogger(__name__)

REPORT_TOP_LIMIT = 5


def format_user_card(user: User) -> str:
    role = get_role(user.role)
    card = (
        f"👤 <b>{html.escape(user.name or 'Без имени')}</b>\n"
        f"   ID: <code>{user.telegram_id}</code>\n"
        f"   Email: {html.escape(user.email)}\n"
        f"   Роль: <i>{role.display_name}</i>"
    )
    if user.cases:
        card += f"\n   Дела: {html.escape(', '.join(user.cases))}"
    return card


@require_permission(Capability.MANAGE_USERS)
async def list_users(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Выводит список пользователей из таблицы в виде карточек.
    Доступно только для ролей с правом управления пользователями.
    """
    message = update.effective_message
    user_service: UserService = context.application.bot_data["user_service"]
    all_users = await user_service.get_all_users()

    if not all_users:
        await message.reply_text("👥 Список пользователей пуст.")
        return

    await message.reply_text(text=f"--- 👥 Пользователи ({len(all_users)}) ---")
    for user in all_users:
        await message.reply_text(text=format_user_card(user), parse_mode=ParseMode.HTML)


@require_permission(Capability.MANAGE_USERS)
async def refresh_roles(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Принудительно перечитывает пользователей и роли из таблицы."""
    user_service: UserService = context.application.bot_data["user_service"]
    logger.info(f"Admin {update.effective_user.id} requested roles cache refresh.")

    if await user_service.refresh():
        users = await user_service.get_all_users()
        await update.effective_message.reply_text(
            f"✅ Роли обновлены. Пользователей в таблице: {len(users)}."
        )
    else:
        await update.effective_message.reply_text(
            "⚠️ Не удалось обновить роли, используются ранее загруженные данные."
        )


def format_report(stats: dict) -> str:
    lines = [
        "📊 <b>ОТЧЕТ ПО ДЕЛАМ</b>",
        "",
        f"Всего дел: <b>{stats['total']}</b>",
        f"В работе: {stats['active']}",
        f"Завершено: {stats['completed']}",
        f"Заседаний в ближайшие 2 недели: {stats['upcoming']}",
        f"Прошедших заседаний: {stats['overdue']}",
    ]
    if stats["by_status"]:
        lines += ["", "<b>По статусам:</b>"]
        lines += [
            f"• {html.escape(status)}: {count}"
            for status, count in list(stats["by_status"].items())[:REPORT_TOP_LIMIT]
        ]
    if stats["by_lawyer"]:
        lines += ["", "<b>По юристам:</b>"]
        lines += [
            f"• {html.escape(lawyer)}: {count}"
            for lawyer, count in list(stats["by_lawyer"].items())[:REPORT_TOP_LIMIT]
        ]
    return "\n".join(lines)


@require_permission(Capability.VIEW_REPORTS)
async def report(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    case_service: CaseService = context.application.bot_data["case_service"]
    try:
        cases = await case_service.get_cases()
    except RemoteFetchError as e:
        logger.error(f"Failed to build report: {e}")
        await update.effective_message.reply_text(
            "❌ Данные временно недоступны. Попробуйте позже."
        )
        return

    stats = case_statistics(cases, datetime.now(timezone.utc))
    await update.effective_message.reply_text(format_report(stats), parse_mode=ParseMode.HTML)
