"""
Обработчики общих команд, доступных всем пользователям.
"""

import html
import json
import logging

from telegram import Update
from telegram.constants import ParseMode
from telegram.error import BadRequest
from telegram.ext import ContextTypes

from casebot.core.navigation import back_keyboard
from casebot.handlers.keyboards import main_menu_keyboard
from casebot.models.role import format_permissions, get_role
from casebot.services.user_service import UserService

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "📖 <b>Справка по боту</b>\n\n"
    "/start - Главное меню\n"
    "/hearings - Предстоящие заседания\n"
    "/clients &lt;запрос&gt; - Поиск клиента\n"
    "/clientcases &lt;ID клиента&gt; - Дела клиента\n"
    "/myid - Ваш Telegram ID\n"
    "/help - Эта справка\n\n"
    "Используйте кнопки для удобной навигации!"
)


async def send_main_menu(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Отправляет главное меню с кнопками по правам роли пользователя."""
    tg_user = update.effective_user
    user_service: UserService = context.application.bot_data["user_service"]
    settings = context.application.bot_data["settings"]

    db_user = await user_service.resolve(tg_user.id)
    role = get_role(db_user.role)
    name = html.escape(db_user.name or tg_user.first_name or "пользователь")

    text = (
        "⚖️ <b>СИСТЕМА УПРАВЛЕНИЯ ДЕЛАМИ</b>\n"
        "<i>Legal Cases Management System</i>\n\n"
        f"Добро пожаловать, {name}!\n"
        f"Ваша роль: {role.display_name}\n\n"
        "<b>Ваш помощник для:</b>\n"
        "📋 Управления судебными делами\n"
        "📅 Отслеживания заседаний\n"
        "🔍 Быстрого поиска информации\n"
        "📊 Контроля сроков и дедлайнов\n\n"
        "Выберите действие ниже ⬇️"
    )
    await context.bot.send_message(
        chat_id=update.effective_chat.id,
        text=text,
        parse_mode=ParseMode.HTML,
        reply_markup=main_menu_keyboard(role, settings.mini_app_url),
    )


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Обработчик команд /start и /menu."""
    user = update.effective_user
    if not user:
        return
    logger.info(f"User {user.id} ({user.username}) opened the main menu.")
    await send_main_menu(update, context)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.effective_message.reply_text(HELP_TEXT, parse_mode=ParseMode.HTML)


async def show_my_id(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Отправляет пользователю его собственный Telegram ID."""
    user = update.effective_user
    if not user:
        return

    logger.info(f"User {user.id} requested their ID.")
    await update.effective_message.reply_text(
        f"Ваш Telegram ID: <code>{user.id}</code>\n\n"
        f"Пожалуйста, отправьте этот ID вашему администратору для получения доступа.",
        parse_mode=ParseMode.HTML,
    )


def format_profile(db_user, role, telegram_id: int) -> str:
    channels = []
    if db_user.telegram_notifications:
        channels.append("📱 Telegram")
    if db_user.email_notifications:
        channels.append("✉️ Email")
    if db_user.sms_notifications:
        channels.append("📞 SMS")

    lines = [
        "👤 <b>МОЙ ПРОФИЛЬ</b>",
        "",
        f"<b>Имя:</b> {html.escape(db_user.name or 'Не указано')}",
        f"<b>Email:</b> {html.escape(db_user.email or 'Не указан')}",
        f"<b>Telegram ID:</b> <code>{telegram_id}</code>",
        f"<b>Роль:</b> {role.display_name}",
        "",
        f"<b>🔔 Уведомления:</b> {', '.join(channels) if channels else 'Отключены'}",
    ]
    if db_user.cases:
        lines.append(f"<b>📁 Мои дела:</b> {len(db_user.cases)}")
    lines += [
        "",
        "<b>📋 Ваши права доступа:</b>",
        "",
        format_permissions(role),
        "",
        "<i>Для изменения прав обратитесь к администратору</i>",
    ]
    return "\n".join(lines)


async def show_profile(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Показывает профиль пользователя (доступно всем, включая гостей)."""
    query = update.callback_query
    await query.answer()

    user_service: UserService = context.application.bot_data["user_service"]
    db_user = await user_service.resolve(update.effective_user.id)
    role = get_role(db_user.role)

    await query.edit_message_text(
        format_profile(db_user, role, update.effective_user.id),
        parse_mode=ParseMode.HTML,
        reply_markup=back_keyboard(),
    )


async def back_to_main(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Кнопка "Назад": удаляет текущее сообщение и показывает главное меню."""
    query = update.callback_query
    await query.answer()
    try:
        await query.delete_message()
    except BadRequest as e:
        logger.debug(f"Could not delete message: {e}")
    await send_main_menu(update, context)


async def fallback_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Любое другое сообщение - показываем главное меню."""
    await send_main_menu(update, context)


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Логирует ошибки и отправляет уведомление администраторам.
    """

    logger.error("Exception while handling an update:", exc_info=context.error)

    if isinstance(update, Update):
        update_str = json.dumps(update.to_dict(), indent=2, ensure_ascii=False)
    else:
        update_str = str(update)

    message = (
        f"‼️ <b>Произошла ошибка в боте</b> ‼️\n\n"
        f"<pre>update = {html.escape(update_str)}</pre>\n\n"
        f"<pre>{html.escape(str(context.error))}</pre>"
    )

    settings = context.application.bot_data.get("settings")
    admin_ids = settings.admin_ids if settings else []
    for admin_id in admin_ids:
        try:
            # Разделяем сообщение, если оно слишком длинное
            if len(message) > 4096:
                for x in range(0, len(message), 4096):
                    await context.bot.send_message(
                        chat_id=admin_id, text=message[x : x + 4096]
                    )
            else:
                await context.bot.send_message(
                    chat_id=admin_id, text=message, parse_mode=ParseMode.HTML
                )
        except Exception as e:
            logger.error(f"Failed to send error message to admin {admin_id}: {e}")
