"""
Обработчики просмотра дел: заседания, поиск, фильтры и изменение даты заседания.
"""

import html
import logging
from datetime import datetime, timezone

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update, WebAppInfo
from telegram.constants import ParseMode
from telegram.ext import ContextTypes, ConversationHandler

from casebot.core.dates import days_until, format_datetime, parse_date
from casebot.core.decorators import require_permission
from casebot.core.exceptions import (
    ConfigurationError,
    InsufficientPermissionError,
    RemoteFetchError,
)
from casebot.handlers.common import back_to_main
from casebot.core.navigation import BACK_MAIN, back_keyboard
from casebot.models.case import CaseRecord
from casebot.models.role import Capability
from casebot.services.case_service import (
    CaseService,
    distinct_values,
    filter_cases,
    find_case,
    search_cases,
    visible_cases,
)
from casebot.services.permissions import PermissionGate

logger = logging.getLogger(__name__)

# --- Константы для сообщений ---
DATA_UNAVAILABLE_MESSAGE = (
    "❌ Данные временно недоступны. Попробуйте позже или обратитесь к администратору."
)
WRITE_FORBIDDEN_MESSAGE = (
    "⚠️ <b>Редактирование недоступно</b>\n\n"
    "У бота нет прав на запись в таблицу. Обратитесь к администратору."
)
WRITE_NOT_CONFIGURED_MESSAGE = (
    "⚠️ <b>Редактирование недоступно</b>\n\n"
    "Запись в таблицу не настроена. Обратитесь к администратору."
)
MAX_RESULTS = 10

# Состояния диалогов
SEARCH_QUERY = 0
(CASE_NUMBER, NEW_DATE) = range(1, 3)

FILTER_TITLES = {
    "status": "📊 По статусу",
    "priority": "🎯 По приоритету",
    "lawyer": "👨‍⚖️ По юристу",
}


def urgency_label(days: int) -> str:
    if days <= 0:
        return "🔴 СЕГОДНЯ"
    if days == 1:
        return "🟡 ЗАВТРА"
    if days <= 3:
        return f"🟠 {days} дн."
    return f"🟢 {days} дн."


def format_hearings(cases: list[CaseRecord], now: datetime, tz_name: str) -> str:
    esc = html.escape
    parts = ["⚖️ <b>ПРЕДСТОЯЩИЕ ЗАСЕДАНИЯ</b>"]
    for case in cases:
        days = days_until(case.hearing_at, now, tz_name)
        parts.append(
            f"📅 <b>Дата:</b> {format_datetime(case.hearing_at)}\n"
            f"⏰ {urgency_label(days)}\n\n"
            f"🏛️ <b>Суд:</b> {esc(case.court or 'Суд не указан')}\n"
            f"📋 <b>Дело:</b> {esc(case.title)}\n\n"
            f"👤 <b>Истец:</b> {esc(case.plaintiff or 'Не указан')}\n"
            f"👤 <b>Ответчик:</b> {esc(case.defendant or 'Не указан')}\n"
            f"🔥 <b>Приоритет:</b> {esc(case.priority or 'Обычный')}"
        )
    return "\n\n".join(parts)


def format_case_list(cases: list[CaseRecord], title: str) -> str:
    esc = html.escape
    lines = [f"{title}\n"]
    for case in cases[:MAX_RESULTS]:
        line = f"📋 <b>{esc(case.title)}</b> - {esc(case.status or 'без статуса')}"
        details = " / ".join(filter(None, [case.plaintiff, case.defendant]))
        if details:
            line += f"\n   {esc(details)}"
        if case.hearing_at:
            line += f"\n   📅 {format_datetime(case.hearing_at)}"
        lines.append(line)
    if len(cases) > MAX_RESULTS:
        lines.append(f"\n<i>Показано {MAX_RESULTS} из {len(cases)}</i>")
    return "\n".join(lines)


async def _reply(update: Update, text: str, reply_markup=None) -> None:
    """Редактирует сообщение с кнопками или отвечает новым сообщением на команду."""
    if update.callback_query:
        await update.callback_query.edit_message_text(
            text, parse_mode=ParseMode.HTML, reply_markup=reply_markup
        )
    else:
        await update.effective_message.reply_text(
            text, parse_mode=ParseMode.HTML, reply_markup=reply_markup
        )


async def _load_visible_cases(context: ContextTypes.DEFAULT_TYPE) -> list[CaseRecord]:
    case_service: CaseService = context.application.bot_data["case_service"]
    cases = await case_service.get_cases()
    return visible_cases(cases, context.user_data["db_user"], context.user_data["role"])


@require_permission(Capability.VIEW_CASES)
async def show_hearings(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Показывает ближайшие заседания по делам, доступным пользователю."""
    if update.callback_query:
        await update.callback_query.answer()

    case_service: CaseService = context.application.bot_data["case_service"]
    settings = context.application.bot_data["settings"]
    now = datetime.now(timezone.utc)

    try:
        hearings = await case_service.get_upcoming_hearings(
            context.user_data["db_user"], context.user_data["role"], now=now
        )
    except RemoteFetchError as e:
        logger.error(f"Failed to load hearings: {e}")
        await _reply(update, DATA_UNAVAILABLE_MESSAGE, back_keyboard())
        return

    if not hearings:
        await _reply(update, "📅 Нет предстоящих заседаний", back_keyboard())
        return

    await _reply(
        update, format_hearings(hearings, now, settings.display_timezone), back_keyboard()
    )


# --- Поиск дела ---


@require_permission(Capability.SEARCH_CASES)
async def search_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    if update.callback_query:
        await update.callback_query.answer()
    await _reply(
        update,
        "🔍 <b>Поиск дела</b>\n\n"
        "Отправьте номер дела (например, <code>А64-5863/2025</code>) "
        "или фамилию/название стороны.\n\n"
        "Для отмены нажмите /cancel.",
    )
    return SEARCH_QUERY


async def search_query(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query_text = update.effective_message.text.strip()
    logger.info(f"User {update.effective_user.id} searches cases by '{query_text}'.")

    try:
        cases = await _load_visible_cases(context)
    except RemoteFetchError as e:
        logger.error(f"Failed to load cases for search: {e}")
        await update.effective_message.reply_text(DATA_UNAVAILABLE_MESSAGE)
        return ConversationHandler.END

    found = search_cases(cases, query_text)
    if not found:
        await update.effective_message.reply_text(
            f"🔍 По запросу «{html.escape(query_text)}» ничего не найдено.",
            parse_mode=ParseMode.HTML,
            reply_markup=back_keyboard(),
        )
    else:
        await update.effective_message.reply_text(
            format_case_list(found, f"🔍 <b>Найдено дел: {len(found)}</b>"),
            parse_mode=ParseMode.HTML,
            reply_markup=back_keyboard(),
        )
    return ConversationHandler.END


# --- Фильтры ---


@require_permission(Capability.SEARCH_CASES)
async def show_filters(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.callback_query.answer()
    keyboard = InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton(FILTER_TITLES["status"], callback_data="filter_status"),
                InlineKeyboardButton(FILTER_TITLES["priority"], callback_data="filter_priority"),
            ],
            [InlineKeyboardButton(FILTER_TITLES["lawyer"], callback_data="filter_lawyer")],
            [InlineKeyboardButton("⬅️ Назад", callback_data=BACK_MAIN)],
        ]
    )
    await update.callback_query.edit_message_text(
        "🎯 <b>Фильтры дел</b>\n\nВыберите параметр для фильтрации:",
        parse_mode=ParseMode.HTML,
        reply_markup=keyboard,
    )


@require_permission(Capability.SEARCH_CASES)
async def choose_filter_value(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Показывает значения выбранного поля (callback filter_<поле>)."""
    query = update.callback_query
    await query.answer()
    field = query.data.removeprefix("filter_")

    try:
        cases = await _load_visible_cases(context)
    except RemoteFetchError as e:
        logger.error(f"Failed to load cases for filters: {e}")
        await query.edit_message_text(DATA_UNAVAILABLE_MESSAGE, reply_markup=back_keyboard())
        return

    values = distinct_values(cases, field)
    context.user_data["filter_values"] = values
    if not values:
        await query.edit_message_text(
            "Нет значений для фильтрации.", reply_markup=back_keyboard()
        )
        return

    # В callback_data передаем номер значения: лимит Telegram - 64 байта
    keyboard = [
        [InlineKeyboardButton(value[:60], callback_data=f"filter_value:{field}:{index}")]
        for index, value in enumerate(values[:20])
    ]
    keyboard.append([InlineKeyboardButton("⬅️ Назад", callback_data="show_filters")])
    await query.edit_message_text(
        f"{FILTER_TITLES[field]}\n\nВыберите значение:",
        reply_markup=InlineKeyboardMarkup(keyboard),
    )


@require_permission(Capability.SEARCH_CASES)
async def apply_filter(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    _, field, index = query.data.split(":", 2)

    values = context.user_data.get("filter_values") or []
    if not index.isdigit() or int(index) >= len(values):
        await query.edit_message_text(
            "⚠️ Фильтр устарел, выберите его заново.", reply_markup=back_keyboard()
        )
        return
    value = values[int(index)]

    try:
        cases = await _load_visible_cases(context)
    except RemoteFetchError as e:
        logger.error(f"Failed to load cases for filter: {e}")
        await query.edit_message_text(DATA_UNAVAILABLE_MESSAGE, reply_markup=back_keyboard())
        return

    found = filter_cases(cases, **{field: value})
    title = f"🎯 <b>{html.escape(value)}</b>: {len(found)} дел"
    await query.edit_message_text(
        format_case_list(found, title) if found else f"{title}\n\nДел не найдено.",
        parse_mode=ParseMode.HTML,
        reply_markup=back_keyboard(),
    )


# --- Добавление и перенос даты заседания ---


async def _hearing_date_start(
    update: Update, context: ContextTypes.DEFAULT_TYPE, capability: Capability, title: str
) -> int:
    await update.callback_query.answer()
    settings = context.application.bot_data["settings"]
    context.user_data["hearing_capability"] = capability

    keyboard = InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton(
                    "📱 Выбрать из списка", web_app=WebAppInfo(url=settings.mini_app_url)
                )
            ],
            [InlineKeyboardButton("⬅️ Назад", callback_data=BACK_MAIN)],
        ]
    )
    await update.callback_query.edit_message_text(
        f"{title}\n\n"
        "Отправьте номер дела сообщением или выберите дело в мини-приложении.\n\n"
        "Для отмены нажмите /cancel.",
        parse_mode=ParseMode.HTML,
        reply_markup=keyboard,
    )
    return CASE_NUMBER


@require_permission(Capability.ADD_DATE)
async def add_date_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    return await _hearing_date_start(
        update, context, Capability.ADD_DATE, "➕ <b>Добавление даты заседания</b>"
    )


@require_permission(Capability.RESCHEDULE_HEARING)
async def reschedule_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    return await _hearing_date_start(
        update, context, Capability.RESCHEDULE_HEARING, "🔄 <b>Перенос заседания</b>"
    )


async def receive_case_number(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    message = update.effective_message
    case_number = message.text.strip()

    try:
        cases = await _load_visible_cases(context)
    except RemoteFetchError as e:
        logger.error(f"Failed to load cases for hearing update: {e}")
        await message.reply_text(DATA_UNAVAILABLE_MESSAGE)
        return ConversationHandler.END

    case = find_case(cases, case_number)
    if case is None:
        await message.reply_text(
            f"⚠️ Дело «{html.escape(case_number)}» не найдено. "
            "Проверьте номер и отправьте его снова или нажмите /cancel.",
            parse_mode=ParseMode.HTML,
        )
        return CASE_NUMBER

    context.user_data["hearing_case_number"] = case.case_number
    current = format_datetime(case.hearing_at) if case.hearing_at else "не назначено"
    await message.reply_text(
        f"📋 <b>{html.escape(case.title)}</b>\n"
        f"Текущее заседание: {current}\n\n"
        "Отправьте новую дату в формате <code>ДД.ММ.ГГГГ, ЧЧ:ММ</code>.",
        parse_mode=ParseMode.HTML,
    )
    return NEW_DATE


async def receive_new_date(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    message = update.effective_message
    when = parse_date(message.text)
    if when is None:
        await message.reply_text(
            "⚠️ Не удалось распознать дату. Используйте формат "
            "<code>ДД.ММ.ГГГГ, ЧЧ:ММ</code>, например <code>15.03.2026, 10:00</code>.",
            parse_mode=ParseMode.HTML,
        )
        return NEW_DATE

    # Роль могла измениться, пока шел диалог
    gate: PermissionGate = context.application.bot_data["permission_gate"]
    result = await gate.check(update.effective_user.id, context.user_data["hearing_capability"])
    if not result.allowed:
        await message.reply_text(result.message, parse_mode=ParseMode.HTML)
        return ConversationHandler.END

    case_service: CaseService = context.application.bot_data["case_service"]
    case_number = context.user_data["hearing_case_number"]
    try:
        case = await case_service.set_hearing_date(case_number, when)
    except InsufficientPermissionError as e:
        logger.warning(f"Hearing date update rejected: {e}")
        await message.reply_text(WRITE_FORBIDDEN_MESSAGE, parse_mode=ParseMode.HTML)
        return ConversationHandler.END
    except ConfigurationError as e:
        logger.error(f"Hearing date update is not configured: {e}")
        await message.reply_text(WRITE_NOT_CONFIGURED_MESSAGE, parse_mode=ParseMode.HTML)
        return ConversationHandler.END
    except RemoteFetchError as e:
        logger.error(f"Failed to update hearing date: {e}")
        await message.reply_text(DATA_UNAVAILABLE_MESSAGE)
        return ConversationHandler.END

    if case is None:
        await message.reply_text("⚠️ Дело больше не найдено в таблице.")
    else:
        logger.info(
            f"User {update.effective_user.id} set hearing of {case.title} to {format_datetime(when)}."
        )
        await message.reply_text(
            f"✅ Дата заседания по делу <b>{html.escape(case.title)}</b> "
            f"установлена: {format_datetime(when)}",
            parse_mode=ParseMode.HTML,
            reply_markup=back_keyboard(),
        )

    for key in ("hearing_case_number", "hearing_capability"):
        context.user_data.pop(key, None)
    return ConversationHandler.END


async def cancel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Отменяет текущий диалог (команда /cancel или кнопка "Назад")."""
    for key in ("hearing_case_number", "hearing_capability"):
        context.user_data.pop(key, None)
    if update.callback_query:
        await back_to_main(update, context)
    else:
        await update.effective_message.reply_text(
            "Действие отменено.", reply_markup=back_keyboard()
        )
    return ConversationHandler.END
