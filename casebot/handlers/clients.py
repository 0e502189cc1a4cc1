"""
Обработчики команд базы клиентов.
"""

import html
import logging

from pydantic import ValidationError
from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import ContextTypes

from casebot.core.decorators import require_permission
from casebot.core.exceptions import (
    ConfigurationError,
    InsufficientPermissionError,
    RemoteFetchError,
)
from casebot.handlers.cases import (
    DATA_UNAVAILABLE_MESSAGE,
    WRITE_FORBIDDEN_MESSAGE,
    WRITE_NOT_CONFIGURED_MESSAGE,
    format_case_list,
)
from casebot.models.client import ClientRecord, ClientType, NewClient
from casebot.models.role import Capability
from casebot.services.case_service import visible_cases
from casebot.services.client_service import ClientService

logger = logging.getLogger(__name__)

MAX_CLIENTS = 10
ADD_CLIENT_USAGE = (
    "⚠️ <b>Неверный формат.</b>\n\n"
    "Отправьте команду в формате:\n"
    "<code>/addclient тип; название или ФИО; ИНН/паспорт; телефон; email; адрес</code>\n\n"
    "Тип: <i>физ</i>, <i>юр</i> или <i>ип</i>. Обязательны тип и название.\n\n"
    "Пример:\n"
    "<code>/addclient юр; ООО Ромашка; 7701234567; +7 495 123-45-67; info@romashka.ru; Москва</code>"
)

CLIENT_TYPE_ALIASES = {
    "физ": ClientType.INDIVIDUAL,
    "физлицо": ClientType.INDIVIDUAL,
    "физическое лицо": ClientType.INDIVIDUAL,
    "юр": ClientType.ORGANIZATION,
    "юрлицо": ClientType.ORGANIZATION,
    "юридическое лицо": ClientType.ORGANIZATION,
    "ип": ClientType.SOLE_PROPRIETOR,
}


def parse_client_type(text: str) -> ClientType | None:
    return CLIENT_TYPE_ALIASES.get(text.strip().lower())


def format_client(client: ClientRecord) -> str:
    esc = html.escape
    lines = [f"👤 <b>{esc(client.name or 'Без названия')}</b> ({esc(client.client_id)})"]
    if client.client_type:
        lines.append(f"   {esc(client.client_type)}")
    contacts = " / ".join(filter(None, [client.phone, client.email]))
    if contacts:
        lines.append(f"   📞 {esc(contacts)}")
    lines.append(f"   Дел: {client.total_cases} (активных: {client.active_cases})")
    return "\n".join(lines)


@require_permission(Capability.SEARCH_CASES)
async def search_clients(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Поиск клиента: /clients <запрос>."""
    message = update.effective_message
    query_text = " ".join(context.args or []).strip()
    if not query_text:
        await message.reply_text(
            "Использование: <code>/clients запрос</code> (название, ИНН, телефон или email).",
            parse_mode=ParseMode.HTML,
        )
        return

    client_service: ClientService = context.application.bot_data["client_service"]
    try:
        found = await client_service.search(query_text)
    except RemoteFetchError as e:
        logger.error(f"Failed to search clients: {e}")
        await message.reply_text(DATA_UNAVAILABLE_MESSAGE)
        return

    if not found:
        await message.reply_text(
            f"🔍 Клиенты по запросу «{html.escape(query_text)}» не найдены.",
            parse_mode=ParseMode.HTML,
        )
        return

    text = "\n\n".join(format_client(client) for client in found[:MAX_CLIENTS])
    if len(found) > MAX_CLIENTS:
        text += f"\n\n<i>Показано {MAX_CLIENTS} из {len(found)}</i>"
    await message.reply_text(text, parse_mode=ParseMode.HTML)


@require_permission(Capability.SEARCH_CASES)
async def client_cases(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Дела клиента: /clientcases <ID клиента>."""
    message = update.effective_message
    client_id = " ".join(context.args or []).strip()
    if not client_id:
        await message.reply_text(
            "Использование: <code>/clientcases CLI-00001</code>", parse_mode=ParseMode.HTML
        )
        return

    client_service: ClientService = context.application.bot_data["client_service"]
    try:
        client, cases = await client_service.client_cases(client_id)
    except RemoteFetchError as e:
        logger.error(f"Failed to load cases of client {client_id}: {e}")
        await message.reply_text(DATA_UNAVAILABLE_MESSAGE)
        return

    if client is None:
        await message.reply_text(
            f"❌ Клиент «{html.escape(client_id)}» не найден.", parse_mode=ParseMode.HTML
        )
        return

    cases = visible_cases(cases, context.user_data["db_user"], context.user_data["role"])
    name = html.escape(client.name or client.client_id)
    if not cases:
        await message.reply_text(
            f"📋 У клиента <b>{name}</b> пока нет дел.", parse_mode=ParseMode.HTML
        )
        return

    await message.reply_text(
        format_case_list(cases, f"📋 <b>Дела клиента {name}: {len(cases)}</b>"),
        parse_mode=ParseMode.HTML,
    )


@require_permission(Capability.VIEW_REPORTS)
async def client_stats(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    client_service: ClientService = context.application.bot_data["client_service"]
    try:
        stats = await client_service.statistics()
    except RemoteFetchError as e:
        logger.error(f"Failed to load client statistics: {e}")
        await update.effective_message.reply_text(DATA_UNAVAILABLE_MESSAGE)
        return

    lines = [
        "📊 <b>БАЗА КЛИЕНТОВ</b>",
        "",
        f"Всего клиентов: <b>{stats['total']}</b>",
        f"Активных: {stats['active']}, VIP: {stats['vip']}, в архиве: {stats['archived']}",
        "",
    ]
    lines += [f"• {client_type}: {count}" for client_type, count in stats["by_type"].items()]
    lines += ["", f"Дел всего: {stats['total_cases']}, активных: {stats['active_cases']}"]
    await update.effective_message.reply_text("\n".join(lines), parse_mode=ParseMode.HTML)


@require_permission(Capability.EDIT_CASE)
async def update_client_stats(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Пересчитывает и записывает в таблицу счетчики дел всех клиентов."""
    message = update.effective_message
    client_service: ClientService = context.application.bot_data["client_service"]
    try:
        clients = await client_service.refresh_statistics()
    except InsufficientPermissionError as e:
        logger.warning(f"Client statistics update rejected: {e}")
        await message.reply_text(WRITE_FORBIDDEN_MESSAGE, parse_mode=ParseMode.HTML)
        return
    except ConfigurationError as e:
        logger.error(f"Client statistics update is not configured: {e}")
        await message.reply_text(WRITE_NOT_CONFIGURED_MESSAGE, parse_mode=ParseMode.HTML)
        return
    except RemoteFetchError as e:
        logger.error(f"Failed to update client statistics: {e}")
        await message.reply_text(DATA_UNAVAILABLE_MESSAGE)
        return

    logger.info(f"User {update.effective_user.id} refreshed client statistics.")
    await message.reply_text(f"✅ Статистика обновлена для {len(clients)} клиентов.")


@require_permission(Capability.EDIT_CASE)
async def add_client(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Добавляет клиента в базу.
    Использование: /addclient тип; название; ИНН/паспорт; телефон; email; адрес
    """
    message = update.effective_message
    raw = " ".join(context.args or [])
    parts = [part.strip() for part in raw.split(";")]
    if len(parts) < 2:
        await message.reply_text(ADD_CLIENT_USAGE, parse_mode=ParseMode.HTML)
        return

    client_type = parse_client_type(parts[0])
    if client_type is None:
        await message.reply_text(
            f"⚠️ Неизвестный тип клиента «{html.escape(parts[0])}». Используйте: физ, юр или ип.",
            parse_mode=ParseMode.HTML,
        )
        return

    parts += [""] * (6 - len(parts))
    try:
        new_client = NewClient(
            client_type=client_type,
            name=parts[1],
            document=parts[2],
            phone=parts[3],
            email=parts[4],
            address=parts[5],
        )
    except ValidationError as e:
        errors = "\n".join(f"• {html.escape(error['msg'])}" for error in e.errors())
        await message.reply_text(
            f"⚠️ <b>Ошибка в данных клиента:</b>\n{errors}", parse_mode=ParseMode.HTML
        )
        return

    client_service: ClientService = context.application.bot_data["client_service"]
    try:
        record = await client_service.add_client(new_client)
    except InsufficientPermissionError as e:
        logger.warning(f"Client creation rejected: {e}")
        await message.reply_text(WRITE_FORBIDDEN_MESSAGE, parse_mode=ParseMode.HTML)
        return
    except ConfigurationError as e:
        logger.error(f"Client creation is not configured: {e}")
        await message.reply_text(WRITE_NOT_CONFIGURED_MESSAGE, parse_mode=ParseMode.HTML)
        return
    except RemoteFetchError as e:
        logger.error(f"Failed to add client: {e}")
        await message.reply_text(DATA_UNAVAILABLE_MESSAGE)
        return

    logger.info(f"User {update.effective_user.id} added client {record.client_id}.")
    await message.reply_text(
        f"✅ Клиент добавлен.\n\n{format_client(record)}", parse_mode=ParseMode.HTML
    )
