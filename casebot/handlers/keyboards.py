"""
Inline-клавиатуры бота.
"""

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, WebAppInfo

from casebot.models.role import Capability, RoleDefinition


def main_menu_keyboard(role: RoleDefinition, mini_app_url: str) -> InlineKeyboardMarkup:
    """Главное меню: набор кнопок зависит от прав роли."""
    keyboard = []

    if role.allows(Capability.VIEW_CASES):
        keyboard.append(
            [InlineKeyboardButton("📱 Открыть приложение", web_app=WebAppInfo(url=mini_app_url))]
        )

    row = []
    if role.allows(Capability.VIEW_CASES):
        row.append(InlineKeyboardButton("📅 Заседания", callback_data="view_hearings"))
    if role.allows(Capability.SEARCH_CASES):
        row.append(InlineKeyboardButton("🔍 Поиск дела", callback_data="search_case"))
    if row:
        keyboard.append(row)

    row = []
    if role.allows(Capability.SEARCH_CASES):
        row.append(InlineKeyboardButton("🎯 Фильтры", callback_data="show_filters"))
    if role.allows(Capability.ADD_DATE):
        row.append(InlineKeyboardButton("➕ Добавить дату", callback_data="add_date"))
    if row:
        keyboard.append(row)

    if role.allows(Capability.RESCHEDULE_HEARING):
        keyboard.append(
            [InlineKeyboardButton("🔄 Перенести заседание", callback_data="reschedule_hearing")]
        )

    keyboard.append([InlineKeyboardButton("👤 Мой профиль", callback_data="my_profile")])
    return InlineKeyboardMarkup(keyboard)
