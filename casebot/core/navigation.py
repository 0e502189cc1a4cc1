"""
Общая навигация бота: кнопка возврата в главное меню.
"""

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

BACK_MAIN = "back_main"


def back_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [[InlineKeyboardButton("⬅️ Назад", callback_data=BACK_MAIN)]]
    )
