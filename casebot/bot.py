"""
Сборка Telegram-приложения: регистрация обработчиков и сервисов.
"""

import logging

from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ConversationHandler,
    MessageHandler,
    filters,
)

from casebot.core.config import Settings, settings
from casebot.dependencies import Services
from casebot.handlers import admin, cases, clients, common
from casebot.core.navigation import BACK_MAIN

logger = logging.getLogger(__name__)

TEXT = filters.TEXT & ~filters.COMMAND


def build_application(services: Services, config: Settings = settings) -> Application:
    """Создает Application с сервисами в bot_data и всеми обработчиками."""
    application = Application.builder().token(config.bot_token).build()

    # Сохраняем экземпляры сервисов в bot_data для доступа из обработчиков
    application.bot_data["settings"] = config
    application.bot_data["google_api_service"] = services.google_api
    application.bot_data["user_service"] = services.user_service
    application.bot_data["permission_gate"] = services.permission_gate
    application.bot_data["case_service"] = services.case_service
    application.bot_data["client_service"] = services.client_service
    application.bot_data["notification_service"] = services.notification_service

    register_handlers(application)
    return application


def register_handlers(application: Application) -> None:
    # --- Диалог поиска дела ---
    search_handler = ConversationHandler(
        entry_points=[CallbackQueryHandler(cases.search_start, pattern=r"^search_case$")],
        states={
            cases.SEARCH_QUERY: [MessageHandler(TEXT, cases.search_query)],
        },
        fallbacks=[
            CommandHandler("cancel", cases.cancel),
            CallbackQueryHandler(cases.cancel, pattern=rf"^{BACK_MAIN}$"),
        ],
    )

    # --- Диалог добавления/переноса даты заседания ---
    hearing_date_handler = ConversationHandler(
        entry_points=[
            CallbackQueryHandler(cases.add_date_start, pattern=r"^add_date$"),
            CallbackQueryHandler(cases.reschedule_start, pattern=r"^reschedule_hearing$"),
        ],
        states={
            cases.CASE_NUMBER: [MessageHandler(TEXT, cases.receive_case_number)],
            cases.NEW_DATE: [MessageHandler(TEXT, cases.receive_new_date)],
        },
        fallbacks=[
            CommandHandler("cancel", cases.cancel),
            CallbackQueryHandler(cases.cancel, pattern=rf"^{BACK_MAIN}$"),
        ],
    )

    application.add_handler(search_handler)
    application.add_handler(hearing_date_handler)

    application.add_handler(CommandHandler(["start", "menu"], common.start))
    application.add_handler(CommandHandler("help", common.help_command))
    application.add_handler(CommandHandler("myid", common.show_my_id))
    application.add_handler(CommandHandler("hearings", cases.show_hearings))
    application.add_handler(CommandHandler("listusers", admin.list_users))
    application.add_handler(CommandHandler("refreshroles", admin.refresh_roles))
    application.add_handler(CommandHandler("report", admin.report))
    application.add_handler(CommandHandler("clients", clients.search_clients))
    application.add_handler(CommandHandler("clientcases", clients.client_cases))
    application.add_handler(CommandHandler("clientstats", clients.client_stats))
    application.add_handler(CommandHandler("updateclientstats", clients.update_client_stats))
    application.add_handler(CommandHandler("addclient", clients.add_client))

    application.add_handler(CallbackQueryHandler(cases.show_hearings, pattern=r"^view_hearings$"))
    application.add_handler(CallbackQueryHandler(cases.show_filters, pattern=r"^show_filters$"))
    application.add_handler(
        CallbackQueryHandler(cases.choose_filter_value, pattern=r"^filter_(status|priority|lawyer)$")
    )
    application.add_handler(CallbackQueryHandler(cases.apply_filter, pattern=r"^filter_value:"))
    application.add_handler(CallbackQueryHandler(common.show_profile, pattern=r"^my_profile$"))
    application.add_handler(CallbackQueryHandler(common.back_to_main, pattern=rf"^{BACK_MAIN}$"))

    # --- Регистрируем обработчик ошибок ---
    application.add_error_handler(common.error_handler)
    application.add_handler(MessageHandler(TEXT, common.fallback_message))
    logger.info("Bot handlers registered.")
